"""
Domain exceptions raised by the service layer.

Routers translate these into HTTP errors whose detail is the user-visible
feedback message.
"""


class WebAnnoError(Exception):
    """Base class for all service-level errors."""


class NotFoundError(WebAnnoError):
    """A project, document, layer, feature or user does not exist."""


class AccessDeniedError(WebAnnoError):
    """The user lacks the permission required for the operation."""


class InvalidStateTransitionError(WebAnnoError):
    """A document is not in the state a transition starts from."""


class ConfirmationRequiredError(WebAnnoError):
    """The operation must be confirmed by the user before it is executed."""


class ValidationFailedError(WebAnnoError):
    """Input was rejected (bad value, duplicate name, read-only layer, ...)."""


class DocumentReadError(WebAnnoError):
    """The working copy of an annotation document could not be read."""
