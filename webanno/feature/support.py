"""
Feature support strategy interface.

A feature support knows how to handle one category of annotation feature:
which features it is responsible for, how raw editor values are converted
into stored values, and how stored values are rendered as labels.
"""

from abc import ABC, abstractmethod
from typing import Any, List

# Multi-value and link modes of AnnotationFeature
MULTI_VALUE_NONE = "NONE"
MULTI_VALUE_ARRAY = "ARRAY"
LINK_NONE = "NONE"
LINK_WITH_ROLE = "WITH_ROLE"


class FeatureSupport(ABC):
    """Strategy for one category of annotation feature."""

    #: Identifier used in config.yaml
    support_id: str = ""

    #: Priority of this support; supports with a lower order are asked first
    order: int = 0

    @abstractmethod
    def accepts(self, feature) -> bool:
        """Whether this support handles the given feature."""

    @abstractmethod
    def feature_types(self) -> List[str]:
        """Feature type names this support offers when defining features."""

    @abstractmethod
    def convert_value(self, feature, value: Any) -> Any:
        """
        Convert a raw editor value into the value stored in the annotation document.

        Raises:
            ValueError: if the value is not acceptable for the feature
        """

    def render_value(self, feature, value: Any) -> str:
        """Render a stored value as label text."""
        if value is None:
            return ""
        return str(value)

    def check_in_document(self, feature, value: Any, document) -> None:
        """Validate a converted value against the annotation document it is stored in."""

    def default_value(self, feature) -> Any:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(order={self.order})"
