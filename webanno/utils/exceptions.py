"""Helpers for reporting exceptions to users."""


def get_root_cause(exc: BaseException) -> BaseException:
    """Follow the chain of causes down to the original exception."""
    seen = set()
    while id(exc) not in seen:
        seen.add(id(exc))
        cause = exc.__cause__
        if cause is None and not exc.__suppress_context__:
            cause = exc.__context__
        if cause is None:
            break
        exc = cause
    return exc


def get_root_cause_message(exc: BaseException) -> str:
    """Short "ExceptionType: message" description of the root cause."""
    root = get_root_cause(exc)
    message = str(root)
    name = type(root).__name__
    return f"{name}: {message}" if message else name
