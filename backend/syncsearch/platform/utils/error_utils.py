"""Error handling utilities.

Builds the human-readable messages recorded on failed items. Exceptions raised
by SyncSearch itself already carry a user-facing message; third-party exceptions
often have an empty or cryptic ``str()`` and need more work.
"""

import traceback

from syncsearch.core.exceptions import SyncSearchException


def _get_root_cause(error: BaseException) -> BaseException:
    """Get the root cause of an exception chain."""
    root_cause = error
    while root_cause.__cause__ is not None:
        root_cause = root_cause.__cause__
    return root_cause


def _format_with_type(error_str: str, root_cause: BaseException) -> str:
    """Prefix the exception type unless the message already names it."""
    error_type = type(root_cause).__name__
    if error_type not in error_str:
        return f"{error_type}: {error_str}"
    return error_str


def _get_message_from_traceback(root_cause: BaseException) -> str | None:
    """Use the last traceback line when it says more than the type name."""
    try:
        tb_lines = traceback.format_exception(
            type(root_cause), root_cause, root_cause.__traceback__
        )
    except Exception:
        return None
    if tb_lines:
        last_line = tb_lines[-1].strip()
        if last_line and last_line != type(root_cause).__name__:
            return last_line
    return None


def _get_fallback_message(root_cause: BaseException) -> str:
    """Exception type with module, as a last resort."""
    error_type = type(root_cause).__name__
    error_module = type(root_cause).__module__
    if error_module and error_module != "builtins":
        return f"{error_module}.{error_type}"
    return error_type


def get_error_message(error: BaseException) -> str:
    """Get a meaningful, never empty, error message from an exception.

    Args:
        error: The exception to extract the message from

    Returns:
        A message suitable for an item's status message

    Examples:
        >>> get_error_message(GenerationError("Model returned an empty summary."))
        'Model returned an empty summary.'

        >>> get_error_message(ValueError("bad input"))
        'ValueError: bad input'
    """
    if isinstance(error, SyncSearchException) and error.message:
        return error.message

    root_cause = _get_root_cause(error)
    if isinstance(root_cause, SyncSearchException) and root_cause.message:
        return root_cause.message

    error_str = str(root_cause)
    if error_str and error_str.strip():
        return _format_with_type(error_str.strip(), root_cause)

    tb_message = _get_message_from_traceback(root_cause)
    if tb_message:
        return tb_message

    return _get_fallback_message(root_cause)
