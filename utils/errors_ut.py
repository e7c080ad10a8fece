import logging
from typing import Tuple

from botocore.exceptions import ClientError

logger = logging.getLogger("errors_ut")

# Error codes S3-compatible backends use for a missing object.
# HeadObject has no body, so only the bare HTTP status comes back.
NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})

EXIT_INTERNAL = 1
EXIT_NOT_FOUND = 2
EXIT_PERMISSION = 3
EXIT_STREAM = 4
EXIT_INVALID = 5


class StorageError(Exception):
    """Base for conditions the drivers raise themselves."""


class NotFound(StorageError, FileNotFoundError):
    """Backend reports there is no such object."""


class StreamUnavailable(StorageError):
    """
    Backend answered OK but gave no body to read.
    Backend contract violation, not worth a retry.
    """


def error_code(e: ClientError) -> str:
    return str(e.response.get("Error", {}).get("Code", ""))


def is_not_found(e: Exception) -> bool:
    return isinstance(e, ClientError) and error_code(e) in NOT_FOUND_CODES


def translate_exception(e: Exception) -> Tuple[int, str]:
    """
    Map Python exceptions to CLI exit codes and messages.
    Does NOT log anticipated errors (Not Found, Permission, etc).
    Logs INTERNAL errors.

    Args:
        e: The caught exception.

    Returns:
        tuple: (exit_code, str_message)
    """
    msg = str(e)

    # 1. Not Found (driver NotFound is a FileNotFoundError too)
    if isinstance(e, FileNotFoundError):
        return EXIT_NOT_FOUND, f"Resource not found: {msg}"

    # 2. Permission / Access, incl. path traversal
    if isinstance(e, PermissionError):
        return EXIT_PERMISSION, f"Permission denied: {msg}"

    # 3. Backend gave nothing to read
    if isinstance(e, StreamUnavailable):
        return EXIT_STREAM, f"Stream unavailable: {msg}"

    # 4. Bad input (ranges, config)
    if isinstance(e, ValueError):
        return EXIT_INVALID, f"Invalid argument: {msg}"

    # 5. Backend errors that still mean "missing"
    if is_not_found(e):
        return EXIT_NOT_FOUND, f"Resource not found: {msg}"

    # 6. Internal / Unexpected
    # Only log tracebacks for actual bugs/system failures
    logger.error(f"Internal error: {e}", exc_info=True)
    return EXIT_INTERNAL, f"Internal error: {msg}"
