"""
Native-call boundary.

Functions here follow the C calling conventions of the foreign callers:
outputs are written into caller allocated `ctypes` buffers whose
capacity is passed in a `ctypes.c_int`, the written (or required) size
is stored back into that integer, and failures return a non-zero status
while the diagnostic is kept in a last-error cell read with
`get_last_error`.
"""

import ctypes
from contextvars import ContextVar
from typing import Optional

from shared.config import get_settings
from shared.errors import PolicyEngineException
from shared.logging import get_logger, set_call_id
from ..access_policy import AccessPolicy
from ..errors import PolicyError

logger = get_logger("abe_policy.ffi")

# Most recent error of the current thread/task
last_error_var: ContextVar[Optional[str]] = ContextVar('last_error', default=None)


class FfiError(PolicyEngineException):
    """Errors raised at the native-call boundary."""

    @classmethod
    def null_pointer(cls, name: str) -> "FfiError":
        return cls("NULL_POINTER", f"Invalid NULL pointer passed for: {name}")

    @classmethod
    def generic(cls, message: str) -> "FfiError":
        return cls("FFI_ERROR", f"FFI error: {message}")


def set_last_error(error: PolicyEngineException) -> None:
    """Set the most recent error, clearing whatever was there before."""
    last_error_var.set(error.message)


def _take_last_error() -> str:
    message = last_error_var.get()
    last_error_var.set(None)
    return message or ""


def _write_bytes(name: str, data: bytes, buffer, buffer_len) -> int:
    if buffer is None or buffer_len is None:
        set_last_error(FfiError.null_pointer(
            f"{name} pointer should point to pre-allocated memory"
        ))
        return 1

    allocated = min(buffer_len.value, ctypes.sizeof(buffer))
    buffer_len.value = len(data)
    if allocated < len(data):
        set_last_error(FfiError.generic(
            f"The pre-allocated {name} buffer is too small; "
            f"need {len(data)} bytes, allocated {allocated}"
        ))
        return len(data)

    ctypes.memmove(buffer, data, len(data))
    return 0


def h_parse_boolean_access_policy(access_policy_buffer, access_policy_len, boolean_expression: Optional[bytes]) -> int:
    """
    Convert a boolean expression into a JSON access policy.

    - `access_policy_buffer`: output buffer
    - `access_policy_len`: size of the output buffer, set to the output size
    - `boolean_expression`: UTF-8 boolean expression

    Returns 0 on success, the required size when the output buffer is too
    small, 1 on any other error.
    """
    set_call_id()
    if boolean_expression is None:
        set_last_error(FfiError.null_pointer("boolean_expression pointer should not be null"))
        return 1

    try:
        expression = boolean_expression.decode("utf-8")
    except UnicodeDecodeError as e:
        set_last_error(FfiError.generic(f"invalid boolean expression: {e}"))
        return 1

    max_length = get_settings().max_expression_length
    if len(expression) > max_length:
        set_last_error(FfiError.generic(
            f"boolean expression is {len(expression)} characters long, the limit is {max_length}"
        ))
        return 1

    try:
        access_policy = AccessPolicy.from_boolean_expression(expression)
        data = access_policy.to_json().encode("utf-8")
    except PolicyError as e:
        logger.warning("Boolean expression rejected", code=e.code, error=e.message)
        set_last_error(e)
        return 1

    return _write_bytes("access policy", data, access_policy_buffer, access_policy_len)


def set_error(error_message: Optional[bytes]) -> int:
    """Externally set the last error."""
    if error_message is None:
        set_last_error(FfiError.null_pointer("error message"))
        return 1
    try:
        message = error_message.decode("utf-8")
    except UnicodeDecodeError as e:
        set_last_error(FfiError.generic(f"failed to set error message: {e}"))
        return 1
    set_last_error(FfiError.generic(message))
    return 0


def get_last_error(error_buffer, error_len) -> int:
    """
    Copy the most recent error into `error_buffer`, clearing it.

    The message is truncated to leave room for a final NUL byte;
    `error_len` is set to the number of message bytes written.
    """
    if error_buffer is None:
        logger.error("get_last_error: must pass a pre-allocated buffer")
        return 1
    if error_len is None:
        logger.error("get_last_error: must pass a pre-allocated len with the max buffer length")
        return 1
    if error_len.value < 1:
        logger.error("get_last_error: the buffer must be at least one byte long")
        return 1

    capacity = min(error_len.value, ctypes.sizeof(error_buffer))
    message = _take_last_error().encode("utf-8").replace(b"\0", b"")
    actual_len = min(capacity - 1, len(message))

    output = message[:actual_len].ljust(capacity, b"\0")
    ctypes.memmove(error_buffer, output, capacity)
    error_len.value = actual_len
    return 0
