"""Error codes returned by host primitives and the matching exceptions"""

import enum


class UikaErrorCode(enum.IntEnum):
    OK = 0
    OBJECT_DESTROYED = 1
    INVALID_CAST = 2
    PROPERTY_NOT_FOUND = 3
    FUNCTION_NOT_FOUND = 4
    TYPE_MISMATCH = 5
    NULL_ARGUMENT = 6
    INDEX_OUT_OF_RANGE = 7
    INVALID_OPERATION = 8
    INTERNAL_ERROR = 9
    BUFFER_TOO_SMALL = 10


class UikaError(Exception):
    """Base class for recoverable runtime failures"""
    code = UikaErrorCode.INTERNAL_ERROR
    message = "internal error"

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(self.describe())

    def describe(self) -> str:
        return self.message


class _DetailError(UikaError):
    def describe(self) -> str:
        return f"{self.message}: {self.detail}"


class ObjectDestroyedError(UikaError):
    code = UikaErrorCode.OBJECT_DESTROYED
    message = "object has been destroyed"


class InvalidCastError(UikaError):
    code = UikaErrorCode.INVALID_CAST
    message = "invalid cast"


class PropertyNotFoundError(_DetailError):
    code = UikaErrorCode.PROPERTY_NOT_FOUND
    message = "property not found"


class FunctionNotFoundError(_DetailError):
    code = UikaErrorCode.FUNCTION_NOT_FOUND
    message = "function not found"


class TypeMismatchError(UikaError):
    code = UikaErrorCode.TYPE_MISMATCH
    message = "type mismatch"


class NullArgumentError(UikaError):
    code = UikaErrorCode.NULL_ARGUMENT
    message = "null argument"


class IndexOutOfRangeError(UikaError):
    code = UikaErrorCode.INDEX_OUT_OF_RANGE
    message = "index out of range"


class InvalidOperationError(_DetailError):
    code = UikaErrorCode.INVALID_OPERATION
    message = "invalid operation"


class InternalError(_DetailError):
    code = UikaErrorCode.INTERNAL_ERROR
    message = "internal error"


class BufferTooSmallError(UikaError):
    code = UikaErrorCode.BUFFER_TOO_SMALL
    message = "buffer too small"


_ERRORS = {cls.code: cls for cls in (
    ObjectDestroyedError, InvalidCastError, PropertyNotFoundError, FunctionNotFoundError,
    TypeMismatchError, NullArgumentError, IndexOutOfRangeError, InvalidOperationError,
    InternalError, BufferTooSmallError,
)}

# Codes whose error message carries the caller-supplied name
_CONTEXT_CODES = (UikaErrorCode.PROPERTY_NOT_FOUND, UikaErrorCode.FUNCTION_NOT_FOUND,
                  UikaErrorCode.INVALID_OPERATION)


def error_from_code(code: int, detail: str = "") -> UikaError:
    if code == UikaErrorCode.OK:
        return InternalError("unexpected Ok error code")
    cls = _ERRORS.get(code)
    if cls is None:
        return InternalError(f"unknown error code {code}")
    return cls(detail)


def check_ffi(code: int):
    """Raise the typed error for a non-Ok code"""
    if code != UikaErrorCode.OK:
        raise error_from_code(code)


def check_ffi_ctx(code: int, name: str):
    """Like check_ffi, naming the property/function in lookup failures"""
    if code != UikaErrorCode.OK:
        raise error_from_code(code, name if code in _CONTEXT_CODES else "")


def ffi_infallible(code: int):
    """Contract check for calls made after handle validation (stripped under -O)"""
    assert code == UikaErrorCode.OK, f"FFI call returned {_code_name(code)} after pre-validation"


def ffi_infallible_ctx(code: int, ctx: str):
    assert code == UikaErrorCode.OK, f"FFI '{ctx}' returned {_code_name(code)} after pre-validation"


def _code_name(code: int) -> str:
    try:
        return UikaErrorCode(code).name
    except ValueError:
        return str(code)
