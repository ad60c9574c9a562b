"""Object, name and struct handles used by generated bindings"""

import ctypes
from dataclasses import dataclass
from typing import ClassVar, Generic, Optional, TypeVar, Union

from .api import dispatch
from .cache import HandleCache
from .errors import InvalidCastError, ObjectDestroyedError, PropertyNotFoundError

T = TypeVar('T')

# Untyped object reference: the raw host pointer, None when null
UObjectHandle = Optional[int]


class UObjectRef(Generic[T]):
    """Typed reference to a host object; does not keep it alive"""

    __slots__ = ('raw',)

    def __init__(self, raw: UObjectHandle):
        self.raw = raw or None

    @classmethod
    def from_raw(cls, raw: UObjectHandle) -> "UObjectRef":
        return cls(raw)

    @classmethod
    def null(cls) -> "UObjectRef":
        return cls(None)

    @property
    def is_null(self) -> bool:
        return self.raw is None

    def is_valid(self) -> bool:
        return self.raw is not None and dispatch().is_valid(self.raw)

    def checked(self) -> "UObjectRef[T]":
        if not self.is_valid():
            raise ObjectDestroyedError()
        return self

    def bind(self, binding: type["UClassBinding"]) -> "UClassBinding":
        """Validate the reference and wrap it in a generated class binding"""
        return binding.checked(self)

    def __eq__(self, other):
        return isinstance(other, UObjectRef) and other.raw == self.raw

    def __hash__(self):
        return hash(self.raw)

    def __repr__(self):
        return f"UObjectRef({self.raw:#x})" if self.raw else "UObjectRef(null)"


def raw_handle(value) -> UObjectHandle:
    """Raw pointer of anything that can stand for an object argument"""
    if value is None:
        return None
    if isinstance(value, UObjectRef):
        return value.raw
    if isinstance(value, UClassBinding):
        return value.handle
    return int(value) or None


class WeakObjectRef(Generic[T]):
    """Weak reference through the host's weak-object table; detects collection reliably"""

    __slots__ = ('handle',)

    def __init__(self, handle: int = 0):
        self.handle = handle

    @classmethod
    def from_ref(cls, ref) -> "WeakObjectRef":
        raw = raw_handle(ref)
        return cls(dispatch().make_weak(raw) if raw else 0)

    def get(self) -> Optional[UObjectRef]:
        """Strong reference to the target, None once it has been collected"""
        if not self.handle:
            return None
        raw = dispatch().resolve_weak(self.handle)
        return UObjectRef(raw) if raw else None

    def is_valid(self) -> bool:
        return bool(self.handle) and dispatch().is_weak_valid(self.handle)

    def __eq__(self, other):
        return isinstance(other, WeakObjectRef) and other.handle == self.handle

    def __hash__(self):
        return hash(self.handle)

    def __repr__(self):
        return f"WeakObjectRef({self.handle:#x})"


@dataclass(frozen=True)
class FNameHandle:
    """Host name-table index"""
    value: int = 0

    NONE: ClassVar["FNameHandle"]

    @classmethod
    def from_str(cls, name: str) -> "FNameHandle":
        return cls(dispatch().make_fname(name))

    def to_str(self) -> str:
        return dispatch().fname_to_string(self.value)

    def __int__(self):
        return self.value


FNameHandle.NONE = FNameHandle(0)


def name_value(value: Union[FNameHandle, int, None]) -> int:
    if value is None:
        return 0
    return value.value if isinstance(value, FNameHandle) else int(value)


class OwnedStruct(Generic[T]):
    """Struct value copied out of the host, kept as raw bytes"""

    __slots__ = ('data', '_view')

    def __init__(self, data: Union[bytes, bytearray] = b""):
        self.data = bytearray(data)
        self._view = None

    @classmethod
    def from_bytes(cls, data: Union[bytes, bytearray]) -> "OwnedStruct":
        return cls(data)

    def as_bytes(self) -> bytes:
        return bytes(self.data)

    def as_ptr(self) -> int:
        """Address of the backing storage (stable for the object's lifetime)"""
        if self._view is None:
            self._view = (ctypes.c_char * max(len(self.data), 1)).from_buffer(self.data) \
                if self.data else ctypes.create_string_buffer(1)
        return ctypes.addressof(self._view)

    def __len__(self):
        return len(self.data)

    def __eq__(self, other):
        return isinstance(other, OwnedStruct) and other.data == self.data

    def __repr__(self):
        return f"OwnedStruct({len(self.data)} bytes)"


def struct_bytes(value) -> bytes:
    """Bytes of a struct argument (OwnedStruct, struct binding or raw bytes)"""
    if isinstance(value, OwnedStruct):
        return value.as_bytes()
    if isinstance(value, UStructBinding):
        return value.value.as_bytes()
    return bytes(value)


_static_classes = HandleCache()
_static_structs = HandleCache()


class UClassBinding:
    """Base of generated class bindings: a validated object handle"""

    CLASS_NAME: ClassVar[str] = "Object"

    __slots__ = ('handle',)

    def __init__(self, handle: UObjectHandle):
        self.handle = handle

    @classmethod
    def static_class(cls):
        return _static_classes.get_or_init(
            cls.CLASS_NAME, lambda: dispatch().get_static_class(cls.CLASS_NAME))

    @classmethod
    def checked(cls, ref: Union[UObjectRef, UObjectHandle]):
        raw = raw_handle(ref)
        if raw is None or not dispatch().is_valid(raw):
            raise ObjectDestroyedError()
        return cls(raw)

    def as_ref(self) -> UObjectRef:
        return UObjectRef(self.handle)

    def cast(self, binding: type["UClassBinding"]) -> "UClassBinding":
        if not isinstance(self, binding):
            raise InvalidCastError()
        return binding(self.handle)

    def __eq__(self, other):
        return isinstance(other, UClassBinding) and other.handle == self.handle

    def __hash__(self):
        return hash(self.handle)

    def __repr__(self):
        return f"{type(self).__name__}({self.handle:#x})" if self.handle else f"{type(self).__name__}(null)"


class UStructBinding:
    """Base of generated struct bindings: accessors over an OwnedStruct"""

    STRUCT_NAME: ClassVar[str] = ""

    __slots__ = ('value',)

    def __init__(self, value: Union[OwnedStruct, bytes, bytearray]):
        self.value = value if isinstance(value, OwnedStruct) else OwnedStruct(value)

    @classmethod
    def _find_static_struct(cls):
        def lookup():
            handle = dispatch().find_struct(cls.STRUCT_NAME)
            if not handle:
                raise PropertyNotFoundError(f"struct {cls.STRUCT_NAME}")
            return handle
        return _static_structs.get_or_init(cls.STRUCT_NAME, lookup)

    def as_ptr(self) -> int:
        return self.value.as_ptr()


def update_struct(target, data: bytes):
    """Copy host-written bytes back into a mutable struct argument in place"""
    if isinstance(target, UStructBinding):
        target = target.value
    if isinstance(target, OwnedStruct):
        target = target.data
    if not isinstance(target, bytearray):
        raise TypeError(f"cannot write struct back into {type(target).__name__}")
    n = min(len(target), len(data))
    target[:n] = data[:n]


def reset_static_handles():
    _static_classes.clear()
    _static_structs.clear()
