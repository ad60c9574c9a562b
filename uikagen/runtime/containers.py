"""Array / map / set views and temporary containers for container parameters.

Containers never cross the ABI by value. A view addresses a container as
(owner, property handle); the owner is either a live object or the base pointer of
a temporary allocated with `alloc_temp` for the duration of one call.
"""

import struct
from contextlib import ExitStack, contextmanager
from typing import Generic, Iterable, Iterator, Optional, TypeVar

from . import wire
from .api import dispatch
from .errors import IndexOutOfRangeError, InternalError, ObjectDestroyedError, UikaErrorCode, check_ffi
from .handles import FNameHandle, OwnedStruct, UObjectRef, name_value, raw_handle, struct_bytes


# Largest element the host writes for one slot (strings and structs)
MAX_ELEM_BUF = 4096

_U32 = struct.Struct('<I')

K = TypeVar('K')
V = TypeVar('V')


class ElementCodec:
    """Byte layout of one container element"""

    buf_size = 8

    def encode(self, value) -> bytes:
        raise NotImplementedError

    def decode(self, data: bytes):
        raise NotImplementedError


class PrimitiveCodec(ElementCodec):
    def __init__(self, wire_type: str):
        self.wire_type = wire_type
        self.buf_size = wire.size_of(wire_type)

    def encode(self, value) -> bytes:
        return wire.pack(self.wire_type, value)

    def decode(self, data: bytes):
        return wire.unpack(self.wire_type, data)


class NameCodec(PrimitiveCodec):
    def __init__(self):
        super().__init__('name')

    def encode(self, value) -> bytes:
        return wire.pack('name', name_value(value))

    def decode(self, data: bytes) -> FNameHandle:
        return FNameHandle(wire.unpack('name', data))


class ObjectCodec(PrimitiveCodec):
    def __init__(self):
        super().__init__('handle')

    def encode(self, value) -> bytes:
        return wire.pack('handle', raw_handle(value))

    def decode(self, data: bytes) -> UObjectRef:
        return UObjectRef(wire.unpack('handle', data))


class StringCodec(ElementCodec):
    """[u32 byte length][utf-8 bytes]"""

    buf_size = MAX_ELEM_BUF

    def encode(self, value: str) -> bytes:
        data = value.encode('utf-8')
        return _U32.pack(len(data)) + data

    def decode(self, data: bytes) -> str:
        if len(data) < 4:
            return ""
        n = min(len(data) - 4, _U32.unpack_from(data)[0])
        return data[4:4 + n].decode('utf-8', errors='replace')


class StructCodec(ElementCodec):
    buf_size = MAX_ELEM_BUF

    def encode(self, value) -> bytes:
        return struct_bytes(value)

    def decode(self, data: bytes) -> OwnedStruct:
        return OwnedStruct.from_bytes(data)


class EnumCodec(PrimitiveCodec):
    def __init__(self, enum_cls, repr_type: str):
        super().__init__(repr_type)
        self.enum_cls = enum_cls

    def encode(self, value) -> bytes:
        return wire.pack(self.wire_type, int(value))

    def decode(self, data: bytes):
        raw = wire.unpack(self.wire_type, data)
        value = self.enum_cls.from_value(raw)
        return raw if value is None else value


class elements:
    """Codec constants referenced by generated code"""
    BOOL = PrimitiveCodec('bool')
    I8 = PrimitiveCodec('i8')
    U8 = PrimitiveCodec('u8')
    I16 = PrimitiveCodec('i16')
    U16 = PrimitiveCodec('u16')
    I32 = PrimitiveCodec('i32')
    U32 = PrimitiveCodec('u32')
    I64 = PrimitiveCodec('i64')
    U64 = PrimitiveCodec('u64')
    F32 = PrimitiveCodec('f32')
    F64 = PrimitiveCodec('f64')
    NAME = NameCodec()
    HANDLE = PrimitiveCodec('handle')
    OBJECT = ObjectCodec()
    STRING = StringCodec()
    STRUCT = StructCodec()

    @staticmethod
    def enum_of(enum_cls, repr_type: str) -> EnumCodec:
        return EnumCodec(enum_cls, repr_type)


def _frames(data: bytes, count: int) -> Iterator[bytes]:
    """Split a bulk-copy buffer of [u32 written][data] frames"""
    offset = 0
    for _ in range(count):
        (n,) = _U32.unpack_from(data, offset)
        offset += 4
        yield data[offset:offset + n]
        offset += n


def _frame(data: bytes) -> bytes:
    return _U32.pack(len(data)) + data


class _View:
    def __init__(self, owner, prop):
        self.owner = owner
        self.prop = prop

    def _checked_len(self, n: int) -> int:
        if n < 0:
            raise ObjectDestroyedError()
        return n


class UeArray(_View, Generic[V]):
    """Live view of an array property"""

    def __init__(self, owner, prop, codec: ElementCodec):
        super().__init__(owner, prop)
        self.codec = codec

    def __len__(self) -> int:
        return self._checked_len(dispatch().array_len(self.owner, self.prop))

    def get(self, index: int) -> V:
        code, data = dispatch().array_get(self.owner, self.prop, index, self.codec.buf_size)
        check_ffi(code)
        return self.codec.decode(data)

    def __getitem__(self, index: int) -> V:
        if index < 0:
            index += len(self)
            if index < 0:
                raise IndexOutOfRangeError()
        return self.get(index)

    def set(self, index: int, value: V):
        check_ffi(dispatch().array_set(self.owner, self.prop, index, self.codec.encode(value)))

    __setitem__ = set

    def push(self, value: V):
        check_ffi(dispatch().array_add(self.owner, self.prop, self.codec.encode(value)))

    def extend(self, values: Iterable[V]):
        for value in values:
            self.push(value)

    def remove(self, index: int):
        check_ffi(dispatch().array_remove(self.owner, self.prop, index))

    def clear(self):
        check_ffi(dispatch().array_clear(self.owner, self.prop))

    def __iter__(self) -> Iterator[V]:
        for i in range(len(self)):
            yield self.get(i)

    def to_list(self) -> list[V]:
        code, data, count = dispatch().array_copy_all(self.owner, self.prop)
        check_ffi(code)
        return [self.codec.decode(frame) for frame in _frames(data, count)]

    def set_all(self, values: Iterable[V]):
        frames = [_frame(self.codec.encode(v)) for v in values]
        check_ffi(dispatch().array_set_all(self.owner, self.prop, b"".join(frames), len(frames)))


class UeMap(_View, Generic[K, V]):
    """Live view of a map property"""

    def __init__(self, owner, prop, key_codec: ElementCodec, value_codec: ElementCodec):
        super().__init__(owner, prop)
        self.key_codec = key_codec
        self.value_codec = value_codec

    def __len__(self) -> int:
        return self._checked_len(dispatch().map_len(self.owner, self.prop))

    def find(self, key: K) -> Optional[V]:
        code, data = dispatch().map_find(self.owner, self.prop, self.key_codec.encode(key),
                                         self.value_codec.buf_size)
        if code == UikaErrorCode.OBJECT_DESTROYED:
            raise ObjectDestroyedError()
        return self.value_codec.decode(data) if code == UikaErrorCode.OK else None

    get = find

    def __contains__(self, key: K) -> bool:
        return self.find(key) is not None

    def add(self, key: K, value: V):
        check_ffi(dispatch().map_add(self.owner, self.prop, self.key_codec.encode(key),
                                     self.value_codec.encode(value)))

    def remove(self, key: K):
        check_ffi(dispatch().map_remove(self.owner, self.prop, self.key_codec.encode(key)))

    def clear(self):
        check_ffi(dispatch().map_clear(self.owner, self.prop))

    def get_pair(self, index: int) -> tuple[K, V]:
        code, key, value = dispatch().map_get_pair(self.owner, self.prop, index,
                                                   self.key_codec.buf_size, self.value_codec.buf_size)
        check_ffi(code)
        return self.key_codec.decode(key), self.value_codec.decode(value)

    def items(self) -> Iterator[tuple[K, V]]:
        for i in range(len(self)):
            yield self.get_pair(i)

    def to_list(self) -> list[tuple[K, V]]:
        code, data, count = dispatch().map_copy_all(self.owner, self.prop)
        check_ffi(code)
        frames = _frames(data, count * 2)
        return [(self.key_codec.decode(k), self.value_codec.decode(v)) for k, v in zip(frames, frames)]

    def to_dict(self) -> dict[K, V]:
        return dict(self.to_list())


class UeSet(_View, Generic[V]):
    """Live view of a set property"""

    def __init__(self, owner, prop, codec: ElementCodec):
        super().__init__(owner, prop)
        self.codec = codec

    def __len__(self) -> int:
        return self._checked_len(dispatch().set_len(self.owner, self.prop))

    def __contains__(self, value: V) -> bool:
        return dispatch().set_contains(self.owner, self.prop, self.codec.encode(value))

    contains = __contains__

    def add(self, value: V):
        check_ffi(dispatch().set_add(self.owner, self.prop, self.codec.encode(value)))

    def extend(self, values: Iterable[V]):
        for value in values:
            self.add(value)

    def remove(self, value: V):
        check_ffi(dispatch().set_remove(self.owner, self.prop, self.codec.encode(value)))

    def clear(self):
        check_ffi(dispatch().set_clear(self.owner, self.prop))

    def get_element(self, index: int) -> V:
        code, data = dispatch().set_get_element(self.owner, self.prop, index, self.codec.buf_size)
        check_ffi(code)
        return self.codec.decode(data)

    def __iter__(self) -> Iterator[V]:
        for i in range(len(self)):
            yield self.get_element(i)

    def to_list(self) -> list[V]:
        code, data, count = dispatch().set_copy_all(self.owner, self.prop)
        check_ffi(code)
        return [self.codec.decode(frame) for frame in _frames(data, count)]


@contextmanager
def temp_container(prop):
    """Host-side temporary container for one call; always freed on exit"""
    host = dispatch()
    base = host.alloc_temp(prop)
    if not base:
        raise InternalError("alloc_temp returned null")
    try:
        yield base
    finally:
        host.free_temp(prop, base)


@contextmanager
def temp_containers(*props):
    """One temporary per property handle, all freed on exit even if a later alloc fails"""
    with ExitStack() as stack:
        yield [stack.enter_context(temp_container(p)) for p in props]


def write_array(base, prop, codec: ElementCodec, values: Iterable):
    UeArray(base, prop, codec).extend(values)


def write_set(base, prop, codec: ElementCodec, values: Iterable):
    UeSet(base, prop, codec).extend(values)


def write_map(base, prop, key_codec: ElementCodec, value_codec: ElementCodec, pairs):
    """Populate a temporary map from a dict or a list of (key, value) pairs"""
    view = UeMap(base, prop, key_codec, value_codec)
    for k, v in (pairs.items() if isinstance(pairs, dict) else pairs):
        view.add(k, v)


def read_array(base, prop, codec: ElementCodec) -> list:
    return list(UeArray(base, prop, codec))


def read_set(base, prop, codec: ElementCodec) -> list:
    return list(UeSet(base, prop, codec))


def read_map(base, prop, key_codec: ElementCodec, value_codec: ElementCodec) -> list:
    return list(UeMap(base, prop, key_codec, value_codec).items())
