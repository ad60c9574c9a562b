"""Host API table: ctypes mirror of the C layout plus the Python-level primitive dispatch.

Generated code never touches the ctypes sub-tables directly. Property, container,
reflection and delegate access goes through `dispatch()`, which returns the installed
`HostPrimitives` implementation (`NativePrimitives` over a real table, or any object
with the same methods). Direct function calls go through `api().func_table`.
"""

import ctypes
import logging
from ctypes import CFUNCTYPE, POINTER, c_bool, c_char_p, c_double, c_float, c_int32, c_int64, \
    c_uint8, c_uint32, c_uint64, c_void_p
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from .errors import InternalError, UikaErrorCode

logger = logging.getLogger(__name__)

API_VERSION = 1

Handle = Optional[int]

_code = c_uint32
_name_args = (c_char_p, c_uint32)


def _getter(ctype):
    return CFUNCTYPE(_code, c_void_p, c_void_p, POINTER(ctype))


def _setter(ctype):
    return CFUNCTYPE(_code, c_void_p, c_void_p, ctype)


class UikaCoreApi(ctypes.Structure):
    _fields_ = [
        ('is_valid', CFUNCTYPE(c_bool, c_void_p)),
        ('get_name', CFUNCTYPE(_code, c_void_p, c_void_p, c_uint32, POINTER(c_uint32))),
        ('get_class', CFUNCTYPE(c_void_p, c_void_p)),
        ('is_a', CFUNCTYPE(c_bool, c_void_p, c_void_p)),
        ('get_outer', CFUNCTYPE(c_void_p, c_void_p)),
        ('make_fname', CFUNCTYPE(c_uint64, *_name_args)),
        ('fname_to_string', CFUNCTYPE(_code, c_uint64, c_void_p, c_uint32, POINTER(c_uint32))),
        ('make_weak', CFUNCTYPE(c_uint64, c_void_p)),
        ('resolve_weak', CFUNCTYPE(c_void_p, c_uint64)),
        ('is_weak_valid', CFUNCTYPE(c_bool, c_uint64)),
    ]


class UikaPropertyApi(ctypes.Structure):
    _fields_ = [
        ('get_bool', _getter(c_bool)), ('set_bool', _setter(c_bool)),
        ('get_i32', _getter(c_int32)), ('set_i32', _setter(c_int32)),
        ('get_i64', _getter(c_int64)), ('set_i64', _setter(c_int64)),
        ('get_u8', _getter(c_uint8)), ('set_u8', _setter(c_uint8)),
        ('get_f32', _getter(c_float)), ('set_f32', _setter(c_float)),
        ('get_f64', _getter(c_double)), ('set_f64', _setter(c_double)),
        ('get_string', CFUNCTYPE(_code, c_void_p, c_void_p, c_void_p, c_uint32, POINTER(c_uint32))),
        ('set_string', CFUNCTYPE(_code, c_void_p, c_void_p, c_void_p, c_uint32)),
        ('get_fname', _getter(c_uint64)), ('set_fname', _setter(c_uint64)),
        ('get_object', _getter(c_void_p)), ('set_object', _setter(c_void_p)),
        ('get_enum', _getter(c_int64)), ('set_enum', _setter(c_int64)),
        ('get_struct', CFUNCTYPE(_code, c_void_p, c_void_p, c_void_p, c_uint32)),
        ('set_struct', CFUNCTYPE(_code, c_void_p, c_void_p, c_void_p, c_uint32)),
        ('get_property_at', CFUNCTYPE(_code, c_void_p, c_void_p, c_uint32, c_void_p, c_uint32)),
        ('set_property_at', CFUNCTYPE(_code, c_void_p, c_void_p, c_uint32, c_void_p, c_uint32)),
    ]


class UikaReflectionApi(ctypes.Structure):
    _fields_ = [
        ('find_class', CFUNCTYPE(c_void_p, *_name_args)),
        ('find_property', CFUNCTYPE(c_void_p, c_void_p, *_name_args)),
        ('get_static_class', CFUNCTYPE(c_void_p, *_name_args)),
        ('get_property_size', CFUNCTYPE(c_uint32, c_void_p)),
        ('find_struct', CFUNCTYPE(c_void_p, *_name_args)),
        ('find_struct_property', CFUNCTYPE(c_void_p, c_void_p, *_name_args)),
        ('find_function', CFUNCTYPE(c_void_p, c_void_p, *_name_args)),
        ('alloc_params', CFUNCTYPE(c_void_p, c_void_p)),
        ('free_params', CFUNCTYPE(None, c_void_p, c_void_p)),
        ('call_function', CFUNCTYPE(_code, c_void_p, c_void_p, c_void_p)),
        ('get_function_param', CFUNCTYPE(c_void_p, c_void_p, *_name_args)),
        ('get_property_offset', CFUNCTYPE(c_uint32, c_void_p)),
        ('find_function_by_class', CFUNCTYPE(c_void_p, c_void_p, *_name_args)),
        ('get_element_size', CFUNCTYPE(c_uint32, c_void_p)),
        ('get_struct_size', CFUNCTYPE(c_uint32, c_void_p)),
        ('initialize_struct', CFUNCTYPE(_code, c_void_p, c_void_p)),
        ('destroy_struct', CFUNCTYPE(_code, c_void_p, c_void_p)),
    ]


_len_fn = CFUNCTYPE(c_int32, c_void_p, c_void_p)
_clear_fn = CFUNCTYPE(_code, c_void_p, c_void_p)
_elem_fn = CFUNCTYPE(_code, c_void_p, c_void_p, c_void_p, c_uint32)
_indexed_read_fn = CFUNCTYPE(_code, c_void_p, c_void_p, c_int32, c_void_p, c_uint32, POINTER(c_uint32))
_copy_all_fn = CFUNCTYPE(_code, c_void_p, c_void_p, c_void_p, c_uint32, POINTER(c_uint32), POINTER(c_int32))


class UikaContainerApi(ctypes.Structure):
    _fields_ = [
        ('array_len', _len_fn),
        ('array_get', _indexed_read_fn),
        ('array_set', CFUNCTYPE(_code, c_void_p, c_void_p, c_int32, c_void_p, c_uint32)),
        ('array_add', _elem_fn),
        ('array_remove', CFUNCTYPE(_code, c_void_p, c_void_p, c_int32)),
        ('array_clear', _clear_fn),
        ('array_element_size', CFUNCTYPE(c_uint32, c_void_p)),
        ('map_len', _len_fn),
        ('map_find', CFUNCTYPE(_code, c_void_p, c_void_p, c_void_p, c_uint32,
                               c_void_p, c_uint32, POINTER(c_uint32))),
        ('map_add', CFUNCTYPE(_code, c_void_p, c_void_p, c_void_p, c_uint32, c_void_p, c_uint32)),
        ('map_remove', _elem_fn),
        ('map_clear', _clear_fn),
        ('map_get_pair', CFUNCTYPE(_code, c_void_p, c_void_p, c_int32,
                                   c_void_p, c_uint32, POINTER(c_uint32),
                                   c_void_p, c_uint32, POINTER(c_uint32))),
        ('set_len', _len_fn),
        ('set_contains', CFUNCTYPE(c_bool, c_void_p, c_void_p, c_void_p, c_uint32)),
        ('set_add', _elem_fn),
        ('set_remove', _elem_fn),
        ('set_clear', _clear_fn),
        ('set_get_element', _indexed_read_fn),
        ('alloc_temp', CFUNCTYPE(c_void_p, c_void_p)),
        ('free_temp', CFUNCTYPE(None, c_void_p, c_void_p)),
        ('array_copy_all', _copy_all_fn),
        ('array_set_all', CFUNCTYPE(_code, c_void_p, c_void_p, c_void_p, c_uint32, c_int32)),
        ('map_copy_all', _copy_all_fn),
        ('set_copy_all', _copy_all_fn),
    ]


class UikaDelegateApi(ctypes.Structure):
    _fields_ = [
        ('bind_delegate', CFUNCTYPE(_code, c_void_p, c_void_p, c_uint64)),
        ('unbind_delegate', CFUNCTYPE(_code, c_void_p, c_void_p)),
        ('add_multicast', CFUNCTYPE(_code, c_void_p, c_void_p, c_uint64)),
        ('remove_multicast', CFUNCTYPE(_code, c_void_p, c_void_p, c_uint64)),
        ('broadcast_multicast', CFUNCTYPE(_code, c_void_p, c_void_p, c_void_p)),
    ]


class UikaApiTable(ctypes.Structure):
    _fields_ = [
        ('version', c_uint32),
        ('core', POINTER(UikaCoreApi)),
        ('property', POINTER(UikaPropertyApi)),
        ('reflection', POINTER(UikaReflectionApi)),
        ('memory', c_void_p),
        ('container', POINTER(UikaContainerApi)),
        ('delegate', POINTER(UikaDelegateApi)),
        ('lifecycle', c_void_p),
        ('reify', c_void_p),
        ('world', c_void_p),
        ('logging', c_void_p),
        ('func_table', POINTER(c_void_p)),
        ('func_count', c_uint32),
    ]


DelegateCallbackFn = CFUNCTYPE(None, c_uint64, c_void_p)


class UikaCallbacks(ctypes.Structure):
    """Table handed to the host so it can call back into Python"""
    _fields_ = [('invoke_delegate_callback', DelegateCallbackFn)]


class HostPrimitives(Protocol):
    """Python-level view of the primitive sub-tables.

    Getters return `(code, value)`, setters return the code. Strings, structs and
    container elements cross as `bytes`; handles as ints (None for null).
    """

    def is_valid(self, obj: Handle) -> bool: ...
    def get_name(self, obj: Handle) -> str: ...
    def make_fname(self, name: str) -> int: ...
    def fname_to_string(self, name: int) -> str: ...
    def make_weak(self, obj: Handle) -> int: ...
    def resolve_weak(self, weak: int) -> Handle: ...
    def is_weak_valid(self, weak: int) -> bool: ...

    def find_class(self, name: str) -> Handle: ...
    def get_static_class(self, name: str) -> Handle: ...
    def find_property(self, cls: Handle, name: str) -> Handle: ...
    def find_struct(self, name: str) -> Handle: ...
    def find_struct_property(self, ustruct: Handle, name: str) -> Handle: ...
    def find_function(self, obj: Handle, name: str) -> Handle: ...
    def find_function_by_class(self, cls: Handle, name: str) -> Handle: ...
    def get_function_param(self, func: Handle, name: str) -> Handle: ...
    def get_property_offset(self, prop: Handle) -> int: ...
    def get_property_size(self, prop: Handle) -> int: ...
    def get_element_size(self, prop: Handle) -> int: ...
    def get_struct_size(self, ustruct: Handle) -> int: ...
    def alloc_params(self, func: Handle) -> Handle: ...
    def free_params(self, func: Handle, params: Handle) -> None: ...
    def call_function(self, obj: Handle, func: Handle, params: Handle) -> int: ...

    def get_bool(self, obj: Handle, prop: Handle) -> tuple[int, bool]: ...
    def set_bool(self, obj: Handle, prop: Handle, value: bool) -> int: ...
    def get_u8(self, obj: Handle, prop: Handle) -> tuple[int, int]: ...
    def set_u8(self, obj: Handle, prop: Handle, value: int) -> int: ...
    def get_i32(self, obj: Handle, prop: Handle) -> tuple[int, int]: ...
    def set_i32(self, obj: Handle, prop: Handle, value: int) -> int: ...
    def get_i64(self, obj: Handle, prop: Handle) -> tuple[int, int]: ...
    def set_i64(self, obj: Handle, prop: Handle, value: int) -> int: ...
    def get_f32(self, obj: Handle, prop: Handle) -> tuple[int, float]: ...
    def set_f32(self, obj: Handle, prop: Handle, value: float) -> int: ...
    def get_f64(self, obj: Handle, prop: Handle) -> tuple[int, float]: ...
    def set_f64(self, obj: Handle, prop: Handle, value: float) -> int: ...
    def get_string(self, obj: Handle, prop: Handle, buf_len: int) -> tuple[int, bytes]: ...
    def set_string(self, obj: Handle, prop: Handle, data: bytes) -> int: ...
    def get_fname(self, obj: Handle, prop: Handle) -> tuple[int, int]: ...
    def set_fname(self, obj: Handle, prop: Handle, value: int) -> int: ...
    def get_object(self, obj: Handle, prop: Handle) -> tuple[int, Handle]: ...
    def set_object(self, obj: Handle, prop: Handle, value: Handle) -> int: ...
    def get_enum(self, obj: Handle, prop: Handle) -> tuple[int, int]: ...
    def set_enum(self, obj: Handle, prop: Handle, value: int) -> int: ...
    def get_struct(self, obj: Handle, prop: Handle, size: int) -> tuple[int, bytes]: ...
    def set_struct(self, obj: Handle, prop: Handle, data: bytes) -> int: ...
    def get_property_at(self, obj: Handle, prop: Handle, index: int, size: int) -> tuple[int, bytes]: ...
    def set_property_at(self, obj: Handle, prop: Handle, index: int, data: bytes) -> int: ...

    def array_len(self, obj: Handle, prop: Handle) -> int: ...
    def array_get(self, obj: Handle, prop: Handle, index: int, buf_size: int) -> tuple[int, bytes]: ...
    def array_set(self, obj: Handle, prop: Handle, index: int, data: bytes) -> int: ...
    def array_add(self, obj: Handle, prop: Handle, data: bytes) -> int: ...
    def array_remove(self, obj: Handle, prop: Handle, index: int) -> int: ...
    def array_clear(self, obj: Handle, prop: Handle) -> int: ...
    def array_copy_all(self, obj: Handle, prop: Handle) -> tuple[int, bytes, int]: ...
    def array_set_all(self, obj: Handle, prop: Handle, data: bytes, count: int) -> int: ...
    def map_len(self, obj: Handle, prop: Handle) -> int: ...
    def map_find(self, obj: Handle, prop: Handle, key: bytes, buf_size: int) -> tuple[int, bytes]: ...
    def map_add(self, obj: Handle, prop: Handle, key: bytes, value: bytes) -> int: ...
    def map_remove(self, obj: Handle, prop: Handle, key: bytes) -> int: ...
    def map_clear(self, obj: Handle, prop: Handle) -> int: ...
    def map_get_pair(self, obj: Handle, prop: Handle, index: int,
                     key_size: int, value_size: int) -> tuple[int, bytes, bytes]: ...
    def map_copy_all(self, obj: Handle, prop: Handle) -> tuple[int, bytes, int]: ...
    def set_len(self, obj: Handle, prop: Handle) -> int: ...
    def set_contains(self, obj: Handle, prop: Handle, elem: bytes) -> bool: ...
    def set_add(self, obj: Handle, prop: Handle, elem: bytes) -> int: ...
    def set_remove(self, obj: Handle, prop: Handle, elem: bytes) -> int: ...
    def set_clear(self, obj: Handle, prop: Handle) -> int: ...
    def set_get_element(self, obj: Handle, prop: Handle, index: int, buf_size: int) -> tuple[int, bytes]: ...
    def set_copy_all(self, obj: Handle, prop: Handle) -> tuple[int, bytes, int]: ...
    def alloc_temp(self, prop: Handle) -> Handle: ...
    def free_temp(self, prop: Handle, base: Handle) -> None: ...

    def bind_delegate(self, obj: Handle, prop: Handle, callback_id: int) -> int: ...
    def unbind_delegate(self, obj: Handle, prop: Handle) -> int: ...
    def add_multicast(self, obj: Handle, prop: Handle, callback_id: int) -> int: ...
    def remove_multicast(self, obj: Handle, prop: Handle, callback_id: int) -> int: ...
    def broadcast_multicast(self, obj: Handle, prop: Handle, params: Optional[bytes]) -> int: ...


def _utf8(name: str) -> tuple[bytes, int]:
    data = name.encode('utf-8')
    return data, len(data)


class NativePrimitives:
    """HostPrimitives over a native UikaApiTable"""

    COPY_ALL_INITIAL = 4096

    def __init__(self, table: UikaApiTable):
        self.table = table
        self.core = table.core.contents
        self.prop = table.property.contents
        self.refl = table.reflection.contents
        self.cont = table.container.contents
        self.dlg = table.delegate.contents

    @staticmethod
    def _get(fn, ctype, obj, prop):
        out = ctype()
        code = fn(obj, prop, ctypes.byref(out))
        return code, out.value

    def get_bool(self, obj, prop):
        return self._get(self.prop.get_bool, c_bool, obj, prop)

    def set_bool(self, obj, prop, value):
        return self.prop.set_bool(obj, prop, value)

    def get_u8(self, obj, prop):
        return self._get(self.prop.get_u8, c_uint8, obj, prop)

    def set_u8(self, obj, prop, value):
        return self.prop.set_u8(obj, prop, value)

    def get_i32(self, obj, prop):
        return self._get(self.prop.get_i32, c_int32, obj, prop)

    def set_i32(self, obj, prop, value):
        return self.prop.set_i32(obj, prop, value)

    def get_i64(self, obj, prop):
        return self._get(self.prop.get_i64, c_int64, obj, prop)

    def set_i64(self, obj, prop, value):
        return self.prop.set_i64(obj, prop, value)

    def get_f32(self, obj, prop):
        return self._get(self.prop.get_f32, c_float, obj, prop)

    def set_f32(self, obj, prop, value):
        return self.prop.set_f32(obj, prop, value)

    def get_f64(self, obj, prop):
        return self._get(self.prop.get_f64, c_double, obj, prop)

    def set_f64(self, obj, prop, value):
        return self.prop.set_f64(obj, prop, value)

    def get_fname(self, obj, prop):
        return self._get(self.prop.get_fname, c_uint64, obj, prop)

    def set_fname(self, obj, prop, value):
        return self.prop.set_fname(obj, prop, value)

    def get_object(self, obj, prop):
        return self._get(self.prop.get_object, c_void_p, obj, prop)

    def set_object(self, obj, prop, value):
        return self.prop.set_object(obj, prop, value)

    def get_enum(self, obj, prop):
        return self._get(self.prop.get_enum, c_int64, obj, prop)

    def set_enum(self, obj, prop, value):
        return self.prop.set_enum(obj, prop, value)

    # core

    def is_valid(self, obj):
        return bool(obj) and bool(self.core.is_valid(obj))

    def get_name(self, obj):
        return self._read_string(lambda buf, n, out: self.core.get_name(obj, buf, n, out))

    def make_fname(self, name):
        return self.core.make_fname(*_utf8(name))

    def fname_to_string(self, name):
        return self._read_string(lambda buf, n, out: self.core.fname_to_string(name, buf, n, out))

    @staticmethod
    def _read_string(call, buf_len=256):
        buf = ctypes.create_string_buffer(buf_len)
        out_len = c_uint32()
        if call(buf, buf_len, ctypes.byref(out_len)) != UikaErrorCode.OK:
            return ""
        return buf.raw[:out_len.value].decode('utf-8', errors='replace')

    def make_weak(self, obj):
        return self.core.make_weak(obj)

    def resolve_weak(self, weak):
        return self.core.resolve_weak(weak)

    def is_weak_valid(self, weak):
        return bool(self.core.is_weak_valid(weak))

    # reflection

    def find_class(self, name):
        return self.refl.find_class(*_utf8(name))

    def get_static_class(self, name):
        return self.refl.get_static_class(*_utf8(name))

    def find_property(self, cls, name):
        return self.refl.find_property(cls, *_utf8(name))

    def find_struct(self, name):
        return self.refl.find_struct(*_utf8(name))

    def find_struct_property(self, ustruct, name):
        return self.refl.find_struct_property(ustruct, *_utf8(name))

    def find_function(self, obj, name):
        return self.refl.find_function(obj, *_utf8(name))

    def find_function_by_class(self, cls, name):
        return self.refl.find_function_by_class(cls, *_utf8(name))

    def get_function_param(self, func, name):
        return self.refl.get_function_param(func, *_utf8(name))

    def get_property_offset(self, prop):
        return self.refl.get_property_offset(prop)

    def get_property_size(self, prop):
        return self.refl.get_property_size(prop)

    def get_element_size(self, prop):
        return self.refl.get_element_size(prop)

    def get_struct_size(self, ustruct):
        return self.refl.get_struct_size(ustruct)

    def alloc_params(self, func):
        return self.refl.alloc_params(func)

    def free_params(self, func, params):
        self.refl.free_params(func, params)

    def call_function(self, obj, func, params):
        return self.refl.call_function(obj, func, params)

    # property

    def get_string(self, obj, prop, buf_len):
        buf = ctypes.create_string_buffer(buf_len)
        out_len = c_uint32()
        code = self.prop.get_string(obj, prop, buf, buf_len, ctypes.byref(out_len))
        return code, buf.raw[:out_len.value]

    def set_string(self, obj, prop, data):
        return self.prop.set_string(obj, prop, data, len(data))

    def get_struct(self, obj, prop, size):
        buf = ctypes.create_string_buffer(size)
        code = self.prop.get_struct(obj, prop, buf, size)
        return code, buf.raw

    def set_struct(self, obj, prop, data):
        return self.prop.set_struct(obj, prop, data, len(data))

    def get_property_at(self, obj, prop, index, size):
        buf = ctypes.create_string_buffer(size)
        code = self.prop.get_property_at(obj, prop, index, buf, size)
        return code, buf.raw

    def set_property_at(self, obj, prop, index, data):
        return self.prop.set_property_at(obj, prop, index, data, len(data))

    # containers

    def array_len(self, obj, prop):
        return self.cont.array_len(obj, prop)

    def _read_indexed(self, fn, obj, prop, index, buf_size):
        buf = ctypes.create_string_buffer(buf_size)
        written = c_uint32()
        code = fn(obj, prop, index, buf, buf_size, ctypes.byref(written))
        return code, buf.raw[:written.value]

    def array_get(self, obj, prop, index, buf_size):
        return self._read_indexed(self.cont.array_get, obj, prop, index, buf_size)

    def array_set(self, obj, prop, index, data):
        return self.cont.array_set(obj, prop, index, data, len(data))

    def array_add(self, obj, prop, data):
        return self.cont.array_add(obj, prop, data, len(data))

    def array_remove(self, obj, prop, index):
        return self.cont.array_remove(obj, prop, index)

    def array_clear(self, obj, prop):
        return self.cont.array_clear(obj, prop)

    def _copy_all(self, fn, obj, prop):
        size = self.COPY_ALL_INITIAL
        for _ in range(2):
            buf = ctypes.create_string_buffer(size)
            written, count = c_uint32(), c_int32()
            code = fn(obj, prop, buf, size, ctypes.byref(written), ctypes.byref(count))
            if code != UikaErrorCode.BUFFER_TOO_SMALL:
                return code, buf.raw[:written.value], count.value
            size = written.value
        return code, b"", 0

    def array_copy_all(self, obj, prop):
        return self._copy_all(self.cont.array_copy_all, obj, prop)

    def array_set_all(self, obj, prop, data, count):
        return self.cont.array_set_all(obj, prop, data, len(data), count)

    def map_len(self, obj, prop):
        return self.cont.map_len(obj, prop)

    def map_find(self, obj, prop, key, buf_size):
        buf = ctypes.create_string_buffer(buf_size)
        written = c_uint32()
        code = self.cont.map_find(obj, prop, key, len(key), buf, buf_size, ctypes.byref(written))
        return code, buf.raw[:written.value]

    def map_add(self, obj, prop, key, value):
        return self.cont.map_add(obj, prop, key, len(key), value, len(value))

    def map_remove(self, obj, prop, key):
        return self.cont.map_remove(obj, prop, key, len(key))

    def map_clear(self, obj, prop):
        return self.cont.map_clear(obj, prop)

    def map_get_pair(self, obj, prop, index, key_size, value_size):
        kbuf, vbuf = ctypes.create_string_buffer(key_size), ctypes.create_string_buffer(value_size)
        kw, vw = c_uint32(), c_uint32()
        code = self.cont.map_get_pair(obj, prop, index, kbuf, key_size, ctypes.byref(kw),
                                      vbuf, value_size, ctypes.byref(vw))
        return code, kbuf.raw[:kw.value], vbuf.raw[:vw.value]

    def map_copy_all(self, obj, prop):
        return self._copy_all(self.cont.map_copy_all, obj, prop)

    def set_len(self, obj, prop):
        return self.cont.set_len(obj, prop)

    def set_contains(self, obj, prop, elem):
        return bool(self.cont.set_contains(obj, prop, elem, len(elem)))

    def set_add(self, obj, prop, elem):
        return self.cont.set_add(obj, prop, elem, len(elem))

    def set_remove(self, obj, prop, elem):
        return self.cont.set_remove(obj, prop, elem, len(elem))

    def set_clear(self, obj, prop):
        return self.cont.set_clear(obj, prop)

    def set_get_element(self, obj, prop, index, buf_size):
        return self._read_indexed(self.cont.set_get_element, obj, prop, index, buf_size)

    def set_copy_all(self, obj, prop):
        return self._copy_all(self.cont.set_copy_all, obj, prop)

    def alloc_temp(self, prop):
        return self.cont.alloc_temp(prop)

    def free_temp(self, prop, base):
        self.cont.free_temp(prop, base)

    # delegates

    def bind_delegate(self, obj, prop, callback_id):
        return self.dlg.bind_delegate(obj, prop, callback_id)

    def unbind_delegate(self, obj, prop):
        return self.dlg.unbind_delegate(obj, prop)

    def add_multicast(self, obj, prop, callback_id):
        return self.dlg.add_multicast(obj, prop, callback_id)

    def remove_multicast(self, obj, prop, callback_id):
        return self.dlg.remove_multicast(obj, prop, callback_id)

    def broadcast_multicast(self, obj, prop, params):
        buf = ctypes.create_string_buffer(params, len(params)) if params else None
        return self.dlg.broadcast_multicast(obj, prop, buf)


@dataclass
class ApiTable:
    """Installed primitives plus the flat function table"""
    primitives: HostPrimitives
    func_table: Sequence[int]
    version: int = API_VERSION


_api: Optional[ApiTable] = None


def init_api(primitives: HostPrimitives, func_table: Sequence[int], version: int = API_VERSION) -> ApiTable:
    global _api
    if version != API_VERSION:
        raise InternalError(f"API version mismatch: host {version}, runtime {API_VERSION}")
    _api = ApiTable(primitives, list(func_table), version)
    logger.info("API initialized: %d functions", len(_api.func_table))
    return _api


def init_api_from_table(address: int) -> ApiTable:
    """Install a native UikaApiTable received from the host as a raw pointer"""
    table = UikaApiTable.from_address(address)
    func_table = [table.func_table[i] for i in range(table.func_count)]
    return init_api(NativePrimitives(table), func_table, table.version)


def api() -> ApiTable:
    if _api is None:
        raise InternalError("API not initialized")
    return _api


def is_api_initialized() -> bool:
    return _api is not None


def dispatch() -> HostPrimitives:
    return api().primitives


def shutdown_api():
    """Drop the table and every cached lookup derived from it"""
    global _api
    from . import cache, delegates, handles
    delegates.clear_all()
    cache.reset_all()
    handles.reset_static_handles()
    _api = None


def read_memory(address: int, size: int) -> bytes:
    return ctypes.string_at(address, size)
