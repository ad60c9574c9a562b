"""Wire-width helpers shared by the native and sandbox paths"""

import ctypes
import struct

# Little-endian layouts of every wire tag that fits a fixed-size slot
FORMATS = {
    'bool': '<?', 'i8': '<b', 'u8': '<B', 'i16': '<h', 'u16': '<H',
    'i32': '<i', 'u32': '<I', 'i64': '<q', 'u64': '<Q',
    'f32': '<f', 'f64': '<d', 'handle': '<Q', 'name': '<Q',
}

CTYPES = {
    'bool': ctypes.c_bool,
    'i8': ctypes.c_int8, 'u8': ctypes.c_uint8,
    'i16': ctypes.c_int16, 'u16': ctypes.c_uint16,
    'i32': ctypes.c_int32, 'u32': ctypes.c_uint32,
    'i64': ctypes.c_int64, 'u64': ctypes.c_uint64,
    'f32': ctypes.c_float, 'f64': ctypes.c_double,
    'handle': ctypes.c_void_p, 'name': ctypes.c_uint64,
}

# Sandbox value type carrying each wire tag
WASM_TYPES = {
    'bool': 'i32', 'i8': 'i32', 'u8': 'i32', 'i16': 'i32', 'u16': 'i32',
    'i32': 'i32', 'u32': 'i32', 'i64': 'i64', 'u64': 'i64',
    'f32': 'f32', 'f64': 'f64', 'handle': 'i64', 'name': 'i64',
}

_INT_BITS = {
    'i8': (8, True), 'u8': (8, False), 'i16': (16, True), 'u16': (16, False),
    'i32': (32, True), 'u32': (32, False), 'i64': (64, True), 'u64': (64, False),
}


def size_of(wire: str) -> int:
    return struct.calcsize(FORMATS[wire])


def wrap_int(value: int, wire: str) -> int:
    """Reinterpret an integer in the given width (255 as i8 -> -1, -1 as u16 -> 65535)"""
    bits, signed = _INT_BITS[wire]
    value &= (1 << bits) - 1
    if signed and value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def pack(wire: str, value) -> bytes:
    if wire in ('handle', 'name'):
        value = value or 0
    elif wire in _INT_BITS:
        value = wrap_int(int(value), wire)
    return struct.pack(FORMATS[wire], value)


def unpack(wire: str, data, offset: int = 0):
    value = struct.unpack_from(FORMATS[wire], data, offset)[0]
    if wire == 'handle':
        return value or None
    return value


def to_wasm(wire: str, value):
    """Host-native value -> sandbox slot value"""
    if wire == 'bool':
        return 1 if value else 0
    if wire in ('handle', 'name'):
        return wrap_int(value or 0, 'i64')
    if wire in _INT_BITS:
        return wrap_int(int(value), 'i64' if WASM_TYPES[wire] == 'i64' else 'i32')
    return value


def from_wasm(wire: str, value):
    """Sandbox slot value -> host-native value"""
    if wire == 'bool':
        return value != 0
    if wire == 'handle':
        return wrap_int(value, 'u64') or None
    if wire == 'name':
        return wrap_int(value, 'u64')
    if wire in _INT_BITS:
        return wrap_int(value, wire)
    return value
