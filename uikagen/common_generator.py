"""Common Generator - file headers and import blocks shared by the generated modules"""

BANNER = "# ══════════════════════════════════════════════════════════════"


def python_header(title: str) -> list[str]:
    return [
        '"""',
        f"AUTO-GENERATED {title}",
        "DO NOT EDIT - Generated from the reflection schema",
        '"""',
        "",
    ]


def cpp_header() -> list[str]:
    return ["// AUTO-GENERATED - DO NOT EDIT", ""]


def banner(title: str) -> list[str]:
    return [BANNER, f"# {title}", BANNER, ""]


def indent(lines: list[str], levels: int = 1) -> list[str]:
    pad = "    " * levels
    return [pad + line if line else line for line in lines]


# Everything generated entity modules may reference from the runtime package
RUNTIME_IMPORTS = [
    "from ctypes import (",
    "    CFUNCTYPE, POINTER, byref, create_string_buffer,",
    "    c_bool, c_double, c_float, c_int8, c_int16, c_int32, c_int64,",
    "    c_uint8, c_uint16, c_uint32, c_uint64, c_void_p,",
    ")",
    "from typing import TYPE_CHECKING, Callable, Optional",
    "",
    "from uikagen.runtime.api import dispatch",
    "from uikagen.runtime.cache import FuncSlot, handle_cache, once_cell",
    "from uikagen.runtime.containers import (",
    "    UeArray, UeMap, UeSet, elements, read_array, read_map, read_set,",
    "    temp_containers, write_array, write_map, write_set,",
    ")",
    "from uikagen.runtime.delegates import DelegateBinding, bind_multicast, bind_unicast, read_param",
    "from uikagen.runtime.errors import (",
    "    IndexOutOfRangeError, InvalidOperationError, check_ffi_ctx, ffi_infallible_ctx,",
    ")",
    "from uikagen.runtime.guest import guest_env, is_guest",
    "from uikagen.runtime.handles import (",
    "    FNameHandle, OwnedStruct, UClassBinding, UObjectHandle, UObjectRef, UStructBinding,",
    "    name_value, raw_handle, struct_bytes, update_struct,",
    ")",
    "from uikagen.runtime.lookup import (",
    "    find_class_property, find_struct_property, function_param_offsets, function_param_props,",
    ")",
    "from uikagen.runtime.wire import pack, to_wasm, unpack, wrap_int",
]
