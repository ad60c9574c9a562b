"""Schema builders and fake host collaborators shared by the tests"""

import ctypes
import json
import struct

from uikagen.config import CodegenConfig, ModuleMapping
from uikagen.parser import CLASSES_FILE, ENUMS_FILE, STRUCTS_FILE
from uikagen.runtime import delegates
from uikagen.runtime.errors import UikaErrorCode
from uikagen.types import (
    CPF_NATIVE_ACCESS_PRIVATE, CPF_OUT_PARM, CPF_REFERENCE_PARM, CPF_RETURN_PARM, FUNC_NATIVE, FUNC_STATIC,
    ClassInfo, DelegateSignature, EnumInfo, FunctionInfo, PropertyInfo, ReflectionSchema, StructInfo,
)

OK = UikaErrorCode.OK


# ── Schema ────────────────────────────────────────────────────────────────

def prop(name, prop_type, **kw) -> PropertyInfo:
    return PropertyInfo(name=name, prop_type=prop_type, **kw)


def ret(prop_type, **kw) -> PropertyInfo:
    return prop("ReturnValue", prop_type, prop_flags=CPF_OUT_PARM | CPF_RETURN_PARM, **kw)


def out(name, prop_type, **kw) -> PropertyInfo:
    return prop(name, prop_type, prop_flags=CPF_OUT_PARM, **kw)


def inout(name, prop_type, **kw) -> PropertyInfo:
    return prop(name, prop_type, prop_flags=CPF_OUT_PARM | CPF_REFERENCE_PARM, **kw)


def int_array(name, **kw) -> PropertyInfo:
    return prop(name, "ArrayProperty", inner_prop=prop(name, "IntProperty"), **kw)


def func(name, *params, static=False, native=True) -> FunctionInfo:
    flags = (FUNC_NATIVE if native else 0) | (FUNC_STATIC if static else 0)
    return FunctionInfo(name=name, func_flags=flags, params=list(params))


def uclass(name, package="Engine", super_class=None, props=(), funcs=()) -> ClassInfo:
    return ClassInfo(name=name, cpp_name=f"U{name}", package=package, header=f"{name}.h",
                     super_class=super_class, props=list(props), funcs=list(funcs))


def config(features=("core",), strict=False, **blocklist) -> CodegenConfig:
    cfg = CodegenConfig(features=list(features), strict=strict)
    cfg.modules = {
        "Engine": ModuleMapping("engine", "core"),
        "Game": ModuleMapping("game", "game"),
    }
    for key, values in blocklist.items():
        setattr(cfg.blocklist, key, list(values))
    return cfg


WIDE_PARAMS = 15


def sample_schema() -> ReflectionSchema:
    """Engine module with an Actor exercising every parameter shape, plus a gated Game module"""
    color = EnumInfo("EColor", "EColor", "Engine", "uint8",
                     pairs=[("EColor::Red", 0), ("EColor::Green", 1), ("EColor::Blue", 2),
                            ("EColor::EColor_MAX", 3)])
    signed = EnumInfo("ESigned", "ESigned", "Engine", "uint8",
                      pairs=[("ESigned::None", 0), ("ESigned::Invalid", -2), ("ESigned::All", 255)])
    vector = StructInfo("Vector", "FVector", "Engine", has_static_struct=True,
                        props=[prop("X", "DoubleProperty"), prop("Y", "DoubleProperty"),
                               prop("Z", "DoubleProperty")])
    hit_signature = DelegateSignature("OnHitSignature__DelegateSignature", [
        prop("Damage", "FloatProperty"),
        prop("Instigator", "ObjectProperty", class_name="Actor"),
    ])

    obj = uclass("Object")
    actor = uclass("Actor", super_class="Object", props=[
        prop("bHidden", "BoolProperty"),
        prop("Health", "FloatProperty"),
        prop("Label", "StrProperty"),
        prop("Color", "ByteProperty", enum_name="EColor", enum_underlying_type="uint8"),
        prop("Scores", "IntProperty", array_dim=4),
        prop("Tags", "ArrayProperty", inner_prop=prop("Tags", "NameProperty")),
        prop("Owner", "ObjectProperty", class_name="Actor"),
        prop("Secret", "IntProperty", prop_flags=CPF_NATIVE_ACCESS_PRIVATE),
        prop("OnHit", "MulticastInlineDelegateProperty", func_info=hit_signature),
    ], funcs=[
        func("Add", prop("A", "IntProperty"), prop("B", "IntProperty"), ret("IntProperty")),
        func("Scale", prop("Value", "FloatProperty"), prop("Factor", "FloatProperty", default="2"),
             ret("FloatProperty")),
        func("GetActorLocation", ret("StructProperty", struct_name="Vector")),
        func("K2_GetActorLocation", ret("StructProperty", struct_name="Vector")),
        func("Describe", prop("Prefix", "StrProperty"), out("OutCount", "IntProperty"), ret("StrProperty")),
        func("CurrentColor", ret("ByteProperty", enum_name="EColor", enum_underlying_type="uint8")),
        func("SetSigned", prop("Value", "EnumProperty", enum_name="ESigned", enum_underlying_type="uint8")),
        func("Sum", int_array("Values"), ret("IntProperty")),
        func("Range", prop("Count", "IntProperty"), out("Values", "ArrayProperty",
                                                        inner_prop=prop("Values", "IntProperty"))),
        func("Overload", prop("A", "IntProperty")),
        func("Overload", prop("A", "IntProperty"), prop("B", "IntProperty")),
        func("GetDefaultHealth", ret("FloatProperty"), static=True),
        func("Wide", *[prop(f"P{i}", "IntProperty") for i in range(WIDE_PARAMS)]),
        func("SetLabel", prop("NewLabel", "StrProperty")),
        func("GetColor", ret("IntProperty")),
        func("SetGameMode", prop("Mode", "ObjectProperty", class_name="GameMode")),
        func("ScriptOnly", native=False),
    ])
    game_mode = uclass("GameMode", package="Game", super_class="Object",
                       funcs=[func("StartPlay")])
    return ReflectionSchema(classes=[obj, actor, game_mode], structs=[vector], enums=[color, signed])


def weights_map(name="Weights") -> PropertyInfo:
    return prop(name, "MapProperty", key_prop=prop(f"{name}_Key", "StrProperty"),
                value_prop=prop(name, "IntProperty"))


def tally_class() -> ClassInfo:
    """Engine class with in-out strings and set / map parameters"""
    return uclass("Tally", super_class="Object", funcs=[
        func("Echo", inout("Text", "StrProperty")),
        func("Count", prop("Ids", "SetProperty", element_prop=prop("Ids", "IntProperty")), weights_map(),
             ret("IntProperty")),
        func("Keys", weights_map(), out("Names", "SetProperty", element_prop=prop("Names", "StrProperty"))),
    ])


_OPTIONAL_KEYS = ("enum_name", "enum_underlying_type", "class_name", "meta_class_name", "struct_name",
                  "interface_name", "getter", "setter", "default")
_NESTED_KEYS = ("inner_prop", "key_prop", "value_prop", "element_prop")


def _prop_doc(p: PropertyInfo) -> dict:
    doc = {"name": p.name, "type": p.prop_type, "prop_flags": p.prop_flags, "array_dim": p.array_dim}
    doc.update({k: getattr(p, k) for k in _OPTIONAL_KEYS if getattr(p, k) is not None})
    doc.update({k: _prop_doc(getattr(p, k)) for k in _NESTED_KEYS if getattr(p, k) is not None})
    if p.func_info is not None:
        doc["func_info"] = {"name": p.func_info.name, "params": [_prop_doc(x) for x in p.func_info.params or []]}
    return doc


def dump_schema(schema: ReflectionSchema, directory):
    """Write the schema as the three exporter documents"""
    classes = [{
        "name": c.name, "cpp_name": c.cpp_name, "package": c.package, "header": c.header,
        "class_flags": c.class_flags, "super": c.super_class, "interfaces": c.interfaces,
        "props": [_prop_doc(p) for p in c.props],
        "funcs": [{"name": f.name, "func_flags": f.func_flags, "is_static": f.is_static,
                   "params": [_prop_doc(p) for p in f.params]} for f in c.funcs],
    } for c in schema.classes]
    structs = [{
        "name": s.name, "cpp_name": s.cpp_name, "package": s.package, "header": s.header,
        "has_static_struct": s.has_static_struct, "props": [_prop_doc(p) for p in s.props],
    } for s in schema.structs]
    enums = [{
        "name": e.name, "cpp_name": e.cpp_name, "package": e.package, "underlying_type": e.underlying_type,
        "pairs": [list(pair) for pair in e.pairs],
    } for e in schema.enums]
    directory.mkdir(parents=True, exist_ok=True)
    for name, key, items in ((CLASSES_FILE, "classes", classes), (STRUCTS_FILE, "structs", structs),
                             (ENUMS_FILE, "enums", enums)):
        (directory / name).write_text(json.dumps({key: items}, indent=2), encoding="utf-8")


# ── Host primitives ───────────────────────────────────────────────────────

class FakeHost:
    """In-memory HostPrimitives: property values, temporary containers and delegate bindings"""

    def __init__(self):
        self._next = 0x1000
        self.live: set[int] = set()
        self.handles: dict[tuple, int] = {}
        self.names: dict[int, str] = {}
        self.values: dict[tuple, object] = {}
        self.containers: dict[tuple, list] = {}
        self.offsets: dict[str, int] = {}
        self.missing: set[str] = set()
        self.bindings: dict[tuple, list[int]] = {}
        self.fnames: list[str] = ["None"]
        self.alloc_count = 0
        self.free_count = 0
        self.weak: dict[int, int] = {}
        self.functions: dict[str, object] = {}
        self.param_blocks: dict[int, ctypes.Array] = {}
        self.freed_params = 0

    def _new(self) -> int:
        self._next += 0x10
        return self._next

    def _handle(self, *key) -> int:
        if key not in self.handles:
            self.handles[key] = self._new()
            self.names[self.handles[key]] = key[-1]
        return self.handles[key]

    def spawn(self) -> int:
        handle = self._new()
        self.live.add(handle)
        return handle

    def destroy(self, handle: int):
        self.live.discard(handle)

    # core / reflection

    def is_valid(self, obj):
        return obj in self.live

    def get_name(self, obj):
        return f"Object_{obj:x}"

    def make_fname(self, name):
        if name not in self.fnames:
            self.fnames.append(name)
        return self.fnames.index(name)

    def fname_to_string(self, name):
        return self.fnames[name] if name < len(self.fnames) else ""

    def make_weak(self, obj):
        self.weak[len(self.weak) + 1] = obj
        return len(self.weak)

    def resolve_weak(self, weak):
        obj = self.weak.get(weak)
        return obj if obj in self.live else None

    def is_weak_valid(self, weak):
        return self.resolve_weak(weak) is not None

    def get_static_class(self, name):
        return self._handle("class", name)

    find_class = get_static_class

    def find_struct(self, name):
        return self._handle("struct", name)

    def find_property(self, cls, name):
        return None if name in self.missing else self._handle("prop", cls, name)

    find_struct_property = find_property

    def find_function_by_class(self, cls, name):
        return None if name in self.missing else self._handle("func", cls, name)

    find_function = find_function_by_class

    def get_function_param(self, fn, name):
        return None if name in self.missing else self._handle("param", fn, name)

    def get_property_offset(self, prop):
        return self.offsets.get(self.names[prop], 0)

    def get_property_size(self, prop):
        return 24

    def get_element_size(self, prop):
        return 4

    def get_struct_size(self, ustruct):
        return 24

    # reflection calls: `functions` maps a function name to fn(obj, params_address) -> code

    def alloc_params(self, func):
        block = ctypes.create_string_buffer(64)
        self.param_blocks[ctypes.addressof(block)] = block
        return ctypes.addressof(block)

    def free_params(self, func, params):
        self.freed_params += 1
        del self.param_blocks[params]

    def call_function(self, obj, func, params):
        return self.functions[self.names[func]](obj, params)

    # scalar properties

    def _get(self, obj, prop, default):
        return OK, self.values.get((obj, prop), default)

    def _set(self, obj, prop, value):
        self.values[(obj, prop)] = value
        return OK

    def get_bool(self, obj, prop):
        return self._get(obj, prop, False)

    def get_u8(self, obj, prop):
        return self._get(obj, prop, 0)

    def get_i32(self, obj, prop):
        return self._get(obj, prop, 0)

    def get_i64(self, obj, prop):
        return self._get(obj, prop, 0)

    def get_f32(self, obj, prop):
        return self._get(obj, prop, 0.0)

    def get_f64(self, obj, prop):
        return self._get(obj, prop, 0.0)

    def get_fname(self, obj, prop):
        return self._get(obj, prop, 0)

    def get_object(self, obj, prop):
        return self._get(obj, prop, None)

    def get_enum(self, obj, prop):
        return self._get(obj, prop, 0)

    def get_string(self, obj, prop, buf_len):
        code, value = self._get(obj, prop, b"")
        return code, value[:buf_len]

    def get_struct(self, obj, prop, size):
        return self._get(obj, prop, bytes(size))

    set_bool = set_u8 = set_i32 = set_i64 = set_f32 = set_f64 = _set
    set_fname = set_object = set_enum = set_string = set_struct = _set

    def get_property_at(self, obj, prop, index, size):
        return OK, self.values.get((obj, prop, index), bytes(size))

    def set_property_at(self, obj, prop, index, data):
        self.values[(obj, prop, index)] = data
        return OK

    # containers

    def _items(self, obj, prop) -> list:
        return self.containers.setdefault((obj, prop), [])

    def alloc_temp(self, prop):
        self.alloc_count += 1
        base = self._new()
        self.containers[(base, prop)] = []
        return base

    def free_temp(self, prop, base):
        self.free_count += 1
        self.containers.pop((base, prop), None)

    def array_len(self, obj, prop):
        return len(self._items(obj, prop))

    def array_get(self, obj, prop, index, buf_size):
        items = self._items(obj, prop)
        if not 0 <= index < len(items):
            return UikaErrorCode.INDEX_OUT_OF_RANGE, b""
        return OK, items[index][:buf_size]

    def array_set(self, obj, prop, index, data):
        items = self._items(obj, prop)
        if not 0 <= index < len(items):
            return UikaErrorCode.INDEX_OUT_OF_RANGE
        items[index] = data
        return OK

    def array_add(self, obj, prop, data):
        self._items(obj, prop).append(data)
        return OK

    def array_remove(self, obj, prop, index):
        items = self._items(obj, prop)
        if not 0 <= index < len(items):
            return UikaErrorCode.INDEX_OUT_OF_RANGE
        del items[index]
        return OK

    def array_clear(self, obj, prop):
        self._items(obj, prop).clear()
        return OK

    def array_copy_all(self, obj, prop):
        items = self._items(obj, prop)
        return OK, b"".join(struct.pack("<I", len(d)) + d for d in items), len(items)

    def array_set_all(self, obj, prop, data, count):
        items, offset = [], 0
        for _ in range(count):
            (n,) = struct.unpack_from("<I", data, offset)
            items.append(data[offset + 4:offset + 4 + n])
            offset += 4 + n
        self.containers[(obj, prop)] = items
        return OK

    set_len = array_len
    set_get_element = array_get
    set_clear = array_clear
    set_copy_all = array_copy_all

    def set_add(self, obj, prop, elem):
        items = self._items(obj, prop)
        if elem not in items:
            items.append(elem)
        return OK

    def set_contains(self, obj, prop, elem):
        return elem in self._items(obj, prop)

    def set_remove(self, obj, prop, elem):
        items = self._items(obj, prop)
        if elem in items:
            items.remove(elem)
        return OK

    def map_len(self, obj, prop):
        return len(self._items(obj, prop))

    def map_find(self, obj, prop, key, buf_size):
        for k, v in self._items(obj, prop):
            if k == key:
                return OK, v[:buf_size]
        return UikaErrorCode.PROPERTY_NOT_FOUND, b""

    def map_add(self, obj, prop, key, value):
        items = self._items(obj, prop)
        items[:] = [(k, v) for k, v in items if k != key] + [(key, value)]
        return OK

    def map_remove(self, obj, prop, key):
        items = self._items(obj, prop)
        items[:] = [(k, v) for k, v in items if k != key]
        return OK

    map_clear = array_clear

    def map_get_pair(self, obj, prop, index, key_size, value_size):
        items = self._items(obj, prop)
        if not 0 <= index < len(items):
            return UikaErrorCode.INDEX_OUT_OF_RANGE, b"", b""
        k, v = items[index]
        return OK, k[:key_size], v[:value_size]

    def map_copy_all(self, obj, prop):
        items = self._items(obj, prop)
        frames = b"".join(struct.pack("<I", len(k)) + k + struct.pack("<I", len(v)) + v for k, v in items)
        return OK, frames, len(items)

    # delegates

    def bind_delegate(self, obj, prop, callback_id):
        self.bindings[(obj, prop)] = [callback_id]
        return OK

    def unbind_delegate(self, obj, prop):
        self.bindings.pop((obj, prop), None)
        return OK

    def add_multicast(self, obj, prop, callback_id):
        self.bindings.setdefault((obj, prop), []).append(callback_id)
        return OK

    def remove_multicast(self, obj, prop, callback_id):
        ids = self.bindings.get((obj, prop), [])
        if callback_id in ids:
            ids.remove(callback_id)
        return OK

    def broadcast_multicast(self, obj, prop, params):
        buf = ctypes.create_string_buffer(params or b"\0", max(len(params or b""), 1))
        for callback_id in list(self.bindings.get((obj, prop), [])):
            delegates.invoke(callback_id, ctypes.addressof(buf))
        return OK


# ── Function table ────────────────────────────────────────────────────────

class NativeTable:
    """Flat function table whose entries are ctypes callbacks into Python"""

    def __init__(self, size: int):
        self.addresses = [0] * size
        self._callbacks = []

    def define(self, func_id: int, prototype, fn):
        callback = prototype(fn)
        self._callbacks.append(callback)
        self.addresses[func_id] = ctypes.cast(callback, ctypes.c_void_p).value

    def bind(self, module, func_id: int, fn):
        """Install `fn` with the prototype the generated module declared for `func_id`"""
        self.define(func_id, getattr(module, f"_FN_{func_id}").prototype, fn)


def read_c(address, size) -> bytes:
    return ctypes.string_at(address, size) if size else b""


def write_c(address, data: bytes):
    ctypes.memmove(address, data, len(data))
