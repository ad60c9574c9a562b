"""Call plan: one function's parameters laid out for every ABI.

The native, guest and host backends all emit code from the same plan, so the three
sides agree on argument order, buffer sizes and the sandbox arity ceiling.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .context import CodegenContext, FuncEntry
from .defaults import parse_default_literal
from .naming import py_name
from .runtime.sandbox import MAX_IMPORT_PARAMS
from .runtime.wire import WASM_TYPES, size_of
from .type_mapper import CONTAINER_KINDS, ConversionKind, ElementType, MappedType, ParamDirection, TypeMapper
from .types import ParamInfo

logger = logging.getLogger(__name__)

STRUCT_BUF_SIZE = 256
STRING_BUF_SIZE = 512

CTYPE_NAMES = {
    'bool': 'c_bool', 'i8': 'c_int8', 'u8': 'c_uint8', 'i16': 'c_int16', 'u16': 'c_uint16',
    'i32': 'c_int32', 'u32': 'c_uint32', 'i64': 'c_int64', 'u64': 'c_uint64',
    'f32': 'c_float', 'f64': 'c_double', 'handle': 'c_void_p', 'name': 'c_uint64',
}

# Slot, local and helper names the generated bodies use themselves
_TAKEN = {
    "obj", "caller", "func_ids", "dispatch", "elements", "pack", "unpack", "to_wasm", "from_wasm",
    "wrap_int", "byref", "raw_handle", "name_value", "struct_bytes", "update_struct", "guest_env",
    "is_guest", "read_array", "read_set", "read_map", "write_array", "write_set", "write_map",
    "temp_containers", "function_param_props", "create_string_buffer",
}

_VIEWS = {
    'ArrayProperty': ('write_array', 'read_array'),
    'SetProperty': ('write_set', 'read_set'),
    'MapProperty': ('write_map', 'read_map'),
}


@dataclass
class ParamPlan:
    """One parameter with its direction, mapping and (for containers) element codecs"""
    param: ParamInfo
    name: str
    direction: ParamDirection
    mapped: MappedType
    parts: Optional[list[ElementType]] = None
    default: Optional[str] = None
    struct_cpp: str = ""
    owned_struct: bool = False
    container_index: int = -1

    @property
    def kind(self) -> ConversionKind:
        return self.mapped.kind

    @property
    def wire(self) -> str:
        return self.mapped.wire_type

    @property
    def is_container(self) -> bool:
        return self.kind in CONTAINER_KINDS

    @property
    def is_input(self) -> bool:
        return self.direction in (ParamDirection.IN, ParamDirection.IN_OUT)

    @property
    def is_output(self) -> bool:
        return self.direction in (ParamDirection.OUT, ParamDirection.RETURN)

    @property
    def returned(self) -> bool:
        """Part of the composite result; in-out structs are written back in place instead"""
        if self.direction == ParamDirection.IN_OUT:
            return self.kind != ConversionKind.STRUCT_OPAQUE
        return self.is_output

    @property
    def ctype(self) -> str:
        return CTYPE_NAMES[self.wire]

    @property
    def is_string(self) -> bool:
        return self.kind == ConversionKind.STRING_UTF8

    @property
    def is_struct(self) -> bool:
        return self.kind == ConversionKind.STRUCT_OPAQUE

    @property
    def codecs(self) -> str:
        return ", ".join(p.codec for p in self.parts or [])


class CallPlan:
    """Parameter layout of one function-table entry"""

    def __init__(self, entry: FuncEntry, ctx: CodegenContext):
        self.entry = entry
        self.ctx = ctx
        self.func = entry.func
        self.is_static = entry.func.static_call
        self.params: list[ParamPlan] = []
        containers = 0
        for param in self.func.params:
            p = self._plan_param(param)
            if p.is_container:
                p.container_index = containers
                containers += 1
            self.params.append(p)
        self._assign_defaults()

    def _plan_param(self, param: ParamInfo) -> ParamPlan:
        name = py_name(param.name)
        if name in _TAKEN:
            name += "_"
        mapped = TypeMapper.map(param)
        p = ParamPlan(param, name, TypeMapper.direction(param), mapped)
        if p.is_container:
            p.parts = TypeMapper.container_parts(param, self.ctx)
        if p.is_struct:
            si = self.ctx.structs.get(param.struct_name)
            p.owned_struct = si is not None and si.has_static_struct
            p.struct_cpp = si.cpp_name if si else f"F{param.struct_name}"
        return p

    def _assign_defaults(self):
        # Only a trailing run of defaultable inputs can be optional positionally
        for p in reversed(self.inputs):
            if p.direction != ParamDirection.IN or p.is_container:
                break
            literal = parse_default_literal(p.param, p.mapped, self.ctx)
            if literal is None:
                break
            p.default = literal

    # ── Groupings ─────────────────────────────────────────────────────────

    @property
    def label(self) -> str:
        return f"{self.entry.class_name}.{self.entry.func_name}"

    @property
    def inputs(self) -> list[ParamPlan]:
        return [p for p in self.params if p.is_input]

    @property
    def outputs(self) -> list[ParamPlan]:
        """Return value first, then outputs in declaration order"""
        ret = [p for p in self.params if p.direction == ParamDirection.RETURN]
        rest = [p for p in self.params if p.returned and p.direction != ParamDirection.RETURN]
        return ret + rest

    @property
    def containers(self) -> list[ParamPlan]:
        return [p for p in self.params if p.is_container]

    @property
    def supported(self) -> bool:
        return all(p.mapped.supported and (not p.is_container or p.parts) for p in self.params)

    # ── Python signature ──────────────────────────────────────────────────

    def input_annotation(self, p: ParamPlan) -> str:
        if p.is_container:
            return TypeMapper.container_value_display(p.param, self.ctx)
        if p.is_struct:
            if p.direction == ParamDirection.IN_OUT:
                return f"OwnedStruct[{p.struct_cpp}]" if p.owned_struct else "bytearray"
            return f"OwnedStruct[{p.struct_cpp}]" if p.owned_struct else "bytes"
        return p.mapped.display_type

    def output_annotation(self, p: ParamPlan) -> str:
        if p.is_container:
            return TypeMapper.container_value_display(p.param, self.ctx)
        if p.is_struct:
            return f"OwnedStruct[{p.struct_cpp}]" if p.owned_struct else "bytes"
        return p.mapped.display_type

    def signature(self) -> str:
        args = [] if self.is_static else ["self"]
        for p in self.inputs:
            if p.default is not None:
                args.append(f"{p.name}: {self.input_annotation(p)} | None = None")
            else:
                args.append(f"{p.name}: {self.input_annotation(p)}")
        return ", ".join(args)

    def return_annotation(self) -> str:
        types = [self.output_annotation(p) for p in self.outputs]
        if not types:
            return "None"
        if len(types) == 1:
            return types[0]
        return f"tuple[{', '.join(types)}]"

    def default_lines(self) -> list[str]:
        lines = []
        for p in self.inputs:
            if p.default is not None and p.default != "None":
                lines.append(f"if {p.name} is None:")
                lines.append(f"    {p.name} = {p.default}")
        return lines

    @staticmethod
    def return_statement(parts: list[str]) -> list[str]:
        if not parts:
            return []
        if len(parts) == 1:
            return [f"return {parts[0]}"]
        return [f"return ({', '.join(parts)})"]

    def convert_out(self, p: ParamPlan, raw: str) -> str:
        """Wire value -> Python value for a scalar output"""
        kind = p.kind
        if kind == ConversionKind.OBJECT_REF:
            return f"UObjectRef({raw})"
        if kind == ConversionKind.ENUM_CAST:
            return f"{p.mapped.display_type}.from_value({raw})"
        if kind == ConversionKind.FNAME:
            return f"FNameHandle({raw})"
        if kind == ConversionKind.INT_CAST:
            return f'wrap_int({raw}, "{TypeMapper.declared_int_type(p.mapped)}")'
        return raw

    def convert_bytes_out(self, p: ParamPlan, data: str) -> str:
        if p.is_string:
            return f'{data}.decode("utf-8", errors="replace")'
        if p.owned_struct:
            return f"OwnedStruct.from_bytes({data})"
        return data

    def scalar_in(self, p: ParamPlan) -> str:
        """Python argument -> value of the declared wire width"""
        if p.wire == 'handle':
            return f"raw_handle({p.name})"
        if p.kind == ConversionKind.FNAME:
            return f"name_value({p.name})"
        if p.kind in (ConversionKind.ENUM_CAST, ConversionKind.INT_CAST):
            return f'wrap_int(int({p.name}), "{p.wire}")'
        return p.name

    # ── Containers ────────────────────────────────────────────────────────

    def container_lookup(self, binding: str, cell: str) -> str:
        names = ", ".join(repr(p.param.name) for p in self.containers)
        return (f"_props = {cell}.get_or_init(lambda: function_param_props("
                f"{binding}, {self.func.lookup_name!r}, ({names},)))")

    def container_populate(self) -> list[str]:
        lines = []
        for p in self.containers:
            if p.is_input:
                writer = _VIEWS[p.param.prop_type][0]
                i = p.container_index
                lines.append(f"{writer}(_bases[{i}], _props[{i}], {p.codecs}, {p.name})")
        return lines

    def container_read(self, p: ParamPlan) -> str:
        reader = _VIEWS[p.param.prop_type][1]
        i = p.container_index
        return f"{reader}(_bases[{i}], _props[{i}], {p.codecs})"

    # ── Native ABI ────────────────────────────────────────────────────────

    def native_argtypes(self) -> list[str]:
        types = [] if self.is_static else ["c_void_p"]
        for p in self.params:
            types.extend(self._param_argtypes(p))
        return types

    @staticmethod
    def _param_argtypes(p: ParamPlan) -> list[str]:
        if p.is_container:
            return ["c_void_p", "c_void_p"]
        if p.is_input:
            if p.is_string:
                types = ["c_void_p", "c_uint32"]
                if p.direction == ParamDirection.IN_OUT:
                    types += ["c_void_p", "c_uint32", "POINTER(c_uint32)"]
                return types
            if p.is_struct:
                return ["c_void_p"]
            return [p.ctype]
        if p.is_string:
            return ["c_void_p", "c_uint32", "POINTER(c_uint32)"]
        if p.is_struct:
            return ["c_void_p"]
        return [f"POINTER({p.ctype})"]

    def native_prototype(self) -> str:
        return f"CFUNCTYPE({', '.join(['c_uint32'] + self.native_argtypes())})"

    def native_prep(self) -> list[str]:
        lines = []
        for p in self.params:
            if p.is_container:
                continue
            n = p.name
            if p.is_input and p.is_string:
                lines.append(f'{n}_data = {n}.encode("utf-8")')
            if p.direction == ParamDirection.IN_OUT and p.is_struct:
                lines.append(f"{n}_data = struct_bytes({n})")
                lines.append(f"{n}_buf = create_string_buffer({n}_data, len({n}_data))")
            elif p.direction == ParamDirection.IN:
                continue
            elif p.is_string:
                lines.append(f"{n}_buf = create_string_buffer({STRING_BUF_SIZE})")
                lines.append(f"{n}_len = c_uint32()")
            elif p.is_output and p.is_struct:
                lines.append(f"{n}_buf = create_string_buffer({STRUCT_BUF_SIZE})")
            elif p.is_output:
                lines.append(f"{n}_out = {p.ctype}()")
        return lines

    def native_args(self) -> list[str]:
        args = [] if self.is_static else ["self.handle"]
        for p in self.params:
            n = p.name
            if p.is_container:
                i = p.container_index
                args += [f"_bases[{i}]", f"_props[{i}]"]
            elif p.is_input:
                if p.is_string:
                    args += [f"{n}_data", f"len({n}_data)"]
                    if p.direction == ParamDirection.IN_OUT:
                        args += [f"{n}_buf", str(STRING_BUF_SIZE), f"byref({n}_len)"]
                elif p.is_struct:
                    args.append(f"{n}_buf" if p.direction == ParamDirection.IN_OUT else f"struct_bytes({n})")
                else:
                    args.append(self.scalar_in(p))
            elif p.is_string:
                args += [f"{n}_buf", str(STRING_BUF_SIZE), f"byref({n}_len)"]
            elif p.is_struct:
                args.append(f"{n}_buf")
            else:
                args.append(f"byref({n}_out)")
        return args

    def native_writeback(self) -> list[str]:
        return [f"update_struct({p.name}, {p.name}_buf.raw)" for p in self.params
                if p.direction == ParamDirection.IN_OUT and p.is_struct]

    def native_results(self) -> list[str]:
        parts = []
        for p in self.outputs:
            n = p.name
            if p.is_container:
                parts.append(self.container_read(p))
            elif p.is_string:
                parts.append(self.convert_bytes_out(p, f"{n}_buf.raw[:{n}_len.value]"))
            elif p.direction == ParamDirection.IN_OUT:
                parts.append(n)
            elif p.is_struct:
                parts.append(self.convert_bytes_out(p, f"{n}_buf.raw"))
            else:
                parts.append(self.convert_out(p, f"{n}_out.value"))
        return parts

    # ── Sandbox ABI ───────────────────────────────────────────────────────

    def wasm_slots(self) -> list[tuple[str, str]]:
        """Flattened (name, value type) import parameters"""
        slots = [] if self.is_static else [("obj", "i64")]
        for p in self.params:
            slots.extend(self._param_slots(p))
        return slots

    @staticmethod
    def _param_slots(p: ParamPlan) -> list[tuple[str, str]]:
        n = p.name
        if p.is_container:
            return [(f"{n}_base", "i64"), (f"{n}_prop", "i64")]
        buf_out = [(f"{n}_buf", "i32"), (f"{n}_buf_len", "i32"), (f"{n}_out_len", "i32")]
        ptr_len = [(f"{n}_ptr", "i32"), (f"{n}_len", "i32")]
        if p.is_input:
            if p.is_string:
                return ptr_len + (buf_out if p.direction == ParamDirection.IN_OUT else [])
            if p.is_struct:
                return ptr_len
            return [(n, WASM_TYPES[p.wire])]
        if p.is_string:
            return buf_out
        if p.is_struct:
            return ptr_len
        return [(f"{n}_out", "i32")]

    @property
    def sandbox_ok(self) -> bool:
        """Within the host's import arity ceiling (the caller takes one more slot)"""
        return len(self.wasm_slots()) <= MAX_IMPORT_PARAMS

    def import_name(self) -> str:
        return f"uika_fn_{self.entry.func_id}"

    def guest_prep(self) -> list[str]:
        lines = []
        for p in self.params:
            if p.is_container:
                continue
            n = p.name
            if p.is_input and p.is_string:
                lines.append(f'{n}_ptr, {n}_len = _s.put({n}.encode("utf-8"))')
            elif p.is_input and p.is_struct:
                lines.append(f"{n}_ptr, {n}_len = _s.put(struct_bytes({n}))")
            if p.direction == ParamDirection.IN:
                continue
            if p.is_string:
                lines.append(f"{n}_buf = _s.alloc({STRING_BUF_SIZE})")
                lines.append(f"{n}_out_len = _s.alloc(4)")
            elif p.is_output and p.is_struct:
                lines.append(f"{n}_ptr = _s.alloc({STRUCT_BUF_SIZE})")
            elif p.is_output:
                lines.append(f"{n}_out = _s.alloc({size_of(p.wire)})")
        return lines

    def guest_args(self) -> list[str]:
        args = [] if self.is_static else ['to_wasm("handle", self.handle)']
        for p in self.params:
            n = p.name
            if p.is_container:
                i = p.container_index
                args += [f'to_wasm("handle", _bases[{i}])', f'to_wasm("handle", _props[{i}])']
            elif p.is_input:
                if p.is_string or p.is_struct:
                    args += [f"{n}_ptr", f"{n}_len"]
                    if p.is_string and p.direction == ParamDirection.IN_OUT:
                        args += [f"{n}_buf", str(STRING_BUF_SIZE), f"{n}_out_len"]
                else:
                    args.append(f'to_wasm("{p.wire}", {self.scalar_in(p)})')
            elif p.is_string:
                args += [f"{n}_buf", str(STRING_BUF_SIZE), f"{n}_out_len"]
            elif p.is_struct:
                args += [f"{n}_ptr", str(STRUCT_BUF_SIZE)]
            else:
                args.append(f"{n}_out")
        return args

    def guest_writeback(self) -> list[str]:
        return [f"update_struct({p.name}, _s.read({p.name}_ptr, {p.name}_len))" for p in self.params
                if p.direction == ParamDirection.IN_OUT and p.is_struct]

    def guest_results(self) -> list[str]:
        parts = []
        for p in self.outputs:
            n = p.name
            if p.is_container:
                parts.append(self.container_read(p))
            elif p.is_string:
                data = f'_s.read({n}_buf, min(_s.read_value({n}_out_len, "u32"), {STRING_BUF_SIZE}))'
                parts.append(self.convert_bytes_out(p, data))
            elif p.direction == ParamDirection.IN_OUT:
                parts.append(n)
            elif p.is_struct:
                parts.append(self.convert_bytes_out(p, f"_s.read({n}_ptr, {STRUCT_BUF_SIZE})"))
            else:
                parts.append(self.convert_out(p, f'_s.read_value({n}_out, "{p.wire}")'))
        return parts

    def host_prep(self) -> list[str]:
        lines = []
        for p in self.params:
            if p.is_container:
                continue
            n = p.name
            if p.direction == ParamDirection.IN_OUT and p.is_struct:
                lines.append(f"{n}_host = create_string_buffer(caller.read_memory({n}_ptr, {n}_len), {n}_len)")
                continue
            if p.is_input and (p.is_string or p.is_struct):
                lines.append(f"{n}_data = caller.read_memory({n}_ptr, {n}_len)")
            if p.direction == ParamDirection.IN:
                continue
            if p.is_string:
                lines.append(f"{n}_host = create_string_buffer({n}_buf_len)")
                lines.append(f"{n}_written = c_uint32()")
            elif p.is_output and p.is_struct:
                lines.append(f"{n}_host = create_string_buffer({n}_len)")
            elif p.is_output:
                lines.append(f"{n}_val = {p.ctype}()")
        return lines

    def host_args(self) -> list[str]:
        args = [] if self.is_static else ['from_wasm("handle", obj)']
        for p in self.params:
            n = p.name
            if p.is_container:
                args += [f'from_wasm("handle", {n}_base)', f'from_wasm("handle", {n}_prop)']
            elif p.is_input:
                if p.is_string:
                    args += [f"{n}_data", f"len({n}_data)"]
                    if p.direction == ParamDirection.IN_OUT:
                        args += [f"{n}_host", f"{n}_buf_len", f"byref({n}_written)"]
                elif p.is_struct:
                    args.append(f"{n}_host" if p.direction == ParamDirection.IN_OUT else f"{n}_data")
                else:
                    args.append(f'from_wasm("{p.wire}", {n})')
            elif p.is_string:
                args += [f"{n}_host", f"{n}_buf_len", f"byref({n}_written)"]
            elif p.is_struct:
                args.append(f"{n}_host")
            else:
                args.append(f"byref({n}_val)")
        return args

    def host_writeback(self) -> list[str]:
        """Copy outputs into guest memory; only run when the call succeeded"""
        lines = []
        for p in self.params:
            n = p.name
            if p.is_container or p.direction == ParamDirection.IN:
                continue
            if p.is_string:
                lines.append(f"{n}_n = min({n}_written.value, {n}_buf_len)")
                lines.append(f"caller.write_memory({n}_buf, {n}_host.raw[:{n}_n])")
                lines.append(f'caller.write_memory({n}_out_len, pack("u32", {n}_n))')
            elif p.is_struct:
                lines.append(f"caller.write_memory({n}_ptr, {n}_host.raw[:{n}_len])")
            elif p.is_output:
                lines.append(f'caller.write_memory({n}_out, pack("{p.wire}", {n}_val.value))')
        return lines


def build_plans(ctx: CodegenContext) -> dict[int, CallPlan]:
    """Plan every table entry once; the backends look plans up by FuncId"""
    plans = {entry.func_id: CallPlan(entry, ctx) for entry in ctx.func_table}
    over = [p.label for p in plans.values() if not p.sandbox_ok]
    for label in over:
        logger.debug("Sandbox arity ceiling exceeded: %s", label)
    if over:
        logger.info("%d functions exceed the sandbox arity ceiling (native only)", len(over))
    return plans
