"""Property Generator - getter/setter accessors for class and struct properties"""

from dataclasses import dataclass
from typing import Optional

from .context import CodegenContext
from .filter import property_skip_reason
from .naming import escape_reserved, strip_bool_prefix
from .type_mapper import CONTAINER_KINDS, ConversionKind, ElementType, MappedType, TypeMapper
from .types import PropertyInfo

STRING_BUF_SIZE = 512

# Attributes of the binding base classes that accessors must not shadow
_BASE_MEMBERS = {"handle", "checked", "cast", "as_ref", "static_class", "value", "as_ptr",
                 "static_struct", "CLASS_NAME", "STRUCT_NAME"}

_VIEWS = {
    ConversionKind.CONTAINER_ARRAY: "UeArray",
    ConversionKind.CONTAINER_SET: "UeSet",
    ConversionKind.CONTAINER_MAP: "UeMap",
}


@dataclass
class PropertyAccessor:
    """One bindable property and the method names it gets"""
    prop: PropertyInfo
    mapped: MappedType
    getter: str
    setter: Optional[str] = None
    parts: Optional[list[ElementType]] = None

    @property
    def kind(self) -> ConversionKind:
        return self.mapped.kind

    @property
    def is_container(self) -> bool:
        return self.kind in CONTAINER_KINDS


def accessor_base_name(prop: PropertyInfo) -> str:
    return strip_bool_prefix(prop.name)


def collect_deduped_properties(props: list[PropertyInfo], ctx: CodegenContext, owner: str,
                               in_class: bool = True,
                               func_names: Optional[set[str]] = None) -> list[PropertyAccessor]:
    """Bindable properties with unique accessor names.

    Containers are only bound on classes. A setter whose name is taken by a function
    is dropped and the getter kept.
    """
    func_names = func_names or set()
    seen: set[str] = set()
    result = []
    for prop in props:
        if prop.getter or prop.setter:
            ctx.skip(owner, prop.name, "has an explicit getter/setter")
            continue
        if prop.is_delegate:
            continue
        reason = property_skip_reason(prop, ctx)
        if reason:
            ctx.skip(owner, prop.name, reason)
            continue

        mapped = TypeMapper.map(prop)
        if not mapped.supported:
            ctx.skip(owner, prop.name, mapped.reason)
            continue
        base = accessor_base_name(prop)
        if mapped.kind in CONTAINER_KINDS:
            if not in_class or prop.array_dim > 1:
                continue
            parts = TypeMapper.container_parts(prop, ctx)
            if parts is None:
                ctx.skip(owner, prop.name, "container with unresolvable elements")
                continue
            name = escape_reserved(base)
            if name in _BASE_MEMBERS:
                name += "_"
            if name in seen:
                continue
            seen.add(name)
            result.append(PropertyAccessor(prop, mapped, name, parts=parts))
            continue

        getter, setter = f"get_{base}", f"set_{base}"
        if getter in seen:
            continue
        seen.add(getter)
        if setter in func_names or setter in seen:
            setter = None
        else:
            seen.add(setter)
        result.append(PropertyAccessor(prop, mapped, getter, setter))
    return result


def accessor_names(accessors: list[PropertyAccessor]) -> set[str]:
    names = set()
    for a in accessors:
        names.add(a.getter)
        if a.setter:
            names.add(a.setter)
    return names


class PropertyGenerator:
    """Emits accessor methods into a class or struct binding body"""

    def __init__(self, ctx: CodegenContext, binding: str, label: str, in_class: bool = True):
        self.ctx = ctx
        self.binding = binding
        self.label = label
        self.in_class = in_class

    @property
    def owner(self) -> str:
        return "self.handle" if self.in_class else "self.as_ptr()"

    def lookup(self, prop: PropertyInfo) -> str:
        finder = "find_class_property" if self.in_class else "find_struct_property"
        return f"_PROPS.get_or_init({prop.name!r}, lambda: {finder}({self.binding}, {prop.name!r}))"

    def value_type(self, a: PropertyAccessor) -> str:
        if a.is_container:
            view = _VIEWS[a.kind]
            return f"{view}[{', '.join(p.display_type for p in a.parts)}]"
        if a.kind == ConversionKind.STRUCT_OPAQUE:
            si = self.ctx.structs.get(a.prop.struct_name)
            return f"OwnedStruct[{si.cpp_name}]" if si and si.has_static_struct else "bytes"
        return a.mapped.display_type

    def generate(self, accessors: list[PropertyAccessor]) -> list[str]:
        lines = []
        for a in accessors:
            if a.is_container:
                lines.extend(self._container(a))
            elif a.prop.array_dim > 1:
                lines.extend(self._fixed_array(a))
            else:
                lines.extend(self._scalar(a))
        return lines

    # ── Scalars ───────────────────────────────────────────────────────────

    def _convert_get(self, a: PropertyAccessor, raw: str) -> str:
        kind = a.kind
        if kind == ConversionKind.INT_CAST:
            return f'wrap_int({raw}, "{TypeMapper.declared_int_type(a.mapped)}")'
        if kind == ConversionKind.ENUM_CAST:
            return f"{a.mapped.display_type}.from_value({raw})"
        if kind == ConversionKind.FNAME:
            return f"FNameHandle({raw})"
        if kind == ConversionKind.OBJECT_REF:
            return f"UObjectRef({raw})"
        if kind == ConversionKind.STRING_UTF8:
            return f'{raw}.decode("utf-8", errors="replace")'
        if kind == ConversionKind.STRUCT_OPAQUE and self.value_type(a) != "bytes":
            return f"OwnedStruct.from_bytes({raw})"
        return raw

    def _convert_set(self, a: PropertyAccessor) -> str:
        kind = a.kind
        if kind == ConversionKind.INT_CAST:
            return f'wrap_int(int(value), "{a.mapped.wire_type}")'
        if kind == ConversionKind.ENUM_CAST:
            return "int(value)"
        if kind == ConversionKind.FNAME:
            return "name_value(value)"
        if a.mapped.wire_type == 'handle':
            return "raw_handle(value)"
        if kind == ConversionKind.STRING_UTF8:
            return 'value.encode("utf-8")'
        if kind == ConversionKind.STRUCT_OPAQUE:
            return "struct_bytes(value)"
        return "value"

    def _scalar(self, a: PropertyAccessor) -> list[str]:
        prop, m = a.prop, a.mapped
        ctx_name = f"{self.label}.{prop.name}"
        vtype = self.value_type(a)
        if a.kind == ConversionKind.STRING_UTF8:
            call = f"dispatch().get_string({self.owner}, _prop, {STRING_BUF_SIZE})"
        elif a.kind == ConversionKind.STRUCT_OPAQUE:
            call = f"dispatch().get_struct({self.owner}, _prop, dispatch().get_property_size(_prop))"
        else:
            call = f"dispatch().{m.property_getter}({self.owner}, _prop)"

        lines = [
            f"    def {a.getter}(self) -> {vtype}:",
            f"        _prop = {self.lookup(prop)}",
            f"        _code, _value = {call}",
            f'        ffi_infallible_ctx(_code, "{ctx_name}")',
            f"        return {self._convert_get(a, '_value')}",
            "",
        ]
        if a.setter:
            lines.extend([
                f"    def {a.setter}(self, value: {vtype}):",
                f"        _prop = {self.lookup(prop)}",
                f"        _code = dispatch().{m.property_setter}({self.owner}, _prop, {self._convert_set(a)})",
                f'        ffi_infallible_ctx(_code, "{ctx_name}")',
                "",
            ])
        return lines

    # ── Fixed arrays ──────────────────────────────────────────────────────

    def _element_wire(self, a: PropertyAccessor) -> Optional[str]:
        """Width of one fixed-array element; None for structs (raw bytes)"""
        kind = a.kind
        if kind == ConversionKind.STRUCT_OPAQUE:
            return None
        if kind == ConversionKind.ENUM_CAST:
            return self.ctx.enum_actual_repr(a.prop.enum_name) or a.mapped.wire_type
        if kind == ConversionKind.INT_CAST:
            return TypeMapper.declared_int_type(a.mapped)
        return a.mapped.wire_type

    def _fixed_array(self, a: PropertyAccessor) -> list[str]:
        prop = a.prop
        ctx_name = f"{self.label}.{prop.name}"
        vtype = self.value_type(a)
        wire = self._element_wire(a)
        if wire is None:
            value = self._convert_get(a, "_data")
            data = "struct_bytes(value)"
        else:
            kind = a.kind
            raw = f'unpack("{wire}", _data)'
            value = raw if kind == ConversionKind.INT_CAST else self._convert_get(a, raw)
            to_wire = "value" if kind == ConversionKind.INT_CAST else self._convert_set(a)
            data = f'pack("{wire}", {to_wire})'

        range_check = [
            f"        if not 0 <= index < {prop.array_dim}:",
            "            raise IndexOutOfRangeError()",
        ]
        lines = [f"    def {a.getter}(self, index: int) -> {vtype}:"]
        lines.extend(range_check)
        lines.extend([
            f"        _prop = {self.lookup(prop)}",
            f"        _code, _data = dispatch().get_property_at({self.owner}, _prop, index, "
            f"dispatch().get_element_size(_prop))",
            f'        ffi_infallible_ctx(_code, "{ctx_name}")',
            f"        return {value}",
            "",
        ])
        if a.setter:
            lines.append(f"    def {a.setter}(self, index: int, value: {vtype}):")
            lines.extend(range_check)
            lines.extend([
                f"        _prop = {self.lookup(prop)}",
                f"        _code = dispatch().set_property_at({self.owner}, _prop, index, {data})",
                f'        ffi_infallible_ctx(_code, "{ctx_name}")',
                "",
            ])
        return lines

    # ── Containers ────────────────────────────────────────────────────────

    def _container(self, a: PropertyAccessor) -> list[str]:
        codecs = ", ".join(p.codec for p in a.parts)
        return [
            f"    def {a.getter}(self) -> {self.value_type(a)}:",
            f"        _prop = {self.lookup(a.prop)}",
            f"        return {_VIEWS[a.kind]}({self.owner}, _prop, {codecs})",
            "",
        ]
