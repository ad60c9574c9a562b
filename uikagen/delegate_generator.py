"""Delegate Generator - bind/add wrappers for delegate properties"""

from dataclasses import dataclass, field
from typing import Optional

from .context import CodegenContext
from .filter import delegate_skip_reason
from .naming import escape_reserved, py_name, strip_bool_prefix
from .type_mapper import ConversionKind, ParamDirection, TypeMapper
from .types import ParamInfo, PropertyInfo

_OBJECT_TYPES = ('ObjectProperty', 'ClassProperty', 'SoftObjectProperty',
                 'WeakObjectProperty', 'InterfaceProperty')
_FLOAT_TYPES = {'FloatProperty': 'f32', 'DoubleProperty': 'f64'}


@dataclass
class DelegateParam:
    """One signature parameter and how to read it out of the host parameter block"""
    name: str
    ue_name: str
    display_type: str
    wire: Optional[str]
    convert: str = "{}"

    def read_expr(self, index: int) -> str:
        if self.wire is None:
            # strings cannot be read out of the parameter block
            return '""'
        return self.convert.format(f'read_param(params, _offsets[{index}], "{self.wire}")')


@dataclass
class DelegateInfo:
    prop: PropertyInfo
    accessor: str
    wrapper: str
    is_multicast: bool
    params: list[DelegateParam] = field(default_factory=list)

    @property
    def signature_name(self) -> str:
        return self.prop.func_info.name if self.prop.func_info else self.prop.name


def _resolve_param(param: ParamInfo, ctx: CodegenContext) -> Optional[DelegateParam]:
    name = py_name(param.name)
    t = param.prop_type
    if t == 'BoolProperty':
        return DelegateParam(name, param.name, 'bool', 'bool')
    if t in TypeMapper.INT_ELEMENTS:
        return DelegateParam(name, param.name, 'int', TypeMapper.INT_ELEMENTS[t])
    if t in _FLOAT_TYPES:
        return DelegateParam(name, param.name, 'float', _FLOAT_TYPES[t])
    if t in ('ByteProperty', 'EnumProperty'):
        if not param.enum_name:
            return DelegateParam(name, param.name, 'int', 'u8') if t == 'ByteProperty' else None
        repr_ = ctx.enum_actual_repr(param.enum_name)
        if repr_ is None:
            return None
        return DelegateParam(name, param.name, f'Optional[{param.enum_name}]', repr_,
                             f"{param.enum_name}.from_value({{}})")
    if t == 'NameProperty':
        return DelegateParam(name, param.name, 'FNameHandle', 'name', "FNameHandle({})")
    if t in ('StrProperty', 'TextProperty'):
        return DelegateParam(name, param.name, 'str', None)
    if t in _OBJECT_TYPES:
        mapped = TypeMapper.map(param)
        if not mapped.supported:
            return None
        if mapped.kind == ConversionKind.OBJECT_REF:
            return DelegateParam(name, param.name, mapped.display_type, 'handle', "UObjectRef({})")
        return DelegateParam(name, param.name, 'UObjectHandle', 'handle')
    return None


def collect_delegate_props(c_name: str, props: list[PropertyInfo], ctx: CodegenContext,
                           taken: set[str]) -> list[DelegateInfo]:
    """Delegate properties whose every signature parameter can be read back"""
    result = []
    for prop in props:
        if not prop.is_delegate:
            continue
        reason = delegate_skip_reason(prop, ctx)
        if reason:
            ctx.skip(c_name, prop.name, reason)
            continue
        params = []
        for param in prop.func_info.params or []:
            if TypeMapper.direction(param) == ParamDirection.RETURN:
                continue
            resolved = _resolve_param(param, ctx)
            if resolved is None:
                params = None
                ctx.skip(c_name, prop.name, f"delegate parameter {param.name} cannot be read")
                break
            params.append(resolved)
        if params is None:
            continue

        accessor = escape_reserved(strip_bool_prefix(prop.name))
        if accessor in taken:
            ctx.skip(c_name, prop.name, f"accessor name {accessor} already used")
            continue
        taken.add(accessor)
        result.append(DelegateInfo(
            prop=prop,
            accessor=accessor,
            wrapper=f"{c_name}{prop.name}Delegate",
            is_multicast=prop.prop_type != 'DelegateProperty',
            params=params,
        ))
    return result


class DelegateGenerator:
    """Generates the wrapper class and class accessor for one delegate property"""

    def __init__(self, binding: str, info: DelegateInfo):
        self.binding = binding
        self.info = info

    def generate_wrapper(self) -> list[str]:
        d = self.info
        kind = "Multicast delegate" if d.is_multicast else "Delegate"
        callback_args = ", ".join(p.display_type for p in d.params)
        lines = [
            f"class {d.wrapper}:",
            f'    """{kind} {self.binding}.{d.prop.name}"""',
            "",
            "    __slots__ = ('owner', 'prop')",
            "",
            "    def __init__(self, owner, prop):",
            "        self.owner = owner",
            "        self.prop = prop",
            "",
        ]
        method = "add" if d.is_multicast else "bind"
        binder = "bind_multicast" if d.is_multicast else "bind_unicast"
        lines.append(f"    def {method}(self, callback: Callable[[{callback_args}], None]) -> DelegateBinding:")
        if d.params:
            names = ", ".join(repr(p.ue_name) for p in d.params)
            lines.append(f"        _offsets = _OFFSETS.get_or_init({d.prop.name!r}, lambda: function_param_offsets(")
            lines.append(f"            {self.binding}, {d.signature_name!r}, ({names},)))")
            lines.append("")
            lines.append("        def _adapter(params):")
            args = ", ".join(p.read_expr(i) for i, p in enumerate(d.params))
            lines.append(f"            callback({args})")
        else:
            lines.append("        def _adapter(params):")
            lines.append("            callback()")
        lines.append("")
        lines.append(f"        return {binder}(self.owner, self.prop, _adapter)")
        lines.append("")
        if d.is_multicast:
            lines.extend([
                "    def broadcast(self, params: Optional[bytes] = None):",
                '        """Fire the delegate with a raw parameter block"""',
                "        _code = dispatch().broadcast_multicast(self.owner, self.prop, params)",
                f'        check_ffi_ctx(_code, "{self.binding}.{d.prop.name}")',
                "",
            ])
        lines.append("")
        return lines

    def generate_accessor(self) -> list[str]:
        d = self.info
        name = d.prop.name
        return [
            f"    def {d.accessor}(self) -> {d.wrapper}:",
            f"        _prop = _PROPS.get_or_init({name!r}, lambda: find_class_property({self.binding}, {name!r}))",
            f"        return {d.wrapper}(self.handle, _prop)",
            "",
        ]
