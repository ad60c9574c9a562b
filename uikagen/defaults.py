"""Default parameter literals: schema default strings -> Python expressions"""

import math
from typing import TYPE_CHECKING, Optional

from .enum_generator import resolve_variants
from .runtime.wire import wrap_int
from .type_mapper import ConversionKind, MappedType
from .types import ParamInfo

if TYPE_CHECKING:
    from .context import CodegenContext

_INT_PROPS = ('Int8Property', 'Int16Property', 'IntProperty', 'Int64Property',
              'UInt16Property', 'UInt32Property', 'UInt64Property')
_OBJECT_PROPS = ('ObjectProperty', 'ClassProperty', 'SoftObjectProperty',
                 'WeakObjectProperty', 'InterfaceProperty')


def parse_default_literal(param: ParamInfo, mapped: MappedType, ctx: "CodegenContext") -> Optional[str]:
    """Python expression for the parameter's default, or None if it has no usable one"""
    s = param.default
    if s is None or mapped.kind == ConversionKind.STRUCT_OPAQUE:
        return None

    t = param.prop_type
    if t == 'BoolProperty':
        return _parse_bool(s)
    if t in ('FloatProperty', 'DoubleProperty'):
        return _parse_float(s)
    if t in _INT_PROPS:
        return _parse_int(s)
    if t == 'ByteProperty':
        return _parse_enum(s, param, ctx) if param.enum_name else _parse_int(s)
    if t == 'EnumProperty':
        return _parse_enum(s, param, ctx)
    if t in _OBJECT_PROPS:
        return "None" if s == "None" else None
    if t in ('StrProperty', 'TextProperty'):
        return repr(s)
    if t == 'NameProperty':
        return "FNameHandle.NONE" if s in ("", "None") else None
    return None


def _parse_bool(s: str) -> Optional[str]:
    if s in ("true", "True"):
        return "True"
    if s in ("false", "False"):
        return "False"
    return None


def _parse_float(s: str) -> Optional[str]:
    try:
        value = float(s)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return repr(value)


def _parse_int(s: str) -> Optional[str]:
    try:
        return str(int(s, 10))
    except ValueError:
        return None


def _parse_enum(s: str, param: ParamInfo, ctx: "CodegenContext") -> Optional[str]:
    enum_info = ctx.enums.get(param.enum_name)
    if enum_info is None:
        return None
    layout = resolve_variants(enum_info)
    kept = {v.value for v in layout.variants}
    for variant, value in enum_info.pairs:
        if variant == s or variant.endswith(f"::{s}"):
            value = wrap_int(value, layout.repr)
            if value not in kept:
                return None
            return f"{param.enum_name}.from_value({value})"
    return None
