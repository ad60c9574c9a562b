"""Type mapping from reflected property types to Python / wire / C++ types"""

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from .types import (
    CPF_CONST_PARM, CPF_OUT_PARM, CPF_REFERENCE_PARM, CPF_RETURN_PARM, ParamInfo, PropertyInfo,
)

if TYPE_CHECKING:
    from .context import CodegenContext


class ConversionKind(enum.Enum):
    """How one value crosses the ABI boundary"""
    IDENTITY = "identity"
    INT_CAST = "int_cast"
    OBJECT_REF = "object_ref"
    STRING_UTF8 = "string_utf8"
    ENUM_CAST = "enum_cast"
    STRUCT_OPAQUE = "struct_opaque"
    FNAME = "fname"
    CONTAINER_ARRAY = "container_array"
    CONTAINER_MAP = "container_map"
    CONTAINER_SET = "container_set"
    DELEGATE = "delegate"
    MULTICAST_DELEGATE = "multicast_delegate"


CONTAINER_KINDS = (ConversionKind.CONTAINER_ARRAY, ConversionKind.CONTAINER_MAP, ConversionKind.CONTAINER_SET)
DELEGATE_KINDS = (ConversionKind.DELEGATE, ConversionKind.MULTICAST_DELEGATE)


class ParamDirection(enum.Enum):
    IN = "in"
    OUT = "out"
    IN_OUT = "in_out"
    RETURN = "return"


@dataclass
class MappedType:
    """Target representation of one schema type"""
    display_type: str
    wire_type: str
    cpp_type: str = ""
    property_getter: str = ""
    property_setter: str = ""
    to_wire: ConversionKind = ConversionKind.IDENTITY
    from_wire: ConversionKind = ConversionKind.IDENTITY
    supported: bool = True
    reason: str = ""
    # Declared integer width; the wire width may be wider
    declared_type: str = ""

    @property
    def kind(self) -> ConversionKind:
        return self.to_wire


@dataclass
class ElementType:
    """Container element: display type plus the runtime codec expression"""
    display_type: str
    codec: str
    enums: set[str] = field(default_factory=set)
    classes: set[str] = field(default_factory=set)
    structs: set[str] = field(default_factory=set)


class TypeMapper:
    """Maps reflected property types to Python, wire and C++ types"""

    SUPPORTED_TYPES = {
        'BoolProperty', 'Int8Property', 'ByteProperty', 'Int16Property',
        'UInt16Property', 'IntProperty', 'UInt32Property', 'Int64Property',
        'UInt64Property', 'FloatProperty', 'DoubleProperty', 'StrProperty',
        'NameProperty', 'TextProperty', 'EnumProperty', 'ObjectProperty',
        'ClassProperty', 'StructProperty', 'ArrayProperty', 'MapProperty',
        'SetProperty', 'SoftObjectProperty', 'WeakObjectProperty',
        'InterfaceProperty', 'DelegateProperty', 'MulticastInlineDelegateProperty',
        'MulticastSparseDelegateProperty',
    }

    # declared width -> (wire width, accessor suffix, C++ type)
    # The host property table only exposes 8/32/64-bit integer accessors.
    INT_TYPES = {
        'Int8Property': ('i8', 'u8', 'u8', 'int8'),
        'Int16Property': ('i16', 'i32', 'i32', 'int16'),
        'UInt16Property': ('u16', 'i32', 'i32', 'uint16'),
        'IntProperty': ('i32', 'i32', 'i32', 'int32'),
        'UInt32Property': ('u32', 'i32', 'i32', 'uint32'),
        'Int64Property': ('i64', 'i64', 'i64', 'int64'),
        'UInt64Property': ('u64', 'i64', 'i64', 'uint64'),
    }

    ENUM_REPRS = {
        'uint8': 'u8', 'int8': 'i8', 'uint16': 'u16', 'int16': 'i16',
        'uint32': 'u32', 'int32': 'i32', 'uint64': 'u64', 'int64': 'i64',
    }

    OBJECT_TYPES = ('ObjectProperty', 'SoftObjectProperty', 'WeakObjectProperty')

    @classmethod
    def is_supported(cls, prop_type: str) -> bool:
        return prop_type in cls.SUPPORTED_TYPES

    @classmethod
    def map(cls, prop: PropertyInfo) -> MappedType:
        """Classify one property or parameter"""
        t = prop.prop_type
        if t == 'BoolProperty':
            return MappedType('bool', 'bool', 'bool', 'get_bool', 'set_bool')
        if t == 'ByteProperty':
            if prop.enum_name:
                return cls._enum_type(prop.enum_name, prop.enum_underlying_type or 'uint8')
            return cls._int_type('u8', 'u8', 'u8', 'uint8')
        if t in cls.INT_TYPES:
            return cls._int_type(*cls.INT_TYPES[t])
        if t == 'FloatProperty':
            return MappedType('float', 'f32', 'float', 'get_f32', 'set_f32')
        if t == 'DoubleProperty':
            return MappedType('float', 'f64', 'double', 'get_f64', 'set_f64')
        if t in ('StrProperty', 'TextProperty'):
            cpp = 'FString' if t == 'StrProperty' else 'FText'
            return MappedType('str', 'utf8', cpp, 'get_string', 'set_string',
                              ConversionKind.STRING_UTF8, ConversionKind.STRING_UTF8)
        if t == 'NameProperty':
            return MappedType('FNameHandle', 'name', 'FName', 'get_fname', 'set_fname',
                              ConversionKind.FNAME, ConversionKind.FNAME)
        if t == 'EnumProperty':
            if prop.enum_name:
                return cls._enum_type(prop.enum_name, prop.enum_underlying_type or 'uint8')
            return cls._unsupported('EnumProperty without enum_name')
        if t in cls.OBJECT_TYPES:
            return cls._object_type(prop.class_name)
        if t == 'ClassProperty':
            return cls._object_type(prop.meta_class_name or prop.class_name)
        if t == 'InterfaceProperty':
            if prop.interface_name:
                return cls._object_type(prop.interface_name)
            return cls._unsupported('InterfaceProperty without interface_name')
        if t == 'StructProperty':
            if prop.struct_name:
                return MappedType('bytes', 'struct', f'F{prop.struct_name}', 'get_struct', 'set_struct',
                                  ConversionKind.STRUCT_OPAQUE, ConversionKind.STRUCT_OPAQUE)
            return cls._unsupported('StructProperty without struct_name')
        if t == 'ArrayProperty':
            return cls._special('UeArray', ConversionKind.CONTAINER_ARRAY)
        if t == 'MapProperty':
            return cls._special('UeMap', ConversionKind.CONTAINER_MAP)
        if t == 'SetProperty':
            return cls._special('UeSet', ConversionKind.CONTAINER_SET)
        if t == 'DelegateProperty':
            return cls._special('Delegate', ConversionKind.DELEGATE)
        if t in ('MulticastInlineDelegateProperty', 'MulticastSparseDelegateProperty'):
            return cls._special('MulticastDelegate', ConversionKind.MULTICAST_DELEGATE)
        return cls._unsupported(t)

    @classmethod
    def _int_type(cls, declared: str, wire: str, accessor: str, cpp: str) -> MappedType:
        kind = ConversionKind.IDENTITY if declared == wire else ConversionKind.INT_CAST
        return MappedType('int', wire, cpp, f'get_{accessor}', f'set_{accessor}', kind, kind,
                          declared_type=declared)

    @classmethod
    def _enum_type(cls, enum_name: str, underlying: str) -> MappedType:
        return MappedType(enum_name, cls.ENUM_REPRS.get(underlying, 'u8'), enum_name,
                          'get_enum', 'set_enum', ConversionKind.ENUM_CAST, ConversionKind.ENUM_CAST)

    @classmethod
    def _object_type(cls, class_name: Optional[str]) -> MappedType:
        if class_name:
            return MappedType(f'UObjectRef[{class_name}]', 'handle', f'{class_name}*',
                              'get_object', 'set_object',
                              ConversionKind.OBJECT_REF, ConversionKind.OBJECT_REF)
        # Untyped reference: a bare handle passed through unchanged
        return MappedType('UObjectHandle', 'handle', 'UObject*', 'get_object', 'set_object')

    @classmethod
    def _special(cls, display: str, kind: ConversionKind) -> MappedType:
        return MappedType(display, '', '', '', '', kind, kind)

    @classmethod
    def _unsupported(cls, reason: str) -> MappedType:
        return MappedType('object', '', supported=False, reason=f'unsupported: {reason}')

    @classmethod
    def declared_int_type(cls, mapped: MappedType) -> str:
        """Declared integer width of an int-cast mapping (e.g. 'u16')"""
        return mapped.declared_type or mapped.wire_type

    @staticmethod
    def direction(param: ParamInfo) -> ParamDirection:
        flags = param.prop_flags
        if flags & CPF_RETURN_PARM:
            return ParamDirection.RETURN
        is_out = bool(flags & CPF_OUT_PARM)
        if is_out and flags & CPF_CONST_PARM:
            # const& pseudo-output is really an input
            return ParamDirection.IN
        if is_out and flags & CPF_REFERENCE_PARM:
            return ParamDirection.IN_OUT
        if is_out:
            return ParamDirection.OUT
        return ParamDirection.IN

    # ── Containers ──────────────────────────────────────────────────────

    INT_ELEMENTS = {
        'Int8Property': 'i8', 'Int16Property': 'i16', 'UInt16Property': 'u16',
        'IntProperty': 'i32', 'UInt32Property': 'u32', 'Int64Property': 'i64',
        'UInt64Property': 'u64',
    }

    @classmethod
    def element_type(cls, inner: PropertyInfo, ctx: Optional["CodegenContext"] = None) -> Optional[ElementType]:
        """Resolve a container element; None when it cannot be stored (nested containers, etc.)"""
        t = inner.prop_type
        if t == 'BoolProperty':
            return ElementType('bool', 'elements.BOOL')
        if t in cls.INT_ELEMENTS:
            w = cls.INT_ELEMENTS[t]
            return ElementType('int', f'elements.{w.upper()}')
        if t == 'ByteProperty' or t == 'EnumProperty':
            if inner.enum_name:
                if ctx is not None and inner.enum_name not in ctx.enums:
                    return None
                repr_ = cls.ENUM_REPRS.get(inner.enum_underlying_type or 'uint8', 'u8')
                if ctx is not None:
                    repr_ = ctx.enum_actual_repr(inner.enum_name) or repr_
                return ElementType(inner.enum_name, f'elements.enum_of({inner.enum_name}, "{repr_}")',
                                   enums={inner.enum_name})
            if t == 'EnumProperty':
                return None
            return ElementType('int', 'elements.U8')
        if t == 'FloatProperty':
            return ElementType('float', 'elements.F32')
        if t == 'DoubleProperty':
            return ElementType('float', 'elements.F64')
        if t in ('StrProperty', 'TextProperty'):
            return ElementType('str', 'elements.STRING')
        if t == 'NameProperty':
            return ElementType('FNameHandle', 'elements.NAME')
        if t in cls.OBJECT_TYPES or t == 'ClassProperty' or t == 'InterfaceProperty':
            if t == 'ClassProperty':
                target = inner.meta_class_name or inner.class_name
            elif t == 'InterfaceProperty':
                target = inner.interface_name
                if not target:
                    return None
            else:
                target = inner.class_name
            if not target:
                return ElementType('UObjectHandle', 'elements.HANDLE')
            if ctx is not None and target not in ctx.classes:
                return None
            return ElementType(f'UObjectRef[{target}]', 'elements.OBJECT', classes={target})
        if t == 'StructProperty':
            if not inner.struct_name:
                return None
            if ctx is None:
                return ElementType(f'OwnedStruct[F{inner.struct_name}]', 'elements.STRUCT')
            si = ctx.structs.get(inner.struct_name)
            if si is None or not si.has_static_struct:
                return None
            return ElementType(f'OwnedStruct[{si.cpp_name}]', 'elements.STRUCT', structs={inner.struct_name})
        return None

    @classmethod
    def container_parts(cls, prop: PropertyInfo,
                        ctx: Optional["CodegenContext"] = None) -> Optional[list[ElementType]]:
        """Element types of a container ([elem] or [key, value]); None if any is unresolvable"""
        if prop.prop_type == 'ArrayProperty':
            inners = [prop.inner_prop]
        elif prop.prop_type == 'SetProperty':
            inners = [prop.element_prop]
        elif prop.prop_type == 'MapProperty':
            inners = [prop.key_prop, prop.value_prop]
        else:
            return None
        parts = []
        for inner in inners:
            if inner is None or (et := cls.element_type(inner, ctx)) is None:
                return None
            parts.append(et)
        return parts

    @classmethod
    def container_display(cls, prop: PropertyInfo, ctx: Optional["CodegenContext"] = None) -> Optional[str]:
        """View type of a container property (UeArray[int], UeMap[str, float], ...)"""
        parts = cls.container_parts(prop, ctx)
        if parts is None:
            return None
        view = {'ArrayProperty': 'UeArray', 'SetProperty': 'UeSet', 'MapProperty': 'UeMap'}[prop.prop_type]
        return f"{view}[{', '.join(p.display_type for p in parts)}]"

    @classmethod
    def container_value_display(cls, prop: PropertyInfo, ctx: Optional["CodegenContext"] = None) -> Optional[str]:
        """Plain-collection type used for container function parameters and results"""
        parts = cls.container_parts(prop, ctx)
        if parts is None:
            return None
        if prop.prop_type == 'MapProperty':
            return f"list[tuple[{parts[0].display_type}, {parts[1].display_type}]]"
        return f"list[{parts[0].display_type}]"
