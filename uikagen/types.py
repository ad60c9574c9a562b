"""Data types for the reflection schema"""

from dataclasses import dataclass, field
from typing import Optional


# Property flags (64-bit)
CPF_CONST_PARM = 0x0000_0000_0000_0002
CPF_OUT_PARM = 0x0000_0000_0000_0100
CPF_RETURN_PARM = 0x0000_0000_0000_0400
CPF_REFERENCE_PARM = 0x0000_0000_0800_0000
CPF_NATIVE_ACCESS_PUBLIC = 0x0010_0000_0000_0000
CPF_NATIVE_ACCESS_PROTECTED = 0x0020_0000_0000_0000
CPF_NATIVE_ACCESS_PRIVATE = 0x0040_0000_0000_0000

# Function flags (32-bit)
FUNC_NATIVE = 0x0000_0400
FUNC_STATIC = 0x0000_2000
FUNC_BLUEPRINT_EVENT = 0x0800_0000


@dataclass
class PropertyInfo:
    """Class/struct property or function parameter"""
    name: str
    prop_type: str
    prop_flags: int = 0
    array_dim: int = 1
    enum_name: Optional[str] = None
    enum_cpp_name: Optional[str] = None
    enum_cpp_form: Optional[int] = None
    enum_underlying_type: Optional[str] = None
    class_name: Optional[str] = None
    meta_class_name: Optional[str] = None
    struct_name: Optional[str] = None
    interface_name: Optional[str] = None
    func_info: Optional["DelegateSignature"] = None
    inner_prop: Optional["PropertyInfo"] = None
    key_prop: Optional["PropertyInfo"] = None
    value_prop: Optional["PropertyInfo"] = None
    element_prop: Optional["PropertyInfo"] = None
    getter: Optional[str] = None
    setter: Optional[str] = None
    default: Optional[str] = None

    @property
    def is_container(self) -> bool:
        return self.prop_type in ("ArrayProperty", "MapProperty", "SetProperty")

    @property
    def is_delegate(self) -> bool:
        return self.prop_type in ("DelegateProperty", "MulticastDelegateProperty",
                                  "MulticastInlineDelegateProperty",
                                  "MulticastSparseDelegateProperty")


# Function parameters carry the same shape as properties
ParamInfo = PropertyInfo


@dataclass
class DelegateSignature:
    """Signature function of a delegate property"""
    name: str
    params: Optional[list[ParamInfo]] = None


@dataclass
class FunctionInfo:
    """Reflected function"""
    name: str
    func_flags: int = 0
    is_static: bool = False
    params: list[ParamInfo] = field(default_factory=list)
    ue_name: str = ""

    @property
    def static_call(self) -> bool:
        return self.is_static or bool(self.func_flags & FUNC_STATIC)

    @property
    def lookup_name(self) -> str:
        """Name used for reflection lookups (survives overload renaming)"""
        return self.ue_name or self.name


@dataclass
class ClassInfo:
    """Reflected class"""
    name: str
    cpp_name: str
    package: str
    header: str = ""
    class_flags: int = 0
    super_class: Optional[str] = None
    interfaces: list[str] = field(default_factory=list)
    props: list[PropertyInfo] = field(default_factory=list)
    funcs: list[FunctionInfo] = field(default_factory=list)


@dataclass
class StructInfo:
    """Reflected struct"""
    name: str
    cpp_name: str
    package: str
    header: str = ""
    struct_flags: int = 0
    super_struct: Optional[str] = None
    has_static_struct: bool = False
    props: list[PropertyInfo] = field(default_factory=list)


@dataclass
class EnumInfo:
    """Reflected enum"""
    name: str
    cpp_name: str
    package: str
    underlying_type: str = "uint8"
    cpp_form: int = 0
    pairs: list[tuple[str, int]] = field(default_factory=list)


@dataclass
class ReflectionSchema:
    """Complete reflection schema"""
    classes: list[ClassInfo] = field(default_factory=list)
    structs: list[StructInfo] = field(default_factory=list)
    enums: list[EnumInfo] = field(default_factory=list)
