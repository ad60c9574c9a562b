"""Enum Generator - generates IntEnum bindings for reflected enums"""

from dataclasses import dataclass, field

from .naming import sanitize_variant_name, strip_enum_prefix
from .runtime.wire import wrap_int
from .type_mapper import TypeMapper
from .types import EnumInfo

_SIGNED = {'u8': 'i8', 'u16': 'i16', 'u32': 'i32', 'u64': 'i64'}

# Member names Enum or int already use
_TAKEN = {"name", "value", "from_value", "display_name", "mro"}


@dataclass
class EnumVariant:
    py_name: str
    display: str
    value: int


@dataclass
class EnumLayout:
    """Surviving variants of an enum and the integer repr they are stored in"""
    repr: str
    signed: bool = False
    variants: list[EnumVariant] = field(default_factory=list)


def _is_sentinel(variant: str) -> bool:
    return variant.endswith("_MAX") or variant == "MAX" or "__MAX" in variant


def _member_name(clean: str) -> str:
    name = sanitize_variant_name(clean)
    if (name.startswith("_") and name.endswith("_")) or name.startswith("__"):
        name = "V" + name
    if name in _TAKEN or hasattr(int, name):
        name += "_"
    return name


def resolve_variants(e: EnumInfo) -> EnumLayout:
    """Drop sentinels and duplicates, then normalize negative enums to the signed repr"""
    seen_values, seen_names = set(), set()
    picked = []
    for variant, value in e.pairs:
        if _is_sentinel(variant) or value in seen_values:
            continue
        seen_values.add(value)
        clean = strip_enum_prefix(variant)
        py = _member_name(clean)
        if py in seen_names:
            continue
        seen_names.add(py)
        picked.append(EnumVariant(py, clean, value))

    base = TypeMapper.ENUM_REPRS.get(e.underlying_type, 'u8')
    if not any(v.value < 0 for v in picked):
        return EnumLayout(base, False, picked)

    # 255 as uint8 collides with -1; keep the first after normalization
    repr_ = _SIGNED.get(base, base)
    layout = EnumLayout(repr_, True)
    normalized = set()
    for v in picked:
        value = wrap_int(v.value, repr_)
        if value in normalized:
            continue
        normalized.add(value)
        layout.variants.append(EnumVariant(v.py_name, v.display, value))
    return layout


class EnumGenerator:
    """Generates one enum module"""

    def __init__(self, enum_info: EnumInfo):
        self.enum = enum_info
        self.layout = resolve_variants(enum_info)

    def generate(self) -> str:
        e = self.enum
        lines = [
            '"""',
            f"AUTO-GENERATED binding for enum {e.name} ({e.package})",
            "DO NOT EDIT - Generated from the reflection schema",
            '"""',
            "",
            "import enum",
            "from typing import Optional",
            "",
            "from uikagen.runtime.wire import wrap_int",
            "",
            f'_REPR = "{self.layout.repr}"',
            "",
            "",
        ]
        if self.layout.variants:
            lines.extend(self._generate_int_enum())
        else:
            lines.extend(self._generate_newtype())
        return "\n".join(lines)

    def _generate_int_enum(self) -> list[str]:
        name = self.enum.name
        lines = [f"class {name}(enum.IntEnum):"]
        lines.append(f'    """{self.enum.cpp_name or name}"""')
        lines.append("")
        for v in self.layout.variants:
            lines.append(f"    {v.py_name} = {v.value}")
        lines.extend([
            "",
            "    @classmethod",
            f'    def from_value(cls, raw: int) -> Optional["{name}"]:',
            '        """Variant for a host integer (raw or normalized); None when unknown"""',
            "        try:",
            "            return cls(wrap_int(int(raw), _REPR))",
            "        except ValueError:",
            "            return None",
            "",
            "    def display_name(self) -> str:",
            "        return _DISPLAY_NAMES[self]",
            "",
            "",
            "_DISPLAY_NAMES = {",
        ])
        for v in self.layout.variants:
            lines.append(f"    {name}.{v.py_name}: {v.display!r},")
        lines.append("}")
        lines.append("")
        return lines

    def _generate_newtype(self) -> list[str]:
        name = self.enum.name
        return [
            f"class {name}(int):",
            f'    """{name} has no bindable variants; values pass through as integers"""',
            "",
            "    @classmethod",
            f'    def from_value(cls, raw: int) -> "{name}":',
            "        return cls(wrap_int(int(raw), _REPR))",
            "",
            "    def display_name(self) -> str:",
            "        return str(int(self))",
            "",
        ]
