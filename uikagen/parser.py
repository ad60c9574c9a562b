"""Reflection schema parser (exporter JSON -> dataclasses)"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from .errors import SchemaError
from .types import (
    ClassInfo, DelegateSignature, EnumInfo, FunctionInfo, PropertyInfo,
    ReflectionSchema, StructInfo,
)

logger = logging.getLogger(__name__)

CLASSES_FILE = "uika_classes.json"
STRUCTS_FILE = "uika_structs.json"
ENUMS_FILE = "uika_enums.json"


def _entry_name(d: Any) -> str:
    return repr(d.get("name", "?")) if isinstance(d, dict) else repr(d)


def _malformed(kind: str, d: Any, e: Exception) -> SchemaError:
    if isinstance(e, KeyError):
        return SchemaError(f"{kind} entry {_entry_name(d)} is missing field {e}")
    return SchemaError(f"{kind} entry {_entry_name(d)} has a malformed value: {e}")


def _flags_u32(value: Any) -> int:
    # The exporter sign-extends 32-bit flag words; keep the low 32 bits.
    return int(value or 0) & 0xFFFF_FFFF


class SchemaParser:
    """Parses the three exporter documents into a ReflectionSchema"""

    def __init__(self, classes_doc: dict, structs_doc: dict, enums_doc: dict):
        self.classes_doc = classes_doc
        self.structs_doc = structs_doc
        self.enums_doc = enums_doc

    @classmethod
    def from_directory(cls, directory: Path) -> "SchemaParser":
        directory = Path(directory)
        docs = [cls._read_json(directory / name) for name in (CLASSES_FILE, STRUCTS_FILE, ENUMS_FILE)]
        return cls(*docs)

    @staticmethod
    def _read_json(path: Path) -> dict:
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except OSError as e:
            raise SchemaError(f"Failed to read {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise SchemaError(f"Failed to parse {path}: {e}") from e

    def parse(self) -> ReflectionSchema:
        result = ReflectionSchema()
        result.classes = [self._parse_class(c) for c in self._section(self.classes_doc, "classes")]
        result.structs = [self._parse_struct(s) for s in self._section(self.structs_doc, "structs")]
        result.enums = [self._parse_enum(e) for e in self._section(self.enums_doc, "enums")]
        logger.info(
            "Loaded %d classes, %d structs, %d enums",
            len(result.classes), len(result.structs), len(result.enums),
        )
        return result

    @staticmethod
    def _section(doc: dict, key: str) -> list[dict]:
        if not isinstance(doc, dict) or key not in doc:
            raise SchemaError(f"Schema document is missing the '{key}' list")
        return doc[key]

    def _parse_class(self, d: dict) -> ClassInfo:
        try:
            return ClassInfo(
                name=d["name"],
                cpp_name=d["cpp_name"],
                package=d["package"],
                header=d.get("header", ""),
                class_flags=_flags_u32(d.get("class_flags")),
                super_class=d.get("super"),
                interfaces=list(d.get("interfaces") or []),
                props=[self._parse_property(p) for p in d.get("props") or []],
                funcs=[self._parse_function(f) for f in d.get("funcs") or []],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise _malformed("Class", d, e) from e

    def _parse_struct(self, d: dict) -> StructInfo:
        try:
            return StructInfo(
                name=d["name"],
                cpp_name=d["cpp_name"],
                package=d["package"],
                header=d.get("header", ""),
                struct_flags=_flags_u32(d.get("struct_flags")),
                super_struct=d.get("super"),
                has_static_struct=bool(d.get("has_static_struct", False)),
                props=[self._parse_property(p) for p in d.get("props") or []],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise _malformed("Struct", d, e) from e

    def _parse_enum(self, d: dict) -> EnumInfo:
        try:
            return EnumInfo(
                name=d["name"],
                cpp_name=d["cpp_name"],
                package=d["package"],
                underlying_type=d.get("underlying_type", "uint8"),
                cpp_form=int(d.get("cpp_form", 0)),
                pairs=[(str(n), int(v)) for n, v in d.get("pairs") or []],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise _malformed("Enum", d, e) from e

    def _parse_function(self, d: dict) -> FunctionInfo:
        try:
            return FunctionInfo(
                name=d["name"],
                func_flags=_flags_u32(d.get("func_flags")),
                is_static=bool(d.get("is_static", False)),
                params=[self._parse_property(p) for p in d.get("params") or []],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise _malformed("Function", d, e) from e

    def _parse_property(self, d: Optional[dict]) -> Optional[PropertyInfo]:
        if d is None:
            return None
        try:
            return PropertyInfo(
                name=d["name"],
                prop_type=d["type"],
                prop_flags=int(d.get("prop_flags", 0)),
                array_dim=int(d.get("array_dim", 1)),
                enum_name=d.get("enum_name"),
                enum_cpp_name=d.get("enum_cpp_name"),
                enum_cpp_form=d.get("enum_cpp_form"),
                enum_underlying_type=d.get("enum_underlying_type"),
                class_name=d.get("class_name"),
                meta_class_name=d.get("meta_class_name"),
                struct_name=d.get("struct_name"),
                interface_name=d.get("interface_name"),
                func_info=self._parse_signature(d.get("func_info")),
                inner_prop=self._parse_property(d.get("inner_prop")),
                key_prop=self._parse_property(d.get("key_prop")),
                value_prop=self._parse_property(d.get("value_prop")),
                element_prop=self._parse_property(d.get("element_prop")),
                getter=d.get("getter"),
                setter=d.get("setter"),
                default=d.get("default"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise _malformed("Property", d, e) from e

    def _parse_signature(self, d: Optional[dict]) -> Optional[DelegateSignature]:
        if not isinstance(d, dict):
            return None
        params = d.get("params")
        return DelegateSignature(
            name=d.get("name", ""),
            params=None if params is None else [self._parse_property(p) for p in params],
        )
