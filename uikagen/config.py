"""Build configuration (uika.config.toml, [codegen] section)"""

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class ModuleMapping:
    """Host package -> generated module + gating feature"""
    module: str
    feature: str


@dataclass
class Blocklist:
    """Entities that must never be bound"""
    classes: list[str] = field(default_factory=list)
    structs: list[str] = field(default_factory=list)
    functions: list[str] = field(default_factory=list)

    def function_tuples(self) -> set[tuple[str, str]]:
        """'Class.Func' entries as (class, func); malformed entries are ignored"""
        result = set()
        for entry in self.functions:
            cls, sep, func = entry.partition(".")
            if sep:
                result.add((cls, func))
            else:
                logger.warning("Ignoring blocklist function without class: %r", entry)
        return result


@dataclass
class CodegenPaths:
    uht_input: Path
    py_out: Path
    cpp_out: Path


@dataclass
class CodegenConfig:
    """[codegen] section"""
    features: list[str] = field(default_factory=list)
    paths: Optional[CodegenPaths] = None
    modules: dict[str, ModuleMapping] = field(default_factory=dict)
    blocklist: Blocklist = field(default_factory=Blocklist)
    strict: bool = False

    @property
    def enabled_features(self) -> set[str]:
        return set(self.features)


def _string_list(section: dict, key: str, where: str) -> list[str]:
    value = section.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where}.{key} must be a list of strings")
    return list(value)


def parse_codegen(data: dict, base_dir: Path = Path(".")) -> CodegenConfig:
    """Build a CodegenConfig from a decoded TOML document"""
    section = data.get("codegen")
    if not isinstance(section, dict):
        raise ConfigError("missing [codegen] section")

    config = CodegenConfig(
        features=_string_list(section, "features", "codegen"),
        strict=bool(section.get("strict", False)),
    )

    if (paths := section.get("paths")) is not None:
        try:
            config.paths = CodegenPaths(
                uht_input=base_dir / paths["uht_input"],
                py_out=base_dir / paths["py_out"],
                cpp_out=base_dir / paths["cpp_out"],
            )
        except KeyError as e:
            raise ConfigError(f"codegen.paths is missing {e}") from e

    for package, mapping in (section.get("modules") or {}).items():
        try:
            config.modules[package] = ModuleMapping(module=mapping["module"], feature=mapping["feature"])
        except (KeyError, TypeError) as e:
            raise ConfigError(f"codegen.modules.{package} needs 'module' and 'feature'") from e

    blocklist = section.get("blocklist") or {}
    config.blocklist = Blocklist(
        classes=_string_list(blocklist, "classes", "codegen.blocklist"),
        structs=_string_list(blocklist, "structs", "codegen.blocklist"),
        functions=_string_list(blocklist, "functions", "codegen.blocklist"),
    )
    return config


def load_config(path: Path) -> CodegenConfig:
    """Read a config file; relative paths resolve against its directory"""
    path = Path(path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e

    config = parse_codegen(data, path.resolve().parent)
    logger.info("Loaded config %s: features=%s, %d module mappings",
                path, sorted(config.features), len(config.modules))
    return config
