"""Build context: type lookups, module partition, function table"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Optional

from .config import CodegenConfig
from .enum_generator import resolve_variants
from .naming import to_module_name, to_snake_case
from .type_mapper import TypeMapper
from .types import ClassInfo, EnumInfo, FunctionInfo, ReflectionSchema, StructInfo

logger = logging.getLogger(__name__)


@dataclass
class FuncEntry:
    """One slot of the flat function table"""
    func_id: int
    module_name: str
    class_name: str
    func_name: str
    py_func_name: str
    func: FunctionInfo
    cpp_class_name: str
    header: str = ""

    @property
    def sort_key(self) -> tuple[str, str, str]:
        return (self.module_name, self.class_name, self.func_name)


@dataclass
class SkipRecord:
    """A schema member left out of the generated bindings"""
    owner: str
    member: str
    reason: str


@dataclass
class CodegenContext:
    """Schema entities of the enabled modules, grouped and indexed"""
    classes: dict[str, ClassInfo] = field(default_factory=dict)
    structs: dict[str, StructInfo] = field(default_factory=dict)
    enums: dict[str, EnumInfo] = field(default_factory=dict)
    package_to_module: dict[str, str] = field(default_factory=dict)
    module_to_feature: dict[str, str] = field(default_factory=dict)
    enabled_modules: set[str] = field(default_factory=set)
    module_classes: dict[str, list[ClassInfo]] = field(default_factory=dict)
    module_structs: dict[str, list[StructInfo]] = field(default_factory=dict)
    module_enums: dict[str, list[EnumInfo]] = field(default_factory=dict)
    func_table: list[FuncEntry] = field(default_factory=list)
    skipped: list[SkipRecord] = field(default_factory=list)

    @classmethod
    def build(cls, schema: ReflectionSchema, config: CodegenConfig) -> "CodegenContext":
        ctx = cls()
        features = config.enabled_features
        for package, mapping in config.modules.items():
            ctx.package_to_module[package] = mapping.module
            ctx.module_to_feature[mapping.module] = mapping.feature
            if mapping.feature in features:
                ctx.enabled_modules.add(mapping.module)

        # Packages without an explicit mapping get a name-derived module, which is
        # only enabled if some mapping enables a module of the same name.
        for entity in (*schema.classes, *schema.structs, *schema.enums):
            if entity.package not in ctx.package_to_module:
                ctx.package_to_module[entity.package] = to_module_name(entity.package)

        for entities, index, groups in ((schema.classes, ctx.classes, ctx.module_classes),
                                        (schema.structs, ctx.structs, ctx.module_structs),
                                        (schema.enums, ctx.enums, ctx.module_enums)):
            for entity in entities:
                module = ctx.package_to_module[entity.package]
                if module not in ctx.enabled_modules:
                    continue
                # Filtering prunes and renames members; the schema itself stays untouched
                entity = copy.deepcopy(entity)
                index[entity.name] = entity
                groups.setdefault(module, []).append(entity)

        for groups in (ctx.module_classes, ctx.module_structs, ctx.module_enums):
            for module in groups:
                groups[module].sort(key=lambda e: e.name)

        logger.info("Enabled modules: %s", ", ".join(sorted(ctx.enabled_modules)) or "(none)")
        for module in sorted(ctx.enabled_modules):
            logger.info("  %s: %d classes, %d structs, %d enums", module,
                        len(ctx.module_classes.get(module, [])),
                        len(ctx.module_structs.get(module, [])),
                        len(ctx.module_enums.get(module, [])))
        return ctx

    def is_type_available(self, name: Optional[str]) -> bool:
        return name in self.classes or name in self.structs or name in self.enums

    def module_for_package(self, package: str) -> Optional[str]:
        return self.package_to_module.get(package)

    def feature_for_module(self, module: str) -> Optional[str]:
        return self.module_to_feature.get(module)

    def module_of(self, name: str) -> Optional[str]:
        """Generated module holding the class/struct/enum called `name`"""
        entity = self.classes.get(name) or self.structs.get(name) or self.enums.get(name)
        return self.package_to_module.get(entity.package) if entity else None

    def binding_symbol(self, name: str) -> Optional[str]:
        """Python name of the generated binding for a class/struct/enum"""
        if name in self.classes or name in self.enums:
            return name
        if name in self.structs:
            return self.structs[name].cpp_name
        return None

    def binding_import(self, name: str) -> Optional[str]:
        """Relative import of a binding from a sibling module's entity file"""
        symbol = self.binding_symbol(name)
        module = self.module_of(name)
        if symbol is None or module is None:
            return None
        return f"from ..{module}.{to_module_name(symbol)} import {symbol}"

    def enum_actual_repr(self, enum_name: str) -> Optional[str]:
        """Wire repr of an enum after signed promotion; must agree with the enum generator"""
        e = self.enums.get(enum_name)
        if e is None:
            return None
        return resolve_variants(e).repr

    def skip(self, owner: str, member: str, reason: str):
        logger.debug("Skipping %s.%s: %s", owner, member, reason)
        self.skipped.append(SkipRecord(owner, member, reason))

    def classes_in_order(self):
        """(module, class) pairs in module then class order"""
        for module in sorted(self.module_classes):
            for c in self.module_classes[module]:
                yield module, c


def build_func_table(ctx: CodegenContext) -> list[FuncEntry]:
    """Assign dense ids 0..N-1 by sorting on (module, class, function)"""
    entries = []
    for module, c in ctx.classes_in_order():
        # Interface classes are not callable directly
        if c.super_class == "Interface":
            continue
        for func in c.funcs:
            if not all(TypeMapper.map(p).supported for p in func.params):
                ctx.skip(c.name, func.name, "unsupported parameter type")
                continue
            if any(p.is_container and TypeMapper.container_parts(p, ctx) is None for p in func.params):
                ctx.skip(c.name, func.name, "container parameter without element codec")
                continue
            entries.append(FuncEntry(
                func_id=0,
                module_name=module,
                class_name=c.name,
                func_name=func.name,
                py_func_name=to_snake_case(func.name),
                func=func,
                cpp_class_name=c.cpp_name,
                header=c.header,
            ))

    entries.sort(key=lambda e: e.sort_key)
    for i, entry in enumerate(entries):
        entry.func_id = i

    ctx.func_table = entries
    logger.info("%d functions in function table", len(entries))
    return entries
