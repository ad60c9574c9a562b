"""Generation pipeline: schema + config -> Python bindings, C++ wrappers, function table"""

import logging
from dataclasses import dataclass, field
from itertools import groupby
from pathlib import Path
from typing import Optional

from .call_plan import CallPlan, build_plans
from .class_generator import ClassGenerator
from .config import CodegenConfig
from .context import CodegenContext, build_func_table
from .cpp_generator import CppGenerator
from .enum_generator import EnumGenerator
from .errors import ConfigError, StrictModeError, VerificationError
from .filter import apply_filters
from .func_table_generator import FuncTableGenerator
from .guest_generator import GuestGenerator
from .host_generator import HostGenerator
from .module_generator import ModuleGenerator, generate_root_init
from .naming import to_module_name
from .parser import SchemaParser
from .struct_generator import StructGenerator
from .types import ReflectionSchema

logger = logging.getLogger(__name__)

PY_REQUIRED = ("__init__.py", "func_ids.py")
CPP_REQUIRED = ("UikaFuncIds.h", "UikaFillFuncTable.cpp")


@dataclass
class GeneratedOutput:
    """Rendered files keyed by path relative to their output root"""
    python: dict[str, str] = field(default_factory=dict)
    cpp: dict[str, str] = field(default_factory=dict)


def module_deps(config: CodegenConfig) -> str:
    """Host packages needed by the enabled features; Core is always required"""
    features = config.enabled_features
    packages = {"Core"}
    packages.update(pkg for pkg, m in config.modules.items() if m.feature in features)
    return "\n".join(sorted(packages))


def prepare_context(schema: ReflectionSchema, config: CodegenConfig) -> CodegenContext:
    """Build, filter and number; the returned context is read-only from here on"""
    ctx = CodegenContext.build(schema, config)
    apply_filters(ctx, config.blocklist)
    build_func_table(ctx)
    return ctx


def render(ctx: CodegenContext, config: CodegenConfig,
           plans: Optional[dict[int, CallPlan]] = None) -> GeneratedOutput:
    if plans is None:
        plans = build_plans(ctx)
    out = GeneratedOutput()
    modules = sorted(ctx.enabled_modules)

    by_class = {key: list(group) for key, group in
                groupby(ctx.func_table, key=lambda e: (e.module_name, e.class_name))}

    for module in modules:
        for e in ctx.module_enums.get(module, []):
            out.python[f"{module}/{to_module_name(e.name)}.py"] = EnumGenerator(e).generate()
        for s in ctx.module_structs.get(module, []):
            out.python[f"{module}/{to_module_name(s.cpp_name)}.py"] = StructGenerator(ctx, s).generate()
        for c in ctx.module_classes.get(module, []):
            entries = by_class.get((module, c.name), [])
            out.python[f"{module}/{to_module_name(c.name)}.py"] = ClassGenerator(ctx, c, entries).generate()
        out.python[f"{module}/__init__.py"] = ModuleGenerator(ctx, module).generate()

    table = FuncTableGenerator(ctx)
    out.python["__init__.py"] = generate_root_init(modules)
    out.python["func_ids.py"] = table.generate_python()
    out.python["wasm_fn_imports.py"] = GuestGenerator(plans).generate()
    out.python["wasm_host_funcs.py"] = HostGenerator(plans).generate()

    for (module, class_name), entries in by_class.items():
        gen = CppGenerator(module, class_name, [plans[e.func_id] for e in entries])
        out.cpp[gen.file_name] = gen.generate()
    out.cpp["UikaFuncIds.h"] = table.generate_header()
    out.cpp["UikaFillFuncTable.cpp"] = table.generate_fill(plans)
    out.cpp["module_deps.txt"] = module_deps(config)
    return out


def write_output(out: GeneratedOutput, py_out: Path, cpp_out: Path):
    for root, files in ((py_out, out.python), (cpp_out, out.cpp)):
        for rel, content in sorted(files.items()):
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
            logger.debug("Generated: %s", path)
    logger.info("Wrote %d Python files to %s, %d C++ files to %s",
                len(out.python), py_out, len(out.cpp), cpp_out)


def verify_output(ctx: CodegenContext, py_out: Path, cpp_out: Path):
    problems = []

    for i, entry in enumerate(ctx.func_table):
        if entry.func_id != i:
            problems.append(f"FuncId gap: expected {i} for {entry.module_name} "
                            f"{entry.class_name}.{entry.func_name}, got {entry.func_id} "
                            f"(total functions: {len(ctx.func_table)})")
            break

    dupes = FuncTableGenerator(ctx).duplicate_names()
    if dupes:
        problems.append(f"duplicate FuncId constants: {', '.join(dupes)}")

    for root, names, label in ((py_out, PY_REQUIRED, "Python"), (cpp_out, CPP_REQUIRED, "C++")):
        for name in names:
            path = root / name
            if not path.is_file():
                problems.append(f"{label} output missing: {path}")
            elif path.stat().st_size == 0:
                problems.append(f"{label} output empty: {path}")

    for module in sorted(ctx.enabled_modules):
        init = py_out / module / "__init__.py"
        if not init.is_file():
            problems.append(f"Module __init__.py missing: {init}")

    if problems:
        raise VerificationError(problems)

    logger.info("OK: %d modules, %d classes, %d structs, %d enums, %d functions",
                len(ctx.enabled_modules),
                sum(len(v) for v in ctx.module_classes.values()),
                sum(len(v) for v in ctx.module_structs.values()),
                sum(len(v) for v in ctx.module_enums.values()),
                len(ctx.func_table))


def run_generate(config: CodegenConfig, py_out: Optional[Path] = None, cpp_out: Optional[Path] = None,
                 strict: Optional[bool] = None) -> CodegenContext:
    """Full run. Explicit arguments override the configured paths and strict flag."""
    paths = config.paths
    if paths is None:
        raise ConfigError("missing [codegen.paths] section")
    py_out = Path(py_out or paths.py_out)
    cpp_out = Path(cpp_out or paths.cpp_out)
    strict = config.strict if strict is None else strict

    schema = SchemaParser.from_directory(paths.uht_input).parse()
    ctx = prepare_context(schema, config)
    out = render(ctx, config)

    if strict and ctx.skipped:
        raise StrictModeError(ctx.skipped)
    if ctx.skipped:
        logger.info("%d schema members skipped (run with --verbose for details)", len(ctx.skipped))

    write_output(out, py_out, cpp_out)
    verify_output(ctx, py_out, cpp_out)
    return ctx
