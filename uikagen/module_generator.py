"""Module Generator - package __init__ files for the generated bindings"""

from .common_generator import python_header
from .context import CodegenContext
from .naming import to_module_name


class ModuleGenerator:
    """Re-exports every binding of one generated module"""

    def __init__(self, ctx: CodegenContext, module: str):
        self.ctx = ctx
        self.module = module

    def symbols(self) -> list[str]:
        ctx, m = self.ctx, self.module
        names = [e.name for e in ctx.module_enums.get(m, [])]
        names += [s.cpp_name for s in ctx.module_structs.get(m, [])]
        names += [c.name for c in ctx.module_classes.get(m, [])]
        return names

    def generate(self) -> str:
        lines = python_header(f"bindings for module {self.module}")
        symbols = self.symbols()
        for symbol in symbols:
            lines.append(f"from .{to_module_name(symbol)} import {symbol}")
        lines.append("")
        lines.append("__all__ = [")
        lines.extend(f'    "{s}",' for s in symbols)
        lines.append("]")
        lines.append("")
        return "\n".join(lines)


def generate_root_init(modules: list[str]) -> str:
    """Top-level package: function ids first, since every class module imports them"""
    lines = python_header("bindings root package")
    lines.extend([
        "from . import func_ids",
        "from .func_ids import FUNC_COUNT",
        "",
    ])
    for module in modules:
        lines.append(f"from . import {module}")
    lines.append("")
    lines.append(f"ENABLED_MODULES = {tuple(modules)!r}")
    lines.append("")
    return "\n".join(lines)
