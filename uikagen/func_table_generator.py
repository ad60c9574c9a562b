"""Function Table Generator - FuncId constants (Python + C++) and the table fill routine"""

from .call_plan import CallPlan
from .common_generator import cpp_header, python_header
from .cpp_generator import cpp_wrapper_name, wrapper_signature
from .context import CodegenContext, FuncEntry
from .naming import to_snake_case


def func_id_name(entry: FuncEntry) -> str:
    """ENGINE__ACTOR__GET_ACTOR_LOCATION (double underscores keep the parts apart)"""
    parts = (entry.module_name, to_snake_case(entry.class_name), to_snake_case(entry.func_name))
    return "__".join(p.upper() for p in parts)


class FuncTableGenerator:
    """Emits func_ids.py, UikaFuncIds.h and UikaFillFuncTable.cpp"""

    def __init__(self, ctx: CodegenContext):
        self.ctx = ctx
        self.entries = ctx.func_table

    def duplicate_names(self) -> list[str]:
        seen, dupes = set(), []
        for entry in self.entries:
            name = func_id_name(entry)
            if name in seen:
                dupes.append(name)
            seen.add(name)
        return dupes

    def generate_python(self) -> str:
        lines = python_header("function table ids")
        for entry in self.entries:
            lines.append(f"{func_id_name(entry)} = {entry.func_id}")
        lines.append("")
        lines.append(f"FUNC_COUNT = {len(self.entries)}")
        lines.append("")
        return "\n".join(lines)

    def generate_header(self) -> str:
        lines = cpp_header()
        lines.extend([
            "#pragma once",
            "",
            "#include \"CoreMinimal.h\"",
            "",
            "namespace UikaFuncIds",
            "{",
        ])
        for entry in self.entries:
            lines.append(f"    constexpr uint32 {func_id_name(entry)} = {entry.func_id};")
        lines.append("")
        lines.append(f"    constexpr uint32 FUNC_COUNT = {len(self.entries)};")
        lines.append("}")
        lines.append("")
        return "\n".join(lines)

    def generate_fill(self, plans: dict[int, CallPlan]) -> str:
        """Forward declarations of every wrapper plus the routine writing them into the table"""
        lines = cpp_header()
        lines.extend([
            "#include \"UikaFuncIds.h\"",
            "",
        ])
        for entry in self.entries:
            lines.append(f"extern \"C\" {wrapper_signature(plans[entry.func_id])};")
        lines.extend([
            "",
            "void UikaFillFuncTable(void** FuncTable, uint32 Count)",
            "{",
            "    check(Count >= UikaFuncIds::FUNC_COUNT);",
        ])
        for entry in self.entries:
            lines.append(f"    FuncTable[UikaFuncIds::{func_id_name(entry)}] = "
                         f"reinterpret_cast<void*>(&{cpp_wrapper_name(entry)});")
        lines.append("}")
        lines.append("")
        return "\n".join(lines)
