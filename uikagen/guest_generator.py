"""Guest Generator - import manifest for the sandboxed guest"""

import logging

from .call_plan import CallPlan
from .common_generator import python_header

logger = logging.getLogger(__name__)


class GuestGenerator:
    """Emits wasm_fn_imports.py: one `uika_fn_<id>` signature per eligible entry"""

    def __init__(self, plans: dict[int, CallPlan]):
        self.plans = plans

    def eligible(self) -> list[CallPlan]:
        return [p for _, p in sorted(self.plans.items()) if p.sandbox_ok]

    def generate(self) -> str:
        lines = python_header("guest import manifest")
        lines.extend([
            'IMPORT_MODULE = "uika_fn"',
            "",
            "# name -> (parameter value types, result value types)",
            "IMPORTS = {",
        ])
        eligible = self.eligible()
        for plan in eligible:
            params = _tuple(t for _, t in plan.wasm_slots())
            lines.append(f"    # {plan.label}")
            lines.append(f'    "{plan.import_name()}": ({params}, ("i32",)),')
        lines.append("}")
        lines.append("")
        logger.info("Guest manifest: %d of %d functions importable", len(eligible), len(self.plans))
        return "\n".join(lines)


def _tuple(items) -> str:
    items = [f'"{i}"' for i in items]
    if len(items) == 1:
        return f"({items[0]},)"
    return f"({', '.join(items)})"
