"""Host Generator - host closures that serve guest `uika_fn` imports"""

from .call_plan import CallPlan
from .common_generator import banner, indent, python_header
from .func_table_generator import func_id_name

_IMPORTS = [
    "from ctypes import (",
    "    CFUNCTYPE, POINTER, byref, create_string_buffer,",
    "    c_bool, c_double, c_float, c_int8, c_int16, c_int32, c_int64,",
    "    c_uint8, c_uint16, c_uint32, c_uint64, c_void_p,",
    ")",
    "",
    "from uikagen.runtime.cache import FuncSlot",
    "from uikagen.runtime.guest import IMPORT_MODULE",
    "from uikagen.runtime.wire import from_wasm, pack",
    "",
    "from . import func_ids",
]


class HostGenerator:
    """Emits wasm_host_funcs.py.

    Each closure takes the caller plus the flattened import slots, copies guest
    buffers out of linear memory, calls the native function-table entry and copies
    outputs back only when it returned Ok.
    """

    def __init__(self, plans: dict[int, CallPlan]):
        self.plans = [p for _, p in sorted(plans.items()) if p.sandbox_ok]

    def generate(self) -> str:
        lines = python_header("host functions for guest imports")
        lines.extend(_IMPORTS)
        lines.extend(["", ""])
        for plan in self.plans:
            fid = plan.entry.func_id
            lines.append(f"_FN_{fid} = FuncSlot(func_ids.{func_id_name(plan.entry)}, {plan.native_prototype()})")
        lines.extend(["", ""])
        lines.extend(banner("Closures"))
        for plan in self.plans:
            lines.extend(self._closure(plan))
        lines.extend(self._register())
        return "\n".join(lines)

    def _closure(self, plan: CallPlan) -> list[str]:
        fid = plan.entry.func_id
        params = ", ".join(["caller"] + [name for name, _ in plan.wasm_slots()])
        body = [f"_fn = _FN_{fid}.resolve()"]
        body.extend(plan.host_prep())
        body.append(f"_err = _fn({', '.join(plan.host_args())})")
        writeback = plan.host_writeback()
        if writeback:
            body.append("if _err == 0:")
            body.extend(indent(writeback))
        body.append("return _err")
        lines = [f"def _uika_fn_{fid}({params}):", f'    """{plan.label}"""']
        lines.extend(indent(body))
        lines.extend(["", ""])
        return lines

    def _register(self) -> list[str]:
        lines = [
            "def register_codegen_host_functions(linker):",
            '    """Define every generated `uika_fn` import on the linker"""',
        ]
        for plan in self.plans:
            fid = plan.entry.func_id
            types = ", ".join(f'"{t}"' for _, t in plan.wasm_slots())
            lines.append(f'    linker.define_host_function(IMPORT_MODULE, "{plan.import_name()}", '
                         f'[{types}], ["i32"], _uika_fn_{fid})')
        lines.append(f"    return {len(self.plans)}")
        lines.append("")
        return lines
