"""Class Generator - one Python module per reflected class"""

import logging
from typing import Optional

from .call_plan import CallPlan
from .common_generator import RUNTIME_IMPORTS, banner, indent, python_header
from .context import CodegenContext, FuncEntry
from .delegate_generator import DelegateGenerator, DelegateInfo, collect_delegate_props
from .func_table_generator import func_id_name
from .naming import escape_reserved
from .property_generator import (
    PropertyAccessor, PropertyGenerator, accessor_names, collect_deduped_properties,
)
from .type_mapper import ConversionKind, ElementType, TypeMapper
from .types import ClassInfo, PropertyInfo

logger = logging.getLogger(__name__)

_BASE_MEMBERS = {"handle", "checked", "cast", "as_ref", "static_class", "CLASS_NAME"}


class TypeRefs:
    """Bindings a generated module refers to: enums at runtime, the rest for annotations"""

    def __init__(self, ctx: CodegenContext, own: str):
        self.ctx = ctx
        self.own = own
        self.runtime: set[str] = set()
        self.hints: set[str] = set()

    def add_prop(self, prop: PropertyInfo, parts: Optional[list[ElementType]] = None):
        if prop.enum_name and prop.enum_name in self.ctx.enums:
            self.runtime.add(prop.enum_name)
        if prop.struct_name and prop.struct_name in self.ctx.structs:
            self.hints.add(prop.struct_name)
        mapped = TypeMapper.map(prop)
        if mapped.kind == ConversionKind.OBJECT_REF:
            target = mapped.display_type[len("UObjectRef["):-1]
            if target in self.ctx.classes:
                self.hints.add(target)
        for part in parts or []:
            self.runtime.update(part.enums)
            self.hints.update(part.classes)
            self.hints.update(part.structs)

    def lines(self) -> list[str]:
        runtime = sorted(n for n in self.runtime if n != self.own)
        hints = sorted(n for n in self.hints - self.runtime if n != self.own)
        lines = [imp for n in runtime if (imp := self.ctx.binding_import(n))]
        hint_lines = [imp for n in hints if (imp := self.ctx.binding_import(n))]
        if hint_lines:
            if lines:
                lines.append("")
            lines.append("if TYPE_CHECKING:")
            lines.extend("    " + imp for imp in hint_lines)
        return lines


class FunctionGenerator:
    """Emits one bound method: guest body when sandboxed, native body otherwise"""

    def __init__(self, plan: CallPlan, binding: str, method_name: str):
        self.plan = plan
        self.binding = binding
        self.method_name = method_name
        self.fid = plan.entry.func_id

    def slot_lines(self) -> list[str]:
        lines = [f"_FN_{self.fid} = FuncSlot(func_ids.{func_id_name(self.plan.entry)}, "
                 f"{self.plan.native_prototype()})"]
        if self.plan.containers:
            lines.append(f"_PARAMS_{self.fid} = once_cell()")
        return lines

    def generate(self) -> list[str]:
        plan = self.plan
        lines = []
        if plan.is_static:
            lines.append("@staticmethod")
        lines.append(f"def {self.method_name}({plan.signature()}) -> {plan.return_annotation()}:")
        body = list(plan.default_lines())
        body.extend(self._guest_body())
        body.extend(self._native_body())
        lines.extend(indent(body))
        lines.append("")
        return indent(lines)

    def _container_prelude(self) -> list[str]:
        if not self.plan.containers:
            return []
        return [self.plan.container_lookup(self.binding, f"_PARAMS_{self.fid}")]

    def _call_tail(self, call: str, writeback: list[str], results: list[str], guest: bool) -> list[str]:
        lines = [
            f"_err = {call}",
            f'ffi_infallible_ctx(_err, "{self.plan.label}")',
        ]
        lines.extend(writeback)
        # the guest branch must not fall through into the native body
        lines.extend(CallPlan.return_statement(results) or (["return"] if guest else []))
        return lines

    def _guest_body(self) -> list[str]:
        plan = self.plan
        if not plan.sandbox_ok:
            return [
                "if is_guest():",
                f'    raise InvalidOperationError("{plan.label} exceeds the sandbox import arity")',
            ]
        call = f'_env.call("{plan.import_name()}"{"".join(", " + a for a in plan.guest_args())})'
        inner = plan.container_populate() + plan.guest_prep()
        inner += self._call_tail(call, plan.guest_writeback(), plan.guest_results(), True)
        scopes = "_env.scratch() as _s"
        if plan.containers:
            scopes += ", temp_containers(*_props) as _bases"
        lines = ["_env = guest_env()"] + self._container_prelude() + [f"with {scopes}:"]
        lines.extend(indent(inner))
        return ["if is_guest():"] + indent(lines)

    def _native_body(self) -> list[str]:
        plan = self.plan
        call = f"_fn({', '.join(plan.native_args())})"
        inner = plan.container_populate() + [f"_fn = _FN_{self.fid}.resolve()"] + plan.native_prep()
        inner += self._call_tail(call, plan.native_writeback(), plan.native_results(), False)
        if not plan.containers:
            return inner
        lines = self._container_prelude() + ["with temp_containers(*_props) as _bases:"]
        lines.extend(indent(inner))
        return lines


class ClassGenerator:
    """Generates the binding module of one class"""

    def __init__(self, ctx: CodegenContext, class_info: ClassInfo, entries: list[FuncEntry]):
        self.ctx = ctx
        self.c = class_info
        self.entries = entries
        self.refs = TypeRefs(ctx, class_info.name)
        self.functions: list[tuple[str, CallPlan]] = []
        self.accessors: list[PropertyAccessor] = []
        self.delegates: list[DelegateInfo] = []
        self._collect()

    @property
    def parent(self) -> Optional[str]:
        sup = self.c.super_class
        return sup if sup and sup in self.ctx.classes and sup != self.c.name else None

    def _collect(self):
        c = self.c
        plans = []
        for entry in self.entries:
            name = escape_reserved(entry.py_func_name)
            if name in _BASE_MEMBERS:
                name += "_"
            plans.append((name, CallPlan(entry, self.ctx)))
        func_names = {name for name, _ in plans}

        self.accessors = collect_deduped_properties(c.props, self.ctx, c.name, True, func_names)
        taken = accessor_names(self.accessors)
        self.delegates = collect_delegate_props(c.name, c.props, self.ctx, taken)
        taken |= {d.accessor for d in self.delegates}

        used = set()
        for name, plan in plans:
            if name in taken or name in used:
                self.ctx.skip(c.name, plan.entry.func_name, f"method name {name} collides with an accessor")
                continue
            used.add(name)
            self.functions.append((name, plan))

        for a in self.accessors:
            self.refs.add_prop(a.prop, a.parts)
        for d in self.delegates:
            for param in d.prop.func_info.params or []:
                self.refs.add_prop(param)
        for _, plan in self.functions:
            for p in plan.params:
                self.refs.add_prop(p.param, p.parts)
        logger.debug("%s: %d accessors, %d delegates, %d functions", c.name,
                     len(self.accessors), len(self.delegates), len(self.functions))

    def generate(self) -> str:
        c = self.c
        lines = python_header(f"binding for class {c.name} ({c.package})")
        lines.append("from __future__ import annotations")
        lines.append("")
        lines.extend(RUNTIME_IMPORTS)
        lines.append("")
        lines.append("from .. import func_ids")
        if self.parent:
            lines.append(self.ctx.binding_import(self.parent))
            self.refs.hints.discard(self.parent)
        lines.extend(self.refs.lines())
        lines.extend(["", ""])

        lines.append("_PROPS = handle_cache()")
        lines.append("_OFFSETS = handle_cache()")
        for _, plan in self.functions:
            lines.extend(FunctionGenerator(plan, c.name, "").slot_lines())
        lines.extend(["", ""])

        for d in self.delegates:
            lines.extend(DelegateGenerator(c.name, d).generate_wrapper())
            lines.append("")

        lines.extend(self._class_body())
        return "\n".join(lines)

    def _class_body(self) -> list[str]:
        c = self.c
        base = self.parent or "UClassBinding"
        lines = banner(f"{c.name} Class")
        lines.extend([
            f"class {c.name}({base}):",
            f'    """{c.cpp_name}"""',
            "",
            f'    CLASS_NAME = "{c.name}"',
            "",
            "    __slots__ = ()",
            "",
        ])
        lines.extend(PropertyGenerator(self.ctx, c.name, c.name).generate(self.accessors))
        for d in self.delegates:
            lines.extend(DelegateGenerator(c.name, d).generate_accessor())
        for name, plan in self.functions:
            lines.extend(FunctionGenerator(plan, c.name, name).generate())
        return lines
