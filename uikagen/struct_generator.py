"""Struct Generator - byte-backed bindings for reflected structs"""

from .class_generator import TypeRefs
from .common_generator import RUNTIME_IMPORTS, banner, python_header
from .context import CodegenContext
from .property_generator import PropertyGenerator, collect_deduped_properties
from .types import StructInfo


class StructGenerator:
    """Generates one struct module.

    Struct values travel as opaque bytes. Field accessors address the bytes through
    the struct's reflected properties, so they are only emitted for structs the host
    can look up by name.
    """

    def __init__(self, ctx: CodegenContext, struct_info: StructInfo):
        self.ctx = ctx
        self.s = struct_info
        self.accessors = []
        if struct_info.has_static_struct:
            self.accessors = collect_deduped_properties(struct_info.props, ctx, struct_info.name, in_class=False)
        self.refs = TypeRefs(ctx, struct_info.name)
        for a in self.accessors:
            self.refs.add_prop(a.prop, a.parts)

    def generate(self) -> str:
        s = self.s
        lines = python_header(f"binding for struct {s.cpp_name} ({s.package})")
        lines.append("from __future__ import annotations")
        lines.append("")
        lines.extend(RUNTIME_IMPORTS)
        lines.append("")
        lines.extend(self.refs.lines())
        lines.extend(["", ""])
        lines.append("_PROPS = handle_cache()")
        lines.extend(["", ""])
        lines.extend(banner(f"{s.cpp_name} Struct"))
        lines.extend([
            f"class {s.cpp_name}(UStructBinding):",
            f'    """{s.cpp_name}"""',
            "",
            f'    STRUCT_NAME = "{s.name}"',
            "",
            "    __slots__ = ()",
            "",
        ])
        if s.has_static_struct:
            lines.extend(self._static_struct())
            lines.extend(PropertyGenerator(self.ctx, s.cpp_name, s.cpp_name, in_class=False).generate(self.accessors))
        return "\n".join(lines)

    def _static_struct(self) -> list[str]:
        return [
            "    @classmethod",
            "    def static_struct(cls):",
            "        return cls._find_static_struct()",
            "",
            "    @classmethod",
            f"    def new(cls) -> {self.s.cpp_name}:",
            '        """Zero-filled value sized by the host"""',
            "        return cls(bytes(dispatch().get_struct_size(cls.static_struct())))",
            "",
        ]
