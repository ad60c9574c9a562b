"""C++ Generator - extern "C" wrappers implementing the native call ABI"""

from .call_plan import CallPlan, ParamPlan
from .common_generator import cpp_header
from .type_mapper import ParamDirection

_C_TYPES = {
    'c_bool': 'bool', 'c_int8': 'int8', 'c_uint8': 'uint8', 'c_int16': 'int16', 'c_uint16': 'uint16',
    'c_int32': 'int32', 'c_uint32': 'uint32', 'c_int64': 'int64', 'c_uint64': 'uint64',
    'c_float': 'float', 'c_double': 'double', 'c_void_p': 'void*',
}


def _pascal(name: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part) or "Arg"


def cpp_wrapper_name(entry) -> str:
    return f"Uika_{entry.class_name}_{entry.func_name}"


def wrapper_signature(plan: CallPlan) -> str:
    return f"uint32 {cpp_wrapper_name(plan.entry)}({', '.join(_params(plan))})"


def _params(plan: CallPlan) -> list[str]:
    params = [] if plan.is_static else ["void* Obj"]
    for p in plan.params:
        n = _pascal(p.name)
        if p.is_container:
            params += [f"void* {n}Base", f"void* {n}Prop"]
        elif p.is_input and p.is_string:
            params += [f"const char* {n}Data", f"uint32 {n}Len"]
            if p.direction == ParamDirection.IN_OUT:
                params += [f"char* {n}Buf", f"uint32 {n}BufLen", f"uint32* {n}OutLen"]
        elif p.is_struct:
            params.append(f"{'const ' if p.direction == ParamDirection.IN else ''}void* {n}")
        elif p.is_input:
            params.append(f"{_C_TYPES[p.ctype]} {n}")
        elif p.is_string:
            params += [f"char* {n}Buf", f"uint32 {n}BufLen", f"uint32* {n}OutLen"]
        else:
            params.append(f"{_C_TYPES[p.ctype]}* {n}")
    return params


class CppGenerator:
    """Generates UikaFunc_<module>_<class>.cpp for the entries of one class.

    Every wrapper validates the target, stages its arguments in a parameter block
    sized from the reflected function, invokes it and copies the outputs back out.
    """

    def __init__(self, module: str, class_name: str, plans: list[CallPlan]):
        self.module = module
        self.class_name = class_name
        self.plans = plans

    @property
    def file_name(self) -> str:
        return f"UikaFunc_{self.module}_{self.class_name}.cpp"

    def generate(self) -> str:
        lines = cpp_header()
        headers = sorted({p.entry.header for p in self.plans if p.entry.header})
        lines.extend([
            '#include "UikaFuncIds.h"',
            '#include "UikaParamBlock.h"',
        ])
        lines.extend(f'#include "{h}"' for h in headers)
        lines.extend(["", 'extern "C" {', ""])
        for plan in self.plans:
            lines.extend(self._wrapper(plan))
        lines.append('} // extern "C"')
        lines.append("")
        return "\n".join(lines)

    def _copy_in(self, p: ParamPlan) -> list[str]:
        n, ue = _pascal(p.name), p.param.name
        if p.is_container:
            return [f'    Block.CopyContainerIn(TEXT("{ue}"), {n}Base, {n}Prop);'] if p.is_input else []
        if not p.is_input:
            return []
        if p.is_string:
            return [f'    Block.SetString(TEXT("{ue}"), {n}Data, {n}Len);']
        if p.is_struct:
            return [f'    Block.SetRaw(TEXT("{ue}"), {n});']
        return [f'    Block.SetValue(TEXT("{ue}"), {n});']

    def _copy_out(self, p: ParamPlan) -> list[str]:
        n, ue = _pascal(p.name), p.param.name
        if p.direction == ParamDirection.IN:
            return []
        if p.is_container:
            return [f'    Block.CopyContainerOut(TEXT("{ue}"), {n}Base, {n}Prop);']
        if p.is_string:
            return [f'    Block.GetString(TEXT("{ue}"), {n}Buf, {n}BufLen, {n}OutLen);']
        if p.is_struct:
            return [f'    Block.GetRaw(TEXT("{ue}"), {n});']
        if p.direction == ParamDirection.IN_OUT:
            return []
        return [f'    Block.GetValue(TEXT("{ue}"), {n});']

    def _wrapper(self, plan: CallPlan) -> list[str]:
        entry = plan.entry
        lines = [
            f"// {plan.label} (FuncId {entry.func_id})",
            wrapper_signature(plan),
            "{",
        ]
        if plan.is_static:
            lines.append(f"    UObject* Target = {entry.cpp_class_name}::StaticClass()->GetDefaultObject();")
        else:
            lines.append("    UObject* Target = static_cast<UObject*>(Obj);")
            lines.append("    if (!IsValid(Target)) return UIKA_OBJECT_DESTROYED;")
        lines.extend([
            "    static UFunction* Func = "
            f'{entry.cpp_class_name}::StaticClass()->FindFunctionByName(TEXT("{plan.func.lookup_name}"));',
            "    if (!Func) return UIKA_FUNCTION_NOT_FOUND;",
            "    FUikaParamBlock Block(Func);",
        ])
        for p in plan.params:
            lines.extend(self._copy_in(p))
        lines.append("    Block.Invoke(Target);")
        for p in plan.params:
            lines.extend(self._copy_out(p))
        lines.extend([
            "    return UIKA_OK;",
            "}",
            "",
        ])
        return lines
