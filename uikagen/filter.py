"""Exportability filter: access, type support, K2_ dedup, overload renaming"""

import logging
from collections import Counter
from typing import Optional

from .config import Blocklist
from .context import CodegenContext
from .type_mapper import TypeMapper
from .types import (
    CPF_NATIVE_ACCESS_PRIVATE, CPF_NATIVE_ACCESS_PROTECTED, FUNC_NATIVE,
    ClassInfo, FunctionInfo, ParamInfo, PropertyInfo,
)

logger = logging.getLogger(__name__)

# Convenience-wrapper prefix dropped when the unprefixed function exists
WRAPPER_PREFIX = "K2_"

# Fixed arrays of these types cannot be copied element-wise
_VARIABLE_LENGTH_TYPES = ("StrProperty", "NameProperty", "TextProperty")


def _referenced_types(p: PropertyInfo) -> list[str]:
    names = [p.class_name, p.struct_name, p.enum_name, p.interface_name]
    if p.prop_type == "ClassProperty":
        names.append(p.meta_class_name)
    return [n for n in names if n]


def _missing_reference(p: PropertyInfo, ctx: CodegenContext) -> Optional[str]:
    for name in _referenced_types(p):
        if not ctx.is_type_available(name):
            return name
    return None


def property_skip_reason(prop: PropertyInfo, ctx: CodegenContext) -> Optional[str]:
    """None when the property can be bound, else why not"""
    if not TypeMapper.is_supported(prop.prop_type):
        return f"unsupported type {prop.prop_type}"
    if prop.array_dim > 1 and prop.prop_type in _VARIABLE_LENGTH_TYPES:
        return f"fixed array of {prop.prop_type}"
    if prop.prop_flags & CPF_NATIVE_ACCESS_PRIVATE:
        return "private"
    if prop.prop_flags & CPF_NATIVE_ACCESS_PROTECTED:
        return "protected"
    if prop.is_delegate:
        return delegate_skip_reason(prop, ctx)
    if missing := _missing_reference(prop, ctx):
        return f"references unavailable type {missing}"
    return None


def delegate_skip_reason(prop: PropertyInfo, ctx: CodegenContext) -> Optional[str]:
    if prop.func_info is None:
        return "delegate without signature"
    for param in prop.func_info.params or []:
        if not TypeMapper.is_supported(param.prop_type):
            return f"delegate parameter {param.name} has unsupported type {param.prop_type}"
        if param.is_delegate or param.is_container:
            return f"delegate parameter {param.name} is a {param.prop_type}"
        for name in (param.class_name, param.struct_name, param.enum_name):
            if name and not ctx.is_type_available(name):
                return f"delegate parameter {param.name} references unavailable type {name}"
    return None


def _container_inners(param: ParamInfo) -> list[Optional[PropertyInfo]]:
    if param.prop_type == "ArrayProperty":
        return [param.inner_prop]
    if param.prop_type == "SetProperty":
        return [param.element_prop]
    return [param.key_prop, param.value_prop]


def _inner_exportable(inner: Optional[PropertyInfo], ctx: CodegenContext) -> bool:
    if inner is None or not TypeMapper.is_supported(inner.prop_type) or inner.is_container:
        return False
    return _missing_reference(inner, ctx) is None


def param_skip_reason(param: ParamInfo, ctx: CodegenContext, blocked_structs: set[str]) -> Optional[str]:
    if not TypeMapper.is_supported(param.prop_type):
        return f"parameter {param.name} has unsupported type {param.prop_type}"
    if param.is_delegate:
        return f"parameter {param.name} is a delegate"
    if param.is_container and not all(_inner_exportable(i, ctx) for i in _container_inners(param)):
        return f"container parameter {param.name} has unresolvable elements"
    if missing := _missing_reference(param, ctx):
        return f"parameter {param.name} references unavailable type {missing}"
    if param.struct_name in blocked_structs:
        return f"parameter {param.name} uses blocked struct {param.struct_name}"
    return None


def function_skip_reason(func: FunctionInfo, class_name: str, all_names: set[str], ctx: CodegenContext,
                         blocked_structs: set[str], blocked_functions: set[tuple[str, str]]) -> Optional[str]:
    if (class_name, func.name) in blocked_functions:
        return "blocked"
    if not func.func_flags & FUNC_NATIVE:
        return "not native"
    if func.name.startswith(WRAPPER_PREFIX) and func.name[len(WRAPPER_PREFIX):] in all_names:
        return f"duplicate of {func.name[len(WRAPPER_PREFIX):]}"
    for param in func.params:
        if reason := param_skip_reason(param, ctx, blocked_structs):
            return reason
    return None


def rename_overloads(funcs: list[FunctionInfo]):
    """Record lookup names, then rename repeats of a name to Name_1, Name_2, ... in order.

    The first declaration keeps the plain name.
    """
    for f in funcs:
        f.ue_name = f.name
    taken = {f.name for f in funcs}
    seen: Counter = Counter()
    for f in funcs:
        seen[f.ue_name] += 1
        if seen[f.ue_name] == 1:
            continue
        n = seen[f.ue_name] - 1
        while f"{f.ue_name}_{n}" in taken:
            n += 1
        f.name = f"{f.ue_name}_{n}"
        taken.add(f.name)


def filter_class(c: ClassInfo, ctx: CodegenContext, blocked_structs: set[str],
                 blocked_functions: set[tuple[str, str]]):
    kept_props = []
    for prop in c.props:
        reason = property_skip_reason(prop, ctx)
        if reason:
            ctx.skip(c.name, prop.name, reason)
        else:
            kept_props.append(prop)
    c.props = kept_props

    all_names = {f.name for f in c.funcs}
    kept_funcs = []
    for func in c.funcs:
        reason = function_skip_reason(func, c.name, all_names, ctx, blocked_structs, blocked_functions)
        if reason:
            ctx.skip(c.name, func.name, reason)
        else:
            kept_funcs.append(func)
    rename_overloads(kept_funcs)
    c.funcs = kept_funcs


def apply_filters(ctx: CodegenContext, blocklist: Blocklist):
    """Filter the context's classes in place"""
    blocked_classes = set(blocklist.classes)
    blocked_structs = set(blocklist.structs)
    blocked_functions = blocklist.function_tuples()

    for name in blocked_classes:
        ctx.classes.pop(name, None)

    before = len(ctx.skipped)
    for module, classes in ctx.module_classes.items():
        ctx.module_classes[module] = [c for c in classes if c.name not in blocked_classes]
        for c in ctx.module_classes[module]:
            filter_class(c, ctx, blocked_structs, blocked_functions)

    logger.info("Filtering skipped %d members", len(ctx.skipped) - before)
