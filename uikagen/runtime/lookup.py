"""Reflection lookups used by generated accessors, container calls and delegates.

Lookups that come back null raise the typed error; successful results are cached
by the caller in a write-once cell.
"""

from .api import dispatch
from .errors import FunctionNotFoundError, PropertyNotFoundError


def find_class_property(binding, name: str):
    """Property handle of `binding`'s class"""
    prop = dispatch().find_property(binding.static_class(), name)
    if not prop:
        raise PropertyNotFoundError(f"{binding.CLASS_NAME}.{name}")
    return prop


def find_struct_property(binding, name: str):
    prop = dispatch().find_struct_property(binding.static_struct(), name)
    if not prop:
        raise PropertyNotFoundError(f"{binding.STRUCT_NAME}.{name}")
    return prop


def find_function(binding, func_name: str):
    func = dispatch().find_function_by_class(binding.static_class(), func_name)
    if not func:
        raise FunctionNotFoundError(f"{binding.CLASS_NAME}.{func_name}")
    return func


def function_param_props(binding, func_name: str, param_names) -> tuple:
    """Property handles of a function's parameters, looked up by original name"""
    func = find_function(binding, func_name)
    props = []
    for name in param_names:
        prop = dispatch().get_function_param(func, name)
        if not prop:
            raise PropertyNotFoundError(f"{func_name}.{name}")
        props.append(prop)
    return tuple(props)


def function_param_offsets(binding, func_name: str, param_names) -> tuple:
    """Byte offsets of a signature's parameters inside its parameter block"""
    host = dispatch()
    return tuple(host.get_property_offset(p) for p in function_param_props(binding, func_name, param_names))
