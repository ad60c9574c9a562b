"""Reflection call by name, for functions the generated bindings do not cover.

Parameters are located by name in the host-allocated parameter block. Nothing checks
the wire tag given to `set` / `get` against the parameter's property type; a wrong tag
reads or writes the wrong bytes.

    with DynamicCall(actor, "ApplyDamage") as call:
        call.set("Amount", 12.5, "f32").call()
        dealt = call.get("ReturnValue", "f32")
"""

import ctypes

from . import wire
from .api import dispatch
from .errors import FunctionNotFoundError, InternalError, InvalidOperationError, PropertyNotFoundError, \
    check_ffi_ctx
from .handles import UObjectRef, name_value, raw_handle


class DynamicCall:
    """One parameter block for one function; freed by `close()` or on leaving the `with` block"""

    def __init__(self, obj, func_name: str):
        raw = UObjectRef(raw_handle(obj)).checked().raw
        host = dispatch()
        func = host.find_function(raw, func_name)
        if not func:
            raise FunctionNotFoundError(func_name)
        params = host.alloc_params(func)
        if not params:
            raise InternalError(f"alloc_params returned null for {func_name}")
        self.obj = raw
        self.func = func
        self.func_name = func_name
        self.params = params

    def _address(self, name: str) -> int:
        if not self.params:
            raise InvalidOperationError(f"{self.func_name} call already closed")
        host = dispatch()
        prop = host.get_function_param(self.func, name)
        if not prop:
            raise PropertyNotFoundError(f"{self.func_name}.{name}")
        return self.params + host.get_property_offset(prop)

    def set(self, name: str, value, wire_type: str) -> "DynamicCall":
        if wire_type == 'handle':
            value = raw_handle(value)
        elif wire_type == 'name':
            value = name_value(value)
        data = wire.pack(wire_type, value)
        ctypes.memmove(self._address(name), data, len(data))
        return self

    def get(self, name: str, wire_type: str):
        return wire.unpack(wire_type, ctypes.string_at(self._address(name), wire.size_of(wire_type)))

    def call(self) -> "DynamicCall":
        if not self.params:
            raise InvalidOperationError(f"{self.func_name} call already closed")
        check_ffi_ctx(dispatch().call_function(self.obj, self.func, self.params), self.func_name)
        return self

    def close(self):
        if self.params:
            params, self.params = self.params, None
            dispatch().free_params(self.func, params)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
