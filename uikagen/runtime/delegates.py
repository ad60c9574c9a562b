"""Delegate callback registry and bindings.

The host fires a delegate by calling `invoke_delegate_callback(callback_id, params)`;
`params` is the address of the signature's parameter block.
"""

import logging
from typing import Callable, Optional

from . import wire
from .api import DelegateCallbackFn, UikaCallbacks, dispatch, is_api_initialized, read_memory
from .errors import UikaErrorCode, check_ffi

logger = logging.getLogger(__name__)

DelegateCallback = Callable[[Optional[int]], None]

_registry: dict[int, Optional[DelegateCallback]] = {}
_next_id = 1


def register_callback(callback: DelegateCallback) -> int:
    global _next_id
    callback_id = _next_id
    _next_id += 1
    _registry[callback_id] = callback
    return callback_id


def unregister_callback(callback_id: int):
    _registry.pop(callback_id, None)


def clear_all():
    """Drop every callback and restart ids at 1"""
    global _next_id
    _registry.clear()
    _next_id = 1


def invoke(callback_id: int, params: Optional[int]):
    # Take the callback out while it runs: it may unregister itself or others.
    callback = _registry.get(callback_id)
    if callback is None:
        return
    _registry[callback_id] = None
    try:
        callback(params)
    finally:
        # Put back only if nobody removed or replaced the slot meanwhile
        if callback_id in _registry and _registry[callback_id] is None:
            _registry[callback_id] = callback


def registered_count() -> int:
    return len(_registry)


class DelegateBinding:
    """Live binding; `unbind()` (or leaving a `with` block) detaches it"""

    def __init__(self, callback_id: int, owner, prop, is_multicast: bool):
        self.callback_id = callback_id
        self.owner = owner
        self.prop = prop
        self.is_multicast = is_multicast
        self._bound = True

    @property
    def bound(self) -> bool:
        return self._bound

    def unbind(self):
        if not self._bound:
            return
        self._bound = False
        unregister_callback(self.callback_id)
        if not is_api_initialized():
            return
        host = dispatch()
        if self.is_multicast:
            code = host.remove_multicast(self.owner, self.prop, self.callback_id)
        else:
            code = host.unbind_delegate(self.owner, self.prop)
        if code != UikaErrorCode.OK:
            logger.debug("Delegate %d unbind returned %d", self.callback_id, code)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.unbind()


def bind_unicast(owner, prop, callback: DelegateCallback) -> DelegateBinding:
    callback_id = register_callback(callback)
    code = dispatch().bind_delegate(owner, prop, callback_id)
    if code != UikaErrorCode.OK:
        unregister_callback(callback_id)
        check_ffi(code)
    return DelegateBinding(callback_id, owner, prop, False)


def bind_multicast(owner, prop, callback: DelegateCallback) -> DelegateBinding:
    callback_id = register_callback(callback)
    code = dispatch().add_multicast(owner, prop, callback_id)
    if code != UikaErrorCode.OK:
        unregister_callback(callback_id)
        check_ffi(code)
    return DelegateBinding(callback_id, owner, prop, True)


def read_param(params: int, offset: int, wire_type: str):
    """Read one signature parameter out of a host parameter block"""
    return wire.unpack(wire_type, read_memory(params + offset, wire.size_of(wire_type)))


def _invoke_from_host(callback_id, params):
    try:
        invoke(callback_id, params)
    except Exception:
        # Nothing can propagate through the host's call frame
        logger.exception("Delegate callback %d raised", callback_id)


_host_callbacks: Optional[UikaCallbacks] = None


def host_callbacks() -> UikaCallbacks:
    """Callback table for the host; the same instance must stay alive while bound"""
    global _host_callbacks
    if _host_callbacks is None:
        _host_callbacks = UikaCallbacks(DelegateCallbackFn(_invoke_from_host))
    return _host_callbacks
