"""Host side of the sandbox boundary: linker protocol and an in-process linker"""

import logging
from typing import Callable, Protocol

from .errors import FunctionNotFoundError
from .guest import BytearrayMemory, GuestEnv

logger = logging.getLogger(__name__)

# Value parameters an import may take; the host closure adds the caller on top
MAX_IMPORT_PARAMS = 15
MAX_HOST_PARAMS = 16


class Caller(Protocol):
    """Access to the calling guest's linear memory"""

    def read_memory(self, ptr: int, size: int) -> bytes: ...
    def write_memory(self, ptr: int, data: bytes) -> None: ...


class HostLinker(Protocol):
    def define_host_function(self, module: str, name: str, params: list[str], results: list[str],
                             func: Callable) -> None: ...


class MemoryCaller:
    """Caller over a BytearrayMemory"""

    def __init__(self, memory: BytearrayMemory):
        self.memory = memory

    def read_memory(self, ptr: int, size: int) -> bytes:
        return self.memory.read(ptr, size)

    def write_memory(self, ptr: int, data: bytes):
        self.memory.write(ptr, data)


class InProcessLinker:
    """Links guest imports straight to host functions in the same process"""

    def __init__(self):
        self.functions: dict[tuple[str, str], tuple[list[str], list[str], Callable]] = {}

    def define_host_function(self, module, name, params, results, func):
        # the caller occupies one host parameter slot
        if len(params) + 1 > MAX_HOST_PARAMS:
            raise ValueError(f"{module}.{name}: {len(params)} parameters exceed {MAX_IMPORT_PARAMS}")
        self.functions[(module, name)] = (list(params), list(results), func)

    def guest_env(self, memory: BytearrayMemory) -> GuestEnv:
        caller = MemoryCaller(memory)

        def resolve(module: str, name: str) -> Callable:
            try:
                _, _, func = self.functions[(module, name)]
            except KeyError:
                raise FunctionNotFoundError(f"{module}.{name}") from None
            return lambda *args: func(caller, *args)

        return GuestEnv(memory, resolve)
