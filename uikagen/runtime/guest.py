"""Guest-side environment for sandboxed execution.

Inside the sandbox, host pointers are not visible: buffers live in the guest's
linear memory and cross the boundary as (offset, length) pairs of plain integers.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Optional, Protocol

from . import wire
from .errors import InternalError

logger = logging.getLogger(__name__)

IMPORT_MODULE = "uika_fn"


class LinearMemory(Protocol):
    def read(self, ptr: int, size: int) -> bytes: ...
    def write(self, ptr: int, data: bytes) -> None: ...


class BytearrayMemory:
    """Flat linear memory with a bump-allocated scratch region"""

    PAGE = 65536

    def __init__(self, pages: int = 4, scratch_base: int = 1024):
        self.data = bytearray(self.PAGE * pages)
        self.scratch_base = scratch_base
        self._top = scratch_base

    def read(self, ptr: int, size: int) -> bytes:
        self._check(ptr, size)
        return bytes(self.data[ptr:ptr + size])

    def write(self, ptr: int, data: bytes):
        self._check(ptr, len(data))
        self.data[ptr:ptr + len(data)] = data

    def _check(self, ptr: int, size: int):
        if ptr < 0 or size < 0 or ptr + size > len(self.data):
            raise InternalError(f"linear memory access out of bounds: {ptr}+{size}")

    def alloc(self, size: int, align: int = 8) -> int:
        ptr = (self._top + align - 1) & ~(align - 1)
        self._check(ptr, size)
        self._top = ptr + size
        return ptr

    @property
    def top(self) -> int:
        return self._top

    def release(self, mark: int):
        self._top = mark


class Scratch:
    """Per-call staging area in linear memory"""

    def __init__(self, memory: BytearrayMemory):
        self.memory = memory

    def alloc(self, size: int) -> int:
        ptr = self.memory.alloc(max(size, 1))
        self.memory.write(ptr, bytes(size))
        return ptr

    def put(self, data: bytes) -> tuple[int, int]:
        ptr = self.memory.alloc(max(len(data), 1))
        self.memory.write(ptr, data)
        return ptr, len(data)

    def read(self, ptr: int, size: int) -> bytes:
        return self.memory.read(ptr, size)

    def read_value(self, ptr: int, wire_type: str):
        return wire.unpack(wire_type, self.memory.read(ptr, wire.size_of(wire_type)))


ImportResolver = Callable[[str, str], Callable]


class GuestEnv:
    """Linear memory plus the resolver for `uika_fn` imports"""

    def __init__(self, memory: BytearrayMemory, resolve_import: ImportResolver):
        self.memory = memory
        self.resolve_import = resolve_import
        self._imports: dict[str, Callable] = {}

    def call(self, name: str, *args) -> int:
        fn = self._imports.get(name)
        if fn is None:
            fn = self._imports[name] = self.resolve_import(IMPORT_MODULE, name)
        return fn(*args)

    @contextmanager
    def scratch(self):
        mark = self.memory.top
        try:
            yield Scratch(self.memory)
        finally:
            self.memory.release(mark)


_env: Optional[GuestEnv] = None


def install_guest_env(env: GuestEnv):
    global _env
    _env = env
    logger.info("Guest environment installed")


def uninstall_guest_env():
    global _env
    _env = None


def guest_env() -> GuestEnv:
    if _env is None:
        raise InternalError("no guest environment installed")
    return _env


def is_guest() -> bool:
    return _env is not None
