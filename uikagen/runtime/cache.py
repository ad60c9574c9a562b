"""Write-once caches for handle and function pointer lookups"""

from typing import Callable, Generic, Hashable, Optional, TypeVar

T = TypeVar('T')

_UNSET = object()


class OnceCell(Generic[T]):
    """Lazily computed, process-lifetime value.

    Initialization is idempotent rather than exclusive: two racing callers may both
    run `init`, and the first stored result wins.
    """

    __slots__ = ('_value',)

    def __init__(self):
        self._value = _UNSET

    def get_or_init(self, init: Callable[[], T]) -> T:
        if self._value is _UNSET:
            value = init()
            if self._value is _UNSET:
                self._value = value
        return self._value

    def get(self) -> Optional[T]:
        return None if self._value is _UNSET else self._value

    def reset(self):
        self._value = _UNSET


class HandleCache:
    """Write-once cells keyed by a stable identity such as (owner, name)"""

    def __init__(self):
        self._cells: dict[Hashable, object] = {}

    def get_or_init(self, key: Hashable, init: Callable[[], T]) -> T:
        try:
            return self._cells[key]
        except KeyError:
            return self._cells.setdefault(key, init())

    def clear(self):
        self._cells.clear()

    reset = clear

    def __len__(self):
        return len(self._cells)


# Every generated property/function cache registers here so shutdown can drop them
_all_cells: list = []


def once_cell() -> OnceCell:
    cell = OnceCell()
    _all_cells.append(cell)
    return cell


def handle_cache() -> HandleCache:
    cache = HandleCache()
    _all_cells.append(cache)
    return cache


def reset_all():
    for cell in _all_cells:
        cell.reset()


class FuncSlot:
    """Function table entry resolved once into a callable ctypes prototype"""

    def __init__(self, func_id: int, prototype):
        self.func_id = func_id
        self.prototype = prototype
        self._cell = once_cell()

    def resolve(self):
        from .api import api
        return self._cell.get_or_init(lambda: self.prototype(api().func_table[self.func_id]))
