import struct

import pytest

from builders import FakeHost, read_c, write_c
from uikagen.runtime import cache
from uikagen.runtime.api import InternalError, dispatch, init_api, shutdown_api
from uikagen.runtime.containers import UeMap, UeSet, elements, temp_containers
from uikagen.runtime.dynamic_call import DynamicCall
from uikagen.runtime.errors import (
    FunctionNotFoundError, IndexOutOfRangeError, InternalError as RuntimeInternalError, InvalidOperationError,
    ObjectDestroyedError, PropertyNotFoundError, UikaErrorCode, check_ffi, check_ffi_ctx, error_from_code,
)
from uikagen.runtime.guest import BytearrayMemory
from uikagen.runtime.handles import (
    FNameHandle, OwnedStruct, UClassBinding, UObjectRef, WeakObjectRef, struct_bytes, update_struct,
)
from uikagen.runtime.wire import from_wasm, pack, size_of, to_wasm, unpack, wrap_int


@pytest.fixture
def host():
    fake = FakeHost()
    init_api(fake, [])
    return fake


# ── Wire ──────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("value, wire, expected", [
    (255, "i8", -1),
    (-1, "u16", 65535),
    (2 ** 32, "u32", 0),
    (-129, "i8", 127),
])
def test_wrap_int(value, wire, expected):
    assert wrap_int(value, wire) == expected


def test_pack_unpack():
    assert pack("u8", -1) == b"\xff"
    assert unpack("handle", pack("handle", None)) is None
    assert unpack("f64", pack("f64", 0.5)) == 0.5
    assert size_of("name") == 8


def test_wasm_slots():
    handle = 0xFFFF_8000_0000_1000
    assert to_wasm("handle", handle) < 0
    assert from_wasm("handle", to_wasm("handle", handle)) == handle
    assert from_wasm("handle", 0) is None
    assert to_wasm("bool", True) == 1 and from_wasm("bool", 2) is True
    assert to_wasm("u32", 0xFFFF_FFFF) == -1
    assert from_wasm("u32", -1) == 0xFFFF_FFFF


# ── Errors ────────────────────────────────────────────────────────────────

def test_error_codes():
    assert isinstance(error_from_code(UikaErrorCode.OBJECT_DESTROYED), ObjectDestroyedError)
    assert str(error_from_code(42)) == "internal error: unknown error code 42"
    check_ffi(UikaErrorCode.OK)
    with pytest.raises(IndexOutOfRangeError):
        check_ffi(UikaErrorCode.INDEX_OUT_OF_RANGE)
    with pytest.raises(FunctionNotFoundError, match="Actor.Jump"):
        check_ffi_ctx(UikaErrorCode.FUNCTION_NOT_FOUND, "Actor.Jump")
    with pytest.raises(ObjectDestroyedError) as info:
        check_ffi_ctx(UikaErrorCode.OBJECT_DESTROYED, "Actor.Jump")
    assert info.value.detail == ""
    assert InternalError is RuntimeInternalError


# ── Caches ────────────────────────────────────────────────────────────────

def test_once_cell_and_reset():
    cell = cache.once_cell()
    calls = []
    assert cell.get() is None
    assert cell.get_or_init(lambda: calls.append(1) or 7) == 7
    assert cell.get_or_init(lambda: calls.append(1) or 8) == 7
    assert calls == [1]

    handles = cache.handle_cache()
    handles.get_or_init(("Actor", "Health"), lambda: 0x10)
    assert len(handles) == 1
    cache.reset_all()
    assert cell.get() is None
    assert len(handles) == 0


def test_shutdown_drops_cached_lookups(host):
    class Pawn(UClassBinding):
        CLASS_NAME = "Pawn"

    first = Pawn.static_class()
    shutdown_api()
    other = FakeHost()
    other._next = 0x9000
    init_api(other, [])
    assert Pawn.static_class() != first


# ── Handles ───────────────────────────────────────────────────────────────

def test_object_handles(host):
    class Pawn(UClassBinding):
        CLASS_NAME = "Pawn"

    live = host.spawn()
    assert Pawn.checked(live).handle == live
    assert Pawn.checked(UObjectRef(live)) == Pawn(live)
    with pytest.raises(ObjectDestroyedError):
        Pawn.checked(None)
    host.destroy(live)
    assert not UObjectRef(live).is_valid()
    assert UObjectRef.null().is_null


def test_names(host):
    name = FNameHandle.from_str("Hero")
    assert name.to_str() == "Hero"
    assert int(FNameHandle.NONE) == 0


def test_struct_values():
    value = OwnedStruct(b"\x01\x02\x03")
    assert struct_bytes(value) == b"\x01\x02\x03"
    assert value.as_ptr() == value.as_ptr()
    update_struct(value, b"\x09\x09\x09\x09")
    assert value.as_bytes() == b"\x09\x09\x09"
    buf = bytearray(2)
    update_struct(buf, b"\x05")
    assert buf == bytearray(b"\x05\x00")
    with pytest.raises(TypeError):
        update_struct(b"immutable", b"\x00")


def test_weak_refs(host):
    live = host.spawn()
    weak = WeakObjectRef.from_ref(UObjectRef(live))
    assert weak.is_valid()
    assert weak.get() == UObjectRef(live)

    host.destroy(live)
    assert not weak.is_valid()
    assert weak.get() is None
    assert WeakObjectRef.from_ref(None).get() is None


# ── Containers ────────────────────────────────────────────────────────────

def test_temp_containers_freed_when_a_later_alloc_fails(host, monkeypatch):
    allocate = host.alloc_temp
    monkeypatch.setattr(host, "alloc_temp", lambda prop: None if prop == 2 else allocate(prop))
    with pytest.raises(RuntimeInternalError, match="alloc_temp"):
        with temp_containers(1, 2):
            pass
    assert host.alloc_count == host.free_count == 1


def test_map_and_set_views(host):
    owner = host.spawn()
    scores = UeMap(owner, 0x1, elements.STRING, elements.F32)
    scores.add("a", 1.0)
    scores.add("b", 2.0)
    scores.add("a", 3.0)
    assert len(scores) == 2
    assert scores.find("a") == 3.0
    assert scores.find("zz") is None
    assert "b" in scores
    assert scores.to_dict() == {"b": 2.0, "a": 3.0}
    assert list(scores.items()) == [("b", 2.0), ("a", 3.0)]

    ids = UeSet(owner, 0x2, elements.I64)
    ids.extend([4, 4, 5])
    assert len(ids) == 2
    assert 5 in ids
    ids.remove(4)
    assert ids.to_list() == [5]
    assert dispatch() is host


def test_linear_memory_bounds():
    memory = BytearrayMemory(pages=1)
    with pytest.raises(RuntimeInternalError, match="out of bounds"):
        memory.read(BytearrayMemory.PAGE - 2, 4)


# ── Reflection calls ──────────────────────────────────────────────────────

@pytest.fixture
def heal(host):
    host.offsets.update({"Amount": 0, "Scale": 8, "ReturnValue": 16})

    def fn(obj, params):
        amount = struct.unpack("<i", read_c(params, 4))[0]
        scale = struct.unpack("<d", read_c(params + 8, 8))[0]
        write_c(params + 16, struct.pack("<d", amount * scale))
        return UikaErrorCode.OK

    host.functions["Heal"] = fn
    return host.spawn()


def test_dynamic_call(host, heal):
    with DynamicCall(heal, "Heal") as call:
        call.set("Amount", 4, "i32").set("Scale", 0.5, "f64").call()
        assert call.get("ReturnValue", "f64") == 2.0
    assert host.param_blocks == {}
    assert host.freed_params == 1
    with pytest.raises(InvalidOperationError, match="already closed"):
        call.call()


def test_dynamic_call_lookup_failures(host, heal):
    host.missing.update({"Jump", "Speed"})
    with pytest.raises(FunctionNotFoundError, match="Jump"):
        DynamicCall(heal, "Jump")
    assert host.param_blocks == {}

    with DynamicCall(heal, "Heal") as call:
        with pytest.raises(PropertyNotFoundError, match="Heal.Speed"):
            call.set("Speed", 1, "i32")
    assert host.freed_params == 1

    host.destroy(heal)
    with pytest.raises(ObjectDestroyedError):
        DynamicCall(heal, "Heal")


def test_dynamic_call_frees_params_on_failure(host, heal):
    host.functions["Heal"] = lambda obj, params: UikaErrorCode.INVALID_OPERATION
    with pytest.raises(InvalidOperationError, match="Heal"):
        with DynamicCall(heal, "Heal") as call:
            call.call()
    assert host.param_blocks == {}
