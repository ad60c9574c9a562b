import struct

import pytest

from uikagen.runtime.errors import InternalError, InvalidOperationError
from uikagen.runtime.handles import OwnedStruct


def test_scalar_call(native):
    assert native.actor.add(2, 3) == 5
    assert native.actor.add(-7, 2) == -5


def test_default_argument(native):
    assert native.actor.scale(1.5) == 3.0
    assert native.actor.scale(1.5, 3.0) == 4.5


def test_string_in_and_multiple_outputs(native):
    assert native.actor.describe("hi") == ("hi!", 3)
    assert native.actor.describe("héllo") == ("héllo!", 7)


def test_struct_return(native):
    location = native.actor.get_actor_location()
    assert isinstance(location, OwnedStruct)
    assert struct.unpack_from("<3d", location.as_bytes()) == (1.0, 2.0, 3.0)


def test_enum_conversions(native):
    EColor = native.pkg.engine.EColor
    ESigned = native.pkg.engine.ESigned
    assert native.actor.current_color() is EColor.Blue

    native.actor.set_signed(ESigned.All)
    native.actor.set_signed(ESigned.Invalid)
    assert native.natives.calls == [("set_signed", 255), ("set_signed", 254)]


def test_container_round_trip(native):
    assert native.actor.sum([1, 2, 3, 4]) == 10
    assert native.actor.range(4) == [0, 1, 2, 3]
    assert native.host.alloc_count == native.host.free_count == 2


def test_temporaries_freed_when_call_fails(native):
    native.natives.sum_code = 9
    with pytest.raises(AssertionError, match="INTERNAL_ERROR"):
        native.actor.sum([1])
    assert native.host.alloc_count == native.host.free_count == 1


def test_overloads_and_static(native):
    native.actor.overload(1)
    native.actor.overload_1(1, 2)
    assert native.natives.calls == [("overload", 1), ("overload_1", 1, 2)]
    assert native.pkg.engine.Actor.get_default_health() == 100.0


def test_arity_ceiling_only_applies_to_guests(native):
    native.actor.wide(*range(15))
    assert native.natives.calls == [("wide", sum(range(15)))]


def test_setter_yields_to_function(native):
    Actor = native.pkg.engine.Actor
    native.actor.set_label("Hero")
    assert native.natives.calls == [("set_label", "Hero")]
    assert hasattr(Actor, "get_label")
    # the colliding function is left out of the class but keeps its table slot
    assert not hasattr(native.actor_module, f"_FN_{native.pkg.func_ids.ENGINE__ACTOR__GET_COLOR}")
    assert any(s.member == "GetColor" and "collides" in s.reason for s in native.ctx.skipped)


def test_uninitialized_api(bindings):
    actor = bindings.pkg.engine.Actor(0x10)
    with pytest.raises(InternalError, match="API not initialized"):
        actor.add(1, 2)


def test_guest_rejects_functions_over_the_ceiling(sandboxed):
    with pytest.raises(InvalidOperationError, match="Actor.Wide"):
        sandboxed.actor.wide(*range(15))
    assert sandboxed.natives.calls == []


# ── In-out strings, sets and maps ─────────────────────────────────────────

def test_in_out_string(tally):
    assert tally.tally.echo("héllo") == "HÉLLO"
    assert tally.tally.echo("") == ""


def test_set_and_map_arguments(tally):
    assert tally.tally.count([3, 3, 4], {"a": 1, "b": 2}) == 10
    # a list of pairs keeps the last value of a repeated key
    assert tally.tally.count([], [("a", 5), ("a", 6)]) == 6
    assert tally.natives.seen == [([3, 4], [("a", 1), ("b", 2)]), ([], [("a", 6)])]
    assert tally.host.alloc_count == tally.host.free_count == 4


def test_set_result(tally):
    assert tally.tally.keys({"x": 1, "y": 2}) == ["x", "y"]
    assert tally.host.alloc_count == tally.host.free_count == 2


def test_set_and_map_temporaries_freed_when_call_fails(tally):
    tally.natives.count_code = 9
    with pytest.raises(AssertionError, match="INTERNAL_ERROR"):
        tally.tally.count([1], {"a": 1})
    assert tally.host.alloc_count == tally.host.free_count == 2
