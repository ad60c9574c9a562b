import struct

from uikagen.runtime import delegates
from uikagen.runtime.handles import UObjectRef


def hit_params(damage, instigator):
    return struct.pack("<f4xQ", damage, instigator)


def test_registry_ids_and_invoke():
    seen = []
    first = delegates.register_callback(seen.append)
    second = delegates.register_callback(seen.append)
    assert second == first + 1
    delegates.invoke(first, 0x40)
    delegates.invoke(999, 0x50)
    assert seen == [0x40]

    delegates.clear_all()
    assert delegates.registered_count() == 0
    assert delegates.register_callback(seen.append) == 1


def test_callback_may_unregister_itself():
    calls = []

    def once(params):
        calls.append(params)
        delegates.unregister_callback(callback_id)

    callback_id = delegates.register_callback(once)
    delegates.invoke(callback_id, None)
    delegates.invoke(callback_id, None)
    assert calls == [None]
    assert delegates.registered_count() == 0


def test_callback_restored_after_raising():
    def boom(params):
        raise RuntimeError("boom")

    callback_id = delegates.register_callback(boom)
    try:
        delegates.invoke(callback_id, None)
    except RuntimeError:
        pass
    assert delegates._registry[callback_id] is boom


def test_multicast_wrapper(native):
    native.host.offsets.update({"Damage": 0, "Instigator": 8})
    actor = native.actor
    got = []

    binding = actor.on_hit().add(lambda damage, instigator: got.append((damage, instigator)))
    actor.on_hit().broadcast(hit_params(12.5, actor.handle))
    assert got == [(12.5, UObjectRef(actor.handle))]

    binding.unbind()
    assert not binding.bound
    actor.on_hit().broadcast(hit_params(1.0, 0))
    assert len(got) == 1
    assert delegates.registered_count() == 0


def test_unbind_during_broadcast(native):
    actor = native.actor
    got = []

    def first(damage, instigator):
        got.append("first")
        binding.unbind()

    binding = actor.on_hit().add(first)
    with actor.on_hit().add(lambda damage, instigator: got.append("second")):
        actor.on_hit().broadcast(hit_params(0.0, 0))
        actor.on_hit().broadcast(hit_params(0.0, 0))
    assert got == ["first", "second", "second"]
    assert delegates.registered_count() == 0
