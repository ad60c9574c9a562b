from builders import config, sample_schema
from uikagen.call_plan import build_plans
from uikagen.func_table_generator import FuncTableGenerator, func_id_name
from uikagen.pipeline import prepare_context

ACTOR_FUNCS = [
    "Add", "CurrentColor", "Describe", "GetActorLocation", "GetColor", "GetDefaultHealth",
    "Overload", "Overload_1", "Range", "Scale", "SetLabel", "SetSigned", "Sum", "Wide",
]


def table(schema=None, cfg=None):
    ctx = prepare_context(schema or sample_schema(), cfg or config())
    return ctx, [(e.func_id, e.module_name, e.class_name, e.func_name) for e in ctx.func_table]


def test_ids_dense_and_sorted():
    _, entries = table()
    assert [e[0] for e in entries] == list(range(len(entries)))
    assert [e[3] for e in entries] == ACTOR_FUNCS
    assert entries == sorted(entries, key=lambda e: e[1:])


def test_ids_independent_of_schema_order():
    _, first = table()
    schema = sample_schema()
    schema.classes.reverse()
    schema.classes[1].funcs.reverse()
    _, second = table(schema)
    assert [e[3] for e in second if e[3].startswith("Overload")] == ["Overload", "Overload_1"]
    # reversing the declarations swaps which overload keeps the plain name, but not the ids
    assert [e[:3] for e in first] == [e[:3] for e in second]
    assert [e[3] for e in first] == [e[3] for e in second]


def test_ids_span_modules():
    _, entries = table(cfg=config(features=("core", "game")))
    assert entries[-1] == (len(ACTOR_FUNCS) + 1, "game", "GameMode", "StartPlay")
    assert ("engine", "Actor", "SetGameMode") in [e[1:] for e in entries]


def test_generated_id_files():
    ctx, _ = table()
    gen = FuncTableGenerator(ctx)
    python = gen.generate_python()
    assert "ENGINE__ACTOR__ADD = 0" in python
    assert "ENGINE__ACTOR__OVERLOAD_1 = 7" in python
    assert f"FUNC_COUNT = {len(ACTOR_FUNCS)}" in python

    header = gen.generate_header()
    assert header.startswith("// AUTO-GENERATED - DO NOT EDIT")
    assert "    constexpr uint32 ENGINE__ACTOR__WIDE = 13;" in header
    assert f"    constexpr uint32 FUNC_COUNT = {len(ACTOR_FUNCS)};" in header
    assert gen.duplicate_names() == []

    fill = gen.generate_fill(build_plans(ctx))
    assert 'extern "C" uint32 Uika_Actor_Add(void* Obj, int32 A, int32 B, int32* ReturnValue);' in fill
    assert "FuncTable[UikaFuncIds::ENGINE__ACTOR__SUM] = reinterpret_cast<void*>(&Uika_Actor_Sum);" in fill
    assert fill.count("reinterpret_cast") == len(ACTOR_FUNCS)


def test_func_id_name(bindings):
    entry = next(e for e in bindings.ctx.func_table if e.func_name == "GetActorLocation")
    assert func_id_name(entry) == "ENGINE__ACTOR__GET_ACTOR_LOCATION"
    assert getattr(bindings.pkg.func_ids, func_id_name(entry)) == entry.func_id
