import pytest

from builders import config, prop, sample_schema
from uikagen.context import CodegenContext
from uikagen.defaults import parse_default_literal
from uikagen.type_mapper import TypeMapper


@pytest.fixture
def ctx():
    return CodegenContext.build(sample_schema(), config())


def literal(ctx, p):
    return parse_default_literal(p, TypeMapper.map(p), ctx)


@pytest.mark.parametrize("prop_type, default, expected", [
    ("BoolProperty", "true", "True"),
    ("BoolProperty", "False", "False"),
    ("BoolProperty", "yes", None),
    ("FloatProperty", "2", "2.0"),
    ("DoubleProperty", "0.25", "0.25"),
    ("FloatProperty", "inf", None),
    ("IntProperty", "-7", "-7"),
    ("IntProperty", "0x10", None),
    ("StrProperty", "hello", "'hello'"),
    ("NameProperty", "None", "FNameHandle.NONE"),
    ("NameProperty", "Foo", None),
    ("ObjectProperty", "None", "None"),
])
def test_scalar_defaults(ctx, prop_type, default, expected):
    assert literal(ctx, prop("A", prop_type, default=default)) == expected


def test_enum_defaults(ctx):
    color = dict(enum_name="EColor", enum_underlying_type="uint8")
    assert literal(ctx, prop("A", "ByteProperty", default="Blue", **color)) == "EColor.from_value(2)"
    assert literal(ctx, prop("A", "ByteProperty", default="EColor::Green", **color)) == "EColor.from_value(1)"
    # sentinels are not variants
    assert literal(ctx, prop("A", "ByteProperty", default="EColor_MAX", **color)) is None
    assert literal(ctx, prop("A", "EnumProperty", default="All", enum_name="ESigned")) == "ESigned.from_value(-1)"


def test_no_default_for_structs(ctx):
    assert literal(ctx, prop("A", "StructProperty", struct_name="Vector", default="0,0,0")) is None
    assert literal(ctx, prop("A", "IntProperty")) is None
