import pytest

from uikagen.naming import (
    escape_reserved, py_name, sanitize_variant_name, strip_bool_prefix, strip_enum_prefix, to_module_name,
    to_snake_case,
)


@pytest.mark.parametrize("name, expected", [
    ("GetActorLocation", "get_actor_location"),
    ("HTTPServer", "http_server"),
    ("URL", "url"),
    ("K2_GetActorLocation", "k2_get_actor_location"),
    ("Overload_1", "overload_1"),
    ("getValue", "get_value"),
    ("Vector2D", "vector2_d"),
])
def test_snake_case(name, expected):
    assert to_snake_case(name) == expected


def test_bool_prefix_only_stripped_before_capital():
    assert strip_bool_prefix("bHidden") == "hidden"
    assert strip_bool_prefix("bone") == "bone"
    assert strip_bool_prefix("b") == "b"


def test_reserved_names_escaped():
    assert escape_reserved("class") == "class_"
    assert escape_reserved("match") == "match_"
    assert escape_reserved("type") == "type_"
    assert escape_reserved("actor") == "actor"
    assert py_name("Import") == "import_"
    assert to_module_name("Self") == "self_"


def test_enum_variant_names():
    assert strip_enum_prefix("EColor::Red") == "Red"
    assert strip_enum_prefix("Red") == "Red"
    assert sanitize_variant_name("3D") == "_3D"
    assert sanitize_variant_name("A-B") == "A_B"
    assert sanitize_variant_name("") == "_Unknown"
    assert sanitize_variant_name("None") == "None_"
