import json

import pytest

from uikagen.errors import SchemaError
from uikagen.parser import CLASSES_FILE, ENUMS_FILE, STRUCTS_FILE, SchemaParser

CLASSES = {"classes": [{
    "name": "Actor",
    "cpp_name": "AActor",
    "package": "Engine",
    "header": "GameFramework/Actor.h",
    "class_flags": -1,
    "super": "Object",
    "props": [
        {"name": "Tags", "type": "ArrayProperty", "inner_prop": {"name": "Tags", "type": "NameProperty"}},
        {"name": "OnHit", "type": "MulticastInlineDelegateProperty",
         "func_info": {"name": "OnHit__DelegateSignature",
                       "params": [{"name": "Damage", "type": "FloatProperty"}]}},
    ],
    "funcs": [{
        "name": "SetTint",
        "func_flags": 1024,
        "params": [{"name": "Alpha", "type": "FloatProperty", "default": "0.5"}],
    }],
}]}
STRUCTS = {"structs": [{"name": "Vector", "cpp_name": "FVector", "package": "Engine", "has_static_struct": True,
                        "props": [{"name": "X", "type": "DoubleProperty"}]}]}
ENUMS = {"enums": [{"name": "EColor", "cpp_name": "EColor", "package": "Engine",
                    "pairs": [["EColor::Red", 0], ["EColor::Blue", 1]]}]}


def write_schema(directory, classes=CLASSES, structs=STRUCTS, enums=ENUMS):
    for name, doc in ((CLASSES_FILE, classes), (STRUCTS_FILE, structs), (ENUMS_FILE, enums)):
        (directory / name).write_text(json.dumps(doc), encoding="utf-8")


def test_parse_directory(tmp_path):
    write_schema(tmp_path)
    schema = SchemaParser.from_directory(tmp_path).parse()

    (actor,) = schema.classes
    assert actor.cpp_name == "AActor"
    assert actor.super_class == "Object"
    assert actor.class_flags == 0xFFFF_FFFF
    tags, on_hit = actor.props
    assert tags.inner_prop.prop_type == "NameProperty"
    assert on_hit.func_info.name == "OnHit__DelegateSignature"
    assert on_hit.func_info.params[0].name == "Damage"
    (func,) = actor.funcs
    assert func.func_flags == 1024
    assert func.params[0].default == "0.5"

    assert schema.structs[0].has_static_struct
    assert schema.enums[0].pairs == [("EColor::Red", 0), ("EColor::Blue", 1)]
    assert schema.enums[0].underlying_type == "uint8"


def test_missing_file(tmp_path):
    write_schema(tmp_path)
    (tmp_path / ENUMS_FILE).unlink()
    with pytest.raises(SchemaError, match="Failed to read"):
        SchemaParser.from_directory(tmp_path)


def test_malformed_json(tmp_path):
    write_schema(tmp_path)
    (tmp_path / STRUCTS_FILE).write_text("{not json", encoding="utf-8")
    with pytest.raises(SchemaError, match="Failed to parse"):
        SchemaParser.from_directory(tmp_path)


def test_missing_section():
    with pytest.raises(SchemaError, match="'structs'"):
        SchemaParser(CLASSES, {}, ENUMS).parse()


def test_missing_required_field():
    classes = {"classes": [{"name": "Actor", "package": "Engine"}]}
    with pytest.raises(SchemaError, match="cpp_name"):
        SchemaParser(classes, STRUCTS, ENUMS).parse()


@pytest.mark.parametrize("classes, structs, enums, message", [
    ({"classes": []}, {"structs": []},
     {"enums": [{"name": "EMode", "cpp_name": "EMode", "package": "Engine", "pairs": [["EMode::A", "x"]]}]},
     "Enum entry 'EMode' has a malformed value"),
    ({"classes": [{"name": "Actor", "cpp_name": "AActor", "package": "Engine", "funcs": [{"params": []}]}]},
     {"structs": []}, {"enums": []},
     "Function entry '\\?' is missing field 'name'"),
    ({"classes": []},
     {"structs": [{"name": "Hit", "cpp_name": "FHit", "package": "Engine", "props": [{"name": "Normal"}]}]},
     {"enums": []},
     "Property entry 'Normal' is missing field 'type'"),
])
def test_malformed_entries(classes, structs, enums, message):
    with pytest.raises(SchemaError, match=message):
        SchemaParser(classes, structs, enums).parse()
