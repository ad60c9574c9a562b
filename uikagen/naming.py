"""Identifier conversion helpers"""

import keyword
import re


def to_snake_case(name: str) -> str:
    """PascalCase / camelCase -> snake_case, keeping acronyms together.

    HTTPServer -> http_server, K2_GetActorLocation -> k2_get_actor_location,
    URL -> url.
    """
    out = []
    for i, ch in enumerate(name):
        if ch.isascii() and ch.isupper():
            if i > 0:
                prev = name[i - 1]
                if (prev.isascii() and prev.islower()) or prev.isdigit():
                    out.append("_")
                elif prev.isascii() and prev.isupper() and i + 1 < len(name) \
                        and name[i + 1].isascii() and name[i + 1].islower():
                    out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out)


def strip_bool_prefix(name: str) -> str:
    """bHidden -> hidden; names without the b-prefix are only snake-cased."""
    if len(name) > 1 and name[0] == "b" and name[1].isascii() and name[1].isupper():
        return to_snake_case(name[1:])
    return to_snake_case(name)


# Names that would shadow the generated code's own helpers or builtins
_EXTRA_RESERVED = {"self", "cls", "type", "id", "match", "case", "_"}


def is_reserved(name: str) -> bool:
    return keyword.iskeyword(name) or keyword.issoftkeyword(name) or name in _EXTRA_RESERVED


def escape_reserved(name: str) -> str:
    return f"{name}_" if is_reserved(name) else name


def py_name(name: str) -> str:
    """Schema member name -> escaped snake_case Python identifier"""
    return escape_reserved(to_snake_case(name))


def to_module_name(name: str) -> str:
    return escape_reserved(to_snake_case(name))


def strip_enum_prefix(name: str) -> str:
    """EFoo::Bar -> Bar"""
    return name.rsplit("::", 1)[-1]


def sanitize_variant_name(name: str) -> str:
    clean = re.sub(r"[^0-9A-Za-z_]", "_", name)
    if not clean:
        return "_Unknown"
    if clean[0].isdigit():
        clean = "_" + clean
    return escape_reserved(clean)
