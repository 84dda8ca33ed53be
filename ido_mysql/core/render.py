# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Serialisation of feature attributes into the daemon configuration DSL.

Output is deterministic: identical attributes give byte-identical text.
"""

import re
from collections.abc import Mapping
from typing import Any

from pydantic import SecretStr

from ..errors import RenderError
from .attributes import UNSET, Constant, Duration

INDENT = "  "
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t"}


def quote(value: str) -> str:
    return '"' + "".join(_ESCAPES.get(ch, ch) for ch in value) + '"'


def format_value(value: Any, depth: int = 1) -> str:
    """Render one attribute value at the given nesting depth."""
    if isinstance(value, SecretStr):
        value = value.get_secret_value()
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Constant, Duration)):
        return str(value)
    if isinstance(value, str):
        return quote(value)
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, tuple)):
        if not value:
            return "[ ]"
        return "[ " + ", ".join(format_value(item, depth) for item in value) + " ]"
    if isinstance(value, Mapping):
        if not value:
            return "{ }"
        lines = ["{"]
        for key, item in value.items():
            lines.append(f"{INDENT * (depth + 1)}{_attribute(key, item, depth + 1)}")
        lines.append(f"{INDENT * depth}}}")
        return "\n".join(lines)
    raise RenderError(
        f"Cannot render value of type {type(value).__name__}",
        step="feature-write",
    )


def _attribute(name: str, value: Any, depth: int) -> str:
    if not isinstance(name, str) or not IDENTIFIER_PATTERN.match(name):
        raise RenderError(f"Invalid attribute name {name!r}", step="feature-write")
    if value is None or value is UNSET:
        raise RenderError(f"Attribute {name} has no value", step="feature-write")
    return f"{name} = {format_value(value, depth)}"


def render_object(object_type: str, name: str, attributes: Mapping[str, Any]) -> str:
    lines = [f"object {object_type} {quote(name)} {{"]
    for key, value in attributes.items():
        lines.append(f"{INDENT}{_attribute(key, value, 1)}")
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_feature_config(
    library: str, object_type: str, name: str, attributes: Mapping[str, Any]
) -> str:
    """Render a feature file: library line, blank line, then the object."""
    return f"library {quote(library)}\n\n" + render_object(object_type, name, attributes)
