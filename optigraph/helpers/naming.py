"""GraphQL naming utilities shared by the builder and the CLI."""

from __future__ import annotations

import re

_GRAPHQL_NAME = re.compile(r"^[_A-Za-z][_0-9A-Za-z]*$")


def is_graphql_name(name: str) -> bool:
    """Return True if *name* is a valid GraphQL Name token."""
    return bool(_GRAPHQL_NAME.match(name))


def split_path(path: str) -> list[str]:
    """Split a dotted field path, dropping empty segments.

    >>> split_path("_metadata.key")
    ['_metadata', 'key']
    """
    return [part.strip() for part in path.split(".") if part.strip()]


def to_enum_name(value: str) -> str:
    """Convert a free-form value to a GraphQL enum-style name.

    Locales like ``en-US`` become ``en_US``; Graph exposes locales as enums.
    """
    name = re.sub(r"[^0-9A-Za-z_]", "_", value.strip())
    if name and name[0].isdigit():
        name = "_" + name
    return name
