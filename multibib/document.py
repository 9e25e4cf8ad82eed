"""Helpers over the pandoc document model (``pandoc.types``).

Elements are positional: ``Div(Attr, [Block])``, ``Span(Attr, [Inline])``,
``Cite([Citation], [Inline])``, with ``Attr = (identifier, classes, keyvals)``.
"""

from __future__ import annotations

import re

import pandoc
from pandoc.types import Cite, Div, Plain, Para

# "refs", "refs-main", "refs_software"; the captured group is the topic name
REFS_PATTERN = re.compile(r"^refs[-_]?([-_a-zA-Z0-9]*)$")

REFS_ID = "refs"


def parse_topic(identifier: str) -> str | None:
    """Topic name for a bibliography Div identifier, or None.

    The bare ``refs`` identifier yields the default topic ``""``.
    """
    match = REFS_PATTERN.match(identifier or "")
    if match is None:
        return None
    return match.group(1)


def refs_marker() -> Div:
    """Empty Div that citeproc fills with the bibliography."""
    return Div((REFS_ID, [], []), [])


def identifier(elt) -> str:
    return elt[0][0]


def classes(elt) -> list[str]:
    return list(elt[0][1])


def attributes(elt) -> list[tuple[str, str]]:
    return list(elt[0][2])


def set_attr(elt, classes=None, attributes=None) -> None:
    """Replace the classes and/or key-values of an element, keeping its id."""
    ident, old_classes, old_attributes = elt[0]
    elt[0] = (
        ident,
        list(old_classes if classes is None else classes),
        list(old_attributes if attributes is None else attributes),
    )


def has_attr(block) -> bool:
    attr = block[0] if len(block) > 0 else None
    return (
        isinstance(attr, tuple)
        and len(attr) == 3
        and isinstance(attr[0], str)
    )


def block_content(block) -> list:
    """Inline content of a Para or Plain, else an empty list."""
    if isinstance(block, (Para, Plain)):
        return block[0]
    return []


def iter_divs(blocks) -> list[Div]:
    """All Divs below ``blocks`` in document order, materialised."""
    return [elt for elt in pandoc.iter(blocks) if isinstance(elt, Div)]


def iter_cites(blocks) -> list[Cite]:
    """All Cites below ``blocks`` in document order, materialised."""
    return [elt for elt in pandoc.iter(blocks) if isinstance(elt, Cite)]
