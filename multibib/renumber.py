"""Renumber numbered references and their citations.

Each topic run numbers its own entries from 1, so a numeric style would show
several "[1]"s. Entries are renumbered in document order and single-reference
citations are relabelled to match. Styles without bare-number labels are left
as they are.
"""

from __future__ import annotations

import re
import string

from pandoc.types import Link, Pandoc, Span, Str

from multibib.collect import Renumbering
from multibib.document import block_content, classes, identifier, iter_cites, iter_divs

CSL_ENTRY = "csl-entry"

_PUNCT = re.escape(string.punctuation)
NUMBER_LABEL = re.compile(rf"^([{_PUNCT}]*)([0-9]+)([{_PUNCT}]*)$")


def collect_numbered_refs(doc: Pandoc, state: Renumbering) -> int:
    """Relabel numbered csl-entry Divs in document order. Returns how many."""
    count = 0
    for div in iter_divs(doc[1]):
        if CSL_ENTRY not in classes(div):
            continue
        # expect a Para/Plain opening with a Span that holds the number
        if not div[1]:
            continue
        inlines = block_content(div[1][0])
        if not inlines or not isinstance(inlines[0], Span):
            continue
        label_inlines = inlines[0][1]
        if not label_inlines or not isinstance(label_inlines[0], Str):
            continue
        match = NUMBER_LABEL.match(label_inlines[0][0])
        if match is None:
            continue

        prefix, _, suffix = match.groups()
        label = f"{prefix}{state.counter}{suffix}"
        label_inlines[0] = Str(label)
        state.labels[re.sub(r"^ref-", "", identifier(div))] = label
        state.counter += 1
        count += 1
    return count


def renumber_cites(doc: Pandoc, state: Renumbering) -> int:
    """Point single-reference citations at their entry's new label."""
    count = 0
    for cite in iter_cites(doc[1]):
        citations = cite[0]
        # compound citations are never touched
        if len(citations) != 1:
            continue
        label = state.labels.get(citations[0][0])
        if label is None:
            continue
        link = next((elt for elt in cite[1] if isinstance(elt, Link)), None)
        if link is None:
            cite[1] = [Str(label)]
        else:
            # link-citations: [Str "[", Link [Str "1"] target, Str "]"]
            _relabel_link(link, label)
        count += 1
    return count


def _relabel_link(link: Link, label: str) -> None:
    """Swap the number inside the link text, keeping its punctuation and target."""
    number = NUMBER_LABEL.match(label).group(2)
    inlines = link[1]
    for i, inline in enumerate(inlines):
        if isinstance(inline, Str):
            match = NUMBER_LABEL.match(inline[0])
            if match:
                inlines[i] = Str(f"{match.group(1)}{number}{match.group(3)}")
                return
    link[1] = [Str(label)]


def renumber(doc: Pandoc, state: Renumbering | None = None) -> Renumbering:
    state = state or Renumbering()
    collect_numbered_refs(doc, state)
    renumber_cites(doc, state)
    return state
