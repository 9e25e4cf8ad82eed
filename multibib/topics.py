"""Per-topic bibliographies.

Acts on all Divs whose identifier is ``refs`` optionally followed by ``-`` or
``_`` and a topic name, for which a ``bibliography_<topic>`` entry exists.
"""

from __future__ import annotations

import logging

from pandoc.types import Div, Meta, Pandoc, Para

from multibib.collect import PipelineContext, Presentation
from multibib.document import (
    REFS_ID,
    has_attr,
    identifier,
    iter_divs,
    parse_topic,
    refs_marker,
    set_attr,
)
from multibib.engine import Engine
from multibib.metadata import topic_bibliography, topic_metadata

logger = logging.getLogger(__name__)


def topic_entries(div: Div, context: PipelineContext, engine: Engine) -> list | None:
    """Formatted entries for the topic of ``div``, or None if it isn't a topic Div."""
    topic = parse_topic(identifier(div))
    if topic is None:
        return None
    bibliography = topic_bibliography(context.meta, topic)
    if bibliography is None:
        logger.debug("No bibliography_%s metadata; leaving #%s alone", topic, identifier(div))
        return None

    # All cites go in so citeproc sees every in-text citation, but only this
    # topic's sources can render.
    meta = topic_metadata(context.meta, context.references, topic, bibliography)
    synthetic = Pandoc(Meta(meta), [Para(list(context.citations)), refs_marker()])

    result = engine(synthetic, True)

    for block in result[1]:
        if isinstance(block, Div) and identifier(block) == REFS_ID:
            return list(block[1])
    return []


def ignore_duplicates(blocks: list, seen: set[str]) -> list:
    """Drop entries whose identifier was already emitted; the first one wins."""
    new_blocks = []
    for block in blocks:
        ident = identifier(block) if has_attr(block) else ""
        if not ident:
            new_blocks.append(block)
            continue
        if ident in seen:
            logger.debug("Reference %s already listed in an earlier bibliography; skipping", ident)
            continue
        seen.add(ident)
        new_blocks.append(block)
    return new_blocks


def remove_duplicates(items: list) -> list:
    seen = set()
    unique = []
    for item in items:
        if item not in seen:
            seen.add(item)
            unique.append(item)
    return unique


def splice(div: Div, entries: list, presentation: Presentation) -> Div:
    """Fill ``div`` with ``entries`` styled like citeproc's own bibliography."""
    div[1] = entries
    set_attr(
        div,
        classes=remove_duplicates(presentation.classes),
        attributes=presentation.attributes,
    )
    return div


def create_topic_bibliographies(doc: Pandoc, context: PipelineContext, engine: Engine) -> int:
    """Process every topic Div in document order. Returns how many were filled."""
    filled = 0
    # Collected up front so freshly spliced entries are never revisited.
    for div in iter_divs(doc[1]):
        entries = topic_entries(div, context, engine)
        if entries is None:
            continue
        entries = ignore_duplicates(entries, context.seen)
        splice(div, entries, context.presentation)
        logger.debug("Filled #%s with %d entries", identifier(div), len(entries))
        filled += 1
    return filled
