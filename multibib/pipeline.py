"""Pipeline driver: collect -> global resolution -> topic bibliographies -> renumber."""

from __future__ import annotations

import logging

import pandoc
from pandoc.types import Pandoc

from multibib.collect import PipelineContext, collect
from multibib.engine import Engine
from multibib.renumber import renumber
from multibib.resolve import resolve_document
from multibib.topics import create_topic_bibliographies

logger = logging.getLogger(__name__)

__all__ = ["PipelineContext", "filter_json", "run"]


def run(doc: Pandoc, engine: Engine, renumber_refs: bool = True) -> Pandoc:
    """Split the bibliography of ``doc`` across its topic Divs.

    Pipeline:
    1. collect citations and snapshot metadata
    2. one citeproc run over everything (resolves all in-text citations)
    3. one quiet citeproc run per topic Div, deduplicated first-wins
    4. optionally renumber numbered entries and their citations
    """
    context = collect(doc)
    logger.debug("Collected %d citations", len(context.citations))

    doc = resolve_document(doc, context, engine)
    filled = create_topic_bibliographies(doc, context, engine)
    logger.info("Created %d topic bibliographies", filled)

    if renumber_refs:
        state = renumber(doc, context.renumbering)
        if state.labels:
            logger.debug("Renumbered %d references", len(state.labels))
    return doc


def filter_json(source: str, engine: Engine, renumber_refs: bool = True) -> str:
    """Run the pipeline on a pandoc JSON document and return JSON."""
    doc = pandoc.read(source, format="json")
    doc = run(doc, engine, renumber_refs=renumber_refs)
    output = pandoc.write(doc, format="json")
    if isinstance(output, bytes):
        output = output.decode("utf-8")
    return output
