"""Citation collector and the per-run pipeline state."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field

from pandoc.types import Cite, Pandoc

from multibib.document import iter_cites
from multibib.metadata import NoReferences, References, read_references


@dataclass
class Presentation:
    """Classes and attributes citeproc put on the catch-all ``refs`` Div."""

    classes: list[str] = field(default_factory=list)
    attributes: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class Renumbering:
    """State of the sequential renumbering pass."""

    counter: int = 1
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class PipelineContext:
    """Everything shared between passes while processing one document."""

    citations: list[Cite] = field(default_factory=list)
    meta: dict = field(default_factory=dict)
    references: References = field(default_factory=NoReferences)
    presentation: Presentation = field(default_factory=Presentation)
    seen: set[str] = field(default_factory=set)
    renumbering: Renumbering = field(default_factory=Renumbering)


def collect(doc: Pandoc) -> PipelineContext:
    """Gather all body citations and snapshot the metadata.

    Citations inside metadata (``nocite``) are not collected; they reach
    citeproc through the metadata itself.
    """
    meta = copy.deepcopy(doc[0][0])
    citations = [copy.deepcopy(cite) for cite in iter_cites(doc[1])]
    return PipelineContext(
        citations=citations,
        meta=meta,
        references=read_references(meta),
    )
