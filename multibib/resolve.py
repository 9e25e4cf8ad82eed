"""Global citeproc run over the whole document.

Every bibliography and every topic's references are combined so that all
in-text citations resolve. The catch-all ``refs`` Div citeproc fills is taken
back out; its classes and attributes style every topic bibliography.
"""

from __future__ import annotations

import logging

from pandoc.types import Div, Meta, Pandoc

from multibib.collect import PipelineContext, Presentation
from multibib.document import REFS_ID, attributes, classes, identifier, refs_marker
from multibib.engine import Engine
from multibib.metadata import global_metadata

logger = logging.getLogger(__name__)


def resolve_document(doc: Pandoc, context: PipelineContext, engine: Engine) -> Pandoc:
    """Resolve all citations in ``doc`` and record the bibliography styling.

    Returns the engine's document with the original metadata put back.
    """
    meta = global_metadata(context.meta, context.references)
    synthetic = Pandoc(Meta(meta), list(doc[1]) + [refs_marker()])

    resolved = engine(synthetic, False)

    blocks = resolved[1]
    if blocks and isinstance(blocks[-1], Div) and identifier(blocks[-1]) == REFS_ID:
        catch_all = blocks.pop()
        context.presentation = Presentation(
            classes=classes(catch_all),
            attributes=attributes(catch_all),
        )
        logger.debug(
            "Global bibliography: %d entries, classes=%s",
            len(catch_all[1]),
            context.presentation.classes,
        )
    else:
        logger.debug("citeproc produced no catch-all bibliography; using no styling")

    resolved[0] = Meta(dict(doc[0][0]))
    return resolved
