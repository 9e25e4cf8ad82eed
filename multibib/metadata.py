"""Bibliography and references metadata for the global and per-topic runs.

``references`` comes in two shapes: a flat list shared by every topic, or a
map from topic name to list. It is read once into a ``References`` value.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pandoc.types import MetaList, MetaMap

BIBLIOGRAPHY_PREFIX = "bibliography_"

# Fields forwarded to per-topic citeproc runs; everything else stays behind.
CITEPROC_FIELDS = (
    "bibliography",
    "references",
    "csl",
    "citation-style",
    "link-citations",
    "citation-abbreviations",
    "lang",
    "suppress-bibliography",
    "reference-section-title",
    "notes-after-punctuation",
    "nocite",
    "link-bibliography",
)


@dataclass
class NoReferences:
    def combined(self):
        return None

    def for_topic(self, topic: str):
        return None


@dataclass
class FlatReferences:
    """A plain ``references`` list, forwarded unchanged to every run."""

    value: MetaList

    def combined(self):
        return self.value

    def for_topic(self, topic: str):
        return self.value


@dataclass
class TopicReferences:
    """``references`` keyed by topic name."""

    by_topic: dict = field(default_factory=dict)

    def combined(self) -> MetaList:
        items = []
        for refs in self.by_topic.values():
            items.extend(_items(refs))
        return MetaList(items)

    def for_topic(self, topic: str):
        return self.by_topic.get(topic)


References = NoReferences | FlatReferences | TopicReferences


def read_references(meta: dict) -> References:
    value = meta.get("references")
    if isinstance(value, MetaMap):
        return TopicReferences(dict(value[0]))
    if value is None:
        return NoReferences()
    return FlatReferences(value)


def topic_bibliography(meta: dict, topic: str):
    """The ``bibliography_<topic>`` value, or None when the topic is unknown."""
    return meta.get(BIBLIOGRAPHY_PREFIX + topic)


def bibliography_sources(meta: dict) -> MetaList:
    """Union of the global bibliography and every topic bibliography."""
    sources = []
    if "bibliography" in meta:
        sources.extend(_items(meta["bibliography"]))
    for name, value in meta.items():
        if name.startswith(BIBLIOGRAPHY_PREFIX):
            sources.extend(_items(value))
    return MetaList(sources)


def global_metadata(meta: dict, references: References) -> dict:
    """Metadata for the global citeproc run: all sources, all references."""
    new_meta = dict(meta)
    new_meta["bibliography"] = bibliography_sources(meta)
    combined = references.combined()
    if combined is None:
        new_meta.pop("references", None)
    else:
        new_meta["references"] = combined
    return new_meta


def topic_metadata(meta: dict, references: References, topic: str, bibliography) -> dict:
    """Metadata for one topic's citeproc run, restricted to ``CITEPROC_FIELDS``."""
    new_meta = {}
    for name in CITEPROC_FIELDS:
        if name == "references":
            value = references.for_topic(topic)
        else:
            value = meta.get(name)
        if value is not None:
            new_meta[name] = value
    new_meta["bibliography"] = bibliography
    return new_meta


def _items(value) -> list:
    if isinstance(value, MetaList):
        return list(value[0])
    return [value]
