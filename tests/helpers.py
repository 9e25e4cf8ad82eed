"""Document builders and a fake citeproc for tests."""

import copy

import pandoc
from pandoc.types import (
    Cite,
    Citation,
    Div,
    LineBreak,
    Link,
    Meta,
    MetaBool,
    MetaInlines,
    MetaList,
    MetaMap,
    MetaString,
    NormalCitation,
    Pandoc,
    Para,
    SoftBreak,
    Space,
    Span,
    Str,
)

from multibib.document import classes, identifier, iter_cites, iter_divs, set_attr
from multibib.engine import EngineError

BIB_FILES = {
    "main.bib": {
        "knuth1984": "Knuth, D. Literate Programming. 1984.",
        "dijkstra1968": "Dijkstra, E. Go To Statement Considered Harmful. 1968.",
        "shared2020": "Shared, A. Cited Everywhere. 2020.",
    },
    "software.bib": {
        "pandoc2023": "MacFarlane, J. Pandoc. 2023.",
        "shared2020": "Shared, A. Cited Everywhere. 2020.",
    },
}


def text(value):
    return MetaInlines([Str(value)])


def cite(*keys):
    citations = [Citation(key, [], [], NormalCitation(), 0, 0) for key in keys]
    return Cite(citations, [Str("@" + ";@".join(keys))])


def refs_div(ident, content=None):
    return Div((ident, [], []), content or [])


def make_doc(blocks, meta=None):
    return Pandoc(Meta(dict(meta or {})), blocks)


def reference(key, title):
    return MetaMap({"id": text(key), "title": text(title)})


def stringify(value):
    """Plain text of a metadata value or inline element."""
    if isinstance(value, str):
        return value
    if isinstance(value, MetaString):
        return value[0]
    if isinstance(value, MetaList):
        return " ".join(stringify(item) for item in value[0])
    if isinstance(value, MetaInlines):
        value = value[0]
    parts = []
    for elt in pandoc.iter(value):
        if isinstance(elt, Str):
            parts.append(elt[0])
        elif isinstance(elt, (Space, SoftBreak, LineBreak)):
            parts.append(" ")
    return "".join(parts)


def labels(doc):
    """Visible text of every cite, in document order."""
    return [stringify(c[1]) for c in iter_cites(doc[1])]


def entry_ids(div):
    return [identifier(block) for block in div[1]]


def find_div(doc, ident):
    for div in iter_divs(doc[1]):
        if identifier(div) == ident:
            return div
    raise KeyError(ident)


def _items(value):
    if value is None:
        return []
    if isinstance(value, MetaList):
        return list(value[0])
    return [value]


class FakeCiteproc:
    """Stands in for ``pandoc --citeproc``.

    Sources come from ``bib_files`` (file name -> {key: text}) and inline
    ``references``. A ``csl`` containing "ieee" gives numbered "[n]" labels in
    first-citation order; anything else gives author-year style entries.
    """

    def __init__(self, bib_files):
        self.bib_files = bib_files
        self.calls = []

    def __call__(self, doc, quiet=False):
        doc = copy.deepcopy(doc)
        meta = doc[0][0]
        self.calls.append({"meta": meta, "quiet": quiet, "cites": len(iter_cites(doc[1]))})

        known = {}
        for source in _items(meta.get("bibliography")):
            name = stringify(source)
            if name not in self.bib_files:
                raise EngineError(f"Could not find bibliography file {name}")
            known.update(self.bib_files[name])
        for ref in _items(meta.get("references")):
            fields = ref[0]
            known[stringify(fields["id"])] = stringify(fields["title"])

        numbered = "ieee" in stringify(meta.get("csl", ""))
        linked = meta.get("link-citations") == MetaBool(True)

        order = []
        for c in iter_cites(doc[1]):
            for citation in c[0]:
                key = citation[0]
                if key in known and key not in order:
                    order.append(key)
        numbers = {key: n for n, key in enumerate(order, 1)}

        for c in iter_cites(doc[1]):
            keys = [citation[0] for citation in c[0]]
            if numbered:
                label = "[" + ", ".join(str(numbers.get(k, "?")) for k in keys) + "]"
            else:
                label = "(" + "; ".join(known.get(k, k + "?").split(".")[0] for k in keys) + ")"
            if linked and len(keys) == 1 and keys[0] in known:
                target = ("#ref-" + keys[0], "")
                if numbered:
                    # pandoc links the number only: [Str "[", Link [Str "1"], Str "]"]
                    link = Link(("", [], []), [Str(str(numbers[keys[0]]))], target)
                    c[1] = [Str("["), link, Str("]")]
                else:
                    c[1] = [Link(("", [], []), [Str(label)], target)]
            else:
                c[1] = [Str(label)]

        entries = [self._entry(key, known[key], numbers[key], numbered) for key in order]
        for div in iter_divs(doc[1]):
            if identifier(div) == "refs":
                div[1] = list(div[1]) + copy.deepcopy(entries)
                set_attr(
                    div,
                    classes=classes(div) + ["references", "csl-bib-body"],
                    attributes=[("entry-spacing", "0")],
                )
        return doc

    @staticmethod
    def _entry(key, body, number, numbered):
        if numbered:
            inlines = [
                Span(("", ["csl-left-margin"], []), [Str(f"[{number}]")]),
                Span(("", ["csl-right-inline"], []), [Str(body)]),
            ]
        else:
            inlines = [Str(body)]
        return Div(("ref-" + key, ["csl-entry"], []), [Para(inlines)])
