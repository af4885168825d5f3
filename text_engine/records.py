"""
Corpus Relations – Record Types
================================
Immutable tagged records for every table the engine produces, plus the
tidy DataFrame / delimited-file bridge used by renderers and exports.

Field order of every record matches its tuple definition, so a record
unpacks like the tuple it stands for::

    doc, term, n = TermCount("d1", "cat", 2)
"""

import logging
from dataclasses import astuple, dataclass, fields
from typing import Any, Hashable, Iterable, Sequence, Type

import pandas as pd

from text_engine.errors import InvalidArgument

logger = logging.getLogger("corel.records")


class _Record:
    """Tuple-like behaviour shared by the record dataclasses."""

    def __iter__(self):
        return iter(astuple(self))

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class Document(_Record):
    id: Hashable
    text: str


@dataclass(frozen=True)
class TermCount(_Record):
    document_id: Hashable
    term: str
    count: int


@dataclass(frozen=True)
class TfIdfRecord(_Record):
    document_id: Hashable
    term: str
    n: int
    term_frequency: float
    inverse_document_frequency: float
    tf_idf: float


@dataclass(frozen=True)
class Membership(_Record):
    group_id: Hashable
    item: str


@dataclass(frozen=True)
class PairCount(_Record):
    item1: str
    item2: str
    n: int


@dataclass(frozen=True)
class PairCorrelation(_Record):
    item1: str
    item2: str
    correlation: float


@dataclass(frozen=True)
class TopicTerm(_Record):
    topic: int
    term: str
    beta: float


@dataclass(frozen=True)
class DocumentTopic(_Record):
    document_id: Hashable
    topic: int
    gamma: float


@dataclass(frozen=True)
class Edge(_Record):
    source: str
    target: str
    weight: float


@dataclass(frozen=True)
class Graph:
    """Weighted relationship graph. Nodes are endpoints of retained edges."""
    nodes: tuple
    edges: tuple
    directed: bool = False

    @property
    def n_nodes(self) -> int:
        return len(self.nodes)

    @property
    def n_edges(self) -> int:
        return len(self.edges)

    def to_dict(self) -> dict:
        return {
            "directed": self.directed,
            "nodes": list(self.nodes),
            "edges": [e.to_dict() for e in self.edges],
        }


RECORD_TYPES = {
    "document": Document,
    "term_count": TermCount,
    "tf_idf": TfIdfRecord,
    "membership": Membership,
    "pair_count": PairCount,
    "pair_correlation": PairCorrelation,
    "edge": Edge,
    "topic_term": TopicTerm,
    "document_topic": DocumentTopic,
}


def _resolve_kind(kind: str | Type) -> Type:
    if isinstance(kind, str):
        if kind not in RECORD_TYPES:
            raise InvalidArgument(
                f"Unknown record kind {kind!r}; expected one of {sorted(RECORD_TYPES)}"
            )
        return RECORD_TYPES[kind]
    return kind


def as_memberships(rows: Iterable[Sequence[Any]]) -> list[Membership]:
    """Coerce ``(group_id, item)`` pairs (or Membership records) to records."""
    out = []
    for row in rows:
        if isinstance(row, Membership):
            out.append(row)
        else:
            group_id, item = row
            out.append(Membership(group_id, item))
    return out


# ────────────────────────────────────────────────────────────────────
#  Tidy bridges
# ────────────────────────────────────────────────────────────────────

def to_frame(records: Sequence[_Record], kind: str | Type | None = None) -> pd.DataFrame:
    """One row per record, columns in tuple order.

    *kind* is only needed to name the columns of an empty sequence.
    """
    if records:
        cls = type(records[0])
    elif kind is not None:
        cls = _resolve_kind(kind)
    else:
        return pd.DataFrame()
    columns = [f.name for f in fields(cls)]
    return pd.DataFrame([tuple(r) for r in records], columns=columns)


def write_records(records: Sequence[_Record], path: str, kind: str | Type | None = None,
                  sep: str = ",") -> int:
    """Write records as a delimited file with a header row. Returns rows written."""
    df = to_frame(records, kind)
    df.to_csv(path, sep=sep, index=False)
    logger.info("Wrote %d records to %s", len(df), path)
    return len(df)


def read_records(path: str, kind: str | Type, sep: str = ",") -> list:
    """Read a file produced by :func:`write_records` back into records.

    Identifier and term columns are read as strings; numeric columns keep
    the type declared on the record.
    """
    cls = _resolve_kind(kind)
    numeric = {f.name: f.type for f in fields(cls) if f.type in (int, float)}
    dtypes = {f.name: str for f in fields(cls) if f.name not in numeric}
    df = pd.read_csv(path, sep=sep, dtype=dtypes, keep_default_na=False)
    records = [
        cls(**{name: numeric[name](value) if name in numeric else value
               for name, value in row.items()})
        for row in df.to_dict(orient="records")
    ]
    logger.debug("Read %d %s records from %s", len(records), cls.__name__, path)
    return records
