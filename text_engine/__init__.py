"""Corpus Relations – Text Engine Package"""

from .errors import CapacityExceeded, EmptyDocument, InvalidArgument, TextEngineError
from .records import (
    Document,
    DocumentTopic,
    Edge,
    Graph,
    Membership,
    PairCorrelation,
    PairCount,
    TermCount,
    TfIdfRecord,
    TopicTerm,
    read_records,
    to_frame,
    write_records,
)
from .tokenizer import DEFAULT_STOPWORDS, Tokenizer
from .frequency import FrequencyTable
from .tfidf import TfIdfResult, TfIdfScorer
from .pairwise import PairwiseEngine
from .graph import GraphBuilder
from .topics import TopicModel, TopicModeler

__all__ = [
    "CapacityExceeded",
    "EmptyDocument",
    "InvalidArgument",
    "TextEngineError",
    "Document",
    "DocumentTopic",
    "Edge",
    "Graph",
    "Membership",
    "PairCorrelation",
    "PairCount",
    "TermCount",
    "TfIdfRecord",
    "TopicTerm",
    "read_records",
    "to_frame",
    "write_records",
    "DEFAULT_STOPWORDS",
    "Tokenizer",
    "FrequencyTable",
    "TfIdfResult",
    "TfIdfScorer",
    "PairwiseEngine",
    "GraphBuilder",
    "TopicModel",
    "TopicModeler",
]
