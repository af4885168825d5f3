"""
Corpus Relations – Tokenizer
=============================
Splits document text into word or n-gram tokens.

  • words        — word-boundary split, punctuation stripped, case-folded
  • n-grams      — overlapping windows of n words joined by one space
  • stop words   — an n-gram is dropped if any of its words is a stop word
  • unnest       — (document_id, token) rows for a whole corpus
"""

import logging
import re
from typing import Iterable, Iterator, List, Optional

from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

from text_engine.errors import InvalidArgument
from text_engine.records import Document

logger = logging.getLogger("corel.tokenizer")

# Words keep inner apostrophes ("don't") but no surrounding punctuation
_WORD_RE = re.compile(r"\w+(?:['’]\w+)*")

DEFAULT_STOPWORDS = frozenset(ENGLISH_STOP_WORDS)


def _check_n(n: int) -> None:
    if not isinstance(n, int) or isinstance(n, bool) or n < 1:
        raise InvalidArgument(f"n-gram size must be an integer >= 1, got {n!r}")


def _windows(tokens: List[str], n: int, stopset: frozenset) -> Iterator[str]:
    for i in range(len(tokens) - n + 1):
        window = tokens[i:i + n]
        if stopset and any(w in stopset for w in window):
            continue
        yield " ".join(window)


# ════════════════════════════════════════════════════════════════════
#  Tokenizer
# ════════════════════════════════════════════════════════════════════

class Tokenizer:
    """Word and n-gram tokenization of raw document text."""

    @staticmethod
    def normalise_stopwords(stopwords: Optional[Iterable[str]]) -> frozenset:
        """Case-fold a stop-word collection; ``None`` means no filtering."""
        if not stopwords:
            return frozenset()
        return frozenset(w.lower() for w in stopwords)

    @staticmethod
    def words(text: str) -> List[str]:
        """Lower-cased words of *text* in order."""
        return _WORD_RE.findall(text.lower()) if text else []

    @staticmethod
    def tokenize(text: str, n: int = 1, stopwords: Optional[Iterable[str]] = None) -> Iterator[str]:
        """
        Lazily yield the n-gram tokens of *text*.

        A text of ``w`` words yields ``w - n + 1`` tokens when no stop words
        are given, and nothing when ``w < n``. Windows are taken over the
        unfiltered word sequence, so removing a stop word never joins words
        that were not adjacent.

        Raises InvalidArgument immediately (not on first iteration) for n < 1.
        """
        _check_n(n)
        return _windows(Tokenizer.words(text), n, Tokenizer.normalise_stopwords(stopwords))

    @staticmethod
    def separate_ngram(token: str, n: Optional[int] = None) -> List[str]:
        """Split an n-gram token into its component words."""
        parts = token.split(" ")
        if n is not None and len(parts) != n:
            raise InvalidArgument(f"Token {token!r} is not a {n}-gram")
        return parts

    @staticmethod
    def unite_words(parts: Iterable[str]) -> str:
        return " ".join(parts)

    @staticmethod
    def as_documents(documents) -> List[Document]:
        """Accept Documents, ``(id, text)`` pairs or ``{"id", "text"}`` dicts."""
        out = []
        for doc in documents:
            if isinstance(doc, Document):
                out.append(doc)
            elif isinstance(doc, dict):
                out.append(Document(doc["id"], doc.get("text") or ""))
            else:
                doc_id, text = doc
                out.append(Document(doc_id, text or ""))
        return out

    @staticmethod
    def unnest_tokens(
        documents,
        n: int = 1,
        stopwords: Optional[Iterable[str]] = None,
    ) -> List[tuple]:
        """
        Tokenize a corpus into ``(document_id, token)`` rows.

        Token order within a document is preserved; documents appear in input
        order. Documents producing no tokens contribute no rows.
        """
        _check_n(n)
        stopset = Tokenizer.normalise_stopwords(stopwords)
        docs = Tokenizer.as_documents(documents)
        rows = []
        for doc in docs:
            rows.extend((doc.id, tok) for tok in _windows(Tokenizer.words(doc.text), n, stopset))
        logger.info("Tokenized %d documents into %d tokens (n=%d, stopwords=%d)",
                    len(docs), len(rows), n, len(stopset))
        return rows
