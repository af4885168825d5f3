"""
Corpus Relations – TF-IDF Scorer
=================================
Binds term frequency, inverse document frequency and their product onto
term-document counts.

    tf     = n / total terms in the document
    idf    = ln(total documents / documents containing the term)
    tf_idf = tf * idf

Scoring is a two-phase fold: per-document totals first, then corpus-wide
document frequencies. A term present in every document gets idf = 0.
"""

import logging
import math
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from config import Config
from text_engine.errors import EmptyDocument, InvalidArgument
from text_engine.frequency import FrequencyTable
from text_engine.records import TfIdfRecord

logger = logging.getLogger("corel.tfidf")


@dataclass(frozen=True)
class TfIdfResult:
    """Scored records plus the documents excluded as empty."""
    records: tuple
    excluded_documents: tuple = field(default_factory=tuple)
    total_documents: int = 0

    def __iter__(self):
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


def _collect(counts) -> Counter:
    """Normalise counts input to a ``{(document_id, term): n}`` Counter."""
    items = counts.items() if isinstance(counts, dict) else (
        ((doc_id, term), n) for doc_id, term, n in counts
    )
    collected: Counter = Counter()
    for key, n in items:
        if n < 0:
            raise InvalidArgument(f"Negative count {n} for {key!r}")
        collected[key] += n
    return collected


class TfIdfScorer:
    """Term weighting over a term-document count table."""

    @staticmethod
    def bind_tf_idf(
        counts,
        on_empty: Optional[str] = None,
        documents: Optional[Iterable] = None,
    ) -> TfIdfResult:
        """
        Score every ``(document_id, term)`` pair present in *counts*.

        Parameters
        ----------
        counts : sequence of TermCount / (document_id, term, n), or mapping
            ``(document_id, term) -> n``.
        on_empty : "skip" | "raise"
            What to do with a document whose terms sum to zero. "skip" (the
            configured default) drops it from the output and from the document
            total used by idf, and reports it in ``excluded_documents``.
        documents : iterable of document ids, optional
            Full list of corpus documents. Ids with no counts at all are empty
            documents under the policy above.
        """
        on_empty = on_empty or Config.EMPTY_DOCUMENT_POLICY
        if on_empty not in Config.EMPTY_DOCUMENT_POLICIES:
            raise InvalidArgument(
                f"Unknown empty-document policy {on_empty!r}; "
                f"expected one of {Config.EMPTY_DOCUMENT_POLICIES}"
            )

        collected = _collect(counts)

        # ── Phase 1: per-document totals ────────────────────────────────
        totals: dict = defaultdict(int)
        for (doc_id, _), n in collected.items():
            totals[doc_id] += n
        for doc_id in documents or ():
            totals.setdefault(doc_id, 0)

        empty = [d for d, total in totals.items() if total == 0]
        if empty and on_empty == "raise":
            raise EmptyDocument(empty[0])
        for doc_id in empty:
            logger.warning("Skipping empty document %r (no terms after filtering)", doc_id)

        # ── Phase 2: corpus-wide document frequency ─────────────────────
        total_documents = len(totals) - len(empty)
        doc_freq: Counter = Counter(term for (_, term), n in collected.items() if n > 0)

        records = []
        for (doc_id, term), n in collected.items():
            if n == 0:
                continue
            tf = n / totals[doc_id]
            idf = math.log(total_documents / doc_freq[term])
            records.append(TfIdfRecord(doc_id, term, n, tf, idf, tf * idf))

        records.sort(key=lambda r: (-r.tf_idf, str(r.document_id), r.term))
        logger.info("tf-idf: %d records over %d documents (%d excluded as empty)",
                    len(records), total_documents, len(empty))
        return TfIdfResult(tuple(records), tuple(empty), total_documents)

    @staticmethod
    def top_terms(result, per_document: Optional[int] = None) -> Dict[object, List[TfIdfRecord]]:
        """
        Highest tf-idf terms per document.

        Returns ``{document_id: [TfIdfRecord, ...]}`` ordered by tf-idf
        descending, ties broken by term.
        """
        k = per_document if per_document is not None else Config.DEFAULT_TOP_K
        if k < 0:
            raise InvalidArgument(f"per_document must be >= 0, got {k}")
        by_doc: dict = defaultdict(list)
        for rec in result:
            by_doc[rec.document_id].append(rec)
        return {
            doc_id: sorted(recs, key=lambda r: (-r.tf_idf, r.term))[:k]
            for doc_id, recs in by_doc.items()
        }

    @staticmethod
    def score_tokens(token_rows, on_empty: Optional[str] = None, documents=None) -> TfIdfResult:
        """Count ``(document_id, token)`` rows and score them in one call."""
        counts = FrequencyTable.count_terms(token_rows)
        return TfIdfScorer.bind_tf_idf(counts, on_empty=on_empty, documents=documents)
