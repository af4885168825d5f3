"""
Corpus Relations – Frequency Table
===================================
Term × document counts built from ``(document_id, token)`` rows.

Counting is a grouped sum, so it can be done per shard with
``FrequencyTable.count_partial`` and folded with
``FrequencyTable.merge_counts`` in any order.
"""

import logging
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np
from scipy import sparse

from text_engine.records import TermCount

logger = logging.getLogger("corel.frequency")


def _sorted_counts(counter: Counter) -> List[TermCount]:
    items = sorted(counter.items(), key=lambda kv: (-kv[1], str(kv[0][0]), kv[0][1]))
    return [TermCount(doc_id, term, n) for (doc_id, term), n in items if n > 0]


class FrequencyTable:
    """Grouped term counts and their matrix form."""

    @staticmethod
    def count_partial(token_rows: Iterable[tuple]) -> Counter:
        """Count ``(document_id, term)`` occurrences for one shard of rows."""
        return Counter((doc_id, term) for doc_id, term in token_rows)

    @staticmethod
    def merge_counts(partials: Iterable[Counter]) -> Counter:
        total: Counter = Counter()
        for part in partials:
            total.update(part)
        return total

    @staticmethod
    def count_terms(token_rows: Iterable[tuple]) -> List[TermCount]:
        """
        Term-document counts, one record per ``(document_id, term)``.

        Sorted by count descending, then document id and term.
        """
        counts = _sorted_counts(FrequencyTable.count_partial(token_rows))
        logger.debug("count_terms: %d (document, term) records", len(counts))
        return counts

    @staticmethod
    def counts_from_mapping(mapping: dict) -> List[TermCount]:
        """Records from a ``{(document_id, term): n}`` mapping."""
        return _sorted_counts(Counter(mapping))

    @staticmethod
    def document_totals(counts: Iterable[TermCount]) -> Dict:
        totals: dict = defaultdict(int)
        for doc_id, _, n in counts:
            totals[doc_id] += n
        return dict(totals)

    @staticmethod
    def term_totals(counts: Iterable[TermCount]) -> List[Tuple[str, int]]:
        """Corpus-wide ``(term, n)`` totals, most frequent first."""
        totals: Counter = Counter()
        for _, term, n in counts:
            totals[term] += n
        return sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))

    @staticmethod
    def document_term_matrix(counts: Sequence[TermCount]):
        """
        Cast counts to a sparse document-term matrix.

        Returns ``(matrix, document_ids, terms)`` where ``matrix[i, j]`` is the
        count of ``terms[j]`` in ``document_ids[i]``. Rows follow first
        appearance of each document; columns are sorted terms.
        """
        doc_ids = list(dict.fromkeys(c.document_id for c in counts))
        terms = sorted({c.term for c in counts})
        doc_index = {d: i for i, d in enumerate(doc_ids)}
        term_index = {t: j for j, t in enumerate(terms)}

        rows = np.fromiter((doc_index[c.document_id] for c in counts), dtype=np.int64, count=len(counts))
        cols = np.fromiter((term_index[c.term] for c in counts), dtype=np.int64, count=len(counts))
        data = np.fromiter((c.count for c in counts), dtype=np.int64, count=len(counts))
        matrix = sparse.csr_matrix((data, (rows, cols)), shape=(len(doc_ids), len(terms)))
        logger.debug("document_term_matrix: shape=%s nnz=%d", matrix.shape, matrix.nnz)
        return matrix, doc_ids, terms
