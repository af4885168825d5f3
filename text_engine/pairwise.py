"""
Corpus Relations – Pairwise Statistics Engine
==============================================
Statistics between items that share a grouping context (document,
section, ...), computed from ``(group_id, item)`` memberships:

  • pairwise_count        — number of groups containing both items
  • pairwise_correlation  — phi coefficient of item presence across groups

Only pairs that co-occur in at least one group are materialized. Both
statistics cost the sum of squared group sizes, never the square of the
vocabulary.
"""

import logging
import math
import os
import time
from collections import Counter, defaultdict
from concurrent.futures import ProcessPoolExecutor
from itertools import combinations
from typing import Dict, Iterable, List, Optional

import numpy as np
from scipy import sparse

from config import Config
from text_engine.errors import CapacityExceeded, InvalidArgument
from text_engine.records import Membership, PairCorrelation, PairCount, as_memberships
from text_engine.tokenizer import Tokenizer

logger = logging.getLogger("corel.pairwise")

_CONFIGURED = object()


def _resolve_limit(max_items) -> Optional[int]:
    limit = Config.max_pairwise_items() if max_items is _CONFIGURED else max_items
    if limit is not None and limit < 0:
        raise InvalidArgument(f"max_items must be >= 0, got {limit}")
    return limit


def _check_capacity(n_items: int, limit: Optional[int]) -> None:
    if limit is not None and n_items > limit:
        logger.error("Pairwise capacity exceeded: %d items > limit %d", n_items, limit)
        raise CapacityExceeded(n_items, limit)


def _emit_order(pairs: list, symmetric: bool) -> list:
    """Duplicate canonical pairs into both orientations unless *symmetric*."""
    if symmetric:
        return pairs
    return pairs + [(b, a, v) for a, b, v in pairs]


# ════════════════════════════════════════════════════════════════════
#  Pairwise Engine
# ════════════════════════════════════════════════════════════════════

class PairwiseEngine:
    """
    Co-occurrence counts and phi correlations between grouped items.

    Pairs are generated inside each group, so items that never share a
    group produce no record in either statistic.
    """

    @staticmethod
    def group_items(memberships: Iterable) -> Dict:
        """``{group_id: set of distinct items}``, groups in first-seen order."""
        groups: dict = defaultdict(set)
        for group_id, item in as_memberships(memberships):
            groups[group_id].add(item)
        return dict(groups)

    # ----------------------------------------------------------------
    #  Co-occurrence counts
    # ----------------------------------------------------------------
    @staticmethod
    def count_pairs_partial(groups: Iterable[Iterable]) -> Counter:
        """
        Count co-occurring item pairs over a shard of groups.

        Each element of *groups* is the collection of items in one group.
        Keys are canonical ``(a, b)`` with ``a < b``; self-pairs never occur.
        """
        counts: Counter = Counter()
        for items in groups:
            for a, b in combinations(sorted(set(items)), 2):
                counts[(a, b)] += 1
        return counts

    @staticmethod
    def merge_pair_counts(partials: Iterable[Counter]) -> Counter:
        """Sum partial pair-count maps. Order of partials does not matter."""
        total: Counter = Counter()
        for part in partials:
            total.update(part)
        return total

    @staticmethod
    def _count_parallel(group_sets: list, workers: int) -> Counter:
        n_workers = workers if workers > 0 else (os.cpu_count() or 1)
        chunk_size = math.ceil(len(group_sets) / n_workers)
        shards = [group_sets[i:i + chunk_size] for i in range(0, len(group_sets), chunk_size)]
        logger.info("Counting pairs over %d groups with %d workers (%d shards)",
                    len(group_sets), n_workers, len(shards))
        with ProcessPoolExecutor(max_workers=n_workers) as executor:
            partials = list(executor.map(PairwiseEngine.count_pairs_partial, shards))
        return PairwiseEngine.merge_pair_counts(partials)

    @staticmethod
    def pairwise_count(
        memberships: Iterable,
        symmetric: bool = False,
        max_items=_CONFIGURED,
        workers: Optional[int] = 1,
    ) -> List[PairCount]:
        """
        Count the distinct groups shared by every co-occurring item pair.

        Parameters
        ----------
        memberships : iterable of Membership or ``(group_id, item)``
        symmetric : bool
            True emits each unordered pair once with ``item1 < item2``; False
            emits both ``(a, b, n)`` and ``(b, a, n)`` so either column can be
            filtered on its own.
        max_items : int | None
            Distinct-item limit (defaults to ``Config.MAX_PAIRWISE_ITEMS``);
            ``None`` disables the guard.
        workers : int | None
            ``1`` counts sequentially. Otherwise groups are partitioned over a
            process pool (``0``/``None`` = CPU count) once there are at least
            ``Config.PARALLEL_MIN_GROUPS`` groups.

        Output is sorted by ``n`` descending, ties by ``(item1, item2)``.
        """
        start_time = time.time()
        limit = _resolve_limit(max_items)
        groups = PairwiseEngine.group_items(memberships)
        n_items = len(set().union(*groups.values())) if groups else 0
        _check_capacity(n_items, limit)

        group_sets = [sorted(items) for items in groups.values()]
        if workers != 1 and len(group_sets) >= Config.PARALLEL_MIN_GROUPS:
            counts = PairwiseEngine._count_parallel(group_sets, workers or Config.PARALLEL_WORKERS)
        else:
            counts = PairwiseEngine.count_pairs_partial(group_sets)

        pairs = _emit_order([(a, b, n) for (a, b), n in counts.items()], symmetric)
        pairs.sort(key=lambda p: (-p[2], p[0], p[1]))
        logger.info("pairwise_count: %d groups, %d items, %d pairs (symmetric=%s) in %.2fs",
                    len(groups), n_items, len(counts), symmetric, time.time() - start_time)
        return [PairCount(a, b, n) for a, b, n in pairs]

    # ----------------------------------------------------------------
    #  Phi coefficient
    # ----------------------------------------------------------------
    @staticmethod
    def phi_coefficient(n11: int, n10: int, n01: int, n00: int) -> float:
        """
        Phi coefficient of a 2×2 presence/absence table.

        A zero marginal makes the correlation undefined; it is reported as 0.
        """
        row1, row0 = n11 + n10, n01 + n00
        col1, col0 = n11 + n01, n10 + n00
        denominator = row1 * row0 * col1 * col0
        if denominator == 0:
            return 0.0
        phi = (n11 * n00 - n10 * n01) / math.sqrt(denominator)
        return max(-1.0, min(1.0, phi))

    @staticmethod
    def pairwise_correlation(
        memberships: Iterable,
        min_group_frequency: Optional[int] = None,
        symmetric: bool = False,
        max_items=_CONFIGURED,
    ) -> List[PairCorrelation]:
        """
        Phi correlation between items that co-occur in at least one group.

        Items present in fewer than *min_group_frequency* distinct groups are
        dropped first. Each co-occurring pair of the remaining items gets a
        record, with the 2×2 table taken over all ``N`` groups of the input;
        pairs that never share a group are not materialized. Pairs with a
        zero marginal (an item present in every group) score 0.

        Output is sorted by correlation descending, ties by ``(item1, item2)``;
        *symmetric* behaves as in :meth:`pairwise_count`.
        """
        start_time = time.time()
        min_freq = Config.MIN_GROUP_FREQUENCY if min_group_frequency is None else min_group_frequency
        if min_freq < 1:
            raise InvalidArgument(f"min_group_frequency must be >= 1, got {min_freq}")
        limit = _resolve_limit(max_items)

        groups = PairwiseEngine.group_items(memberships)
        n_groups = len(groups)
        frequency: Counter = Counter()
        for items in groups.values():
            frequency.update(items)

        retained = sorted(item for item, f in frequency.items() if f >= min_freq)
        logger.debug("pairwise_correlation: %d of %d items meet min_group_frequency=%d",
                     len(retained), len(frequency), min_freq)
        _check_capacity(len(retained), limit)
        if len(retained) < 2:
            return []

        # ── Sparse group × item presence matrix ─────────────────────────
        col_index = {item: j for j, item in enumerate(retained)}
        rows, cols = [], []
        for i, items in enumerate(groups.values()):
            for item in items:
                j = col_index.get(item)
                if j is not None:
                    rows.append(i)
                    cols.append(j)
        presence = sparse.csr_matrix(
            (np.ones(len(rows), dtype=np.int64), (rows, cols)),
            shape=(n_groups, len(retained)),
        )
        freq = np.asarray(presence.sum(axis=0), dtype=float).ravel()
        absent = n_groups - freq

        # Stored entries of the item × item product are the co-occurring pairs
        both = (presence.T @ presence).tocoo()
        upper = both.row < both.col
        pair_i, pair_j = both.row[upper], both.col[upper]
        n11 = both.data[upper].astype(float)

        n10 = freq[pair_i] - n11
        n01 = freq[pair_j] - n11
        n00 = n_groups - n11 - n10 - n01
        denominator = np.sqrt(freq[pair_i] * absent[pair_i] * freq[pair_j] * absent[pair_j])
        degenerate = denominator == 0
        with np.errstate(divide="ignore", invalid="ignore"):
            phi = np.where(degenerate, 0.0, (n11 * n00 - n10 * n01) / denominator)
        phi = np.clip(phi, -1.0, 1.0)
        logger.debug("pairwise_correlation: %d degenerate pairs resolved to 0", int(degenerate.sum()))

        pairs = [(retained[i], retained[j], float(v))
                 for i, j, v in zip(pair_i.tolist(), pair_j.tolist(), phi.tolist())]
        pairs = _emit_order(pairs, symmetric)
        pairs.sort(key=lambda p: (-p[2], p[0], p[1]))
        logger.info("pairwise_correlation: %d groups, %d items, %d pairs (symmetric=%s) in %.2fs",
                    n_groups, len(retained), len(pair_i), symmetric, time.time() - start_time)
        return [PairCorrelation(a, b, c) for a, b, c in pairs]

    # ----------------------------------------------------------------
    #  Section contexts
    # ----------------------------------------------------------------
    @staticmethod
    def section_memberships(
        documents,
        section_size: Optional[int] = None,
        stopwords: Optional[Iterable[str]] = None,
    ) -> List[Membership]:
        """
        Split each document into consecutive sections of *section_size*
        lines and emit ``((document_id, section), word)`` memberships.

        Sections are numbered from 0 over every line of the text, blank
        lines included; stop words are removed afterwards.
        """
        size = section_size if section_size is not None else Config.DEFAULT_SECTION_SIZE
        if size < 1:
            raise InvalidArgument(f"section_size must be >= 1, got {size}")
        stopset = Tokenizer.normalise_stopwords(stopwords)
        out = []
        for doc in Tokenizer.as_documents(documents):
            for line_no, line in enumerate(doc.text.splitlines()):
                for word in Tokenizer.words(line):
                    if word not in stopset:
                        out.append(Membership((doc.id, line_no // size), word))
        return out
