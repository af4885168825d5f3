"""
Corpus Relations – Topic Model Adapter
=======================================
Wraps scikit-learn's LDA as a black box ``infer(dtm, k, seed) → (beta, gamma)``
and exposes its output as tidy records:

  • beta   — per-topic term weights, summing to 1 within a topic
  • gamma  — per-document topic weights, summing to 1 within a document

The rest of the engine only reads these records.
"""

import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.decomposition import LatentDirichletAllocation

from config import Config
from text_engine.errors import InvalidArgument
from text_engine.frequency import FrequencyTable
from text_engine.records import DocumentTopic, TermCount, TopicTerm, to_frame

logger = logging.getLogger("corel.topics")


@dataclass(frozen=True)
class TopicModel:
    k: int
    beta: tuple
    gamma: tuple


class TopicModeler:
    """LDA fit over term-document counts, read back as beta / gamma records."""

    @staticmethod
    def infer_topics(
        counts: Sequence[TermCount],
        k: int,
        seed: Optional[int] = None,
        max_iter: Optional[int] = None,
    ) -> TopicModel:
        """Fit LDA with *k* topics on term-document counts. Topics are numbered from 1."""
        if k < 1:
            raise InvalidArgument(f"Number of topics must be >= 1, got {k}")
        if not counts:
            raise InvalidArgument("Cannot fit a topic model on an empty corpus")

        start_time = time.time()
        dtm, doc_ids, terms = FrequencyTable.document_term_matrix(counts)
        model = LatentDirichletAllocation(
            n_components=k,
            random_state=Config.DEFAULT_RANDOM_STATE if seed is None else seed,
            max_iter=max_iter or Config.TOPIC_MODEL_MAX_ITER,
            learning_method="batch",
        )
        doc_topics = model.fit_transform(dtm)

        gamma_matrix = doc_topics / doc_topics.sum(axis=1, keepdims=True)
        beta_matrix = model.components_ / model.components_.sum(axis=1, keepdims=True)

        beta = tuple(
            TopicTerm(t + 1, terms[j], float(beta_matrix[t, j]))
            for t in range(k) for j in range(len(terms))
        )
        gamma = tuple(
            DocumentTopic(doc_ids[i], t + 1, float(gamma_matrix[i, t]))
            for i in range(len(doc_ids)) for t in range(k)
        )
        logger.info("LDA: %d topics over %d documents × %d terms in %.2fs",
                    k, len(doc_ids), len(terms), time.time() - start_time)
        return TopicModel(k=k, beta=beta, gamma=gamma)

    @staticmethod
    def top_topic_terms(model: TopicModel, n: int = 10) -> Dict[int, list]:
        """``{topic: [TopicTerm, ...]}`` — the *n* highest-beta terms per topic."""
        by_topic = defaultdict(list)
        for rec in model.beta:
            by_topic[rec.topic].append(rec)
        return {
            topic: sorted(recs, key=lambda r: (-r.beta, r.term))[:n]
            for topic, recs in sorted(by_topic.items())
        }

    @staticmethod
    def dominant_topics(model: TopicModel) -> Dict:
        best: dict = {}
        for rec in model.gamma:
            current = best.get(rec.document_id)
            if current is None or rec.gamma > current[1]:
                best[rec.document_id] = (rec.topic, rec.gamma)
        return best

    @staticmethod
    def join_tf_idf_topics(tfidf_records, model: TopicModel) -> pd.DataFrame:
        """
        Left-join tf-idf records with each document's dominant topic.

        Documents missing from the model get ``topic`` / ``gamma`` of NaN.
        """
        scores = to_frame(list(tfidf_records), kind="tf_idf")
        dominant = pd.DataFrame(
            [(doc_id, topic, gamma)
             for doc_id, (topic, gamma) in TopicModeler.dominant_topics(model).items()],
            columns=["document_id", "topic", "gamma"],
        )
        joined = scores.merge(dominant, on="document_id", how="left")
        logger.debug("join_tf_idf_topics: %d rows, %d without topic",
                     len(joined), int(np.isnan(joined["topic"].to_numpy(dtype=float)).sum()))
        return joined
