"""LDA adapter: normalised beta/gamma and joins against tf-idf."""

from collections import defaultdict

import pytest

from text_engine.errors import InvalidArgument
from text_engine.frequency import FrequencyTable
from text_engine.tfidf import TfIdfScorer
from text_engine.tokenizer import Tokenizer
from text_engine.topics import TopicModeler

CORPUS = [
    ("space1", "rocket orbit launch rocket orbit moon"),
    ("space2", "moon orbit rocket launch launch"),
    ("cook1", "flour sugar oven bake flour"),
    ("cook2", "bake oven sugar butter flour"),
]


def _model(k=2):
    counts = FrequencyTable.count_terms(Tokenizer.unnest_tokens(CORPUS))
    return counts, TopicModeler.infer_topics(counts, k, seed=1)


def test_beta_and_gamma_are_distributions():
    counts, model = _model()
    vocabulary = {c.term for c in counts}
    assert len(model.beta) == 2 * len(vocabulary)
    assert len(model.gamma) == 2 * len(CORPUS)

    beta_sums, gamma_sums = defaultdict(float), defaultdict(float)
    for rec in model.beta:
        assert rec.beta >= 0
        beta_sums[rec.topic] += rec.beta
    for rec in model.gamma:
        assert 0 <= rec.gamma <= 1
        gamma_sums[rec.document_id] += rec.gamma
    assert set(beta_sums) == {1, 2}
    assert all(s == pytest.approx(1.0) for s in beta_sums.values())
    assert all(s == pytest.approx(1.0) for s in gamma_sums.values())


def test_top_terms_and_dominant_topics():
    _, model = _model()
    top = TopicModeler.top_topic_terms(model, n=3)
    assert sorted(top) == [1, 2]
    assert all(len(recs) == 3 for recs in top.values())

    dominant = TopicModeler.dominant_topics(model)
    assert set(dominant) == {doc_id for doc_id, _ in CORPUS}


def test_join_with_tf_idf():
    counts, model = _model()
    joined = TopicModeler.join_tf_idf_topics(TfIdfScorer.bind_tf_idf(counts), model)
    assert list(joined.columns[-2:]) == ["topic", "gamma"]
    assert len(joined) == len(counts)
    assert joined["topic"].notna().all()


def test_bad_arguments():
    counts = FrequencyTable.count_terms(Tokenizer.unnest_tokens(CORPUS))
    with pytest.raises(InvalidArgument):
        TopicModeler.infer_topics(counts, 0)
    with pytest.raises(InvalidArgument):
        TopicModeler.infer_topics([], 2)
