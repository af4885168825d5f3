"""TF-IDF scoring and empty-document handling."""

import math

import pytest

from text_engine.errors import EmptyDocument, InvalidArgument
from text_engine.frequency import FrequencyTable
from text_engine.tfidf import TfIdfScorer
from text_engine.tokenizer import Tokenizer

CORPUS = [("doc1", "a b a b"), ("doc2", "a a")]


def _by_key(result):
    return {(r.document_id, r.term): r for r in result}


def test_two_document_scenario():
    result = TfIdfScorer.bind_tf_idf(FrequencyTable.count_terms(Tokenizer.unnest_tokens(CORPUS)))
    records = _by_key(result)

    a = records[("doc1", "a")]
    assert (a.n, a.term_frequency) == (2, 0.5)
    assert a.inverse_document_frequency == 0
    assert a.tf_idf == 0

    b = records[("doc1", "b")]
    assert b.term_frequency == 0.5
    assert b.inverse_document_frequency == pytest.approx(math.log(2))
    assert b.tf_idf == pytest.approx(0.3466, abs=1e-4)

    assert records[("doc2", "a")].term_frequency == 1.0
    assert len(result) == 3
    assert result.total_documents == 2


def test_term_in_every_document_scores_zero():
    corpus = [("x", "the whale swims"), ("y", "the sea"), ("z", "the the ship")]
    result = TfIdfScorer.score_tokens(Tokenizer.unnest_tokens(corpus))
    for rec in result:
        if rec.term == "the":
            assert rec.tf_idf == 0
    assert {r.document_id for r in result if r.term == "the"} == {"x", "y", "z"}


def test_frequencies_and_scores_are_in_range():
    corpus = [("x", "alpha beta beta gamma"), ("y", "beta delta"), ("z", "gamma gamma")]
    for rec in TfIdfScorer.score_tokens(Tokenizer.unnest_tokens(corpus)):
        assert 0 < rec.term_frequency <= 1
        assert rec.inverse_document_frequency >= 0
        assert rec.tf_idf >= 0


def test_mapping_input_and_zero_counts():
    result = TfIdfScorer.bind_tf_idf({("d1", "x"): 0, ("d1", "y"): 2, ("d2", "y"): 1, ("d2", "z"): 1})
    records = _by_key(result)
    assert ("d1", "x") not in records
    assert records[("d1", "y")].inverse_document_frequency == 0
    assert records[("d2", "z")].tf_idf == pytest.approx(0.5 * math.log(2))


def test_empty_document_is_skipped_and_reported():
    counts = FrequencyTable.count_terms(Tokenizer.unnest_tokens(CORPUS))
    result = TfIdfScorer.bind_tf_idf(counts, documents=["doc1", "doc2", "doc3"])
    assert result.excluded_documents == ("doc3",)
    assert result.total_documents == 2
    assert _by_key(result)[("doc1", "b")].inverse_document_frequency == pytest.approx(math.log(2))


def test_empty_document_can_fail_fast():
    counts = FrequencyTable.count_terms(Tokenizer.unnest_tokens(CORPUS))
    with pytest.raises(EmptyDocument) as exc_info:
        TfIdfScorer.bind_tf_idf(counts, on_empty="raise", documents=["doc1", "doc2", "doc3"])
    assert exc_info.value.document_id == "doc3"


def test_bad_arguments():
    with pytest.raises(InvalidArgument):
        TfIdfScorer.bind_tf_idf([("d1", "x", 1)], on_empty="ignore")
    with pytest.raises(InvalidArgument):
        TfIdfScorer.bind_tf_idf([("d1", "x", -1)])


def test_records_ranked_and_reproducible():
    corpus = [("x", "alpha beta beta gamma"), ("y", "beta delta"), ("z", "gamma gamma")]
    first = TfIdfScorer.score_tokens(Tokenizer.unnest_tokens(corpus))
    scores = [r.tf_idf for r in first]
    assert scores == sorted(scores, reverse=True)
    assert first.records == TfIdfScorer.score_tokens(Tokenizer.unnest_tokens(corpus)).records


def test_top_terms_per_document():
    result = TfIdfScorer.score_tokens(Tokenizer.unnest_tokens([("x", "alpha beta beta"), ("y", "beta gamma")]))
    top = TfIdfScorer.top_terms(result, per_document=1)
    assert [r.term for r in top["x"]] == ["alpha"]
    assert [r.term for r in top["y"]] == ["gamma"]
