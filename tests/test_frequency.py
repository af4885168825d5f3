"""Term-document counting and its shard/merge form."""

from text_engine.frequency import FrequencyTable
from text_engine.records import TermCount

ROWS = [("d1", "a"), ("d1", "b"), ("d1", "a"), ("d2", "a"), ("d2", "c")]


def test_count_terms_sorted_by_count_then_key():
    assert FrequencyTable.count_terms(ROWS) == [
        TermCount("d1", "a", 2),
        TermCount("d1", "b", 1),
        TermCount("d2", "a", 1),
        TermCount("d2", "c", 1),
    ]


def test_partial_counts_merge_in_any_order():
    whole = FrequencyTable.count_partial(ROWS)
    left, right = FrequencyTable.count_partial(ROWS[:2]), FrequencyTable.count_partial(ROWS[2:])
    assert FrequencyTable.merge_counts([left, right]) == whole
    assert FrequencyTable.merge_counts([right, left]) == whole


def test_counts_from_mapping_drops_zero_counts():
    counts = FrequencyTable.counts_from_mapping({("d1", "x"): 3, ("d1", "y"): 0})
    assert counts == [TermCount("d1", "x", 3)]


def test_totals():
    counts = FrequencyTable.count_terms(ROWS)
    assert FrequencyTable.document_totals(counts) == {"d1": 3, "d2": 2}
    assert FrequencyTable.term_totals(counts) == [("a", 3), ("b", 1), ("c", 1)]


def test_document_term_matrix():
    matrix, doc_ids, terms = FrequencyTable.document_term_matrix(FrequencyTable.count_terms(ROWS))
    assert doc_ids == ["d1", "d2"]
    assert terms == ["a", "b", "c"]
    assert matrix.toarray().tolist() == [[2, 1, 0], [1, 0, 1]]
