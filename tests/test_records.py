"""Record tuples and the tidy / delimited-file bridge."""

import pytest

from text_engine.errors import InvalidArgument
from text_engine.records import (
    PairCorrelation,
    TermCount,
    TfIdfRecord,
    read_records,
    to_frame,
    write_records,
)


def test_records_unpack_like_tuples():
    doc, term, n = TermCount("d1", "cat", 2)
    assert (doc, term, n) == ("d1", "cat", 2)
    assert TermCount("d1", "cat", 2).to_dict() == {"document_id": "d1", "term": "cat", "count": 2}


def test_frame_columns_follow_tuple_order():
    df = to_frame([PairCorrelation("a", "b", 0.5)])
    assert list(df.columns) == ["item1", "item2", "correlation"]
    empty = to_frame([], kind="tf_idf")
    assert list(empty.columns) == [
        "document_id", "term", "n", "term_frequency", "inverse_document_frequency", "tf_idf",
    ]


def test_delimited_file_persistence(tmp_path):
    path = tmp_path / "counts.tsv"
    records = [TermCount("007", "cat", 2), TermCount("008", "NA", 1)]
    assert write_records(records, str(path), sep="\t") == 2
    assert path.read_text().splitlines()[0] == "document_id\tterm\tcount"
    assert read_records(str(path), "term_count", sep="\t") == records

    path = tmp_path / "tfidf.csv"
    scored = [TfIdfRecord("d1", "b", 2, 0.5, 0.75, 0.375)]
    write_records(scored, str(path))
    assert read_records(str(path), TfIdfRecord) == scored


def test_unknown_record_kind():
    with pytest.raises(InvalidArgument):
        to_frame([], kind="sentiment")
