"""Tokenizer: words, n-gram windows and stop-word filtering."""

import pytest

from text_engine.errors import InvalidArgument
from text_engine.tokenizer import DEFAULT_STOPWORDS, Tokenizer


def test_bigrams_of_short_sentence():
    assert list(Tokenizer.tokenize("the cat sat", 2)) == ["the cat", "cat sat"]


def test_ngram_count_law():
    text = "one two three four five six seven"
    w = len(Tokenizer.words(text))
    for n in range(1, w + 3):
        assert len(list(Tokenizer.tokenize(text, n))) == max(w - n + 1, 0)


def test_words_are_case_folded_and_stripped_of_punctuation():
    assert list(Tokenizer.tokenize("Hello, World! It's FINE.")) == ["hello", "world", "it's", "fine"]


def test_invalid_n_fails_before_iteration():
    with pytest.raises(InvalidArgument):
        Tokenizer.tokenize("a b c", 0)
    with pytest.raises(InvalidArgument):
        Tokenizer.tokenize("a b c", True)


def test_ngram_dropped_when_any_word_is_a_stopword():
    tokens = list(Tokenizer.tokenize("the cat sat on the mat", 2, {"the", "on"}))
    assert tokens == ["cat sat"]


def test_stopwords_are_case_folded():
    assert list(Tokenizer.tokenize("The Cat", 1, {"THE"})) == ["cat"]


def test_default_stopwords_cover_common_words():
    assert {"the", "and", "of"} <= DEFAULT_STOPWORDS
    assert list(Tokenizer.tokenize("the whale and the sea", 1, DEFAULT_STOPWORDS)) == ["whale", "sea"]


def test_tokenize_is_restartable():
    text = "a rose is a rose is a rose"
    assert list(Tokenizer.tokenize(text, 3)) == list(Tokenizer.tokenize(text, 3))


def test_empty_text_yields_nothing():
    assert list(Tokenizer.tokenize("", 1)) == []
    assert list(Tokenizer.tokenize("   ", 2)) == []


def test_unnest_tokens_keeps_document_order():
    rows = Tokenizer.unnest_tokens([("d1", "a b c"), ("d2", "c")], 2)
    assert rows == [("d1", "a b"), ("d1", "b c")]

    rows = Tokenizer.unnest_tokens([{"id": "x", "text": "B a"}, ("y", None)], 1)
    assert rows == [("x", "b"), ("x", "a")]


def test_separate_and_unite():
    assert Tokenizer.separate_ngram("new york city", 3) == ["new", "york", "city"]
    assert Tokenizer.unite_words(["new", "york"]) == "new york"
    with pytest.raises(InvalidArgument):
        Tokenizer.separate_ngram("new york city", 2)
