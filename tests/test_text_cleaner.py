import pytest

from lawcrawl.normalization.text_cleaner import clean_number, normalize_whitespace

SAMPLES = [
    "  (1)\tDefinitions.\n\n  (a) Meaning  of terms. ",
    "\r\n\t",
    "already clean",
    "History.—s. 1, ch. 74-383;\n s. 2, ch. 2019-167.",
    "",
]


@pytest.mark.parametrize("text", SAMPLES)
def test_normalize_whitespace_is_idempotent(text):
    once = normalize_whitespace(text)
    assert normalize_whitespace(once) == once


def test_normalize_whitespace_collapses_runs():
    assert normalize_whitespace("  a \n\n b\t\tc  ") == "a b c"


def test_clean_number_strips_labels():
    assert clean_number("Chapter  5", "Chapter") == "5"
    assert clean_number("§ 12.01") == "12.01"
    assert clean_number("Title IV", "Chapter") == "Title IV"
