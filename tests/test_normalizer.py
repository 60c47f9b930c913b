"""Tests for whitespace normalization."""

from chatwindow.normalizer import normalize_text


def test_collapses_newline_runs():
    assert normalize_text("a\n\n\nb") == "a\nb"


def test_collapses_horizontal_whitespace():
    assert normalize_text("a \t  b  c") == "a b c"


def test_trims_both_ends():
    assert normalize_text("\n\n  hello  \n") == "hello"


def test_empty_and_blank():
    assert normalize_text("") == ""
    assert normalize_text(" \n\t ") == ""


def test_spaces_around_newlines_become_single_spaces():
    # Newlines and spaces are collapsed separately, not merged.
    assert normalize_text("a  \n\n  b") == "a \n b"


def test_carriage_returns_are_preserved():
    assert normalize_text("a\r\n\r\nb") == "a\r\n\r\nb"


def test_idempotent():
    samples = [
        "",
        "plain",
        "  lots   of\t\tspace  ",
        "x\n\n\n y \n\n z",
        "\r\n \r\n\t\n",
        "tab\tthen\n\nnewlines\n",
    ]
    for s in samples:
        once = normalize_text(s)
        assert normalize_text(once) == once
