"""Tests for glossary parsing."""
from lektorat.services.glossary import GlossaryEntry, format_glossary, parse_glossary


def test_parse_valid_lines():
    result = parse_glossary("Lektorat: copy editing\n\nEL: Esslöffel\n")
    assert result.entries == [
        GlossaryEntry("Lektorat", "copy editing"),
        GlossaryEntry("EL", "Esslöffel"),
    ]
    assert result.invalid_lines == []
    assert result.error_message is None


def test_explanation_may_contain_colons():
    result = parse_glossary("Zeit: 10:30 Uhr")
    assert result.entries == [GlossaryEntry("Zeit", "10:30 Uhr")]


def test_invalid_lines_are_reported_one_based():
    result = parse_glossary("Good: entry\nno colon here\n: missing term\nterm only:")
    assert result.entries == [GlossaryEntry("Good", "entry")]
    assert result.invalid_lines == [2, 3, 4]
    assert "2, 3, 4" in result.error_message


def test_many_invalid_lines_are_summarised():
    result = parse_glossary("\n".join(["broken"] * 8))
    assert result.invalid_lines == list(range(1, 9))
    assert "and 3 more" in result.error_message


def test_empty_glossary_has_error_message():
    result = parse_glossary("\n  \n")
    assert result.entries == []
    assert result.error_message.startswith("No valid glossary entries")


def test_format_glossary():
    assert format_glossary([]) == ""
    assert format_glossary([GlossaryEntry("a", "b")]) == "- a: b"
