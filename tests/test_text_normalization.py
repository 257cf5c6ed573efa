"""
Unit tests for text_normalization module.

Covers whole-document canonicalisation plus the field-level helpers.
"""

from resume_intake.core.text_normalization import (
    extract_email_flexible,
    normalize_field_text,
    normalize_line,
    normalize_text,
)


class TestNormalizeText:
    """Whole-document normalization."""

    def test_line_endings_become_newlines(self):
        assert normalize_text("Line one\r\nLine two\rLine three") == "Line one\nLine two\nLine three"

    def test_tabs_and_space_runs_collapse(self):
        assert normalize_text("Jane   Doe\t\tEngineer") == "Jane Doe Engineer"

    def test_blank_line_runs_collapse_to_one(self):
        assert normalize_text("Acme Inc\n\n\n\nGlobex Corp") == "Acme Inc\n\nGlobex Corp"

    def test_leading_and_trailing_blank_lines_dropped(self):
        assert normalize_text("\n\n  \nJane Doe\n\n\n") == "Jane Doe"

    def test_zero_width_characters_removed(self):
        assert normalize_text("Jo\u200bhn Sm\ufeffith") == "John Smith"

    def test_non_breaking_space_becomes_space(self):
        assert normalize_text("San\u00a0Francisco") == "San Francisco"

    def test_empty_input(self):
        assert normalize_text("") == ""

    def test_idempotent(self):
        text = "  E X P E R I E N C E \r\n\r\n\r\n● Led a team\tof five\n\n\n"
        once = normalize_text(text)
        assert normalize_text(once) == once


class TestNormalizeLine:
    def test_letter_spaced_heading_joined(self):
        assert normalize_line("E X P E R I E N C E") == "EXPERIENCE"

    def test_letter_spaced_words_keep_word_gap(self):
        assert normalize_line("W O R K  E X P E R I E N C E") == "WORK EXPERIENCE"

    def test_ordinary_line_untouched(self):
        assert normalize_line("Built a data platform") == "Built a data platform"

    def test_bullet_glyphs_unified(self):
        assert normalize_line("● Led migration") == "• Led migration"
        assert normalize_line("▪ Led migration") == "• Led migration"


class TestFieldHelpers:
    def test_plain_email(self):
        assert extract_email_flexible("Contact: jane.doe@example.com") == "jane.doe@example.com"

    def test_email_with_stray_spaces(self):
        assert extract_email_flexible("jane.doe @ example . com") == "jane.doe@example.com"

    def test_email_glued_to_phone_rejected(self):
        assert extract_email_flexible("(856)366-5713k.o.harbaugh@gmail.com") is None

    def test_no_email(self):
        assert extract_email_flexible("no address here") is None

    def test_split_word_merged(self):
        assert normalize_field_text("Communicati on Specialist") == "Communication Specialist"

    def test_field_text_does_not_split_words(self):
        assert normalize_field_text("Sales Manager") == "Sales Manager"

    def test_separator_debris_stripped(self):
        assert normalize_field_text(" Acme Inc | ") == "Acme Inc"
