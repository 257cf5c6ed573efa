"""Comprehensive tests for skills and summary extraction."""

from resume_intake.core.skills_parser import (
    dedupe,
    extract_skills,
    extract_summary,
    keyword_skills,
    skills_confidence,
)


def test_inline_comma_list():
    result = extract_skills("Python, JavaScript, React, Node.js, SQL")
    assert result.data == ["Python", "JavaScript", "React", "Node.js", "SQL"]
    assert result.confidence == 0.25
    assert result.warnings == []


def test_skills_section_with_bullets():
    result = extract_skills("• Python\n• Kubernetes\n• Vendor negotiations")
    assert result.data == ["Python", "Kubernetes", "Vendor negotiations"]


def test_three_item_list():
    result = extract_skills("Budgeting, Forecasting, Vendor Relations")
    assert result.data == ["Budgeting", "Forecasting", "Vendor Relations"]


def test_labelled_list_keeps_unknown_tools():
    result = extract_skills("Tools: Figma, Notion, Airtable, Zapier")
    assert result.data == ["Figma", "Notion", "Airtable", "Zapier"]


def test_case_sensitive_terms_need_their_capitalisation():
    assert keyword_skills("we go rust-proofing and excel at spring cleaning") == []
    assert keyword_skills("Go, Rust, Excel, Spring Boot") == ["Go", "Rust", "Excel", "Spring Boot"]


def test_java_is_not_javascript():
    assert keyword_skills("JavaScript") == ["JavaScript"]
    assert keyword_skills("Java and JavaScript") == ["Java", "JavaScript"]


def test_dedupe_keeps_first_spelling_and_order():
    assert dedupe(["Python", "SQL", "python", " sql ", "Docker"]) == ["Python", "SQL", "Docker"]


def test_empty_section():
    result = extract_skills("")
    assert result.data == []
    assert result.confidence == 0.0
    assert result.warnings == ["No skills found"]


def test_confidence_grows_with_count_and_caps():
    assert skills_confidence([]) == 0.0
    assert skills_confidence(["a"] * 5) == 0.25
    assert skills_confidence(["a"] * 40) == 1.0


class TestFullTextFallback:
    def test_keywords_and_lists_found_without_skills_section(self):
        text = "Maria Garcia\nAustin, TX\n\nSoftware Engineer at Acme Inc\n2019 - Present\n\nPython, JavaScript, SQL, Docker"
        result = extract_skills(None, text)
        assert {"Python", "JavaScript", "SQL", "Docker"} <= set(result.data)
        assert result.warnings == []

    def test_bullets_are_not_skills(self):
        text = "Data Engineer at Globex Corp\n2018 - Present\n• Vendor negotiations"
        assert extract_skills(None, text).data == []

    def test_location_lines_skipped(self):
        text = "Jane Doe\nAustin, TX, USA\nBudgeting, Forecasting, Vendor Relations"
        assert extract_skills(None, text).data == ["Budgeting", "Forecasting", "Vendor Relations"]

class TestSummary:
    def test_lines_folded_into_paragraph(self):
        result = extract_summary("Data engineer with eight years\nof experience building pipelines.")
        assert result.data == "Data engineer with eight years of experience building pipelines."
        assert result.confidence == 0.9

    def test_short_summary_scores_lower(self):
        assert extract_summary("Data engineer.").confidence == 0.6

    def test_missing_summary(self):
        result = extract_summary(None)
        assert result.data == ""
        assert result.confidence == 0.0
