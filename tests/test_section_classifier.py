"""
Tests for section classification.

Header detection is deterministic and rule-based: ordered patterns per
section type, whole-line headers before inline ones, and an implicit contact
span for the unlabeled preamble.
"""

from resume_intake.core.schemas import SectionType
from resume_intake.core.section_classifier import (
    IMPLICIT_CONTACT_CONFIDENCE,
    SectionClassifier,
    match_header,
)
from resume_intake.core.text_normalization import normalize_text

classifier = SectionClassifier()

RESUME = """Jane Doe
jane.doe@example.com | (555) 987-6543

PROFESSIONAL SUMMARY
Data engineer with eight years of experience building pipelines.

WORK EXPERIENCE
Data Engineer at Globex Corp
Jan 2020 - Present
• Built streaming ingestion

EDUCATION
B.S. in Computer Science, Ohio State University, 2015

TECHNICAL SKILLS
Python, SQL, Spark, Airflow, Kafka
"""


# ===== HEADER MATCHING =====

def test_experience_headers_detected():
    assert match_header("EXPERIENCE", SectionType.EXPERIENCE) is not None
    assert match_header("Professional Experience:", SectionType.EXPERIENCE) is not None
    assert match_header("Employment History", SectionType.EXPERIENCE) is not None


def test_more_specific_pattern_wins():
    """'Work Experience' hits the specific pattern before the bare keyword."""
    confidence, _ = match_header("Work Experience", SectionType.EXPERIENCE)
    bare, _ = match_header("Experience", SectionType.EXPERIENCE)
    assert confidence > bare


def test_long_lines_are_not_headers():
    assert match_header("Experience leading cross-functional teams across three continents", SectionType.EXPERIENCE) is None


def test_inline_header_carries_content():
    hit = match_header("Skills: Python, SQL, Docker", SectionType.SKILLS, inline=True)
    assert hit is not None
    assert hit[1] == "Python, SQL, Docker"


def test_inline_only_matches_in_inline_mode():
    assert match_header("Skills: Python, SQL, Docker", SectionType.SKILLS) is None


# ===== DOCUMENT CLASSIFICATION =====

def test_full_resume_sections_found():
    result = classifier.classify(normalize_text(RESUME))
    for section in (SectionType.CONTACT, SectionType.SUMMARY, SectionType.EXPERIENCE, SectionType.EDUCATION, SectionType.SKILLS):
        assert section in result.sections, section
    assert result.warnings == []


def test_implicit_contact_span_from_preamble():
    result = classifier.classify(normalize_text(RESUME))
    contact = result.sections[SectionType.CONTACT]
    assert contact.implicit is True
    assert contact.confidence == IMPLICIT_CONTACT_CONFIDENCE
    assert "jane.doe@example.com" in contact.content


def test_span_runs_until_next_header():
    result = classifier.classify(normalize_text(RESUME))
    experience = result.sections[SectionType.EXPERIENCE].content
    assert experience.startswith("Data Engineer at Globex Corp")
    assert "EDUCATION" not in experience
    assert "B.S." not in experience


def test_classification_confidence_averages_expected_sections():
    result = classifier.classify(normalize_text(RESUME))
    expected = sum(
        result.sections[s].confidence
        for s in (SectionType.CONTACT, SectionType.EXPERIENCE, SectionType.EDUCATION, SectionType.SKILLS)
    ) / 4
    assert abs(result.classification_confidence - round(expected, 4)) < 1e-9


def test_missing_sections_are_warned():
    result = classifier.classify("Jane Doe\njane@example.com\n\nSKILLS\nPython, SQL, Docker, Git")
    assert "No experience section found" in result.warnings
    assert "No education section found" in result.warnings
    assert SectionType.EXPERIENCE not in result.sections


def test_inline_skills_header_used_when_no_whole_line_header():
    text = "Jane Doe\n\nEXPERIENCE\nData Engineer at Globex Corp\n\nSkills: Python, SQL, Docker"
    result = classifier.classify(text)
    assert result.sections[SectionType.SKILLS].content.startswith("Python, SQL, Docker")


def test_empty_text():
    result = classifier.classify("")
    assert result.sections == {}
    assert result.classification_confidence == 0.0


def test_classification_is_deterministic():
    text = normalize_text(RESUME)
    assert classifier.classify(text) == classifier.classify(text)
