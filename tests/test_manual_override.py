"""
Tests for merging manual corrections and re-scoring the corrected record.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from resume_intake.core.config import Settings
from resume_intake.core.manual_override import apply_manual_overrides, merge_overrides, parse_path
from resume_intake.core.resume_pipeline import ResumePipeline
from resume_intake.core.schemas import ParsedResumeData

pipeline = ResumePipeline(Settings())


@pytest.fixture
def processed(extractions):
    return ParsedResumeData(
        contact=extractions.contact.data,
        work_experiences=extractions.experience.data,
        education=extractions.education.data,
        skills=extractions.skills.data,
        summary="Kafka, Airflow, Python",
    )


def override(processed, overrides, moves=None):
    return apply_manual_overrides(processed, overrides, moves, pipeline=pipeline)


# ===== PATHS =====

class TestParsePath:
    def test_snake_case(self):
        assert parse_path("work_experiences.0.job_title") == ("work_experiences", 0, "job_title")

    def test_camel_case(self):
        assert parse_path("workExperiences.0.jobTitle") == ("work_experiences", 0, "job_title")

    def test_section_alias(self):
        assert parse_path("experience.1") == ("work_experiences", 1)

    @pytest.mark.parametrize(
        "path",
        ["hobbies", "contact.favoriteColor", "summary.text", "education.0.major", "skills.first", "contact..email"],
    )
    def test_unknown_paths_rejected(self, path):
        with pytest.raises(ValueError):
            parse_path(path)


# ===== FIELD OVERRIDES =====

def test_field_override(processed):
    result = override(processed, {"contact.email": "john@smith.dev"})
    assert result.processed_data.contact.email == "john@smith.dev"
    assert result.extraction.contact.source == "manual"
    assert result.extraction.contact.confidence == 0.9


def test_camel_case_entry_field(processed):
    result = override(processed, {"workExperiences.0.jobTitle": "Staff Engineer"})
    job = result.processed_data.work_experiences[0]
    assert job.job_title == "Staff Engineer"
    assert job.confidence == 1.0
    assert result.extraction.experience.confidence == 1.0


def test_untouched_entry_rescored_by_presence(processed):
    result = override(processed, {"contact.phone": "(555) 000-1111"})
    assert result.processed_data.work_experiences[0].confidence == 0.85


def test_appended_entry(processed):
    result = override(
        processed, {"education.1": {"school": "Stanford University", "degree": "M.S.", "gradYear": "2020"}}
    )
    education = result.processed_data.education
    assert len(education) == 2
    assert education[1].school == "Stanford University"
    assert education[1].grad_year == "2020"
    assert education[1].confidence == 1.0


def test_whole_skills_list_replaced(processed):
    result = override(processed, {"skills": ["Python", "Go", "Terraform"]})
    assert result.processed_data.skills == ["Python", "Go", "Terraform"]
    assert result.extraction.skills.confidence == 1.0


def test_corrections_can_clear_uncertainty(processed):
    result = override(processed, {"skills": ["Python", "JavaScript", "React", "Node.js", "SQL"]})
    assert result.uncertainty.uncertain_fields == []
    assert result.placement.should_auto_place is True
    assert result.placement.requires_review is False


# ===== MOVES =====

def test_summary_moved_to_skills(processed):
    result = override(processed, {}, [{"from": "summary", "to": "skills"}])
    data = result.processed_data
    assert data.summary == ""
    assert data.skills == ["Python", "JavaScript", "React", "Node.js", "SQL", "Kafka", "Airflow"]
    assert result.extraction.skills.confidence == 1.0


def test_move_given_inside_overrides(processed):
    result = override(processed, {"move": {"from": "summary", "to": "skills"}})
    assert "Kafka" in result.processed_data.skills


def test_experience_entry_moved_to_education(processed):
    context = pipeline.new_context("manual-override")
    result = apply_manual_overrides(
        processed, {}, [{"from": "work_experiences.0", "to": "education"}], pipeline=pipeline, context=context
    )
    data = result.processed_data
    assert data.work_experiences == []
    moved = data.education[1]
    assert (moved.school, moved.degree, moved.grad_year) == ("Acme Inc", "Software Engineer", "2019")
    assert "No work experience found" in context.warnings


def test_education_entry_moved_to_experience(processed):
    merged, _ = merge_overrides(processed, {}, [{"from": "education.0", "to": "experience"}])
    job = merged.work_experiences[1]
    assert job.id == "exp-2"
    assert job.employer == "University of California"
    assert job.end_date == date(2018, 1, 1)
    assert merged.education == []


def test_move_needs_both_ends(processed):
    with pytest.raises(ValueError):
        merge_overrides(processed, {}, [{"from": "summary"}])


# ===== INVALID INPUT =====

def test_invalid_path(processed):
    with pytest.raises(ValueError):
        override(processed, {"contact.favoriteColor": "blue"})


def test_index_out_of_range(processed):
    with pytest.raises(ValueError):
        override(processed, {"work_experiences.5.job_title": "Engineer"})


def test_invalid_value(processed):
    with pytest.raises(ValidationError):
        override(processed, {"work_experiences.0.start_date": "not a date"})


def test_original_record_untouched(processed):
    override(processed, {"contact.email": "john@smith.dev"})
    assert processed.contact.email == "john.smith@email.com"
