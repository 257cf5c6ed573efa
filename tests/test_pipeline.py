"""
End-to-end tests for the resume pipeline: classification through placement on
plain text, and the full upload path on a .txt document.
"""

import asyncio

import pytest

from resume_intake.core.config import Settings
from resume_intake.core.document_ingestor import DocumentIngestor
from resume_intake.core.errors import ErrorCode, ParserError
from resume_intake.core.resume_pipeline import ResumePipeline, overall_quality, to_resume_data
from resume_intake.core.schemas import ExtractionMethod, ParsingOptions, RawDocument
from resume_intake.core.text_normalization import normalize_text

pipeline = ResumePipeline(Settings())


def parse(raw, pipeline=pipeline, on_progress=None, context=None, **option_overrides):
    options = ParsingOptions(retry_base_delay_ms=0, **option_overrides)
    return asyncio.run(pipeline.parse_document(raw, options, on_progress=on_progress, context=context))


class TestProcessText:
    def test_fields_extracted(self, resume_text):
        data = pipeline.process_text(normalize_text(resume_text)).processed_data
        assert (data.contact.first_name, data.contact.last_name) == ("John", "Smith")
        assert data.contact.email == "john.smith@email.com"
        assert data.contact.phone == "(555) 123-4567"
        assert (data.contact.city, data.contact.state) == ("San Francisco", "CA")

        job = data.work_experiences[0]
        assert (job.job_title, job.employer, job.current) == ("Software Engineer", "Acme Inc", True)

        edu = data.education[0]
        assert (edu.degree, edu.field, edu.school, edu.grad_year) == (
            "Bachelor of Science", "Computer Science", "University of California", "2018"
        )
        assert data.skills == ["Python", "JavaScript", "React", "Node.js", "SQL"]

    def test_placement(self, resume_text):
        result = pipeline.process_text(normalize_text(resume_text))
        assert result.confidence.overall == pytest.approx(0.8686, abs=1e-3)
        assert result.placement.should_auto_place is True
        assert result.placement.requires_review is True
        assert result.placement.confidence == result.confidence.overall
        assert [(f.section, f.field) for f in result.uncertainty.uncertain_fields] == [("skills", "extraction")]

    def test_metadata(self, resume_text):
        result = pipeline.process_text(normalize_text(resume_text))
        assert set(result.metadata.sections_found) == {"contact", "experience", "education", "skills"}
        assert result.metadata.overall_quality == "excellent"
        assert result.metadata.text_length == len(normalize_text(resume_text))

    def test_deterministic(self, resume_text):
        text = normalize_text(resume_text)
        first = pipeline.process_text(text)
        second = pipeline.process_text(text)
        assert first.processed_data == second.processed_data
        assert first.confidence == second.confidence

    def test_unlabelled_resume(self):
        text = (
            "Maria Garcia\nmaria.garcia@email.com\n(512) 555-0142\nAustin, TX\n\n"
            "Software Engineer at Acme Inc\n2019 - Present\nBuilt billing services in Python and Go\n\n"
            "Bachelor of Science in Computer Science\nUniversity of Texas, 2018\n\n"
            "Python, JavaScript, SQL, Docker"
        )
        data = pipeline.process_text(normalize_text(text)).processed_data
        assert data.contact.email == "maria.garcia@email.com"
        assert [(j.job_title, j.employer) for j in data.work_experiences] == [("Software Engineer", "Acme Inc")]
        assert [(e.degree, e.school) for e in data.education] == [("Bachelor of Science", "University of Texas")]
        assert {"Python", "JavaScript", "SQL", "Docker"} <= set(data.skills)

    def test_missing_sections_recommended(self):
        result = pipeline.process_text("Jane Doe\njane@example.com\n\nSKILLS\nPython, SQL, Docker, Airflow")
        assert "Add a clearly labeled education section" in result.metadata.recommendations
        assert "Add a clearly labeled experience section" in result.metadata.recommendations


class TestParseDocument:
    def test_text_upload(self, resume_text):
        progress = []
        raw = RawDocument.from_bytes(resume_text.encode(), "resume.txt", "text/plain")
        result = parse(raw, on_progress=lambda pct, status: progress.append(pct))
        assert result.metadata.extraction_method == ExtractionMethod.PLAINTEXT
        assert result.processed_data.contact.email == "john.smith@email.com"
        assert progress[-1] == 100
        assert progress == sorted(progress)

    def test_short_text_warns(self):
        context = pipeline.new_context("note.txt")
        parse(RawDocument.from_bytes(b"Jane Doe\njane@example.com", "note.txt"), context=context)
        assert any(w.startswith("Extracted text is very short") for w in context.warnings)
        assert "No work experience found" in context.warnings

    def test_strict_validation_rejects_short_text(self):
        context = pipeline.new_context("note.txt")
        with pytest.raises(ParserError) as exc_info:
            parse(RawDocument.from_bytes(b"Jane Doe\njane@example.com", "note.txt"), context=context, strict_validation=True)
        assert exc_info.value.code == ErrorCode.INSUFFICIENT_DATA
        assert context.has_error(ErrorCode.INSUFFICIENT_DATA)

    def test_strict_validation_requires_experience(self):
        text = b"Jane Doe\njane@example.com\n(555) 987-6543\n\nSKILLS\nPython, SQL, Docker, Airflow, Spark"
        with pytest.raises(ParserError) as exc_info:
            parse(RawDocument.from_bytes(text, "resume.txt"), strict_validation=True)
        assert exc_info.value.code == ErrorCode.INSUFFICIENT_DATA
        assert "No work experience found" in exc_info.value.context["missing"]

    def test_unexpected_failure_converted(self):
        def broken(content):
            raise ValueError("unexpected layout")

        custom = ResumePipeline(Settings(), ingestor=DocumentIngestor(Settings(), strategies={"text": broken}))
        with pytest.raises(ParserError) as exc_info:
            parse(RawDocument.from_bytes(b"Jane Doe", "resume.txt"), pipeline=custom, retry_attempts=0)
        assert exc_info.value.code == ErrorCode.UNKNOWN_ERROR
        assert isinstance(exc_info.value.__cause__, ValueError)


def test_resume_data_switches_on_parsed_sections(resume_text):
    parsed = pipeline.process_text(normalize_text(resume_text)).processed_data
    active = to_resume_data(parsed).active_sections
    assert (active.contact, active.experience, active.education, active.skills) == (True, True, True, True)
    assert active.summary is False
    assert active.projects is False


@pytest.mark.parametrize("score, quality", [(0.9, "excellent"), (0.7, "good"), (0.5, "fair"), (0.2, "poor")])
def test_overall_quality(score, quality):
    assert overall_quality(score) == quality
