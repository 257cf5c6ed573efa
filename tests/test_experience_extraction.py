"""Tests for experience extraction from resumes."""

from datetime import date

from resume_intake.core.experience_parser import (
    EntryScore,
    extract_experience,
    looks_like_title_line,
    section_confidence,
    split_entries,
)

SINGLE = """Software Engineer at Acme Inc
2019 - Present
• Built web applications using React and Node.js"""

TWO_JOBS = """Senior Data Engineer | Globex Corp | Austin, TX
Jan 2018 - Dec 2020
• Led migration to Spark
• Cut batch runtime by 40%

Data Analyst at Initech
06/2015 - 12/2017
• Built weekly revenue dashboards"""


def test_title_at_company_entry():
    result = extract_experience(SINGLE)
    assert len(result.data) == 1
    job = result.data[0]
    assert job.id == "exp-1"
    assert job.job_title == "Software Engineer"
    assert job.employer == "Acme Inc"
    assert job.start_date == date(2019, 1, 1)
    assert job.end_date is None
    assert job.current is True
    assert job.accomplishments == "Built web applications using React and Node.js"
    assert job.confidence == 0.85
    assert result.warnings == []


def test_single_entry_section_confidence_equals_entry_confidence():
    result = extract_experience(SINGLE)
    assert result.confidence == result.data[0].confidence


def test_pipe_separated_headline_with_location():
    result = extract_experience(TWO_JOBS)
    first = result.data[0]
    assert first.job_title == "Senior Data Engineer"
    assert first.employer == "Globex Corp"
    assert first.location == "Austin, TX"
    assert first.start_date == date(2018, 1, 1)
    assert first.end_date == date(2020, 12, 1)
    assert first.current is False
    assert "Led migration to Spark" in first.accomplishments
    assert "Cut batch runtime by 40%" in first.accomplishments


def test_entries_split_on_blank_lines():
    result = extract_experience(TWO_JOBS)
    assert [job.id for job in result.data] == ["exp-1", "exp-2"]
    second = result.data[1]
    assert second.job_title == "Data Analyst"
    assert second.employer == "Initech"
    assert second.start_date == date(2015, 6, 1)
    assert second.end_date == date(2017, 12, 1)


def test_entries_split_on_title_line_after_bullets():
    text = (
        "Data Engineer at Globex Corp\n2018 - 2020\n• Built pipelines for billing\n"
        "Software Engineer at Initech\n2016 - 2018\n• Wrote reporting services"
    )
    entries = split_entries(text)
    assert len(entries) == 2
    assert entries[1].lines[0] == "Software Engineer at Initech"


def test_remote_entry():
    text = "Backend Developer at Hooli\n2021 - Present\nRemote\n• Built APIs for payments"
    job = extract_experience(text).data[0]
    assert job.remote is True
    assert job.location == "Remote"
    assert job.accomplishments == "Built APIs for payments"
    assert job.confidence == 1.0


def test_two_line_headline():
    text = "Acme Corp\nSenior Product Manager\nMar 2019 - Present\n• Owned the onboarding roadmap"
    job = extract_experience(text).data[0]
    assert job.job_title == "Senior Product Manager"
    assert job.employer == "Acme Corp"
    assert job.current is True


def test_empty_section_warns():
    result = extract_experience("")
    assert result.data == []
    assert result.confidence == 0.0
    assert result.warnings == ["No work experience found"]


def test_short_fragments_dropped():
    entries = split_entries("Intern\n\nSoftware Engineer at Acme Inc\n2019 - 2020")
    assert [e.lines[0] for e in entries] == ["Software Engineer at Acme Inc"]


def test_title_line_detection():
    assert looks_like_title_line("Senior Software Engineer")
    assert looks_like_title_line("Data Analyst at Initech")
    assert not looks_like_title_line("• Built dashboards for the sales team")
    assert not looks_like_title_line("Improved conversion across every funnel stage")


class TestSectionConfidence:
    """Mean of core scores plus the best bonus."""

    def test_empty(self):
        assert section_confidence([]) == 0.0

    def test_adding_a_complete_entry_never_lowers_confidence(self):
        partial = EntryScore(core=0.6, bonus=0.05)
        complete = EntryScore(core=0.8, bonus=0.2)
        before = section_confidence([partial])
        after = section_confidence([partial, complete])
        assert after >= before

    def test_adding_a_complete_entry_through_extraction(self):
        partial = "Data Analyst at Initech\n• Built weekly revenue dashboards"
        complete = "Backend Developer at Hooli\n2021 - Present\nRemote\n• Built APIs for payments"
        before = extract_experience(partial).confidence
        after = extract_experience(partial + "\n\n" + complete).confidence
        assert after >= before

    def test_capped_at_one(self):
        assert section_confidence([EntryScore(core=0.8, bonus=0.4)]) == 1.0


BACK_TO_BACK = """Senior Software Engineer at Beta Corp
2021 - Present
Led the payments platform migration to Kubernetes
Software Engineer at Acme Inc
2018 - 2021
Built internal tooling for the data team"""

UNLABELLED = """Maria Garcia
maria.garcia@email.com
(512) 555-0142
Austin, TX

Software Engineer at Acme Inc
2019 - Present
Built billing services in Python and Go

Bachelor of Science in Computer Science
University of Texas, 2018

Python, JavaScript, SQL, Docker"""


def test_entries_split_on_title_line_after_dates():
    result = extract_experience(BACK_TO_BACK)
    assert [(j.job_title, j.employer, j.start_date) for j in result.data] == [
        ("Senior Software Engineer", "Beta Corp", date(2021, 1, 1)),
        ("Software Engineer", "Acme Inc", date(2018, 1, 1)),
    ]
    assert result.data[0].current is True
    assert result.data[0].accomplishments == "Led the payments platform migration to Kubernetes"
    assert result.data[1].end_date == date(2021, 1, 1)


def test_long_sentence_ending_in_role_word_is_not_a_title():
    assert not looks_like_title_line("Worked closely with the product manager")


class TestFullTextFallback:
    def test_jobs_found_without_experience_section(self):
        result = extract_experience(None, UNLABELLED)
        assert len(result.data) == 1
        job = result.data[0]
        assert (job.job_title, job.employer, job.current) == ("Software Engineer", "Acme Inc", True)
        assert job.start_date == date(2019, 1, 1)
        assert job.accomplishments == "Built billing services in Python and Go"
        assert result.warnings == []

    def test_text_without_job_blocks(self):
        result = extract_experience(None, "Jane Doe\njane@example.com")
        assert result.data == []
        assert result.warnings == ["No work experience found"]
