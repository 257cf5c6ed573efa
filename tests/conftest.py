"""Shared fixtures: a fully extracted resume and the classification it came from."""

from datetime import date
from typing import List

import pytest

from resume_intake.core.schemas import (
    ContactInfo,
    Education,
    ExtractionResult,
    SectionClassification,
    SectionExtractions,
    SectionSpan,
    SectionType,
    WorkExperience,
)

JOHN_SMITH = """John Smith
john.smith@email.com
(555) 123-4567
San Francisco, CA

EXPERIENCE
Software Engineer at Acme Inc
2019 - Present
• Built web applications using React and Node.js

EDUCATION
Bachelor of Science in Computer Science
University of California, Berkeley
2018

SKILLS
Python, JavaScript, React, Node.js, SQL
"""


@pytest.fixture
def resume_text():
    return JOHN_SMITH


@pytest.fixture
def classification():
    return SectionClassification(
        sections={
            SectionType.CONTACT: SectionSpan(start_line=0, end_line=4, confidence=0.7, implicit=True),
            SectionType.EXPERIENCE: SectionSpan(start_line=5, end_line=9, header="EXPERIENCE", confidence=0.9),
            SectionType.EDUCATION: SectionSpan(start_line=10, end_line=14, header="EDUCATION", confidence=0.9),
            SectionType.SKILLS: SectionSpan(start_line=15, end_line=17, header="SKILLS", confidence=0.9),
        },
        classification_confidence=0.85,
    )


@pytest.fixture
def extractions():
    return SectionExtractions(
        contact=ExtractionResult[ContactInfo](
            data=ContactInfo(
                first_name="John",
                last_name="Smith",
                email="john.smith@email.com",
                phone="(555) 123-4567",
                city="San Francisco",
                state="CA",
            ),
            confidence=0.9,
            source="contact",
        ),
        experience=ExtractionResult[List[WorkExperience]](
            data=[
                WorkExperience(
                    id="exp-1",
                    job_title="Software Engineer",
                    employer="Acme Inc",
                    start_date=date(2019, 1, 1),
                    current=True,
                    accomplishments="Built web applications using React and Node.js",
                    confidence=0.85,
                )
            ],
            confidence=0.85,
            source="experience",
        ),
        education=ExtractionResult[List[Education]](
            data=[
                Education(
                    school="University of California",
                    degree="Bachelor of Science",
                    field="Computer Science",
                    grad_year="2018",
                    confidence=1.0,
                )
            ],
            confidence=1.0,
            source="education",
        ),
        skills=ExtractionResult[List[str]](
            data=["Python", "JavaScript", "React", "Node.js", "SQL"],
            confidence=0.25,
            source="skills",
        ),
        summary=ExtractionResult[str](data="", confidence=0.0, source="summary"),
    )
