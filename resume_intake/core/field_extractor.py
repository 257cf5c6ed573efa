"""
Per-section field extraction.

Each section extractor works on a read-only slice of the classified text (or
the whole text when its section was not found), so the five of them fan out
over a thread pool and are gathered back into one SectionExtractions record.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict

from resume_intake.core.contact_parser import extract_contact
from resume_intake.core.education_parser import extract_education
from resume_intake.core.experience_parser import extract_experience
from resume_intake.core.schemas import ExtractionResult, SectionClassification, SectionExtractions, SectionType
from resume_intake.core.skills_parser import extract_skills, extract_summary

logger = logging.getLogger(__name__)


class FieldExtractor:
    def __init__(self, max_workers: int = 4):
        self.max_workers = max(1, max_workers)

    def _jobs(self, text: str, classification: SectionClassification) -> Dict[str, Callable[[], ExtractionResult]]:
        contact_span = classification.content_of(SectionType.CONTACT)
        return {
            "contact": lambda: extract_contact(text, contact_span),
            "experience": lambda: extract_experience(classification.content_of(SectionType.EXPERIENCE), text),
            "education": lambda: extract_education(classification.content_of(SectionType.EDUCATION), text),
            "skills": lambda: extract_skills(classification.content_of(SectionType.SKILLS), text),
            "summary": lambda: extract_summary(classification.content_of(SectionType.SUMMARY)),
        }

    def extract_all(self, text: str, classification: SectionClassification) -> SectionExtractions:
        """Run every section extractor; all but summary search the full text when their section is missing."""
        jobs = self._jobs(text, classification)
        if self.max_workers == 1:
            results = {name: job() for name, job in jobs.items()}
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="extract") as executor:
                futures = {name: executor.submit(job) for name, job in jobs.items()}
                results = {name: future.result() for name, future in futures.items()}

        for name, result in results.items():
            logger.debug("%s: confidence %.2f, %d warnings", name, result.confidence, len(result.warnings))
        return SectionExtractions(**results)
