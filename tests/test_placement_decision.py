"""
Tests for uncertainty detection and the placement decision.

The decider applies its rules in order: auto-place, auto-place with review,
review before placement, manual entry.
"""

import json

import pytest

from resume_intake.core.confidence_calculator import ConfidenceCalculator
from resume_intake.core.placement import (
    PlacementDecider,
    UncertaintyDetector,
    export_placement_result,
    placement_summary,
    validate_placement_result,
)
from resume_intake.core.schemas import (
    ConfidenceBreakdown,
    ConfidenceScore,
    IntelligentPlacementResult,
    ParsedResumeData,
    PlacementDecision,
    UncertainField,
    UncertaintyDetection,
)

decider = PlacementDecider()
detector = UncertaintyDetector()


def make_score(overall):
    return ConfidenceScore(
        overall=overall,
        breakdown=ConfidenceBreakdown(classification=overall, extraction=overall, validation=overall, completeness=overall),
    )


def make_uncertainty(*confidences):
    fields = [
        UncertainField(section="contact", field=f"field_{n}", confidence=c, reason="unsure")
        for n, c in enumerate(confidences)
    ]
    return UncertaintyDetection(uncertain_fields=fields, recommend_manual_review=False, auto_placement_safe=not fields)


@pytest.fixture
def placement_result(classification, extractions):
    score = ConfidenceCalculator().calculate(classification, extractions)
    uncertainty = detector.detect(score, extractions)
    return IntelligentPlacementResult(
        classification=classification,
        extraction=extractions,
        confidence=score,
        uncertainty=uncertainty,
        placement=decider.decide(score, uncertainty),
        processed_data=ParsedResumeData(
            contact=extractions.contact.data,
            work_experiences=extractions.experience.data,
            education=extractions.education.data,
            skills=extractions.skills.data,
        ),
    )


# ===== DECISION RULES =====

class TestPlacementDecider:
    def test_high_confidence_without_uncertainty_auto_places(self):
        decision = decider.decide(make_score(0.8), make_uncertainty())
        assert decision.should_auto_place is True
        assert decision.requires_review is False
        assert decision.confidence == 0.8

    def test_just_below_threshold_needs_review(self):
        decision = decider.decide(make_score(0.79), make_uncertainty())
        assert decision.should_auto_place is True
        assert decision.requires_review is True

    def test_one_low_field_forces_review(self):
        decision = decider.decide(make_score(0.9), make_uncertainty(0.2))
        assert decision.should_auto_place is True
        assert decision.requires_review is True

    def test_too_many_uncertain_fields_blocks_auto_placement(self):
        decision = decider.decide(make_score(0.7), make_uncertainty(0.4, 0.4, 0.4))
        assert decision.should_auto_place is False
        assert decision.requires_review is True
        assert decision.alternatives is None

    def test_low_confidence_suggests_manual_entry(self):
        decision = decider.decide(make_score(0.4), make_uncertainty(0.2, 0.4))
        assert decision.should_auto_place is False
        assert decision.requires_review is True
        assert [a.field for a in decision.alternatives] == ["field_0"]

    def test_low_confidence_without_very_weak_fields(self):
        decision = decider.decide(make_score(0.4), make_uncertainty(0.45))
        assert decision.alternatives is None


# ===== UNCERTAINTY =====

class TestUncertaintyDetector:
    def test_weak_skills_extraction_flagged_once(self, classification, extractions):
        score = ConfidenceCalculator().calculate(classification, extractions)
        uncertainty = detector.detect(score, extractions)
        keys = [(f.section, f.field) for f in uncertainty.uncertain_fields]
        assert keys == [("skills", "extraction")]
        assert uncertainty.auto_placement_safe is False
        assert uncertainty.recommend_manual_review is False

    def test_extractor_warnings_become_fields(self, classification, extractions):
        extractions.contact.warnings.append("No phone number found")
        score = ConfidenceCalculator().calculate(classification, extractions)
        fields = {(f.section, f.field) for f in detector.detect(score, extractions).uncertain_fields}
        assert ("contact", "phone") in fields

    def test_many_fields_recommend_manual_review(self, extractions):
        extractions.contact.warnings.extend(["No email address found", "No phone number found", "No name found"])
        extractions.education.warnings.append("Could not extract meaningful data from education entry 2")
        uncertainty = detector.detect(make_score(0.9), extractions)
        assert len(uncertainty.uncertain_fields) > 3
        assert uncertainty.recommend_manual_review is True


# ===== RESULT CHECKS =====

def test_consistent_result_validates(placement_result):
    assert validate_placement_result(placement_result) == []


def test_inconsistent_result_reports_issues(placement_result):
    broken = placement_result.model_copy(
        update={
            "placement": PlacementDecision(
                should_auto_place=True, requires_review=False, confidence=0.5, reasoning="forced"
            )
        }
    )
    issues = validate_placement_result(broken)
    assert "Placement confidence does not match the overall score" in issues
    assert "Auto-placement chosen below the placement thresholds" in issues
    assert "Auto-placement without review despite uncertain fields" in issues


def test_summary_line(placement_result):
    assert placement_summary(placement_result) == (
        "High confidence (87%), 1 uncertain field(s): placed automatically, review recommended"
    )


def test_export_uses_camel_case(placement_result):
    exported = json.loads(export_placement_result(placement_result))
    assert exported["placement"]["shouldAutoPlace"] is True
    assert "processedData" in exported
