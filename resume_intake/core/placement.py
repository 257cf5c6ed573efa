"""
Uncertainty detection and the placement decision.

UncertaintyDetector collects every field the pipeline is unsure about;
PlacementDecider turns the composite score plus that list into a verdict:
place automatically, place and ask for review, or hold for manual entry.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from resume_intake.core.config import ScoringConfig
from resume_intake.core.confidence_calculator import interpret_confidence
from resume_intake.core.schemas import (
    ConfidenceScore,
    IntelligentPlacementResult,
    PlacementAlternative,
    PlacementDecision,
    SectionExtractions,
    UncertainField,
    UncertaintyDetection,
)

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ("contact", "experience")

# Extractor warning text -> field it concerns
_WARNING_FIELDS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"email", re.I), "email"),
    (re.compile(r"phone", re.I), "phone"),
    (re.compile(r"\bname\b", re.I), "name"),
    (re.compile(r"job entry (\d+)", re.I), "entry_{0}"),
    (re.compile(r"education entry (\d+)", re.I), "entry_{0}"),
    (re.compile(r"skills", re.I), "skills"),
]


def _warning_field(warning: str) -> str:
    for pattern, field in _WARNING_FIELDS:
        m = pattern.search(warning)
        if m:
            return field.format(*m.groups())
    return "section"


class UncertaintyDetector:
    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()

    def detect(self, score: ConfidenceScore, extractions: SectionExtractions) -> UncertaintyDetection:
        t = self.config.thresholds
        found: Dict[Tuple[str, str], UncertainField] = {}

        def add(item: UncertainField) -> None:
            key = (item.section, item.field)
            if key not in found or item.confidence < found[key].confidence:
                found[key] = item

        for name, result in extractions.scored().items():
            if result.confidence < t.manual_review:
                add(
                    UncertainField(
                        section=name,
                        field="extraction",
                        confidence=result.confidence,
                        reason=f"Low extraction confidence for {name} ({result.confidence:.2f})",
                        suggestion=f"Review the {name} section",
                    )
                )
            for warning in result.warnings:
                add(
                    UncertainField(
                        section=name,
                        field=_warning_field(warning),
                        confidence=result.confidence,
                        reason=warning,
                        suggestion=f"Check the {name} section",
                    )
                )

        for detail in score.details:
            if detail.score < t.manual_review:
                add(
                    UncertainField(
                        section=detail.section,
                        field=detail.field,
                        confidence=detail.score,
                        reason=detail.reason,
                        suggestion=detail.suggestion or "",
                    )
                )

        fields = list(found.values())
        count = len(fields)
        return UncertaintyDetection(
            uncertain_fields=fields,
            recommend_manual_review=score.overall < t.manual_review or count > t.max_uncertain_before_manual,
            auto_placement_safe=score.overall >= t.auto_placement and count == 0,
        )


class PlacementDecider:
    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()

    def decide(self, score: ConfidenceScore, uncertainty: UncertaintyDetection) -> PlacementDecision:
        """First matching rule wins."""
        t = self.config.thresholds
        overall = score.overall
        count = len(uncertainty.uncertain_fields)

        if overall >= t.auto_placement and count == 0:
            return PlacementDecision(
                should_auto_place=True,
                requires_review=False,
                confidence=overall,
                reasoning=f"High confidence ({overall:.0%}) with no uncertain fields",
            )
        if overall >= t.acceptable_quality and count <= t.max_uncertain_for_review:
            return PlacementDecision(
                should_auto_place=True,
                requires_review=True,
                confidence=overall,
                reasoning=f"Acceptable confidence ({overall:.0%}) with {count} uncertain field(s); review recommended",
            )
        if overall >= t.manual_review:
            return PlacementDecision(
                should_auto_place=False,
                requires_review=True,
                confidence=overall,
                reasoning=f"Moderate confidence ({overall:.0%}) with {count} uncertain field(s); review required before placement",
            )

        alternatives = [
            PlacementAlternative(
                section=f.section,
                field=f.field,
                suggested_value=None,
                confidence=f.confidence,
                reason=f"Consider manual entry for {f.field}",
            )
            for f in uncertainty.uncertain_fields
            if f.confidence < t.low_confidence
        ]
        return PlacementDecision(
            should_auto_place=False,
            requires_review=True,
            confidence=overall,
            reasoning=f"Low confidence ({overall:.0%}); extensive review needed",
            alternatives=alternatives or None,
        )


def validate_placement_result(result: IntelligentPlacementResult, config: Optional[ScoringConfig] = None) -> List[str]:
    """Returns the problems found; an empty list means the result is usable."""
    t = (config or ScoringConfig()).thresholds
    issues: List[str] = []

    sections = {s.value for s in result.classification.sections}
    for section in REQUIRED_SECTIONS:
        if section not in sections:
            issues.append(f"Missing required section: {section}")

    contact = result.processed_data.contact
    if not (contact.first_name or contact.email):
        issues.append("Contact has neither a name nor an email")

    placement = result.placement
    count = len(result.uncertainty.uncertain_fields)
    if placement.confidence != result.confidence.overall:
        issues.append("Placement confidence does not match the overall score")
    if placement.should_auto_place:
        allowed = placement.confidence >= t.auto_placement or (
            placement.confidence >= t.acceptable_quality and count <= t.max_uncertain_for_review
        )
        if not allowed:
            issues.append("Auto-placement chosen below the placement thresholds")
        if not placement.requires_review and count > 0:
            issues.append("Auto-placement without review despite uncertain fields")
    elif not placement.requires_review:
        issues.append("Placement neither auto-places nor requires review")
    return issues


def placement_summary(result: IntelligentPlacementResult) -> str:
    placement = result.placement
    level = interpret_confidence(result.confidence.overall).level.replace("_", " ")
    count = len(result.uncertainty.uncertain_fields)
    if placement.should_auto_place and not placement.requires_review:
        action = "placed automatically"
    elif placement.should_auto_place:
        action = "placed automatically, review recommended"
    elif placement.alternatives:
        action = "manual entry recommended"
    else:
        action = "review required before placement"
    return f"{level.capitalize()} confidence ({result.confidence.overall:.0%}), {count} uncertain field(s): {action}"


def export_placement_result(result: IntelligentPlacementResult) -> str:
    return result.model_dump_json(by_alias=True, indent=2)
