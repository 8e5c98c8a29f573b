"""
Per-feature evaluation state machine.

Each link-followed feature moves through::

    UNRESOLVED -> LINK_FOUND | LINK_MISSING
    LINK_FOUND -> VALIDATED | REJECTED

Features judged directly on the IR page (site search, sustainability menu)
go straight from UNRESOLVED to VALIDATED or REJECTED. Every transition is a
pure function returning a new ``FeatureEvaluation``; only the terminal
states (and LINK_MISSING) can be turned into an ``EvidenceItem``.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from .models import FEATURE_NAMES, EvidenceItem, FeatureKey


class FeatureState(Enum):
    UNRESOLVED = "unresolved"
    LINK_FOUND = "link_found"
    LINK_MISSING = "link_missing"
    VALIDATED = "validated"
    REJECTED = "rejected"


TERMINAL_STATES = (FeatureState.LINK_MISSING, FeatureState.VALIDATED, FeatureState.REJECTED)


class InvalidTransition(Exception):
    """Raised when a transition is applied from the wrong state."""

    def __init__(self, feature: FeatureKey, state: FeatureState, transition: str):
        self.feature = feature
        self.state = state
        super().__init__(f"{feature.value}: cannot apply {transition} in state {state.value}")


@dataclass(frozen=True)
class DestinationCheck:
    """Outcome of visiting a candidate link and validating its content."""
    url: str
    exists: bool
    is_404: bool = False
    note: str = ""
    evidence_url: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class FeatureEvaluation:
    feature: FeatureKey
    state: FeatureState = FeatureState.UNRESOLVED
    link: str = ""
    hit_url: str = ""
    note: str = ""
    detected_selector: str = ""
    detected_element_type: str = ""

    @property
    def name(self) -> str:
        return FEATURE_NAMES[self.feature]

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


def _require(evaluation: FeatureEvaluation, state: FeatureState, transition: str) -> None:
    if evaluation.state is not state:
        raise InvalidTransition(evaluation.feature, evaluation.state, transition)


def resolve_link(evaluation: FeatureEvaluation, href: Optional[str]) -> FeatureEvaluation:
    """UNRESOLVED -> LINK_FOUND when ``href`` is set, else LINK_MISSING."""
    _require(evaluation, FeatureState.UNRESOLVED, "resolve_link")
    if href:
        return replace(
            evaluation,
            state=FeatureState.LINK_FOUND,
            link=href,
            note=f"{evaluation.name}: candidate link {href}",
        )
    return replace(
        evaluation,
        state=FeatureState.LINK_MISSING,
        note=f"{evaluation.name}: no candidate link on IR page",
    )


def apply_destination(evaluation: FeatureEvaluation, check: DestinationCheck) -> FeatureEvaluation:
    """LINK_FOUND -> VALIDATED when the destination exists and passed validation."""
    _require(evaluation, FeatureState.LINK_FOUND, "apply_destination")
    if check.is_404:
        reason = check.error or "destination looks like a 404 page"
        return replace(
            evaluation,
            state=FeatureState.REJECTED,
            note=f"{evaluation.name}: {reason} ({check.url})",
        )
    if not check.exists:
        return replace(
            evaluation,
            state=FeatureState.REJECTED,
            note=f"{evaluation.name}: {check.note or 'content check failed'} ({check.url})",
        )
    return replace(
        evaluation,
        state=FeatureState.VALIDATED,
        hit_url=check.evidence_url or check.url,
        note=f"{evaluation.name}: {check.note or 'confirmed'}",
    )


def apply_verdict(
    evaluation: FeatureEvaluation,
    found: bool,
    note: str,
    hit_url: str = "",
    detected_selector: str = "",
    detected_element_type: str = "",
) -> FeatureEvaluation:
    """UNRESOLVED -> VALIDATED | REJECTED for features judged on the IR page."""
    _require(evaluation, FeatureState.UNRESOLVED, "apply_verdict")
    return replace(
        evaluation,
        state=FeatureState.VALIDATED if found else FeatureState.REJECTED,
        hit_url=hit_url if found else "",
        note=f"{evaluation.name}: {note}",
        detected_selector=detected_selector,
        detected_element_type=detected_element_type,
    )


def to_evidence(evaluation: FeatureEvaluation) -> EvidenceItem:
    if not evaluation.is_terminal:
        raise InvalidTransition(evaluation.feature, evaluation.state, "to_evidence")
    validated = evaluation.state is FeatureState.VALIDATED
    return EvidenceItem(
        value=1 if validated else 0,
        hit_url=evaluation.hit_url if validated else "",
        note=evaluation.note,
        detected_selector=evaluation.detected_selector,
        detected_element_type=evaluation.detected_element_type,
    )
