"""
Tests for the per-feature evaluation state machine and evidence records.
"""

import pytest

from ir_survey.features import (
    DestinationCheck,
    FeatureEvaluation,
    FeatureState,
    InvalidTransition,
    apply_destination,
    apply_verdict,
    resolve_link,
    to_evidence,
)
from ir_survey.models import FeatureKey, SurveyMode, SurveyResult

LINK = "https://example.co.jp/ir/message/"


def found(feature=FeatureKey.TOP_MESSAGE):
    return resolve_link(FeatureEvaluation(feature), LINK)


class TestTransitions:
    """Tests for each state transition."""

    def test_link_found(self):
        """A candidate href moves to LINK_FOUND."""
        evaluation = found()
        assert evaluation.state is FeatureState.LINK_FOUND
        assert evaluation.link == LINK
        assert not evaluation.is_terminal

    def test_link_missing_is_terminal(self):
        """No candidate href ends the evaluation."""
        evaluation = resolve_link(FeatureEvaluation(FeatureKey.TOP_MESSAGE), None)
        assert evaluation.state is FeatureState.LINK_MISSING
        assert evaluation.is_terminal
        assert "no candidate link" in evaluation.note

    def test_destination_validated(self):
        """A passing destination validates with its evidence URL."""
        check = DestinationCheck(url=LINK, exists=True, note="dated 2024-09-10", evidence_url=LINK + "#top")
        evaluation = apply_destination(found(), check)
        assert evaluation.state is FeatureState.VALIDATED
        assert evaluation.hit_url == LINK + "#top"
        assert "dated 2024-09-10" in evaluation.note

    def test_destination_404_rejected(self):
        """A 404-like destination is rejected."""
        evaluation = apply_destination(found(), DestinationCheck(url=LINK, exists=False, is_404=True))
        assert evaluation.state is FeatureState.REJECTED
        assert "404" in evaluation.note

    def test_navigation_error_note_kept(self):
        """The navigation error text ends up in the note."""
        check = DestinationCheck(url=LINK, exists=False, is_404=True, error="navigation failed: timeout")
        evaluation = apply_destination(found(), check)
        assert "navigation failed: timeout" in evaluation.note

    def test_failed_content_rejected(self):
        """Content that fails validation is rejected with its note."""
        check = DestinationCheck(url=LINK, exists=False, note="no message keyword in page text")
        evaluation = apply_destination(found(), check)
        assert evaluation.state is FeatureState.REJECTED
        assert "no message keyword" in evaluation.note

    def test_verdict_on_ir_page(self):
        """Directly judged features go straight to a terminal state."""
        evaluation = apply_verdict(
            FeatureEvaluation(FeatureKey.SEARCH), True, "visible search element",
            hit_url="https://example.co.jp/ir/", detected_selector="input", detected_element_type="search-element",
        )
        assert evaluation.state is FeatureState.VALIDATED
        assert evaluation.detected_selector == "input"

    def test_rejected_verdict_drops_hit_url(self):
        """A negative verdict carries no hit URL."""
        evaluation = apply_verdict(FeatureEvaluation(FeatureKey.SEARCH), False, "none", hit_url="x")
        assert evaluation.hit_url == ""


class TestInvalidTransitions:
    """Out-of-order transitions are programming errors."""

    def test_destination_before_link(self):
        """apply_destination requires LINK_FOUND."""
        with pytest.raises(InvalidTransition):
            apply_destination(FeatureEvaluation(FeatureKey.PROFILE), DestinationCheck(url=LINK, exists=True))

    def test_resolve_twice(self):
        """resolve_link requires UNRESOLVED."""
        with pytest.raises(InvalidTransition):
            resolve_link(found(), LINK)

    def test_evidence_from_non_terminal(self):
        """Only terminal states become evidence."""
        with pytest.raises(InvalidTransition):
            to_evidence(found())


class TestEvidence:
    """Tests for evidence items and survey results."""

    def test_validated_evidence(self):
        """Validated features score 1 with a hit URL."""
        evaluation = apply_destination(found(), DestinationCheck(url=LINK, exists=True))
        item = to_evidence(evaluation)
        assert item.value == 1
        assert item.hit_url == LINK
        assert item.note

    def test_missing_link_evidence(self):
        """A missing link scores 0 and still has a note."""
        item = to_evidence(resolve_link(FeatureEvaluation(FeatureKey.PROFILE), ""))
        assert item.value == 0
        assert item.hit_url == ""
        assert item.note

    def test_not_found_marks_mode_features(self):
        """A 404 IR page zeroes every evaluated feature with a note."""
        result = SurveyResult(url=LINK, mode=SurveyMode.PRIMARY)
        result.mark_not_found()
        result.finalize()
        assert "404" in result.item(FeatureKey.SEARCH).note
        assert "not evaluated in primary mode" in result.item(FeatureKey.PROFILE).note
        assert result.detected_count == 0

    def test_error_result_notes(self):
        """A URL-level error puts the message on every item."""
        result = SurveyResult(url=LINK)
        result.mark_error("boom")
        assert result.error == "boom"
        assert all(item.note == "error: boom" for item in result.items.values())

    def test_finalize_fills_every_note(self):
        """No item is left without a note."""
        result = SurveyResult(url=LINK, mode=SurveyMode.SECONDARY).finalize()
        assert all(item.note for item in result.items.values())

    def test_to_dict_uses_feature_keys(self):
        """Serialized items are keyed by feature value."""
        data = SurveyResult(url=LINK).finalize().to_dict()
        assert set(data["items"]) == {key.value for key in FeatureKey}
        assert data["mode"] == "full"
