"""
Per-URL survey sequence.

navigate -> wait for dynamic content -> 404 check -> discovery ->
site search / sustainability / English -> follow and validate candidate
links -> return to the IR page.

Navigation failures on followed links and in-page errors during a content
check become "not found" evidence. Any other failure (including failing to
load the IR page itself) propagates to the runner as a URL-level error.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Optional, Sequence

from .dates import minimum_recent_year, recency_window_start
from .discovery import PageDiscovery, discover_page
from .features import (
    DestinationCheck,
    FeatureEvaluation,
    FeatureState,
    apply_destination,
    apply_verdict,
    resolve_link,
    to_evidence,
)
from .keywords import GraphKeywords, KeywordConfig
from .models import FeatureKey, SurveyMode, SurveyResult
from .page import NavigationError, PageError, SurveyPage
from .search_detection import SearchDelays, SearchDetector
from .validators import (
    evaluate_financial_recency,
    evaluate_profile,
    evaluate_shareholder_content,
    evaluate_top_message,
    select_integrated_report_link,
)

logger = logging.getLogger(__name__)


@dataclass
class SurveySettings:
    """Timeouts, settle delays and the run clock for one survey run."""
    wait_ms: int = 3000
    navigation_timeout_ms: int = 15000
    link_timeout_ms: int = 10000
    min_dynamic_wait_ms: int = 10000
    poll_interval_ms: int = 500
    link_settle_ms: int = 1000
    search_delays: SearchDelays = field(default_factory=SearchDelays)
    run_started_at: datetime = field(default_factory=datetime.now)

    @property
    def dynamic_wait_ms(self) -> int:
        return max(self.wait_ms, self.min_dynamic_wait_ms)

    @property
    def message_window_start(self) -> datetime:
        return recency_window_start(self.run_started_at)

    @property
    def min_recent_year(self) -> int:
        # Fixed for the whole run, even if it crosses a year boundary
        return minimum_recent_year(self.run_started_at)


@dataclass
class ContentVerdict:
    valid: bool
    note: str
    evidence_url: str = ""


ContentCheck = Callable[[SurveyPage], ContentVerdict]


def check_link_destination(
    page: SurveyPage,
    url: str,
    check: ContentCheck,
    timeout_ms: int = 10000,
    settle_ms: int = 1000,
    log: Optional[logging.Logger] = None,
) -> DestinationCheck:
    """Visit ``url``, reject 404-like pages, then run ``check`` on the page."""
    log = log or logger
    try:
        actual_url = page.navigate(url, timeout_ms)
    except NavigationError as e:
        log.warning(f"    Access error for {url}: {e.message}")
        return DestinationCheck(url=url, exists=False, is_404=True, error=f"navigation failed: {e.message}")
    page.pause(settle_ms)

    try:
        if page.looks_not_found():
            return DestinationCheck(url=actual_url, exists=False, is_404=True)
        verdict = check(page)
    except PageError as e:
        log.warning(f"    Content check failed on {actual_url}: {e}")
        return DestinationCheck(url=actual_url, exists=False, note=f"content check failed: {e}", error=str(e))

    return DestinationCheck(
        url=actual_url,
        exists=verdict.valid,
        note=verdict.note,
        evidence_url=verdict.evidence_url,
    )


def _matches_pattern(text: str, pattern: str) -> bool:
    try:
        return re.search(pattern, text, re.IGNORECASE) is not None
    except re.error:
        return pattern in text


def detect_chart_visual(page: SurveyPage, config: GraphKeywords) -> bool:
    """Chart-like element, chart image or chart wording on the page."""
    if any(page.query(selector) is not None for selector in config.selectors):
        return True
    if config.image_alt_keywords:
        keywords = [k.lower() for k in config.image_alt_keywords]
        for image in page.query_all("img"):
            alt = image.alt.lower()
            if any(k in alt for k in keywords):
                return True
    text = page.current_text()
    return any(_matches_pattern(text, pattern) for pattern in config.text_patterns)


class IRSiteInvestigator:
    """Runs the survey sequence for one IR page at a time."""

    def __init__(
        self,
        keywords: KeywordConfig,
        settings: Optional[SurveySettings] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.keywords = keywords
        self.settings = settings or SurveySettings()
        self.log = log or logger

    # ------------------------------------------------------------------
    # Sequence
    # ------------------------------------------------------------------

    def investigate(self, page: SurveyPage, url: str, mode: SurveyMode = SurveyMode.FULL) -> SurveyResult:
        result = SurveyResult(url=url, mode=mode)
        self.log.info(f"Investigating: {url}")

        page.navigate(url, self.settings.navigation_timeout_ms)
        self._wait_for_dynamic_content(page)
        result.actual_url = page.url

        if page.looks_not_found():
            self.log.warning(f"  IR page looks like a 404 page: {result.actual_url}")
            result.mark_not_found()
            return result.finalize()

        discovery = discover_page(page, self.keywords, include_english=mode.evaluates(FeatureKey.ENGLISH))
        evaluations: Dict[FeatureKey, FeatureEvaluation] = {}

        if mode.evaluates(FeatureKey.SEARCH):
            evaluations[FeatureKey.SEARCH] = self._evaluate_search(page)
        if mode.evaluates(FeatureKey.SUSTAINABILITY_MENU):
            evaluations[FeatureKey.SUSTAINABILITY_MENU] = self._evaluate_sustainability(
                discovery, result.actual_url
            )
        if mode.evaluates(FeatureKey.ENGLISH):
            evaluations[FeatureKey.ENGLISH] = self._evaluate_english(page, discovery, result.actual_url)

        linked_checks = (
            (FeatureKey.TOP_MESSAGE, self._check_top_message),
            (FeatureKey.PROFILE, self._check_profile),
            (FeatureKey.FINANCIAL_GRAPH, self._check_financial),
            (FeatureKey.SHAREHOLDER_BENEFIT, self._check_shareholder),
        )
        for feature, check in linked_checks:
            if mode.evaluates(feature):
                evaluations[feature] = self._evaluate_linked(page, feature, discovery.link_for(feature), check)

        if mode.evaluates(FeatureKey.INTEGRATED_REPORT):
            evaluations[FeatureKey.INTEGRATED_REPORT] = self._evaluate_integrated_report(
                page, discovery, result.actual_url
            )

        self._return_to_origin(page, result.actual_url)

        for feature, evaluation in evaluations.items():
            result.items[feature] = to_evidence(evaluation)
            mark = "✓" if evaluation.state is FeatureState.VALIDATED else "✗"
            self.log.info(f"  {mark} {evaluation.note}")
        return result.finalize()

    def _wait_for_dynamic_content(self, page: SurveyPage) -> None:
        ceiling = self.settings.dynamic_wait_ms
        self.log.info(f"  Waiting for dynamic content (up to {ceiling}ms)")
        if page.wait_for_any(self.keywords.search.selectors, ceiling, self.settings.poll_interval_ms):
            self.log.info("  Search element appeared, dynamic wait complete")
            return
        self.log.warning(f"  Dynamic wait timed out, falling back to fixed wait ({self.settings.wait_ms}ms)")
        page.pause(self.settings.wait_ms)

    def _return_to_origin(self, page: SurveyPage, origin: str) -> None:
        if not origin or page.url == origin:
            return
        try:
            page.navigate(origin, self.settings.link_timeout_ms)
        except NavigationError as e:
            self.log.warning(f"  Could not return to IR page {origin}: {e.message}")

    def _follow(self, page: SurveyPage, url: str, check: ContentCheck) -> DestinationCheck:
        return check_link_destination(
            page,
            url,
            check,
            timeout_ms=self.settings.link_timeout_ms,
            settle_ms=self.settings.link_settle_ms,
            log=self.log,
        )

    # ------------------------------------------------------------------
    # Features judged on the IR page
    # ------------------------------------------------------------------

    def _evaluate_search(self, page: SurveyPage) -> FeatureEvaluation:
        detector = SearchDetector(page, self.keywords.search, self.settings.search_delays, self.log)
        detection = detector.detect()
        return apply_verdict(
            FeatureEvaluation(FeatureKey.SEARCH),
            detection.found,
            detection.note,
            hit_url=detection.hit_url,
            detected_selector=detection.selector,
            detected_element_type=detection.evidence_type,
        )

    def _evaluate_sustainability(self, discovery: PageDiscovery, origin: str) -> FeatureEvaluation:
        found = discovery.sustainability
        note = (
            f"menu entry with '{found.matched_keyword}'" if found.present
            else "no sustainability entry in navigation"
        )
        return apply_verdict(
            FeatureEvaluation(FeatureKey.SUSTAINABILITY_MENU),
            found.present,
            note,
            hit_url=found.url or origin,
        )

    def _evaluate_english(self, page: SurveyPage, discovery: PageDiscovery, origin: str) -> FeatureEvaluation:
        evaluation = FeatureEvaluation(FeatureKey.ENGLISH)
        english = discovery.english
        if english.present and not english.url:
            return apply_verdict(evaluation, True, "English link detected, no usable URL", hit_url=origin)

        evaluation = resolve_link(evaluation, english.url if english.present else None)
        if evaluation.is_terminal:
            return evaluation
        self.log.info("  Checking English site")
        check = self._follow(page, evaluation.link, lambda p: ContentVerdict(True, "English site reachable"))
        return apply_destination(evaluation, check)

    # ------------------------------------------------------------------
    # Link-followed features
    # ------------------------------------------------------------------

    def _evaluate_linked(
        self,
        page: SurveyPage,
        feature: FeatureKey,
        href: Optional[str],
        check: ContentCheck,
    ) -> FeatureEvaluation:
        evaluation = resolve_link(FeatureEvaluation(feature), href)
        if evaluation.is_terminal:
            return evaluation
        self.log.info(f"  Checking {evaluation.name}: {evaluation.link}")
        return apply_destination(evaluation, self._follow(page, evaluation.link, check))

    def _check_top_message(self, page: SurveyPage) -> ContentVerdict:
        judgment = evaluate_top_message(
            page.current_text(),
            self.keywords.top_message.content_keywords,
            threshold_date=self.settings.message_window_start,
            today=self.settings.run_started_at,
        )
        return ContentVerdict(judgment.is_valid, judgment.note)

    def _check_profile(self, page: SurveyPage) -> ContentVerdict:
        kw = self.keywords.profile
        judgment = evaluate_profile(page.current_text(), kw.career_keywords, kw.ceo_keywords, kw.year_patterns)
        return ContentVerdict(judgment.is_valid, judgment.note)

    def _check_financial(self, page: SurveyPage) -> ContentVerdict:
        graph = self.keywords.graph
        min_year = graph.min_year or self.settings.min_recent_year
        judgment = evaluate_financial_recency(detect_chart_visual(page, graph), page.current_text(), min_year)
        return ContentVerdict(judgment.is_valid, judgment.note)

    def _check_shareholder(self, page: SurveyPage) -> ContentVerdict:
        stock = self.keywords.stock
        judgment = evaluate_shareholder_content(
            page.current_text(), stock.content_keywords, stock.minimum_text_length
        )
        return ContentVerdict(judgment.is_valid, judgment.note)

    def _report_verdict(self, links: Sequence, min_year: int) -> ContentVerdict:
        kw = self.keywords.integrated_report
        candidate = select_integrated_report_link(links, min_year, kw.link_keywords, kw.pdf_indicators)
        if candidate is None:
            return ContentVerdict(False, f"no report PDF from {min_year} or later")
        return ContentVerdict(
            True,
            f"report PDF '{candidate.text or candidate.href}' ({candidate.latest_year})",
            evidence_url=candidate.href,
        )

    def _evaluate_integrated_report(self, page: SurveyPage, discovery: PageDiscovery, origin: str) -> FeatureEvaluation:
        min_year = self.keywords.integrated_report.min_year or self.settings.min_recent_year
        library = discovery.link_for(FeatureKey.INTEGRATED_REPORT)

        if library:
            evaluation = resolve_link(FeatureEvaluation(FeatureKey.INTEGRATED_REPORT), library)
            self.log.info(f"  Checking {evaluation.name}: {library}")
            check = self._follow(
                page,
                library,
                lambda p: self._report_verdict(list(p.links()) + discovery.all_links, min_year),
            )
            return apply_destination(evaluation, check)

        # No library page: the IR page itself may list the report
        verdict = self._report_verdict(discovery.all_links, min_year)
        evaluation = resolve_link(
            FeatureEvaluation(FeatureKey.INTEGRATED_REPORT),
            verdict.evidence_url or None,
        )
        if evaluation.is_terminal:
            return evaluation
        return apply_destination(
            evaluation,
            DestinationCheck(url=origin, exists=True, note=verdict.note, evidence_url=verdict.evidence_url),
        )
