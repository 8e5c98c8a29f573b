"""
Sequential survey loop.

One page is shared across URLs and reused; results come back in input
order. A URL-level failure yields an error result and the run continues;
repeated failures recycle the page.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from .health import CONSECUTIVE_FAILURES_RECYCLE, PageHealth
from .investigator import IRSiteInvestigator, SurveySettings
from .keywords import KeywordConfig
from .models import FEATURE_NAMES, FeatureKey, SurveyMode, SurveyResult
from .page import SurveyPage

logger = logging.getLogger(__name__)

# Pause between URLs in seconds
DELAY_BETWEEN_URLS_S = 1.0


class SurveyRunner:
    """Runs the investigator over a URL list with one reusable page."""

    def __init__(
        self,
        page_factory: Callable[[], SurveyPage],
        keywords: KeywordConfig,
        settings: Optional[SurveySettings] = None,
        mode: SurveyMode = SurveyMode.FULL,
        failure_threshold: int = CONSECUTIVE_FAILURES_RECYCLE,
        delay_s: float = DELAY_BETWEEN_URLS_S,
        sleep: Callable[[float], None] = time.sleep,
        log: Optional[logging.Logger] = None,
    ):
        self.page_factory = page_factory
        self.mode = mode
        self.delay_s = delay_s
        self.sleep = sleep
        self.log = log or logger
        self.health = PageHealth(threshold=failure_threshold)
        self.investigator = IRSiteInvestigator(keywords, settings, self.log)

    def run(self, urls: Iterable[str]) -> List[SurveyResult]:
        urls = list(urls)
        total = len(urls)
        results: List[SurveyResult] = []

        self.log.info(f"Surveying {total} URL(s) in {self.mode.value} mode")
        page = self.page_factory()
        try:
            for index, url in enumerate(urls, 1):
                self.log.info(f"[{index}/{total}] {url}")
                result, page = self._survey_one(page, url)
                result.metadata["index"] = index
                results.append(result)
                self.log.info(f"  Detected {result.detected_count}/{len(self.mode.features)} feature(s)")

                if index < total and self.delay_s > 0:
                    self.sleep(self.delay_s)
        finally:
            page.close()

        return results

    def _survey_one(self, page: SurveyPage, url: str):
        try:
            result = self.investigator.investigate(page, url, self.mode)
        except Exception as e:
            # Any URL-level failure is recorded; the remaining URLs still run
            message = str(e) or e.__class__.__name__
            self.log.error(f"  Failed to survey {url}: {message}")
            result = SurveyResult(url=url, mode=self.mode)
            result.mark_error(message)
            self.health.record_failure(message)
            if self.health.needs_recycle:
                page = self._recycle(page)
            return result, page

        self.health.record_success()
        return result, page

    def _recycle(self, page: SurveyPage) -> SurveyPage:
        self.log.warning(
            f"  {self.health.consecutive_failures} consecutive failures, recreating browser page"
        )
        page.close()
        self.health.record_recycle()
        return self.page_factory()


def summarize(results: List[SurveyResult]) -> Dict[str, Any]:
    """Counts per feature plus error totals."""
    detected = {FEATURE_NAMES[key]: 0 for key in FeatureKey}
    for result in results:
        for key, item in result.items.items():
            detected[FEATURE_NAMES[key]] += item.value

    errors = [r.url for r in results if r.error]
    return {
        "total_urls": len(results),
        "succeeded": len(results) - len(errors),
        "failed": len(errors),
        "failed_urls": errors,
        "detected": detected,
    }
