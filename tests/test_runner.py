"""
Tests for the sequential survey loop and its page circuit breaker.
"""

from datetime import datetime

import pytest

from ir_survey.health import CONSECUTIVE_FAILURES_RECYCLE
from ir_survey.investigator import SurveySettings
from ir_survey.models import FeatureKey, SurveyMode
from ir_survey.runner import SurveyRunner, summarize

from fakes import FakeDocument, FakePage, element

GOOD = ["https://a.example.co.jp/ir/", "https://b.example.co.jp/ir/", "https://c.example.co.jp/ir/"]
BROKEN = ["https://x.example.co.jp/ir/", "https://y.example.co.jp/ir/", "https://z.example.co.jp/ir/"]


def documents():
    return [
        FakeDocument(url, elements={'input[type="search"]': [element("header input", type="search")]})
        for url in GOOD
    ]


class PageFactory:
    """Creates scripted pages and remembers them."""

    def __init__(self):
        self.pages = []

    def __call__(self):
        page = FakePage(documents(), broken=set(BROKEN))
        self.pages.append(page)
        return page


@pytest.fixture
def factory():
    return PageFactory()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_runner(keyword_config, factory, sleeps):
    def build(mode=SurveyMode.FULL):
        return SurveyRunner(
            factory,
            keyword_config,
            settings=SurveySettings(run_started_at=datetime(2025, 3, 1)),
            mode=mode,
            sleep=sleeps.append,
        )
    return build


class TestSurveyLoop:
    """Tests for ordering and error isolation."""

    def test_results_in_input_order(self, make_runner):
        """One result per URL, in input order."""
        urls = [GOOD[0], BROKEN[0], GOOD[1]]
        results = make_runner().run(urls)

        assert [r.url for r in results] == urls
        assert [r.metadata["index"] for r in results] == [1, 2, 3]

    def test_error_result_does_not_stop_run(self, make_runner):
        """A failing URL is recorded and the next URL still runs."""
        results = make_runner().run([BROKEN[0], GOOD[0]])

        assert results[0].error is not None
        assert "ERR_NAME_NOT_RESOLVED" in results[0].item(FeatureKey.SEARCH).note
        assert all(item.note.startswith("error:") for item in results[0].items.values())
        assert results[1].error is None
        assert results[1].item(FeatureKey.SEARCH).value == 1

    def test_delay_between_urls(self, make_runner, sleeps):
        """The loop pauses between URLs but not after the last."""
        make_runner().run(GOOD)

        assert sleeps == [1.0, 1.0]

    def test_page_reused_and_closed(self, make_runner, factory):
        """One page serves every URL and is closed at the end."""
        make_runner().run(GOOD)

        assert len(factory.pages) == 1
        assert factory.pages[0].closed is True

    def test_mode_passed_through(self, make_runner):
        """The run mode reaches every result."""
        results = make_runner(SurveyMode.PRIMARY).run([GOOD[0]])

        assert results[0].mode is SurveyMode.PRIMARY
        assert "not evaluated in primary mode" in results[0].item(FeatureKey.PROFILE).note


class TestCircuitBreaker:
    """Tests for page recycling after consecutive failures."""

    def test_page_recycled_after_threshold(self, make_runner, factory):
        """Three consecutive failures replace the page and reset the counter."""
        runner = make_runner()
        results = runner.run(BROKEN + [GOOD[0]])

        assert CONSECUTIVE_FAILURES_RECYCLE == 3
        assert len(factory.pages) == 2
        assert factory.pages[0].closed is True
        assert runner.health.recycles == 1
        assert runner.health.consecutive_failures == 0
        assert results[-1].error is None

    def test_success_resets_counter(self, make_runner, factory):
        """Failures separated by a success never trip the breaker."""
        runner = make_runner()
        runner.run([BROKEN[0], BROKEN[1], GOOD[0], BROKEN[2]])

        assert len(factory.pages) == 1
        assert runner.health.recycles == 0
        assert runner.health.consecutive_failures == 1


class TestSummary:
    """Tests for run summaries."""

    def test_counts(self, make_runner):
        """Detected counts per feature and failed URLs."""
        results = make_runner().run([GOOD[0], BROKEN[0]])
        summary = summarize(results)

        assert summary["total_urls"] == 2
        assert summary["failed"] == 1
        assert summary["failed_urls"] == [BROKEN[0]]
        assert summary["detected"]["site search"] == 1
