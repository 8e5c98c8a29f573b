"""
Shared fixtures: the shipped keyword configuration and a small search
configuration for detection tests.
"""

from pathlib import Path

import pytest

from ir_survey.keywords import KeywordConfig, SearchKeywords, load_keywords

ROOT = Path(__file__).resolve().parent.parent
CONFIG_PATH = ROOT / "config" / "keywords.yaml"
SCHEMA_PATH = ROOT / "config" / "schemas" / "keywords.schema.json"


@pytest.fixture
def keyword_config() -> KeywordConfig:
    """The shipped keyword configuration."""
    return load_keywords(str(CONFIG_PATH), schema_path=SCHEMA_PATH)


@pytest.fixture
def search_keywords() -> SearchKeywords:
    """A small, explicit search configuration."""
    return SearchKeywords(
        selectors=['input[type="search"]', 'a[href*="search"]'],
        form_selectors=['form[role="search"]'],
        icon_selectors=[".search-icon"],
        modal_selectors=[".search-modal input"],
        input_selectors=['input[name="q"]'],
        trigger_texts=["検索"],
        specific_patterns=[".header-search"],
        hidden_indicators=["search"],
        exclude_selectors=["#cookie-banner *"],
        submit_selectors=['button[type="submit"]'],
    )
