"""
Feature discovery on the IR top page.

One pass over the page collects the English-version link, the
sustainability menu entry and the candidate links that the investigator
follows for the CEO message, biography, IR library, financial highlights
and shareholder pages.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
from urllib.parse import urljoin, urlparse

from .keywords import EnglishKeywords, KeywordConfig, SustainabilityKeywords
from .models import FeatureKey
from .page import ElementInfo, Link, SurveyPage

logger = logging.getLogger(__name__)


@dataclass
class EnglishDiscovery:
    present: bool = False
    url: str = ""


@dataclass
class SustainabilityDiscovery:
    present: bool = False
    url: str = ""
    matched_keyword: str = ""


@dataclass
class PageDiscovery:
    english: EnglishDiscovery = field(default_factory=EnglishDiscovery)
    sustainability: SustainabilityDiscovery = field(default_factory=SustainabilityDiscovery)
    links: Dict[FeatureKey, str] = field(default_factory=dict)
    all_links: List[Link] = field(default_factory=list)

    def link_for(self, feature: FeatureKey) -> Optional[str]:
        return self.links.get(feature)


def _hostname(url: str) -> str:
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def is_related_domain(link_host: str, current_host: str) -> bool:
    """Same host, or one is a subdomain of the other."""
    if not link_host or not current_host:
        return False
    return (
        link_host == current_host
        or link_host.endswith("." + current_host)
        or current_host.endswith("." + link_host)
    )


def _matches(link: Link, text_patterns: Sequence[str], url_patterns: Sequence[str]) -> bool:
    return any(p in link.text for p in text_patterns) or any(p in link.href for p in url_patterns)


def select_feature_links(links: Sequence[Link], page_url: str, config: KeywordConfig) -> Dict[FeatureKey, str]:
    """First matching link per link-followed feature, in document order."""
    domain = _hostname(page_url)
    selected: Dict[FeatureKey, str] = {}

    for link in links:
        href = link.href
        if not href.startswith("http"):
            continue
        same_site = bool(domain) and domain in href

        if FeatureKey.TOP_MESSAGE not in selected:
            kw = config.top_message
            if _matches(link, kw.text_patterns, kw.url_patterns):
                selected[FeatureKey.TOP_MESSAGE] = href

        if FeatureKey.PROFILE not in selected:
            kw = config.profile
            if _matches(link, kw.text_patterns, kw.url_patterns) and "#" not in href:
                selected[FeatureKey.PROFILE] = href

        if FeatureKey.INTEGRATED_REPORT not in selected:
            kw = config.integrated_report
            if _matches(link, kw.text_patterns, kw.url_patterns) and same_site:
                selected[FeatureKey.INTEGRATED_REPORT] = href

        if FeatureKey.FINANCIAL_GRAPH not in selected:
            kw = config.financial
            if _matches(link, kw.text_patterns, kw.url_patterns) and same_site:
                selected[FeatureKey.FINANCIAL_GRAPH] = href

        if FeatureKey.SHAREHOLDER_BENEFIT not in selected:
            kw = config.stock
            not_excluded = all(ex not in href for ex in kw.exclude_urls)
            if _matches(link, kw.text_patterns, kw.url_patterns) and same_site and not_excluded:
                selected[FeatureKey.SHAREHOLDER_BENEFIT] = href

    return selected


def _acceptable_english_link(href: str, current_host: str, exclude_domains: Sequence[str]) -> bool:
    return (
        is_related_domain(_hostname(href), current_host)
        and not href.endswith("#")
        and all(domain not in href for domain in exclude_domains)
    )


def discover_english(page: SurveyPage, links: Sequence[Link], config: EnglishKeywords) -> EnglishDiscovery:
    """English version via URL selectors or exact uppercase link text."""
    page_url = page.url
    by_selector: List[ElementInfo] = page.query_all(", ".join(config.url_patterns))
    by_text = [link for link in links if link.text.strip().upper() in config.text_patterns]

    if not by_selector and not by_text:
        return EnglishDiscovery()

    current_host = _hostname(page_url)
    candidates = [urljoin(page_url, e.href) for e in by_selector if e.href]
    candidates += [link.href for link in by_text]
    for href in candidates:
        if _acceptable_english_link(href, current_host, config.exclude_domains):
            return EnglishDiscovery(present=True, url=href)
    return EnglishDiscovery(present=True)


def discover_sustainability(page: SurveyPage, config: SustainabilityKeywords) -> SustainabilityDiscovery:
    """Navigation entry whose text contains a sustainability keyword."""
    for element in page.query_all(", ".join(config.selectors)):
        for keyword in config.menu_keywords:
            if keyword in element.text:
                url = urljoin(page.url, element.href) if element.href else ""
                return SustainabilityDiscovery(present=True, url=url, matched_keyword=keyword)
    return SustainabilityDiscovery()


def discover_page(page: SurveyPage, config: KeywordConfig, include_english: bool = True) -> PageDiscovery:
    links = page.links()
    discovery = PageDiscovery(all_links=list(links))
    if include_english:
        discovery.english = discover_english(page, links, config.english)
    discovery.sustainability = discover_sustainability(page, config.sustainability)
    discovery.links = select_feature_links(links, page.url, config)
    logger.debug(f"Discovered feature links: {discovery.links}")
    return discovery
