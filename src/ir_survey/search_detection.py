"""
Site-search detection chain.

Strategies run in a fixed order and the first one that yields a visible,
non-excluded match wins; later strategies are never consulted:

1. direct locator match
2. search form with a visible search-like input
3. search icon (followed by a click that looks for a modal input)
4. advanced fallbacks: shadow DOM, hidden inputs with search indicators,
   clickable trigger elements, specific structural patterns, forms with
   search-like inputs, image buttons

Clickable and pattern fallbacks additionally try a probe search (click,
type, submit, look for result indicators). That confirmation strengthens
the evidence but is not required for the verdict.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlparse

from .keywords import SearchKeywords
from .page import ElementInfo, PageError, SurveyPage, is_visible

logger = logging.getLogger(__name__)

SEARCH_INPUT_SELECTOR = (
    'input[name="q"], input[type="text"], input[type="image"], input[type="search"]'
)
CLICKABLE_TAGS = ("button", "a", "div", "span", "li")
SEARCH_RESULT_INDICATORS = (
    "検索結果", "search results", "検索", "search", "results", "件", "件数", "count",
)
PROBE_QUERY = "IR"

ELEMENT_TYPE_DIRECT = "search-element"
ELEMENT_TYPE_FORM = "search-form"
ELEMENT_TYPE_ICON = "search-icon"
ELEMENT_TYPE_NONE = "none"

# Appended to the element type when a click follow-up confirmed the search
CONFIRMED_SUFFIX = "+confirmed"

ADVANCED_SHADOW = "shadow-dom"
ADVANCED_HIDDEN = "hidden-element"
ADVANCED_CLICKABLE = "clickable-element"
ADVANCED_PATTERN = "specific-pattern"
ADVANCED_FORM = "form-element"
ADVANCED_IMAGE = "image-button"

# Advanced fallbacks whose first candidate is clicked and probed
PROBED_TYPES = (ADVANCED_CLICKABLE, ADVANCED_PATTERN)


@dataclass
class SearchDelays:
    """Settle times (ms) after interactive steps."""
    icon_click_ms: int = 1000
    trigger_click_ms: int = 2000
    typing_ms: int = 500
    submit_ms: int = 2000


@dataclass
class SearchDetection:
    found: bool = False
    strategy: str = "none"
    selector: str = ""
    element_type: str = ELEMENT_TYPE_NONE
    hit_url: str = ""
    note: str = ""
    interactive_confirmed: bool = False
    candidates: List[ElementInfo] = field(default_factory=list)

    @property
    def evidence_type(self) -> str:
        if self.interactive_confirmed:
            return f"{self.element_type}{CONFIRMED_SUFFIX}"
        return self.element_type


def is_same_origin(href: str, page_url: str) -> bool:
    """Host comparison for search links.

    Paths starting with ``/`` are trusted without resolution; this ignores
    any ``<base>`` element on the page.
    """
    if not href:
        return False
    if href.startswith("/") and not href.startswith("//"):
        return True
    try:
        target = urlparse(urljoin(page_url, href))
        return bool(target.hostname) and target.hostname == urlparse(page_url).hostname
    except ValueError:
        return False


class SearchDetector:
    """Runs the detection chain against one page."""

    def __init__(
        self,
        page: SurveyPage,
        config: SearchKeywords,
        delays: Optional[SearchDelays] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.page = page
        self.config = config
        self.delays = delays or SearchDelays()
        self.log = log or logger

    def detect(self) -> SearchDetection:
        page_url = self.page.url

        ordered: Sequence[Tuple[str, Callable[[str], Optional[SearchDetection]]]] = (
            ("direct", self._match_direct),
            ("form", self._match_form),
            ("icon", self._match_icon),
        )
        for name, strategy in ordered:
            try:
                detection = strategy(page_url)
            except PageError as e:
                self.log.warning(f"Search strategy '{name}' failed on {page_url}: {e}")
                continue
            if detection is not None:
                if detection.element_type == ELEMENT_TYPE_ICON:
                    self._confirm_icon(detection)
                self.log.info(f"Site search detected via {name}: {detection.selector}")
                return detection

        return self._run_advanced(page_url)

    # ------------------------------------------------------------------
    # Shared filters
    # ------------------------------------------------------------------

    def _is_excluded(self, element: ElementInfo) -> bool:
        for pattern in self.config.exclude_selectors:
            if self.page.matches(element, pattern):
                self.log.debug(f"Excluded {element.describe()} by '{pattern}'")
                return True
        return False

    def _qualifies(self, element: ElementInfo, page_url: str) -> bool:
        """Visible, not excluded, and same-origin when it is a search link."""
        if not is_visible(element):
            self.log.debug(
                f"Hidden: {element.describe()} "
                f"({element.width}x{element.height}, display={element.display}, "
                f"visibility={element.visibility}, opacity={element.opacity})"
            )
            return False
        if self._is_excluded(element):
            return False
        if element.tag == "a" and "search" in element.href:
            if not is_same_origin(element.href, page_url):
                self.log.debug(f"External search link excluded: {element.href}")
                return False
        return True

    def _first_qualifying(self, selectors: Sequence[str], page_url: str) -> Optional[str]:
        for selector in selectors:
            element = self.page.query(selector)
            if element is None:
                self.log.debug(f"No element for '{selector}'")
                continue
            if self._qualifies(element, page_url):
                return selector
        return None

    def _first_visible_selector(self, selectors: Sequence[str]) -> Optional[str]:
        for selector in selectors:
            if self.page.query_visible(selector) is not None:
                return selector
        return None

    # ------------------------------------------------------------------
    # Primary strategies
    # ------------------------------------------------------------------

    def _match_direct(self, page_url: str) -> Optional[SearchDetection]:
        selector = self._first_qualifying(self.config.selectors, page_url)
        if selector is None:
            return None
        return SearchDetection(
            found=True,
            strategy="direct",
            selector=selector,
            element_type=ELEMENT_TYPE_DIRECT,
            hit_url=page_url,
            note=f"visible search element '{selector}'",
        )

    def _match_form(self, page_url: str) -> Optional[SearchDetection]:
        for form_selector in self.config.form_selectors:
            form = self.page.query(form_selector)
            if form is None:
                continue
            inputs = self.page.query_within(form, SEARCH_INPUT_SELECTOR)
            if any(is_visible(i) for i in inputs):
                return SearchDetection(
                    found=True,
                    strategy="form",
                    selector=form_selector,
                    element_type=ELEMENT_TYPE_FORM,
                    hit_url=page_url,
                    note=f"search form '{form_selector}' with visible input",
                )
        return None

    def _match_icon(self, page_url: str) -> Optional[SearchDetection]:
        selector = self._first_qualifying(self.config.icon_selectors, page_url)
        if selector is None:
            return None
        return SearchDetection(
            found=True,
            strategy="icon",
            selector=selector,
            element_type=ELEMENT_TYPE_ICON,
            hit_url=page_url,
            note=f"search icon '{selector}'",
        )

    def _confirm_icon(self, detection: SearchDetection) -> None:
        """Click the icon and look for a visible modal search input."""
        try:
            self.page.click(detection.selector)
            self.page.pause(self.delays.icon_click_ms)
            modal_input = self._first_visible_selector(self.config.modal_selectors)
        except PageError as e:
            self.log.warning(f"Search icon click failed: {e}")
            detection.note += f"; icon click failed: {e}"
            return

        if modal_input is None:
            detection.note += "; no modal search input after click"
            return
        detection.interactive_confirmed = True
        detection.hit_url = self.page.url
        detection.note += f"; modal input '{modal_input}' opened"

    # ------------------------------------------------------------------
    # Advanced fallbacks
    # ------------------------------------------------------------------

    def _run_advanced(self, page_url: str) -> SearchDetection:
        self.log.info("Primary search strategies failed, trying advanced detection")
        finders: Sequence[Tuple[str, Callable[[], List[ElementInfo]]]] = (
            (ADVANCED_SHADOW, self._find_shadow),
            (ADVANCED_HIDDEN, self._find_hidden),
            (ADVANCED_CLICKABLE, self._find_clickable),
            (ADVANCED_PATTERN, self._find_specific_patterns),
            (ADVANCED_FORM, self._find_search_forms),
            (ADVANCED_IMAGE, self._find_image_buttons),
        )
        for element_type, finder in finders:
            try:
                candidates = finder()
            except PageError as e:
                self.log.warning(f"Advanced search step '{element_type}' failed: {e}")
                continue
            if not candidates:
                continue

            detection = SearchDetection(
                found=True,
                strategy="advanced",
                selector=f"advanced-{element_type}",
                element_type=element_type,
                hit_url=page_url,
                note=f"advanced {element_type} match ({len(candidates)} candidate(s))",
                candidates=candidates,
            )
            if element_type in PROBED_TYPES:
                self._probe_search(detection)
            self.log.info(f"Site search detected via advanced {element_type}")
            return detection

        return SearchDetection(note="no search element, form, icon or fallback match")

    def _find_shadow(self) -> List[ElementInfo]:
        if not self.config.input_selectors:
            return []
        found = self.page.query_shadow_all(", ".join(self.config.input_selectors))
        return [e for e in found if is_visible(e)]

    def _find_hidden(self) -> List[ElementInfo]:
        tokens = [t.lower() for t in self.config.hidden_indicators]
        if not tokens:
            return []
        matched = []
        for element in self.page.query_all("input"):
            if is_visible(element):
                continue
            bucket = " ".join(
                [element.class_name, element.placeholder, element.aria_label, element.id]
            ).lower()
            if any(token in bucket for token in tokens):
                matched.append(element)
                break
        return matched

    def _find_clickable(self) -> List[ElementInfo]:
        triggers = [t.lower() for t in self.config.trigger_texts]
        if not triggers:
            return []
        elements = self.page.query_all(", ".join(CLICKABLE_TAGS))
        matched: List[ElementInfo] = []
        seen = set()
        for trigger in triggers:
            for element in elements:
                if element.locator in seen or element.tag not in CLICKABLE_TAGS:
                    continue
                bucket = " ".join(
                    [element.text, element.class_name, element.aria_label, element.title]
                ).lower()
                if trigger not in bucket:
                    continue
                if not is_visible(element) or element.cursor != "pointer":
                    continue
                if self._is_excluded(element):
                    continue
                seen.add(element.locator)
                matched.append(element)
        return matched

    def _find_specific_patterns(self) -> List[ElementInfo]:
        matched = []
        for pattern in self.config.specific_patterns:
            for element in self.page.query_all(pattern):
                if is_visible(element) and not self._is_excluded(element):
                    matched.append(element)
        return matched

    def _find_search_forms(self) -> List[ElementInfo]:
        for form in self.page.query_all("form"):
            for element in self.page.query_within(form, "input"):
                name = element.name.lower()
                placeholder = element.placeholder.lower()
                search_like = (
                    "search" in name
                    or name == "q"
                    or "search" in element.id.lower()
                    or "search" in element.class_name.lower()
                    or "search" in placeholder
                    or "検索" in placeholder
                    or element.type == "search"
                )
                if search_like and is_visible(element):
                    return [element]
        return []

    def _find_image_buttons(self) -> List[ElementInfo]:
        for element in self.page.query_all('input[type="image"]'):
            alt = element.alt.lower()
            value = element.value.lower()
            search_like = (
                "search" in alt
                or "検索" in alt
                or "search" in element.src.lower()
                or "search" in value
                or "検索" in value
            )
            if search_like and is_visible(element):
                return [element]
        return []

    # ------------------------------------------------------------------
    # Probe search for clickable / pattern fallbacks
    # ------------------------------------------------------------------

    def _click_submit(self) -> bool:
        for selector in self.config.submit_selectors:
            try:
                if self.page.query_visible(selector) is None:
                    continue
                self.log.info(f"Submitting probe search via '{selector}'")
                self.page.click(selector)
                return True
            except PageError as e:
                self.log.debug(f"Submit button '{selector}' unusable: {e}")
        return False

    def _probe_search(self, detection: SearchDetection) -> None:
        target = detection.candidates[0]
        try:
            self.log.info(f"Clicking search trigger {target.describe()}")
            self.page.click(target.locator)
            self.page.pause(self.delays.trigger_click_ms)

            input_selector = self._first_visible_selector(self.config.input_selectors)
            if input_selector is None:
                detection.note += "; no search input after click"
                return

            self.page.type(input_selector, PROBE_QUERY)
            self.page.pause(self.delays.typing_ms)
            if not self._click_submit():
                self.log.info("No submit button, pressing Enter")
                self.page.press("Enter")
            self.page.pause(self.delays.submit_ms)

            page_text = self.page.current_text().lower()
        except PageError as e:
            self.log.warning(f"Probe search failed: {e}")
            detection.note += f"; probe search failed: {e}"
            return

        if any(indicator.lower() in page_text for indicator in SEARCH_RESULT_INDICATORS):
            detection.interactive_confirmed = True
            detection.hit_url = self.page.url
            detection.note += "; probe search returned a results page"
        else:
            detection.note += "; probe search result unclear"
