"""Playwright-backed ``SurveyPage`` for JS-rendered IR sites.

Element snapshots come from fixed scripts evaluated in the page; the engine
only ever receives plain dicts. Link and text extraction parse the rendered
HTML with BeautifulSoup (same approach as the article fetchers).
"""

import logging
import time
from contextlib import contextmanager
from typing import Dict, List, Optional, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from .page import ElementInfo, Link, NavigationError, PageError, SurveyPage

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_VIEWPORT = {"width": 1280, "height": 720}

# Timeout for clicks and typing in milliseconds
ACTION_TIMEOUT_MS = 5000

# Element -> plain descriptor. The locator is an nth-of-type path from <html>;
# elements inside open shadow roots are prefixed with their host's path.
_DESCRIBE_JS = """
(el) => {
  const path = (node) => {
    const parts = [];
    while (node && node.nodeType === 1) {
      let index = 1;
      let sib = node.previousElementSibling;
      while (sib) {
        if (sib.tagName === node.tagName) index++;
        sib = sib.previousElementSibling;
      }
      parts.unshift(node.tagName.toLowerCase() + ':nth-of-type(' + index + ')');
      const parent = node.parentNode;
      if (parent instanceof ShadowRoot) {
        return path(parent.host) + ' ' + parts.join(' > ');
      }
      node = node.parentElement;
    }
    return parts.join(' > ');
  };
  const rect = el.getBoundingClientRect();
  const style = window.getComputedStyle(el);
  return {
    locator: path(el),
    tag: el.tagName,
    id: el.id || '',
    className: typeof el.className === 'string' ? el.className : '',
    name: el.getAttribute('name') || '',
    type: el.getAttribute('type') || '',
    placeholder: el.getAttribute('placeholder') || '',
    alt: el.getAttribute('alt') || '',
    src: el.getAttribute('src') || '',
    value: typeof el.value === 'string' ? el.value : '',
    href: el.getAttribute('href') || '',
    ariaLabel: el.getAttribute('aria-label') || '',
    title: el.getAttribute('title') || '',
    text: (el.textContent || '').replace(/\\s+/g, ' ').trim(),
    width: rect.width,
    height: rect.height,
    display: style.display,
    visibility: style.visibility,
    opacity: style.opacity,
    cursor: style.cursor,
  };
}
"""

_DESCRIBE_ALL_JS = "(elements) => elements.map(" + _DESCRIBE_JS + ")"

_QUERY_SHADOW_JS = """
(selector) => {
  const describe = """ + _DESCRIBE_JS + """;
  const found = [];
  const walk = (root) => {
    root.querySelectorAll('*').forEach((el) => {
      if (el.shadowRoot) {
        el.shadowRoot.querySelectorAll(selector).forEach((m) => found.push(m));
        walk(el.shadowRoot);
      }
    });
  };
  walk(document);
  return found.map(describe);
}
"""

# An element inside a shadow root also matches when one of its hosts does
_MATCHES_JS = """
(el, selector) => {
  let node = el;
  while (node) {
    if (node.matches(selector)) return true;
    const root = node.getRootNode();
    node = root instanceof ShadowRoot ? root.host : null;
  }
  return false;
}
"""

# Tags whose text never reaches the reader
_NON_CONTENT_TAGS = ("script", "style", "noscript", "template")


@contextmanager
def _page_errors(action: str):
    """Translate Playwright failures into ``PageError``."""
    try:
        yield
    except PlaywrightError as e:
        raise PageError(f"{action}: {e}") from e


class PlaywrightPage(SurveyPage):
    """``SurveyPage`` over one Playwright page."""

    def __init__(self, page):
        self._page = page
        self._soup_cache: Optional[tuple] = None

    @property
    def url(self) -> str:
        return self._page.url

    def navigate(self, url: str, timeout_ms: int) -> str:
        try:
            self._page.goto(url, timeout=timeout_ms, wait_until="domcontentloaded")
        except PlaywrightTimeoutError as e:
            raise NavigationError(url, f"timed out after {timeout_ms}ms", e) from e
        except PlaywrightError as e:
            raise NavigationError(url, str(e).splitlines()[0] if str(e) else "navigation failed", e) from e
        return self._page.url

    def _soup(self) -> BeautifulSoup:
        # Re-parse only when the document changed
        with _page_errors("read content"):
            html = self._page.content()
        key = (self._page.url, len(html), hash(html))
        if self._soup_cache is None or self._soup_cache[0] != key:
            self._soup_cache = (key, BeautifulSoup(html, "lxml"))
        return self._soup_cache[1]

    def title(self) -> str:
        with _page_errors("read title"):
            return self._page.title() or ""

    def current_text(self) -> str:
        soup = self._soup()
        body = soup.body or soup
        chunks = [
            s for s in body.find_all(string=True)
            if s.parent is not None and s.parent.name not in _NON_CONTENT_TAGS
        ]
        return " ".join(chunk.strip() for chunk in chunks if chunk.strip())

    def heading_text(self) -> str:
        h1 = self._soup().find("h1")
        return h1.get_text(" ", strip=True) if h1 else ""

    def query(self, selector: str) -> Optional[ElementInfo]:
        found = self.query_all(selector)
        return found[0] if found else None

    def query_all(self, selector: str) -> List[ElementInfo]:
        with _page_errors(f"query {selector!r}"):
            raw: List[Dict] = self._page.eval_on_selector_all(selector, _DESCRIBE_ALL_JS)
        return [ElementInfo.from_dict(d) for d in raw]

    def _resolve(self, element: ElementInfo):
        # Playwright's CSS engine pierces open shadow roots, so host-prefixed
        # locators resolve here the same way they do for click()
        return self._page.query_selector(element.locator)

    def query_within(self, container: ElementInfo, selector: str) -> List[ElementInfo]:
        with _page_errors(f"query {selector!r} within {container.describe()}"):
            root = self._resolve(container)
            if root is None:
                return []
            raw: List[Dict] = root.eval_on_selector_all(selector, _DESCRIBE_ALL_JS)
        return [ElementInfo.from_dict(d) for d in raw]

    def query_shadow_all(self, selector: str) -> List[ElementInfo]:
        with _page_errors(f"shadow query {selector!r}"):
            raw = self._page.evaluate(_QUERY_SHADOW_JS, selector)
        return [ElementInfo.from_dict(d) for d in raw]

    def matches(self, element: ElementInfo, selector: str) -> bool:
        with _page_errors(f"match {selector!r}"):
            handle = self._resolve(element)
            return handle is not None and bool(handle.evaluate(_MATCHES_JS, selector))

    def links(self) -> List[Link]:
        base = self.url
        links = []
        for anchor in self._soup().find_all("a", href=True):
            href = anchor["href"].strip()
            if not href:
                continue
            links.append(Link(href=urljoin(base, href), text=anchor.get_text(" ", strip=True)))
        return links

    def click(self, selector: str) -> None:
        with _page_errors(f"click {selector!r}"):
            self._page.click(selector, timeout=ACTION_TIMEOUT_MS)

    def type(self, selector: str, text: str) -> None:
        with _page_errors(f"type into {selector!r}"):
            self._page.fill(selector, text, timeout=ACTION_TIMEOUT_MS)

    def press(self, key: str) -> None:
        with _page_errors(f"press {key}"):
            self._page.keyboard.press(key)

    def wait_for_any(self, selectors: Sequence[str], timeout_ms: int, poll_interval_ms: int) -> bool:
        deadline = time.monotonic() + timeout_ms / 1000.0
        while True:
            for selector in selectors:
                try:
                    if self._page.query_selector(selector) is not None:
                        return True
                except PlaywrightError as e:
                    logger.debug(f"Skipping selector {selector!r} while waiting: {e}")
            if time.monotonic() >= deadline:
                return False
            self.pause(poll_interval_ms)

    def pause(self, ms: int) -> None:
        self._page.wait_for_timeout(ms)

    def close(self) -> None:
        try:
            self._page.close()
        except PlaywrightError as e:
            logger.debug(f"Error closing page: {e}")


class BrowserSession:
    """Headless Chromium with a single browser context.

    Usage::

        with BrowserSession() as session:
            page = session.new_page()
    """

    def __init__(
        self,
        headless: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        viewport: Optional[Dict[str, int]] = None,
    ):
        self.headless = headless
        self.user_agent = user_agent
        self.viewport = viewport or dict(DEFAULT_VIEWPORT)
        self._playwright = None
        self._browser = None
        self._context = None

    def __enter__(self) -> "BrowserSession":
        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(headless=self.headless)
            self._context = self._browser.new_context(
                user_agent=self.user_agent,
                viewport=self.viewport,
            )
        except PlaywrightError as e:
            self._playwright.stop()
            raise RuntimeError(
                f"Could not launch Chromium ({e}). Run: playwright install chromium"
            ) from e
        logger.info(f"Browser launched (headless={self.headless})")
        return self

    def new_page(self) -> PlaywrightPage:
        if self._context is None:
            raise RuntimeError("BrowserSession is not open")
        return PlaywrightPage(self._context.new_page())

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._context is not None:
                self._context.close()
            if self._browser is not None:
                self._browser.close()
        finally:
            self._playwright.stop()
            self._context = self._browser = self._playwright = None
            logger.info("Browser closed")
