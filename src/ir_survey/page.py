"""
Page snapshot interface consumed by the detection and validation engine.

The engine never ships code into the page: implementations expose fixed read
operations that return plain data (``ElementInfo``, ``Link``) plus a few
actions (navigate, click, type, press). ``browser.PlaywrightPage`` is the
production implementation; tests use an in-memory one.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

NOT_FOUND_TITLE_MARKERS = ("404", "Not Found")
NOT_FOUND_BODY_MARKERS = (
    "404 Not Found",
    "ページが見つかりません",
    "ページが見つかりませんでした",
)


class PageError(Exception):
    """Raised by page implementations when an in-page operation fails."""


class NavigationError(PageError):
    """Raised when navigation fails (timeout, DNS, refused connection)."""

    def __init__(self, url: str, message: str, original_error: Optional[Exception] = None):
        self.url = url
        self.message = message
        self.original_error = original_error
        super().__init__(f"{url}: {message}")


@dataclass(frozen=True)
class Link:
    """An outbound link: resolved absolute href plus trimmed text."""
    href: str
    text: str = ""


@dataclass
class ElementInfo:
    """Rendered snapshot of one element.

    ``locator`` is a selector that re-finds this exact element (used for
    clicks and exclusion tests). ``href`` is the raw attribute value, not
    the resolved URL.
    """
    locator: str
    tag: str = ""
    id: str = ""
    class_name: str = ""
    name: str = ""
    type: str = ""
    placeholder: str = ""
    alt: str = ""
    src: str = ""
    value: str = ""
    href: str = ""
    aria_label: str = ""
    title: str = ""
    text: str = ""
    width: float = 0.0
    height: float = 0.0
    display: str = ""
    visibility: str = ""
    opacity: str = "1"
    cursor: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ElementInfo":
        return cls(
            locator=data.get("locator", ""),
            tag=(data.get("tag") or "").lower(),
            id=data.get("id") or "",
            class_name=data.get("className") or "",
            name=data.get("name") or "",
            type=(data.get("type") or "").lower(),
            placeholder=data.get("placeholder") or "",
            alt=data.get("alt") or "",
            src=data.get("src") or "",
            value=data.get("value") or "",
            href=data.get("href") or "",
            aria_label=data.get("ariaLabel") or "",
            title=data.get("title") or "",
            text=data.get("text") or "",
            width=float(data.get("width") or 0),
            height=float(data.get("height") or 0),
            display=data.get("display") or "",
            visibility=data.get("visibility") or "",
            opacity=str(data.get("opacity", "1")),
            cursor=data.get("cursor") or "",
        )

    def describe(self) -> str:
        parts = [self.tag or "?"]
        if self.id:
            parts.append(f"#{self.id}")
        if self.class_name:
            parts.append("." + ".".join(self.class_name.split()))
        return "".join(parts)


def is_visible(element: ElementInfo) -> bool:
    """Shared visibility predicate for every detection strategy.

    Non-zero rendered box, not ``display:none``, not ``visibility:hidden``
    and not ``opacity:0``.
    """
    if element.width <= 0 or element.height <= 0:
        return False
    if element.display == "none" or element.visibility == "hidden":
        return False
    try:
        return float(element.opacity) != 0.0
    except ValueError:
        return True


def is_not_found_page(title: str, body_text: str, heading: str = "") -> bool:
    """404-like heuristics over the title, body text and first ``<h1>``."""
    title = title or ""
    body_text = body_text or ""
    if any(marker in title for marker in NOT_FOUND_TITLE_MARKERS):
        return True
    if any(marker in body_text for marker in NOT_FOUND_BODY_MARKERS):
        return True
    return "404" in (heading or "")


class SurveyPage(ABC):
    """Abstract page the engine owns exclusively for one URL at a time."""

    @property
    @abstractmethod
    def url(self) -> str:
        """Current document URL (post-redirect)."""

    @abstractmethod
    def navigate(self, url: str, timeout_ms: int) -> str:
        """Load ``url`` and return the post-redirect URL.

        Raises:
            NavigationError on timeout, DNS or connection failure
        """

    @abstractmethod
    def title(self) -> str:
        pass

    @abstractmethod
    def current_text(self) -> str:
        """Full text content of the document body."""

    @abstractmethod
    def heading_text(self) -> str:
        """Text of the first ``<h1>``, or empty string."""

    @abstractmethod
    def query(self, selector: str) -> Optional[ElementInfo]:
        """First element matching ``selector`` (visible or not)."""

    @abstractmethod
    def query_all(self, selector: str) -> List[ElementInfo]:
        pass

    @abstractmethod
    def query_within(self, container: ElementInfo, selector: str) -> List[ElementInfo]:
        """Descendants of ``container`` matching ``selector``."""

    @abstractmethod
    def query_shadow_all(self, selector: str) -> List[ElementInfo]:
        """Elements matching ``selector`` inside any open shadow root."""

    @abstractmethod
    def matches(self, element: ElementInfo, selector: str) -> bool:
        """Whether ``element`` itself satisfies ``selector``."""

    @abstractmethod
    def links(self) -> List[Link]:
        pass

    @abstractmethod
    def click(self, selector: str) -> None:
        pass

    @abstractmethod
    def type(self, selector: str, text: str) -> None:
        pass

    @abstractmethod
    def press(self, key: str) -> None:
        pass

    @abstractmethod
    def wait_for_any(self, selectors: Sequence[str], timeout_ms: int, poll_interval_ms: int) -> bool:
        """Poll until any selector matches; False on timeout."""

    @abstractmethod
    def pause(self, ms: int) -> None:
        """Fixed settle delay."""

    def close(self) -> None:
        pass

    def query_visible(self, selector: str) -> Optional[ElementInfo]:
        element = self.query(selector)
        if element is not None and is_visible(element):
            return element
        return None

    def looks_not_found(self) -> bool:
        return is_not_found_page(self.title(), self.current_text(), self.heading_text())
