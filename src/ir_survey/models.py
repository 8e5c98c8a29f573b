"""Evidence records produced by the survey engine."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


class FeatureKey(Enum):
    """The eight disclosure features, in report order."""
    SEARCH = "has_search"
    ENGLISH = "has_english"
    TOP_MESSAGE = "has_top_message"
    PROFILE = "has_profile"
    INTEGRATED_REPORT = "has_integrated_report"
    FINANCIAL_GRAPH = "has_financial_graph"
    SHAREHOLDER_BENEFIT = "has_shareholder_benefit"
    SUSTAINABILITY_MENU = "has_sustainability_menu"


# Column labels used by the CSV report
FEATURE_LABELS: Dict[FeatureKey, str] = {
    FeatureKey.SEARCH: "サイト内検索がある",
    FeatureKey.ENGLISH: "IR英語版サイトがある",
    FeatureKey.TOP_MESSAGE: "社長メッセージの掲載がある",
    FeatureKey.PROFILE: "社長の経歴の掲載がある",
    FeatureKey.INTEGRATED_REPORT: "統合報告書(PDF)の掲載がある",
    FeatureKey.FINANCIAL_GRAPH: "財務情報をグラフで掲載している",
    FeatureKey.SHAREHOLDER_BENEFIT: "株主還元もしくは株主優待について掲載がある",
    FeatureKey.SUSTAINABILITY_MENU: "グローバルメニューに「サステナビリティ」「ESG」「CSR」相当のメニューがある",
}

# Short names used in notes and logs
FEATURE_NAMES: Dict[FeatureKey, str] = {
    FeatureKey.SEARCH: "site search",
    FeatureKey.ENGLISH: "English IR site",
    FeatureKey.TOP_MESSAGE: "CEO message",
    FeatureKey.PROFILE: "CEO biography",
    FeatureKey.INTEGRATED_REPORT: "integrated report",
    FeatureKey.FINANCIAL_GRAPH: "financial chart",
    FeatureKey.SHAREHOLDER_BENEFIT: "shareholder return",
    FeatureKey.SUSTAINABILITY_MENU: "sustainability menu",
}


class SurveyMode(Enum):
    """Which subset of features a run evaluates."""
    FULL = "full"
    PRIMARY = "primary"
    SECONDARY = "secondary"

    @property
    def features(self) -> List[FeatureKey]:
        if self is SurveyMode.PRIMARY:
            return [FeatureKey.SEARCH, FeatureKey.ENGLISH, FeatureKey.SUSTAINABILITY_MENU]
        if self is SurveyMode.SECONDARY:
            return [k for k in FeatureKey if k not in (FeatureKey.SEARCH, FeatureKey.ENGLISH)]
        return list(FeatureKey)

    def evaluates(self, feature: FeatureKey) -> bool:
        return feature in self.features


@dataclass
class EvidenceItem:
    """Verdict and evidence for one feature of one URL."""
    value: int = 0
    hit_url: str = ""
    note: str = ""
    detected_selector: str = ""
    detected_element_type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _empty_items() -> Dict[FeatureKey, EvidenceItem]:
    return {key: EvidenceItem() for key in FeatureKey}


@dataclass
class SurveyResult:
    """Per-URL outcome, populated incrementally by the investigator."""
    url: str
    actual_url: str = ""
    items: Dict[FeatureKey, EvidenceItem] = field(default_factory=_empty_items)
    error: Optional[str] = None
    mode: SurveyMode = SurveyMode.FULL
    metadata: Dict[str, Any] = field(default_factory=dict)

    def item(self, feature: FeatureKey) -> EvidenceItem:
        return self.items[feature]

    def mark_not_found(self) -> None:
        """All-zero verdict for a 404-like IR page."""
        for key in self.mode.features:
            self.items[key] = EvidenceItem(note=f"{FEATURE_NAMES[key]}: IR page looks like a 404 page")

    def mark_error(self, message: str) -> None:
        """All-zero verdict carrying the URL-level error message."""
        self.error = message
        for key in FeatureKey:
            self.items[key] = EvidenceItem(note=f"error: {message}")

    def finalize(self) -> "SurveyResult":
        """Guarantee a note on every item."""
        for key, item in self.items.items():
            if item.note:
                continue
            if self.mode.evaluates(key):
                item.note = f"{FEATURE_NAMES[key]}: not evaluated"
            else:
                item.note = f"{FEATURE_NAMES[key]}: not evaluated in {self.mode.value} mode"
        return self

    @property
    def detected_count(self) -> int:
        return sum(item.value for item in self.items.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "actual_url": self.actual_url,
            "mode": self.mode.value,
            "error": self.error,
            "metadata": self.metadata,
            "items": {key.value: item.to_dict() for key, item in self.items.items()},
        }
