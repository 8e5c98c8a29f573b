"""
Keyword configuration loading and validation.

Loads config/keywords.yaml, validates it against
config/schemas/keywords.schema.json (when present) and always runs the
manual consistency checks. There is no built-in fallback: a missing or
malformed file aborts the run.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema
import yaml

logger = logging.getLogger(__name__)

# Repository config/ directory (src layout: src/ir_survey/keywords.py)
CONFIG_DIR = Path(__file__).resolve().parent.parent.parent / "config"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "keywords.yaml"
DEFAULT_SCHEMA_PATH = CONFIG_DIR / "schemas" / "keywords.schema.json"

DEFAULT_MINIMUM_TEXT_LENGTH = 15

# Sections and the keyword lists that must be present and non-empty
REQUIRED_LISTS: Dict[str, List[str]] = {
    "search": ["selectors"],
    "english": ["url_patterns", "text_patterns"],
    "top_message": ["text_patterns", "url_patterns", "content_keywords"],
    "profile": ["text_patterns", "url_patterns", "career_keywords", "ceo_keywords"],
    "integrated_report": ["text_patterns", "url_patterns", "pdf_indicators"],
    "financial": ["text_patterns", "url_patterns"],
    "graph": ["selectors"],
    "stock": ["text_patterns", "url_patterns", "content_keywords"],
    "sustainability": ["menu_keywords", "selectors"],
}

# Lists that may be omitted or empty
OPTIONAL_LISTS: Dict[str, List[str]] = {
    "search": [
        "form_selectors", "icon_selectors", "modal_selectors", "input_selectors",
        "trigger_texts", "specific_patterns", "hidden_indicators",
        "exclude_selectors", "submit_selectors",
    ],
    "english": ["exclude_domains"],
    "profile": ["year_patterns"],
    "integrated_report": ["report_keywords"],
    "graph": ["text_patterns", "image_alt_keywords"],
    "stock": ["exclude_urls"],
}


class KeywordConfigError(Exception):
    """Raised when the keyword configuration is missing or malformed."""
    pass


@dataclass(frozen=True)
class SearchKeywords:
    selectors: List[str]
    form_selectors: List[str] = field(default_factory=list)
    icon_selectors: List[str] = field(default_factory=list)
    modal_selectors: List[str] = field(default_factory=list)
    input_selectors: List[str] = field(default_factory=list)
    trigger_texts: List[str] = field(default_factory=list)
    specific_patterns: List[str] = field(default_factory=list)
    hidden_indicators: List[str] = field(default_factory=list)
    exclude_selectors: List[str] = field(default_factory=list)
    submit_selectors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class EnglishKeywords:
    url_patterns: List[str]
    text_patterns: List[str]
    exclude_domains: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TopMessageKeywords:
    text_patterns: List[str]
    url_patterns: List[str]
    content_keywords: List[str]


@dataclass(frozen=True)
class ProfileKeywords:
    text_patterns: List[str]
    url_patterns: List[str]
    career_keywords: List[str]
    ceo_keywords: List[str]
    year_patterns: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class IntegratedReportKeywords:
    text_patterns: List[str]
    url_patterns: List[str]
    pdf_indicators: List[str]
    report_keywords: List[str] = field(default_factory=list)
    min_year: Optional[int] = None

    @property
    def link_keywords(self) -> List[str]:
        return list(self.text_patterns) + list(self.report_keywords)


@dataclass(frozen=True)
class FinancialKeywords:
    text_patterns: List[str]
    url_patterns: List[str]


@dataclass(frozen=True)
class GraphKeywords:
    selectors: List[str]
    text_patterns: List[str] = field(default_factory=list)
    image_alt_keywords: List[str] = field(default_factory=list)
    min_year: Optional[int] = None


@dataclass(frozen=True)
class StockKeywords:
    text_patterns: List[str]
    url_patterns: List[str]
    content_keywords: List[str]
    exclude_urls: List[str] = field(default_factory=list)
    minimum_text_length: int = DEFAULT_MINIMUM_TEXT_LENGTH


@dataclass(frozen=True)
class SustainabilityKeywords:
    menu_keywords: List[str]
    selectors: List[str]


@dataclass(frozen=True)
class KeywordConfig:
    search: SearchKeywords
    english: EnglishKeywords
    top_message: TopMessageKeywords
    profile: ProfileKeywords
    integrated_report: IntegratedReportKeywords
    financial: FinancialKeywords
    graph: GraphKeywords
    stock: StockKeywords
    sustainability: SustainabilityKeywords

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeywordConfig":
        """Build from a dict that already passed ``validate_keywords``."""
        def lists(section: str) -> Dict[str, List[str]]:
            raw = data.get(section) or {}
            names = REQUIRED_LISTS.get(section, []) + OPTIONAL_LISTS.get(section, [])
            return {name: list(raw.get(name) or []) for name in names}

        report = data["integrated_report"]
        graph = data["graph"]
        stock = data["stock"]
        return cls(
            search=SearchKeywords(**lists("search")),
            english=EnglishKeywords(**lists("english")),
            top_message=TopMessageKeywords(**lists("top_message")),
            profile=ProfileKeywords(**lists("profile")),
            integrated_report=IntegratedReportKeywords(
                min_year=report.get("min_year"), **lists("integrated_report")
            ),
            financial=FinancialKeywords(**lists("financial")),
            graph=GraphKeywords(min_year=graph.get("min_year"), **lists("graph")),
            stock=StockKeywords(
                minimum_text_length=stock.get("minimum_text_length", DEFAULT_MINIMUM_TEXT_LENGTH),
                **lists("stock"),
            ),
            sustainability=SustainabilityKeywords(**lists("sustainability")),
        )


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) and v for v in value)


def validate_keywords(
    data: Any,
    schema_path: Optional[Path] = DEFAULT_SCHEMA_PATH,
) -> bool:
    """
    Validate keyword configuration against schema and consistency rules.

    Args:
        data: Parsed YAML document
        schema_path: Path to JSON schema (skipped if None or missing)

    Returns:
        True if valid

    Raises:
        KeywordConfigError: If validation fails
    """
    if schema_path is not None and schema_path.exists():
        try:
            with open(schema_path) as f:
                schema = json.load(f)
            jsonschema.validate(data, schema)
        except jsonschema.ValidationError as e:
            path = ".".join(str(p) for p in e.absolute_path)
            raise KeywordConfigError(
                f"Schema validation failed at '{path or '<root>'}': {e.message}"
            )
        except (IOError, json.JSONDecodeError) as e:
            logger.warning(f"Could not load keyword schema {schema_path}: {e}")

    # Manual validation (always run)
    if not isinstance(data, dict):
        raise KeywordConfigError("Keyword configuration must be a mapping")

    for section, required in REQUIRED_LISTS.items():
        block = data.get(section)
        if not isinstance(block, dict):
            raise KeywordConfigError(f"Missing required section: {section}")
        for name in required:
            value = block.get(name)
            if not _is_string_list(value) or not value:
                raise KeywordConfigError(f"{section}.{name} must be a non-empty list of strings")
        for name in OPTIONAL_LISTS.get(section, []):
            value = block.get(name)
            if value is not None and not _is_string_list(value):
                raise KeywordConfigError(f"{section}.{name} must be a list of strings")

    for section, key in (("integrated_report", "min_year"), ("graph", "min_year"),
                         ("stock", "minimum_text_length")):
        value = data[section].get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value <= 0):
            raise KeywordConfigError(f"{section}.{key} must be a positive integer")

    return True


def resolve_config_path(custom_path: Optional[str] = None) -> Path:
    """Explicit path, else $IR_SURVEY_KEYWORDS, else config/keywords.yaml."""
    if custom_path:
        return Path(custom_path).resolve()
    env_path = os.environ.get("IR_SURVEY_KEYWORDS")
    if env_path:
        return Path(env_path).resolve()
    return DEFAULT_CONFIG_PATH.resolve()


def load_keywords(
    custom_path: Optional[str] = None,
    schema_path: Optional[Path] = DEFAULT_SCHEMA_PATH,
) -> KeywordConfig:
    """
    Load and validate the keyword configuration.

    Raises:
        KeywordConfigError: If the file is missing, unreadable or invalid
    """
    config_path = resolve_config_path(custom_path)
    if not config_path.exists():
        raise KeywordConfigError(
            f"Keyword configuration not found: {config_path}. "
            "Survey keywords must be defined before running."
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise KeywordConfigError(f"Failed to read {config_path}: {e}") from e

    validate_keywords(data, schema_path)
    logger.info(f"Loaded keyword configuration from {config_path}")
    return KeywordConfig.from_dict(data)
