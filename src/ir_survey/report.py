"""
Evidence writers.

- detailed CSV: one row per URL x evaluated feature
- compact CSV: one row per URL (site search, English version)
- JSON: full SurveyResult dump plus the run summary
"""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import FEATURE_LABELS, FEATURE_NAMES, FeatureKey, SurveyResult

logger = logging.getLogger(__name__)

DETAILED_COLUMNS = [
    "url",
    "feature",
    "value",
    "hit_url",
    "detected_selector",
    "detected_element_type",
    "note",
]

COMPACT_COLUMNS = ["url", "actual_url", "has_search", "has_english", "note"]

OUTPUT_STYLES = ("detailed", "compact")

# Excel opens BOM-prefixed UTF-8 with Japanese labels intact
CSV_ENCODING = "utf-8-sig"


def detailed_rows(results: List[SurveyResult]) -> List[Dict[str, Any]]:
    rows = []
    for result in results:
        for key in result.mode.features:
            item = result.item(key)
            rows.append({
                "url": result.url,
                "feature": FEATURE_LABELS[key],
                "value": item.value,
                "hit_url": item.hit_url,
                "detected_selector": item.detected_selector,
                "detected_element_type": item.detected_element_type,
                "note": item.note,
            })
    return rows


def compact_rows(results: List[SurveyResult]) -> List[Dict[str, Any]]:
    rows = []
    for result in results:
        search = result.item(FeatureKey.SEARCH)
        english = result.item(FeatureKey.ENGLISH)
        if result.error:
            note = f"error: {result.error}"
        else:
            note = " / ".join(n for n in (search.note, english.note) if n)
        rows.append({
            "url": result.url,
            "actual_url": result.actual_url,
            "has_search": search.value,
            "has_english": english.value,
            "note": note,
        })
    return rows


def write_csv(results: List[SurveyResult], path: Path, style: str = "detailed") -> Path:
    """Write the CSV report in the given style."""
    if style not in OUTPUT_STYLES:
        raise ValueError(f"Unknown output style: {style}")
    columns = DETAILED_COLUMNS if style == "detailed" else COMPACT_COLUMNS
    rows = detailed_rows(results) if style == "detailed" else compact_rows(results)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding=CSV_ENCODING) as f:
        writer = csv.DictWriter(f, fieldnames=columns)
        writer.writeheader()
        writer.writerows(rows)

    logger.info(f"Wrote {len(rows)} row(s) to {path}")
    return path


def write_json(results: List[SurveyResult], path: Path, summary: Optional[Dict[str, Any]] = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "summary": summary or {},
        "features": {key.value: FEATURE_NAMES[key] for key in FeatureKey},
        "results": [r.to_dict() for r in results],
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)

    logger.info(f"Wrote {len(results)} result(s) to {path}")
    return path


def write_reports(
    results: List[SurveyResult],
    output: Path,
    style: str = "detailed",
    summary: Optional[Dict[str, Any]] = None,
) -> List[Path]:
    """CSV at ``output`` and a JSON dump beside it (same stem, .json)."""
    written = [write_csv(results, output, style)]
    written.append(write_json(results, output.with_suffix(".json"), summary))
    return written
