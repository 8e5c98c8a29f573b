"""
IR page disclosure survey.

Visits investor-relations pages with a headless browser and records, per
URL, whether eight disclosure features are present, with the evidence URL
and a note for every verdict.

Modules:
    text - Full-width digit folding and whitespace collapsing
    dates - Date/era and year extraction, recency windows
    validators - Content validators and integrated-report link selection
    page - Page snapshot interface, visibility and 404 heuristics
    browser - Playwright implementation of the page interface
    search_detection - Site-search detection chain
    discovery - Candidate link discovery on the IR page
    features - Per-feature evaluation state machine
    investigator - Per-URL survey sequence
    keywords - Keyword configuration loading and validation
    health - Page health tracking for the survey loop
    runner - Sequential URL loop
    report - CSV and JSON writers
    cli - Command-line interface entrypoints
"""

from . import text
from . import dates
from . import validators
from . import page
from . import search_detection
from . import discovery
from . import features
from . import investigator
from . import keywords
from . import health
from . import runner
from . import report
from . import cli

__version__ = "1.0.0"
