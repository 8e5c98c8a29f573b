"""
Command-line interface for the IR page survey.

Subcommands:
    run           Survey every URL in a list file and write CSV/JSON reports
    check-config  Validate the keyword configuration and print a summary
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from . import keywords
from . import report
from . import runner
from .investigator import SurveySettings
from .logging_config import configure_logging
from .models import SurveyMode

logger = logging.getLogger(__name__)


class UrlListError(Exception):
    """Raised when the URL list file is missing or has no usable URLs."""
    pass


def load_url_list(path: Path) -> List[str]:
    """One http(s) URL per line; blank lines and ``#`` comments are skipped."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise UrlListError(f"Cannot read URL list {path}: {e}") from e

    urls = []
    for number, line in enumerate(lines, 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if not line.startswith(("http://", "https://")):
            logger.warning(f"Skipping line {number} of {path}: not an http(s) URL")
            continue
        urls.append(line)

    if not urls:
        raise UrlListError(f"No URLs found in {path}")
    return urls


def _default_output() -> Path:
    return Path("results") / f"ir_survey_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"


def cmd_run(args: argparse.Namespace) -> int:
    """Survey the URLs in --file."""
    try:
        config = keywords.load_keywords(args.config)
        urls = load_url_list(Path(args.file))
    except keywords.KeywordConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except UrlListError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    mode = SurveyMode(args.mode)
    output = Path(args.output) if args.output else _default_output()

    print(f"Loaded {len(urls)} URL(s) from {args.file} ({mode.value} mode)")
    if args.dry_run:
        for url in urls:
            print(f"  {url}")
        print("(dry run - no browser started, no reports written)")
        return 0

    from .browser import BrowserSession

    settings = SurveySettings(wait_ms=args.wait)
    try:
        with BrowserSession(headless=not args.headed) as session:
            survey = runner.SurveyRunner(session.new_page, config, settings=settings, mode=mode)
            results = survey.run(urls)
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    summary = runner.summarize(results)
    summary["health"] = survey.health.to_dict()
    written = report.write_reports(results, output, style=args.output_style, summary=summary)

    print(f"Surveyed {summary['total_urls']} URL(s): {summary['succeeded']} ok, {summary['failed']} failed")
    for name, count in summary["detected"].items():
        print(f"  {name:<22} {count}")
    for path in written:
        print(f"Wrote {path}")
    return 0


def cmd_check_config(args: argparse.Namespace) -> int:
    """Validate keyword configuration."""
    try:
        config = keywords.load_keywords(args.config)
    except keywords.KeywordConfigError as e:
        print(f"Validation failed: {e}", file=sys.stderr)
        return 1

    print(f"Configuration valid: {keywords.resolve_config_path(args.config)}")
    print(f"  Search selectors: {len(config.search.selectors)}")
    print(f"  Icon selectors: {len(config.search.icon_selectors)}")
    print(f"  CEO message keywords: {len(config.top_message.content_keywords)}")
    print(f"  Shareholder keywords: {len(config.stock.content_keywords)}")
    print(f"  Sustainability keywords: {len(config.sustainability.menu_keywords)}")
    return 0


def main(argv: Optional[list] = None) -> int:
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        prog="ir-survey",
        description="IR page disclosure survey"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging"
    )
    parser.add_argument(
        "--log-dir",
        default="logs",
        help="Directory for per-run log files"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Survey IR pages")
    run_parser.add_argument("--file", "-f", required=True, help="Text file with one URL per line")
    run_parser.add_argument("--output", "-o", help="CSV output path (JSON is written beside it)")
    run_parser.add_argument("--wait", type=int, default=3000, help="Fixed wait after load in ms")
    run_parser.add_argument("--mode", choices=[m.value for m in SurveyMode], default=SurveyMode.FULL.value)
    run_parser.add_argument("--output-style", choices=list(report.OUTPUT_STYLES), default="detailed")
    run_parser.add_argument("--config", help="Keyword configuration YAML")
    run_parser.add_argument("--dry-run", action="store_true", help="Validate inputs without browsing")
    run_parser.add_argument("--headed", action="store_true", help="Show the browser window")
    run_parser.set_defaults(func=cmd_run)

    # check-config command
    check_parser = subparsers.add_parser("check-config", help="Validate keyword configuration")
    check_parser.add_argument("--config", help="Keyword configuration YAML")
    check_parser.set_defaults(func=cmd_check_config)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    configure_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_dir)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
