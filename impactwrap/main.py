"""
Command line interface for Impact Wrapped.

Examples:
    python -m impactwrap ingest donors.csv --org-id 1
    python -m impactwrap impact 250 --dollars-per-meal 0.20
    python -m impactwrap template > donor_template.csv
"""

import argparse
import json
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

from . import __version__
from .core.db import get_engine, init_schema
from .core.errors import ImpactWrapError
from .core.log_config import configure_logging, get_logger
from .core.settings import settings
from .donor_ingest.fetcher import FetchError, fetch_from_file
from .donor_ingest.orchestrator import OUTCOME_PARTIAL, OUTCOME_SUCCESS, run_donor_upload
from .donor_ingest.template import render_template
from .impact import CoefficientOverrides, compute_impact, meals_per_dollar
from .donor_ingest.parser import MAX_AMOUNT
from .impact.formulas import is_finite_amount
from .storage import build_store


logger = get_logger(__name__)


def positive_decimal(value: str) -> Decimal:
    """argparse type for coefficient overrides."""
    try:
        number = Decimal(value)
    except InvalidOperation as e:
        raise argparse.ArgumentTypeError(f"Invalid number '{value}'") from e
    if not number.is_finite() or number <= 0:
        raise argparse.ArgumentTypeError(f"Expected a positive number, got '{value}'")
    return number


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_ingest(args: argparse.Namespace) -> int:
    config = settings()
    upload = fetch_from_file(args.file, encoding=args.encoding)
    store = build_store(config, create_schema=True)

    result = run_donor_upload(
        store,
        args.org_id,
        rows=upload.rows,
        csv_text=upload.csv_text,
        config=config,
    )
    _print_json(result.to_dict())

    if not config.uses_database():
        logger.warning("No database configured; donors were stored in memory only")

    return 0 if result.outcome in (OUTCOME_SUCCESS, OUTCOME_PARTIAL) else 1


def cmd_template(args: argparse.Namespace) -> int:
    content = render_template()
    if args.output:
        Path(args.output).write_text(content, encoding="utf-8")
        logger.info("Template written", path=args.output)
    else:
        sys.stdout.write(content)
    return 0


def cmd_impact(args: argparse.Namespace) -> int:
    if not is_finite_amount(args.amount) or Decimal(str(args.amount)) > MAX_AMOUNT:
        print(f"Amount must be a finite, non-negative number up to {MAX_AMOUNT}: {args.amount}", file=sys.stderr)
        return 2

    overrides = CoefficientOverrides(
        dollars_per_meal=args.dollars_per_meal,
        meals_per_person=args.meals_per_person,
        pounds_per_meal=args.pounds_per_meal,
        co2_per_pound=args.co2_per_pound,
        water_per_pound=args.water_per_pound,
    )
    metrics = compute_impact(args.amount, overrides)
    _print_json({
        "totalGiving": args.amount,
        "mealsPerDollar": meals_per_dollar(overrides),
        **metrics.to_dict(),
    })
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    config = settings()
    if not config.uses_database():
        logger.error("IMPACTWRAP_DATABASE_URL is not set")
        return 1

    init_schema(get_engine(config.database_url, echo=config.db_echo))
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    config = settings()
    uvicorn.run(
        "impactwrap.api.main:app",
        host=args.host or config.api_host,
        port=args.port or config.api_port,
        reload=args.reload,
    )
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="impactwrap",
        description="Impact Wrapped: donor impact reports for food banks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m impactwrap ingest donors.csv --org-id 1
  python -m impactwrap impact 250 --dollars-per-meal 0.20
  python -m impactwrap template --output donor_template.csv
  python -m impactwrap serve --port 8080
        """
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override log level from configuration"
    )

    parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        help="Override log format from configuration"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Impact Wrapped {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Upload donors from a CSV or Excel file")
    ingest.add_argument("file", help="Path to a .csv or .xlsx file")
    ingest.add_argument("--org-id", type=int, required=True, help="Organization id")
    ingest.add_argument("--encoding", help="CSV encoding (default: auto-detect)")
    ingest.set_defaults(handler=cmd_ingest)

    template = subparsers.add_parser("template", help="Print the donor CSV template")
    template.add_argument("--output", "-o", help="Write to this file instead of stdout")
    template.set_defaults(handler=cmd_template)

    impact = subparsers.add_parser("impact", help="Compute impact metrics for an amount")
    impact.add_argument("amount", type=str, help="Total giving in dollars")
    for flag in ("dollars-per-meal", "meals-per-person", "pounds-per-meal",
                 "co2-per-pound", "water-per-pound"):
        impact.add_argument(f"--{flag}", type=positive_decimal, help=f"Override {flag.replace('-', ' ')}")
    impact.set_defaults(handler=cmd_impact)

    init_db = subparsers.add_parser("init-db", help="Create database tables")
    init_db.set_defaults(handler=cmd_init_db)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", help="Bind host (default: IMPACTWRAP_API_HOST)")
    serve.add_argument("--port", type=int, help="Bind port (default: IMPACTWRAP_API_PORT)")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve.set_defaults(handler=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI application.

    Returns:
        Exit code (0 for success, 1 for failure, 2 for bad input)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level, args.log_format)

    try:
        return args.handler(args)

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 1
    except (FileNotFoundError, FetchError, ImpactWrapError) as e:
        logger.error(
            "Command failed",
            command=args.command,
            error=str(e),
            error_type=type(e).__name__
        )
        return 1


def cli_main():
    """Synchronous entry point for setuptools console scripts."""
    return main()


if __name__ == "__main__":
    sys.exit(main())
