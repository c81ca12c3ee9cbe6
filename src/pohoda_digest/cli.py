"""Command-line interface for generating Pohoda digests.

Usage:
    # Digest for the current month, HTML on stdout
    pohoda-digest

    # Specific period saved as JSON
    pohoda-digest --start=2024-01-01 --end=2024-01-31 --format=json --output=digest.json

    # Email-friendly HTML sent to a manager
    pohoda-digest --email=manager@example.com --theme=email

    # Only check that the mServer answers
    pohoda-digest --test-connection
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from datetime import date
from pathlib import Path

import structlog
from pydantic import ValidationError

from pohoda_digest.config import configure_logging, load_settings
from pohoda_digest.digestor import Digestor
from pohoda_digest.models import Period
from pohoda_digest.modules import AVAILABLE_MODULES
from pohoda_digest.renderer import THEMES

logger = structlog.get_logger(__name__)

DEFAULT_ENV_FILE = ".env"


class CliError(Exception):
    """Fatal error reported to the user with exit code 1."""


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD") from e


def _module_list(value: str) -> list[str]:
    names = [name.strip() for name in value.split(",") if name.strip()]
    if not names:
        raise argparse.ArgumentTypeError("at least one module name is required")
    return names


def build_parser() -> argparse.ArgumentParser:
    module_lines = "\n".join(
        f"  {name:<22}{module_cls.heading}" for name, module_cls in AVAILABLE_MODULES.items()
    )
    parser = argparse.ArgumentParser(
        prog="pohoda-digest",
        description="Generate analytical digests from Pohoda accounting data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available modules:
{module_lines}

Environment configuration (.env or process environment):
  POHODA_URL            mServer URL
  POHODA_ICO            Company identification number
  POHODA_USERNAME       mServer username
  POHODA_PASSWORD       mServer password

Examples:
  %(prog)s --start=2024-01-01 --end=2024-01-31
  %(prog)s --format=json --output=digest.json
  %(prog)s --email=manager@example.com --theme=email
  %(prog)s --test-connection
        """,
    )
    parser.add_argument(
        "--start", type=_iso_date, help="Start date YYYY-MM-DD (default: first day of this month)"
    )
    parser.add_argument(
        "--end", type=_iso_date, help="End date YYYY-MM-DD (default: last day of this month)"
    )
    parser.add_argument(
        "--theme", choices=THEMES, default="bootstrap", help="HTML theme (default: bootstrap)"
    )
    parser.add_argument(
        "--format", choices=["html", "json"], default="html", help="Output format (default: html)"
    )
    parser.add_argument("--output", metavar="FILE", help="Save to file instead of stdout")
    parser.add_argument("--email", metavar="EMAIL", help="Send the digest by email")
    parser.add_argument(
        "--modules",
        type=_module_list,
        default=list(AVAILABLE_MODULES),
        metavar="LIST",
        help=f"Comma-separated modules (default: {','.join(AVAILABLE_MODULES)})",
    )
    parser.add_argument(
        "--env", metavar="FILE", help=f"Environment file path (default: {DEFAULT_ENV_FILE})"
    )
    parser.add_argument(
        "--test-connection",
        action="store_true",
        help="Test the Pohoda connection and exit",
    )
    return parser


def _error(message: str) -> None:
    print(f"[ERROR] {message}", file=sys.stderr)


def _resolve_env_file(env: str | None) -> Path | None:
    if env is not None:
        path = Path(env)
        if not path.is_file():
            raise CliError(f"Environment file not found: {env}")
        return path
    default = Path(DEFAULT_ENV_FILE)
    return default if default.is_file() else None


def _build_period(start: date | None, end: date | None) -> Period:
    month = Period.current_month()
    try:
        return Period(start=start or month.start, end=end or month.end)
    except ValueError as e:
        raise CliError(str(e)) from e


def _test_connection(digestor: Digestor) -> int:
    logger.info("testing_pohoda_connection")
    if not digestor.test_connection():
        _error("Connection failed")
        return 1

    company = digestor.source.company_info()
    print("✓ Connection successful")
    print(f"Company: {company.get('name', '')}")
    print(f"Server: {company.get('server_url', '')}")
    return 0


def _generate(digestor: Digestor, args: argparse.Namespace) -> int:
    if not digestor.available_modules:
        raise CliError(f"No known modules selected (available: {', '.join(AVAILABLE_MODULES)})")

    if not digestor.test_connection():
        _error("Cannot connect to Pohoda. Please check your configuration.")
        return 1

    period = _build_period(args.start, args.end)
    logger.info("generating_digest", start=period.start.isoformat(), end=period.end.isoformat())
    result = digestor.run(period)

    if args.output:
        if not digestor.save_to_file(result, args.output, args.format, args.theme):
            _error(f"Failed to save file: {args.output}")
            return 1
        logger.info("digest_written", path=args.output)
    else:
        sys.stdout.write(digestor.render(result, args.format, args.theme))
        sys.stdout.write("\n")

    if args.email:
        logger.info("sending_digest_email", to=args.email)
        if not digestor.send_by_email(result, args.email, theme="email"):
            _error(f"Failed to send email to {args.email}")
            return 1

    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point; returns the process exit code."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 0 for --help and 2 for usage errors.
        return 0 if e.code in (0, None) else 1

    configure_logging()

    try:
        settings = load_settings(_resolve_env_file(args.env))
        configure_logging(settings.log_level, settings.log_format)

        digestor = Digestor.from_settings(settings, args.modules)
        if args.test_connection:
            return _test_connection(digestor)
        return _generate(digestor, args)

    except CliError as e:
        _error(str(e))
        return 1
    except ValidationError as e:
        missing = ", ".join(
            str(err["loc"][0]) for err in e.errors() if err.get("loc")
        )
        _error(f"Invalid configuration: {missing or e}")
        return 1
    except KeyboardInterrupt:
        _error("Interrupted")
        return 1
    except Exception as e:
        logger.exception("digest_error", error=str(e))
        _error(str(e))
        return 1
