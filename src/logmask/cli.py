"""
Command line entry point: mask text streams with the configured rules.

    logmask --config log-masking.properties app.log > app.masked.log
    some-service 2>&1 | logmask
"""

import argparse
import sys
from pathlib import Path
from typing import IO, Iterable, List, Optional

import structlog

from .config import get_settings
from .core.masking import MaskingEngine
from .core.rules import RuleStore
from .integrations import configure_logging

logger = structlog.get_logger(__name__)


def mask_stream(engine: MaskingEngine, lines: Iterable[str], out: IO[str]) -> int:
    """Mask every line and write it to ``out``; returns the line count."""
    count = 0
    for line in lines:
        newline = line.endswith("\n")
        out.write(engine.mask(line[:-1] if newline else line))
        if newline:
            out.write("\n")
        count += 1
    return count


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logmask",
        description="Redact sensitive data from log lines using masking rules.",
    )
    parser.add_argument(
        "files",
        nargs="*",
        type=Path,
        help="Input files (default: standard input)",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Masking patterns properties file (default: from settings)",
    )
    parser.add_argument(
        "--log-level",
        help="Diagnostic log level (default: from settings)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    # Diagnostics go to stderr so stdout carries only masked text
    configure_logging(args.log_level or settings.log_level)

    if args.config is not None:
        store = RuleStore(
            path=args.config,
            encoding=settings.masking.encoding,
            default_replacement=settings.masking.default_replacement,
        )
    else:
        store = RuleStore.from_settings(settings.masking)
    engine = MaskingEngine.from_store(store)

    total = 0
    failed = 0
    if not args.files:
        total = mask_stream(engine, sys.stdin, sys.stdout)
    for path in args.files:
        try:
            with open(path, "r", encoding=settings.masking.encoding) as f:
                total += mask_stream(engine, f, sys.stdout)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(
                "Could not read input file",
                path=str(path),
                error=str(e),
                error_type=type(e).__name__,
            )
            failed += 1

    logger.debug("Masked input", lines=total, rules=len(engine.rules), failed_files=failed)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
