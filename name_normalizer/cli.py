from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .app import NormalizerApp
from .commands import analyze as cmd_analyze
from .commands import apply as cmd_apply
from .commands import distinct as cmd_distinct
from .commands import mappings as cmd_mappings
from .commands import parse as cmd_parse
from .commands import review as cmd_review
from .config import Settings, find_config
from .core.identity.parser import NameTokenizer
from .models import CancellationSignal, NormalizerError

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}

EXIT_ERROR = 1
EXIT_CANCELLED = 130


class ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{C_RESET}"


class WarningBufferHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.records: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
        except Exception:  # pragma: no cover
            msg = record.getMessage()
        self.records.append(msg)


def configure_logging(level_name: str, warning_log: Optional[Path] = None) -> WarningBufferHandler:
    log_level = getattr(logging, level_name.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    color_handler = logging.StreamHandler()
    color_handler.setFormatter(ColorFormatter(LOG_FORMAT))
    root_logger.addHandler(color_handler)

    warn_buffer = WarningBufferHandler()
    warn_buffer.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(warn_buffer)

    if warning_log is not None:
        file_handler = logging.FileHandler(warning_log, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.WARNING)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(file_handler)
    return warn_buffer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Personal-name normalization for bibliographic libraries")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    parser.add_argument("--library", type=Path, help="Library JSON file (overrides library.path)")
    parser.add_argument("--collection", help="Only analyze items in this collection (overrides library.collection)")
    parser.add_argument("--warning-log", type=Path, help="Also write warnings and errors to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser("analyze", help="Report name variants found in the library")
    analyze_parser.add_argument("--out", type=Path, help="Save suggestions to this file for a later apply/review")
    analyze_parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON to stdout")

    review_parser = subparsers.add_parser("review", help="Interactively accept or decline suggestions")
    review_parser.add_argument("--from", dest="source", type=Path, help="Review a saved suggestion file")
    review_parser.add_argument("--yes", action="store_true", help="Accept every suggestion without prompting")

    apply_parser = subparsers.add_parser("apply", help="Apply a saved suggestion file")
    apply_parser.add_argument("file", type=Path)
    apply_parser.add_argument("--accept", default="all", help="'all', 'none' or 1-based indexes such as 1,3-5")
    apply_parser.add_argument(
        "--no-decline",
        action="store_true",
        help="Do not remember unaccepted suggestions as distinct people",
    )

    mappings_parser = subparsers.add_parser("mappings", help="Inspect or edit learned mappings")
    mappings_parser.add_argument(
        "action", choices=["list", "stats", "lookup", "remove", "clear", "export", "import"]
    )
    mappings_parser.add_argument("target", nargs="?", help="Name (lookup/remove) or file (export/import)")
    mappings_parser.add_argument("--merge", action="store_true", help="Merge into existing data on import")

    distinct_parser = subparsers.add_parser("distinct", help="Inspect or clear names marked as different people")
    distinct_parser.add_argument("action", choices=["list", "clear"])
    distinct_parser.add_argument("names", nargs="*", help="Two names to clear; none clears every pair")
    distinct_parser.add_argument("--scope", default=None, help="Decision scope, e.g. surname or given:smith")

    parse_parser = subparsers.add_parser("parse", help="Show how names are split into parts")
    parse_parser.add_argument("names", nargs="+")
    parse_parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON to stdout")
    return parser


def _load_settings(args: argparse.Namespace) -> Settings:
    try:
        settings = Settings.load(find_config(args.config))
    except FileNotFoundError:
        if args.config:
            raise
        settings = Settings()
    updates = {}
    if args.library is not None:
        updates["path"] = args.library.expanduser().resolve()
    if args.collection is not None:
        updates["collection"] = args.collection
    if updates:
        settings = settings.model_copy(update={"library": settings.library.model_copy(update=updates)})
    return settings


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    warn_buffer = configure_logging(args.log_level, args.warning_log)

    if args.command == "parse":
        cmd_parse.run(NameTokenizer(), args.names, json_output=args.json)
        return

    app: NormalizerApp | None = None
    try:
        settings = _load_settings(args)
        app = NormalizerApp.create(settings)
        match args.command:
            case "analyze":
                cmd_analyze.run(app.get_service(), out=args.out, json_output=args.json)
            case "review":
                cmd_review.run(app.get_service(), source=args.source, assume_yes=args.yes)
            case "apply":
                cmd_apply.run(
                    app.get_service(),
                    args.file,
                    accept=args.accept,
                    record_declines=not args.no_decline,
                )
            case "mappings":
                target = args.target
                cmd_mappings.run(
                    app.mappings,
                    args.action,
                    name=target if args.action in {"lookup", "remove"} else None,
                    path=Path(target) if target and args.action in {"export", "import"} else None,
                    merge=args.merge,
                )
            case "distinct":
                cmd_distinct.run(app.mappings, args.action, names=args.names, scope=args.scope)
            case _:
                parser.error("Unknown command")
    except (KeyboardInterrupt, CancellationSignal):
        print("\nCancelled.", file=sys.stderr)
        raise SystemExit(EXIT_CANCELLED)
    except (NormalizerError, FileNotFoundError) as exc:
        logging.getLogger(__name__).error("%s", exc)
        raise SystemExit(EXIT_ERROR)
    finally:
        if app:
            app.close()
        if warn_buffer.records:
            print("\n\033[33mWarnings/Errors summary:\033[0m")
            for line in warn_buffer.records:
                print(f" - {line}")
            if args.warning_log:
                print(f"\nFull warning log: {args.warning_log}")


if __name__ == "__main__":
    main()
