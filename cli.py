#!/usr/bin/env python3
import argparse
import json
import logging
import sys
from pathlib import Path

from sql_cheatsheet.app import catalog_from_config, load_config
from sql_cheatsheet.errors import EmptyDocumentError, TopicNotFoundError
from sql_cheatsheet.logging_utils import setup_logging
from sql_cheatsheet.utils.output import FORMATS, render, write_output

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    if n < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {n}")
    return n


def _add_output_flags(p: argparse.ArgumentParser):
    p.add_argument(
        "--format",
        type=str,
        default=None,
        choices=list(FORMATS),
        help="Output format (overrides --out extension; console default: txt)",
    )
    p.add_argument(
        "--out", type=str, default=None, help="Write result to a file (infers format from extension)"
    )
    p.add_argument(
        "--save", type=str, default=None, help="Directory to auto-save result (default from config)"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sql-cheatsheet",
        description="Browse and search a SQL cheat-sheet by topic and keyword.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable DEBUG logs (to stderr)."
    )
    parser.add_argument("--quiet", "-q", action="store_true", help="Reduce logs to WARN and above.")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines (stderr).")
    parser.add_argument("--config", type=str, default="config.yaml")
    parser.add_argument(
        "--doc",
        type=str,
        default=None,
        help="Cheat-sheet document. Precedence: --doc > SQL_CHEATSHEET_DOC env > config",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("topics", help="List topic titles in document order")

    p_show = sub.add_parser("show", help="Show one topic with all its concepts")
    p_show.add_argument("title", type=str, help="Topic title (case-insensitive) or number")
    _add_output_flags(p_show)

    p_s = sub.add_parser("search", help="Find concepts by keyword")
    p_s.add_argument("keyword", type=str)
    p_s.add_argument(
        "--ranked", action="store_true", help="BM25-ranked search over names, descriptions and examples"
    )
    p_s.add_argument("--k", type=_positive_int, default=None, help="Ranked results to keep (default from config)")
    _add_output_flags(p_s)

    p_exp = sub.add_parser("export", help="Dump the parsed catalog as JSON")
    p_exp.add_argument("--out", type=str, default=None, help="Target file (default: stdout)")
    return parser


def _emit(label, payload, args, cfg, query=None):
    if args.out or args.save:
        target = write_output(
            label,
            payload,
            out_path=args.out,
            fmt=args.format,
            save_dir=args.save or cfg["output"].get("save_dir"),
        )
        print(f"[saved] {target}")
        return
    print(render(payload, args.format or "txt", query=query), end="")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose and args.quiet:
        print("Cannot use --verbose and --quiet together.", file=sys.stderr)
        return 2
    if args.verbose:
        setup_logging(level="DEBUG", json_logs=args.log_json)
    elif args.quiet:
        setup_logging(level="WARNING", json_logs=args.log_json)
    else:
        setup_logging(level=None, json_logs=args.log_json)

    logger.debug("CLI args parsed: %s", vars(args))
    cfg = load_config(args.config)

    try:
        sheet = catalog_from_config(cfg, document=args.doc)
    except EmptyDocumentError as e:
        logger.error("Cannot load cheat sheet: %s", e)
        return 2

    if args.cmd == "topics":
        for entry in sheet:
            print(f"{entry.topic_id}. {entry.title} ({len(entry.concepts)} concepts)")
        return 0

    if args.cmd == "show":
        entry = sheet.get_topic(args.title)
        if entry is None and args.title.strip().isdigit():
            entry = sheet.get_topic_by_id(int(args.title))
        if entry is None:
            err = TopicNotFoundError(args.title)
            print(f"{err}. Available: {', '.join(sheet.list_topics())}", file=sys.stderr)
            return 1
        _emit(entry.title, entry, args, cfg)
        return 0

    if args.cmd == "search":
        if args.ranked:
            k = args.k if args.k is not None else int(cfg["search"].get("top_k", 10))
            hits = sheet.rank(args.keyword, top_k=k)
        else:
            hits = sheet.search(args.keyword)
        if not hits:
            logger.info("No concepts match %r", args.keyword)
        _emit(args.keyword, hits, args, cfg, query=args.keyword)
        return 0

    if args.cmd == "export":
        data = {
            "source": sheet.source,
            "topics": [e.model_dump(mode="json") for e in sheet],
        }
        text = json.dumps(data, ensure_ascii=False, indent=2)
        if args.out:
            Path(args.out).parent.mkdir(parents=True, exist_ok=True)
            Path(args.out).write_text(text, encoding="utf-8")
            print(f"[saved] {args.out}")
        else:
            print(text)
        return 0

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
