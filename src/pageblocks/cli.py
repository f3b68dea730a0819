# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page Blocks CLI: extract content blocks from a saved HTML page.

Usage:
    python -m pageblocks.cli extract PAGE.html [--base-url URL] [--content SEL] [--exclude SEL ...]
    python -m pageblocks.cli extract PAGE.html --selectors selectors.json --format text
    python -m pageblocks.cli extract - < page.html
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from pathlib import Path

from . import SelectorConfig
from .errors import PageBlocksError, SelectorConfigError


def _read_input(path_str: str) -> bytes:
    if path_str == "-":
        return sys.stdin.buffer.read()
    return Path(path_str).read_bytes()


def _load_selectors(args: argparse.Namespace) -> SelectorConfig:
    """Selector file first, then individual flags on top."""
    base = SelectorConfig()
    if args.selectors:
        try:
            data = json.loads(Path(args.selectors).read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise SelectorConfigError(f"Invalid selector file {args.selectors}: {e}") from e
        base = SelectorConfig.from_dict(data)

    overrides = {}
    if args.content:
        overrides["content"] = args.content
    if args.article_container:
        overrides["article_container"] = args.article_container
    if args.exclude:
        overrides["exclude"] = base.exclude + tuple(s for s in args.exclude if s.strip())
    if args.author:
        overrides["author"] = args.author
    return dataclasses.replace(base, **overrides) if overrides else base


def cmd_extract(args: argparse.Namespace) -> None:
    """Extract blocks from one HTML file."""
    from .extractor import extract_document
    from .logging_config import bound_context
    from .serializer import to_json, to_text

    selectors = _load_selectors(args)
    html = _read_input(args.input)

    with bound_context(source=args.input):
        result = extract_document(
            html,
            base_url=args.base_url or "",
            selectors=selectors,
            title=args.title,
        )

    output = to_text(result) if args.format == "text" else to_json(result)
    if args.output:
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(output + "\n", encoding="utf-8")
        print(f"{len(result.blocks)} blocks saved to {out_path}", file=sys.stderr)
    else:
        print(output)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Page Blocks CLI",
        prog="python -m pageblocks.cli",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-json", action="store_true", default=None, help="JSON log lines on stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    _extract_epilog = """\
examples:
  %(prog)s page.html --base-url https://example.com/post   JSON to stdout
  %(prog)s page.html --content article --exclude .ads      Explicit selectors
  %(prog)s page.html --selectors sel.json --format text     Outline view
  %(prog)s page.html -o out/page.json                      Save to file
"""
    p_extract = subparsers.add_parser(
        "extract",
        help="Extract ordered content blocks from an HTML file",
        epilog=_extract_epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p_extract.add_argument("input", metavar="FILE", help="HTML file to read ('-' for stdin)")
    p_extract.add_argument("--base-url", type=str, metavar="URL", help="Page URL for resolving relative links")
    p_extract.add_argument("--content", type=str, metavar="SEL", help="Content container selector")
    p_extract.add_argument("--article-container", type=str, metavar="SEL", help="Fallback container selector")
    p_extract.add_argument(
        "--exclude",
        type=str,
        metavar="SEL",
        action="append",
        default=[],
        help="Exclude selector (repeatable)",
    )
    p_extract.add_argument(
        "--selectors",
        type=str,
        metavar="FILE",
        help="JSON selector config (content, articleContainer, exclude, title, author)",
    )
    p_extract.add_argument("--title", type=str, help="Article title (skips title detection)")
    p_extract.add_argument("--author", type=str, help="Article author (bylines are dropped)")
    p_extract.add_argument(
        "--format",
        type=str,
        choices=["json", "text"],
        default="json",
        help="Output format (default: json)",
    )
    p_extract.add_argument("-o", "--output", type=str, metavar="PATH", help="Write output to PATH instead of stdout")
    p_extract.set_defaults(func=cmd_extract)
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    from .logging_config import configure, env_defaults

    parser = build_parser()
    args = parser.parse_args(argv)

    env_json, env_level = env_defaults()
    json_output = env_json if args.log_json is None else args.log_json
    configure(json_output=json_output, level="DEBUG" if args.verbose else env_level)

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except (PageBlocksError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
