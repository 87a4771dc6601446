"""Command-line interface for html2docx.

Usage::

    html2docx body.html                        # writes Document-<date>.docx
    html2docx body.html -t "Q1 Report" -o out  # explicit title and directory
    html2docx blocks.json --blocks             # editor block list (JSON)
    html2docx body.html --mode placeholder     # keep failed images as text
    html2docx --list-styles                    # list available presets
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from html2docx import __version__
from html2docx.config import ExportMode, ExportOptions
from html2docx.converter import Exporter
from html2docx.delivery import FileDelivery
from html2docx.errors import ExportError
from html2docx.parser import parse_blocks
from html2docx.style_manager import StyleManager


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="html2docx",
        description="Export editor HTML documents to DOCX.",
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="HTML body file, or a JSON block list with --blocks.",
    )
    parser.add_argument(
        "-t", "--title",
        default="",
        help="Document title (defaults to the fallback title).",
    )
    parser.add_argument(
        "-o", "--output-dir",
        default=".",
        help="Directory the DOCX file is saved to (default: %(default)s).",
    )
    parser.add_argument(
        "-s", "--style",
        default="default",
        choices=StyleManager.PRESETS,
        help="Style preset (default: %(default)s).",
    )
    parser.add_argument(
        "-m", "--mode",
        choices=[m.value for m in ExportMode],
        help="What to do with images that cannot be loaded "
             "(default: drop for HTML, placeholder for --blocks).",
    )
    parser.add_argument(
        "--blocks",
        action="store_true",
        help="Treat the input as the editor's JSON block list.",
    )
    parser.add_argument(
        "-e", "--encoding",
        default="utf-8",
        help="Input file encoding (default: %(default)s).",
    )
    parser.add_argument(
        "--list-styles",
        action="store_true",
        help="List available style presets and exit.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print progress information.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.list_styles:
        print("Available style presets:")
        for preset in StyleManager.PRESETS:
            print(f"  - {preset}")
        return 0

    if not args.input:
        parser.error("the following argument is required: input")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    input_path = Path(args.input)
    if not input_path.is_file():
        print(f"Error: file not found: {input_path}", file=sys.stderr)
        return 1

    options = ExportOptions(
        style_preset=args.style,
        mode=ExportMode(args.mode) if args.mode else None,
    )
    delivery = FileDelivery(args.output_dir)

    if args.verbose:
        print(f"Input:  {input_path}")
        print(f"Output: {delivery.directory}")
        print(f"Style:  {args.style}")

    try:
        source = input_path.read_text(encoding=args.encoding)
        exporter = Exporter(options)
        if args.blocks:
            data = json.loads(source)
            title = args.title
            if isinstance(data, dict):
                # whole editor state: {"title": ..., "blocks": [...]}
                title = title or str(data.get("title") or "")
                data = data.get("blocks", [])
            items = parse_blocks(data)
            asyncio.run(exporter.export_blocks(title, items, delivery=delivery))
        else:
            asyncio.run(exporter.export_html(args.title, source, delivery=delivery))
    except (ExportError, OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.verbose:
        print(f"Done. {delivery.last_path.stat().st_size} bytes written.")
    else:
        print(f"Exported: {delivery.last_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
