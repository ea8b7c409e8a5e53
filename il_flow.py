#!/usr/bin/env python3
"""Command-line interface for the CIL method flow analyser."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from ilflow import ListingRenderer, MetadataCatalog, MethodAnalyzer, load_clauses
from ilflow.paths import DEFAULT_MAX_REVISITS


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("il", type=Path, help="File holding the raw IL bytes of one method body")
    parser.add_argument(
        "--hex",
        action="store_true",
        help="Treat the input as hexadecimal text instead of raw bytes",
    )
    parser.add_argument(
        "--clauses",
        type=Path,
        default=None,
        help="JSON list of exception handling clauses for the method",
    )
    parser.add_argument(
        "--metadata",
        type=Path,
        default=None,
        help="JSON catalog mapping metadata tokens to names and call signatures",
    )
    parser.add_argument(
        "--max-revisits",
        type=int,
        default=DEFAULT_MAX_REVISITS,
        help="How often a run may already appear in a path before loops are cut",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the listing to this file instead of stdout",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def read_il(path: Path, *, as_hex: bool) -> bytes:
    if not path.exists():
        raise SystemExit(f"missing input file: {path}")
    if as_hex:
        text = path.read_text("utf-8")
        try:
            return bytes.fromhex(" ".join(text.split()))
        except ValueError as exc:
            raise SystemExit(f"invalid hex input in {path}: {exc}") from None
    return path.read_bytes()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    il = read_il(args.il, as_hex=args.hex)
    clauses = load_clauses(args.clauses) if args.clauses else []
    catalog = MetadataCatalog.load(args.metadata) if args.metadata else MetadataCatalog()

    analysis = MethodAnalyzer(catalog, max_revisits=args.max_revisits).analyze(il, clauses)
    renderer = ListingRenderer(catalog)
    if args.output is None:
        print(renderer.render(analysis), end="")
        return
    renderer.write(analysis, args.output)
    print(f"listing written to {args.output}")


if __name__ == "__main__":
    main()
