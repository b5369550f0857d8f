"""Batch CLI: extract fields from tax documents into JSON lines."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from .pipeline import build_default_pipeline
from .schemas.documents import ExtractedDocument, SourceDocument
from .settings import PROVIDER_NAMES, PipelineSettings, load_settings


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract structured fields from tax documents.")
    parser.add_argument("files", nargs="+", help="Documents to parse (PDF, image or recognized-text JSON).")
    parser.add_argument("--output", help="Output JSONL path. Defaults to stdout.")
    parser.add_argument("--timeout", type=float, default=None, help="Per-document timeout in seconds.")
    parser.add_argument("--provider", choices=sorted(PROVIDER_NAMES), help="Override the configured OCR provider.")
    parser.add_argument("--config", help="Alternative pipeline.yaml path.")
    return parser.parse_args(argv)


async def run(paths: List[Path], settings: PipelineSettings, timeout: Optional[float]) -> List[ExtractedDocument]:
    documents = [(SourceDocument.from_path(path), path.stem) for path in paths]
    async with build_default_pipeline(settings) as pipeline:
        return await pipeline.parse_multiple_documents(documents, timeout=timeout)


def write_results(results: List[ExtractedDocument], handle: TextIO) -> None:
    for document in results:
        handle.write(json.dumps(document.to_dict(), ensure_ascii=False))
        handle.write("\n")


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    args = parse_args(argv)

    paths = [Path(name) for name in args.files]
    missing = [str(path) for path in paths if not path.exists()]
    if missing:
        print(f"Input file not found: {', '.join(missing)}", file=sys.stderr)
        return 1

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1
    if args.provider:
        fallback = settings.fallback if settings.fallback != args.provider else None
        settings = dataclasses.replace(settings, provider=args.provider, fallback=fallback)
    timeout = args.timeout if args.timeout is not None else settings.batch_timeout

    results = asyncio.run(run(paths, settings, timeout))

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as handle:
            write_results(results, handle)
        print(f"Wrote {len(results)} of {len(paths)} documents to {output_path}", file=sys.stderr)
    else:
        write_results(results, sys.stdout)
    return 0 if results else 2


if __name__ == "__main__":
    sys.exit(main())
