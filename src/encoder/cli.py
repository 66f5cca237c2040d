from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from contracts.errors import DcfError
from export.jsonl import export_document, open_export_dir
from ingest.contracts import IngestConfig
from ingest.data_access import sha256_file
from ingest.module import ingest_path

from .artifacts import write_document_json, write_metrics_json
from .config import EncoderPreset, HyphenationMode
from .module import EncoderBuilder
from .tokens import TokenizerKind

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dcf-encode",
        description="Encode a document (txt/md/html/pdf/image) into a cell-based document JSON.",
    )
    p.add_argument("--input", required=True, type=Path, help="Input file; format is chosen by extension.")
    p.add_argument("--output", required=True, type=Path, help="Path to write the document JSON artifact.")
    p.add_argument("--data-root", type=Path, default=None, help="Resolve --input relative to this root.")
    p.add_argument("--preset", choices=[x.value for x in EncoderPreset], default=EncoderPreset.REPORTS.value)
    p.add_argument("--budget", type=int, default=None, help="Token budget; omit to keep every cell.")
    p.add_argument("--dedup-window", type=int, default=None)
    p.add_argument("--hyphenation", choices=[x.value for x in HyphenationMode], default=None)
    p.add_argument("--table-tolerance", type=int, default=None)
    p.add_argument("--tokenizer", choices=[x.value for x in TokenizerKind], default=None)
    # Footer dropping follows the preset unless one of these is given.
    p.add_argument("--drop-footers", action="store_true", dest="drop_footers", default=None)
    p.add_argument("--keep-footers", action="store_false", dest="drop_footers")
    p.add_argument("--metrics", type=Path, default=None, help="Optional path for the full metrics JSON.")
    p.add_argument("--export-dir", type=Path, default=None, help="Optional directory for JSONL export.")
    p.add_argument("--doc-id", default=None, help="Export document id; defaults to the input file stem.")
    p.add_argument("--log-level", default="WARNING")
    return p


def _builder_from_args(args: argparse.Namespace) -> EncoderBuilder:
    b = EncoderBuilder(args.preset)
    if args.budget is not None:
        b.budget(args.budget)
    if args.dedup_window is not None:
        b.dedup_window(args.dedup_window)
    if args.hyphenation is not None:
        b.hyphenation(args.hyphenation)
    if args.table_tolerance is not None:
        b.table_tolerance(args.table_tolerance)
    if args.tokenizer is not None:
        b.tokenizer(args.tokenizer)
    if args.drop_footers is not None:
        b.drop_footers(args.drop_footers)
    return b


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING))

    try:
        encoder = _builder_from_args(args).build()
        pages = ingest_path(args.input, IngestConfig.for_encoder(encoder.config), data_root=args.data_root)
        source = args.input.as_posix()
        document, metrics = encoder.encode_pages(pages, source=source)
    except DcfError as e:
        logger.error("encoding failed: %s", e.message)
        print(json.dumps({"ok": False, "error": e.to_dict()}, sort_keys=True, separators=(",", ":"), ensure_ascii=False))
        return 2

    write_document_json(document=document, out_file=args.output)
    if args.metrics is not None:
        write_metrics_json(metrics=metrics, out_file=args.metrics)

    exported = None
    if args.export_dir is not None:
        doc_id = args.doc_id or args.input.stem
        with open_export_dir(args.export_dir) as writers:
            counts = export_document(
                document, doc_id, writers, alerts=metrics.alerts, tokenizer=encoder.config.tokenizer
            )
        exported = {"documents": counts.documents, "pages": counts.pages, "cells": counts.cells}

    input_file = args.data_root / args.input if args.data_root else args.input
    summary = {
        "ok": True,
        "source_sha256": sha256_file(input_file),
        "metrics": metrics.summary(),
        "dictionary_entries": metrics.dictionary_entries,
        "exported": exported,
    }
    print(json.dumps(summary, sort_keys=True, separators=(",", ":"), ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
