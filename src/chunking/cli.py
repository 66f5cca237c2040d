from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from contracts.errors import DcfError
from encoder.artifacts import read_document_json
from encoder.tokens import TokenizerKind

from .artifacts import chunks_payload, write_chunks_json
from .chunker import Chunker
from .config import ChunkConfig, ChunkMode

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dcf-chunk",
        description="Window an encoded document JSON into retrieval chunks.",
    )
    p.add_argument("--input", required=True, type=Path, help="Encoded document JSON (from dcf-encode).")
    p.add_argument("--output", required=True, type=Path, help="Path to write the chunks JSON artifact.")
    p.add_argument("--doc-id", default=None, help="Chunk id prefix; defaults to the input file stem.")
    p.add_argument("--mode", choices=[m.value for m in ChunkMode], default=ChunkMode.TOKENS.value)
    p.add_argument("--cells-per-chunk", type=int, default=200)
    p.add_argument("--overlap-cells", type=int, default=20)
    p.add_argument("--max-tokens", type=int, default=512)
    p.add_argument("--overlap-tokens", type=int, default=64)
    p.add_argument("--tokenizer", choices=[k.value for k in TokenizerKind], default=TokenizerKind.CHAR_RATIO.value)
    p.add_argument("--with-text", action="store_true", default=False, help="Embed resolved chunk text.")
    p.add_argument("--log-level", default="WARNING")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING))

    doc_id = args.doc_id or args.input.stem
    try:
        cfg = ChunkConfig(
            mode=ChunkMode(args.mode),
            cells_per_chunk=args.cells_per_chunk,
            overlap_cells=args.overlap_cells,
            max_tokens=args.max_tokens,
            overlap_tokens=args.overlap_tokens,
            tokenizer=TokenizerKind(args.tokenizer),
        )
        document = read_document_json(args.input)
        chunks = Chunker(cfg).chunk(document, doc_id=doc_id)
    except DcfError as e:
        logger.error("chunking failed: %s", e.message)
        print(json.dumps({"ok": False, "error": e.to_dict()}, sort_keys=True, separators=(",", ":"), ensure_ascii=False))
        return 2

    payload = chunks_payload(document=document, chunks=chunks, doc_id=doc_id, config=cfg, include_text=args.with_text)
    write_chunks_json(payload=payload, out_file=args.output)

    summary = {
        "ok": True,
        "doc_id": doc_id,
        "cells": len(document.cells),
        "chunks": len(chunks),
        "max_chunk_tokens": max((c.token_count for c in chunks), default=0),
    }
    print(json.dumps(summary, sort_keys=True, separators=(",", ":"), ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
