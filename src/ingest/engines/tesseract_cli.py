from __future__ import annotations

import csv
import subprocess
from collections import defaultdict
from pathlib import Path

from contracts.errors import UnsupportedInput
from contracts.raw import BBox, RawPage, RawUnit

from ..contracts import IngestConfig
from .base import IngestEngine

LineKey = tuple[int, int, int]  # (block_num, par_num, line_num)


def _int(row: dict[str, str], key: str, default: str = "0") -> int:
    return int(row.get(key, "") or default)


def parse_tsv(tsv: str, config: IngestConfig) -> list[RawPage]:
    """
    Group word-level TSV rows into one unit per OCR line.

    Level meanings: 1=page, 2=block, 3=para, 4=line, 5=word. Page geometry
    comes from the level-1 rows; lines keep tesseract's structural order.
    """

    page_dims: dict[int, tuple[int, int]] = {}
    lines: dict[int, dict[LineKey, list[tuple[int, str, BBox]]]] = defaultdict(lambda: defaultdict(list))

    for row in csv.DictReader(tsv.splitlines(), delimiter="\t", quoting=csv.QUOTE_NONE):
        try:
            level = _int(row, "level")
            page_num = _int(row, "page_num", "1")
            left, top = _int(row, "left"), _int(row, "top")
            width, height = _int(row, "width"), _int(row, "height")
        except ValueError:
            # Malformed geometry rows are dropped.
            continue

        if level == 1:
            page_dims[page_num] = (width, height)
            continue
        if level != 5:
            continue

        text = row.get("text") or ""
        if text.strip() == "":
            continue
        try:
            conf = float(row.get("conf") or "-1")
        except ValueError:
            conf = -1.0
        if conf >= 0 and conf / 100.0 < config.confidence_floor:
            continue

        try:
            key = (_int(row, "block_num"), _int(row, "par_num"), _int(row, "line_num"))
            word_num = _int(row, "word_num")
        except ValueError:
            continue
        lines[page_num][key].append((word_num, text, BBox(x=left, y=top, w=width, h=height)))

    pages: list[RawPage] = []
    for page_num in sorted(set(page_dims) | set(lines)):
        units: list[RawUnit] = []
        for key in sorted(lines[page_num]):
            words = sorted(lines[page_num][key], key=lambda w: w[0])
            bbox = words[0][2]
            for _, _, b in words[1:]:
                bbox = bbox.union(b)
            units.append(RawUnit(text=" ".join(t for _, t, _ in words), bbox=bbox, z=page_num))
        width, height = page_dims.get(page_num, (config.page_width_px, config.page_height_px))
        pages.append(RawPage(z=page_num, width_px=width, height_px=height, units=units))
    return pages


class TesseractCliEngine(IngestEngine):
    """
    OCR via the `tesseract` CLI, parsed from its TSV output.

    Backend failures (binary missing, timeout, non-zero exit) surface as
    UnsupportedInput with the cause chained.
    """

    def backend_id(self) -> str:
        return "tesseract"

    def command(self, *, image_file: Path, config: IngestConfig) -> list[str]:
        cmd = ["tesseract", str(image_file), "stdout", "-l", config.language]
        if config.psm is not None:
            cmd.extend(["--psm", str(config.psm)])
        cmd.append("tsv")
        return cmd

    def read_pages(self, *, path: Path, config: IngestConfig) -> list[RawPage]:
        cmd = self.command(image_file=path, config=config)
        try:
            proc = subprocess.run(cmd, check=False, capture_output=True, text=True, timeout=config.timeout_s)
        except FileNotFoundError as e:
            raise UnsupportedInput("tesseract binary not found on PATH", detail={"expected_command": "tesseract"}) from e
        except subprocess.TimeoutExpired as e:
            raise UnsupportedInput("OCR backend timed out", detail={"timeout_s": config.timeout_s}) from e

        if proc.returncode != 0:
            raise UnsupportedInput(
                "OCR backend returned a non-zero exit code",
                detail={"returncode": proc.returncode, "stderr": proc.stderr[-4000:]},
            )
        return parse_tsv(proc.stdout, config)
