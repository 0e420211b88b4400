# pdf_text.py
from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from pypdf import PdfReader

from config import LINE_Y_TOLERANCE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextRun:
    text: str
    x: float
    y: float


def _run_origin(cm, tm) -> tuple:
    # Text-space origin mapped through the current transformation matrix
    x = tm[4] * cm[0] + tm[5] * cm[2] + cm[4]
    y = tm[4] * cm[1] + tm[5] * cm[3] + cm[5]
    return x, y


def extract_text_runs(pdf_bytes: bytes) -> list:
    """
    Positioned text runs per page (baseline origin in page space).
    Raises pypdf's PdfReadError for unreadable input.
    """
    reader = PdfReader(io.BytesIO(pdf_bytes))
    pages = []
    for page in reader.pages:
        runs = []

        def visitor(text, cm, tm, font_dict, font_size, runs=runs):
            for part in (text or "").splitlines():
                if part.strip():
                    x, y = _run_origin(cm, tm)
                    runs.append(TextRun(part, x, y))

        page.extract_text(visitor_text=visitor)
        pages.append(runs)
    return pages


def group_runs_into_lines(runs, tolerance: float = LINE_Y_TOLERANCE) -> list:
    """
    Rebuild visual lines from one page's runs: top of page first, a run joins
    the current line while its baseline is within `tolerance` of the line's
    Y, which is the baseline of the run that started it; text is joined left
    to right.
    """
    ordered = sorted((r for r in runs if (r.text or "").strip()), key=lambda r: (-r.y, r.x))

    lines = []
    current = []
    current_y = None
    for run in ordered:
        if current_y is None or abs(run.y - current_y) > tolerance:
            if current:
                lines.append(current)
            current = [run]
            current_y = run.y
        else:
            current.append(run)
    if current:
        lines.append(current)

    out = []
    for line in lines:
        text = " ".join(r.text.strip() for r in sorted(line, key=lambda r: r.x)).strip()
        if text:
            out.append(text)
    return out


def extract_lines(pdf_bytes: bytes, tolerance: float = LINE_Y_TOLERANCE) -> list:
    """One flat list of lines for the whole document, pages in order."""
    lines = []
    for runs in extract_text_runs(pdf_bytes):
        lines.extend(group_runs_into_lines(runs, tolerance))
    logger.debug("Extracted %d text lines", len(lines))
    return lines
