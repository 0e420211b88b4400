# plan_layout.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Optional

from reportlab.pdfbase.pdfmetrics import stringWidth

from config import (
    CLINIC_BRAND, LOCATIONS, LOCATION_TO_TEAM,
    PDF_PAGE_WIDTH, PDF_PAGE_HEIGHT,
    TEMPLATE_COVER_PAGE, TEMPLATE_TABLE_PAGE, TEMPLATE_CONTINUATION_PAGE,
    FALLBACK_FONT_REGULAR, FALLBACK_FONT_BOLD,
    COLUMN_FRACTIONS, TABLE_HEADER_HEIGHT, TABLE_HEADER_FONT_SIZE,
    ROW_FONT_SIZE, ROW_LINE_HEIGHT, DESCRIPTION_PADDING, FEE_RIGHT_PADDING,
    TOTAL_BAND_HEIGHT, TOTAL_FONT_SIZE,
    COVER_INTRO_LINES, COVER_INTRO_FONT_SIZE, COVER_INTRO_Y,
    PHOTO_RING_WIDTH,
)
from models import TemplateSettings, TreatmentItem, TreatmentPlan
from utils import format_currency, format_unit_fee, to_ddmmyyyy

Measure = Callable[[str, str, float], float]


def default_measure(text: str, font: str, size: float) -> float:
    """Width in points using the registered font's glyph metrics."""
    return stringWidth(text, font, size)


# =========================================================
# Page description types
# =========================================================
@dataclass(frozen=True)
class FontSet:
    regular: str = FALLBACK_FONT_REGULAR
    bold: str = FALLBACK_FONT_BOLD


@dataclass(frozen=True)
class TextRun:
    text: str
    x: float
    y: float
    font: str
    size: float
    color: str = "dark_gray"


@dataclass(frozen=True)
class RectShape:
    x: float
    y: float
    width: float
    height: float
    fill: str


@dataclass(frozen=True)
class LineShape:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str = "border"
    width: float = 1


@dataclass(frozen=True)
class CircleShape:
    cx: float
    cy: float
    radius: float
    stroke: str
    width: float


@dataclass(frozen=True)
class PhotoPlacement:
    source: str
    x: float
    y: float
    size: float


@dataclass(frozen=True)
class ColumnLayout:
    x: float
    width: float
    item: float
    tooth: float
    description: float
    qty: float
    fee: float

    @property
    def boundaries(self) -> tuple:
        """Left edge of every column plus the table's right edge."""
        edges = [self.x]
        for w in (self.item, self.tooth, self.description, self.qty, self.fee):
            edges.append(edges[-1] + w)
        return tuple(edges)

    @property
    def description_x(self) -> float:
        return self.boundaries[2] + DESCRIPTION_PADDING

    @property
    def description_budget(self) -> float:
        return self.description - 2 * DESCRIPTION_PADDING


@dataclass(frozen=True)
class RowLayout:
    item_id: str
    top: float
    bottom: float
    code: str
    tooth: str
    description_lines: tuple
    fee_lines: tuple
    total: Decimal


@dataclass(frozen=True)
class PageLayout:
    kind: str                      # "cover" | "table" | "team"
    template_page: Optional[int]   # page index in the template PDF, None for team pages
    texts: tuple = ()
    rects: tuple = ()
    lines: tuple = ()
    circles: tuple = ()
    photo: Optional[PhotoPlacement] = None
    rows: tuple = ()
    columns: Optional[ColumnLayout] = None
    grand_total: Optional[Decimal] = None
    team: Optional[str] = None


# =========================================================
# Geometry helpers
# =========================================================
def column_layout(settings: TemplateSettings) -> ColumnLayout:
    table_x = settings.table_margin_x
    table_w = PDF_PAGE_WIDTH - settings.table_margin_x * 2
    return ColumnLayout(
        x=table_x,
        width=table_w,
        item=table_w * COLUMN_FRACTIONS["item"],
        tooth=table_w * COLUMN_FRACTIONS["tooth"],
        description=table_w * COLUMN_FRACTIONS["description"],
        qty=table_w * COLUMN_FRACTIONS["qty"],
        fee=table_w * COLUMN_FRACTIONS["fee"],
    )


def table_page_count(n_items: int, max_rows: int) -> int:
    return max(1, math.ceil(n_items / max_rows))


def paginate(items: list, max_rows: int) -> list:
    """Fixed capacity per page; always at least one (possibly empty) page."""
    pages = [items[i:i + max_rows] for i in range(0, len(items), max_rows)]
    return pages or [[]]


def preview_scale(width: float, height: float) -> float:
    """Uniform scale that fits the logical page into a preview surface."""
    return min(width / PDF_PAGE_WIDTH, height / PDF_PAGE_HEIGHT)


def _split_long_word(word: str, width: float, font: str, size: float, measure: Measure) -> list:
    if measure(word, font, size) <= width:
        return [word]
    pieces = []
    current = ""
    for ch in word:
        if current and measure(current + ch, font, size) > width:
            pieces.append(current)
            current = ch
        else:
            current += ch
    if current:
        pieces.append(current)
    return pieces


def wrap_text(text: str, width: float, font: str, size: float, measure: Measure = default_measure) -> list:
    """
    Greedy word wrap on measured glyph widths. Explicit newlines are hard
    breaks; a word wider than the column is split between characters.
    """
    lines = []
    for paragraph in (text or "").splitlines():
        current = ""
        for word in paragraph.split():
            for piece in _split_long_word(word, width, font, size, measure):
                test = f"{current} {piece}" if current else piece
                if measure(test, font, size) <= width:
                    current = test
                else:
                    if current:
                        lines.append(current)
                    current = piece
        if current:
            lines.append(current)
    return lines


def fee_line_texts(item: TreatmentItem) -> list:
    multiple = len(item.fees) > 1
    out = []
    for f in item.fees:
        if multiple or f.quantity > 1:
            out.append(f"{f.quantity} x {format_unit_fee(f.unit_fee)}")
        else:
            out.append(f"{f.quantity}")
    return out


def _stacked_start_y(row_bottom: float, row_height: float, n_lines: int) -> float:
    # First baseline of a block of n lines centred vertically in the row
    return row_bottom + (row_height + n_lines * ROW_LINE_HEIGHT) / 2 - ROW_LINE_HEIGHT + 2


def _centered_x(text: str, left: float, width: float, font: str, size: float, measure: Measure) -> float:
    return left + width / 2 - measure(text, font, size) / 2


# =========================================================
# Pages
# =========================================================
def _cover_page(plan: TreatmentPlan, settings: TemplateSettings, fonts: FontSet, measure: Measure) -> PageLayout:
    texts = []
    rects = []
    circles = []
    photo = None

    for line, y in zip(COVER_INTRO_LINES, COVER_INTRO_Y):
        w = measure(line, fonts.regular, COVER_INTRO_FONT_SIZE)
        texts.append(TextRun(line, (PDF_PAGE_WIDTH - w) / 2, y, fonts.regular, COVER_INTRO_FONT_SIZE))

    if plan.patient_name:
        size = settings.patient_name_font_size
        w = measure(plan.patient_name, fonts.bold, size)
        pos = settings.patient_name_position
        texts.append(TextRun(plan.patient_name, pos.x - w / 2, pos.y, fonts.bold, size, "sia_purple"))

    if plan.doctor_photo:
        pp = settings.doctor_photo_position
        # White mask over any photo printed on the template background
        rects.append(RectShape(pp.x - 5, pp.y - 5, pp.size + 14, pp.size + 14, "white"))
        photo = PhotoPlacement(plan.doctor_photo, pp.x, pp.y, pp.size)
        circles.append(CircleShape(pp.x + pp.size / 2, pp.y + pp.size / 2, pp.size / 2, "sia_teal", PHOTO_RING_WIDTH))

    if plan.doctor_name:
        pos = settings.doctor_name_position
        texts.append(TextRun(plan.doctor_name, pos.x, pos.y, fonts.bold, settings.doctor_name_font_size, "black"))

    return PageLayout(
        kind="cover",
        template_page=TEMPLATE_COVER_PAGE,
        texts=tuple(texts),
        rects=tuple(rects),
        circles=tuple(circles),
        photo=photo,
    )


def _row(item: TreatmentItem, top: float, settings: TemplateSettings, cols: ColumnLayout,
         fonts: FontSet, measure: Measure, texts: list, lines: list) -> RowLayout:
    row_h = settings.row_height
    bottom = top - row_h
    edges = cols.boundaries
    font, size = fonts.regular, ROW_FONT_SIZE

    for x in edges:
        lines.append(LineShape(x, top, x, bottom))
    lines.append(LineShape(cols.x, bottom, cols.x + cols.width, bottom))

    desc_lines = wrap_text(item.description, cols.description_budget, font, size, measure)
    fee_lines = fee_line_texts(item)
    # Code, tooth, total and the first description and fee lines share one baseline
    first_y = _stacked_start_y(bottom, row_h, max(len(desc_lines), len(fee_lines)))

    code = item.item_code.strip()
    tooth = item.tooth.strip()
    if code:
        texts.append(TextRun(code, _centered_x(code, edges[0], cols.item, font, size, measure), first_y, font, size))
    if tooth:
        texts.append(TextRun(tooth, _centered_x(tooth, edges[1], cols.tooth, font, size, measure), first_y, font, size))

    y = first_y
    for line in desc_lines:
        texts.append(TextRun(line, cols.description_x, y, font, size))
        y -= ROW_LINE_HEIGHT

    y = first_y
    for line in fee_lines:
        texts.append(TextRun(line, _centered_x(line, edges[3], cols.qty, font, size, measure), y, font, size))
        y -= ROW_LINE_HEIGHT

    total_text = format_currency(item.total_fee)
    total_x = cols.x + cols.width - measure(total_text, font, size) - FEE_RIGHT_PADDING
    texts.append(TextRun(total_text, total_x, first_y, font, size))

    return RowLayout(
        item_id=item.id,
        top=top,
        bottom=bottom,
        code=code,
        tooth=tooth,
        description_lines=tuple(desc_lines),
        fee_lines=tuple(fee_lines),
        total=item.total_fee,
    )


def _brand_line(location: str) -> str:
    details = LOCATIONS.get(location, {})
    parts = [f"{CLINIC_BRAND} {details.get('name', location.title())}"]
    parts += [details.get(k, "") for k in ("website", "phone", "address") if details.get(k)]
    return "  |  ".join(parts)


def _table_page(plan: TreatmentPlan, page_items: list, page_index: int, is_last: bool,
                settings: TemplateSettings, fonts: FontSet, measure: Measure) -> PageLayout:
    cols = column_layout(settings)
    texts = []
    rects = []
    lines = []
    rows = []
    current_y = settings.table_start_y

    if page_index == 0:
        meta_size = 14
        if plan.doctor_name:
            texts.append(TextRun(f"Plan by: {plan.doctor_name}", cols.x, current_y + 60, fonts.regular, meta_size))
        texts.append(TextRun(f"Date Created: {to_ddmmyyyy(plan.date)}", cols.x, current_y + 36, fonts.regular, meta_size))

    # Header bar
    rects.append(RectShape(cols.x, current_y - TABLE_HEADER_HEIGHT, cols.width, TABLE_HEADER_HEIGHT, "header_bg"))
    header_y = current_y - 28
    widths = (cols.item, cols.tooth, cols.description, cols.qty, cols.fee)
    for label, left, w in zip(("Item", "Tooth", "Description", "Qty", "Fee"), cols.boundaries, widths):
        x = _centered_x(label, left, w, fonts.bold, TABLE_HEADER_FONT_SIZE, measure)
        texts.append(TextRun(label, x, header_y, fonts.bold, TABLE_HEADER_FONT_SIZE, "white"))
    current_y -= TABLE_HEADER_HEIGHT

    for item in page_items:
        rows.append(_row(item, current_y, settings, cols, fonts, measure, texts, lines))
        current_y -= settings.row_height

    grand_total = None
    if is_last:
        grand_total = plan.total_amount
        band_y = current_y - TOTAL_BAND_HEIGHT
        rects.append(RectShape(cols.x, band_y, cols.width, TOTAL_BAND_HEIGHT, "total_bg"))
        texts.append(TextRun("TOTAL AMOUNT:", cols.x + cols.width - 220, band_y + 15, fonts.bold, TOTAL_FONT_SIZE))
        total_text = format_currency(grand_total)
        total_x = cols.x + cols.width - measure(total_text, fonts.bold, TOTAL_FONT_SIZE) - FEE_RIGHT_PADDING
        texts.append(TextRun(total_text, total_x, band_y + 15, fonts.bold, TOTAL_FONT_SIZE))

    texts.append(TextRun(_brand_line(plan.location), cols.x, 40, fonts.regular, 10, "gray"))

    return PageLayout(
        kind="table",
        template_page=TEMPLATE_TABLE_PAGE if page_index == 0 else TEMPLATE_CONTINUATION_PAGE,
        texts=tuple(texts),
        rects=tuple(rects),
        lines=tuple(lines),
        rows=tuple(rows),
        columns=cols,
        grand_total=grand_total,
    )


def layout_treatment_plan(plan: TreatmentPlan, settings: TemplateSettings,
                          fonts: FontSet | None = None, measure: Measure | None = None) -> list:
    """
    Map a plan onto page descriptions: cover, one or more table pages,
    then the location's team page. Pure and deterministic.
    """
    fonts = fonts or FontSet()
    measure = measure or default_measure

    pages = [_cover_page(plan, settings, fonts, measure)]

    chunks = paginate(plan.renderable_items(), settings.max_rows_per_page)
    for idx, chunk in enumerate(chunks):
        pages.append(_table_page(plan, chunk, idx, idx == len(chunks) - 1, settings, fonts, measure))

    pages.append(PageLayout(kind="team", template_page=None, team=LOCATION_TO_TEAM[plan.location]))
    return pages
