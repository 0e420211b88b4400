import math
from decimal import Decimal

import pytest

from config import ROW_FONT_SIZE
from models import TemplateSettings, TreatmentItem, TreatmentPlan
from plan_layout import (
    FontSet, column_layout, default_measure, fee_line_texts, layout_treatment_plan,
    paginate, preview_scale, table_page_count, wrap_text,
)
from tests.conftest import item

FONT = "Helvetica"


def _plan_with(n_items: int) -> TreatmentPlan:
    return TreatmentPlan(
        patient_name="Mr John Citizen",
        doctor_name="Dr Jane Smith",
        items=[item("311", f"Filling number {i}", "18", ((1, "100"),)) for i in range(n_items)],
    )


def _texts(page):
    return [t.text for t in page.texts]


# ---------------- pagination ----------------
@pytest.mark.parametrize("n, m", [(0, 5), (1, 5), (5, 5), (6, 5), (11, 5), (3, 1), (7, 3)])
def test_table_page_count(n, m):
    assert table_page_count(n, m) == max(1, math.ceil(n / m))
    assert len(paginate(list(range(n)), m)) == table_page_count(n, m)


def test_pagination_keeps_order_and_capacity():
    pages = paginate(list(range(12)), 5)
    assert [len(p) for p in pages] == [5, 5, 2]
    assert [x for p in pages for x in p] == list(range(12))


@pytest.mark.parametrize("n", [0, 1, 5, 6, 12])
def test_document_page_sequence(n):
    settings = TemplateSettings.defaults()
    pages = layout_treatment_plan(_plan_with(n), settings)

    assert pages[0].kind == "cover"
    assert pages[-1].kind == "team"
    tables = [p for p in pages if p.kind == "table"]
    assert len(tables) == table_page_count(n, settings.max_rows_per_page)
    assert sum(len(p.rows) for p in tables) == n


def test_template_page_roles():
    pages = layout_treatment_plan(_plan_with(12), TemplateSettings.defaults())
    assert [p.template_page for p in pages] == [0, 1, 2, 2, None]
    assert pages[-1].team == "essendon"


def test_grand_total_only_on_last_table_page():
    plan = _plan_with(12)
    tables = [p for p in layout_treatment_plan(plan, TemplateSettings.defaults()) if p.kind == "table"]

    assert [p.grand_total is not None for p in tables] == [False, False, True]
    assert tables[-1].grand_total == plan.total_amount == Decimal("1200")
    assert "TOTAL AMOUNT:" in _texts(tables[-1])
    assert "$1,200.00" in _texts(tables[-1])
    assert "TOTAL AMOUNT:" not in _texts(tables[0])


def test_empty_plan_still_has_one_table_page_with_total():
    pages = layout_treatment_plan(TreatmentPlan(), TemplateSettings.defaults())
    tables = [p for p in pages if p.kind == "table"]
    assert len(tables) == 1
    assert tables[0].rows == ()
    assert tables[0].grand_total == Decimal("0")


def test_blank_items_are_not_rendered():
    plan = TreatmentPlan(items=[item("311", "Filling"), TreatmentItem(), item("", "Review appointment")])
    tables = [p for p in layout_treatment_plan(plan, TemplateSettings.defaults()) if p.kind == "table"]
    assert [r.code for r in tables[0].rows] == ["311", ""]


def test_metadata_lines_only_on_first_table_page():
    pages = layout_treatment_plan(_plan_with(6), TemplateSettings.defaults())
    first, second = pages[1], pages[2]
    assert "Plan by: Dr Jane Smith" in _texts(first)
    assert any(t.startswith("Date Created: ") for t in _texts(first))
    assert not any(t.startswith("Plan by") for t in _texts(second))


def test_brand_footer_on_every_table_page():
    pages = layout_treatment_plan(_plan_with(6), TemplateSettings.defaults())
    for page in pages[1:-1]:
        assert any(t.startswith("SIA Dental Essendon") for t in _texts(page))


def test_layout_is_deterministic(sample_plan):
    settings = TemplateSettings.defaults()
    assert layout_treatment_plan(sample_plan, settings) == layout_treatment_plan(sample_plan, settings)


def test_row_geometry_follows_settings():
    settings = TemplateSettings.from_dict({"row_height": 80, "table_start_y": 1000})
    table = layout_treatment_plan(_plan_with(3), settings)[1]
    tops = [r.top for r in table.rows]
    assert tops[0] == 1000 - 45
    assert [a - b for a, b in zip(tops, tops[1:])] == [80, 80]
    assert all(r.top - r.bottom == 80 for r in table.rows)


# ---------------- cover ----------------
def test_cover_without_photo_has_no_image_or_ring(sample_plan):
    cover = layout_treatment_plan(sample_plan, TemplateSettings.defaults())[0]
    assert cover.photo is None
    assert cover.circles == ()
    assert "Mr John Citizen" in _texts(cover)
    assert "Dr Jane Smith" in _texts(cover)


def test_cover_photo_is_masked_and_ringed(sample_plan):
    sample_plan.doctor_photo = "photo.png"
    settings = TemplateSettings.defaults()
    cover = layout_treatment_plan(sample_plan, settings)[0]

    pp = settings.doctor_photo_position
    assert cover.photo.source == "photo.png"
    assert (cover.photo.x, cover.photo.y, cover.photo.size) == (pp.x, pp.y, pp.size)
    assert [r.fill for r in cover.rects] == ["white"]
    ring = cover.circles[0]
    assert (ring.cx, ring.cy, ring.radius) == (pp.x + pp.size / 2, pp.y + pp.size / 2, pp.size / 2)


def test_patient_name_is_centred_on_position(sample_plan):
    settings = TemplateSettings.defaults()
    cover = layout_treatment_plan(sample_plan, settings, FontSet())[0]
    run = next(t for t in cover.texts if t.text == sample_plan.patient_name)
    width = default_measure(run.text, run.font, run.size)
    assert run.x + width / 2 == pytest.approx(settings.patient_name_position.x)


# ---------------- text wrapping ----------------
LONG_TEXT = (
    "Crown - Looking for the most durability & protection for your tooth long term? A crown is the "
    "best option here, a solid cap tailor fitted to your existing tooth usually from porcelain."
)


@pytest.mark.parametrize("width", [60, 120, 250, 349])
def test_wrapped_lines_fit_and_keep_words(width):
    lines = wrap_text(LONG_TEXT, width, FONT, ROW_FONT_SIZE)
    assert all(default_measure(ln, FONT, ROW_FONT_SIZE) <= width for ln in lines)
    assert " ".join(lines) == " ".join(LONG_TEXT.split())


def test_explicit_newlines_are_hard_breaks():
    assert wrap_text("Line one\nLine two", 500, FONT, ROW_FONT_SIZE) == ["Line one", "Line two"]


def test_overlong_word_is_split():
    lines = wrap_text("Supercalifragilisticexpialidocious", 40, FONT, ROW_FONT_SIZE)
    assert len(lines) > 1
    assert "".join(lines) == "Supercalifragilisticexpialidocious"
    assert all(default_measure(ln, FONT, ROW_FONT_SIZE) <= 40 for ln in lines)


def test_empty_text_wraps_to_nothing():
    assert wrap_text("", 100, FONT, ROW_FONT_SIZE) == []


# ---------------- helpers ----------------
def test_fee_line_texts():
    assert fee_line_texts(item("011", "Exam", fees=((1, "80"),))) == ["1"]
    assert fee_line_texts(item("012", "Routine", fees=((2, "140"),))) == ["2 x $140"]
    assert fee_line_texts(item("322", "Extraction", fees=((1, "1350"), (1, "92.5")))) == ["1 x $1350", "1 x $92.50"]


def test_column_boundaries_span_table():
    cols = column_layout(TemplateSettings.defaults())
    edges = cols.boundaries
    assert edges[0] == 40
    assert edges[-1] == pytest.approx(770)
    assert list(edges) == sorted(edges)


def test_preview_scale_fits_page():
    assert preview_scale(405, 720) == pytest.approx(0.5)
    assert preview_scale(405, 2000) == pytest.approx(0.5)
    assert preview_scale(1000, 720) == pytest.approx(0.5)


def test_row_fields_share_the_first_baseline():
    long_desc = "Root canal treatment - Molar. Treatment to save an infected tooth over several visits."
    plan = TreatmentPlan(items=[
        item("416", long_desc, "36", ((1, "500"), (1, "550"), (1, "100"))),
        item("011", "Examination", "", ((1, "80"),)),
    ])
    table = layout_treatment_plan(plan, TemplateSettings.defaults(), FontSet())[1]
    row = table.rows[0]
    by_text = {t.text: t.y for t in table.texts}

    first_y = by_text["416"]
    assert by_text["36"] == first_y
    assert by_text["$1,150.00"] == first_y
    assert by_text[row.description_lines[0]] == first_y
    assert by_text[row.fee_lines[0]] == first_y
    assert row.bottom < first_y < row.top
