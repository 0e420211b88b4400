import base64
import io

import pytest
from pypdf import PdfReader

from errors import TemplateAssetError
from models import TemplateSettings, TreatmentPlan
from pdf_text import extract_lines
from plan_layout import FontSet
from plan_parser import parse_treatment_plan_pdf
from plan_pdf import circular_crop, generate_treatment_plan_pdf, load_fonts, write_treatment_plan_pdf
from tests.conftest import item, make_blank_pdf


def _page_count(pdf_bytes: bytes) -> int:
    return len(PdfReader(io.BytesIO(pdf_bytes)).pages)


def _plan(n_items: int, **kwargs) -> TreatmentPlan:
    return TreatmentPlan(
        patient_name="Mr John Citizen",
        doctor_name="Dr Jane Smith",
        items=[item("311", f"Filling {i}", "18", ((1, "100"),)) for i in range(n_items)],
        **kwargs,
    )


@pytest.mark.parametrize("n_items, expected_pages", [(0, 3), (4, 3), (5, 3), (6, 4), (12, 5)])
def test_page_count_is_cover_tables_and_team(settings, n_items, expected_pages):
    pdf = generate_treatment_plan_pdf(_plan(n_items), settings, FontSet())
    assert pdf.startswith(b"%PDF-")
    assert _page_count(pdf) == expected_pages


def test_multi_page_team_pdf_is_appended_whole(tmp_path, settings):
    team = make_blank_pdf(tmp_path / "big-team.pdf", 3)
    settings = TemplateSettings.from_dict({**settings.to_dict(), "team_pdfs": {"essendon": str(team)}})
    assert _page_count(generate_treatment_plan_pdf(_plan(1), settings, FontSet())) == 5


def test_missing_template_raises(settings, tmp_path):
    settings = TemplateSettings.from_dict({**settings.to_dict(), "cover_pdf": str(tmp_path / "gone.pdf")})
    with pytest.raises(TemplateAssetError) as exc:
        generate_treatment_plan_pdf(_plan(1), settings, FontSet())
    assert exc.value.field == "template"


def test_missing_team_pdf_raises(settings, tmp_path):
    settings = TemplateSettings.from_dict({**settings.to_dict(), "team_pdfs": {"essendon": str(tmp_path / "gone.pdf")}})
    with pytest.raises(TemplateAssetError) as exc:
        generate_treatment_plan_pdf(_plan(1), settings, FontSet())
    assert exc.value.field == "team:essendon"


def test_template_too_short_for_continuation_pages(settings, tmp_path):
    short = make_blank_pdf(tmp_path / "short.pdf", 2)
    settings = TemplateSettings.from_dict({**settings.to_dict(), "cover_pdf": str(short)})

    assert _page_count(generate_treatment_plan_pdf(_plan(5), settings, FontSet())) == 3
    with pytest.raises(TemplateAssetError):
        generate_treatment_plan_pdf(_plan(6), settings, FontSet())


def test_doctor_photo_is_embedded(settings, doctor_photo):
    pdf = generate_treatment_plan_pdf(_plan(1, doctor_photo=doctor_photo), settings, FontSet())
    assert _page_count(pdf) == 3


def test_data_uri_photo_is_accepted(settings, doctor_photo):
    with open(doctor_photo, "rb") as f:
        uri = "data:image/png;base64," + base64.b64encode(f.read()).decode("ascii")
    pdf = generate_treatment_plan_pdf(_plan(1, doctor_photo=uri), settings, FontSet())
    assert _page_count(pdf) == 3


def test_unreadable_photo_is_skipped(settings, tmp_path):
    pdf = generate_treatment_plan_pdf(_plan(1, doctor_photo=str(tmp_path / "nope.png")), settings, FontSet())
    assert _page_count(pdf) == 3


def test_circular_crop(doctor_photo):
    img = circular_crop(doctor_photo)
    assert img.mode == "RGBA"
    assert img.size == (80, 80)
    assert img.getpixel((0, 0))[3] == 0
    assert img.getpixel((40, 40))[3] == 255


def test_write_uses_given_path(settings, tmp_path, monkeypatch):
    monkeypatch.setattr("plan_pdf.load_fonts", lambda: FontSet())
    target = write_treatment_plan_pdf(_plan(2), settings, tmp_path / "out.pdf")
    assert target == tmp_path / "out.pdf"
    assert _page_count(target.read_bytes()) == 3


def test_rendered_pdf_text_is_extractable(settings, sample_plan):
    pdf = generate_treatment_plan_pdf(sample_plan, settings, FontSet())
    text = "\n".join(extract_lines(pdf))
    assert "Mr John Citizen" in text
    assert "TOTAL AMOUNT:" in text

    result = parse_treatment_plan_pdf(pdf, filename="plan.pdf")
    assert result.success


def test_missing_font_files_fall_back_to_helvetica(tmp_path):
    fonts = load_fonts(str(tmp_path / "Nunito-Regular.ttf"), str(tmp_path / "Nunito-Bold.ttf"))
    assert fonts == FontSet("Helvetica", "Helvetica-Bold")


def test_corrupt_font_file_falls_back_to_helvetica(tmp_path):
    broken = tmp_path / "broken.ttf"
    broken.write_bytes(b"this is not a truetype font")
    assert load_fonts(str(broken), str(broken)) == FontSet("Helvetica", "Helvetica-Bold")
