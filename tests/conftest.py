from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from PIL import Image
from reportlab.pdfgen import canvas as canvas_module

from config import PDF_PAGE_WIDTH, PDF_PAGE_HEIGHT
from models import FeeEntry, TemplateSettings, TreatmentItem, TreatmentPlan
from settings_store import SettingsStore


def make_blank_pdf(path, pages: int):
    """Background-only PDF (no text) so it never leaks lines into imports."""
    c = canvas_module.Canvas(str(path), pagesize=(PDF_PAGE_WIDTH, PDF_PAGE_HEIGHT), invariant=1)
    for i in range(pages):
        c.setFillColorRGB(0.95, 0.95 - i * 0.05, 0.95)
        c.rect(0, 0, PDF_PAGE_WIDTH, 100, stroke=0, fill=1)
        c.showPage()
    c.save()
    return path


@pytest.fixture
def template_pdfs(tmp_path):
    cover = make_blank_pdf(tmp_path / "TreatmentPlanBlank.pdf", 3)
    teams = {
        team: str(make_blank_pdf(tmp_path / f"{team}-team.pdf", 1))
        for team in ("essendon", "burwood", "mulgrave")
    }
    return str(cover), teams


@pytest.fixture
def settings(template_pdfs):
    cover, teams = template_pdfs
    return TemplateSettings.from_dict({"cover_pdf": cover, "team_pdfs": teams})


@pytest.fixture
def settings_store(tmp_path):
    return SettingsStore(tmp_path / "_app_settings.json")


@pytest.fixture
def doctor_photo(tmp_path):
    path = tmp_path / "doctor.png"
    Image.new("RGB", (120, 80), (200, 120, 90)).save(path)
    return str(path)


def item(code, description, tooth="", fees=((1, "0"),)):
    return TreatmentItem(
        item_code=code,
        description=description,
        tooth=tooth,
        fees=tuple(FeeEntry(q, Decimal(str(f))) for q, f in fees),
    )


@pytest.fixture
def sample_plan():
    return TreatmentPlan(
        patient_name="Mr John Citizen",
        doctor_name="Dr Jane Smith",
        location="essendon",
        date=date(2025, 3, 5),
        items=[
            item("311", "Direct restoration - one surface", "18", ((1, "180"),)),
            item("415", "Root canal treatment - Front tooth. Treatment to save an infected tooth.", "11", ((1, "850"),)),
            item("012", "Routine 6 Monthly Appointment", "", ((2, "140"),)),
            item("322", "Tooth extraction", "48", ((1, "220"), (1, "80"))),
        ],
    )
