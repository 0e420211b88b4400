# plan_pdf.py
from __future__ import annotations

import base64
import binascii
import io
import logging
from functools import lru_cache
from pathlib import Path

from PIL import Image, ImageDraw, UnidentifiedImageError
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont, TTFError
from reportlab.pdfgen import canvas as canvas_module

from config import COLORS, FONT_REGULAR_PATH, FONT_BOLD_PATH, PDF_PAGE_WIDTH, PDF_PAGE_HEIGHT
from errors import TemplateAssetError
from models import TemplateSettings, TreatmentPlan
from paths import exports_dir
from plan_layout import FontSet, PageLayout, layout_treatment_plan
from utils import plan_filename

logger = logging.getLogger(__name__)


# =========================================================
# Assets
# =========================================================
@lru_cache(maxsize=None)
def load_fonts(regular_path: str = str(FONT_REGULAR_PATH), bold_path: str = str(FONT_BOLD_PATH)) -> FontSet:
    """
    Register the brand fonts with reportlab. Missing or broken font files
    are not fatal: the built-in Helvetica family is used instead.
    """
    try:
        pdfmetrics.registerFont(TTFont("Nunito", regular_path))
        pdfmetrics.registerFont(TTFont("Nunito-Bold", bold_path))
    except (OSError, TTFError) as e:
        logger.warning("Failed to load Nunito fonts, falling back to Helvetica: %s", e)
        return FontSet()
    return FontSet("Nunito", "Nunito-Bold")


def _read_asset(path: str, field: str) -> bytes:
    if not path:
        raise TemplateAssetError(field, "No template PDF configured")
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise TemplateAssetError(field, f"Failed to load PDF: {path} ({e})") from e


def _open_pdf(data: bytes, field: str, path: str) -> PdfReader:
    try:
        return PdfReader(io.BytesIO(data))
    except (PdfReadError, ValueError) as e:
        raise TemplateAssetError(field, f"Not a readable PDF: {path} ({e})") from e


def _open_image(source: str) -> Image.Image:
    if source.startswith("data:"):
        _, _, payload = source.partition(",")
        return Image.open(io.BytesIO(base64.b64decode(payload, validate=True)))
    return Image.open(source)


def circular_crop(source: str) -> Image.Image:
    """Centre-crop to a square and clip to a circle (transparent corners)."""
    with _open_image(source) as img:
        img = img.convert("RGBA")
    size = min(img.size)
    left = (img.width - size) // 2
    top = (img.height - size) // 2
    img = img.crop((left, top, left + size, top + size))

    mask = Image.new("L", (size, size), 0)
    ImageDraw.Draw(mask).ellipse((0, 0, size - 1, size - 1), fill=255)
    img.putalpha(mask)
    return img


# =========================================================
# Drawing
# =========================================================
def _fill(c, color: str):
    c.setFillColorRGB(*COLORS[color])


def _stroke(c, color: str):
    c.setStrokeColorRGB(*COLORS[color])


def _draw_page(c, page: PageLayout):
    photo_img = None
    if page.photo is not None:
        try:
            photo_img = ImageReader(circular_crop(page.photo.source))
        except (OSError, ValueError, binascii.Error, UnidentifiedImageError):
            logger.exception("Failed to embed doctor photo %s", page.photo.source[:80])

    c.saveState()
    for r in page.rects:
        _fill(c, r.fill)
        c.rect(r.x, r.y, r.width, r.height, stroke=0, fill=1)

    if photo_img is not None:
        p = page.photo
        c.drawImage(photo_img, p.x, p.y, width=p.size, height=p.size, mask="auto")
        for circle in page.circles:
            _stroke(c, circle.stroke)
            c.setLineWidth(circle.width)
            c.circle(circle.cx, circle.cy, circle.radius, stroke=1, fill=0)

    for ln in page.lines:
        _stroke(c, ln.color)
        c.setLineWidth(ln.width)
        c.line(ln.x1, ln.y1, ln.x2, ln.y2)

    for t in page.texts:
        c.setFont(t.font, t.size)
        _fill(c, t.color)
        c.drawString(t.x, t.y, t.text)
    c.restoreState()


def render_overlay(pages: list) -> bytes:
    """One overlay page per drawn layout page (team pages are copied, not drawn)."""
    buf = io.BytesIO()
    c = canvas_module.Canvas(buf, pagesize=(PDF_PAGE_WIDTH, PDF_PAGE_HEIGHT), invariant=1)
    for page in pages:
        _draw_page(c, page)
        c.showPage()
    c.save()
    return buf.getvalue()


# =========================================================
# Main builder
# =========================================================
def generate_treatment_plan_pdf(plan: TreatmentPlan, settings: TemplateSettings,
                                fonts: FontSet | None = None) -> bytes:
    """
    Cover + treatment table pages drawn over the template PDF, followed by
    the location's team PDF copied verbatim.
    Raises TemplateAssetError when a template/team PDF is missing or the
    template has fewer pages than the page roles need.
    """
    fonts = fonts or load_fonts()
    pages = layout_treatment_plan(plan, settings, fonts)
    drawn = [p for p in pages if p.kind != "team"]

    template_bytes = _read_asset(settings.cover_pdf, "template")
    template_count = len(_open_pdf(template_bytes, "template", settings.cover_pdf).pages)
    needed = max(p.template_page for p in drawn) + 1
    if template_count < needed:
        raise TemplateAssetError(
            "template",
            f"Template PDF {settings.cover_pdf} has {template_count} page(s); this plan needs {needed}",
        )

    team_bytes = {}
    for page in pages:
        if page.kind == "team":
            team_path = settings.team_pdfs.get(page.team, "")
            team_bytes[page.team] = _read_asset(team_path, f"team:{page.team}")

    overlay = PdfReader(io.BytesIO(render_overlay(drawn)))
    writer = PdfWriter()

    overlay_index = 0
    for page in pages:
        if page.kind == "team":
            team_reader = _open_pdf(team_bytes[page.team], f"team:{page.team}", settings.team_pdfs[page.team])
            if not team_reader.pages:
                raise TemplateAssetError(f"team:{page.team}", "Team PDF has no pages")
            for team_page in team_reader.pages:
                writer.add_page(team_page)
            continue

        # Fresh reader per page so repeated continuation backgrounds are separate objects
        template = PdfReader(io.BytesIO(template_bytes))
        writer.add_page(template.pages[page.template_page])
        writer.pages[-1].merge_page(overlay.pages[overlay_index])
        overlay_index += 1

    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()


def write_treatment_plan_pdf(plan: TreatmentPlan, settings: TemplateSettings, path: str | Path | None = None) -> Path:
    target = Path(path) if path is not None else exports_dir() / plan_filename(plan.patient_name, plan.date)
    target.write_bytes(generate_treatment_plan_pdf(plan, settings))
    logger.info("Treatment plan written to %s", target)
    return target
