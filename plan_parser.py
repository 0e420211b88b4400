# plan_parser.py
"""
Recover a treatment plan from the text lines of a rendered PDF.

Every field is recovered independently by an ordered list of named rules;
the first rule that yields a value wins. Missing fields never fail the
import, they add a warning. Only unusable input (not a PDF, unreadable,
no text at all) is a hard failure.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, Optional

from pypdf.errors import PyPdfError

from config import CLINIC_BRAND, LINE_Y_TOLERANCE, LOCATION_KEYS
from dentists import DentistDirectory
from errors import DocumentInputError, ParseIssue
from models import FeeEntry, TreatmentItem, TreatmentPlan
from pdf_text import extract_lines
from utils import today as _today

logger = logging.getLogger(__name__)

MSG_NOT_PDF = "Please upload a valid PDF file"
MSG_NO_TEXT = "Could not extract text from PDF. The file may be image-based or corrupted."

WARN_LOCATION = "Could not detect clinic location. Please select manually."
WARN_DOCTOR = "Could not detect doctor name. Please enter manually."
WARN_PATIENT = "Could not detect patient name. Please enter manually."
WARN_ITEMS = "No treatment items found. You may need to add them manually."


# =========================================================
# Result types
# =========================================================
@dataclass
class ParsedTreatmentPlan:
    patient_name: str = ""
    doctor_name: str = ""
    doctor_photo: Optional[str] = None
    location: Optional[str] = None
    date: date = field(default_factory=_today)
    items: list = field(default_factory=list)

    @property
    def total_amount(self) -> Decimal:
        return sum((i.total_fee for i in self.items), Decimal("0"))

    def to_treatment_plan(self, fallback_location: str = "essendon") -> TreatmentPlan:
        return TreatmentPlan(
            patient_name=self.patient_name,
            doctor_name=self.doctor_name,
            location=self.location or fallback_location,
            date=self.date,
            doctor_photo=self.doctor_photo,
            items=list(self.items),
        )


@dataclass
class ParseResult:
    success: bool
    data: Optional[ParsedTreatmentPlan] = None
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    @classmethod
    def failure(cls, field_name: str, message: str) -> "ParseResult":
        logger.warning("Import failed (%s): %s", field_name, message)
        return cls(success=False, errors=[ParseIssue(field_name, message)])

    def raise_for_failure(self) -> None:
        if not self.success:
            issue = self.errors[0] if self.errors else ParseIssue("file", "Failed to parse PDF file")
            raise DocumentInputError(issue.field, issue.message)


# =========================================================
# Rule plumbing
# =========================================================
@dataclass
class ParseContext:
    lines: list
    plan_by_line: str = ""
    doctor_name: str = ""


@dataclass(frozen=True)
class FieldRule:
    name: str
    extract: Callable[[ParseContext], Optional[str]]


def first_match(rules, ctx: ParseContext):
    """Try rules in priority order; returns (value, rule name) or (None, None)."""
    for rule in rules:
        value = rule.extract(ctx)
        if value:
            return value, rule.name
    return None, None


# =========================================================
# Location
# =========================================================
def _location_from_brand_line(ctx: ParseContext) -> Optional[str]:
    brand = CLINIC_BRAND.lower()
    for line in ctx.lines:
        lower = line.lower()
        if brand not in lower:
            continue
        for loc in LOCATION_KEYS:
            if loc in lower:
                return loc
    return None


LOCATION_RULES = [FieldRule("brand_line", _location_from_brand_line)]


# =========================================================
# Doctor
# =========================================================
_RE_PLAN_BY = re.compile(r"Plan\s*by\b[:\s]*(.+)", re.IGNORECASE)
_RE_ORDINAL_DASH = re.compile(r"^\d+\s*[-–]\s*")
_RE_DEFAULT_PREFIX = re.compile(r"^Default\s*,\s*", re.IGNORECASE)


def find_plan_by_line(lines) -> str:
    for line in lines:
        if _RE_PLAN_BY.search(line):
            return line
    return ""


def _doctor_from_plan_by(ctx: ParseContext) -> Optional[str]:
    m = _RE_PLAN_BY.search(ctx.plan_by_line or "")
    if not m:
        return None
    # "1 - Default, Dr Provider" -> "Dr Provider"
    name = _RE_ORDINAL_DASH.sub("", m.group(1).strip())
    name = _RE_DEFAULT_PREFIX.sub("", name)
    return name.strip() or None


DOCTOR_RULES = [FieldRule("plan_by_label", _doctor_from_plan_by)]


# =========================================================
# Patient
# =========================================================
_RE_HONORIFIC_NAME = re.compile(r"\b(?:Mrs|Miss|Mr|Ms)\b\.?(?:\s+[A-Z][A-Za-z'\-]*){1,3}")
_RE_NAME_LABEL = re.compile(r"^\s*(?:Patient|Name)\s*:\s*(.+?)\s*$", re.IGNORECASE)
_RE_CAPITALIZED_WORDS = re.compile(r"[A-Z][A-Za-z'\-]*(?:\s+[A-Z][A-Za-z'\-]*){1,3}")

# Capitalised words that show up in the document's own boilerplate
PATIENT_NAME_DENYLIST = {
    "sia", "dental", "clinic", "essendon", "burwood", "mulgrave",
    "treatment", "plan", "date", "created", "item", "tooth", "description",
    "qty", "fee", "fees", "total", "amount", "page", "team", "our",
    "vic", "rd", "road", "hwy", "highway", "st", "street", "mt", "alexander",
    "dr", "doctor", "default", "patient", "name", "quote", "estimate",
}


def _overlaps_doctor(candidate: str, ctx: ParseContext) -> bool:
    c = candidate.lower()
    if ctx.plan_by_line and c in ctx.plan_by_line.lower():
        return True
    return bool(ctx.doctor_name) and (c in ctx.doctor_name.lower() or ctx.doctor_name.lower() in c)


def _patient_from_honorific(ctx: ParseContext) -> Optional[str]:
    for line in ctx.lines:
        m = _RE_HONORIFIC_NAME.search(line)
        if not m:
            continue
        candidate = m.group(0).strip()
        # The doctor's own honorific on the "Plan by" line is not the patient
        if ctx.plan_by_line and candidate in ctx.plan_by_line:
            continue
        return candidate
    return None


def _patient_from_label(ctx: ParseContext) -> Optional[str]:
    for line in ctx.lines:
        m = _RE_NAME_LABEL.match(line)
        if m and m.group(1).strip():
            return m.group(1).strip()
    return None


def _patient_from_capitalized_words(ctx: ParseContext) -> Optional[str]:
    for line in ctx.lines:
        candidate = line.strip()
        if not _RE_CAPITALIZED_WORDS.fullmatch(candidate):
            continue
        words = {w.lower().strip("'-") for w in candidate.split()}
        if words & PATIENT_NAME_DENYLIST:
            continue
        if _overlaps_doctor(candidate, ctx):
            continue
        return candidate
    return None


PATIENT_RULES = [
    FieldRule("honorific", _patient_from_honorific),
    FieldRule("label", _patient_from_label),
    FieldRule("capitalized_words", _patient_from_capitalized_words),
]


# =========================================================
# Date
# =========================================================
_RE_DATE_CREATED = re.compile(r"Date\s*Created[:\s]*(\d{1,2})/(\d{1,2})/(\d{4})", re.IGNORECASE)


def parse_date_created(lines) -> Optional[date]:
    for line in lines:
        m = _RE_DATE_CREATED.search(line)
        if not m:
            continue
        day, month, year = (int(g) for g in m.groups())
        try:
            return date(year, month, day)
        except ValueError:
            continue
    return None


# =========================================================
# Treatment items
# =========================================================
# Dollar amounts ("$140") and pieces of decimals are never codes
_RE_CODE_TOKEN = re.compile(r"(?<![$,.])\b\d{3}\b(?![.,]\d)")
_RE_DECIMAL = re.compile(r"(\d{1,3}(?:,\d{3})+|\d+)\.(\d{2})(?!\d)")
_RE_TOOTH_TOKEN = re.compile(r"(?<![\d$.,])(\d{2})(?!\d|[.,]\d)")
_RE_QTY_EXPR = re.compile(r"\b\d+\s*[x×]\s*\$?\s*\d[\d,]*(?:\.\d+)?", re.IGNORECASE)
_RE_NUMERIC = re.compile(r"\$?\s*\d[\d,]*(?:\.\d+)?")
_RE_EDGE_DASHES = re.compile(r"^[\s\-–]+|[\s\-–]+$")
_RE_THREE_LETTERS = re.compile(r"[A-Za-z]{3}")

# Table headers, totals, metadata and clinic address lines never hold items
ITEM_LINE_DENYLIST = [
    re.compile(r"^\s*item\b.*\b(?:description|qty|fee)\b", re.IGNORECASE),
    re.compile(r"\btotal\s*amount\b|\bsub\s*total\b|\bgrand\s*total\b", re.IGNORECASE),
    re.compile(r"date\s*created", re.IGNORECASE),
    re.compile(r"plan\s*by", re.IGNORECASE),
    re.compile(re.escape(CLINIC_BRAND), re.IGNORECASE),
    re.compile(r"\bVIC\s*\d{4}\b", re.IGNORECASE),
    re.compile(r"\(\d{2}\)\s*\d{4}\s*\d{4}"),
    re.compile(r"\b[\w\-]+\.com(?:\.au)?\b", re.IGNORECASE),
    re.compile(r"\b\d+(?:-\d+)?\s+(?:[A-Z][a-z]+\s+)+(?:Rd|Road|Hwy|Highway|St|Street|Ave|Avenue)\b"),
    re.compile(r"\bpage\s+\d+\s+of\s+\d+\b", re.IGNORECASE),
    re.compile(r"\bABN\b"),
    re.compile(r"a personalised|treatment plan for", re.IGNORECASE),
]

# A 3-digit token is always within range; the bounds only bite if the token pattern is widened
CODE_MIN = 11
CODE_MAX = 999

PERMANENT_TEETH = {f"{q}{n}" for q in range(1, 5) for n in range(1, 9)}
PRIMARY_TEETH = {f"{q}{n}" for q in range(5, 9) for n in range(1, 6)}


def decimal_integer_parts(lines) -> set:
    """
    Integer parts of every decimal amount in the document, including each
    thousands group, e.g. "1,350.00" -> {"1,350", "1350", "1", "350"}.
    """
    parts = set()
    for line in lines:
        for m in _RE_DECIMAL.finditer(line):
            whole = m.group(1)
            parts.add(whole)
            parts.add(whole.replace(",", ""))
            parts.update(whole.split(","))
    return parts


def is_item_line(line: str) -> bool:
    if not _RE_THREE_LETTERS.search(line):
        return False
    return not any(p.search(line) for p in ITEM_LINE_DENYLIST)


def is_tooth_number(token: str) -> bool:
    return token in PERMANENT_TEETH or token in PRIMARY_TEETH


def _code_candidates(line: str, seen: set, fee_parts: set) -> list:
    out = []
    for m in _RE_CODE_TOKEN.finditer(line):
        token = m.group(0)
        if token.startswith(("19", "20")):
            continue
        if not (CODE_MIN <= int(token) <= CODE_MAX):
            continue
        if token in seen or token in out:
            continue
        if token in fee_parts:
            continue
        out.append(token)
    return out


def _first_fee(line: str) -> Decimal:
    # "2 x $92.50" is a unit fee, the row total follows it
    m = _RE_DECIMAL.search(_RE_QTY_EXPR.sub(" ", line))
    if not m:
        return Decimal("0")
    return Decimal(f"{m.group(1).replace(',', '')}.{m.group(2)}")


def _tooth(line: str, code: str) -> str:
    for m in _RE_TOOTH_TOKEN.finditer(line):
        token = m.group(1)
        if token != code and is_tooth_number(token):
            return token
    return ""


def _description(line: str) -> str:
    s = _RE_QTY_EXPR.sub(" ", line)
    s = _RE_NUMERIC.sub(" ", s)
    s = " ".join(s.split())
    return _RE_EDGE_DASHES.sub("", s)


def parse_treatment_items(lines, warnings: list | None = None) -> list:
    fee_parts = decimal_integer_parts(lines)
    seen = set()
    items = []

    for line in lines:
        if not is_item_line(line):
            continue

        accepted = []
        for code in _code_candidates(line, seen, fee_parts):
            description = _description(line)
            if len(description) <= 3:
                continue
            items.append(TreatmentItem(
                item_code=code,
                description=description,
                tooth=_tooth(line, code),
                fees=(FeeEntry(1, _first_fee(line)),),
            ))
            seen.add(code)
            accepted.append(code)

        if len(accepted) > 1 and warnings is not None:
            warnings.append(
                f"Several possible item codes ({', '.join(accepted)}) on one line: \"{line}\". "
                "Please check the imported items."
            )
    return items


# =========================================================
# Entry points
# =========================================================
def parse_treatment_plan_lines(lines, directory: DentistDirectory | None = None,
                               today: date | None = None) -> ParseResult:
    lines = [ln.strip() for ln in (lines or []) if ln and ln.strip()]
    if not lines:
        return ParseResult.failure("file", MSG_NO_TEXT)

    directory = directory or DentistDirectory()
    warnings = []

    ctx = ParseContext(lines=lines, plan_by_line=find_plan_by_line(lines))

    location, _ = first_match(LOCATION_RULES, ctx)
    doctor_name, _ = first_match(DOCTOR_RULES, ctx)
    ctx.doctor_name = doctor_name or ""
    patient_name, patient_rule = first_match(PATIENT_RULES, ctx)
    plan_date = parse_date_created(lines) or today or _today()
    items = parse_treatment_items(lines, warnings)

    doctor_photo = None
    if doctor_name:
        dentist = directory.find_by_name(doctor_name)
        if dentist is not None:
            doctor_photo = dentist.photo
            if not location:
                location = directory.infer_location(dentist)

    if not location:
        warnings.insert(0, WARN_LOCATION)
    if not doctor_name:
        warnings.append(WARN_DOCTOR)
    if not patient_name:
        warnings.append(WARN_PATIENT)
    if not items:
        warnings.append(WARN_ITEMS)

    logger.debug("Patient name via %s rule", patient_rule)
    for w in warnings:
        logger.info("Import warning: %s", w)

    return ParseResult(
        success=True,
        data=ParsedTreatmentPlan(
            patient_name=patient_name or "",
            doctor_name=doctor_name or "",
            doctor_photo=doctor_photo,
            location=location,
            date=plan_date,
            items=items,
        ),
        warnings=warnings,
    )


def parse_treatment_plan_pdf(source, filename: str | None = None, directory: DentistDirectory | None = None,
                             today: date | None = None, tolerance: float = LINE_Y_TOLERANCE) -> ParseResult:
    """
    source: PDF bytes or a path. Never raises for bad input; returns a
    failed ParseResult with a single "file" error instead.
    """
    if isinstance(source, (str, Path)):
        filename = filename or Path(source).name
        try:
            data = Path(source).read_bytes()
        except OSError as e:
            return ParseResult.failure("file", f"Could not read {source}: {e}")
    else:
        data = bytes(source or b"")

    if filename and not filename.lower().endswith(".pdf"):
        return ParseResult.failure("file", MSG_NOT_PDF)
    if not data.lstrip()[:5] == b"%PDF-":
        return ParseResult.failure("file", MSG_NOT_PDF)

    try:
        lines = extract_lines(data, tolerance)
    except (PyPdfError, ValueError) as e:
        logger.exception("PDF parsing error")
        return ParseResult.failure("file", f"Failed to parse PDF file: {e}")

    return parse_treatment_plan_lines(lines, directory=directory, today=today)
