# models.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Optional

from config import DEFAULT_TEMPLATE_SETTINGS, LOCATION_KEYS
from utils import new_id, parse_iso_date, to_money, today


def _clean(s) -> str:
    return (s or "").strip() if isinstance(s, str) or s is None else str(s).strip()


# =========================================================
# Plan records
# =========================================================
@dataclass(frozen=True)
class FeeEntry:
    quantity: int = 1
    unit_fee: Decimal = Decimal("0")
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        object.__setattr__(self, "unit_fee", to_money(self.unit_fee))
        if int(self.quantity) < 1:
            raise ValueError(f"Fee quantity must be a positive integer, got {self.quantity!r}")
        object.__setattr__(self, "quantity", int(self.quantity))
        if self.unit_fee < 0:
            raise ValueError(f"Unit fee must not be negative, got {self.unit_fee}")

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_fee


@dataclass(frozen=True)
class TreatmentItem:
    item_code: str = ""
    description: str = ""
    tooth: str = ""
    fees: tuple = field(default_factory=lambda: (FeeEntry(),))
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        fees = tuple(self.fees or ())
        if not fees:
            raise ValueError("A treatment item needs at least one fee entry")
        object.__setattr__(self, "fees", fees)

    @property
    def total_fee(self) -> Decimal:
        return sum((f.line_total for f in self.fees), Decimal("0"))

    def is_blank(self) -> bool:
        """Rows with neither a code nor a description are never rendered."""
        return not _clean(self.item_code) and not _clean(self.description)

    def without_fee(self, fee_id: str) -> "TreatmentItem":
        # The last fee entry cannot be removed.
        if len(self.fees) <= 1:
            return self
        kept = tuple(f for f in self.fees if f.id != fee_id)
        if len(kept) == len(self.fees):
            return self
        return replace(self, fees=kept)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "itemCode": self.item_code,
            "description": self.description,
            "tooth": self.tooth,
            "fees": [
                {"id": f.id, "quantity": f.quantity, "unitFee": str(f.unit_fee)}
                for f in self.fees
            ],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "TreatmentItem":
        d = d or {}
        raw_fees = d.get("fees")
        if isinstance(raw_fees, list) and raw_fees:
            fees = tuple(
                FeeEntry(
                    quantity=int(f.get("quantity", 1) or 1),
                    unit_fee=to_money(f.get("unitFee", 0)),
                    id=f.get("id") or new_id(),
                )
                for f in raw_fees
            )
        else:
            # Older single-fee records: {"fee": 180}
            fees = (FeeEntry(1, to_money(d.get("fee", 0))),)
        return cls(
            item_code=_clean(d.get("itemCode")),
            description=(d.get("description") or "").strip(),
            tooth=_clean(d.get("tooth")),
            fees=fees,
            id=d.get("id") or new_id(),
        )


@dataclass
class TreatmentPlan:
    patient_name: str = ""
    doctor_name: str = ""
    location: str = "essendon"
    date: date = field(default_factory=today)
    doctor_photo: Optional[str] = None
    items: list = field(default_factory=list)

    def __post_init__(self):
        if self.location not in LOCATION_KEYS:
            raise ValueError(f"Unknown location {self.location!r}; expected one of {LOCATION_KEYS}")

    @property
    def total_amount(self) -> Decimal:
        # Always derived from the items, never stored.
        return sum((item.total_fee for item in self.items), Decimal("0"))

    @property
    def item_count(self) -> int:
        return len([i for i in self.items if _clean(i.item_code)])

    def renderable_items(self) -> list:
        return [i for i in self.items if not i.is_blank()]

    def to_dict(self) -> dict:
        return {
            "patientName": self.patient_name,
            "doctorName": self.doctor_name,
            "doctorPhoto": self.doctor_photo,
            "date": self.date.isoformat(),
            "location": self.location,
            "items": [i.to_dict() for i in self.items],
            "totalAmount": str(self.total_amount),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "TreatmentPlan":
        d = d or {}
        return cls(
            patient_name=_clean(d.get("patientName")),
            doctor_name=_clean(d.get("doctorName")),
            location=_clean(d.get("location")) or "essendon",
            date=parse_iso_date(d.get("date")),
            doctor_photo=d.get("doctorPhoto") or None,
            items=[TreatmentItem.from_dict(i) for i in (d.get("items") or [])],
        )


# =========================================================
# Reference data
# =========================================================
@dataclass(frozen=True)
class FeeScheduleEntry:
    code: str
    description: str
    fee: Decimal

    def to_dict(self) -> dict:
        return {"code": self.code, "description": self.description, "fee": str(self.fee)}

    @classmethod
    def from_dict(cls, d: dict) -> "FeeScheduleEntry":
        return cls(_clean(d.get("code")), (d.get("description") or "").strip(), to_money(d.get("fee", 0)))


@dataclass(frozen=True)
class DentistRecord:
    id: str
    name: str
    photo: str
    locations: tuple

    def __post_init__(self):
        if not self.locations:
            raise ValueError(f"Dentist {self.name!r} needs at least one location")


# =========================================================
# Template geometry
# =========================================================
@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class PhotoPosition:
    x: float
    y: float
    size: float


def _position(d, fallback: dict) -> Position:
    d = d if isinstance(d, dict) else {}
    return Position(float(d.get("x", fallback["x"])), float(d.get("y", fallback["y"])))


@dataclass(frozen=True)
class TemplateSettings:
    """
    Layout geometry in logical points on the fixed 810 x 1440 page,
    bottom-left origin. Template/team PDFs are file paths.
    """
    cover_pdf: str
    team_pdfs: dict
    patient_name_position: Position
    patient_name_font_size: float
    doctor_name_position: Position
    doctor_name_font_size: float
    doctor_photo_position: PhotoPosition
    table_start_y: float
    table_margin_x: float
    row_height: float
    max_rows_per_page: int

    def __post_init__(self):
        if self.row_height <= 0:
            raise ValueError("row_height must be positive")
        if int(self.max_rows_per_page) < 1:
            raise ValueError("max_rows_per_page must be at least 1")

    @classmethod
    def defaults(cls) -> "TemplateSettings":
        return cls.from_dict({})

    @classmethod
    def from_dict(cls, d: dict) -> "TemplateSettings":
        base = DEFAULT_TEMPLATE_SETTINGS
        d = d if isinstance(d, dict) else {}

        photo = d.get("doctor_photo_position")
        photo = photo if isinstance(photo, dict) else {}
        photo_base = base["doctor_photo_position"]

        team_pdfs = dict(base["team_pdfs"])
        if isinstance(d.get("team_pdfs"), dict):
            team_pdfs.update(d["team_pdfs"])

        return cls(
            cover_pdf=d.get("cover_pdf") or base["cover_pdf"],
            team_pdfs=team_pdfs,
            patient_name_position=_position(d.get("patient_name_position"), base["patient_name_position"]),
            patient_name_font_size=float(d.get("patient_name_font_size", base["patient_name_font_size"])),
            doctor_name_position=_position(d.get("doctor_name_position"), base["doctor_name_position"]),
            doctor_name_font_size=float(d.get("doctor_name_font_size", base["doctor_name_font_size"])),
            doctor_photo_position=PhotoPosition(
                float(photo.get("x", photo_base["x"])),
                float(photo.get("y", photo_base["y"])),
                float(photo.get("size", photo_base["size"])),
            ),
            table_start_y=float(d.get("table_start_y", base["table_start_y"])),
            table_margin_x=float(d.get("table_margin_x", base["table_margin_x"])),
            row_height=float(d.get("row_height", base["row_height"])),
            max_rows_per_page=int(d.get("max_rows_per_page", base["max_rows_per_page"])),
        )

    def to_dict(self) -> dict:
        return {
            "cover_pdf": self.cover_pdf,
            "team_pdfs": dict(self.team_pdfs),
            "patient_name_position": {"x": self.patient_name_position.x, "y": self.patient_name_position.y},
            "patient_name_font_size": self.patient_name_font_size,
            "doctor_name_position": {"x": self.doctor_name_position.x, "y": self.doctor_name_position.y},
            "doctor_name_font_size": self.doctor_name_font_size,
            "doctor_photo_position": {
                "x": self.doctor_photo_position.x,
                "y": self.doctor_photo_position.y,
                "size": self.doctor_photo_position.size,
            },
            "table_start_y": self.table_start_y,
            "table_margin_x": self.table_margin_x,
            "row_height": self.row_height,
            "max_rows_per_page": self.max_rows_per_page,
        }
