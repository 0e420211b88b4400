# fee_schedule.py
from __future__ import annotations

import logging
from decimal import Decimal

from models import FeeScheduleEntry
from settings_store import SettingsStore

logger = logging.getLogger(__name__)

# Bump whenever DEFAULT_FEE_SCHEDULE changes so users with a local copy are told.
FEE_SCHEDULE_VERSION = "2025.1"

FEE_SCHEDULE_KEY = "fee_schedule"
FEE_SCHEDULE_VERSION_KEY = "fee_schedule_version"


def _entry(code: str, description: str, fee: int) -> FeeScheduleEntry:
    return FeeScheduleEntry(code, description, Decimal(fee))


DEFAULT_FEE_SCHEDULE = (
    _entry("011", "Comprehensive oral examination - A thorough evaluation of your teeth, gums, and oral tissues.", 80),
    _entry("012", "Routine 6 Monthly Appointment - Prevention is better (and cheaper) than a cure! Your essential "
                  "6-monthly check-up includes oral cancer screening, thorough clean & polish, and X-rays if needed.", 280),
    _entry("114", "Removal of calculus - Professional cleaning to remove tartar buildup.", 120),
    _entry("121", "Topical fluoride treatment - Strengthening treatment for your teeth.", 45),
    _entry("311", "Direct restoration - tooth coloured - One surface. A filling to repair a small area of decay.", 180),
    _entry("312", "Direct restoration - tooth coloured - Two surfaces. A filling to repair a moderate area of decay.", 250),
    _entry("313", "Direct restoration - tooth coloured - Three surfaces. A larger filling for more extensive decay.", 320),
    _entry("322", "Tooth extraction - Removal of a tooth that cannot be saved.", 220),
    _entry("415", "Root canal treatment - Front tooth. Treatment to save an infected tooth.", 850),
    _entry("416", "Root canal treatment - Premolar. Treatment to save an infected tooth.", 1050),
    _entry("417", "Root canal treatment - Molar. Treatment to save an infected tooth.", 1350),
    _entry("613", "Crown - Looking for the most durability & protection for your tooth long term? A crown is the "
                  "best option here, a solid cap tailor fitted to your existing tooth usually from porcelain, "
                  "ceramic or metal.", 1750),
    _entry("615", "Crown - Porcelain fused to metal. A durable crown with a natural appearance.", 1650),
    _entry("631", "Dental implant - A permanent solution to replace a missing tooth.", 4500),
    _entry("711", "Denture - Complete upper. A full set of replacement teeth for the upper jaw.", 2200),
    _entry("712", "Denture - Complete lower. A full set of replacement teeth for the lower jaw.", 2200),
    _entry("821", "Periodontal treatment - Deep cleaning below the gum line.", 280),
    _entry("926", "Teeth whitening - Professional whitening treatment for a brighter smile.", 650),
)


def find_fee(entries, code: str) -> FeeScheduleEntry | None:
    key = (code or "").strip().lower()
    if not key:
        return None
    for entry in entries:
        if entry.code.lower() == key:
            return entry
    return None


class FeeScheduleStore:
    """
    The user's fee schedule: a local override copy of the shipped default.

    A stored version marker that differs from FEE_SCHEDULE_VERSION means the
    user has an outdated copy; that is reported, never silently overwritten.
    """

    def __init__(self, store: SettingsStore):
        self.store = store

    def get_all(self) -> list[FeeScheduleEntry]:
        raw = self.store.get(FEE_SCHEDULE_KEY)
        if not isinstance(raw, list):
            return list(DEFAULT_FEE_SCHEDULE)
        try:
            return [FeeScheduleEntry.from_dict(d) for d in raw if isinstance(d, dict)]
        except ValueError as e:
            logger.warning("Stored fee schedule is invalid, using shipped default: %s", e)
            return list(DEFAULT_FEE_SCHEDULE)

    def find(self, code: str) -> FeeScheduleEntry | None:
        return find_fee(self.get_all(), code)

    def save(self, entries) -> None:
        codes = [e.code for e in entries]
        if len(codes) != len(set(codes)):
            raise ValueError("Fee schedule codes must be unique")
        self.store.update({
            FEE_SCHEDULE_KEY: [e.to_dict() for e in entries],
            FEE_SCHEDULE_VERSION_KEY: self.store.get(FEE_SCHEDULE_VERSION_KEY) or FEE_SCHEDULE_VERSION,
        })

    def reset_to_default(self) -> list[FeeScheduleEntry]:
        self.store.update({
            FEE_SCHEDULE_KEY: [e.to_dict() for e in DEFAULT_FEE_SCHEDULE],
            FEE_SCHEDULE_VERSION_KEY: FEE_SCHEDULE_VERSION,
        })
        return list(DEFAULT_FEE_SCHEDULE)

    def stored_version(self) -> str | None:
        return self.store.get(FEE_SCHEDULE_VERSION_KEY)

    def update_available(self) -> bool:
        """
        True only for a user holding an outdated local copy.
        A fresh install (no stored schedule, no marker) is not an update.
        """
        if self.store.get(FEE_SCHEDULE_KEY) is None:
            return False
        version = self.stored_version()
        available = version != FEE_SCHEDULE_VERSION
        if available:
            logger.info("Fee schedule update available (local %s, shipped %s)", version, FEE_SCHEDULE_VERSION)
        return available
