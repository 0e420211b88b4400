# dentists.py
from __future__ import annotations

import re

from config import DENTIST_PHOTOS_DIR
from models import DentistRecord

_RE_HONORIFIC = re.compile(r"^\s*(?:dr|mr|mrs|ms|miss|prof)\.?\s+", re.IGNORECASE)


def _photo(filename: str) -> str:
    return str(DENTIST_PHOTOS_DIR / filename)


DENTISTS = (
    # Burwood & Mulgrave
    DentistRecord("dr-siv-lengsavath", "Dr Siv Lengsavath", _photo("dr-siv-lengsavath.jpg"), ("burwood", "mulgrave")),
    DentistRecord("dr-adina-low", "Dr Adina Low", _photo("dr-adina-low.png"), ("burwood", "mulgrave")),
    DentistRecord("dr-esther-chin", "Dr Esther Chin", _photo("dr-esther-chin.png"), ("burwood",)),
    DentistRecord("dr-jessy-youn", "Dr Jessy Youn", _photo("dr-jessy-youn.jpg"), ("burwood",)),
    DentistRecord("dr-kimberlyn-ong", "Dr Kimberlyn Ong", _photo("dr-kimberlyn-ong.png"), ("burwood", "mulgrave")),
    DentistRecord("dr-won-noh", "Dr Won Noh", _photo("dr-won-noh.png"), ("burwood",)),
    DentistRecord("dr-brenda-morris", "Dr Brenda Morris", _photo("dr-brenda-morris.png"), ("mulgrave",)),

    # Essendon
    DentistRecord("dr-claire-tan", "Dr Claire Tan", _photo("dr-claire-tan.jpg"), ("essendon",)),
    DentistRecord("dr-dan-trinh", "Dr Dan Trinh", _photo("dr-dan-trinh.jpg"), ("essendon",)),
    DentistRecord("dr-edmund-kwong", "Dr Edmund Kwong", _photo("dr-edmund-kwong.jpg"), ("essendon",)),
    DentistRecord("dr-kelly-sin", "Dr Kelly Sin", _photo("dr-kelly-sin.png"), ("essendon",)),
    DentistRecord("dr-rama-chockalingam", "Dr Rama Chockalingam", _photo("dr-rama-chockalingam.jpg"), ("essendon",)),
    DentistRecord("dr-yeseul-baek", "Dr Yeseul Baek", _photo("dr-yeseul-baek.jpg"), ("essendon",)),
    DentistRecord("dr-david-liu", "Dr David Liu", _photo("dr-david-liu.jpg"), ("essendon",)),
)


def normalize_name(name: str) -> str:
    """'Dr. Claire  Tan' -> 'claire tan'"""
    t = _RE_HONORIFIC.sub("", name or "")
    return " ".join(t.lower().split())


class DentistDirectory:
    def __init__(self, dentists=DENTISTS):
        self.dentists = tuple(dentists)

    def find_by_name(self, name: str) -> DentistRecord | None:
        """
        Exact match on the honorific-stripped name first, then a substring
        match against the full directory name.
        """
        search = normalize_name(name)
        if not search:
            return None

        for d in self.dentists:
            if normalize_name(d.name) == search:
                return d
        for d in self.dentists:
            if search in d.name.lower():
                return d
        return None

    def infer_location(self, dentist: DentistRecord | None) -> str | None:
        # Only unambiguous when the dentist works at a single clinic
        if dentist is not None and len(dentist.locations) == 1:
            return dentist.locations[0]
        return None
