# errors.py
from __future__ import annotations

from dataclasses import dataclass


class TreatmentPlanError(Exception):
    """Structural failure in generation or import, tagged with the failing field/stage."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class TemplateAssetError(TreatmentPlanError):
    """A required template or team PDF is missing, unreadable or too short."""


class DocumentInputError(TreatmentPlanError):
    """The document handed to the importer cannot be read as a treatment plan."""


@dataclass(frozen=True)
class ParseIssue:
    field: str
    message: str
