# item_edits.py
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional, Union

from fee_schedule import find_fee
from models import FeeEntry, TreatmentItem


# =========================================================
# Field updates (one typed payload per edit)
# =========================================================
@dataclass(frozen=True)
class UpdateCode:
    item_id: str
    code: str


@dataclass(frozen=True)
class UpdateTooth:
    item_id: str
    tooth: str


@dataclass(frozen=True)
class UpdateDescription:
    item_id: str
    description: str


@dataclass(frozen=True)
class AddFeeEntry:
    item_id: str
    quantity: int = 1
    unit_fee: Decimal = Decimal("0")


@dataclass(frozen=True)
class UpdateFeeEntry:
    item_id: str
    fee_id: str
    quantity: Optional[int] = None
    unit_fee: Optional[Decimal] = None


@dataclass(frozen=True)
class RemoveFeeEntry:
    item_id: str
    fee_id: str


ItemUpdate = Union[UpdateCode, UpdateTooth, UpdateDescription, AddFeeEntry, UpdateFeeEntry, RemoveFeeEntry]


def _apply_code(item: TreatmentItem, update: UpdateCode, fee_schedule) -> TreatmentItem:
    updated = replace(item, item_code=update.code)

    # Auto-fill description and fee when the code is known to the schedule
    entry = find_fee(fee_schedule, update.code)
    if entry is None:
        return updated

    first, *rest = updated.fees
    return replace(
        updated,
        description=entry.description,
        fees=(replace(first, unit_fee=entry.fee), *rest),
    )


def _apply_fee_update(item: TreatmentItem, update: UpdateFeeEntry) -> TreatmentItem:
    fees = []
    for f in item.fees:
        if f.id == update.fee_id:
            f = replace(
                f,
                quantity=f.quantity if update.quantity is None else update.quantity,
                unit_fee=f.unit_fee if update.unit_fee is None else update.unit_fee,
            )
        fees.append(f)
    return replace(item, fees=tuple(fees))


def _apply_to_item(item: TreatmentItem, update: ItemUpdate, fee_schedule) -> TreatmentItem:
    if isinstance(update, UpdateCode):
        return _apply_code(item, update, fee_schedule)
    if isinstance(update, UpdateTooth):
        return replace(item, tooth=update.tooth)
    if isinstance(update, UpdateDescription):
        return replace(item, description=update.description)
    if isinstance(update, AddFeeEntry):
        return replace(item, fees=(*item.fees, FeeEntry(update.quantity, update.unit_fee)))
    if isinstance(update, UpdateFeeEntry):
        return _apply_fee_update(item, update)
    if isinstance(update, RemoveFeeEntry):
        return item.without_fee(update.fee_id)
    raise TypeError(f"Unsupported item update: {type(update).__name__}")


def apply_item_update(items, update: ItemUpdate, fee_schedule=()) -> list[TreatmentItem]:
    """
    Reducer for item edits. Returns a new list; the item matching
    update.item_id is replaced, every other item is passed through as-is.
    Unknown ids leave the list unchanged.
    """
    return [
        _apply_to_item(item, update, fee_schedule) if item.id == update.item_id else item
        for item in items
    ]


def add_item(items) -> list[TreatmentItem]:
    return [*items, TreatmentItem()]


def remove_item(items, item_id: str) -> list[TreatmentItem]:
    # The form always keeps one row to type into.
    if len(items) <= 1:
        return list(items)
    return [i for i in items if i.id != item_id]
