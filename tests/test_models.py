from datetime import date
from decimal import Decimal

import pytest

from models import FeeEntry, TemplateSettings, TreatmentItem, TreatmentPlan
from tests.conftest import item


def test_item_total_sums_quantity_times_unit_fee():
    it = item("322", "Tooth extraction", "48", ((2, "220"), (1, "80.50")))
    assert it.total_fee == Decimal("520.50")


def test_plan_total_is_derived_and_stable(sample_plan):
    first = sample_plan.total_amount
    assert first == Decimal("1610")
    assert sample_plan.total_amount == first

    sample_plan.patient_name = "Ms Someone Else"
    assert sample_plan.total_amount == first


def test_item_needs_a_fee_entry():
    with pytest.raises(ValueError):
        TreatmentItem(item_code="311", fees=())


@pytest.mark.parametrize("quantity, unit_fee", [(0, "10"), (-1, "10"), (1, "-5")])
def test_fee_entry_validation(quantity, unit_fee):
    with pytest.raises(ValueError):
        FeeEntry(quantity, unit_fee)


def test_last_fee_entry_cannot_be_removed():
    it = item("311", "Filling", fees=((1, "180"),))
    assert it.without_fee(it.fees[0].id) is it


def test_remove_one_of_several_fee_entries():
    it = item("322", "Tooth extraction", fees=((1, "220"), (1, "80")))
    out = it.without_fee(it.fees[1].id)
    assert len(out.fees) == 1
    assert out.total_fee == Decimal("220")


def test_blank_item_detection():
    assert TreatmentItem().is_blank()
    assert not TreatmentItem(description="Review").is_blank()
    assert not TreatmentItem(item_code="011").is_blank()


def test_unknown_location_rejected():
    with pytest.raises(ValueError):
        TreatmentPlan(location="richmond")


def test_plan_dict_round_trip_keeps_fees(sample_plan):
    restored = TreatmentPlan.from_dict(sample_plan.to_dict())
    assert restored.patient_name == "Mr John Citizen"
    assert restored.date == date(2025, 3, 5)
    assert [i.item_code for i in restored.items] == ["311", "415", "012", "322"]
    assert restored.total_amount == sample_plan.total_amount


def test_item_from_legacy_single_fee_record():
    it = TreatmentItem.from_dict({"itemCode": "011", "description": "Exam", "fee": 80})
    assert len(it.fees) == 1
    assert it.fees[0].quantity == 1
    assert it.total_fee == Decimal("80")


def test_plan_item_count_ignores_rows_without_code():
    plan = TreatmentPlan(items=[item("011", "Exam"), item("", "Notes only")])
    assert plan.item_count == 1


def test_template_settings_defaults():
    s = TemplateSettings.defaults()
    assert s.patient_name_position.x == 405
    assert s.patient_name_position.y == 470
    assert s.doctor_photo_position.size == 180
    assert s.table_start_y == 1180
    assert s.row_height == 110
    assert s.max_rows_per_page == 5
    assert set(s.team_pdfs) == {"essendon", "burwood", "mulgrave"}


def test_template_settings_partial_dict_keeps_defaults():
    s = TemplateSettings.from_dict({"row_height": 90, "doctor_photo_position": {"size": 150}})
    assert s.row_height == 90
    assert s.doctor_photo_position.size == 150
    assert s.doctor_photo_position.x == 90
    assert TemplateSettings.from_dict(s.to_dict()) == s


@pytest.mark.parametrize("overrides", [{"row_height": 0}, {"max_rows_per_page": 0}])
def test_template_settings_rejects_bad_geometry(overrides):
    with pytest.raises(ValueError):
        TemplateSettings.from_dict(overrides)
