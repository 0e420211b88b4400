# utils.py
import re
import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

CENTS = Decimal("0.01")


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def to_money(value) -> Decimal:
    """
    Coerce a user/JSON value into a Decimal currency amount.
    Floats go through repr() so 0.1 stays 0.1 instead of its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(str(value).replace(",", "").replace("$", "").strip())
    except InvalidOperation:
        raise ValueError(f"Not a currency amount: {value!r}")


def format_currency(amount) -> str:
    # 1530 -> "$1,530.00"
    amt = to_money(amount).quantize(CENTS)
    return f"${amt:,.2f}"


def format_unit_fee(amount) -> str:
    """
    Unit fee as shown in the Qty column: no thousands separator, and no
    cents for whole-dollar amounts ("$90", "$1350", "$92.50").
    """
    amt = to_money(amount).quantize(CENTS)
    if amt == amt.to_integral_value():
        return f"${int(amt)}"
    return f"${amt:.2f}"


def today() -> date:
    return datetime.now().date()


def to_ddmmyyyy(d: date) -> str:
    return d.strftime("%d/%m/%Y")


def parse_iso_date(text) -> date:
    if isinstance(text, date):
        return text
    t = (text or "").strip()
    if not t:
        return today()
    return datetime.strptime(t, "%Y-%m-%d").date()


def plan_filename(patient_name: str, plan_date: date) -> str:
    """
    'TreatmentPlan_<sanitised name>_<YYYYMMDD>.pdf'
    """
    sanitized = re.sub(r"[^a-zA-Z0-9]", "_", (patient_name or "").strip()) or "Patient"
    return f"TreatmentPlan_{sanitized}_{plan_date.strftime('%Y%m%d')}.pdf"
