"""
Quote Totals Engine.

Turns a list of line items plus three percentages into the figures shown in the
admin quote editor, printed on the PDF and quoted in the send-quote email.
All three callers go through compute_totals() with the same inputs, so the
displayed, emailed and invoiced numbers are always identical.

Pure math: no I/O, no rounding between steps. Amounts are Decimal end to end;
rounding to cents only happens in format_currency().

Order of operations (pinned: it changes invoiced amounts):
    subtotal                  = sum(quantity * unit_price)
    contingency_amount        = subtotal * contingency% / 100
    subtotal_with_contingency = subtotal + contingency_amount
    tax_amount                = subtotal_with_contingency * tax% / 100
    total                     = subtotal_with_contingency + tax_amount
    deposit_required          = total * deposit% / 100

Tax is charged on the contingency-adjusted subtotal, and the deposit on the
post-tax total.
"""

from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Annotated, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, computed_field, model_validator

HUNDRED = Decimal("100")
ZERO = Decimal("0")
CENT = Decimal("0.01")

# Decimal in Python, plain number in JSON responses and JSON columns
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class LineItemCategory(str, Enum):
    MATERIALS = "materials"
    LABOR = "labor"
    CONTRACT = "contract"
    PERMIT = "permit"
    OTHER = "other"


CATEGORY_LABELS = {
    "materials": "Materials",
    "labor": "Labour",
    "contract": "Contract",
    "permit": "Permits",
    "other": "Other",
}


def to_decimal(value) -> Decimal:
    """Convert int/float/str to Decimal via its string form (0.1 stays 0.1)."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


class LineItem(BaseModel):
    """One quote row. total is always quantity * unit_price."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Optional[str] = None  # editor row id
    description: str = ""
    category: LineItemCategory = LineItemCategory.OTHER
    quantity: Money = Field(default=Decimal("1"), ge=0)
    unit: str = "ea"
    unit_price: Money = Field(default=ZERO, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _drop_stored_total(cls, data):
        # A stored "total" key is ignored and re-derived below
        if isinstance(data, dict) and "total" in data:
            data = {k: v for k, v in data.items() if k != "total"}
        return data

    @computed_field
    @property
    def total(self) -> Money:
        return self.quantity * self.unit_price


def recompute_line_item(item: LineItem, **changes) -> LineItem:
    """
    Return a copy of item with changes applied.

    total is recomputed only when quantity or unit_price changes; editing the
    description, category or unit leaves it untouched. total itself cannot be
    set directly.
    """
    if "total" in changes:
        raise ValueError("total is derived from quantity * unit_price and cannot be edited")

    return LineItem.model_validate({**item.model_dump(), **changes})


class QuoteTotals(BaseModel):
    """Derived quote figures. Never stored on its own: recomputed on every read."""

    model_config = ConfigDict(frozen=True)

    subtotal: Money
    contingency_percent: Money
    contingency_amount: Money
    subtotal_with_contingency: Money
    tax_percent: Money
    tax_amount: Money
    total: Money
    deposit_percent: Money
    deposit_required: Money

    def as_display(self) -> dict:
        """Every amount formatted as currency; percentages as plain numbers."""
        return {
            "subtotal": format_currency(self.subtotal),
            "contingency_amount": format_currency(self.contingency_amount),
            "subtotal_with_contingency": format_currency(self.subtotal_with_contingency),
            "tax_amount": format_currency(self.tax_amount),
            "total": format_currency(self.total),
            "deposit_required": format_currency(self.deposit_required),
        }


def _check_percent(name: str, value: Decimal) -> Decimal:
    if value < ZERO or value > HUNDRED:
        raise ValueError(f"{name} must be between 0 and 100, got {value}")
    return value


def _non_negative(amount: Decimal) -> Decimal:
    return amount if amount > ZERO else ZERO


def compute_totals(
    line_items: Iterable[LineItem],
    contingency_percent,
    tax_percent,
    deposit_percent,
) -> QuoteTotals:
    """
    Compute subtotal, contingency, tax, total and deposit for a quote.

    Percentages must already be validated to [0, 100]; a ValueError is raised
    otherwise. An empty item list gives all-zero totals.
    """
    contingency_pct = _check_percent("contingency_percent", to_decimal(contingency_percent))
    tax_pct = _check_percent("tax_percent", to_decimal(tax_percent))
    deposit_pct = _check_percent("deposit_percent", to_decimal(deposit_percent))

    subtotal = _non_negative(sum(
        (to_decimal(item.quantity) * to_decimal(item.unit_price) for item in line_items),
        ZERO,
    ))
    contingency_amount = _non_negative(subtotal * contingency_pct / HUNDRED)
    subtotal_with_contingency = subtotal + contingency_amount
    tax_amount = _non_negative(subtotal_with_contingency * tax_pct / HUNDRED)
    total = subtotal_with_contingency + tax_amount
    deposit_required = _non_negative(total * deposit_pct / HUNDRED)

    return QuoteTotals(
        subtotal=subtotal,
        contingency_percent=contingency_pct,
        contingency_amount=contingency_amount,
        subtotal_with_contingency=subtotal_with_contingency,
        tax_percent=tax_pct,
        tax_amount=tax_amount,
        total=total,
        deposit_percent=deposit_pct,
        deposit_required=deposit_required,
    )


def round_cents(amount) -> Decimal:
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount) -> str:
    """Format as $X,XXX.XX: the only place amounts are rounded."""
    try:
        value = round_cents(amount)
    except (ArithmeticError, ValueError, TypeError):
        return "$0.00"
    if value < 0:
        return f"-${-value:,.2f}"
    return f"${value:,.2f}"


def parse_line_items(raw_items) -> list[LineItem]:
    """Build LineItems from stored JSON rows, skipping anything that isn't a dict."""
    if not isinstance(raw_items, list):
        return []
    return [LineItem.model_validate(row) for row in raw_items if isinstance(row, dict)]
