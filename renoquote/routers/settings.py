from fastapi import APIRouter, Depends

from ..config import QuoteDefaults, business_profile, get_quote_defaults

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/quote-defaults")
def read_quote_defaults(defaults: QuoteDefaults = Depends(get_quote_defaults)):
    """Percentages the quote editor starts from. Read-only at runtime."""
    return {
        "tax_percent": float(defaults.tax_percent),
        "default_contingency_percent": float(defaults.default_contingency_percent),
        "default_deposit_percent": float(defaults.default_deposit_percent),
        "default_validity_days": defaults.default_validity_days,
    }


@router.get("/business")
def read_business_profile():
    return business_profile()
