"""
Rough estimate tests: rate bands, confidence, HST.
"""

import pytest

from renoquote.config import QuoteDefaults
from renoquote.estimate_engine import (
    DEFAULT_AREA_SQFT,
    ESTIMATABLE_PROJECT_TYPES,
    calculate_estimate,
    can_estimate,
)


def test_estimatable_types():
    assert set(ESTIMATABLE_PROJECT_TYPES) == {"kitchen", "bathroom", "basement", "flooring"}
    assert can_estimate("kitchen")
    assert not can_estimate("painting")
    assert not can_estimate("other")


def test_kitchen_standard_range_includes_hst():
    est = calculate_estimate("kitchen", area_sqft=150, finish_level="standard")
    # 150 sqft * $200-$275, plus 13%
    assert est["low"] == 33900.0
    assert est["high"] == 46600.0
    assert est["confidence"] == 0.8
    assert est["notes"][-1] == "Includes 13% HST. Final pricing requires a site visit."


def test_breakdown_is_midpoint_split():
    est = calculate_estimate("kitchen", area_sqft=100, finish_level="standard")
    midpoint = 100 * (200 + 275) / 2
    assert est["breakdown"]["materials"] + est["breakdown"]["labor"] == pytest.approx(midpoint)
    assert est["breakdown"]["hst"] == pytest.approx(midpoint * 0.13)


def test_missing_area_uses_typical_size_and_lowers_confidence():
    est = calculate_estimate("bathroom", finish_level="premium")
    assert est["confidence"] == 0.5
    assert any(f"{DEFAULT_AREA_SQFT['bathroom']} sq ft" in n for n in est["notes"])


def test_missing_finish_level_priced_at_standard():
    with_level = calculate_estimate("flooring", area_sqft=300, finish_level="standard")
    without = calculate_estimate("flooring", area_sqft=300)
    assert without["low"] == with_level["low"]
    assert without["confidence"] == 0.7


def test_nothing_provided():
    est = calculate_estimate("basement")
    assert est["confidence"] == 0.4
    assert est["low"] < est["high"]


def test_tax_from_quote_defaults():
    no_tax = QuoteDefaults(
        tax_percent=0, default_contingency_percent=10,
        default_deposit_percent=50, default_validity_days=30,
    )
    est = calculate_estimate("kitchen", area_sqft=100, finish_level="economy", defaults=no_tax)
    assert est["low"] == 15000.0
    assert est["breakdown"]["hst"] == 0


def test_unknown_project_type_raises():
    with pytest.raises(ValueError):
        calculate_estimate("painting", area_sqft=500)
