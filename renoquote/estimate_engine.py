"""
Rough estimate for the chat funnel.

When a lead is submitted with enough project data, the customer and the admin
both get a ballpark range before any line items exist. Per-square-foot bands by
project type and finish level, HST on top. No AI.
"""

from .config import QuoteDefaults, quote_defaults as default_quote_defaults

# $/sqft before tax: (low, high) per finish level
RATE_BANDS = {
    "kitchen": {
        "economy": (150, 200),
        "standard": (200, 275),
        "premium": (275, 400),
    },
    "bathroom": {
        "economy": (200, 275),
        "standard": (275, 375),
        "premium": (375, 550),
    },
    "basement": {
        "economy": (40, 60),
        "standard": (60, 85),
        "premium": (85, 125),
    },
    "flooring": {
        "economy": (8, 12),
        "standard": (12, 18),
        "premium": (18, 30),
    },
}

# Typical Ontario room sizes used when the customer didn't give an area
DEFAULT_AREA_SQFT = {
    "kitchen": 150,
    "bathroom": 50,
    "basement": 800,
    "flooring": 300,
}

# Share of the pre-tax cost that is materials; the rest is labour
MATERIALS_SHARE = {
    "kitchen": 0.55,
    "bathroom": 0.45,
    "basement": 0.40,
    "flooring": 0.50,
}

ESTIMATABLE_PROJECT_TYPES = tuple(RATE_BANDS.keys())


def can_estimate(project_type: str) -> bool:
    return project_type in RATE_BANDS


def _round_to_hundred(amount: float) -> float:
    return float(round(amount / 100.0) * 100)


def calculate_estimate(
    project_type: str,
    area_sqft: float = None,
    finish_level: str = None,
    defaults: QuoteDefaults = None,
) -> dict:
    """
    Ballpark range for a lead.

    Returns: {
        "low": float, "high": float,              # tax included, rounded to $100
        "breakdown": {"materials", "labor", "hst"},  # midpoint split
        "confidence": float,                      # 0-1
        "notes": [str],
    }
    Raises ValueError for project types without rate bands.
    """
    if not can_estimate(project_type):
        raise ValueError(f"No rate bands for project type: {project_type}")

    defaults = defaults or default_quote_defaults
    tax_rate = float(defaults.tax_percent) / 100.0
    notes = []
    confidence = 0.8

    if area_sqft and area_sqft > 0:
        area = float(area_sqft)
    else:
        area = float(DEFAULT_AREA_SQFT[project_type])
        confidence -= 0.3
        notes.append(f"Area not provided: assumed a typical {area:.0f} sq ft {project_type}.")

    level = finish_level or "standard"
    if level not in RATE_BANDS[project_type]:
        level = "standard"
    if not finish_level:
        confidence -= 0.1
        notes.append("Finish level not provided: priced at standard finishes.")

    low_rate, high_rate = RATE_BANDS[project_type][level]
    pre_tax_low = area * low_rate
    pre_tax_high = area * high_rate
    midpoint = (pre_tax_low + pre_tax_high) / 2.0

    materials = midpoint * MATERIALS_SHARE[project_type]
    labor = midpoint - materials
    hst = midpoint * tax_rate

    notes.append(
        f"Includes {float(defaults.tax_percent):g}% HST. Final pricing requires a site visit."
    )

    return {
        "low": _round_to_hundred(pre_tax_low * (1 + tax_rate)),
        "high": _round_to_hundred(pre_tax_high * (1 + tax_rate)),
        "breakdown": {
            "materials": round(materials, 2),
            "labor": round(labor, 2),
            "hst": round(hst, 2),
        },
        "confidence": round(max(confidence, 0.0), 2),
        "notes": notes,
    }
