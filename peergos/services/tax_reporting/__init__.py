"""Tax Reporting Module.

UAE VAT and CIT computations over revenue and expense entries.

Sub-modules:
- computations: rates, thresholds and the pure calculation functions
"""
from .computations import (
    CIT_RATE,
    CIT_REGISTRATION_THRESHOLD,
    CIT_THRESHOLD,
    VAT_RATE,
    VAT_REGISTRATION_THRESHOLD,
    VAT_THRESHOLD,
    TaxCalculator,
    calculate_cit,
    calculate_effective_tax_rate,
    calculate_expenses_by_category,
    calculate_monthly_revenue,
    calculate_tax_summary,
    calculate_total_expenses,
    calculate_total_revenue,
    calculate_vat,
    calculate_vat_for_amount,
    get_registration_requirements,
)

__all__ = [
    # Constants
    "VAT_RATE",
    "CIT_RATE",
    "CIT_THRESHOLD",
    "VAT_THRESHOLD",
    "VAT_REGISTRATION_THRESHOLD",
    "CIT_REGISTRATION_THRESHOLD",
    # Computation functions
    "calculate_total_revenue",
    "calculate_total_expenses",
    "calculate_vat",
    "calculate_vat_for_amount",
    "calculate_cit",
    "calculate_effective_tax_rate",
    "get_registration_requirements",
    "calculate_monthly_revenue",
    "calculate_expenses_by_category",
    "calculate_tax_summary",
    # Calculator namespace
    "TaxCalculator",
]
