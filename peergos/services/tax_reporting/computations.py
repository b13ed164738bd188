"""Tax computation functions and constants.

Pure computation logic for UAE VAT and Corporate Income Tax (CIT). No storage
access and no validation: callers validate entries first. All arithmetic is
float and unrounded; rounding happens only in ``peergos.utils.currency_fmt``.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from peergos.models.schemas import (
    CategoryExpense,
    MonthlyRevenue,
    RegistrationRequirements,
    TaxSummary,
)
from peergos.models.tax_models import ExpenseEntry, RevenueEntry

# UAE VAT: flat 5% standard rate
VAT_RATE = 0.05

# UAE CIT: 0% up to AED 375,000 of taxable income, 9% above
CIT_RATE = 0.09
CIT_THRESHOLD = 375_000
VAT_THRESHOLD = 375_000

# Registration gates. The calculator's own requirements check uses 375,000
# for both taxes; the dashboard badge, penalty scoring and CIT warnings use
# the 3,000,000 CIT registration threshold.
VAT_REGISTRATION_THRESHOLD = 375_000
CIT_REGISTRATION_THRESHOLD = 3_000_000


def calculate_total_revenue(revenues: Iterable[RevenueEntry]) -> float:
    return sum((float(r.amount) for r in revenues), 0.0)


def calculate_total_expenses(expenses: Iterable[ExpenseEntry]) -> float:
    return sum((float(e.amount) for e in expenses), 0.0)


def calculate_vat(revenues: Iterable[RevenueEntry]) -> float:
    """Sum of the VAT recorded on each entry; ``amount`` is not consulted."""
    return sum((float(r.vat_amount) for r in revenues), 0.0)


def calculate_vat_for_amount(amount: float, vat_included: bool = False) -> float:
    """VAT on a single amount.

    A VAT-inclusive price has the tax backed out (``amount * 5 / 105``);
    otherwise the 5% rate is applied on top.
    """
    if vat_included:
        return amount * 5 / 105
    return amount * VAT_RATE


def calculate_cit(net_income: float) -> float:
    """CIT on net income (revenue minus expenses), never on gross revenue."""
    if net_income <= CIT_THRESHOLD:
        return 0.0
    return (net_income - CIT_THRESHOLD) * CIT_RATE


def calculate_effective_tax_rate(total_tax: float, net_income: float) -> float:
    if net_income > 0:
        return total_tax / net_income * 100
    return 0.0


def get_registration_requirements(total_revenue: float) -> RegistrationRequirements:
    return RegistrationRequirements(
        vat_required=total_revenue > VAT_THRESHOLD,
        cit_required=total_revenue > CIT_THRESHOLD,
    )


def calculate_monthly_revenue(revenues: Iterable[RevenueEntry]) -> list[MonthlyRevenue]:
    buckets: dict[str, float] = defaultdict(float)
    for r in revenues:
        buckets[r.date.strftime("%Y-%m")] += float(r.amount)
    return [MonthlyRevenue(month=month, amount=buckets[month]) for month in sorted(buckets)]


def calculate_expenses_by_category(expenses: Iterable[ExpenseEntry]) -> list[CategoryExpense]:
    buckets: dict[str, float] = defaultdict(float)
    for e in expenses:
        buckets[e.category] += float(e.amount)
    total = sum(buckets.values())
    rows = [
        CategoryExpense(
            category=category,
            amount=amount,
            percentage=(amount / total * 100) if total else 0.0,
        )
        for category, amount in buckets.items()
    ]
    rows.sort(key=lambda row: row.amount, reverse=True)
    return rows


def calculate_tax_summary(
    revenues: Iterable[RevenueEntry],
    expenses: Iterable[ExpenseEntry],
) -> TaxSummary:
    revenues = list(revenues)
    expenses = list(expenses)
    total_revenue = calculate_total_revenue(revenues)
    total_expenses = calculate_total_expenses(expenses)
    net_income = total_revenue - total_expenses
    vat_amount = calculate_vat(revenues)
    cit_amount = calculate_cit(net_income)
    return TaxSummary(
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        net_income=net_income,
        vat_amount=vat_amount,
        cit_amount=cit_amount,
        effective_tax_rate=calculate_effective_tax_rate(vat_amount + cit_amount, net_income),
    )


class TaxCalculator:
    """Namespace over the computation functions for callers that inject a calculator."""

    VAT_RATE = VAT_RATE
    CIT_RATE = CIT_RATE
    CIT_THRESHOLD = CIT_THRESHOLD

    calculate_total_revenue = staticmethod(calculate_total_revenue)
    calculate_total_expenses = staticmethod(calculate_total_expenses)
    calculate_vat = staticmethod(calculate_vat)
    calculate_vat_for_amount = staticmethod(calculate_vat_for_amount)
    calculate_cit = staticmethod(calculate_cit)
    calculate_effective_tax_rate = staticmethod(calculate_effective_tax_rate)
    get_registration_requirements = staticmethod(get_registration_requirements)
    calculate_monthly_revenue = staticmethod(calculate_monthly_revenue)
    calculate_expenses_by_category = staticmethod(calculate_expenses_by_category)
    calculate_tax_summary = staticmethod(calculate_tax_summary)
