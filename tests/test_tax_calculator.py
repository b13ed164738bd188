"""Tests for UAE VAT/CIT computations."""
from datetime import date

import pytest

from factories import make_expense, make_revenue
from peergos.services.tax_reporting import (
    CIT_REGISTRATION_THRESHOLD,
    CIT_THRESHOLD,
    VAT_REGISTRATION_THRESHOLD,
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


def test_thresholds_are_distinct_constants():
    assert CIT_THRESHOLD == 375_000
    assert VAT_REGISTRATION_THRESHOLD == 375_000
    assert CIT_REGISTRATION_THRESHOLD == 3_000_000


def test_end_to_end_summary():
    revenues = [make_revenue(200_000, 10_000), make_revenue(300_000, 15_000)]
    expenses = [make_expense(100_000), make_expense(150_000)]

    summary = calculate_tax_summary(revenues, expenses)

    assert summary.total_revenue == 500_000
    assert summary.total_expenses == 250_000
    assert summary.net_income == 250_000
    assert summary.vat_amount == 25_000
    assert summary.cit_amount == 0
    assert summary.effective_tax_rate == pytest.approx(10)


def test_summary_is_idempotent():
    revenues = [make_revenue(420_000, 21_000)]
    expenses = [make_expense(10_000)]
    assert calculate_tax_summary(revenues, expenses) == calculate_tax_summary(revenues, expenses)


def test_summary_cit_uses_net_income():
    revenues = [make_revenue(1_000_000, 50_000)]
    expenses = [make_expense(500_000)]
    summary = calculate_tax_summary(revenues, expenses)
    assert summary.cit_amount == pytest.approx((500_000 - 375_000) * 0.09)


def test_vat_is_sum_of_recorded_vat_not_amount():
    revenues = [make_revenue(1_000, 7), make_revenue(50_000, 0), make_revenue(10, 3.5)]
    assert calculate_vat(revenues) == pytest.approx(10.5)


@pytest.mark.parametrize("net_income", [-10_000, 0, 100_000, 375_000])
def test_cit_zero_up_to_threshold(net_income):
    assert calculate_cit(net_income) == 0


@pytest.mark.parametrize(
    "net_income, expected",
    [(400_000, 2_250), (375_001, 0.09), (1_375_000, 90_000)],
)
def test_cit_nine_percent_above_threshold(net_income, expected):
    assert calculate_cit(net_income) == pytest.approx(expected)


def test_vat_for_single_amount():
    assert calculate_vat_for_amount(1_000) == pytest.approx(50)
    assert calculate_vat_for_amount(1_050, vat_included=True) == pytest.approx(50)
    assert calculate_vat_for_amount(0, vat_included=True) == 0


def test_effective_tax_rate():
    assert calculate_effective_tax_rate(5_000, 50_000) == pytest.approx(10)
    assert calculate_effective_tax_rate(5_000, 0) == 0
    assert calculate_effective_tax_rate(5_000, -100) == 0


def test_registration_requirements_share_the_375k_gate():
    assert get_registration_requirements(400_000).model_dump() == {"vat_required": True, "cit_required": True}
    assert get_registration_requirements(300_000).model_dump() == {"vat_required": False, "cit_required": False}
    assert get_registration_requirements(375_000).vat_required is False


def test_totals():
    assert calculate_total_revenue([]) == 0
    assert calculate_total_expenses([make_expense(10.25), make_expense(0.75)]) == pytest.approx(11)


def test_monthly_revenue_buckets_sorted_ascending():
    revenues = [
        make_revenue(300, on=date(2024, 3, 2)),
        make_revenue(100, on=date(2023, 12, 31)),
        make_revenue(50, on=date(2024, 3, 28)),
        make_revenue(20, on=date(2024, 1, 1)),
    ]
    rows = calculate_monthly_revenue(revenues)
    assert [(r.month, r.amount) for r in rows] == [("2023-12", 100), ("2024-01", 20), ("2024-03", 350)]


def test_expenses_by_category_sorted_descending_with_percentages():
    expenses = [make_expense(100, "Rent"), make_expense(300, "Salaries"), make_expense(100, "Rent")]
    rows = calculate_expenses_by_category(expenses)
    assert [r.category for r in rows] == ["Salaries", "Rent"]
    assert rows[0].percentage == pytest.approx(60)
    assert rows[1].amount == 200
    assert rows[1].percentage == pytest.approx(40)


def test_expenses_by_category_zero_total():
    rows = calculate_expenses_by_category([make_expense(0, "Misc")])
    assert rows[0].percentage == 0


def test_empty_aggregates():
    assert calculate_monthly_revenue([]) == []
    assert calculate_expenses_by_category([]) == []


def test_calculator_namespace_matches_functions():
    assert TaxCalculator.calculate_cit(400_000) == calculate_cit(400_000)
    assert TaxCalculator.VAT_RATE == 0.05
    assert TaxCalculator.calculate_tax_summary([], []).net_income == 0
