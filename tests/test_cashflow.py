"""Tests for the monthly cashflow calculation."""

import pytest

from fincalc.models import FinancialProfile, IncomeSources, Liability
from fincalc.models.amortization import loan_payment
from fincalc.models.cashflow import (
    calculate_monthly_surplus,
    debt_payments_at_retirement,
    monthly_debt_repayments,
)

# Tax on $120,000: 4,288 + 75,000 * 30% bracket tax, 2% levy, 1.25% surcharge
TAX_ON_120K = 26788 + 2400 + 1500


class TestCalculateMonthlySurplus:
    """Test cases for monthly surplus."""

    def test_employee_surplus(self, employee_profile):
        result = calculate_monthly_surplus(employee_profile)

        assert result.income.employment == pytest.approx(10000)
        assert result.income.total == pytest.approx(10000)
        assert result.expenses.living == 3000
        assert result.expenses.tax == pytest.approx(TAX_ON_120K / 12)
        assert result.expenses.loan_repayments == pytest.approx(100 * 52 / 12)
        assert result.surplus == pytest.approx(
            10000 - 3000 - TAX_ON_120K / 12 - 100 * 52 / 12
        )
        assert result.savings_rate == pytest.approx(result.surplus / 10000 * 100)
        assert not result.is_deficit

    def test_hecs_reported_separately(self, employee_profile):
        profile = employee_profile.model_copy(update={"hecs_balance": 50000})
        result = calculate_monthly_surplus(profile)

        assert result.expenses.tax == pytest.approx(TAX_ON_120K / 12)
        assert result.expenses.hecs == pytest.approx(120000 * 0.05 / 12)

    def test_property_costs_and_rent(self, investor_profile):
        result = calculate_monthly_surplus(investor_profile)

        assert result.income.rental == pytest.approx(500 * 52 / 12)
        assert result.expenses.property_expenses == pytest.approx(500)
        assert result.expenses.loan_repayments == pytest.approx(
            loan_payment(450000, 0.06, 30)
        )

    def test_deficit(self):
        profile = FinancialProfile(
            current_age=30,
            retirement_age=65,
            income=IncomeSources(employment=36000),
            monthly_expenses=4000,
        )
        result = calculate_monthly_surplus(profile)

        assert result.surplus < 0
        assert result.is_deficit
        assert result.savings_rate < 0

    def test_empty_profile(self, empty_profile):
        result = calculate_monthly_surplus(empty_profile)

        assert result.income.total == 0
        assert result.surplus == 0
        assert result.savings_rate == 0.0


class TestDebtRepayments:
    """Test cases for debt repayment helpers."""

    def test_frequency_normalisation(self):
        profile = FinancialProfile(
            liabilities=[
                Liability(repayment_amount=100, frequency="weekly", balance_owing=1),
                Liability(repayment_amount=200, frequency="fortnightly", balance_owing=1),
                Liability(repayment_amount=300, frequency="monthly", balance_owing=1),
            ]
        )

        assert monthly_debt_repayments(profile) == pytest.approx(
            100 * 52 / 12 + 200 * 26 / 12 + 300
        )

    def test_loans_paid_off_before_retirement_excluded(self, employee_profile):
        assert debt_payments_at_retirement(employee_profile, 27) == 0.0

    def test_loans_outlasting_retirement_included(self):
        profile = FinancialProfile(
            liabilities=[
                Liability(
                    balance_owing=300000,
                    repayment_amount=2000,
                    years_remaining=25,
                ),
                Liability(balance_owing=5000, repayment_amount=400, years_remaining=2),
            ]
        )

        assert debt_payments_at_retirement(profile, 20) == pytest.approx(2000)

    def test_unknown_term_defaults_to_thirty_years(self):
        profile = FinancialProfile(
            liabilities=[Liability(balance_owing=100000, repayment_amount=800)]
        )

        assert debt_payments_at_retirement(profile, 20) == pytest.approx(800)
        assert debt_payments_at_retirement(profile, 30) == 0.0

    def test_property_loans_included(self, investor_profile):
        assert debt_payments_at_retirement(investor_profile, 20) == pytest.approx(
            loan_payment(450000, 0.06, 30)
        )

    def test_no_years(self, investor_profile):
        assert debt_payments_at_retirement(investor_profile, 0) == 0.0
