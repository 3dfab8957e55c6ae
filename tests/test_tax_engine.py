"""
Tests for the income tax engine.

This module tests bracket tax, the health levy and surcharge, income-contingent
repayments, franking credits, negative gearing and the combined tax result.
"""

import math

import pytest

from fincalc.models.rules import TAX_RULES_2024_25, TaxBracket, TaxRules
from fincalc.models.tax_engine import (
    Deduction,
    TaxEngine,
    TaxInput,
    calculate_hecs_repayment,
    calculate_income_tax,
    calculate_levy_surcharge,
    calculate_marginal_rate,
    calculate_medicare_levy,
    negative_gearing,
)

RULES = TAX_RULES_2024_25


class TestBracketTax:
    """Test cases for progressive bracket tax."""

    def test_tax_free_threshold(self):
        assert calculate_income_tax(18200, RULES) == 0.0
        assert calculate_income_tax(10000, RULES) == 0.0

    def test_zero_and_negative_income(self):
        assert calculate_income_tax(0, RULES) == 0.0
        assert calculate_income_tax(-5000, RULES) == 0.0

    def test_nan_income(self):
        assert calculate_income_tax(math.nan, RULES) == 0.0

    def test_income_below_lowest_band(self):
        """Test that a table starting above 0 charges nothing below its first band."""
        rules = TaxRules(
            brackets=[
                TaxBracket(min=10000, max=50000, rate=0.2, base_tax=0),
                TaxBracket(min=50000, max=None, rate=0.4, base_tax=8000),
            ]
        )

        assert calculate_income_tax(5000, rules) == 0.0
        assert calculate_income_tax(10000, rules) == 0.0
        assert calculate_income_tax(20000, rules) == pytest.approx(2000)
        assert calculate_income_tax(60000, rules) == pytest.approx(12000)

    def test_hundred_thousand(self):
        """Test $100,000 of taxable income."""
        assert calculate_income_tax(100000, RULES) == pytest.approx(20788)

    def test_top_bracket(self):
        assert calculate_income_tax(250000, RULES) == pytest.approx(51638 + 60000 * 0.45)

    @pytest.mark.parametrize("index", [1, 2, 3, 4])
    def test_bracket_edges_are_continuous(self, index):
        """Test that tax at each band's lower edge equals that band's base tax."""
        lower = RULES.brackets[index - 1]
        upper = RULES.brackets[index]

        assert calculate_income_tax(upper.min, RULES) == pytest.approx(upper.base_tax)
        assert calculate_income_tax(lower.max, RULES) == pytest.approx(upper.base_tax)

    @pytest.mark.parametrize("edge", [18200, 45000, 135000, 190000])
    def test_no_jump_across_edges(self, edge):
        below = calculate_income_tax(edge - 0.01, RULES)
        above = calculate_income_tax(edge + 0.01, RULES)

        assert above - below < 0.01


class TestLevy:
    """Test cases for the health levy and surcharge."""

    def test_no_levy_at_low_income(self):
        assert calculate_medicare_levy(24276, RULES) == 0.0

    def test_levy_above_threshold(self):
        assert calculate_medicare_levy(30000, RULES) == pytest.approx(600)

    def test_levy_exemption(self):
        assert calculate_medicare_levy(100000, RULES, is_exempt=True) == 0.0

    def test_no_surcharge_at_threshold(self):
        assert calculate_levy_surcharge(97000, RULES) == 0.0

    @pytest.mark.parametrize(
        "income,expected",
        [(100000, 1000), (120000, 1500), (160000, 2400)],
    )
    def test_surcharge_tiers(self, income, expected):
        assert calculate_levy_surcharge(income, RULES) == pytest.approx(expected)

    def test_private_cover_removes_surcharge(self):
        assert calculate_levy_surcharge(160000, RULES, has_private_cover=True) == 0.0


class TestHecsRepayment:
    """Test cases for income-contingent loan repayments."""

    def test_no_balance(self):
        assert calculate_hecs_repayment(100000, RULES, 0) == 0.0

    def test_below_lowest_band(self):
        assert calculate_hecs_repayment(50000, RULES, 20000) == 0.0

    def test_band_rate_applies_to_gross(self):
        assert calculate_hecs_repayment(60000, RULES, 20000) == pytest.approx(1200)

    def test_capped_at_balance(self):
        assert calculate_hecs_repayment(60000, RULES, 500) == pytest.approx(500)

    def test_monotonic_in_balance_until_cap(self):
        """Test repayments rise with the balance and then plateau."""
        repayments = [
            calculate_hecs_repayment(60000, RULES, balance)
            for balance in [0, 200, 600, 1000, 1200, 5000, 50000]
        ]

        assert all(a <= b for a, b in zip(repayments, repayments[1:]))
        assert repayments[-1] == pytest.approx(1200)
        assert repayments[-2] == pytest.approx(1200)

    def test_monotonic_in_income(self):
        repayments = [
            calculate_hecs_repayment(income, RULES, 100000)
            for income in range(40000, 200001, 5000)
        ]

        assert all(a <= b for a, b in zip(repayments, repayments[1:]))


class TestMarginalRate:
    """Test cases for the marginal rate lookup."""

    def test_marginal_rate_includes_levy_and_surcharge(self):
        assert calculate_marginal_rate(100000, RULES) == pytest.approx(33.0)

    def test_marginal_rate_with_private_cover(self):
        assert calculate_marginal_rate(
            100000, RULES, has_private_cover=True
        ) == pytest.approx(32.0)

    def test_marginal_rate_below_levy_threshold(self):
        assert calculate_marginal_rate(10000, RULES) == pytest.approx(0.0)

    def test_marginal_rate_top_bracket(self):
        assert calculate_marginal_rate(
            250000, RULES, has_private_cover=True
        ) == pytest.approx(47.0)


class TestNegativeGearing:
    """Test cases for the standalone negative gearing helper."""

    def test_loss_making_property(self):
        """Test $20,000 rent against $34,000 of costs at a 33% marginal rate."""
        result = negative_gearing(20000, 34000, 0.33)

        assert result.total_rental_income == 20000
        assert result.total_expenses == 34000
        assert result.net_loss == pytest.approx(14000)
        assert result.tax_benefit == pytest.approx(4620)

    def test_profitable_property(self):
        result = negative_gearing(30000, 20000, 0.33)

        assert result.net_loss == 0.0
        assert result.tax_benefit == 0.0


class TestTaxEngine:
    """Test cases for the combined tax calculation."""

    def test_salary_of_hundred_thousand(self):
        """Test the full result for a $100,000 salary without private cover."""
        result = TaxEngine().calculate(TaxInput(employment_income=100000))

        assert result.taxable_income == pytest.approx(100000)
        assert result.income_tax == pytest.approx(20788)
        assert result.medicare_levy == pytest.approx(2000)
        assert result.levy_surcharge == pytest.approx(1000)
        assert result.total_levy == pytest.approx(3000)
        assert result.total_tax == pytest.approx(23788)
        assert result.after_tax_income == pytest.approx(76212)
        assert result.marginal_rate == pytest.approx(33.0)
        assert result.average_rate == pytest.approx(23.788)

    def test_zero_income(self):
        result = TaxEngine().calculate(TaxInput())

        assert result.total_tax == 0.0
        assert result.average_rate == 0.0

    def test_deductions_reduce_taxable_income(self):
        tax_input = TaxInput(
            employment_income=100000,
            deductions=[Deduction(category="work-related", amount=5000)],
        )
        result = TaxEngine().calculate(tax_input)

        assert result.taxable_income == pytest.approx(95000)
        assert result.total_deductions == pytest.approx(5000)

    def test_hecs_included_in_total(self):
        result = TaxEngine().calculate(
            TaxInput(employment_income=100000, hecs_balance=30000)
        )

        assert result.hecs_repayment == pytest.approx(4000)
        assert result.total_tax == pytest.approx(27788)

    def test_franking_credit_offset(self):
        """Test franked dividends are grossed up and the credit offsets tax."""
        result = TaxEngine().calculate(
            TaxInput(employment_income=100000, franked_dividends=7000)
        )

        assert result.franking_credit_offset == pytest.approx(2100)
        assert result.taxable_income == pytest.approx(109100)
        assert result.income_tax == pytest.approx(23518 - 2100)

    def test_franking_offset_never_negative(self):
        result = TaxEngine().calculate(TaxInput(franked_dividends=10000))

        assert result.income_tax == 0.0

    def test_capital_gains_discount(self):
        result = TaxEngine().calculate(
            TaxInput(employment_income=50000, capital_gains=20000)
        )

        assert result.taxable_income == pytest.approx(60000)
        assert result.gross_income == pytest.approx(70000)

    def test_capital_gains_without_discount(self):
        result = TaxEngine().calculate(
            TaxInput(
                employment_income=50000,
                capital_gains=20000,
                cgt_discount_eligible=False,
            )
        )

        assert result.taxable_income == pytest.approx(70000)

    def test_negative_gearing_reduces_taxable_income(self):
        result = TaxEngine().calculate(
            TaxInput(
                employment_income=100000,
                rental_income=20000,
                rental_expenses=34000,
            )
        )

        assert result.gross_income == pytest.approx(120000)
        assert result.taxable_income == pytest.approx(86000)
        assert result.negative_gearing_loss == pytest.approx(14000)
        assert result.negative_gearing_benefit == pytest.approx(14000 * 0.32)

    def test_positive_rental_income_is_taxed(self):
        result = TaxEngine().calculate(
            TaxInput(employment_income=100000, rental_income=30000, rental_expenses=10000)
        )

        assert result.taxable_income == pytest.approx(120000)
        assert result.negative_gearing_loss == 0.0

    def test_negative_gearing_disallowed(self):
        rules = RULES.model_copy(update={"negative_gearing_allowed": False})
        result = TaxEngine(rules).calculate(
            TaxInput(
                employment_income=100000,
                rental_income=20000,
                rental_expenses=34000,
            )
        )

        assert result.taxable_income == pytest.approx(100000)
        assert result.negative_gearing_benefit == 0.0

    def test_missing_values_are_zero(self):
        tax_input = TaxInput(employment_income=None, other_income=float("nan"))

        assert tax_input.gross_income == 0.0

    def test_negative_income_treated_as_zero(self):
        """Test that a negative amount gives the same result as leaving it at 0."""
        engine = TaxEngine()
        negative = engine.calculate(
            TaxInput(employment_income=-5000, other_income=60000)
        )
        zero = engine.calculate(TaxInput(employment_income=0, other_income=60000))

        assert negative == zero
        assert negative.gross_income == pytest.approx(60000)

    def test_infinite_and_negative_amounts_clamped(self):
        tax_input = TaxInput(
            employment_income=math.inf,
            capital_gains=-100,
            hecs_balance=-1,
            deductions=[Deduction(category="charity", amount=-250)],
        )

        assert tax_input.employment_income == 0.0
        assert tax_input.capital_gains == 0.0
        assert tax_input.hecs_balance == 0.0
        assert tax_input.total_deductions == 0.0


class TestTaxEngineProfiles:
    """Test cases for building tax inputs from household profiles."""

    def test_from_profile(self, investor_profile):
        tax_input = TaxEngine.from_profile(investor_profile)

        assert tax_input.employment_income == 100000
        assert tax_input.rental_income == pytest.approx(500 * 52)
        assert tax_input.rental_expenses == pytest.approx(6000 + 450000 * 0.06)

    def test_investor_is_negatively_geared(self, investor_profile):
        result = TaxEngine().calculate_for_profile(investor_profile)

        assert result.negative_gearing_loss == pytest.approx(33000 - 26000)
        assert result.taxable_income == pytest.approx(93000)

    def test_profile_deductions(self, employee_profile):
        profile = employee_profile.model_copy(update={"annual_deductions": 2000})
        result = TaxEngine().calculate_for_profile(profile)

        assert result.taxable_income == pytest.approx(118000)


class TestTaxOptimisation:
    """Test cases for the before/after optimisation comparison."""

    def test_salary_sacrifice_saves_tax(self):
        comparison = TaxEngine().compare_optimisation(
            TaxInput(employment_income=100000), salary_sacrifice=10000
        )

        assert comparison.optimised.taxable_income == pytest.approx(90000)
        assert comparison.savings > 0
        assert comparison.savings == pytest.approx(
            comparison.current.total_tax - comparison.optimised.total_tax
        )
        assert len(comparison.strategies) == 1

    def test_no_strategies_no_savings(self):
        comparison = TaxEngine().compare_optimisation(TaxInput(employment_income=80000))

        assert comparison.savings == 0.0
        assert comparison.strategies == []

    def test_all_strategies(self):
        comparison = TaxEngine().compare_optimisation(
            TaxInput(employment_income=150000, rental_income=20000, rental_expenses=20000),
            additional_deductions=3000,
            negative_gearing_opportunity=5000,
            salary_sacrifice=10000,
        )

        assert len(comparison.strategies) == 3
        assert comparison.optimised.negative_gearing_loss == pytest.approx(5000)
        assert comparison.savings > 0
