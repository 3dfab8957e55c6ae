"""
Tax optimisation suggestions.

Generates a ranked list of strategies that could reduce a taxpayer's total tax,
each with an estimated annual saving at their current marginal rate.
"""

import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .tax_engine import TaxInput, TaxResult

logger = logging.getLogger(__name__)

Difficulty = Literal["easy", "medium", "hard"]
StrategyCategory = Literal["deductions", "retirement", "investments", "timing", "other"]


class OptimizationStrategy(BaseModel):
    """A single tax optimisation suggestion."""

    strategy: str = Field(..., description="Short strategy name")
    description: str = Field(..., description="What to do and why it saves tax")
    potential_saving: float = Field(..., description="Estimated annual tax saving")
    difficulty: Difficulty = Field(..., description="Effort to implement")
    category: StrategyCategory = Field(..., description="Strategy category")


class StrategyAssumptions(BaseModel):
    """Thresholds and example figures used when sizing suggestions."""

    model_config = ConfigDict(frozen=True)

    donation_target: float = Field(
        default=2000, ge=0, description="Suggested donations"
    )
    concessional_cap: float = Field(
        default=27500, ge=0, description="Annual cap on pre-tax contributions"
    )
    contribution_tax_rate: float = Field(
        default=15.0, ge=0, le=100, description="Tax on pre-tax contributions (%)"
    )
    max_sacrifice_share: float = Field(
        default=0.15, ge=0, le=1, description="Largest share of income to sacrifice"
    )
    sacrifice_income_threshold: float = Field(default=50000, ge=0)
    property_income_threshold: float = Field(default=80000, ge=0)
    example_property_value: float = Field(default=750000, ge=0)
    example_rental_yield: float = Field(default=0.04, ge=0, le=1)
    example_interest_rate: float = Field(default=0.065, ge=0, le=1)
    example_lvr: float = Field(default=0.80, ge=0, le=1)
    example_expense_ratio: float = Field(default=0.02, ge=0, le=1)
    health_premium: float = Field(default=2000, ge=0)
    health_rebate: float = Field(default=0.25, ge=0, le=1)
    work_expense_target: float = Field(default=3000, ge=0)
    cgt_timing_factor: float = Field(
        default=0.25, ge=0, le=1, description="Share of gains saved by timing sales"
    )


DEFAULT_STRATEGY_ASSUMPTIONS = StrategyAssumptions()


def _claimed(tax_input: TaxInput, category: str) -> float:
    return sum(d.amount for d in tax_input.deductions if d.category == category)


def generate_optimization_strategies(
    tax_input: TaxInput,
    result: TaxResult,
    voluntary_contributions: float = 0.0,
    assumptions: Optional[StrategyAssumptions] = None,
) -> List[OptimizationStrategy]:
    """
    Suggest ways to reduce tax, largest estimated saving first.

    Args:
        tax_input: Input the result was calculated from
        result: Current tax position
        voluntary_contributions: Pre-tax retirement contributions already made
        assumptions: Thresholds and example figures

    Returns:
        Strategies sorted by potential saving, descending
    """
    a = assumptions or DEFAULT_STRATEGY_ASSUMPTIONS
    marginal = result.marginal_rate
    income = tax_input.employment_income or result.gross_income
    strategies = []

    donations = _claimed(tax_input, "charity")
    if donations < a.donation_target:
        suggested = a.donation_target - donations
        strategies.append(
            OptimizationStrategy(
                strategy="Charitable donations",
                description=(
                    f"Increase charitable donations by ${suggested:,.0f}. Donations to "
                    f"registered charities are deductible at your marginal rate of "
                    f"{marginal:.1f}%."
                ),
                potential_saving=suggested * marginal / 100,
                difficulty="easy",
                category="deductions",
            )
        )

    if (
        voluntary_contributions < a.concessional_cap
        and income > a.sacrifice_income_threshold
    ):
        contribution = min(
            a.concessional_cap - voluntary_contributions,
            income * a.max_sacrifice_share,
        )
        strategies.append(
            OptimizationStrategy(
                strategy="Pre-tax retirement contributions",
                description=(
                    f"Salary sacrifice ${contribution:,.0f} into your retirement fund. "
                    f"It is taxed at {a.contribution_tax_rate:.0f}% instead of your "
                    f"marginal rate of {marginal:.1f}%."
                ),
                potential_saving=max(
                    0.0, contribution * (marginal - a.contribution_tax_rate) / 100
                ),
                difficulty="medium",
                category="retirement",
            )
        )

    if result.negative_gearing_loss > 0:
        strategies.append(
            OptimizationStrategy(
                strategy="Rental property deductions",
                description=(
                    f"Your rental property runs at a loss of "
                    f"${result.negative_gearing_loss:,.0f}, which is offset against "
                    f"your other income at {marginal:.1f}%."
                ),
                potential_saving=result.negative_gearing_benefit,
                difficulty="medium",
                category="investments",
            )
        )

    if tax_input.rental_income == 0 and income > a.property_income_threshold:
        value = a.example_property_value
        rent = value * a.example_rental_yield
        costs = value * a.example_lvr * a.example_interest_rate
        costs += value * a.example_expense_ratio
        loss = max(0.0, costs - rent)
        strategies.append(
            OptimizationStrategy(
                strategy="New investment property",
                description=(
                    f"An investment property worth ${value:,.0f} earning "
                    f"${rent:,.0f} a year in rent with ${costs:,.0f} of deductible "
                    f"costs would reduce your taxable income through negative gearing."
                ),
                potential_saving=loss * marginal / 100,
                difficulty="hard",
                category="investments",
            )
        )

    if not tax_input.has_private_cover and result.levy_surcharge > 0:
        rebate = a.health_premium * a.health_rebate
        net_cost = a.health_premium - rebate - result.levy_surcharge
        strategies.append(
            OptimizationStrategy(
                strategy="Private hospital cover",
                description=(
                    f"Taking out private hospital cover removes the "
                    f"${result.levy_surcharge:,.0f} levy surcharge. A typical "
                    f"${a.health_premium:,.0f} premium less a ${rebate:,.0f} rebate "
                    f"costs a net ${net_cost:,.0f} after the surcharge saving."
                ),
                potential_saving=result.levy_surcharge,
                difficulty="easy",
                category="deductions",
            )
        )

    claimed_work_expenses = _claimed(tax_input, "work-related")
    work_expenses = max(0.0, a.work_expense_target - claimed_work_expenses)
    if work_expenses > 0:
        strategies.append(
            OptimizationStrategy(
                strategy="Work-related expenses",
                description=(
                    f"Claim up to ${work_expenses:,.0f} more in work-related expenses "
                    f"such as home office, tools and professional development."
                ),
                potential_saving=work_expenses * marginal / 100,
                difficulty="easy",
                category="deductions",
            )
        )

    if tax_input.capital_gains > 0:
        strategies.append(
            OptimizationStrategy(
                strategy="Capital gains timing",
                description=(
                    "Time asset sales across financial years and hold for at least "
                    "twelve months to use the capital gains discount."
                ),
                potential_saving=tax_input.capital_gains
                * a.cgt_timing_factor
                * marginal
                / 100,
                difficulty="medium",
                category="timing",
            )
        )

    strategies.sort(key=lambda s: s.potential_saving, reverse=True)
    logger.debug(f"Generated {len(strategies)} tax optimisation strategies")
    return strategies


def total_tax_savings(strategies: List[OptimizationStrategy]) -> float:
    """Sum of the potential savings across strategies."""
    return sum(s.potential_saving for s in strategies)
