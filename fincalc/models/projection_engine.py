"""
Retirement projection engine.

This module projects each asset class of a household profile forward to the target
retirement age, aggregates a retirement lump sum, derives the passive income it
supports and compares that income against a required-income target.

Growth is compounded annually. Contributions and savings are modelled as growing
annuities, with the closed-form limit used when the return and growth rates are
(almost) equal so that no projection ever divides by zero.
"""

import logging
import math
from typing import Dict, List, Literal, Optional, Union

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field

from .amortization import remaining_balance
from .cashflow import (
    calculate_monthly_surplus,
    debt_payments_at_retirement,
    monthly_debt_repayments,
)
from .profile import DEFAULT_ASSUMPTIONS, AssumptionSet, DecimalRates, FinancialProfile
from .rules import DEFAULT_RULES, DomainRules, RetirementRules

logger = logging.getLogger(__name__)

Years = Union[float, NDArray[np.float64]]
ProjectionStatus = Literal["surplus", "deficit"]

DEFAULT_SINGULARITY_EPSILON = 1e-4


class ProjectionInputError(ValueError):
    """Raised when a projection is requested with no years to project over."""


def future_value(present_value: float, rate: float, years: Years) -> Years:
    """
    Compound a present value annually.

    Args:
        present_value: Value today
        rate: Annual growth rate (as decimal)
        years: Years to compound over (scalar or array)

    Returns:
        Future value; the present value itself when years is 0
    """
    if np.isscalar(years) and years <= 0:
        return present_value
    return present_value * (1 + rate) ** years


def growing_annuity_future_value(
    payment: float,
    rate: float,
    growth: float,
    years: Years,
    epsilon: float = DEFAULT_SINGULARITY_EPSILON,
) -> Years:
    """
    Future value of an annual payment that grows each year.

    FV = c * ((1+r)^n - (1+g)^n) / (r - g). When |r - g| < epsilon the limit
    c * n * (1+r)^(n-1) is used instead.

    Args:
        payment: First-year payment
        rate: Annual return (as decimal)
        growth: Annual payment growth (as decimal)
        years: Number of annual payments (scalar or array)
        epsilon: Threshold below which rate and growth are treated as equal

    Returns:
        Future value of the payments; 0 when years is 0
    """
    if np.isscalar(years) and years <= 0:
        return 0.0
    if abs(rate - growth) < epsilon:
        return payment * years * (1 + rate) ** (years - 1)
    return payment * ((1 + rate) ** years - (1 + growth) ** years) / (rate - growth)


class CurrentPosition(BaseModel):
    """The household's position today."""

    retirement_fund: float = Field(..., ge=0, description="Retirement fund balance")
    shares: float = Field(..., ge=0, description="Share portfolio value")
    cash: float = Field(..., ge=0, description="Cash savings")
    property_assets: float = Field(
        ..., ge=0, description="Property held as an asset (e.g., home)"
    )
    other_assets: float = Field(..., ge=0, description="Other assets")
    investment_property_value: float = Field(
        ..., ge=0, description="Value of investment properties"
    )
    investment_property_debt: float = Field(
        ..., ge=0, description="Loans against investment properties"
    )
    property_equity: float = Field(..., ge=0, description="Investment property equity")
    total_assets: float = Field(..., ge=0, description="All assets")
    total_liabilities: float = Field(..., ge=0, description="All debts")
    net_worth: float = Field(..., description="Assets less liabilities")
    monthly_debt_payments: float = Field(..., ge=0, description="Debt repayments")
    monthly_rental_income: float = Field(..., ge=0, description="Rent received")
    monthly_cashflow: float = Field(..., description="Monthly surplus or deficit")
    total_annual_income: float = Field(..., ge=0, description="Gross annual income")


class FuturePosition(BaseModel):
    """The household's projected position at retirement."""

    retirement_fund: float = Field(..., ge=0, description="Retirement fund balance")
    shares: float = Field(..., ge=0, description="Share portfolio value")
    savings: float = Field(..., ge=0, description="Accumulated savings")
    property_assets: float = Field(..., ge=0, description="Property held as an asset")
    other_assets: float = Field(..., ge=0, description="Other assets")
    investment_property_value: float = Field(
        ..., ge=0, description="Value of investment properties"
    )
    remaining_property_loans: float = Field(
        ..., ge=0, description="Outstanding investment property loans"
    )
    property_equity: float = Field(..., ge=0, description="Investment property equity")
    lump_sum: float = Field(..., ge=0, description="Sum of all projected assets")


class SavingsDepletionResult(BaseModel):
    """How long liquid savings last against a monthly deficit."""

    total_savings: float = Field(..., description="Savings drawn on")
    monthly_deficit: float = Field(..., description="Monthly shortfall")
    years_to_depletion: float = Field(
        ..., description="Years until savings run out (inf if never)"
    )

    @property
    def is_depleting(self) -> bool:
        return math.isfinite(self.years_to_depletion)


class ProjectionResult(BaseModel):
    """Retirement projection and comparison against the income target."""

    model_config = ConfigDict(frozen=True)

    years: int = Field(..., ge=1, description="Years until retirement")
    current: CurrentPosition = Field(..., description="Position today")
    future: FuturePosition = Field(..., description="Position at retirement")
    required_income: float = Field(..., ge=0, description="Annual income target")
    projected_rental_income: float = Field(
        ..., ge=0, description="Annual rent at retirement"
    )
    projected_passive_income: float = Field(
        ..., ge=0, description="Annual income from lump sum withdrawals and rent"
    )
    debt_payments_at_retirement: float = Field(
        ..., ge=0, description="Monthly repayments still running at retirement"
    )
    available_income: float = Field(
        ..., description="Passive income less debt repayments at retirement"
    )
    monthly_surplus_deficit: float = Field(
        ..., description="Monthly gap between available and required income"
    )
    status: ProjectionStatus = Field(..., description="Surplus or deficit")
    percentage_of_target: float = Field(
        ..., description="Available income as a share of the target (%)"
    )
    savings_depletion: SavingsDepletionResult = Field(
        ..., description="Depletion of liquid assets against any deficit"
    )


class ProjectionTimeline(BaseModel):
    """Year-by-year projected values, index 0 being today."""

    model_config = {"arbitrary_types_allowed": True}

    ages: NDArray[np.int64] = Field(..., description="Age at each point")
    retirement_fund: NDArray[np.float64] = Field(..., description="Fund balance")
    shares: NDArray[np.float64] = Field(..., description="Share portfolio value")
    savings: NDArray[np.float64] = Field(..., description="Accumulated savings")
    property_assets: NDArray[np.float64] = Field(..., description="Property assets")
    other_assets: NDArray[np.float64] = Field(..., description="Other assets")
    property_equity: NDArray[np.float64] = Field(
        ..., description="Investment property equity"
    )
    lump_sum: NDArray[np.float64] = Field(..., description="Sum of all classes")

    def __len__(self) -> int:
        return len(self.ages)


def savings_depletion(
    balances: List[float], monthly_deficit: float
) -> SavingsDepletionResult:
    """
    Estimate how many years savings last against a monthly deficit.

    Args:
        balances: Balances of the accounts drawn on
        monthly_deficit: Monthly shortfall (positive amount)

    Returns:
        SavingsDepletionResult; years is infinite when there is no deficit or no
        savings to draw on
    """
    total_savings = float(sum(b for b in balances if b and b > 0))
    if monthly_deficit <= 0 or total_savings <= 0:
        years = math.inf
    else:
        years = total_savings / (monthly_deficit * 12)
    return SavingsDepletionResult(
        total_savings=total_savings,
        monthly_deficit=max(0.0, monthly_deficit),
        years_to_depletion=years,
    )


class ProjectionEngine:
    """Projects a household profile to its retirement age."""

    def __init__(self, rules: Optional[DomainRules] = None):
        """Initialize the projection engine.

        Args:
            rules: Domain rules (defaults to the current year)
        """
        self.rules = rules or DEFAULT_RULES

    @property
    def retirement_rules(self) -> RetirementRules:
        return self.rules.retirement

    def _years(self, profile: FinancialProfile) -> int:
        years = profile.years_to_retirement
        if years <= 0:
            logger.warning(
                f"Rejected projection: retirement age {profile.retirement_age} "
                f"is not after current age {profile.current_age}"
            )
            raise ProjectionInputError(
                f"Retirement age ({profile.retirement_age}) must be after "
                f"current age ({profile.current_age})"
            )
        return years

    def _asset_paths(
        self, profile: FinancialProfile, rates: DecimalRates, t: NDArray[np.float64]
    ) -> Dict[str, NDArray[np.float64]]:
        """Projected value of each asset class at each year in ``t``."""
        r = self.retirement_rules
        eps = r.annuity_singularity_epsilon
        fund_return = rates.retirement_fund_return - r.fund_fee_pct / 100
        employment = profile.income.employment

        contribution = min(employment * r.contribution_rate, r.contribution_cap)
        retirement_fund = future_value(
            profile.assets_of_class("retirement_fund"), fund_return, t
        ) + growing_annuity_future_value(
            contribution, fund_return, rates.salary_growth, t, eps
        )

        shares = future_value(profile.assets_of_class("shares"), rates.share_return, t)
        property_assets = future_value(
            profile.assets_of_class("property"), rates.property_growth, t
        )
        other_assets = future_value(
            profile.assets_of_class("other"), r.other_asset_growth, t
        )

        property_value = np.zeros_like(t)
        property_loans = np.zeros_like(t)
        for p in profile.investment_properties:
            property_value = property_value + future_value(
                p.current_value, rates.property_growth, t
            )
            property_loans = property_loans + np.array(
                [
                    remaining_balance(
                        p.loan_amount, p.interest_rate / 100, p.loan_term_years, year
                    )
                    for year in t
                ]
            )
        property_equity = np.maximum(0.0, property_value - property_loans)

        annual_rent = sum(p.annual_rent for p in profile.investment_properties)
        holding_costs = sum(p.annual_expenses for p in profile.investment_properties)
        net_property_cashflow = growing_annuity_future_value(
            annual_rent, fund_return, rates.rent_growth, t, eps
        ) - growing_annuity_future_value(
            holding_costs, fund_return, rates.inflation, t, eps
        )
        savings = (
            future_value(profile.assets_of_class("cash"), fund_return, t)
            + growing_annuity_future_value(
                employment * rates.savings_rate,
                fund_return,
                rates.salary_growth,
                t,
                eps,
            )
            + net_property_cashflow
        )
        savings = np.maximum(0.0, savings)

        lump_sum = (
            retirement_fund
            + shares
            + savings
            + property_assets
            + other_assets
            + property_equity
        )
        return {
            "retirement_fund": retirement_fund,
            "shares": shares,
            "savings": savings,
            "property_assets": property_assets,
            "other_assets": other_assets,
            "property_value": property_value,
            "property_loans": property_loans,
            "property_equity": property_equity,
            "lump_sum": lump_sum,
        }

    def current_position(self, profile: FinancialProfile) -> CurrentPosition:
        """Summarise the household's position today."""
        property_value = sum(p.current_value for p in profile.investment_properties)
        property_debt = sum(p.loan_amount for p in profile.investment_properties)
        liquid_and_held = sum(a.value for a in profile.assets)
        total_assets = liquid_and_held + property_value
        total_liabilities = (
            sum(debt.balance_owing for debt in profile.liabilities) + property_debt
        )
        return CurrentPosition(
            retirement_fund=profile.assets_of_class("retirement_fund"),
            shares=profile.assets_of_class("shares"),
            cash=profile.assets_of_class("cash"),
            property_assets=profile.assets_of_class("property"),
            other_assets=profile.assets_of_class("other"),
            investment_property_value=property_value,
            investment_property_debt=property_debt,
            property_equity=sum(
                max(0.0, p.current_value - p.loan_amount)
                for p in profile.investment_properties
            ),
            total_assets=total_assets,
            total_liabilities=total_liabilities,
            net_worth=total_assets - total_liabilities,
            monthly_debt_payments=monthly_debt_repayments(profile),
            monthly_rental_income=profile.total_rental_income / 12,
            monthly_cashflow=calculate_monthly_surplus(profile, self.rules).surplus,
            total_annual_income=profile.gross_income,
        )

    def project(
        self,
        profile: FinancialProfile,
        assumptions: AssumptionSet = DEFAULT_ASSUMPTIONS,
    ) -> ProjectionResult:
        """
        Project a profile to retirement and compare against the income target.

        Args:
            profile: Household profile
            assumptions: Economic assumptions (percentages)

        Returns:
            ProjectionResult

        Raises:
            ProjectionInputError: If retirement age is not after current age
        """
        years = self._years(profile)
        rates = assumptions.as_decimals()
        paths = self._asset_paths(profile, rates, np.array([years], dtype=np.float64))
        final = {name: float(values[-1]) for name, values in paths.items()}

        future = FuturePosition(
            retirement_fund=final["retirement_fund"],
            shares=final["shares"],
            savings=final["savings"],
            property_assets=final["property_assets"],
            other_assets=final["other_assets"],
            investment_property_value=final["property_value"],
            remaining_property_loans=final["property_loans"],
            property_equity=final["property_equity"],
            lump_sum=final["lump_sum"],
        )

        rental_income = future_value(
            sum(p.annual_rent for p in profile.investment_properties),
            rates.rent_growth,
            years,
        )
        passive_income = future.lump_sum * rates.withdrawal_rate + rental_income
        retention = self.retirement_rules.retention_fraction
        required_income = retention * profile.gross_income
        debt_payments = debt_payments_at_retirement(profile, years)
        available_income = passive_income - debt_payments * 12
        monthly_gap = (available_income - required_income) / 12

        if required_income > 0:
            percentage = available_income / required_income * 100
        else:
            percentage = 100.0

        depletion = savings_depletion(
            [future.savings, future.shares, future.retirement_fund],
            max(0.0, -monthly_gap),
        )

        logger.debug(
            f"Projected {years} years: lump sum {future.lump_sum:.2f}, "
            f"available income {available_income:.2f}, "
            f"required {required_income:.2f}"
        )

        return ProjectionResult(
            years=years,
            current=self.current_position(profile),
            future=future,
            required_income=required_income,
            projected_rental_income=rental_income,
            projected_passive_income=passive_income,
            debt_payments_at_retirement=debt_payments,
            available_income=available_income,
            monthly_surplus_deficit=monthly_gap,
            status="surplus" if monthly_gap >= 0 else "deficit",
            percentage_of_target=percentage,
            savings_depletion=depletion,
        )

    def build_timeline(
        self,
        profile: FinancialProfile,
        assumptions: AssumptionSet = DEFAULT_ASSUMPTIONS,
    ) -> ProjectionTimeline:
        """
        Build year-by-year projected values from today to retirement.

        Raises:
            ProjectionInputError: If retirement age is not after current age
        """
        years = self._years(profile)
        t = np.arange(years + 1, dtype=np.float64)
        paths = self._asset_paths(profile, assumptions.as_decimals(), t)
        return ProjectionTimeline(
            ages=profile.current_age + np.arange(years + 1, dtype=np.int64),
            retirement_fund=paths["retirement_fund"],
            shares=paths["shares"],
            savings=paths["savings"],
            property_assets=paths["property_assets"],
            other_assets=paths["other_assets"],
            property_equity=paths["property_equity"],
            lump_sum=paths["lump_sum"],
        )
