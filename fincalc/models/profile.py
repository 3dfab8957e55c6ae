"""
Pydantic models for household financial profiles and economic assumptions.

This module defines the input data contracts for the calculation engines. The
engines treat every missing or NaN numeric field as 0, so a profile that is only
partly filled in still produces a result.
"""

import math
from typing import Any, List, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

AssetClass = Literal["retirement_fund", "shares", "cash", "property", "other"]
RepaymentFrequency = Literal["weekly", "fortnightly", "monthly"]

PAYMENTS_PER_YEAR = {"weekly": 52, "fortnightly": 26, "monthly": 12}
WEEKS_PER_YEAR = 52


def coerce_number(value: Any) -> Any:
    """Map ``None`` and NaN to 0 and leave anything else for pydantic to validate."""
    if value is None:
        return 0.0
    if isinstance(value, float) and math.isnan(value):
        return 0.0
    return value


class ZeroFilledModel(BaseModel):
    """Base model that zero-fills missing or NaN numeric fields."""

    @model_validator(mode="before")
    @classmethod
    def zero_fill_numbers(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cleaned = dict(data)
        for name, field in cls.model_fields.items():
            if field.annotation not in (float, int):
                continue
            key = field.alias or name
            if key in cleaned:
                cleaned[key] = coerce_number(cleaned[key])
        return cleaned


class Asset(ZeroFilledModel):
    """A single asset held by the household."""

    name: str = Field(default="", description="Asset name")
    value: float = Field(default=0, ge=0, description="Current market value")
    asset_class: AssetClass = Field(..., description="Asset class")


class Liability(ZeroFilledModel):
    """An existing debt with a regular repayment."""

    name: str = Field(default="", description="Lender or loan name")
    balance_owing: float = Field(default=0, ge=0, description="Outstanding balance")
    repayment_amount: float = Field(
        default=0, ge=0, description="Repayment per period at the given frequency"
    )
    frequency: RepaymentFrequency = Field(
        default="monthly", description="Repayment frequency"
    )
    interest_rate: float = Field(
        default=0, ge=0, le=100, description="Annual interest rate (%)"
    )
    loan_term_years: float = Field(
        default=0, ge=0, description="Original term in years"
    )
    years_remaining: float = Field(
        default=0, ge=0, description="Years left until the loan is repaid"
    )

    @property
    def monthly_repayment(self) -> float:
        """Repayment normalised to a monthly amount."""
        return self.repayment_amount * PAYMENTS_PER_YEAR[self.frequency] / 12


class InvestmentProperty(ZeroFilledModel):
    """An investment property and the loan secured against it."""

    address: str = Field(default="", description="Property address")
    current_value: float = Field(default=0, ge=0, description="Current market value")
    loan_amount: float = Field(default=0, ge=0, description="Loan principal")
    interest_rate: float = Field(
        default=0, ge=0, le=100, description="Annual loan interest rate (%)"
    )
    loan_term_years: float = Field(default=30, ge=0, description="Loan term in years")
    weekly_rent: float = Field(default=0, ge=0, description="Weekly rent received")
    annual_expenses: float = Field(
        default=0, ge=0, description="Annual holding costs excluding loan interest"
    )

    @property
    def annual_rent(self) -> float:
        return self.weekly_rent * WEEKS_PER_YEAR

    @property
    def monthly_rent(self) -> float:
        return self.annual_rent / 12

    @property
    def annual_interest(self) -> float:
        """First-year interest on the loan, the deductible financing cost."""
        return self.loan_amount * self.interest_rate / 100


class IncomeSources(ZeroFilledModel):
    """Annual income by source."""

    employment: float = Field(default=0, ge=0, description="Salary and wages")
    rental: float = Field(
        default=0,
        ge=0,
        description="Rent from sources other than the listed investment properties",
    )
    investment: float = Field(
        default=0, ge=0, description="Interest and unfranked dividends"
    )
    franked_dividends: float = Field(
        default=0, ge=0, description="Franked dividends received"
    )
    capital_gains: float = Field(default=0, ge=0, description="Realised capital gains")
    other: float = Field(default=0, ge=0, description="Any other income")

    @property
    def total(self) -> float:
        return (
            self.employment
            + self.rental
            + self.investment
            + self.franked_dividends
            + self.capital_gains
            + self.other
        )


class FinancialProfile(ZeroFilledModel):
    """Snapshot of one household member, or a merged household."""

    current_age: int = Field(default=0, ge=0, le=120, description="Current age")
    retirement_age: int = Field(
        default=0, ge=0, le=120, description="Target retirement age"
    )
    income: IncomeSources = Field(
        default_factory=IncomeSources, description="Annual income by source"
    )
    monthly_expenses: float = Field(
        default=0, ge=0, description="Monthly living expenses"
    )
    annual_deductions: float = Field(
        default=0, ge=0, description="Annual work-related and other tax deductions"
    )
    hecs_balance: float = Field(
        default=0, ge=0, description="Outstanding income-contingent loan balance"
    )
    has_private_cover: bool = Field(
        default=False, description="Holds adequate private hospital cover"
    )
    medicare_exempt: bool = Field(
        default=False, description="Exempt from the health levy"
    )
    assets: List[Asset] = Field(default_factory=list, description="Assets held")
    liabilities: List[Liability] = Field(
        default_factory=list, description="Existing debts"
    )
    investment_properties: List[InvestmentProperty] = Field(
        default_factory=list, description="Investment properties"
    )

    @field_validator("income", mode="before")
    @classmethod
    def default_income(cls, v: Any) -> Any:
        return IncomeSources() if v is None else v

    def assets_of_class(self, asset_class: AssetClass) -> float:
        """Sum of asset values for one asset class."""
        return sum(a.value for a in self.assets if a.asset_class == asset_class)

    @property
    def total_rental_income(self) -> float:
        """Annual rent from investment properties plus any other rent."""
        return self.income.rental + sum(
            p.annual_rent for p in self.investment_properties
        )

    @property
    def gross_income(self) -> float:
        """Total annual income from every source, including property rent."""
        return self.income.total + sum(
            p.annual_rent for p in self.investment_properties
        )

    @property
    def years_to_retirement(self) -> int:
        return self.retirement_age - self.current_age


class DecimalRates(NamedTuple):
    """Assumption rates converted from percentages to decimals."""

    inflation: float
    salary_growth: float
    retirement_fund_return: float
    share_return: float
    property_growth: float
    rent_growth: float
    withdrawal_rate: float
    savings_rate: float


class AssumptionSet(ZeroFilledModel):
    """
    Economic growth and return assumptions, all annual percentages.

    Every field is required; use ``DEFAULT_ASSUMPTIONS`` (or ``model_copy(update=...)``
    on it) rather than relying on fallbacks inside the formulas.
    """

    model_config = ConfigDict(frozen=True)

    inflation: float = Field(..., ge=0, description="Inflation rate (%)")
    salary_growth: float = Field(..., ge=0, description="Salary growth rate (%)")
    retirement_fund_return: float = Field(
        ..., ge=0, description="Retirement fund return (%)"
    )
    share_return: float = Field(..., ge=0, description="Share market return (%)")
    property_growth: float = Field(..., ge=0, description="Property growth rate (%)")
    rent_growth: float = Field(..., ge=0, description="Rent growth rate (%)")
    withdrawal_rate: float = Field(
        ..., ge=0, description="Safe withdrawal rate in retirement (%)"
    )
    savings_rate: float = Field(
        ..., ge=0, description="Voluntary savings as share of employment income (%)"
    )

    def as_decimals(self) -> DecimalRates:
        """Convert every rate from a percentage to a decimal."""
        return DecimalRates(
            inflation=self.inflation / 100,
            salary_growth=self.salary_growth / 100,
            retirement_fund_return=self.retirement_fund_return / 100,
            share_return=self.share_return / 100,
            property_growth=self.property_growth / 100,
            rent_growth=self.rent_growth / 100,
            withdrawal_rate=self.withdrawal_rate / 100,
            savings_rate=self.savings_rate / 100,
        )


DEFAULT_ASSUMPTIONS = AssumptionSet(
    inflation=2.5,
    salary_growth=3.5,
    retirement_fund_return=7.5,
    share_return=9.5,
    property_growth=6.5,
    rent_growth=4.0,
    withdrawal_rate=4.0,
    savings_rate=0.0,
)


class ProposedLoan(ZeroFilledModel):
    """A new loan being assessed for serviceability."""

    amount: float = Field(default=0, ge=0, description="Loan principal")
    interest_rate: float = Field(
        default=6.0, ge=0, le=100, description="Annual interest rate (%)"
    )
    term_years: float = Field(default=30, ge=0, le=50, description="Loan term in years")
