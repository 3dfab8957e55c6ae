"""
Monthly cashflow for a household profile.

Turns annual income, the tax position from ``TaxEngine``, living expenses and debt
repayments into a monthly surplus or deficit. This is the surplus the
serviceability engine borrows against.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from .amortization import loan_payment
from .profile import FinancialProfile, InvestmentProperty
from .rules import DEFAULT_RULES, DomainRules
from .tax_engine import TaxEngine

logger = logging.getLogger(__name__)

DEFAULT_REMAINING_TERM_YEARS = 30


class MonthlyIncome(BaseModel):
    """Monthly income by source."""

    employment: float = Field(default=0, description="Salary and wages")
    rental: float = Field(default=0, description="Rent, including property rent")
    investment: float = Field(default=0, description="Interest and dividends")
    other: float = Field(default=0, description="Capital gains and other income")

    @property
    def total(self) -> float:
        return self.employment + self.rental + self.investment + self.other


class MonthlyExpenses(BaseModel):
    """Monthly outgoings by type."""

    living: float = Field(default=0, description="Living expenses")
    tax: float = Field(default=0, description="Income tax and levies")
    hecs: float = Field(default=0, description="Income-contingent loan repayment")
    property_expenses: float = Field(
        default=0, description="Investment property holding costs"
    )
    loan_repayments: float = Field(
        default=0, description="Liability and property loan repayments"
    )

    @property
    def total(self) -> float:
        return (
            self.living
            + self.tax
            + self.hecs
            + self.property_expenses
            + self.loan_repayments
        )


class MonthlySurplusResult(BaseModel):
    """Monthly income, expenses and the resulting surplus."""

    income: MonthlyIncome = Field(..., description="Monthly income breakdown")
    expenses: MonthlyExpenses = Field(..., description="Monthly expense breakdown")
    surplus: float = Field(..., description="Income less expenses (negative = deficit)")
    savings_rate: float = Field(..., description="Surplus as a share of income (%)")

    @property
    def is_deficit(self) -> bool:
        return self.surplus < 0


def property_loan_repayment(investment_property: InvestmentProperty) -> float:
    """Monthly principal and interest repayment on an investment property loan."""
    return loan_payment(
        investment_property.loan_amount,
        investment_property.interest_rate / 100,
        investment_property.loan_term_years,
    )


def monthly_debt_repayments(profile: FinancialProfile) -> float:
    """All current debt repayments normalised to a monthly amount."""
    liabilities = sum(debt.monthly_repayment for debt in profile.liabilities)
    properties = sum(property_loan_repayment(p) for p in profile.investment_properties)
    return liabilities + properties


def calculate_monthly_surplus(
    profile: FinancialProfile, rules: Optional[DomainRules] = None
) -> MonthlySurplusResult:
    """
    Calculate the household's monthly surplus.

    Surplus = monthly income - (living expenses + tax + income-contingent repayment
    + property holding costs + debt repayments).

    Args:
        profile: Household profile
        rules: Domain rules (defaults to the current year)

    Returns:
        MonthlySurplusResult
    """
    rules = rules or DEFAULT_RULES
    tax_result = TaxEngine(rules.tax).calculate_for_profile(profile)

    income = MonthlyIncome(
        employment=profile.income.employment / 12,
        rental=profile.total_rental_income / 12,
        investment=(profile.income.investment + profile.income.franked_dividends) / 12,
        other=(profile.income.other + profile.income.capital_gains) / 12,
    )
    expenses = MonthlyExpenses(
        living=profile.monthly_expenses,
        tax=max(0.0, tax_result.total_tax - tax_result.hecs_repayment) / 12,
        hecs=tax_result.hecs_repayment / 12,
        property_expenses=sum(p.annual_expenses for p in profile.investment_properties)
        / 12,
        loan_repayments=monthly_debt_repayments(profile),
    )

    total_income = income.total
    surplus = total_income - expenses.total
    savings_rate = surplus / total_income * 100 if total_income > 0 else 0.0

    logger.debug(
        f"Monthly cashflow: income {total_income:.2f}, "
        f"expenses {expenses.total:.2f}, surplus {surplus:.2f}"
    )

    return MonthlySurplusResult(
        income=income,
        expenses=expenses,
        surplus=surplus,
        savings_rate=savings_rate,
    )


def debt_payments_at_retirement(profile: FinancialProfile, years: float) -> float:
    """
    Monthly debt repayments that will still be running in ``years`` time.

    A liability is still active when its remaining term (``years_remaining``, else
    ``loan_term_years``, else 30 years) exceeds ``years``. Investment property loans
    are treated the same way using their loan term.

    Args:
        profile: Household profile
        years: Years until retirement

    Returns:
        Monthly repayments of debts active at retirement
    """
    if years <= 0:
        return 0.0

    total = 0.0
    for liability in profile.liabilities:
        if liability.balance_owing <= 0 or liability.monthly_repayment <= 0:
            continue
        remaining = (
            liability.years_remaining
            or liability.loan_term_years
            or DEFAULT_REMAINING_TERM_YEARS
        )
        if remaining > years:
            total += liability.monthly_repayment

    for investment_property in profile.investment_properties:
        if investment_property.loan_amount <= 0:
            continue
        if investment_property.loan_term_years > years:
            total += property_loan_repayment(investment_property)

    return total
