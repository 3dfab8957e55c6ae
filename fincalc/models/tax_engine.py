"""
Income tax engine.

This module computes income tax from a progressive bracket table, the flat health
levy and its income-tested surcharge, income-contingent loan repayments, franking
credit offsets and negative gearing adjustments.

Nothing here raises for out-of-range numbers: negative or NaN amounts degrade to 0
and incomes below the lowest band pay no bracket tax, so the engine can be called on
every keystroke of a partly completed form.
"""

import logging
import math
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .profile import FinancialProfile, ZeroFilledModel, coerce_number
from .rules import DEFAULT_RULES, TaxBracket, TaxRules

logger = logging.getLogger(__name__)


def _amount(value: Optional[float]) -> float:
    """Clamp a monetary input to a finite non-negative float."""
    value = coerce_number(value)
    if math.isinf(value) or value < 0:
        return 0.0
    return float(value)


class AmountModel(ZeroFilledModel):
    """Base model whose monetary fields clamp negative or infinite values to 0."""

    @model_validator(mode="before")
    @classmethod
    def clamp_amounts(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cleaned = dict(data)
        for name, field in cls.model_fields.items():
            if field.annotation is not float:
                continue
            key = field.alias or name
            value = cleaned.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                cleaned[key] = _amount(value)
        return cleaned


class Deduction(AmountModel):
    """A claimed tax deduction."""

    category: str = Field(default="other", description="Deduction category")
    amount: float = Field(default=0, ge=0, description="Deduction amount")
    description: str = Field(default="", description="What the deduction is for")


class TaxInput(AmountModel):
    """Annual income and circumstances for one taxpayer."""

    employment_income: float = Field(default=0, ge=0, description="Salary and wages")
    other_income: float = Field(
        default=0, ge=0, description="Interest, unfranked dividends and other income"
    )
    rental_income: float = Field(default=0, ge=0, description="Gross rent received")
    rental_expenses: float = Field(
        default=0, ge=0, description="Deductible property costs including interest"
    )
    franked_dividends: float = Field(
        default=0, ge=0, description="Franked dividends received"
    )
    capital_gains: float = Field(default=0, ge=0, description="Realised capital gains")
    cgt_discount_eligible: bool = Field(
        default=True, description="Assets held long enough for the CGT discount"
    )
    deductions: List[Deduction] = Field(
        default_factory=list, description="Claimed deductions"
    )
    hecs_balance: float = Field(
        default=0, ge=0, description="Outstanding income-contingent loan balance"
    )
    has_private_cover: bool = Field(
        default=False, description="Holds adequate private hospital cover"
    )
    medicare_exempt: bool = Field(default=False, description="Exempt from the levy")

    @property
    def gross_income(self) -> float:
        return (
            self.employment_income
            + self.other_income
            + self.rental_income
            + self.franked_dividends
            + self.capital_gains
        )

    @property
    def total_deductions(self) -> float:
        return sum(d.amount for d in self.deductions)


class TaxResult(BaseModel):
    """Result of a tax calculation. Rates are percentages."""

    model_config = ConfigDict(frozen=True)

    gross_income: float = Field(..., description="Total gross income")
    taxable_income: float = Field(..., ge=0, description="Taxable income")
    income_tax: float = Field(
        ..., ge=0, description="Bracket tax after the franking credit offset"
    )
    medicare_levy: float = Field(..., ge=0, description="Flat health levy")
    levy_surcharge: float = Field(
        ..., ge=0, description="Surcharge for no private hospital cover"
    )
    hecs_repayment: float = Field(
        ..., ge=0, description="Income-contingent loan repayment"
    )
    total_tax: float = Field(..., ge=0, description="All tax, levies and repayments")
    after_tax_income: float = Field(..., description="Gross income less total tax")
    marginal_rate: float = Field(
        ..., ge=0, description="Rate on the next dollar of taxable income (%)"
    )
    average_rate: float = Field(..., ge=0, description="Total tax over gross (%)")
    franking_credit_offset: float = Field(..., ge=0, description="Franking credits")
    total_deductions: float = Field(..., ge=0, description="Claimed deductions")
    negative_gearing_loss: float = Field(
        ..., ge=0, description="Property net loss offset against other income"
    )
    negative_gearing_benefit: float = Field(
        ..., ge=0, description="Tax saved by the property net loss"
    )

    @property
    def total_levy(self) -> float:
        return self.medicare_levy + self.levy_surcharge


class NegativeGearingResult(BaseModel):
    """Net loss and tax benefit of a negatively geared property."""

    total_rental_income: float = Field(..., ge=0, description="Annual rent")
    total_expenses: float = Field(..., ge=0, description="Annual deductible costs")
    net_loss: float = Field(..., ge=0, description="Costs exceeding rent")
    tax_benefit: float = Field(..., ge=0, description="Net loss times marginal rate")


class TaxOptimisationResult(BaseModel):
    """Comparison of the current position against an optimised one."""

    current: TaxResult = Field(..., description="Tax on the current position")
    optimised: TaxResult = Field(..., description="Tax after the strategies")
    savings: float = Field(..., description="Reduction in total tax")
    strategies: List[str] = Field(
        default_factory=list, description="Strategies applied"
    )


def find_bracket(taxable_income: float, rules: TaxRules) -> TaxBracket:
    """Return the band a taxable income falls in, scanning from the highest band."""
    for bracket in rules.brackets_descending():
        if taxable_income > bracket.min:
            return bracket
    return rules.brackets[0]


def calculate_income_tax(taxable_income: float, rules: TaxRules) -> float:
    """Bracket tax on taxable income, before any offsets."""
    taxable_income = _amount(taxable_income)
    if taxable_income <= max(0.0, rules.brackets[0].min):
        return 0.0
    bracket = find_bracket(taxable_income, rules)
    return bracket.base_tax + (taxable_income - bracket.min) * bracket.rate


def calculate_medicare_levy(
    taxable_income: float, rules: TaxRules, is_exempt: bool = False
) -> float:
    """Flat health levy on taxable income above the low-income threshold."""
    taxable_income = _amount(taxable_income)
    if is_exempt or taxable_income <= rules.levy.low_income_threshold:
        return 0.0
    return taxable_income * rules.levy.rate


def surcharge_rate(
    taxable_income: float, rules: TaxRules, has_private_cover: bool = False
) -> float:
    """Surcharge rate that applies at a taxable income, as a decimal."""
    if has_private_cover:
        return 0.0
    taxable_income = _amount(taxable_income)
    for tier in rules.surcharge_tiers_descending():
        if taxable_income > tier.threshold:
            return tier.rate
    return 0.0


def calculate_levy_surcharge(
    taxable_income: float, rules: TaxRules, has_private_cover: bool = False
) -> float:
    """Income-tested surcharge for taxpayers without private hospital cover."""
    taxable_income = _amount(taxable_income)
    return taxable_income * surcharge_rate(taxable_income, rules, has_private_cover)


def calculate_hecs_repayment(
    gross_income: float, rules: TaxRules, hecs_balance: float = 0.0
) -> float:
    """
    Calculate the compulsory income-contingent loan repayment.

    The repayment is a flat percentage of gross (not taxable) income, chosen by the
    highest band the income reaches, and never more than the outstanding balance.

    Args:
        gross_income: Annual gross income
        rules: Tax schedule holding the repayment bands
        hecs_balance: Outstanding loan balance

    Returns:
        Annual repayment amount
    """
    gross_income = _amount(gross_income)
    hecs_balance = _amount(hecs_balance)
    if hecs_balance <= 0:
        return 0.0

    for band in rules.repayment_bands_descending():
        if gross_income >= band.min:
            return min(gross_income * band.rate, hecs_balance)
    return 0.0


def calculate_marginal_rate(
    taxable_income: float,
    rules: TaxRules,
    has_private_cover: bool = False,
    medicare_exempt: bool = False,
) -> float:
    """
    Rate paid on the next dollar of taxable income, as a percentage.

    This is a lookup of the bracket rate plus the levy and surcharge rates that
    apply at the current income, not total tax divided by income.
    """
    taxable_income = _amount(taxable_income)
    rate = find_bracket(taxable_income, rules).rate
    if not medicare_exempt and taxable_income > rules.levy.low_income_threshold:
        rate += rules.levy.rate
    rate += surcharge_rate(taxable_income, rules, has_private_cover)
    return rate * 100


def negative_gearing(
    annual_rental_income: float, total_expenses: float, marginal_rate: float
) -> NegativeGearingResult:
    """
    Calculate the net loss and tax benefit for an investment property.

    Args:
        annual_rental_income: Annual rent received
        total_expenses: Annual deductible costs, including loan interest
        marginal_rate: Marginal tax rate as a decimal (e.g., 0.33 for 33%)

    Returns:
        NegativeGearingResult with net loss floored at 0
    """
    annual_rental_income = _amount(annual_rental_income)
    total_expenses = _amount(total_expenses)
    net_loss = max(0.0, total_expenses - annual_rental_income)
    return NegativeGearingResult(
        total_rental_income=annual_rental_income,
        total_expenses=total_expenses,
        net_loss=net_loss,
        tax_benefit=net_loss * _amount(marginal_rate),
    )


class TaxEngine:
    """Computes a complete tax position from a ``TaxInput``."""

    def __init__(self, rules: Optional[TaxRules] = None):
        """Initialize the tax engine.

        Args:
            rules: Tax schedule to apply (defaults to the current year)
        """
        self.rules = rules or DEFAULT_RULES.tax

    def taxable_income(self, tax_input: TaxInput) -> float:
        """Assessable income less deductions and any property net loss."""
        rules = self.rules
        net_rental = tax_input.rental_income - tax_input.rental_expenses
        net_loss = max(0.0, -net_rental) if rules.negative_gearing_allowed else 0.0

        capital_gains = tax_input.capital_gains
        if tax_input.cgt_discount_eligible:
            capital_gains *= 1 - rules.cgt_discount

        franking_credit = tax_input.franked_dividends * rules.company_tax_rate
        assessable = (
            tax_input.employment_income
            + tax_input.other_income
            + max(0.0, net_rental)
            + tax_input.franked_dividends
            + franking_credit
            + capital_gains
        )
        return max(0.0, assessable - tax_input.total_deductions - net_loss)

    def calculate(self, tax_input: TaxInput) -> TaxResult:
        """
        Calculate tax, levies, repayments and rates for one taxpayer.

        Args:
            tax_input: Income and circumstances

        Returns:
            TaxResult
        """
        rules = self.rules
        gross_income = tax_input.gross_income
        taxable_income = self.taxable_income(tax_input)

        franking_credit = tax_input.franked_dividends * rules.company_tax_rate
        bracket_tax = calculate_income_tax(taxable_income, rules)
        income_tax = max(0.0, bracket_tax - franking_credit)

        medicare_levy = calculate_medicare_levy(
            taxable_income, rules, tax_input.medicare_exempt
        )
        levy_surcharge = calculate_levy_surcharge(
            taxable_income, rules, tax_input.has_private_cover
        )
        hecs_repayment = calculate_hecs_repayment(
            gross_income, rules, tax_input.hecs_balance
        )

        total_tax = income_tax + medicare_levy + levy_surcharge + hecs_repayment
        marginal_rate = calculate_marginal_rate(
            taxable_income,
            rules,
            has_private_cover=tax_input.has_private_cover,
            medicare_exempt=tax_input.medicare_exempt,
        )
        average_rate = total_tax / gross_income * 100 if gross_income > 0 else 0.0

        net_loss = 0.0
        if rules.negative_gearing_allowed:
            net_loss = max(0.0, tax_input.rental_expenses - tax_input.rental_income)

        logger.debug(
            f"Tax for gross {gross_income:.2f}: taxable {taxable_income:.2f}, "
            f"total {total_tax:.2f}, marginal {marginal_rate:.1f}%"
        )

        return TaxResult(
            gross_income=gross_income,
            taxable_income=taxable_income,
            income_tax=income_tax,
            medicare_levy=medicare_levy,
            levy_surcharge=levy_surcharge,
            hecs_repayment=hecs_repayment,
            total_tax=total_tax,
            after_tax_income=gross_income - total_tax,
            marginal_rate=marginal_rate,
            average_rate=average_rate,
            franking_credit_offset=franking_credit,
            total_deductions=tax_input.total_deductions,
            negative_gearing_loss=net_loss,
            negative_gearing_benefit=net_loss * marginal_rate / 100,
        )

    @staticmethod
    def from_profile(profile: FinancialProfile) -> TaxInput:
        """
        Build a ``TaxInput`` from a household profile.

        Property rent counts as rental income; property holding costs plus
        first-year loan interest are the deductible rental expenses.
        """
        properties = profile.investment_properties
        rental_expenses = sum(p.annual_expenses + p.annual_interest for p in properties)
        deductions = []
        if profile.annual_deductions > 0:
            deductions.append(
                Deduction(
                    category="work-related",
                    amount=profile.annual_deductions,
                    description="Declared annual deductions",
                )
            )
        return TaxInput(
            employment_income=profile.income.employment,
            other_income=profile.income.investment + profile.income.other,
            rental_income=profile.total_rental_income,
            rental_expenses=rental_expenses,
            franked_dividends=profile.income.franked_dividends,
            capital_gains=profile.income.capital_gains,
            deductions=deductions,
            hecs_balance=profile.hecs_balance,
            has_private_cover=profile.has_private_cover,
            medicare_exempt=profile.medicare_exempt,
        )

    def calculate_for_profile(self, profile: FinancialProfile) -> TaxResult:
        """Calculate tax for a household profile."""
        return self.calculate(self.from_profile(profile))

    def compare_optimisation(
        self,
        base_input: TaxInput,
        additional_deductions: float = 0.0,
        negative_gearing_opportunity: float = 0.0,
        salary_sacrifice: float = 0.0,
    ) -> TaxOptimisationResult:
        """
        Compare current tax against tax with optimisation strategies applied.

        Args:
            base_input: Current tax position
            additional_deductions: Extra deductions that could be claimed
            negative_gearing_opportunity: Extra deductible property costs
            salary_sacrifice: Pre-tax retirement contributions out of salary

        Returns:
            TaxOptimisationResult with the tax saved and strategies used
        """
        additional_deductions = _amount(additional_deductions)
        negative_gearing_opportunity = _amount(negative_gearing_opportunity)
        salary_sacrifice = min(_amount(salary_sacrifice), base_input.employment_income)

        current = self.calculate(base_input)

        deductions = list(base_input.deductions)
        if additional_deductions:
            deductions.append(
                Deduction(
                    category="optimisation",
                    amount=additional_deductions,
                    description="Additional tax deductions",
                )
            )
        optimised_input = base_input.model_copy(
            update={
                "deductions": deductions,
                "rental_expenses": base_input.rental_expenses
                + negative_gearing_opportunity,
                "employment_income": base_input.employment_income - salary_sacrifice,
            }
        )
        optimised = self.calculate(optimised_input)

        strategies = []
        if additional_deductions:
            strategies.append(
                f"Claim additional deductions: ${additional_deductions:,.0f}"
            )
        if negative_gearing_opportunity:
            strategies.append(
                f"Negative gearing opportunity: ${negative_gearing_opportunity:,.0f}"
            )
        if salary_sacrifice:
            strategies.append(
                f"Salary sacrifice to retirement fund: ${salary_sacrifice:,.0f}"
            )

        return TaxOptimisationResult(
            current=current,
            optimised=optimised,
            savings=current.total_tax - optimised.total_tax,
            strategies=strategies,
        )
