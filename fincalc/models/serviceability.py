"""
Borrowing serviceability.

Two assessments are provided:

* ``max_serviceable_loan`` sizes the largest prudent investment property purchase a
  monthly surplus can support after reserving the retention share of income.
* ``assess_proposed_loan`` tests a specific loan against a serviceability ratio
  ceiling, a liquidity buffer, an interest rate stress test and post-loan cashflow.

Ordinary business states (no income, a deficit, a failed check) are reported on the
result with human-readable reasons rather than raised.
"""

import logging
import math
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .amortization import loan_payment, max_borrowing_capacity
from .cashflow import calculate_monthly_surplus
from .profile import FinancialProfile, ProposedLoan, coerce_number
from .rules import DEFAULT_RULES, DomainRules, LendingRules

logger = logging.getLogger(__name__)

Assessment = Literal["approved", "declined"]

NO_INCOME_REASON = (
    "Please enter your income and expenses to calculate investment property potential."
)
DEFICIT_REASON = "Current deficit must be addressed before taking on new borrowing"
NO_SURPLUS_REASON = "No surplus available after reserving {pct:.0f}% of current income"
NO_CAPACITY_REASON = (
    "Unable to calculate borrowing capacity. Please check your financial inputs."
)
NO_PROPERTY_VALUE_REASON = (
    "Unable to calculate property value. Please check your financial inputs."
)

INSUFFICIENT_NET_INCOME_REASON = "Insufficient net income to calculate serviceability"
RATIO_TOO_HIGH_REASON = "Serviceability ratio too high (>{ceiling:.0f}%)"
NO_BUFFER_REASON = "Insufficient buffer remaining"
STRESS_TEST_REASON = "Failed stress test at higher interest rate"
NEGATIVE_CASHFLOW_REASON = "Negative cash flow after loan"


class ServiceabilityResult(BaseModel):
    """Largest investment property purchase a surplus can support."""

    max_property_value: float = Field(default=0, ge=0, description="Purchase price")
    max_loan_amount: float = Field(default=0, ge=0, description="Loan principal")
    max_monthly_payment: float = Field(
        default=0, ge=0, description="Monthly repayment the loan needs"
    )
    surplus_income: float = Field(
        default=0, ge=0, description="Monthly surplus left after retention"
    )
    loan_to_value_ratio: float = Field(..., gt=0, le=1, description="LVR applied")
    monthly_rental_income: float = Field(
        default=0, ge=0, description="Implied monthly rent of the property"
    )
    monthly_property_expenses: float = Field(
        default=0, ge=0, description="Implied monthly holding costs"
    )
    is_viable: bool = Field(..., description="Whether any purchase is supportable")
    reason: Optional[str] = Field(default=None, description="Why it is not viable")


class LoanAssessmentResult(BaseModel):
    """Outcome of assessing a proposed loan."""

    loan_amount: float = Field(..., ge=0, description="Proposed principal")
    monthly_repayment: float = Field(..., ge=0, description="New loan repayment")
    existing_commitments: float = Field(..., ge=0, description="Current repayments")
    total_monthly_commitments: float = Field(..., ge=0, description="All repayments")
    monthly_net_income: float = Field(..., description="Income after income tax")
    net_surplus_after_loan: float = Field(
        ..., description="Monthly surplus after the new repayment"
    )
    serviceability_ratio: float = Field(
        ..., description="Commitments over net income (%, inf without income)"
    )
    required_buffer: float = Field(..., description="Minimum buffer to keep")
    actual_buffer: float = Field(..., description="Net income left after commitments")
    has_buffer: bool = Field(..., description="Buffer requirement met")
    stress_test_rate: float = Field(..., ge=0, description="Stressed rate (0-1)")
    stress_test_repayment: float = Field(..., ge=0, description="Stressed repayment")
    passes_stress_test: bool = Field(..., description="Buffer holds when stressed")
    assessment: Assessment = Field(..., description="Approved or declined")
    reasons: List[str] = Field(
        default_factory=list, description="One reason per failed check"
    )

    @property
    def can_afford(self) -> bool:
        return self.assessment == "approved"


def _valid_positive(value: Optional[float]) -> bool:
    return value is not None and not math.isnan(value) and value > 0


class ServiceabilityEngine:
    """Assesses how much new borrowing a household can service."""

    def __init__(self, rules: Optional[DomainRules] = None):
        """Initialize the serviceability engine.

        Args:
            rules: Domain rules (defaults to the current year)
        """
        self.rules = rules or DEFAULT_RULES

    @property
    def lending(self) -> LendingRules:
        return self.rules.lending

    def max_serviceable_loan(
        self,
        monthly_surplus: float,
        current_gross_monthly_income: float,
        interest_rate: Optional[float] = None,
        term_years: Optional[float] = None,
        max_lvr: Optional[float] = None,
        rental_yield: Optional[float] = None,
        property_expense_ratio: Optional[float] = None,
    ) -> ServiceabilityResult:
        """
        Size the largest investment property a monthly surplus can support.

        The retention share of current income is reserved from the surplus; the
        rest becomes borrowing capacity. The implied property's rent is then
        added back at the rental income multiplier and capacity recalculated once.

        Args:
            monthly_surplus: Monthly income available before retention
            current_gross_monthly_income: Current gross monthly income
            interest_rate: Annual loan rate (0-1)
            term_years: Loan term in years
            max_lvr: Maximum loan-to-value ratio (0-1)
            rental_yield: Gross rental yield of the property (0-1)
            property_expense_ratio: Annual holding costs as share of value (0-1)

        Returns:
            ServiceabilityResult
        """
        lending = self.lending
        rate = interest_rate
        if not _valid_positive(rate):
            rate = lending.default_interest_rate
        term = term_years
        if not _valid_positive(term):
            term = lending.default_term_years
        lvr = max_lvr
        if not _valid_positive(lvr) or lvr > 1:
            lvr = lending.default_max_lvr
        if rental_yield is None or math.isnan(rental_yield) or rental_yield < 0:
            rental_yield = lending.default_rental_yield
        if (
            property_expense_ratio is None
            or math.isnan(property_expense_ratio)
            or property_expense_ratio < 0
        ):
            property_expense_ratio = lending.default_property_expense_ratio

        if not _valid_positive(current_gross_monthly_income):
            return ServiceabilityResult(
                loan_to_value_ratio=lvr, is_viable=False, reason=NO_INCOME_REASON
            )

        monthly_surplus = coerce_number(monthly_surplus)
        if monthly_surplus < 0:
            return ServiceabilityResult(
                loan_to_value_ratio=lvr, is_viable=False, reason=DEFICIT_REASON
            )

        retained = current_gross_monthly_income * lending.retention_fraction
        available = max(0.0, monthly_surplus - retained)
        if available <= 0:
            return ServiceabilityResult(
                loan_to_value_ratio=lvr,
                is_viable=False,
                reason=NO_SURPLUS_REASON.format(pct=lending.retention_fraction * 100),
            )

        borrowing = max_borrowing_capacity(available, rate, term)
        if math.isnan(borrowing) or borrowing <= 0:
            return ServiceabilityResult(
                surplus_income=available,
                loan_to_value_ratio=lvr,
                is_viable=False,
                reason=NO_CAPACITY_REASON,
            )

        property_value = borrowing / lvr
        if math.isnan(property_value) or property_value <= 0:
            return ServiceabilityResult(
                surplus_income=available,
                loan_to_value_ratio=lvr,
                is_viable=False,
                reason=NO_PROPERTY_VALUE_REASON,
            )

        monthly_rent = property_value * rental_yield / 12
        monthly_expenses = property_value * property_expense_ratio / 12

        # One pass with the implied rent added back
        serviceable = available + monthly_rent * lending.rental_income_multiplier
        borrowing_with_rent = max_borrowing_capacity(serviceable, rate, term)
        if math.isnan(borrowing_with_rent) or borrowing_with_rent <= 0:
            borrowing_with_rent, serviceable = borrowing, available

        logger.debug(
            f"Serviceable loan {borrowing_with_rent:.2f} at {rate:.4f} over {term} "
            f"years from surplus {available:.2f}"
        )

        return ServiceabilityResult(
            max_property_value=borrowing_with_rent / lvr,
            max_loan_amount=borrowing_with_rent,
            max_monthly_payment=serviceable,
            surplus_income=available,
            loan_to_value_ratio=lvr,
            monthly_rental_income=monthly_rent,
            monthly_property_expenses=monthly_expenses,
            is_viable=True,
        )

    def capacity_from_profile(
        self, profile: FinancialProfile, **loan_terms: float
    ) -> ServiceabilityResult:
        """
        Run the household cashflow and size the serviceable loan from its surplus.

        Args:
            profile: Household profile
            **loan_terms: Optional overrides passed to ``max_serviceable_loan``
                (interest_rate, term_years, max_lvr, rental_yield,
                property_expense_ratio)
        """
        cashflow = calculate_monthly_surplus(profile, self.rules)
        return self.max_serviceable_loan(
            cashflow.surplus, cashflow.income.total, **loan_terms
        )

    def assess_proposed_loan(
        self, profile: FinancialProfile, proposed_loan: ProposedLoan
    ) -> LoanAssessmentResult:
        """
        Assess whether a household can service a proposed loan.

        Checks, each reported independently:
            - serviceability ratio (commitments / net income) within the ceiling
            - liquidity buffer of at least the buffer fraction of net income
            - the buffer still holds with the rate raised by the stress margin
            - monthly cashflow stays non-negative after the new repayment

        Args:
            profile: Household profile
            proposed_loan: Loan being applied for

        Returns:
            LoanAssessmentResult, approved only if every check passes
        """
        lending = self.lending
        cashflow = calculate_monthly_surplus(profile, self.rules)

        rate = proposed_loan.interest_rate / 100
        if rate <= 0:
            rate = lending.default_interest_rate
        term = proposed_loan.term_years
        if term <= 0:
            term = lending.default_term_years

        monthly_net_income = cashflow.income.total - cashflow.expenses.tax
        existing = cashflow.expenses.loan_repayments
        repayment = loan_payment(proposed_loan.amount, rate, term)
        total_commitments = existing + repayment
        net_surplus_after_loan = cashflow.surplus - repayment

        if monthly_net_income > 0:
            ratio = total_commitments / monthly_net_income * 100
        else:
            ratio = math.inf

        required_buffer = monthly_net_income * lending.buffer_fraction
        actual_buffer = monthly_net_income - total_commitments
        has_buffer = actual_buffer >= required_buffer

        stress_rate = rate + lending.stress_test_margin
        stress_repayment = loan_payment(proposed_loan.amount, stress_rate, term)
        passes_stress_test = (
            monthly_net_income - existing - stress_repayment >= required_buffer
        )

        reasons = []
        if not math.isfinite(ratio):
            reasons.append(INSUFFICIENT_NET_INCOME_REASON)
        elif ratio > lending.max_serviceability_ratio:
            reasons.append(
                RATIO_TOO_HIGH_REASON.format(ceiling=lending.max_serviceability_ratio)
            )
        if not has_buffer:
            reasons.append(NO_BUFFER_REASON)
        if not passes_stress_test:
            reasons.append(STRESS_TEST_REASON)
        if net_surplus_after_loan < 0:
            reasons.append(NEGATIVE_CASHFLOW_REASON)

        assessment = "declined" if reasons else "approved"
        logger.debug(
            f"Loan of {proposed_loan.amount:.2f} {assessment}: ratio {ratio:.1f}%, "
            f"{len(reasons)} failed checks"
        )

        return LoanAssessmentResult(
            loan_amount=proposed_loan.amount,
            monthly_repayment=repayment,
            existing_commitments=existing,
            total_monthly_commitments=total_commitments,
            monthly_net_income=monthly_net_income,
            net_surplus_after_loan=net_surplus_after_loan,
            serviceability_ratio=ratio,
            required_buffer=required_buffer,
            actual_buffer=actual_buffer,
            has_buffer=has_buffer,
            stress_test_rate=stress_rate,
            stress_test_repayment=stress_repayment,
            passes_stress_test=passes_stress_test,
            assessment=assessment,
            reasons=reasons,
        )
