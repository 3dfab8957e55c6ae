"""
Loan amortization calculations shared by the projection and serviceability engines.

This module provides the monthly repayment formula, its algebraic inverse (maximum
borrowing capacity for a given repayment), remaining balance after a number of
years, and a month-by-month amortization schedule.

All rates are annual decimals (0.06 for 6%). Values are not rounded so that
``loan_payment`` and ``max_borrowing_capacity`` stay exact inverses of each other.
"""

import math
from typing import List

from pydantic import BaseModel, Field


class PaymentBreakdown(BaseModel):
    """Breakdown of a single loan repayment."""

    payment_number: int = Field(..., ge=1, description="Payment number (1-based)")
    beginning_balance: float = Field(
        ..., ge=0, description="Balance at beginning of period"
    )
    payment_amount: float = Field(..., ge=0, description="Total payment amount")
    principal_payment: float = Field(
        ..., ge=0, description="Principal portion of payment"
    )
    interest_payment: float = Field(
        ..., ge=0, description="Interest portion of payment"
    )
    extra_payment: float = Field(default=0, ge=0, description="Extra principal payment")
    ending_balance: float = Field(..., ge=0, description="Balance at end of period")
    cumulative_interest: float = Field(
        ..., ge=0, description="Cumulative interest paid"
    )


class AmortizationSchedule(BaseModel):
    """Complete amortization schedule for a loan."""

    principal: float = Field(..., ge=0, description="Original loan principal")
    annual_rate: float = Field(..., ge=0, description="Annual interest rate (0-1)")
    term_years: float = Field(..., ge=0, description="Loan term in years")
    monthly_payment: float = Field(..., ge=0, description="Scheduled monthly payment")
    payments: List[PaymentBreakdown] = Field(
        default_factory=list, description="List of payment breakdowns"
    )
    total_interest: float = Field(
        ..., ge=0, description="Total interest paid over life of loan"
    )
    total_paid: float = Field(..., ge=0, description="Total of all payments")

    @property
    def total_payments(self) -> int:
        return len(self.payments)


def _is_valid(value: float) -> bool:
    return value is not None and not math.isnan(value)


class AmortizationCalculator:
    """Calculator for loan repayments, balances and borrowing capacity."""

    @staticmethod
    def loan_payment(principal: float, annual_rate: float, term_years: float) -> float:
        """
        Calculate the monthly repayment using the standard amortization formula.

        PMT = P * r(1+r)^n / ((1+r)^n - 1), with r the monthly rate and n the
        number of monthly payments.

        Args:
            principal: Loan principal amount
            annual_rate: Annual interest rate (as decimal, e.g., 0.06 for 6%)
            term_years: Loan term in years

        Returns:
            Monthly payment amount, 0 for a non-positive principal or term
        """
        if not all(_is_valid(v) for v in (principal, annual_rate, term_years)):
            return 0.0
        if principal <= 0 or term_years <= 0:
            return 0.0

        num_payments = term_years * 12
        if annual_rate <= 0:
            return principal / num_payments

        monthly_rate = annual_rate / 12
        growth = (1 + monthly_rate) ** num_payments
        return principal * monthly_rate * growth / (growth - 1)

    @staticmethod
    def max_borrowing_capacity(
        monthly_capacity: float, annual_rate: float, term_years: float
    ) -> float:
        """
        Calculate the largest principal a monthly repayment can service.

        This is the algebraic inverse of ``loan_payment``.

        Args:
            monthly_capacity: Monthly amount available for repayments
            annual_rate: Annual interest rate (as decimal)
            term_years: Loan term in years

        Returns:
            Maximum principal, 0 for a non-positive capacity or term
        """
        if not (
            _is_valid(monthly_capacity)
            and _is_valid(annual_rate)
            and _is_valid(term_years)
        ):
            return 0.0
        if monthly_capacity <= 0 or term_years <= 0:
            return 0.0

        num_payments = term_years * 12
        if annual_rate <= 0:
            return monthly_capacity * num_payments

        monthly_rate = annual_rate / 12
        growth = (1 + monthly_rate) ** num_payments
        return monthly_capacity * (growth - 1) / (monthly_rate * growth)

    @staticmethod
    def remaining_balance(
        principal: float, annual_rate: float, term_years: float, years_elapsed: float
    ) -> float:
        """
        Calculate the outstanding balance after a number of years of repayments.

        Args:
            principal: Original loan principal
            annual_rate: Annual interest rate (as decimal)
            term_years: Original loan term in years
            years_elapsed: Years of scheduled repayments made

        Returns:
            Remaining balance, 0 once the term has elapsed
        """
        if not (
            _is_valid(principal)
            and _is_valid(annual_rate)
            and _is_valid(term_years)
            and _is_valid(years_elapsed)
        ):
            return 0.0
        if principal <= 0 or term_years <= 0:
            return 0.0
        if years_elapsed >= term_years:
            return 0.0
        if years_elapsed <= 0:
            return principal

        num_payments = term_years * 12
        months_elapsed = years_elapsed * 12
        if annual_rate <= 0:
            return max(0.0, principal * (1 - months_elapsed / num_payments))

        monthly_rate = annual_rate / 12
        payment = AmortizationCalculator.loan_payment(
            principal, annual_rate, term_years
        )
        growth = (1 + monthly_rate) ** months_elapsed
        balance = principal * growth - payment * (growth - 1) / monthly_rate
        return max(0.0, balance)

    @staticmethod
    def generate_schedule(
        principal: float,
        annual_rate: float,
        term_years: float,
        extra_payment: float = 0.0,
    ) -> AmortizationSchedule:
        """
        Generate a month-by-month amortization schedule.

        Args:
            principal: Loan principal amount
            annual_rate: Annual interest rate (as decimal)
            term_years: Loan term in years
            extra_payment: Extra principal paid each month

        Returns:
            Complete amortization schedule
        """
        principal, annual_rate, term_years, extra_payment = (
            max(value, 0.0) if _is_valid(value) and math.isfinite(value) else 0.0
            for value in (principal, annual_rate, term_years, extra_payment)
        )

        monthly_payment = AmortizationCalculator.loan_payment(
            principal, annual_rate, term_years
        )
        monthly_rate = annual_rate / 12

        payments = []
        balance = principal
        cumulative_interest = 0.0
        total_paid = 0.0
        payment_number = 1
        max_payments = int(math.ceil(term_years * 12))

        while balance > 0.005 and payment_number <= max_payments:
            interest_payment = balance * monthly_rate
            principal_payment = max(0.0, monthly_payment - interest_payment)
            principal_payment += extra_payment

            # Final payment only clears what is left
            if principal_payment > balance:
                principal_payment = balance
            payment_amount = interest_payment + principal_payment
            ending_balance = max(0.0, balance - principal_payment)

            cumulative_interest += interest_payment
            total_paid += payment_amount

            payments.append(
                PaymentBreakdown(
                    payment_number=payment_number,
                    beginning_balance=balance,
                    payment_amount=payment_amount,
                    principal_payment=principal_payment,
                    interest_payment=interest_payment,
                    extra_payment=extra_payment,
                    ending_balance=ending_balance,
                    cumulative_interest=cumulative_interest,
                )
            )

            balance = ending_balance
            payment_number += 1

        return AmortizationSchedule(
            principal=principal,
            annual_rate=annual_rate,
            term_years=term_years,
            monthly_payment=monthly_payment,
            payments=payments,
            total_interest=cumulative_interest,
            total_paid=total_paid,
        )

    @staticmethod
    def calculate_equity(property_value: float, loan_balance: float) -> float:
        """Equity in a property, never negative."""
        return max(0.0, property_value - loan_balance)

    @staticmethod
    def loan_to_value_ratio(loan_balance: float, property_value: float) -> float:
        """
        Calculate loan-to-value ratio.

        Returns:
            LVR ratio (0-1), 1.0 when the property has no value
        """
        if property_value <= 0:
            return 1.0
        return min(1.0, loan_balance / property_value)


loan_payment = AmortizationCalculator.loan_payment
max_borrowing_capacity = AmortizationCalculator.max_borrowing_capacity
remaining_balance = AmortizationCalculator.remaining_balance
