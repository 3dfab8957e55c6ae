"""Calculation engines and data models for financial planning."""

from .amortization import (
    AmortizationCalculator,
    AmortizationSchedule,
    PaymentBreakdown,
    loan_payment,
    max_borrowing_capacity,
    remaining_balance,
)
from .cashflow import (
    MonthlyExpenses,
    MonthlyIncome,
    MonthlySurplusResult,
    calculate_monthly_surplus,
    debt_payments_at_retirement,
)
from .profile import (
    DEFAULT_ASSUMPTIONS,
    Asset,
    AssumptionSet,
    FinancialProfile,
    IncomeSources,
    InvestmentProperty,
    Liability,
    ProposedLoan,
)
from .projection_engine import (
    CurrentPosition,
    FuturePosition,
    ProjectionEngine,
    ProjectionInputError,
    ProjectionResult,
    ProjectionTimeline,
    SavingsDepletionResult,
    future_value,
    growing_annuity_future_value,
    savings_depletion,
)
from .rules import (
    DEFAULT_RULES,
    TAX_RULES_2024_25,
    DomainRules,
    LendingRules,
    RetirementRules,
    TaxRules,
    load_rules_file,
)
from .serviceability import (
    LoanAssessmentResult,
    ServiceabilityEngine,
    ServiceabilityResult,
)
from .tax_engine import (
    Deduction,
    NegativeGearingResult,
    TaxEngine,
    TaxInput,
    TaxOptimisationResult,
    TaxResult,
    negative_gearing,
)
from .tax_strategies import (
    OptimizationStrategy,
    generate_optimization_strategies,
    total_tax_savings,
)

__all__ = [
    "AmortizationCalculator",
    "AmortizationSchedule",
    "PaymentBreakdown",
    "loan_payment",
    "max_borrowing_capacity",
    "remaining_balance",
    "MonthlyExpenses",
    "MonthlyIncome",
    "MonthlySurplusResult",
    "calculate_monthly_surplus",
    "debt_payments_at_retirement",
    "DEFAULT_ASSUMPTIONS",
    "Asset",
    "AssumptionSet",
    "FinancialProfile",
    "IncomeSources",
    "InvestmentProperty",
    "Liability",
    "ProposedLoan",
    "CurrentPosition",
    "FuturePosition",
    "ProjectionEngine",
    "ProjectionInputError",
    "ProjectionResult",
    "ProjectionTimeline",
    "SavingsDepletionResult",
    "future_value",
    "growing_annuity_future_value",
    "savings_depletion",
    "DEFAULT_RULES",
    "TAX_RULES_2024_25",
    "DomainRules",
    "LendingRules",
    "RetirementRules",
    "TaxRules",
    "load_rules_file",
    "LoanAssessmentResult",
    "ServiceabilityEngine",
    "ServiceabilityResult",
    "Deduction",
    "NegativeGearingResult",
    "TaxEngine",
    "TaxInput",
    "TaxOptimisationResult",
    "TaxResult",
    "negative_gearing",
    "OptimizationStrategy",
    "generate_optimization_strategies",
    "total_tax_savings",
]
