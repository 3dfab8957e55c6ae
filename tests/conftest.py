"""
Pytest configuration and shared fixtures for the calculation engine tests.
"""

import pytest

from fincalc.models import (
    Asset,
    FinancialProfile,
    IncomeSources,
    InvestmentProperty,
    Liability,
)


@pytest.fixture
def employee_profile():
    """A salaried employee with a car loan and no investment property."""
    return FinancialProfile(
        current_age=40,
        retirement_age=67,
        income=IncomeSources(employment=120000),
        monthly_expenses=3000,
        assets=[
            Asset(name="Retirement fund", value=150000, asset_class="retirement_fund"),
            Asset(name="ETF portfolio", value=50000, asset_class="shares"),
            Asset(name="Offset account", value=20000, asset_class="cash"),
        ],
        liabilities=[
            Liability(
                name="Car loan",
                balance_owing=15000,
                repayment_amount=100,
                frequency="weekly",
                interest_rate=7.5,
                loan_term_years=5,
                years_remaining=3,
            )
        ],
    )


@pytest.fixture
def investor_profile():
    """An employee with a negatively geared investment property."""
    return FinancialProfile(
        current_age=45,
        retirement_age=65,
        income=IncomeSources(employment=100000),
        monthly_expenses=2500,
        assets=[
            Asset(name="Retirement fund", value=200000, asset_class="retirement_fund"),
            Asset(name="Savings", value=30000, asset_class="cash"),
        ],
        investment_properties=[
            InvestmentProperty(
                address="12 Example St",
                current_value=600000,
                loan_amount=450000,
                interest_rate=6.0,
                loan_term_years=30,
                weekly_rent=500,
                annual_expenses=6000,
            )
        ],
    )


@pytest.fixture
def empty_profile():
    """A profile with nothing entered beyond ages."""
    return FinancialProfile(current_age=30, retirement_age=65)
