"""
Domain rules for the calculation engines.

Every jurisdiction-specific constant the engines use (tax brackets, levy thresholds,
repayment bands, contribution caps, lending policy) lives here as validated data.
The formulas in the engines never hard-code these values, so a new financial year
only needs a new ``DomainRules`` instance or a JSON override file.
"""

import json
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TaxBracket(BaseModel):
    """A single progressive income tax band."""

    model_config = ConfigDict(frozen=True)

    min: float = Field(..., ge=0, description="Lower bound of the band")
    max: Optional[float] = Field(
        None, ge=0, description="Upper bound of the band (None for the top band)"
    )
    rate: float = Field(..., ge=0, le=1, description="Marginal rate (0-1)")
    base_tax: float = Field(
        ..., ge=0, description="Cumulative tax payable at the band minimum"
    )


class SurchargeTier(BaseModel):
    """A levy surcharge tier for taxpayers without private cover."""

    model_config = ConfigDict(frozen=True)

    threshold: float = Field(..., ge=0, description="Income above which tier applies")
    rate: float = Field(..., ge=0, le=1, description="Surcharge rate (0-1)")


class LevySchedule(BaseModel):
    """Flat health levy plus the income-tested surcharge tiers."""

    model_config = ConfigDict(frozen=True)

    rate: float = Field(default=0.02, ge=0, le=1, description="Flat levy rate")
    low_income_threshold: float = Field(
        default=24276, ge=0, description="No levy at or below this taxable income"
    )
    surcharge_tiers: List[SurchargeTier] = Field(
        default_factory=list,
        description="Surcharge tiers; the lowest threshold is the surcharge threshold",
    )

    @property
    def surcharge_threshold(self) -> float:
        """Income above which the surcharge starts to apply."""
        if not self.surcharge_tiers:
            return float("inf")
        return min(tier.threshold for tier in self.surcharge_tiers)


class RepaymentBand(BaseModel):
    """Income-contingent loan repayment band keyed on gross income."""

    model_config = ConfigDict(frozen=True)

    min: float = Field(..., ge=0, description="Gross income at which band starts")
    rate: float = Field(..., ge=0, le=1, description="Flat repayment rate (0-1)")


class TaxRules(BaseModel):
    """Complete tax schedule for one financial year."""

    model_config = ConfigDict(frozen=True)

    tax_year: str = Field(default="2024-25", description="Financial year label")
    brackets: List[TaxBracket] = Field(..., min_length=1, description="Tax bands")
    levy: LevySchedule = Field(
        default_factory=LevySchedule, description="Health levy and surcharge"
    )
    repayment_bands: List[RepaymentBand] = Field(
        default_factory=list, description="Income-contingent repayment bands"
    )
    company_tax_rate: float = Field(
        default=0.30, ge=0, le=1, description="Rate used for franking credits"
    )
    cgt_discount: float = Field(
        default=0.5, ge=0, le=1, description="Capital gains discount for individuals"
    )
    negative_gearing_allowed: bool = Field(
        default=True, description="Whether property losses reduce taxable income"
    )

    @field_validator("brackets")
    @classmethod
    def validate_brackets(cls, v: List[TaxBracket]) -> List[TaxBracket]:
        ordered = sorted(v, key=lambda b: b.min)
        for lower, upper in zip(ordered, ordered[1:]):
            if lower.max is None or lower.max > upper.min:
                raise ValueError(
                    f"Tax brackets overlap between {lower.min} and {upper.min}"
                )
        return ordered

    @field_validator("repayment_bands")
    @classmethod
    def validate_repayment_bands(cls, v: List[RepaymentBand]) -> List[RepaymentBand]:
        return sorted(v, key=lambda b: b.min)

    def brackets_descending(self) -> List[TaxBracket]:
        """Tax bands ordered highest first, the order lookups must scan in."""
        return sorted(self.brackets, key=lambda b: b.min, reverse=True)

    def surcharge_tiers_descending(self) -> List[SurchargeTier]:
        tiers = self.levy.surcharge_tiers
        return sorted(tiers, key=lambda t: t.threshold, reverse=True)

    def repayment_bands_descending(self) -> List[RepaymentBand]:
        return sorted(self.repayment_bands, key=lambda b: b.min, reverse=True)


class RetirementRules(BaseModel):
    """Retirement fund and projection constants."""

    model_config = ConfigDict(frozen=True)

    contribution_rate: float = Field(
        default=0.12, ge=0, le=1, description="Employer contribution rate (0-1)"
    )
    contribution_cap: float = Field(
        default=30600, ge=0, description="Maximum annual employer contribution"
    )
    fund_fee_pct: float = Field(
        default=0.08,
        ge=0,
        description="Annual fund fee in percentage points deducted from fund return",
    )
    other_asset_growth: float = Field(
        default=0.03, ge=0, le=1, description="Growth rate for 'other' assets (0-1)"
    )
    retention_fraction: float = Field(
        default=0.70,
        ge=0,
        le=1,
        description="Share of current gross income required in retirement",
    )
    annuity_singularity_epsilon: float = Field(
        default=1e-4,
        gt=0,
        description="|r - g| below which the growing annuity limit form is used",
    )


class LendingRules(BaseModel):
    """Lending policy used by serviceability assessments."""

    model_config = ConfigDict(frozen=True)

    retention_fraction: float = Field(
        default=0.70,
        ge=0,
        le=1,
        description="Share of current income reserved before new borrowing",
    )
    rental_income_multiplier: float = Field(
        default=0.75, ge=0, le=1, description="Share of rent counted as serviceable"
    )
    stress_test_margin: float = Field(
        default=0.03, ge=0, le=1, description="Rate buffer for the stress test"
    )
    buffer_fraction: float = Field(
        default=0.10, ge=0, le=1, description="Required liquidity buffer of net income"
    )
    max_serviceability_ratio: float = Field(
        default=35.0, ge=0, le=100, description="Commitments to net income ceiling (%)"
    )
    default_interest_rate: float = Field(
        default=0.06, gt=0, le=1, description="Fallback loan rate (0-1)"
    )
    default_term_years: int = Field(
        default=30, ge=1, le=50, description="Fallback loan term in years"
    )
    default_max_lvr: float = Field(
        default=0.80, gt=0, le=1, description="Fallback maximum loan-to-value ratio"
    )
    default_rental_yield: float = Field(
        default=0.04, ge=0, le=1, description="Fallback gross rental yield (0-1)"
    )
    default_property_expense_ratio: float = Field(
        default=0.02,
        ge=0,
        le=1,
        description="Fallback annual property expenses as share of value",
    )


class DomainRules(BaseModel):
    """Bundle of every rule set the engines need."""

    model_config = ConfigDict(frozen=True)

    tax: TaxRules = Field(..., description="Tax schedule")
    retirement: RetirementRules = Field(
        default_factory=RetirementRules, description="Retirement constants"
    )
    lending: LendingRules = Field(
        default_factory=LendingRules, description="Lending policy"
    )

    @model_validator(mode="after")
    def validate_retention_consistency(self) -> "DomainRules":
        # Both retention figures describe the same household target.
        retirement, lending = self.retirement, self.lending
        if abs(retirement.retention_fraction - lending.retention_fraction) > 1e-9:
            raise ValueError(
                "Retirement and lending retention fractions must match, got "
                f"{self.retirement.retention_fraction} and "
                f"{self.lending.retention_fraction}"
            )
        return self


TAX_RULES_2024_25 = TaxRules(
    tax_year="2024-25",
    brackets=[
        TaxBracket(min=0, max=18200, rate=0.0, base_tax=0),
        TaxBracket(min=18200, max=45000, rate=0.16, base_tax=0),
        TaxBracket(min=45000, max=135000, rate=0.30, base_tax=4288),
        TaxBracket(min=135000, max=190000, rate=0.37, base_tax=31288),
        TaxBracket(min=190000, max=None, rate=0.45, base_tax=51638),
    ],
    levy=LevySchedule(
        rate=0.02,
        low_income_threshold=24276,
        surcharge_tiers=[
            SurchargeTier(threshold=97000, rate=0.01),
            SurchargeTier(threshold=113000, rate=0.0125),
            SurchargeTier(threshold=151000, rate=0.015),
        ],
    ),
    repayment_bands=[
        RepaymentBand(min=51550, rate=0.01),
        RepaymentBand(min=59519, rate=0.02),
        RepaymentBand(min=65001, rate=0.025),
        RepaymentBand(min=72000, rate=0.03),
        RepaymentBand(min=80000, rate=0.035),
        RepaymentBand(min=90000, rate=0.04),
        RepaymentBand(min=100001, rate=0.045),
        RepaymentBand(min=110000, rate=0.05),
        RepaymentBand(min=125000, rate=0.055),
        RepaymentBand(min=140000, rate=0.10),
    ],
    company_tax_rate=0.30,
    cgt_discount=0.5,
)

DEFAULT_RULES = DomainRules(tax=TAX_RULES_2024_25)

BUILTIN_RULES = {DEFAULT_RULES.tax.tax_year: DEFAULT_RULES}


def load_rules_file(path: Union[str, Path]) -> DomainRules:
    """
    Load a ``DomainRules`` override from a JSON file.

    Args:
        path: Path to a JSON document matching the ``DomainRules`` schema

    Returns:
        Validated rules

    Raises:
        ValueError: If the file cannot be read or does not validate
    """
    rules_path = Path(path)
    try:
        data = json.loads(rules_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Cannot read rules file {rules_path}: {e}") from e
    return DomainRules.model_validate(data)
