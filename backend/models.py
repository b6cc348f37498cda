"""
VisaTax - Data Models
=====================
Pydantic models for the tax engine's input profile and its outputs.

These models serve as the contract between:
- The HTTP API / any UI layer
- Tax calculation engine
- Input validation
- AI verification
"""

from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, computed_field

from tax_constants import (
    BIWEEKLY_PERIODS_PER_YEAR,
    DEFAULT_TAX_YEAR,
    PAY_PERIODS_PER_YEAR,
    Country,
    FilingStatus,
    VisaStatus,
)


# =============================================================================
# ENUMS
# =============================================================================

class PayFrequency(str, Enum):
    ANNUAL = "annual"
    MONTHLY = "monthly"


class ComparisonStatus(str, Enum):
    MATCH = "Match"
    MINOR_DIFFERENCE = "Minor Difference"
    DISCREPANCY = "Discrepancy"


# =============================================================================
# INPUT PROFILE
# =============================================================================

class UserProfile(BaseModel):
    """
    Everything the engine needs for one estimate.

    Amounts are expressed in the chosen pay frequency. No range checks here:
    the engine accepts any number and validation.py flags implausible input.
    """
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    visa_status: VisaStatus
    country: Country = Country.OTHER
    years_in_us: int = Field(default=0, description="Calendar years of presence, partial years count as whole")
    state: str = "Texas"
    pay_frequency: PayFrequency = PayFrequency.ANNUAL

    gross_pay: float = 0.0
    pre_tax_deductions: float = 0.0
    federal_tax_withheld: float = 0.0

    # None means the caller does not track this withholding
    fica_withheld: Optional[float] = None
    state_tax_withheld: Optional[float] = None

    filing_status: FilingStatus = FilingStatus.SINGLE
    tax_year: int = DEFAULT_TAX_YEAR

    @field_validator('pay_frequency', mode='before')
    @classmethod
    def normalize_pay_frequency(cls, v):
        if isinstance(v, PayFrequency):
            return v
        v_lower = str(v).lower().strip()
        mapping = {
            "annual": PayFrequency.ANNUAL,
            "annually": PayFrequency.ANNUAL,
            "yearly": PayFrequency.ANNUAL,
            "monthly": PayFrequency.MONTHLY,
        }
        return mapping.get(v_lower, v)

    @field_validator('visa_status', mode='before')
    @classmethod
    def normalize_visa_status(cls, v):
        if isinstance(v, VisaStatus):
            return v
        v_lower = str(v).lower().replace("-", "").replace("_", "").replace(" ", "")
        if v_lower.startswith("f1"):
            return VisaStatus.F1_STUDENT
        if v_lower.startswith("h1b"):
            return VisaStatus.H1B_WORKER
        return v

    @field_validator('country', mode='before')
    @classmethod
    def normalize_country(cls, v):
        if isinstance(v, Country):
            return v
        try:
            return Country(str(v).lower().strip())
        except ValueError:
            return Country.OTHER


# =============================================================================
# ENGINE OUTPUT
# =============================================================================

class BracketDetail(BaseModel):
    """Income and tax falling inside one occupied bracket."""
    rate: float
    lower_bound: float = Field(description="Exclusive")
    upper_bound: Optional[float] = Field(default=None, description="Inclusive; None when unbounded")
    amount_in_bracket: float
    tax_amount: float


class FICABreakdown(BaseModel):
    social_security_tax: float = 0.0
    medicare_tax: float = 0.0
    additional_medicare_tax: float = 0.0
    total_fica: float = 0.0
    is_exempt: bool = False
    exemption_reason: Optional[str] = None


class TaxResult(BaseModel):
    """Complete tax calculation result. All amounts are annual."""

    tax_year: int

    # Income summary
    gross_pay: float
    pre_tax_deductions: float
    adjusted_gross_income: float
    standard_deduction: float
    taxable_income: float

    # Federal
    federal_tax_liability: float
    federal_breakdown: List[BracketDetail]
    marginal_tax_rate: float

    # FICA
    fica_tax: float
    fica_breakdown: FICABreakdown

    # State
    state_tax: float
    state_rate_used: float
    state_tax_method: str

    # Totals
    total_tax_liability: float
    take_home_pay: float
    effective_tax_rate: float

    # Withholding vs liability, positive = refund
    federal_tax_withheld: float
    refund_or_owe: float = Field(description="Federal: positive = refund, negative = owed")
    fica_refund_or_owe: Optional[float] = None
    state_refund_or_owe: Optional[float] = None
    total_refund_or_owe: float

    messages: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def monthly_take_home(self) -> float:
        return self.take_home_pay / PAY_PERIODS_PER_YEAR["monthly"]

    @computed_field
    @property
    def biweekly_take_home(self) -> float:
        return self.take_home_pay / BIWEEKLY_PERIODS_PER_YEAR


class WithholdingSuggestions(BaseModel):
    """Annual amounts a form can offer as one-click defaults."""
    fica_withholding: float
    state_withholding: float
    max_401k: float
    max_hsa_individual: float
    max_hsa_family: float


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    field: str
    message: str
    severity: Literal["error", "warning"]


class ValidationResult(BaseModel):
    is_valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)


# =============================================================================
# AI VERIFICATION MODELS
# =============================================================================

class AICalculations(BaseModel):
    federal_tax: float = 0.0
    state_tax: float = 0.0
    fica_tax: float = 0.0


class VerificationAnalysis(BaseModel):
    fica_check: str = ""
    standard_deduction_check: str = ""
    state_tax_check: str = ""
    refund_check: str = ""


class VerificationReport(BaseModel):
    """Structured answer expected back from the verification model."""
    ai_calculations: AICalculations
    comparison_status: ComparisonStatus
    analysis: VerificationAnalysis = Field(default_factory=VerificationAnalysis)
    summary: str = ""


class LineComparison(BaseModel):
    label: str
    engine_value: float
    ai_value: float
    difference: float
    tolerance: float

    @computed_field
    @property
    def within_tolerance(self) -> bool:
        return abs(self.difference) < self.tolerance


class VerificationOutcome(BaseModel):
    """Result of one verification attempt. Advisory only."""
    success: bool
    provider: str
    model: str
    report: Optional[VerificationReport] = None
    comparisons: List[LineComparison] = Field(default_factory=list)
    tokens_used: Optional[int] = None
    error: Optional[str] = None
