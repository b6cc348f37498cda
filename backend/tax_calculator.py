"""
VisaTax - Tax Calculator
========================
Core tax calculation engine.

Every function here is a pure function of its inputs and the read-only
tables in tax_constants. Nothing raises for numeric input: amounts are
clamped with max/min instead of rejected.

Pipeline (TaxCalculator.calculate_tax):
    annualize -> FICA -> AGI -> standard deduction -> taxable income
    -> federal brackets -> state tax -> totals -> refund/owe
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from tax_constants import (
    ADDITIONAL_MEDICARE_THRESHOLD,
    FICA_CONSTANTS,
    NO_STANDARD_DEDUCTION_MESSAGE,
    PAY_PERIODS_PER_YEAR,
    STATE_BRACKET_ESTIMATE,
    WITHHOLDING_DEFAULTS,
    Brackets,
    Country,
    FilingStatus,
    StateTaxCategory,
    StateTaxInfo,
    TaxYearTable,
    VisaStatus,
    get_standard_deduction_rule,
    get_state_brackets,
    get_state_info,
    get_tax_year_table,
    is_supported_tax_year,
)
from models import (
    BracketDetail,
    FICABreakdown,
    PayFrequency,
    TaxResult,
    UserProfile,
    WithholdingSuggestions,
)

logger = logging.getLogger(__name__)


# =============================================================================
# UTILITIES
# =============================================================================

def annualize(amount: float, frequency: PayFrequency) -> float:
    """Convert a per-period amount to an annual amount."""
    return amount * PAY_PERIODS_PER_YEAR[frequency.value]


def is_fica_exempt(visa_status: VisaStatus, years_in_us: int) -> bool:
    """F-1 students are exempt for their first 5 calendar years (year 5 included)."""
    return (
        visa_status == VisaStatus.F1_STUDENT
        and years_in_us <= FICA_CONSTANTS["f1_exemption_calendar_years"]
    )


# =============================================================================
# PROGRESSIVE BRACKETS (shared by federal and graduated state tax)
# =============================================================================

def apply_brackets(income: float, brackets: Brackets) -> Tuple[float, List[BracketDetail], float]:
    """
    Apply a progressive schedule to an income figure.

    Args:
        income: Base the schedule is applied to (taxable income or AGI)
        brackets: Ascending (upper_limit, rate) rows, last limit unbounded

    Returns:
        (liability, per-bracket breakdown, marginal rate)
    """
    liability = 0.0
    breakdown: List[BracketDetail] = []
    marginal_rate = 0.0
    remaining = income
    previous_limit = 0.0

    for limit, rate in brackets:
        if remaining <= 0:
            break

        # width is inf for the top row, so min() caps it at what's left
        amount = min(remaining, limit - previous_limit)
        tax = amount * rate
        liability += tax

        if amount > 0:
            breakdown.append(BracketDetail(
                rate=rate,
                lower_bound=previous_limit,
                upper_bound=None if limit == float('inf') else limit,
                amount_in_bracket=amount,
                tax_amount=tax,
            ))
            marginal_rate = rate

        remaining -= amount
        previous_limit = limit

    return liability, breakdown, marginal_rate


# =============================================================================
# FICA
# =============================================================================

def calculate_fica(
    gross_annual_pay: float,
    visa_status: VisaStatus,
    years_in_us: int,
    filing_status: FilingStatus,
    ss_wage_base: float,
) -> FICABreakdown:
    """Social Security, Medicare and Additional Medicare with the F-1 exemption."""
    exemption_years = FICA_CONSTANTS["f1_exemption_calendar_years"]

    if is_fica_exempt(visa_status, years_in_us):
        return FICABreakdown(
            is_exempt=True,
            exemption_reason=(
                f"F-1 students are exempt from Social Security & Medicare taxes for their first "
                f"{exemption_years} calendar years of physical presence in the US."
            ),
        )

    wages = max(0.0, gross_annual_pay)

    # Social Security - capped at wage base
    social_security_tax = min(wages, ss_wage_base) * FICA_CONSTANTS["social_security_rate"]

    # Medicare - no wage limit
    medicare_tax = wages * FICA_CONSTANTS["medicare_rate"]

    # Additional Medicare - only on wages over the threshold
    threshold = ADDITIONAL_MEDICARE_THRESHOLD[filing_status]
    additional_medicare_tax = max(0.0, wages - threshold) * FICA_CONSTANTS["additional_medicare_rate"]

    exemption_reason = None
    if visa_status == VisaStatus.F1_STUDENT:
        exemption_reason = (
            f"You have exceeded the {exemption_years}-year FICA exemption period for F-1 students."
        )

    return FICABreakdown(
        social_security_tax=social_security_tax,
        medicare_tax=medicare_tax,
        additional_medicare_tax=additional_medicare_tax,
        total_fica=social_security_tax + medicare_tax + additional_medicare_tax,
        is_exempt=False,
        exemption_reason=exemption_reason,
    )


# =============================================================================
# STATE TAX
# =============================================================================

@dataclass(frozen=True)
class StateTaxOutcome:
    state_tax: float
    rate_used: float
    method: str
    message: str


def resolve_state_tax(
    state_info: Optional[StateTaxInfo],
    filing_status: FilingStatus,
    adjusted_gross_income: float,
    explicit_brackets: Optional[Brackets] = None,
    state_name: Optional[str] = None,
) -> StateTaxOutcome:
    """
    Compute state tax on AGI.

    State tax is applied to AGI, not federal taxable income: the federal
    standard deduction does not reduce it.
    """
    agi = adjusted_gross_income

    if state_info is None:
        logger.debug("State %r not in state table, assuming no state tax", state_name)
        return StateTaxOutcome(
            state_tax=0.0,
            rate_used=0.0,
            method="unknown_state",
            message=f"State '{state_name}' is not recognized; state income tax assumed to be $0.",
        )

    if state_info.category == StateTaxCategory.NONE:
        return StateTaxOutcome(0.0, 0.0, "none", f"{state_info.name} has no state income tax.")

    if state_info.category == StateTaxCategory.FLAT:
        rate = state_info.min_rate
        return StateTaxOutcome(
            state_tax=agi * rate,
            rate_used=rate,
            method="flat",
            message=f"{state_info.name} has a flat income tax rate of {rate * 100:.2f}%.",
        )

    if explicit_brackets:
        state_tax, _, _ = apply_brackets(agi, explicit_brackets)
        return StateTaxOutcome(
            state_tax=state_tax,
            rate_used=state_tax / agi if agi > 0 else 0.0,
            method="graduated_brackets",
            message=f"{state_info.name} tax calculated using graduated brackets.",
        )

    # Graduated state without mapped brackets: interpolate an effective rate
    income_factor = min(agi / STATE_BRACKET_ESTIMATE[filing_status], 1)
    rate = state_info.min_rate + (state_info.max_rate - state_info.min_rate) * income_factor
    return StateTaxOutcome(
        state_tax=agi * rate,
        rate_used=rate,
        method="interpolated",
        message=f"{state_info.name} tax estimated using effective rate interpolation.",
    )


# =============================================================================
# STANDARD DEDUCTION
# =============================================================================

def determine_standard_deduction(
    visa_status: VisaStatus,
    country: Country,
    filing_status: FilingStatus,
    table: TaxYearTable,
) -> Tuple[float, str]:
    """Return (deduction, explanation) from the visa/country eligibility table."""
    rule = get_standard_deduction_rule(visa_status, country)
    if rule is None:
        return 0.0, NO_STANDARD_DEDUCTION_MESSAGE
    return table.standard_deduction[filing_status], rule.format(tax_year=table.tax_year)


# =============================================================================
# TAX CALCULATION ENGINE
# =============================================================================

class TaxCalculator:
    """
    Orchestrates a full estimate from a UserProfile.
    Stateless: one instance can serve any number of profiles.
    """

    def calculate_tax(self, profile: UserProfile) -> TaxResult:
        messages: List[str] = []

        table = get_tax_year_table(profile.tax_year)
        if not is_supported_tax_year(profile.tax_year):
            messages.append(
                f"Tax year {profile.tax_year} is not supported; using {table.tax_year} tax tables."
            )

        # Step 1: Annualize
        gross_pay = annualize(profile.gross_pay, profile.pay_frequency)
        pre_tax_deductions = annualize(profile.pre_tax_deductions, profile.pay_frequency)
        federal_withheld = annualize(profile.federal_tax_withheld, profile.pay_frequency)

        # Step 2: FICA
        fica = calculate_fica(
            gross_pay,
            profile.visa_status,
            profile.years_in_us,
            profile.filing_status,
            table.ss_wage_base,
        )
        messages.extend(self._fica_messages(fica))

        # Step 3: AGI
        agi = max(0.0, gross_pay - pre_tax_deductions)

        # Step 4: Standard deduction
        standard_deduction, deduction_message = determine_standard_deduction(
            profile.visa_status, profile.country, profile.filing_status, table
        )
        messages.append(deduction_message)

        # Step 5: Taxable income
        taxable_income = max(0.0, agi - standard_deduction)

        # Step 6: Federal tax
        federal_tax, federal_breakdown, marginal_rate = apply_brackets(
            taxable_income, table.brackets[profile.filing_status]
        )

        # Step 7: State tax (on AGI)
        state = resolve_state_tax(
            get_state_info(profile.state),
            profile.filing_status,
            agi,
            get_state_brackets(profile.state, profile.filing_status),
            state_name=profile.state,
        )
        messages.append(state.message)

        # Step 8: Totals
        total_tax = federal_tax + state.state_tax + fica.total_fica
        take_home = gross_pay - total_tax - pre_tax_deductions
        effective_rate = total_tax / gross_pay if gross_pay > 0 else 0.0

        # Refund / owe, each category independent of the others
        refund_or_owe = federal_withheld - federal_tax
        fica_refund_or_owe = self._refund_or_owe(profile.fica_withheld, profile.pay_frequency, fica.total_fica)
        state_refund_or_owe = self._refund_or_owe(
            profile.state_tax_withheld, profile.pay_frequency, state.state_tax
        )
        total_refund_or_owe = refund_or_owe + (fica_refund_or_owe or 0.0) + (state_refund_or_owe or 0.0)

        return TaxResult(
            tax_year=table.tax_year,
            gross_pay=gross_pay,
            pre_tax_deductions=pre_tax_deductions,
            adjusted_gross_income=agi,
            standard_deduction=standard_deduction,
            taxable_income=taxable_income,
            federal_tax_liability=federal_tax,
            federal_breakdown=federal_breakdown,
            marginal_tax_rate=marginal_rate,
            fica_tax=fica.total_fica,
            fica_breakdown=fica,
            state_tax=state.state_tax,
            state_rate_used=state.rate_used,
            state_tax_method=state.method,
            total_tax_liability=total_tax,
            take_home_pay=take_home,
            effective_tax_rate=effective_rate,
            federal_tax_withheld=federal_withheld,
            refund_or_owe=refund_or_owe,
            fica_refund_or_owe=fica_refund_or_owe,
            state_refund_or_owe=state_refund_or_owe,
            total_refund_or_owe=total_refund_or_owe,
            messages=messages,
        )

    def _fica_messages(self, fica: FICABreakdown) -> List[str]:
        if fica.is_exempt:
            return [f"FICA Exempt: {fica.exemption_reason}"]

        msg = (
            f"FICA Tax: SS (${fica.social_security_tax:,.0f}) "
            f"+ Medicare (${fica.medicare_tax:,.0f})"
        )
        if fica.additional_medicare_tax > 0:
            msg += f" + Additional Medicare (${fica.additional_medicare_tax:,.0f})"

        messages = [msg]
        if fica.exemption_reason:
            messages.append(fica.exemption_reason)
        return messages

    @staticmethod
    def _refund_or_owe(
        withheld: Optional[float],
        frequency: PayFrequency,
        liability: float,
    ) -> Optional[float]:
        if withheld is None:
            return None
        return annualize(withheld, frequency) - liability


def calculate_tax(profile: UserProfile) -> TaxResult:
    """Engine entry point: profile in, fully itemized TaxResult out."""
    return TaxCalculator().calculate_tax(profile)


# =============================================================================
# WITHHOLDING SUGGESTIONS
# =============================================================================

def suggest_withholdings(profile: UserProfile) -> WithholdingSuggestions:
    """
    Rough annual withholding figures and contribution caps for form defaults.
    Not used by calculate_tax.
    """
    table = get_tax_year_table(profile.tax_year)
    gross_pay = annualize(profile.gross_pay, profile.pay_frequency)

    if is_fica_exempt(profile.visa_status, profile.years_in_us):
        fica_withholding = 0.0
    else:
        fica_withholding = float(round(gross_pay * WITHHOLDING_DEFAULTS["fica_rate"]))

    state_info = get_state_info(profile.state)
    if state_info is None or state_info.category == StateTaxCategory.NONE:
        state_withholding = 0.0
    else:
        # midpoint of the state's rate range
        estimated_rate = (state_info.min_rate + state_info.max_rate) / 2
        state_withholding = float(round(gross_pay * estimated_rate))

    limits = table.contribution_limits
    return WithholdingSuggestions(
        fica_withholding=fica_withholding,
        state_withholding=state_withholding,
        max_401k=limits["401k_employee"],
        max_hsa_individual=limits["hsa_individual"],
        max_hsa_family=limits["hsa_family"],
    )
