"""
VisaTax - LLM Prompts
=====================
System prompt and prompt builders for the AI verification cross-check.

CRITICAL RULES FOR LLM USAGE:
1. The LLM NEVER feeds numbers back into the engine - its answer is advisory
2. The LLM receives only tax-relevant facts - no names or identifiers
3. The LLM must output a single JSON object matching VERIFICATION_RESPONSE_FORMAT
4. Reference tables are PROVIDED to the LLM so it compares against the same data

The prompts in this module enforce these rules.
"""

from typing import Any, Dict, List, Tuple

from tax_constants import FICA_CONSTANTS, get_all_constants_for_llm
from models import ComparisonStatus


# =============================================================================
# VERIFICATION SYSTEM PROMPT
# =============================================================================

VERIFICATION_RESPONSE_FORMAT = """{
    "ai_calculations": {
        "federal_tax": number,
        "state_tax": number,
        "fica_tax": number
    },
    "comparison_status": "Match" | "Minor Difference" | "Discrepancy",
    "analysis": {
        "fica_check": "string",
        "standard_deduction_check": "string",
        "state_tax_check": "string",
        "refund_check": "string"
    },
    "summary": "string"
}"""


VERIFICATION_SYSTEM_PROMPT = f"""You are a highly accurate US tax verification engine for international students (F-1) and workers (H-1B).

## YOUR TASK:
1. Independently calculate federal income tax, state income tax and FICA for the profile you receive
2. Compare your calculations with the "App Calculated Results" provided
3. Verify the FICA exemption logic (F-1 students exempt for their first {FICA_CONSTANTS['f1_exemption_calendar_years']} calendar years)
4. Verify the standard deduction decision (treaty eligibility, resident vs non-resident alien)
5. Verify the state tax estimate is reasonable for the state given
6. Verify the refund/owe figures based on withholding vs liability

## CRITICAL RULES:
1. Output ONLY a raw JSON object - no markdown, no explanations outside the JSON
2. Numbers must be numeric (not strings), without currency symbols or commas
3. Use "Match" when all three liabilities are within a few dollars,
   "Minor Difference" for small rounding or table differences,
   "Discrepancy" when a rule appears to be applied incorrectly

## EXPECTED OUTPUT FORMAT:
{VERIFICATION_RESPONSE_FORMAT}"""


# =============================================================================
# PROMPT UTILITIES
# =============================================================================

def _money(value: Any) -> str:
    if value is None:
        return "not tracked"
    return f"${value:,.2f}"


def build_profile_summary(profile_data: dict) -> str:
    """Build a human-readable summary of a profile for LLM prompts."""
    lines = [
        f"Visa: {profile_data.get('visa_status', 'unknown')}",
        f"Citizenship: {profile_data.get('country', 'unknown')}",
        f"Years in US: {profile_data.get('years_in_us', 'unknown')}",
        f"State: {profile_data.get('state', 'unknown')}",
        f"Filing Status: {profile_data.get('filing_status', 'unknown')}",
        f"Tax Year: {profile_data.get('tax_year', 'unknown')}",
        "",
        "=== ANNUAL INCOME ===",
        f"Gross Annual Pay: {_money(profile_data.get('gross_pay', 0))}",
        f"Pre-Tax Deductions: {_money(profile_data.get('pre_tax_deductions', 0))}",
        "",
        "=== WITHHOLDINGS (annual) ===",
        f"Federal Tax Withheld: {_money(profile_data.get('federal_tax_withheld', 0))}",
        f"FICA Tax Withheld: {_money(profile_data.get('fica_withheld'))}",
        f"State Tax Withheld: {_money(profile_data.get('state_tax_withheld'))}",
    ]
    return "\n".join(lines)


def build_calculation_summary(result_data: dict) -> str:
    """Build a human-readable summary of the engine's figures."""
    lines = [
        "=== APP CALCULATED RESULTS (for comparison) ===",
        f"Federal Tax Liability: {_money(result_data.get('federal_tax_liability', 0))}",
        f"FICA Tax Liability: {_money(result_data.get('fica_tax', 0))}",
        f"State Tax Liability: {_money(result_data.get('state_tax', 0))}",
        f"Federal Refund/Owe: {_money(result_data.get('refund_or_owe', 0))} (positive = refund)",
        f"FICA Refund/Owe: {_money(result_data.get('fica_refund_or_owe'))} (positive = refund)",
        f"State Refund/Owe: {_money(result_data.get('state_refund_or_owe'))} (positive = refund)",
        f"Total Refund/Owe: {_money(result_data.get('total_refund_or_owe', 0))} (positive = refund)",
    ]
    return "\n".join(lines)


def build_verification_prompt(profile_data: dict, result_data: dict) -> str:
    """Assemble the user prompt sent alongside VERIFICATION_SYSTEM_PROMPT."""
    tax_year = profile_data.get('tax_year')
    reference = get_all_constants_for_llm(tax_year) if isinstance(tax_year, int) else get_all_constants_for_llm()

    return f"""
USER PROFILE:
{build_profile_summary(profile_data)}

{build_calculation_summary(result_data)}

{reference}

Return ONLY the JSON object described in your instructions.
"""


# =============================================================================
# RESPONSE VALIDATION
# =============================================================================

def validate_verification_response(response: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate that an LLM verification response has the required fields.

    Returns:
        Tuple of (is_valid, list of issues)
    """
    issues = []

    calculations = response.get('ai_calculations')
    if not isinstance(calculations, dict):
        issues.append("Missing ai_calculations section")
    else:
        for key in ('federal_tax', 'state_tax', 'fica_tax'):
            if not isinstance(calculations.get(key), (int, float)):
                issues.append(f"ai_calculations.{key} must be a number")

    status = response.get('comparison_status')
    allowed = [s.value for s in ComparisonStatus]
    if status not in allowed:
        issues.append(f"Invalid comparison_status: {status!r}")

    if not isinstance(response.get('analysis', {}), dict):
        issues.append("analysis must be an object")

    return len(issues) == 0, issues


__all__ = [
    'VERIFICATION_SYSTEM_PROMPT',
    'VERIFICATION_RESPONSE_FORMAT',
    'build_profile_summary',
    'build_calculation_summary',
    'build_verification_prompt',
    'validate_verification_response',
]
