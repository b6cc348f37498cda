"""
VisaTax - Input Validation
==========================
Advisory checks on a UserProfile.

Issues are either "error" (the estimate can't be trusted, e.g. negative pay)
or "warning" (the estimate is computed but looks unusual). The engine runs
regardless; these results only annotate the caller's display.
"""

from typing import Any, List

from tax_constants import INPUT_LIMITS, VisaStatus, get_state_info, is_supported_tax_year
from models import PayFrequency, UserProfile, ValidationIssue, ValidationResult
from tax_calculator import annualize


VALIDATED_FIELDS = [
    "gross_pay",
    "pre_tax_deductions",
    "federal_tax_withheld",
    "fica_withheld",
    "state_tax_withheld",
    "years_in_us",
    "state",
    "tax_year",
]


def _error(field: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field, message=message, severity="error")


def _warning(field: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field, message=message, severity="warning")


def validate_field(field: str, value: Any, profile: UserProfile) -> List[ValidationIssue]:
    """
    Check one field's value in the context of the rest of the profile.

    Args:
        field: UserProfile field name
        value: Candidate value (may differ from profile's current value)
        profile: The profile providing context (pay frequency, gross pay, visa)

    Returns:
        List of issues, empty when the value looks fine
    """
    issues: List[ValidationIssue] = []
    frequency: PayFrequency = profile.pay_frequency
    annual_gross = annualize(profile.gross_pay, frequency)

    if field == "gross_pay":
        if value < INPUT_LIMITS["gross_pay_min"]:
            issues.append(_error(field, "Gross pay cannot be negative"))
        if value > INPUT_LIMITS["gross_pay_max"]:
            issues.append(_warning(field, "Please enter a realistic salary amount"))

    elif field == "pre_tax_deductions":
        if value < INPUT_LIMITS["pre_tax_deductions_min"]:
            issues.append(_error(field, "Deductions cannot be negative"))
        if annualize(value, frequency) > annual_gross and annual_gross > 0:
            issues.append(_error(field, "Pre-tax deductions exceed gross pay"))

    elif field == "federal_tax_withheld":
        if value < INPUT_LIMITS["withheld_min"]:
            issues.append(_error(field, "Tax withheld cannot be negative"))
        warning_share = INPUT_LIMITS["tax_withheld_warning_percent"]
        if annualize(value, frequency) > annual_gross * warning_share and annual_gross > 0:
            issues.append(_warning(
                field, f"Tax withheld exceeds {warning_share:.0%} of gross pay - please verify"
            ))

    elif field in ("fica_withheld", "state_tax_withheld"):
        if value is not None and value < INPUT_LIMITS["withheld_min"]:
            issues.append(_error(field, "Tax withheld cannot be negative"))

    elif field == "years_in_us":
        if value < INPUT_LIMITS["years_in_us_min"]:
            issues.append(_error(field, "Years in US cannot be negative"))
        if value > INPUT_LIMITS["years_in_us_max"]:
            issues.append(_warning(field, "Please enter a realistic number of years"))
        if value > INPUT_LIMITS["years_in_us_f1_warning"] and profile.visa_status == VisaStatus.F1_STUDENT:
            issues.append(_warning(
                field,
                f"After {INPUT_LIMITS['years_in_us_f1_warning']}+ years, you may have different tax status",
            ))

    elif field == "state":
        if get_state_info(value) is None:
            issues.append(_warning(field, f"Unknown state '{value}' - state tax will be treated as $0"))

    elif field == "tax_year":
        if not is_supported_tax_year(value):
            issues.append(_warning(field, f"Tax year {value} is not supported - default year tables will be used"))

    return issues


def validate_profile(profile: UserProfile) -> ValidationResult:
    """Run every field check and split the issues by severity."""
    issues: List[ValidationIssue] = []
    for field in VALIDATED_FIELDS:
        issues.extend(validate_field(field, getattr(profile, field), profile))

    errors = [i for i in issues if i.severity == "error"]
    warnings = [i for i in issues if i.severity == "warning"]

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
