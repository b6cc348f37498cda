"""
VisaTax - Tax Constants
=======================
Hardcoded federal, FICA and state tax reference data by tax year.

These tables are the ONLY source of truth for tax calculations.
The verification prompt also quotes them so the LLM never invents brackets.

Supported tax years: 2024, 2025. Any other year falls back to DEFAULT_TAX_YEAR.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================

class FilingStatus(str, Enum):
    SINGLE = "single"
    MARRIED_JOINT = "married_filing_jointly"


class VisaStatus(str, Enum):
    F1_STUDENT = "f1_student"
    H1B_WORKER = "h1b_worker"


class Country(str, Enum):
    INDIA = "india"
    CHINA = "china"
    OTHER = "other"


class StateTaxCategory(str, Enum):
    NONE = "none"
    FLAT = "flat"
    GRADUATED = "graduated"


# Format: tuple of (upper_limit, marginal_rate) rows.
# The last row uses float('inf') for unlimited income.
Brackets = Tuple[Tuple[float, float], ...]


# =============================================================================
# TAX YEAR TABLES
# =============================================================================

@dataclass(frozen=True)
class TaxYearTable:
    """Reference data for one tax year. Mappings are read-only views."""
    tax_year: int
    standard_deduction: Mapping[FilingStatus, float]
    ss_wage_base: float
    brackets: Mapping[FilingStatus, Brackets]
    contribution_limits: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        for name in ("standard_deduction", "brackets", "contribution_limits"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))


TAX_YEAR_TABLES: Dict[int, TaxYearTable] = {
    2024: TaxYearTable(
        tax_year=2024,
        standard_deduction={
            FilingStatus.SINGLE: 14600,
            FilingStatus.MARRIED_JOINT: 29200,
        },
        ss_wage_base=168600,
        brackets={
            FilingStatus.SINGLE: (
                (11600, 0.10),
                (47150, 0.12),
                (100525, 0.22),
                (191950, 0.24),
                (243725, 0.32),
                (609350, 0.35),
                (float('inf'), 0.37),
            ),
            FilingStatus.MARRIED_JOINT: (
                (23200, 0.10),
                (94300, 0.12),
                (201050, 0.22),
                (383900, 0.24),
                (487450, 0.32),
                (731200, 0.35),
                (float('inf'), 0.37),
            ),
        },
        contribution_limits={
            "401k_employee": 23000,
            "hsa_individual": 4150,
            "hsa_family": 8300,
        },
    ),
    2025: TaxYearTable(
        tax_year=2025,
        standard_deduction={
            FilingStatus.SINGLE: 15000,
            FilingStatus.MARRIED_JOINT: 30000,
        },
        ss_wage_base=176100,
        brackets={
            FilingStatus.SINGLE: (
                (11925, 0.10),      # 10% on first $11,925
                (48475, 0.12),      # 12% on $11,926 to $48,475
                (103350, 0.22),     # 22% on $48,476 to $103,350
                (197300, 0.24),     # 24% on $103,351 to $197,300
                (250525, 0.32),     # 32% on $197,301 to $250,525
                (626350, 0.35),     # 35% on $250,526 to $626,350
                (float('inf'), 0.37),  # 37% on over $626,350
            ),
            FilingStatus.MARRIED_JOINT: (
                (23850, 0.10),
                (96950, 0.12),
                (206700, 0.22),
                (394600, 0.24),
                (501050, 0.32),
                (751600, 0.35),
                (float('inf'), 0.37),
            ),
        },
        contribution_limits={
            "401k_employee": 23500,
            "hsa_individual": 4300,
            "hsa_family": 8550,
        },
    ),
}

DEFAULT_TAX_YEAR = 2025


# =============================================================================
# FICA CONSTANTS
# Rates are fixed across supported years; only the SS wage base is per year.
# =============================================================================

FICA_CONSTANTS = {
    "social_security_rate": 0.062,
    "medicare_rate": 0.0145,
    "additional_medicare_rate": 0.009,
    # F-1 students are exempt for their first 5 calendar years in the US
    "f1_exemption_calendar_years": 5,
}

ADDITIONAL_MEDICARE_THRESHOLD: Dict[FilingStatus, float] = {
    FilingStatus.SINGLE: 200000,
    FilingStatus.MARRIED_JOINT: 250000,
}


# =============================================================================
# STANDARD DEDUCTION ELIGIBILITY
# Keyed by (visa status, country). A None country matches any country.
# Unlisted combinations get no standard deduction.
# =============================================================================

STANDARD_DEDUCTION_RULES: Dict[Tuple[VisaStatus, Optional[Country]], str] = {
    (VisaStatus.H1B_WORKER, None): (
        "Standard Deduction ({tax_year}): H-1B holders are typically Resident Aliens."
    ),
    (VisaStatus.F1_STUDENT, Country.INDIA): (
        "Treaty Benefit: The US-India Tax Treaty (Article 21) allows Standard Deduction."
    ),
}

NO_STANDARD_DEDUCTION_MESSAGE = (
    "No Standard Deduction: Most Non-Resident Aliens (F-1) cannot claim this."
)


# =============================================================================
# STATE TAX DATA
# =============================================================================

@dataclass(frozen=True)
class StateTaxInfo:
    name: str
    min_rate: float
    max_rate: float
    category: StateTaxCategory


STATES_LIST: List[StateTaxInfo] = [
    # --- No income tax ---
    StateTaxInfo("Alaska", 0, 0, StateTaxCategory.NONE),
    StateTaxInfo("Florida", 0, 0, StateTaxCategory.NONE),
    StateTaxInfo("Nevada", 0, 0, StateTaxCategory.NONE),
    StateTaxInfo("New Hampshire", 0, 0, StateTaxCategory.NONE),
    StateTaxInfo("South Dakota", 0, 0, StateTaxCategory.NONE),
    StateTaxInfo("Tennessee", 0, 0, StateTaxCategory.NONE),
    StateTaxInfo("Texas", 0, 0, StateTaxCategory.NONE),
    StateTaxInfo("Wyoming", 0, 0, StateTaxCategory.NONE),

    # --- Flat income tax ---
    StateTaxInfo("Arizona", 0.025, 0.025, StateTaxCategory.FLAT),
    StateTaxInfo("Colorado", 0.044, 0.044, StateTaxCategory.FLAT),
    StateTaxInfo("Georgia", 0.0519, 0.0519, StateTaxCategory.FLAT),
    StateTaxInfo("Idaho", 0.053, 0.053, StateTaxCategory.FLAT),
    StateTaxInfo("Illinois", 0.0495, 0.0495, StateTaxCategory.FLAT),
    StateTaxInfo("Indiana", 0.03, 0.03, StateTaxCategory.FLAT),
    StateTaxInfo("Iowa", 0.038, 0.038, StateTaxCategory.FLAT),
    StateTaxInfo("Kentucky", 0.04, 0.04, StateTaxCategory.FLAT),
    StateTaxInfo("Louisiana", 0.03, 0.03, StateTaxCategory.FLAT),
    StateTaxInfo("Michigan", 0.0425, 0.0425, StateTaxCategory.FLAT),
    StateTaxInfo("Mississippi", 0.044, 0.044, StateTaxCategory.FLAT),
    StateTaxInfo("North Carolina", 0.0425, 0.0425, StateTaxCategory.FLAT),
    StateTaxInfo("Pennsylvania", 0.0307, 0.0307, StateTaxCategory.FLAT),
    StateTaxInfo("Utah", 0.045, 0.045, StateTaxCategory.FLAT),
    StateTaxInfo("Washington", 0, 0, StateTaxCategory.FLAT),  # capital gains only

    # --- Graduated-rate income tax ---
    StateTaxInfo("Alabama", 0.02, 0.05, StateTaxCategory.GRADUATED),
    StateTaxInfo("Arkansas", 0, 0.039, StateTaxCategory.GRADUATED),
    StateTaxInfo("California", 0.01, 0.133, StateTaxCategory.GRADUATED),
    StateTaxInfo("Connecticut", 0.02, 0.0699, StateTaxCategory.GRADUATED),
    StateTaxInfo("Delaware", 0, 0.066, StateTaxCategory.GRADUATED),
    StateTaxInfo("District of Columbia", 0.04, 0.1075, StateTaxCategory.GRADUATED),
    StateTaxInfo("Hawaii", 0.014, 0.11, StateTaxCategory.GRADUATED),
    StateTaxInfo("Kansas", 0.052, 0.0558, StateTaxCategory.GRADUATED),
    StateTaxInfo("Maine", 0.058, 0.0715, StateTaxCategory.GRADUATED),
    StateTaxInfo("Maryland", 0.02, 0.065, StateTaxCategory.GRADUATED),
    StateTaxInfo("Massachusetts", 0.05, 0.09, StateTaxCategory.GRADUATED),
    StateTaxInfo("Minnesota", 0.0535, 0.0985, StateTaxCategory.GRADUATED),
    StateTaxInfo("Missouri", 0.02, 0.047, StateTaxCategory.GRADUATED),
    StateTaxInfo("Montana", 0.047, 0.059, StateTaxCategory.GRADUATED),
    StateTaxInfo("Nebraska", 0.0246, 0.052, StateTaxCategory.GRADUATED),
    StateTaxInfo("New Jersey", 0.014, 0.1075, StateTaxCategory.GRADUATED),
    StateTaxInfo("New Mexico", 0.017, 0.059, StateTaxCategory.GRADUATED),
    StateTaxInfo("New York", 0.04, 0.109, StateTaxCategory.GRADUATED),
    StateTaxInfo("North Dakota", 0, 0.025, StateTaxCategory.GRADUATED),
    StateTaxInfo("Ohio", 0, 0.03125, StateTaxCategory.GRADUATED),
    StateTaxInfo("Oklahoma", 0.0025, 0.0475, StateTaxCategory.GRADUATED),
    StateTaxInfo("Oregon", 0.0475, 0.099, StateTaxCategory.GRADUATED),
    StateTaxInfo("Rhode Island", 0.0375, 0.0599, StateTaxCategory.GRADUATED),
    StateTaxInfo("South Carolina", 0, 0.06, StateTaxCategory.GRADUATED),
    StateTaxInfo("Vermont", 0.0335, 0.0875, StateTaxCategory.GRADUATED),
    StateTaxInfo("Virginia", 0.02, 0.0575, StateTaxCategory.GRADUATED),
    StateTaxInfo("West Virginia", 0.0222, 0.0482, StateTaxCategory.GRADUATED),
    StateTaxInfo("Wisconsin", 0.035, 0.0765, StateTaxCategory.GRADUATED),
]

STATE_TAX_INFO: Dict[str, StateTaxInfo] = {state.name: state for state in STATES_LIST}


# Explicit brackets for a subset of graduated states (approximations for 2024/2025).
# Graduated states missing here use effective rate interpolation.
STATE_GRADUATED_BRACKETS: Dict[str, Dict[FilingStatus, Brackets]] = {
    "California": {
        FilingStatus.SINGLE: (
            (10412, 0.01),
            (24684, 0.02),
            (38959, 0.04),
            (54081, 0.06),
            (68350, 0.08),
            (349137, 0.093),
            (418961, 0.103),
            (698271, 0.113),
            (float('inf'), 0.123),
        ),
        FilingStatus.MARRIED_JOINT: (
            (20824, 0.01),
            (49368, 0.02),
            (77918, 0.04),
            (108162, 0.06),
            (136700, 0.08),
            (698274, 0.093),
            (837922, 0.103),
            (1396542, 0.113),
            (float('inf'), 0.123),
        ),
    },
    "New York": {
        FilingStatus.SINGLE: (
            (8500, 0.04),
            (11700, 0.045),
            (13900, 0.0525),
            (80650, 0.055),
            (215400, 0.06),
            (1077550, 0.0685),
            (5000000, 0.0965),
            (25000000, 0.103),
            (float('inf'), 0.109),
        ),
        FilingStatus.MARRIED_JOINT: (
            (17150, 0.04),
            (23600, 0.045),
            (27900, 0.0525),
            (161550, 0.055),
            (323200, 0.06),
            (2155350, 0.0685),
            (5000000, 0.0965),
            (25000000, 0.103),
            (float('inf'), 0.109),
        ),
    },
    "New Jersey": {
        FilingStatus.SINGLE: (
            (20000, 0.014),
            (35000, 0.0175),
            (40000, 0.035),
            (75000, 0.05525),
            (500000, 0.0637),
            (1000000, 0.0897),
            (float('inf'), 0.1075),
        ),
        FilingStatus.MARRIED_JOINT: (
            (20000, 0.014),
            (50000, 0.0175),
            (70000, 0.0245),
            (80000, 0.035),
            (150000, 0.05525),
            (500000, 0.0637),
            (1000000, 0.0897),
            (float('inf'), 0.1075),
        ),
    },
    "Massachusetts": {
        FilingStatus.SINGLE: ((float('inf'), 0.05),),
        FilingStatus.MARRIED_JOINT: ((float('inf'), 0.05),),
    },
    "Virginia": {
        FilingStatus.SINGLE: ((3000, 0.02), (5000, 0.03), (17000, 0.05), (float('inf'), 0.0575)),
        FilingStatus.MARRIED_JOINT: ((3000, 0.02), (5000, 0.03), (17000, 0.05), (float('inf'), 0.0575)),
    },
    "Alabama": {
        FilingStatus.SINGLE: ((500, 0.02), (3000, 0.04), (float('inf'), 0.05)),
        FilingStatus.MARRIED_JOINT: ((1000, 0.02), (6000, 0.04), (float('inf'), 0.05)),
    },
    "Connecticut": {
        FilingStatus.SINGLE: (
            (10000, 0.03), (50000, 0.05), (100000, 0.055), (200000, 0.06),
            (250000, 0.065), (500000, 0.069), (float('inf'), 0.0699),
        ),
        FilingStatus.MARRIED_JOINT: (
            (20000, 0.03), (100000, 0.05), (200000, 0.055), (400000, 0.06),
            (500000, 0.065), (1000000, 0.069), (float('inf'), 0.0699),
        ),
    },
    "Maryland": {
        FilingStatus.SINGLE: (
            (1000, 0.02), (2000, 0.03), (3000, 0.04), (100000, 0.0475),
            (125000, 0.05), (150000, 0.0525), (250000, 0.055), (float('inf'), 0.0575),
        ),
        FilingStatus.MARRIED_JOINT: (
            (1000, 0.02), (2000, 0.03), (3000, 0.04), (150000, 0.0475),
            (175000, 0.05), (225000, 0.0525), (300000, 0.055), (float('inf'), 0.0575),
        ),
    },
    "Ohio": {
        FilingStatus.SINGLE: ((26050, 0), (100000, 0.0275), (115300, 0.03688), (float('inf'), 0.0375)),
        FilingStatus.MARRIED_JOINT: ((26050, 0), (100000, 0.0275), (115300, 0.03688), (float('inf'), 0.0375)),
    },
    "Wisconsin": {
        FilingStatus.SINGLE: ((14320, 0.035), (28640, 0.044), (315310, 0.053), (float('inf'), 0.0765)),
        FilingStatus.MARRIED_JOINT: ((19090, 0.035), (38190, 0.044), (420420, 0.053), (float('inf'), 0.0765)),
    },
}

# Income ceiling used to interpolate between a graduated state's min and max rate
STATE_BRACKET_ESTIMATE: Dict[FilingStatus, float] = {
    FilingStatus.SINGLE: 200000,
    FilingStatus.MARRIED_JOINT: 400000,
}


# =============================================================================
# PAY FREQUENCY / WITHHOLDING / INPUT LIMITS
# =============================================================================

PAY_PERIODS_PER_YEAR = {
    "annual": 1,
    "monthly": 12,
}

BIWEEKLY_PERIODS_PER_YEAR = 26

WITHHOLDING_DEFAULTS = {
    "fica_rate": 0.0765,  # 6.2% SS + 1.45% Medicare
}

INPUT_LIMITS = {
    "gross_pay_min": 0,
    "gross_pay_max": 10_000_000,
    "pre_tax_deductions_min": 0,
    "withheld_min": 0,
    "tax_withheld_warning_percent": 0.5,
    "years_in_us_min": 0,
    "years_in_us_max": 50,
    "years_in_us_f1_warning": 20,
}


# =============================================================================
# LOOKUPS
# =============================================================================

def is_supported_tax_year(tax_year: int) -> bool:
    return tax_year in TAX_YEAR_TABLES


def get_tax_year_table(tax_year: int) -> TaxYearTable:
    """
    Return the reference table for a tax year.

    Unknown years silently fall back to DEFAULT_TAX_YEAR so callers
    always get an estimate. Use is_supported_tax_year() to detect it.
    """
    table = TAX_YEAR_TABLES.get(tax_year)
    if table is None:
        logger.debug("Tax year %s not supported, using %s tables", tax_year, DEFAULT_TAX_YEAR)
        return TAX_YEAR_TABLES[DEFAULT_TAX_YEAR]
    return table


def get_state_info(state: str) -> Optional[StateTaxInfo]:
    return STATE_TAX_INFO.get(state)


def get_state_brackets(state: str, filing_status: FilingStatus) -> Optional[Brackets]:
    """Explicit graduated brackets for a state, or None to use interpolation."""
    return STATE_GRADUATED_BRACKETS.get(state, {}).get(filing_status)


def get_standard_deduction_rule(visa_status: VisaStatus, country: Country) -> Optional[str]:
    """
    Return the message template of the rule granting a standard deduction,
    or None when the visa/country combination is not eligible.
    """
    rule = STANDARD_DEDUCTION_RULES.get((visa_status, country))
    if rule is None:
        rule = STANDARD_DEDUCTION_RULES.get((visa_status, None))
    return rule


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def format_brackets(brackets: Brackets) -> List[str]:
    """Render bracket rows as '$a to $b: r%' lines."""
    lines = []
    prev_limit = 0

    for limit, rate in brackets:
        if limit == float('inf'):
            lines.append(f"  Over ${prev_limit:,.0f}: {rate*100:g}%")
        else:
            lines.append(f"  ${prev_limit:,.0f} to ${limit:,.0f}: {rate*100:g}%")
            prev_limit = limit

    return lines


def get_tax_bracket_info(filing_status: FilingStatus, tax_year: int = DEFAULT_TAX_YEAR) -> str:
    """
    Return a formatted string of federal brackets for the given filing status.
    This is used to provide the LLM with accurate bracket information.
    """
    table = get_tax_year_table(tax_year)
    title = filing_status.value.replace('_', ' ').title()
    lines = [f"{table.tax_year} Federal Tax Brackets for {title}:"]
    lines.extend(format_brackets(table.brackets[filing_status]))
    return "\n".join(lines)


def get_all_constants_for_llm(tax_year: int = DEFAULT_TAX_YEAR) -> str:
    """
    Generate a string of the reference data for inclusion in LLM prompts.
    This ensures the AI never hallucinates values.
    """
    table = get_tax_year_table(tax_year)
    output = []
    output.append("=" * 60)
    output.append(f"AUTHORITATIVE {table.tax_year} TAX REFERENCE DATA")
    output.append("Use ONLY these values - do not estimate or guess.")
    output.append("=" * 60)

    output.append("\n--- STANDARD DEDUCTIONS ---")
    for status, amount in table.standard_deduction.items():
        output.append(f"{status.value}: ${amount:,.0f}")

    output.append("\n--- FICA ---")
    output.append(f"social_security_wage_base: ${table.ss_wage_base:,.0f}")
    for key, value in FICA_CONSTANTS.items():
        output.append(f"{key}: {value}")
    for status, threshold in ADDITIONAL_MEDICARE_THRESHOLD.items():
        output.append(f"additional_medicare_threshold_{status.value}: ${threshold:,.0f}")

    output.append("\n--- TAX BRACKETS ---")
    for status in FilingStatus:
        output.append(f"\n{get_tax_bracket_info(status, table.tax_year)}")

    return "\n".join(output)
