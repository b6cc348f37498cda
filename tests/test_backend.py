"""
VisaTax - Test Suite
====================
Tests for the tax tables, engine components, orchestrator and validation.
"""

import os
import sys

import pytest

# Import modules to test
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from tax_constants import (
    ADDITIONAL_MEDICARE_THRESHOLD,
    DEFAULT_TAX_YEAR,
    STATE_BRACKET_ESTIMATE,
    STATE_GRADUATED_BRACKETS,
    STATES_LIST,
    TAX_YEAR_TABLES,
    Country,
    FilingStatus,
    StateTaxCategory,
    VisaStatus,
    get_all_constants_for_llm,
    get_standard_deduction_rule,
    get_state_brackets,
    get_state_info,
    get_tax_bracket_info,
    get_tax_year_table,
    is_supported_tax_year,
)
from models import PayFrequency, TaxResult, UserProfile
from tax_calculator import (
    TaxCalculator,
    annualize,
    apply_brackets,
    calculate_fica,
    calculate_tax,
    resolve_state_tax,
    suggest_withholdings,
)
from validation import validate_field, validate_profile


def closed_form_tax(income, brackets):
    """Sum of rate x slice for each bracket, computed independently of the walk."""
    total = 0.0
    lower = 0.0
    for limit, rate in brackets:
        total += rate * max(0.0, min(income, limit) - lower)
        lower = limit
    return total


def make_profile(**overrides):
    values = dict(
        visa_status=VisaStatus.H1B_WORKER,
        country=Country.OTHER,
        years_in_us=10,
        state="Texas",
        pay_frequency=PayFrequency.ANNUAL,
        gross_pay=100000,
        pre_tax_deductions=0,
        federal_tax_withheld=0,
        filing_status=FilingStatus.SINGLE,
        tax_year=2025,
    )
    values.update(overrides)
    return UserProfile(**values)


# =============================================================================
# TAX TABLE STORE TESTS
# =============================================================================

class TestTaxConstants:
    """Test reference table values and lookups."""

    def test_brackets_exist_for_all_years_and_statuses(self):
        for table in TAX_YEAR_TABLES.values():
            for status in FilingStatus:
                assert len(table.brackets[status]) > 0
                assert table.standard_deduction[status] > 0

    def test_brackets_ascending_and_unbounded(self):
        """Limits strictly increase and the last row is unbounded."""
        schedules = [t.brackets[s] for t in TAX_YEAR_TABLES.values() for s in FilingStatus]
        schedules += [rows for by_status in STATE_GRADUATED_BRACKETS.values() for rows in by_status.values()]

        for brackets in schedules:
            limits = [limit for limit, _ in brackets]
            assert limits == sorted(limits)
            assert len(set(limits)) == len(limits)
            assert limits[-1] == float('inf')

    def test_year_tables_are_read_only(self):
        table = get_tax_year_table(2025)
        with pytest.raises(TypeError):
            table.standard_deduction[FilingStatus.SINGLE] = 0
        with pytest.raises(TypeError):
            table.brackets[FilingStatus.SINGLE] = ()
        with pytest.raises(TypeError):
            table.contribution_limits["401k_employee"] = 0
        assert table.standard_deduction[FilingStatus.SINGLE] == 15000

    def test_married_deduction_higher_than_single(self):
        table = get_tax_year_table(2025)
        assert table.standard_deduction[FilingStatus.MARRIED_JOINT] > table.standard_deduction[FilingStatus.SINGLE]

    def test_unknown_year_falls_back_to_default(self):
        assert not is_supported_tax_year(1999)
        table = get_tax_year_table(1999)
        assert table is TAX_YEAR_TABLES[DEFAULT_TAX_YEAR]

    def test_supported_year_lookup(self):
        assert get_tax_year_table(2024).ss_wage_base == 168600
        assert get_tax_year_table(2025).ss_wage_base == 176100

    def test_state_category_invariants(self):
        for state in STATES_LIST:
            if state.category == StateTaxCategory.NONE:
                assert state.min_rate == 0 and state.max_rate == 0
            elif state.category == StateTaxCategory.FLAT:
                assert state.min_rate == state.max_rate
            else:
                assert state.min_rate <= state.max_rate

    def test_explicit_brackets_only_for_graduated_states(self):
        for name in STATE_GRADUATED_BRACKETS:
            assert get_state_info(name).category == StateTaxCategory.GRADUATED

    def test_state_lookups(self):
        assert get_state_info("Narnia") is None
        assert get_state_brackets("Oregon", FilingStatus.SINGLE) is None
        assert get_state_brackets("California", FilingStatus.SINGLE)[0] == (10412, 0.01)

    def test_standard_deduction_rules(self):
        assert get_standard_deduction_rule(VisaStatus.H1B_WORKER, Country.CHINA) is not None
        assert get_standard_deduction_rule(VisaStatus.F1_STUDENT, Country.INDIA) is not None
        assert get_standard_deduction_rule(VisaStatus.F1_STUDENT, Country.CHINA) is None
        assert get_standard_deduction_rule(VisaStatus.F1_STUDENT, Country.OTHER) is None

    def test_bracket_info_for_llm(self):
        info = get_tax_bracket_info(FilingStatus.SINGLE, 2025)
        assert "2025 Federal Tax Brackets for Single" in info
        assert "Over $626,350: 37%" in info

        constants = get_all_constants_for_llm(2024)
        assert "AUTHORITATIVE 2024 TAX REFERENCE DATA" in constants
        assert "$168,600" in constants


# =============================================================================
# BRACKET ENGINE TESTS
# =============================================================================

class TestApplyBrackets:
    """Test the shared progressive bracket walk."""

    brackets = TAX_YEAR_TABLES[2025].brackets[FilingStatus.SINGLE]

    def test_zero_income(self):
        liability, breakdown, marginal = apply_brackets(0, self.brackets)
        assert liability == 0
        assert breakdown == []
        assert marginal == 0

    def test_negative_income(self):
        liability, breakdown, marginal = apply_brackets(-5000, self.brackets)
        assert liability == 0
        assert breakdown == []
        assert marginal == 0

    def test_first_bracket_only(self):
        liability, breakdown, marginal = apply_brackets(10000, self.brackets)
        assert liability == pytest.approx(1000)
        assert len(breakdown) == 1
        assert breakdown[0].lower_bound == 0
        assert breakdown[0].upper_bound == 11925
        assert marginal == 0.10

    def test_exactly_on_bracket_limit(self):
        """Income ending on a limit does not open the next bracket."""
        liability, breakdown, marginal = apply_brackets(11925, self.brackets)
        assert len(breakdown) == 1
        assert marginal == 0.10
        assert liability == pytest.approx(1192.5)

    def test_multiple_brackets(self):
        liability, breakdown, marginal = apply_brackets(50000, self.brackets)
        expected = (11925 * 0.10) + ((48475 - 11925) * 0.12) + ((50000 - 48475) * 0.22)
        assert liability == pytest.approx(expected)
        assert [b.rate for b in breakdown] == [0.10, 0.12, 0.22]
        assert marginal == 0.22

    def test_unbounded_top_bracket(self):
        liability, breakdown, marginal = apply_brackets(1_000_000, self.brackets)
        top = breakdown[-1]
        assert top.upper_bound is None
        assert top.lower_bound == 626350
        assert top.amount_in_bracket == pytest.approx(1_000_000 - 626350)
        assert marginal == 0.37

    @pytest.mark.parametrize("income", [1, 11925.01, 48475, 75000, 250525, 626351, 3_000_000])
    def test_breakdown_sums_to_income(self, income):
        _, breakdown, _ = apply_brackets(income, self.brackets)
        assert sum(b.amount_in_bracket for b in breakdown) == pytest.approx(income)

    @pytest.mark.parametrize(
        "state,status",
        [(state, status) for state, by_status in STATE_GRADUATED_BRACKETS.items() for status in by_status],
    )
    @pytest.mark.parametrize("income", [1, 25000, 98765.43, 1_500_000])
    def test_state_breakdown_sums_to_income(self, state, status, income):
        brackets = STATE_GRADUATED_BRACKETS[state][status]
        liability, breakdown, _ = apply_brackets(income, brackets)
        assert sum(b.amount_in_bracket for b in breakdown) == pytest.approx(income)
        assert liability == pytest.approx(closed_form_tax(income, brackets))

    @pytest.mark.parametrize("status", list(FilingStatus))
    @pytest.mark.parametrize("income", [500, 30000, 120000, 400000, 900000])
    def test_matches_closed_form(self, status, income):
        brackets = TAX_YEAR_TABLES[2025].brackets[status]
        liability, breakdown, _ = apply_brackets(income, brackets)
        assert liability == pytest.approx(closed_form_tax(income, brackets))
        assert sum(b.tax_amount for b in breakdown) == pytest.approx(liability)

    def test_zero_rate_bracket_is_emitted(self):
        """A 0% bracket with income in it still appears in the breakdown."""
        ohio = STATE_GRADUATED_BRACKETS["Ohio"][FilingStatus.SINGLE]
        liability, breakdown, marginal = apply_brackets(20000, ohio)
        assert liability == 0
        assert len(breakdown) == 1
        assert breakdown[0].amount_in_bracket == 20000
        assert marginal == 0


# =============================================================================
# FICA TESTS
# =============================================================================

class TestFICA:
    """Test FICA with the F-1 exemption window."""

    wage_base = TAX_YEAR_TABLES[2025].ss_wage_base

    @pytest.mark.parametrize("years", [0, 1, 2, 3, 4, 5])
    def test_f1_exempt_first_five_years(self, years):
        fica = calculate_fica(80000, VisaStatus.F1_STUDENT, years, FilingStatus.SINGLE, self.wage_base)
        assert fica.is_exempt
        assert fica.total_fica == 0
        assert fica.social_security_tax == 0
        assert fica.medicare_tax == 0
        assert "5 calendar years" in fica.exemption_reason

    def test_f1_year_six_not_exempt(self):
        fica = calculate_fica(80000, VisaStatus.F1_STUDENT, 6, FilingStatus.SINGLE, self.wage_base)
        assert not fica.is_exempt
        assert fica.social_security_tax == 80000 * 0.062
        assert fica.medicare_tax == 80000 * 0.0145
        assert "exceeded" in fica.exemption_reason

    def test_h1b_never_exempt(self):
        fica = calculate_fica(80000, VisaStatus.H1B_WORKER, 1, FilingStatus.SINGLE, self.wage_base)
        assert not fica.is_exempt
        assert fica.exemption_reason is None
        assert fica.total_fica == pytest.approx(80000 * 0.0765)

    def test_social_security_capped_at_wage_base(self):
        fica = calculate_fica(300000, VisaStatus.H1B_WORKER, 3, FilingStatus.MARRIED_JOINT, self.wage_base)
        assert fica.social_security_tax == self.wage_base * 0.062
        assert fica.medicare_tax == 300000 * 0.0145

    @pytest.mark.parametrize("status", list(FilingStatus))
    def test_additional_medicare_at_threshold(self, status):
        threshold = ADDITIONAL_MEDICARE_THRESHOLD[status]
        fica = calculate_fica(threshold, VisaStatus.H1B_WORKER, 3, status, self.wage_base)
        assert fica.additional_medicare_tax == 0

    @pytest.mark.parametrize("status", list(FilingStatus))
    def test_additional_medicare_over_threshold(self, status):
        threshold = ADDITIONAL_MEDICARE_THRESHOLD[status]
        fica = calculate_fica(threshold + 10000, VisaStatus.H1B_WORKER, 3, status, self.wage_base)
        assert fica.additional_medicare_tax == pytest.approx(10000 * 0.009)
        assert fica.total_fica == pytest.approx(
            fica.social_security_tax + fica.medicare_tax + fica.additional_medicare_tax
        )

    def test_negative_gross_clamped(self):
        fica = calculate_fica(-1000, VisaStatus.H1B_WORKER, 3, FilingStatus.SINGLE, self.wage_base)
        assert fica.total_fica == 0


# =============================================================================
# STATE TAX TESTS
# =============================================================================

class TestStateTax:
    """Test the none / flat / graduated state policies."""

    @pytest.mark.parametrize("agi", [0, 50000, 2_000_000])
    def test_no_tax_state(self, agi):
        outcome = resolve_state_tax(get_state_info("Texas"), FilingStatus.SINGLE, agi)
        assert outcome.state_tax == 0
        assert outcome.rate_used == 0
        assert "no state income tax" in outcome.message

    def test_flat_state(self):
        illinois = get_state_info("Illinois")
        outcome = resolve_state_tax(illinois, FilingStatus.SINGLE, 80000)
        assert outcome.state_tax == 80000 * illinois.min_rate
        assert outcome.rate_used == illinois.min_rate
        assert "4.95%" in outcome.message

    def test_graduated_with_brackets(self):
        brackets = get_state_brackets("California", FilingStatus.SINGLE)
        outcome = resolve_state_tax(get_state_info("California"), FilingStatus.SINGLE, 500000, brackets)
        assert outcome.method == "graduated_brackets"
        assert outcome.state_tax == pytest.approx(closed_form_tax(500000, brackets))
        assert outcome.rate_used == pytest.approx(outcome.state_tax / 500000)

    def test_graduated_with_brackets_zero_agi(self):
        brackets = get_state_brackets("New York", FilingStatus.SINGLE)
        outcome = resolve_state_tax(get_state_info("New York"), FilingStatus.SINGLE, 0, brackets)
        assert outcome.state_tax == 0
        assert outcome.rate_used == 0

    def test_graduated_interpolation(self):
        oregon = get_state_info("Oregon")
        outcome = resolve_state_tax(oregon, FilingStatus.SINGLE, 100000)
        expected_rate = oregon.min_rate + (oregon.max_rate - oregon.min_rate) * min(100000 / 200000, 1)
        assert outcome.method == "interpolated"
        assert outcome.rate_used == pytest.approx(expected_rate)
        assert outcome.state_tax == pytest.approx(100000 * expected_rate)

    def test_interpolation_ceiling_depends_on_filing_status(self):
        oregon = get_state_info("Oregon")
        single = resolve_state_tax(oregon, FilingStatus.SINGLE, 200000)
        joint = resolve_state_tax(oregon, FilingStatus.MARRIED_JOINT, 200000)
        assert single.rate_used == pytest.approx(oregon.max_rate)
        assert joint.rate_used == pytest.approx(
            oregon.min_rate + (oregon.max_rate - oregon.min_rate) * 200000 / STATE_BRACKET_ESTIMATE[FilingStatus.MARRIED_JOINT]
        )

    def test_interpolation_capped_at_max_rate(self):
        oregon = get_state_info("Oregon")
        outcome = resolve_state_tax(oregon, FilingStatus.SINGLE, 5_000_000)
        assert outcome.rate_used == pytest.approx(oregon.max_rate)

    def test_unknown_state(self):
        outcome = resolve_state_tax(None, FilingStatus.SINGLE, 100000, state_name="Narnia")
        assert outcome.state_tax == 0
        assert "Narnia" in outcome.message


# =============================================================================
# DATA MODEL TESTS
# =============================================================================

class TestDataModels:
    """Test profile parsing."""

    def test_profile_normalizes_aliases(self):
        profile = UserProfile(
            visa_status="F-1 Student",
            country="India",
            pay_frequency="Yearly",
            gross_pay=40000,
            filing_status="single",
        )
        assert profile.visa_status == VisaStatus.F1_STUDENT
        assert profile.country == Country.INDIA
        assert profile.pay_frequency == PayFrequency.ANNUAL

    def test_unknown_country_is_other(self):
        profile = UserProfile(visa_status="h1b_worker", country="Brazil")
        assert profile.country == Country.OTHER

    def test_profile_is_frozen(self):
        profile = make_profile()
        with pytest.raises(Exception):
            profile.gross_pay = 1

    def test_annualize(self):
        assert annualize(8000, PayFrequency.MONTHLY) == 96000
        assert annualize(8000, PayFrequency.ANNUAL) == 8000


# =============================================================================
# TAX CALCULATOR TESTS
# =============================================================================

class TestTaxCalculator:
    """Test the full pipeline."""

    @pytest.fixture
    def calculator(self):
        return TaxCalculator()

    def test_scenario_student_india_treaty(self, calculator):
        profile = make_profile(
            visa_status=VisaStatus.F1_STUDENT,
            country=Country.INDIA,
            years_in_us=2,
            state="Florida",
            gross_pay=40000,
        )
        result = calculator.calculate_tax(profile)

        assert result.fica_tax == 0
        assert result.fica_breakdown.is_exempt
        assert result.standard_deduction == 15000
        assert result.taxable_income == 25000
        assert result.federal_tax_liability == pytest.approx(11925 * 0.10 + (25000 - 11925) * 0.12)
        assert result.marginal_tax_rate == 0.12
        assert result.state_tax == 0
        assert any("US-India Tax Treaty" in m for m in result.messages)

    def test_scenario_worker_married_monthly(self, calculator):
        profile = make_profile(
            pay_frequency=PayFrequency.MONTHLY,
            gross_pay=8000,
            pre_tax_deductions=500,
            filing_status=FilingStatus.MARRIED_JOINT,
            state="Texas",
        )
        result = calculator.calculate_tax(profile)

        assert result.gross_pay == 96000
        assert result.pre_tax_deductions == 6000
        assert result.adjusted_gross_income == 90000
        assert result.fica_tax == pytest.approx(96000 * 0.062 + 96000 * 0.0145)
        assert result.standard_deduction == 30000
        assert result.taxable_income == 60000
        assert result.state_tax == 0

        married = TAX_YEAR_TABLES[2025].brackets[FilingStatus.MARRIED_JOINT]
        assert result.federal_tax_liability == pytest.approx(closed_form_tax(60000, married))
        assert result.federal_tax_liability == pytest.approx(23850 * 0.10 + (60000 - 23850) * 0.12)
        assert result.marginal_tax_rate == 0.12

    def test_scenario_student_china_no_treaty(self, calculator):
        profile = make_profile(
            visa_status=VisaStatus.F1_STUDENT,
            country=Country.CHINA,
            years_in_us=1,
            gross_pay=30000,
        )
        result = calculator.calculate_tax(profile)

        assert result.standard_deduction == 0
        assert result.taxable_income == 30000
        assert result.fica_breakdown.is_exempt
        assert any("No Standard Deduction" in m for m in result.messages)

    def test_scenario_california_uses_brackets(self, calculator):
        result = calculator.calculate_tax(make_profile(state="California", gross_pay=500000))
        brackets = STATE_GRADUATED_BRACKETS["California"][FilingStatus.SINGLE]

        assert result.adjusted_gross_income == 500000
        assert result.state_tax_method == "graduated_brackets"
        assert result.state_tax == pytest.approx(closed_form_tax(500000, brackets))

    def test_scenario_graduated_state_without_table(self, calculator):
        result = calculator.calculate_tax(make_profile(state="Oregon", gross_pay=100000))
        oregon = get_state_info("Oregon")
        expected_rate = oregon.min_rate + (oregon.max_rate - oregon.min_rate) * 0.5

        assert result.state_tax_method == "interpolated"
        assert result.state_rate_used == pytest.approx(expected_rate)
        assert result.state_tax == pytest.approx(100000 * expected_rate)

    def test_state_tax_uses_agi_not_taxable_income(self, calculator):
        result = calculator.calculate_tax(make_profile(state="Illinois", gross_pay=60000, pre_tax_deductions=5000))
        assert result.state_tax == pytest.approx(55000 * 0.0495)

    def test_totals(self, calculator):
        result = calculator.calculate_tax(make_profile(state="Illinois", gross_pay=90000, pre_tax_deductions=10000))

        assert result.total_tax_liability == pytest.approx(
            result.federal_tax_liability + result.state_tax + result.fica_tax
        )
        assert result.take_home_pay == pytest.approx(90000 - result.total_tax_liability - 10000)
        assert result.effective_tax_rate == pytest.approx(result.total_tax_liability / 90000)
        assert result.monthly_take_home == pytest.approx(result.take_home_pay / 12)
        assert result.biweekly_take_home == pytest.approx(result.take_home_pay / 26)

    def test_zero_gross_pay(self, calculator):
        result = calculator.calculate_tax(make_profile(gross_pay=0))
        assert result.effective_tax_rate == 0
        assert result.federal_breakdown == []
        assert result.marginal_tax_rate == 0

    def test_deductions_exceeding_gross_clamp_agi(self, calculator):
        result = calculator.calculate_tax(make_profile(gross_pay=10000, pre_tax_deductions=20000))
        assert result.adjusted_gross_income == 0
        assert result.taxable_income == 0

    def test_negative_inputs_do_not_raise(self, calculator):
        result = calculator.calculate_tax(make_profile(gross_pay=-5000, years_in_us=-3, federal_tax_withheld=-10))
        assert result.federal_tax_liability == 0
        assert result.fica_tax == 0

    def test_federal_refund(self, calculator):
        profile = make_profile(gross_pay=5000, federal_tax_withheld=1200, pay_frequency=PayFrequency.MONTHLY)
        result = calculator.calculate_tax(profile)
        assert result.federal_tax_withheld == 14400
        assert result.refund_or_owe == pytest.approx(14400 - result.federal_tax_liability)

    def test_untracked_withholding_is_none(self, calculator):
        result = calculator.calculate_tax(make_profile())
        assert result.fica_refund_or_owe is None
        assert result.state_refund_or_owe is None
        assert result.total_refund_or_owe == result.refund_or_owe

    def test_tracked_withholding_kept_independent(self, calculator):
        profile = make_profile(
            state="Illinois",
            gross_pay=100000,
            federal_tax_withheld=20000,
            fica_withheld=9000,
            state_tax_withheld=4000,
        )
        result = calculator.calculate_tax(profile)

        assert result.fica_refund_or_owe == pytest.approx(9000 - result.fica_tax)
        assert result.state_refund_or_owe == pytest.approx(4000 - result.state_tax)
        assert result.refund_or_owe == pytest.approx(20000 - result.federal_tax_liability)
        assert result.total_refund_or_owe == pytest.approx(
            result.refund_or_owe + result.fica_refund_or_owe + result.state_refund_or_owe
        )

    def test_unsupported_tax_year_falls_back_with_message(self, calculator):
        result = calculator.calculate_tax(make_profile(tax_year=2031))
        assert result.tax_year == DEFAULT_TAX_YEAR
        assert "2031 is not supported" in result.messages[0]

    def test_2024_tables_used(self, calculator):
        result = calculator.calculate_tax(make_profile(tax_year=2024, gross_pay=50000))
        assert result.tax_year == 2024
        assert result.standard_deduction == 14600
        assert not any("not supported" in m for m in result.messages)

    def test_unknown_state_message(self, calculator):
        result = calculator.calculate_tax(make_profile(state="Narnia"))
        assert result.state_tax == 0
        assert result.state_tax_method == "unknown_state"

    def test_fica_message_includes_additional_medicare(self, calculator):
        result = calculator.calculate_tax(make_profile(gross_pay=300000))
        assert any("Additional Medicare" in m for m in result.messages)

    def test_student_past_window_message(self, calculator):
        profile = make_profile(visa_status=VisaStatus.F1_STUDENT, country=Country.INDIA, years_in_us=7)
        result = calculator.calculate_tax(profile)
        assert result.fica_tax > 0
        assert any("exceeded the 5-year" in m for m in result.messages)

    def test_idempotent(self, calculator):
        profile = make_profile(state="New Jersey", gross_pay=123456.78, pre_tax_deductions=2345)
        first = calculator.calculate_tax(profile)
        second = calculator.calculate_tax(profile)
        assert first.model_dump() == second.model_dump()

    def test_module_entry_point(self):
        result = calculate_tax(make_profile())
        assert isinstance(result, TaxResult)


# =============================================================================
# WITHHOLDING SUGGESTION TESTS
# =============================================================================

class TestWithholdingSuggestions:

    def test_exempt_student_no_state(self):
        profile = make_profile(visa_status=VisaStatus.F1_STUDENT, years_in_us=1, state="Texas", gross_pay=40000)
        suggestions = suggest_withholdings(profile)
        assert suggestions.fica_withholding == 0
        assert suggestions.state_withholding == 0

    def test_worker_graduated_state(self):
        profile = make_profile(state="Oregon", gross_pay=100000)
        suggestions = suggest_withholdings(profile)
        assert suggestions.fica_withholding == 7650
        assert suggestions.state_withholding == round(100000 * (0.0475 + 0.099) / 2)

    def test_contribution_limits_follow_year(self):
        assert suggest_withholdings(make_profile(tax_year=2024)).max_401k == 23000
        assert suggest_withholdings(make_profile(tax_year=2025)).max_401k == 23500
        assert suggest_withholdings(make_profile(tax_year=2025)).max_hsa_family == 8550


# =============================================================================
# VALIDATION TESTS
# =============================================================================

class TestValidation:

    def test_valid_profile(self):
        result = validate_profile(make_profile(federal_tax_withheld=12000))
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_negative_gross_is_error(self):
        result = validate_profile(make_profile(gross_pay=-1))
        assert not result.is_valid
        assert result.errors[0].field == "gross_pay"

    def test_unrealistic_gross_is_warning(self):
        result = validate_profile(make_profile(gross_pay=20_000_000))
        assert result.is_valid
        assert any(w.field == "gross_pay" for w in result.warnings)

    def test_deductions_exceed_gross(self):
        issues = validate_field("pre_tax_deductions", 150000, make_profile(gross_pay=100000))
        assert [i.severity for i in issues] == ["error"]
        assert "exceed" in issues[0].message

    def test_withholding_over_half_is_warning(self):
        profile = make_profile(pay_frequency=PayFrequency.MONTHLY, gross_pay=5000, federal_tax_withheld=3000)
        result = validate_profile(profile)
        assert result.is_valid
        assert any("50%" in w.message for w in result.warnings)

    def test_negative_tracked_withholding(self):
        result = validate_profile(make_profile(fica_withheld=-5, state_tax_withheld=-1))
        assert {e.field for e in result.errors} == {"fica_withheld", "state_tax_withheld"}

    def test_years_in_us_checks(self):
        assert validate_field("years_in_us", -1, make_profile())[0].severity == "error"
        assert validate_field("years_in_us", 60, make_profile())[0].severity == "warning"

        student = make_profile(visa_status=VisaStatus.F1_STUDENT)
        issues = validate_field("years_in_us", 25, student)
        assert any("different tax status" in i.message for i in issues)

    def test_unknown_state_and_year_warn(self):
        result = validate_profile(make_profile(state="Narnia", tax_year=2030))
        assert result.is_valid
        assert {w.field for w in result.warnings} == {"state", "tax_year"}


# =============================================================================
# RUN TESTS
# =============================================================================

if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
