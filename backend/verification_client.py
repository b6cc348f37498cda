"""
OpenAI Integration for VisaTax
==============================
Independent AI "double-check" of the engine's numbers.

The model recalculates federal, state and FICA tax for the same profile and
reports whether it agrees. Its answer is advisory display data only: it is
never fed back into the engine, and any failure here leaves the engine's
result untouched.
"""

import os
import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from openai import OpenAI
from pydantic import ValidationError

from models import (
    LineComparison,
    TaxResult,
    UserProfile,
    VerificationOutcome,
    VerificationReport,
)
from llm_prompts import (
    VERIFICATION_SYSTEM_PROMPT,
    build_verification_prompt,
    validate_verification_response,
)
from tax_calculator import annualize

logger = logging.getLogger(__name__)

DEFAULT_VERIFY_MODEL = "gpt-4o-mini"

# Differences below these (in dollars) count as agreement
COMPARISON_TOLERANCES = {
    "federal_tax": 50.0,
    "state_tax": 50.0,
    "fica_tax": 10.0,
}


class AIProvider(Enum):
    OPENAI = "openai"
    MOCK = "mock"


class TaxVerificationClient:
    """
    AI client for cross-checking a TaxResult.

    Supports:
    - OpenAI chat completions in JSON mode (primary)
    - Mock mode (no API key configured): verify() reports it is unavailable
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.provider = AIProvider.MOCK
        self.client = None
        self.model = model or os.environ.get('VISATAX_VERIFY_MODEL', DEFAULT_VERIFY_MODEL)

        api_key = api_key or self._get_api_key()
        if api_key:
            self.client = OpenAI(api_key=api_key)
            self.provider = AIProvider.OPENAI

    def _get_api_key(self) -> Optional[str]:
        """Get API key from the environment."""
        return os.environ.get('OPENAI_API_KEY')

    @property
    def is_connected(self) -> bool:
        """Check if connected to real AI provider."""
        return self.provider == AIProvider.OPENAI and self.client is not None

    def verify(self, profile: UserProfile, result: TaxResult) -> VerificationOutcome:
        """
        Ask the model to recompute the profile's taxes and compare.

        Args:
            profile: The profile the engine was run on
            result: The engine's result for that profile

        Returns:
            VerificationOutcome; success=False on any failure, never raises
        """
        if not self.is_connected:
            return VerificationOutcome(
                success=False,
                provider=AIProvider.MOCK.value,
                model="mock",
                error="No API key found. Set OPENAI_API_KEY to enable AI verification.",
            )

        profile_data, result_data = create_verification_payload(profile, result)
        user_prompt = build_verification_prompt(profile_data, result_data)

        content, tokens_used, error = self._call_openai(VERIFICATION_SYSTEM_PROMPT, user_prompt)
        if error:
            return self._failure(error, tokens_used)

        report, error = self._parse_report(content)
        if error:
            return self._failure(error, tokens_used)

        return VerificationOutcome(
            success=True,
            provider=self.provider.value,
            model=self.model,
            report=report,
            comparisons=compare_with_engine(result, report),
            tokens_used=tokens_used,
        )

    def _call_openai(
        self,
        system_prompt: str,
        user_prompt: str,
    ) -> Tuple[str, Optional[int], Optional[str]]:
        """Make a call to OpenAI API. Returns (content, tokens_used, error)."""
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                response_format={"type": "json_object"},
            )
            tokens_used = response.usage.total_tokens if response.usage else None
            if not response.choices:
                return "", tokens_used, "Model returned no choices"
            content = response.choices[0].message.content or ""
        except Exception as e:
            logger.error("Verification request failed: %s", e)
            return "", None, str(e)

        return content, tokens_used, None

    def _parse_report(self, content: str) -> Tuple[Optional[VerificationReport], Optional[str]]:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning("Verification response is not JSON: %s", e)
            return None, f"Model returned invalid JSON: {e}"

        if not isinstance(data, dict):
            return None, "Model returned JSON that is not an object"

        is_valid, issues = validate_verification_response(data)
        if not is_valid:
            logger.warning("Verification response failed validation: %s", issues)
            return None, "; ".join(issues)

        try:
            return VerificationReport.model_validate(data), None
        except ValidationError as e:
            return None, str(e)

    def _failure(self, error: str, tokens_used: Optional[int] = None) -> VerificationOutcome:
        return VerificationOutcome(
            success=False,
            provider=self.provider.value,
            model=self.model,
            tokens_used=tokens_used,
            error=error,
        )


def create_verification_payload(
    profile: UserProfile,
    result: TaxResult,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Reduce a profile and result to what the verification model needs.

    Amounts are annualized so the model never has to guess the pay frequency.
    """
    def annual(amount: Optional[float]) -> Optional[float]:
        if amount is None:
            return None
        return annualize(amount, profile.pay_frequency)

    profile_data = {
        "visa_status": profile.visa_status.value,
        "country": profile.country.value,
        "years_in_us": profile.years_in_us,
        "state": profile.state,
        "filing_status": profile.filing_status.value,
        "tax_year": result.tax_year,
        "gross_pay": result.gross_pay,
        "pre_tax_deductions": result.pre_tax_deductions,
        "federal_tax_withheld": result.federal_tax_withheld,
        "fica_withheld": annual(profile.fica_withheld),
        "state_tax_withheld": annual(profile.state_tax_withheld),
    }

    result_data = {
        "federal_tax_liability": result.federal_tax_liability,
        "fica_tax": result.fica_tax,
        "state_tax": result.state_tax,
        "refund_or_owe": result.refund_or_owe,
        "fica_refund_or_owe": result.fica_refund_or_owe,
        "state_refund_or_owe": result.state_refund_or_owe,
        "total_refund_or_owe": result.total_refund_or_owe,
    }

    return profile_data, result_data


def compare_with_engine(result: TaxResult, report: VerificationReport) -> List[LineComparison]:
    """Line-by-line difference between the engine and the model (model - engine)."""
    lines = [
        ("Federal Tax", "federal_tax", result.federal_tax_liability, report.ai_calculations.federal_tax),
        ("State Tax", "state_tax", result.state_tax, report.ai_calculations.state_tax),
        ("FICA Tax", "fica_tax", result.fica_tax, report.ai_calculations.fica_tax),
    ]
    return [
        LineComparison(
            label=label,
            engine_value=engine_value,
            ai_value=ai_value,
            difference=ai_value - engine_value,
            tolerance=COMPARISON_TOLERANCES[key],
        )
        for label, key, engine_value, ai_value in lines
    ]
