"""
VisaTax - FastAPI Backend
=========================
HTTP surface for the tax estimation engine.

Architecture:
1. Tax calculations are done locally in Python (tax_calculator)
2. Validation only annotates results - it never blocks a calculation
3. AI verification is optional; its failure never fails a request
"""

import os
import logging
from datetime import datetime, timezone
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Local imports
from tax_constants import (
    DEFAULT_TAX_YEAR,
    FICA_CONSTANTS,
    STATES_LIST,
    FilingStatus,
    format_brackets,
    get_tax_year_table,
)
from models import UserProfile, ValidationResult, WithholdingSuggestions
from tax_calculator import TaxCalculator, suggest_withholdings
from validation import validate_profile
from verification_client import TaxVerificationClient

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION SETUP
# =============================================================================

_verification_client: Optional[TaxVerificationClient] = None


def get_verification_client() -> TaxVerificationClient:
    """Get or create the verification client singleton."""
    global _verification_client
    if _verification_client is None:
        _verification_client = TaxVerificationClient()
    return _verification_client


def get_calculator() -> TaxCalculator:
    return TaxCalculator()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("VisaTax starting up...")
    yield
    logger.info("VisaTax shutting down...")


app = FastAPI(
    title="VisaTax",
    description="Take-home pay and tax estimates for F-1 students and H-1B workers",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],  # React dev servers
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _parse_filing_status(value: str) -> FilingStatus:
    try:
        return FilingStatus(value.lower().replace(" ", "_"))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid filing status: {value}")


# =============================================================================
# API ENDPOINTS
# =============================================================================

@app.get("/")
async def root():
    """API health check."""
    return {
        "service": "VisaTax",
        "version": "1.0.0",
        "status": "healthy",
    }


@app.get("/api/health")
async def health_check(client: TaxVerificationClient = Depends(get_verification_client)):
    """Detailed health check."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {
            "tax_calculator": "ready",
            "ai_verification": "connected" if client.is_connected else "mock_mode",
        }
    }


# --- TAX CALCULATION ---

@app.post("/api/calculate")
def calculate(profile: UserProfile, calculator: TaxCalculator = Depends(get_calculator)):
    """
    Calculate the full estimate for a profile.

    Validation issues are returned next to the result; they never block it.
    """
    result = calculator.calculate_tax(profile)
    validation = validate_profile(profile)

    if not validation.is_valid:
        logger.info("Calculated with %d validation error(s)", len(validation.errors))

    return {
        "tax_result": result.model_dump(),
        "validation": validation.model_dump(),
    }


@app.post("/api/validate", response_model=ValidationResult)
def validate(profile: UserProfile):
    """Run the advisory input checks only."""
    return validate_profile(profile)


@app.post("/api/suggestions", response_model=WithholdingSuggestions)
def suggestions(profile: UserProfile):
    """Suggested annual withholding and contribution caps."""
    return suggest_withholdings(profile)


# --- AI VERIFICATION ---

@app.post("/api/verify")
def verify(
    profile: UserProfile,
    calculator: TaxCalculator = Depends(get_calculator),
    client: TaxVerificationClient = Depends(get_verification_client),
):
    """
    Calculate, then ask the AI model to cross-check the result.

    The engine's numbers are returned unchanged whatever the model says.
    """
    result = calculator.calculate_tax(profile)
    outcome = client.verify(profile, result)

    if not outcome.success:
        logger.warning("AI verification unavailable: %s", outcome.error)

    return {
        "tax_result": result.model_dump(),
        "verification": outcome.model_dump(),
    }


# --- TAX REFERENCE DATA ---

@app.get("/api/reference/brackets")
async def get_tax_brackets(tax_year: Optional[int] = None, filing_status: Optional[str] = None):
    """Get federal bracket information for a tax year."""
    table = get_tax_year_table(tax_year or DEFAULT_TAX_YEAR)

    def describe(status: FilingStatus):
        return {
            "brackets": [
                {"limit": limit if limit != float('inf') else "unlimited", "rate": rate}
                for limit, rate in table.brackets[status]
            ],
            "summary": format_brackets(table.brackets[status]),
            "standard_deduction": table.standard_deduction[status],
        }

    if filing_status:
        status = _parse_filing_status(filing_status)
        return {"tax_year": table.tax_year, "filing_status": status.value, **describe(status)}

    # Return all
    return {
        "tax_year": table.tax_year,
        **{status.value: describe(status) for status in FilingStatus},
    }


@app.get("/api/reference/states")
async def get_states():
    """State table with category and rate range."""
    return [
        {
            "name": state.name,
            "category": state.category.value,
            "min_rate": state.min_rate,
            "max_rate": state.max_rate,
        }
        for state in STATES_LIST
    ]


@app.get("/api/reference/limits")
async def get_contribution_limits(tax_year: Optional[int] = Query(default=None)):
    """Get contribution limits and FICA figures for a tax year."""
    table = get_tax_year_table(tax_year or DEFAULT_TAX_YEAR)
    return {
        "tax_year": table.tax_year,
        "contribution_limits": dict(table.contribution_limits),
        "social_security_wage_base": table.ss_wage_base,
        "fica": FICA_CONSTANTS,
    }


# --- ERROR HANDLERS ---

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if os.getenv("DEBUG") else "An error occurred"
        }
    )


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
