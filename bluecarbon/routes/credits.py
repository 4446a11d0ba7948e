"""
Stateless credit and wallet endpoints.

Previews only: nothing here reads or writes the database.
"""

from fastapi import APIRouter

from bluecarbon.handlers.calculator import compute_from_raw, format_calculation_results
from bluecarbon.handlers.validation import validate_measurement, validate_wallet_address
from bluecarbon.models.measurement import (
    CreditPreviewRequest,
    MeasurementValidation,
    WalletCheckRequest,
    WalletValidation,
)

router = APIRouter(tags=["credits"])


@router.post("/credits/validate", response_model=MeasurementValidation)
async def validate_measurement_endpoint(carbon_data: dict):
    """Report which required measurement fields are missing or non-numeric."""
    return validate_measurement(carbon_data)


@router.post("/credits/calculate")
async def calculate_preview_endpoint(request: CreditPreviewRequest):
    """
    Calculate credits for ad-hoc measurements.

    Returns the full computation plus display strings; the result is not
    stored and cannot be minted.
    """
    computation = compute_from_raw(request.carbon_data, request.project_area)
    return {
        "calculation": computation,
        "formatted": format_calculation_results(computation),
    }


@router.post("/wallets/validate", response_model=WalletValidation)
async def validate_wallet_endpoint(request: WalletCheckRequest):
    """Check a recipient wallet address."""
    return validate_wallet_address(request.address)
