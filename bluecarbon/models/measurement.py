"""
Measurement and credit computation schemas (not persisted as tables).
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from bluecarbon.core.constants import (
    DEFAULT_CARBON_FRACTION,
    DEFAULT_UNCERTAINTY_DEDUCTION,
    REQUIRED_MEASUREMENT_FIELDS,
)


class CarbonMeasurement(BaseModel):
    """One project's raw field measurements (per hectare)."""

    model_config = ConfigDict(frozen=True)

    bulk_density: float = Field(..., description="Soil bulk density (g/cm³)")
    depth: float = Field(..., description="Sampled soil depth (m)")
    carbon_percent: float = Field(..., description="Soil organic carbon (%)")
    agb_biomass: float = Field(..., description="Above-ground biomass (Mg/ha)")
    bgb_biomass: float = Field(..., description="Below-ground biomass (Mg/ha)")
    carbon_fraction: float = Field(default=DEFAULT_CARBON_FRACTION)
    ch4_flux: float = Field(..., description="CH4 flux (μmol·m⁻²·h⁻¹)")
    n2o_flux: float = Field(..., description="N2O flux (μmol·m⁻²·h⁻¹)")
    baseline_carbon_stock: float = Field(..., description="Baseline stock (Mg C/ha)")
    uncertainty_deduction: float = Field(default=DEFAULT_UNCERTAINTY_DEDUCTION)


class CreditBreakdown(BaseModel):
    """Unrounded per-hectare components, kept for transparency."""

    model_config = ConfigDict(frozen=True)

    soil_carbon: float
    aboveground_carbon: float
    belowground_carbon: float
    methane_emissions: float
    nitrous_oxide_emissions: float
    total_emissions: float
    baseline: float
    uncertainty_deduction: float


class CreditComputation(BaseModel):
    """Per-hectare and total CO2e credits derived from a measurement."""

    model_config = ConfigDict(frozen=True)

    soc_co2e: float
    agb_co2e: float
    bgb_co2e: float
    total_ghg_co2e: float
    baseline_co2e: float
    current_total_co2e: float
    net_stock_increase: float
    net_co2e: float
    net_co2e_after_uncertainty: float
    credits_per_hectare: float
    uncertainty_percentage: float
    project_area: Optional[float] = None
    total_credits: Optional[float] = None
    breakdown: CreditBreakdown


class MeasurementValidation(BaseModel):
    valid: bool
    missing: List[str] = Field(default_factory=list)
    required_fields: List[str] = Field(default_factory=lambda: list(REQUIRED_MEASUREMENT_FIELDS))


class WalletValidation(BaseModel):
    valid: bool
    reason: Optional[str] = None


class CreditPreviewRequest(BaseModel):
    """Ad-hoc calculation request (nothing is persisted)."""
    carbon_data: dict
    project_area: float = Field(..., gt=0)


class WalletCheckRequest(BaseModel):
    address: Optional[str] = None
