"""
Blue carbon credit calculation.

Converts soil, biomass and greenhouse-gas flux measurements into CO2e
credits. Every function here is pure and deterministic.
"""

import math
from typing import Any, Dict, List, Mapping, Optional, Tuple

from bluecarbon.core.constants import (
    CO2_PER_CARBON,
    GWP_CH4,
    GWP_N2O,
    HOURS_PER_YEAR,
    M2_PER_HECTARE,
    MOLAR_MASS_CH4,
    MOLAR_MASS_N2O,
    OPTIONAL_MEASUREMENT_FIELDS,
    REPORT_DECIMALS,
    REQUIRED_MEASUREMENT_FIELDS,
)
from bluecarbon.core.errors import InvalidMeasurement, InvalidProjectArea
from bluecarbon.handlers.validation import parse_number, validate_measurement
from bluecarbon.models.measurement import CarbonMeasurement, CreditBreakdown, CreditComputation


def _r(value: float) -> float:
    return round(value, REPORT_DECIMALS)


# Input fields behind each CO2e component, for out-of-range reporting
COMPONENT_FIELDS: Dict[str, Tuple[str, ...]] = {
    "soil_carbon": ("bulk_density", "depth", "carbon_percent"),
    "aboveground_carbon": ("agb_biomass", "carbon_fraction"),
    "belowground_carbon": ("bgb_biomass", "carbon_fraction"),
    "methane_emissions": ("ch4_flux",),
    "nitrous_oxide_emissions": ("n2o_flux",),
    "baseline": ("baseline_carbon_stock",),
}


def _out_of_range_fields(
    components: Dict[str, float],
    net_co2e: float,
    net_after_uncertainty: float
) -> List[str]:
    """Input fields whose values push the computation past float range."""
    fields: List[str] = []
    for name, value in components.items():
        if not math.isfinite(value):
            fields.extend(COMPONENT_FIELDS[name])
    if not fields and not math.isfinite(net_co2e):
        # Each component fits but their sum does not
        for names in COMPONENT_FIELDS.values():
            fields.extend(names)
    if not fields and not math.isfinite(net_after_uncertainty):
        fields.append("uncertainty_deduction")
    return list(dict.fromkeys(fields))


def flux_to_mg_ha_yr(flux: float, molar_mass: float) -> float:
    """
    Convert a gas flux to an annual mass per hectare.

    Formula: flux (μmol/m²/h) * 1e-6 (mol) * molar mass (g/mol)
             * 8760 (h/yr) * 10000 (m²/ha) * 1e-6 (g → Mg)

    Args:
        flux: Flux in μmol·m⁻²·h⁻¹
        molar_mass: Molar mass of the gas in g/mol

    Returns:
        Flux in Mg/ha/yr
    """
    return flux * 1e-6 * molar_mass * HOURS_PER_YEAR * M2_PER_HECTARE * 1e-6


def parse_measurement(data: Mapping[str, Any]) -> CarbonMeasurement:
    """
    Build a CarbonMeasurement from raw submitted values.

    Raises:
        InvalidMeasurement: if any field is missing or non-numeric
    """
    validation = validate_measurement(data)
    if not validation.valid:
        raise InvalidMeasurement(validation.missing)

    values = {field: parse_number(data[field]) for field in REQUIRED_MEASUREMENT_FIELDS}
    for field in OPTIONAL_MEASUREMENT_FIELDS:
        number = parse_number(data.get(field))
        if number is not None:
            values[field] = number
    return CarbonMeasurement(**values)


def calculate_carbon_credits(measurement: CarbonMeasurement) -> CreditComputation:
    """Calculate per-hectare carbon credits for one measurement set."""
    return _compute(measurement)[0]


def _compute(measurement: CarbonMeasurement) -> Tuple[CreditComputation, float]:
    """
    Return the rounded computation and the unrounded per-hectare credits.

    Steps:
    1. Soil organic carbon stock → CO2e
    2. Above/below-ground biomass carbon → CO2e
    3. CH4 and N2O fluxes → annual CO2e emissions via GWP
    4. Net stock increase over baseline, minus emissions
    5. Uncertainty deduction, clamped at zero

    Reported figures are rounded to two decimals; the breakdown keeps full
    precision.

    Raises:
        InvalidMeasurement: values too large for a finite result
    """
    m = measurement

    soc_stock = m.bulk_density * m.depth * (m.carbon_percent / 100) * M2_PER_HECTARE  # Mg C/ha
    soc_co2e = soc_stock * CO2_PER_CARBON

    agb_co2e = m.agb_biomass * m.carbon_fraction * CO2_PER_CARBON
    bgb_co2e = m.bgb_biomass * m.carbon_fraction * CO2_PER_CARBON

    ch4_co2e = flux_to_mg_ha_yr(m.ch4_flux, MOLAR_MASS_CH4) * GWP_CH4
    n2o_co2e = flux_to_mg_ha_yr(m.n2o_flux, MOLAR_MASS_N2O) * GWP_N2O
    total_ghg_co2e = ch4_co2e + n2o_co2e

    baseline_co2e = m.baseline_carbon_stock * CO2_PER_CARBON

    current_total_co2e = soc_co2e + agb_co2e + bgb_co2e
    net_stock_increase = current_total_co2e - baseline_co2e
    net_co2e = net_stock_increase - total_ghg_co2e

    net_after_uncertainty = net_co2e * (1 - m.uncertainty_deduction)

    out_of_range = _out_of_range_fields(
        {
            "soil_carbon": soc_co2e,
            "aboveground_carbon": agb_co2e,
            "belowground_carbon": bgb_co2e,
            "methane_emissions": ch4_co2e,
            "nitrous_oxide_emissions": n2o_co2e,
            "baseline": baseline_co2e,
        },
        net_co2e,
        net_after_uncertainty,
    )
    if out_of_range:
        raise InvalidMeasurement(
            out_of_range, f"Measurement values are out of range: {', '.join(out_of_range)}"
        )

    credits_per_hectare = max(0.0, net_after_uncertainty)

    computation = CreditComputation(
        soc_co2e=_r(soc_co2e),
        agb_co2e=_r(agb_co2e),
        bgb_co2e=_r(bgb_co2e),
        total_ghg_co2e=_r(total_ghg_co2e),
        baseline_co2e=_r(baseline_co2e),
        current_total_co2e=_r(current_total_co2e),
        net_stock_increase=_r(net_stock_increase),
        net_co2e=_r(net_co2e),
        net_co2e_after_uncertainty=_r(net_after_uncertainty),
        credits_per_hectare=_r(credits_per_hectare),
        uncertainty_percentage=m.uncertainty_deduction * 100,
        breakdown=CreditBreakdown(
            soil_carbon=soc_co2e,
            aboveground_carbon=agb_co2e,
            belowground_carbon=bgb_co2e,
            methane_emissions=ch4_co2e,
            nitrous_oxide_emissions=n2o_co2e,
            total_emissions=total_ghg_co2e,
            baseline=baseline_co2e,
            uncertainty_deduction=net_co2e * m.uncertainty_deduction,
        ),
    )
    return computation, credits_per_hectare


def calculate_project_credits(
    measurement: CarbonMeasurement,
    area_hectares: Optional[float]
) -> CreditComputation:
    """
    Calculate total credits for a project area.

    The total is taken from the unrounded per-hectare figure, then rounded.

    Raises:
        InvalidProjectArea: if the area is missing, not positive, or too large
    """
    area = parse_number(area_hectares)
    if area is None or area <= 0:
        raise InvalidProjectArea(
            f"Project area must be a positive number of hectares, got {area_hectares!r}"
        )

    per_hectare, unrounded_per_ha = _compute(measurement)
    total = unrounded_per_ha * area
    if not math.isfinite(total):
        raise InvalidProjectArea(f"Project area {area_hectares!r} gives a total credit figure out of range")

    return per_hectare.model_copy(update={
        "project_area": area,
        "total_credits": _r(total),
    })


def compute_from_raw(data: Mapping[str, Any], area_hectares: Optional[float]) -> CreditComputation:
    """Validate, parse and compute in one step."""
    return calculate_project_credits(parse_measurement(data), area_hectares)


def format_calculation_results(result: CreditComputation) -> Dict[str, str]:
    """Format a computation into display strings."""
    total = result.total_credits if result.total_credits is not None else result.credits_per_hectare
    return {
        "total_credits": f"{total} Mg CO₂e",
        "credits_per_ha": f"{result.credits_per_hectare} Mg CO₂e/ha",
        "soil_carbon": f"{result.soc_co2e} Mg CO₂e/ha",
        "biomass_carbon": f"{result.agb_co2e + result.bgb_co2e:.2f} Mg CO₂e/ha",
        "emissions": f"{result.total_ghg_co2e} Mg CO₂e/ha/yr",
        "net_sequestration": f"{result.net_co2e} Mg CO₂e/ha",
        "after_uncertainty": f"{result.net_co2e_after_uncertainty} Mg CO₂e/ha",
    }
