"""
Carbon credit calculation tests.
"""

import pytest

from bluecarbon.core.constants import CO2_PER_CARBON, GWP_CH4, MOLAR_MASS_CH4
from bluecarbon.core.errors import InvalidMeasurement, InvalidProjectArea
from bluecarbon.handlers.calculator import (
    calculate_carbon_credits,
    calculate_project_credits,
    compute_from_raw,
    flux_to_mg_ha_yr,
    format_calculation_results,
    parse_measurement,
)
from factories import mangrove_measurement, reference_measurement


class TestReferenceComputation:
    """Soil-only measurement over 10 ha"""

    def test_per_hectare_figures(self):
        result = calculate_carbon_credits(parse_measurement(reference_measurement()))

        assert result.soc_co2e == pytest.approx(3670.00)
        assert result.agb_co2e == 0
        assert result.bgb_co2e == 0
        assert result.total_ghg_co2e == 0
        assert result.baseline_co2e == 0
        assert result.net_co2e == pytest.approx(3670.00)
        assert result.credits_per_hectare == pytest.approx(3670.00)
        assert result.project_area is None
        assert result.total_credits is None

    def test_project_total(self):
        result = calculate_project_credits(parse_measurement(reference_measurement()), 10)

        assert result.project_area == 10
        assert result.total_credits == pytest.approx(36700.00)

    def test_deterministic(self):
        first = compute_from_raw(mangrove_measurement(), 25)
        second = compute_from_raw(mangrove_measurement(), 25)
        assert first == second


class TestFormulaComponents:
    """Individual terms of the computation"""

    def test_flux_conversion(self):
        # 1 μmol/m²/h of a 1 g/mol gas: 1e-6 * 8760 * 10000 * 1e-6 Mg/ha/yr
        assert flux_to_mg_ha_yr(1, 1) == pytest.approx(8.76e-5)

    def test_methane_uses_gwp(self):
        data = reference_measurement(carbon_percent=0, ch4_flux=100)
        result = calculate_carbon_credits(parse_measurement(data))

        expected = flux_to_mg_ha_yr(100, MOLAR_MASS_CH4) * GWP_CH4
        assert result.breakdown.methane_emissions == pytest.approx(expected)
        assert result.total_ghg_co2e == pytest.approx(round(expected, 2))

    def test_biomass_uses_carbon_fraction(self):
        data = reference_measurement(carbon_percent=0, agb_biomass=100, bgb_biomass=50)
        result = calculate_carbon_credits(parse_measurement(data))

        assert result.agb_co2e == pytest.approx(round(100 * 0.47 * CO2_PER_CARBON, 2))
        assert result.bgb_co2e == pytest.approx(round(50 * 0.47 * CO2_PER_CARBON, 2))

    def test_default_carbon_fraction_and_uncertainty(self):
        data = reference_measurement()
        del data["carbon_fraction"]
        del data["uncertainty_deduction"]
        result = calculate_carbon_credits(parse_measurement(data))

        assert result.uncertainty_percentage == pytest.approx(20)
        assert result.credits_per_hectare == pytest.approx(3670 * 0.8)

    def test_uncertainty_deduction(self):
        data = reference_measurement(uncertainty_deduction=0.25)
        result = calculate_carbon_credits(parse_measurement(data))

        assert result.net_co2e_after_uncertainty == pytest.approx(2752.5)
        assert result.breakdown.uncertainty_deduction == pytest.approx(917.5)


class TestNonNegativity:
    """Credits are clamped at zero"""

    def test_baseline_above_current_stock(self):
        data = reference_measurement(baseline_carbon_stock=5000)
        result = calculate_project_credits(parse_measurement(data), 10)

        assert result.net_co2e < 0
        assert result.credits_per_hectare == 0
        assert result.total_credits == 0

    def test_emissions_exceed_sequestration(self):
        data = reference_measurement(carbon_percent=0.01, ch4_flux=5000)
        result = calculate_carbon_credits(parse_measurement(data))

        assert result.credits_per_hectare == 0


class TestTotalRounding:
    """The total is computed from the unrounded per-hectare figure"""

    def test_total_not_multiplied_from_rounded_value(self):
        # 0.001 % carbon: 0.367 CO2e/ha, reported as 0.37
        data = reference_measurement(carbon_percent=0.001)
        result = calculate_project_credits(parse_measurement(data), 1000)

        assert result.credits_per_hectare == pytest.approx(0.37)
        assert result.total_credits == pytest.approx(367.0)


class TestInputErrors:
    """Validation happens before any computation"""

    def test_missing_field(self):
        data = reference_measurement()
        del data["carbon_percent"]

        with pytest.raises(InvalidMeasurement) as exc_info:
            parse_measurement(data)
        assert exc_info.value.missing == ["carbon_percent"]

    @pytest.mark.parametrize("area", [0, -5, None, "abc"])
    def test_invalid_area(self, area):
        with pytest.raises(InvalidProjectArea):
            compute_from_raw(reference_measurement(), area)

    def test_numeric_strings_are_accepted(self):
        data = {key: str(value) for key, value in reference_measurement().items()}
        result = compute_from_raw(data, "10")

        assert result.total_credits == pytest.approx(36700.00)

    def test_zero_is_a_measurement(self):
        data = reference_measurement(agb_biomass=0, bgb_biomass=0.0)
        assert parse_measurement(data).agb_biomass == 0


class TestOutOfRange:
    """Values past float range are rejected, never reported as infinite or zero"""

    def test_overflowing_soil_carbon(self):
        with pytest.raises(InvalidMeasurement) as exc_info:
            compute_from_raw(reference_measurement(bulk_density=1e300, depth=1e300), 10)

        assert exc_info.value.missing == ["bulk_density", "depth", "carbon_percent"]
        assert exc_info.value.message.startswith("Measurement values are out of range")

    def test_infinite_stock_minus_infinite_baseline(self):
        data = reference_measurement(bulk_density=1e300, depth=1e300, baseline_carbon_stock=1e308)

        with pytest.raises(InvalidMeasurement) as exc_info:
            calculate_carbon_credits(parse_measurement(data))

        assert "baseline_carbon_stock" in exc_info.value.missing
        assert "bulk_density" in exc_info.value.missing

    def test_components_fit_but_sum_overflows(self):
        data = reference_measurement(agb_biomass=1e308, bgb_biomass=1e308)

        with pytest.raises(InvalidMeasurement) as exc_info:
            calculate_carbon_credits(parse_measurement(data))

        assert "agb_biomass" in exc_info.value.missing
        assert "bgb_biomass" in exc_info.value.missing

    def test_overflowing_uncertainty(self):
        data = reference_measurement(bulk_density=1e298, uncertainty_deduction=-1e10)

        with pytest.raises(InvalidMeasurement) as exc_info:
            calculate_carbon_credits(parse_measurement(data))

        assert exc_info.value.missing == ["uncertainty_deduction"]

    def test_overflowing_project_total(self):
        with pytest.raises(InvalidProjectArea):
            compute_from_raw(reference_measurement(), 1e306)


class TestFormatting:
    def test_format_results(self):
        formatted = format_calculation_results(compute_from_raw(reference_measurement(), 10))

        assert formatted["total_credits"] == "36700.0 Mg CO₂e"
        assert formatted["credits_per_ha"] == "3670.0 Mg CO₂e/ha"
        assert formatted["biomass_carbon"] == "0.00 Mg CO₂e/ha"
