import pytest

from thai_tariff_calculator import calculate, list_supported_combinations
from thai_tariff_calculator.billing import engine as engine_mod
from thai_tariff_calculator.billing.records import BillingExtras, UsageRecord
from thai_tariff_calculator.errors import InvalidCombination, InvalidMagnitude, MissingField, ValidationError
from thai_tariff_calculator.tariffs import FormulaVariant, build_default_catalog

NO_FT = {"ft_rate_satang": 0}

RESIDENTIAL_STYLE = """
provider: mea
billing:
  ft_basis: per_kwh
  service_charge_taxed: true
entries:
  - customer_class: type-3
    tariff_scheme: normal
    voltage_tier: "<12kV"
    service_charge: 33.29
    tiers:
      - {threshold: 0, rate: 3.2484}
      - {threshold: 150, rate: 4.2218}
      - {threshold: 400, rate: 4.4217}
"""


def test_type2_tou_bill(default_catalog):
    bill = calculate(
        default_catalog, "mea", "type-2", "tou", "<12kV", {"on_peak_kwh": 100, "off_peak_kwh": 200}, NO_FT
    )

    assert bill.variant is FormulaVariant.TOU
    assert bill.energy_charge == 1107.20
    assert bill.demand_charge == 0
    assert bill.service_charge == 33.29
    assert bill.fuel_adjustment_charge == 0
    assert bill.taxable_amount == 1140.49
    assert bill.tax == 79.83
    assert bill.total_amount == 1220.32
    assert bill.total_kwh == 300


def test_type2_normal_is_rejected(default_catalog):
    for tier in ("<12kV", "12-24kV"):
        with pytest.raises(InvalidCombination):
            calculate(default_catalog, "mea", "type-2", "normal", tier, {"total_kwh": 500}, NO_FT)


def test_tiered_schedule_from_custom_catalog(write_definition):
    catalog = build_default_catalog(write_definition(RESIDENTIAL_STYLE))
    bill = calculate(catalog, "mea", "type-3", "normal", "<12kV", {"total_kwh": 500}, NO_FT)

    assert bill.energy_charge == 1984.88
    assert [line.quantity for line in bill.lines if line.key.startswith("energy_tier_")] == [150, 250, 100]
    assert bill.taxable_amount == 2018.17
    assert bill.tax == 141.27
    assert bill.total_amount == 2159.44


def test_type3_normal_with_ratchet(default_catalog):
    usage = {"total_kwh": 1000, "peak_kw": 10, "highest_demand_charge_last_12m": 5000}
    bill = calculate(default_catalog, "mea", "type-3", "normal", "<12kV", usage, NO_FT)

    assert bill.energy_charge == 3175.10
    assert bill.calculated_demand_charge == 2215.00
    assert bill.demand_charge == 3500.00
    assert bill.total_amount == 7476.45


def test_type4_tod_bill(default_catalog):
    usage = {"total_kwh": 10000, "on_peak_kw": 100, "partial_peak_kw": 80, "off_peak_kw": 50}
    bill = calculate(default_catalog, "mea", "type-4", "tod", "<12kV", usage, NO_FT)

    assert bill.variant is FormulaVariant.TOD
    assert bill.energy_charge == 31751.00
    assert bill.demand_charge == 52135.00
    assert bill.base_tariff == 83886.00


def test_type5_normal_available_for_pea(default_catalog):
    bill = calculate(default_catalog, "pea", "type-5", "normal", "<22kV", {"total_kwh": 100, "peak_kw": 1}, NO_FT)
    assert bill.energy_charge == 317.51
    assert bill.demand_charge == 276.64


def test_ft_charge_per_kwh(default_catalog):
    usage = {"on_peak_kwh": 100, "off_peak_kwh": 200}
    bill = calculate(default_catalog, "mea", "type-2", "tou", "<12kV", usage, {"ft_rate_satang": 39.72})
    assert bill.fuel_adjustment_charge == 119.16
    assert bill.ft_rate_satang == 39.72
    assert bill.total_amount == pytest.approx(round((1107.20 + 119.16 + 33.29) * 1.07, 2), abs=0.02)


def test_typed_inputs_are_accepted(default_catalog):
    usage = UsageRecord(on_peak_kwh=100, off_peak_kwh=200)
    bill = calculate(default_catalog, "MEA", "TYPE-2", "TOU", "<12KV", usage, BillingExtras(ft_rate_satang=0))
    assert bill.total_amount == 1220.32


def test_calculation_is_idempotent(default_catalog):
    usage = {"on_peak_kwh": 812.4, "off_peak_kwh": 1733.9, "on_peak_kw": 41.2, "peak_kvar": 40}
    first = calculate(default_catalog, "pea", "type-3", "tou", "22-33kV", usage, {"ft_rate_satang": 19.72})
    second = calculate(default_catalog, "pea", "type-3", "tou", "22-33kV", usage, {"ft_rate_satang": 19.72})
    assert first == second
    assert first.to_dict() == second.to_dict()


def test_total_is_monotonic_in_usage(default_catalog):
    previous = 0.0
    for kwh in range(0, 5001, 250):
        bill = calculate(
            default_catalog, "mea", "type-2", "tou", "12-24kV", {"on_peak_kwh": kwh, "off_peak_kwh": kwh}, NO_FT
        )
        assert bill.total_amount >= previous
        previous = bill.total_amount


def test_tou_energy_scales_linearly(default_catalog):
    base = calculate(default_catalog, "mea", "type-2", "tou", "<12kV", {"on_peak_kwh": 100, "off_peak_kwh": 200}, NO_FT)
    doubled = calculate(
        default_catalog, "mea", "type-2", "tou", "<12kV", {"on_peak_kwh": 200, "off_peak_kwh": 400}, NO_FT
    )
    assert doubled.energy_charge == pytest.approx(2 * base.energy_charge, abs=0.01)


def test_total_reconciles_with_components(default_catalog):
    for key in list_supported_combinations(default_catalog):
        usage = {
            "total_kwh": 1200,
            "on_peak_kwh": 400,
            "off_peak_kwh": 800,
            "peak_kw": 20,
            "on_peak_kw": 20,
            "partial_peak_kw": 15,
            "off_peak_kw": 10,
        }
        bill = calculate(
            default_catalog, key.provider, key.customer_class, key.tariff_scheme, key.voltage_tier, usage,
            {"ft_rate_satang": 19.72},
        )
        assert bill.tariff_key == key
        assert bill.total_amount == pytest.approx(bill.taxable_amount + bill.tax, abs=0.02)
        assert bill.taxable_amount == pytest.approx(
            bill.base_tariff + bill.fuel_adjustment_charge + bill.service_charge, abs=0.02
        )
        assert bill.base_tariff == pytest.approx(
            bill.energy_charge + bill.demand_charge + bill.power_factor_charge, abs=0.02
        )


def test_negative_usage_rejected_before_any_arithmetic(default_catalog, monkeypatch):
    def _fail(*args, **kwargs):
        raise AssertionError("formula evaluated despite invalid input")

    monkeypatch.setattr(engine_mod, "evaluate", _fail)
    monkeypatch.setattr(engine_mod, "assemble", _fail)
    with pytest.raises(InvalidMagnitude) as exc:
        calculate(default_catalog, "mea", "type-2", "tou", "<12kV", {"on_peak_kwh": -5, "off_peak_kwh": 200}, NO_FT)
    assert exc.value.field == "on_peak_kwh"


def test_missing_usage_field(default_catalog):
    with pytest.raises(MissingField) as exc:
        calculate(default_catalog, "mea", "type-4", "tod", "<12kV", {"total_kwh": 10, "on_peak_kw": 1}, NO_FT)
    assert exc.value.field == "partial_peak_kw"


def test_missing_ft_rate(default_catalog):
    with pytest.raises(MissingField) as exc:
        calculate(default_catalog, "mea", "type-2", "tou", "<12kV", {"on_peak_kwh": 1, "off_peak_kwh": 1})
    assert exc.value.field == "ft_rate_satang"


def test_errors_are_value_errors(default_catalog):
    with pytest.raises(ValueError):
        calculate(default_catalog, "mea", "type-2", "tou", "<12kV", {"bogus": 1}, NO_FT)
    with pytest.raises(ValidationError):
        calculate(default_catalog, "xyz", "type-2", "tou", "<12kV", {}, NO_FT)


def test_to_dict_is_json_ready(default_catalog):
    bill = calculate(
        default_catalog, "mea", "type-2", "tou", "<12kV", {"on_peak_kwh": 100, "off_peak_kwh": 200}, NO_FT
    )
    data = bill.to_dict()
    assert data["tariff_id"] == "mea_type-2.tou.<12kV"
    assert data["variant"] == "tou"
    assert data["total_amount"] == 1220.32
    assert [line["key"] for line in data["lines"]] == [
        "energy_on_peak",
        "energy_off_peak",
        "service",
        "ft",
        "vat",
    ]


def test_tou_energy_adds_across_different_periods(default_catalog):
    def energy(on_kwh, off_kwh):
        usage = {"on_peak_kwh": on_kwh, "off_peak_kwh": off_kwh}
        return calculate(default_catalog, "mea", "type-2", "tou", "<12kV", usage, NO_FT).energy_charge

    assert energy(100, 200) + energy(30, 450) == pytest.approx(energy(130, 650), abs=0.011)


def test_huge_integer_usage_is_invalid_magnitude(default_catalog):
    with pytest.raises(InvalidMagnitude) as exc:
        calculate(default_catalog, "mea", "type-2", "tou", "<12kV", {"on_peak_kwh": 10**400, "off_peak_kwh": 1}, NO_FT)
    assert exc.value.field == "on_peak_kwh"


def test_peak_kvar_without_peak_demand(write_definition):
    catalog = build_default_catalog(write_definition(RESIDENTIAL_STYLE))
    usage = {"total_kwh": 500, "peak_kvar": 40}
    with pytest.raises(MissingField) as exc:
        calculate(catalog, "mea", "type-3", "normal", "<12kV", usage, NO_FT)
    assert exc.value.field == "peak_kw"

    bill = calculate(catalog, "mea", "type-3", "normal", "<12kV", dict(usage, peak_kw=50), NO_FT)
    # 40 - 50 x 0.6197 = 9.015 -> 9 kVAR
    assert bill.power_factor_charge == pytest.approx(9 * 56.07, abs=0.01)
