import math

import pytest

from thai_tariff_calculator.billing.records import BillingExtras, UsageRecord
from thai_tariff_calculator.billing.usage import (
    parse_extras,
    parse_usage,
    require_usage,
    required_usage_fields,
)
from thai_tariff_calculator.errors import InvalidMagnitude, MissingField, ValidationError
from thai_tariff_calculator.tariffs.types import BillingPolicy, Tier, TieredNormalRates, TodRates, TouRates


def test_parse_usage_from_mapping():
    record = parse_usage({"on_peak_kwh": 100, "off_peak_kwh": 200.5, "peak_kvar": None})
    assert record.on_peak_kwh == 100.0
    assert record.off_peak_kwh == 200.5
    assert record.peak_kvar is None
    assert record.supplied() == {"on_peak_kwh": 100.0, "off_peak_kwh": 200.5}


def test_parse_usage_accepts_camel_case_aliases():
    record = parse_usage({"total_kwh": 10, "peakKvar": 5, "highestDemandChargeLast12m": 900})
    assert record.peak_kvar == 5
    assert record.highest_demand_charge_last_12m == 900


def test_parse_usage_passes_records_through():
    record = UsageRecord(total_kwh=1)
    assert parse_usage(record) is record


def test_unknown_usage_field_is_rejected():
    with pytest.raises(ValidationError) as exc:
        parse_usage({"total_kwh": 1, "shoulder_kwh": 3})
    assert exc.value.field == "shoulder_kwh"


def test_usage_must_be_a_mapping():
    with pytest.raises(ValidationError) as exc:
        parse_usage([("total_kwh", 1)])
    assert exc.value.field == "usage"


@pytest.mark.parametrize("value", [-0.01, -100, "12", True, math.nan, math.inf, [1]])
def test_bad_magnitudes_are_rejected(value):
    with pytest.raises(InvalidMagnitude) as exc:
        parse_usage({"on_peak_kwh": value})
    assert exc.value.field == "on_peak_kwh"


def test_zero_is_a_valid_magnitude():
    assert UsageRecord(total_kwh=0, peak_kw=0).supplied() == {"total_kwh": 0.0, "peak_kw": 0.0}


def test_parse_extras():
    assert parse_extras({"ft_rate_satang": 39.72}) == BillingExtras(ft_rate_satang=39.72)
    assert parse_extras({"ftRateSatang": 0}).ft_rate_satang == 0.0


@pytest.mark.parametrize("extras", [None, {}, {"ft_rate_satang": None}])
def test_missing_ft_rate(extras):
    with pytest.raises(MissingField) as exc:
        parse_extras(extras)
    assert exc.value.field == "ft_rate_satang"


def test_extras_reject_bad_values():
    with pytest.raises(InvalidMagnitude):
        parse_extras({"ft_rate_satang": -1})
    with pytest.raises(ValidationError) as exc:
        parse_extras({"ft_rate_satang": 1, "vat_rate": 0.1})
    assert exc.value.field == "vat_rate"


def test_required_fields_per_entry():
    flat = TieredNormalRates(service_charge=1, tiers=(Tier(0, 1),))
    with_demand = TieredNormalRates(service_charge=1, tiers=(Tier(0, 1),), demand_rate=200)
    tou = TouRates(service_charge=1, on_peak_energy_rate=2, off_peak_energy_rate=1)
    tou_demand = TouRates(service_charge=1, on_peak_energy_rate=2, off_peak_energy_rate=1, on_peak_demand_rate=74)
    tod = TodRates(
        service_charge=1, on_peak_demand_rate=3, partial_peak_demand_rate=2, off_peak_demand_rate=0, energy_rate=1
    )

    assert required_usage_fields(flat) == ("total_kwh",)
    assert required_usage_fields(with_demand) == ("total_kwh", "peak_kw")
    assert required_usage_fields(tou) == ("on_peak_kwh", "off_peak_kwh")
    assert required_usage_fields(tou_demand) == ("on_peak_kwh", "off_peak_kwh", "on_peak_kw")
    assert required_usage_fields(tod) == ("total_kwh", "on_peak_kw", "partial_peak_kw", "off_peak_kw")


def test_require_usage_names_first_missing_field():
    tou = TouRates(service_charge=1, on_peak_energy_rate=2, off_peak_energy_rate=1, on_peak_demand_rate=74)
    with pytest.raises(MissingField) as exc:
        require_usage(UsageRecord(on_peak_kwh=1, off_peak_kwh=2), tou)
    assert exc.value.field == "on_peak_kw"

    require_usage(UsageRecord(on_peak_kwh=1, off_peak_kwh=2, on_peak_kw=3), tou)


def test_integer_too_large_for_float_is_invalid_magnitude():
    with pytest.raises(InvalidMagnitude) as exc:
        parse_usage({"total_kwh": 10**400})
    assert exc.value.field == "total_kwh"
    with pytest.raises(InvalidMagnitude):
        parse_extras({"ft_rate_satang": -(10**400)})


def test_peak_kvar_needs_a_demand_window():
    tou = TouRates(
        service_charge=1,
        on_peak_energy_rate=2,
        off_peak_energy_rate=1,
        policy=BillingPolicy(demand_surcharges=True),
    )
    with pytest.raises(MissingField) as exc:
        require_usage(UsageRecord(on_peak_kwh=1, off_peak_kwh=2, peak_kvar=10), tou)
    assert exc.value.field == "on_peak_kw"

    require_usage(UsageRecord(on_peak_kwh=1, off_peak_kwh=2, off_peak_kw=4, peak_kvar=10), tou)
    # kVAR is ignored where demand surcharges do not apply
    require_usage(
        UsageRecord(on_peak_kwh=1, off_peak_kwh=2, peak_kvar=10),
        TouRates(service_charge=1, on_peak_energy_rate=2, off_peak_energy_rate=1),
    )
