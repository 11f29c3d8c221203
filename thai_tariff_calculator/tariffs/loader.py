"""Rate definition loader.

Loads YAML/JSON rate tables from thai_tariff_calculator/tariffs/definitions
(one file per provider) and turns every row into a typed rate entry.

The loader is strict:
- unknown providers, schemes, tiers and field names are rejected
- each row must carry exactly the fields its scheme needs
- numbers must be real numbers (booleans and strings are not accepted)

Any problem raises CatalogIntegrityError naming the file and row, so a broken
table stops the process at startup instead of producing wrong bills later.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from ..errors import CatalogIntegrityError
from .combinations import (
    DEMAND_BILLED_CLASSES,
    PROVIDERS,
    SCHEME_VARIANTS,
    normalize_provider,
    normalize_token,
    normalize_voltage_tier,
)
from .types import (
    BillingPolicy,
    FormulaVariant,
    FtBasis,
    RateEntry,
    TariffKey,
    Tier,
    TieredNormalRates,
    TodRates,
    TouRates,
)

logger = logging.getLogger(__name__)

_KEY_FIELDS = ("customer_class", "tariff_scheme", "voltage_tier", "billing")

# variant -> (required rate fields, optional rate fields)
_RATE_FIELDS: Dict[FormulaVariant, Tuple[Tuple[str, ...], Tuple[str, ...]]] = {
    FormulaVariant.TIERED_NORMAL: (("service_charge", "tiers"), ("demand_rate",)),
    FormulaVariant.TOU: (
        ("service_charge", "on_peak_energy_rate", "off_peak_energy_rate"),
        ("on_peak_demand_rate", "off_peak_demand_rate"),
    ),
    FormulaVariant.TOD: (
        (
            "service_charge",
            "on_peak_demand_rate",
            "partial_peak_demand_rate",
            "off_peak_demand_rate",
            "energy_rate",
        ),
        (),
    ),
}


def _as_list(x: Any) -> List[Any]:
    if x is None:
        return []
    if isinstance(x, list):
        return x
    return [x]


def _require(obj: Dict[str, Any], key: str, *, ctx: str) -> Any:
    if key not in obj or obj[key] is None:
        raise CatalogIntegrityError(f"Missing required key '{key}'", ctx)
    return obj[key]


def _number(obj: Dict[str, Any], key: str, *, ctx: str) -> float:
    value = _require(obj, key, ctx=ctx)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CatalogIntegrityError(f"'{key}' must be a number, got {value!r}", ctx)
    value = float(value)
    if not math.isfinite(value):
        raise CatalogIntegrityError(f"'{key}' must be finite, got {value!r}", ctx)
    return value


def _optional_number(obj: Dict[str, Any], key: str, *, ctx: str) -> Optional[float]:
    if obj.get(key) is None:
        return None
    return _number(obj, key, ctx=ctx)


def _load_one(path: Path) -> Dict[str, Any]:
    raw = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(raw) or {}
        elif path.suffix.lower() == ".json":
            data = json.loads(raw)
        else:
            raise CatalogIntegrityError("Unsupported definition file type", path.name)
    except (yaml.YAMLError, json.JSONDecodeError) as ex:
        raise CatalogIntegrityError(f"Unparseable definition file: {ex}", path.name) from ex
    if not isinstance(data, dict):
        raise CatalogIntegrityError("Top-level document must be a mapping", path.name)
    return data


def _parse_policy(obj: Any, *, defaults: Dict[str, Any], customer_class: str, ctx: str) -> BillingPolicy:
    if obj is None:
        obj = {}
    if not isinstance(obj, dict):
        raise CatalogIntegrityError("billing must be a mapping", ctx)
    merged = {**defaults, **obj}
    unknown = set(merged) - {"ft_basis", "service_charge_taxed", "demand_surcharges"}
    if unknown:
        raise CatalogIntegrityError(f"Unknown billing keys: {sorted(unknown)}", ctx)

    raw_basis = str(merged.get("ft_basis") or FtBasis.PER_KWH.value).strip().lower()
    try:
        ft_basis = FtBasis(raw_basis)
    except ValueError:
        raise CatalogIntegrityError(f"Unknown ft_basis '{raw_basis}'", ctx) from None

    taxed = merged.get("service_charge_taxed", True)
    surcharges = merged.get("demand_surcharges", customer_class in DEMAND_BILLED_CLASSES)
    for name, flag in (("service_charge_taxed", taxed), ("demand_surcharges", surcharges)):
        if not isinstance(flag, bool):
            raise CatalogIntegrityError(f"'{name}' must be true or false", ctx)
    return BillingPolicy(ft_basis=ft_basis, service_charge_taxed=taxed, demand_surcharges=surcharges)


def _parse_tiers(items: Iterable[Any], *, ctx: str) -> Tuple[Tier, ...]:
    out: List[Tier] = []
    for i, it in enumerate(items):
        tctx = f"{ctx}.tiers[{i}]"
        if not isinstance(it, dict):
            raise CatalogIntegrityError("tier must be a mapping with threshold and rate", tctx)
        out.append(Tier(threshold_kwh=_number(it, "threshold", ctx=tctx), rate_per_kwh=_number(it, "rate", ctx=tctx)))
    if not out:
        raise CatalogIntegrityError("tiers cannot be empty", ctx)
    return tuple(out)


def _parse_entry(it: Any, *, provider: str, defaults: Dict[str, Any], ctx: str) -> Tuple[TariffKey, RateEntry]:
    if not isinstance(it, dict):
        raise CatalogIntegrityError("entry must be a mapping", ctx)

    customer_class = normalize_token(str(_require(it, "customer_class", ctx=ctx)))
    scheme = normalize_token(str(_require(it, "tariff_scheme", ctx=ctx)))
    tier = normalize_voltage_tier(str(_require(it, "voltage_tier", ctx=ctx)))
    variant = SCHEME_VARIANTS.get(scheme)
    if variant is None:
        raise CatalogIntegrityError(f"Unknown tariff_scheme '{scheme}'", ctx)

    required, optional = _RATE_FIELDS[variant]
    unknown = set(it) - set(_KEY_FIELDS) - set(required) - set(optional)
    if unknown:
        raise CatalogIntegrityError(f"Fields {sorted(unknown)} do not belong to a '{scheme}' entry", ctx)

    key = TariffKey(provider, customer_class, scheme, tier)
    policy = _parse_policy(it.get("billing"), defaults=defaults, customer_class=customer_class, ctx=ctx)

    entry: RateEntry
    if variant is FormulaVariant.TIERED_NORMAL:
        entry = TieredNormalRates(
            service_charge=_number(it, "service_charge", ctx=ctx),
            tiers=_parse_tiers(_as_list(_require(it, "tiers", ctx=ctx)), ctx=ctx),
            demand_rate=_optional_number(it, "demand_rate", ctx=ctx),
            policy=policy,
        )
    elif variant is FormulaVariant.TOU:
        entry = TouRates(
            service_charge=_number(it, "service_charge", ctx=ctx),
            on_peak_energy_rate=_number(it, "on_peak_energy_rate", ctx=ctx),
            off_peak_energy_rate=_number(it, "off_peak_energy_rate", ctx=ctx),
            on_peak_demand_rate=_optional_number(it, "on_peak_demand_rate", ctx=ctx),
            off_peak_demand_rate=_optional_number(it, "off_peak_demand_rate", ctx=ctx),
            policy=policy,
        )
    else:
        entry = TodRates(
            service_charge=_number(it, "service_charge", ctx=ctx),
            on_peak_demand_rate=_number(it, "on_peak_demand_rate", ctx=ctx),
            partial_peak_demand_rate=_number(it, "partial_peak_demand_rate", ctx=ctx),
            off_peak_demand_rate=_number(it, "off_peak_demand_rate", ctx=ctx),
            energy_rate=_number(it, "energy_rate", ctx=ctx),
            policy=policy,
        )
    return key, entry


def parse_definition(data: Dict[str, Any], *, source: str) -> List[Tuple[TariffKey, RateEntry]]:
    """Parse one provider document into (key, entry) pairs."""

    ctx = f"definition({source})"
    provider = normalize_provider(str(_require(data, "provider", ctx=ctx)))
    if provider not in PROVIDERS:
        raise CatalogIntegrityError(f"Unknown provider '{provider}'", ctx)
    defaults = data.get("billing") or {}
    if not isinstance(defaults, dict):
        raise CatalogIntegrityError("billing must be a mapping", ctx)

    entries = _as_list(data.get("entries"))
    if not entries:
        raise CatalogIntegrityError("Definition has no entries", ctx)
    return [
        _parse_entry(it, provider=provider, defaults=defaults, ctx=f"{ctx}.entries[{i}]")
        for i, it in enumerate(entries)
    ]


def load_definitions(definitions_dir: Path | None = None) -> List[Tuple[TariffKey, RateEntry, str]]:
    """Load every definition file in ``definitions_dir`` (sorted by file name)."""

    base = Path(definitions_dir) if definitions_dir else Path(__file__).resolve().parent / "definitions"
    if not base.is_dir():
        raise CatalogIntegrityError(f"Rate definitions directory not found: {base}")
    paths = sorted(p for p in base.iterdir() if p.is_file() and p.suffix.lower() in (".yaml", ".yml", ".json"))
    if not paths:
        raise CatalogIntegrityError(f"No rate definition files in {base}")

    out: List[Tuple[TariffKey, RateEntry, str]] = []
    for p in paths:
        pairs = parse_definition(_load_one(p), source=p.name)
        logger.debug("Parsed %d rate entries from %s", len(pairs), p.name)
        out.extend((key, entry, p.name) for key, entry in pairs)
    return out
