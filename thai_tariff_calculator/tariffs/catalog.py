"""Immutable rate catalog.

A RateCatalog is built once (normally from the packaged YAML definitions) and
never mutated afterwards. Construction validates every entry; a malformed
entry raises CatalogIntegrityError. Hosts that reload rates build a new
catalog and publish it through a CatalogHandle.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors import CatalogIntegrityError, InvalidCombination
from .combinations import legal_keys, variant_for
from .loader import load_definitions
from .types import RateEntry, TariffKey, TieredNormalRates, TodRates, TouRates

logger = logging.getLogger(__name__)


def _numeric_fields(entry: RateEntry) -> List[Tuple[str, Optional[float]]]:
    if isinstance(entry, TieredNormalRates):
        fields = [("service_charge", entry.service_charge), ("demand_rate", entry.demand_rate)]
        for i, t in enumerate(entry.tiers):
            fields.append((f"tiers[{i}].threshold", t.threshold_kwh))
            fields.append((f"tiers[{i}].rate", t.rate_per_kwh))
        return fields
    if isinstance(entry, TouRates):
        return [
            ("service_charge", entry.service_charge),
            ("on_peak_energy_rate", entry.on_peak_energy_rate),
            ("off_peak_energy_rate", entry.off_peak_energy_rate),
            ("on_peak_demand_rate", entry.on_peak_demand_rate),
            ("off_peak_demand_rate", entry.off_peak_demand_rate),
        ]
    if isinstance(entry, TodRates):
        return [
            ("service_charge", entry.service_charge),
            ("on_peak_demand_rate", entry.on_peak_demand_rate),
            ("partial_peak_demand_rate", entry.partial_peak_demand_rate),
            ("off_peak_demand_rate", entry.off_peak_demand_rate),
            ("energy_rate", entry.energy_rate),
        ]
    raise CatalogIntegrityError(f"Unsupported rate entry type: {type(entry).__name__}")


def validate_entry(key: TariffKey, entry: RateEntry, *, source: Optional[str] = None) -> None:
    """Raise CatalogIntegrityError unless ``entry`` is a well-formed entry for ``key``."""

    where = source or key.composite_id
    expected = variant_for(key)
    if expected is None:
        raise CatalogIntegrityError(f"{key.composite_id} is not a legal tariff combination", where)
    if entry.variant is not expected:
        raise CatalogIntegrityError(
            f"{key.composite_id} needs a {expected.value} entry, got {entry.variant.value}", where
        )

    for name, value in _numeric_fields(entry):
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise CatalogIntegrityError(f"{key.composite_id}: {name} must be a number ({value!r})", where)
        if isinstance(value, float) and not math.isfinite(value):
            raise CatalogIntegrityError(f"{key.composite_id}: {name} must be a finite number ({value!r})", where)
        if value < 0:
            raise CatalogIntegrityError(f"{key.composite_id}: {name} is negative ({value})", where)

    if isinstance(entry, TieredNormalRates):
        if not entry.tiers:
            raise CatalogIntegrityError(f"{key.composite_id}: tiers cannot be empty", where)
        if entry.tiers[0].threshold_kwh != 0:
            raise CatalogIntegrityError(f"{key.composite_id}: first tier must start at 0 kWh", where)
        for prev, cur in zip(entry.tiers, entry.tiers[1:]):
            if cur.threshold_kwh <= prev.threshold_kwh:
                raise CatalogIntegrityError(
                    f"{key.composite_id}: tier thresholds must be strictly increasing "
                    f"({prev.threshold_kwh} -> {cur.threshold_kwh})",
                    where,
                )


class RateCatalog(Mapping):
    """Read-only mapping TariffKey -> RateEntry."""

    def __init__(self, entries: Iterable[Tuple[TariffKey, RateEntry]], *, sources: Optional[Dict[TariffKey, str]] = None):
        table: Dict[TariffKey, RateEntry] = {}
        sources = sources or {}
        for key, entry in entries:
            if key in table:
                raise CatalogIntegrityError(f"Duplicate rate entry for {key.composite_id}", sources.get(key))
            validate_entry(key, entry, source=sources.get(key))
            table[key] = entry
        self._entries = MappingProxyType(table)

    @classmethod
    def from_definitions(cls, definitions_dir: Path | None = None) -> "RateCatalog":
        table: List[Tuple[TariffKey, RateEntry]] = []
        sources: Dict[TariffKey, str] = {}
        for key, entry, source in load_definitions(definitions_dir):
            if key in sources:
                raise CatalogIntegrityError(
                    f"Duplicate rate entry for {key.composite_id} (also in {sources[key]})", source
                )
            table.append((key, entry))
            sources[key] = source
        catalog = cls(table, sources=sources)
        logger.info(
            "Loaded rate catalog: %d entries from %s", len(catalog), ", ".join(sorted(set(sources.values())))
        )
        return catalog

    def __getitem__(self, key: TariffKey) -> RateEntry:
        return self._entries[key]

    def __iter__(self) -> Iterator[TariffKey]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"RateCatalog({len(self)} entries)"

    def lookup(self, key: TariffKey) -> Optional[RateEntry]:
        return self._entries.get(key)

    def require(self, key: TariffKey) -> RateEntry:
        entry = self.lookup(key)
        if entry is None:
            raise InvalidCombination("tariff_key", f"No rate entry for {key.composite_id}")
        return entry

    def supported_keys(self) -> List[TariffKey]:
        """Keys present in this catalog, in the canonical legal-table order."""

        return [k for k in legal_keys() if k in self._entries]


def build_default_catalog(definitions_dir: Path | None = None) -> RateCatalog:
    return RateCatalog.from_definitions(definitions_dir)


class CatalogHandle:
    """Holds the current catalog; reloads publish a whole new instance."""

    def __init__(self, catalog: RateCatalog):
        self._catalog = catalog
        self._lock = threading.Lock()

    @property
    def current(self) -> RateCatalog:
        return self._catalog

    def publish(self, catalog: RateCatalog) -> RateCatalog:
        """Swap in ``catalog`` and return the one it replaced."""

        with self._lock:
            previous, self._catalog = self._catalog, catalog
        return previous

    def reload(self, definitions_dir: Path | None = None) -> RateCatalog:
        # Build fully before publishing; a broken table leaves the old catalog in place.
        fresh = RateCatalog.from_definitions(definitions_dir)
        self.publish(fresh)
        logger.info("Published reloaded rate catalog (%d entries)", len(fresh))
        return fresh
