#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
config.py

Configuration constants and defaults for the Thai tariff calculator.

Two kinds of values live here:
- operational defaults (where the rate tables are, log level, output format),
  each overridable through an environment variable;
- regulatory constants (VAT, power-factor penalty, demand ratchet) that are
  fixed by the published tariff schedules and are NOT read from the environment.
"""

import os
from pathlib import Path

# ---------------------------------------------------------------------
# Rate tables
# ---------------------------------------------------------------------
# PACKAGED_RATES_DIR:
# - YAML definitions shipped with the package (one file per provider).
PACKAGED_RATES_DIR = Path(__file__).resolve().parent / "tariffs" / "definitions"

# RATES_DIR:
# - Directory the CLI loads definitions from.
# - Override with THAI_TARIFF_RATES_DIR to point at a locally maintained copy.
RATES_DIR = Path(os.getenv("THAI_TARIFF_RATES_DIR", "").strip() or PACKAGED_RATES_DIR)

# ---------------------------------------------------------------------
# Fuel adjustment (FT)
# ---------------------------------------------------------------------
# DEFAULT_FT_RATE_SATANG:
# - FT changes every few months, so there is no built-in value.
# - The CLI falls back to THAI_TARIFF_FT_RATE_SATANG when --ft-rate-satang is
#   not given. The calculation engine itself always requires an explicit rate.
DEFAULT_FT_RATE_SATANG = os.getenv("THAI_TARIFF_FT_RATE_SATANG", "").strip() or None

# ---------------------------------------------------------------------
# CLI defaults
# ---------------------------------------------------------------------
DEFAULT_LOG_LEVEL = os.getenv("THAI_TARIFF_LOG_LEVEL", "WARNING")
DEFAULT_OUTPUT_FORMAT = os.getenv("THAI_TARIFF_OUTPUT_FORMAT", "table")

# ---------------------------------------------------------------------
# Regulatory constants
# ---------------------------------------------------------------------
# VAT_RATE: value-added tax on the whole taxable amount (7%).
VAT_RATE = 0.07

# Power factor surcharge:
# - reactive power above PF_THRESHOLD_FACTOR x peak kW is billed,
# - per whole kVAR (rounded half-up) at PF_PENALTY_RATE Baht.
PF_PENALTY_RATE = 56.07
PF_THRESHOLD_FACTOR = 0.6197

# MINIMUM_BILL_FACTOR:
# - demand ratchet: the billed demand charge is at least this share of the
#   highest demand charge of the previous 12 months.
MINIMUM_BILL_FACTOR = 0.70

# MONEY_DECIMALS: reported monetary figures are rounded half-up to this many places.
MONEY_DECIMALS = 2
