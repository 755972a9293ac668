# FEC OpModel - Operating model reporting from French FEC ledger exports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
FEC OpModel
-----------

A Python library and command-line tool that reads French statutory
accounting exports (FEC - Fichier des Écritures Comptables) and rolls them
up into an operating model report.

Main capabilities:
- FEC file reading with delimiter detection and required-column checks,
- double-entry validation per journal entry and for the whole ledger,
- account resolution through a fallback chain (session overrides,
  closest declared ancestor, exact normalized number),
- a 3-level operating model tree (category → sub-category → concept,
  with per-account details) and monthly series,
- flow (P&L) vs stock (balance sheet) semantics for monthly values,
- a reproducible mock budget overlay,
- unmapped / all-accounts inventories for mapping review,
- flat CSV export of the category / sub-category levels.

FEC OpModel separates computation (engine, validation, reports),
configuration (TOML) and presentation (views, CLI).


Version: 0.1.0

Usage:
    python -m fec_opmodel.cli --help
"""

__all__ = ["engine", "mapping", "validation", "reports", "views", "io"]

__version__ = "0.1.0"
