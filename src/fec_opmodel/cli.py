# FEC OpModel - Operating model reporting from French FEC ledger exports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for FEC OpModel.

This module wires together the main building blocks of FEC OpModel:

- configuration (mapping table, tolerance, stock categories, budget),
- FEC file reading (io.py),
- double-entry validation (validation.py),
- the operating model engine (engine.py),
- account inventories (reports.py),
- view helpers (views.py).

The CLI is intentionally thin: it does not implement accounting logic
itself. It orchestrates the underlying modules based on command-line
arguments and configuration files.


Commands
--------

- ``report`` (default):
    Validate the file, print warnings, then print the operating model
    down to ``--level`` (category, subcategory or concept).
- ``validate``:
    Print per-entry and global balance checks only.
- ``unmapped``:
    Print accounts without a mapping (static table, minus session
    overrides).
- ``accounts``:
    Print every account with its mapping status.
- ``export``:
    Write the flat category / sub-category export to ``--output``.


Configuration and overrides
---------------------------

By default, the CLI reads ``fec_opmodel_config.toml`` from the current
directory. You can override this path using ``--config PATH``. The
following arguments override the TOML configuration for the current run:

- ``--mapping``:   static mapping table CSV,
- ``--overrides``: session overrides CSV (same format as the table).

When no configuration file exists, ``--mapping`` is required and the
defaults are used for everything else.
"""

import argparse
from pathlib import Path
from typing import Optional

from . import __version__
from .config import DEFAULT_CONFIG_FILE, AppConfig, load_app_config
from .engine import build_operating_model
from .io import FECFormatError, LedgerEntry, read_fec_entries
from .mapping import (
    AccountResolver,
    MappingFormatError,
    MappingTable,
    SessionOverrides,
)
from .reports import (
    apply_session_overrides,
    exclude_session_mapped,
    list_all_accounts,
    list_unmapped,
    summarize_mapping_health,
)
from .validation import (
    GlobalBalance,
    ValidationResult,
    calculate_global_balance,
    validate_ecritures,
)
from .views import (
    LEVELS,
    VIEWS,
    accounts_table,
    export_operating_model,
    filter_view,
    monthly_table,
    unmapped_table,
)

COMMANDS = ("report", "validate", "unmapped", "accounts", "export")


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m fec_opmodel.cli",
        description=(
            "FEC OpModel - reads a French FEC ledger export, checks double-entry "
            "balance and rolls accounts up into an operating model "
            "(category → sub-category → concept) with monthly series."
        ),
    )

    ap.add_argument(
        "--version",
        action="version",
        version=f"fec_opmodel version {__version__}",
        help="Show the installed version of fec_opmodel and exit.",
    )
    ap.add_argument(
        "command",
        nargs="?",
        choices=COMMANDS,
        default="report",
        help="What to compute and print (default: report).",
    )
    ap.add_argument("fec_path", metavar="FEC_FILE", help="FEC export (.csv or .txt).")

    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. "
            f"If omitted, '{DEFAULT_CONFIG_FILE}' in the current directory is used."
        ),
    )
    ap.add_argument(
        "--mapping",
        dest="mapping_path",
        help="Override the static mapping table CSV defined in the configuration.",
    )
    ap.add_argument(
        "--overrides",
        dest="overrides_path",
        help="Session overrides CSV (same columns as the mapping table).",
    )
    ap.add_argument(
        "--view",
        choices=VIEWS,
        default="all",
        help="Restrict the report to the P&L or balance sheet accounts.",
    )
    ap.add_argument(
        "--level",
        choices=LEVELS,
        default="concept",
        help="Deepest level printed by 'report' (default: concept).",
    )
    ap.add_argument(
        "--budgets",
        action="store_true",
        help="Print mock budget series instead of actuals in 'report'.",
    )
    ap.add_argument(
        "--output",
        dest="output_path",
        help="CSV path for 'export' (default: operating-model.csv).",
    )
    return ap


def _load_config(args: argparse.Namespace, parser: argparse.ArgumentParser) -> AppConfig:
    """Load the TOML configuration, tolerating its absence when --mapping is set."""
    if args.config_path:
        return load_app_config(args.config_path)
    if Path(DEFAULT_CONFIG_FILE).is_file():
        return load_app_config()
    if not args.mapping_path:
        parser.error(
            f"No configuration file '{DEFAULT_CONFIG_FILE}' found: "
            "use --config or --mapping."
        )
    return AppConfig(mapping_table=None, overrides_file=None)


def _print_warnings(
    entries: list[LedgerEntry], config: AppConfig
) -> tuple[ValidationResult, GlobalBalance]:
    validation = validate_ecritures(entries, tolerance=config.tolerance)
    balance = calculate_global_balance(entries, tolerance=config.tolerance)

    if not validation.is_valid:
        print(
            f"Warning: {len(validation.unbalanced_ecritures)} unbalanced "
            "journal entr(y/ies):"
        )
        for u in validation.unbalanced_ecritures:
            print(
                f"  - {u.ecriture_num}: debit {u.total_debit:.2f}, "
                f"credit {u.total_credit:.2f}, difference {u.difference:.2f}"
            )
    if not balance.is_balanced:
        print(
            "Warning: the ledger is not balanced globally "
            f"(debit {balance.total_debit:.2f}, credit {balance.total_credit:.2f}, "
            f"net {balance.net_balance:.2f})."
        )
    return validation, balance


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the FEC OpModel CLI.

    This function parses command-line arguments, loads the configuration,
    the static mapping table and optional session overrides, reads the FEC
    file and renders the requested command.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    config = _load_config(args, parser)

    # 1) Mapping table and session overrides (CLI wins over TOML)
    mapping_path = args.mapping_path or config.mapping_table
    if mapping_path is None:
        parser.error("No mapping table configured: set [mapping].table or --mapping.")
    overrides_path = args.overrides_path or config.overrides_file

    try:
        table = MappingTable.from_csv(str(mapping_path))
        overrides = (
            SessionOverrides.from_csv(str(overrides_path))
            if overrides_path
            else SessionOverrides()
        )
    except FileNotFoundError as exc:
        parser.error(f"Mapping file not found: {exc.filename}")
    except MappingFormatError as exc:
        parser.error(str(exc))
    resolver = AccountResolver(table)

    # 2) FEC entries
    try:
        entries = read_fec_entries(args.fec_path)
    except FileNotFoundError:
        parser.error(f"FEC file not found: {args.fec_path}")
    except FECFormatError as exc:
        parser.error(str(exc))

    print(f"Loaded {len(entries)} FEC lines from {args.fec_path}.")

    # 3) Balance checks (always computed, never blocking)
    validation, balance = _print_warnings(entries, config)

    if args.command == "validate":
        status = "OK" if validation.is_valid else "unbalanced entries found"
        print(f"Journal entries: {status}.")
        print(
            f"Global balance: debit {balance.total_debit:.2f} | "
            f"credit {balance.total_credit:.2f} | net {balance.net_balance:.2f}"
        )
        return

    if args.command == "unmapped":
        unmapped = exclude_session_mapped(list_unmapped(entries, resolver), overrides)
        if not unmapped:
            print("All accounts are mapped.")
            return
        print()
        print(unmapped_table(unmapped).round(config.decimals).to_string(index=False))
        return

    if args.command == "accounts":
        accounts = apply_session_overrides(
            list_all_accounts(entries, resolver), overrides
        )
        health = summarize_mapping_health(accounts, validation, balance)
        print(
            f"Mapped accounts: {health.mapped}/{health.total} "
            f"({health.mapped_pct:.1f}%)"
        )
        print()
        print(accounts_table(accounts).round(config.decimals).to_string(index=False))
        return

    # 4) Operating model
    rows = build_operating_model(
        entries,
        resolver,
        overrides,
        budget=config.budget.synthesizer(),
        stock_categories=config.stock_categories,
    )
    if not rows:
        print("Warning: no account of this file could be mapped.")
        return
    rows = filter_view(rows, args.view)

    if args.command == "export":
        output = args.output_path or "operating-model.csv"
        df = export_operating_model(rows, output)
        print(f"Exported {len(df)} lines to {output}.")
        return

    unmapped_count = len(
        exclude_session_mapped(list_unmapped(entries, resolver), overrides)
    )
    if unmapped_count:
        print(
            f"Warning: {unmapped_count} unmapped account(s) left out of the report "
            "(see the 'unmapped' command)."
        )

    table_df = monthly_table(
        rows, level=args.level, budgets=args.budgets, decimals=config.decimals
    )
    print()
    print(table_df.to_string(index=False, na_rep=""))
    if config.display_mode in ("csv", "both") and args.output_path:
        table_df.to_csv(args.output_path, index=False)
        print(f"Saved table to {args.output_path}.")


if __name__ == "__main__":
    main()
