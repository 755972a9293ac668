# FEC OpModel - Operating model reporting from French FEC ledger exports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for FEC OpModel.

This module is responsible for:
- loading the application configuration from a TOML file,
- resolving file paths relative to the TOML file,
- exposing typed dataclasses used by the rest of the application.

Example ``fec_opmodel_config.toml``::

    [mapping]
    table = "data/mappings/operating_model_fr_pcg.csv"
    overrides = "data/mappings/session_overrides.csv"   # optional

    [validation]
    tolerance = 0.01

    [categories]
    stock = ["Current Assets", "Current Liabilities",
             "Equity & Long-term Funding", "Non-Current Assets"]

    [budget]
    deterministic = true
    seed = 0
    variation = 0.15

    [display]
    mode = "table"      # table | csv | both
    decimals = 2
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .accounts import STOCK_CATEGORIES
from .budget import DEFAULT_VARIATION, BudgetSynthesizer
from .validation import BALANCE_TOLERANCE

DEFAULT_CONFIG_FILE = "fec_opmodel_config.toml"


@dataclass(frozen=True)
class BudgetConfig:
    """Mock budget options."""

    deterministic: bool = True
    seed: int = 0
    variation: float = DEFAULT_VARIATION

    def synthesizer(self) -> BudgetSynthesizer:
        return BudgetSynthesizer(
            deterministic=self.deterministic,
            seed=self.seed,
            variation=self.variation,
        )


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for FEC OpModel.

    This aggregates:
    - the static mapping table and optional session overrides file,
    - the double-entry tolerance,
    - the grand categories treated as balances (stock),
    - mock budget options,
    - display options for the CLI.
    """

    mapping_table: Optional[Path]
    overrides_file: Optional[Path]
    tolerance: float = BALANCE_TOLERANCE
    stock_categories: frozenset[str] = STOCK_CATEGORIES
    budget: BudgetConfig = BudgetConfig()
    display_mode: str = "table"
    decimals: int = 2


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _parse_budget(raw: Mapping[str, Any]) -> BudgetConfig:
    section = _section(raw, "budget")
    try:
        seed = int(section.get("seed", 0))
        variation = float(section.get("variation", DEFAULT_VARIATION))
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid [budget] section: 'seed' must be an integer and "
            "'variation' a number."
        ) from exc
    if not 0 <= variation < 1:
        raise ValueError("Invalid [budget].variation, expected 0 <= variation < 1.")
    return BudgetConfig(
        deterministic=bool(section.get("deterministic", True)),
        seed=seed,
        variation=variation,
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the FEC OpModel configuration from a TOML file.

    All file paths in the TOML are resolved relative to the directory of
    the TOML file itself. Every section is optional; missing values fall
    back to the defaults of ``AppConfig``.

    Parameters
    ----------
    config_path :
        Path to the TOML file. Defaults to ``fec_opmodel_config.toml`` in
        the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    def _resolve_optional(rel: Optional[str]) -> Optional[Path]:
        if not rel:
            return None
        return (base_dir / str(rel)).resolve()

    # 1) Mapping files
    mapping_section = _section(raw, "mapping")
    mapping_table = _resolve_optional(mapping_section.get("table"))
    overrides_file = _resolve_optional(mapping_section.get("overrides"))

    # 2) Validation
    validation_section = _section(raw, "validation")
    try:
        tolerance = float(validation_section.get("tolerance", BALANCE_TOLERANCE))
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'validation.tolerance', expected a number."
        ) from exc

    # 3) Stock categories
    categories_section = _section(raw, "categories")
    raw_stock = categories_section.get("stock")
    if raw_stock is None:
        stock_categories = STOCK_CATEGORIES
    elif isinstance(raw_stock, list):
        stock_categories = frozenset(str(c) for c in raw_stock)
    else:
        raise ValueError("Invalid value for 'categories.stock', expected a list.")

    # 4) Budget
    budget = _parse_budget(raw)

    # 5) Display options
    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    try:
        decimals = int(display_section.get("decimals", 2))
    except (TypeError, ValueError):
        decimals = 2

    return AppConfig(
        mapping_table=mapping_table,
        overrides_file=overrides_file,
        tolerance=tolerance,
        stock_categories=stock_categories,
        budget=budget,
        display_mode=display_mode,
        decimals=decimals,
    )
