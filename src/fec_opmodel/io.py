# FEC OpModel - Operating model reporting from French FEC ledger exports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for FEC OpModel.

This module handles reading a FEC (Fichier des Écritures Comptables) export
and turning it into a list of ``LedgerEntry`` records suitable for the
validation, aggregation and reporting modules.

Expected input format
---------------------

A delimited text file (``.csv`` or ``.txt``) with a header row. The
delimiter is detected automatically (``,``, ``;``, tab or ``|`` are the
usual choices for FEC exports). Column names are matched
case-insensitively and surrounding whitespace is ignored. Files are read
as UTF-8, or as Latin-1 when they are not valid UTF-8 (ISO-8859 exports).

The standard FEC columns are:

    JournalCode, JournalLib, EcritureNum, EcritureDate, CompteNum,
    CompteLib, CompAuxNum, CompAuxLib, PieceRef, PieceDate, EcritureLib,
    Debit, Credit, EcritureLet, DateLet, ValidDate, Montantdevise, Idevise

Only ``EcritureNum``, ``CompteNum``, ``Debit`` and ``Credit`` are required;
the other columns default to empty strings (or 0 for Montantdevise).

Amounts use a comma as decimal separator ("1234,56"). Unparseable amounts
are read as 0.

Any structural problem (wrong extension, empty file, missing required
columns) raises a ``FECFormatError`` with a clear message: files that do
not pass this boundary never reach the core.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import pandas as pd

from .accounts import parse_amount

REQUIRED_COLUMNS = ("EcritureNum", "CompteNum", "Debit", "Credit")

FEC_COLUMNS = (
    "JournalCode",
    "JournalLib",
    "EcritureNum",
    "EcritureDate",
    "CompteNum",
    "CompteLib",
    "CompAuxNum",
    "CompAuxLib",
    "PieceRef",
    "PieceDate",
    "EcritureLib",
    "Debit",
    "Credit",
    "EcritureLet",
    "DateLet",
    "ValidDate",
    "Montantdevise",
    "Idevise",
)

ACCEPTED_SUFFIXES = (".csv", ".txt")


class FECFormatError(ValueError):
    """Raised when a FEC file cannot be accepted."""


@dataclass(frozen=True)
class LedgerEntry:
    """One line of a FEC export.

    ``debit`` and ``credit`` may be floats or raw strings; consumers parse
    them with :func:`fec_opmodel.accounts.parse_amount`.
    """

    ecriture_num: str
    compte_num: str
    debit: Union[float, str] = 0.0
    credit: Union[float, str] = 0.0
    ecriture_date: str = ""
    compte_lib: str = ""
    journal_code: str = ""
    journal_lib: str = ""
    comp_aux_num: str = ""
    comp_aux_lib: str = ""
    piece_ref: str = ""
    piece_date: str = ""
    ecriture_lib: str = ""
    ecriture_let: str = ""
    date_let: str = ""
    valid_date: str = ""
    montant_devise: float = 0.0
    idevise: str = ""

    @staticmethod
    def from_record(record: Mapping[str, Any]) -> "LedgerEntry":
        """Build an entry from a dict keyed by FEC column names.

        Keys are matched case-insensitively and trimmed. Missing text
        fields default to "", missing amounts to 0.
        """
        by_key = {str(k).strip().lower(): v for k, v in record.items()}

        def text(column: str) -> str:
            value = by_key.get(column.lower())
            if value is None:
                return ""
            return str(value)

        def amount(column: str) -> Union[float, str]:
            value = by_key.get(column.lower())
            if value is None:
                return 0.0
            if isinstance(value, str):
                return value
            return parse_amount(value)

        return LedgerEntry(
            ecriture_num=text("EcritureNum"),
            compte_num=text("CompteNum"),
            debit=amount("Debit"),
            credit=amount("Credit"),
            ecriture_date=text("EcritureDate"),
            compte_lib=text("CompteLib"),
            journal_code=text("JournalCode"),
            journal_lib=text("JournalLib"),
            comp_aux_num=text("CompAuxNum"),
            comp_aux_lib=text("CompAuxLib"),
            piece_ref=text("PieceRef"),
            piece_date=text("PieceDate"),
            ecriture_lib=text("EcritureLib"),
            ecriture_let=text("EcritureLet"),
            date_let=text("DateLet"),
            valid_date=text("ValidDate"),
            montant_devise=parse_amount(by_key.get("montantdevise")),
            idevise=text("Idevise"),
        )


def _find_column(columns: list[str], name: str) -> Union[str, None]:
    """Find a column by name, ignoring case and surrounding whitespace."""
    wanted = name.strip().lower()
    for col in columns:
        if str(col).strip().lower() == wanted:
            return col
    return None


def _detect_encoding(path: Path) -> str:
    """Return "utf-8-sig" if the file decodes as UTF-8, else "latin-1".

    Many accounting packages still export FEC files in ISO-8859-15.
    """
    try:
        path.read_bytes().decode("utf-8-sig")
    except UnicodeDecodeError:
        return "latin-1"
    return "utf-8-sig"


def _first_line(path: Path, encoding: str = "utf-8-sig") -> str:
    """Return the first non-blank line of a file ('' if there is none)."""
    with path.open(encoding=encoding) as fh:
        for line in fh:
            if line.strip():
                return line
    return ""


def _detect_delimiter(header: str) -> str:
    """Pick the delimiter that splits the header line into the most fields.

    The header is used rather than data lines because amounts may contain
    commas as decimal separators.
    """
    counts = {sep: header.count(sep) for sep in ("\t", ";", "|", ",")}
    best = max(counts, key=lambda sep: counts[sep])
    return best if counts[best] > 0 else ","


def read_fec_entries(path: Union[str, "os.PathLike[str]"]) -> list[LedgerEntry]:
    """
    Read a FEC export and return its lines as LedgerEntry records.

    Parameters
    ----------
    path:
        Path to the ``.csv`` / ``.txt`` FEC export.

    Returns
    -------
    list[LedgerEntry]
        One entry per data line, in file order. Debit and Credit are
        parsed to floats (comma decimal separator, invalid values → 0).

    Raises
    ------
    FECFormatError
        If the file extension is not supported, the file is empty, or one
        of the required columns (EcritureNum, CompteNum, Debit, Credit)
        is missing.
    """
    p = Path(path)
    if p.suffix.lower() not in ACCEPTED_SUFFIXES:
        raise FECFormatError(
            f"Unsupported file type '{p.suffix}': expected a CSV or TXT FEC export."
        )

    encoding = _detect_encoding(p)
    header = _first_line(p, encoding)
    if not header:
        raise FECFormatError(f"FEC file is empty: {p}")

    try:
        # Everything is kept as text so account numbers and amounts are
        # not altered by type inference.
        df = pd.read_csv(
            p,
            sep=_detect_delimiter(header),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding=encoding,
        )
    except pd.errors.EmptyDataError as exc:
        raise FECFormatError(f"FEC file is empty: {p}") from exc
    except pd.errors.ParserError as exc:
        raise FECFormatError(f"Could not parse FEC file: {p}") from exc

    if df.empty:
        raise FECFormatError(f"FEC file is empty: {p}")

    columns = list(df.columns)
    missing = [c for c in REQUIRED_COLUMNS if _find_column(columns, c) is None]
    if missing:
        found = ", ".join(str(c).strip() for c in columns[:10])
        raise FECFormatError(
            f"Missing column(s): {', '.join(missing)}. Columns found: {found}. "
            "Check that the file is a valid FEC export."
        )

    # Rename present FEC columns to their canonical spelling.
    renames = {}
    for name in FEC_COLUMNS:
        col = _find_column(columns, name)
        if col is not None:
            renames[col] = name
    df = df.rename(columns=renames)

    entries: list[LedgerEntry] = []
    for record in df.to_dict(orient="records"):
        record["Debit"] = parse_amount(record.get("Debit"))
        record["Credit"] = parse_amount(record.get("Credit"))
        entries.append(LedgerEntry.from_record(record))
    return entries
