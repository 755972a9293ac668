import pandas as pd
import pytest

from fec_opmodel.engine import build_operating_model
from fec_opmodel.io import LedgerEntry
from fec_opmodel.mapping import AccountMapping, AccountResolver, MappingTable
from fec_opmodel.views import (
    EXPORT_COLUMNS,
    accounts_table,
    export_operating_model,
    filter_view,
    flatten_for_export,
    monthly_table,
)
from fec_opmodel.reports import list_all_accounts


@pytest.fixture(scope="module")
def resolver() -> AccountResolver:
    return AccountResolver(
        MappingTable(
            [
                AccountMapping("Sales", "Revenue", "Product Revenue", "701000000"),
                AccountMapping("Services", "Revenue", "Service Revenue", "706000000"),
                AccountMapping("Software", "Operating Expenses (OPEX)", "R&D Expenses", "6135"),
                AccountMapping("Bank", "Current Assets", "Cash", "512000000"),
                # mixed concept: holds both a P&L and a balance sheet account
                AccountMapping("Mixed", "Current Assets", "Other", "486000000"),
                AccountMapping("Mixed", "Current Assets", "Other", "658000000"),
            ]
        )
    )


@pytest.fixture(scope="module")
def entries() -> list[LedgerEntry]:
    return [
        LedgerEntry("1", "701000", credit=1000.0, ecriture_date="20250110"),
        LedgerEntry("1", "512000", debit=1000.0, ecriture_date="20250110"),
        LedgerEntry("2", "706000", credit=200.0, ecriture_date="20250210"),
        LedgerEntry("2", "512000", debit=200.0, ecriture_date="20250210"),
        LedgerEntry("3", "613520", debit=80.0, ecriture_date="20250215"),
        LedgerEntry("3", "486000", credit=70.0, ecriture_date="20250215"),
        LedgerEntry("3", "658000", credit=10.0, ecriture_date="20250215"),
    ]


@pytest.fixture(scope="module")
def rows(entries, resolver):
    return build_operating_model(entries, resolver)


def test_filter_view_pnl(rows) -> None:
    """The P&L view keeps rows backed by class 6 and 7 accounts."""
    pnl = filter_view(rows, "pnl")

    assert [r.category for r in pnl] == [
        "Current Assets",
        "Operating Expenses (OPEX)",
        "Revenue",
    ]
    assets = pnl[0]
    assert [s.sub_category for s in assets.children] == ["Other"]
    # amounts are not recomputed by the projection
    assert assets.amount == next(r for r in rows if r.category == "Current Assets").amount


def test_filter_view_balance_sheet(rows) -> None:
    """The balance-sheet view keeps rows backed by other accounts."""
    balance_sheet = filter_view(rows, "balance-sheet")

    assert [r.category for r in balance_sheet] == ["Current Assets"]
    assert [s.sub_category for s in balance_sheet[0].children] == ["Cash", "Other"]


def test_filter_view_all_and_unknown(rows) -> None:
    """"all" keeps the tree; an unknown view is rejected."""
    assert filter_view(rows, "all") == rows
    with pytest.raises(ValueError):
        filter_view(rows, "cash-flow")


def test_filter_view_does_not_mutate_tree(rows) -> None:
    """Filtering returns new rows and leaves the input untouched."""
    before = [len(r.children) for r in rows]
    filter_view(rows, "pnl")
    assert [len(r.children) for r in rows] == before


def test_flatten_for_export(rows) -> None:
    """Export has one line per category / sub-category pair."""
    df = flatten_for_export(rows)

    assert list(df.columns) == EXPORT_COLUMNS
    assert len(df) == 5
    revenue = df[df["Grande Catégorie"] == "Revenue"]
    assert set(revenue["Sous-Catégorie"]) == {"Product Revenue", "Service Revenue"}
    assert revenue["Montant"].sum() == pytest.approx(-1200.0)


def test_flatten_empty_tree() -> None:
    """An empty tree gives an empty export with the expected columns."""
    df = flatten_for_export([])
    assert df.empty
    assert list(df.columns) == EXPORT_COLUMNS


def test_export_operating_model(tmp_path, rows) -> None:
    """The export CSV is written with a BOM for spreadsheets."""
    out = tmp_path / "operating-model.csv"

    export_operating_model(rows, str(out))

    df = pd.read_csv(out, encoding="utf-8-sig")
    assert list(df.columns) == EXPORT_COLUMNS
    assert len(df) == 5


def test_monthly_table_levels(rows) -> None:
    """The monthly table stops at the requested level."""
    categories = monthly_table(rows, level="category")
    concepts = monthly_table(rows, level="concept")

    assert list(categories["type"]) == ["category"] * 3
    assert list(categories.columns) == ["type", "name", "amount", "2025-01", "2025-02"]
    assert len(concepts) == 3 + 5 + 5
    revenue = categories[categories["name"] == "Revenue"].iloc[0]
    assert revenue["2025-01"] == pytest.approx(-1000.0)
    assert revenue["2025-02"] == pytest.approx(-200.0)

    with pytest.raises(ValueError):
        monthly_table(rows, level="account")


def test_monthly_table_budgets(rows) -> None:
    """The monthly table can show budgets instead of actuals."""
    budgets = monthly_table(rows, level="category", budgets=True)
    assert "2025-01" in budgets.columns


def test_accounts_table(entries, resolver) -> None:
    """Account summaries are flattened into one column per mapping level."""
    df = accounts_table(list_all_accounts(entries, resolver))

    assert list(df["compte_num"]) == sorted(df["compte_num"])
    assert df["is_mapped"].all()
    assert set(df["grand_category"]) == {
        "Revenue",
        "Operating Expenses (OPEX)",
        "Current Assets",
    }
