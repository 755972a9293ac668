import pytest

from fec_opmodel.io import FECFormatError, LedgerEntry, read_fec_entries

FEC_HEADER = (
    "JournalCode\tJournalLib\tEcritureNum\tEcritureDate\tCompteNum\tCompteLib\t"
    "CompAuxNum\tCompAuxLib\tPieceRef\tPieceDate\tEcritureLib\tDebit\tCredit\t"
    "EcritureLet\tDateLet\tValidDate\tMontantdevise\tIdevise\n"
)


def test_read_tab_separated_fec_with_comma_decimals(tmp_path) -> None:
    """A standard tab-separated FEC is read with comma decimals."""
    path = tmp_path / "fec.txt"
    path.write_text(
        FEC_HEADER
        + "AC\tAchats\tAC1\t20250120\t61352003\tLogiciels\t\t\tA001\t20250120\t"
        "Abonnement\t150,50\t0,00\t\t\t20250120\t\t\n"
        + "AC\tAchats\tAC1\t20250120\t0401000\tFournisseurs\t\t\tA001\t20250120\t"
        "Abonnement\t0,00\t150,50\t\t\t20250120\t12,5\tUSD\n",
        encoding="utf-8",
    )

    entries = read_fec_entries(path)

    assert len(entries) == 2
    first, second = entries
    assert first.ecriture_num == "AC1"
    assert first.compte_num == "61352003"
    assert first.compte_lib == "Logiciels"
    assert first.ecriture_date == "20250120"
    assert first.journal_code == "AC"
    assert first.debit == pytest.approx(150.5)
    assert first.credit == pytest.approx(0.0)
    # account numbers are kept as text (leading zeros preserved)
    assert second.compte_num == "0401000"
    assert second.credit == pytest.approx(150.5)
    assert second.montant_devise == pytest.approx(12.5)
    assert second.idevise == "USD"


def test_read_semicolon_csv_with_messy_headers(tmp_path) -> None:
    """Headers are matched ignoring case and surrounding spaces."""
    path = tmp_path / "fec.csv"
    path.write_text(
        " ecriturenum ;COMPTENUM; Debit ;credit;EcritureDate\n"
        "1;61352003;100;0;20250115\n"
        "1;70100000;0;abc;20250115\n",
        encoding="utf-8",
    )

    entries = read_fec_entries(str(path))

    assert [e.compte_num for e in entries] == ["61352003", "70100000"]
    assert entries[0].debit == pytest.approx(100.0)
    assert entries[1].credit == 0.0
    assert entries[1].ecriture_date == "20250115"
    assert entries[1].compte_lib == ""


def test_read_latin1_encoded_fec(tmp_path) -> None:
    """ISO-8859 exports with accented labels are read without error."""
    path = tmp_path / "fec.txt"
    path.write_bytes(
        (
            "EcritureNum\tCompteNum\tCompteLib\tDebit\tCredit\tEcritureDate\n"
            "VT1\t44571000\tTVA collectée\t0,00\t20,00\t20250131\n"
        ).encode("latin-1")
    )

    entries = read_fec_entries(path)

    assert len(entries) == 1
    assert entries[0].compte_lib == "TVA collectée"
    assert entries[0].credit == pytest.approx(20.0)


def test_missing_debit_column_is_rejected(tmp_path) -> None:
    """A file without a Debit column is rejected."""
    path = tmp_path / "fec.csv"
    path.write_text(
        "EcritureNum,CompteNum,Credit\n1,61352003,100\n", encoding="utf-8"
    )

    with pytest.raises(FECFormatError) as exc:
        read_fec_entries(path)
    assert "Debit" in str(exc.value)


@pytest.mark.parametrize("content", ["", "\n\n", "EcritureNum,CompteNum,Debit,Credit\n"])
def test_empty_file_is_rejected(tmp_path, content) -> None:
    """Empty and header-only files are rejected."""
    path = tmp_path / "fec.csv"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(FECFormatError):
        read_fec_entries(path)


def test_non_csv_file_is_rejected(tmp_path) -> None:
    """Only .csv and .txt files are accepted."""
    with pytest.raises(FECFormatError):
        read_fec_entries(tmp_path / "fec.xlsx")


def test_ledger_entry_from_record() -> None:
    """LedgerEntry is built from a record with canonical column names."""
    entry = LedgerEntry.from_record(
        {" EcritureNum ": 7, "comptenum": "512000", "Debit": "10,5", "Credit": None}
    )

    assert entry.ecriture_num == "7"
    assert entry.compte_num == "512000"
    assert entry.debit == "10,5"
    assert entry.credit == 0.0
    assert entry.ecriture_date == ""
