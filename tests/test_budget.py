import pytest

from fec_opmodel.budget import BudgetSynthesizer, humanize_budget, synthesize_budget


@pytest.mark.parametrize(
    "value, expected",
    [
        (94.0, 90.0),
        (95.0, 100.0),
        (-15.0, -10.0),
        (104.0, 100.0),
        (149.0, 150.0),
        (1234.0, 1200.0),
        (1250.0, 1300.0),
        (-1260.0, -1300.0),
    ],
)
def test_humanize_budget(value, expected) -> None:
    """Budgets are rounded to 10, 50 or 100 depending on magnitude."""
    assert humanize_budget(value) == pytest.approx(expected)


def test_zero_actual_gives_zero_budget() -> None:
    """A month without activity has a zero budget."""
    assert BudgetSynthesizer().synthesize(0.0, "512000000", "2025-01") == 0.0
    assert synthesize_budget(0) == 0.0


@pytest.mark.parametrize("deterministic", [True, False])
def test_budget_stays_within_variation(deterministic) -> None:
    """Budgets stay within the configured variation around the actual."""
    synth = BudgetSynthesizer(deterministic=deterministic)
    for i in range(50):
        budget = synth.synthesize(1000.0, f"6{i:08d}", "2025-03")
        assert 800.0 <= budget <= 1200.0
        assert budget % 50 == 0


def test_negative_actual_gives_negative_budget() -> None:
    """Credit balances keep their sign in the budget."""
    budget = BudgetSynthesizer().synthesize(-5000.0, "701000000", "2025-01")

    assert -5800.0 <= budget <= -4200.0
    assert budget % 100 == 0


def test_deterministic_budget_is_stable_per_account_and_month() -> None:
    """The same account and month always get the same budget."""
    synth = BudgetSynthesizer(seed=7)
    first = [synth.synthesize(12345.0, "613520030", f"2025-{m:02d}") for m in range(1, 13)]
    again = [synth.synthesize(12345.0, "613520030", f"2025-{m:02d}") for m in range(1, 13)]

    assert first == again
    # a fresh synthesizer with the same seed reproduces the figures
    assert BudgetSynthesizer(seed=7).synthesize(12345.0, "613520030", "2025-01") == first[0]
