import asyncio
import random

import pytest

from attack_chain.host.dice import DiceRoller


def test_constant_formula():
    roll = DiceRoller().roll("3")
    assert roll.total == 3
    assert roll.dice == []


def test_signed_terms_and_references():
    data = {"abilities": {"wits": {"total": 4}}, "hiddenAbilities": {"vuln": {"total": 2}}}
    roll = DiceRoller().roll("10 + @abilities.wits.total - @hiddenAbilities.vuln.total", data)
    assert roll.total == 12


def test_dice_stay_in_range():
    roller = DiceRoller(random.Random(1))
    for _ in range(50):
        roll = roller.roll("2d6 + 1")
        assert len(roll.dice) == 2
        assert all(1 <= d <= 6 for d in roll.dice)
        assert roll.total == sum(roll.dice) + 1


def test_same_seed_same_rolls():
    first = DiceRoller(random.Random(42)).roll("4d20")
    second = DiceRoller(random.Random(42)).roll("4d20")
    assert first.dice == second.dice


def test_missing_reference_counts_as_zero():
    assert DiceRoller().roll("5 + @nothing.here", {}).total == 5


def test_invalid_formulas_raise():
    roller = DiceRoller()
    with pytest.raises(ValueError):
        roller.roll("")
    with pytest.raises(ValueError):
        roller.roll("fireball")
    with pytest.raises(ValueError):
        roller.roll("@power.value", None)
    with pytest.raises(ValueError):
        roller.roll("@name", {"name": "Mira"})


def test_evaluate_is_awaitable():
    roll = asyncio.run(DiceRoller().evaluate("7"))
    assert roll.total == 7
