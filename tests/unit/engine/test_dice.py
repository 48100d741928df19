"""Tests for GURPS dice values and rolling."""

from __future__ import annotations

import pytest

from gurps_engine.core.exceptions import DiceError
from gurps_engine.engine.dice import Dice, DiceRoll, roll


class TestDiceParse:
    """Tests for parsing GURPS dice notation."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("2d+1", Dice(2, 6, 1, 1)),
            ("1d6-2", Dice(1, 6, -2, 1)),
            ("3dx2", Dice(3, 6, 0, 2)),
            ("d", Dice(1, 6, 0, 1)),
            ("2d8", Dice(2, 8, 0, 1)),
            ("4", Dice(0, 6, 4, 1)),
        ],
    )
    def test_parse(self, text: str, expected: Dice) -> None:
        """Test notation variants parse to the right parts."""
        assert Dice.parse(text) == expected

    @pytest.mark.parametrize("text", ["", "2q", "d0", "1dx0"])
    def test_invalid_notation(self, text: str) -> None:
        """Test that malformed notation raises DiceError."""
        with pytest.raises(DiceError):
            Dice.parse(text)


class TestDiceText:
    """Tests for rendering dice."""

    @pytest.mark.parametrize(
        "dice,expected",
        [
            (Dice(1, modifier=-2), "1d-2"),
            (Dice(2, modifier=1), "2d+1"),
            (Dice(3, multiplier=2), "3dx2"),
            (Dice(0, modifier=3), "3"),
            (Dice(0), "0"),
        ],
    )
    def test_str(self, dice: Dice, expected: str) -> None:
        """Test GURPS notation output."""
        assert str(dice) == expected

    def test_d20_expression(self) -> None:
        """Test conversion to d20 syntax."""
        assert Dice(2, modifier=1).to_d20_expression() == "2d6+1"
        assert Dice(3, multiplier=2).to_d20_expression() == "(3d6)*2"


class TestDiceRoll:
    """Tests for rolling through the d20 library."""

    def test_roll_within_bounds(self) -> None:
        """Test rolled totals stay between minimum and maximum."""
        dice = Dice(3, modifier=2)
        for _ in range(20):
            result = dice.roll()
            assert isinstance(result, DiceRoll)
            assert dice.minimum() <= result.total <= dice.maximum()
            assert len(result.dice) == 3

    def test_roll_shortcut(self) -> None:
        """Test the module-level roll helper."""
        result = roll("1d")
        assert 1 <= result.total <= 6

    def test_add_modifier_returns_new_value(self) -> None:
        """Test dice are immutable values."""
        base = Dice(1)
        bumped = base.add_modifier(2)
        assert base.modifier == 0
        assert bumped.modifier == 2
