import logging
import random
import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping

logger = logging.getLogger(__name__)

# One signed term of a formula: "2d6", "5", "@abilities.phys.total"
TERM_PATTERN = re.compile(r"([+-])?\s*(?:(\d+)d(\d+)|(\d+)|@([\w.]+))")


@dataclass
class DiceRoll:
    """An evaluated formula. Mirrors the shape of a host roll object."""
    formula: str
    total: int
    dice: List[int] = field(default_factory=list)
    message_id: str | None = None


class DiceRoller:
    """
    Evaluates roll formulas made of dice terms (NdM), integer constants and
    ``@dotted.path`` references into the supplied roll data, joined by + or -.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    async def evaluate(self, formula: str, data: Mapping[str, Any] | None = None) -> DiceRoll:
        return self.roll(formula, data)

    def roll(self, formula: str, data: Mapping[str, Any] | None = None) -> DiceRoll:
        """
        Parses and rolls a formula (e.g., '1d20+5', '2d6 + @vuln.total', '3').

        Args:
            formula: The formula string.
            data: Roll data used to resolve ``@`` references.

        Returns:
            DiceRoll with the total and every individual die result.
        """
        text = str(formula).strip()
        if not text:
            raise ValueError("Empty roll formula")

        total = 0
        dice: List[int] = []
        position = 0

        while position < len(text):
            match = TERM_PATTERN.match(text, position)
            if not match or (match.group(1) is None and position > 0):
                raise ValueError(f"Invalid roll formula format: {formula}")

            sign = -1 if match.group(1) == "-" else 1
            num_dice, die_sides, constant, reference = match.group(2, 3, 4, 5)

            if num_dice is not None:
                results = [self.rng.randint(1, int(die_sides)) for _ in range(int(num_dice))]
                dice.extend(results)
                value = sum(results)
            elif constant is not None:
                value = int(constant)
            else:
                value = self._resolve_reference(reference, data, formula)

            total += sign * value
            position = match.end()
            while position < len(text) and text[position].isspace():
                position += 1

        logger.debug("Rolled %s -> %s %s", formula, total, dice)
        return DiceRoll(formula=text, total=total, dice=dice)

    @staticmethod
    def _resolve_reference(path: str, data: Mapping[str, Any] | None, formula: str) -> int:
        if data is None:
            raise ValueError(f"Formula requires roll data for '@{path}' but none provided.")

        value: Any = data
        for key in path.split("."):
            if isinstance(value, Mapping):
                value = value.get(key)
            else:
                value = getattr(value, key, None)
            if value is None:
                # Missing data counts as zero, as the host does
                logger.debug("Unresolved roll data '@%s' in %s", path, formula)
                return 0

        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Roll data '@{path}' is not numeric: {value!r}")
