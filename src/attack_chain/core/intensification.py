import logging
from dataclasses import dataclass
from typing import Any

from attack_chain.host.interfaces import Actor, OwnedItem
from attack_chain.models import ItemData, ItemKind

logger = logging.getLogger(__name__)


@dataclass
class ApplicationOutcome:
    applied: bool
    intensified: bool = False
    item: OwnedItem | None = None


def intensify_value(value: Any) -> float | int:
    """+1 for positive values, -1 for negative, 0 unchanged."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = 0.0
    if number.is_integer():
        number = int(number)

    if number > 0:
        return number + 1
    if number < 0:
        return number - 1
    return number


def find_existing_status(target: Actor, effect: ItemData) -> OwnedItem | None:
    """A status on the target with the same name and description."""
    if effect.type != ItemKind.STATUS:
        return None
    return next(
        (
            item for item in target.items
            if item.data.type == ItemKind.STATUS
            and item.data.name == effect.name
            and item.data.description == effect.description
        ),
        None,
    )


async def intensify_status(existing: OwnedItem) -> bool:
    if not existing.data.effects or not existing.data.effects[0].changes:
        logger.warning("No active effects found to intensify on %s", existing.data.name)
        return False

    try:
        container = existing.data.effects[0]
        changes = [
            {**change.model_dump(), "value": intensify_value(change.value)}
            for change in container.changes
        ]
        effects = [effect.model_dump() for effect in existing.data.effects]
        effects[0]["changes"] = changes
        await existing.update({"effects": effects})
    except Exception as e:
        logger.error("Failed to intensify status %s: %s", existing.data.name, e)
        return False

    logger.info("Intensified status %s (%s changes)", existing.data.name, len(changes))
    return True


async def apply_or_intensify_status(target: Actor, effect: ItemData) -> ApplicationOutcome:
    """
    Creates the effect on the target, or intensifies a matching status
    already present instead of stacking a duplicate.
    """
    try:
        existing = find_existing_status(target, effect)
        if existing is not None:
            intensified = await intensify_status(existing)
            return ApplicationOutcome(applied=intensified, intensified=True, item=existing)

        item = await target.create_item(effect)
        return ApplicationOutcome(applied=True, item=item)

    except Exception as e:
        logger.error("Failed to apply or intensify %s on %s: %s", effect.name, target.name, e)
        return ApplicationOutcome(applied=False)
