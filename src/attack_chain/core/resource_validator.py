import logging

from attack_chain.core.inventory import find_gear_by_name
from attack_chain.host.interfaces import Actor
from attack_chain.models import ItemData, ItemKind, ResourceCheck

logger = logging.getLogger(__name__)


def current_power(actor: Actor) -> int:
    try:
        return actor.system["power"]["value"] or 0
    except (KeyError, TypeError):
        return 0


def check_embedded_item_resources(
    item: ItemData | None, actor: Actor, should_consume_cost: bool = True
) -> ResourceCheck:
    """
    Can the actor pay for one use of the embedded item?

    Gear is checked against the actor's own inventory item, not the
    embedded snapshot, whose quantity never changes.
    """
    if item is None:
        return ResourceCheck(can_execute=False, reason="noEmbeddedItem")

    cost = (item.cost or 0) if should_consume_cost else 0

    match item.type:
        case ItemKind.COMBAT_POWER:
            available = current_power(actor)
            if cost > available:
                return ResourceCheck(
                    can_execute=False, reason="insufficientPower", required=cost, available=available,
                )

        case ItemKind.GEAR:
            gear = find_gear_by_name(actor, item.name, cost)
            if gear is None:
                logger.warning("Gear %s not found in %s inventory", item.name, actor.name)
                return ResourceCheck(
                    can_execute=False, reason="noGearInInventory", required=cost, available=0,
                )

            available = gear.data.quantity or 0
            if cost > available:
                logger.warning("Insufficient %s: %s required, %s available", item.name, cost, available)
                return ResourceCheck(
                    can_execute=False, reason="insufficientQuantity", required=cost, available=available,
                )

    return ResourceCheck(can_execute=True)
