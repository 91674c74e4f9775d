import logging

from attack_chain.host.interfaces import Actor, OwnedItem
from attack_chain.models import ItemKind

logger = logging.getLogger(__name__)


def find_gear_by_name(actor: Actor, name: str, required: int | None = None) -> OwnedItem | None:
    """
    The actor's gear item with this name. When several match, prefer one
    that can cover ``required``, then equipped, then the largest stack.
    """
    if actor is None or not name:
        logger.warning("Invalid parameters for gear search (actor=%s, name=%r)", actor, name)
        return None

    matching = [item for item in actor.items if item.data.type == ItemKind.GEAR and item.data.name == name]
    if not matching:
        return None
    if len(matching) == 1:
        return matching[0]

    if required is None:
        required = matching[0].data.cost or 0

    def priority(item: OwnedItem):
        quantity = item.data.quantity or 0
        return (quantity < required, not item.data.equipped, -quantity)

    return min(matching, key=priority)
