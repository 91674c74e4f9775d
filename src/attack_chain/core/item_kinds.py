"""
Per-kind behaviour of the items an action card can drive.

Each item kind decides whether it may be embedded, whether it may be handed
out as an effect, and what running it without its popup ("bypass") does.
Every decision is an exhaustive ``match`` over ``ItemKind``.
"""

import logging

from attack_chain.core.inventory import find_gear_by_name
from attack_chain.core.resource_validator import current_power
from attack_chain.exceptions import (
    BypassNotSupportedError,
    UnsupportedEffectTypeError,
    UnsupportedItemTypeError,
)
from attack_chain.host.interfaces import Actor, MessagePoster
from attack_chain.models import (
    BypassOutcome,
    ItemData,
    ItemKind,
    EMBEDDABLE_EFFECT_KINDS,
    EMBEDDABLE_ITEM_KINDS,
)

logger = logging.getLogger(__name__)


def _supported(kinds) -> str:
    return ", ".join(k.value for k in kinds)


def validate_for_embedding(kind: ItemKind) -> None:
    match kind:
        case ItemKind.COMBAT_POWER | ItemKind.GEAR | ItemKind.FEATURE:
            return
        case ItemKind.STATUS | ItemKind.TRANSFORMATION | ItemKind.ACTION_CARD:
            raise UnsupportedItemTypeError(
                f"Cannot embed {kind.value} in an action card (supported: {_supported(EMBEDDABLE_ITEM_KINDS)})"
            )
        case _:
            raise UnsupportedItemTypeError(f"Unknown item type: {kind}")


def validate_for_effect(kind: ItemKind) -> None:
    match kind:
        case ItemKind.STATUS | ItemKind.GEAR:
            return
        case ItemKind.COMBAT_POWER | ItemKind.FEATURE | ItemKind.TRANSFORMATION | ItemKind.ACTION_CARD:
            raise UnsupportedEffectTypeError(
                f"Cannot use {kind.value} as an effect (supported: {_supported(EMBEDDABLE_EFFECT_KINDS)})"
            )
        case _:
            raise UnsupportedEffectTypeError(f"Unknown item type: {kind}")


async def pay_item_cost(item: ItemData, actor: Actor) -> BypassOutcome:
    """
    Pays one use of the item from the actor's resources.
    Gear reports ``resource_depleted`` once its stack reaches zero.
    """
    match item.type:
        case ItemKind.COMBAT_POWER:
            cost = item.cost or 0
            if cost:
                await actor.update({"power.value": max(0, current_power(actor) - cost)})
            return BypassOutcome(cost_paid=cost)

        case ItemKind.GEAR:
            cost = item.cost or 1
            gear = find_gear_by_name(actor, item.name, cost)
            if gear is None or (gear.data.quantity or 0) <= 0:
                logger.warning("No %s left in %s inventory", item.name, actor.name)
                return BypassOutcome(resource_depleted=True)

            remaining = max(0, (gear.data.quantity or 0) - cost)
            await gear.update({"quantity": remaining})
            if remaining <= 0:
                logger.info("%s used the last %s", actor.name, item.name)
            return BypassOutcome(cost_paid=cost, resource_depleted=remaining <= 0)

        case ItemKind.FEATURE | ItemKind.STATUS:
            return BypassOutcome()

        case ItemKind.TRANSFORMATION | ItemKind.ACTION_CARD:
            raise BypassNotSupportedError(f"{item.type.value} items cannot be bypassed")

        case _:
            raise BypassNotSupportedError(f"Unsupported item type for bypass: {item.type}")


async def execute_bypass(
    item: ItemData,
    actor: Actor,
    messages: MessagePoster,
    should_apply_cost: bool = True,
) -> BypassOutcome:
    """Runs the item without its popup: pay the cost, then post its chat card."""
    match item.type:
        case ItemKind.COMBAT_POWER | ItemKind.GEAR:
            outcome = await pay_item_cost(item, actor) if should_apply_cost else BypassOutcome()

        case ItemKind.FEATURE | ItemKind.STATUS:
            outcome = BypassOutcome()

        case ItemKind.TRANSFORMATION:
            raise BypassNotSupportedError("Transformations are applied, not used")

        case ItemKind.ACTION_CARD:
            raise BypassNotSupportedError("Action cards cannot be bypassed, they manage their own execution")

        case _:
            raise BypassNotSupportedError(f"Unsupported item type for bypass: {item.type}")

    message = await messages.post_item_message(item, actor)
    if message is not None and message.rolls:
        roll = message.rolls[0]
        roll.message_id = message.id
        outcome = outcome.model_copy(update={"roll": roll, "message_id": message.id})

    logger.debug("Bypassed %s %s (cost paid: %s)", item.type.value, item.name, outcome.cost_paid)
    return outcome
