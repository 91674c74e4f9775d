import logging
from typing import Any, List, Mapping

from attack_chain.core.documents import ActionCardDocument, apply_patch
from attack_chain.core.item_kinds import validate_for_effect, validate_for_embedding
from attack_chain.exceptions import UnsupportedItemTypeError
from attack_chain.models import (
    ActionCard,
    ActiveEffectData,
    ItemData,
    ItemKind,
    RollConfig,
    RollType,
    LEGAL_ROLL_TYPES,
)

logger = logging.getLogger(__name__)

# Which list on the card a proxy writes back to
SLOT_ITEM = "embedded_item"
SLOT_EFFECTS = "embedded_status_effects"
SLOT_TRANSFORMATIONS = "embedded_transformations"


class EmbeddedItemProxy:
    """
    Editable stand-in for an embedded copy. Writes merge into the copy and
    are persisted through the owning card with ``from_embedded_item=True``.
    """

    def __init__(
        self,
        card_doc: ActionCardDocument,
        data: ItemData,
        slot: str = SLOT_ITEM,
        execution_context: bool = False,
    ):
        self.card_doc = card_doc
        self.data = data
        self.slot = slot
        self.execution_context = execution_context
        self.original_id = data.id

    @property
    def id(self) -> str:
        return self.data.id

    @property
    def name(self) -> str:
        return self.data.name

    @property
    def type(self) -> ItemKind:
        return self.data.type

    @property
    def is_editable(self) -> bool:
        return self.card_doc.is_editable

    @property
    def is_current(self) -> bool:
        """False once the copy has been cleared or replaced on the card."""
        if self.slot == SLOT_ITEM:
            current = self.card_doc.card.embedded_item
            return current is not None and current.id == self.original_id
        return any(entry.id == self.original_id for entry in getattr(self.card_doc.card, self.slot))

    async def update(self, patch: Mapping[str, Any]) -> "EmbeddedItemProxy":
        raw = self.data.model_dump()
        apply_patch(raw, patch)
        updated = ItemData.model_validate(raw)

        if not self.is_current:
            logger.warning("%s is no longer embedded in %s, update dropped", self.name, self.card_doc.card.name)
            return self

        if self.slot == SLOT_ITEM:
            card_patch = {SLOT_ITEM: updated.model_dump()}
        else:
            entries = [
                updated.model_dump() if entry.id == self.original_id else entry.model_dump()
                for entry in getattr(self.card_doc.card, self.slot)
            ]
            card_patch = {self.slot: entries}

        await self.card_doc.update(card_patch, from_embedded_item=True)
        self.data = updated

        # Sheets stay closed while a card is executing
        if not self.execution_context:
            self.card_doc.render()
        return self


# ===== SANITIZING =====

def sanitize_roll_type(item: ItemData) -> str:
    """``roll``, ``flat`` and ``none`` survive; anything else becomes ``roll``."""
    roll_type = item.roll_type
    if roll_type == RollType.NONE.value:
        logger.info("%s has roll type 'none', treated as two automatic successes", item.name)
        return roll_type
    if roll_type not in LEGAL_ROLL_TYPES:
        logger.warning(
            "%s has unsupported roll type %r, sanitizing to 'roll'", item.name, roll_type,
        )
        return RollType.ROLL.value
    return roll_type


def _effect_container(item: ItemData) -> ActiveEffectData:
    return ActiveEffectData(name=item.name, img=item.img)


# ===== EMBEDDED ITEM =====

async def set_embedded_item(card_doc: ActionCardDocument, item: ItemData) -> ActionCard:
    validate_for_embedding(item.type)

    data = item.copy_with_new_id()
    roll_type = sanitize_roll_type(data)
    roll = data.roll or RollConfig()
    data.roll = roll.model_copy(update={
        "type": roll_type,
        "requires_target": roll_type != RollType.NONE.value,
    })

    if data.type == ItemKind.GEAR and not data.effects:
        data.effects = [_effect_container(data)]

    card = await card_doc.update({SLOT_ITEM: data.model_dump()})
    logger.info("Embedded %s %s in action card %s", data.type.value, data.name, card.name)
    return card


async def clear_embedded_item(card_doc: ActionCardDocument) -> ActionCard:
    card = await card_doc.update({SLOT_ITEM: None})
    logger.info("Cleared embedded item from action card %s", card.name)
    return card


def get_embedded_item(card_doc: ActionCardDocument, execution_context: bool = False) -> EmbeddedItemProxy | None:
    item = card_doc.card.embedded_item
    if item is None:
        return None
    return EmbeddedItemProxy(card_doc, item.model_copy(deep=True), SLOT_ITEM, execution_context)


# ===== EFFECTS =====

async def add_embedded_effect(card_doc: ActionCardDocument, item: ItemData) -> ActionCard:
    validate_for_effect(item.type)

    data = item.copy_with_new_id()
    if data.type == ItemKind.GEAR and data.roll is not None:
        data.roll = data.roll.model_copy(update={"type": sanitize_roll_type(data)})
    if not data.effects:
        data.effects = [_effect_container(data)]

    effects = [e.model_dump() for e in card_doc.card.embedded_status_effects]
    effects.append(data.model_dump())

    card = await card_doc.update({SLOT_EFFECTS: effects})
    logger.info("Added %s effect %s to action card %s", data.type.value, data.name, card.name)
    return card


async def remove_embedded_effect(card_doc: ActionCardDocument, effect_id: str) -> ActionCard:
    effects = card_doc.card.embedded_status_effects
    remaining = [e.model_dump() for e in effects if e.id != effect_id]
    if len(remaining) == len(effects):
        return card_doc.card
    return await card_doc.update({SLOT_EFFECTS: remaining})


def get_embedded_effects(card_doc: ActionCardDocument, execution_context: bool = False) -> List[EmbeddedItemProxy]:
    return [
        EmbeddedItemProxy(card_doc, effect.model_copy(deep=True), SLOT_EFFECTS, execution_context)
        for effect in card_doc.card.embedded_status_effects
    ]


# ===== TRANSFORMATIONS =====

async def add_embedded_transformation(card_doc: ActionCardDocument, item: ItemData) -> ActionCard:
    if item.type != ItemKind.TRANSFORMATION:
        raise UnsupportedItemTypeError(f"Expected a transformation, got {item.type.value}")

    data = item.copy_with_new_id()
    transformations = [t.model_dump() for t in card_doc.card.embedded_transformations]
    transformations.append(data.model_dump())

    card = await card_doc.update({SLOT_TRANSFORMATIONS: transformations})
    logger.info("Added transformation %s to action card %s", data.name, card.name)
    return card


async def remove_embedded_transformation(card_doc: ActionCardDocument, transformation_id: str) -> ActionCard:
    transformations = card_doc.card.embedded_transformations
    remaining = [t.model_dump() for t in transformations if t.id != transformation_id]
    if len(remaining) == len(transformations):
        return card_doc.card
    return await card_doc.update({SLOT_TRANSFORMATIONS: remaining})


def get_embedded_transformations(
    card_doc: ActionCardDocument, execution_context: bool = False
) -> List[EmbeddedItemProxy]:
    return [
        EmbeddedItemProxy(card_doc, t.model_copy(deep=True), SLOT_TRANSFORMATIONS, execution_context)
        for t in card_doc.card.embedded_transformations
    ]


# ===== DEFAULT DATA =====

def default_combat_power_data(card: ActionCard) -> ItemData:
    return ItemData(
        name=card.name,
        type=ItemKind.COMBAT_POWER,
        img=card.img,
        description=card.description,
        roll=RollConfig(),
    )


def default_status_data(card: ActionCard) -> ItemData:
    return ItemData(
        name=card.name,
        type=ItemKind.STATUS,
        img=card.img,
        description=card.description,
        effects=[ActiveEffectData(name=f"{card.name} Effect", img=card.img, tint=card.text_color)],
    )


def default_transformation_data(card: ActionCard) -> ItemData:
    return ItemData(
        name=card.name,
        type=ItemKind.TRANSFORMATION,
        img=card.img,
        description=card.description,
    )


async def create_new_power(card_doc: ActionCardDocument) -> ActionCard:
    return await set_embedded_item(card_doc, default_combat_power_data(card_doc.card))


async def create_new_status(card_doc: ActionCardDocument) -> ActionCard | None:
    if card_doc.card.embedded_status_effects:
        logger.warning("Create new status called while effects already exist")
        return None
    return await add_embedded_effect(card_doc, default_status_data(card_doc.card))


async def create_new_transformation(card_doc: ActionCardDocument) -> ActionCard:
    return await add_embedded_transformation(card_doc, default_transformation_data(card_doc.card))

