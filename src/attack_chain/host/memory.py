"""
Headless in-memory host.

Implements every protocol in ``attack_chain.host.interfaces`` with plain
Python objects so the engine can run (and be tested) without a tabletop.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Tuple

from attack_chain.core.documents import apply_patch
from attack_chain.host.dice import DiceRoll, DiceRoller
from attack_chain.host.interfaces import CREATE_CHAT_MESSAGE
from attack_chain.models import (
    ApprovalRequest,
    DamageType,
    ItemData,
    ItemKind,
    RollType,
    random_id,
)

logger = logging.getLogger(__name__)


def default_system(resolve: int = 20, power: int = 5) -> Dict[str, Any]:
    """Actor system data with every field the engine reads."""
    abilities = {
        stat: {"total": 0, "ac": {"total": 11}}
        for stat in ("acro", "phys", "fort", "will", "wits")
    }
    return {
        "resolve": {"value": resolve, "max": resolve},
        "power": {"value": power, "max": power},
        "abilities": abilities,
        "hiddenAbilities": {"vuln": {"total": 0}},
    }


# ============================================================
# DOCUMENTS
# ============================================================
class MemoryItem:
    """Item owned by an actor."""

    def __init__(self, data: ItemData):
        self.data = data

    @property
    def id(self) -> str:
        return self.data.id

    @property
    def name(self) -> str:
        return self.data.name

    @property
    def type(self) -> ItemKind:
        return self.data.type

    async def update(self, patch: Mapping[str, Any]) -> None:
        raw = self.data.model_dump()
        apply_patch(raw, patch)
        self.data = ItemData.model_validate(raw)


class MemoryToken:
    def __init__(
        self,
        actor: "MemoryActor | None",
        scene_id: str | None = None,
        id: str | None = None,
        name: str | None = None,
        img: str = "",
        is_linked: bool = True,
    ):
        self.id = id or random_id()
        self._actor = actor
        self.scene_id = scene_id
        self.name = name if name is not None else (actor.name if actor else None)
        self.img = img or (actor.img if actor else "")
        self.is_linked = is_linked

    @property
    def actor(self) -> "MemoryActor | None":
        return self._actor

    def __repr__(self) -> str:
        return f"MemoryToken({self.name!r}, scene={self.scene_id!r})"


class MemoryActor:
    def __init__(
        self,
        name: str,
        id: str | None = None,
        img: str = "",
        system: Dict[str, Any] | None = None,
        is_owner: bool = True,
        dice: DiceRoller | None = None,
    ):
        self.id = id or random_id()
        self.name = name
        self.img = img
        self.system = system if system is not None else default_system()
        self.is_owner = is_owner
        self.items: List[MemoryItem] = []
        self.flags: Dict[str, Any] = {}
        self.tokens: List[MemoryToken] = []
        self.damage_log: List[Tuple[str, int]] = []
        self.dice = dice or DiceRoller()

    @property
    def uuid(self) -> str:
        return f"Actor.{self.id}"

    @property
    def token(self) -> MemoryToken | None:
        # Only unlinked (synthetic) actors are bound to a single token
        for token in self.tokens:
            if not token.is_linked:
                return token
        return None

    def get_roll_data(self) -> Dict[str, Any]:
        return self.system

    def get_active_tokens(self) -> List[MemoryToken]:
        return [t for t in self.tokens if t.scene_id is not None]

    def get_flag(self, key: str) -> Any:
        return self.flags.get(key)

    def get_item(self, item_id: str) -> MemoryItem | None:
        return next((i for i in self.items if i.id == item_id), None)

    async def update(self, patch: Mapping[str, Any]) -> None:
        apply_patch(self.system, patch)
        logger.debug("Actor %s updated: %s", self.name, dict(patch))

    async def damage_resolve(
        self,
        formula: str,
        label: str = "Damage",
        description: str = "",
        type: str = DamageType.DAMAGE.value,
        img: str = "",
        bg_color: str = "",
        text_color: str = "",
    ) -> DiceRoll:
        if type not in (DamageType.DAMAGE.value, DamageType.HEAL.value):
            raise ValueError(f'Invalid damage type: {type}. Must be "damage" or "heal".')

        roll = await self.dice.evaluate(formula, self.get_roll_data())
        amount = abs(roll.total)
        resolve = self.system["resolve"]

        if type == DamageType.HEAL.value:
            resolve["value"] = min(resolve["max"], resolve["value"] + amount)
        else:
            resolve["value"] = max(0, resolve["value"] - amount)

        self.damage_log.append((formula, roll.total))
        logger.info("%s: %s %s (%s) -> resolve %s", self.name, label, amount, type, resolve["value"])
        return roll

    async def create_item(self, data: ItemData) -> MemoryItem:
        item = MemoryItem(data)
        self.items.append(item)
        return item

    async def delete_item(self, item_id: str) -> None:
        self.items = [i for i in self.items if i.id != item_id]

    async def apply_transformation(self, transformation: ItemData) -> None:
        item = await self.create_item(transformation)
        self.flags.update({
            "activeTransformation": item.id,
            "activeTransformationName": transformation.name,
            "activeTransformationCursed": transformation.cursed,
        })

    def __repr__(self) -> str:
        return f"MemoryActor({self.name!r})"


class MemoryScene:
    def __init__(self, id: str | None = None, name: str = ""):
        self.id = id or random_id()
        self.name = name
        self.tokens: Dict[str, MemoryToken] = {}

    def get_token(self, token_id: str) -> MemoryToken | None:
        return self.tokens.get(token_id)

    def place(self, actor: MemoryActor, is_linked: bool = True, name: str | None = None) -> MemoryToken:
        token = MemoryToken(actor, scene_id=self.id, is_linked=is_linked, name=name)
        self.tokens[token.id] = token
        actor.tokens.append(token)
        return token

    def remove_token(self, token_id: str) -> None:
        token = self.tokens.pop(token_id, None)
        if token and token.actor:
            token.actor.tokens = [t for t in token.actor.tokens if t.id != token_id]


class MemoryWorld:
    def __init__(self):
        self.actors: Dict[str, MemoryActor] = {}
        self.scenes: Dict[str, MemoryScene] = {}

    def add_actor(self, actor: MemoryActor) -> MemoryActor:
        self.actors[actor.id] = actor
        return actor

    def add_scene(self, scene: MemoryScene) -> MemoryScene:
        self.scenes[scene.id] = scene
        return scene

    def delete_actor(self, actor_id: str) -> None:
        actor = self.actors.pop(actor_id, None)
        if actor is None:
            return
        for scene in self.scenes.values():
            for token in list(scene.tokens.values()):
                if token.actor is actor:
                    scene.remove_token(token.id)

    def get_scene(self, scene_id: str) -> MemoryScene | None:
        return self.scenes.get(scene_id)

    def from_uuid(self, uuid: str) -> MemoryActor | None:
        if not uuid or not uuid.startswith("Actor."):
            return None
        return self.actors.get(uuid.removeprefix("Actor."))

    def get_actor(self, actor_id: str) -> MemoryActor | None:
        return self.actors.get(actor_id)


# ============================================================
# SERVICES
# ============================================================
class MemorySelection:
    def __init__(self, targets: List[MemoryToken] | None = None):
        self.targets = list(targets or [])

    async def get_target_array(self) -> List[MemoryToken]:
        return list(self.targets)


@dataclass
class MemoryChatMessage:
    speaker: Dict[str, Any]
    rolls: List[Any] = field(default_factory=list)
    content: str = ""
    id: str = field(default_factory=random_id)


class MemoryEventBus:
    def __init__(self):
        self._listeners: Dict[str, Dict[int, Callable[[Any], None]]] = {}
        self._next_handle = 0

    def on(self, event: str, callback: Callable[[Any], None]) -> int:
        self._next_handle += 1
        self._listeners.setdefault(event, {})[self._next_handle] = callback
        return self._next_handle

    def off(self, event: str, handle: int) -> None:
        self._listeners.get(event, {}).pop(handle, None)

    def emit(self, event: str, payload: Any) -> None:
        # Copy so listeners may unsubscribe while being called
        for callback in list(self._listeners.get(event, {}).values()):
            callback(payload)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, {}))


class MemoryNotifier:
    """Logs each notification and keeps it for inspection."""

    def __init__(self):
        self.messages: List[Tuple[str, str]] = []

    def info(self, message: str) -> None:
        logger.info("[notify] %s", message)
        self.messages.append(("info", message))

    def warn(self, message: str) -> None:
        logger.warning("[notify] %s", message)
        self.messages.append(("warn", message))

    def error(self, message: str) -> None:
        logger.error("[notify] %s", message)
        self.messages.append(("error", message))

    def of_level(self, level: str) -> List[str]:
        return [text for lvl, text in self.messages if lvl == level]


@dataclass
class MemoryUser:
    name: str = "Gamemaster"
    is_gm: bool = True
    id: str = field(default_factory=random_id)


class MemoryCombat:
    def __init__(self):
        self.turn = 0

    async def next_turn(self) -> None:
        self.turn += 1
        logger.info("Combat advanced to turn %s", self.turn)


class MemoryApprovals:
    def __init__(self):
        self.requests: List[ApprovalRequest] = []

    async def request_approval(self, request: ApprovalRequest) -> None:
        self.requests.append(request)
        logger.info("Approval requested by %s for card %s", request.player_name, request.action_card_id)


class MemoryMessagePoster:
    """
    Posts item chat cards. Rollable items roll d20 + ability + bonus; the
    message is emitted on the event bus like a host chat message.
    """

    def __init__(self, events: MemoryEventBus, dice: DiceRoller):
        self.events = events
        self.dice = dice
        self.posted: List[MemoryChatMessage] = []

    async def post_item_message(self, item: ItemData, actor: MemoryActor) -> MemoryChatMessage:
        rolls = []
        if item.roll and item.roll.type in (RollType.ROLL.value, RollType.FLAT.value):
            rolls.append(await self.dice.evaluate(self.roll_formula(item), actor.get_roll_data()))

        token = actor.token
        message = MemoryChatMessage(
            speaker={"actor": actor.id, "alias": actor.name, "token": token.id if token else None},
            rolls=rolls,
            content=item.description,
        )
        self.posted.append(message)
        self.events.emit(CREATE_CHAT_MESSAGE, message)
        return message

    @staticmethod
    def roll_formula(item: ItemData) -> str:
        roll = item.roll
        if roll.type == RollType.FLAT.value:
            formula = str(roll.bonus)
        elif roll.ability and roll.ability != "unaugmented":
            formula = f"1d20 + @abilities.{roll.ability}.total"
        else:
            formula = "1d20"
        if roll.type == RollType.ROLL.value and roll.bonus:
            formula += f" + {roll.bonus}" if roll.bonus > 0 else f" - {abs(roll.bonus)}"
        return formula
