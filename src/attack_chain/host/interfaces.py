"""
Contracts the engine needs from the tabletop host.

The engine never touches the host's document database, canvas or chat
rendering directly; it only speaks through these protocols. An in-memory
implementation lives in ``attack_chain.host.memory``.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Protocol

from attack_chain.config.settings import Settings, settings as default_settings
from attack_chain.models import ApprovalRequest, ItemData

CREATE_CHAT_MESSAGE = "createChatMessage"


class Roll(Protocol):
    """An evaluated roll. ``message_id`` is attached when captured from chat."""
    formula: str
    total: int | float
    message_id: str | None


class RollEvaluator(Protocol):
    async def evaluate(self, formula: str, data: Mapping[str, Any] | None = None) -> Roll: ...


class OwnedItem(Protocol):
    """An item document embedded in an actor (inventory, statuses, powers)."""
    id: str
    data: ItemData

    async def update(self, patch: Mapping[str, Any]) -> None: ...


class Token(Protocol):
    id: str
    name: str | None
    img: str
    scene_id: str | None
    is_linked: bool

    @property
    def actor(self) -> "Actor | None": ...


class Actor(Protocol):
    id: str
    name: str
    uuid: str
    img: str
    is_owner: bool
    system: Mapping[str, Any]
    items: List[OwnedItem]

    @property
    def token(self) -> Token | None: ...

    def get_roll_data(self) -> Mapping[str, Any]: ...

    def get_active_tokens(self) -> List[Token]: ...

    def get_flag(self, key: str) -> Any: ...

    async def update(self, patch: Mapping[str, Any]) -> None: ...

    async def damage_resolve(
        self,
        formula: str,
        label: str = "",
        description: str = "",
        type: str = "damage",
        img: str = "",
        bg_color: str = "",
        text_color: str = "",
    ) -> Roll: ...

    async def create_item(self, data: ItemData) -> OwnedItem: ...

    async def apply_transformation(self, transformation: ItemData) -> None: ...


class Scene(Protocol):
    id: str

    def get_token(self, token_id: str) -> Token | None: ...


class World(Protocol):
    """Document lookups by scene, UUID and id."""

    def get_scene(self, scene_id: str) -> Scene | None: ...

    def from_uuid(self, uuid: str) -> Actor | None: ...

    def get_actor(self, actor_id: str) -> Actor | None: ...


class SelectionProvider(Protocol):
    async def get_target_array(self) -> List[Token]: ...


class ChatMessage(Protocol):
    id: str
    speaker: Mapping[str, Any]              # {"actor": id, "alias": name, "token": id}
    rolls: List[Roll]


class EventBus(Protocol):
    def on(self, event: str, callback: Callable[[Any], None]) -> int: ...

    def off(self, event: str, handle: int) -> None: ...


class Notifier(Protocol):
    """User-visible notification channel."""

    def info(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class User(Protocol):
    id: str
    name: str
    is_gm: bool


class CombatTracker(Protocol):
    async def next_turn(self) -> None: ...


class ApprovalChannel(Protocol):
    async def request_approval(self, request: ApprovalRequest) -> None: ...


class MessagePoster(Protocol):
    """Posts the chat card for an item used through a bypass."""

    async def post_item_message(self, item: ItemData, actor: Actor) -> ChatMessage | None: ...


@dataclass
class Host:
    """Everything the engine reaches outside itself, bundled for injection."""
    world: World
    selection: SelectionProvider
    events: EventBus
    notifier: Notifier
    user: User
    dice: RollEvaluator
    messages: MessagePoster
    combat: CombatTracker | None = None
    approvals: ApprovalChannel | None = None
    settings: Settings = field(default_factory=lambda: default_settings)
