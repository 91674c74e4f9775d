import logging
from typing import Any, Callable, Dict, List, Mapping

from attack_chain.models import ActionCard

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[ActionCard, Mapping[str, Any], bool], None]


def apply_patch(target: Any, patch: Mapping[str, Any]) -> None:
    """
    Applies a dotted-path partial update (e.g. {"system.power.value": 3})
    to nested dicts and/or objects, in place. Every key is a "set".
    """
    for path, value in patch.items():
        _set_path(target, path, value)


def _set_path(target: Any, path: str, value: Any) -> None:
    # 1. Resolve the parent of the final key, creating missing dict levels
    keys = path.split(".")
    parent = target

    for key in keys[:-1]:
        if isinstance(parent, dict):
            child = parent.get(key)
            if child is None:
                child = parent[key] = {}
        else:
            child = getattr(parent, key, None)

        if child is None:
            raise AttributeError(f"Path '{path}' broken at '{key}' on {target!r}")
        parent = child

    # 2. Set the value
    final_key = keys[-1]
    if isinstance(parent, dict):
        parent[final_key] = value
    else:
        setattr(parent, final_key, value)


class ActionCardDocument:
    """
    Persisted wrapper around an ActionCard.

    Updates go through ``update`` so every write is re-validated and
    observers (sheets, tests) see it together with the ``from_embedded_item``
    flag that tells them the write came from a nested editor.
    """

    def __init__(self, card: ActionCard, owner: Any = None, is_editable: bool = True):
        self.card = card
        self.owner = owner
        self.is_editable = is_editable
        self._observers: List[UpdateCallback] = []
        self.render_count = 0

    @property
    def id(self) -> str:
        return self.card.id

    @property
    def name(self) -> str:
        return self.card.name

    def on_update(self, callback: UpdateCallback) -> None:
        self._observers.append(callback)

    def render(self) -> None:
        """Asks the card's sheet to redraw."""
        self.render_count += 1
        logger.debug("Render requested for action card %s", self.card.name)

    async def update(self, patch: Mapping[str, Any], from_embedded_item: bool = False) -> ActionCard:
        data: Dict[str, Any] = self.card.model_dump()
        apply_patch(data, patch)

        try:
            self.card = ActionCard.model_validate(data)
        except Exception as e:
            logger.error("Rejected update to action card %s: %s", self.card.name, e)
            raise

        logger.debug(
            "Updated action card %s (%s keys, from_embedded_item=%s)",
            self.card.name, len(patch), from_embedded_item,
        )
        for callback in self._observers:
            callback(self.card, patch, from_embedded_item)
        return self.card
