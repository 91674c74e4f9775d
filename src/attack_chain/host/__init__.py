"""
Host layer: the protocols the engine consumes and a headless implementation.

Provides:
- Protocols for actors, tokens, scenes, chat events, notifications and dice
- DiceRoller for formulas with dice, constants and @roll-data references
- In-memory documents and services for running without a tabletop
"""

from attack_chain.host.interfaces import (
    CREATE_CHAT_MESSAGE,
    Host,
    Roll,
    RollEvaluator,
    OwnedItem,
    Token,
    Actor,
    Scene,
    World,
    SelectionProvider,
    ChatMessage,
    EventBus,
    Notifier,
    User,
    CombatTracker,
    ApprovalChannel,
    MessagePoster,
)
from attack_chain.host.dice import DiceRoll, DiceRoller

__all__ = [
    # Protocols
    "CREATE_CHAT_MESSAGE",
    "Host",
    "Roll",
    "RollEvaluator",
    "OwnedItem",
    "Token",
    "Actor",
    "Scene",
    "World",
    "SelectionProvider",
    "ChatMessage",
    "EventBus",
    "Notifier",
    "User",
    "CombatTracker",
    "ApprovalChannel",
    "MessagePoster",
    # Dice
    "DiceRoll",
    "DiceRoller",
]
