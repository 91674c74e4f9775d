"""
Skirmish utility for generating a sample table to run action cards against.
"""
import random
from dataclasses import dataclass, field
from typing import List

from attack_chain.config.settings import Settings
from attack_chain.core.documents import ActionCardDocument
from attack_chain.host.dice import DiceRoller
from attack_chain.host.interfaces import Host
from attack_chain.host.memory import (
    MemoryActor,
    MemoryApprovals,
    MemoryCombat,
    MemoryEventBus,
    MemoryItem,
    MemoryMessagePoster,
    MemoryNotifier,
    MemoryScene,
    MemorySelection,
    MemoryToken,
    MemoryUser,
    MemoryWorld,
    default_system,
)
from attack_chain.models import (
    ActionCard,
    ActionCardMode,
    ActiveEffectData,
    AttackChainConfig,
    EffectChange,
    EffectCondition,
    ItemData,
    ItemKind,
    RollConfig,
    RollType,
    TransformationConfig,
)


@dataclass
class Skirmish:
    host: Host
    world: MemoryWorld
    scene: MemoryScene
    hero: MemoryActor
    goblins: List[MemoryActor]
    goblin_tokens: List[MemoryToken]
    card: ActionCard
    dice: DiceRoller
    events: MemoryEventBus
    notifier: MemoryNotifier
    messages: MemoryMessagePoster
    selection: MemorySelection
    combat: MemoryCombat
    approvals: MemoryApprovals
    user: MemoryUser = field(default_factory=MemoryUser)

    def card_doc(self) -> ActionCardDocument:
        return ActionCardDocument(self.card, owner=self.hero)


def create_skirmish(seed: int | None = 7, settings: Settings | None = None) -> Skirmish:
    """
    Creates a sample skirmish: Mira (a level 3 battlemage) vs 2 goblins
    on a ruined bridge, with a ready-made "Searing Volley" action card.

    The volley's embedded power uses a flat roll of 15, so hit results do
    not depend on dice; damage formulas are constants for the same reason.

    Returns:
        Skirmish: The host, actors, tokens and card, ready for execution
    """
    dice = DiceRoller(random.Random(seed))
    settings = settings or Settings(execution_delay_ms=0, disable_delays=True)

    # ==================== ITEMS ====================

    # The power the action card embeds (a copy of it)
    searing_bolt = ItemData(
        name="Searing Bolt",
        type=ItemKind.COMBAT_POWER,
        description="A lance of white fire",
        cost=1,
        roll=RollConfig(type=RollType.FLAT.value, bonus=15),
    )

    burning = ItemData(
        name="Burning",
        type=ItemKind.STATUS,
        description="Flames cling to the target",
        effects=[ActiveEffectData(
            name="Burning",
            changes=[EffectChange(key="system.abilities.phys.change", value=-1)],
        )],
    )

    ash_form = ItemData(
        name="Ash Form",
        type=ItemKind.TRANSFORMATION,
        description="The target crumbles into living cinders",
    )

    healing_draught = ItemData(
        name="Healing Draught",
        type=ItemKind.GEAR,
        description="A small vial of red liquid",
        cost=1,
        quantity=3,
        equipped=True,
    )

    # ==================== ACTORS ====================

    hero = MemoryActor("Mira", img="portraits/mira.webp", system=default_system(resolve=24, power=6), dice=dice)
    hero.system["abilities"]["wits"]["total"] = 3
    hero.items.append(MemoryItem(searing_bolt.model_copy(deep=True)))
    hero.items.append(MemoryItem(healing_draught.model_copy(deep=True)))

    goblins = [
        MemoryActor(f"Goblin {label}", img="tokens/goblin.webp", system=default_system(resolve=12, power=0), dice=dice)
        for label in ("Cutter", "Sneak")
    ]

    # ==================== SCENE ====================

    world = MemoryWorld()
    scene = world.add_scene(MemoryScene(name="Ruined Bridge"))

    world.add_actor(hero)
    scene.place(hero, is_linked=True)

    goblin_tokens = []
    for goblin in goblins:
        world.add_actor(goblin)
        goblin_tokens.append(scene.place(goblin, is_linked=False))

    # ==================== ACTION CARD ====================

    card = ActionCard(
        name="Searing Volley",
        description="Bolt after bolt of white fire",
        mode=ActionCardMode.ATTACK_CHAIN,
        embedded_item=searing_bolt.copy_with_new_id(),
        embedded_status_effects=[burning.copy_with_new_id()],
        embedded_transformations=[ash_form.copy_with_new_id()],
        attack_chain=AttackChainConfig(
            first_stat="acro",
            second_stat="phys",
            damage_condition=EffectCondition.ONE_SUCCESS.value,
            damage_formula="3",
            status_condition=EffectCondition.TWO_SUCCESSES.value,
        ),
        transformation_config=TransformationConfig(condition=EffectCondition.TWO_SUCCESSES.value),
    )

    # ==================== HOST ====================

    events = MemoryEventBus()
    notifier = MemoryNotifier()
    messages = MemoryMessagePoster(events, dice)
    selection = MemorySelection(goblin_tokens)
    combat = MemoryCombat()
    approvals = MemoryApprovals()
    user = MemoryUser()

    host = Host(
        world=world,
        selection=selection,
        events=events,
        notifier=notifier,
        user=user,
        dice=dice,
        messages=messages,
        combat=combat,
        approvals=approvals,
        settings=settings,
    )

    return Skirmish(
        host=host,
        world=world,
        scene=scene,
        hero=hero,
        goblins=goblins,
        goblin_tokens=goblin_tokens,
        card=card,
        dice=dice,
        events=events,
        notifier=notifier,
        messages=messages,
        selection=selection,
        combat=combat,
        approvals=approvals,
        user=user,
    )
