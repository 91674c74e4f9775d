import asyncio

from attack_chain.core.execution import ActionCardExecution
from attack_chain.core.intensification import intensify_value
from attack_chain.core.status_applicator import StatusEffectApplicator, filter_effects_by_selection
from attack_chain.host.dice import DiceRoll
from attack_chain.models import FLAG_SCOPE, ItemData, ItemKind
from attack_chain.scenarios import create_skirmish

HIT = DiceRoll(formula="15", total=15)


def run(skirmish, roll=HIT):
    execution = ActionCardExecution(skirmish.card_doc(), skirmish.host)
    return asyncio.run(execution.execute_with_roll_result(skirmish.hero, roll))


def statuses(actor, name="Burning"):
    return [i for i in actor.items if i.type == ItemKind.STATUS and i.name == name]


def test_intensify_value():
    assert intensify_value(2) == 3
    assert intensify_value(-2) == -3
    assert intensify_value(0) == 0
    assert intensify_value("1.5") == 2.5
    assert intensify_value("fast") == 0


def test_selection_filter():
    effects = [ItemData(name="A", type=ItemKind.STATUS), ItemData(name="B", type=ItemKind.STATUS)]
    assert filter_effects_by_selection(effects, None) == effects
    assert filter_effects_by_selection(effects, []) == []
    assert filter_effects_by_selection(effects, [effects[1].id]) == [effects[1]]


def test_prepared_effect_is_flagged_copy():
    gear = ItemData(name="Net", type=ItemKind.GEAR, quantity=5)
    prepared = StatusEffectApplicator.prepare_effect(gear)

    assert prepared.id != gear.id
    assert prepared.flags[FLAG_SCOPE]["isEffect"]
    assert prepared.equipped and prepared.quantity == 1
    assert gear.flags == {}


def test_status_applied_once_per_target_by_default():
    skirmish = create_skirmish()
    card = skirmish.card
    card.repetitions = "3"
    card.fail_on_first_miss = False
    card.status_per_success = True

    summary = run(skirmish)

    assert len(summary.status_results) == 2
    for goblin in skirmish.goblins:
        burning = statuses(goblin)
        assert len(burning) == 1
        assert burning[0].data.effects[0].changes[0].value == -1
        assert burning[0].data.flags[FLAG_SCOPE]["isEffect"]


def test_unlimited_status_intensifies_instead_of_stacking():
    skirmish = create_skirmish()
    card = skirmish.card
    card.repetitions = "3"
    card.fail_on_first_miss = False
    card.status_per_success = True
    card.status_application_limit = 0

    summary = run(skirmish)

    assert len(summary.status_results) == 6
    assert [r.intensified for r in summary.status_results if r.target is skirmish.goblins[0]] == [False, True, True]
    for goblin in skirmish.goblins:
        burning = statuses(goblin)
        assert len(burning) == 1
        assert burning[0].data.effects[0].changes[0].value == -3


def test_status_needs_its_condition():
    skirmish = create_skirmish()
    for goblin in skirmish.goblins:
        goblin.system["abilities"]["phys"]["ac"]["total"] = 20

    summary = run(skirmish)

    # One success is enough for damage but the status wants two
    assert len(summary.damage_results) == 2
    assert summary.status_results == []


def gear_card(skirmish, cost=1):
    card = skirmish.card
    card.embedded_transformations = []
    card.attempt_inventory_reduction = True
    card.embedded_status_effects = [
        ItemData(name="Healing Draught", type=ItemKind.GEAR, cost=cost, quantity=1).copy_with_new_id()
    ]
    return card


def test_gear_effect_comes_out_of_inventory():
    skirmish = create_skirmish()
    gear_card(skirmish)

    summary = run(skirmish)
    stock = next(i for i in skirmish.hero.items if i.name == "Healing Draught")

    assert all(r.applied for r in summary.status_results)
    assert stock.data.quantity == 1
    for goblin in skirmish.goblins:
        handed = [i for i in goblin.items if i.name == "Healing Draught"]
        assert len(handed) == 1
        assert handed[0].data.equipped and handed[0].data.quantity == 1


def test_gear_effect_warns_when_short():
    skirmish = create_skirmish()
    gear_card(skirmish, cost=2)

    summary = run(skirmish)

    # 3 in stock: the first goblin takes 2, the second finds 1
    assert [r.applied for r in summary.status_results] == [True, False]
    assert summary.status_results[1].warning
    assert skirmish.notifier.of_level("warn")
