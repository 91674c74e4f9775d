import asyncio

from attack_chain.core.repetition_handler import RepetitionHandler
from attack_chain.core.transformation_applicator import TransformationApplicator, TransformationContext
from attack_chain.host.dice import DiceRoll
from attack_chain.models import ActionCardMode, ItemData, ItemKind, TargetHitResult, TransformationConfig
from attack_chain.scenarios import create_skirmish

HIT = DiceRoll(formula="15", total=15)


def hits_for(actors):
    return [
        TargetHitResult(target=a, first_hit=True, second_hit=True, both_hit=True, one_hit=True)
        for a in actors
    ]


def context_for(skirmish, transformations, selections=None, **kwargs):
    state = RepetitionHandler.create_state(skirmish.card, selections)
    return TransformationContext(
        hit_results=hits_for(skirmish.goblins),
        roll_result=HIT,
        transformations=transformations,
        config=TransformationConfig(condition="twoSuccesses"),
        state=state,
        **kwargs,
    )


def process(context):
    return asyncio.run(TransformationApplicator().process_transformation_results(context))


def test_single_transformation_is_the_default():
    skirmish = create_skirmish()
    results = process(context_for(skirmish, skirmish.card.embedded_transformations))

    assert [r.reason for r in results] == ["success", "success"]
    for goblin in skirmish.goblins:
        assert goblin.get_flag("activeTransformationName") == "Ash Form"
        # The applied copy never shares an id with the card's transformation
        assert goblin.get_flag("activeTransformation") != skirmish.card.embedded_transformations[0].id


def test_choice_needed_between_several():
    skirmish = create_skirmish()
    ash = skirmish.card.embedded_transformations[0]
    stone = ItemData(name="Stone Skin", type=ItemKind.TRANSFORMATION)
    cutter, sneak = skirmish.goblins

    # Keyed by token id for one goblin, nothing for the other
    results = process(context_for(skirmish, [ash, stone], {cutter.token.id: stone.id}))

    assert [(r.target, r.transformation.name) for r in results] == [(cutter, "Stone Skin")]
    assert sneak.get_flag("activeTransformationName") is None


def test_selection_keyed_by_uuid():
    skirmish = create_skirmish()
    ash = skirmish.card.embedded_transformations[0]
    stone = ItemData(name="Stone Skin", type=ItemKind.TRANSFORMATION)
    sneak = skirmish.goblins[1]

    results = process(context_for(skirmish, [ash, stone], {sneak.uuid: ash.id}))
    assert [(r.target, r.transformation.name) for r in results] == [(sneak, "Ash Form")]


def test_duplicate_name_is_refused():
    skirmish = create_skirmish()
    goblin = skirmish.goblins[0]
    goblin.flags["activeTransformationName"] = "Ash Form"

    results = process(context_for(skirmish, skirmish.card.embedded_transformations))

    assert results[0].reason == "duplicate_name"
    assert not results[0].applied
    assert results[1].reason == "success"


def test_cursed_transformation_only_replaced_by_cursed():
    skirmish = create_skirmish()
    for goblin in skirmish.goblins:
        goblin.flags.update({"activeTransformationName": "Hex Form", "activeTransformationCursed": True})

    denied = process(context_for(skirmish, skirmish.card.embedded_transformations))
    assert {r.reason for r in denied} == {"cursed_override_denied"}

    curse = ItemData(name="Withering", type=ItemKind.TRANSFORMATION, cursed=True)
    replaced = process(context_for(skirmish, [curse]))
    assert {r.reason for r in replaced} == {"success"}


def test_applied_once_per_run():
    skirmish = create_skirmish()
    context = context_for(skirmish, skirmish.card.embedded_transformations)
    applicator = TransformationApplicator()

    first = asyncio.run(applicator.process_transformation_results(context))
    skirmish.goblins[0].flags.clear()
    second = asyncio.run(applicator.process_transformation_results(context))

    assert len(first) == 2
    assert second == []


def test_condition_gates_transformation():
    skirmish = create_skirmish()
    context = context_for(skirmish, skirmish.card.embedded_transformations)
    context.hit_results = [
        TargetHitResult(target=g, first_hit=True, second_hit=False, both_hit=False, one_hit=True)
        for g in skirmish.goblins
    ]
    assert process(context) == []


def test_never_in_saved_damage_mode():
    skirmish = create_skirmish()
    context = context_for(skirmish, skirmish.card.embedded_transformations, mode=ActionCardMode.SAVED_DAMAGE)
    assert process(context) == []
    assert all(g.get_flag("activeTransformationName") is None for g in skirmish.goblins)
