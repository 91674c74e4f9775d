import asyncio

from attack_chain.config.settings import Settings
from attack_chain.core.execution import ActionCardExecution
from attack_chain.core.repetition_handler import RepetitionHandler
from attack_chain.host.dice import DiceRoll
from attack_chain.host.interfaces import CREATE_CHAT_MESSAGE
from attack_chain.host.memory import MemoryNotifier, MemoryUser
from attack_chain.models import (
    ActionCardMode,
    AttackChainResult,
    ItemData,
    ItemKind,
    RollConfig,
    RollType,
    SavedDamageConfig,
    TargetHitResult,
)
from attack_chain.scenarios import create_skirmish

HIT = DiceRoll(formula="15", total=15)


def run(skirmish, roll=HIT, options=None):
    execution = ActionCardExecution(skirmish.card_doc(), skirmish.host)
    return asyncio.run(execution.execute_with_roll_result(skirmish.hero, roll, options))


def plain_volley(skirmish, repetitions: str, **config):
    """The sample card with damage only, repeated."""
    card = skirmish.card
    card.embedded_status_effects = []
    card.embedded_transformations = []
    card.repetitions = repetitions
    for key, value in config.items():
        setattr(card, key, value)
    return card


# ===== COUNTS =====

def test_repetition_count_from_formula():
    skirmish = create_skirmish()
    handler = RepetitionHandler(skirmish.dice, skirmish.notifier, skirmish.user)

    assert asyncio.run(handler.calculate_repetition_count("3", skirmish.hero)) == 3
    assert asyncio.run(handler.calculate_repetition_count("@abilities.wits.total", skirmish.hero)) == 3
    assert asyncio.run(handler.calculate_repetition_count(None, skirmish.hero)) == 1


def test_non_positive_count_runs_once_with_warning():
    skirmish = create_skirmish()
    handler = RepetitionHandler(skirmish.dice, skirmish.notifier, skirmish.user)

    assert asyncio.run(handler.calculate_repetition_count("0", skirmish.hero)) == 1
    assert asyncio.run(handler.calculate_repetition_count("2 - 5", skirmish.hero)) == 1
    assert len(skirmish.notifier.of_level("warn")) == 2


def test_system_limit_caps_count():
    skirmish = create_skirmish()
    capped = RepetitionHandler(skirmish.dice, skirmish.notifier, skirmish.user, Settings(execution_limit=2))
    uncapped = RepetitionHandler(skirmish.dice, skirmish.notifier, skirmish.user, Settings(execution_limit=0))

    assert capped.apply_system_limit(5, "Volley") == 2
    assert capped.apply_system_limit(1, "Volley") == 1
    assert uncapped.apply_system_limit(50, "Volley") == 50


def test_create_state_copies_selections():
    skirmish = create_skirmish()
    selections = {"goblin": "ash"}
    state = RepetitionHandler.create_state(skirmish.card, selections, ["burn"], 4)
    selections["other"] = "x"

    assert state.transformation_selections == {"goblin": "ash"}
    assert state.selected_effect_ids == ["burn"]
    assert state.total_repetitions == 4
    assert not state.is_final_repetition
    state.current_repetition = 3
    assert state.is_final_repetition


def test_iteration_success_needs_a_satisfied_condition():
    skirmish = create_skirmish()
    card = plain_volley(skirmish, "1")
    goblin = skirmish.goblins[0]

    def result(one_hit):
        hit = TargetHitResult(target=goblin, first_hit=one_hit, second_hit=False, both_hit=False, one_hit=one_hit)
        return AttackChainResult(success=True, base_roll=HIT, target_results=[hit])

    assert RepetitionHandler.check_iteration_success(result(True), card)
    assert not RepetitionHandler.check_iteration_success(result(False), card)
    assert not RepetitionHandler.check_iteration_success(AttackChainResult(success=False, reason="noTargets"), card)

    # A hit with nothing to deal is not a success
    card.attack_chain.damage_formula = "  "
    assert not RepetitionHandler.check_iteration_success(result(True), card)


# ===== LOOP =====

def test_damage_repeats_only_with_damage_application():
    skirmish = create_skirmish()
    plain_volley(skirmish, "3", fail_on_first_miss=False)
    summary = run(skirmish)

    assert summary.completed_repetitions == 3
    assert len(summary.damage_results) == 2
    assert all(g.system["resolve"]["value"] == 9 for g in skirmish.goblins)

    skirmish = create_skirmish()
    plain_volley(skirmish, "3", fail_on_first_miss=False, damage_application=True)
    summary = run(skirmish)

    assert len(summary.damage_results) == 6
    assert all(g.system["resolve"]["value"] == 3 for g in skirmish.goblins)
    assert [r.repetition_index for r in summary.results] == [0, 1, 2]


def test_first_miss_stops_the_loop():
    skirmish = create_skirmish()
    plain_volley(skirmish, "3", fail_on_first_miss=True)
    for goblin in skirmish.goblins:
        goblin.system["abilities"]["acro"]["ac"]["total"] = 30
        goblin.system["abilities"]["phys"]["ac"]["total"] = 30

    summary = run(skirmish)

    assert summary.completed_repetitions == 1
    assert summary.repetition_count == 3
    assert summary.stop_reason == "missed"


def test_insufficient_power_halts_with_partial_results():
    skirmish = create_skirmish()
    plain_volley(skirmish, "5", fail_on_first_miss=False, cost_on_repetition=True)
    skirmish.hero.system["power"]["value"] = 2

    summary = run(skirmish)

    assert not summary.success
    assert summary.reason == "insufficientResources"
    assert summary.completed_repetitions == 3
    assert summary.resource_failure.reason == "insufficientPower"
    assert skirmish.hero.system["power"]["value"] == 0
    assert any("repetition 4 of 5" in m for m in skirmish.notifier.of_level("warn"))


def test_gear_running_out_stops_early():
    skirmish = create_skirmish()
    plain_volley(skirmish, "5", fail_on_first_miss=False, cost_on_repetition=True)
    skirmish.card.embedded_item = ItemData(
        name="Healing Draught", type=ItemKind.GEAR, cost=1, roll=RollConfig(type=RollType.NONE.value),
    )

    summary = run(skirmish, roll=None)
    draught = next(i for i in skirmish.hero.items if i.name == "Healing Draught")

    assert summary.success
    assert summary.stop_reason == "resourceDepleted"
    assert summary.completed_repetitions == 4
    assert draught.data.quantity == 0


def test_repeat_to_hit_rolls_again():
    skirmish = create_skirmish()
    plain_volley(skirmish, "2", fail_on_first_miss=False, repeat_to_hit=True)

    summary = run(skirmish)
    fresh = summary.results[1].base_roll

    assert summary.results[0].base_roll is HIT
    assert fresh is not HIT
    assert fresh.total == 15
    assert fresh.message_id == skirmish.messages.posted[0].id
    assert skirmish.events.listener_count(CREATE_CHAT_MESSAGE) == 0
    # cost_on_repetition is off, so the re-roll is free
    assert skirmish.hero.system["power"]["value"] == 6


def test_advance_initiative_moves_combat_on():
    skirmish = create_skirmish()
    plain_volley(skirmish, "1", advance_initiative=True)
    run(skirmish)
    assert skirmish.combat.turn == 1


def test_saved_damage_skips_later_repetitions():
    skirmish = create_skirmish()
    card = plain_volley(skirmish, "3")
    card.mode = ActionCardMode.SAVED_DAMAGE
    card.embedded_item = None
    card.saved_damage = SavedDamageConfig(formula="2")

    summary = run(skirmish, roll=None)

    assert summary.completed_repetitions == 3
    assert [r.skipped for r in summary.results] == [False, True, True]
    assert all(len(g.damage_log) == 1 for g in skirmish.goblins)


# ===== PACING =====

def test_wait_for_delay(monkeypatch):
    slept = []

    async def fake_sleep(seconds):
        slept.append(seconds)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    settings = Settings(execution_delay_ms=250)
    notifier = MemoryNotifier()

    gm = RepetitionHandler(None, notifier, MemoryUser(is_gm=True), settings)
    player = RepetitionHandler(None, notifier, MemoryUser(is_gm=False), settings)

    asyncio.run(gm.wait_for_delay(0.5))
    asyncio.run(gm.wait_for_delay())
    asyncio.run(player.wait_for_delay(0.5))

    assert slept == [0.5, 0.25]


def test_no_delay_after_final_repetition(monkeypatch):
    slept = []

    async def fake_sleep(seconds):
        slept.append(seconds)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    skirmish = create_skirmish(settings=Settings(execution_delay_ms=100))
    plain_volley(skirmish, "3", fail_on_first_miss=False)

    run(skirmish)

    # One pause after each roll lands, one after the first damage, and one
    # between repetitions: three rolls, one damage, two gaps
    assert slept == [0.1] * 6


def test_disable_delays_silences_every_pause(monkeypatch):
    slept = []

    async def fake_sleep(seconds):
        slept.append(seconds)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    skirmish = create_skirmish(settings=Settings(execution_delay_ms=500, disable_delays=True))
    card = skirmish.card
    card.repetitions = "3"
    card.fail_on_first_miss = False
    card.status_per_success = True
    card.status_application_limit = 0

    summary = run(skirmish)

    assert summary.completed_repetitions == 3
    assert summary.status_results and summary.transformation_results
    assert slept == []

    # An explicit timing override is silenced as well
    quiet = RepetitionHandler(None, MemoryNotifier(), MemoryUser(is_gm=True), skirmish.host.settings)
    asyncio.run(quiet.wait_for_delay(1.0))
    assert slept == []
