import asyncio

from attack_chain.config.settings import Settings
from attack_chain.core import initialize_action_card
from attack_chain.host.memory import MemoryChatMessage
from attack_chain.models import ActionCardMode, SubmissionForm
from attack_chain.scenarios import create_skirmish


def submit(submission, form=None, open_first=True):
    async def flow():
        if open_first:
            await submission.open()
        return await submission.submit(form or SubmissionForm())
    return asyncio.run(flow())


def test_submit_rolls_and_executes():
    skirmish = create_skirmish()
    submission = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)

    summary = submit(submission)

    assert summary.success
    assert summary.base_roll.total == 15
    assert summary.embedded_item_roll_message == skirmish.messages.posted[0].id
    assert all(g.system["resolve"]["value"] == 9 for g in skirmish.goblins)
    # Paid once, by the bypass that produced the roll
    assert skirmish.hero.system["power"]["value"] == 5
    assert "Attack chain executed." in skirmish.notifier.of_level("info")


def test_open_locks_current_selection():
    skirmish = create_skirmish()
    submission = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)

    locked = asyncio.run(submission.open())
    skirmish.selection.targets = []

    assert [t.actor_name for t in locked] == ["Goblin Cutter", "Goblin Sneak"]
    summary = submit(submission, open_first=False)
    assert len(summary.target_results) == 2


def test_self_target_locks_own_token():
    skirmish = create_skirmish()
    skirmish.card.self_target = True
    submission = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)

    locked = asyncio.run(submission.open())

    assert len(locked) == 1
    assert locked[0].actor_id == skirmish.hero.id


def test_some_deleted_targets_are_reported_and_skipped():
    skirmish = create_skirmish()
    submission = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)
    asyncio.run(submission.open())
    skirmish.world.delete_actor(skirmish.goblins[1].id)

    summary = submit(submission, open_first=False)

    assert summary.success
    assert [h.target for h in summary.target_results] == [skirmish.goblins[0]]
    assert any("1 target(s)" in m and "Goblin Sneak" in m for m in skirmish.notifier.of_level("info"))


def test_all_deleted_targets_stop_submission():
    skirmish = create_skirmish()
    submission = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)
    asyncio.run(submission.open())
    for goblin in skirmish.goblins:
        skirmish.world.delete_actor(goblin.id)

    assert submit(submission, open_first=False) is None
    assert skirmish.notifier.of_level("warn")


def test_unowned_targets_go_to_the_gm():
    skirmish = create_skirmish()
    for goblin in skirmish.goblins:
        goblin.is_owner = False
    submission = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)

    form = SubmissionForm(transformation_selections={skirmish.goblins[0].id: skirmish.card.embedded_transformations[0].id})
    assert submit(submission, form) is None

    assert len(skirmish.approvals.requests) == 1
    request = skirmish.approvals.requests[0]
    assert request.actor_id == skirmish.hero.id
    assert request.target_ids == [g.id for g in skirmish.goblins]
    assert request.roll_result.total == 15
    assert len(request.locked_targets) == 2
    assert "Approval request sent to the GM." in skirmish.notifier.of_level("info")
    assert all(g.system["resolve"]["value"] == 12 for g in skirmish.goblins)

    summary = asyncio.run(submission.approve(request))

    assert summary.success
    assert all(g.system["resolve"]["value"] == 9 for g in skirmish.goblins)
    assert skirmish.goblins[0].get_flag("activeTransformationName") == "Ash Form"
    assert skirmish.hero.system["power"]["value"] == 5


def test_denied_request_does_nothing():
    skirmish = create_skirmish()
    for goblin in skirmish.goblins:
        goblin.is_owner = False
    submission = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)
    submit(submission)

    assert asyncio.run(submission.approve(skirmish.approvals.requests[0], approved=False)) is None
    assert all(g.system["resolve"]["value"] == 12 for g in skirmish.goblins)


def test_validation_failures():
    skirmish = create_skirmish()
    no_actor = initialize_action_card(skirmish.card, None, skirmish.host)
    assert submit(no_actor) is None

    skirmish = create_skirmish()
    skirmish.card.embedded_item = None
    no_item = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)
    assert submit(no_item) is None
    assert skirmish.messages.posted == []

    skirmish = create_skirmish()
    skirmish.hero.system["power"]["value"] = 0
    broke = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)
    assert submit(broke) is None
    assert any("Not enough power" in m for m in skirmish.notifier.of_level("warn"))


def test_saved_damage_needs_no_embedded_item():
    skirmish = create_skirmish()
    card = skirmish.card
    card.embedded_item = None
    card.mode = ActionCardMode.SAVED_DAMAGE
    submission = initialize_action_card(card, skirmish.hero, skirmish.host)
    asyncio.run(submission.open())

    problems = asyncio.run(submission.check_eligibility())

    assert not problems.embedded_item
    assert not problems.has_problems


def test_self_target_needs_a_token():
    skirmish = create_skirmish()
    skirmish.card.self_target = True
    for token in list(skirmish.hero.tokens):
        skirmish.scene.remove_token(token.id)
    submission = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)

    problems = asyncio.run(submission.check_eligibility())

    assert problems.targeting
    assert problems.messages == ["Mira has no token to target."]


def test_status_choice_enforced():
    skirmish = create_skirmish()
    card = skirmish.card
    card.enforce_status_choice = True
    card.embedded_status_effects = card.embedded_status_effects + [
        card.embedded_status_effects[0].copy_with_new_id().model_copy(update={"name": "Smouldering"})
    ]
    submission = initialize_action_card(card, skirmish.hero, skirmish.host)

    problems = asyncio.run(submission.check_eligibility(SubmissionForm()))
    assert problems.status_choice and problems.status_choice_count == 2

    chosen = SubmissionForm(selected_effect_ids=[card.embedded_status_effects[1].id])
    summary = submit(submission, chosen)

    assert summary.success
    names = {r.effect.name for r in summary.status_results}
    assert names == {"Smouldering"}


def test_capture_timeout_degrades_to_no_roll():
    skirmish = create_skirmish(settings=Settings(roll_capture_timeout=0.01, disable_delays=True))

    async def silent_post(item, actor):
        # Posted somewhere the capture never hears about
        return MemoryChatMessage(speaker={"actor": actor.id})

    skirmish.messages.post_item_message = silent_post
    submission = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)

    summary = submit(submission)

    assert summary.success
    assert summary.base_roll is None
    assert not any(h.one_hit for h in summary.target_results)
    assert all(g.system["resolve"]["value"] == 12 for g in skirmish.goblins)


def test_execution_error_surfaces_generic_notification():
    skirmish = create_skirmish()
    submission = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)

    async def broken(*args, **kwargs):
        raise RuntimeError("sheet exploded")

    submission.execution.execute_with_roll_result = broken

    assert submit(submission) is None
    assert any("execution failed" in m for m in skirmish.notifier.of_level("error"))


def test_saved_damage_submission_reports_count():
    skirmish = create_skirmish()
    skirmish.card.mode = ActionCardMode.SAVED_DAMAGE
    skirmish.card.embedded_item = None
    submission = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)

    summary = submit(submission)

    assert summary.success
    assert skirmish.messages.posted == []
    assert "Saved damage applied to 2 target(s)" in skirmish.notifier.of_level("info")
