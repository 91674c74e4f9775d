"""Entry point: runs the sample skirmish's action card and prints what happened."""

import asyncio

from attack_chain.config.settings import settings
from attack_chain.utils.logging import setup_logging
from attack_chain.core import initialize_action_card, ActionCardSubmission
from attack_chain.models import ExecutionSummary, SubmissionForm
from attack_chain.scenarios import create_skirmish


# ─────────────────────────────────────────────────────────────────────────────
# Report
# ─────────────────────────────────────────────────────────────────────────────
def print_summary(summary: ExecutionSummary | None) -> None:
    """Print a short per-target account of one execution."""
    if summary is None:
        print("The action card did not run (see log).")
        return

    print(f"\n{summary.mode}: {summary.completed_repetitions}/{summary.repetition_count} repetition(s)")
    if summary.stop_reason:
        print(f"  stopped early: {summary.stop_reason}")

    for hit in summary.target_results:
        print(f"  {hit.target.name}: first={hit.first_hit} second={hit.second_hit}")
    for damage in summary.damage_results:
        print(f"  {damage.target.name} takes {damage.roll.total}")
    for status in summary.status_results:
        state = "intensified" if status.intensified else ("applied" if status.applied else "not applied")
        print(f"  {status.effect.name} {state} on {status.target.name}")
    for transformation in summary.transformation_results:
        print(f"  {transformation.transformation.name} on {transformation.target.name}: {transformation.reason}")


async def run(submission: ActionCardSubmission) -> ExecutionSummary | None:
    await submission.open()
    return await submission.submit(SubmissionForm())


def main() -> None:
    """Main entry point."""
    # Setup logging
    logger = setup_logging(
        level=settings.log_level,
        log_file=settings.log_file,
        enable_color=settings.enable_color,
    )

    logger.info("Starting attack chain demo")
    logger.debug("Configuration: %s", settings)

    skirmish = create_skirmish(seed=None, settings=settings)
    submission = initialize_action_card(skirmish.card, skirmish.hero, skirmish.host)
    print(f"{skirmish.hero.name} uses {skirmish.card.name} on {', '.join(g.name for g in skirmish.goblins)}")

    print_summary(asyncio.run(run(submission)))

    for goblin in skirmish.goblins:
        print(f"{goblin.name}: resolve {goblin.system['resolve']['value']}")


if __name__ == "__main__":
    main()
