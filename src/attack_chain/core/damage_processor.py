import logging
from dataclasses import dataclass
from typing import Any, List, Sequence

from attack_chain.host.interfaces import Actor, Roll
from attack_chain.models import (
    AttackChainConfig,
    DamageResult,
    DamageType,
    EffectCondition,
    ResolvedTarget,
    TargetHitResult,
    DEFAULT_THRESHOLD,
)

logger = logging.getLogger(__name__)


@dataclass
class DamageContext:
    """Everything needed to issue one damage roll against a target."""
    formula: str
    damage_type: str = DamageType.DAMAGE.value
    condition: str = EffectCondition.NEVER.value
    threshold: int = DEFAULT_THRESHOLD
    label: str = "Damage"
    description: str = ""
    img: str = ""
    bg_color: str = ""
    text_color: str = ""


# ===== CONDITIONS =====

def should_apply_effect(
    condition: str,
    one_hit: bool,
    both_hit: bool,
    roll_total: float = 0,
    threshold: int = DEFAULT_THRESHOLD,
) -> bool:
    """
    Evaluates an effect condition for one target.

    ``rollValue`` compares the attack roll total, not a damage roll.
    Unknown conditions never apply.
    """
    match condition:
        case EffectCondition.NEVER.value:
            return False
        case EffectCondition.ONE_SUCCESS.value:
            return bool(one_hit)
        case EffectCondition.TWO_SUCCESSES.value:
            return bool(both_hit)
        case EffectCondition.ROLL_VALUE.value:
            return roll_total >= threshold
        case _:
            return False


def should_apply_damage(config: AttackChainConfig, one_hit: bool, both_hit: bool, roll_total: float) -> bool:
    if not is_valid_formula(config.damage_formula):
        return False
    return should_apply_effect(
        config.damage_condition,
        one_hit,
        both_hit,
        roll_total,
        config.damage_threshold or DEFAULT_THRESHOLD,
    )


# ===== VULNERABILITY =====

def get_vulnerability_total(target: Actor) -> int:
    data = target.get_roll_data() or {}
    try:
        return data["hiddenAbilities"]["vuln"]["total"] or 0
    except (KeyError, TypeError):
        return 0


def is_healing(damage_type: str) -> bool:
    return damage_type == DamageType.HEAL.value


def is_valid_formula(formula: Any) -> bool:
    return isinstance(formula, str) and bool(formula.strip())


def apply_vulnerability_modifier(formula: str, damage_type: str, target: Actor) -> str:
    """Adds the target's vulnerability to damage formulas. Healing is never modified."""
    vulnerability = get_vulnerability_total(target)
    if not is_healing(damage_type) and vulnerability > 0:
        return f"{formula} + {abs(vulnerability)}"
    return formula


# ===== APPLICATION =====

async def resolve_damage_for_target(target: Actor, context: DamageContext) -> Roll:
    formula = apply_vulnerability_modifier(context.formula, context.damage_type, target)
    return await target.damage_resolve(
        formula=formula,
        label=context.label,
        description=context.description,
        type=context.damage_type,
        img=context.img,
        bg_color=context.bg_color,
        text_color=context.text_color,
    )


async def process_damage_results(
    hit_results: Sequence[TargetHitResult],
    roll_result: Roll | None,
    context: DamageContext,
) -> List[DamageResult]:
    """
    Applies damage to every hit result whose condition passes.
    A target that fails to take damage is logged and skipped.
    """
    roll_total = roll_result.total if roll_result is not None else 0
    damage_results: List[DamageResult] = []

    for result in hit_results:
        applies = should_apply_effect(
            context.condition,
            result.one_hit,
            result.both_hit,
            roll_total,
            context.threshold or DEFAULT_THRESHOLD,
        )
        if not applies or not is_valid_formula(context.formula):
            continue

        try:
            roll = await resolve_damage_for_target(result.target, context)
        except Exception as e:
            logger.error("Failed to apply chain damage to %s: %s", getattr(result.target, "name", "?"), e)
            continue

        if roll is not None:
            damage_results.append(DamageResult(target=result.target, roll=roll))

    return damage_results


async def process_saved_damage(targets: Sequence[ResolvedTarget], context: DamageContext) -> List[DamageResult]:
    """Applies the saved formula to every target, no roll or condition involved."""
    damage_results: List[DamageResult] = []

    for target in targets:
        try:
            roll = await resolve_damage_for_target(target.actor, context)
        except Exception as e:
            logger.error("Failed to apply saved damage to %s: %s", getattr(target.actor, "name", "?"), e)
            continue

        if roll is not None:
            damage_results.append(DamageResult(target=target.actor, roll=roll))

    return damage_results
