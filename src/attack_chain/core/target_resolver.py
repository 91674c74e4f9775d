import logging
from typing import Any, List, Sequence

from attack_chain.host.interfaces import Actor, Notifier, SelectionProvider, Token, World
from attack_chain.models import (
    InvalidTarget,
    LockedTargetData,
    LockedTargetValidation,
    ResolvedTarget,
    ResolvedTargets,
    TargetResolution,
)

logger = logging.getLogger(__name__)


class TargetResolver:
    """
    Snapshots targets when an action starts ("locking") and re-resolves the
    snapshots at execution time. Deleted targets degrade to invalid entries;
    resolution itself never fails.
    """

    def __init__(self, world: World, selection: SelectionProvider, notifier: Notifier):
        self.world = world
        self.selection = selection
        self.notifier = notifier

    # ===== LIVE SELECTION =====

    async def resolve_targets(
        self, actor: Actor, self_target: bool = False, context_name: str = "action card"
    ) -> TargetResolution:
        """Current selection, or the actor's own token when self-targeting."""
        try:
            targets = await self.selection.get_target_array()

            if self_target:
                targets = self.create_self_target_array(actor)
                if not targets:
                    logger.warning("Self-targeting enabled but no token found for actor %s", actor.name)
                    self.notifier.warn(f"{actor.name} has no token to target.")
                    return TargetResolution(success=False, reason="noSelfToken")

            if not self.validate_targets(targets, context_name):
                return TargetResolution(success=False, reason="noTargets")

            return TargetResolution(success=True, targets=list(targets))

        except Exception as e:
            logger.error("Failed to resolve targets: %s", e)
            self.notifier.error(f"Failed to resolve targets: {e}")
            return TargetResolution(success=False, reason="error")

    async def get_target_array(self) -> List[Token]:
        try:
            return list(await self.selection.get_target_array())
        except Exception as e:
            logger.error("Failed to get target array: %s", e)
            return []

    @staticmethod
    def get_self_target_token(actor: Actor) -> Token | None:
        # Synthetic token first, then the first token on the canvas
        if actor.token is not None:
            return actor.token
        active = actor.get_active_tokens()
        return active[0] if active else None

    @classmethod
    def has_valid_self_token(cls, actor: Actor) -> bool:
        return cls.get_self_target_token(actor) is not None

    @classmethod
    def create_self_target_array(cls, actor: Actor) -> List[Token]:
        token = cls.get_self_target_token(actor)
        return [token] if token is not None else []

    def validate_targets(self, targets: Sequence[Any] | None, context_name: str = "action") -> bool:
        if not targets:
            logger.warning("No targets available for %s", context_name)
            self.notifier.warn("No targets selected.")
            return False
        return True

    # ===== LOCKING =====

    @staticmethod
    def lock_targets(tokens: Sequence[Token] | None) -> List[LockedTargetData]:
        """Pure snapshot of each token; tokens without an actor still lock."""
        locked = []
        for token in tokens or []:
            actor = token.actor
            locked.append(LockedTargetData(
                actor_id=actor.id if actor else None,
                token_id=token.id,
                scene_id=getattr(token, "scene_id", None),
                actor_name=actor.name if actor else "Unknown",
                token_name=token.name,
                img=token.img or (actor.img if actor else "") or "",
                is_linked=getattr(token, "is_linked", True),
                uuid=actor.uuid if actor else None,
            ))
        return locked

    def resolve_locked_targets(self, locked_targets: Sequence[LockedTargetData | None] | None) -> ResolvedTargets:
        if not locked_targets:
            return ResolvedTargets()

        valid: List[ResolvedTarget] = []
        invalid: List[InvalidTarget] = []

        for locked in locked_targets:
            validation = self.validate_locked_target(locked)
            if validation.found:
                valid.append(ResolvedTarget(
                    token=validation.token,
                    actor=validation.actor,
                    locked_target=locked,
                    reason=validation.reason,
                ))
            else:
                invalid.append(InvalidTarget(locked_target=locked, reason=validation.reason))

        if invalid:
            logger.info("%s of %s locked targets no longer resolve", len(invalid), len(locked_targets))

        return ResolvedTargets(valid=valid, invalid=invalid, all_valid=not invalid)

    def validate_locked_target(self, locked: LockedTargetData | None) -> LockedTargetValidation:
        """
        Resolves one snapshot, in order:
        1. token on its scene
        2. actor by UUID (survives token deletion)
        3. actor by id
        """
        if locked is None:
            return LockedTargetValidation(found=False, reason="noData")

        if locked.scene_id and locked.token_id:
            scene = self.world.get_scene(locked.scene_id)
            token = scene.get_token(locked.token_id) if scene else None
            if token is not None and token.actor is not None:
                return LockedTargetValidation(found=True, token=token, actor=token.actor)

        actor = None
        if locked.uuid:
            actor = self.world.from_uuid(locked.uuid)
        if actor is None and locked.actor_id:
            actor = self.world.get_actor(locked.actor_id)

        if actor is not None:
            active = actor.get_active_tokens()
            token = active[0] if active else None
            return LockedTargetValidation(
                found=True,
                token=token,
                actor=actor,
                reason=None if token else "actorOnly",
            )

        return LockedTargetValidation(found=False, reason="deleted")
