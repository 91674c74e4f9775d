import asyncio
import logging
from typing import Any, Awaitable, Callable

from attack_chain.exceptions import RollCaptureTimeout
from attack_chain.host.interfaces import CREATE_CHAT_MESSAGE, Actor, ChatMessage, EventBus, Roll

logger = logging.getLogger(__name__)


def is_from_actor(message: ChatMessage, actor: Actor) -> bool:
    speaker = message.speaker or {}
    token = actor.token
    return (
        speaker.get("actor") == actor.id
        or speaker.get("alias") == actor.name
        or (token is not None and speaker.get("token") == token.id)
    )


class RollCapture:
    """
    One-shot listener for the next chat message spoken by ``actor``.

    Resolves with the message's first roll (tagged with ``message_id``), or
    ``None`` for a message without rolls. The listener is removed exactly
    once, whichever of message, timeout or cancel comes first.
    """

    def __init__(self, events: EventBus, actor: Actor, timeout: float, raise_on_timeout: bool = True):
        self.events = events
        self.actor = actor
        self.timeout = timeout
        self.raise_on_timeout = raise_on_timeout
        self.resolved = False
        self._future: asyncio.Future | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._handle: int | None = None

    def start(self) -> "RollCapture":
        loop = asyncio.get_running_loop()
        self._future = loop.create_future()
        self._handle = self.events.on(CREATE_CHAT_MESSAGE, self._on_message)
        self._timer = loop.call_later(self.timeout, self._on_timeout)
        return self

    async def wait(self) -> Roll | None:
        if self._future is None:
            raise RuntimeError("RollCapture.wait() called before start()")
        try:
            return await self._future
        except asyncio.CancelledError:
            if not self.resolved:
                self._settle()
                logger.debug("Roll capture for %s abandoned", self.actor.name)
            raise

    def cancel(self) -> None:
        if self.resolved:
            return
        self._settle()
        self._future.cancel()
        logger.debug("Roll capture for %s cancelled", self.actor.name)

    def _on_message(self, message: ChatMessage) -> None:
        if self.resolved or self._future.done() or not is_from_actor(message, self.actor):
            return

        roll = message.rolls[0] if message.rolls else None
        if roll is not None:
            roll.message_id = message.id

        self._settle()
        self._future.set_result(roll)

    def _on_timeout(self) -> None:
        if self.resolved or self._future.done():
            return
        self._settle()

        logger.warning("Timed out after %ss waiting for a roll from %s", self.timeout, self.actor.name)
        if self.raise_on_timeout:
            self._future.set_exception(RollCaptureTimeout(f"No roll from {self.actor.name} within {self.timeout}s"))
        else:
            self._future.set_result(None)

    def _settle(self) -> None:
        self.resolved = True
        self.events.off(CREATE_CHAT_MESSAGE, self._handle)
        if self._timer is not None:
            self._timer.cancel()


async def capture_roll(
    events: EventBus,
    actor: Actor,
    trigger: Callable[[], Awaitable[Any]],
    timeout: float,
    raise_on_timeout: bool = True,
) -> tuple[Any, Roll | None]:
    """
    Listens for the actor's next roll while ``trigger`` runs.

    Returns the trigger's result and the captured roll. If the trigger
    fails the listener is cancelled and the error propagates.
    """
    capture = RollCapture(events, actor, timeout, raise_on_timeout).start()
    try:
        result = await trigger()
    except BaseException:
        capture.cancel()
        raise
    return result, await capture.wait()
