"""Single-slot supervision of invitation parsing."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ....core.error import BaseError
from ....core.profile import Profile

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class ParseSupersededError(BaseError):
    """A newer parse replaced this one before it could commit."""

    def __init__(self):
        """Initialize the error."""
        super().__init__(
            "Invitation parsing was superseded by a newer invitation",
            error_code="parse_superseded",
        )


class ParseSupervisor:
    """
    Run at most one "parse, then commit the identity" job at a time.

    Starting a parse cancels any parse still running; only the newest job
    may commit its result. A request to clear the committed result is
    ignored while a parse is running, so a preview cannot be wiped out from
    under the job that is about to replace it.
    """

    def __init__(self):
        """Initialize an empty supervisor."""
        self._generation = 0
        self._task: Optional[asyncio.Future] = None
        self._current: Any = None

    @classmethod
    def for_profile(cls, profile: Profile) -> "ParseSupervisor":
        """Return the supervisor bound to a profile, binding a new one if needed."""
        supervisor = profile.inject_or(ParseSupervisor)
        if supervisor is None:
            supervisor = ParseSupervisor()
            profile.context.injector.bind_instance(ParseSupervisor, supervisor)
        return supervisor

    @property
    def busy(self) -> bool:
        """Whether a parse is in flight."""
        return bool(self._task and not self._task.done())

    @property
    def current(self) -> Any:
        """The result most recently committed."""
        return self._current

    async def run(
        self,
        parse: Callable[[], Awaitable[T]],
        commit: Callable[[T], Awaitable[R]],
    ) -> R:
        """
        Parse, then commit the result unless a newer parse has started.

        Args:
            parse: Coroutine function doing the cancellable parsing work
            commit: Coroutine function persisting the parsed result

        Returns:
            The committed result

        Raises:
            ParseSupersededError: If a newer parse started first

        """
        self._generation += 1
        generation = self._generation
        if self.busy:
            LOGGER.info("Superseding invitation parse in progress")
            self._task.cancel()

        task = asyncio.ensure_future(parse())
        self._task = task
        try:
            parsed = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                raise ParseSupersededError()
            raise
        finally:
            if self._task is task:
                self._task = None

        if generation != self._generation:
            raise ParseSupersededError()
        result = await commit(parsed)
        # a newer parse may have started while this one was committing
        if generation == self._generation:
            self._current = result
        return result

    def clear(self) -> bool:
        """
        Drop the committed result.

        Returns:
            False if the request was ignored because a parse is running

        """
        if self.busy:
            LOGGER.info("Ignoring clear request while an invitation is being parsed")
            return False
        self._current = None
        return True
