"""Progress channel between the pipeline and its caller.

The pipeline notifies its caller at most once per run: right after discovery,
with a partial report, before the writing stage starts. ProgressChannel makes
that contract explicit: it is a single-shot object passed into the run, it
remembers what it delivered, and a second emission is a programming error.

The callback may be a plain function or a coroutine function; either way it
has completed by the time ``emit`` returns.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Union

from models.progress import ProgressSnapshot

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressSnapshot], Union[None, Awaitable[None]]]


class ProgressChannel:
    """Single-shot progress notification.

    Example:
        >>> seen = []
        >>> channel = ProgressChannel(seen.append)
        >>> await channel.emit(snapshot)
        >>> channel.emitted
        True
    """

    def __init__(self, callback: ProgressCallback | None = None):
        """Initialize the channel.

        Args:
            callback: Receiver of the snapshot (sync or async), optional
        """
        self._callback = callback
        self._snapshot: ProgressSnapshot | None = None

    @property
    def emitted(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> ProgressSnapshot | None:
        """The delivered snapshot, or None if nothing was emitted."""
        return self._snapshot

    async def emit(self, snapshot: ProgressSnapshot) -> None:
        """Deliver the snapshot to the callback.

        Raises:
            RuntimeError: If the channel has already emitted
        """
        if self._snapshot is not None:
            raise RuntimeError("Progress channel already emitted for this run")
        self._snapshot = snapshot

        logger.debug("Progress emitted | stage=%s", snapshot.stage.value)
        if self._callback is None:
            return
        result: Any = self._callback(snapshot)
        if inspect.isawaitable(result):
            await result


def as_channel(progress: "ProgressChannel | ProgressCallback | None") -> ProgressChannel:
    """Wrap a bare callback (or nothing) into a fresh ProgressChannel."""
    if isinstance(progress, ProgressChannel):
        return progress
    return ProgressChannel(progress)
