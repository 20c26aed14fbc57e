"""
Single-slot audio playback.

At most one playback is active. Starting a new one stops the previous handle
first, and the slot is released on every exit path of the active playback.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

import structlog

logger = structlog.get_logger(__name__)

AudioSource = Union[str, bytes]


class PlaybackHandle(ABC):
    """A running playback."""

    @abstractmethod
    async def wait(self) -> None:
        """Return when playback ends naturally or is stopped."""
        pass

    @abstractmethod
    def stop(self) -> None:
        pass


class AudioPlayer(ABC):
    """Presentation-layer audio output."""

    @abstractmethod
    def start(self, source: AudioSource) -> PlaybackHandle:
        pass


class TaskPlaybackHandle(PlaybackHandle):
    """Wraps a background task, such as on-device speech, as a playback."""

    def __init__(self, task: asyncio.Task, on_stop: Optional[Callable[[], None]] = None):
        self.task = task
        self._on_stop = on_stop

    async def wait(self) -> None:
        await asyncio.wait({self.task})

    def stop(self) -> None:
        if self._on_stop is not None:
            self._on_stop()
        if not self.task.done():
            self.task.cancel()


class PlaybackSlot:
    """Holds the current playback handle."""

    def __init__(self) -> None:
        self._current: Optional[PlaybackHandle] = None

    @property
    def current(self) -> Optional[PlaybackHandle]:
        return self._current

    @property
    def is_playing(self) -> bool:
        return self._current is not None

    def stop(self) -> None:
        handle, self._current = self._current, None
        if handle is not None:
            handle.stop()
            logger.debug("playback_stopped")

    def claim(self, start: Callable[[], PlaybackHandle]) -> PlaybackHandle:
        """Stop the current playback, then start and hold a new one."""
        self.stop()
        handle = start()
        self._current = handle
        return handle

    def release(self, handle: PlaybackHandle) -> None:
        if self._current is handle:
            self._current = None

    async def play(self, start: Callable[[], PlaybackHandle]) -> None:
        """Claim the slot, wait for playback to finish, and release the slot."""
        handle = self.claim(start)
        try:
            await handle.wait()
        finally:
            self.release(handle)
