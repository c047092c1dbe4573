"""Single active playback across audio players."""
import logging
from typing import Optional, Protocol


logger = logging.getLogger(__name__)


class MediaHandle(Protocol):
    """Anything that can be stopped, e.g. an audio player."""

    def stop(self) -> None:
        ...


class ActiveMediaRegistry:
    """Holds at most one playing handle.

    ``request_play`` stops the current holder before granting playback to the
    requester.
    """

    def __init__(self):
        self._active: Optional[MediaHandle] = None

    @property
    def active(self) -> Optional[MediaHandle]:
        return self._active

    def request_play(self, handle: MediaHandle) -> bool:
        if self._active is handle:
            return True
        if self._active is not None:
            previous = self._active
            self._active = None
            previous.stop()
            logger.debug(f"Stopped {previous!r} in favour of {handle!r}")
        self._active = handle
        return True

    def release(self, handle: MediaHandle) -> None:
        """Called by a player when it pauses or finishes on its own."""
        if self._active is handle:
            self._active = None

    def stop_all(self) -> None:
        if self._active is not None:
            previous = self._active
            self._active = None
            previous.stop()
