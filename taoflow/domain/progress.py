"""Progress sink protocol."""

from typing import Protocol


class ProgressSink(Protocol):
    """Receives phase progress text. Must not block."""

    def progress(self, message: str) -> None:
        ...
