"""Cooperative cancellation token."""


class CancellationToken:
    """Flag a caller sets to ask a running execution to stop.

    The engine only looks at it between iterations; a phase that is
    already running is never interrupted.
    """

    def __init__(self) -> None:
        self._requested = False
        self.reason: str | None = None

    @property
    def is_cancellation_requested(self) -> bool:
        return self._requested

    def cancel(self, reason: str | None = None) -> None:
        if not self._requested:
            self._requested = True
            self.reason = reason
