"""Error hierarchy for the signage engine.

Transient failures (worth retrying) are separated from failures that are
reported and absorbed. tenacity retry decorators key off TransientError:

    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    def _read_document(path: Path) -> dict:
        ...

Nothing in this hierarchy is fatal to the display process. Every component
catches what it can raise and falls back to a valid, re-renderable state.
"""


class SignageError(Exception):
    """Base exception for all signage errors."""

    pass


class TransientError(SignageError):
    """Temporary failure that may succeed on retry.

    Examples: a JSON document caught mid-write, a locked file.
    """

    pass


class StoreReadError(TransientError):
    """A store document could not be read or decoded.

    Inherits from TransientError so the store adapter retries it before
    surfacing a FeedError to the subscriber.
    """

    pass


class FeedError(SignageError):
    """A realtime subscription failed to deliver.

    The reconciler logs it and still advances the feed's load state,
    keeping whatever content it already had.
    """

    def __init__(self, feed: str, message: str) -> None:
        super().__init__(f"{feed}: {message}")
        self.feed = feed


class MalformedIntervalError(SignageError, ValueError):
    """A quiet-hours entry is missing a bound or is not HH:MM.

    The gate skips such entries; they never make the display quiet.
    """

    pass


class AudioUnavailableError(SignageError):
    """Audio output could not be created or a tone failed to play.

    Notifications degrade to the visual banner only.
    """

    pass
