"""Stream resolution exceptions."""

from __future__ import annotations


class StreamError(Exception):
    """Base class for all stream resolution errors."""

    retryable: bool = False

    def user_message(self) -> str:
        return "stream currently unavailable"


class TransportError(StreamError):
    """A single transport attempt failed. Retried internally."""

    retryable = True


class TransportTimeout(TransportError):
    """A single attempt exceeded its deadline."""


class TransportFailure(TransportError):
    """Network-level failure (DNS, connection refused, throttling status)."""


class ExhaustedRetries(StreamError):
    """Every transport attempt for a request failed.

    Carries the URL, the number of attempts made and the last underlying
    cause.  ``channel_id`` is filled in by the caller that knows it.
    """

    retryable = True

    def __init__(
        self,
        url: str,
        attempts: int,
        cause: BaseException | None,
        *,
        channel_id: str | None = None,
    ) -> None:
        self.url = url
        self.attempts = attempts
        self.cause = cause
        self.channel_id = channel_id
        super().__init__(self._describe())

    def _describe(self) -> str:
        prefix = f"channel {self.channel_id}: " if self.channel_id else ""
        return (
            f"{prefix}request to {self.url} failed after {self.attempts} "
            f"attempt(s): {self.cause!r}"
        )

    def for_channel(self, channel_id: str) -> ExhaustedRetries:
        """Return a copy annotated with *channel_id*."""
        annotated = ExhaustedRetries(
            self.url, self.attempts, self.cause, channel_id=channel_id
        )
        annotated.__cause__ = self.__cause__
        return annotated

    def user_message(self) -> str:
        return (
            f"stream currently unavailable for channel {self.channel_id}; "
            "please try again shortly"
        )


class InvalidUpstreamResponse(StreamError):
    """HTTP succeeded at the transport level but the payload is unusable."""

    def __init__(
        self,
        channel_id: str,
        reason: str,
        *,
        status_code: int | None = None,
    ) -> None:
        self.channel_id = channel_id
        self.reason = reason
        self.status_code = status_code
        status = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(
            f"invalid upstream response for channel {channel_id}{status}: {reason}"
        )

    def user_message(self) -> str:
        return f"stream currently unavailable for channel {self.channel_id}"


class UpstreamUnavailable(StreamError):
    """A catalog listing could not be loaded."""

    retryable = True

    def __init__(self, resource: str, reason: str) -> None:
        self.resource = resource
        self.reason = reason
        super().__init__(f"failed to load {resource}: {reason}")

    def user_message(self) -> str:
        return f"{self.resource} currently unavailable"


class CacheCorruption(StreamError):
    """A persisted cache value failed to parse. Never surfaced to callers."""

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"corrupt cache entry {key!r}: {reason}")
