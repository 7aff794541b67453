"""
Exception hierarchy for pai-server.

Voice errors also derive from ``RuntimeError`` so callers that only
guard against generic runtime failures keep working.
"""


class PAIServerError(Exception):
    """Base exception for all pai-server errors."""
    pass


# ---------------------------------------------------------------------------
# Voice
# ---------------------------------------------------------------------------


class VoiceError(PAIServerError, RuntimeError):
    """Base exception for the voice subsystem."""
    pass


class ProviderUnavailableError(VoiceError):
    """Raised when speaking through a provider that failed detection."""
    pass


class EmptyTextError(VoiceError, ValueError):
    """Raised when nothing is left to speak after sanitization."""
    pass


class VoiceDispatchError(VoiceError):
    """Raised when a backend reports failure (exit code, HTTP status, missing player)."""

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        status_code: int | None = None,
        detail: str = "",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.status_code = status_code
        self.detail = detail


class VoiceTimeoutError(VoiceDispatchError):
    """Raised when a bounded speak call does not finish in time."""
    pass


class NoVoiceProviderError(VoiceError):
    """Raised at the point of use when no provider is active."""

    def __init__(self, message: str = "No voice provider available") -> None:
        super().__init__(message)


class UnknownProviderError(VoiceError, LookupError):
    """Raised when switching to a provider that is unknown or unavailable."""
    pass


# ---------------------------------------------------------------------------
# Auth / core
# ---------------------------------------------------------------------------


class AuthError(PAIServerError):
    """Raised for malformed device registration or authorization data."""
    pass


class RegistryError(PAIServerError, LookupError):
    """Raised when a skill or agent cannot be resolved."""
    pass


class LLMClientError(PAIServerError):
    """Base exception for LLM client errors."""
    pass


class LLMConfigurationError(LLMClientError):
    """Raised when the LLM client is misconfigured."""
    pass


class LLMAPIError(LLMClientError):
    """Raised when the LLM API returns an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "PAIServerError",
    "VoiceError",
    "ProviderUnavailableError",
    "EmptyTextError",
    "VoiceDispatchError",
    "VoiceTimeoutError",
    "NoVoiceProviderError",
    "UnknownProviderError",
    "AuthError",
    "RegistryError",
    "LLMClientError",
    "LLMConfigurationError",
    "LLMAPIError",
]
