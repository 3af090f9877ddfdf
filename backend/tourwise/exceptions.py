"""Error taxonomy for the tour search engine.

Provider and language-backend errors are recovered inside the engine and only
show up as degraded results. InvalidSearchSpecification is the one error that
reaches callers.
"""


class TourWiseError(Exception):
    """Base class for all engine errors."""


class ProviderError(TourWiseError):
    error_kind = "unavailable"

    def __init__(self, provider: str, message: str = ""):
        self.provider = provider
        super().__init__(f"{provider}: {message}" if message else provider)


class ProviderTimeout(ProviderError):
    error_kind = "timeout"


class ProviderUnavailable(ProviderError):
    error_kind = "unavailable"


class ProviderMalformedResponse(ProviderError):
    error_kind = "malformed_response"


class LanguageBackendError(TourWiseError):
    def __init__(self, backend: str, message: str = ""):
        self.backend = backend
        super().__init__(f"{backend}: {message}" if message else backend)


class LanguageBackendUnavailable(LanguageBackendError):
    pass


class LanguageBackendMalformedOutput(LanguageBackendError):
    pass


class LanguageBackendLowConfidence(LanguageBackendError):
    pass


class InvalidSearchSpecification(TourWiseError):
    """Caller supplied an unusable search request."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        self.errors = errors or []
        super().__init__(message)
