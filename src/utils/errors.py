"""Custom exception hierarchy for Furniture Vectors.

All application exceptions inherit from :class:`FurnitureVectorsError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openrouter", "supabase") caused the failure, and an
HTTP ``status_code`` that the API middleware uses when converting the error
into a JSON response.

    FurnitureVectorsError  (base -- catch-all for any application error)
    +-- ConfigurationError              (missing credential / env var)      500
    +-- InputValidationError            (bad or missing request field)      400
    +-- UpstreamRequestError            (non-2xx from an external service)  502
    +-- MalformedUpstreamResponseError  (2xx but unusable body)             502
    +-- LocalEncodingError              (image normalization failed)        422
    |   +-- CanvasUnavailableError
    |   +-- EncodeFailureError
    +-- PipelineError                   (batch run misuse)                  409
    |   +-- InvalidTransitionError      (illegal batch item state change)
    +-- NotFoundError                   (unknown batch run or preview)      404

The batch controller catches every subclass at the item boundary and turns
it into that item's ``error`` status; the single-image routes let it reach
the middleware instead.
"""


class FurnitureVectorsError(Exception):
    """Base exception for all Furniture Vectors errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[supabase] Insert failed``.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    @property
    def user_message(self) -> str:
        """Text shown to the user: the API error ``detail`` or a batch item message."""
        return self._message

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Startup / request errors
# ---------------------------------------------------------------------------

class ConfigurationError(FurnitureVectorsError):
    """Raised when a required credential or endpoint is not configured.

    Routes check their configuration before making any external call, so
    this surfaces immediately as a 500 without touching the network.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InputValidationError(FurnitureVectorsError):
    """Raised when a request is missing a required field or carries bad data."""

    status_code = 400

    def __init__(
        self,
        message: str = "Invalid request payload",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service errors
# ---------------------------------------------------------------------------

class UpstreamRequestError(FurnitureVectorsError):
    """Raised when a description, embedding, storage or search call fails.

    ``upstream_status`` is the HTTP status returned by the provider (``None``
    when the request never got a response, e.g. a connection error) and
    ``detail`` is the raw response body, kept for the API error payload.
    """

    status_code = 502

    def __init__(
        self,
        message: str = "Upstream request failed",
        provider_name: str | None = None,
        upstream_status: int | None = None,
        detail: str = "",
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._upstream_status = upstream_status
        self._detail = detail

    @property
    def upstream_status(self) -> int | None:
        return self._upstream_status

    @property
    def detail(self) -> str:
        return self._detail

    @property
    def user_message(self) -> str:
        text = self.message
        if self._upstream_status is not None:
            text = f"{text} (HTTP {self._upstream_status})"
        if self._detail:
            text = f"{text}: {self._detail}"
        return text


class MalformedUpstreamResponseError(FurnitureVectorsError):
    """Raised when a provider answers 2xx but the body is not usable.

    Examples: the vision model returned prose instead of JSON, the JSON does
    not match the description schema, or the embeddings response has no
    vector in it.
    """

    status_code = 502

    def __init__(
        self,
        message: str = "Upstream response was malformed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Local image errors
# ---------------------------------------------------------------------------

class LocalEncodingError(FurnitureVectorsError):
    """Raised when the image normalizer cannot produce a preview."""

    status_code = 422

    def __init__(
        self,
        message: str = "Image normalization failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CanvasUnavailableError(LocalEncodingError):
    """Raised when the source image cannot be decoded onto a drawing surface."""

    def __init__(
        self,
        message: str = "Unable to obtain a drawing surface for the image.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EncodeFailureError(LocalEncodingError):
    """Raised when JPEG re-encoding yields no output."""

    def __init__(
        self,
        message: str = "Failed to create JPEG preview.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Batch orchestration errors
# ---------------------------------------------------------------------------

class PipelineError(FurnitureVectorsError):
    """Raised when a batch run is used incorrectly (unknown or already started)."""

    status_code = 409

    def __init__(
        self,
        message: str = "Batch pipeline operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidTransitionError(PipelineError):
    """Raised when a batch item would move backwards in its state machine."""

    def __init__(
        self,
        message: str = "Invalid batch item transition",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NotFoundError(FurnitureVectorsError):
    """Raised when a batch run or preview token is unknown (or already released)."""

    status_code = 404

    def __init__(
        self,
        message: str = "Resource not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
