"""Utility modules for Furniture Vectors.

- **errors** -- Exception hierarchy rooted at FurnitureVectorsError; each
  class carries the HTTP status the API answers with.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **image_normalizer** -- Pillow letterboxing of any image into the
  200x200 JPEG catalog preview.
- **preview_store** -- In-memory registry of transient preview handles.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    CanvasUnavailableError,
    ConfigurationError,
    EncodeFailureError,
    FurnitureVectorsError,
    InputValidationError,
    InvalidTransitionError,
    LocalEncodingError,
    MalformedUpstreamResponseError,
    PipelineError,
    UpstreamRequestError,
)

# -- Image preview generation ----------------------------------------------
from src.utils.image_normalizer import ImageNormalizer, NormalizedImage

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

# -- Transient preview handles ---------------------------------------------
from src.utils.preview_store import PreviewHandle, PreviewStore

__all__ = [
    "CanvasUnavailableError",
    "ConfigurationError",
    "EncodeFailureError",
    "FurnitureVectorsError",
    "ImageNormalizer",
    "InputValidationError",
    "InvalidTransitionError",
    "LocalEncodingError",
    "MalformedUpstreamResponseError",
    "NormalizedImage",
    "PipelineError",
    "PreviewHandle",
    "PreviewStore",
    "UpstreamRequestError",
    "configure_logging",
    "get_logger",
]
