"""Image description provider adapters.

One concrete implementation of IDescriptionProvider
(src/interfaces/description_provider.py):
    - OpenRouterDescriptionProvider: vision model via OpenRouter chat completions
"""

from src.providers.description.openrouter_description_provider import (
    OpenRouterDescriptionProvider,
)

__all__ = ["OpenRouterDescriptionProvider"]
