"""External integration adapters."""

from .climateseal import ClimatesealClient
from .gemini import GeminiClient

__all__ = [
    "ClimatesealClient",
    "GeminiClient",
]
