"""Provider specific AI adapter implementations."""

from .azure import AzureOpenAIClient
from .gemini import GeminiClient
from .openai import OpenAIClient

__all__ = ("AzureOpenAIClient", "GeminiClient", "OpenAIClient")
