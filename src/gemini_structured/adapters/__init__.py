"""Upstream transports."""

from .base import GenerationTransport
from .gemini import GoogleGenAITransport

__all__ = ["GenerationTransport", "GoogleGenAITransport"]
