"""Prompt Studio API: image generation and comparison behind a rotating Gemini key pool."""

__version__ = "1.0.0"
