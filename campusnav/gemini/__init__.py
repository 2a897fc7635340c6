"""Gemini integration module."""

from .campus_services import (
    GeminiArrivalVerifier,
    GeminiCampusClassifier,
    GeminiInstructionGenerator,
    GeminiSpeechSynthesizer,
    build_system_prompt,
)
from .gemini_client import GeminiClient, GeminiClientError, GeminiResponse

__all__ = [
    'GeminiArrivalVerifier',
    'GeminiCampusClassifier',
    'GeminiClient',
    'GeminiClientError',
    'GeminiInstructionGenerator',
    'GeminiResponse',
    'GeminiSpeechSynthesizer',
    'build_system_prompt',
]
