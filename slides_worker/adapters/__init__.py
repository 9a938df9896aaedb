"""
Adapter pattern implementations for the external analysis services.

This module provides abstract base classes and concrete implementations
for speech-to-text and vision-judgment providers.
"""

from .base import SpeechToTextAdapter, VisionJudgeAdapter
from .openai_adapter import OpenAISpeechToTextAdapter, OpenAIVisionJudgeAdapter

__all__ = [
    'SpeechToTextAdapter',
    'VisionJudgeAdapter',
    'OpenAISpeechToTextAdapter',
    'OpenAIVisionJudgeAdapter'
]
