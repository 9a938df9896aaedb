"""
Configuration management for the slides worker.

Centralizes all configuration loading from environment variables
and provides type-safe access to configuration values.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


SUPPORTED_IMAGE_FORMATS = ("jpeg", "png")


@dataclass
class WorkerConfig:
    """Configuration for the slides worker and its client"""

    # Sampling settings
    FRAME_INTERVAL_SEC: int = 5
    MAX_FRAMES_PER_RUN: int = 20
    FRAME_IMAGE_FORMAT: str = "jpeg"
    FRAME_MAX_WIDTH: int = 1280  # 0 keeps the source width

    # Audio capture
    AUDIO_TIMEOUT_GRACE_SEC: float = 1.0

    # External services
    TRANSCRIPTION_MODEL: str = "whisper-1"
    VISION_MODEL: str = "gpt-4o-mini"
    ADAPTER_TIMEOUT_SEC: float = 60.0
    CLASSIFY_CONCURRENCY: int = 1

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = ""

    # HTTP server
    HTTP_HOST: str = "0.0.0.0"
    HTTP_PORT: int = 8000

    # Client
    SERVER_URL: str = "http://localhost:8000"

    @classmethod
    def from_env(cls) -> 'WorkerConfig':
        """Load configuration from environment variables"""
        load_dotenv()
        config = cls()

        # Sampling settings
        config.FRAME_INTERVAL_SEC = int(os.getenv("FRAME_INTERVAL_SEC", "5"))
        config.MAX_FRAMES_PER_RUN = int(os.getenv("MAX_FRAMES_PER_RUN", "20"))
        config.FRAME_IMAGE_FORMAT = os.getenv("FRAME_IMAGE_FORMAT", "jpeg").lower()
        config.FRAME_MAX_WIDTH = int(os.getenv("FRAME_MAX_WIDTH", "1280"))

        config.AUDIO_TIMEOUT_GRACE_SEC = float(os.getenv("AUDIO_TIMEOUT_GRACE_SEC", "1.0"))

        # External services
        config.TRANSCRIPTION_MODEL = os.getenv("TRANSCRIPTION_MODEL", "whisper-1")
        config.VISION_MODEL = os.getenv("VISION_MODEL", "gpt-4o-mini")
        config.ADAPTER_TIMEOUT_SEC = float(os.getenv("ADAPTER_TIMEOUT_SEC", "60"))
        config.CLASSIFY_CONCURRENCY = int(os.getenv("CLASSIFY_CONCURRENCY", "1"))

        # Logging
        config.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        config.LOG_DIR = os.getenv("LOG_DIR", "")

        # HTTP server
        config.HTTP_HOST = os.getenv("SLIDES_HTTP_HOST", "0.0.0.0")
        config.HTTP_PORT = int(os.getenv("SLIDES_HTTP_PORT", "8000"))

        config.SERVER_URL = os.getenv("SLIDES_SERVER_URL", "http://localhost:8000")

        return config

    def validate(self, require_api_key: bool = True) -> None:
        """Validate configuration and raise errors for invalid or missing values"""
        problems = []

        if require_api_key and not os.getenv("OPENAI_API_KEY"):
            problems.append("OPENAI_API_KEY is not set")

        if self.FRAME_INTERVAL_SEC <= 0:
            problems.append("FRAME_INTERVAL_SEC must be positive")

        if self.MAX_FRAMES_PER_RUN <= 0:
            problems.append("MAX_FRAMES_PER_RUN must be positive")

        if self.FRAME_IMAGE_FORMAT not in SUPPORTED_IMAGE_FORMATS:
            problems.append(f"FRAME_IMAGE_FORMAT must be one of {', '.join(SUPPORTED_IMAGE_FORMATS)}")

        if self.FRAME_MAX_WIDTH < 0:
            problems.append("FRAME_MAX_WIDTH must not be negative")

        if self.AUDIO_TIMEOUT_GRACE_SEC < 0:
            problems.append("AUDIO_TIMEOUT_GRACE_SEC must not be negative")

        if self.ADAPTER_TIMEOUT_SEC <= 0:
            problems.append("ADAPTER_TIMEOUT_SEC must be positive")

        if self.CLASSIFY_CONCURRENCY < 1:
            problems.append("CLASSIFY_CONCURRENCY must be at least 1")

        if problems:
            raise ValueError(f"Invalid configuration: {'; '.join(problems)}")
