import asyncio
import logging
from typing import Optional

from ..adapters.base import VisionJudgeAdapter

logger = logging.getLogger("slides_worker")

SLIDE_PROMPT = "Is this a presentation slide or content-rich frame? Answer with just YES or NO."
AFFIRMATIVE = "YES"


def normalize_answer(answer: Optional[str]) -> str:
    """Case-insensitive, whitespace-trimmed form of a judge answer"""
    return (answer or "").strip().upper()


def is_affirmative(answer: Optional[str]) -> bool:
    # Anything but an exact YES is a rejection, including "YES." and "Yes, it is"
    return normalize_answer(answer) == AFFIRMATIVE


class FrameClassifier:
    """Judges whether a frame is slide-like, degrading to reject on failure"""

    def __init__(self, judge: VisionJudgeAdapter, timeout_sec: float = 60.0, prompt: str = SLIDE_PROMPT):
        self.judge = judge
        self.timeout_sec = timeout_sec
        self.prompt = prompt

    async def classify(self, image: str) -> bool:
        """
        Classify one encoded image. Never raises.

        Returns:
            True only if the judge answered exactly YES
        """
        try:
            answer = await asyncio.wait_for(
                self.judge.judge(image, self.prompt),
                timeout=self.timeout_sec
            )
        except asyncio.TimeoutError:
            logger.warning(f"Frame classification timed out after {self.timeout_sec:g}s, treating as not a slide")
            return False
        except Exception as e:
            logger.warning(f"Frame classification failed, treating as not a slide: {e}")
            return False

        accepted = is_affirmative(answer)
        logger.debug(f"Judge answered {answer!r} -> {'slide' if accepted else 'not a slide'}")
        return accepted
