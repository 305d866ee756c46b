"""
Content Classifier

Stand-in for a real moderation service: waits a fixed delay, then flags a
configurable fraction of videos at random.
"""
import asyncio
import logging
import random
from typing import Optional

from constants import SensitivityStatus
from services.interfaces import IContentClassifier

logger = logging.getLogger(__name__)


class SimulatedClassifier(IContentClassifier):

    def __init__(self, delay_seconds: float = 2.0, flag_rate: float = 0.2, rng: Optional[random.Random] = None):
        self.delay_seconds = delay_seconds
        self.flag_rate = flag_rate
        self.rng = rng or random.Random()

    async def classify(self, reference: str) -> str:
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        verdict = SensitivityStatus.FLAGGED if self.rng.random() < self.flag_rate else SensitivityStatus.SAFE
        logger.info(f"Classified {reference}: {verdict.value}")
        return verdict.value
