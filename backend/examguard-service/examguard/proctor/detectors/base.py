"""
Detection Oracle - Common contract for presence detectors
"""

from abc import ABC, abstractmethod

from ..events import DetectionResult
from ..sampler import FrameSample


class DetectionOracle(ABC):
    """
    Decides whether exactly one person is present in a frame.

    Implementations must be interchangeable behind ``detect``.
    ``warm_up`` must complete before the first ``detect`` call.
    """

    name: str = "oracle"

    @property
    def is_warm(self) -> bool:
        return True

    async def warm_up(self) -> None:
        """Prepare the oracle. Raises ModelWarmupError on failure."""

    @abstractmethod
    async def detect(self, sample: FrameSample) -> DetectionResult:
        """Classify one frame. Raises DetectionFailure on failure."""

    async def close(self) -> None:
        """Release any held resources"""
