"""Abstract base class for streaming encoders."""

from abc import ABC, abstractmethod
import logging

from ..models.audio import PcmBlock

logger = logging.getLogger(__name__)


class AbstractEncoder(ABC):
    """Incremental encoder contract shared by every encoding strategy."""

    strategy = "abstract"

    def __init__(self, sample_rate: int, channels: int):
        """Initialize encoder parameters.

        Args:
            sample_rate: Input sample rate in Hz
            channels: Input channel count (1 or 2)
        """
        self.sample_rate = sample_rate
        self.channels = channels

    @property
    @abstractmethod
    def mime_type(self) -> str:
        """Container/MIME tag of the produced byte stream."""
        pass

    @abstractmethod
    def open(self) -> None:
        """Acquire encoder resources.

        Raises:
            EncoderInitFailure: if the encoder cannot be built
        """
        pass

    @abstractmethod
    def encode(self, pcm: PcmBlock) -> bytes:
        """Encode one block.

        Internal buffering is expected: the result may be empty.

        Args:
            pcm: Converted 16-bit block with ``self.channels`` channels

        Returns:
            Bytes ready to append, possibly empty
        """
        pass

    @abstractmethod
    def finalize(self) -> bytes:
        """Flush buffered input and return the trailing bytes. Called once."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release encoder resources. Safe to call more than once."""
        pass
