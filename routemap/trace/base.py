"""
Abstract base class for trace output decoders
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from ..models import Hop


@dataclass
class DecodeResult:
    """Outcome of one decoder: accepted with hops, or declined with a reason"""
    accepted: bool
    hops: list[Hop] = field(default_factory=list)
    reason: Optional[str] = None

    @classmethod
    def accept(cls, hops: list[Hop]) -> 'DecodeResult':
        return cls(accepted=True, hops=hops)

    @classmethod
    def decline(cls, reason: str) -> 'DecodeResult':
        return cls(accepted=False, reason=reason)


class BaseDecoder(ABC):
    """Abstract base class for trace output decoders"""

    name = "base"

    @abstractmethod
    def decode(self, raw: str) -> DecodeResult:
        """
        Decode raw utility output into hops.

        Args:
            raw: Captured standard output of the trace utility

        Returns:
            DecodeResult; declined when the output is not in this
            decoder's format
        """
        pass
