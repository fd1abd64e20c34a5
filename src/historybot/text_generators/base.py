from __future__ import annotations

import enum
from abc import ABC, abstractmethod


class ModelClass(enum.Enum):
    """Size class requested by a caller; settings map it to a concrete model."""

    SMALL = "small"
    LARGE = "large"


class TextGeneratorAPI(ABC):
    """Abstract base class for text generator providers."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return generated text for the given prompt."""
        raise NotImplementedError
