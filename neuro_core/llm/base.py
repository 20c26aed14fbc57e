"""Base types for text-generation backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class TextGeneration:
    """A generated reply and its token usage."""
    text: str
    total_tokens: int = 0
    model: Optional[str] = None


class TextGenerationBackend(ABC):
    """Abstract text-generation backend."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_text: str,
        max_tokens: int,
        temperature: float,
    ) -> TextGeneration:
        """Generate one reply. Raises CompanionError subclasses on failure."""
        pass

    async def close(self) -> None:
        pass
