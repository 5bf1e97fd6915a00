from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, TypeVar

from assetpatcher.core.models import StepOutcome

T = TypeVar("T")


class ConfigurationMissing(Exception):
    """A required path or URL was not resolved."""

    pass


def require(value: Optional[T], description: str) -> T:
    if value is None:
        raise ConfigurationMissing(f"{description} was not set")
    return value


class PatcherStep(ABC):
    """One unit of the patcher pipeline."""

    name: str = "step"

    @abstractmethod
    def run(self) -> StepOutcome:
        """Run the step. Must not raise; failures are returned as outcomes."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"
