from abc import ABC, abstractmethod
from typing import Any, Dict, Sequence


class AIService(ABC):
    """
    External AI collaborator.

    Implementations make one provider request per call and return the parsed
    JSON object as-is. They raise whatever the provider raises; turning those
    failures into user-facing errors is the job runner's responsibility.
    """

    model_tag: str

    @abstractmethod
    def has_credential(self) -> bool:
        ...

    @abstractmethod
    def analyze_entry(self, content: str, *, timeout: float) -> Dict[str, Any]:
        """Expected keys: summary, sentiment{score,label}, themes."""

    @abstractmethod
    def reflect_on_entries(self, entries: Sequence[Any], insight_type: str, *, timeout: float) -> Dict[str, Any]:
        """Expected keys: reflection, themes, sentimentAnalysis{overall,average,trajectory}."""
