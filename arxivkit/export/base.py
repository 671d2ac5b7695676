"""Base class for result exporters."""

from abc import ABC, abstractmethod
from pathlib import Path

from arxivkit.models import QueryResult


class Exporter(ABC):
    """Base class for result exporters."""

    @abstractmethod
    def to_string(self, result: QueryResult) -> str:
        """Render the result as text."""
        ...

    def export(self, result: QueryResult, path: Path) -> None:
        path.write_text(self.to_string(result), encoding="utf-8")
