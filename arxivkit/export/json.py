# arxivkit/export/json.py
import json

from arxivkit.models import QueryResult

from .base import Exporter


class JsonExporter(Exporter):
    """Export results to JSON format."""

    def __init__(self, indent: int = 2):
        self.indent = indent

    def to_string(self, result: QueryResult) -> str:
        # to_dict() already leaves out optional fields the feed did not carry
        data = {
            **result.to_dict(),
            "total": len(result.entries),
        }
        return json.dumps(data, indent=self.indent, ensure_ascii=False)
