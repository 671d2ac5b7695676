# arxivkit/export/tree.py
from arxivkit.models import Entry, QueryResult

from .base import Exporter


class TreeExporter(Exporter):
    """Human readable, one indented block per entry."""

    MAX_AUTHORS = 5

    def format_entry(self, entry: Entry) -> str:
        lines = [f"{entry.title}"]

        names = [a.name for a in entry.authors]
        if len(names) > self.MAX_AUTHORS:
            names = names[: self.MAX_AUTHORS] + [f"+{len(entry.authors) - self.MAX_AUTHORS} more"]
        if names:
            lines.append(f"├── Authors: {', '.join(names)}")

        lines.append(f"├── arXiv: {entry.arxiv_id}")
        if entry.published:
            lines.append(f"├── Published: {entry.published[:10]}")
        if entry.categories:
            primary = entry.primary_category or entry.categories[0]
            others = [c for c in entry.categories if c != primary]
            suffix = f" ({', '.join(others)})" if others else ""
            lines.append(f"├── Category: {primary}{suffix}")
        if entry.doi:
            lines.append(f"├── DOI: {entry.doi}")
        if entry.journal_ref:
            lines.append(f"├── Journal: {entry.journal_ref}")
        if entry.comment:
            lines.append(f"├── Comment: {entry.comment}")
        lines.append(f"└── URL: {entry.id}")
        return "\n".join(lines)

    def to_string(self, result: QueryResult) -> str:
        return "\n\n".join(self.format_entry(e) for e in result.entries)
