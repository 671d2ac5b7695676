from arxivkit.export.base import Exporter
from arxivkit.export.json import JsonExporter
from arxivkit.export.tree import TreeExporter

EXPORTERS: dict[str, type[Exporter]] = {
    "json": JsonExporter,
    "tree": TreeExporter,
}


def get_exporter(format: str) -> Exporter:
    """Exporter instance for a format name."""
    try:
        return EXPORTERS[format]()
    except KeyError:
        raise ValueError(
            f"Unknown format: {format}. Available: {', '.join(EXPORTERS)}"
        ) from None


__all__ = ["Exporter", "JsonExporter", "TreeExporter", "EXPORTERS", "get_exporter"]
