"""Reintegration of rewritten chunks."""

from docrewrite.reintegration.reintegrator import (
    ExportArtifact,
    consolidate,
    export_chunk,
    export_consolidated,
    merge_into_document,
    start_live_document,
)

__all__ = [
    "ExportArtifact",
    "consolidate",
    "export_chunk",
    "export_consolidated",
    "merge_into_document",
    "start_live_document",
]
