"""Import/export of the inventory in JSON, CSV and text formats."""

from .reconcile import (
    ExportFormat,
    ImportSummary,
    export_data,
    export_to_path,
    format_for_path,
    import_data,
    import_from_path,
    reconcile,
)
from .sanitize import ImportCandidate, SkipReason, sanitize_record

__all__ = [
    "ExportFormat",
    "ImportCandidate",
    "ImportSummary",
    "SkipReason",
    "export_data",
    "export_to_path",
    "format_for_path",
    "import_data",
    "import_from_path",
    "reconcile",
    "sanitize_record",
]
