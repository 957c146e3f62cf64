"""Dispatch composition engine: selection, scanner, bulk import, numbering."""

__all__ = [
    "bulk_import",
    "dispatch_number",
    "scanner",
    "selection",
]
