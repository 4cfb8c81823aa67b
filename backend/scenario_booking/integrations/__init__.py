"""Integration shortcuts."""

from .export_client import ExportClient, ExportClientError

__all__ = ["ExportClient", "ExportClientError"]
