from __future__ import annotations


class DashboardError(Exception):
    """Base class for errors raised by the dashboard core."""


class DataSourceError(DashboardError):
    """The remote sheet could not be fetched."""


class InvalidUploadError(DashboardError):
    """An uploaded file produced no usable records."""


class ExportError(DashboardError):
    """An export sink failed to render its document."""
