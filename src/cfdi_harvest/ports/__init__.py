"""Ports - interfaces for external dependencies."""

from .export import ExportPort

__all__ = ["ExportPort"]
