"""Artifact export to local storage."""

from .exporter import ArtifactExporter

__all__ = ["ArtifactExporter"]
