"""Pydantic models and value types."""

from tubely.models.video import GeometryClassification, StoredReference, Video, VideoCreate


__all__ = ["GeometryClassification", "StoredReference", "Video", "VideoCreate"]
