"""Data module: training samples and their storage."""

from .sample_store import Sample, SampleStore

__all__ = [
    "Sample",
    "SampleStore",
]
