"""Metadata extraction from markdown accessibility reports."""

from a11y_history.extraction.metadata_extractor import MetadataExtractor, parse_report_metadata
from a11y_history.extraction.strategies import (
    ExtractionStrategy,
    PatternStrategy,
    SectionCountStrategy,
    first_match,
    max_merge,
)

__all__ = [
    "ExtractionStrategy",
    "MetadataExtractor",
    "PatternStrategy",
    "SectionCountStrategy",
    "first_match",
    "max_merge",
    "parse_report_metadata",
]
