"""Exception hierarchy.

Per-document errors (``ParseError`` subclasses) are absorbed by the dispatcher;
run-level errors stop the pipeline before projection or rendering.
"""

from __future__ import annotations


class HeatmapError(Exception):
    """Base class for all errors raised by gps_heatmap."""


class ParseError(HeatmapError):
    """A document could not be parsed. The whole document contributes no samples."""


class UnexpectedRootError(ParseError):
    """The root element is not one of the registered track formats."""


class StructureError(ParseError):
    """An element appears outside its required parent, or the XML is not well-formed."""


class NumericFormatError(ParseError):
    """A coordinate or timestamp token could not be parsed."""


class TruncatedError(ParseError):
    """Input ended while a container element was still open."""


class EmptyTrackSetError(HeatmapError):
    """No file yielded any samples after filtering."""


class DegenerateBoundsError(HeatmapError):
    """The bounding box has a zero or negative extent on at least one axis."""


class BasemapError(HeatmapError):
    """The base map image could not be fetched or decoded."""
