"""Error types raised by the analysis core."""

from typing import Optional


class LTSError(Exception):
    """Base class for analysis failures that indicate bad data or a logic bug."""


class StructuralError(LTSError, ValueError):
    """The input network is not a consistent graph."""

    def __init__(self, message: str, edge_id: Optional[str] = None,
                 vertex_id: Optional[str] = None):
        super().__init__(message)
        self.edge_id = edge_id
        self.vertex_id = vertex_id


class InvariantViolation(LTSError, RuntimeError):
    """Segmentation finished in a state that should be unreachable."""

    def __init__(self, message: str, edge_id: Optional[str] = None,
                 pass_number: Optional[int] = None):
        super().__init__(message)
        self.edge_id = edge_id
        self.pass_number = pass_number


class NonTerminatingTraceError(LTSError, RuntimeError):
    """A boundary walk exceeded its point cap without closing."""

    def __init__(self, message: str, island_id: Optional[int] = None,
                 vertex_id: Optional[str] = None, points: int = 0):
        super().__init__(message)
        self.island_id = island_id
        self.vertex_id = vertex_id
        self.points = points


class OSMFormatError(LTSError, ValueError):
    """The OSM XML document contains something the loader cannot handle."""


class TagValueError(LTSError, ValueError):
    """A tag value the stress model cannot interpret."""

    def __init__(self, message: str, key: Optional[str] = None, value: Optional[str] = None):
        super().__init__(message)
        self.key = key
        self.value = value
