"""
Core analysis functionality.
"""

from .network import Network, Node, Way, validate_network
from .stress import StressModel, evaluate_way
from .islands import IslandModel, SegmentationResult, segment
from .boundary import BoundaryTracer, TraceReport, trace, trace_islands

__all__ = ['Network', 'Node', 'Way', 'validate_network',
           'StressModel', 'evaluate_way',
           'IslandModel', 'SegmentationResult', 'segment',
           'BoundaryTracer', 'TraceReport', 'trace', 'trace_islands']
