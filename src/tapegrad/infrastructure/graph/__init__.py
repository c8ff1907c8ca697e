from ._arena import GraphArena
from ._tape import TapeBuilder
from ._scheduler import TopologicalScheduler
from ._accumulator import BackwardPhase, GradientAccumulator, GradientMap

__all__ = [
    "GraphArena",
    "TapeBuilder",
    "TopologicalScheduler",
    "BackwardPhase",
    "GradientAccumulator",
    "GradientMap",
]
