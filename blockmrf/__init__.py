"""
blockmrf: Block-structured Boolean MRFs for external UAI solvers
=================================================================

- Block Model: Boolean indicators grouped into mutually exclusive blocks,
  each block either exactly-one or zero-or-one ("none" state allowed)
- UAI bridge: potential tables -> MARKOV model file -> solver -> results
  file -> block assignments
- Rounding: greedy conditional rounding and simple Bernoulli rounding of
  relaxed [0,1] truth values into hard {0,1} commits

Potentials follow the Gibbs convention exp(-weight * incompatibility).
"""

__version__ = "0.2.0"

from .errors import BlockMRFError, FormatError, PreconditionError, SolverError
from .model import Block, BlockModel
from .rules import ArithmeticRule, GroundRule, Literal, LogicalRule, RuleIndex
from .reasoner import ReasonerConfig, Task, UAIReasoner
from .rounding import (
    GreedyRounder,
    RoundingResult,
    block_violations,
    greedy_round,
    simple_round,
)

__all__ = [
    "BlockMRFError",
    "FormatError",
    "PreconditionError",
    "SolverError",
    "Block",
    "BlockModel",
    "ArithmeticRule",
    "GroundRule",
    "Literal",
    "LogicalRule",
    "RuleIndex",
    "ReasonerConfig",
    "Task",
    "UAIReasoner",
    "GreedyRounder",
    "RoundingResult",
    "block_violations",
    "greedy_round",
    "simple_round",
]
