"""
Block Model
===========
Arena of Boolean indicator variables grouped into mutually exclusive blocks.

Representation:
    values: float64 array, one truth value in [0,1] per variable
    block:  contiguous index range [start, stop) into values + exactly_one flag

A block with exactly_one=False has an implicit "none" state, so its
cardinality is size + 1 and category code 0 means "all members false".
Variables outside every block are free (observed) atoms: rules may read
them but they are never encoded as UAI variables.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np


@dataclass(frozen=True)
class Block:
    """One categorical choice: a contiguous run of arena variables."""
    start: int
    stop: int
    exactly_one: bool = True

    @property
    def size(self) -> int:
        return self.stop - self.start

    @property
    def cardinality(self) -> int:
        """Number of UAI states, including the "none" state if allowed."""
        return self.size if self.exactly_one else self.size + 1

    @property
    def variables(self) -> range:
        return range(self.start, self.stop)

    def variable_for(self, code: int) -> Optional[int]:
        """
        Arena index set to 1.0 by category code, or None for the "none" state.

        Raises IndexError if code is outside [0, cardinality).
        """
        if not 0 <= code < self.cardinality:
            raise IndexError(
                f"category {code} out of range for block of cardinality {self.cardinality}"
            )
        if self.exactly_one:
            return self.start + code
        if code == 0:
            return None
        return self.start + code - 1


class BlockModel:
    """
    Owns every variable value, the block layout and the ground rules.

    This is the only store type the UAI encoder/decoder accept.
    """

    def __init__(self, commit_sink: Optional[Callable[[int, float], None]] = None):
        self.values = np.zeros(0, dtype=np.float64)
        self.blocks: List[Block] = []
        self.rules: list = []
        self.commit_sink = commit_sink
        self._block_of: List[Optional[int]] = []
        self._committed: Dict[int, float] = {}

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _grow(self, n: int, values: Optional[Sequence[float]]) -> int:
        start = len(self.values)
        if values is None:
            new = np.zeros(n, dtype=np.float64)
        else:
            new = np.asarray(values, dtype=np.float64)
            if new.shape != (n,):
                raise ValueError(f"expected {n} values, got shape {new.shape}")
            _check_truth(new)
        self.values = np.concatenate([self.values, new])
        return start

    def add_variable(self, value: float = 0.0) -> int:
        """Append a free variable (in no block). Returns its arena index."""
        index = self._grow(1, [value])
        self._block_of.append(None)
        return index

    def add_block(
        self,
        size: int,
        exactly_one: bool = True,
        values: Optional[Sequence[float]] = None,
    ) -> int:
        """Append a block of `size` fresh variables. Returns the block index."""
        if size < 1:
            raise ValueError(f"block size must be positive, got {size}")
        start = self._grow(size, values)
        block_index = len(self.blocks)
        self.blocks.append(Block(start, start + size, exactly_one))
        self._block_of.extend([block_index] * size)
        return block_index

    def add_rule(self, rule) -> None:
        self.rules.append(rule)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def n_variables(self) -> int:
        return len(self.values)

    @property
    def cardinalities(self) -> List[int]:
        return [b.cardinality for b in self.blocks]

    def block_of(self, var: int) -> Optional[int]:
        """Block index owning `var`, or None for a free variable."""
        return self._block_of[var]

    def get_value(self, var: int) -> float:
        return float(self.values[var])

    def set_value(self, var: int, value: float) -> None:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"truth value {value} outside [0, 1]")
        self.values[var] = value

    def clear_block(self, block: int) -> None:
        b = self.blocks[block]
        self.values[b.start:b.stop] = 0.0

    def assign_category(self, block: int, code: int) -> None:
        """Zero the block, then switch on the member for `code` (if any)."""
        var = self.blocks[block].variable_for(code)
        self.clear_block(block)
        if var is not None:
            self.values[var] = 1.0

    def category_of(self, block: int) -> int:
        """
        Category code of a discrete block state.

        Raises ValueError if the block is not in a valid committed state.
        """
        b = self.blocks[block]
        members = self.values[b.start:b.stop]
        on = np.flatnonzero(members == 1.0)
        if len(on) > 1 or np.any((members != 0.0) & (members != 1.0)):
            raise ValueError(f"block {block} is not in a discrete state: {members.tolist()}")
        if len(on) == 0:
            if b.exactly_one:
                raise ValueError(f"block {block} requires exactly one true member")
            return 0
        return int(on[0]) if b.exactly_one else int(on[0]) + 1

    def snapshot(self) -> np.ndarray:
        return self.values.copy()

    def restore(self, values: np.ndarray) -> None:
        if values.shape != self.values.shape:
            raise ValueError("snapshot does not match arena size")
        self.values[:] = values

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit(self, var: int) -> None:
        """Record the current value of `var` as durable."""
        value = float(self.values[var])
        self._committed[var] = value
        if self.commit_sink is not None:
            self.commit_sink(var, value)

    @property
    def committed(self) -> Dict[int, float]:
        return dict(self._committed)

    def __repr__(self) -> str:
        return (f"BlockModel(variables={self.n_variables}, blocks={len(self.blocks)}, "
                f"rules={len(self.rules)})")


def _check_truth(values: np.ndarray) -> None:
    if np.any((values < 0.0) | (values > 1.0)):
        raise ValueError("truth values must lie in [0, 1]")
