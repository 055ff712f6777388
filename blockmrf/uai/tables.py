"""
Potential Table Builder
=======================
Enumerates every joint assignment of the blocks a rule touches and
evaluates its unnormalized Gibbs potential exp(-weight * incompatibility).

Enumeration order (UAI convention used by the writer):
    little-endian mixed-radix counter over the scope's cardinalities,
    the first (lowest-index) block is the fastest-changing digit.
"""

import math
from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

import numpy as np

from ..model import BlockModel
from ..rules import GroundRule


@dataclass
class PotentialTable:
    """One rule's factor: scope, cardinalities and entries in enumeration order."""
    scope: Tuple[int, ...]
    cardinalities: Tuple[int, ...]
    values: np.ndarray
    log_values: np.ndarray

    @property
    def entries(self) -> int:
        return len(self.values)

    def log_potentials(self) -> np.ndarray:
        """
        Negated-back form: -weight * incompatibility per entry.

        Kept from the build, so it stays finite where exp() underflows to 0.
        """
        return self.log_values.copy()


def rule_scope(rule: GroundRule, model: BlockModel) -> List[int]:
    """Sorted distinct block indices referenced by `rule`; free atoms are skipped."""
    blocks = set()
    for var in rule.atoms:
        block = model.block_of(var)
        if block is not None:
            blocks.add(block)
    return sorted(blocks)


def scope_cardinalities(model: BlockModel, scope: Sequence[int]) -> List[int]:
    return [model.blocks[b].cardinality for b in scope]


def n_entries(cardinalities: Sequence[int]) -> int:
    entries = 1
    for c in cardinalities:
        entries *= c
    return entries


def iter_assignments(cardinalities: Sequence[int]) -> Iterator[Tuple[int, ...]]:
    """
    Yield all joint assignments, first digit fastest.

    An empty scope yields exactly one (empty) assignment.
    """
    current = [0] * len(cardinalities)
    for _ in range(n_entries(cardinalities)):
        yield tuple(current)
        for j in range(len(current)):
            current[j] += 1
            if current[j] == cardinalities[j]:
                current[j] = 0
            else:
                break


def assignment_at(index: int, cardinalities: Sequence[int]) -> Tuple[int, ...]:
    """Assignment number `index` of iter_assignments, computed directly."""
    if not 0 <= index < n_entries(cardinalities):
        raise IndexError(f"entry {index} out of range for cardinalities {list(cardinalities)}")
    digits = []
    for c in cardinalities:
        index, digit = divmod(index, c)
        digits.append(digit)
    return tuple(digits)


def apply_assignment(model: BlockModel, scope: Sequence[int], assignment: Sequence[int]) -> None:
    """Set each block in `scope` to its category in `assignment`."""
    for block, code in zip(scope, assignment):
        model.assign_category(block, code)


def build_table(rule: GroundRule, model: BlockModel) -> PotentialTable:
    """
    Evaluate `rule` at every joint assignment of its scope.

    Values of the touched blocks are restored once the table is built.
    """
    scope = rule_scope(rule, model)
    cards = scope_cardinalities(model, scope)
    table = np.empty(n_entries(cards), dtype=np.float64)
    log_table = np.empty_like(table)

    ranges = [model.blocks[b] for b in scope]
    saved = [model.values[r.start:r.stop].copy() for r in ranges]
    try:
        for i, assignment in enumerate(iter_assignments(cards)):
            apply_assignment(model, scope, assignment)
            log_table[i] = -rule.weight * rule.incompatibility(model.values)
            table[i] = math.exp(log_table[i])
    finally:
        for r, values in zip(ranges, saved):
            model.values[r.start:r.stop] = values

    return PotentialTable(tuple(scope), tuple(cards), table, log_table)
