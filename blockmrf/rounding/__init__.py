"""
Rounding Engine
===============
Turns relaxed truth values in [0,1] into hard {0,1} assignments.

Greedy sequential rounding (conditional-probability rounding):
    1. remap every open variable v -> 0.25 + 0.5 * v
    2. order open variables by remapped value, descending (stable)
    3. for each variable: score 0.0 and 1.0 against its registered ground
       rules (sum of expected weighted compatibility), keep the better one,
       commit it

Scores read the *current* values of other variables, so decisions depend
on the ones already made in this pass. Try-score-restore for one variable
runs inside the critical section of its connected component; components
share no rules and may be rounded on separate threads.

Simple stochastic rounding:
    value <- 1 if u <= value else 0,  u ~ U[0, 1)

Neither engine enforces block constraints; see block_violations().
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import numpy as np
from tqdm import tqdm

from ..model import BlockModel
from ..rules import RuleIndex

logger = logging.getLogger(__name__)

TIE_BREAKS = ("later", "earlier")


@dataclass
class RoundingResult:
    """Outcome of one rounding pass."""
    variables: List[int]
    values: np.ndarray  # final values, aligned with `variables`
    n_changed: int = 0  # variables that ended away from their nearest value

    @property
    def n_ones(self) -> int:
        return int(np.sum(self.values == 1.0))


def _nearest(values: np.ndarray) -> np.ndarray:
    return np.where(values >= 0.5, 1.0, 0.0)


def _result(model: BlockModel, variables: List[int], original: np.ndarray) -> RoundingResult:
    final = model.values[variables].copy()
    return RoundingResult(variables, final, int(np.sum(final != _nearest(original))))


def remap_values(model: BlockModel, variables: Sequence[int]) -> None:
    """Compress values toward the undecided middle: v -> 0.25 + 0.5 * v."""
    idx = np.asarray(variables, dtype=np.intp)
    model.values[idx] = 0.25 + 0.5 * model.values[idx]


def greedy_order(model: BlockModel, variables: Sequence[int]) -> List[int]:
    """Variables by current value, descending; ties keep input order."""
    variables = list(variables)
    keys = -model.values[np.asarray(variables, dtype=np.intp)]
    return [variables[i] for i in np.argsort(keys, kind="stable")]


class GreedyRounder:
    """
    Greedy sequential rounding scored against a RuleIndex.

    tie_break:
        "later"   - equal scores keep 1.0, the value tried last (default)
        "earlier" - equal scores keep 0.0
    Whether "later" is the better default is unknown; it is kept tunable
    until measured.

    A variable with no registered rules has nothing to compare, so it takes
    its nearest discrete value (remapped value >= 0.5 -> 1.0). This departs
    from sending every tie to the tie_break value: with tie_break="later"
    such a variable would always become 1.0, and rounding already-discrete
    values with no rules would not leave them unchanged.
    """

    def __init__(
        self,
        index: RuleIndex,
        tie_break: str = "later",
        n_workers: int = 1,
        verbose: bool = False,
    ):
        if tie_break not in TIE_BREAKS:
            raise ValueError(f"Unknown tie_break: {tie_break}")
        self.index = index
        self.tie_break = tie_break
        self.n_workers = max(1, int(n_workers))
        self.verbose = verbose

    def score(self, model: BlockModel, var: int) -> float:
        """Sum of expected weighted compatibility of the rules on `var`."""
        return sum(rule.expected_compatibility(model.values) for rule in self.index.rules_for(var))

    def decide(self, model: BlockModel, var: int, lock: threading.Lock) -> float:
        """Pick, set and commit the better discrete value of `var`."""
        with lock:
            old = model.values[var]
            if not self.index.rules_for(var):
                best = 1.0 if old >= 0.5 else 0.0
            else:
                model.values[var] = 0.0
                score_0 = self.score(model, var)
                model.values[var] = 1.0
                score_1 = self.score(model, var)
                model.values[var] = old
                if score_1 > score_0:
                    best = 1.0
                elif score_0 > score_1:
                    best = 0.0
                else:
                    best = 1.0 if self.tie_break == "later" else 0.0
            model.values[var] = best
            model.commit(var)
        return best

    def _round_component(self, model: BlockModel, members: List[int], lock: threading.Lock) -> int:
        for var in members:
            self.decide(model, var, lock)
        return len(members)

    def round(self, model: BlockModel, variables: Iterable[int]) -> RoundingResult:
        variables = list(dict.fromkeys(variables))
        original = model.values[variables].copy()
        logger.info("greedy rounding %d open variables", len(variables))

        remap_values(model, variables)
        order = greedy_order(model, variables)
        components = self.index.components(order)
        locks = [threading.Lock() for _ in components]

        with tqdm(total=len(order), desc="greedy rounding", disable=not self.verbose) as progress:
            if self.n_workers == 1:
                lock_of = {}
                for lock, members in zip(locks, components):
                    for var in members:
                        lock_of[var] = lock
                for var in order:
                    self.decide(model, var, lock_of[var])
                    progress.update(1)
            else:
                with ThreadPoolExecutor(max_workers=self.n_workers) as pool:
                    futures = [
                        pool.submit(self._round_component, model, members, lock)
                        for lock, members in zip(locks, components)
                    ]
                    for future in futures:
                        progress.update(future.result())

        result = _result(model, variables, original)
        logger.info("greedy rounding done: %d ones, %d moved away from nearest value",
                    result.n_ones, result.n_changed)
        return result


def greedy_round(
    model: BlockModel,
    variables: Iterable[int],
    index: Optional[RuleIndex] = None,
    **kwargs,
) -> RoundingResult:
    """
    Functional form of GreedyRounder.round.

    If no index is given, one is built from model.rules.
    """
    if index is None:
        index = RuleIndex.from_rules(model.rules)
    return GreedyRounder(index, **kwargs).round(model, variables)


def simple_round(
    model: BlockModel,
    variables: Iterable[int],
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
) -> RoundingResult:
    """Independent Bernoulli rounding: 1 with probability equal to the current value."""
    rng = rng if rng is not None else np.random.default_rng(seed)
    variables = list(dict.fromkeys(variables))
    original = model.values[variables].copy()
    logger.info("simple rounding %d open variables", len(variables))

    for var in variables:
        u = rng.random()
        model.values[var] = 1.0 if u <= model.values[var] else 0.0
        model.commit(var)

    return _result(model, variables, original)


def block_violations(model: BlockModel) -> List[int]:
    """
    Blocks whose current state breaks their cardinality rule.

    More than one member at 1.0, or none at all for an exactly-one block.
    An accepted approximation after rounding, not an error.
    """
    bad = []
    for i, block in enumerate(model.blocks):
        n_on = int(np.sum(model.values[block.start:block.stop] == 1.0))
        if n_on > 1 or (block.exactly_one and n_on != 1):
            bad.append(i)
    return bad
