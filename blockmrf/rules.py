"""
Compatibility Rules
===================
Weighted ground rules over arena variables.

Rule Interface:
    incompatibility(values) -> float           # opaque penalty, >= 0
    expected_compatibility(values) -> float    # score used by greedy rounding
    potential(values) -> float                 # exp(-weight * incompatibility)

Available Rules:
    LogicalRule    - weighted disjunctive clause (Lukasiewicz hinge)
    ArithmeticRule - weighted linear inequality  sum(c_i x_i) <= constant

RuleIndex registers each rule under every atom it references, so the
rounding engine can score a single variable against just its own rules.
"""

import math
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

Literal = Tuple[int, bool]  # (variable_index, is_positive)


class GroundRule(ABC):
    """
    Abstract weighted ground rule.

    Convention:
        potential = exp(-weight * incompatibility)
    so log-potentials are -weight * incompatibility.
    """

    def __init__(self, weight: float, name: Optional[str] = None):
        if weight < 0 or math.isnan(weight):
            raise ValueError(f"rule weight must be non-negative, got {weight}")
        self.weight = float(weight)
        self.name = name or type(self).__name__

    @property
    @abstractmethod
    def atoms(self) -> Tuple[int, ...]:
        """Arena indices referenced by this rule, in traversal order."""

    @abstractmethod
    def incompatibility(self, values: np.ndarray) -> float:
        """
        Penalty of the current assignment.

        Args:
            values: arena of truth values (BlockModel.values)

        Returns:
            incompatibility: non-negative scalar, 0 when fully satisfied
        """

    def expected_compatibility(self, values: np.ndarray) -> float:
        """Weighted compatibility; higher is better. Default: -weight * incompatibility."""
        return -self.weight * self.incompatibility(values)

    def potential(self, values: np.ndarray) -> float:
        return math.exp(-self.weight * self.incompatibility(values))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, weight={self.weight}, atoms={list(self.atoms)})"


class LogicalRule(GroundRule):
    """
    Weighted disjunctive clause: OR of literals.

    Incompatibility (distance to satisfaction):
        max(0, 1 - sum_l truth(l))   [squared if squared=True]
    Expected compatibility, reading truth values as independent probabilities:
        weight * (1 - prod_l (1 - truth(l)))
    """

    def __init__(
        self,
        literals: Sequence[Literal],
        weight: float = 1.0,
        squared: bool = False,
        name: Optional[str] = None,
    ):
        super().__init__(weight, name)
        self.literals: Tuple[Literal, ...] = tuple((int(v), bool(s)) for v, s in literals)
        self.squared = squared

    @property
    def atoms(self) -> Tuple[int, ...]:
        return tuple(v for v, _ in self.literals)

    def _truths(self, values: np.ndarray) -> List[float]:
        return [values[v] if positive else 1.0 - values[v] for v, positive in self.literals]

    def incompatibility(self, values: np.ndarray) -> float:
        distance = max(0.0, 1.0 - sum(self._truths(values)))
        return distance ** 2 if self.squared else distance

    def expected_compatibility(self, values: np.ndarray) -> float:
        p_false = 1.0
        for t in self._truths(values):
            p_false *= 1.0 - t
        return self.weight * (1.0 - p_false)

    def __repr__(self) -> str:
        body = " | ".join(f"{'' if s else '~'}x{v}" for v, s in self.literals)
        return f"{self.weight} * ({body}){'^2' if self.squared else ''}"


class ArithmeticRule(GroundRule):
    """
    Weighted linear hinge: sum_i c_i x_i <= constant.

    Incompatibility:
        max(0, sum_i c_i x_i - constant)   [squared if squared=True]
    """

    def __init__(
        self,
        coefficients: Mapping[int, float],
        constant: float = 0.0,
        weight: float = 1.0,
        squared: bool = False,
        name: Optional[str] = None,
    ):
        super().__init__(weight, name)
        self.coefficients: Dict[int, float] = {int(v): float(c) for v, c in coefficients.items()}
        self.constant = float(constant)
        self.squared = squared

    @property
    def atoms(self) -> Tuple[int, ...]:
        return tuple(self.coefficients)

    def incompatibility(self, values: np.ndarray) -> float:
        total = sum(c * values[v] for v, c in self.coefficients.items())
        distance = max(0.0, total - self.constant)
        return distance ** 2 if self.squared else distance

    def __repr__(self) -> str:
        body = " + ".join(f"{c}*x{v}" for v, c in self.coefficients.items()) or "0"
        return f"{self.weight} * ({body} <= {self.constant}){'^2' if self.squared else ''}"


# ============================================================================
# ATOM REGISTER
# ============================================================================

class RuleIndex:
    """Ground rules filed under each atom they reference."""

    def __init__(self):
        self._by_atom: Dict[int, List[GroundRule]] = defaultdict(list)
        self._rules: List[GroundRule] = []

    @classmethod
    def from_rules(cls, rules: Iterable[GroundRule]) -> "RuleIndex":
        index = cls()
        for rule in rules:
            index.register(rule)
        return index

    def register(self, rule: GroundRule) -> None:
        self._rules.append(rule)
        for var in dict.fromkeys(rule.atoms):
            self._by_atom[var].append(rule)

    def rules_for(self, var: int) -> List[GroundRule]:
        return list(self._by_atom.get(var, ()))

    @property
    def rules(self) -> List[GroundRule]:
        return list(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def components(self, variables: Iterable[int]) -> List[List[int]]:
        """
        Connected components of the rule hypergraph restricted to `variables`.

        Two variables are connected if some rule references both. Components
        and their members are listed in first-seen order of `variables`.
        """
        variables = list(dict.fromkeys(variables))
        parent = {v: v for v in variables}

        def find(v: int) -> int:
            while parent[v] != v:
                parent[v] = parent[parent[v]]
                v = parent[v]
            return v

        for rule in self._rules:
            members = [v for v in rule.atoms if v in parent]
            for other in members[1:]:
                ra, rb = find(members[0]), find(other)
                if ra != rb:
                    parent[rb] = ra

        groups: Dict[int, List[int]] = {}
        for v in variables:
            groups.setdefault(find(v), []).append(v)
        return list(groups.values())
