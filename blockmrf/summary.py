"""
Ground rule inspection helpers: grouping, sampling and printable summaries.
"""

from typing import Dict, Iterable, List, Optional

import numpy as np

from .model import BlockModel
from .rules import GroundRule


def rules_by_name(rules: Iterable[GroundRule], name: str) -> List[GroundRule]:
    return [r for r in rules if r.name == name]


def sort_by_name(rules: Iterable[GroundRule]) -> List[GroundRule]:
    """Stable sort by rule name."""
    return sorted(rules, key=lambda r: r.name)


def rule_names(rules: Iterable[GroundRule]) -> List[str]:
    """Distinct rule names, sorted."""
    return sorted({r.name for r in rules})


def sample_rules(rules: Iterable[GroundRule], n: int, seed: Optional[int] = None,
                 rng: Optional[np.random.Generator] = None) -> List[GroundRule]:
    """Up to `n` rules drawn without replacement, in their original order."""
    rules = list(rules)
    if n >= len(rules):
        return rules
    rng = rng if rng is not None else np.random.default_rng(seed)
    picked = np.sort(rng.choice(len(rules), size=n, replace=False))
    return [rules[i] for i in picked]


def stratified_sample(rules: Iterable[GroundRule], n: int,
                      seed: Optional[int] = None) -> List[GroundRule]:
    """Up to `n` rules of each name, grouped by name."""
    rules = list(rules)
    rng = np.random.default_rng(seed)
    out = []
    for name in rule_names(rules):
        out.extend(sample_rules(rules_by_name(rules, name), n, rng=rng))
    return out


def rules_info(rules: Iterable[GroundRule]) -> List[Dict]:
    return [{"kind": "compatibility", "name": r.name, "weight": r.weight} for r in rules]


def format_summary(rules: Iterable[GroundRule], model: BlockModel, width: int = 79) -> str:
    """
    One section per rule, sorted by name:

        ======== name ========
        INCO: <incompatibility at current values>
        CLAS: <class name>
        STRI: <rule>
        ATOM: <value>:<index>
    """
    lines = []
    for rule in sort_by_name(rules):
        lines.append(f" {rule.name} ".center(width, "="))
        lines.append(f"INCO: {rule.incompatibility(model.values)}")
        lines.append(f"CLAS: {type(rule).__name__}")
        lines.append(f"STRI: {rule!r}"[:width])
        for var in rule.atoms:
            lines.append(f"ATOM: {model.get_value(var)}:{var}")
    return "\n".join(lines)


def print_summary(rules: Iterable[GroundRule], model: BlockModel, name: Optional[str] = None,
                  width: int = 79) -> None:
    if name is not None:
        rules = rules_by_name(rules, name)
    print(format_summary(rules, model, width))
