"""
UAI Format Bridge
=================
Encoder/decoder between a BlockModel and the UAI MARKOV / results formats:
- Potential tables (tables.py)
- Model writer (writer.py)
- Results reader (reader.py)
"""

from .tables import (
    PotentialTable,
    apply_assignment,
    assignment_at,
    build_table,
    iter_assignments,
    n_entries,
    rule_scope,
    scope_cardinalities,
)
from .writer import check_store, dumps, write_model, write_model_file
from .reader import apply_solution, parse_results, read_results, read_results_file

__all__ = [
    "PotentialTable",
    "apply_assignment",
    "assignment_at",
    "build_table",
    "iter_assignments",
    "n_entries",
    "rule_scope",
    "scope_cardinalities",
    "check_store",
    "dumps",
    "write_model",
    "write_model_file",
    "apply_solution",
    "parse_results",
    "read_results",
    "read_results_file",
]
