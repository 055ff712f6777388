"""
UAI Model Writer
================
Serializes a BlockModel as a MARKOV network in the UAI text format:

    MARKOV
    <N>                         # number of blocks (UAI variables)
    <c1> <c2> ... <cN>          # cardinalities
    <M>                         # number of rules (functions)
    <k> <i1> ... <ik>           # per rule: scope size + ascending block indices
    ...
                                # per rule: blank line,
    <entries>                   #   entry count,
     <p1> <p2> ...              #   potentials, each with a leading space

Scope lines and tables always list block indices in ascending order,
whatever order the rule traverses its atoms in.
"""

import io
import logging
import os
from typing import TextIO, Union

from ..errors import PreconditionError
from ..model import BlockModel
from .tables import build_table, rule_scope

logger = logging.getLogger(__name__)


def check_store(store) -> BlockModel:
    """Entry check shared by writer and reader."""
    if not isinstance(store, BlockModel):
        raise PreconditionError(f"BlockModel required, got {type(store).__name__}")
    return store


def write_model(store: BlockModel, stream: TextIO) -> None:
    """Write `store` to `stream` in UAI MARKOV format."""
    model = check_store(store)
    rules = list(model.rules)
    logger.debug("writing UAI model: %d blocks, %d rules", len(model.blocks), len(rules))

    stream.write("MARKOV\n")
    stream.write(f"{len(model.blocks)}\n")
    stream.write(" ".join(str(c) for c in model.cardinalities) + "\n")

    stream.write(f"{len(rules)}\n")
    for rule in rules:
        scope = rule_scope(rule, model)
        if scope:
            stream.write(str(len(scope)))
            for b in scope:
                stream.write(f" {b}")
        stream.write("\n")

    for rule in rules:
        stream.write("\n")
        table = build_table(rule, model)
        stream.write(f"{table.entries}\n")
        for p in table.values:
            stream.write(f" {float(p)!r}")
        stream.write("\n")


def dumps(store: BlockModel) -> str:
    buf = io.StringIO()
    write_model(store, buf)
    return buf.getvalue()


def write_model_file(store: BlockModel, path: Union[str, os.PathLike]) -> None:
    check_store(store)
    with open(path, "w", encoding="ascii", newline="\n") as f:
        write_model(store, f)
