"""
UAI Results Reader
==================
Parses solver output and writes the decoded assignment onto a BlockModel.

Results format:
    <TASK>                      # must equal the requested task name
    1                           # one assignment in this solution
    <count> <v0> <v1> ...       # category code per block; count is ignored
    [-BEGIN-]                   # optional separator between solutions
    1
    <count> <v0> <v1> ...
    ...

Some solvers print a sequence of improving solutions; only the last one
is kept. A marker other than "1" is rejected.
"""

import io
import logging
import os
from typing import Iterable, List, TextIO, Union

from ..errors import FormatError
from ..model import BlockModel
from .writer import check_store

logger = logging.getLogger(__name__)

SEPARATORS = ("", "-BEGIN-")


def parse_results(lines: Iterable[str], task: str) -> List[int]:
    """
    Return the category codes of the last solution in `lines`.

    Raises FormatError on any deviation from the results format.
    """
    task = str(getattr(task, "value", task))
    it = iter(enumerate(lines, start=1))

    try:
        _, header = next(it)
    except StopIteration:
        raise FormatError("results are empty", expected=task, line_number=1) from None
    header = header.rstrip()
    if header != task:
        raise FormatError("results are not for the requested task",
                          expected=task, actual=header, line_number=1)

    solution = None
    solution_line = 0
    for number, line in it:
        marker = line.strip()
        if marker in SEPARATORS:
            continue
        if marker != "1":
            raise FormatError("results contain multiple assignments in a single solution",
                              expected="1", actual=marker, line_number=number)
        try:
            solution_line, solution = next(it)
        except StopIteration:
            raise FormatError("missing assignment line after solution marker",
                              line_number=number + 1) from None

    if solution is None:
        raise FormatError("results contain no solution", expected="1", line_number=2)

    tokens = solution.split()
    if not tokens:
        raise FormatError("assignment line is empty", line_number=solution_line)
    try:
        codes = [int(t) for t in tokens[1:]]
    except ValueError as exc:
        raise FormatError(f"malformed assignment: {exc}", actual=solution.strip(),
                          line_number=solution_line) from exc
    logger.debug("parsed %s solution with %d codes", task, len(codes))
    return codes


def apply_solution(store: BlockModel, solution: List[int]) -> None:
    """Set block i to category solution[i]; blocks past the end are untouched."""
    model = check_store(store)
    if len(solution) > len(model.blocks):
        raise FormatError("assignment references more variables than the model has",
                          expected=f"<= {len(model.blocks)} values",
                          actual=f"{len(solution)} values")
    for i, code in enumerate(solution):
        cardinality = model.blocks[i].cardinality
        if not 0 <= code < cardinality:
            raise FormatError(f"category out of range for variable {i}",
                              expected=f"0..{cardinality - 1}", actual=str(code))
        model.assign_category(i, code)


def read_results(store: BlockModel, stream: TextIO, task: str) -> List[int]:
    """Parse `stream` and decode the last solution onto `store`."""
    check_store(store)
    solution = parse_results(stream, task)
    apply_solution(store, solution)
    return solution


def read_results_file(store: BlockModel, path: Union[str, os.PathLike], task: str) -> List[int]:
    check_store(store)
    with open(path, "rb") as f:
        raw = f.read()
    try:
        text = raw.decode("ascii")
    except UnicodeDecodeError as exc:
        raise FormatError("non-ASCII byte in solver output",
                          expected="ASCII text", actual=repr(raw[exc.start:exc.end]),
                          line_number=raw.count(b"\n", 0, exc.start) + 1) from exc
    return read_results(store, io.StringIO(text, newline=None), task)
