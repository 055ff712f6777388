"""
UAI Solver Adapter
==================
Runs a command-line solver that reads UAI MARKOV models.

Invocation contract:
    <executable> <model-file> <evidence-file> <seed> <task>

The solver writes its results to <model-file>.<task>. An evidence file
holding the single byte "0" (no evidence) is created before the call and
deleted afterwards, whatever the outcome.

Usage:
    config = ReasonerConfig(executable="/opt/uai/solver", task=Task.MPE, seed=0)
    UAIReasoner(config).infer(model)
"""

import logging
import os
import subprocess
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterator, List, Mapping, Optional, Union

from .errors import SolverError
from .model import BlockModel
from .uai.reader import read_results_file
from .uai.writer import check_store, write_model_file

logger = logging.getLogger(__name__)

CONFIG_PREFIX = "uaiformatreasoner"


class Task(str, Enum):
    """UAI inference tasks. The value is both solver argument and output suffix."""
    MPE = "MPE"  # most probable explanation
    MAR = "MAR"  # marginal probability of each variable


@dataclass
class ReasonerConfig:
    """Configuration for the UAI solver adapter."""
    executable: str = ""
    task: Task = Task.MPE
    seed: int = 0
    work_dir: Union[str, os.PathLike] = "."
    model_filename: str = "model.uai"
    evidence_filename: str = "no.evid"
    cleanup: bool = True

    def __post_init__(self):
        self.task = Task(str(getattr(self.task, "value", self.task)).upper())
        self.seed = int(self.seed)
        self.cleanup = _as_bool(self.cleanup)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], prefix: str = CONFIG_PREFIX) -> "ReasonerConfig":
        """
        Build a config from dotted property keys, e.g.
            {"uaiformatreasoner.task": "MAR", "uaiformatreasoner.seed": 7}
        Missing keys keep their defaults. Unknown task names raise ValueError.
        """
        kwargs = {}
        for field_name in ("executable", "task", "seed", "work_dir", "model_filename",
                           "evidence_filename", "cleanup"):
            key = f"{prefix}.{field_name}"
            if key in mapping:
                kwargs[field_name] = mapping[key]
        return cls(**kwargs)


_FALSE_STRINGS = ("false", "0", "no", "off", "")


def _as_bool(value: Any) -> bool:
    """Property-file booleans arrive as strings; "false" must not be truthy."""
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


Runner = Callable[[List[str], str], Any]


def run_subprocess(cmd: List[str], cwd: str) -> subprocess.CompletedProcess:
    """Default runner: block until the solver exits."""
    return subprocess.run(cmd, cwd=cwd, capture_output=True, text=True)


class UAIReasoner:
    """
    Writes a BlockModel, calls the external solver and reads back its answer.

    The runner seam receives (command, working_directory) and must return an
    object with `returncode` (and optionally `stderr`).
    """

    def __init__(self, config: ReasonerConfig, runner: Optional[Runner] = None):
        if not config.executable:
            raise ValueError("ReasonerConfig.executable is required")
        self.config = config
        self.runner = runner or run_subprocess

    @property
    def work_dir(self) -> Path:
        return Path(self.config.work_dir)

    @property
    def model_path(self) -> Path:
        return self.work_dir / self.config.model_filename

    @property
    def evidence_path(self) -> Path:
        return self.work_dir / self.config.evidence_filename

    @property
    def output_path(self) -> Path:
        return self.work_dir / f"{self.config.model_filename}.{self.config.task.value}"

    @property
    def args(self) -> List[str]:
        return [
            self.config.model_filename,
            self.config.evidence_filename,
            str(self.config.seed),
            self.config.task.value,
        ]

    @contextmanager
    def evidence_file(self) -> Iterator[Path]:
        """Empty-evidence file that is always deleted on exit."""
        path = self.evidence_path
        path.write_text("0")
        try:
            yield path
        except BaseException:
            # The invocation error wins over a failed delete.
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("could not delete evidence file %s: %s", path, exc)
            raise
        path.unlink(missing_ok=True)

    def call_reasoner(self) -> None:
        cmd = [self.config.executable] + self.args
        with self.evidence_file():
            logger.info("running UAI solver: %s", " ".join(cmd))
            result = self.runner(cmd, str(self.work_dir))
            returncode = getattr(result, "returncode", 0)
            logger.debug("UAI solver exited with status %s", returncode)
            if returncode != 0:
                raise SolverError(f"{self.config.executable} failed", returncode=returncode,
                                  stderr=getattr(result, "stderr", "") or "")

    def infer(self, store: BlockModel) -> List[int]:
        """
        Run one encode -> solve -> decode cycle on `store`.

        Returns the decoded category code of each block.
        """
        model = check_store(store)
        self.work_dir.mkdir(parents=True, exist_ok=True)
        try:
            write_model_file(model, self.model_path)
            # A results file left by an earlier run must not pass for this one's.
            self.output_path.unlink(missing_ok=True)
            self.call_reasoner()
            if not self.output_path.exists():
                raise SolverError(f"solver produced no output file {self.output_path}")
            solution = read_results_file(model, self.output_path, self.config.task)
        finally:
            if self.config.cleanup:
                for path in (self.model_path, self.output_path):
                    _remove_quietly(path)
        logger.info("decoded %s solution for %d blocks", self.config.task.value, len(solution))
        return solution


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("could not remove %s: %s", path, exc)
