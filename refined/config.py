"""Prover configuration: project-level .refinedrc.json support.

Loads configuration from .refinedrc.json (or refined.config.json) in the
project root or any parent directory.  Example:

    {
      "solver_command": ["z3", "-smt2", "-in"],
      "transport": "process",
      "log_solver_input": false,
      "log_level": "INFO"
    }

``transport`` is "process" to talk to an external solver over pipes, or
"api" to evaluate the same SMT-LIB2 commands in-process through the z3
Python bindings.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from refined.errors import config_error

logger = logging.getLogger(__name__)

TRANSPORTS = ("process", "api")


@dataclass
class ProverConfig:
    """Settings for one prover session."""
    solver_command: List[str] = field(default_factory=lambda: ["z3", "-smt2", "-in"])
    transport: str = "process"
    # Dump the solver transcript at shutdown even when the solver exits cleanly
    log_solver_input: bool = False
    log_level: str = "WARNING"


_CONFIG_FILES = [
    ".refinedrc.json",
    "refined.config.json",
]


def _config_in(directory: str) -> Optional[str]:
    for name in _CONFIG_FILES:
        candidate = os.path.join(directory, name)
        if os.path.isfile(candidate):
            return candidate
    return None


def find_config(start_dir: str = ".") -> Optional[str]:
    """The config file of start_dir or its nearest ancestor that has one."""
    directory = os.path.abspath(start_dir)
    found = _config_in(directory)
    while found is None and os.path.dirname(directory) != directory:
        directory = os.path.dirname(directory)
        found = _config_in(directory)
    return found


def load_config(path: Optional[str] = None, start_dir: str = ".") -> ProverConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, or it cannot be read, returns defaults.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return ProverConfig()

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("ignoring unreadable config %s: %s", path, e)
        return ProverConfig()

    if not isinstance(data, dict):
        logger.warning("ignoring config %s: top level is not an object", path)
        return ProverConfig()

    return _dict_to_config(data)


def _dict_to_config(data: Dict[str, Any]) -> ProverConfig:
    """Convert a parsed dict to ProverConfig."""
    config = ProverConfig()

    if "solver_command" in data:
        command = data["solver_command"]
        if isinstance(command, str):
            command = command.split()
        config.solver_command = [str(part) for part in command]
    if "transport" in data:
        config.transport = str(data["transport"])
    if "log_solver_input" in data:
        config.log_solver_input = bool(data["log_solver_input"])
    if "log_level" in data:
        config.log_level = str(data["log_level"]).upper()

    if config.transport not in TRANSPORTS:
        raise config_error(
            f"unknown transport {config.transport!r}, expected one of {', '.join(TRANSPORTS)}"
        )
    if not config.solver_command:
        raise config_error("solver_command must not be empty")

    return config
