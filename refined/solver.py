"""Solver session: scoped, line-oriented SMT-LIB2 exchange with one solver.

The session owns the transport to the solver, an append-only transcript of
every command sent, and the assertion-scope depth.  The protocol is
strictly sequential: every write is fire-and-forget, every read blocks for
exactly one response line.

Two transports are provided:
  - ProcessTransport: an external solver process (``z3 -smt2 -in``)
    talking over text pipes.
  - Z3ApiTransport: the same commands evaluated in-process through the
    z3 bindings' SMT-LIB2 string evaluator.

Tests substitute any object implementing ``Transport``.

There is no timeout: an unresponsive solver blocks ``read`` indefinitely.
"""

from __future__ import annotations

import atexit
import logging
import os
import subprocess
from abc import ABC, abstractmethod
from collections import deque
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence, TypeVar

import z3

from refined.config import ProverConfig
from refined.errors import session_error, solver_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

GLOBAL_DECLS_OFF = "(set-option :global-decls false)"
CHECK_SAT = "(check-sat)"


def is_query(line: str) -> bool:
    """Commands answered with exactly one response line."""
    return line.strip() == CHECK_SAT


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------

class Transport(ABC):
    """Send-line / receive-line channel to a solver."""

    @abstractmethod
    def open(self) -> None:
        ...

    @abstractmethod
    def send_line(self, line: str) -> None:
        ...

    @abstractmethod
    def receive_line(self) -> str:
        ...

    @abstractmethod
    def close(self) -> int:
        """Shut the solver down and return its exit status."""


class ProcessTransport(Transport):
    """External solver process over text pipes.

    Every command except a query is followed by an echo of SYNC_MARKER and
    the output is consumed up to that marker, so an "(error ...)" line is
    reported against the command that caused it and never left in the pipe.
    Query answers met on the way are queued for receive_line.
    """

    SYNC_MARKER = "refined-sync"

    def __init__(self, command: Sequence[str] = ("z3", "-smt2", "-in")):
        self.command = list(command)
        self._proc: Optional[subprocess.Popen] = None
        self._pending: deque[str] = deque()

    @property
    def pid(self) -> Optional[int]:
        return self._proc.pid if self._proc else None

    def open(self) -> None:
        try:
            self._proc = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                text=True,
                bufsize=1,
            )
        except OSError as e:
            raise solver_error(f"cannot launch solver {' '.join(self.command)}: {e}",
                               command=self.command)

    def _running(self) -> subprocess.Popen:
        if self._proc is None or self._proc.stdin is None or self._proc.stdout is None:
            raise session_error("solver process not running")
        return self._proc

    def _send(self, line: str) -> None:
        proc = self._running()
        try:
            proc.stdin.write(line + "\n")
            proc.stdin.flush()
        except (BrokenPipeError, OSError) as e:
            raise solver_error(f"solver stopped accepting input: {e}", line=line)

    def _read(self) -> str:
        proc = self._running()
        line = proc.stdout.readline()
        if not line:
            raise solver_error("solver closed its output", exit_status=proc.poll())
        return line.rstrip("\r\n")

    def _sync(self, line: str) -> None:
        self._send(f'(echo "{self.SYNC_MARKER}")')
        rejected: Optional[str] = None
        while True:
            out = self._read().strip()
            if out.strip('"') == self.SYNC_MARKER:
                break
            if out.startswith("(error"):
                if rejected is None:
                    rejected = out
            elif out:
                self._pending.append(out)
        if rejected is not None:
            raise solver_error(f"solver rejected command: {rejected}", line=line)

    def send_line(self, line: str) -> None:
        self._send(line)
        if not is_query(line):
            self._sync(line)

    def receive_line(self) -> str:
        answer = self._pending.popleft() if self._pending else self._read()
        if answer.startswith("(error"):
            raise solver_error(f"solver rejected query: {answer}")
        return answer

    def close(self) -> int:
        if self._proc is None:
            raise session_error("solver process not running")
        proc, self._proc = self._proc, None
        self._pending.clear()
        try:
            if proc.stdin is not None:
                proc.stdin.close()
        except (BrokenPipeError, OSError):
            pass  # already dead; the exit status below reports it
        status = proc.wait()
        if proc.stdout is not None:
            proc.stdout.close()
        return status


class Z3ApiTransport(Transport):
    """In-process z3, fed the same SMT-LIB2 text as the external solver."""

    def __init__(self) -> None:
        self._ctx: Optional[z3.Context] = None
        self._pending: deque[str] = deque()

    def open(self) -> None:
        self._ctx = z3.Context()
        self._pending.clear()

    def send_line(self, line: str) -> None:
        if self._ctx is None:
            raise session_error("solver context not open")
        # An API context already scopes declarations to push/pop and refuses
        # to change that option once its manager exists.
        if line == GLOBAL_DECLS_OFF:
            return
        try:
            output = z3.Z3_eval_smtlib2_string(self._ctx.ref(), line)
        except z3.Z3Exception as e:
            raise solver_error(f"z3 rejected command: {e}", line=line)
        for out in output.splitlines():
            if out.startswith("(error"):
                raise solver_error(f"z3 rejected command: {out}", line=line)
            if out.strip():
                self._pending.append(out.strip())

    def receive_line(self) -> str:
        if not self._pending:
            raise solver_error("solver has no pending response")
        return self._pending.popleft()

    def close(self) -> int:
        self._ctx = None
        self._pending.clear()
        return 0


def make_transport(config: ProverConfig) -> Transport:
    if config.transport == "api":
        return Z3ApiTransport()
    return ProcessTransport(config.solver_command)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class SolverSession:
    """One solver, its transcript and its assertion-scope depth."""

    def __init__(self, transport: Transport, log_solver_input: bool = False):
        self.transport = transport
        self.log_solver_input = log_solver_input
        self.depth = 0
        self.exit_status: Optional[int] = None
        self._log: list[str] = []
        self._started = False
        self._owner_pid: Optional[int] = None
        self._start_depth = 0

    @classmethod
    def from_config(cls, config: ProverConfig) -> SolverSession:
        return cls(make_transport(config), log_solver_input=config.log_solver_input)

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def transcript(self) -> list[str]:
        return list(self._log)

    def transcript_text(self) -> str:
        return "\n".join(self._log)

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        if self._started:
            return
        self.transport.open()
        self._started = True
        self._owner_pid = os.getpid()
        self._start_depth = self.depth
        logger.info("solver session started (%s)", type(self.transport).__name__)
        self.write(GLOBAL_DECLS_OFF)
        atexit.register(self._shutdown)

    def stop(self) -> Optional[int]:
        if not self._started:
            raise session_error("solver not running")
        atexit.unregister(self._shutdown)
        self._started = False

        # A forked child inherits the handle but must not reap the solver.
        if os.getpid() != self._owner_pid:
            return None

        status = self.transport.close()
        self.exit_status = status
        if status != 0:
            if status < 0:
                logger.error("solver was killed by signal %d", -status)
            else:
                logger.error("solver exited with exit code %d", status)
            logger.error("solver transcript:\n%s", self.transcript_text())
        elif self.log_solver_input:
            logger.info("solver transcript:\n%s", self.transcript_text())
        if self.depth != self._start_depth:
            logger.error("protocol violation: scope depth %d at shutdown, expected %d",
                         self.depth, self._start_depth)
        logger.info("solver session stopped")
        return status

    def _shutdown(self) -> None:
        if self._started:
            self.stop()

    def __enter__(self) -> SolverSession:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._started:
            self.stop()

    # -- I/O ---------------------------------------------------------------

    def write(self, line: str) -> None:
        if not self._started:
            raise session_error("solver not running")
        logger.debug("smt> %s", line)
        self.transport.send_line(line)
        self._log.append(line)

    def read(self) -> str:
        if not self._started:
            raise session_error("solver not running")
        answer = self.transport.receive_line()
        logger.debug("smt< %s", answer)
        return answer

    # -- scoping -----------------------------------------------------------

    def push(self) -> None:
        self.write("(push)")
        self.depth += 1

    def pop(self) -> None:
        if self.depth <= self._start_depth:
            raise session_error("pop without a matching push")
        self.write("(pop)")
        self.depth -= 1

    @contextmanager
    def scope(self) -> Iterator[SolverSession]:
        """Assertions made inside the block are discarded when it exits."""
        self.push()
        try:
            yield self
        finally:
            self.pop()

    def push_pop(self, body: Callable[[], T]) -> T:
        with self.scope():
            return body()
