"""Shared fixtures: a scripted stand-in for the solver."""

from __future__ import annotations

from collections import deque

import pytest

from refined.solver import SolverSession, Transport


class ScriptedTransport(Transport):
    """Answers each (check-sat) with the next scripted answer."""

    def __init__(self, answers=(), exit_status: int = 0):
        self.answers = deque(answers)
        self.exit_status = exit_status
        self.sent: list[str] = []
        self.pending: deque[str] = deque()
        self.opened = 0
        self.closed = 0

    def open(self) -> None:
        self.opened += 1

    def send_line(self, line: str) -> None:
        self.sent.append(line)
        if line == "(check-sat)":
            self.pending.append(self.answers.popleft() if self.answers else "unsat")

    def receive_line(self) -> str:
        return self.pending.popleft()

    def close(self) -> int:
        self.closed += 1
        return self.exit_status


@pytest.fixture
def make_session():
    """Build a session over a ScriptedTransport: make_session(answers, exit_status)."""
    sessions: list[SolverSession] = []

    def factory(answers=(), exit_status: int = 0, start: bool = True):
        transport = ScriptedTransport(answers, exit_status)
        session = SolverSession(transport)
        sessions.append(session)
        if start:
            session.start()
        return session, transport

    yield factory
    for session in sessions:
        if session.is_started:
            session.stop()
