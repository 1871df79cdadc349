"""Top-level verification of one typed expression.

    prove(expr)   raises VerificationError on the first failed obligation
    verify(expr)  returns a VerificationResult instead of raising
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from refined.ast_nodes import TypedExpr
from refined.checker import ContractChecker
from refined.config import ProverConfig
from refined.env import Environment
from refined.errors import VerificationError
from refined.solver import SolverSession

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    verified: bool
    error: Optional[VerificationError] = None
    transcript: list[str] = field(default_factory=list)

    def to_dict(self, with_transcript: bool = False) -> dict[str, Any]:
        d: dict[str, Any] = {"status": "verified" if self.verified else "failed"}
        if self.error is not None:
            d["error"] = self.error.to_dict()
        if with_transcript:
            d["transcript"] = self.transcript
        return d


def prove(expr: TypedExpr, env: Optional[Environment] = None,
          session: Optional[SolverSession] = None,
          config: Optional[ProverConfig] = None) -> None:
    """Discharge every contract in ``expr``.

    Runs inside one top-level solver scope that is closed whatever the
    outcome.  A session passed in is left running for the caller to reuse;
    one created here is stopped before returning.
    """
    owns_session = session is None
    if session is None:
        session = SolverSession.from_config(config or ProverConfig())
    checker = ContractChecker(session, env)

    session.start()
    try:
        with session.scope():
            checker.declare_run_symbols()
            checker.check_expr(False, {}, expr)
        logger.debug("verified %s", expr)
    finally:
        if owns_session:
            session.stop()


def verify(expr: TypedExpr, env: Optional[Environment] = None,
           session: Optional[SolverSession] = None,
           config: Optional[ProverConfig] = None) -> VerificationResult:
    owns_session = session is None
    if session is None:
        session = SolverSession.from_config(config or ProverConfig())
    try:
        prove(expr, env=env, session=session)
    except VerificationError as e:
        logger.info("verification failed: %s", e)
        return VerificationResult(False, e, session.transcript)
    finally:
        if owns_session and session.is_started:
            session.stop()
    return VerificationResult(True, None, session.transcript)
