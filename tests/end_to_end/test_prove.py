"""End-to-end verification against z3, in-process and as a subprocess."""

import shutil

import pytest

from refined import prove, verify
from refined.ast_nodes import E_VAR, E_INT, E_BOOL, E_CALL, E_BINOP, E_LET, E_CAST, E_IF
from refined.config import ProverConfig
from refined.core import core_env
from refined.errors import ErrorKind, VerificationError
from refined.solver import ProcessTransport, SolverSession, Z3ApiTransport
from refined.types import RefinedType, Refinement, T_INT, T_BOOL, T_BYTE, T_UNIT, t_array, t_pair

API = ProverConfig(transport="api")


def holds(expr):
    """Cast a boolean expression to {b : bool | b}."""
    return E_CAST(expr, T_BOOL, E_VAR("b", T_BOOL), "b")


def alloc(n, elem=T_INT):
    return E_CALL("alloc", [E_INT(n)], t_array(elem))


def array_var(name, elem=T_INT):
    return E_VAR(name, t_array(elem))


def assert_fails(expr, kind=ErrorKind.PROOF_FAILED, env=None):
    with pytest.raises(VerificationError) as exc:
        prove(expr, env=env, config=API)
    assert exc.value.kind == kind
    return exc.value


class TestCasts:

    def test_non_negative_literal(self):
        prove(E_CAST(E_INT(5), T_INT, E_BINOP(">=", E_VAR("v"), E_INT(0)), "v"), config=API)

    def test_negative_literal_fails(self):
        err = assert_fails(E_CAST(E_INT(-1), T_INT, E_BINOP(">=", E_VAR("v"), E_INT(0)), "v"))
        assert err.details["answer"] == "sat"

    def test_false_literal_cast_fails(self):
        assert_fails(holds(E_BOOL(False)))

    def test_arithmetic_fact(self):
        prove(holds(E_BINOP("==", E_BINOP("*", E_INT(6), E_INT(7)), E_INT(42))), config=API)


class TestDivision:

    def test_division_by_zero(self):
        assert_fails(E_BINOP("/", E_INT(10), E_INT(0)))

    def test_division_by_nonzero(self):
        prove(E_BINOP("/", E_INT(10), E_INT(2)), config=API)

    def test_let_bound_divisor(self):
        expr = E_LET("d", E_INT(0), E_BINOP("/", E_INT(1), E_VAR("d")))
        assert_fails(expr)

    def test_integer_division_semantics(self):
        expr = E_LET("q", E_BINOP("/", E_INT(7), E_INT(2)),
                     holds(E_BINOP("==", E_VAR("q"), E_INT(3))))
        prove(expr, config=API)


class TestArrays:

    def test_get_within_bounds(self):
        expr = E_LET("a", alloc(5), E_CALL("get", [array_var("a"), E_INT(3)], T_INT))
        prove(expr, config=API)

    def test_get_past_the_end(self):
        assert_fails(E_LET("a", alloc(5), E_CALL("get", [array_var("a"), E_INT(10)], T_INT)))

    def test_get_at_negative_index(self):
        assert_fails(E_LET("a", alloc(5), E_CALL("get", [array_var("a"), E_INT(-1)], T_INT)))

    def test_get_at_length_is_out_of_bounds(self):
        assert_fails(E_LET("a", alloc(5), E_CALL("get", [array_var("a"), E_INT(5)], T_INT)))

    def test_length_of_fresh_allocation(self):
        expr = E_LET("a", alloc(4),
                     holds(E_BINOP("==", E_CALL("length", [array_var("a")], T_INT), E_INT(4))))
        prove(expr, config=API)

    def test_head_of_empty_array(self):
        assert_fails(E_CALL("head", [alloc(0)], T_INT))

    def test_head_of_non_empty_array(self):
        prove(E_CALL("head", [alloc(1)], T_INT), config=API)

    def test_is_empty_follows_length(self):
        expr = holds(E_CALL("is_empty", [alloc(0)], T_BOOL))
        prove(expr, config=API)

    def test_memcpy_within_both_arrays(self):
        expr = E_LET("d", alloc(10, T_BYTE),
                     E_LET("s", alloc(8, T_BYTE),
                           E_CALL("memcpy", [array_var("d", T_BYTE), array_var("s", T_BYTE), E_INT(8)],
                                  T_UNIT)))
        prove(expr, config=API)

    def test_memcpy_past_the_source(self):
        expr = E_LET("d", alloc(10, T_BYTE),
                     E_LET("s", alloc(8, T_BYTE),
                           E_CALL("memcpy", [array_var("d", T_BYTE), array_var("s", T_BYTE), E_INT(9)],
                                  T_UNIT)))
        assert_fails(expr)


class TestFunctionContracts:

    def test_succ_postcondition(self):
        prove(holds(E_BINOP("==", E_CALL("succ", [E_INT(3)], T_INT), E_INT(4))), config=API)

    def test_fac_postcondition(self):
        prove(holds(E_BINOP(">=", E_CALL("fac", [E_INT(5)], T_INT), E_INT(5))), config=API)

    def test_fac_precondition(self):
        assert_fails(E_CALL("fac", [E_INT(-2)], T_INT))

    def test_is_prime_precondition(self):
        assert_fails(E_CALL("is_prime", [E_INT(0)], T_BOOL))
        prove(E_CALL("is_prime", [E_INT(2)], T_BOOL), config=API)

    def test_uninterpreted_calls_are_congruent(self):
        expr = holds(E_BINOP("==",
                             E_CALL("is_prime", [E_INT(7)], T_BOOL),
                             E_CALL("is_prime", [E_INT(7)], T_BOOL)))
        prove(expr, config=API)

    def test_pairs_are_opaque(self):
        pair = E_CALL("pair", [E_INT(1), E_INT(2)], t_pair(T_INT, T_INT))
        assert_fails(holds(E_BINOP("==", E_CALL("first", [pair], T_INT), E_INT(1))))

    def test_environment_refinement_is_assumed(self):
        env = core_env().extend("n", RefinedType(T_INT, Refinement("k", E_BINOP(">", E_VAR("k"), E_INT(0)))))
        prove(E_BINOP("/", E_INT(100), E_VAR("n")), env=env, config=API)

    def test_conditional_is_rejected(self):
        assert_fails(E_IF(E_BOOL(True), E_INT(1), E_INT(2)), kind=ErrorKind.UNSUPPORTED)


class TestVerify:

    def test_verified_result(self):
        result = verify(E_BINOP("/", E_INT(10), E_INT(2)), config=API)
        assert result.verified
        assert result.to_dict() == {"status": "verified"}
        assert "(check-sat)" in result.transcript

    def test_failed_result(self):
        result = verify(E_BINOP("/", E_INT(10), E_INT(0)), config=API)
        assert not result.verified
        d = result.to_dict(with_transcript=True)
        assert d["status"] == "failed"
        assert d["error"]["kind"] == "proof_failed"
        assert d["transcript"] == result.transcript

    def test_session_is_reusable_across_runs(self):
        session = SolverSession(Z3ApiTransport())
        session.start()
        try:
            assert not verify(E_BINOP("/", E_INT(1), E_INT(0)), session=session).verified
            assert session.depth == 0
            # A second run redeclares the same fresh names in a new scope.
            assert verify(E_BINOP("/", E_INT(1), E_INT(1)), session=session).verified
            assert session.is_started
        finally:
            session.stop()
        assert session.exit_status == 0


REDECLARED_LET = E_LET("x", E_INT(1), E_LET("x", E_INT(2), E_VAR("x")))


class TestRejectedCommands:

    def test_redeclared_name_is_a_solver_error(self):
        assert_fails(REDECLARED_LET, kind=ErrorKind.SOLVER_ERROR)


@pytest.mark.skipif(shutil.which("z3") is None, reason="z3 binary not on PATH")
class TestProcessTransport:

    PROCESS = ProverConfig(transport="process")

    def run(self, expr):
        prove(expr, config=self.PROCESS)

    def fails(self, expr, kind=ErrorKind.PROOF_FAILED):
        with pytest.raises(VerificationError) as exc:
            self.run(expr)
        assert exc.value.kind == kind

    def test_get_within_bounds(self):
        self.run(E_LET("a", alloc(5), E_CALL("get", [array_var("a"), E_INT(3)], T_INT)))

    def test_get_past_the_end(self):
        self.fails(E_LET("a", alloc(5), E_CALL("get", [array_var("a"), E_INT(10)], T_INT)))

    def test_division_by_zero(self):
        self.fails(E_BINOP("/", E_INT(10), E_INT(0)))

    def test_redeclared_name_is_a_solver_error(self):
        self.fails(REDECLARED_LET, kind=ErrorKind.SOLVER_ERROR)

    def test_session_is_reusable_across_runs(self):
        session = SolverSession(ProcessTransport())
        session.start()
        try:
            assert not verify(E_BINOP("/", E_INT(1), E_INT(0)), session=session).verified
            result = verify(REDECLARED_LET, session=session)
            assert result.error.kind == ErrorKind.SOLVER_ERROR
            # nothing from the rejected run is left in the pipe
            assert verify(E_BINOP("/", E_INT(1), E_INT(1)), session=session).verified
            assert session.depth == 0
        finally:
            assert session.stop() == 0
