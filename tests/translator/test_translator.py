"""Base-type translation: scalar expressions to SMT-LIB2 terms."""

import pytest

from refined.ast_nodes import E_VAR, E_INT, E_BOOL, E_CALL, E_BINOP, E_NOT, E_NEG, E_LET
from refined.errors import ErrorKind, VerificationError
from refined.translator import (
    Translator, format_int, solver_sort, translate_builtin, translate_ty,
)
from refined.types import TVar, T_INT, T_BOOL, T_UNIT, t_array


@pytest.fixture
def translator():
    return Translator()


class TestSorts:

    def test_scalar_sorts(self):
        assert translate_ty(T_INT) == "Int"
        assert translate_ty(T_BOOL) == "Bool"

    def test_linked_variable_follows_its_link(self):
        assert translate_ty(TVar("t", link=T_BOOL)) == "Bool"

    @pytest.mark.parametrize("ty", [T_UNIT, t_array(T_INT), TVar("t")])
    def test_non_scalar_is_type_error(self, ty):
        with pytest.raises(VerificationError) as exc:
            translate_ty(ty)
        assert exc.value.kind == ErrorKind.TYPE_ERROR

    def test_structured_values_are_opaque(self):
        assert solver_sort(t_array(T_INT)) == "Opaque"
        assert solver_sort(T_INT) == "Int"


class TestBuiltins:

    @pytest.mark.parametrize("fn,args,expected", [
        ("==", ["x", "y"], "(= x y)"),
        ("!=", ["x", "y"], "(not (= x y))"),
        ("unary-", ["x"], "(- x)"),
        ("/", ["x", "y"], "(div x y)"),
        ("and", ["p", "q"], "(and p q)"),
        ("not", ["p"], "(not p)"),
        ("<=", ["x", "5"], "(<= x 5)"),
        ("*", ["x", "y"], "(* x y)"),
    ])
    def test_translate_builtin(self, fn, args, expected):
        assert translate_builtin(fn, args) == expected


class TestTranslate:

    def test_literals(self, translator):
        assert translator.translate({}, E_INT(7)) == "7"
        assert translator.translate({}, E_BOOL(True)) == "true"
        assert translator.translate({}, E_BOOL(False)) == "false"

    def test_negative_literal(self, translator):
        assert translator.translate({}, E_INT(-3)) == "(- 3)"
        assert format_int(0) == "0"

    def test_bound_variable_resolves_to_its_term(self, translator):
        assert translator.translate({"x": "_i4"}, E_VAR("x")) == "_i4"

    def test_free_variable_is_its_own_name(self, translator):
        assert translator.translate({"x": "_i4"}, E_VAR("y")) == "y"

    def test_nested_operators(self, translator):
        expr = E_BINOP("and",
                       E_BINOP(">=", E_VAR("i"), E_INT(0)),
                       E_NOT(E_BINOP("==", E_NEG(E_VAR("i")), E_INT(1))))
        assert translator.translate({"i": "_i0"}, expr) == \
            "(and (>= _i0 0) (not (= (- _i0) 1)))"

    def test_non_builtin_call_is_unsupported(self, translator):
        expr = E_BINOP("<", E_VAR("i"), E_CALL("length", [E_VAR("a", t_array(T_INT))], T_INT))
        with pytest.raises(VerificationError) as exc:
            translator.translate({}, expr)
        assert exc.value.kind == ErrorKind.UNSUPPORTED
        assert not translator.is_translatable(expr)

    def test_division_goes_through_the_checker(self, translator):
        expr = E_BINOP("/", E_INT(4), E_INT(2))
        with pytest.raises(VerificationError) as exc:
            translator.translate({}, expr)
        assert exc.value.kind == ErrorKind.UNSUPPORTED
        assert not translator.is_translatable(expr)

    def test_let_is_unsupported(self, translator):
        with pytest.raises(VerificationError) as exc:
            translator.translate({}, E_LET("x", E_INT(1), E_VAR("x")))
        assert exc.value.kind == ErrorKind.UNSUPPORTED

    def test_non_scalar_expression_is_type_error(self, translator):
        with pytest.raises(VerificationError) as exc:
            translator.translate({}, E_VAR("a", t_array(T_INT)))
        assert exc.value.kind == ErrorKind.TYPE_ERROR

    def test_is_translatable(self, translator):
        assert translator.is_translatable(E_BINOP("+", E_VAR("x"), E_INT(1)))
        assert not translator.is_translatable(E_VAR("a", t_array(T_INT)))

    def test_custom_builtin_set(self):
        translator = Translator(frozenset({"+"}))
        with pytest.raises(VerificationError):
            translator.translate({}, E_BINOP("-", E_INT(2), E_INT(1)))
