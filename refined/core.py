"""Core signature table: builtins, uninterpreted symbols and primitives.

  builtins: operators with a fixed translation to solver syntax.
      Integer division carries a precondition on its divisor.
  uninterpreted: opaque functions the solver knows only through their
      contracts (declared as SMT functions, so equal arguments
      give equal results).
  primitives: opaque library operations (array access/allocation,
      pairs, lists) modelled by fresh results plus their
      postconditions.

Signatures are written directly as structured refined types, e.g.

    get : forall[t] (a : array[t], i : int if i >= 0 and i < length(a)) -> t
"""

from __future__ import annotations

from typing import Optional

from refined.ast_nodes import TypedExpr, E_VAR, E_INT, E_CALL, E_BINOP
from refined.env import Environment
from refined.types import (
    Type, TVar, RefinedType, Refinement,
    T_INT, T_BOOL, T_UNIT, T_BYTE,
    t_array, t_pair, t_list, t_fun,
)


def _slot(ty: Type, binder: Optional[str] = None, predicate: Optional[TypedExpr] = None) -> RefinedType:
    if binder is None:
        return RefinedType(ty)
    return RefinedType(ty, Refinement(binder, predicate))


def _length(name: str, elem: Type) -> TypedExpr:
    return E_CALL("length", [E_VAR(name, t_array(elem))], T_INT)


def _and(left: TypedExpr, right: TypedExpr) -> TypedExpr:
    return E_BINOP("and", left, right)


# ---------------------------------------------------------------------------
# Builtins
# ---------------------------------------------------------------------------

def _builtins() -> dict[str, RefinedType]:
    int2_int = t_fun([T_INT, T_INT], T_INT)
    int2_bool = t_fun([T_INT, T_INT], T_BOOL)
    bool2_bool = t_fun([T_BOOL, T_BOOL], T_BOOL)
    eq_a, ne_a = TVar("a"), TVar("a")
    i = E_VAR("i")
    return {
        "not": RefinedType(t_fun([T_BOOL], T_BOOL)),
        "and": RefinedType(bool2_bool),
        "or": RefinedType(bool2_bool),

        "==": RefinedType(t_fun([eq_a, eq_a], T_BOOL)),
        "!=": RefinedType(t_fun([ne_a, ne_a], T_BOOL)),

        "<": RefinedType(int2_bool),
        ">": RefinedType(int2_bool),
        "<=": RefinedType(int2_bool),
        ">=": RefinedType(int2_bool),

        "+": RefinedType(int2_int),
        "-": RefinedType(int2_int),
        "*": RefinedType(int2_int),
        "/": RefinedType(t_fun(
            [T_INT, _slot(T_INT, "i", E_BINOP("!=", i, E_INT(0)))],
            T_INT,
        )),
        "unary-": RefinedType(t_fun([T_INT], T_INT)),
    }


# ---------------------------------------------------------------------------
# Uninterpreted symbols
# ---------------------------------------------------------------------------

def _uninterpreted() -> dict[str, RefinedType]:
    t = TVar("t")
    return {
        "length": RefinedType(t_fun(
            [_slot(t_array(t), "a")],
            _slot(T_INT, "l", E_BINOP(">=", E_VAR("l"), E_INT(0))),
        )),
        "is_prime": RefinedType(t_fun(
            [_slot(T_INT, "i", E_BINOP(">=", E_VAR("i"), E_INT(1)))],
            T_BOOL,
        )),
    }


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------

def _primitives() -> dict[str, RefinedType]:
    sigs: dict[str, RefinedType] = {}

    t = TVar("t")
    i = E_VAR("i")
    sigs["get"] = RefinedType(t_fun(
        [
            _slot(t_array(t), "a"),
            _slot(T_INT, "i", _and(
                E_BINOP(">=", i, E_INT(0)),
                E_BINOP("<", i, _length("a", t)),
            )),
        ],
        t,
    ))

    t = TVar("t")
    sigs["alloc"] = RefinedType(t_fun(
        [_slot(T_INT, "i")],
        _slot(t_array(t), "a", E_BINOP("==", _length("a", t), E_VAR("i"))),
    ))

    num = E_VAR("num")
    sigs["memcpy"] = RefinedType(t_fun(
        [
            _slot(t_array(T_BYTE), "dst"),
            _slot(t_array(T_BYTE), "src"),
            _slot(T_INT, "num", _and(
                E_BINOP("<=", num, _length("dst", T_BYTE)),
                E_BINOP("<=", num, _length("src", T_BYTE)),
            )),
        ],
        T_UNIT,
    ))

    t = TVar("t")
    sigs["head"] = RefinedType(t_fun(
        [_slot(t_array(t), "a", E_BINOP(">", _length("a", t), E_INT(0)))],
        t,
    ))

    t = TVar("t")
    sigs["is_empty"] = RefinedType(t_fun(
        [_slot(t_array(t), "a")],
        _slot(T_BOOL, "b", E_BINOP(
            "==", E_VAR("b", T_BOOL), E_BINOP("==", _length("a", t), E_INT(0)),
        )),
    ))

    j = E_VAR("j")
    sigs["fac"] = RefinedType(t_fun(
        [_slot(T_INT, "i", E_BINOP(">=", i, E_INT(0)))],
        _slot(T_INT, "j", _and(E_BINOP(">", j, E_INT(0)), E_BINOP(">=", j, i))),
    ))
    sigs["succ"] = RefinedType(t_fun(
        [_slot(T_INT, "i")],
        _slot(T_INT, "j", E_BINOP("==", j, E_BINOP("+", i, E_INT(1)))),
    ))

    a, b = TVar("a"), TVar("b")
    sigs["make_const"] = RefinedType(t_fun(
        [_slot(a, "x")],
        t_fun([b], _slot(a, "y", E_BINOP("==", E_VAR("y", a), E_VAR("x", a)))),
    ))

    t, s = TVar("t"), TVar("s")
    sigs["pair"] = RefinedType(t_fun([t, s], t_pair(t, s)))
    t, s = TVar("t"), TVar("s")
    sigs["first"] = RefinedType(t_fun([t_pair(t, s)], t))
    t, s = TVar("t"), TVar("s")
    sigs["second"] = RefinedType(t_fun([t_pair(t, s)], s))
    a = TVar("a")
    sigs["id"] = RefinedType(t_fun([a], a))

    a = TVar("a")
    sigs["cons"] = RefinedType(t_fun([a, t_list(a)], t_list(a)))
    a = TVar("a")
    sigs["cons_curry"] = RefinedType(t_fun([a], t_fun([t_list(a)], t_list(a))))
    sigs["nil"] = RefinedType(t_list(TVar("a")))
    a = TVar("a")
    sigs["choose"] = RefinedType(t_fun([a, a], a))
    a = TVar("a")
    sigs["choose_curry"] = RefinedType(t_fun([a], t_fun([a], a)))

    return sigs


BUILTIN_SIGNATURES = _builtins()
UNINTERPRETED_SIGNATURES = _uninterpreted()
PRIMITIVE_SIGNATURES = _primitives()

BUILTINS = frozenset(BUILTIN_SIGNATURES)
UNINTERPRETED = frozenset(UNINTERPRETED_SIGNATURES)
PRIMITIVES = frozenset(PRIMITIVE_SIGNATURES)


def core_env() -> Environment:
    """The environment every verification run starts from."""
    entries: dict[str, RefinedType] = {}
    for table in (BUILTIN_SIGNATURES, UNINTERPRETED_SIGNATURES, PRIMITIVE_SIGNATURES):
        entries.update(table)
    return Environment(entries)
