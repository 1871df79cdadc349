"""Base-type translation of scalar expressions to SMT-LIB2 terms.

Only int/bool expressions built from variables, literals and builtin
operators are handled here.  Any other call (uninterpreted functions,
primitives) and integer division go through the contract checker, which
discharges the callee's preconditions first.
"""

from __future__ import annotations

from typing import Mapping

from refined.ast_nodes import TypedExpr, Var, IntLit, BoolLit, Call
from refined.core import BUILTINS
from refined.errors import not_scalar, unsupported
from refined.types import Type, T_INT, T_BOOL, get_real_ty, is_scalar

# Maps refinement binder names to the solver term currently standing for them.
LocalEnv = Mapping[str, str]

OPAQUE_SORT = "Opaque"

# Builtins whose solver symbol differs from their source name.
BUILTIN_SYMBOLS = {
    "==": "=",
    "/": "div",
    "unary-": "-",
}


def translate_ty(ty: Type) -> str:
    real = get_real_ty(ty)
    if real == T_INT:
        return "Int"
    if real == T_BOOL:
        return "Bool"
    raise not_scalar(str(ty))


def solver_sort(ty: Type) -> str:
    """Solver sort for any value; non-scalar values are opaque."""
    return translate_ty(ty) if is_scalar(ty) else OPAQUE_SORT


def check_expr_ty(expr: TypedExpr) -> None:
    if not is_scalar(expr.ty):
        raise not_scalar(str(expr.ty))


def format_int(value: int) -> str:
    if value < 0:
        return f"(- {-value})"
    return str(value)


def format_bool(value: bool) -> str:
    return "true" if value else "false"


def resolve_name(local_env: LocalEnv, name: str) -> str:
    """A locally bound binder resolves to its term, anything else to itself."""
    return local_env.get(name, name)


def translate_builtin(fn: str, args: list[str]) -> str:
    args_string = " ".join(args)
    if fn == "unary-":
        return f"(- {args_string})"
    if fn == "!=":
        return f"(not (= {args_string}))"
    if fn == "==":
        return f"(= {args_string})"
    return f"({BUILTIN_SYMBOLS.get(fn, fn)} {args_string})"


class Translator:
    """Translates scalar builtin-only expressions."""

    def __init__(self, builtins: frozenset[str] = BUILTINS):
        self.builtins = builtins

    def translate(self, local_env: LocalEnv, expr: TypedExpr) -> str:
        check_expr_ty(expr)
        if isinstance(expr, Var):
            return resolve_name(local_env, expr.name)
        if isinstance(expr, IntLit):
            return format_int(expr.value)
        if isinstance(expr, BoolLit):
            return format_bool(expr.value)
        if isinstance(expr, Call) and isinstance(expr.callee, Var):
            fn_name = expr.callee.name
            if fn_name not in self.builtins:
                raise unsupported(f"call to non-builtin {fn_name} in a base-type term")
            if fn_name == "/":
                raise unsupported("division in a base-type term, its divisor must be checked")
            return translate_builtin(fn_name, [self.translate(local_env, a) for a in expr.args])
        raise unsupported(f"{type(expr).__name__} in a base-type term")

    def is_translatable(self, expr: TypedExpr) -> bool:
        """True when ``translate`` accepts the whole expression."""
        if not is_scalar(expr.ty):
            return False
        if isinstance(expr, (Var, IntLit, BoolLit)):
            return True
        if isinstance(expr, Call) and isinstance(expr.callee, Var):
            fn_name = expr.callee.name
            return (fn_name in self.builtins and fn_name != "/"
                    and all(self.is_translatable(a) for a in expr.args))
        return False
