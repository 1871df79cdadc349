"""Typed expression tree handed to the checker by the inference engine.

Every node carries its resolved type in ``ty``.  The shapes are closed:
variables, literals, calls, let-bindings, conditionals, function literals
and casts.  Conditionals and function literals are carried so that the
checker can reject them loudly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from refined.types import Type, TVar, T_INT, T_BOOL, RefinedType, t_fun


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass
class TypedExpr:
    ty: Type = field(default_factory=TVar)


@dataclass
class Var(TypedExpr):
    name: str = ""

    def __str__(self) -> str:
        return self.name


@dataclass
class BoolLit(TypedExpr):
    value: bool = False

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass
class IntLit(TypedExpr):
    value: int = 0

    def __str__(self) -> str:
        return str(self.value)


@dataclass
class Call(TypedExpr):
    callee: TypedExpr = field(default_factory=TypedExpr)
    args: list[TypedExpr] = field(default_factory=list)

    def __str__(self) -> str:
        name = self.callee.name if isinstance(self.callee, Var) else f"({self.callee})"
        if name in INFIX_OPERATORS and len(self.args) == 2:
            return f"({self.args[0]} {name} {self.args[1]})"
        if name == "unary-" and len(self.args) == 1:
            return f"-{self.args[0]}"
        return f"{name}({', '.join(str(a) for a in self.args)})"


@dataclass
class Let(TypedExpr):
    name: str = ""
    value: TypedExpr = field(default_factory=TypedExpr)
    body: TypedExpr = field(default_factory=TypedExpr)

    def __str__(self) -> str:
        return f"let {self.name} = {self.value} in {self.body}"


@dataclass
class If(TypedExpr):
    condition: TypedExpr = field(default_factory=TypedExpr)
    then_expr: TypedExpr = field(default_factory=TypedExpr)
    else_expr: TypedExpr = field(default_factory=TypedExpr)

    def __str__(self) -> str:
        return f"if {self.condition} then {self.then_expr} else {self.else_expr}"


@dataclass
class Fun(TypedExpr):
    """Function literal:  fun (x : int, y : int) -> x + y"""
    params: list[tuple[str, Type]] = field(default_factory=list)
    body: TypedExpr = field(default_factory=TypedExpr)

    def __str__(self) -> str:
        params = ", ".join(f"{name} : {ty}" for name, ty in self.params)
        return f"fun ({params}) -> {self.body}"


@dataclass
class Cast(TypedExpr):
    """Type ascription:  expr : {binder : target | predicate}"""
    expr: TypedExpr = field(default_factory=TypedExpr)
    target: Type = field(default_factory=TVar)
    predicate: Optional[TypedExpr] = None
    binder: Optional[str] = None

    def __str__(self) -> str:
        if self.predicate is None:
            return f"({self.expr} : {self.target})"
        binder = self.binder or "_"
        return f"({self.expr} : {{{binder} : {self.target} | {self.predicate}}})"


INFIX_OPERATORS = frozenset({
    "and", "or", "==", "!=", "<", ">", "<=", ">=", "+", "-", "*", "/",
})

_COMPARISONS = frozenset({"==", "!=", "<", ">", "<=", ">="})
_CONNECTIVES = frozenset({"and", "or"})


# Expression constructors
def E_VAR(name: str, ty: Type = T_INT) -> Var:
    return Var(ty=ty, name=name)

def E_INT(value: int) -> IntLit:
    return IntLit(ty=T_INT, value=value)

def E_BOOL(value: bool) -> BoolLit:
    return BoolLit(ty=T_BOOL, value=value)

def E_CALL(fn_name: str, args: list[TypedExpr], ty: Type) -> Call:
    callee_ty = t_fun([a.ty for a in args], RefinedType(ty))
    return Call(ty=ty, callee=Var(ty=callee_ty, name=fn_name), args=list(args))

def E_BINOP(op: str, left: TypedExpr, right: TypedExpr) -> Call:
    """Builtin binary operator; the result type follows from the operator."""
    ty = T_BOOL if op in _COMPARISONS or op in _CONNECTIVES else T_INT
    return E_CALL(op, [left, right], ty)

def E_NOT(operand: TypedExpr) -> Call:
    return E_CALL("not", [operand], T_BOOL)

def E_NEG(operand: TypedExpr) -> Call:
    return E_CALL("unary-", [operand], T_INT)

def E_LET(name: str, value: TypedExpr, body: TypedExpr) -> Let:
    return Let(ty=body.ty, name=name, value=value, body=body)

def E_CAST(expr: TypedExpr, target: Type, predicate: Optional[TypedExpr] = None,
           binder: Optional[str] = None) -> Cast:
    return Cast(ty=target, expr=expr, target=target, predicate=predicate, binder=binder)

def E_IF(condition: TypedExpr, then_expr: TypedExpr, else_expr: TypedExpr) -> If:
    return If(ty=then_expr.ty, condition=condition, then_expr=then_expr, else_expr=else_expr)

def E_FUN(params: list[tuple[str, Type]], body: TypedExpr) -> Fun:
    return Fun(ty=t_fun([t for _, t in params], body.ty), params=list(params), body=body)
