"""JSON interchange for typed expressions, types and extra signatures.

The inference engine hands its output over as JSON:

    {"let": "a",
     "value": {"call": "alloc", "args": [{"int": 5}], "type": {"app": "array", "args": ["int"]}},
     "body": {"call": "get", "args": [{"var": "a", "type": {"app": "array", "args": ["int"]}},
                                      {"int": 3}],
              "type": "int"}}

Types: "int", "bool", any other name, {"app": name, "args": [...]},
{"var": name} and arrows {"params": [slot, ...], "ret": slot}, where a slot
is a type or {"type": ..., "binder": name, "predicate": expr}.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from refined.ast_nodes import (
    TypedExpr, Var, Call,
    E_INT, E_BOOL, E_LET, E_CAST, E_IF, E_FUN,
)
from refined.core import core_env
from refined.env import Environment
from refined.errors import input_error
from refined.types import (
    Type, TConst, TApp, TArrow, TVar, RefinedType, Refinement,
    T_INT, T_BOOL, t_fun,
)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

def type_from_json(data: Any) -> Type:
    if isinstance(data, str):
        if data == "int":
            return T_INT
        if data == "bool":
            return T_BOOL
        return TConst(data)
    if isinstance(data, dict):
        if "app" in data:
            return TApp(str(data["app"]), tuple(type_from_json(a) for a in data.get("args", [])))
        if "var" in data:
            return TVar(str(data["var"]))
        if "params" in data:
            params = tuple(slot_from_json(p) for p in data["params"])
            return TArrow(params, slot_from_json(data.get("ret", "unit")))
    raise input_error(f"malformed type: {data!r}")


def slot_from_json(data: Any) -> RefinedType:
    if isinstance(data, dict) and "type" in data:
        ty = type_from_json(data["type"])
        binder = data.get("binder")
        if binder is None:
            return RefinedType(ty)
        predicate = data.get("predicate")
        return RefinedType(ty, Refinement(str(binder),
                                          expr_from_json(predicate) if predicate is not None else None))
    return RefinedType(type_from_json(data))


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

def _field(data: dict, key: str) -> Any:
    if key not in data:
        raise input_error(f"expression {sorted(data)} is missing '{key}'")
    return data[key]


def expr_from_json(data: Any) -> TypedExpr:
    if not isinstance(data, dict):
        raise input_error(f"malformed expression: {data!r}")

    if "int" in data:
        value = data["int"]
        if isinstance(value, bool) or not isinstance(value, int):
            raise input_error(f"integer literal expected, got {value!r}")
        return E_INT(value)
    if "bool" in data:
        if not isinstance(data["bool"], bool):
            raise input_error(f"boolean literal expected, got {data['bool']!r}")
        return E_BOOL(data["bool"])
    if "var" in data:
        return Var(ty=type_from_json(data.get("type", "int")), name=str(data["var"]))
    if "call" in data:
        args = [expr_from_json(a) for a in data.get("args", [])]
        ty = type_from_json(_field(data, "type"))
        callee_ty = t_fun([a.ty for a in args], ty)
        return Call(ty=ty, callee=Var(ty=callee_ty, name=str(data["call"])), args=args)
    if "let" in data:
        return E_LET(str(data["let"]), expr_from_json(_field(data, "value")),
                     expr_from_json(_field(data, "body")))
    if "cast" in data:
        predicate = data.get("predicate")
        return E_CAST(
            expr_from_json(data["cast"]),
            type_from_json(_field(data, "type")),
            predicate=expr_from_json(predicate) if predicate is not None else None,
            binder=data.get("binder"),
        )
    if "if" in data:
        return E_IF(expr_from_json(data["if"]), expr_from_json(_field(data, "then")),
                    expr_from_json(_field(data, "else")))
    if "fun" in data:
        params = [(str(name), type_from_json(ty)) for name, ty in data["fun"]]
        return E_FUN(params, expr_from_json(_field(data, "body")))
    raise input_error(f"unknown expression shape: {sorted(data)}")


def env_from_json(data: Any, base: Optional[Environment] = None) -> Environment:
    """Extend ``base`` (the core environment by default) with signatures."""
    if not isinstance(data, dict):
        raise input_error("signatures must be a JSON object of name -> slot")
    env = base if base is not None else core_env()
    for name, slot in data.items():
        env = env.extend(str(name), slot_from_json(slot))
    return env


def _read_json(path: str) -> Any:
    try:
        with open(path, "r") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise input_error(f"cannot read {path}: {e}")


def load_expr(path: str) -> TypedExpr:
    return expr_from_json(_read_json(path))


def load_env(path: str, base: Optional[Environment] = None) -> Environment:
    return env_from_json(_read_json(path), base)


__all__ = [
    "type_from_json", "slot_from_json", "expr_from_json", "env_from_json",
    "load_expr", "load_env",
]
