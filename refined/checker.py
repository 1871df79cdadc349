"""Contract checker: turns a typed expression into solver commands.

The checker walks the typed expression and, for every refinement it meets,
either PROVES it or ASSUMES it:

  - preconditions on call arguments and predicates attached to casts are
    proved: the negation is asserted in a fresh scope and the solver must
    answer "unsat";
  - postconditions on a callee's return refinement are assumed: they are
    asserted as facts about the call's fresh result variable, which is how
    "length(alloc(n)) == n" reaches later preconditions.

Swapping the two would change what the checker guarantees.

Intermediate values get fresh solver names "_" + tag + counter, where the
tag is the first letter of the scalar type ("_i0", "_b3").  Values of
structured types are opaque handles ("_o0") of one uninterpreted sort.
Uninterpreted functions are declared to the solver as SMT functions so
that two calls on equal arguments denote equal values.

Binding maps (binder name -> solver term) never leak: arguments are
evaluated under the caller's map, callee contracts under a map holding only
the callee's own binders.
"""

from __future__ import annotations

import logging
from typing import Optional

from refined.ast_nodes import TypedExpr, Var, IntLit, BoolLit, Call, Let, Cast
from refined.core import BUILTINS, UNINTERPRETED, core_env
from refined.env import Environment
from refined.errors import (
    ErrorKind, VerificationError, not_a_function, not_scalar, proof_error, solver_error, unsupported,
)
from refined.solver import SolverSession
from refined.translator import (
    LocalEnv, OPAQUE_SORT, Translator,
    check_expr_ty, format_bool, format_int, resolve_name, solver_sort, translate_builtin,
)
from refined.types import Type, TArrow, TConst, TVar, get_real_ty, is_scalar

logger = logging.getLogger(__name__)

OPAQUE_TAG = "o"


class ContractChecker:
    """Checks one typed expression against the contracts of an environment.

    One checker serves one verification run; its fresh-name counters are
    never reset.
    """

    def __init__(self, session: SolverSession, env: Optional[Environment] = None,
                 builtins: frozenset[str] = BUILTINS,
                 uninterpreted: frozenset[str] = UNINTERPRETED):
        self.session = session
        self.env = env if env is not None else core_env()
        self.builtins = frozenset(builtins)
        self.uninterpreted = frozenset(uninterpreted)
        self.translator = Translator(self.builtins)
        self.var_map: dict[str, int] = {}

        for name in sorted(self.uninterpreted):
            if not isinstance(get_real_ty(self.env.lookup(name).ty), TArrow):
                raise VerificationError(
                    ErrorKind.SIGNATURE_ERROR,
                    f"uninterpreted symbol {name} is not a function",
                    details={"name": name},
                )

    # -----------------------------------------------------------------------
    # Declarations
    # -----------------------------------------------------------------------

    def _signature(self, name: str) -> TArrow:
        signature = get_real_ty(self.env.lookup(name).ty)
        if not isinstance(signature, TArrow):
            raise not_a_function(name, str(signature))
        return signature

    def declare_var(self, name: str, ty: Type) -> None:
        self.session.write(f"(declare-const {name} {solver_sort(ty)})")

    def _next_name(self, tag: str) -> str:
        number = self.var_map.get(tag, 0)
        self.var_map[tag] = number + 1
        return f"_{tag}{number}"

    def declare_new_var(self, ty: Type) -> str:
        """Declare a fresh scalar variable: _i0, _i1, ... / _b0, ..."""
        real = get_real_ty(ty)
        if not (isinstance(real, TConst) and is_scalar(real)):
            raise not_scalar(str(ty))
        var_name = self._next_name(real.name[0])
        self.declare_var(var_name, real)
        return var_name

    def declare_new_handle(self, ty: Type) -> str:
        """Declare a fresh opaque value of a structured type."""
        var_name = self._next_name(OPAQUE_TAG)
        self.declare_var(var_name, ty)
        return var_name

    def declare_result(self, ty: Type) -> str:
        if is_scalar(ty):
            return self.declare_new_var(ty)
        return self.declare_new_handle(ty)

    def declare_run_symbols(self) -> None:
        """Declare what every expression of this run may refer to.

        The opaque sort, one SMT function per uninterpreted symbol, and one
        constant per non-function value of the environment (whose own
        refinement is assumed).
        """
        self.session.write(f"(declare-sort {OPAQUE_SORT} 0)")
        for name in sorted(self.uninterpreted):
            signature = self._signature(name)
            param_sorts = " ".join(solver_sort(p.ty) for p in signature.params)
            self.session.write(f"(declare-fun {name} ({param_sorts}) {solver_sort(signature.ret.ty)})")
        for name in self.env:
            if name in self.builtins or name in self.uninterpreted:
                continue
            refined_ty = self.env.lookup(name)
            if isinstance(get_real_ty(refined_ty.ty), TArrow):
                continue
            self.declare_var(name, refined_ty.ty)
            if refined_ty.binder is not None and refined_ty.predicate is not None:
                self.assume(self._translate_predicate({refined_ty.binder: name}, refined_ty.predicate))

    def assume(self, term: str) -> None:
        self.session.write(f"(assert {term})")

    # -----------------------------------------------------------------------
    # Proof obligations
    # -----------------------------------------------------------------------

    def _translate_predicate(self, local_env: LocalEnv, predicate: TypedExpr) -> str:
        check_expr_ty(predicate)
        if self.translator.is_translatable(predicate):
            return self.translator.translate(local_env, predicate)
        # Calls inside the predicate emit their own declarations here,
        # outside the proof scope, so the facts they carry stay visible.
        return self.check_expr(False, local_env, predicate)

    def check_contract(self, local_env: LocalEnv, predicate: TypedExpr) -> None:
        """Prove ``predicate`` under the current assertions."""
        term = self._translate_predicate(local_env, predicate)

        def query() -> None:
            self.session.write(f"(assert (not {term}))")
            self.session.write("(check-sat)")

        self.session.push_pop(query)
        answer = self.session.read()
        if answer.startswith("(error"):
            raise solver_error(f"solver rejected query: {answer}", predicate=term)
        if answer != "unsat":
            logger.debug("obligation %s failed: %s", predicate, answer)
            raise proof_error(term, answer)
        logger.debug("obligation %s proved", predicate)

    # -----------------------------------------------------------------------
    # Expressions
    # -----------------------------------------------------------------------

    def check_expr(self, simple: bool, local_env: LocalEnv, expr: TypedExpr) -> str:
        """Check ``expr`` and return the solver term for its value.

        In simple mode a builtin call is bound to a fresh variable so the
        caller gets a name back rather than a compound term.
        """
        if isinstance(expr, Var):
            return resolve_name(local_env, expr.name)
        if isinstance(expr, BoolLit):
            return format_bool(expr.value)
        if isinstance(expr, IntLit):
            return format_int(expr.value)
        if isinstance(expr, Cast):
            return self._check_cast(simple, local_env, expr)
        if isinstance(expr, Let):
            self.declare_var(expr.name, expr.value.ty)
            translated_value = self.check_expr(False, local_env, expr.value)
            self.assume(f"(= {expr.name} {translated_value})")
            return self.check_expr(simple, local_env, expr.body)
        if isinstance(expr, Call):
            if not isinstance(expr.callee, Var):
                raise unsupported(f"call of a computed function {expr.callee}")
            return self._check_call(simple, local_env, expr.callee.name, expr)
        raise unsupported(type(expr).__name__)

    def _check_cast(self, simple: bool, local_env: LocalEnv, expr: Cast) -> str:
        translated = self.check_expr(simple, local_env, expr.expr)
        if expr.predicate is None:
            return translated
        if not is_scalar(expr.target):
            raise not_scalar(str(expr.target))
        contract_env = dict(local_env)
        if expr.binder is not None:
            contract_env[expr.binder] = translated
        self.check_contract(contract_env, expr.predicate)
        return translated

    def _check_call(self, simple: bool, local_env: LocalEnv, fn_name: str, expr: Call) -> str:
        signature = self._signature(fn_name)
        if len(signature.params) != len(expr.args):
            raise VerificationError(
                ErrorKind.SIGNATURE_ERROR,
                f"{fn_name} expects {len(signature.params)} arguments, got {len(expr.args)}",
                details={"name": fn_name},
            )

        callee_env: dict[str, str] = {}
        translated_args: list[str] = []
        for param, arg in zip(signature.params, expr.args):
            if param.binder is None:
                translated_arg = self.check_expr(False, local_env, arg)
            else:
                translated_arg = self.check_expr(True, local_env, arg)
                callee_env[param.binder] = translated_arg
                if param.predicate is not None:
                    self.check_contract(callee_env, param.predicate)
            translated_args.append(translated_arg)

        return_ty = self._result_type(expr, signature)
        if fn_name in self.builtins:
            translated_expr = translate_builtin(fn_name, translated_args)
            if not simple:
                return translated_expr
            var_name = self.declare_new_var(return_ty)
            self.assume(f"(= {var_name} {translated_expr})")
            return var_name

        var_name = self.declare_result(return_ty)
        if fn_name in self.uninterpreted:
            application = f"({fn_name} {' '.join(translated_args)})" if translated_args else fn_name
            self.assume(f"(= {var_name} {application})")
        ret = signature.ret
        if ret.binder is not None and ret.predicate is not None:
            post_env = dict(callee_env)
            post_env[ret.binder] = var_name
            self.assume(self._translate_predicate(post_env, ret.predicate))
        return var_name

    @staticmethod
    def _result_type(expr: Call, signature: TArrow) -> Type:
        """The call node's instantiated type, else the declared return type."""
        real = get_real_ty(expr.ty)
        if isinstance(real, TVar):
            return signature.ret.ty
        return real
