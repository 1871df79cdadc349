"""Type representations consumed by the contract checker.

Types arrive fully inferred from the upstream inference engine:
  - named constants:       int, bool, unit, byte
  - parametric application: array[int], pair[int, bool]
  - function arrows whose parameter and return slots carry refinements:
        (a : array[t], i : int if i >= 0 and i < length(a)) -> t
  - inference variables, possibly linked to the type they were unified with

Only the scalar constants ``int`` and ``bool`` are translated to solver
sorts.  Every other type is opaque to the checker.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from refined.ast_nodes import TypedExpr


# ---------------------------------------------------------------------------
# Type Representations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Type:
    """Base type."""
    def __str__(self) -> str:
        return "?"


@dataclass(frozen=True)
class TConst(Type):
    name: str = ""

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class TApp(Type):
    name: str = ""
    args: tuple[Type, ...] = ()

    def __str__(self) -> str:
        args_str = ", ".join(str(a) for a in self.args)
        return f"{self.name}[{args_str}]"


@dataclass(frozen=True)
class Refinement:
    """A refinement clause: a binder and an optional predicate over it.

    The predicate may also mention binders introduced by earlier
    parameters of the same signature.
    """
    binder: str
    predicate: Optional[TypedExpr] = None

    def __str__(self) -> str:
        if self.predicate is None:
            return self.binder
        return f"{self.binder} if {self.predicate}"


@dataclass(frozen=True)
class RefinedType:
    ty: Type
    refinement: Optional[Refinement] = None

    @property
    def binder(self) -> Optional[str]:
        return self.refinement.binder if self.refinement else None

    @property
    def predicate(self) -> Optional[TypedExpr]:
        return self.refinement.predicate if self.refinement else None

    def __str__(self) -> str:
        if self.refinement is None:
            return str(self.ty)
        if self.refinement.predicate is None:
            return f"{self.refinement.binder} : {self.ty}"
        return f"{self.refinement.binder} : {self.ty} if {self.refinement.predicate}"


@dataclass(frozen=True)
class TArrow(Type):
    params: tuple[RefinedType, ...] = ()
    ret: RefinedType = field(default_factory=lambda: RefinedType(T_UNIT))

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.params)
        if self.ret.refinement is None:
            return f"({params}) -> {self.ret}"
        return f"({params}) -> ({self.ret})"


class TVar(Type):
    """An inference variable.  ``link`` is set once it has been unified.

    Mutable, and equal only to itself.
    """

    def __init__(self, name: str = "_", link: Optional[Type] = None):
        self.name = name
        self.link = link

    __eq__ = object.__eq__
    __hash__ = object.__hash__

    def __repr__(self) -> str:
        return f"TVar({self.name!r}, link={self.link!r})"

    def __str__(self) -> str:
        if self.link is not None:
            return str(self.link)
        return self.name


# ---------------------------------------------------------------------------
# Built-in Types
# ---------------------------------------------------------------------------

T_INT = TConst("int")
T_BOOL = TConst("bool")
T_UNIT = TConst("unit")
T_BYTE = TConst("byte")

SCALAR_TYPES = (T_INT, T_BOOL)


def t_array(element: Type) -> TApp:
    return TApp("array", (element,))


def t_pair(first: Type, second: Type) -> TApp:
    return TApp("pair", (first, second))


def t_list(element: Type) -> TApp:
    return TApp("list", (element,))


def t_fun(params: list[RefinedType | Type], ret: RefinedType | Type) -> TArrow:
    """Build an arrow, wrapping plain types as unrefined slots."""
    def wrap(t: RefinedType | Type) -> RefinedType:
        return t if isinstance(t, RefinedType) else RefinedType(t)
    return TArrow(tuple(wrap(p) for p in params), wrap(ret))


def get_real_ty(ty: Type) -> Type:
    """Follow inference-variable links to the representative type."""
    while isinstance(ty, TVar) and ty.link is not None:
        ty = ty.link
    return ty


def is_scalar(ty: Type) -> bool:
    return get_real_ty(ty) in SCALAR_TYPES
