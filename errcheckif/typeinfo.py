"""
errcheckif/typeinfo.py
══════════════════════

Type descriptors, declaration objects and the per-unit fact base the
checker consults.

Theory
──────
The checker never resolves names or infers types itself.  An upstream
type checker has already decided, for every identifier occurrence,
which declaration it denotes, and for every callee, which signature it
has.  This module only *models* those facts:

    τ ::= basic(name)                      bool, int, string, …
        | named(name, τ_u, methods)        declared type with method set
        | ptr(τ) | slice(τ) | map(τ, τ)
        | struct
        | interface(methods, embedded)
        | func([τ_p…], [τ_r…], variadic)

    obj ::= var | const | func | typename | pkgname | nil | builtin | label

Objects are compared by **identity only**.  Two occurrences denote the
same variable iff ``info.object_of(a) is info.object_of(b)``; shadowing
produces a different object even when the names agree.

The module also hosts the *error-capability oracle*
(:func:`implements_error`), a pure predicate over type descriptors.

License: MIT
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import (
    Dict,
    List,
    Optional,
    Tuple,
)

from errcheckif.syntax import Expr, Ident, ParenExpr, SelectorExpr, SyntaxNode


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — TYPE REPRESENTATION
# ═════════════════════════════════════════════════════════════════════════

class Type:
    """Base class of all type descriptors."""

    @property
    def underlying(self) -> "Type":
        return self


@dataclass(frozen=True)
class BasicType(Type):
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Signature(Type):
    params: Tuple[Type, ...] = ()
    results: Tuple[Type, ...] = ()
    variadic: bool = False

    def __str__(self) -> str:
        ps = ", ".join(str(p) for p in self.params)
        rs = ", ".join(str(r) for r in self.results)
        if len(self.results) > 1:
            rs = f"({rs})"
        return f"func({ps}) {rs}".rstrip()


@dataclass(frozen=True)
class Method:
    name: str
    signature: Signature
    pointer_receiver: bool = False


@dataclass(eq=False)
class NamedType(Type):
    """
    A declared type.  Identity matters: ``type A string`` and
    ``type B string`` are different types.

    ``underlying_type`` is filled in after construction by the dump loader
    so that recursive declarations can refer to themselves.
    """
    name: str
    underlying_type: Optional[Type] = None
    methods: List[Method] = field(default_factory=list)

    @property
    def underlying(self) -> Type:
        if self.underlying_type is None:
            return self
        return self.underlying_type.underlying

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<NamedType {self.name}>"


@dataclass(frozen=True)
class PointerType(Type):
    elem: Type

    def __str__(self) -> str:
        return f"*{self.elem}"


@dataclass(frozen=True)
class SliceType(Type):
    elem: Type

    def __str__(self) -> str:
        return f"[]{self.elem}"


@dataclass(frozen=True)
class MapType(Type):
    key: Type
    value: Type

    def __str__(self) -> str:
        return f"map[{self.key}]{self.value}"


@dataclass(frozen=True)
class StructType(Type):
    def __str__(self) -> str:
        return "struct{...}"


@dataclass(frozen=True)
class InterfaceType(Type):
    methods: Tuple[Method, ...] = ()
    embedded: Tuple[Type, ...] = ()

    def all_methods(self) -> Dict[str, Method]:
        """Explicit methods plus those of embedded interfaces."""
        result: Dict[str, Method] = {}
        for emb in self.embedded:
            u = emb.underlying
            if isinstance(u, InterfaceType):
                result.update(u.all_methods())
        for m in self.methods:
            result[m.name] = m
        return result

    def __str__(self) -> str:
        names = "; ".join(sorted(self.all_methods()))
        return f"interface{{{names}}}"


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — DECLARATION OBJECTS
# ═════════════════════════════════════════════════════════════════════════

class ObjectKind(Enum):
    VAR = auto()
    CONST = auto()
    FUNC = auto()
    TYPENAME = auto()
    PKGNAME = auto()
    NIL = auto()
    BUILTIN = auto()
    LABEL = auto()


@dataclass(eq=False)
class Object:
    """
    A declared entity.  Never compared structurally: copying an object's
    fields into a new ``Object`` yields a *different* declaration.

    ``path`` is the import path for PKGNAME objects.
    """
    kind: ObjectKind
    name: str
    type: Optional[Type] = None
    path: str = ""
    id: Optional[int] = None

    def __repr__(self) -> str:
        ident = f"#{self.id}" if self.id is not None else "universe"
        return f"<Object {self.kind.name.lower()} {self.name} {ident}>"


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — UNIVERSE SCOPE
# ═════════════════════════════════════════════════════════════════════════

BASIC_TYPE_NAMES: Tuple[str, ...] = (
    "bool", "string", "int", "int8", "int16", "int32", "int64",
    "uint", "uint8", "uint16", "uint32", "uint64", "uintptr",
    "float32", "float64", "complex64", "complex128",
    "byte", "rune", "any",
)

STRING = BasicType("string")
UNTYPED_NIL = BasicType("untyped nil")

ERROR_TYPE = NamedType(
    "error",
    InterfaceType(methods=(Method("Error", Signature((), (STRING,))),)),
)


class Universe:
    """The predeclared scope: ``nil``, ``error``, ``true`` …"""

    def __init__(self) -> None:
        self._scope: Dict[str, Object] = {}
        self.nil = self._insert(Object(ObjectKind.NIL, "nil", UNTYPED_NIL))
        self._insert(Object(ObjectKind.TYPENAME, "error", ERROR_TYPE))
        for name in ("true", "false"):
            self._insert(Object(ObjectKind.CONST, name, BasicType("bool")))
        for name in ("len", "cap", "append", "panic", "recover", "new", "make"):
            self._insert(Object(ObjectKind.BUILTIN, name))
        self._types: Dict[str, Type] = {"error": ERROR_TYPE}
        for name in BASIC_TYPE_NAMES:
            t = STRING if name == "string" else BasicType(name)
            self._types[name] = t
            self._insert(Object(ObjectKind.TYPENAME, name, t))

    def _insert(self, obj: Object) -> Object:
        self._scope[obj.name] = obj
        return obj

    def lookup(self, name: str) -> Optional[Object]:
        return self._scope.get(name)

    def lookup_type(self, name: str) -> Optional[Type]:
        return self._types.get(name)


UNIVERSE = Universe()


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — FACT BASE
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class TypeInfo:
    """
    Read-only resolution facts for one unit.

    Attributes
    ----------
    defs  : Ident → Object for defining occurrences (``err :=``)
    uses  : Ident → Object for every other occurrence
    types : Expr  → Type   for expressions whose type was recorded
    """
    defs: Dict[Ident, Object] = field(default_factory=dict)
    uses: Dict[Ident, Object] = field(default_factory=dict)
    types: Dict[SyntaxNode, Type] = field(default_factory=dict)

    def object_of(self, ident: Optional[Ident]) -> Optional[Object]:
        if ident is None:
            return None
        obj = self.defs.get(ident)
        if obj is not None:
            return obj
        return self.uses.get(ident)

    def type_of(self, expr: Optional[Expr]) -> Optional[Type]:
        """Recorded type of ``expr``, falling back to its object's type."""
        if expr is None:
            return None
        t = self.types.get(expr)
        if t is not None:
            return t
        if isinstance(expr, Ident):
            obj = self.object_of(expr)
            return obj.type if obj is not None else None
        if isinstance(expr, SelectorExpr):
            return self.type_of(expr.sel)
        if isinstance(expr, ParenExpr):
            return self.type_of(expr.x)
        return None

    def record_use(self, ident: Ident, obj: Object) -> None:
        self.uses[ident] = obj

    def record_def(self, ident: Ident, obj: Object) -> None:
        self.defs[ident] = obj

    def record_type(self, expr: SyntaxNode, t: Type) -> None:
        self.types[expr] = t


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 — ERROR-CAPABILITY ORACLE
# ═════════════════════════════════════════════════════════════════════════

def method_set(t: Optional[Type]) -> Dict[str, Method]:
    """
    Methods callable on a value of type ``t``.

      - named non-interface T : value-receiver methods only
      - *T                    : all methods declared on T
      - interface / named interface : interface methods (with embedded)
    """
    if t is None:
        return {}
    if isinstance(t, PointerType):
        elem = t.elem
        if isinstance(elem, NamedType) and not isinstance(elem.underlying, InterfaceType):
            return {m.name: m for m in elem.methods}
        return {}
    if isinstance(t, NamedType):
        u = t.underlying
        if isinstance(u, InterfaceType):
            return u.all_methods()
        return {m.name: m for m in t.methods if not m.pointer_receiver}
    if isinstance(t, InterfaceType):
        return t.all_methods()
    return {}


def identical(a: Optional[Type], b: Optional[Type]) -> bool:
    if a is None or b is None:
        return False
    if isinstance(a, NamedType) or isinstance(b, NamedType):
        return a is b
    return a == b


def _is_error_method(m: Method) -> bool:
    sig = m.signature
    return (
        not sig.params
        and not sig.variadic
        and len(sig.results) == 1
        and identical(sig.results[0], STRING)
    )


def implements_error(t: Optional[Type]) -> bool:
    """
    Does ``t`` satisfy ``interface { Error() string }``?

    Works for concrete types (through their method sets) and for
    interface-typed results alike.  ``None`` (no type fact) is never an
    error type.
    """
    m = method_set(t).get("Error")
    return m is not None and _is_error_method(m)


__all__ = [
    "Type", "BasicType", "Signature", "Method", "NamedType",
    "PointerType", "SliceType", "MapType", "StructType", "InterfaceType",
    "ObjectKind", "Object",
    "BASIC_TYPE_NAMES", "STRING", "UNTYPED_NIL", "ERROR_TYPE",
    "Universe", "UNIVERSE",
    "TypeInfo",
    "method_set", "identical", "implements_error",
]
