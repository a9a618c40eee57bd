# tests/test_typeinfo.py
"""
Tests for type descriptors, the universe scope and the error-capability
oracle.
"""

from errcheckif.syntax import Ident, ParenExpr, SelectorExpr
from errcheckif.typeinfo import (
    ERROR_TYPE,
    STRING,
    UNIVERSE,
    BasicType,
    InterfaceType,
    Method,
    NamedType,
    Object,
    ObjectKind,
    PointerType,
    Signature,
    SliceType,
    TypeInfo,
    identical,
    implements_error,
    method_set,
)


ERROR_METHOD = Method("Error", Signature((), (STRING,)))


class TestUniverse:

    def test_nil_is_unique(self):
        assert UNIVERSE.lookup("nil") is UNIVERSE.nil
        assert UNIVERSE.nil.kind is ObjectKind.NIL

    def test_error_type(self):
        assert UNIVERSE.lookup_type("error") is ERROR_TYPE
        assert UNIVERSE.lookup("error").kind is ObjectKind.TYPENAME

    def test_basic_types(self):
        assert UNIVERSE.lookup_type("string") is STRING
        assert UNIVERSE.lookup_type("int") == BasicType("int")
        assert UNIVERSE.lookup_type("PathError") is None


class TestImplementsError:

    def test_predeclared_error(self):
        assert implements_error(ERROR_TYPE)

    def test_value_receiver(self):
        t = NamedType("ValErr", BasicType("int"), [ERROR_METHOD])
        assert implements_error(t)
        assert implements_error(PointerType(t))

    def test_pointer_receiver(self):
        t = NamedType("PathError", BasicType("int"),
                      [Method("Error", Signature((), (STRING,)), pointer_receiver=True)])
        assert not implements_error(t)
        assert implements_error(PointerType(t))

    def test_wrong_signature(self):
        for sig in (
            Signature((), (BasicType("int"),)),
            Signature((STRING,), (STRING,)),
            Signature((), (STRING, STRING)),
            Signature((SliceType(STRING),), (STRING,), variadic=True),
        ):
            t = NamedType("Odd", BasicType("int"), [Method("Error", sig)])
            assert not implements_error(t), sig

    def test_named_string_result_is_not_string(self):
        mystr = NamedType("MyString", STRING)
        t = NamedType("Odd", BasicType("int"), [Method("Error", Signature((), (mystr,)))])
        assert not implements_error(t)

    def test_embedded_interface(self):
        iface = NamedType("Coded", InterfaceType(
            methods=(Method("Code", Signature((), (BasicType("int"),))),),
            embedded=(ERROR_TYPE,),
        ))
        assert implements_error(iface)

    def test_unrelated_types(self):
        assert not implements_error(None)
        assert not implements_error(STRING)
        assert not implements_error(PointerType(ERROR_TYPE))
        assert not implements_error(InterfaceType())


class TestMethodSet:

    def test_named_interface(self):
        assert set(method_set(ERROR_TYPE)) == {"Error"}

    def test_identical_named_by_identity(self):
        a = NamedType("A", STRING)
        b = NamedType("A", STRING)
        assert identical(a, a)
        assert not identical(a, b)
        assert identical(BasicType("string"), STRING)


class TestTypeInfo:

    def test_defs_before_uses(self):
        info = TypeInfo()
        ident = Ident(name="err")
        defined = Object(ObjectKind.VAR, "err", ERROR_TYPE, id=1)
        info.record_use(ident, Object(ObjectKind.VAR, "err", ERROR_TYPE, id=2))
        info.record_def(ident, defined)
        assert info.object_of(ident) is defined

    def test_type_of_falls_back_to_object(self):
        info = TypeInfo()
        fn = Ident(name="load")
        sig = Signature((), (BasicType("int"), ERROR_TYPE))
        info.record_use(fn, Object(ObjectKind.FUNC, "load", sig, id=1))
        sel = SelectorExpr(x=Ident(name="os"), sel=fn)
        assert info.type_of(fn) is sig
        assert info.type_of(sel) is sig
        assert info.type_of(ParenExpr(x=fn)) is sig
        assert info.type_of(Ident(name="unknown")) is None

    def test_explicit_type_wins(self):
        info = TypeInfo()
        ident = Ident(name="x")
        info.record_use(ident, Object(ObjectKind.VAR, "x", STRING, id=1))
        info.record_type(ident, ERROR_TYPE)
        assert info.type_of(ident) is ERROR_TYPE

    def test_objects_compare_by_identity(self):
        a = Object(ObjectKind.VAR, "err", ERROR_TYPE, id=1)
        b = Object(ObjectKind.VAR, "err", ERROR_TYPE, id=1)
        assert a != b
