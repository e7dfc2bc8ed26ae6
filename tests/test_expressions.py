"""Tests for the core expression contract."""

import pytest

from deriva import (
    Add,
    Application,
    BooleanConstant,
    CompileEnvironment,
    Constant,
    ExecutionEnvironment,
    FunctionType,
    FunctionValue,
    INTEGER,
    BOOLEAN,
    Multiply,
    Negate,
    Sub,
    Variable,
    Vector,
    VectorType,
    variables,
)
from deriva.core.expressions import INT_MAX, INT_MIN
from deriva.core.errors import (
    ArityError,
    IntegerOverflowError,
    InvalidOperationError,
    UndeclaredVariableError,
)


@pytest.fixture
def env() -> ExecutionEnvironment:
    return ExecutionEnvironment.from_mapping({"x": 3, "y": 4})


@pytest.fixture
def types() -> CompileEnvironment:
    return CompileEnvironment.from_mapping({"x": INTEGER, "y": INTEGER, "b": BOOLEAN})


class TestConstant:
    """Tests for Constant expressions."""

    def test_evaluates_to_itself(self, env):
        c = Constant(5)
        assert c.evaluate(env) is c

    def test_type(self, types):
        assert Constant(5).type_check(types)
        assert Constant(5).infer_type(types) == INTEGER

    def test_has_no_variables(self):
        assert Constant(5).get_variables() == set()

    def test_range_limits(self):
        assert Constant(INT_MAX).value == 2**31 - 1
        assert Constant(INT_MIN).value == -(2**31)

    def test_out_of_range_raises(self):
        with pytest.raises(IntegerOverflowError):
            Constant(2**31)
        with pytest.raises(IntegerOverflowError):
            Constant(-(2**31) - 1)

    def test_rejects_bool(self):
        with pytest.raises(InvalidOperationError):
            Constant(True)

    def test_equality(self):
        assert Constant(2) == Constant(2)
        assert Constant(2) != Constant(3)
        assert hash(Constant(2)) == hash(Constant(2))

    def test_immutable(self):
        c = Constant(1)
        with pytest.raises(AttributeError):
            c.value = 2


class TestVariable:
    """Tests for Variable expressions."""

    def test_evaluation(self, env):
        assert Variable("x").evaluate(env) == Constant(3)

    def test_missing_variable_raises(self, env):
        with pytest.raises(UndeclaredVariableError):
            Variable("z").evaluate(env)

    def test_equality_by_name(self):
        assert Variable("x") == Variable("x")
        assert Variable("x") != Variable("y")
        assert hash(Variable("x")) == hash(Variable("x"))

    def test_type_check_requires_declaration(self, types):
        assert Variable("x").type_check(types)
        with pytest.raises(UndeclaredVariableError):
            Variable("z").type_check(types)

    def test_infer_type_is_declared_type(self, types):
        assert Variable("b").infer_type(types) == BOOLEAN

    def test_get_variables(self):
        x = Variable("x")
        assert x.get_variables() == {x}

    def test_variables_helper(self):
        x, y = variables("x", "y")
        assert x == Variable("x")
        assert y == Variable("y")


class TestArithmetic:
    """Tests for Add, Sub, Negate and Multiply."""

    def test_addition(self, env):
        assert Add(Variable("x"), Constant(2)).evaluate(env) == Constant(5)

    def test_subtraction(self, env):
        assert Sub(Variable("x"), Variable("y")).evaluate(env) == Constant(-1)

    def test_multiplication(self, env):
        assert Multiply(Variable("x"), Variable("y")).evaluate(env) == Constant(12)

    def test_negation(self, env):
        assert Negate(Variable("x")).evaluate(env) == Constant(-3)

    def test_operator_sugar(self):
        x = Variable("x")
        assert x + 1 == Add(x, Constant(1))
        assert 1 + x == Add(Constant(1), x)
        assert x - 1 == Sub(x, Constant(1))
        assert 10 - x == Sub(Constant(10), x)
        assert 2 * x == Multiply(Constant(2), x)
        assert x * 2 == Multiply(x, Constant(2))
        assert -x == Negate(x)

    def test_nested_expression(self, env):
        x, y = variables("x", "y")
        expr = (x + y) * (x - y)
        assert expr.evaluate(env) == Constant(-7)

    def test_overflow_during_evaluation(self):
        env = ExecutionEnvironment.from_mapping({"x": INT_MAX})
        with pytest.raises(IntegerOverflowError):
            (Variable("x") + 1).evaluate(env)

    def test_negating_int_min_overflows(self):
        env = ExecutionEnvironment.from_mapping({"x": INT_MIN})
        with pytest.raises(IntegerOverflowError):
            Negate(Variable("x")).evaluate(env)

    def test_non_integer_operand_is_fatal(self):
        env = ExecutionEnvironment.from_mapping({"b": True})
        with pytest.raises(InvalidOperationError):
            (Variable("b") + 1).evaluate(env)

    def test_type_check_is_permissive(self, types):
        """Binary nodes only require both operands to type-check."""
        expr = Add(Variable("b"), Constant(1))
        assert expr.type_check(types)

    def test_type_check_propagates_undeclared(self, types):
        with pytest.raises(UndeclaredVariableError):
            Add(Constant(1), Variable("z")).type_check(types)

    def test_infer_type_uses_left_operand(self, types):
        assert Add(Variable("b"), Constant(1)).infer_type(types) == BOOLEAN
        assert Multiply(Constant(1), Variable("b")).infer_type(types) == INTEGER

    def test_negate_type(self, types):
        assert Negate(Variable("x")).type_check(types)
        assert Negate(Variable("x")).infer_type(types) == INTEGER

    def test_get_variables(self):
        x, y = variables("x", "y")
        assert (x + y * 2).get_variables() == {x, y}


class TestReduceToNormalForm:
    """Tests for best-effort reduction."""

    def test_folds_constant_subtrees(self):
        env = ExecutionEnvironment()
        expr = Add(Multiply(Constant(2), Constant(3)), Constant(1))
        assert expr.reduce_to_normal_form(env) == Constant(7)

    def test_substitutes_bound_variables(self, env):
        expr = Variable("x") * Variable("y") + 1
        assert expr.reduce_to_normal_form(env) == Constant(13)

    def test_unbound_variable_stays_symbolic(self, env):
        """An unbound name is kept while its constant sibling folds."""
        expr = Add(Multiply(Constant(2), Constant(3)), Variable("z"))
        assert expr.reduce_to_normal_form(env) == Add(Constant(6), Variable("z"))

    def test_nested_failure_keeps_bound_siblings(self, env):
        """A failing sub-tree stays as written; bound variables still substitute."""
        expr = Sub(Variable("x"), Negate(Variable("z")))
        assert expr.reduce_to_normal_form(env) == Sub(Constant(3), Negate(Variable("z")))

    def test_folds_constants_next_to_free_variable(self):
        """x * 1 + (2 + 3) with x unbound reduces to x * 1 + 5."""
        x = Variable("x")
        expr = Add(Multiply(x, Constant(1)), Add(Constant(2), Constant(3)))
        reduced = expr.reduce_to_normal_form(ExecutionEnvironment())
        assert reduced == Add(Multiply(x, Constant(1)), Constant(5))
        assert str(reduced) == "x * 1 + 5"

    def test_lone_unbound_variable_returns_itself(self):
        """The failing node itself is the fallback."""
        z = Variable("z")
        assert z.reduce_to_normal_form(ExecutionEnvironment()) is z

    def test_negate_folds(self, env):
        assert Negate(Variable("x")).reduce_to_normal_form(env) == Constant(-3)

    def test_rebuilds_when_operand_not_constant(self):
        f = FunctionValue((Variable("a"),), Variable("a"))
        env = ExecutionEnvironment.from_mapping({"x": 2, "f": f})
        expr = Add(Variable("f"), Variable("x"))
        assert expr.reduce_to_normal_form(env) == Add(f, Constant(2))

    def test_values_reduce_to_themselves(self, env):
        v = Vector((Constant(1),))
        assert v.reduce_to_normal_form(env) is v
        assert BooleanConstant(True).reduce_to_normal_form(env) == BooleanConstant(True)


class TestFunctionValue:
    """Tests for user function values."""

    def test_evaluates_to_itself(self, env):
        f = FunctionValue((Variable("a"),), Variable("a") * 2)
        assert f.evaluate(env) is f

    def test_parameters_stored_as_tuple(self):
        f = FunctionValue([Variable("a")], Variable("a"))
        assert f.parameters == (Variable("a"),)
        assert f.arity == 1

    def test_type_check_declares_parameters(self):
        types = CompileEnvironment()
        f = FunctionValue((Variable("a"),), Variable("a") + 1)
        assert f.type_check(types)
        assert "a" not in types

    def test_infer_type(self):
        types = CompileEnvironment()
        f = FunctionValue(variables("a", "b"), Variable("a") * Variable("b"))
        assert f.infer_type(types) == FunctionType((INTEGER, INTEGER), INTEGER)

    def test_free_variables_exclude_parameters(self):
        a, k = variables("a", "k")
        f = FunctionValue((a,), a * k)
        assert f.get_variables() == {k}

    def test_rendering(self):
        a = Variable("a")
        assert str(FunctionValue((a,), a * 2)) == "fn a -> a * 2"


class TestApplication:
    """Tests for applying user functions."""

    def test_evaluate(self):
        a = Variable("a")
        square = FunctionValue((a,), a * a)
        env = ExecutionEnvironment.from_mapping({"square": square})
        call = Application(Variable("square"), (Constant(5),))
        assert call.evaluate(env) == Constant(25)
        assert env.depth == 1

    def test_arguments_evaluated_in_caller_scope(self):
        a = Variable("a")
        f = FunctionValue((a,), a + 1)
        env = ExecutionEnvironment.from_mapping({"a": 10, "f": f})
        assert Application(Variable("f"), (a * 2,)).evaluate(env) == Constant(21)
        assert env.lookup("a") == Constant(10)

    def test_arity_mismatch(self):
        f = FunctionValue((Variable("a"),), Variable("a"))
        env = ExecutionEnvironment()
        with pytest.raises(ArityError):
            Application(f, (Constant(1), Constant(2))).evaluate(env)

    def test_calling_non_function(self, env):
        with pytest.raises(InvalidOperationError):
            Application(Variable("x"), (Constant(1),)).evaluate(env)

    def test_type_check(self):
        a = Variable("a")
        f = FunctionValue((a,), a * a)
        types = CompileEnvironment.from_mapping({"b": BOOLEAN})
        assert Application(f, (Constant(2),)).type_check(types)
        assert not Application(f, (Variable("b"),)).type_check(types)
        assert not Application(f, ()).type_check(types)
        assert not Application(Constant(1), (Constant(2),)).type_check(types)

    def test_infer_type(self):
        a = Variable("a")
        f = FunctionValue((a,), a * a)
        assert Application(f, (Constant(2),)).infer_type(CompileEnvironment()) == INTEGER

    def test_reduce_evaluates_constant_call(self):
        a = Variable("a")
        f = FunctionValue((a,), a * a)
        env = ExecutionEnvironment.from_mapping({"f": f})
        assert Application(Variable("f"), (Constant(3),)).reduce_to_normal_form(env) == Constant(9)

    def test_reduce_with_unbound_argument_stays_symbolic(self):
        """The call is rebuilt around the unbound argument, not evaluated."""
        a = Variable("a")
        f = FunctionValue((a,), a * a)
        call = Application(f, (Variable("missing"),))
        assert call.reduce_to_normal_form(ExecutionEnvironment()) == call

    def test_reduce_folds_arguments_around_unbound_one(self):
        """Constant arguments fold even when another argument is unbound."""
        a, b = variables("a", "b")
        f = FunctionValue((a, b), a * b)
        call = Application(f, (Add(Constant(1), Constant(2)), Variable("missing")))
        reduced = call.reduce_to_normal_form(ExecutionEnvironment())
        assert reduced == Application(f, (Constant(3), Variable("missing")))

    def test_reduce_call_with_unbound_free_variable_returns_original(self):
        """A body that needs an unbound name leaves the call unreduced."""
        a, k = variables("a", "k")
        call = Application(FunctionValue((a,), a * k), (Constant(2),))
        assert call.reduce_to_normal_form(ExecutionEnvironment()) is call

    def test_rendering(self):
        call = Application(Variable("f"), (Constant(1), Variable("x")))
        assert str(call) == "f(1, x)"


class TestVector:
    """Tests for Vector values."""

    def test_sequence_protocol(self):
        v = Vector((Constant(1), Constant(2)))
        assert len(v) == 2
        assert v[1] == Constant(2)
        assert list(v) == [Constant(1), Constant(2)]

    def test_type_check_requires_uniform_elements(self, types):
        assert Vector((Constant(1), Constant(2))).type_check(types)
        assert not Vector((Constant(1), BooleanConstant(True))).type_check(types)
        assert Vector(()).type_check(types)

    def test_infer_type(self, types):
        assert Vector((Constant(1),)).infer_type(types) == VectorType()

    def test_to_array(self):
        import numpy as np

        arr = Vector((Constant(1), Constant(-2))).to_array()
        np.testing.assert_array_equal(arr, np.array([1, -2]))
        assert arr.dtype == np.int32

    def test_to_array_rejects_non_integers(self):
        with pytest.raises(InvalidOperationError):
            Vector((BooleanConstant(True),)).to_array()

    def test_rendering(self):
        assert str(Vector((Constant(1), Constant(2)))) == "[1, 2]"


class TestRendering:
    """Tests for infix text rendering."""

    def test_binary_operators(self):
        x, y = variables("x", "y")
        assert str(x + y) == "x + y"
        assert str(x - y) == "x - y"
        assert str(x * y) == "x * y"
        assert str(-x) == "-x"

    def test_mirrors_tree_shape(self):
        x = Variable("x")
        assert str(Multiply(Constant(1), x) + Multiply(x, Constant(1))) == "1 * x + x * 1"

    def test_parenthesizes_lower_precedence(self):
        x, y = variables("x", "y")
        assert str((x + y) * x) == "(x + y) * x"
        assert str(x - (x + y)) == "x - (x + y)"
        assert str(-(x + y)) == "-(x + y)"
        assert str(Negate(Negate(x))) == "-(-x)"

    def test_left_assoc_sum_has_no_parentheses(self):
        x = Variable("x")
        assert str(x * x + 3) == "x * x + 3"

    def test_right_nested_sum_is_parenthesized(self):
        """Right-nested sums and products keep their shape in the text."""
        a, b, c = variables("a", "b", "c")
        assert str(Add(a, Add(b, c))) == "a + (b + c)"
        assert str(Add(Add(a, b), c)) == "a + b + c"
        assert str(Multiply(a, Multiply(b, c))) == "a * (b * c)"
        assert str(Multiply(Multiply(a, b), c)) == "a * b * c"
        assert str(Add(a, Sub(b, c))) == "a + (b - c)"

    def test_booleans(self):
        assert str(BooleanConstant(True)) == "true"
        assert str(BooleanConstant(False)) == "false"
