"""Demo: building, differentiating and evaluating integer expressions."""

from deriva import (
    Application,
    CompileEnvironment,
    Constant,
    Derivative,
    ExecutionEnvironment,
    FunctionValue,
    Gradient,
    INTEGER,
    Variable,
    derive,
    simplify,
    variables,
)

print("=" * 60)
print("DERIVA - Symbolic Differentiation Demo")
print("=" * 60)

# =============================================================================
# Expressions
# =============================================================================
print("\n📦 Expressions")
print("-" * 40)

x, y = variables("x", "y")

# Build expressions using natural Python syntax
f = 2 * (x * x) + x + 1

print(f"f(x) = {f}")
print(f"Variables: {sorted(v.name for v in f.get_variables())}")

env = ExecutionEnvironment.from_mapping({"x": 3, "y": 5})
print(f"f(3) = {f.evaluate(env)}")

types = CompileEnvironment.from_mapping({"x": INTEGER, "y": INTEGER})
print(f"Well typed: {f.type_check(types)}, type: {f.infer_type(types)}")

# =============================================================================
# Differentiation and simplification
# =============================================================================
print("\n📐 Differentiation")
print("-" * 40)

raw = derive(f, "x")
print(f"raw f'(x)        = {raw}")
print(f"simplified f'(x) = {simplify(raw)}")
print(f"f'(3)            = {Derivative(f, x).evaluate(env)}")

# =============================================================================
# Derivative of a user function
# =============================================================================
print("\n🔗 User functions")
print("-" * 40)

cube = FunctionValue((x,), x * x * x)
env.declare("cube", cube)
d_cube = Derivative(Variable("cube"), x)
print(f"cube      = {cube}")
print(f"cube'     = {d_cube.as_function(env)}")
print(f"cube'(3)  = {d_cube.evaluate(env)}")
print(f"cube(4)   = {Application(Variable('cube'), (Constant(4),)).evaluate(env)}")

# =============================================================================
# Gradient
# =============================================================================
print("\n📊 Gradient")
print("-" * 40)

g = x * x * y + 3 * y
grad = Gradient(g, (x, y)).evaluate(env)
print(f"g(x, y)       = {g}")
print(f"∇g at (3, 5)  = {grad}")
print(f"as numpy      = {grad.to_array()}")

# =============================================================================
# Best-effort reduction
# =============================================================================
print("\n🧮 Reduction")
print("-" * 40)

partial = (Constant(2) * Constant(3)) + Variable("z")
print(f"{partial}  reduces to  {partial.reduce_to_normal_form(env)}  (z is unbound)")
print(f"{2 * x + y}  reduces to  {(2 * x + y).reduce_to_normal_form(env)}")
