import math

import jax.numpy as jnp
import numpy as np
import pytensor
import pytensor.tensor as pt

import diffpiecewise._ops_jax as _ops_jax
import diffpiecewise._ops_pytensor as _ops_pytensor
from diffpiecewise._piecewise import DifferentiablePiecewise

def make_relu():
    return DifferentiablePiecewise(0.0, lambda x: x - 1.0, 1.0)

def test_create_jax_ops():
    relu1 = make_relu()
    jitted_forward, jitted_derivative, jitted_grad = _ops_jax.create_jax_ops(relu1)

    xs = jnp.array([0.5, 1.0, 2.0])
    np.testing.assert_allclose(jitted_forward(xs), [0.0, 0.0, 1.0], rtol=1e-12)

    expected = [0.5 * math.exp(-0.5), 0.5, 1 - 0.5 * math.exp(-1.0)]
    np.testing.assert_allclose(jitted_derivative(xs), expected, rtol=1e-12)
    np.testing.assert_allclose(jitted_grad(xs), expected, rtol=1e-12)

def test_create_jax_ops_vjp_rule():
    relu1 = DifferentiablePiecewise(0.0, lambda x: x - 1.0, 1.0, rule="vjp")
    _, jitted_derivative, jitted_grad = _ops_jax.create_jax_ops(relu1)

    xs = jnp.linspace(-1.0, 3.0, 7)
    np.testing.assert_allclose(jitted_grad(xs), jitted_derivative(xs), rtol=1e-12)

def test_pytensor_ops_values():
    relu1 = make_relu()
    value_op, derivative_op, test_out = _ops_pytensor.create_pytensor_ops(relu1)

    xs = np.array([0.5, 1.0, 1.5, 2.0])
    np.testing.assert_allclose(value_op(xs).eval(), [0.0, 0.0, 0.5, 1.0], rtol=1e-12)
    np.testing.assert_allclose(derivative_op(xs).eval(), np.asarray(relu1.derivative(xs)), rtol=1e-12)

    test_out(xs)

def test_pytensor_grad():
    relu1 = make_relu()
    value_op, _, _ = _ops_pytensor.create_pytensor_ops(relu1)

    x = pt.dscalar("x")
    y = value_op(x)
    g = pytensor.grad(y, x)
    f = pytensor.function([x], [y, g])

    y_val, g_val = f(2.0)
    np.testing.assert_allclose(y_val, 1.0, rtol=1e-12)
    np.testing.assert_allclose(g_val, 1 - 0.5 * math.exp(-1.0), rtol=1e-12)

    y_val, g_val = f(1.0)
    np.testing.assert_allclose(y_val, 0.0, atol=1e-15)
    np.testing.assert_allclose(g_val, 0.5, rtol=1e-12)

def test_pytensor_grad_vector():
    dheaviside = DifferentiablePiecewise(0.0, 1.0)
    value_op, _, _ = _ops_pytensor.create_pytensor_ops(dheaviside)

    x = pt.dvector("x")
    loss = pt.sum(3.0 * value_op(x))
    g = pytensor.grad(loss, x)
    f = pytensor.function([x], g)

    xs = np.array([-1.0, 0.0, 1.0])
    np.testing.assert_allclose(f(xs), 3.0 * (1.0 - np.tanh(xs)**2), rtol=1e-12)

def test_pytensor_ops_integer_input():
    half_relu = DifferentiablePiecewise(0.0, lambda x: 0.5 * x, 0.0)
    value_op, derivative_op, _ = _ops_pytensor.create_pytensor_ops(half_relu)

    value = value_op(3).eval()
    assert value.dtype.kind == "f"
    np.testing.assert_allclose(value, 1.5, rtol=1e-12)

    derivative = derivative_op(3).eval()
    assert derivative.dtype.kind == "f"
    np.testing.assert_allclose(derivative, half_relu.derivative(3.0), rtol=1e-12)

    # integer vectors are cast as well
    np.testing.assert_allclose(value_op(np.array([-2, 4])).eval(), [0.0, 2.0], rtol=1e-12)
