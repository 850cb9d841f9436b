import abc
from typing import Any, NamedTuple

import jax
import jax.numpy as jnp

# Smoothed derivatives are compared against jax.grad at double precision.
jax.config.update('jax_enable_x64', True) #ESSENTIAL

class Dual(NamedTuple):
    """A value paired with its tangent (perturbation) coefficient, as seen by forward mode."""
    value: Any
    partials: Any

def as_real(x):
    # jax.grad only accepts floating inputs, so integers are promoted here
    x = jnp.asarray(x)
    if not jnp.issubdtype(x.dtype, jnp.floating):
        x = x.astype(float)
    return x

class DifferentiableFunction(abc.ABC):
    """Scalar real function that can also report its own derivative.

    Everything that is used as a branch of a piecewise function implements this,
    including the piecewise function itself, so piecewise functions nest."""

    @abc.abstractmethod
    def __call__(self, x):
        ...

    @abc.abstractmethod
    def derivative(self, x):
        ...

class ConstantFunction(DifferentiableFunction):
    def __init__(self, c):
        self.c = c

    def __call__(self, x):
        return self.c

    def derivative(self, x):
        # zero of the constant's own numeric type, broadcast to the input
        return jnp.zeros_like(as_real(x), dtype=jnp.result_type(self.c))

    def __repr__(self):
        return f"ConstantFunction(c={self.c!r})"

class GenericFunction(DifferentiableFunction):
    """Wraps a plain python callable; derivatives come from jax.grad applied elementwise."""
    def __init__(self, fn):
        self.fn = fn
        self._grad = jnp.vectorize(jax.grad(self._real_fn))

    def __call__(self, x):
        return self.fn(x)

    def _real_fn(self, x):
        # jax.grad rejects integer outputs, e.g. from `lambda x: 0`
        return jnp.asarray(self.fn(x), dtype=x.dtype)

    def derivative(self, x):
        return self._grad(as_real(x))

    def __repr__(self):
        return f"GenericFunction({self.fn!r})"

def to_callable(f):
    """Turn `f` into a DifferentiableFunction.

    Objects that already are one are returned unchanged, other callables are wrapped
    in a GenericFunction and anything else (e.g. a float) becomes a ConstantFunction.
    """
    if isinstance(f, DifferentiableFunction):
        return f
    if callable(f):
        return GenericFunction(f)
    return ConstantFunction(f)

def derivative(f, x):
    """Derivative of `f` at `x`, for any `f` accepted by `to_callable`."""
    return to_callable(f).derivative(x)
