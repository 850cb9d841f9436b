import jax
import jax.numpy as jnp

from . import _functions
from . import _ops_jax

import logging
logger = logging.getLogger(__name__)

default_x_split = 0.0
default_b1 = 1.0 # width of the smoothing of jumps in value
default_rule = "jvp"
rules = ("jvp", "vjp") # which jax hook backs __call__

class InvalidParameterError(ValueError):
    pass

def _pullback(d, dy):
    # the piecewise object's own parameters get no sensitivity
    return None, (d * dy).astype(d.dtype)

class DifferentiablePiecewise(_functions.DifferentiableFunction):
    """A function `f(x) = f_right(x) if x > x_split else f_left(x)` with a smoothed derivative.

    The value is branch-exact, so it can jump at `x_split`. Only the derivative seen by
    jax (jax.grad, jax.jvp, ...) or pytensor is modified: near `x_split` the derivative of
    the active branch is mixed with the derivative of the other branch at the split, and a
    tanh-shaped bump spreads any jump in value over a width `b1`. `b2` is the width of the
    derivative mixing. Far from the split the derivative is the one of the active branch.

    `f_left` and `f_right` can be python callables, constants or other DifferentiableFunctions
    (including other DifferentiablePiecewise objects).

    Examples:
        A heaviside step with smooth derivative: `DifferentiablePiecewise(0.0, 1.0)`
        A relu with smooth gradient: `DifferentiablePiecewise(0.0, lambda x: x)`

    Args:
        f_left: branch used for `x <= x_split`.
        f_right: branch used for `x > x_split`.
        x_split (float): the break point.
        b1 (float): width of the smoothing of jumps in value. Must be > 0.
        b2 (float, optional): width of the smoothing of jumps in derivative. Must be > 0, defaults to b1.
        rule (str): "jvp" registers a jax.custom_jvp (forward and reverse mode), "vjp" a jax.custom_vjp (reverse mode only).
    """

    def __init__(self, f_left, f_right, x_split=default_x_split, b1=default_b1, b2=None, rule=default_rule):
        if b2 is None:
            b2 = b1

        # written as `not > 0` so that nan is rejected too
        if not b1 > 0:
            raise InvalidParameterError(f"b1 must be strictly positive, got {b1}")
        if not b2 > 0:
            raise InvalidParameterError(f"b2 must be strictly positive, got {b2}")
        if rule not in rules:
            raise InvalidParameterError(f"Unknown rule '{rule}'. Must be one of {rules}.")

        f_left = _functions.to_callable(f_left)
        f_right = _functions.to_callable(f_right)

        self.f_left = f_left
        self.f_right = f_right
        self.x_split = x_split
        self.ampl = jnp.asarray(f_right(x_split)) - jnp.asarray(f_left(x_split))
        self.dy_left = f_left.derivative(x_split)
        self.dy_right = f_right.derivative(x_split)
        self.b_ampl = 1.0 / b1
        self.b_diff = 1.0 / b2
        self.rule = rule

        if rule == "jvp":
            self._fun = _ops_jax.make_custom_jvp(self)
        else:
            self._fun = _ops_jax.make_custom_vjp(self)

        self._frozen = True

        logger.debug(f"Created {self!r}: ampl={self.ampl}, dy_left={self.dy_left}, dy_right={self.dy_right}")

    def __setattr__(self, name, value):
        if getattr(self, "_frozen", False):
            raise AttributeError(f"{type(self).__name__} is immutable, cannot set '{name}'")
        super().__setattr__(name, value)

    def __call__(self, x):
        return self._fun(_functions.as_real(x))

    def evaluate(self, x):
        """Value of the function, with no smoothing and ties going to `f_left`."""
        x = _functions.as_real(x)
        y = jnp.where(x > self.x_split, self.f_right(x), self.f_left(x))
        return y.astype(jnp.result_type(y, x))

    def derivative(self, x):
        """The smoothed derivative at `x`. Works elementwise on arrays."""
        x = _functions.as_real(x)
        right = x > self.x_split

        # derivative mixing
        d_atx = jnp.where(right, self.f_right.derivative(x), self.f_left.derivative(x)) # actual derivative
        d_otherside = jnp.where(right, self.dy_left, self.dy_right)
        dweight = 0.5 * jnp.exp(-jnp.abs(x - self.x_split) * self.b_diff) # mixing weights
        d_mixed = d_otherside * dweight + d_atx * (1 - dweight)

        # NOTE the jump smoothing is centered at x = 0, not at x_split.
        correction = self.ampl * self.b_ampl * (1.0 - jnp.tanh(self.b_ampl * x)**2)

        return (correction + d_mixed).astype(x.dtype)

    def forward_mode_apply(self, dual):
        """Push a Dual through the function: the tangent is scaled by the smoothed derivative."""
        value = self.evaluate(dual.value)
        partials = self.derivative(dual.value) * dual.partials
        return _functions.Dual(value, partials.astype(value.dtype))

    def reverse_mode_forward(self, x, dx=1.0):
        return self.evaluate(x), self.derivative(x) * dx

    def reverse_mode_backward(self, x):
        """Returns `(value, pullback)` where `pullback(dy)` gives `(None, dx)`."""
        d = self.derivative(x)
        return self.evaluate(x), jax.tree_util.Partial(_pullback, d)

    def __repr__(self):
        return (f"DifferentiablePiecewise(f_left={self.f_left!r}, f_right={self.f_right!r}, x_split={self.x_split}, "
                f"b1={1.0 / self.b_ampl}, b2={1.0 / self.b_diff}, rule='{self.rule}')")

def smooth_heaviside(x_split=default_x_split, b1=default_b1, b2=None, rule=default_rule):
    """Step from 0 to 1 at `x_split` with a smooth derivative."""
    return DifferentiablePiecewise(0.0, 1.0, x_split, b1=b1, b2=b2, rule=rule)

def smooth_relu(x_split=default_x_split, b1=default_b1, b2=None, rule=default_rule):
    """`max(0, x - x_split)` with a smooth gradient."""
    def ramp(x):
        return x - x_split

    return DifferentiablePiecewise(0.0, ramp, x_split, b1=b1, b2=b2, rule=rule)
