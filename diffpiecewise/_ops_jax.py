import jax
import jax.numpy as jnp

from . import _functions

import logging
logger = logging.getLogger(__name__)

def make_custom_jvp(piecewise):
    """Wrap `piecewise.evaluate` in a jax.custom_jvp whose rule is `piecewise.forward_mode_apply`.

    JAX transposes the (linear) tangent rule on its own, so the result supports
    jax.grad as well as jax.jvp.
    """
    fun = jax.custom_jvp(piecewise.evaluate)

    def fun_jvp(primals, tangents):
        out = piecewise.forward_mode_apply(_functions.Dual(primals[0], tangents[0]))
        return out.value, out.partials

    fun.defjvp(fun_jvp)
    return fun

def make_custom_vjp(piecewise):
    """Wrap `piecewise.evaluate` in a jax.custom_vjp built from `piecewise.reverse_mode_backward`.

    The pullback is a jax.tree_util.Partial so it can be carried as the residual.
    Forward mode is not available on the result.
    """
    fun = jax.custom_vjp(piecewise.evaluate)

    def fun_fwd(x):
        return piecewise.reverse_mode_backward(x)

    def fun_bwd(pullback, dy):
        # first entry is the (empty) sensitivity of the piecewise object itself
        _, dx = pullback(dy)
        return (dx,)

    fun.defvjp(fun_fwd, fun_bwd)
    return fun

def create_jax_ops(piecewise):
    """Compile the value, the smoothed derivative and the autodiff gradient of `piecewise`.

    All three work elementwise on arrays. The gradient goes through whichever rule
    `piecewise` registered with JAX, so it should agree with the derivative.
    """

    def forward_model(x):
        return piecewise(x)

    def forward_derivative(x):
        return piecewise.derivative(x)

    jitted_forward = jax.jit(forward_model)
    jitted_derivative = jax.jit(forward_derivative)
    jitted_grad = jax.jit(jnp.vectorize(jax.grad(forward_model)))

    logger.debug(f"Created jitted jax ops for {piecewise!r}")

    return jitted_forward, jitted_derivative, jitted_grad
