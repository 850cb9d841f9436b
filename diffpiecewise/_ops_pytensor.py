import numpy as np
import pytensor
import pytensor.tensor as pt
from pytensor.graph import Apply, Op
from pytensor.gradient import grad_not_implemented

from . import _ops_jax

import logging
logger = logging.getLogger(__name__)

def create_pytensor_ops(piecewise):
    """Create pytensor Ops for the value and the smoothed derivative of `piecewise`.

    The gradient of the value Op is the smoothed derivative, so `piecewise` can be used
    inside a pytensor (or PyMC) graph and differentiated with pytensor.grad. Integer
    inputs are cast to floatX; both Ops work elementwise.

    Returns:
        value_op, derivative_op, test_out
    """
    jitted_forward, jitted_derivative, jitted_grad = _ops_jax.create_jax_ops(piecewise)

    def as_float_tensor(x):
        x = pt.as_tensor_variable(x)
        # integer inputs would otherwise give integer outputs and truncate the result
        if not x.dtype.startswith("float"):
            x = pt.cast(x, pytensor.config.floatX)
        return x

    # Define a pytensor Op for the smoothed derivative
    class PiecewiseDerivative(Op):
        def make_node(self, x) -> Apply:
            x = as_float_tensor(x)

            # Output has the same type as the input, elementwise
            return Apply(self, [x], [x.type()])

        def perform(self, node: Apply, inputs: list[np.ndarray], outputs: list[list[None]]) -> None:
            # There is one list per output, each pre-populated with a `None` where the result should be saved.
            outputs[0][0] = np.asarray(jitted_derivative(inputs[0]), dtype=node.outputs[0].dtype)

        def grad(self, inputs, output_gradients):
            # second derivatives are not provided
            return [grad_not_implemented(self, 0, inputs[0])]

    # Define a pytensor Op for the value of the function
    class PiecewiseValue(Op):
        def make_node(self, x) -> Apply:
            x = as_float_tensor(x)
            return Apply(self, [x], [x.type()])

        def perform(self, node: Apply, inputs: list[np.ndarray], outputs: list[list[None]]) -> None:
            outputs[0][0] = np.asarray(jitted_forward(inputs[0]), dtype=node.outputs[0].dtype)

        def grad(self, inputs, output_gradients):
            # Only the input gets a gradient, the piecewise parameters are constants of the Op.
            return [output_gradients[0] * derivative_op(inputs[0])]

    # Create our Ops
    value_op = PiecewiseValue()
    derivative_op = PiecewiseDerivative()

    # Check that the Ops and the jitted jax functions return the same thing
    def test_out(x):
        x = np.asarray(x, dtype=float)

        jitted_out = jitted_forward(x)
        op_out = value_op(x).eval()
        logger.debug(f"Jitted out: {jitted_out}, Op out: {op_out}")
        assert np.allclose(op_out, jitted_out), f"Op output {op_out} does not match jitted output {jitted_out}"

        jitted_grad_out = jitted_grad(x)
        op_grad = derivative_op(x).eval()
        logger.debug(f"Jitted grad: {jitted_grad_out}, Op grad: {op_grad}")
        assert np.allclose(op_grad, jitted_grad_out), f"Op gradient {op_grad} does not match jitted gradient {jitted_grad_out}"

    logger.debug(f"Created pytensor ops for {piecewise!r}")

    return value_op, derivative_op, test_out
