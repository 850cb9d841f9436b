import json
import jax
import numpy as np
import matplotlib.pyplot as plt

# ---------------------------------------------------------------------------
# Utilities for sampling

def tabulate(piecewise, x):
    """Sample the value and the smoothed derivative of `piecewise` at the points `x`.

    Returns a dict of numpy arrays with keys "x", "value" and "derivative".
    """
    x = np.asarray(x, dtype=float)
    return {
        "x": x,
        "value": np.asarray(piecewise(x)),
        "derivative": np.asarray(piecewise.derivative(x)),
    }

def table_to_json(table, filename, piecewise=None):
    """Save a table such as the output of `tabulate` to a JSON file.

    Values may be numpy arrays, jax arrays or plain python values. If `piecewise` is given,
    its repr is stored under "piecewise" so the file records which function was sampled.
    """
    json_dict = {k: np.asarray(v).tolist() if isinstance(v, (np.ndarray, jax.Array)) else v for k, v in table.items()}
    if piecewise is not None:
        json_dict["piecewise"] = repr(piecewise)

    with open(filename, 'w') as f:
        json.dump(json_dict, f, indent=4)

# ---------------------------------------------------------------------------
# Utilities for Plotting

def plot_piecewise(piecewise, x=None, ax=None, title=None):
    """Plot the value of `piecewise` and its smoothed derivative against `x`.

    If `ax` is None a new figure is created and shown, otherwise the lines are drawn on `ax`.
    `x` defaults to 1000 points spanning 5 units either side of the split.
    """
    do_show = False
    if ax is None:
        fig, ax = plt.subplots()
        do_show = True

    if x is None:
        x = np.linspace(piecewise.x_split - 5, piecewise.x_split + 5, 1000)

    table = tabulate(piecewise, x)

    ax.plot(table["x"], table["value"], label="Piecewise")
    ax.plot(table["x"], table["derivative"], label="Smoothed derivative", linestyle="--")
    ax.axvline(piecewise.x_split, color="k", lw=0.5)
    ax.set_xlabel("$x$")
    ax.set_title(title if title is not None else repr(piecewise))
    ax.grid()
    ax.legend()

    if do_show:
        plt.show()

    return ax
