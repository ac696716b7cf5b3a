"""
activations.py
~~~~~~~~~~~~~~

Elementwise non-linearities and their derivatives.

Every function takes an array of any shape (vector or matrix) and returns a
new array of the same shape; nothing is modified in place.
"""

import enum

import numpy as np

from .errors import UnknownSelectorError


class NonLinearFunction(enum.Enum):
    SIGMOID = "sigmoid"
    TANH = "tanh"
    RELU = "relu"
    LRELU = "lrelu"

    @classmethod
    def coerce(cls, value):
        """
        Accept a member or the (case-insensitive) name/value of one.

        Raises:
            UnknownSelectorError: for anything outside the four functions.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if key in (member.value, member.name.lower()):
                    return member
        raise UnknownSelectorError(f"Unknown activation function: {value!r}")


# leaky relu clamps to this constant rather than scaling the input
LRELU_FLOOR = 0.01


def sigmoid(z, derivative=False):
    # clip keeps exp() finite; sigmoid is already saturated well before +-500
    s = 1.0 / (1.0 + np.exp(-np.clip(z, -500.0, 500.0)))
    if derivative:
        return s * (1.0 - s)
    return s


def tanh(z, derivative=False):
    t = np.tanh(z)
    if derivative:
        return 1.0 - t ** 2
    return t


def relu(z, derivative=False):
    z = np.asarray(z, dtype=float)
    if derivative:
        return (z > 0).astype(z.dtype)
    return np.where(z > 0, z, 0.0)


def lrelu(z, derivative=False):
    z = np.asarray(z, dtype=float)
    if derivative:
        return (z > 0).astype(z.dtype)
    return np.where(z > 0, z, LRELU_FLOOR)


_FUNCTIONS = {
    NonLinearFunction.SIGMOID: sigmoid,
    NonLinearFunction.TANH: tanh,
    NonLinearFunction.RELU: relu,
    NonLinearFunction.LRELU: lrelu,
}


def run_activation(values, function, derivative=False):
    """
    Apply ``function`` (or its derivative) elementwise to ``values``.

    Args:
        values: vector or matrix of pre-activations
        function: a :class:`NonLinearFunction` or its name
        derivative: return f'(values) instead of f(values)

    Returns:
        ndarray with the shape of ``values``

    Raises:
        UnknownSelectorError: if ``function`` is not one of the supported four
    """
    return _FUNCTIONS[NonLinearFunction.coerce(function)](values, derivative=derivative)
