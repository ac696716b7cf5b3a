"""
errors.py
~~~~~~~~~

Exceptions raised by the network builders and the trainer.

Everything here is a configuration problem detected before any expensive
work starts, so the whole family also derives from :class:`ValueError`.
"""


class NeuralNetError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(NeuralNetError, ValueError):
    """Invalid network, dataset or training configuration."""


class ShapeMismatchError(ConfigurationError):
    """Array dimensions disagree with the network or with each other."""


class UnknownSelectorError(ConfigurationError):
    """An activation, pooling or layer selector outside the supported set."""
