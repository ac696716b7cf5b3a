# neuralnet/helpers/Backend.py
import logging

import numpy as np

logger = logging.getLogger(__name__)


class Backend:
    """Array backend shared by every network: dtype, coercion and the random source."""
    def __init__(self, default_float=np.float64, seed=None):
        self.xp = np
        self.default_float = default_float
        self._rng = np.random.default_rng(seed)

    # -------- conversion --------
    def ensure_array(self, x, dtype=None, copy=False):
        """
        Ensure 'x' is an ndarray of the backend float dtype.
        Accepts lists, tuples, scalars and ndarrays.
        """
        dtype = self.default_float if dtype is None else dtype
        if isinstance(x, self.xp.ndarray):
            if x.dtype != dtype:
                return x.astype(dtype, copy=True)
            return x.copy() if copy else x
        return self.xp.asarray(x, dtype=dtype)

    def as_vector(self, x):
        """Flatten anything array-like into a 1-D float vector (copy)."""
        return self.xp.ravel(self.ensure_array(x)).copy()

    def to_list(self, x):
        """Plain nested python lists, used for read-only parameter snapshots."""
        return self.xp.asarray(x).tolist()

    # -------- array creation --------
    def zeros_like(self, x):
        return self.xp.zeros_like(x)

    # -------- randomness --------
    @property
    def random(self):
        """The process-scoped generator. Every shuffle and initialisation draws from it."""
        return self._rng

    def seed(self, seed=42):
        """Seed RNG for reproducibility."""
        self._rng = np.random.default_rng(seed)
        np.random.seed(seed)  # keep legacy numpy seeded too
        logger.debug("Backend generator reseeded with %s", seed)

    def normal(self, shape, rng=None):
        """Standard normal samples (mean 0, std 1) of the backend dtype."""
        rng = self._rng if rng is None else rng
        return rng.standard_normal(shape).astype(self.default_float, copy=False)

    # -------- delegate unknown attrs to xp --------
    def __getattr__(self, name):
        return getattr(self.xp, name)


# Global backend instance - can be reseeded
backend = Backend()
