"""Example target densities.

Each target provides `log_dens` and `grad_log_dens` methods suitable for
passing to the constructors of `micromc.systems` classes, along with the
position space dimension `dim`.
"""

import numpy as np
from scipy.linalg import cho_factor, cho_solve
from scipy.special import logsumexp, softmax


class StandardNormalTarget(object):
    """Isotropic standard normal target."""

    def __init__(self, dim):
        self.dim = dim

    def log_dens(self, pos):
        return -0.5 * pos @ pos

    def grad_log_dens(self, pos):
        return -pos


class GaussianTarget(object):
    """Multivariate normal target with given mean and covariance."""

    def __init__(self, mean, covar):
        """
        Args:
            mean (array): Mean vector.
            covar (array): Positive definite covariance matrix.
        """
        self.mean = np.asarray(mean, dtype=np.float64)
        self.dim = self.mean.shape[0]
        self._chol_factor = cho_factor(covar, lower=True)

    def log_dens(self, pos):
        diff = pos - self.mean
        return -0.5 * diff @ cho_solve(self._chol_factor, diff)

    def grad_log_dens(self, pos):
        return -cho_solve(self._chol_factor, pos - self.mean)


class GaussianMixtureTarget(object):
    """Equal covariance isotropic Gaussian mixture target."""

    def __init__(self, means, sigma=1., weights=None):
        """
        Args:
            means (array): Component means, with shape `(n_component, dim)`.
            sigma (float): Common component standard deviation.
            weights (None or array): Component weights. Uniform if `None`.
        """
        self.means = np.atleast_2d(np.asarray(means, dtype=np.float64))
        self.dim = self.means.shape[1]
        self.sigma = sigma
        if weights is None:
            weights = np.ones(self.means.shape[0])
        weights = np.asarray(weights, dtype=np.float64)
        self.log_weights = np.log(weights / weights.sum())

    def _component_log_dens(self, pos):
        diff = pos[None] - self.means
        return self.log_weights - 0.5 * (diff**2).sum(-1) / self.sigma**2

    def log_dens(self, pos):
        return logsumexp(self._component_log_dens(pos))

    def grad_log_dens(self, pos):
        resp = softmax(self._component_log_dens(pos))
        return -(resp[:, None] * (pos[None] - self.means)).sum(0) / (
            self.sigma**2)


class BananaTarget(object):
    """Two-dimensional banana shaped (Rosenbrock type) target."""

    dim = 2

    def __init__(self, curvature=1., scale=0.1):
        self.curvature = curvature
        self.scale = scale

    def log_dens(self, pos):
        ridge = pos[1] - self.curvature * pos[0]**2
        return -0.5 * pos[0]**2 - 0.5 * ridge**2 / self.scale

    def grad_log_dens(self, pos):
        ridge = pos[1] - self.curvature * pos[0]**2
        return np.array([
            -pos[0] + 2 * self.curvature * pos[0] * ridge / self.scale,
            -ridge / self.scale])


class FlatTarget(object):
    """Improper uniform target with constant log density and zero gradient."""

    def __init__(self, dim, log_dens_value=0.):
        self.dim = dim
        self.log_dens_value = log_dens_value

    def log_dens(self, pos):
        return self.log_dens_value

    def grad_log_dens(self, pos):
        return np.zeros(self.dim)
