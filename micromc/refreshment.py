"""Partial momentum refreshment channels.

A refreshment channel injects a bounded amount of isotropic Gaussian noise
into the momentum between deterministic integrator updates, then restores
the momentum norm constraint. The noise may optionally be restricted to the
tangent plane orthogonal to a given direction.
"""

from abc import ABC, abstractmethod
from micromc.vectors import (
    norm, project_onto_tangent_plane, rescale_to_norm, standard_normal)


class Refreshment(ABC):
    """Base class for partial momentum refreshment channels."""

    min_norm = 1e-12

    def __init__(self, eta=0.1):
        """
        Args:
            eta (float): Refreshment strength in [0, 1], scaling the injected
                standard normal noise. Zero leaves the momentum direction
                unchanged.
        """
        self.eta = eta

    @property
    def eta(self):
        """Refreshment strength scaling the injected noise."""
        return self._eta

    @eta.setter
    def eta(self, value):
        if not 0 <= value <= 1:
            raise ValueError('eta should have a value in the interval [0, 1].')
        self._eta = value

    @abstractmethod
    def _target_norm(self, mom, target_norm):
        """Norm to renormalise the refreshed momentum to."""

    def refresh(self, mom, rng, direction=None, target_norm=None):
        """Partially refresh a momentum vector.

        Args:
            mom (array): Momentum to refresh. Not modified.
            rng (numpy.random.Generator): Numpy random number generator.
            direction (None or array): If not `None` a unit vector and the
                noise is projected on to the plane orthogonal to it.
            target_norm (None or float): Norm to rescale the refreshed
                momentum to, where supported by the channel.

        Returns:
            array: Refreshed momentum. If the norm of the perturbed momentum
                is at most `min_norm` the refreshment is skipped and `mom` is
                returned unchanged.
        """
        noise = standard_normal(rng, mom.shape[0])
        if direction is not None:
            noise = project_onto_tangent_plane(noise, direction)
        new_mom = mom + self.eta * noise
        if norm(new_mom) <= self.min_norm:
            return mom
        return rescale_to_norm(
            new_mom, self._target_norm(mom, target_norm), self.min_norm)


class NormPreservingRefreshment(Refreshment):
    """Refreshment preserving the momentum norm.

    Used with free (Gaussian) momenta, where the momentum norm encodes the
    kinetic energy implied by the energy level. By default the refreshed
    momentum is rescaled to the norm of the input momentum, however a
    different target norm can be passed to `refresh`, for example the norm
    of the momentum before a tangent plane projection.
    """

    def _target_norm(self, mom, target_norm):
        return norm(mom) if target_norm is None else target_norm


class UnitNormRefreshment(Refreshment):
    """Refreshment of a momentum constrained to the unit sphere.

    The refreshed momentum is always renormalised to unit length, such that
    it represents a direction only.
    """

    def _target_norm(self, mom, target_norm):
        return 1.
