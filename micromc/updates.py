r"""Momentum update rules for microcanonical integrators.

Each rule advances the momentum over a fraction of an integrator step given
the gradient of the target log density at the current position. Rules are
pure with respect to their arguments, always returning a new array. All
rules guard against a vanishing gradient, in which case the gradient
direction is undefined, by skipping the update rather than dividing by zero.

The gradient ascent direction used throughout is

\[ e = -\nabla U / \| \nabla U \| = \nabla \log \pi / \|\nabla \log \pi\|. \]
"""

from abc import ABC, abstractmethod
import numpy as np
from micromc.errors import ConfigurationError
from micromc.refreshment import NormPreservingRefreshment
from micromc.vectors import (
    norm, unit_vector, project_onto_tangent_plane, standard_normal)


class MomentumUpdate(ABC):
    """Base class for momentum update rules."""

    min_grad_norm = 1e-10

    def check_dimension(self, dim):
        """Check the rule is valid for a position space of dimension `dim`."""

    @abstractmethod
    def update(self, mom, grad_log_dens, step_fraction, dim, rng):
        """Advance a momentum over a fraction of an integrator step.

        Args:
            mom (array): Momentum to update. Not modified.
            grad_log_dens (array): Gradient of the target log density at the
                current position.
            step_fraction (float): Time interval to advance over, typically
                half the integrator step size.
            dim (int): Dimension of the position space.
            rng (numpy.random.Generator): Numpy random number generator. Only
                used by stochastic rules.

        Returns:
            array: Updated momentum.
        """

    def __call__(self, mom, grad_log_dens, step_fraction, dim, rng):
        return self.update(mom, grad_log_dens, step_fraction, dim, rng)


class TangentialProjectionUpdate(MomentumUpdate):
    """Tangential projection momentum update.

    The momentum is projected on to the plane orthogonal to the gradient
    ascent direction `e`, then pushed along `e` by the step fraction. If the
    gradient norm is below `min_grad_norm` the momentum is left unchanged.
    """

    def _project(self, mom, direction, rng):
        return project_onto_tangent_plane(mom, direction)

    def update(self, mom, grad_log_dens, step_fraction, dim, rng):
        direction, _ = unit_vector(grad_log_dens, self.min_grad_norm)
        if direction is None:
            return mom.copy()
        mom = self._project(mom, direction, rng)
        return mom + direction * step_fraction


class StochasticTangentialUpdate(TangentialProjectionUpdate):
    """Tangential projection update with fused partial refreshment.

    After projecting the momentum on to the tangent plane, Gaussian noise
    restricted to the tangent plane is added by a norm preserving
    refreshment channel and the result rescaled to the norm of the momentum
    before the update, so that the magnitude implied by the energy level is
    retained. The push along the gradient ascent direction then follows as
    in `TangentialProjectionUpdate`.
    """

    def __init__(self, refreshment=None):
        """
        Args:
            refreshment (None or micromc.refreshment.Refreshment): Channel used
                to inject the tangent plane noise. Defaults to a
                `NormPreservingRefreshment` with its default strength.
        """
        if refreshment is None:
            refreshment = NormPreservingRefreshment()
        self.refreshment = refreshment

    @property
    def eta(self):
        """Strength of the fused refreshment."""
        return self.refreshment.eta

    @eta.setter
    def eta(self, value):
        self.refreshment.eta = value

    def _project(self, mom, direction, rng):
        mom_norm = norm(mom)
        mom_tangent = project_onto_tangent_plane(mom, direction)
        new_mom = self.refreshment.refresh(
            mom_tangent, rng, direction=direction, target_norm=mom_norm)
        # no tangent component to rescale so keep the unprojected momentum
        if norm(new_mom) <= self.refreshment.min_norm:
            return mom
        return new_mom


class ExponentialMapUpdate(MomentumUpdate):
    r"""Geometric update of a momentum constrained to the unit sphere.

    Uses the closed form solution of the energy sampling Hamiltonian
    momentum dynamics [1] for a unit direction \(u\) and constant gradient
    over the step. With \(g = \|\nabla U\|\) and
    \(\zeta = \exp(-\epsilon g / (d - 1))\) the updated direction is

    \[ u' \propto e (1 - \zeta)(1 + \zeta + u^T e (1 - \zeta)) + 2 \zeta u \]

    normalised to unit length. The form avoids overflow for large gradient
    norms as only negative exponents are evaluated.

    If the gradient norm is below `min_grad_norm` the direction is returned
    unchanged, or if `degenerate_noise_scale` is positive, perturbed by
    isotropic Gaussian noise with that scale and renormalised so that the
    direction cannot become stuck where the gradient vanishes.

    References:

      1. Ver Steeg, G. and Galstyan, A., 2021. Hamiltonian dynamics with
         non-Newtonian momentum for rapid sampling. Advances in Neural
         Information Processing Systems, 34.
      2. Robnik, J., De Luca, G.B., Silverstein, E. and Seljak, U., 2023.
         Microcanonical Hamiltonian Monte Carlo. Journal of Machine Learning
         Research, 24(311), pp.1-34.
    """

    min_grad_norm = 1e-8
    min_mom_norm = 1e-12

    def __init__(self, degenerate_noise_scale=0.):
        """
        Args:
            degenerate_noise_scale (float): Scale of the random perturbation
                applied to the direction when the gradient vanishes. The
                default of zero leaves the direction unchanged.
        """
        if degenerate_noise_scale < 0:
            raise ValueError('degenerate_noise_scale must be non-negative.')
        self.degenerate_noise_scale = degenerate_noise_scale

    def check_dimension(self, dim):
        if dim < 2:
            raise ConfigurationError(
                'Exponential map momentum update requires a position space '
                'of dimension at least two.')

    def _zeta(self, grad_norm, step_fraction, dim):
        return np.exp(-step_fraction * grad_norm / (dim - 1))

    def update(self, mom, grad_log_dens, step_fraction, dim, rng):
        direction, grad_norm = unit_vector(grad_log_dens, self.min_grad_norm)
        if direction is None:
            if self.degenerate_noise_scale > 0:
                new_mom = mom + self.degenerate_noise_scale * standard_normal(
                    rng, dim)
                new_mom_norm = norm(new_mom)
                if new_mom_norm > self.min_mom_norm:
                    return new_mom / new_mom_norm
            return mom.copy()
        zeta = self._zeta(grad_norm, step_fraction, dim)
        mom_dot_dir = mom @ direction
        new_mom = (
            direction * (1 - zeta) * (1 + zeta + mom_dot_dir * (1 - zeta)) +
            2 * zeta * mom)
        new_mom_norm = norm(new_mom)
        # u = -e is a fixed point, unresolved once zeta underflows to zero
        if new_mom_norm <= self.min_mom_norm:
            return mom.copy()
        return new_mom / new_mom_norm

    def kinetic_energy_change(self, mom, grad_log_dens, step_fraction, dim):
        """Change in kinetic energy implied by an update.

        For the energy sampling Hamiltonian dynamics the unit direction
        update corresponds to a change in the (unnormalized) momentum
        magnitude, with the associated kinetic energy change returned here.
        This is zero when the gradient vanishes.

        Args:
            mom (array): Momentum before the update.
            grad_log_dens (array): Gradient of the target log density.
            step_fraction (float): Time interval advanced over.
            dim (int): Dimension of the position space.

        Returns:
            float: Kinetic energy change.
        """
        direction, grad_norm = unit_vector(grad_log_dens, self.min_grad_norm)
        if direction is None:
            return 0.
        delta = step_fraction * grad_norm / (dim - 1)
        mom_dot_dir = np.clip(mom @ direction, -1., 1.)
        # log(1 + ue + (1 - ue) zeta**2) evaluated without underflow
        with np.errstate(divide='ignore'):
            log_sum = np.logaddexp(
                np.log1p(mom_dot_dir), np.log1p(-mom_dot_dir) - 2 * delta)
        delta_r = delta - np.log(2) + log_sum
        return (dim - 1) * delta_r


MOMENTUM_UPDATES = {
    'tangential': TangentialProjectionUpdate,
    'stochastic': StochasticTangentialUpdate,
    'exponential': ExponentialMapUpdate,
}
