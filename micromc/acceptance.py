"""Acceptance policies for trajectory endpoints.

Microcanonical samplers do not apply a Metropolis correction. The policies
here instead either always accept the trajectory endpoint, correcting the
numerical energy drift by rescaling the momentum, or reject endpoints whose
potential energy has drifted by more than a tolerance, which acts as a
safeguard against integrator blow-up rather than guaranteeing invariance of
the target distribution.
"""

from abc import ABC, abstractmethod
import logging
from micromc.errors import ConfigurationError
from micromc.systems import UnitMomentumSystem
from micromc.vectors import rescale_to_norm

logger = logging.getLogger(__name__)


class AcceptancePolicy(ABC):
    """Base class for acceptance policies."""

    def check_system(self, system):
        """Check the policy can be used with `system`."""

    @abstractmethod
    def decide(self, system, init_state, final_state, h_init):
        """Decide whether to accept a trajectory endpoint.

        Args:
            system (micromc.systems.System): System the trajectory was
                integrated for.
            init_state (micromc.states.ChainState): State at trajectory start.
            final_state (micromc.states.ChainState): State at trajectory end.
                Not modified.
            h_init (float): Total energy at the trajectory start.

        Returns:
            accept (bool): Whether the endpoint is accepted.
            state (micromc.states.ChainState): Endpoint state, possibly with
                a corrected momentum.
            stats (Dict[str, float]): Statistics computed in the decision.
        """


class DeterministicAcceptance(AcceptancePolicy):
    """Always accept the trajectory endpoint.

    Before accepting, the momentum is rescaled such that the total energy at
    the endpoint equals the energy at the trajectory start, i.e. to norm
    `sqrt(2 * max(h_init - U_final, min_kinetic))`, compensating for the
    energy drift of the discretisation. The rescaling is skipped if the
    current momentum norm is at most `min_mom_norm`.

    Only valid for systems with a free momentum, as the rescaling moves a
    unit momentum off the sphere.
    """

    min_kinetic = 1e-10
    min_mom_norm = 1e-10

    def check_system(self, system):
        if isinstance(system, UnitMomentumSystem):
            raise ConfigurationError(
                'Deterministic acceptance rescales the momentum norm so '
                'cannot be used with a unit momentum system.')

    def decide(self, system, init_state, final_state, h_init):
        delta_h = system.h(final_state) - h_init
        kinetic = h_init - system.potential_energy(final_state)
        if kinetic < self.min_kinetic:
            logger.info(
                f'Endpoint potential energy exceeds initial energy by '
                f'{-kinetic:.2e}; clamping kinetic energy to floor.')
            kinetic = self.min_kinetic
        state = final_state.copy()
        state.mom = rescale_to_norm(
            state.mom, (2 * kinetic)**0.5, self.min_mom_norm)
        return True, state, {'delta_h': delta_h}


class EnergyDriftAcceptance(AcceptancePolicy):
    """Accept the endpoint if the potential energy drift is below a threshold.

    With `delta_u = U(final) - U(initial)` the endpoint is accepted if and
    only if `abs(delta_u) < energy_threshold`, otherwise the chain repeats
    the previous position. A zero threshold rejects every move.
    """

    def __init__(self, energy_threshold=0.5):
        """
        Args:
            energy_threshold (float): Non-negative tolerance on the absolute
                change in potential energy over a trajectory.
        """
        self.energy_threshold = energy_threshold

    @property
    def energy_threshold(self):
        """Tolerance on the absolute potential energy drift."""
        return self._energy_threshold

    @energy_threshold.setter
    def energy_threshold(self, value):
        if value < 0:
            raise ValueError('energy_threshold must be non-negative.')
        self._energy_threshold = value

    def decide(self, system, init_state, final_state, h_init):
        delta_u = (
            system.potential_energy(final_state) -
            system.potential_energy(init_state))
        accept = bool(abs(delta_u) < self.energy_threshold)
        if not accept:
            logger.debug(
                f'Rejecting endpoint with potential energy drift '
                f'{delta_u:.2e} (threshold {self.energy_threshold:.2e}).')
        delta_h = delta_u + (
            system.kinetic_energy(final_state) -
            system.kinetic_energy(init_state))
        if 'kinetic_change' in final_state:
            delta_h += final_state.kinetic_change
        return accept, final_state, {'delta_h': delta_h}
