"""Microcanonical systems encapsulating target densities and kinetic terms."""

from abc import ABC, abstractmethod
from micromc.states import cache_in_state
from micromc.autodiff import gradient_fallback
from micromc.vectors import sq_norm, standard_normal, random_unit_vector


class System(ABC):
    r"""Base class for microcanonical systems.

    The energy function \(h\) is assumed to have the form

    \[ h(q, p) = U(q) + K(p) \]

    where \(q\) and \(p\) are the position and momentum variables,
    \(U(q) = -\log \pi(q)\) is the potential energy defined by the
    (unnormalized) target density \(\pi\) and \(K\) is a kinetic energy
    term. The energy is only used for bookkeeping in the microcanonical
    samplers, to restore or bound the drift in \(h\) along a trajectory.
    """

    def __init__(self, log_dens, dim, grad_log_dens=None):
        """
        Args:
            log_dens (Callable[[array], float]): Function which given a
                position array returns the logarithm of an unnormalized
                probability density on the position space, with the
                corresponding distribution being the target distribution it
                is wished to draw approximate samples from.
            dim (int): Dimension of the position space.
            grad_log_dens (
                    None or Callable[[array], array or Tuple[array, float]]):
                Function which given a position array returns the derivative
                of `log_dens` with respect to the position array argument.
                Optionally the function may instead return a 2-tuple with the
                derivative first and the value of `log_dens` second. If
                `None` is passed (the default) autograd is used to construct
                the derivative automatically.
        """
        if dim < 1:
            raise ValueError('Dimension of position space must be positive.')
        self.dim = dim
        self._log_dens = log_dens
        self._grad_log_dens = gradient_fallback(
            grad_log_dens, log_dens, 'grad_log_dens')

    @cache_in_state('pos')
    def log_dens(self, state):
        """Logarithm of unnormalized density of target distribution.

        Args:
            state (micromc.states.ChainState): State to compute value at.

        Returns:
            float: Value of computed log density.
        """
        return self._log_dens(state.pos)

    @cache_in_state('pos', auxiliary_outputs='log_dens')
    def grad_log_dens(self, state):
        """Derivative of log density with respect to position.

        Args:
            state (micromc.states.ChainState): State to compute value at.

        Returns:
            array: Value of `log_dens(state)` derivative with respect to
                `state.pos`.
        """
        return self._grad_log_dens(state.pos)

    def potential_energy(self, state):
        """Negative log density at the state position."""
        return -self.log_dens(state)

    @abstractmethod
    def kinetic_energy(self, state):
        """Kinetic energy term of the state momentum.

        Args:
            state (micromc.states.ChainState): State to compute value at.

        Returns:
            float: Value of kinetic energy.
        """

    def h(self, state):
        """Total energy of a state.

        Args:
            state (micromc.states.ChainState): State to compute value at.

        Returns:
            float: Sum of potential and kinetic energies.
        """
        return self.potential_energy(state) + self.kinetic_energy(state)

    def sample_position(self, rng):
        """Sample an initial position from the standard normal reference."""
        return standard_normal(rng, self.dim)

    @abstractmethod
    def sample_momentum(self, state, rng):
        """Sample a fresh momentum for the start of a trajectory.

        Args:
            state (micromc.states.ChainState): State defining position.
            rng (numpy.random.Generator): Numpy random number generator.

        Returns:
            mom (array): Sampled momentum.
        """


class GaussianMomentumSystem(System):
    r"""System with a free momentum and Gaussian kinetic energy.

    The kinetic energy is \(K(p) = \frac{1}{2} p^T p\) and trajectories start
    from a standard normal momentum. Along a microcanonical trajectory the
    momentum norm is fixed by the energy level, so that at the trajectory end
    \(\|p\| = \sqrt{2 (h_0 - U(q))}\).
    """

    @cache_in_state('mom')
    def kinetic_energy(self, state):
        return 0.5 * sq_norm(state.mom)

    def sample_momentum(self, state, rng):
        return standard_normal(rng, self.dim)


class UnitMomentumSystem(System):
    """System with a momentum constrained to the unit sphere.

    The momentum represents a direction of motion only and the kinetic energy
    is the constant one half. Trajectories start from a direction drawn
    uniformly on the unit sphere.
    """

    def kinetic_energy(self, state):
        return 0.5

    def sample_momentum(self, state, rng):
        return random_unit_vector(rng, self.dim)
