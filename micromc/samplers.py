"""Microcanonical Monte Carlo sampler classes."""

import logging
from warnings import warn
import numpy as np
from micromc.states import ChainState
from micromc.systems import GaussianMomentumSystem, UnitMomentumSystem
from micromc.integrators import MicrocanonicalLeapfrogIntegrator
from micromc.updates import (
    TangentialProjectionUpdate, StochasticTangentialUpdate,
    ExponentialMapUpdate)
from micromc.refreshment import NormPreservingRefreshment, UnitNormRefreshment
from micromc.acceptance import DeterministicAcceptance, EnergyDriftAcceptance
from micromc.events import EventQueue, ProposalEvent, DecisionEvent
from micromc.errors import ConfigurationError
from micromc.vectors import copy_vector

logger = logging.getLogger(__name__)


STATISTIC_TYPES = {
    'accept_stat': (np.float64, np.nan),
    'delta_h': (np.float64, np.nan),
    'n_step': (np.int64, -1),
}


def _process_rng(rng):
    """Convert seed or legacy random state to a `numpy.random.Generator`."""
    if isinstance(rng, np.random.RandomState):
        warn(
            'Use of numpy.random.RandomState random number generators is '
            'deprecated. Please use a numpy.random.Generator instance '
            'instead for example from a call to numpy.random.default_rng.',
            DeprecationWarning)
        return np.random.Generator(rng._bit_generator)
    elif isinstance(rng, np.random.Generator):
        return rng
    else:
        return np.random.default_rng(rng)


class SamplerState(object):
    """State of a chain owned by a sampler.

    Attributes:
        chain (List[array]): Append-only sequence of chain positions, with
            the first entry the initial position.
        final_mom (None or array): Momentum at the end of the most recent
            trajectory after any acceptance correction.
        stats (Dict[str, List]): Per-step statistics, keyed by the names in
            `STATISTIC_TYPES`.
    """

    def __init__(self, chain, final_mom=None, stats=None):
        self.chain = chain
        self.final_mom = final_mom
        if stats is None:
            stats = {key: [] for key in STATISTIC_TYPES}
        self.stats = stats

    @property
    def pos(self):
        """Current chain position."""
        return self.chain[-1]

    def __len__(self):
        return len(self.chain)

    def __repr__(self):
        return (
            f'{type(self).__name__}(n_sample={len(self.chain)}, '
            f'pos={self.pos})')


class MicrocanonicalMCMC(object):
    """Generic microcanonical Markov chain Monte Carlo sampler.

    In each step a fresh momentum is sampled, a trajectory of a fixed number
    of integrator steps is simulated and an acceptance policy decides whether
    the trajectory endpoint or the previous position is appended to the
    chain. Exactly one position is appended per step, and one proposal event
    followed by one accept or reject event is pushed to the event queue.

    The integrator, momentum update rule, refreshment channel and acceptance
    policy are independent components, so that any combination can be used.
    The named subclasses provide the standard combinations.
    """

    def __init__(self, system, integrator, acceptance, rng, n_step,
                 event_queue=None):
        """
        Args:
            system (micromc.systems.System): System defining the target
                density and kinetic energy.
            integrator (micromc.integrators.MicrocanonicalLeapfrogIntegrator):
                Integrator used to simulate trajectories.
            acceptance (micromc.acceptance.AcceptancePolicy): Policy deciding
                whether trajectory endpoints are accepted.
            rng (numpy.random.Generator or int or None): Numpy random number
                generator, or seed used to create one. A single generator is
                used for all random draws by the sampler.
            n_step (int): Number of integrator steps per trajectory.
            event_queue (None or micromc.events.EventQueue): Queue to push
                proposal and decision events to. A new queue is created if
                `None` (the default).
        """
        acceptance.check_system(system)
        self.system = system
        self.integrator = integrator
        self.acceptance = acceptance
        self.rng = _process_rng(rng)
        self.n_step = n_step
        self.events = EventQueue() if event_queue is None else event_queue
        self.state = None

    @property
    def n_step(self):
        """Number of integrator steps per trajectory."""
        return self._n_step

    @n_step.setter
    def n_step(self, value):
        if int(value) != value or value < 1:
            raise ValueError('n_step must be a positive integer.')
        self._n_step = int(value)

    @property
    def step_size(self):
        """Integrator time step."""
        return self.integrator.step_size

    @step_size.setter
    def step_size(self, value):
        if not value > 0:
            raise ValueError('step_size must be positive.')
        self.integrator.step_size = value

    def _eta_component(self):
        for component in (
                self.integrator.refreshment, self.integrator.momentum_update):
            if hasattr(component, 'eta'):
                return component
        raise AttributeError(
            f'{type(self).__name__} has no refreshment component with a '
            f'strength parameter eta.')

    @property
    def eta(self):
        """Strength of the momentum refreshment."""
        return self._eta_component().eta

    @eta.setter
    def eta(self, value):
        self._eta_component().eta = value

    @property
    def energy_threshold(self):
        """Tolerance on the energy drift for threshold acceptance."""
        if not hasattr(self.acceptance, 'energy_threshold'):
            raise AttributeError(
                f'{type(self).__name__} acceptance policy has no energy '
                f'threshold.')
        return self.acceptance.energy_threshold

    @energy_threshold.setter
    def energy_threshold(self, value):
        if not hasattr(self.acceptance, 'energy_threshold'):
            raise AttributeError(
                f'{type(self).__name__} acceptance policy has no energy '
                f'threshold.')
        self.acceptance.energy_threshold = value

    def reset(self, init_pos=None):
        """Start a new chain.

        Args:
            init_pos (None or array): Initial chain position. If `None` (the
                default) a position is drawn from a standard normal reference
                distribution.

        Returns:
            sampler_state (SamplerState): New state, also stored as the
                `state` attribute of the sampler.
        """
        if init_pos is None:
            init_pos = self.system.sample_position(self.rng)
        elif np.shape(init_pos) != (self.system.dim,):
            raise ValueError(
                f'init_pos should be a vector of size {self.system.dim}.')
        self.state = SamplerState([copy_vector(init_pos)])
        return self.state

    def _init_trajectory_state(self, pos):
        state = ChainState(pos=copy_vector(pos), mom=None, kinetic_change=0.)
        state.mom = self.system.sample_momentum(state, self.rng)
        return state

    def step(self, sampler_state=None):
        """Perform one sampler iteration, appending one position to the chain.

        Args:
            sampler_state (None or SamplerState): State to advance. If `None`
                (the default) the state from the last `reset` call is used,
                with `reset` called first if needed.

        Returns:
            pos (array): Position appended to the chain, equal to the
                trajectory endpoint if accepted and to the previous position
                otherwise.
        """
        if sampler_state is None:
            if self.state is None:
                self.reset()
            sampler_state = self.state
        prev_pos = sampler_state.pos
        init_state = self._init_trajectory_state(prev_pos)
        init_mom = copy_vector(init_state.mom)
        h_init = self.system.h(init_state)
        n_step = self.n_step
        final_state, trajectory = self.integrator.run(
            init_state, n_step, self.rng)
        accept, final_state, stats = self.acceptance.decide(
            self.system, init_state, final_state, h_init)
        proposal = copy_vector(final_state.pos)
        self.events.push(ProposalEvent(proposal, trajectory, init_mom))
        new_pos = copy_vector(proposal if accept else prev_pos)
        sampler_state.chain.append(new_pos)
        sampler_state.final_mom = final_state.mom
        self.events.push(
            DecisionEvent('accept' if accept else 'reject', proposal))
        stats['accept_stat'] = float(accept)
        stats['n_step'] = n_step
        for key in STATISTIC_TYPES:
            sampler_state.stats[key].append(stats.get(key))
        return new_pos

    def sample_chain(self, n_iter, sampler_state=None):
        """Sample a chain by repeatedly calling `step`.

        Args:
            n_iter (int): Number of iterations to perform.
            sampler_state (None or SamplerState): State to advance. If `None`
                (the default) the state from the last `reset` call is used,
                with `reset` called first if needed.

        Returns:
            chain (array): Array of all chain positions so far, with leading
                dimension the sample index.
            stats (Dict[str, array]): Arrays of per-step statistics.
        """
        if sampler_state is None:
            if self.state is None:
                self.reset()
            sampler_state = self.state
        for _ in range(n_iter):
            self.step(sampler_state)
        stats = {
            key: np.array(
                [default if val is None else val
                 for val in sampler_state.stats[key]], dtype)
            for key, (dtype, default) in STATISTIC_TYPES.items()}
        if n_iter > 0:
            logger.info(
                f'Sampled {n_iter} iterations, mean accept_stat = '
                f'{np.mean(stats["accept_stat"][-n_iter:]):.3f}.')
        return np.array(sampler_state.chain), stats


class MicrocanonicalHMC(MicrocanonicalMCMC):
    """Microcanonical Hamiltonian Monte Carlo.

    Trajectories start from a standard normal momentum, which is kept
    tangent to the level sets of the target density by the tangential
    projection update. Every endpoint is accepted, with the momentum
    rescaled to restore the initial energy [1].

    References:

      1. Robnik, J., De Luca, G.B., Silverstein, E. and Seljak, U., 2023.
         Microcanonical Hamiltonian Monte Carlo. Journal of Machine Learning
         Research, 24(311), pp.1-34.
    """

    def __init__(self, system, rng, n_step=40, step_size=0.15,
                 event_queue=None):
        """
        Args:
            system (micromc.systems.GaussianMomentumSystem): System defining
                the target density.
            rng (numpy.random.Generator or int or None): Numpy random number
                generator, or seed used to create one.
            n_step (int): Number of integrator steps per trajectory.
            step_size (float): Integrator time step.
            event_queue (None or micromc.events.EventQueue): Queue to push
                events to.
        """
        if not isinstance(system, GaussianMomentumSystem):
            raise ConfigurationError(
                f'{type(self).__name__} requires a GaussianMomentumSystem.')
        integrator = MicrocanonicalLeapfrogIntegrator(
            system, TangentialProjectionUpdate())
        super().__init__(
            system, integrator, DeterministicAcceptance(), rng, n_step,
            event_queue)
        self.step_size = step_size


class TangentialLangevinMC(MicrocanonicalMCMC):
    """Microcanonical Langevin Monte Carlo with a free momentum.

    As `MicrocanonicalHMC` but each momentum half step additionally injects
    Gaussian noise restricted to the tangent plane, with strength `eta`,
    preserving the momentum norm.
    """

    def __init__(self, system, rng, n_step=40, step_size=0.15, eta=0.1,
                 event_queue=None):
        """
        Args:
            system (micromc.systems.GaussianMomentumSystem): System defining
                the target density.
            rng (numpy.random.Generator or int or None): Numpy random number
                generator, or seed used to create one.
            n_step (int): Number of integrator steps per trajectory.
            step_size (float): Integrator time step.
            eta (float): Refreshment strength in [0, 1].
            event_queue (None or micromc.events.EventQueue): Queue to push
                events to.
        """
        if not isinstance(system, GaussianMomentumSystem):
            raise ConfigurationError(
                f'{type(self).__name__} requires a GaussianMomentumSystem.')
        integrator = MicrocanonicalLeapfrogIntegrator(
            system, StochasticTangentialUpdate(NormPreservingRefreshment(eta)))
        super().__init__(
            system, integrator, DeterministicAcceptance(), rng, n_step,
            event_queue)
        self.step_size = step_size


class MicrocanonicalLangevinMC(MicrocanonicalMCMC):
    """Microcanonical Langevin Monte Carlo with a unit momentum.

    The momentum is a direction on the unit sphere updated with the
    exponential map of the energy sampling Hamiltonian dynamics and
    partially refreshed after each integrator step. Endpoints are accepted
    if the potential energy drift over the trajectory is below
    `energy_threshold` [1].

    References:

      1. Robnik, J. and Seljak, U., 2023. Microcanonical Langevin Monte
         Carlo. arXiv preprint arXiv:2303.18221.
    """

    def __init__(self, system, rng, n_step=40, step_size=0.15, eta=0.1,
                 energy_threshold=0.5, degenerate_noise_scale=0.,
                 event_queue=None):
        """
        Args:
            system (micromc.systems.UnitMomentumSystem): System defining the
                target density.
            rng (numpy.random.Generator or int or None): Numpy random number
                generator, or seed used to create one.
            n_step (int): Number of integrator steps per trajectory.
            step_size (float): Integrator time step.
            eta (float): Refreshment strength in [0, 1].
            energy_threshold (float): Tolerance on the absolute potential
                energy drift for an endpoint to be accepted.
            degenerate_noise_scale (float): Scale of random perturbation of
                the direction where the gradient vanishes.
            event_queue (None or micromc.events.EventQueue): Queue to push
                events to.
        """
        if not isinstance(system, UnitMomentumSystem):
            raise ConfigurationError(
                f'{type(self).__name__} requires a UnitMomentumSystem.')
        integrator = MicrocanonicalLeapfrogIntegrator(
            system, ExponentialMapUpdate(degenerate_noise_scale),
            UnitNormRefreshment(eta))
        super().__init__(
            system, integrator, EnergyDriftAcceptance(energy_threshold), rng,
            n_step, event_queue)
        self.step_size = step_size
