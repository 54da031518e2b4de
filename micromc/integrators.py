"""Leapfrog integrators for microcanonical dynamics."""

from micromc.errors import ConfigurationError
from micromc.vectors import copy_vector


class MicrocanonicalLeapfrogIntegrator(object):
    r"""Leapfrog integrator with a constrained momentum update.

    Each step uses a symmetric (Strang) splitting: a momentum update over
    half the step size using the gradient at the current position, a full
    position step \(q \leftarrow q + \delta t \, p\), and a second half step
    momentum update at the new position. The momentum updates are delegated
    to a `micromc.updates.MomentumUpdate` rule which enforces the momentum
    constraint (tangency to the gradient level set or unit norm). An optional
    refreshment channel is applied to the momentum at the end of each step.

    Gradients are cached in the state, so the gradient at the end of one step
    is reused at the start of the next and a run of `n_step` steps evaluates
    the gradient `n_step + 1` times.
    """

    def __init__(self, system, momentum_update, refreshment=None,
                 step_size=None):
        """
        Args:
            system (micromc.systems.System): System defining the target
                density to integrate the dynamics of.
            momentum_update (micromc.updates.MomentumUpdate): Rule used for
                the half step momentum updates.
            refreshment (None or micromc.refreshment.Refreshment): Channel
                applied to the momentum after each full step. If `None` (the
                default) no refreshment is applied.
            step_size (float or None): Integrator time step. Must be set
                before calling `step` or `run`.
        """
        momentum_update.check_dimension(system.dim)
        self.system = system
        self.momentum_update = momentum_update
        self.refreshment = refreshment
        self.step_size = step_size

    def _check_step_size(self):
        if self.step_size is None:
            raise ConfigurationError(
                'Integrator `step_size` is `None`. A step size must be set '
                'before integrating.')

    def _update_momentum(self, state, dt, rng):
        grad = self.system.grad_log_dens(state)
        update = self.momentum_update
        if ('kinetic_change' in state and
                hasattr(update, 'kinetic_energy_change')):
            state.kinetic_change += update.kinetic_energy_change(
                state.mom, grad, dt, self.system.dim)
        state.mom = update(state.mom, grad, dt, self.system.dim, rng)

    def _step(self, state, dt, rng):
        self._update_momentum(state, 0.5 * dt, rng)
        state.pos = state.pos + dt * state.mom
        self._update_momentum(state, 0.5 * dt, rng)
        if self.refreshment is not None:
            state.mom = self.refreshment.refresh(state.mom, rng)

    def step(self, state, rng):
        """Perform a single integrator step from a supplied state.

        Args:
            state (micromc.states.ChainState): State to step from. Not
                modified.
            rng (numpy.random.Generator): Numpy random number generator used
                by stochastic updates and refreshment.

        Returns:
            new_state (micromc.states.ChainState): New object corresponding
                to stepped state.
        """
        self._check_step_size()
        state = state.copy()
        self._step(state, self.step_size, rng)
        return state

    def run(self, state, n_step, rng):
        """Integrate a trajectory of a fixed number of steps.

        Args:
            state (micromc.states.ChainState): State to start from. Not
                modified.
            n_step (int): Number of integrator steps.
            rng (numpy.random.Generator): Numpy random number generator.

        Returns:
            final_state (micromc.states.ChainState): State after `n_step`
                steps.
            trajectory (List[array]): Independent copies of the positions
                visited, starting with the initial position, of length
                `n_step + 1`.
        """
        self._check_step_size()
        trajectory = [copy_vector(state.pos)]
        for _ in range(n_step):
            state = self.step(state, rng)
            trajectory.append(copy_vector(state.pos))
        return state, trajectory
