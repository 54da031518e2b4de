import pytest
import numpy as np
from micromc import samplers
from micromc.acceptance import DeterministicAcceptance, EnergyDriftAcceptance
from micromc.errors import ConfigurationError
from micromc.events import EventQueue
from micromc.integrators import MicrocanonicalLeapfrogIntegrator
from micromc.systems import GaussianMomentumSystem, UnitMomentumSystem
from micromc.targets import (
    StandardNormalTarget, GaussianMixtureTarget, FlatTarget)
from micromc.updates import TangentialProjectionUpdate
from micromc.vectors import sq_norm

SEED = 3046987125
DIM = 2


@pytest.fixture
def rng():
    return np.random.default_rng(SEED)


def gaussian_system(target):
    return GaussianMomentumSystem(
        target.log_dens, target.dim, target.grad_log_dens)


def unit_system(target):
    return UnitMomentumSystem(
        target.log_dens, target.dim, target.grad_log_dens)


def threshold_tangential_sampler(system, rng, energy_threshold, n_step=5,
                                 step_size=0.1):
    integrator = MicrocanonicalLeapfrogIntegrator(
        system, TangentialProjectionUpdate(), step_size=step_size)
    return samplers.MicrocanonicalMCMC(
        system, integrator, EnergyDriftAcceptance(energy_threshold), rng,
        n_step)


SAMPLER_FACTORIES = {
    'microcanonical_hmc': lambda target, rng: samplers.MicrocanonicalHMC(
        gaussian_system(target), rng, n_step=5, step_size=0.1),
    'tangential_langevin': lambda target, rng: samplers.TangentialLangevinMC(
        gaussian_system(target), rng, n_step=5, step_size=0.1, eta=0.3),
    'microcanonical_langevin': (
        lambda target, rng: samplers.MicrocanonicalLangevinMC(
            unit_system(target), rng, n_step=5, step_size=0.1, eta=0.3)),
    'threshold_tangential': lambda target, rng: threshold_tangential_sampler(
        gaussian_system(target), rng, 0.5),
}


@pytest.fixture(params=('standard_normal', 'mixture'))
def target(request):
    if request.param == 'standard_normal':
        return StandardNormalTarget(DIM)
    else:
        return GaussianMixtureTarget([[-1., 0.], [1., 1.]], 0.7)


@pytest.fixture(params=SAMPLER_FACTORIES)
def sampler(request, target, rng):
    return SAMPLER_FACTORIES[request.param](target, rng)


def test_reset(sampler):
    init_pos = np.array([0.5, -0.5])
    sampler_state = sampler.reset(init_pos)
    assert sampler.state is sampler_state
    assert len(sampler_state) == 1
    assert np.all(sampler_state.pos == init_pos)
    assert sampler_state.pos is not init_pos


def test_reset_random_position(sampler):
    sampler_state = sampler.reset()
    assert sampler_state.pos.shape == (DIM,)


def test_reset_invalid_shape_raises(sampler):
    with pytest.raises(ValueError):
        sampler.reset(np.zeros(DIM + 1))


def test_step_appends_one_position(sampler):
    sampler.reset(np.zeros(DIM))
    for i in range(5):
        pos = sampler.step()
        assert len(sampler.state) == i + 2
        assert np.all(sampler.state.chain[-1] == pos)
        assert sampler.state.chain[-1] is not sampler.state.chain[-2]


def test_step_without_reset(sampler):
    sampler.step()
    assert len(sampler.state) == 2


def test_step_explicit_state(sampler):
    sampler_state = samplers.SamplerState([np.zeros(DIM)])
    sampler.step(sampler_state)
    assert len(sampler_state) == 2
    assert sampler.state is None


def test_events_per_step(sampler):
    sampler.reset(np.zeros(DIM))
    n_iter = 4
    for _ in range(n_iter):
        sampler.step()
    events = sampler.events.drain()
    assert len(events) == 2 * n_iter
    for i, (proposal_event, decision_event) in enumerate(
            zip(events[::2], events[1::2])):
        assert proposal_event.type == 'proposal'
        assert decision_event.type in ('accept', 'reject')
        assert np.all(proposal_event.proposal == decision_event.proposal)
        assert len(proposal_event.trajectory) == sampler.n_step + 1
        assert np.all(
            proposal_event.trajectory[0] == sampler.state.chain[i])
        assert np.all(
            proposal_event.trajectory[-1] == proposal_event.proposal)
        expected_pos = (
            proposal_event.proposal if decision_event.accepted
            else sampler.state.chain[i])
        assert np.all(sampler.state.chain[i + 1] == expected_pos)


def test_sample_chain(sampler):
    n_iter = 20
    chain, stats = sampler.sample_chain(n_iter)
    assert chain.shape == (n_iter + 1, DIM)
    assert np.all(np.isfinite(chain))
    for key in samplers.STATISTIC_TYPES:
        assert stats[key].shape == (n_iter,)
    assert np.all(stats['n_step'] == sampler.n_step)
    assert np.all(np.isin(stats['accept_stat'], (0., 1.)))
    assert np.all(np.isfinite(stats['delta_h']))


def test_sample_chain_continues(sampler):
    sampler.sample_chain(5)
    chain, stats = sampler.sample_chain(3)
    assert chain.shape[0] == 9
    assert stats['accept_stat'].shape == (8,)


def test_reproducible(target):
    for factory in SAMPLER_FACTORIES.values():
        chain_1, _ = factory(target, SEED).sample_chain(10)
        chain_2, _ = factory(target, SEED).sample_chain(10)
        assert np.all(chain_1 == chain_2)


def test_n_step_change_applies_to_next_step(sampler):
    sampler.reset(np.zeros(DIM))
    sampler.n_step = 3
    sampler.step()
    sampler.n_step = 6
    sampler.step()
    events = sampler.events.drain()
    assert len(events[0].trajectory) == 4
    assert len(events[2].trajectory) == 7


@pytest.mark.parametrize('n_step', (0, -1, 2.5))
def test_invalid_n_step_raises(sampler, n_step):
    with pytest.raises(ValueError):
        sampler.n_step = n_step


@pytest.mark.parametrize('step_size', (0., -0.1))
def test_invalid_step_size_raises(sampler, step_size):
    with pytest.raises(ValueError):
        sampler.step_size = step_size


def test_step_size_forwarded(sampler):
    sampler.step_size = 0.25
    assert sampler.integrator.step_size == 0.25


def test_event_queue_argument(target, rng):
    queue = EventQueue()
    sampler = samplers.MicrocanonicalHMC(
        gaussian_system(target), rng, event_queue=queue)
    sampler.step()
    assert sampler.events is queue
    assert len(queue) == 2


def test_random_state_deprecated(target):
    with pytest.warns(DeprecationWarning):
        sampler = samplers.MicrocanonicalHMC(
            gaussian_system(target), np.random.RandomState(SEED))
    assert isinstance(sampler.rng, np.random.Generator)
    sampler.step()


class TestMicrocanonicalHMC(object):

    @pytest.fixture
    def sampler(self, rng):
        return samplers.MicrocanonicalHMC(
            gaussian_system(StandardNormalTarget(DIM)), rng, n_step=1,
            step_size=0.1)

    def test_single_step_from_origin(self, sampler):
        sampler.reset(np.zeros(DIM))
        sampler.step()
        events = sampler.events.drain()
        assert [event.type for event in events] == ['proposal', 'accept']
        assert len(events[0].trajectory) == 2
        assert np.all(events[0].trajectory[0] == 0)
        assert len(sampler.state) == 2

    def test_final_momentum_restores_energy(self, sampler):
        sampler.n_step = 10
        sampler.reset(np.array([1., -2.]))
        for _ in range(10):
            prev_pos = sampler.state.pos
            sampler.step()
            proposal_event, _ = sampler.events.drain()
            h_init = 0.5 * sq_norm(proposal_event.init_mom) + 0.5 * sq_norm(
                prev_pos)
            u_final = 0.5 * sq_norm(sampler.state.pos)
            assert np.isclose(
                sq_norm(sampler.state.final_mom),
                2 * max(h_init - u_final, 1e-10))

    def test_always_accepts(self, sampler):
        _, stats = sampler.sample_chain(20)
        assert np.all(stats['accept_stat'] == 1)

    def test_has_no_eta_or_threshold(self, sampler):
        with pytest.raises(AttributeError):
            sampler.eta
        with pytest.raises(AttributeError):
            sampler.energy_threshold
        with pytest.raises(AttributeError):
            sampler.energy_threshold = 0.5

    def test_requires_gaussian_momentum_system(self, rng):
        with pytest.raises(ConfigurationError):
            samplers.MicrocanonicalHMC(
                unit_system(StandardNormalTarget(DIM)), rng)


class TestTangentialLangevinMC(object):

    @pytest.fixture
    def sampler(self, rng):
        return samplers.TangentialLangevinMC(
            gaussian_system(StandardNormalTarget(DIM)), rng, n_step=5,
            step_size=0.1, eta=0.2)

    def test_eta_forwarded(self, sampler):
        assert sampler.eta == 0.2
        sampler.eta = 0.7
        assert sampler.integrator.momentum_update.refreshment.eta == 0.7
        with pytest.raises(ValueError):
            sampler.eta = 2.

    def test_requires_gaussian_momentum_system(self, rng):
        with pytest.raises(ConfigurationError):
            samplers.TangentialLangevinMC(
                unit_system(StandardNormalTarget(DIM)), rng)


class TestMicrocanonicalLangevinMC(object):

    @pytest.fixture
    def sampler(self, rng):
        return samplers.MicrocanonicalLangevinMC(
            unit_system(StandardNormalTarget(DIM)), rng, n_step=5,
            step_size=0.1, eta=0.2, energy_threshold=0.5)

    def test_parameters_forwarded(self, sampler):
        sampler.eta = 0.4
        sampler.energy_threshold = 0.8
        assert sampler.integrator.refreshment.eta == 0.4
        assert sampler.acceptance.energy_threshold == 0.8

    def test_final_momentum_unit_norm(self, sampler):
        sampler.reset(np.array([0.3, 0.2]))
        for _ in range(5):
            sampler.step()
            assert abs(np.linalg.norm(sampler.state.final_mom) - 1) < 1e-6

    def test_flat_target_always_accepts(self, rng):
        sampler = samplers.MicrocanonicalLangevinMC(
            unit_system(FlatTarget(3)), rng, n_step=5, step_size=0.1)
        _, stats = sampler.sample_chain(20)
        assert np.all(stats['accept_stat'] == 1)

    def test_requires_unit_momentum_system(self, rng):
        with pytest.raises(ConfigurationError):
            samplers.MicrocanonicalLangevinMC(
                gaussian_system(StandardNormalTarget(DIM)), rng)

    def test_one_dimensional_target_raises(self, rng):
        with pytest.raises(ConfigurationError):
            samplers.MicrocanonicalLangevinMC(
                unit_system(StandardNormalTarget(1)), rng)


class TestThresholdTangentialComposition(object):

    def test_zero_threshold_always_rejects(self, rng):
        sampler = threshold_tangential_sampler(
            gaussian_system(StandardNormalTarget(DIM)), rng, 0., n_step=1)
        sampler.reset(np.zeros(DIM))
        pos = sampler.step()
        assert np.all(pos == 0)
        events = sampler.events.drain()
        assert [event.type for event in events] == ['proposal', 'reject']
        _, stats = sampler.sample_chain(10)
        assert np.all(stats['accept_stat'] == 0)
        assert np.all(sampler.state.chain[-1] == 0)

    def test_deterministic_acceptance_with_unit_system_raises(self, rng):
        system = unit_system(StandardNormalTarget(DIM))
        integrator = MicrocanonicalLeapfrogIntegrator(
            system, TangentialProjectionUpdate(), step_size=0.1)
        with pytest.raises(ConfigurationError):
            samplers.MicrocanonicalMCMC(
                system, integrator, DeterministicAcceptance(), rng, 5)

    def test_threshold_forwarded(self, rng):
        sampler = threshold_tangential_sampler(
            gaussian_system(StandardNormalTarget(DIM)), rng, 0.5)
        sampler.energy_threshold = 0.2
        assert sampler.acceptance.energy_threshold == 0.2
        with pytest.raises(AttributeError):
            sampler.eta
