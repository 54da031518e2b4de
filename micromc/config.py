"""Bounded tunable parameter surface for interactive control of samplers.

The control panel is an adapter decoupled from the sampling logic: it reads
and writes the live parameter properties of a sampler, which are read at the
start of every sampler step, and enforces the display bounds and step
granularity of each parameter. Samplers constructed directly are not
restricted to these bounds.
"""

from collections import namedtuple


Parameter = namedtuple(
    'Parameter', ['name', 'label', 'bounds', 'step', 'dtype'])


N_STEP = Parameter('n_step', 'Leapfrog Steps', (5, 100), 1, int)
STEP_SIZE = Parameter('step_size', 'Leapfrog Δt', (0.01, 0.5), 0.01, float)
ETA = Parameter('eta', 'Noise Strength η', (0., 1.), 0.01, float)
ENERGY_THRESHOLD = Parameter(
    'energy_threshold', 'Energy Threshold', (0.01, 1.), 0.01, float)

PARAMETERS = (N_STEP, STEP_SIZE, ETA, ENERGY_THRESHOLD)


def constrain(parameter, value):
    """Snap a value to a parameter's step granularity and bounds.

    Args:
        parameter (Parameter): Parameter specification.
        value (float): Value to constrain.

    Returns:
        Value of type `parameter.dtype` on the step grid anchored at the
        lower bound, clamped to the bounds.
    """
    lower, upper = parameter.bounds
    value = lower + round((value - lower) / parameter.step) * parameter.step
    value = min(max(value, lower), upper)
    if parameter.dtype is int:
        return int(round(value))
    # remove floating point residue of the grid arithmetic
    return parameter.dtype(round(value, 10))


class ControlPanel(object):
    """Adapter exposing the tunable parameters of a sampler.

    Only parameters supported by the sampler are exposed, for example `eta`
    only for samplers with a refreshment component and `energy_threshold`
    only for samplers using threshold acceptance.

    Example:

        panel = ControlPanel(sampler)
        panel['n_step'] = 250  # clamped to 100
        panel.describe()['n_step']['value']  # 100
    """

    def __init__(self, sampler, parameters=PARAMETERS):
        """
        Args:
            sampler (micromc.samplers.MicrocanonicalMCMC): Sampler to control.
            parameters (Iterable[Parameter]): Candidate parameters. Those the
                sampler does not have are skipped.
        """
        self.sampler = sampler
        self.parameters = {
            p.name: p for p in parameters if hasattr(sampler, p.name)}

    def _parameter(self, name):
        try:
            return self.parameters[name]
        except KeyError:
            raise KeyError(
                f'{type(self.sampler).__name__} has no tunable parameter '
                f'{name}. Available parameters: {list(self.parameters)}.')

    def __getitem__(self, name):
        return getattr(self.sampler, self._parameter(name).name)

    def __setitem__(self, name, value):
        parameter = self._parameter(name)
        setattr(self.sampler, parameter.name, constrain(parameter, value))

    def __contains__(self, name):
        return name in self.parameters

    def __iter__(self):
        return iter(self.parameters)

    def describe(self):
        """Current values and display metadata of all exposed parameters.

        Returns:
            Dict[str, Dict[str, object]]: Mapping from parameter name to a
                dictionary with keys `value`, `bounds`, `step` and `label`.
        """
        return {
            name: {
                'value': getattr(self.sampler, name),
                'bounds': p.bounds,
                'step': p.step,
                'label': p.label,
            }
            for name, p in self.parameters.items()}

    def update(self, values):
        """Set multiple parameters from a mapping of names to values."""
        for name, value in values.items():
            self[name] = value
