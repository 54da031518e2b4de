"""Trajectory state objects with memoisation of target density values."""

import copy
from functools import wraps
from collections import Counter


def _method_key(system, method_name):
    """Key identifying a memoized method of a particular system instance."""
    return (f'{type(system).__name__}.{method_name}', id(system))


def cache_in_state(*depends_on, auxiliary_outputs=()):
    """Memoizing decorator for system methods of a state.

    The value returned by the decorated method is stored in the `ChainState`
    it was computed for and reused until one of the state variables named in
    `depends_on` is reassigned. Copies of a state share the values cached at
    the time of copying, so that for example the gradient at the end of one
    integrator step is reused at the start of the next.

    Methods may also compute the values of other memoized methods as a by
    product, for example a gradient function which also returns the value
    of the function differentiated. If `auxiliary_outputs` is non-empty the
    decorated method may return a tuple, with the primary output first and
    then the values of the methods named in `auxiliary_outputs`, in order,
    which are used to fill their cache entries.

    If the state was created with a `_call_counts` argument a counter keyed
    by the method is incremented each time the method is actually evaluated.

    Args:
        *depends_on (str): Names of state variables the value depends on,
            e.g. `'pos'` or `'mom'`.
        auxiliary_outputs (str or Tuple[str]): Names of the methods whose
            values may be returned alongside the primary output.
    """
    if isinstance(auxiliary_outputs, str):
        auxiliary_outputs = (auxiliary_outputs,)

    def decorator(method):

        @wraps(method)
        def wrapper(self, state):
            key = _method_key(self, method.__name__)
            if key in state._cache:
                return state._cache[key]
            aux_keys = [_method_key(self, name) for name in auxiliary_outputs]
            output = method(self, state)
            if aux_keys and isinstance(output, tuple):
                output, *aux_vals = output
                for aux_key, aux_val in zip(aux_keys, aux_vals):
                    state._store(aux_key, aux_val, depends_on)
            state._store(key, output, depends_on)
            if state._call_counts is not None:
                state._call_counts[key] += 1
            return output

        return wrapper

    return decorator


class ChainState(object):
    """Position and momentum pair with a cache of derived quantities.

    State variables are passed as keyword arguments, for example

        state = ChainState(pos=pos, mom=mom, kinetic_change=0.)

    and accessed as attributes. Reassigning a variable evicts all cached
    values computed from it. Variables should be reassigned rather than
    modified in place, as in-place changes are not seen by the cache.
    """

    def __init__(self, *, _call_counts=None, _cache=None, _dependents=None,
                 **variables):
        """
        Args:
            **variables: State variables. Names must not begin with an
                underscore.
            _call_counts (None or Dict): If not `None`, mapping used to count
                evaluations of memoized system methods for this state and
                all of its copies.
            _cache (None or Dict): Internal. Cached method values.
            _dependents (None or Dict): Internal. Mapping from variable
                names to the cache keys computed from them.
        """
        if _call_counts is not None and not isinstance(_call_counts, Counter):
            _call_counts = Counter(_call_counts)
        # __setattr__ is overridden so bookkeeping goes straight to __dict__
        self.__dict__.update(
            _variables=variables,
            _cache={} if _cache is None else _cache,
            _dependents=(
                {name: set() for name in variables} if _dependents is None
                else _dependents),
            _call_counts=_call_counts)

    def _store(self, key, value, depends_on):
        self._cache[key] = value
        for name in depends_on:
            self._dependents.setdefault(name, set()).add(key)

    def __getattr__(self, name):
        variables = self.__dict__.get('_variables', {})
        if name not in variables:
            raise AttributeError(
                f'{type(self).__name__} has no state variable {name}.')
        return variables[name]

    def __setattr__(self, name, value):
        if name not in self._variables:
            raise AttributeError(
                f'{name} is not a variable of this {type(self).__name__}.')
        self._variables[name] = value
        for key in self._dependents.get(name, ()):
            self._cache.pop(key, None)

    def __contains__(self, name):
        return name in self._variables

    def copy(self):
        """Copy of the state with independent variable values.

        The copy shares the call counter of this state and starts from the
        values cached so far.
        """
        return type(self)(
            _call_counts=self._call_counts,
            _cache=dict(self._cache),
            _dependents={
                name: set(keys) for name, keys in self._dependents.items()},
            **{name: copy.copy(val) for name, val in self._variables.items()})

    def __repr__(self):
        variables = ', '.join(
            f'{name}={val!r}' for name, val in self._variables.items())
        return f'{type(self).__name__}({variables})'

    def __getstate__(self):
        return {
            'variables': self._variables,
            'cache': self._cache,
            'dependents': self._dependents,
            'call_counts': self._call_counts,
        }

    def __setstate__(self, state):
        self.__dict__.update(
            _variables=state['variables'], _cache=state['cache'],
            _dependents=state['dependents'],
            _call_counts=state['call_counts'])
