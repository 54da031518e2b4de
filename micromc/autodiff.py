"""Automatic differentation fallback for target density gradients."""

from functools import wraps
AUTOGRAD_AVAILABLE = True
try:
    from autograd.wrap_util import unary_to_nary
    from autograd.core import make_vjp
    from autograd.extend import vspace
except ImportError:
    AUTOGRAD_AVAILABLE = False


def _unary_to_nary(func):
    if AUTOGRAD_AVAILABLE:
        return wraps(func)(unary_to_nary(func))
    else:
        return func


@_unary_to_nary
def grad_and_value(fun, x):
    """Make a function returning both the gradient and value of `fun`."""
    vjp, val = make_vjp(fun, x)
    if not vspace(val).size == 1:
        raise TypeError('grad_and_value only applies to real scalar-output'
                        ' functions.')
    return vjp(vspace(val).ones()), val


def gradient_fallback(grad_func, func, name):
    """Use automatic differentiation to build a gradient if not provided.

    Args:
        grad_func (None or Callable): Either a callable implementing the
            gradient of `func` or `None` if none was provided.
        func (Callable): Scalar-valued function of a position array. Must be
            written using `autograd.numpy` operations for the fallback to
            work.
        name (str): Name of gradient function to use in error message.

    Returns:
        Callable: `grad_func` if not `None`, otherwise a function returning a
            `(gradient, value)` tuple for `func`.
    """
    if grad_func is not None:
        return grad_func
    elif AUTOGRAD_AVAILABLE:
        return grad_and_value(func)
    else:
        raise ValueError(
            f'Autograd not available therefore {name} must be provided.')
