"""Value-semantics vector helpers for positions and momenta.

All functions act on one-dimensional NumPy arrays and return new arrays,
never modifying their arguments, so that positions retained in chains and
trajectories cannot be aliased by later updates.
"""

import numpy as np


def sq_norm(vct):
    """Squared Euclidean norm of a vector."""
    return vct @ vct


def norm(vct):
    """Euclidean norm of a vector."""
    return sq_norm(vct)**0.5


def unit_vector(vct, min_norm=0.):
    """Normalise a vector to unit length.

    Args:
        vct (array): Vector to normalise.
        min_norm (float): Guard threshold. If the norm of `vct` is less than
            this value the vector is treated as degenerate.

    Returns:
        unit (None or array): `vct / norm(vct)`, or `None` if `vct` is
            degenerate.
        vct_norm (float): Norm of `vct`.
    """
    vct_norm = norm(vct)
    if vct_norm < min_norm or vct_norm == 0:
        return None, vct_norm
    return vct / vct_norm, vct_norm


def project_onto_tangent_plane(vct, direction):
    """Remove the component of a vector parallel to a unit direction.

    Args:
        vct (array): Vector to project.
        direction (array): Unit vector normal to the tangent plane.

    Returns:
        array: `vct - direction * (vct @ direction)`.
    """
    return vct - direction * (vct @ direction)


def rescale_to_norm(vct, target_norm, min_norm=1e-12):
    """Rescale a vector to have a given norm.

    If the norm of `vct` is at most `min_norm` the vector is returned
    unchanged rather than dividing by a (near) zero value.

    Args:
        vct (array): Vector to rescale.
        target_norm (float): Norm of the returned vector.
        min_norm (float): Guard threshold on the norm of `vct`.

    Returns:
        array: Rescaled vector.
    """
    vct_norm = norm(vct)
    if vct_norm <= min_norm:
        return vct
    return vct * (target_norm / vct_norm)


def standard_normal(rng, dim):
    """Draw an isotropic standard normal vector of dimension `dim`."""
    return rng.standard_normal(dim)


def random_unit_vector(rng, dim):
    """Draw a vector uniformly distributed on the unit sphere in `dim` dims."""
    vct = standard_normal(rng, dim)
    return vct / norm(vct)


def copy_vector(vct):
    """Independent floating point copy of a vector."""
    return np.array(vct, dtype=np.float64, copy=True)
