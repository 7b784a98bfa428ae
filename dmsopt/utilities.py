import numpy as np
import pandas as pd
from scipy.optimize import _numdiff


def find_saturated(u, lb=None, ub=None, tol=0.):
    """
    Flag controls (or states) lying at, beyond, or within `tol` of their
    bounds.

    Parameters
    ----------
    u : (n_controls, n_data) or (n_controls,) array
        Control(s) arranged by dimension, time.
    lb : {(n_controls,) array, float}, optional
        Lower bounds. Infinite entries are never active.
    ub : {(n_controls,) array, float}, optional
        Upper bounds. Infinite entries are never active.
    tol : float, default=0.
        Absolute distance from a bound within which the bound is considered
        active.

    Returns
    -------
    sat_idx : boolean array with same shape as `u`
        True where `u[i, j] <= lb[i] + tol` or `u[i, j] >= ub[i] - tol`.
        Missing bounds are ignored.
    """
    u = np.asarray(u)
    sat_idx = np.zeros(u.shape, dtype=bool)
    if lb is not None:
        sat_idx |= u <= _bound_column(lb, u.ndim) + tol
    if ub is not None:
        sat_idx |= u >= _bound_column(ub, u.ndim) - tol
    return sat_idx


def _bound_column(bound, ndim):
    """Reshape a bound vector so it broadcasts along the time axis of an
    array with `ndim` dimensions."""
    bound = np.asarray(bound, dtype=float)
    if bound.ndim == ndim:
        return bound
    return np.reshape(bound, (-1,) + (1,) * (ndim - 1))


def check_int_input(n, argname, low=None):
    """
    Convert an integer scalar or size 1 integer array to an int.

    Parameters
    ----------
    n : array_like
        Input to convert. Floats are rejected even if integer valued.
    argname : str
        How to refer to `n` in error messages.
    low : int, optional
        Smallest admissible value.

    Returns
    -------
    n : int

    Raises
    ------
    TypeError
        If `n` does not hold exactly one integer.
    ValueError
        If `n < low`.
    """
    n_array = np.asarray(n)
    if n_array.size != 1 or not np.issubdtype(n_array.dtype, np.integer):
        raise TypeError(f"{argname} must be an int")

    n = int(n_array.reshape(()))
    if low is not None and n < low:
        raise ValueError(f"{argname} must be greater than or equal to {low:d}")
    return n


def resize_vector(array, n_rows, argname='array'):
    """
    Reshapes or broadcasts an array_like to a 1d float array with a specified
    number of entries.

    Parameters
    ----------
    array : array_like
        Array to reshape into shape `(n_rows,)`. Scalars and size 1 arrays are
        broadcast.
    n_rows : int
        Number of entries desired.
    argname : str, default='array'
        How to refer to `array` in error messages.

    Returns
    -------
    reshaped_array : (n_rows,) array
        A float copy of `array` with shape `(n_rows,)`.
    """
    n_rows = check_int_input(n_rows, "n_rows", low=1)

    array = np.asarray(array, dtype=float).reshape(-1)
    if array.shape[0] == n_rows:
        return array.copy()
    elif array.shape[0] == 1:
        return np.full(n_rows, array[0])
    else:
        raise ValueError(f"The size of {argname} is not compatible with the "
                         f"desired shape ({n_rows:d},)")


def approx_derivative(fun, x0, method='3-point', rel_step=None, abs_step=None,
                      f0=None):
    """
    Finite difference approximation of the Jacobian of an array-valued
    function of a vector. The output of `fun` is flattened and differentiated
    with `scipy.optimize._numdiff.approx_derivative`, then reshaped so that
    the differentiation variable comes last.

    Parameters
    ----------
    fun : callable
        Function to differentiate, `fun(x)` with `x` of shape `(n,)`. May
        return a float or an array of any shape `(m_1, ..., m_l)`.
    x0 : (n,) array
        Point at which to estimate the derivatives.
    method : {'3-point', '2-point', 'cs'}, default='3-point'
        Finite difference scheme. 'cs' (complex step) requires `fun` to accept
        complex inputs.
    rel_step, abs_step : array_like, optional
        Relative or absolute step sizes, see `scipy.optimize.approx_fprime`.
    f0 : array_like, optional
        `fun(x0)`, if already evaluated.

    Returns
    -------
    dfdx : (n,) or (m_1, ..., m_l, n) array
        Jacobian with `dfdx[..., j]` the partial derivative of `fun` with
        respect to `x[j]`.
    """
    x0 = np.atleast_1d(np.asarray(x0, dtype=float))
    if x0.ndim != 1:
        raise ValueError("x0 must be a 1d array")

    if f0 is None:
        f0 = fun(x0)
    out_shape = np.shape(f0)

    dfdx = _numdiff.approx_derivative(lambda x: np.reshape(fun(x), -1), x0,
                                      method=method, rel_step=rel_step,
                                      abs_step=abs_step,
                                      f0=np.reshape(f0, -1))

    return np.reshape(dfdx, out_shape + x0.shape)


def pack_dataframe(t, x, u):
    """
    Collect `numpy` arrays into a `DataFrame` which is convenient for saving as
    a .csv file.

    Parameters
    ----------
    t : (n_data,) array
        Time values of each data point.
    x : (n_data, n_states) array
        System states at times `t`.
    u : (n_data, n_controls) array
        Control inputs at times `t`.

    Returns
    -------
    data : DataFrame
        `DataFrame` with `n_data` rows and columns 't', 'x1', ..., 'xn',
        'u1', ..., 'um'.
    """
    t = np.reshape(t, (-1, 1))
    x = np.reshape(x, (t.shape[0], -1))
    u = np.reshape(u, (t.shape[0], -1))

    columns = (['t'] + ['x' + str(i + 1) for i in range(x.shape[1])]
               + ['u' + str(i + 1) for i in range(u.shape[1])])

    return pd.DataFrame(np.hstack((t, x, u)), columns=columns)
