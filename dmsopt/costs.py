"""
Cost functions integrated over the shots of a multiple shooting problem.
"""

import numpy as np

from .parameters import ProblemParameters
from .utilities import resize_vector


class QuadraticCost:
    r"""
    Quadratic running and terminal cost,
    ```
    L(x, u) = 1/2 (x - x_ref)' Q (x - x_ref) + 1/2 (u - u_ref)' R (u - u_ref)
              + (u - u_ref)' P (x - x_ref)
    F(x) = 1/2 (x - x_ref)' Q_f (x - x_ref)
    ```
    Takes the following parameters upon initialization.

    Parameters
    ----------
    Q : (n_states, n_states) array
        Hessian of running cost with respect to states. Must be positive
        semi-definite.
    R : (n_controls, n_controls) array
        Hessian of running cost with respect to controls. Must be positive
        definite.
    x_ref : {(n_states,) array, float}, default=0.
        Reference state. If float, will be broadcast into an array of shape
        `(n_states,)`.
    u_ref : {(n_controls,) array, float}, default=0.
        Reference control. If float, will be broadcast into an array of shape
        `(n_controls,)`.
    Q_f : (n_states, n_states) array, optional
        Hessian of terminal cost. Must be positive semi-definite. Defaults to
        `Q`.
    P : (n_controls, n_states) array, optional
        Mixed second derivative of running cost with respect to controls and
        states. Defaults to zero.
    """
    _required_parameters = {'Q': None, 'R': None, 'x_ref': 0., 'u_ref': 0.}
    _optional_parameters = {'Q_f': None, 'P': None}

    def __init__(self, **params):
        params = {**self._required_parameters, **self._optional_parameters,
                  **params}
        self.parameters = ProblemParameters(
            required=self._required_parameters.keys(),
            update_fun=type(self)._parameter_update_fun)
        """`ProblemParameters`. Cost function matrices and references."""
        self.parameters.update(**params)

    @staticmethod
    def _parameter_update_fun(obj, **new_params):
        if 'Q' in new_params:
            obj.Q = _check_psd(obj.Q, 'Q')
            obj.n_states = obj.Q.shape[0]

        if 'R' in new_params:
            obj.R = _check_psd(obj.R, 'R', strict=True)
            obj.n_controls = obj.R.shape[0]

        if 'x_ref' in new_params:
            obj.x_ref = resize_vector(obj.x_ref, obj.n_states, 'x_ref')

        if 'u_ref' in new_params:
            obj.u_ref = resize_vector(obj.u_ref, obj.n_controls, 'u_ref')

        if 'Q_f' in new_params:
            if obj.Q_f is None:
                obj.Q_f = np.copy(obj.Q)
            obj.Q_f = _check_psd(obj.Q_f, 'Q_f')
            if obj.Q_f.shape != obj.Q.shape:
                raise ValueError("Terminal cost matrix Q_f must have shape "
                                 "(n_states, n_states)")

        if 'P' in new_params:
            if obj.P is None:
                obj.P = np.zeros((obj.n_controls, obj.n_states))
            try:
                obj.P = np.reshape(np.asarray(obj.P, dtype=float),
                                   (obj.n_controls, obj.n_states))
            except ValueError:
                raise ValueError("Cross term matrix P must have shape "
                                 "(n_controls, n_states)")

    @property
    def n_states(self):
        return self.parameters.n_states

    @property
    def n_controls(self):
        return self.parameters.n_controls

    def _errors(self, x, u=None, x_ref=None):
        if x_ref is None:
            x_ref = self.parameters.x_ref
        x_err = np.asarray(x, dtype=float) - x_ref
        if u is None:
            return x_err
        return x_err, np.asarray(u, dtype=float) - self.parameters.u_ref

    def running_cost(self, x, u, t=0., x_ref=None):
        """
        Evaluate the running cost `L(x, u)` at a single state-control pair.

        Parameters
        ----------
        x : (n_states,) array
            State.
        u : (n_controls,) array
            Control.
        t : float, default=0.
            Time. Unused by the quadratic cost.
        x_ref : (n_states,) array, optional
            Overrides the reference state `parameters.x_ref`.

        Returns
        -------
        L : float
            Running cost `L(x, u)`.
        """
        x_err, u_err = self._errors(x, u, x_ref)
        Q, R, P = self.parameters.Q, self.parameters.R, self.parameters.P
        return float(x_err @ Q @ x_err / 2. + u_err @ R @ u_err / 2.
                     + u_err @ P @ x_err)

    def running_cost_grad(self, x, u, t=0., x_ref=None):
        """
        Evaluate the gradients of the running cost, $dL/dx (x,u)$ and
        $dL/du (x,u)$, at a single state-control pair.

        Returns
        -------
        dLdx : (n_states,) array
            Gradient with respect to states.
        dLdu : (n_controls,) array
            Gradient with respect to controls.
        """
        x_err, u_err = self._errors(x, u, x_ref)
        Q, R, P = self.parameters.Q, self.parameters.R, self.parameters.P
        dLdx = Q @ x_err + P.T @ u_err
        dLdu = R @ u_err + P @ x_err
        return dLdx, dLdu

    def running_cost_hess(self, x=None, u=None, t=0.):
        """
        Evaluate the Hessians of the running cost. These are constant for the
        quadratic cost.

        Returns
        -------
        dLdxx : (n_states, n_states) array
        dLduu : (n_controls, n_controls) array
        dLdux : (n_controls, n_states) array
        """
        return (np.copy(self.parameters.Q), np.copy(self.parameters.R),
                np.copy(self.parameters.P))

    def terminal_cost(self, x, x_ref=None):
        """Evaluate the terminal cost `F(x)` (float)."""
        x_err = self._errors(x, x_ref=x_ref)
        return float(x_err @ self.parameters.Q_f @ x_err / 2.)

    def terminal_cost_grad(self, x, x_ref=None):
        """Evaluate the gradient of the terminal cost, (n_states,) array."""
        return self.parameters.Q_f @ self._errors(x, x_ref=x_ref)

    def terminal_cost_hess(self, x=None):
        """Evaluate the Hessian of the terminal cost, (n_states, n_states)
        array."""
        return np.copy(self.parameters.Q_f)


def _check_psd(M, name, strict=False):
    """Reshape `M` to a square matrix and check that it is symmetric positive
    (semi-)definite."""
    definite = "positive definite" if strict else "positive semi-definite"
    try:
        M = np.atleast_1d(np.asarray(M, dtype=float))
        n = int(np.round(np.sqrt(M.size)))
        if M.ndim > 2 or n ** 2 != M.size or (M.ndim == 2
                                              and M.shape[0] != M.shape[1]):
            raise ValueError
        M = M.reshape(n, n)
        if not np.allclose(M, M.T):
            raise ValueError
        eigs = np.linalg.eigvalsh(M)
        if strict and not np.all(eigs > 0.):
            raise ValueError
        if not strict and not np.all(eigs >= -1e-12):
            raise ValueError
    except ValueError:
        raise ValueError(f"Cost matrix {name} must be square, symmetric and "
                         f"{definite}")
    return M
