import numpy as np

from ..parameters import ProblemParameters
from .system import ControlledSystem


class LinearSystem(ControlledSystem):
    """
    Linear time-invariant system `dx/dt = A x + B u`. Takes the following
    parameters upon initialization.

    Parameters
    ----------
    A : (n_states, n_states) array
        State Jacobian matrix.
    B : (n_states, n_controls) array
        Control Jacobian matrix.
    """
    _required_parameters = {'A': None, 'B': None}

    def __init__(self, **params):
        params = {**self._required_parameters, **params}
        self.parameters = ProblemParameters(
            required=self._required_parameters.keys(),
            update_fun=type(self)._parameter_update_fun)
        """`ProblemParameters`. System matrices `A` and `B`."""
        self.parameters.update(**params)

    @staticmethod
    def _parameter_update_fun(obj, **new_params):
        if 'A' in new_params:
            try:
                obj.A = np.atleast_1d(np.asarray(obj.A, dtype=float))
                if obj.A.ndim > 2 or obj.A.size != obj.A.shape[0] ** 2:
                    raise ValueError
                obj.n_states = obj.A.shape[0]
                obj.A = obj.A.reshape(obj.n_states, obj.n_states)
            except ValueError:
                raise ValueError("State Jacobian matrix A must have shape "
                                 "(n_states, n_states)")

        if 'A' in new_params or 'B' in new_params:
            try:
                obj.B = np.asarray(obj.B, dtype=float)
                if obj.B.ndim == 2 and obj.B.shape[0] != obj.n_states:
                    raise ValueError
                if obj.B.ndim > 2 or obj.B.size % obj.n_states:
                    raise ValueError
                obj.B = np.reshape(obj.B, (obj.n_states, -1))
                obj.n_controls = obj.B.shape[1]
            except ValueError:
                raise ValueError("Control Jacobian matrix B must have shape "
                                 "(n_states, n_controls)")

    @property
    def n_states(self):
        return self.parameters.n_states

    @property
    def n_controls(self):
        return self.parameters.n_controls

    def dynamics(self, x, u, t=0.):
        return self.parameters.A @ x + self.parameters.B @ u

    def jac(self, x, u, t=0., return_dfdx=True, return_dfdu=True, f0=None):
        if return_dfdx:
            dfdx = np.copy(self.parameters.A)
            if not return_dfdu:
                return dfdx

        if return_dfdu:
            dfdu = np.copy(self.parameters.B)
            if not return_dfdx:
                return dfdu

        return dfdx, dfdu
