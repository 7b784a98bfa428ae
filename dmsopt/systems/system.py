import numpy as np
from scipy.linalg import expm

from ..utilities import approx_derivative


class ControlledSystem:
    """
    Template superclass defining continuous-time controlled dynamics
    `dx/dt = f(x, u, t)`. Subclasses must implement `n_states`, `n_controls`,
    and `dynamics`, and should override `jac` if analytical derivatives are
    available.
    """
    # Finite difference method for default Jacobian approximations
    _fin_diff_method = '3-point'

    def __str__(self):
        return type(self).__name__

    @property
    def n_states(self):
        """The number of system states (positive int)."""
        raise NotImplementedError

    @property
    def n_controls(self):
        """The number of control inputs to the system (positive int)."""
        raise NotImplementedError

    def dynamics(self, x, u, t=0.):
        """
        Evaluate the closed-loop dynamics at a single state-control pair.

        Parameters
        ----------
        x : (n_states,) array
            Current state.
        u : (n_controls,) array
            Control input.
        t : float, default=0.
            Current time.

        Returns
        -------
        dxdt : (n_states,) array
            System dynamics `dx/dt = f(x, u, t)`.
        """
        raise NotImplementedError

    def jac(self, x, u, t=0., return_dfdx=True, return_dfdu=True, f0=None):
        """
        Evaluate the Jacobians of the dynamics with respect to states and
        controls at a single state-control pair. Default implementation
        approximates these with finite differences.

        Parameters
        ----------
        x : (n_states,) array
            Current state.
        u : (n_controls,) array
            Control input.
        t : float, default=0.
            Current time.
        return_dfdx : bool, default=True
            If True, compute the Jacobian with respect to states.
        return_dfdu : bool, default=True
            If True, compute the Jacobian with respect to controls.
        f0 : (n_states,) array, optional
            `self.dynamics(x, u, t)`, pre-evaluated at the inputs.

        Returns
        -------
        dfdx : (n_states, n_states) array
            Jacobian with respect to states, $df/dx (x, u, t)$. Returned if
            `return_dfdx=True`.
        dfdu : (n_states, n_controls) array
            Jacobian with respect to controls, $df/du (x, u, t)$. Returned if
            `return_dfdu=True`.
        """
        x = np.asarray(x, dtype=float)
        u = np.asarray(u, dtype=float)

        if f0 is None:
            f0 = self.dynamics(x, u, t)

        if return_dfdx:
            dfdx = approx_derivative(lambda x: self.dynamics(x, u, t), x,
                                     f0=f0, method=self._fin_diff_method)
            if not return_dfdu:
                return dfdx

        if return_dfdu:
            dfdu = approx_derivative(lambda u: self.dynamics(x, u, t), u,
                                     f0=f0, method=self._fin_diff_method)
            if not return_dfdx:
                return dfdu

        return dfdx, dfdu

    def discretize(self, dt, x=None, u=None, t=0., return_offset=False):
        """
        Linearize the dynamics around `(x, u, t)` and discretize the result
        with a zero-order hold on the control. With `f0 = f(x, u, t)` and
        Jacobians `A`, `B`, the deviations `dx`, `du` from `(x, u)` follow the
        affine dynamics `d(dx)/dt = A dx + B du + f0`, which are discretized
        exactly by the block matrix exponential
        ```
        expm([[A, B, f0], [0, 0, 0], [0, 0, 0]] * dt) = [[Ad, Bd, b], [0, I, 0],
                                                         [0, 0, 1]]
        ```

        Parameters
        ----------
        dt : float
            Sampling time. Must be positive.
        x : (n_states,) array, optional
            Linearization state. Defaults to the origin.
        u : (n_controls,) array, optional
            Linearization control. Defaults to the origin.
        t : float, default=0.
            Linearization time.
        return_offset : bool, default=False
            If True, also return the offset `b`.

        Returns
        -------
        Ad : (n_states, n_states) array
            Discrete-time state transition matrix.
        Bd : (n_states, n_controls) array
            Discrete-time control input matrix.
        b : (n_states,) array
            State deviation after one step from `dx = 0`, `du = 0`,
            `b = int_0^dt expm(A s) ds @ f0`. Returned if `return_offset=True`.
        """
        dt = float(dt)
        if dt <= 0.:
            raise ValueError("dt must be positive")

        n, m = self.n_states, self.n_controls
        x = np.zeros(n) if x is None else np.asarray(x, dtype=float)
        u = np.zeros(m) if u is None else np.asarray(u, dtype=float)

        A, B = self.jac(x, u, t)

        M = np.zeros((n + m + 1, n + m + 1))
        M[:n, :n] = A
        M[:n, n:n + m] = B
        if return_offset:
            M[:n, -1] = self.dynamics(x, u, t)
        M = expm(M * dt)

        if return_offset:
            return M[:n, :n], M[:n, n:n + m], M[:n, -1]
        return M[:n, :n], M[:n, n:n + m]
