import numpy as np

from ..utilities import check_int_input, resize_vector


class LQOCProblem:
    r"""
    Linear-quadratic optimal control problem over `N` stages, written in terms
    of deviations `dx_k = x_k - x_nom[k]`, `du_k = u_k - u_nom[k]` from a
    nominal trajectory:
    ```
    min  sum_{k=0}^{N-1} [1/2 dx_k' Q_k dx_k + 1/2 du_k' R_k du_k
                          + du_k' P_k dx_k + q_k' dx_k + r_k' du_k]
         + 1/2 dx_N' Q_N dx_N + q_N' dx_N
    s.t. dx_{k+1} = A_k dx_k + B_k du_k + b_k,    dx_0 = 0,
         u_lb <= u_k <= u_ub,    k = 0, ..., N-1,
         x_lb <= x_k <= x_ub,    k = 1, ..., N.
    ```
    Box constraints are given in absolute coordinates and apply uniformly at
    every constrained stage. Infinite bounds leave a component unconstrained.

    All data arrays are public attributes and may be filled directly. The
    horizon length and dimensions are fixed at construction.
    """
    def __init__(self, N, n_states, n_controls):
        """
        Parameters
        ----------
        N : int
            Number of stages.
        n_states : int
            State dimension.
        n_controls : int
            Control dimension.
        """
        self._N = check_int_input(N, 'N', low=1)
        self._n_states = check_int_input(n_states, 'n_states', low=1)
        self._n_controls = check_int_input(n_controls, 'n_controls', low=1)
        self.set_zero()

    @property
    def N(self):
        return self._N

    @property
    def n_states(self):
        return self._n_states

    @property
    def n_controls(self):
        return self._n_controls

    def set_zero(self):
        """Set all dynamics and cost data to zero and remove all
        constraints."""
        N, n, m = self.N, self.n_states, self.n_controls

        self.A = np.zeros((N, n, n))
        """(N, n_states, n_states) array. State transition matrices."""
        self.B = np.zeros((N, n, m))
        """(N, n_states, n_controls) array. Control input matrices."""
        self.b = np.zeros((N, n))
        """(N, n_states) array. Dynamics offsets (continuity defects)."""
        self.Q = np.zeros((N + 1, n, n))
        """(N + 1, n_states, n_states) array. State cost Hessians, including
        the terminal Hessian `Q[N]`."""
        self.R = np.zeros((N, m, m))
        """(N, n_controls, n_controls) array. Control cost Hessians."""
        self.P = np.zeros((N, m, n))
        """(N, n_controls, n_states) array. Mixed cost Hessians."""
        self.q = np.zeros((N + 1, n))
        """(N + 1, n_states) array. State cost gradients, including the
        terminal gradient `q[N]`."""
        self.r = np.zeros((N, m))
        """(N, n_controls) array. Control cost gradients."""
        self.x_nom = np.zeros((N + 1, n))
        """(N + 1, n_states) array. Nominal states."""
        self.u_nom = np.zeros((N, m))
        """(N, n_controls) array. Nominal controls."""

        self.u_lb = self.u_ub = None
        self.x_lb = self.x_ub = None

    def set_from_time_invariant_linear_quadratic_problem(
            self, x0, u0, linear_system, cost_function, x_desired=None,
            dt=None):
        """
        Fill every stage with the same discretized dynamics and cost
        approximation, evaluated once at `(x0, u0)`. Installed constraints are
        kept.

        Parameters
        ----------
        x0 : (n_states,) array
            Initial state and nominal state of every stage.
        u0 : (n_controls,) array
            Nominal control of every stage.
        linear_system : `ControlledSystem`
            Continuous time system, linearized about `(x0, u0)` and
            discretized with a zero order hold using the step `dt`. The
            dynamics offset `b` is the one step response of the affine
            linearization.
        cost_function : `QuadraticCost`
            Continuous time cost function.
        x_desired : (n_states,) array, optional
            Reference state passed to the cost function. Defaults to the cost
            function's own reference.
        dt : float
            Time step of each stage. Running costs are multiplied by `dt`.
        """
        if dt is None:
            raise TypeError("dt must be specified")
        dt = float(dt)

        x0 = resize_vector(x0, self.n_states, 'x0')
        u0 = resize_vector(u0, self.n_controls, 'u0')

        Ad, Bd, b = linear_system.discretize(dt, x=x0, u=u0,
                                             return_offset=True)
        self.A[:] = Ad
        self.B[:] = Bd
        self.b[:] = b

        dLdx, dLdu = cost_function.running_cost_grad(x0, u0, x_ref=x_desired)
        dLdxx, dLduu, dLdux = cost_function.running_cost_hess(x0, u0)

        self.Q[:-1] = dt * dLdxx
        self.R[:] = dt * dLduu
        self.P[:] = dt * dLdux
        self.q[:-1] = dt * dLdx
        self.r[:] = dt * dLdu

        self.Q[-1] = cost_function.terminal_cost_hess(x0)
        self.q[-1] = cost_function.terminal_cost_grad(x0, x_ref=x_desired)

        self.x_nom[:] = x0
        self.u_nom[:] = u0

    def set_control_box_constraints(self, lb, ub):
        """
        Constrain the controls at stages `k = 0, ..., N-1` to `[lb, ub]`.

        Parameters
        ----------
        lb : {(n_controls,) array, float}
            Lower bounds. Use `-np.inf` for unbounded components.
        ub : {(n_controls,) array, float}
            Upper bounds. Use `np.inf` for unbounded components.
        """
        self.u_lb, self.u_ub = _check_bounds(lb, ub, self.n_controls, 'u')

    def set_state_box_constraints(self, lb, ub):
        """
        Constrain the states at stages `k = 1, ..., N` to `[lb, ub]`.

        Parameters
        ----------
        lb : {(n_states,) array, float}
            Lower bounds. Use `-np.inf` for unbounded components.
        ub : {(n_states,) array, float}
            Upper bounds. Use `np.inf` for unbounded components.
        """
        self.x_lb, self.x_ub = _check_bounds(lb, ub, self.n_states, 'x')

    def is_control_box_constrained(self):
        return self.u_lb is not None

    def is_state_box_constrained(self):
        return self.x_lb is not None

    def is_general_constrained(self):
        """General (non-box) constraints are not supported, so this is always
        False."""
        return False

    def is_constrained(self):
        return (self.is_control_box_constrained()
                or self.is_state_box_constrained()
                or self.is_general_constrained())

    def control_deviation_bounds(self):
        """
        Control bounds in deviation coordinates.

        Returns
        -------
        du_lb, du_ub : (N, n_controls) arrays
            `u_lb - u_nom` and `u_ub - u_nom`, or infinite if no control
            constraints are installed.
        """
        if not self.is_control_box_constrained():
            return (np.full(self.u_nom.shape, -np.inf),
                    np.full(self.u_nom.shape, np.inf))
        return self.u_lb - self.u_nom, self.u_ub - self.u_nom

    def state_deviation_bounds(self):
        """
        State bounds in deviation coordinates for stages `k = 1, ..., N`.

        Returns
        -------
        dx_lb, dx_ub : (N, n_states) arrays
            `x_lb - x_nom[1:]` and `x_ub - x_nom[1:]`, or infinite if no state
            constraints are installed.
        """
        shape = self.x_nom[1:].shape
        if not self.is_state_box_constrained():
            return np.full(shape, -np.inf), np.full(shape, np.inf)
        return self.x_lb - self.x_nom[1:], self.x_ub - self.x_nom[1:]

    def compute_cost(self, dx, du):
        """
        Evaluate the quadratic objective for a deviation trajectory.

        Parameters
        ----------
        dx : (N + 1, n_states) array
            State deviations.
        du : (N, n_controls) array
            Control deviations.

        Returns
        -------
        J : float
        """
        dx = np.reshape(dx, self.x_nom.shape)
        du = np.reshape(du, self.u_nom.shape)

        J = np.einsum('ki,kij,kj->', dx, self.Q, dx) / 2.
        J += np.einsum('ki,kij,kj->', du, self.R, du) / 2.
        J += np.einsum('ki,kij,kj->', du, self.P, dx[:-1])
        J += np.sum(self.q * dx) + np.sum(self.r * du)
        return float(J)


def _check_bounds(lb, ub, n, name):
    lb = resize_vector(lb, n, name + '_lb')
    ub = resize_vector(ub, n, name + '_ub')
    if np.any(lb > ub):
        raise ValueError(f"{name}_lb must be less than or equal to {name}_ub")
    return lb, ub
