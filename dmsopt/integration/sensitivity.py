import numpy as np

from ..settings import ADAPTIVE_INTEGRATION_TYPES
from ..utilities import check_int_input
from ._fixed_stepsize_integrators import METHODS, FixedStepMethod


class SensitivityIntegrator:
    """
    Fixed step integrator for a controlled system on a single time interval,
    which in addition to the state trajectory computes the sensitivities of the
    final state and of the integrated running cost with respect to the initial
    state and the control parameters.

    Sensitivities are the exact derivatives of the discrete Runge-Kutta map
    (internal numerical differentiation): the variational equations are
    integrated with the same tableau, using Jacobians evaluated at the stage
    points of the state integration. The running cost is integrated with the
    quadrature rule defined by the tableau weights.

    The computation proceeds in stages which must be called in order:

        1. `integrate` the state.
        2. `integrate_cost` (requires a cost function).
        3. `linearize` the dynamics along the stored trajectory.
        4. `integrate_sensitivity_dx0`, `integrate_sensitivity_du0`,
           `integrate_sensitivity_duf`.
        5. `integrate_cost_sensitivity_dx0`, `integrate_cost_sensitivity_du0`,
           `integrate_cost_sensitivity_duf`, each after the matching
           sensitivity in step 4.
    """
    def __init__(self, system, method='RK4'):
        """
        Parameters
        ----------
        system : `ControlledSystem`
            The nonlinear dynamics to integrate.
        method : {'Euler', 'RK4'} or `FixedStepMethod` subclass, default='RK4'
            Integration scheme. Adaptive schemes are not supported.
        """
        self.system = system
        self.method = _get_method(method)

        self.linear_system = system
        self.cost_function = None

        self._spliner = None
        self._shot_index = None

        self.clear_states()
        self.clear_linearization()
        self.clear_sensitivities()

    def set_linear_system(self, linear_system):
        """
        Set the system providing the Jacobians `jac(x, u, t)` used by
        `linearize`. Defaults to the nonlinear system itself.
        """
        self.linear_system = linear_system
        self.clear_linearization()

    def set_cost_function(self, cost_function):
        """Set the cost function providing `running_cost` and
        `running_cost_grad`."""
        self.cost_function = cost_function

    def set_control_input(self, spliner, shot_index):
        """
        Set the control input as the spline of a given shot.

        Parameters
        ----------
        spliner : `Spliner`
            Control parameterization implementing `evaluate`,
            `derivative_q_i` and `derivative_q_ip1`.
        shot_index : int
            Index of the shot the integrator is bound to.
        """
        self._spliner = spliner
        self._shot_index = shot_index

    def _control(self, t):
        if self._spliner is None:
            raise RuntimeError("Control input has not been set. Call "
                               "set_control_input first.")
        return self._spliner.evaluate(t, self._shot_index)

    def _du0(self, t):
        return self._spliner.derivative_q_i(t, self._shot_index)

    def _duf(self, t):
        return self._spliner.derivative_q_ip1(t, self._shot_index)

    @property
    def has_states(self):
        """True if a state trajectory is stored (bool)."""
        return self._stage_x is not None

    def has_sensitivity(self, key):
        """Check if the stage sensitivities `key` ('dx0', 'du0' or 'duf') are
        stored."""
        return key in self._stage_sensitivities

    def clear_states(self):
        """Delete the stored state trajectory and stage points."""
        self._x_history = None
        self._t_history = None
        self._stage_x = None
        self._stage_u = None
        self._stage_t = None
        self._dt = None

    def clear_linearization(self):
        """Delete the stored Jacobians."""
        self._A = None
        self._B = None

    def clear_sensitivities(self):
        """Delete the stored stage sensitivities."""
        self._stage_sensitivities = dict()

    def integrate(self, x0, t0, n_steps, dt):
        """
        Integrate the dynamics with a fixed number of steps.

        Parameters
        ----------
        x0 : (n_states,) array
            Initial state.
        t0 : float
            Initial time.
        n_steps : int
            Number of integration steps. Must be at least one.
        dt : float
            Step size. Must be positive.

        Returns
        -------
        x_history : (n_steps + 1, n_states) array
            States at times `t_history`, including `x0`.
        t_history : (n_steps + 1,) array
            Times `t0 + k * dt` for `k = 0, ..., n_steps`.
        """
        n_steps = check_int_input(n_steps, 'n_steps', low=1)
        dt = float(dt)
        if dt <= 0.:
            raise ValueError("dt must be positive")

        x = np.array(x0, dtype=float).reshape(-1)
        n_stages = self.method.n_stages()

        x_history = np.empty((n_steps + 1, x.shape[0]))
        t_history = t0 + dt * np.arange(n_steps + 1)
        stage_x = np.empty((n_steps, n_stages, x.shape[0]))
        stage_t = np.empty((n_steps, n_stages))
        stage_u = []

        def fun(t, x):
            u = self._control(t)
            stage_u.append(u)
            return self.system.dynamics(x, u, t)

        x_history[0] = x
        for k in range(n_steps):
            x, stage_x[k], stage_t[k] = self.method.step(fun, t_history[k],
                                                         x, dt)
            x_history[k + 1] = x

        self._x_history = x_history
        self._t_history = t_history
        self._stage_x = stage_x
        self._stage_t = stage_t
        self._stage_u = np.reshape(stage_u, (n_steps, n_stages, -1))
        self._dt = dt

        # New states invalidate any previous linearization and sensitivities
        self.clear_linearization()
        self.clear_sensitivities()

        return x_history, t_history

    def _check_states(self):
        if self._stage_x is None:
            raise RuntimeError("The state has not been integrated. Call "
                               "integrate first.")

    def _check_cost_function(self):
        if self.cost_function is None:
            raise RuntimeError("Cost function has not been set. Call "
                               "set_cost_function first.")

    def linearize(self):
        """Evaluate and store the Jacobians of the dynamics at every stage
        point of the stored trajectory."""
        self._check_states()

        n_steps, n_stages, n = self._stage_x.shape
        m = self._stage_u.shape[-1]

        self._A = np.empty((n_steps, n_stages, n, n))
        self._B = np.empty((n_steps, n_stages, n, m))

        for k in range(n_steps):
            for i in range(n_stages):
                self._A[k, i], self._B[k, i] = self.linear_system.jac(
                    self._stage_x[k, i], self._stage_u[k, i],
                    self._stage_t[k, i])

        self.clear_sensitivities()

    def _integrate_sensitivity(self, S0, key, control_jac=None):
        self._check_states()
        if self._A is None:
            raise RuntimeError("The dynamics have not been linearized. Call "
                               "linearize first.")

        S = np.array(S0, dtype=float)
        n_steps, n_stages = self._stage_t.shape
        h = self._dt

        dY = np.empty((n_steps, n_stages) + S.shape)
        dK = np.empty((n_stages,) + S.shape)

        for k in range(n_steps):
            for i in range(n_stages):
                dY[k, i] = S + h * np.tensordot(self.method.A[i, :i], dK[:i],
                                                axes=1)
                dK[i] = self._A[k, i] @ dY[k, i]
                if control_jac is not None:
                    dK[i] += self._B[k, i] @ control_jac(self._stage_t[k, i])
            S = S + h * np.tensordot(self.method.B, dK, axes=1)

        self._stage_sensitivities[key] = dY

        return S

    def integrate_sensitivity_dx0(self, S0):
        """
        Integrate the sensitivity of the final state with respect to the
        initial state.

        Parameters
        ----------
        S0 : (n_states, n_states) array
            Initial condition of the sensitivity, normally the identity.

        Returns
        -------
        dXdx0 : (n_states, n_states) array
            Sensitivity of the final state.
        """
        return self._integrate_sensitivity(S0, 'dx0')

    def integrate_sensitivity_du0(self, S0):
        """
        Integrate the sensitivity of the final state with respect to the
        control parameter at the start of the interval.

        Parameters
        ----------
        S0 : (n_states, n_controls) array
            Initial condition of the sensitivity, normally zero.

        Returns
        -------
        dXdu0 : (n_states, n_controls) array
            Sensitivity of the final state.
        """
        return self._integrate_sensitivity(S0, 'du0', self._du0)

    def integrate_sensitivity_duf(self, S0):
        """
        Integrate the sensitivity of the final state with respect to the
        control parameter at the end of the interval. Only non-zero for
        controls which depend on the end node, such as piecewise linear
        splines.

        Parameters
        ----------
        S0 : (n_states, n_controls) array
            Initial condition of the sensitivity, normally zero.

        Returns
        -------
        dXduf : (n_states, n_controls) array
            Sensitivity of the final state.
        """
        return self._integrate_sensitivity(S0, 'duf', self._duf)

    def integrate_cost(self, J0=0.):
        """
        Integrate the running cost along the stored trajectory.

        Parameters
        ----------
        J0 : float, default=0.
            Initial value of the cost integral.

        Returns
        -------
        J : float
            `J0` plus the integrated running cost.
        """
        self._check_states()
        self._check_cost_function()

        n_steps, n_stages = self._stage_t.shape
        J = float(J0)

        for k in range(n_steps):
            for i in range(n_stages):
                L = self.cost_function.running_cost(self._stage_x[k, i],
                                                    self._stage_u[k, i],
                                                    self._stage_t[k, i])
                J += self._dt * self.method.B[i] * L

        return J

    def _integrate_cost_sensitivity(self, g0, key, control_jac=None):
        self._check_cost_function()
        if key not in self._stage_sensitivities:
            raise RuntimeError(f"The state sensitivity '{key}' has not been "
                               f"integrated. Call integrate_sensitivity_{key} "
                               f"first.")

        dY = self._stage_sensitivities[key]
        n_steps, n_stages = self._stage_t.shape
        g = np.array(g0, dtype=float)

        for k in range(n_steps):
            for i in range(n_stages):
                dLdx, dLdu = self.cost_function.running_cost_grad(
                    self._stage_x[k, i], self._stage_u[k, i],
                    self._stage_t[k, i])
                dL = dLdx @ dY[k, i]
                if control_jac is not None:
                    dL = dL + dLdu @ control_jac(self._stage_t[k, i])
                g += self._dt * self.method.B[i] * dL

        return g

    def integrate_cost_sensitivity_dx0(self, g0):
        """
        Integrate the gradient of the running cost integral with respect to
        the initial state.

        Parameters
        ----------
        g0 : (n_states,) array
            Initial value, normally zero.

        Returns
        -------
        dJdx0 : (n_states,) array
        """
        return self._integrate_cost_sensitivity(g0, 'dx0')

    def integrate_cost_sensitivity_du0(self, g0):
        """
        Integrate the gradient of the running cost integral with respect to
        the control parameter at the start of the interval.

        Parameters
        ----------
        g0 : (n_controls,) array
            Initial value, normally zero.

        Returns
        -------
        dJdu0 : (n_controls,) array
        """
        return self._integrate_cost_sensitivity(g0, 'du0', self._du0)

    def integrate_cost_sensitivity_duf(self, g0):
        """
        Integrate the gradient of the running cost integral with respect to
        the control parameter at the end of the interval.

        Parameters
        ----------
        g0 : (n_controls,) array
            Initial value, normally zero.

        Returns
        -------
        dJduf : (n_controls,) array
        """
        return self._integrate_cost_sensitivity(g0, 'duf', self._duf)


def _get_method(method):
    if isinstance(method, type) and issubclass(method, FixedStepMethod):
        return method
    if method in ADAPTIVE_INTEGRATION_TYPES:
        raise ValueError(f"method = {method} is adaptive. Only fixed step "
                         f"integrators are supported")
    if method not in METHODS:
        raise ValueError(f"method = {method} is not recognized. Valid options "
                         f"are {tuple(METHODS.keys())}")
    return METHODS[method]
