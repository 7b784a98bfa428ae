import numpy as np
import pytest
from scipy.linalg import expm

from dmsopt import QuadraticCost, SensitivityIntegrator
from dmsopt.integration import METHODS, Euler, RK4

from ._utilities import compare_finite_difference, Pendulum, linear_oscillator


rng = np.random.default_rng(123)


class ConstantControl:
    """Minimal control input holding a single constant control node."""
    def __init__(self, u):
        self.u = np.atleast_1d(np.asarray(u, dtype=float))

    def evaluate(self, t, shot_index):
        return self.u.copy()

    def derivative_q_i(self, t, shot_index):
        return np.eye(self.u.shape[0])

    def derivative_q_ip1(self, t, shot_index):
        return np.zeros((self.u.shape[0], self.u.shape[0]))


def make_integrator(system, u, method='RK4', cost_function=None):
    integrator = SensitivityIntegrator(system, method)
    integrator.set_control_input(ConstantControl(u), 0)
    if cost_function is not None:
        integrator.set_cost_function(cost_function)
    return integrator


@pytest.mark.parametrize('method', METHODS.keys())
def test_integrate_linear(method):
    """Compare fixed step integration of a linear system to the exact
    solution."""
    system = linear_oscillator()
    A, B = system.parameters.A, system.parameters.B
    x0 = np.array([1., -0.5])
    u = np.array([0.3])
    t0, n_steps, dt = 0.5, 100, 0.01

    integrator = make_integrator(system, u, method)
    x_history, t_history = integrator.integrate(x0, t0, n_steps, dt)

    assert x_history.shape == (n_steps + 1, 2)
    assert t_history.shape == (n_steps + 1,)
    np.testing.assert_allclose(t_history, t0 + dt * np.arange(n_steps + 1))
    np.testing.assert_array_equal(x_history[0], x0)

    # Exact solution with constant control, using the augmented system
    M = np.zeros((3, 3))
    M[:2, :2] = A
    M[:2, 2:] = B
    x_exact = (expm(M * n_steps * dt) @ np.concatenate((x0, u)))[:2]

    tol = 1e-02 if method == 'Euler' else 1e-09
    np.testing.assert_allclose(x_history[-1], x_exact, rtol=tol, atol=tol)


def test_method_selection():
    assert SensitivityIntegrator(Pendulum(), 'Euler').method is Euler
    assert SensitivityIntegrator(Pendulum(), RK4).method is RK4

    for method in ('RK5', 'RK45', 'adaptive'):
        with pytest.raises(ValueError, match='adaptive'):
            SensitivityIntegrator(Pendulum(), method)

    with pytest.raises(ValueError, match='not recognized'):
        SensitivityIntegrator(Pendulum(), 'Midpoint')


@pytest.mark.parametrize('method', METHODS.keys())
@pytest.mark.parametrize('n_steps', [1, 7])
def test_state_sensitivities(method, n_steps):
    """Sensitivities are the derivatives of the discrete integration map."""
    system = Pendulum()
    x0 = rng.normal(size=2)
    u = rng.normal(size=1)
    t0, dt = 0.2, 0.05

    def final_state(x0, u):
        integrator = make_integrator(system, u, method)
        return integrator.integrate(x0, t0, n_steps, dt)[0][-1]

    integrator = make_integrator(system, u, method)
    integrator.integrate(x0, t0, n_steps, dt)
    integrator.linearize()

    dXdx0 = integrator.integrate_sensitivity_dx0(np.eye(2))
    dXdu0 = integrator.integrate_sensitivity_du0(np.zeros((2, 1)))
    dXduf = integrator.integrate_sensitivity_duf(np.zeros((2, 1)))

    compare_finite_difference(x0, dXdx0, lambda x0: final_state(x0, u),
                              rtol=1e-06, atol=1e-09)
    compare_finite_difference(u, dXdu0, lambda u: final_state(x0, u),
                              rtol=1e-06, atol=1e-09)
    # Constant controls do not depend on the end node
    np.testing.assert_array_equal(dXduf, 0.)


def test_single_euler_step_sensitivity():
    """One Euler step has the sensitivities I + h A and h B."""
    system = Pendulum()
    x0 = rng.normal(size=2)
    u = rng.normal(size=1)
    dt = 0.1

    integrator = make_integrator(system, u, 'Euler')
    x_history, _ = integrator.integrate(x0, 0., 1, dt)
    assert x_history.shape == (2, 2)

    integrator.linearize()
    A, B = system.jac(x0, u)

    np.testing.assert_allclose(integrator.integrate_sensitivity_dx0(np.eye(2)),
                               np.eye(2) + dt * A)
    np.testing.assert_allclose(
        integrator.integrate_sensitivity_du0(np.zeros((2, 1))), dt * B)


@pytest.mark.parametrize('method', METHODS.keys())
def test_cost_and_cost_sensitivities(method):
    system = Pendulum()
    cost_function = QuadraticCost(Q=np.diag([2., 0.5]), R=[[0.3]],
                                  x_ref=[0.1, 0.], P=[[0.05, -0.02]])
    x0 = rng.normal(size=2)
    u = rng.normal(size=1)
    t0, n_steps, dt = 0., 10, 0.05

    def cost(x0, u):
        integrator = make_integrator(system, u, method, cost_function)
        integrator.integrate(x0, t0, n_steps, dt)
        return integrator.integrate_cost()

    integrator = make_integrator(system, u, method, cost_function)
    integrator.integrate(x0, t0, n_steps, dt)

    J = integrator.integrate_cost()
    assert isinstance(J, float)
    np.testing.assert_allclose(integrator.integrate_cost(J0=1.), J + 1.)

    integrator.linearize()
    integrator.integrate_sensitivity_dx0(np.eye(2))
    integrator.integrate_sensitivity_du0(np.zeros((2, 1)))

    dJdx0 = integrator.integrate_cost_sensitivity_dx0(np.zeros(2))
    dJdu0 = integrator.integrate_cost_sensitivity_du0(np.zeros(1))

    compare_finite_difference(x0, dJdx0, lambda x0: cost(x0, u),
                              rtol=1e-06, atol=1e-09)
    compare_finite_difference(u, dJdu0, lambda u: cost(x0, u),
                              rtol=1e-06, atol=1e-09)


def test_cost_quadrature():
    """With zero dynamics the cost integral is exact for RK4."""
    system = linear_oscillator()
    system.parameters.update(A=np.zeros((2, 2)), B=np.zeros((2, 1)))
    cost_function = QuadraticCost(Q=np.eye(2), R=[[2.]])
    x0 = np.array([1., 2.])

    integrator = make_integrator(system, [0.5], 'RK4', cost_function)
    integrator.integrate(x0, 0., 4, 0.25)
    np.testing.assert_allclose(integrator.integrate_cost(),
                               (x0 @ x0 + 2. * 0.25) / 2.)


def test_out_of_order_usage():
    system = Pendulum()
    x0 = np.zeros(2)

    integrator = SensitivityIntegrator(system)
    with pytest.raises(RuntimeError, match='set_control_input'):
        integrator.integrate(x0, 0., 5, 0.1)

    integrator.set_control_input(ConstantControl([0.]), 0)
    with pytest.raises(RuntimeError, match='integrate first'):
        integrator.linearize()

    integrator.integrate(x0, 0., 5, 0.1)
    with pytest.raises(RuntimeError, match='linearize first'):
        integrator.integrate_sensitivity_dx0(np.eye(2))
    with pytest.raises(RuntimeError, match='set_cost_function'):
        integrator.integrate_cost()

    integrator.set_cost_function(QuadraticCost(Q=np.eye(2), R=np.eye(1)))
    integrator.linearize()
    with pytest.raises(RuntimeError, match='integrate_sensitivity_dx0'):
        integrator.integrate_cost_sensitivity_dx0(np.zeros(2))

    integrator.integrate_sensitivity_dx0(np.eye(2))
    assert integrator.has_sensitivity('dx0')
    integrator.integrate_cost_sensitivity_dx0(np.zeros(2))

    # New states invalidate the linearization and sensitivities
    integrator.integrate(x0, 0., 5, 0.1)
    assert not integrator.has_sensitivity('dx0')
    with pytest.raises(RuntimeError):
        integrator.integrate_sensitivity_dx0(np.eye(2))

    integrator.clear_states()
    assert not integrator.has_states
    with pytest.raises(RuntimeError):
        integrator.integrate_cost()


@pytest.mark.parametrize('bad_args', [(0, 0.1), (5, 0.), (5, -0.1)])
def test_integrate_bad_args(bad_args):
    integrator = make_integrator(Pendulum(), [0.])
    n_steps, dt = bad_args
    with pytest.raises(ValueError):
        integrator.integrate(np.zeros(2), 0., n_steps, dt)
