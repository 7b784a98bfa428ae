import numpy as np
import pytest
from scipy.integrate import trapezoid
from scipy.linalg import expm

from dmsopt import LinearSystem, QuadraticCost

from ._utilities import make_LQ_params, compare_finite_difference, Pendulum


rng = np.random.default_rng(123)


@pytest.mark.parametrize('n_states', range(1, 4))
@pytest.mark.parametrize('n_controls', range(1, 3))
def test_LinearSystem(n_states, n_controls):
    A, B, _, _, _, _ = make_LQ_params(n_states, n_controls, seed=n_states)
    system = LinearSystem(A=A, B=B)

    assert system.n_states == n_states
    assert system.n_controls == n_controls

    x = rng.normal(size=n_states)
    u = rng.normal(size=n_controls)

    np.testing.assert_allclose(system.dynamics(x, u), A @ x + B @ u)

    dfdx, dfdu = system.jac(x, u)
    np.testing.assert_array_equal(dfdx, A)
    np.testing.assert_array_equal(dfdu, B)
    np.testing.assert_array_equal(system.jac(x, u, return_dfdu=False), A)
    np.testing.assert_array_equal(system.jac(x, u, return_dfdx=False), B)


def test_LinearSystem_bad_shapes():
    with pytest.raises(ValueError, match='A must have shape'):
        LinearSystem(A=np.ones((2, 3)), B=np.ones((2, 1)))
    with pytest.raises(ValueError, match='B must have shape'):
        LinearSystem(A=np.eye(2), B=np.ones((3, 1)))
    with pytest.raises(RuntimeError):
        LinearSystem(A=np.eye(2))


def test_finite_difference_jac():
    """The default `ControlledSystem.jac` matches analytical derivatives."""
    system = Pendulum()
    x = rng.normal(size=2)
    u = rng.normal(size=1)

    dfdx, dfdu = system.jac(x, u)

    compare_finite_difference(x, dfdx, lambda x: system.dynamics(x, u),
                              rtol=1e-06, atol=1e-09)
    compare_finite_difference(u, dfdu, lambda u: system.dynamics(x, u),
                              rtol=1e-06, atol=1e-09)

    fd_dfdx, fd_dfdu = super(Pendulum, system).jac(x, u)
    np.testing.assert_allclose(fd_dfdx, dfdx, rtol=1e-06, atol=1e-09)
    np.testing.assert_allclose(fd_dfdu, dfdu, rtol=1e-06, atol=1e-09)


@pytest.mark.parametrize('dt', [0.01, 0.5])
def test_discretize(dt):
    A, B, _, _, _, _ = make_LQ_params(3, 2, seed=4)
    system = LinearSystem(A=A, B=B)

    Ad, Bd = system.discretize(dt)

    np.testing.assert_allclose(Ad, expm(A * dt), rtol=1e-10, atol=1e-12)

    # Bd is the integral of expm(A s) B over [0, dt]
    s = np.linspace(0., dt, 2001)
    integrand = np.stack([expm(A * si) @ B for si in s])
    Bd_expected = trapezoid(integrand, s, axis=0)
    np.testing.assert_allclose(Bd, Bd_expected, rtol=1e-05, atol=1e-08)

    with pytest.raises(ValueError):
        system.discretize(0.)


def test_discretize_double_integrator():
    system = LinearSystem(A=[[0., 1.], [0., 0.]], B=[[0.], [1.]])
    dt = 0.5
    Ad, Bd = system.discretize(dt)
    np.testing.assert_allclose(Ad, [[1., dt], [0., 1.]], atol=1e-14)
    np.testing.assert_allclose(Bd, [[dt ** 2 / 2.], [dt]], atol=1e-14)


@pytest.mark.parametrize('n_states', range(1, 4))
@pytest.mark.parametrize('n_controls', range(1, 3))
def test_QuadraticCost(n_states, n_controls):
    _, _, Q, R, xf, uf = make_LQ_params(n_states, n_controls, seed=0)
    P = rng.normal(scale=0.1, size=(n_controls, n_states))
    Q_f = 2. * Q

    cost = QuadraticCost(Q=Q, R=R, x_ref=xf, u_ref=uf, Q_f=Q_f, P=P)
    assert cost.n_states == n_states
    assert cost.n_controls == n_controls

    x = rng.normal(size=n_states)
    u = rng.normal(size=n_controls)
    x_err, u_err = x - xf, u - uf

    L = cost.running_cost(x, u)
    L_expected = (x_err @ Q @ x_err / 2. + u_err @ R @ u_err / 2.
                  + u_err @ P @ x_err)
    np.testing.assert_allclose(L, L_expected)

    dLdx, dLdu = cost.running_cost_grad(x, u)
    compare_finite_difference(x, dLdx, lambda x: cost.running_cost(x, u),
                              rtol=1e-05, atol=1e-08)
    compare_finite_difference(u, dLdu, lambda u: cost.running_cost(x, u),
                              rtol=1e-05, atol=1e-08)

    dLdxx, dLduu, dLdux = cost.running_cost_hess(x, u)
    np.testing.assert_allclose(dLdxx, Q)
    np.testing.assert_allclose(dLduu, R)
    np.testing.assert_allclose(dLdux, P)

    F = cost.terminal_cost(x)
    np.testing.assert_allclose(F, x_err @ Q_f @ x_err / 2.)
    compare_finite_difference(x, cost.terminal_cost_grad(x),
                              cost.terminal_cost, rtol=1e-05, atol=1e-08)
    np.testing.assert_allclose(cost.terminal_cost_hess(x), Q_f)

    # Overriding the reference state
    x_ref = rng.normal(size=n_states)
    dLdx, _ = cost.running_cost_grad(x, u, x_ref=x_ref)
    np.testing.assert_allclose(dLdx, Q @ (x - x_ref) + P.T @ u_err)


def test_QuadraticCost_defaults():
    cost = QuadraticCost(Q=np.eye(2), R=[[3.]])
    np.testing.assert_array_equal(cost.parameters.Q_f, np.eye(2))
    np.testing.assert_array_equal(cost.parameters.P, np.zeros((1, 2)))
    np.testing.assert_array_equal(cost.parameters.x_ref, np.zeros(2))
    np.testing.assert_array_equal(cost.parameters.u_ref, np.zeros(1))
    assert cost.running_cost(np.zeros(2), np.ones(1)) == 1.5


@pytest.mark.parametrize('bad_params', [
    {'Q': [[1., 2.], [0., 1.]]},
    {'Q': -np.eye(2)},
    {'R': np.zeros((1, 1))},
    {'Q': np.ones((2, 3))},
    {'Q_f': np.eye(3)},
    {'P': np.ones((2, 2))}])
def test_QuadraticCost_bad_matrices(bad_params):
    params = {'Q': np.eye(2), 'R': np.eye(1), **bad_params}
    with pytest.raises(ValueError):
        QuadraticCost(**params)
