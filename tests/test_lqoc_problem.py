import numpy as np
import pytest
from scipy.integrate import quad_vec
from scipy.linalg import expm

from dmsopt import LQOCProblem, QuadraticCost

from ._utilities import (Pendulum, double_integrator, linear_oscillator,
                         random_lqoc_problem)


rng = np.random.default_rng(123)


def test_LQOCProblem_shapes():
    N, n, m = 4, 3, 2
    problem = LQOCProblem(N, n, m)

    assert (problem.N, problem.n_states, problem.n_controls) == (N, n, m)
    assert problem.A.shape == (N, n, n)
    assert problem.B.shape == (N, n, m)
    assert problem.b.shape == (N, n)
    assert problem.Q.shape == (N + 1, n, n)
    assert problem.R.shape == (N, m, m)
    assert problem.P.shape == (N, m, n)
    assert problem.q.shape == (N + 1, n)
    assert problem.r.shape == (N, m)
    assert problem.x_nom.shape == (N + 1, n)
    assert problem.u_nom.shape == (N, m)

    assert not problem.is_constrained()
    assert not problem.is_state_box_constrained()
    assert not problem.is_control_box_constrained()
    assert not problem.is_general_constrained()

    with pytest.raises(ValueError):
        LQOCProblem(0, n, m)


@pytest.mark.parametrize('use_cost_reference', [True, False])
def test_set_from_time_invariant_linear_quadratic_problem(use_cost_reference):
    system = linear_oscillator()
    x_ref = np.array([0.3, -0.1])
    cost_function = QuadraticCost(Q=2. * np.eye(2), R=4. * np.eye(1),
                                  Q_f=3. * np.eye(2), P=[[0.1, 0.2]],
                                  x_ref=x_ref)
    x0 = np.array([2.5, 0.])
    u0 = np.array([0.2])
    N, dt = 5, 0.5

    problem = LQOCProblem(N, 2, 1)
    problem.set_control_box_constraints(-0.5, 0.5)
    if use_cost_reference:
        problem.set_from_time_invariant_linear_quadratic_problem(
            x0, u0, system, cost_function, dt=dt)
    else:
        x_ref = np.zeros(2)
        problem.set_from_time_invariant_linear_quadratic_problem(
            x0, u0, system, cost_function, x_desired=x_ref, dt=dt)

    Ad, Bd = system.discretize(dt)
    dLdx, dLdu = cost_function.running_cost_grad(x0, u0, x_ref=x_ref)

    for k in range(N):
        np.testing.assert_allclose(problem.A[k], Ad)
        np.testing.assert_allclose(problem.B[k], Bd)
        np.testing.assert_allclose(problem.b[k], Ad @ x0 + Bd @ u0 - x0,
                                   atol=1e-12)
        np.testing.assert_allclose(problem.Q[k], 2. * dt * np.eye(2))
        np.testing.assert_allclose(problem.R[k], 4. * dt * np.eye(1))
        np.testing.assert_allclose(problem.P[k], dt * np.array([[0.1, 0.2]]))
        np.testing.assert_allclose(problem.q[k], dt * dLdx)
        np.testing.assert_allclose(problem.r[k], dt * dLdu)
        np.testing.assert_allclose(problem.u_nom[k], u0)

    np.testing.assert_allclose(problem.Q[N], 3. * np.eye(2))
    np.testing.assert_allclose(problem.q[N], 3. * (x0 - x_ref))
    np.testing.assert_allclose(problem.x_nom, np.tile(x0, (N + 1, 1)))

    # Constraints are kept
    assert problem.is_control_box_constrained()

    with pytest.raises(TypeError):
        problem.set_from_time_invariant_linear_quadratic_problem(
            x0, u0, system, cost_function)


def test_box_constraints():
    problem = LQOCProblem(3, 2, 1)

    problem.set_control_box_constraints(-0.5, 0.5)
    assert problem.is_constrained()
    assert problem.is_control_box_constrained()
    assert not problem.is_state_box_constrained()
    np.testing.assert_array_equal(problem.u_lb, [-0.5])
    np.testing.assert_array_equal(problem.u_ub, [0.5])

    problem.set_state_box_constraints([1.7, -np.inf], [20., np.inf])
    assert problem.is_state_box_constrained()
    assert problem.is_control_box_constrained()
    assert not problem.is_general_constrained()

    problem.set_zero()
    assert not problem.is_constrained()
    assert problem.u_lb is None and problem.x_lb is None

    problem.set_state_box_constraints(-1., 1.)
    assert problem.is_state_box_constrained()
    assert not problem.is_control_box_constrained()


@pytest.mark.parametrize('bad_bounds', [(np.zeros(3), np.ones(3)),
                                        (np.ones(2), np.zeros(2)),
                                        ([0., 2.], [1.])])
def test_box_constraints_bad_bounds(bad_bounds):
    problem = LQOCProblem(3, 2, 2)
    with pytest.raises(ValueError):
        problem.set_state_box_constraints(*bad_bounds)
    with pytest.raises(ValueError):
        problem.set_control_box_constraints(*bad_bounds)
    assert not problem.is_constrained()


def test_deviation_bounds():
    problem = random_lqoc_problem(4, 2, 1, seed=1)

    du_lb, du_ub = problem.control_deviation_bounds()
    assert du_lb.shape == (4, 1)
    assert np.all(np.isneginf(du_lb)) and np.all(np.isposinf(du_ub))

    problem.set_control_box_constraints(-0.5, 0.5)
    problem.set_state_box_constraints([1.7, -np.inf], [20., np.inf])

    du_lb, du_ub = problem.control_deviation_bounds()
    np.testing.assert_allclose(du_lb, -0.5 - problem.u_nom)
    np.testing.assert_allclose(du_ub, 0.5 - problem.u_nom)

    dx_lb, dx_ub = problem.state_deviation_bounds()
    assert dx_lb.shape == (4, 2)
    np.testing.assert_allclose(dx_lb[:, 0], 1.7 - problem.x_nom[1:, 0])
    np.testing.assert_allclose(dx_ub[:, 0], 20. - problem.x_nom[1:, 0])
    assert np.all(np.isneginf(dx_lb[:, 1])) and np.all(np.isposinf(dx_ub[:, 1]))


def test_set_zero():
    problem = random_lqoc_problem(3, 2, 2, seed=2)
    problem.set_control_box_constraints(-1., 1.)
    problem.set_zero()

    for name in ('A', 'B', 'b', 'Q', 'R', 'P', 'q', 'r', 'x_nom', 'u_nom'):
        np.testing.assert_array_equal(getattr(problem, name), 0., err_msg=name)
    assert not problem.is_constrained()
    assert problem.N == 3


def test_compute_cost():
    N, n, m = 4, 3, 2
    problem = random_lqoc_problem(N, n, m, seed=3)
    dx = rng.normal(size=(N + 1, n))
    du = rng.normal(size=(N, m))

    J_expected = 0.
    for k in range(N):
        J_expected += (dx[k] @ problem.Q[k] @ dx[k] / 2.
                       + du[k] @ problem.R[k] @ du[k] / 2.
                       + du[k] @ problem.P[k] @ dx[k]
                       + problem.q[k] @ dx[k] + problem.r[k] @ du[k])
    J_expected += dx[N] @ problem.Q[N] @ dx[N] / 2. + problem.q[N] @ dx[N]

    np.testing.assert_allclose(problem.compute_cost(dx, du), J_expected)


def test_double_integrator_offsets():
    """Expanding about a non-equilibrium point gives a dynamics offset."""
    system = double_integrator()
    cost_function = QuadraticCost(Q=np.eye(2), R=np.eye(1))
    x0, u0, dt = np.array([1., 2.]), np.array([0.5]), 0.5

    problem = LQOCProblem(3, 2, 1)
    problem.set_from_time_invariant_linear_quadratic_problem(
        x0, u0, system, cost_function, x_desired=np.zeros(2), dt=dt)

    x1 = np.array([1. + 2. * dt + 0.5 * dt ** 2 / 2., 2. + 0.5 * dt])
    np.testing.assert_allclose(problem.b[0], x1 - x0)


def test_nonlinear_offsets():
    """Away from equilibrium the offset of a nonlinear system is the zero
    order hold response of its affine linearization."""
    system = Pendulum()
    cost_function = QuadraticCost(Q=np.eye(2), R=np.eye(1))
    x0, u0, dt = np.array([1., 0.5]), np.array([0.]), 0.1

    problem = LQOCProblem(2, 2, 1)
    problem.set_from_time_invariant_linear_quadratic_problem(
        x0, u0, system, cost_function, dt=dt)

    A, _ = system.jac(x0, u0)
    f0 = system.dynamics(x0, u0)
    b_expected, _ = quad_vec(lambda s: expm(A * s) @ f0, 0., dt)

    for k in range(2):
        np.testing.assert_allclose(problem.b[k], b_expected, atol=1e-09)
        np.testing.assert_allclose(problem.A[k], expm(A * dt), atol=1e-10)
    np.testing.assert_allclose(problem.b[0], [0.0455, -0.0900], atol=1e-04)

    # Expanding about an equilibrium gives no offset
    problem.set_from_time_invariant_linear_quadratic_problem(
        np.zeros(2), u0, system, cost_function, dt=dt)
    np.testing.assert_allclose(problem.b, 0., atol=1e-14)
