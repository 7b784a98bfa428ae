import warnings

import cvxpy as cp
import numpy as np

from ..utilities import find_saturated
from .solver import LQOCSolver, SolverError


class InteriorPointSolver(LQOCSolver):
    """
    Solves `LQOCProblem`s with box constraints on states and controls by
    transcribing them into a convex quadratic program, which is solved with
    `cvxpy` by an interior point solver (Clarabel by default).

    Feedback gains come from a Riccati recursion in which controls at an
    active bound are held fixed, as for a saturated linear quadratic
    regulator. Their rows of the gain matrices are zero. The gains of the
    remaining controls use a pseudo-inverse, so a singular control Hessian
    (for example `R = 0`) does not prevent a solution.
    """
    def __init__(self, solver='CLARABEL', tol=1e-06, verbose=0,
                 **solver_options):
        """
        Parameters
        ----------
        solver : str, default='CLARABEL'
            Name of the `cvxpy` solver to use. See `cvxpy.installed_solvers()`.
        tol : float, default=1e-06
            Absolute distance from a control bound within which the bound is
            considered active when computing feedback gains.
        verbose : {0, 1, 2}, default=0
            Level of verbosity. If `verbose >= 2`, the QP solver's own output
            is also printed.
        **solver_options : dict
            Keyword arguments passed to `cvxpy.Problem.solve`, for example
            `max_iter=50` for Clarabel.
        """
        self.solver = solver
        self.tol = float(tol)
        self.solver_options = solver_options
        super().__init__(verbose=verbose)

    def _transcribe(self):
        """Build the `cvxpy` problem and return it with the state and control
        deviation variables."""
        problem = self.problem
        N, n, m = problem.N, problem.n_states, problem.n_controls

        dx = cp.Variable((N + 1, n))
        du = cp.Variable((N, m))

        cost = 0.
        constraints = [dx[0] == 0.]
        for i in range(N):
            # Joint Hessian of the stage cost in (dx_i, du_i)
            H = np.block([[problem.Q[i], problem.P[i].T],
                          [problem.P[i], problem.R[i]]])
            z = cp.hstack([dx[i], du[i]])
            if np.any(H):
                cost += cp.quad_form(z, cp.psd_wrap((H + H.T) / 2.)) / 2.
            cost += problem.q[i] @ dx[i] + problem.r[i] @ du[i]

            constraints.append(dx[i + 1] == problem.A[i] @ dx[i]
                               + problem.B[i] @ du[i] + problem.b[i])

        if np.any(problem.Q[N]):
            Q_N = (problem.Q[N] + problem.Q[N].T) / 2.
            cost += cp.quad_form(dx[N], cp.psd_wrap(Q_N)) / 2.
        cost += problem.q[N] @ dx[N]

        du_lb, du_ub = problem.control_deviation_bounds()
        constraints += _box_constraints(du, du_lb, du_ub)

        dx_lb, dx_ub = problem.state_deviation_bounds()
        constraints += _box_constraints(dx[1:], dx_lb, dx_ub)

        return cp.Problem(cp.Minimize(cost), constraints), dx, du

    def _solve(self):
        problem = self.problem
        qp, dx, du = self._transcribe()

        try:
            qp.solve(solver=self.solver, verbose=self.verbose >= 2,
                     **self.solver_options)
        except cp.error.SolverError as e:
            raise SolverError(f"{self.solver} failed: {e}",
                              status='solver_error')

        if qp.status == cp.OPTIMAL_INACCURATE:
            warnings.warn(f"{self.solver} returned an inaccurate solution",
                          RuntimeWarning)
        elif qp.status != cp.OPTIMAL:
            raise SolverError(f"{self.solver} terminated with status "
                              f"'{qp.status}'", status=qp.status)

        dx, du = np.asarray(dx.value), np.asarray(du.value)

        if self.verbose:
            print(f"{self.solver}: status '{qp.status}', "
                  f"{qp.solver_stats.num_iters} iterations")

        saturated = np.zeros(du.shape, dtype=bool)
        if problem.is_control_box_constrained():
            saturated = find_saturated((problem.u_nom + du).T, lb=problem.u_lb,
                                       ub=problem.u_ub, tol=self.tol).T

        K = saturated_feedback_gains(problem, saturated)

        k = du - np.einsum('kij,kj->ki', K, dx[:-1])

        return dx, du, K, k


def _box_constraints(z, lb, ub):
    """Bound constraints on the columns of `z` with finite bounds."""
    constraints = []
    idx = np.flatnonzero(np.all(np.isfinite(lb), axis=0))
    if idx.size:
        constraints.append(z[:, idx] >= lb[:, idx])
    idx = np.flatnonzero(np.all(np.isfinite(ub), axis=0))
    if idx.size:
        constraints.append(z[:, idx] <= ub[:, idx])
    return constraints


def saturated_feedback_gains(problem, saturated):
    r"""
    Feedback gains of an `LQOCProblem` when some controls are held at their
    bounds. At each stage the controls flagged in `saturated` are fixed, so
    their gains are zero, and the free controls `f` get
    ```
    H = R + B' S B,    G = P + B' S A,
    K_f = -pinv(H_ff) G_f,    S <- Q + A' S A + G_f' K_f,
    ```
    starting from `S = Q_N`. Without saturated controls and with positive
    definite `H`, these are the gains of `backward_pass`.

    Parameters
    ----------
    problem : `LQOCProblem`
        Problem providing the dynamics and cost Hessians.
    saturated : (N, n_controls) bool array
        True for each control at an active bound.

    Returns
    -------
    K : (N, n_controls, n_states) array
        Feedback gains.
    """
    N, n, m = problem.N, problem.n_states, problem.n_controls
    saturated = np.asarray(saturated, dtype=bool).reshape(N, m)

    K = np.zeros((N, m, n))
    S = problem.Q[N].copy()

    for i in range(N - 1, -1, -1):
        A, B = problem.A[i], problem.B[i]

        SB = S @ B
        H = problem.R[i] + B.T @ SB
        G = problem.P[i] + SB.T @ A

        S = problem.Q[i] + A.T @ S @ A
        free = ~saturated[i]
        if np.any(free):
            K_free = -np.linalg.pinv(H[np.ix_(free, free)]) @ G[free]
            K[i][free] = K_free
            S += G[free].T @ K_free
        S = (S + S.T) / 2.

    return K
