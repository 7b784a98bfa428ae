import numpy as np
from scipy.linalg import LinAlgError, cho_factor, cho_solve

from .solver import LQOCSolver, SolverError


class RiccatiSolver(LQOCSolver):
    """
    Solves unconstrained `LQOCProblem`s with a backward Riccati recursion
    followed by a forward rollout of the resulting affine control law.

    Box constraints are not supported. By default a problem carrying box
    constraints is rejected with a `SolverError`; with
    `ignore_constraints=True` the constraints are dropped and the
    unconstrained problem is solved instead.
    """
    def __init__(self, ignore_constraints=False, verbose=0):
        """
        Parameters
        ----------
        ignore_constraints : bool, default=False
            If True, solve constrained problems as if they were unconstrained.
            If False, raise a `SolverError` for constrained problems.
        verbose : {0, 1, 2}, default=0
            Level of verbosity. If `verbose >= 2`, print the cost-to-go at each
            stage of the backward pass.
        """
        self.ignore_constraints = bool(ignore_constraints)
        super().__init__(verbose=verbose)

    def _solve(self):
        problem = self.problem
        if problem.is_constrained() and not self.ignore_constraints:
            raise SolverError("RiccatiSolver does not support box "
                              "constraints. Use InteriorPointSolver or set "
                              "ignore_constraints=True.",
                              status='constrained')

        K, k = backward_pass(problem, verbose=self.verbose)
        dx, du = forward_pass(problem, K, k)
        return dx, du, K, k


def backward_pass(problem, verbose=0):
    r"""
    Backward Riccati recursion for an `LQOCProblem`, ignoring constraints.
    Starting from the terminal cost-to-go `S = Q_N`, `s = q_N`, each stage
    computes
    ```
    H = R + B' S B,    G = P + B' S A,    g = r + B' (s + S b),
    K = -H^{-1} G,     k = -H^{-1} g,
    S <- Q + A' S A - G' H^{-1} G,    s <- q + A' (s + S b) + G' k.
    ```

    Parameters
    ----------
    problem : `LQOCProblem`
        Problem to solve.
    verbose : {0, 1, 2}, default=0
        If `verbose >= 2`, print the trace of the cost-to-go Hessian at each
        stage.

    Returns
    -------
    K : (N, n_controls, n_states) array
        Feedback gains.
    k : (N, n_controls) array
        Feedforward terms.

    Raises
    ------
    SolverError
        If `H` is not positive definite at some stage.
    """
    N, n, m = problem.N, problem.n_states, problem.n_controls

    K = np.empty((N, m, n))
    k = np.empty((N, m))

    S = problem.Q[N].copy()
    s = problem.q[N].copy()

    for i in range(N - 1, -1, -1):
        A, B, b = problem.A[i], problem.B[i], problem.b[i]

        SB = S @ B
        H = problem.R[i] + B.T @ SB
        G = problem.P[i] + SB.T @ A
        s_next = s + S @ b
        g = problem.r[i] + B.T @ s_next

        try:
            H_factor = cho_factor(H)
        except LinAlgError as e:
            raise SolverError(f"Riccati recursion failed at stage {i:d}: "
                              f"control Hessian is not positive definite "
                              f"({e})", status='singular')

        K[i] = -cho_solve(H_factor, G)
        k[i] = -cho_solve(H_factor, g)

        S = problem.Q[i] + A.T @ S @ A + G.T @ K[i]
        S = (S + S.T) / 2.
        s = problem.q[i] + A.T @ s_next + G.T @ k[i]

        if verbose >= 2:
            print(f"stage {i:d}: trace(S) = {np.trace(S):1.4e}")

    return K, k


def forward_pass(problem, K, k):
    """
    Roll out the affine control law `du = K dx + k` through the linear
    dynamics of an `LQOCProblem`, starting from `dx_0 = 0`.

    Parameters
    ----------
    problem : `LQOCProblem`
        Problem providing the dynamics.
    K : (N, n_controls, n_states) array
        Feedback gains.
    k : (N, n_controls) array
        Feedforward terms.

    Returns
    -------
    dx : (N + 1, n_states) array
        State deviations.
    du : (N, n_controls) array
        Control deviations.
    """
    dx = np.zeros((problem.N + 1, problem.n_states))
    du = np.zeros((problem.N, problem.n_controls))

    for i in range(problem.N):
        du[i] = K[i] @ dx[i] + k[i]
        dx[i + 1] = problem.A[i] @ dx[i] + problem.B[i] @ du[i] + problem.b[i]

    return dx, du
