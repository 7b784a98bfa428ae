from ..lqoc import LQOCProblem
from .shot_container import integrate_shots


def assemble_lqoc_problem(shots, w, cost_function, problem=None, n_threads=1):
    """
    Build the linear-quadratic subproblem of a direct multiple shooting
    iteration from the outputs of its shot containers. For each shot `k`,
    ```
    A_k = dX/ds_k,    B_k = dX/dq_k,    b_k = X(t_{k+1}) - s_{k+1},
    q_k = dJ/ds_k,    r_k = dJ/dq_k,
    ```
    where `X` is the integrated state at the end of the shot and `J` the
    integrated running cost. The cost Hessians are the Gauss-Newton
    approximation, i.e. the running cost Hessians at `(s_k, q_k)` multiplied by
    the shot duration. The terminal cost is evaluated at `s_N`. The nominal
    trajectory is the current decision vector.

    Parameters
    ----------
    shots : list of `ShotContainer`
        One container per shot, ordered by shot index and sharing the decision
        vector `w`. Tiers which are out of date are integrated first.
    w : `OptVector`
        Decision vector.
    cost_function : `QuadraticCost`
        Cost function providing running and terminal cost derivatives.
    problem : `LQOCProblem`, optional
        Problem to fill. Installed constraints are kept. If `None`, a new
        unconstrained problem is created.
    n_threads : int, default=1
        Number of threads used to integrate the shots.

    Returns
    -------
    problem : `LQOCProblem`
        The assembled problem.
    """
    N = len(shots)
    n, m = w.n_states, w.n_controls

    if N != w.N:
        raise ValueError(f"Expected {w.N:d} shots, got {N:d}")
    for i, shot in enumerate(shots):
        if shot.shot_index != i:
            raise ValueError("shots must be ordered by shot index")
        if shot.has_end_control:
            raise ValueError("Only piecewise constant controls can be "
                             "expressed as an LQOC problem")

    if problem is None:
        problem = LQOCProblem(N, n, m)
    elif (problem.N, problem.n_states, problem.n_controls) != (N, n, m):
        raise ValueError("problem dimensions do not match the shots")

    evaluate_cost = all(shot.evaluate_cost for shot in shots)
    tier = 'cost_sensitivities' if evaluate_cost else 'sensitivities'
    integrate_shots(shots, tier=tier, n_threads=n_threads)

    s = w.get_optimized_states()
    u = w.get_optimized_controls()

    for i, shot in enumerate(shots):
        problem.A[i] = shot.get_dXdSi_integrated()
        problem.B[i] = shot.get_dXdQi_integrated()
        problem.b[i] = shot.get_state_integrated() - s[i + 1]

        if evaluate_cost:
            problem.q[i] = shot.get_dLdSi_integrated()
            problem.r[i] = shot.get_dLdQi_integrated()
        else:
            problem.q[i] = 0.
            problem.r[i] = 0.

        h = shot.time_grid.shot_duration(i)
        dLdxx, dLduu, dLdux = cost_function.running_cost_hess(s[i], u[i],
                                                              shot.t_start)
        problem.Q[i] = h * dLdxx
        problem.R[i] = h * dLduu
        problem.P[i] = h * dLdux

    problem.Q[N] = cost_function.terminal_cost_hess(s[N])
    problem.q[N] = cost_function.terminal_cost_grad(s[N])

    problem.x_nom[:] = s
    problem.u_nom[:] = u[:N]

    return problem
