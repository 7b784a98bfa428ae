import numpy as np


class SolverError(RuntimeError):
    """
    Raised when an `LQOCSolver` fails to solve its problem.

    Attributes
    ----------
    status : int or str
        Reason for failure reported by the underlying solver.
    message : str
        Human-readable description of the failure.
    """
    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status
        self.message = str(message)


class LQOCSolver:
    """
    Base class for solvers of linear-quadratic optimal control problems
    (`LQOCProblem`). Subclasses implement `_solve`, which computes the
    solution for the bound problem and returns

        * dx : (N + 1, n_states) array of state deviations,
        * du : (N, n_controls) array of control deviations,
        * K : (N, n_controls, n_states) array of feedback gains,
        * k : (N, n_controls) array of feedforward terms,

    such that `du[i] = K[i] @ dx[i] + k[i]`.

    A solver instance is not reentrant: `solve` must not be called
    concurrently on the same instance.
    """
    def __init__(self, verbose=0):
        """
        Parameters
        ----------
        verbose : {0, 1, 2}, default=0
            Level of verbosity. If `verbose >= 1`, print a summary after each
            solve.
        """
        self.verbose = verbose
        self.problem = None
        self._clear_solution()

    def __str__(self):
        return type(self).__name__

    def _clear_solution(self):
        self._x = self._u = self._K = self._k = None

    def set_problem(self, problem):
        """
        Bind a problem to the solver, replacing any previous problem. Does not
        solve it.

        Parameters
        ----------
        problem : `LQOCProblem`
            The problem to solve. Must not be modified during `solve`.
        """
        self.problem = problem
        self._clear_solution()

    def solve(self):
        """
        Solve the bound problem. The previous solution is discarded first.

        Raises
        ------
        RuntimeError
            If no problem has been set.
        SolverError
            If the problem could not be solved.
        """
        if self.problem is None:
            raise RuntimeError("No problem has been set. Call set_problem "
                               "first.")

        self._clear_solution()

        dx, du, K, k = self._solve()

        self._x = self.problem.x_nom + dx
        self._u = self.problem.u_nom + du
        self._K = np.asarray(K)
        self._k = np.asarray(k)

        if self.verbose:
            J = self.problem.compute_cost(dx, du)
            print(f"{self}: solved LQOC problem with N = {self.problem.N:d}, "
                  f"cost = {J:1.4e}")

    def _solve(self):
        raise NotImplementedError

    def _check_solution(self):
        if self._x is None:
            raise RuntimeError("No solution is available. Call solve first.")

    def get_solution_state(self):
        """
        Returns
        -------
        x : (N + 1, n_states) array
            Optimal states, in absolute coordinates.
        """
        self._check_solution()
        return self._x.copy()

    def get_solution_control(self):
        """
        Returns
        -------
        u : (N, n_controls) array
            Optimal controls, in absolute coordinates.
        """
        self._check_solution()
        return self._u.copy()

    def get_feedforward(self):
        """(N, n_controls) array. Feedforward terms `k` of the control update
        `du = K @ dx + k`."""
        self._check_solution()
        return self._k.copy()

    def get_feedback(self, K=None):
        """
        Write the feedback gains of the last solution into `K`.

        Parameters
        ----------
        K : list or (N, n_controls, n_states) array, optional
            Container to fill. A list is overwritten with `N` gain matrices; an
            array is filled in place. If `None`, a new list is created.

        Returns
        -------
        K : list or (N, n_controls, n_states) array
            The filled container.
        """
        self._check_solution()
        if K is None:
            K = []
        if isinstance(K, np.ndarray):
            K[...] = self._K
        else:
            K[:] = [K_i.copy() for K_i in self._K]
        return K
