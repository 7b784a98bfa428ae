import numpy as np


class FixedStepMethod:
    """Base class for explicit fixed stepsize Runge-Kutta methods, defined by
    a Butcher tableau with nodes `C`, strictly lower triangular coefficient
    matrix `A` and weights `B`."""
    C: np.ndarray = NotImplemented
    A: np.ndarray = NotImplemented
    B: np.ndarray = NotImplemented
    order: int = NotImplemented

    @classmethod
    def n_stages(cls):
        return cls.C.shape[0]

    @classmethod
    def step(cls, fun, t, y, h):
        """
        Take a single step of the method.

        Parameters
        ----------
        fun : callable
            Right-hand side of the system. The calling signature is
            `fun(t, y)`, where `y` has shape (n,).
        t : float
            Current time.
        y : (n,) array
            Current state.
        h : float
            Step size.

        Returns
        -------
        y_new : (n,) array
            State at time `t + h`.
        Y : (n_stages, n) array
            Stage states, i.e. the points at which `fun` was evaluated.
        T : (n_stages,) array
            Stage times.
        """
        n_stages = cls.n_stages()
        Y = np.empty((n_stages, np.size(y)))
        K = np.empty((n_stages, np.size(y)))
        T = t + cls.C * h

        for i in range(n_stages):
            Y[i] = y + h * (cls.A[i, :i] @ K[:i])
            K[i] = fun(T[i], Y[i])

        return y + h * (cls.B @ K), Y, T


class Euler(FixedStepMethod):
    """Explicit Euler method with fixed timestep. This is a first order
    method."""
    C = np.array([0.])
    A = np.array([[0.]])
    B = np.array([1.])
    order = 1


class RK4(FixedStepMethod):
    """Explicit fourth order Runge-Kutta method with fixed timestep. This is the
    classic fourth order Runge-Kutta method."""
    C = np.array([0., 1/2, 1/2, 1.])
    A = np.array([[0., 0., 0., 0.],
                  [1/2, 0., 0., 0.],
                  [0., 1/2, 0., 0.],
                  [0., 0., 1., 0.]])
    B = np.array([1/6, 1/3, 1/3, 1/6])
    order = 4


METHODS = {'Euler': Euler, 'RK4': RK4}
