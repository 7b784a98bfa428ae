import numpy as np

from ..utilities import check_int_input, resize_vector


class OptVector:
    """
    Decision vector of a direct multiple shooting problem, holding the state
    nodes `s_0, ..., s_N` and control nodes `q_0, ..., q_N`.

    Every modification increments `update_count`. Shot containers compare this
    counter against the value at which they last computed their outputs to
    decide whether their cached results are still valid, so all writes must go
    through the setters below. Getters return copies.
    """
    def __init__(self, n_states, n_controls, N):
        """
        Parameters
        ----------
        n_states : int
            Dimension of the state nodes.
        n_controls : int
            Dimension of the control nodes.
        N : int
            Number of shots.
        """
        self.n_states = check_int_input(n_states, 'n_states', low=1)
        self.n_controls = check_int_input(n_controls, 'n_controls', low=1)
        self.N = check_int_input(N, 'N', low=1)

        self._states = np.zeros((self.N + 1, self.n_states))
        self._controls = np.zeros((self.N + 1, self.n_controls))
        self._update_count = 0

    @property
    def update_count(self):
        """Number of modifications made to the decision vector (int)."""
        return self._update_count

    @property
    def size(self):
        """Total number of decision variables (int)."""
        return self._states.size + self._controls.size

    def get_optimized_state(self, index):
        return self._states[index].copy()

    def get_optimized_control(self, index):
        return self._controls[index].copy()

    def get_optimized_states(self):
        return self._states.copy()

    def get_optimized_controls(self):
        return self._controls.copy()

    def set_optimized_state(self, index, x):
        self._states[index] = resize_vector(x, self.n_states, 'x')
        self._update_count += 1

    def set_optimized_control(self, index, u):
        self._controls[index] = resize_vector(u, self.n_controls, 'u')
        self._update_count += 1

    def set_initial_guess(self, x0, xf, u0):
        """
        Initialize the state nodes by linear interpolation from `x0` to `xf`
        and set all control nodes to `u0`.

        Parameters
        ----------
        x0 : (n_states,) array
            Initial state.
        xf : (n_states,) array
            Final state.
        u0 : {(n_controls,) array, float}
            Control guess for all nodes.
        """
        x0 = resize_vector(x0, self.n_states, 'x0')
        xf = resize_vector(xf, self.n_states, 'xf')
        weights = np.linspace(0., 1., self.N + 1)[:, None]
        self._states = (1. - weights) * x0 + weights * xf
        self._controls = np.tile(resize_vector(u0, self.n_controls, 'u0'),
                                 (self.N + 1, 1))
        self._update_count += 1

    def to_vector(self):
        """
        Stack all decision variables into a single vector, ordered as
        `[s_0, q_0, s_1, q_1, ..., s_N, q_N]`.

        Returns
        -------
        w : (size,) array
        """
        return np.hstack((self._states, self._controls)).reshape(-1)

    def set_from_vector(self, w):
        """Overwrite all decision variables from a vector ordered as in
        `to_vector`."""
        w = np.asarray(w, dtype=float).reshape(-1)
        if w.shape[0] != self.size:
            raise ValueError(f"w must have size {self.size:d}")
        w = w.reshape(self.N + 1, self.n_states + self.n_controls)
        self._states = w[:, :self.n_states].copy()
        self._controls = w[:, self.n_states:].copy()
        self._update_count += 1
