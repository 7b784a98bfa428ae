import numpy as np


class Spliner:
    """
    Base class for control parameterizations. A spliner evaluates the control
    input inside a shot from the control nodes stored in an `OptVector`, and
    provides the derivatives of the control with respect to the nodes at
    either end of the shot.
    """
    n_nodes_per_shot = NotImplemented
    """Number of control nodes a single shot depends on (1 or 2)."""

    def __init__(self, time_grid, w):
        """
        Parameters
        ----------
        time_grid : `TimeGrid`
            Time grid of the shots.
        w : `OptVector`
            Decision vector containing the control nodes.
        """
        self.time_grid = time_grid
        self.w = w

    def evaluate(self, t, shot_index):
        """
        Evaluate the control input at time `t` within a shot.

        Parameters
        ----------
        t : float
            Time, with `shot_start_time(shot_index) <= t <= shot_end_time`.
        shot_index : int
            Shot index.

        Returns
        -------
        u : (n_controls,) array
        """
        raise NotImplementedError

    def derivative_q_i(self, t, shot_index):
        """(n_controls, n_controls) array. Jacobian of `evaluate(t, shot_index)`
        with respect to the control node at the start of the shot."""
        raise NotImplementedError

    def derivative_q_ip1(self, t, shot_index):
        """(n_controls, n_controls) array. Jacobian of `evaluate(t, shot_index)`
        with respect to the control node at the end of the shot."""
        raise NotImplementedError

    def _eye(self):
        return np.eye(self.w.n_controls)


class ZeroOrderHoldSpliner(Spliner):
    """Piecewise constant control, `u(t) = q_i` on shot `i`."""
    n_nodes_per_shot = 1

    def evaluate(self, t, shot_index):
        return self.w.get_optimized_control(shot_index)

    def derivative_q_i(self, t, shot_index):
        return self._eye()

    def derivative_q_ip1(self, t, shot_index):
        return np.zeros((self.w.n_controls, self.w.n_controls))


class LinearSpliner(Spliner):
    """Piecewise linear control, `u(t) = (1 - a) q_i + a q_{i+1}` on shot `i`,
    where `a = (t - t_i) / (t_{i+1} - t_i)`."""
    n_nodes_per_shot = 2

    def _alpha(self, t, shot_index):
        t0 = self.time_grid.shot_start_time(shot_index)
        return (t - t0) / self.time_grid.shot_duration(shot_index)

    def evaluate(self, t, shot_index):
        a = self._alpha(t, shot_index)
        return ((1. - a) * self.w.get_optimized_control(shot_index)
                + a * self.w.get_optimized_control(shot_index + 1))

    def derivative_q_i(self, t, shot_index):
        return (1. - self._alpha(t, shot_index)) * self._eye()

    def derivative_q_ip1(self, t, shot_index):
        return self._alpha(t, shot_index) * self._eye()


SPLINERS = {'zero_order_hold': ZeroOrderHoldSpliner,
            'piecewise_linear': LinearSpliner}


def make_spliner(spline_type, time_grid, w):
    """
    Construct a `Spliner` from its name.

    Parameters
    ----------
    spline_type : {'zero_order_hold', 'piecewise_linear'}
        Control parameterization.
    time_grid : `TimeGrid`
        Time grid of the shots.
    w : `OptVector`
        Decision vector containing the control nodes.

    Returns
    -------
    spliner : `Spliner`
    """
    try:
        return SPLINERS[spline_type](time_grid, w)
    except KeyError:
        raise ValueError(f"spline_type = {spline_type} is not recognized. "
                         f"Valid options are {tuple(SPLINERS.keys())}")
