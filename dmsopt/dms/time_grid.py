import numpy as np

from ..utilities import check_int_input


class TimeGrid:
    """Equidistant grid of `N + 1` shot nodes on the interval `[0, T]`."""
    def __init__(self, N, T):
        """
        Parameters
        ----------
        N : int
            Number of shots.
        T : float
            Time horizon. Must be positive.
        """
        self.N = check_int_input(N, 'N', low=1)
        self.update_time_horizon(T)

    def update_time_horizon(self, T):
        """Rescale the grid to a new time horizon `T`."""
        T = float(T)
        if T <= 0.:
            raise ValueError("T must be positive")
        self.T = T
        self.times = np.linspace(0., T, self.N + 1)
        """(N + 1,) array. Shot node times."""

    def _check_index(self, shot_index):
        if not 0 <= shot_index < self.N:
            raise IndexError(f"shot_index = {shot_index} is out of range for "
                             f"a grid with N = {self.N} shots")

    def shot_start_time(self, shot_index):
        self._check_index(shot_index)
        return self.times[shot_index]

    def shot_end_time(self, shot_index):
        self._check_index(shot_index)
        return self.times[shot_index + 1]

    def shot_duration(self, shot_index):
        return self.shot_end_time(shot_index) - self.shot_start_time(shot_index)
