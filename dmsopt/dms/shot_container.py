from concurrent.futures import ThreadPoolExecutor

import numpy as np
from tqdm import tqdm

from ..integration import SensitivityIntegrator
from ..utilities import pack_dataframe
from .spliner import SPLINERS


TIERS = ('shot', 'cost', 'sensitivities', 'cost_sensitivities')
"""Computation tiers of a `ShotContainer`, in dependency order."""


class ShotContainer:
    """
    Integrates the dynamics, the running cost, and their sensitivities on a
    single shot of a direct multiple shooting problem.

    Outputs are computed lazily in four tiers, each of which first ensures its
    prerequisites:

        1. `integrate_shot`: state trajectory from the node `s_i`.
        2. `integrate_cost`: running cost integral (requires 1).
        3. `integrate_sensitivities`: sensitivities of the final state with
           respect to `s_i`, `q_i` and, for piecewise linear controls,
           `q_{i+1}` (requires 1).
        4. `integrate_cost_sensitivities`: gradients of the cost integral with
           respect to the same variables (requires 3).

    Each tier records the `update_count` of the decision vector at which it
    last ran and is recomputed only if the decision vector has been modified
    since. A container must not be used by more than one thread at a time.
    """
    def __init__(self, system, linear_system, cost_function, w, spliner,
                 time_grid, shot_index, settings):
        """
        Parameters
        ----------
        system : `ControlledSystem`
            Nonlinear dynamics to integrate.
        linear_system : `ControlledSystem`
            System providing the Jacobians used for the sensitivities. Usually
            the same object as `system`.
        cost_function : `QuadraticCost`
            Cost function providing the running cost and its gradients. Not
            used if `settings.cost_evaluation_type == 'none'`.
        w : `OptVector`
            Shared decision vector.
        spliner : `Spliner`
            Shared control parameterization.
        time_grid : `TimeGrid`
            Shared time grid.
        shot_index : int
            Index of the shot, `0 <= shot_index < settings.N`.
        settings : `DmsSettings`
            Discretization settings, providing `N`, `spline_type`,
            `integration_type`, `dt_sim`, and `cost_evaluation_type`. The
            time grid and spliner must agree with `N` and `spline_type`.
        """
        if not 0 <= shot_index < settings.N:
            raise IndexError(f"shot_index = {shot_index} is out of range for "
                             f"N = {settings.N} shots")
        if time_grid.N != settings.N:
            raise ValueError(f"time_grid has {time_grid.N} shots but "
                             f"settings.N = {settings.N}")
        if not isinstance(spliner, SPLINERS[settings.spline_type]):
            raise ValueError(f"{type(spliner).__name__} does not match "
                             f"spline_type = {settings.spline_type}")

        self.shot_index = shot_index
        self.system = system
        self.linear_system = linear_system
        self.cost_function = cost_function
        self.w = w
        self.spliner = spliner
        self.time_grid = time_grid
        self.settings = settings

        self.integrator = SensitivityIntegrator(system,
                                                settings.integration_type)
        self.integrator.set_linear_system(linear_system)
        self.integrator.set_control_input(spliner, shot_index)
        self.evaluate_cost = settings.cost_evaluation_type == 'full'
        if self.evaluate_cost:
            self.integrator.set_cost_function(cost_function)

        self.t_start = time_grid.shot_start_time(shot_index)
        duration = time_grid.shot_end_time(shot_index) - self.t_start
        # Round to the nearest integer to absorb floating point error
        self.n_steps = max(1, int(duration / settings.dt_sim + 0.5))
        self.dt = duration / self.n_steps

        self.evaluation_counts = {tier: 0 for tier in TIERS}
        """dict. Number of times each tier has been recomputed."""
        self._stamps = {tier: None for tier in TIERS}

        n, m = system.n_states, system.n_controls
        self._x_history = np.zeros((self.n_steps + 1, n))
        self._t_history = self.t_start + self.dt * np.arange(self.n_steps + 1)
        self._cost = 0.
        self._dXdSi = np.zeros((n, n))
        self._dXdQi = np.zeros((n, m))
        self._dXdQip1 = np.zeros((n, m))
        self._dLdSi = np.zeros(n)
        self._dLdQi = np.zeros(m)
        self._dLdQip1 = np.zeros(m)

    @property
    def has_end_control(self):
        """True if the shot depends on the control node `q_{i+1}` (bool)."""
        return self.settings.spline_type == 'piecewise_linear'

    def _is_current(self, tier):
        return self._stamps[tier] == self.w.update_count

    def _mark_current(self, tier, stamp):
        self._stamps[tier] = stamp
        self.evaluation_counts[tier] += 1

    def _restore_integrator(self, sensitivities=False):
        """Recompute integrator data deleted by `reset` for the current
        decision vector, leaving the cached outputs unchanged."""
        if not self.integrator.has_states:
            self.integrator.integrate(
                self.w.get_optimized_state(self.shot_index), self.t_start,
                self.n_steps, self.dt)
        if sensitivities and not self.integrator.has_sensitivity('dx0'):
            self._integrate_state_sensitivities()

    def integrate_shot(self):
        """Integrate the dynamics from the shot's initial state node, unless
        this has already been done for the current decision vector."""
        if self._is_current('shot'):
            return

        stamp = self.w.update_count
        x0 = self.w.get_optimized_state(self.shot_index)
        self._x_history, self._t_history = self.integrator.integrate(
            x0, self.t_start, self.n_steps, self.dt)
        self._mark_current('shot', stamp)

    def integrate_cost(self):
        """Integrate the running cost over the shot trajectory, unless this has
        already been done for the current decision vector."""
        self.integrate_shot()
        if self._is_current('cost'):
            return
        self._check_cost_evaluation()

        stamp = self.w.update_count
        self._restore_integrator()
        self._cost = self.integrator.integrate_cost(0.)
        self._mark_current('cost', stamp)

    def integrate_sensitivities(self):
        """Linearize the dynamics along the shot trajectory and integrate the
        sensitivities of the final state, unless this has already been done for
        the current decision vector."""
        self.integrate_shot()
        if self._is_current('sensitivities'):
            return

        stamp = self.w.update_count
        self._restore_integrator()
        self._integrate_state_sensitivities()
        self._mark_current('sensitivities', stamp)

    def _integrate_state_sensitivities(self):
        n, m = self.system.n_states, self.system.n_controls

        self.integrator.linearize()
        self._dXdSi = self.integrator.integrate_sensitivity_dx0(np.eye(n))
        self._dXdQi = self.integrator.integrate_sensitivity_du0(
            np.zeros((n, m)))
        if self.has_end_control:
            self._dXdQip1 = self.integrator.integrate_sensitivity_duf(
                np.zeros((n, m)))

    def integrate_cost_sensitivities(self):
        """Integrate the gradients of the running cost integral, unless this
        has already been done for the current decision vector."""
        self.integrate_sensitivities()
        if self._is_current('cost_sensitivities'):
            return
        self._check_cost_evaluation()

        stamp = self.w.update_count
        self._restore_integrator(sensitivities=True)
        n, m = self.system.n_states, self.system.n_controls
        self._dLdSi = self.integrator.integrate_cost_sensitivity_dx0(
            np.zeros(n))
        self._dLdQi = self.integrator.integrate_cost_sensitivity_du0(
            np.zeros(m))
        if self.has_end_control:
            self._dLdQip1 = self.integrator.integrate_cost_sensitivity_duf(
                np.zeros(m))
        self._mark_current('cost_sensitivities', stamp)

    def _check_cost_evaluation(self):
        if not self.evaluate_cost:
            raise RuntimeError("Cost evaluation is disabled for this shot "
                               "(cost_evaluation_type='none')")

    def reset(self):
        """
        Delete the states, linearization, and sensitivities stored by the
        integrator. Cached outputs and the tier stamps are kept, so the tiers
        are only recomputed after the decision vector is modified.
        """
        self.integrator.clear_states()
        self.integrator.clear_sensitivities()
        self.integrator.clear_linearization()

    def get_controlled_system(self):
        return self.system

    def get_state_integrated(self):
        """(n_states,) array. State at the end of the shot."""
        return self._x_history[-1].copy()

    def get_integration_time_final(self):
        """float. Time at the end of the shot."""
        return float(self._t_history[-1])

    def get_dXdSi_integrated(self):
        """(n_states, n_states) array. Sensitivity of the final state with
        respect to the initial state node `s_i`."""
        return self._dXdSi.copy()

    def get_dXdQi_integrated(self):
        """(n_states, n_controls) array. Sensitivity of the final state with
        respect to the control node `q_i`."""
        return self._dXdQi.copy()

    def get_dXdQip1_integrated(self):
        """(n_states, n_controls) array. Sensitivity of the final state with
        respect to the control node `q_{i+1}`. Zero unless controls are
        piecewise linear."""
        return self._dXdQip1.copy()

    def get_cost_integrated(self):
        """float. Integral of the running cost over the shot."""
        return self._cost

    def get_dLdSi_integrated(self):
        return self._dLdSi.copy()

    def get_dLdQi_integrated(self):
        return self._dLdQi.copy()

    def get_dLdQip1_integrated(self):
        return self._dLdQip1.copy()

    def get_x_history(self):
        """(n_steps + 1, n_states) array. Integrated states."""
        return self._x_history.copy()

    def get_t_history(self):
        """(n_steps + 1,) array. Integration time steps."""
        return self._t_history.copy()

    def get_u_history(self):
        """
        Evaluate the control spline at each time in `get_t_history()`. The
        result is not cached, so reflects the current control nodes.

        Returns
        -------
        u_history : (n_steps + 1, n_controls) array
        """
        return np.stack([self.spliner.evaluate(t, self.shot_index)
                         for t in self._t_history])

    def get_trajectory_data(self):
        """
        Collect the cached trajectory of the shot in a `DataFrame`.

        Returns
        -------
        data : DataFrame
            `DataFrame` with `n_steps + 1` rows and columns 't', 'x1', ...,
            'xn', 'u1', ..., 'um'.
        """
        return pack_dataframe(self._t_history, self._x_history,
                              self.get_u_history())


def integrate_shots(shots, tier='cost_sensitivities', n_threads=1, verbose=0):
    """
    Run one computation tier on a collection of shot containers and wait for
    all of them to finish. Each container is handled by a single worker.

    Parameters
    ----------
    shots : list of `ShotContainer`
        Shot containers to integrate. The shared decision vector must not be
        modified until this function returns.
    tier : {'shot', 'cost', 'sensitivities', 'cost_sensitivities'}, \
            default='cost_sensitivities'
        Computation tier to run. Prerequisite tiers are run automatically.
    n_threads : int, default=1
        Number of worker threads. If `n_threads == 1`, the shots are integrated
        sequentially in the calling thread.
    verbose : {0, 1, 2}, default=0
        Level of verbosity. If `verbose >= 1`, show a progress bar.

    Returns
    -------
    shots : list of `ShotContainer`
        The input containers, with the requested tier up to date.
    """
    if tier not in TIERS:
        raise ValueError(f"tier = {tier} is not recognized. Valid options are "
                         f"{TIERS}")
    shots = list(shots)
    method = 'integrate_' + tier

    def run(shot):
        getattr(shot, method)()

    if verbose:
        print(f"Integrating {len(shots):d} shots ({tier:s})...")

    if n_threads > 1:
        with ThreadPoolExecutor(max_workers=n_threads) as pool:
            futures = [pool.submit(run, shot) for shot in shots]
            for future in tqdm(futures, disable=not verbose):
                future.result()
    else:
        for shot in tqdm(shots, disable=not verbose):
            run(shot)

    return shots
