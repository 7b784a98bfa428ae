import numpy as np

from .parameters import ProblemParameters
from .utilities import check_int_input


INTEGRATION_TYPES = ('Euler', 'RK4')
"""Fixed step integration schemes which can be used on a shot."""

ADAPTIVE_INTEGRATION_TYPES = ('RK5', 'RK45', 'DOP853', 'adaptive')
"""Integration schemes which are recognized but not supported, since shot
sensitivities require a fixed number of steps."""

SPLINE_TYPES = ('zero_order_hold', 'piecewise_linear')

COST_EVALUATION_TYPES = ('full', 'none')


class DmsSettings(ProblemParameters):
    """
    Settings of a direct multiple shooting discretization. Takes the following
    parameters upon initialization, all of which can later be modified with
    `update`.

    Parameters
    ----------
    N : int
        Number of shots. Must be at least one.
    T : float
        Time horizon. Must be positive.
    dt_sim : float
        Fixed integration step size used inside each shot. Must be positive.
    integration_type : {'Euler', 'RK4'}, default='RK4'
        Fixed step integration scheme. Adaptive schemes (e.g. 'RK5') are
        rejected.
    spline_type : {'zero_order_hold', 'piecewise_linear'}, \
            default='zero_order_hold'
        Control parameterization. With 'piecewise_linear' each shot depends on
        the control nodes at both of its ends.
    cost_evaluation_type : {'full', 'none'}, default='full'
        If 'full', the running cost and its gradients are integrated on every
        shot. If 'none', no cost function is attached to the integrators.
    """
    _required_parameters = {'N': None, 'T': None, 'dt_sim': None}
    _optional_parameters = {'integration_type': 'RK4',
                            'spline_type': 'zero_order_hold',
                            'cost_evaluation_type': 'full'}

    def __init__(self, **settings):
        settings = {**self._required_parameters, **self._optional_parameters,
                    **settings}
        super().__init__(required=self._required_parameters.keys(),
                         update_fun=type(self)._parameter_update_fun,
                         **settings)

    @staticmethod
    def _parameter_update_fun(obj, **new_params):
        if 'N' in new_params:
            obj.N = check_int_input(obj.N, 'N', low=1)

        for key in ('T', 'dt_sim'):
            if key in new_params:
                try:
                    value = float(getattr(obj, key))
                    if not np.isfinite(value) or value <= 0.:
                        raise ValueError
                except (TypeError, ValueError):
                    raise ValueError(f"{key} must be a positive float")
                setattr(obj, key, value)

        if 'integration_type' in new_params:
            if obj.integration_type in ADAPTIVE_INTEGRATION_TYPES:
                raise ValueError(f"integration_type = {obj.integration_type} "
                                 f"is adaptive. Adaptive integrators are not "
                                 f"supported in multiple shooting")
            if obj.integration_type not in INTEGRATION_TYPES:
                raise ValueError(f"integration_type = {obj.integration_type} "
                                 f"is not recognized. Valid options are "
                                 f"{INTEGRATION_TYPES}")

        if 'spline_type' in new_params:
            if obj.spline_type not in SPLINE_TYPES:
                raise ValueError(f"spline_type = {obj.spline_type} is not "
                                 f"recognized. Valid options are "
                                 f"{SPLINE_TYPES}")

        if 'cost_evaluation_type' in new_params:
            if obj.cost_evaluation_type not in COST_EVALUATION_TYPES:
                raise ValueError(f"cost_evaluation_type = "
                                 f"{obj.cost_evaluation_type} is not "
                                 f"recognized. Valid options are "
                                 f"{COST_EVALUATION_TYPES}")

    @property
    def h(self):
        """Nominal shot duration `T / N` (float)."""
        return self.T / self.N
