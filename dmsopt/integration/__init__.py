"""
The `integration` module contains the fixed step integrators used on each
shot of a multiple shooting problem. Along with the state trajectory, the
`SensitivityIntegrator` propagates first order sensitivities of the final
state and of the integrated running cost with respect to the initial state
and the control parameters.

---

* [`SensitivityIntegrator`](integration/sensitivity#SensitivityIntegrator):
    Integrates the state, cost, and their sensitivities on one time interval.

* [`METHODS`](integration/_fixed_stepsize_integrators):
    Available Butcher tableaus, `'Euler'` and `'RK4'`.
"""

from ._fixed_stepsize_integrators import METHODS, Euler, RK4
from .sensitivity import SensitivityIntegrator
