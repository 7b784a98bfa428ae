"""
The `dms` module implements the shot-level machinery of direct multiple
shooting: the time grid, the decision vector, control parameterizations, and
the `ShotContainer` which integrates each shot and caches the results until
the decision vector changes.

---

* [`TimeGrid`](dms/time_grid#TimeGrid):
    Shot node times on the horizon.

* [`OptVector`](dms/opt_vector#OptVector):
    State and control nodes with a modification counter.

* [`ZeroOrderHoldSpliner`, `LinearSpliner`](dms/spliner):
    Piecewise constant and piecewise linear controls.

* [`ShotContainer`](dms/shot_container#ShotContainer):
    Lazily integrated states, costs, and sensitivities of one shot.

* [`integrate_shots`](dms/shot_container#integrate_shots):
    Integrate many shots, optionally in parallel.

* [`assemble_lqoc_problem`](dms/assemble#assemble_lqoc_problem):
    Build the LQOC subproblem from the shots.
"""

from .time_grid import TimeGrid
from .opt_vector import OptVector
from .spliner import (Spliner, ZeroOrderHoldSpliner, LinearSpliner, SPLINERS,
                      make_spliner)
from .shot_container import ShotContainer, integrate_shots, TIERS
from .assemble import assemble_lqoc_problem
