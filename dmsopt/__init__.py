"""
`dmsopt` is a direct multiple shooting toolkit for trajectory optimization of
nonlinear controlled systems. Each shot of the horizon is integrated with a
fixed step Runge-Kutta scheme together with the sensitivities of its final
state and running cost, and the resulting linear-quadratic optimal control
(LQOC) subproblem is solved either with a Riccati recursion or, when box
constraints are present, with an interior point QP solver.

---

* [`systems`](dmsopt/systems): Controlled dynamics and their linearization.

* [`costs`](dmsopt/costs): Quadratic running and terminal costs.

* [`integration`](dmsopt/integration): Fixed step integrators with
    sensitivity propagation.

* [`dms`](dmsopt/dms): Time grid, decision vector, control splines, and shot
    containers.

* [`lqoc`](dmsopt/lqoc): LQOC problems and solvers.
"""

__version__ = '0.1.0'

from .parameters import ProblemParameters
from .settings import DmsSettings
from .costs import QuadraticCost
from .systems import ControlledSystem, LinearSystem
from .integration import SensitivityIntegrator
from .dms import (TimeGrid, OptVector, ZeroOrderHoldSpliner, LinearSpliner,
                  make_spliner, ShotContainer, integrate_shots,
                  assemble_lqoc_problem)
from .lqoc import (LQOCProblem, LQOCSolver, SolverError, RiccatiSolver,
                   InteriorPointSolver)
