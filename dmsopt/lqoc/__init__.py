"""
The `lqoc` module contains the linear-quadratic optimal control (LQOC) problem
solved at each iteration of a multiple shooting method, and two
interchangeable solvers for it.

---

* [`LQOCProblem`](lqoc/problem#LQOCProblem):
    Stage-wise linear dynamics, quadratic cost, and optional box constraints.

* [`LQOCSolver`](lqoc/solver#LQOCSolver):
    Common interface of the solvers.

* [`RiccatiSolver`](lqoc/riccati#RiccatiSolver):
    Backward Riccati recursion for unconstrained problems.

* [`InteriorPointSolver`](lqoc/interior_point#InteriorPointSolver):
    Interior point QP solution of box constrained problems.
"""

from .problem import LQOCProblem
from .solver import LQOCSolver, SolverError
from .riccati import RiccatiSolver, backward_pass, forward_pass
from .interior_point import InteriorPointSolver
