"""
The `systems` module defines the continuous-time dynamics that are integrated
on each shot. Dynamics are implemented as subclasses of `ControlledSystem`,
which provides finite difference Jacobians and a zero-order hold
discretization by default.

---

* [`ControlledSystem`](systems/system#ControlledSystem):
    Base superclass for nonlinear controlled dynamics `dx/dt = f(x, u, t)`.

* [`LinearSystem`](systems/linear#LinearSystem):
    Linear time-invariant dynamics `dx/dt = A x + B u` with analytical
    Jacobians.
"""

from .system import ControlledSystem
from .linear import LinearSystem
