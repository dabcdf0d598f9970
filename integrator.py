import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, NamedTuple, Optional

import numpy as np
from scipy.integrate import RK45
from scipy.optimize import brentq

logger = logging.getLogger(__name__)

EPS = np.finfo(float).eps


class IntegrationError(RuntimeError):
    """The solver could not advance the solution."""


class TerminationReason(Enum):
    EVENT = 'event'
    HORIZON = 'horizon'


@dataclass(frozen=True)
class EventSpec:
    """
    Scalar event function g(t, y) that stops the run at its first zero.

    direction: 0 stops on any crossing, +1 only when g rises through zero,
    -1 only when it falls through zero.
    """
    function: Callable[[float, np.ndarray], float]
    direction: int = 0


class Trajectory(NamedTuple):
    t: np.ndarray
    y: np.ndarray   # (n_points, n_states)
    reason: TerminationReason

    @property
    def event_reached(self) -> bool:
        return self.reason is TerminationReason.EVENT

    @property
    def final_state(self) -> np.ndarray:
        return self.y[-1]


def _crossed(g_old, g_new, direction):
    if direction >= 0 and g_old < 0 <= g_new:
        return True
    if direction <= 0 and g_old > 0 >= g_new:
        return True
    return False


def _interior_points(interpolant, t_old, t_new, refine, t_stop=None):
    """Evenly spaced output points strictly inside (t_old, t_new), cut at t_stop."""
    ts = t_old + (t_new - t_old) * np.arange(1, refine) / refine
    if t_stop is not None:
        ts = ts[ts < t_stop]
    return [(t, interpolant(t)) for t in ts]


def integrate(model: Callable, y0, t_span, event: Optional[EventSpec] = None,
              rtol: float = 1e-3, atol: float = 1e-6, max_step: float = np.inf,
              refine: int = 4) -> Trajectory:
    """
    Integrate dy/dt = model(t, y) with adaptive Dormand-Prince RK4(5) steps.

    After every accepted step the event function is checked at the step
    end. On a sign change the crossing is located on the step's dense
    output with Brent's method and the trajectory is cut there.

    Parameters
    ----------
    model : callable
        model(t, y) -> dy/dt, y a 1-D array.
    y0 : array_like
        Initial state.
    t_span : (float, float)
        Start time and horizon.
    event : EventSpec, optional
        Terminating event. Without one the run always ends at the horizon.
    rtol, atol : float
        Solver tolerances.
    max_step : float
        Upper bound on the step size.
    refine : int
        Number of output intervals per solver step; refine - 1 interpolated
        points are added inside every step.

    Returns
    -------
    Trajectory
        (t, y, reason) with read-only arrays.

    Raises
    ------
    IntegrationError
        If the step size underflows or the state becomes non-finite.
    """
    t0, t_end = float(t_span[0]), float(t_span[1])
    if not t_end > t0:
        raise ValueError(f"t_span must be increasing, got {t_span!r}")
    y0 = np.asarray(y0, dtype=float)
    if y0.ndim != 1 or y0.size == 0:
        raise ValueError(f"y0 must be a non-empty 1-D array, got shape {y0.shape}")
    if refine < 1:
        raise ValueError(f"refine must be >= 1, got {refine!r}")

    solver = RK45(model, t0, y0, t_end, rtol=rtol, atol=atol, max_step=max_step)
    points = [(t0, y0.copy())]
    g_old = event.function(t0, y0) if event is not None else None

    while solver.status == 'running':
        message = solver.step()
        if solver.status == 'failed':
            raise IntegrationError(f"integration failed at t={solver.t:.6g}: {message}")
        if not np.all(np.isfinite(solver.y)):
            raise IntegrationError(f"state became non-finite at t={solver.t:.6g}")

        t_old, t_new = solver.t_old, solver.t
        interpolant = solver.dense_output() if refine > 1 or event is not None else None

        if event is not None:
            g_new = event.function(t_new, solver.y)
            if _crossed(g_old, g_new, event.direction):
                if g_new == 0:
                    t_ev, y_ev = t_new, solver.y.copy()
                else:
                    t_ev = brentq(lambda t: event.function(t, interpolant(t)),
                                  t_old, t_new, xtol=4 * EPS, rtol=4 * EPS)
                    y_ev = interpolant(t_ev)
                logger.debug("event located in step [%.6g, %.6g] at t=%.9g", t_old, t_new, t_ev)
                points.extend(_interior_points(interpolant, t_old, t_new, refine, t_stop=t_ev))
                points.append((t_ev, y_ev))
                logger.info("event reached at t=%.6g after %d evaluations", t_ev, solver.nfev)
                return _to_trajectory(points, TerminationReason.EVENT)
            g_old = g_new

        if refine > 1:
            points.extend(_interior_points(interpolant, t_old, t_new, refine))
        points.append((t_new, solver.y.copy()))

    if event is not None:
        logger.warning("no event before the horizon t=%.6g", t_end)
    else:
        logger.info("reached horizon t=%.6g after %d evaluations", t_end, solver.nfev)
    return _to_trajectory(points, TerminationReason.HORIZON)


def _to_trajectory(points, reason):
    t = np.array([p[0] for p in points])
    y = np.vstack([p[1] for p in points])
    t.setflags(write=False)
    y.setflags(write=False)
    return Trajectory(t, y, reason)
