import numpy as np

from integrator import EventSpec, integrate
from muscle import Muscle
from params import KickParams
from skeleton import Skeleton

# excitation is held at its maximum for the whole kick
STIM = 1.0


def ground_contact(t, x):
    """Zero when the leg is fully extended (phi = pi)."""
    return x[0] - np.pi


GROUND_CONTACT = EventSpec(ground_contact, direction=0)


class KickNoTendon:
    """
    Knee extension driven by a muscle attached directly to bone.

    State: [phi, phidot, act]. Fiber length follows the joint angle.
    """

    def __init__(self, params: KickParams):
        self.params = params
        self.muscle = Muscle(params)
        self.skeleton = Skeleton(params)

    def __call__(self, t, x):
        phi, phidot, act = x

        adot = self.muscle.activation_derivative(act, STIM)

        l_ce = self.skeleton.get_muscle_length(phi)
        v_ce = self.skeleton.get_shortening_velocity(phidot)
        f_m = self.muscle.rigid_tendon_force(l_ce, v_ce, act)

        phiddot = self.skeleton.get_angular_acceleration(f_m, phi)
        return np.array([phidot, phiddot, adot])

    def initial_state(self):
        return np.array([np.pi / 2, 0.0, 0.0])

    def fiber_length(self, y):
        return self.skeleton.get_muscle_length(np.asarray(y)[:, 0])

    def activation(self, y):
        return np.asarray(y)[:, 2]

    def muscle_force(self, y):
        """Fiber force (N) at every row of a trajectory's states."""
        y = np.asarray(y)
        v_ce = self.skeleton.get_shortening_velocity(y[:, 1])
        return self.muscle.rigid_tendon_force(self.fiber_length(y), v_ce, y[:, 2])


class KickWithTendon:
    """
    Knee extension driven by a muscle in series with an elastic tendon.

    State: [phi, phidot, l_ce, act]. Fiber length l_ce (m) is a state of
    its own; its rate follows from the force equilibrium between fiber
    and tendon (no pennation, so fiber force equals tendon force).
    """

    def __init__(self, params: KickParams):
        self.params = params
        self.muscle = Muscle(params)
        self.skeleton = Skeleton(params)

    def __call__(self, t, x):
        phi, phidot, l_ce, act = x

        adot = self.muscle.activation_derivative(act, STIM)

        stretch = self.skeleton.get_tendon_stretch(phi, l_ce)
        f_m = self.muscle.tendon_force(stretch)
        l_ce_dot = self.muscle.fiber_velocity(f_m, l_ce, act)

        phiddot = self.skeleton.get_angular_acceleration(f_m, phi)
        return np.array([phidot, phiddot, l_ce_dot, adot])

    def initial_state(self):
        return np.array([np.pi / 2, 0.0, self.params.l_opt, 0.0])

    def fiber_length(self, y):
        return np.asarray(y)[:, 2]

    def activation(self, y):
        return np.asarray(y)[:, 3]

    def muscle_force(self, y):
        """Tendon (= fiber) force (N) at every row of a trajectory's states."""
        y = np.asarray(y)
        stretch = self.skeleton.get_tendon_stretch(y[:, 0], y[:, 2])
        return self.muscle.tendon_force(stretch)


class Simulation:
    def __init__(self, model, t_max=0.5, rtol=1e-6, atol=1e-9, refine=4):
        self.model = model
        self.t_max = t_max
        self.rtol = rtol
        self.atol = atol
        self.refine = refine
        self.trajectory = None

    def run(self, initial_state=None):
        """
        Run the kick from rest until the foot meets the ground, or until
        t_max if it never does.
        """
        if initial_state is None:
            initial_state = self.model.initial_state()

        self.trajectory = integrate(self.model, initial_state, (0.0, self.t_max),
                                    event=GROUND_CONTACT, rtol=self.rtol, atol=self.atol,
                                    refine=self.refine)
        t, y, reason = self.trajectory

        results = {
            'time': t,
            'phi': y[:, 0],
            'phidot': y[:, 1],
            'fiber_length': self.model.fiber_length(y),
            'activation': self.model.activation(y),
            'muscle_force': self.model.muscle_force(y),
            'reason': reason,
            'terminated_by_event': self.trajectory.event_reached,
            'params': self.model.params,
        }
        return results
