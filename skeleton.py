import numpy as np

from params import KickParams


class Skeleton:
    """
    Lower leg rotating about the knee.

    phi is the knee angle: pi/2 with the shank hanging down, pi when the
    leg is fully extended and the foot meets the ground.
    """

    def __init__(self, params: KickParams):
        self.params = params

    def gravitational_moment(self, phi):
        p = self.params
        return -p.mass * p.g * p.r_cm * np.sin(phi - np.pi / 2)

    def get_muscle_length(self, phi):
        """Fiber length (m) with no tendon in series; equals l_opt at phi = pi/2."""
        p = self.params
        return p.r_f * (np.pi / 2 - phi) + p.l_opt

    def get_muscle_tendon_length(self, phi):
        # fiber at optimal length and tendon at slack length when phi = pi/2
        p = self.params
        return p.r_f * (np.pi / 2 - phi) + p.l_slack + p.l_opt

    def get_tendon_stretch(self, phi, l_ce):
        """Tendon length beyond slack (m) given the fiber length l_ce (m)."""
        return self.get_muscle_tendon_length(phi) - l_ce - self.params.l_slack

    def get_shortening_velocity(self, phidot):
        return self.params.r_f * phidot

    def get_angular_acceleration(self, f_m, phi):
        p = self.params
        return (f_m * p.r_f + self.gravitational_moment(phi)) / p.inertia
