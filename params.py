from dataclasses import dataclass, replace


@dataclass(frozen=True)
class KickParams:
    """
    Physical constants of the knee-extension (kick) model.

    All lengths are absolute, in meters. Normalized muscle quantities
    (fiber length over optimal length) never live here, see muscle.py.

    A run binds one instance for its whole duration. Vary the tendon slack
    length with with_slack_ratio(), which returns a new snapshot.
    """
    # lower leg
    inertia: float = 0.1832     # moment of inertia about the knee (kg m^2)
    mass: float = 4.88          # (kg)
    g: float = 9.81
    r_cm: float = 0.264         # joint to center of mass (m)

    # muscle
    l_opt: float = 0.09         # optimal fiber length (m)
    F_max_iso: float = 12000.0  # max isometric force (N)
    v_max: float = 0.45         # max shortening velocity, about 5 l_opt/s (m/s)
    r_f: float = 0.033          # quadriceps moment arm about the knee (m)
    tau_act: float = 0.010      # activation time constant (s)
    beta: float = 0.2           # activation / deactivation rate ratio

    # tendon
    eps_lin: float = 0.02       # strain where the linear region starts
    sigma_lin: float = 16e6     # stress where the linear region starts (Pa)
    K_se: float = 1.2e9         # linear modulus (Pa)
    A_t: float = 0.000324       # cross-sectional area (m^2)
    k_sh: float = 0.874         # toe-in shape parameter
    l_slack: float = 0.09       # slack length (m)

    def __post_init__(self):
        positive = ('inertia', 'mass', 'r_cm', 'l_opt', 'F_max_iso', 'v_max', 'r_f',
                    'tau_act', 'eps_lin', 'sigma_lin', 'K_se', 'A_t', 'k_sh', 'l_slack')
        for name in positive:
            if not getattr(self, name) > 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)!r}")
        if not 0 < self.beta <= 1:
            raise ValueError(f"beta must be in (0, 1], got {self.beta!r}")

    @property
    def slack_ratio(self) -> float:
        return self.l_slack / self.l_opt

    def with_slack_ratio(self, ratio: float) -> "KickParams":
        """Copy of these parameters with l_slack = ratio * l_opt."""
        return replace(self, l_slack=ratio * self.l_opt)
