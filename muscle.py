import os

import numpy as np
import matplotlib.pyplot as plt

from params import KickParams

# Normalized active force-length curve: peak at L_OPT_REL, zero at L_OPT_REL +/- W.
L_OPT_REL = 1.0
W = 0.5

# Force-velocity shape parameter
A_F = 0.25

# Fitted approximation of the inverse force-velocity curve, valid for
# normalized forces in [0, FV_SATURATION_FORCE].
FVI_C1 = -0.18713
FVI_C2 = 0.32094
FVI_C3 = 1.06485
FVI_C4 = 0.1850
FV_SATURATION_FORCE = 1.4
FV_SATURATION_VELOCITY = -0.15
FV_MAX_SHORTENING = 1.0

# Fiber velocity (m/s) used while the isometric force is zero and the
# force ratio is 0/0, i.e. at the start of a kick when activation is zero.
# Fitted value, kept for compatibility with the reference runs.
FALLBACK_FIBER_VELOCITY = 0.15


def force_length_relationship_CE(l_rel):
    """
    Active force-length curve of the contractile element.

    l_rel is fiber length over optimal fiber length (dimensionless).
    Returns normalized force in [0, 1]; negative values are clamped to 0.
    """
    l_rel = np.asarray(l_rel, dtype=float)
    f_l = 1 - ((l_rel - L_OPT_REL) / (W * L_OPT_REL))**2
    return np.maximum(f_l, 0.0)


def force_length_relationship_PE(l_rel):
    """Passive force-length curve: cubic above optimal length, zero below."""
    l_rel = np.asarray(l_rel, dtype=float)
    f_pe = 8 * (l_rel - 1)**3
    return np.where(l_rel < 1, 0.0, f_pe)[()]


def force_velocity_relationship_CE(v_rel):
    """
    Force-velocity curve. v_rel is shortening velocity over v_max
    (positive = shortening). Force is 1 when isometric and 0 at v_max.
    """
    v_rel = np.asarray(v_rel, dtype=float)
    with np.errstate(divide='ignore', invalid='ignore'):
        f_v = (1 - v_rel) / (1 + v_rel / A_F)
    return np.where(f_v < 0, 0.0, f_v)[()]


def inverse_force_velocity_CE(f_rel):
    """
    Approximate inverse of the force-velocity curve: normalized force in,
    normalized shortening velocity out.

    Saturates outside the fitted domain: forces above 1.4 map to -0.15
    (lengthening), negative forces map to 1 (max shortening).
    """
    f_rel = np.asarray(f_rel, dtype=float)
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        v = -FVI_C1 / np.tan(FVI_C2 * f_rel**2 + FVI_C3 * f_rel + FVI_C4)
    v = np.where(f_rel > FV_SATURATION_FORCE, FV_SATURATION_VELOCITY, v)
    v = np.where(f_rel < 0, FV_MAX_SHORTENING, v)
    return v[()]


class Muscle:
    """
    Hill-type muscle in series with a nonlinear elastic tendon.

    Tendon curves take strain relative to params.l_slack and return
    stress (Pa); multiply by the tendon area to get force. Muscle curves
    use lengths normalized by params.l_opt.
    """

    def __init__(self, params: KickParams):
        self.params = params

    def force_length_relationship_SEE(self, strain):
        """Tendon stress from strain: exponential toe-in up to eps_lin, linear beyond."""
        p = self.params
        eps = np.asarray(strain, dtype=float)
        linear = p.K_se * (eps - p.eps_lin) + p.sigma_lin
        with np.errstate(over='ignore'):
            toe = p.sigma_lin / (np.exp(p.k_sh) - 1) * (np.exp(p.k_sh / p.eps_lin * eps) - 1)
        return np.where(eps > p.eps_lin, linear, toe)[()]

    def inverse_force_length_relationship_SEE(self, stress):
        """Tendon strain from stress; the branch switches at sigma_lin."""
        p = self.params
        sigma = np.asarray(stress, dtype=float)
        linear = (sigma - p.sigma_lin) / p.K_se + p.eps_lin
        with np.errstate(divide='ignore', invalid='ignore'):
            toe = np.log(sigma * (np.exp(p.k_sh) - 1) / p.sigma_lin + 1) * p.eps_lin / p.k_sh
        return np.where(sigma > p.sigma_lin, linear, toe)[()]

    def stiffness_SEE(self, strain):
        """d(stress)/d(strain) of the tendon curve."""
        p = self.params
        eps = np.asarray(strain, dtype=float)
        with np.errstate(over='ignore'):
            toe = p.sigma_lin * p.k_sh / (p.eps_lin * (np.exp(p.k_sh) - 1)) * np.exp(p.k_sh / p.eps_lin * eps)
        return np.where(eps > p.eps_lin, p.K_se, toe)[()]

    def tendon_force(self, stretch):
        """Tendon force (N) from tendon length beyond slack (m)."""
        stretch = np.asarray(stretch, dtype=float)
        return self.force_length_relationship_SEE(stretch / self.params.l_slack) * self.params.A_t

    def activation_derivative(self, act, stim=1.0):
        """First-order activation dynamics with separate (de)activation rates."""
        p = self.params
        return -1 / p.tau_act * (p.beta + (1 - p.beta) * stim) * act + 1 / p.tau_act * stim

    def isometric_force(self, l_ce, act):
        """Force available at fiber length l_ce (m) and activation act (N)."""
        p = self.params
        return p.F_max_iso * force_length_relationship_CE(np.asarray(l_ce) / p.l_opt) * act

    def rigid_tendon_force(self, l_ce, v_ce, act):
        """
        Fiber force for a muscle with no tendon in series.

        l_ce is fiber length (m), v_ce shortening velocity (m/s).
        """
        p = self.params
        return self.isometric_force(l_ce, act) * force_velocity_relationship_CE(np.asarray(v_ce) / p.v_max)

    def fiber_velocity(self, f_m, l_ce, act):
        """
        Rate of change of fiber length (m/s, positive = lengthening) that
        lets the fiber carry force f_m at length l_ce and activation act.
        """
        v_max = self.params.v_max
        f_iso = self.isometric_force(l_ce, act)
        if f_iso <= 0.0:
            # No activation, or fiber outside the force-length width. A
            # loaded fiber saturates the inverse curve; only 0/0 is undefined.
            if f_m > 0:
                return -FV_SATURATION_VELOCITY * v_max
            if f_m < 0:
                return -FV_MAX_SHORTENING * v_max
            return FALLBACK_FIBER_VELOCITY
        return -inverse_force_velocity_CE(f_m / f_iso) * v_max

    def plot_characteristics(self, save_dir=None):
        """
        Plots the force-velocity curve and its inverse, the muscle
        force-length curves and the tendon stress-strain curve.
        """
        p = self.params
        fig, ax = plt.subplots(1, 3, figsize=(16, 5))
        fig.suptitle(f"Muscle Characteristics (F_max={p.F_max_iso:g}N, l_slack={p.slack_ratio:g} l_opt)")

        # 1. Force-velocity and its inverse, both in normalized units
        v_scan = np.linspace(-0.2, 1.0, 200)
        f_scan = np.linspace(-0.1, 1.5, 200)
        ax[0].plot(v_scan, force_velocity_relationship_CE(v_scan), 'r-', lw=2, label='f-v')
        ax[0].plot(inverse_force_velocity_CE(f_scan), f_scan, 'k--', lw=1.5, label='inverse f-v')
        ax[0].axvline(0, color='k', lw=1)
        ax[0].set_title("Force-Velocity Relationship")
        ax[0].set_xlabel("Shortening velocity (v_max)")
        ax[0].set_ylabel("Force (F_max)")
        ax[0].legend()
        ax[0].grid(True)

        # 2. Force-length (CE & PE)
        l_scan = np.linspace(0.4, 1.6, 200)
        fl_ce = force_length_relationship_CE(l_scan)
        fl_pe = force_length_relationship_PE(l_scan)
        ax[1].plot(l_scan, fl_ce, 'b--', label='Active (CE)')
        ax[1].plot(l_scan, fl_pe, 'g--', label='Passive (PE)')
        ax[1].plot(l_scan, fl_ce + fl_pe, 'k-', lw=2, label='Total Isometric')
        ax[1].axvline(L_OPT_REL, color='r', alpha=0.3, label='L_opt')
        ax[1].set_ylim([0, 1.6])
        ax[1].set_title("Force-Length Relationship")
        ax[1].set_xlabel("Fiber Length (l_opt)")
        ax[1].legend()
        ax[1].grid(True)

        # 3. Tendon stress-strain
        strain_scan = np.linspace(0, 3 * p.eps_lin, 200)
        ax[2].plot(strain_scan, self.force_length_relationship_SEE(strain_scan) / 1e6, 'm-', lw=2)
        ax[2].axvline(p.eps_lin, color='r', alpha=0.3, label='toe-in / linear')
        ax[2].set_title("Tendon Stress-Strain (SEE)")
        ax[2].set_xlabel("Strain (l_slack)")
        ax[2].set_ylabel("Stress (MPa)")
        ax[2].legend()
        ax[2].grid(True)

        plt.tight_layout()

        if save_dir:
            save_path = os.path.join(save_dir, 'muscle_characteristics.png')
            plt.savefig(save_path, dpi=300, bbox_inches='tight')
            print(f"Saved muscle characteristics plot to {save_path}")
            plt.close(fig)
        else:
            plt.show()
            plt.close(fig)
