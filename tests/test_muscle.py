"""Tests for the muscle and tendon curves and the muscle state equations."""

import numpy as np
import pytest

from muscle import (
    FALLBACK_FIBER_VELOCITY,
    Muscle,
    force_length_relationship_CE,
    force_length_relationship_PE,
    force_velocity_relationship_CE,
    inverse_force_velocity_CE,
)


@pytest.fixture
def muscle(params):
    return Muscle(params)


class TestForceLengthCE:

    def test_peak_at_optimal_length(self):
        assert force_length_relationship_CE(1.0) == pytest.approx(1.0)

    def test_zero_at_curve_width(self):
        assert force_length_relationship_CE(0.5) == pytest.approx(0.0, abs=1e-12)
        assert force_length_relationship_CE(1.5) == pytest.approx(0.0, abs=1e-12)

    def test_never_negative(self):
        forces = force_length_relationship_CE(np.linspace(-1.0, 3.0, 101))
        assert np.all(forces >= 0)

    def test_elementwise_same_shape(self):
        lengths = np.array([[0.75, 1.0], [1.25, 2.0]])
        forces = force_length_relationship_CE(lengths)
        assert forces.shape == lengths.shape
        np.testing.assert_allclose(forces, [[0.75, 1.0], [0.75, 0.0]])

    def test_scalar_in_scalar_out(self):
        assert np.ndim(force_length_relationship_CE(0.9)) == 0

    def test_input_not_modified(self):
        lengths = np.array([0.2, 1.0, 1.8])
        force_length_relationship_CE(lengths)
        np.testing.assert_array_equal(lengths, [0.2, 1.0, 1.8])


class TestForceLengthPE:

    def test_zero_below_optimal(self):
        forces = force_length_relationship_PE(np.linspace(0.3, 1.0, 20))
        assert np.all(forces == 0)

    def test_cubic_above_optimal(self):
        assert force_length_relationship_PE(1.5) == pytest.approx(1.0)
        assert force_length_relationship_PE(1.25) == pytest.approx(8 * 0.25**3)


class TestForceVelocity:

    def test_isometric(self):
        assert force_velocity_relationship_CE(0.0) == pytest.approx(1.0)

    def test_no_force_at_max_shortening(self):
        assert force_velocity_relationship_CE(1.0) == pytest.approx(0.0, abs=1e-12)
        assert force_velocity_relationship_CE(0.999) < 1e-3

    def test_never_negative(self):
        forces = force_velocity_relationship_CE(np.linspace(-1.0, 2.0, 301))
        assert np.all(forces >= 0)

    def test_decreases_with_shortening_velocity(self):
        forces = force_velocity_relationship_CE(np.linspace(0.0, 1.0, 50))
        assert np.all(np.diff(forces) < 0)


class TestInverseForceVelocity:

    def test_saturates_above_fitted_range(self):
        assert inverse_force_velocity_CE(1.5) == -0.15
        assert inverse_force_velocity_CE(100.0) == -0.15

    def test_saturates_below_zero(self):
        assert inverse_force_velocity_CE(-0.1) == 1.0

    def test_reference_points(self):
        # isometric force gives zero velocity, zero force gives about v_max
        assert inverse_force_velocity_CE(1.0) == pytest.approx(0.0, abs=1e-3)
        assert inverse_force_velocity_CE(0.0) == pytest.approx(1.0, abs=1e-3)

    def test_approximates_force_velocity_inverse(self):
        forces = np.array([0.25, 0.5])
        recovered = force_velocity_relationship_CE(inverse_force_velocity_CE(forces))
        np.testing.assert_allclose(recovered, forces, atol=0.05)

    def test_monotonic_in_fitted_range(self):
        v = inverse_force_velocity_CE(np.linspace(0.0, 1.4, 100))
        assert np.all(np.diff(v) < 0)

    def test_vector_with_saturated_entries(self):
        v = inverse_force_velocity_CE(np.array([-0.5, 1.0, 2.0]))
        assert v.shape == (3,)
        assert v[0] == 1.0
        assert v[2] == -0.15
        assert np.isfinite(v[1])


class TestTendon:

    def test_zero_stress_at_slack(self, muscle):
        assert muscle.force_length_relationship_SEE(0.0) == pytest.approx(0.0, abs=1e-6)

    def test_continuous_at_linear_boundary(self, muscle, params):
        assert muscle.force_length_relationship_SEE(params.eps_lin) == pytest.approx(params.sigma_lin)
        above = muscle.force_length_relationship_SEE(params.eps_lin + 1e-12)
        assert above == pytest.approx(params.sigma_lin, rel=1e-6)

    def test_linear_region(self, muscle, params):
        stress = muscle.force_length_relationship_SEE(0.05)
        assert stress == pytest.approx(params.K_se * (0.05 - params.eps_lin) + params.sigma_lin)

    def test_round_trip_toe_in(self, muscle, params):
        strain = np.linspace(0.001, 0.019, 25)
        recovered = muscle.inverse_force_length_relationship_SEE(muscle.force_length_relationship_SEE(strain))
        np.testing.assert_allclose(recovered, strain, rtol=1e-9)

    def test_round_trip_linear(self, muscle):
        strain = np.linspace(0.021, 0.08, 25)
        recovered = muscle.inverse_force_length_relationship_SEE(muscle.force_length_relationship_SEE(strain))
        np.testing.assert_allclose(recovered, strain, rtol=1e-9)

    def test_stiffness_linear_region(self, muscle, params):
        assert muscle.stiffness_SEE(0.03) == pytest.approx(params.K_se)

    def test_stiffness_matches_finite_difference(self, muscle):
        strain, h = 0.01, 1e-7
        numeric = (muscle.force_length_relationship_SEE(strain + h)
                   - muscle.force_length_relationship_SEE(strain - h)) / (2 * h)
        assert muscle.stiffness_SEE(strain) == pytest.approx(numeric, rel=1e-5)

    def test_stiffness_vectorized(self, muscle, params):
        k = muscle.stiffness_SEE(np.array([0.005, 0.05]))
        assert k.shape == (2,)
        assert k[1] == params.K_se
        assert 0 < k[0] < params.K_se

    def test_force_uses_own_slack_length(self, params):
        short = Muscle(params.with_slack_ratio(1))
        long = Muscle(params.with_slack_ratio(10))
        # the same stretch is a ten times smaller strain on the longer tendon
        assert short.tendon_force(0.001) > long.tendon_force(0.001)
        assert long.tendon_force(0.001) == pytest.approx(
            long.force_length_relationship_SEE(0.001 / (10 * params.l_opt)) * params.A_t)


class TestActivation:

    def test_rate_from_rest(self, muscle, params):
        assert muscle.activation_derivative(0.0, 1.0) == pytest.approx(1 / params.tau_act)

    def test_equilibrium_at_full_activation(self, muscle):
        assert muscle.activation_derivative(1.0, 1.0) == pytest.approx(0.0)

    def test_deactivation_is_slower(self, muscle, params):
        assert muscle.activation_derivative(1.0, 0.0) == pytest.approx(-params.beta / params.tau_act)


class TestFiberVelocity:

    def test_fallback_at_zero_activation(self, muscle, params):
        assert muscle.fiber_velocity(0.0, params.l_opt, 0.0) == FALLBACK_FIBER_VELOCITY

    def test_fallback_outside_force_length_width_unloaded(self, muscle, params):
        assert muscle.fiber_velocity(0.0, 0.3 * params.l_opt, 1.0) == FALLBACK_FIBER_VELOCITY

    def test_loaded_fiber_without_isometric_force_lengthens(self, muscle, params):
        v = muscle.fiber_velocity(100.0, 0.3 * params.l_opt, 1.0)
        assert v == pytest.approx(0.15 * params.v_max)
        assert muscle.fiber_velocity(100.0, params.l_opt, 0.0) == pytest.approx(0.15 * params.v_max)

    def test_pushed_fiber_without_isometric_force_shortens(self, muscle, params):
        v = muscle.fiber_velocity(-10.0, 0.45 * params.l_opt, 1.0)
        assert v == pytest.approx(-params.v_max)

    def test_isometric_when_force_matches(self, muscle, params):
        f_iso = muscle.isometric_force(params.l_opt, 0.5)
        assert muscle.fiber_velocity(f_iso, params.l_opt, 0.5) == pytest.approx(0.0, abs=1e-3 * params.v_max)

    def test_unloaded_fiber_shortens_near_v_max(self, muscle, params):
        assert muscle.fiber_velocity(0.0, params.l_opt, 1.0) == pytest.approx(-params.v_max, rel=1e-3)

    def test_overloaded_fiber_lengthens(self, muscle, params):
        v = muscle.fiber_velocity(2 * params.F_max_iso, params.l_opt, 1.0)
        assert v == pytest.approx(0.15 * params.v_max)

    def test_rigid_tendon_force(self, muscle, params):
        assert muscle.rigid_tendon_force(params.l_opt, 0.0, 1.0) == pytest.approx(params.F_max_iso)
        assert muscle.rigid_tendon_force(params.l_opt, params.v_max, 1.0) == pytest.approx(0.0, abs=1e-9)


class TestPlotCharacteristics:

    def test_saves_figure(self, muscle, tmp_path):
        muscle.plot_characteristics(save_dir=str(tmp_path))
        assert (tmp_path / 'muscle_characteristics.png').exists()
