"""Tests for the nonlinear reservoir engine.

Tests cover outlet velocity laws, the ordered outlet drain in respond(),
overflow reporting, and construction validation.
"""

import math

import pytest

from tshirt import ConfigurationError, ExponentialOutlet, NonlinearReservoir, ReservoirOutlet


@pytest.fixture
def linear_outlet() -> ReservoirOutlet:
    return ReservoirOutlet(coefficient=0.01, exponent=1.0, activation_threshold=0.0, max_velocity=1.0)


class TestReservoirOutlet:
    """Tests for outlet velocity laws."""

    def test_closed_at_threshold(self) -> None:
        outlet = ReservoirOutlet(0.01, 1.0, 0.5, 1.0)

        assert outlet.velocity(0.5, 1.0) == 0.0
        assert outlet.velocity(0.4, 1.0) == 0.0

    def test_linear_law_on_relative_fill(self) -> None:
        """Velocity scales with fill relative to the span above threshold."""
        outlet = ReservoirOutlet(0.01, 1.0, 0.5, 1.0)

        assert outlet.velocity(0.75, 1.0) == pytest.approx(0.005)

    def test_power_law_exponent(self) -> None:
        outlet = ReservoirOutlet(0.02, 2.0, 0.0, 1.0)

        assert outlet.velocity(0.5, 1.0) == pytest.approx(0.02 * 0.25)

    def test_velocity_capped(self) -> None:
        outlet = ReservoirOutlet(10.0, 1.0, 0.0, 0.001)

        assert outlet.velocity(0.9, 1.0) == 0.001

    def test_exponential_law(self) -> None:
        outlet = ExponentialOutlet(0.01, 2.0, 0.0, 1.0)

        assert outlet.velocity(0.5, 1.0) == pytest.approx(0.01 * (math.e - 1.0))

    def test_exponential_reaches_cap_at_max_storage(self) -> None:
        """A cap of c * (e^k - 1) is exactly the law's value at full storage."""
        outlet = ExponentialOutlet(0.01, 5.0, 0.0, 0.01 * (math.exp(5.0) - 1.0))

        assert outlet.velocity(1.0, 1.0) == pytest.approx(outlet.max_velocity)

    @pytest.mark.parametrize("field", ["coefficient", "exponent", "activation_threshold", "max_velocity"])
    def test_rejects_negative_fields(self, field: str) -> None:
        values = {"coefficient": 0.01, "exponent": 1.0, "activation_threshold": 0.0, "max_velocity": 1.0}
        values[field] = -1.0

        with pytest.raises(ConfigurationError, match=field):
            ReservoirOutlet(**values)

    def test_is_frozen(self, linear_outlet: ReservoirOutlet) -> None:
        with pytest.raises(AttributeError):
            linear_outlet.coefficient = 1.0  # type: ignore[misc]


class TestNonlinearReservoirConstruction:
    """Tests for NonlinearReservoir validation."""

    def test_rejects_min_not_below_max(self, linear_outlet: ReservoirOutlet) -> None:
        with pytest.raises(ConfigurationError, match="min < max"):
            NonlinearReservoir(1.0, 1.0, 1.0, [linear_outlet])

    def test_rejects_initial_storage_outside_bounds(self, linear_outlet: ReservoirOutlet) -> None:
        with pytest.raises(ConfigurationError, match="outside reservoir bounds"):
            NonlinearReservoir(0.0, 1.0, 1.5, [linear_outlet])

    def test_rejects_threshold_at_max(self) -> None:
        outlet = ReservoirOutlet(0.01, 1.0, 1.0, 1.0)

        with pytest.raises(ConfigurationError, match="activation threshold"):
            NonlinearReservoir(0.0, 1.0, 0.0, [outlet])

    def test_storage_setter_is_bounds_checked(self, linear_outlet: ReservoirOutlet) -> None:
        reservoir = NonlinearReservoir(0.0, 1.0, 0.5, [linear_outlet])

        reservoir.storage = 0.25
        assert reservoir.storage == 0.25

        with pytest.raises(ConfigurationError):
            reservoir.storage = -0.1
        with pytest.raises(ConfigurationError):
            reservoir.storage = float("nan")

    def test_exposes_configuration(self, linear_outlet: ReservoirOutlet) -> None:
        reservoir = NonlinearReservoir(0.0, 2.0, 0.5, [linear_outlet, linear_outlet])

        assert reservoir.min_storage == 0.0
        assert reservoir.max_storage == 2.0
        assert len(reservoir.outlets) == 2


class TestNonlinearReservoirRespond:
    """Tests for NonlinearReservoir.respond()."""

    def test_single_outlet_drain(self, linear_outlet: ReservoirOutlet) -> None:
        reservoir = NonlinearReservoir(0.0, 1.0, 0.5, [linear_outlet])

        velocity, excess = reservoir.respond(0.0, 10.0)

        assert velocity == pytest.approx(0.005)
        assert excess == 0.0
        assert reservoir.storage == pytest.approx(0.45)
        assert reservoir.velocity_for_outlet(0) == pytest.approx(0.005)

    def test_outlet_cannot_drain_below_minimum(self) -> None:
        """An outlet that would overdraw is cut back to what storage holds."""
        outlet = ReservoirOutlet(1.0, 1.0, 0.0, 10.0)
        reservoir = NonlinearReservoir(0.0, 1.0, 0.5, [outlet])

        velocity, _ = reservoir.respond(0.0, 10.0)

        assert velocity == pytest.approx(0.05)
        assert reservoir.storage == 0.0

    def test_first_outlet_has_priority(self) -> None:
        """Outlets drain in order, each on the storage the previous one left."""
        greedy = ReservoirOutlet(1.0, 1.0, 0.0, 10.0)
        second = ReservoirOutlet(1.0, 1.0, 0.0, 10.0)
        reservoir = NonlinearReservoir(0.0, 1.0, 0.5, [greedy, second])

        reservoir.respond(0.0, 10.0)

        assert reservoir.velocity_for_outlet(0) == pytest.approx(0.05)
        assert reservoir.velocity_for_outlet(1) == 0.0

    def test_overflow_reported_as_excess(self) -> None:
        closed = ReservoirOutlet(0.0, 1.0, 0.0, 0.0)
        reservoir = NonlinearReservoir(0.0, 1.0, 0.9, [closed])

        velocity, excess = reservoir.respond(1e-3, 1000.0)

        assert velocity == 0.0
        assert excess == pytest.approx(0.9)
        assert reservoir.storage == 1.0

    def test_water_conserved(self) -> None:
        outlets = [ReservoirOutlet(0.002, 1.0, 0.2, 0.001), ReservoirOutlet(0.001, 1.5, 0.1, 0.01)]
        reservoir = NonlinearReservoir(0.0, 1.0, 0.6, outlets)
        dt = 600.0
        inflow = 2e-4

        velocity, excess = reservoir.respond(inflow, dt)

        assert 0.6 + inflow * dt == pytest.approx(reservoir.storage + velocity * dt + excess)

    def test_rejects_non_positive_dt(self, linear_outlet: ReservoirOutlet) -> None:
        reservoir = NonlinearReservoir(0.0, 1.0, 0.5, [linear_outlet])

        with pytest.raises(ValueError, match="dt must be positive"):
            reservoir.respond(0.0, 0.0)

    def test_rejects_negative_input(self, linear_outlet: ReservoirOutlet) -> None:
        reservoir = NonlinearReservoir(0.0, 1.0, 0.5, [linear_outlet])

        with pytest.raises(ValueError, match="non-negative"):
            reservoir.respond(-1.0, 10.0)
