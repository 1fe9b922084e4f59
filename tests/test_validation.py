"""Tests for input validation module."""

import numpy as np
import pytest

from nbody_forces import PointMass
from nbody_forces.validation import (
    InvalidBodyCountError,
    InvalidBodyError,
    InvalidParameterError,
    InvalidThetaError,
    ValidationError,
    validate_body_count,
    validate_mass,
    validate_point_masses,
    validate_positive,
    validate_positive_int,
    validate_theta,
    validate_vector,
)


class TestVectorValidation:
    """Tests for 3-vector validation."""

    def test_valid_tuple(self):
        """Tuples become float64 arrays."""
        vector = validate_vector((1, 2, 3), "position")
        assert vector.dtype == np.float64
        np.testing.assert_array_equal(vector, [1.0, 2.0, 3.0])

    def test_returns_copy(self):
        """The input array is not aliased."""
        source = np.array([1.0, 2.0, 3.0])
        vector = validate_vector(source)
        vector[0] = 99.0
        assert source[0] == 1.0

    def test_wrong_length_raises(self):
        """Two components is not a 3-vector."""
        with pytest.raises(InvalidBodyError, match="shape"):
            validate_vector([1.0, 2.0], "position")

    def test_non_numeric_raises(self):
        """Strings are rejected."""
        with pytest.raises(InvalidBodyError, match="position"):
            validate_vector(["a", "b", "c"], "position")

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), -float("inf")])
    def test_non_finite_raises(self, bad):
        """NaN and infinite components are rejected."""
        with pytest.raises(InvalidBodyError, match="finite"):
            validate_vector([0.0, bad, 0.0], "velocity")


class TestMassValidation:
    """Tests for mass validation."""

    def test_valid_mass(self):
        """Positive mass is returned as float."""
        assert validate_mass(3) == 3.0

    @pytest.mark.parametrize("mass", [0, -2.5, float("nan"), float("inf")])
    def test_invalid_mass_raises(self, mass):
        """Zero, negative and non-finite masses raise InvalidBodyError."""
        with pytest.raises(InvalidBodyError):
            validate_mass(mass)

    def test_non_numeric_raises(self):
        """Non-numeric mass raises InvalidBodyError."""
        with pytest.raises(InvalidBodyError, match="number"):
            validate_mass("heavy")


class TestBodyCountValidation:
    """Tests for body count validation."""

    def test_one_body_is_valid(self):
        """A single body is enough."""
        assert validate_body_count(1) == 1

    def test_zero_bodies_raises(self):
        """No bodies raises InvalidBodyCountError."""
        with pytest.raises(InvalidBodyCountError, match=">= 1"):
            validate_body_count(0)


class TestThetaValidation:
    """Tests for Barnes-Hut theta validation."""

    @pytest.mark.parametrize("theta", [0, 0.5, 1.5, 10])
    def test_valid_theta(self, theta):
        """Non-negative finite theta is accepted."""
        assert validate_theta(theta) == float(theta)

    @pytest.mark.parametrize("theta", [-0.01, float("nan"), float("inf")])
    def test_invalid_theta_raises(self, theta):
        """Negative or non-finite theta raises InvalidThetaError."""
        with pytest.raises(InvalidThetaError, match="barnes_hut_theta"):
            validate_theta(theta)


class TestParameterValidation:
    """Tests for numeric parameter validation."""

    def test_positive(self):
        """Positive values pass through as float."""
        assert validate_positive(2, "padding") == 2.0

    def test_zero_rejected_by_default(self):
        """Zero is not positive."""
        with pytest.raises(InvalidParameterError, match="padding must be positive"):
            validate_positive(0, "padding")

    def test_zero_allowed(self):
        """allow_zero accepts zero but not negatives."""
        assert validate_positive(0, "max_speed", allow_zero=True) == 0.0
        with pytest.raises(InvalidParameterError, match=">= 0"):
            validate_positive(-1, "max_speed", allow_zero=True)

    def test_non_finite_rejected(self):
        """Infinity is rejected."""
        with pytest.raises(InvalidParameterError, match="finite"):
            validate_positive(float("inf"), "gravitational_constant")

    def test_positive_int(self):
        """Integers >= 1 pass, numpy integers included."""
        assert validate_positive_int(4, "chunk_divisor") == 4
        assert validate_positive_int(np.int64(2), "chunk_divisor") == 2

    @pytest.mark.parametrize("value", [0, -3, 2.5, True, "4"])
    def test_positive_int_rejects(self, value):
        """Zero, negatives, floats, bools and strings are rejected."""
        with pytest.raises(InvalidParameterError):
            validate_positive_int(value, "max_workers")


class TestPointMassValidation:
    """Tests for snapshot validation."""

    def test_valid_snapshot(self):
        """A list of point masses returns its length."""
        points = [PointMass((0, 0, 0), 1.0), PointMass((1, 0, 0), 2.0)]
        assert validate_point_masses(points) == 2

    def test_empty_snapshot_raises(self):
        """An empty snapshot raises InvalidBodyCountError."""
        with pytest.raises(InvalidBodyCountError):
            validate_point_masses([])

    def test_missing_attribute_raises(self):
        """Objects without a velocity are rejected with their index."""

        class Partial:
            position = (0.0, 0.0, 0.0)
            mass = 1.0

        with pytest.raises(InvalidBodyError, match="Body 0: missing attribute 'velocity'"):
            validate_point_masses([Partial()])


class TestValidationErrorHierarchy:
    """Tests for exception hierarchy."""

    def test_all_inherit_from_validation_error(self):
        """All custom errors inherit from ValidationError."""
        assert issubclass(InvalidBodyError, ValidationError)
        assert issubclass(InvalidBodyCountError, ValidationError)
        assert issubclass(InvalidThetaError, ValidationError)
        assert issubclass(InvalidParameterError, ValidationError)

    def test_validation_error_is_value_error(self):
        """ValidationError inherits from ValueError."""
        assert issubclass(ValidationError, ValueError)

    def test_can_catch_all_with_validation_error(self):
        """All validation errors can be caught with ValidationError."""
        with pytest.raises(ValidationError):
            validate_body_count(0)
        with pytest.raises(ValidationError):
            validate_theta(-1)
