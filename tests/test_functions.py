"""
test_functions.py
~~~~~~~~~~~~~~~~~

Unit tests for the activation, output error and regularization catalogs.
"""

import math

import pytest

from neuralnet.exceptions import ConfigurationError, DimensionMismatchError
from neuralnet.functions import (
    ActivationType,
    OutputErrorType,
    RegularizationType,
    ACTIVATIONS,
    OUTPUT_ERRORS,
    REGULARIZATIONS,
    get_activation,
    get_output_error,
    get_regularization,
    output_error
)


@pytest.mark.unit
class TestActivations:
    """Test the activation functions and their derivatives."""

    def test_catalog_is_complete(self):
        """Test that every activation type has an entry."""
        assert set(ACTIVATIONS) == set(ActivationType)

    @pytest.mark.parametrize("x", [-2.0, -0.5, 0.0, 0.3, 1.7])
    def test_tanh(self, x):
        """Test tanh output and derivative against the math module."""
        tanh = ACTIVATIONS[ActivationType.TANH]
        assert tanh.output(x) == pytest.approx(math.tanh(x))
        assert tanh.der(x) == pytest.approx(1 - math.tanh(x) ** 2)

    def test_tanh_saturates(self):
        """Test that tanh saturates to +/-1 for extreme inputs."""
        tanh = ACTIVATIONS[ActivationType.TANH]
        assert tanh.output(1e6) == 1.0
        assert tanh.output(-1e6) == -1.0
        assert tanh.der(1e6) == 0.0

    def test_relu(self):
        """Test ReLU output and its derivative at and around zero."""
        relu = ACTIVATIONS[ActivationType.RELU]
        assert relu.output(-3.0) == 0.0
        assert relu.output(2.5) == 2.5
        assert relu.der(0.0) == 0.0
        assert relu.der(-1.0) == 0.0
        assert relu.der(0.1) == 1.0

    def test_sigmoid(self):
        """Test sigmoid output and derivative at zero."""
        sigmoid = ACTIVATIONS[ActivationType.SIGMOID]
        assert sigmoid.output(0.0) == pytest.approx(0.5)
        assert sigmoid.der(0.0) == pytest.approx(0.25)
        assert sigmoid.output(2.0) == pytest.approx(1 / (1 + math.exp(-2.0)))

    def test_sigmoid_extremes_do_not_overflow(self):
        """Test that sigmoid is finite for very large magnitudes."""
        sigmoid = ACTIVATIONS[ActivationType.SIGMOID]
        assert sigmoid.output(-1000.0) == pytest.approx(0.0)
        assert sigmoid.output(1000.0) == pytest.approx(1.0)
        assert sigmoid.der(-1000.0) == pytest.approx(0.0)

    def test_linear(self):
        """Test that linear is the identity with derivative 1."""
        linear = ACTIVATIONS[ActivationType.LINEAR]
        assert linear.output(-4.2) == -4.2
        assert linear.der(123.0) == 1.0

    def test_lookup_by_name(self):
        """Test that activations can be looked up by value or name."""
        assert get_activation("ReLU") is ACTIVATIONS[ActivationType.RELU]
        assert get_activation("tanh") is ACTIVATIONS[ActivationType.TANH]
        assert get_activation(ActivationType.LINEAR) is ACTIVATIONS[ActivationType.LINEAR]

    def test_unknown_name_raises(self):
        """Test that an unknown activation name is a configuration error."""
        with pytest.raises(ConfigurationError):
            get_activation("softplus")


@pytest.mark.unit
class TestOutputErrors:
    """Test the output error functions."""

    def test_square_error(self):
        """Test the half sum of squares."""
        square = OUTPUT_ERRORS[OutputErrorType.SQUARE]
        assert square.error([1.0, 2.0], [0.0, 0.0]) == pytest.approx(2.5)
        assert square.der(3.0, 1.0, 2) == pytest.approx(2.0)

    def test_mean_square_error(self):
        """Test the mean of squares and its length-aware derivative."""
        mean_square = OUTPUT_ERRORS[OutputErrorType.MEAN_SQUARE]
        assert mean_square.error([1.0, 3.0], [0.0, 0.0]) == pytest.approx(5.0)
        assert mean_square.der(3.0, 1.0, 4) == pytest.approx(1.0)

    def test_zero_error_when_output_matches(self):
        """Test that matching outputs give zero error and derivative."""
        for kind in OutputErrorType:
            fn = get_output_error(kind)
            assert fn.error([0.2, -0.7], [0.2, -0.7]) == 0.0
            assert fn.der(0.2, 0.2, 2) == 0.0

    def test_output_error_helper(self):
        """Test the aggregate helper with a named error function."""
        assert output_error([4.0], [2.0], "Square sum") == pytest.approx(2.0)
        assert output_error([4.0], [2.0], "mean_square") == pytest.approx(4.0)

    def test_output_error_length_mismatch(self):
        """Test that vectors of different length are rejected."""
        with pytest.raises(DimensionMismatchError):
            output_error([1.0, 2.0], [1.0])


@pytest.mark.unit
class TestRegularizations:
    """Test the regularization penalties."""

    def test_l1(self):
        """Test L1 penalty and sign derivative."""
        l1 = REGULARIZATIONS[RegularizationType.L1]
        assert l1.output(-0.3) == pytest.approx(0.3)
        assert l1.der(-0.3) == -1.0
        assert l1.der(0.3) == 1.0
        assert l1.der(0.0) == 0.0

    def test_l2(self):
        """Test L2 penalty and derivative."""
        l2 = REGULARIZATIONS[RegularizationType.L2]
        assert l2.output(0.4) == pytest.approx(0.08)
        assert l2.der(-0.4) == pytest.approx(-0.4)

    def test_none_means_no_regularization(self):
        """Test that a missing regularization resolves to None."""
        assert get_regularization(None) is None
        assert get_regularization("none") is None
        assert get_regularization("L2") is REGULARIZATIONS[RegularizationType.L2]
