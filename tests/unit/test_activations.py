import numpy as np
import pytest

from parkinet.core.activations import Activation, relu_derivative, sigmoid, softmax


def test_relu_derivative_is_zero_at_zero():
    assert np.array_equal(relu_derivative(np.array([-1.0, 0.0, 2.0])), [0.0, 0.0, 1.0])


@pytest.mark.parametrize("activation", [Activation.SIGMOID, Activation.TANH, Activation.LINEAR])
def test_derivative_matches_finite_difference(activation):
    x = np.linspace(-3.0, 3.0, 13)
    eps = 1e-6
    numeric = (activation.activate(x + eps) - activation.activate(x - eps)) / (2 * eps)
    assert np.allclose(activation.derivative(x), numeric, atol=1e-6)


def test_relu_derivative_away_from_kink():
    x = np.array([-2.0, -0.5, 0.5, 2.0])
    eps = 1e-6
    numeric = (Activation.RELU.activate(x + eps) - Activation.RELU.activate(x - eps)) / (2 * eps)
    assert np.allclose(Activation.RELU.derivative(x), numeric)


def test_sigmoid_is_stable_for_large_inputs():
    with np.errstate(over="raise", invalid="raise"):
        out = sigmoid(np.array([-1000.0, 0.0, 1000.0]))
    assert np.allclose(out, [0.0, 0.5, 1.0])


def test_softmax_sums_to_one_with_large_logits():
    out = softmax(np.array([1000.0, 1001.0, 1002.0]))
    assert np.isfinite(out).all()
    assert out.sum() == pytest.approx(1.0)
    assert np.argmax(out) == 2


def test_softmax_derivative_uses_elementwise_approximation():
    x = np.array([0.2, -0.4, 1.0])
    s = softmax(x)
    assert np.allclose(Activation.SOFTMAX.derivative(x), s * (1 - s))


def test_activation_lookup():
    assert Activation.get("ReLU") is Activation.RELU
    assert Activation.get("identity") is Activation.LINEAR
    assert Activation.get(Activation.TANH) is Activation.TANH
    with pytest.raises(KeyError, match="Available activations"):
        Activation.get("swish")


@pytest.mark.parametrize("activation", list(Activation))
def test_zero_vector_is_finite(activation):
    x = np.zeros(3)
    out = activation.activate(x)
    grad = activation.derivative(x)
    assert np.isfinite(out).all()
    assert np.isfinite(grad).all()


def test_derivative_ranges_over_wide_inputs():
    x = np.linspace(-1000.0, 1000.0, 2001)
    sig = Activation.SIGMOID.derivative(x)
    tanh = Activation.TANH.derivative(x)
    assert np.all((sig >= 0.0) & (sig <= 0.25))
    assert np.all((tanh >= 0.0) & (tanh <= 1.0))
    assert sig[1000] == pytest.approx(0.25)
    assert tanh[1000] == pytest.approx(1.0)
