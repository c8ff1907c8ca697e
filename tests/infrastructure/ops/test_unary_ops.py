from unittest import TestCase
import unittest
import numpy as np

from tapegrad.domain._errors import NumericalDomainError
from tapegrad.infrastructure._config import EngineConfig
from tapegrad.infrastructure._session import Session


class _SessionMixin:
    def setUp(self):
        self.sess = Session()
        self.rng = np.random.default_rng(7)

    def var(self, arr, requires_grad=True):
        return self.sess.new_variable(np.asarray(arr, dtype=np.float64), requires_grad)

    def value(self, handle):
        return self.sess.value_of(handle).data

    def grad(self, out, x, seed):
        grads = self.sess.backward(out, seed=seed)
        return self.sess.gradient_of(grads, x).data


class TestUnaryForward(_SessionMixin, TestCase):
    def test_forward_matches_numpy(self):
        x_np = self.rng.standard_normal((3, 4))
        x = self.var(x_np)
        cases = {
            "negate": -x_np,
            "exp": np.exp(x_np),
            "square": x_np**2,
            "abs": np.abs(x_np),
            "tanh": np.tanh(x_np),
            "sigmoid": 1 / (1 + np.exp(-x_np)),
            "relu": np.maximum(x_np, 0),
        }
        for kind, expected in cases.items():
            with self.subTest(op=kind):
                out = self.sess.apply(kind, [x])
                self.assertEqual(self.sess.shape_of(out), (3, 4))
                self.assertTrue(np.allclose(self.value(out), expected))

    def test_log_and_sqrt_forward_on_positive_input(self):
        x_np = np.abs(self.rng.standard_normal((5,))) + 0.1
        x = self.var(x_np)
        self.assertTrue(np.allclose(self.value(self.sess.apply("log", [x])), np.log(x_np)))
        self.assertTrue(np.allclose(self.value(self.sess.apply("sqrt", [x])), np.sqrt(x_np)))

    def test_sigmoid_is_stable_for_large_inputs(self):
        x = self.var([-1000.0, 0.0, 1000.0])
        out = self.value(self.sess.apply("sigmoid", [x]))
        self.assertTrue(np.allclose(out, [0.0, 0.5, 1.0]))

    def test_clip_and_power_attributes(self):
        x = self.var([-2.0, -0.2, 0.3, 4.0])
        clipped = self.sess.apply("clip", [x], min=-1.0, max=1.0)
        self.assertTrue(np.allclose(self.value(clipped), [-1.0, -0.2, 0.3, 1.0]))

        cubed = self.sess.apply("power", [x], exponent=3)
        self.assertTrue(np.allclose(self.value(cubed), [-8.0, -0.008, 0.027, 64.0]))

    def test_clip_requires_a_bound_and_ordered_bounds(self):
        x = self.var([1.0])
        with self.assertRaises(TypeError):
            self.sess.apply("clip", [x])
        with self.assertRaises(ValueError):
            self.sess.apply("clip", [x], min=1.0, max=0.0)

    def test_power_requires_exponent(self):
        x = self.var([1.0])
        with self.assertRaises(TypeError):
            self.sess.apply("power", [x])


class TestUnaryDomainGuards(_SessionMixin, TestCase):
    def test_log_of_zero_or_negative_raises_and_creates_no_node(self):
        for bad in ([1.0, 0.0], [2.0, -3.0]):
            with self.subTest(values=bad):
                x = self.var(bad)
                before = len(self.sess)
                with self.assertRaises(NumericalDomainError) as cm:
                    self.sess.apply("log", [x])
                self.assertEqual(cm.exception.op, "log")
                self.assertEqual(len(self.sess), before)

    def test_log_of_nan_raises(self):
        x = self.var([np.nan, 1.0])
        with self.assertRaises(NumericalDomainError):
            self.sess.apply("log", [x])

    def test_sqrt_of_negative_raises(self):
        x = self.var([4.0, -1.0])
        with self.assertRaises(NumericalDomainError):
            self.sess.apply("sqrt", [x])

    def test_sqrt_backward_at_zero_raises(self):
        x = self.var([0.0, 4.0])
        y = self.sess.apply("sum", [self.sess.apply("sqrt", [x])])
        with self.assertRaises(NumericalDomainError):
            self.sess.backward(y)
        self.assertIsNone(self.sess.last_gradients)

    def test_power_domain(self):
        with self.assertRaises(NumericalDomainError):
            self.sess.apply("power", [self.var([-1.0, 4.0])], exponent=0.5)
        with self.assertRaises(NumericalDomainError):
            self.sess.apply("power", [self.var([0.0, 4.0])], exponent=-1)

    def test_exp_overflow_is_reported(self):
        x = self.var([1000.0])
        with self.assertRaises(NumericalDomainError):
            self.sess.apply("exp", [x])

    def test_exp_overflow_allowed_when_finite_check_disabled(self):
        sess = Session(EngineConfig(check_finite=False))
        x = sess.new_variable([1000.0])
        out = sess.apply("exp", [x])
        self.assertTrue(np.isinf(sess.value_of(out).data[0]))


class TestUnaryBackward(_SessionMixin, TestCase):
    def test_closed_form_gradients(self):
        x_np = np.abs(self.rng.standard_normal((4, 3))) + 0.2
        seed = self.rng.standard_normal((4, 3))
        cases = {
            "negate": ({}, -seed),
            "exp": ({}, seed * np.exp(x_np)),
            "log": ({}, seed / x_np),
            "sqrt": ({}, seed / (2 * np.sqrt(x_np))),
            "square": ({}, seed * 2 * x_np),
            "tanh": ({}, seed * (1 - np.tanh(x_np) ** 2)),
            "power": ({"exponent": 2.5}, seed * 2.5 * x_np**1.5),
        }
        for kind, (attrs, expected) in cases.items():
            with self.subTest(op=kind):
                x = self.var(x_np)
                out = self.sess.apply(kind, [x], **attrs)
                self.assertTrue(np.allclose(self.grad(out, x, seed), expected))

    def test_relu_and_clip_masks(self):
        x = self.var([-1.0, 0.5, 2.0])
        seed = np.array([1.0, 2.0, 3.0])

        relu = self.sess.apply("relu", [x])
        self.assertTrue(np.array_equal(self.grad(relu, x, seed), [0.0, 2.0, 3.0]))

        clip = self.sess.apply("clip", [x], min=0.0, max=1.0)
        self.assertTrue(np.array_equal(self.grad(clip, x, seed), [0.0, 2.0, 0.0]))

    def test_power_one_at_zero_has_unit_gradient(self):
        x = self.var([0.0, 2.0])
        out = self.sess.apply("power", [x], exponent=1)
        self.assertTrue(np.allclose(self.grad(out, x, np.ones(2)), [1.0, 1.0]))


if __name__ == "__main__":
    unittest.main()
