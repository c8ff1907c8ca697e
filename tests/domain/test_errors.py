import unittest

from tapegrad.domain._errors import (
    EngineError,
    GraphIntegrityError,
    NumericalDomainError,
    ShapeMismatch,
    UnsupportedOp,
)
from tapegrad.domain._node import LEAF, Node, NodeHandle


class TestEngineErrors(unittest.TestCase):
    def test_all_errors_share_engine_base(self):
        for err in (
            ShapeMismatch("add", [(2,), (3,)]),
            UnsupportedOp("nope"),
            NumericalDomainError("log", "non-positive"),
            GraphIntegrityError("bad handle"),
        ):
            with self.subTest(err=type(err).__name__):
                self.assertIsInstance(err, EngineError)
                self.assertIsInstance(err, RuntimeError)

    def test_shape_mismatch_carries_op_and_shapes(self):
        err = ShapeMismatch("matmul", [(2, 3), [4, 5]], detail="inner dims")

        self.assertIsInstance(err, ValueError)
        self.assertEqual(err.op, "matmul")
        self.assertEqual(err.shapes, ((2, 3), (4, 5)))
        self.assertIn("matmul", str(err))
        self.assertIn("inner dims", str(err))

    def test_unsupported_op_is_lookup_error(self):
        err = UnsupportedOp("conv9d")
        self.assertIsInstance(err, LookupError)
        self.assertEqual(err.op, "conv9d")
        self.assertIn("conv9d", str(err))

    def test_numerical_domain_error_is_arithmetic_error(self):
        err = NumericalDomainError("sqrt", "negative input")
        self.assertIsInstance(err, ArithmeticError)
        self.assertEqual(err.op, "sqrt")
        self.assertEqual(err.reason, "negative input")


class TestNodeRecords(unittest.TestCase):
    def test_handles_compare_by_value(self):
        self.assertEqual(NodeHandle(1, 2), NodeHandle(1, 2))
        self.assertNotEqual(NodeHandle(1, 2), NodeHandle(2, 2))
        self.assertEqual(len({NodeHandle(1, 2), NodeHandle(1, 2)}), 1)

    def test_node_is_frozen(self):
        class _Value:
            shape = (2,)

        node = Node(node_id=0, op_kind=LEAF, inputs=(), value=_Value(), requires_grad=True)
        self.assertTrue(node.is_leaf)
        self.assertEqual(node.shape, (2,))
        with self.assertRaises(Exception):
            node.inputs = (1,)  # type: ignore[misc]


if __name__ == "__main__":
    unittest.main()
