import threading
import unittest

from tapegrad.domain._errors import UnsupportedOp
from tapegrad.domain._operation import OperationDescriptor
from tapegrad.infrastructure.ops._registry import OperationRegistry, get_registry, register_forward

BUILTIN_KINDS = {
    "add",
    "subtract",
    "multiply",
    "divide",
    "maximum",
    "minimum",
    "negate",
    "exp",
    "log",
    "sqrt",
    "square",
    "abs",
    "tanh",
    "sigmoid",
    "relu",
    "clip",
    "power",
    "sum",
    "mean",
    "max",
    "matmul",
    "reshape",
    "transpose",
    "broadcast_to",
}


class TestOperationRegistry(unittest.TestCase):
    def test_registry_is_a_singleton(self):
        self.assertIs(get_registry(), get_registry())

    def test_registry_is_shared_across_threads(self):
        seen = []

        def worker():
            seen.append(get_registry())

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertTrue(all(r is get_registry() for r in seen))

    def test_builtin_catalogue(self):
        reg = get_registry()
        self.assertEqual(set(reg.kinds()), BUILTIN_KINDS)
        self.assertEqual(len(reg), len(BUILTIN_KINDS))
        self.assertEqual(list(reg), sorted(BUILTIN_KINDS))

    def test_lookup_returns_descriptor(self):
        desc = get_registry().lookup("matmul")
        self.assertIsInstance(desc, OperationDescriptor)
        self.assertEqual(desc.name, "matmul")
        self.assertEqual(desc.arity, 2)

    def test_unknown_kind_raises_unsupported_op(self):
        with self.assertRaises(UnsupportedOp) as cm:
            get_registry().lookup("fft")
        self.assertEqual(cm.exception.op, "fft")

    def test_unhashable_kind_raises_unsupported_op(self):
        with self.assertRaises(UnsupportedOp):
            get_registry().lookup(["add"])  # type: ignore[arg-type]
        self.assertNotIn(["add"], get_registry())

    def test_membership(self):
        self.assertIn("add", get_registry())
        self.assertNotIn("leaf", get_registry())

    def test_registration_after_freeze_fails(self):
        get_registry()
        with self.assertRaises(RuntimeError):
            register_forward("late_op", arity=1, infer_shape=lambda s, a: s[0])

    def test_custom_registry_wraps_mapping(self):
        reg = OperationRegistry({})
        self.assertEqual(len(reg), 0)
        with self.assertRaises(UnsupportedOp):
            reg.lookup("add")


if __name__ == "__main__":
    unittest.main()
