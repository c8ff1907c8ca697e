import unittest
from dataclasses import FrozenInstanceError

from tapegrad.domain._operation import OperationDescriptor
from tapegrad.domain.utils._registry_builder import create_registry_builder


def _same(shapes, attrs):
    return shapes[0]


def _identity_forward(inputs, attrs):
    return inputs[0]


def _identity_backward(inputs, output, grad_output, attrs):
    return (grad_output,)


class TestRegistryBuilder(unittest.TestCase):
    def _builder_with_identity(self):
        builder = create_registry_builder()
        builder.register_forward("identity", arity=1, infer_shape=_same)(
            _identity_forward
        )
        builder.register_backward("identity")(_identity_backward)
        return builder

    def test_freeze_pairs_halves_into_descriptor(self):
        catalogue = self._builder_with_identity().freeze()

        self.assertIn("identity", catalogue)
        desc = catalogue["identity"]
        self.assertIsInstance(desc, OperationDescriptor)
        self.assertEqual(desc.name, "identity")
        self.assertEqual(desc.arity, 1)
        self.assertIs(desc.forward, _identity_forward)
        self.assertIs(desc.backward, _identity_backward)
        self.assertIs(desc.infer_shape, _same)

    def test_decorators_return_function_unchanged(self):
        builder = create_registry_builder()

        @builder.register_forward("twice", arity=1, infer_shape=_same)
        def fwd(inputs, attrs):
            return inputs[0] * 2

        self.assertEqual(fwd([3], {}), 6)

    def test_freeze_is_idempotent(self):
        builder = self._builder_with_identity()
        self.assertIs(builder.freeze(), builder.freeze())

    def test_catalogue_is_read_only(self):
        catalogue = self._builder_with_identity().freeze()
        with self.assertRaises(TypeError):
            catalogue["other"] = None  # type: ignore[index]

    def test_descriptor_is_frozen(self):
        desc = self._builder_with_identity().freeze()["identity"]
        with self.assertRaises(FrozenInstanceError):
            desc.arity = 2  # type: ignore[misc]

    def test_register_after_freeze_raises(self):
        builder = self._builder_with_identity()
        builder.freeze()
        with self.assertRaises(RuntimeError):
            builder.register_forward("late", arity=1, infer_shape=_same)
        with self.assertRaises(RuntimeError):
            builder.register_backward("late")

    def test_duplicate_registration_raises(self):
        builder = self._builder_with_identity()
        with self.assertRaises(RuntimeError):
            builder.register_forward("identity", arity=1, infer_shape=_same)
        with self.assertRaises(RuntimeError):
            builder.register_backward("identity")

    def test_unpaired_kind_cannot_be_frozen(self):
        builder = create_registry_builder()
        builder.register_forward("half", arity=1, infer_shape=_same)(
            _identity_forward
        )
        with self.assertRaises(RuntimeError):
            builder.freeze()

    def test_kind_must_be_non_empty_str(self):
        builder = create_registry_builder()
        with self.assertRaises(TypeError):
            builder.register_forward(3, arity=1, infer_shape=_same)  # type: ignore[arg-type]
        with self.assertRaises(TypeError):
            builder.register_backward("")

    def test_builders_do_not_share_state(self):
        first = self._builder_with_identity()
        second = create_registry_builder()
        self.assertEqual(len(second.freeze()), 0)
        self.assertEqual(len(first.freeze()), 1)


if __name__ == "__main__":
    unittest.main()
