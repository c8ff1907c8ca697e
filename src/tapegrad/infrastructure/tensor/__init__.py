from ._tensor_value import TensorValue
from ._broadcast import broadcast_shapes, sum_to_shape

__all__ = ["TensorValue", "broadcast_shapes", "sum_to_shape"]
