"""
Concrete tensor value (NumPy backend).

`TensorValue` is the dense array stored on every graph node. It wraps a
NumPy ndarray that is made read-only on construction, so a value attached to
a node can be shared freely (including across threads) without copies or
locks.

Design notes
------------
- The wrapped array is always C-contiguous and owned by the value: inputs
  are copied on construction, and `to_numpy` hands out writable copies.
- Ragged or non-numeric input is rejected with `ShapeMismatch`, since a
  malformed initial value has no well-defined shape.
"""

from __future__ import annotations

from typing import Any, Optional, Union

import numpy as np

from ...domain._errors import ShapeMismatch

Number = Union[int, float]


class TensorValue:
    """
    Immutable dense numeric array.

    Parameters
    ----------
    data : np.ndarray
        Source array. It is copied into a fresh, read-only, C-contiguous
        buffer of dtype `dtype`.
    dtype : Optional[np.dtype], optional
        Element type. Defaults to the source array's dtype.

    Notes
    -----
    Use `TensorValue.from_data` to build values from nested Python
    sequences; the constructor expects an ndarray.
    """

    __slots__ = ("_data",)

    def __init__(self, data: np.ndarray, dtype: Optional[np.dtype] = None) -> None:
        arr = np.array(data, dtype=dtype, copy=True, order="C")
        arr.setflags(write=False)
        self._data = arr

    def __repr__(self) -> str:
        return (
            f"TensorValue(shape={self.shape}, dtype={self.dtype}, "
            f"data={np.array2string(self._data, threshold=8)})"
        )

    @property
    def shape(self) -> tuple[int, ...]:
        """
        Return the value's shape.
        """
        return tuple(int(d) for d in self._data.shape)

    @property
    def strides(self) -> tuple[int, ...]:
        """
        Return the byte strides of the underlying buffer.
        """
        return tuple(int(s) for s in self._data.strides)

    @property
    def dtype(self) -> np.dtype:
        """
        Return the element type.
        """
        return self._data.dtype

    @property
    def ndim(self) -> int:
        return self._data.ndim

    @property
    def data(self) -> np.ndarray:
        """
        Return the read-only backing array.

        Kernels read from this view directly; attempting to write to it
        raises ``ValueError`` from NumPy.
        """
        return self._data

    def numel(self) -> int:
        """
        Return the total number of elements.
        """
        return int(self._data.size)

    def item(self) -> float:
        """
        Return the single element of a one-element value as a Python float.

        Raises
        ------
        ValueError
            If the value holds more than one element.
        """
        if self._data.size != 1:
            raise ValueError(
                f"item() requires a single-element value, got shape {self.shape}"
            )
        return float(self._data.reshape(()))

    def to_numpy(self) -> np.ndarray:
        """
        Return a writable copy of the value.
        """
        return self._data.copy()

    def __array__(self, dtype=None, copy=None) -> np.ndarray:
        """
        Support ``np.asarray``/``np.array``.

        Without a copy request the read-only buffer itself is returned.
        ``copy=True`` yields a writable private array; ``copy=False`` raises
        if a dtype conversion would be needed.
        """
        if dtype is None or np.dtype(dtype) == self._data.dtype:
            return self._data.copy() if copy else self._data
        if copy is False:
            raise ValueError(
                f"cannot convert {self._data.dtype} to {np.dtype(dtype)} without a copy"
            )
        return self._data.astype(dtype)

    @classmethod
    def from_data(cls, value: Any, dtype: Any = np.float64) -> "TensorValue":
        """
        Build a value from an array-like, converting to `dtype`.

        Parameters
        ----------
        value : Any
            Scalar, nested sequence, ndarray or another `TensorValue`.
        dtype : Any, optional
            Target floating element type. Defaults to float64.

        Returns
        -------
        TensorValue
            A new immutable value.

        Raises
        ------
        ShapeMismatch
            If `value` is ragged or cannot be converted to a numeric array.
        """
        if isinstance(value, TensorValue):
            return cls(value.data, dtype=dtype)
        try:
            raw = np.asarray(value)
        except (ValueError, TypeError) as err:
            raise ShapeMismatch(
                "new_variable", (), detail=f"malformed initial value: {err}"
            ) from err
        if raw.dtype.kind not in "biuf":
            raise ShapeMismatch(
                "new_variable",
                (raw.shape,),
                detail=f"initial value must be numeric, got dtype {raw.dtype}",
            )
        return cls(raw, dtype=dtype)

    @classmethod
    def zeros(cls, shape: tuple[int, ...], dtype: Any = np.float64) -> "TensorValue":
        return cls(np.zeros(shape, dtype=dtype))

    @classmethod
    def ones(cls, shape: tuple[int, ...], dtype: Any = np.float64) -> "TensorValue":
        return cls(np.ones(shape, dtype=dtype))

    @classmethod
    def full(
        cls, shape: tuple[int, ...], fill: Number, dtype: Any = np.float64
    ) -> "TensorValue":
        """
        Return a value of `shape` with every element equal to `fill`.
        """
        return cls(np.full(shape, fill, dtype=dtype))
