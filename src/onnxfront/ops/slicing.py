"""Multi-axis strided slicing with ONNX index semantics.

A slice is described per axis by a `SliceSpec` of (start, stop, axis, stride).
Specs are normalized once against the shape of the value being sliced:

1. a negative start wraps by the axis size, then clamps to ``[0, dim]`` for a
   positive stride or ``[0, dim - 1]`` for a negative one;
2. a negative stop wraps the same way, then clamps to ``[0, dim]`` or
   ``[-1, dim - 1]``. With a negative stride a stop of exactly -1 is kept as
   "one before index 0", so ``start=n-1, stop=-1, stride=-1`` reverses an axis.

A range that runs against its stride selects nothing: the axis becomes empty.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence

import numpy as np

from onnxfront.ir.errors import TranslationError
from onnxfront.ir.tensor import Shape, normalize_axis

from .options import InvalidConfigError


class InvalidRangeError(TranslationError):
    """Raised for a zero stride or an axis outside the operand's rank."""

    pass


def _clamp(val: int, lo: int, hi: int) -> int:
    return min(max(lo, val), hi)


@dataclass(frozen=True, slots=True)
class SliceSpec:
    start: int
    stop: int
    axis: int
    stride: int = 1

    def __post_init__(self) -> None:
        if self.stride == 0:
            raise InvalidRangeError(f"slice stride must be non-zero (axis {self.axis})")

    def normalize(self, shape: Shape) -> "SliceSpec":
        rank = len(shape)
        axis = normalize_axis(self.axis, rank)
        if not 0 <= axis < rank:
            raise InvalidRangeError(f"slice axis {self.axis} out of range for rank {rank}")
        dim = shape[axis]

        start = self.start + dim if self.start < 0 else self.start
        stop = self.stop
        if stop < 0 and not (self.stride < 0 and stop == -1):
            stop += dim

        if self.stride < 0:
            start = _clamp(start, 0, dim - 1)
            stop = _clamp(stop, -1, dim - 1)
        else:
            start = _clamp(start, 0, dim)
            stop = _clamp(stop, 0, dim)

        return replace(self, start=start, stop=stop, axis=axis)

    @property
    def length(self) -> int:
        return self.stop - self.start

    @property
    def count(self) -> int:
        """Number of selected elements. Only meaningful once normalized."""
        return max(-(-self.length // self.stride), 0)

    def as_slice(self) -> slice:
        if self.count == 0:
            return slice(0, 0)
        # numpy reads -1 as the last element; None runs through index 0.
        stop = None if self.stop < 0 else self.stop
        return slice(self.start, stop, self.stride)


def build_specs(
    starts: Sequence[int],
    ends: Sequence[int],
    axes: Sequence[int] | None = None,
    steps: Sequence[int] | None = None,
) -> list[SliceSpec]:
    """Zip per-axis slice attributes into specs.

    `axes` defaults to ``0..len(starts)-1`` and `steps` to all ones.
    """

    n = len(starts)
    if axes is None:
        axes = range(n)
    if steps is None:
        steps = [1] * n
    lengths = {len(starts), len(ends), len(axes), len(steps)}
    if len(lengths) != 1:
        raise InvalidConfigError(
            f"slice starts/ends/axes/steps must have equal lengths, got "
            f"{len(starts)}/{len(ends)}/{len(axes)}/{len(steps)}"
        )
    return [SliceSpec(int(s), int(e), int(a), int(t)) for s, e, a, t in zip(starts, ends, axes, steps)]


def normalize_specs(shape: Shape, specs: Sequence[SliceSpec]) -> list[SliceSpec]:
    return [spec.normalize(shape) for spec in specs]


def slice_shape(shape: Shape, specs: Sequence[SliceSpec]) -> Shape:
    """Output shape of slicing a value of `shape`, without touching data."""

    out = list(shape)
    for spec in normalize_specs(shape, specs):
        out[spec.axis] = spec.count
    return tuple(out)


def apply_slice(x: np.ndarray, specs: Sequence[SliceSpec]) -> np.ndarray:
    """Apply `specs` to `x` one axis at a time, left to right.

    Every spec is normalized against the shape of `x` as given.
    """

    acc = x
    for spec in normalize_specs(x.shape, specs):
        index = [slice(None)] * acc.ndim
        index[spec.axis] = spec.as_slice()
        acc = acc[tuple(index)]
    return acc


def slice_array(
    x: np.ndarray,
    starts: Sequence[int],
    ends: Sequence[int],
    axes: Sequence[int] | None = None,
    steps: Sequence[int] | None = None,
) -> np.ndarray:
    return apply_slice(x, build_specs(starts, ends, axes, steps))
