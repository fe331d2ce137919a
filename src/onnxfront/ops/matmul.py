"""Axis roles for NumPy-style matmul across operand ranks.

`resolve` only decides which axes are contracted and which are batch axes.
Whether the operand shapes actually agree on those axes is checked separately
(`check_shapes`), before the contraction runs.
"""

from __future__ import annotations

import string
from typing import NamedTuple

import numpy as np

from onnxfront.ir.tensor import Shape


class MatmulAxes(NamedTuple):
    contract_a: list[int]
    batch_a: list[int]
    contract_b: list[int]
    batch_b: list[int]


def resolve(shape_a: Shape, shape_b: Shape) -> MatmulAxes:
    ra, rb = len(shape_a), len(shape_b)

    if ra == 0 or rb == 0:
        return MatmulAxes([], [], [], [])
    if ra == 1 and rb == 1:
        return MatmulAxes([0], [], [0], [])
    if ra == 2 and rb == 2:
        return MatmulAxes([1], [], [0], [])

    # Leading axes of the higher-rank operand are batch axes on both sides.
    batch = list(range(max(ra, rb) - 2))
    contract_b = rb - 2 if rb >= 2 else 0
    return MatmulAxes([ra - 1], batch, [contract_b], list(batch))


def _free_axes(rank: int, *used: list[int]) -> list[int]:
    taken = {a for axes in used for a in axes}
    return [a for a in range(rank) if a not in taken]


def _own_batch(rank: int, batch: list[int]) -> list[int]:
    # A lower-rank operand only has the trailing batch axes; a vector has none.
    return [i for i in batch if i < rank - 2]


def _batch_pairs(ba: list[int], bb: list[int]) -> list[tuple[int, int]]:
    n = min(len(ba), len(bb))
    return list(zip(ba[len(ba) - n :], bb[len(bb) - n :]))


def matmul_shape(shape_a: Shape, shape_b: Shape, axes: MatmulAxes | None = None) -> Shape:
    """Output shape: batch dims, then free dims of `a`, then free dims of `b`.

    Batch sizes are read from the higher-rank operand.
    """

    if axes is None:
        axes = resolve(shape_a, shape_b)
    ba = _own_batch(len(shape_a), axes.batch_a)
    bb = _own_batch(len(shape_b), axes.batch_b)
    if len(ba) >= len(bb):
        out = [shape_a[i] for i in ba]
    else:
        out = [shape_b[i] for i in bb]
    out += [shape_a[i] for i in _free_axes(len(shape_a), axes.contract_a, ba)]
    out += [shape_b[i] for i in _free_axes(len(shape_b), axes.contract_b, bb)]
    return tuple(out)


def check_shapes(shape_a: Shape, shape_b: Shape, axes: MatmulAxes) -> None:
    """Check that `shape_a` and `shape_b` agree on every paired axis.

    Raises:
        ValueError: If an axis is out of range, or a contracted or batch axis
            differs in size between the operands.
    """

    ba = _own_batch(len(shape_a), axes.batch_a)
    bb = _own_batch(len(shape_b), axes.batch_b)
    for side, shape, contract in (("a", shape_a, axes.contract_a), ("b", shape_b, axes.contract_b)):
        if any(not 0 <= i < len(shape) for i in contract):
            raise ValueError(f"matmul axes {axes} do not fit operand {side} of shape {tuple(shape)}")
    for role, pairs in (("contracted", zip(axes.contract_a, axes.contract_b)), ("batch", _batch_pairs(ba, bb))):
        for ia, ib in pairs:
            if shape_a[ia] != shape_b[ib]:
                raise ValueError(
                    f"{role} axes disagree: {tuple(shape_a)} axis {ia} vs {tuple(shape_b)} axis {ib}"
                )


def batched_dot(a: np.ndarray, b: np.ndarray, axes: MatmulAxes) -> np.ndarray:
    """Contract `a` with `b` over the given axis roles.

    Batch axes the lower-rank operand lacks are carried through from the other
    operand, as numpy's matmul does.

    Raises:
        ValueError: If the shapes do not fit the axes (see `check_shapes`).
    """

    check_shapes(a.shape, b.shape, axes)
    ba = _own_batch(a.ndim, axes.batch_a)
    bb = _own_batch(b.ndim, axes.batch_b)

    letters = iter(string.ascii_letters)
    sub_a = [next(letters) for _ in range(a.ndim)]
    sub_b = [""] * b.ndim
    for ia, ib in _batch_pairs(ba, bb):
        sub_b[ib] = sub_a[ia]
    for ia, ib in zip(axes.contract_a, axes.contract_b):
        sub_b[ib] = sub_a[ia]
    for i, s in enumerate(sub_b):
        if not s:
            sub_b[i] = next(letters)

    if len(ba) >= len(bb):
        out = [sub_a[i] for i in ba]
    else:
        out = [sub_b[i] for i in bb]
    out += [sub_a[i] for i in _free_axes(a.ndim, axes.contract_a, ba)]
    out += [sub_b[i] for i in _free_axes(b.ndim, axes.contract_b, bb)]
    spec = f"{''.join(sub_a)},{''.join(sub_b)}->{''.join(out)}"
    return np.einsum(spec, a, b)
