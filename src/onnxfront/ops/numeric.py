"""Closed-form numeric operators.

Every function here is a pure numpy expression over its inputs. Reductions take
keyword options validated by `ReduceOptions`; `lrn` takes `LRNOptions`.
"""

from __future__ import annotations

import numpy as np

from onnxfront.ir.tensor import normalize_axis

from .options import InvalidConfigError, LRNOptions, ReduceOptions
from .slicing import InvalidRangeError


def hardswish(x: np.ndarray) -> np.ndarray:
    return x * np.clip(x / 6 + 0.5, 0, 1)


def reciprocal(x: np.ndarray) -> np.ndarray:
    return 1 / x


def identity(x: np.ndarray) -> np.ndarray:
    return x


def _sum(x: np.ndarray, opts: dict) -> np.ndarray:
    o = ReduceOptions.from_opts(opts)
    return np.sum(x, axis=o.axes, keepdims=o.keep_axes)


def logsum(x: np.ndarray, **opts) -> np.ndarray:
    return np.log(_sum(x, opts))


def logsumexp(x: np.ndarray, **opts) -> np.ndarray:
    return np.log(_sum(np.exp(x), opts))


def sumsquare(x: np.ndarray, **opts) -> np.ndarray:
    return _sum(np.power(x, 2), opts)


def l1_norm(x: np.ndarray, **opts) -> np.ndarray:
    return _sum(np.abs(x), opts)


def l2_norm(x: np.ndarray, **opts) -> np.ndarray:
    # Squared sum; callers that need the true norm take the square root.
    return _sum(np.power(x, 2), opts)


def lrn(x: np.ndarray, **opts) -> np.ndarray:
    """Local response normalization.

    The squared sum runs over the leading axes ``0..size-1`` with dimensions
    kept, then ``x / (bias + alpha / size * sum) ** beta``.
    """

    o = LRNOptions.from_opts(opts)
    if o.size > x.ndim:
        raise InvalidConfigError(f"LRN size {o.size} exceeds input rank {x.ndim}")
    axes = tuple(range(o.size))
    sum_squares = np.sum(np.power(x, 2), axis=axes, keepdims=True)
    denom = np.power(o.bias + o.alpha / o.size * sum_squares, o.beta)
    return x / denom


def mean(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    return (x + y) / 2


REDUCTIONS = {
    "logsum": logsum,
    "logsumexp": logsumexp,
    "sumsquare": sumsquare,
    "l1_norm": l1_norm,
    "l2_norm": l2_norm,
}

ELEMENTWISE = {
    "hardswish": hardswish,
    "reciprocal": reciprocal,
    "identity": identity,
}


def reduced_shape(shape: tuple[int, ...], **opts) -> tuple[int, ...]:
    """Shape left after a reduction with the given options.

    Raises:
        InvalidRangeError: If an axis lies outside ``[-rank, rank)``.
        InvalidConfigError: If two axes name the same dimension.
    """

    o = ReduceOptions.from_opts(opts)
    rank = len(shape)
    if o.axes is None:
        axes = set(range(rank))
    else:
        resolved = [normalize_axis(a, rank) for a in o.axes]
        bad = [a for a, r in zip(o.axes, resolved) if not 0 <= r < rank]
        if bad:
            raise InvalidRangeError(f"reduce axes {bad} out of range for rank {rank}")
        axes = set(resolved)
        if len(axes) != len(resolved):
            raise InvalidConfigError(f"duplicate reduce axes {list(o.axes)} for rank {rank}")
    if o.keep_axes:
        return tuple(1 if i in axes else d for i, d in enumerate(shape))
    return tuple(d for i, d in enumerate(shape) if i not in axes)
