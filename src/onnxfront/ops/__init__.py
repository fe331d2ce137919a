from .matmul import MatmulAxes, batched_dot, check_shapes, matmul_shape, resolve
from .numeric import (
    hardswish,
    identity,
    l1_norm,
    l2_norm,
    logsum,
    logsumexp,
    lrn,
    mean,
    reduced_shape,
    reciprocal,
    sumsquare,
)
from .options import InvalidConfigError, LRNOptions, ReduceOptions
from .slicing import (
    InvalidRangeError,
    SliceSpec,
    apply_slice,
    build_specs,
    slice_array,
    slice_shape,
)

__all__ = [
    # matmul.py
    "MatmulAxes",
    "resolve",
    "matmul_shape",
    "batched_dot",
    "check_shapes",
    # numeric.py
    "hardswish",
    "reciprocal",
    "identity",
    "logsum",
    "logsumexp",
    "sumsquare",
    "l1_norm",
    "l2_norm",
    "lrn",
    "mean",
    "reduced_shape",
    # options.py
    "ReduceOptions",
    "LRNOptions",
    "InvalidConfigError",
    # slicing.py
    "SliceSpec",
    "InvalidRangeError",
    "build_specs",
    "slice_shape",
    "apply_slice",
    "slice_array",
]
