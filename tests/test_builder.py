"""GraphBuilder tests.

Covers:
1. Slice dispatch: constant folding, deferred nodes, parameter slices
2. Numeric operators through the builder
3. Layer helpers: trainable binary, matmul, gather, cast
4. Parameter store consistency
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from onnxfront import (
    BuilderConfig,
    Constant,
    GraphBuilder,
    GraphRef,
    InvalidConfigError,
    IRValidationError,
    InvalidRangeError,
    UnsupportedTypeError,
    Weight,
)
from onnxfront.ir import dtypes
from onnxfront.ops.slicing import slice_array


# =============================================================================
# 1. Slice dispatch
# =============================================================================


class TestSliceLayer:
    """Slicing folds constants, defers graph values and binds weights."""

    def test_constant_is_folded(self):
        b = GraphBuilder()
        value = np.arange(12, dtype=np.float32).reshape(3, 4)
        c = b.constant("c", value)

        out = b.slice_layer(c, [1, -1], [3, 0], [0, 1], [1, -1], "s")

        assert isinstance(out, Constant)
        node = b.graph["s"]
        assert node.op == "constant"
        assert node.fn is None
        assert_array_equal(node.value, slice_array(value, [1, -1], [3, 0], [0, 1], [1, -1]))
        assert node.shape == (2, 3)

    def test_constant_looked_up_by_name_is_folded(self):
        b = GraphBuilder()
        b.constant("c", np.arange(5))
        out = b.slice_layer(b.operand("c"), [4], [-1], [0], [-1], "rev")
        assert isinstance(out, Constant)
        assert_array_equal(b.graph["rev"].value, [4, 3, 2, 1, 0])

    def test_graph_value_is_deferred(self):
        b = GraphBuilder()
        x = b.input("x", (2, 6))

        out = b.slice_layer(x, [0], [6], [-1], [2], "s")

        assert isinstance(out, GraphRef)
        node = b.graph["s"]
        assert node.op == "slice"
        assert node.inputs == ["x"]
        assert node.shape == (2, 3)
        data = np.arange(12).reshape(2, 6)
        assert_array_equal(node.fn(data, {}), data[:, ::2])

    def test_weight_becomes_parameter_slice(self):
        b = GraphBuilder()
        w = np.arange(10, dtype=np.float32).reshape(2, 5)

        out = b.slice_layer(Weight("w", w), [1], [4], [1], [1], "ws")

        node = out.node
        assert node.op == "slice"
        assert node.inputs == []
        assert node.params["kernel"].shape == (2, 5)
        assert node.params["kernel"].dtype == dtypes.float32
        assert node.shape == (2, 3)
        assert b.params["ws"]["kernel"] is w
        assert "w" not in b.graph
        assert_array_equal(node.fn(b.params["ws"]), w[:, 1:4])

    def test_no_folding_when_disabled(self):
        b = GraphBuilder(config=BuilderConfig(fold_constants=False))
        c = b.constant("c", np.arange(4))
        out = b.slice_layer(c, [1], [3], None, None, "s")
        assert isinstance(out, GraphRef)
        assert b.graph["s"].inputs == ["c"]

    def test_bad_axis_leaves_graph_untouched(self):
        b = GraphBuilder()
        x = b.input("x", (3,))
        with pytest.raises(ValueError):
            b.slice_layer(x, [0], [1], [1], [1], "s")
        assert "s" not in b.graph


# =============================================================================
# 2. Numeric operators
# =============================================================================


class TestUnary:
    def test_constant_input_is_folded(self):
        b = GraphBuilder()
        c = b.constant("c", np.array([-3.0, 0.0, 3.0]))
        out = b.unary("hardswish", c, "hs")
        assert isinstance(out, Constant)
        assert_allclose(b.graph["hs"].value, [0.0, 0.0, 3.0])

    def test_reduction_is_deferred_with_inferred_shape(self):
        b = GraphBuilder()
        x = b.input("x", (2, 3, 4))
        out = b.unary("l1_norm", x, "n", axes=[1], keep_axes=True)
        assert out.shape == (2, 1, 4)
        data = -np.ones((2, 3, 4))
        assert_allclose(out.node.fn(data, {}), np.full((2, 1, 4), 3.0))
        assert out.node.attrs == {"axes": [1], "keep_axes": True}

    def test_lrn_node(self):
        b = GraphBuilder()
        x = b.input("x", (1, 4, 1, 1))
        out = b.unary("lrn", x, "lrn", size=2, alpha=1.0, beta=1.0, bias=1.0)
        data = np.array([1.0, 2.0, 3.0, 4.0]).reshape(1, 4, 1, 1)
        assert_allclose(out.node.fn(data, {}), data / 16.0)

    def test_invalid_options_fail_before_insertion(self):
        b = GraphBuilder()
        x = b.input("x", (2, 2))
        with pytest.raises(InvalidConfigError):
            b.unary("sumsquare", x, "bad", keepdims=True)
        with pytest.raises(InvalidConfigError):
            b.unary("lrn", x, "bad", size=3)
        with pytest.raises(InvalidConfigError):
            b.unary("reciprocal", x, "bad", axes=[0])
        with pytest.raises(InvalidConfigError):
            b.unary("softplus", x, "bad")
        assert "bad" not in b.graph

    def test_reduce_axes_outside_rank_fail_before_insertion(self):
        b = GraphBuilder()
        x = b.input("x", (2, 3))
        with pytest.raises(InvalidRangeError):
            b.unary("sumsquare", x, "r", axes=[5])
        with pytest.raises(InvalidConfigError):
            b.unary("sumsquare", x, "r", axes=[0, -2])
        assert "r" not in b.graph

    def test_integer_inputs_declare_float_results(self):
        b = GraphBuilder()
        x = b.input("x", (2, 3), dtype=dtypes.int64)
        y = b.input("y", (3,), dtype=dtypes.int32)
        assert b.unary("reciprocal", x, "r").node.dtype == dtypes.float64
        assert b.unary("logsum", x, "ls", axes=[1]).node.dtype == dtypes.float64
        assert b.mean_layer(x, y, "m").node.dtype == dtypes.float64
        assert b.binary_layer(x, y, "divide", "d").node.dtype == dtypes.float64
        assert b.binary_layer(x, y, "add", "s").node.dtype == dtypes.int64
        assert b.unary("identity", y, "i").node.dtype == dtypes.int32

        scaled = b.trainable_binary_layer(y, Weight("k", np.ones(3, dtype=np.float32)), "multiply", "k3", "mul")
        assert scaled.node.dtype == dtypes.float64

    def test_mean_layer(self):
        b = GraphBuilder()
        x = b.input("x", (2, 3))
        y = b.input("y", (3,))
        out = b.mean_layer(x, y, "m")
        assert out.shape == (2, 3)
        assert_allclose(out.node.fn(np.ones((2, 3)), np.array([3.0, 5.0, 7.0]), {}), [[2.0, 3.0, 4.0]] * 2)

        folded = b.mean_layer(Constant(np.array([1.0])), Constant(np.array([2.0])), "mc")
        assert isinstance(folded, Constant)
        assert_allclose(b.graph["mc"].value, [1.5])


# =============================================================================
# 3. Layer helpers
# =============================================================================


class TestLayers:
    def test_trainable_binary_layer_by_name(self):
        b = GraphBuilder()
        x = b.input("x", (2, 3))
        w = np.array([1.0, 2.0, 3.0], dtype=np.float32)
        out = b.trainable_binary_layer(x, Weight("bias", w), "add", "y", "add")

        node = out.node
        assert node.op == "add"
        assert node.inputs == ["x"]
        assert node.params["kernel"].shape == (3,)
        assert b.params["y"]["kernel"] is w
        assert_allclose(node.fn(np.zeros((2, 3)), {"kernel": w}), [[1.0, 2.0, 3.0]] * 2)

    def test_trainable_binary_layer_with_callable(self):
        b = GraphBuilder()
        x = b.input("x", (2,))
        out = b.trainable_binary_layer(x, Weight("k", np.array([2.0, 3.0])), lambda a, k: a * k, "y", "scale")
        assert_allclose(out.node.fn(np.array([1.0, 1.0]), {"kernel": np.array([2.0, 3.0])}), [2.0, 3.0])

    def test_trainable_binary_layer_rejects_unknown_function(self):
        b = GraphBuilder()
        x = b.input("x", (2,))
        with pytest.raises(InvalidConfigError):
            b.trainable_binary_layer(x, Weight("k", np.ones(2)), "no_such_ufunc", "y", "y")

    def test_matmul_deferred(self):
        b = GraphBuilder()
        a = b.input("a", (2, 3, 4))
        c = b.input("c", (2, 4, 5))
        out = b.numpy_matmul_layer(a, c, "mm")
        assert out.shape == (2, 3, 5)
        assert out.node.attrs["axes"] == ([2], [0], [1], [0])
        da, dc = np.ones((2, 3, 4)), np.ones((2, 4, 5))
        assert_allclose(out.node.fn(da, dc, {}), np.matmul(da, dc))

    def test_matmul_with_weight_binds_parameter_node(self):
        b = GraphBuilder()
        x = b.input("x", (3, 4))
        w = np.ones((4, 2), dtype=np.float32)
        out = b.numpy_matmul_layer(x, Weight("W", w), "mm")
        assert out.node.inputs == ["x", "W"]
        assert b.graph["W"].op == "param"
        assert b.params["W"]["kernel"] is w
        assert out.shape == (3, 2)

    def test_matmul_of_constants_is_folded(self):
        b = GraphBuilder()
        a = b.constant("a", np.eye(2))
        c = b.constant("c", np.array([[1.0, 2.0], [3.0, 4.0]]))
        out = b.numpy_matmul_layer(a, c, "mm")
        assert isinstance(out, Constant)
        assert_allclose(out.value, [[1.0, 2.0], [3.0, 4.0]])

    def test_matmul_with_lower_rank_weight(self):
        b = GraphBuilder()
        x = b.input("x", (2, 3, 4))
        w = np.arange(20, dtype=np.float32).reshape(4, 5)
        out = b.numpy_matmul_layer(x, Weight("W", w), "mm")
        assert out.shape == (2, 3, 5)
        data = np.ones((2, 3, 4), dtype=np.float32)
        result = out.node.fn(data, w, {})
        assert result.shape == out.shape
        assert_allclose(result, np.matmul(data, w))

    def test_matmul_of_mixed_rank_constants_is_folded(self):
        b = GraphBuilder()
        v = b.constant("v", np.array([1.0, 2.0]))
        m = b.constant("m", np.arange(12.0).reshape(3, 2, 2))
        out = b.numpy_matmul_layer(v, m, "vm")
        assert isinstance(out, Constant)
        assert_allclose(out.value, np.matmul(v.value, m.value))

    def test_matmul_size_mismatch_fails_before_insertion(self):
        b = GraphBuilder()
        x = b.input("x", (2, 3, 4))
        with pytest.raises(IRValidationError):
            b.numpy_matmul_layer(x, Weight("W", np.ones((5, 2))), "mm")
        with pytest.raises(IRValidationError):
            b.numpy_matmul_layer(Constant(np.ones((3, 4))), Constant(np.ones((3, 4))), "mm")
        assert "mm" not in b.graph
        assert "W" not in b.graph

    def test_gather_casts_indices(self):
        b = GraphBuilder()
        x = b.input("x", (3, 4))
        ind = b.input("i", (2,), dtype=dtypes.float32)
        out = b.gather_layer(x, ind, -1, "g")
        assert out.shape == (3, 2)
        assert out.node.attrs["axis"] == 1
        data = np.arange(12).reshape(3, 4)
        assert_array_equal(out.node.fn(data, np.array([3.0, 0.0]), {}), data[:, [3, 0]])

    def test_gather_of_constants_is_folded(self):
        b = GraphBuilder()
        x = b.constant("x", np.array([10, 20, 30]))
        out = b.gather_layer(x, Constant(np.array([[2, 0]], dtype=np.int32)), 0, "g")
        assert isinstance(out, Constant)
        assert_array_equal(out.value, [[30, 10]])

    def test_cast(self):
        b = GraphBuilder()
        c = b.constant("c", np.array([1.7, -2.2]))
        out = b.cast_layer(c, 6, "ci")
        assert out.value.dtype == np.int32
        assert b.graph["ci"].dtype == dtypes.int32

        x = b.input("x", (2,))
        deferred = b.cast_layer(x, 11, "cd")
        assert deferred.node.dtype == dtypes.float64
        assert deferred.node.fn(np.ones(2, np.float32), {}).dtype == np.float64

        with pytest.raises(UnsupportedTypeError):
            b.cast_layer(x, 8, "cs")


# =============================================================================
# 4. Parameter store
# =============================================================================


class TestParams:
    def test_validate_params_accepts_consistent_store(self):
        b = GraphBuilder()
        b.slice_layer(Weight("w", np.ones((4, 4))), [0], [2], [0], [1], "ws")
        b.validate_params(require_all=True)

    def test_validate_params_reports_mismatch(self):
        b = GraphBuilder()
        b.slice_layer(Weight("w", np.ones((4, 4))), [0], [2], [0], [1], "ws")
        b.params["ws"]["kernel"] = np.ones((2, 4))
        with pytest.raises(IRValidationError):
            b.validate_params()

    def test_validate_params_missing_value(self):
        b = GraphBuilder()
        b.slice_layer(Weight("w", np.ones(3)), [0], [2], [0], [1], "ws")
        del b.params["ws"]
        b.validate_params()
        with pytest.raises(IRValidationError):
            b.validate_params(require_all=True)


def test_redefining_a_name_replaces_the_node() -> None:
    b = GraphBuilder()
    b.constant("v", np.zeros(2))
    x = b.input("x", (2,))
    b.unary("identity", x, "v")
    assert b.graph["v"].op == "identity"
    assert len(b.graph) == 2


def test_constant_named_after_computed_node_keeps_that_node() -> None:
    b = GraphBuilder()
    x = b.input("x", (2,))
    b.unary("identity", x, "h")
    out = b.binary_layer(x, Constant(np.array([1.0, 2.0]), name="h"), "add", "y")

    assert b.graph["h"].op == "identity"
    (const_name,) = [n for n in out.node.inputs if n != "x"]
    assert const_name != "h"
    assert b.graph[const_name].is_constant
    assert_allclose(b.graph[const_name].value, [1.0, 2.0])
