"""GraphBuilder: turns translated operators into graph nodes.

The builder owns two mutable structures:

- ``graph``: the `Graph` being built, one node per translated operator;
- ``params``: the parameter store, ``node name -> parameter name -> tensor``.

Operands are one of three kinds (see `onnxfront.ir.operand`):

- `Constant`: materialized now. Operators whose inputs are all constants are
  evaluated eagerly and stored as new constant nodes (constant folding).
- `GraphRef`: produced by another node. The operator becomes a node with a
  deferred numpy callable.
- `Weight`: a learnable initializer. It is bound through a `Parameter` slot
  and its value is recorded in ``params`` under the consuming node's name.

Every node callable has the signature ``fn(*input_values, params)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

import numpy as np

from onnxfront.ir import (
    Constant,
    DType,
    Graph,
    GraphRef,
    IRValidationError,
    Node,
    Operand,
    Parameter,
    Weight,
    as_shape,
    float32,
    from_numpy,
    map_type,
    normalize_axis,
)
from onnxfront.ops import numeric
from onnxfront.ops.matmul import batched_dot, check_shapes, matmul_shape, resolve
from onnxfront.ops.options import InvalidConfigError, LRNOptions
from onnxfront.ops.slicing import InvalidRangeError, SliceSpec, apply_slice, build_specs, slice_shape


logger = logging.getLogger(__name__)

ParamStore = dict[str, dict[str, np.ndarray]]


@dataclass(frozen=True, slots=True)
class BuilderConfig:
    """Builder behavior.

    Attributes:
        fold_constants: Evaluate operators over constant operands eagerly.
            When False every operator becomes a graph node.
    """

    fold_constants: bool = True


def is_constant(x: Any) -> bool:
    return isinstance(x, Constant) or (isinstance(x, GraphRef) and x.node.is_constant)


def get_value(x: Operand) -> np.ndarray:
    if isinstance(x, (Constant, Weight)):
        return x.value
    if isinstance(x, GraphRef) and x.node.value is not None:
        return x.node.value
    raise IRValidationError(f"operand {x!r} has no value at translation time")


@dataclass
class GraphBuilder:
    graph: Graph = field(default_factory=Graph)
    params: ParamStore = field(default_factory=dict)
    config: BuilderConfig = field(default_factory=BuilderConfig)

    # ------------------------------------------------------------------
    # Leaves
    # ------------------------------------------------------------------

    def input(self, name: str, shape: Sequence[int], dtype: DType = float32) -> GraphRef:
        node = self.graph.add(Node(name=name, op="input", shape=as_shape(shape), dtype=dtype))
        return GraphRef(node)

    def constant(self, name: str, value: Any) -> Constant:
        value = np.asarray(value)
        self.graph.add(
            Node(name=name, op="constant", shape=as_shape(value.shape), dtype=from_numpy(value.dtype), value=value)
        )
        return Constant(value, name=name)

    def operand(self, name: str) -> Constant | GraphRef:
        """Look up a node by name as an operand of the right kind."""

        node = self.graph[name]
        if node.is_constant:
            return Constant(node.value, name=name)
        return GraphRef(node)

    def _input_name(self, x: Operand) -> str:
        """Name of the node that supplies `x`, adding one if needed."""

        if isinstance(x, GraphRef):
            return x.node.name
        if isinstance(x, Constant):
            if x.name is not None and x.name in self.graph:
                if self.graph[x.name].is_constant:
                    return x.name
                # The name now belongs to a computed node; keep that node.
                return self.constant(self.graph.fresh_name(x.name), x.value).name
            return self.constant(x.name or self.graph.fresh_name("const"), x.value).name
        if isinstance(x, Weight):
            if x.name not in self.graph:
                self._param_node(x)
            return x.name
        raise TypeError(f"unsupported operand type: {type(x).__name__}")

    def _param_node(self, weight: Weight) -> Node:
        kernel = Parameter("kernel", weight.shape, weight.dtype)
        self.params[weight.name] = {"kernel": weight.value}
        return self.graph.add(
            Node(
                name=weight.name,
                op="param",
                shape=weight.shape,
                dtype=weight.dtype,
                params={"kernel": kernel},
                fn=lambda params: params["kernel"],
            )
        )

    # ------------------------------------------------------------------
    # Generic node construction
    # ------------------------------------------------------------------

    def layer(
        self,
        name: str,
        op: str,
        inputs: Sequence[Operand],
        fn: Callable[..., np.ndarray],
        shape: Sequence[int],
        dtype: DType,
        *,
        params: dict[str, Parameter] | None = None,
        attrs: dict[str, Any] | None = None,
    ) -> GraphRef:
        node = Node(
            name=name,
            op=op,
            shape=as_shape(shape),
            dtype=dtype,
            inputs=[self._input_name(x) for x in inputs],
            params=dict(params or {}),
            fn=fn,
            attrs=dict(attrs or {}),
        )
        return GraphRef(self.graph.add(node))

    def _fold_or_layer(
        self,
        name: str,
        op: str,
        inputs: Sequence[Operand],
        fn: Callable[..., np.ndarray],
        shape: Sequence[int],
        dtype: DType,
        attrs: dict[str, Any] | None = None,
    ) -> Operand:
        if self.config.fold_constants and inputs and all(is_constant(x) for x in inputs):
            value = fn(*(get_value(x) for x in inputs), {})
            logger.debug("folded %s into constant %r", op, name)
            return self.constant(name, value)
        return self.layer(name, op, inputs, fn, shape, dtype, attrs=attrs)

    # ------------------------------------------------------------------
    # Numeric operators
    # ------------------------------------------------------------------

    def unary(self, kind: str, x: Operand, name: str, **opts: Any) -> Operand:
        """Apply one of the closed-form numeric operators to `x`.

        Options are validated before anything is added to the graph.
        """

        if kind in numeric.ELEMENTWISE:
            if opts:
                raise InvalidConfigError(f"{kind} takes no options, got {sorted(opts)}")
            op = numeric.ELEMENTWISE[kind]
            shape = x.shape
            fn = lambda v, params: op(v)
        elif kind in numeric.REDUCTIONS:
            op = numeric.REDUCTIONS[kind]
            shape = numeric.reduced_shape(x.shape, **opts)
            fn = lambda v, params: op(v, **opts)
        elif kind == "lrn":
            o = LRNOptions.from_opts(opts)
            if o.size > len(x.shape):
                raise InvalidConfigError(f"LRN size {o.size} exceeds input rank {len(x.shape)}")
            shape = x.shape
            fn = lambda v, params: numeric.lrn(v, **opts)
        else:
            raise InvalidConfigError(f"unknown numeric operator {kind!r}")

        return self._fold_or_layer(name, kind, [x], fn, shape, _result_dtype(fn, [x]), attrs=opts)

    def mean_layer(self, a: Operand, b: Operand, name: str) -> Operand:
        shape = _broadcast(a.shape, b.shape)
        fn = lambda x, y, params: numeric.mean(x, y)
        return self._fold_or_layer(name, "mean", [a, b], fn, shape, _result_dtype(fn, [a, b]))

    # ------------------------------------------------------------------
    # Layer helpers
    # ------------------------------------------------------------------

    def trainable_binary_layer(
        self,
        input: Operand,
        param: Weight,
        op: str | Callable[[np.ndarray, np.ndarray], np.ndarray],
        name: str,
        op_name: str,
    ) -> GraphRef:
        """Combine `input` with a learnable ``kernel`` shaped like `param`.

        `op` is either the name of a numpy binary function (``"add"``,
        ``"multiply"``, ...) or a callable of two arrays.
        """

        if isinstance(op, str):
            func = getattr(np, op, None)
            if not callable(func):
                raise InvalidConfigError(f"numpy has no binary function {op!r}")
        else:
            func = op

        kernel = Parameter("kernel", param.shape, param.dtype)
        shape = _broadcast(input.shape, param.shape)
        fn = lambda x, params: func(x, params["kernel"])

        layer = self.layer(
            name,
            op_name,
            [input],
            fn,
            shape,
            _result_dtype(fn, [input], {"kernel": param}),
            params={"kernel": kernel},
        )
        self.params[name] = {"kernel": param.value}
        return layer

    def binary_layer(self, a: Operand, b: Operand, op: str, name: str) -> Operand:
        """Broadcasting numpy binary function over two graph operands."""

        func = getattr(np, op, None)
        if not callable(func):
            raise InvalidConfigError(f"numpy has no binary function {op!r}")
        shape = _broadcast(a.shape, b.shape)
        fn = lambda x, y, params: func(x, y)
        return self._fold_or_layer(name, op, [a, b], fn, shape, _result_dtype(fn, [a, b]))

    def numpy_matmul_layer(self, a: Operand, b: Operand, name: str) -> Operand:
        axes = resolve(a.shape, b.shape)
        try:
            check_shapes(a.shape, b.shape, axes)
        except ValueError as e:
            raise IRValidationError(f"cannot matmul {a.shape} by {b.shape}: {e}") from e
        shape = matmul_shape(a.shape, b.shape, axes)
        fn = lambda x, y, params: batched_dot(x, y, axes)
        dtype = _result_dtype(fn, [a, b])
        return self._fold_or_layer(name, "matmul", [a, b], fn, shape, dtype, attrs={"axes": axes})

    def gather_layer(self, x: Operand, ind: Operand, axis: int, name: str) -> Operand:
        """Select entries of `x` along `axis`; indices are always read as int64."""

        rank = len(x.shape)
        axis = normalize_axis(axis, rank)
        if not 0 <= axis < rank:
            raise InvalidRangeError(f"gather axis out of range for rank {rank}")

        if isinstance(ind, Constant) and ind.value.dtype != np.int64:
            ind = Constant(ind.value.astype(np.int64), name=None)

        shape = x.shape[:axis] + ind.shape + x.shape[axis + 1 :]
        fn = lambda v, indices, params: np.take(v, indices.astype(np.int64), axis=axis)
        return self._fold_or_layer(name, "gather", [x, ind], fn, shape, x.dtype, attrs={"axis": axis})

    def cast_layer(self, x: Operand, to: int, name: str) -> Operand:
        dtype = map_type(to)
        target = dtype.numpy_dtype
        fn = lambda v, params: v.astype(target)
        return self._fold_or_layer(name, "cast", [x], fn, x.shape, dtype, attrs={"to": to})

    # ------------------------------------------------------------------
    # Slicing
    # ------------------------------------------------------------------

    def slice_layer(
        self,
        inp: Operand,
        starts: Sequence[int],
        ends: Sequence[int],
        axes: Sequence[int] | None,
        steps: Sequence[int] | None,
        name: str,
    ) -> Operand:
        specs = build_specs(starts, ends, axes, steps)
        # Normalizing here surfaces bad axes before the graph changes.
        shape = slice_shape(inp.shape, specs)

        if is_constant(inp):
            if not self.config.fold_constants:
                return self.layer(name, "slice", [inp], _slicer(specs), shape, inp.dtype)
            value = np.array(apply_slice(get_value(inp), specs))
            logger.debug("folded slice into constant %r", name)
            return self.constant(name, value)
        if isinstance(inp, GraphRef):
            return self.layer(name, "slice", [inp], _slicer(specs), shape, inp.dtype)
        if isinstance(inp, Weight):
            return self.param_slice(inp, specs, name)
        raise TypeError(f"cannot slice operand of type {type(inp).__name__}")

    def param_slice(self, param: Weight, specs: Sequence[SliceSpec], name: str) -> GraphRef:
        """Slice a learnable tensor once its value is bound.

        The node holds a ``kernel`` parameter with the unsliced shape; the
        original tensor is recorded in the parameter store under `name`.
        """

        kernel = Parameter("kernel", param.shape, param.dtype)
        node = Node(
            name=name,
            op="slice",
            shape=slice_shape(param.shape, specs),
            dtype=param.dtype,
            params={"kernel": kernel},
            fn=lambda params: apply_slice(params["kernel"], specs),
            attrs={"source": param.name},
        )
        self.graph.add(node)
        self.params[name] = {"kernel": param.value}
        return GraphRef(node)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def validate_params(self, require_all: bool = False) -> None:
        """Check bound parameter tensors against the shapes nodes declared.

        Raises:
            IRValidationError: On a shape mismatch, or a missing value when
                `require_all` is set.
        """

        for node in self.graph:
            bound = self.params.get(node.name, {})
            for pname, param in node.params.items():
                value = bound.get(pname)
                if value is None:
                    if require_all:
                        raise IRValidationError(f"no value bound for {node.name}.{pname}")
                    continue
                if tuple(np.shape(value)) != param.shape:
                    raise IRValidationError(
                        f"shape mismatch for {node.name}.{pname}: "
                        f"declared {param.shape}, bound {tuple(np.shape(value))}"
                    )


def _slicer(specs: Sequence[SliceSpec]) -> Callable[..., np.ndarray]:
    return lambda x, params: apply_slice(x, specs)


def _result_dtype(
    fn: Callable[..., np.ndarray],
    operands: Sequence[Operand],
    params: dict[str, Weight] | None = None,
) -> DType:
    """Element type `fn` produces, found by running it on size-one samples."""

    params = params or {}
    if any(x.dtype.kind == "bf" for x in [*operands, *params.values()]):
        return operands[0].dtype
    sample = lambda x: np.ones((1,) * len(x.shape), dtype=x.dtype.numpy_dtype)
    out = fn(*(sample(x) for x in operands), {k: sample(v) for k, v in params.items()})
    return from_numpy(np.asarray(out).dtype)


def _broadcast(a: Sequence[int], b: Sequence[int]) -> tuple[int, ...]:
    try:
        return tuple(np.broadcast_shapes(tuple(a), tuple(b)))
    except ValueError as e:
        raise IRValidationError(f"shapes {tuple(a)} and {tuple(b)} do not broadcast") from e


__all__ = ["BuilderConfig", "GraphBuilder", "ParamStore", "is_constant", "get_value"]
