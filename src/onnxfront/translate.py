"""Dispatch of ONNX operator records onto the graph builder.

A deserializer hands over one `OperatorRecord` at a time, in model order.
Input names are resolved against the graph built so far; names found in the
`weights` mapping (the model's initializers) are treated as learnable
parameters instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import numpy as np

from onnxfront.builder import GraphBuilder, get_value
from onnxfront.ir import Operand, TranslationError, Weight
from onnxfront.ops.options import InvalidConfigError


logger = logging.getLogger(__name__)


class UnsupportedOperatorError(TranslationError):
    pass


@dataclass(slots=True)
class OperatorRecord:
    """One operator of the source model.

    Attributes:
        op_type: ONNX operator type, e.g. ``"Slice"``.
        inputs: Input value names, in order. Empty strings mark omitted
            optional inputs.
        output: Name of the produced value.
        attrs: Operator attributes (ints, floats, strings, lists or arrays).
    """

    op_type: str
    inputs: list[str]
    output: str
    attrs: dict[str, Any] = field(default_factory=dict)


Handler = Callable[[GraphBuilder, OperatorRecord, Mapping[str, np.ndarray]], Operand]


def _operand(builder: GraphBuilder, name: str, weights: Mapping[str, np.ndarray]) -> Operand:
    if name in weights and name not in builder.graph:
        return Weight(name, np.asarray(weights[name]))
    return builder.operand(name)


def _ints(builder: GraphBuilder, name: str, weights: Mapping[str, np.ndarray]) -> list[int] | None:
    """Read an optional integer-list input that must be known now."""

    if not name:
        return None
    value = get_value(_operand(builder, name, weights))
    return [int(v) for v in np.asarray(value).reshape(-1)]


def _optional_input(record: OperatorRecord, index: int) -> str:
    return record.inputs[index] if len(record.inputs) > index else ""


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _elementwise(kind: str) -> Handler:
    def handle(builder, record, weights):
        x = _operand(builder, record.inputs[0], weights)
        return builder.unary(kind, x, record.output, **record.attrs)

    return handle


def _reduction(kind: str) -> Handler:
    def handle(builder, record, weights):
        attrs = dict(record.attrs)
        opts: dict[str, Any] = {"keep_axes": bool(attrs.pop("keepdims", 1))}
        noop_with_empty_axes = bool(attrs.pop("noop_with_empty_axes", 0))

        # Opset 18 moved axes from an attribute to an optional input.
        axes = attrs.pop("axes", None)
        if axes is None:
            axes = _ints(builder, _optional_input(record, 1), weights)
        x = _operand(builder, record.inputs[0], weights)

        if not axes:
            if noop_with_empty_axes:
                return builder.unary("identity", x, record.output)
            axes = None
        if axes is not None:
            opts["axes"] = tuple(axes)
        # Whatever is left is not a reduce attribute and is rejected downstream.
        opts.update(attrs)
        return builder.unary(kind, x, record.output, **opts)

    return handle


def _lrn(builder, record, weights):
    x = _operand(builder, record.inputs[0], weights)
    return builder.unary("lrn", x, record.output, **record.attrs)


def _mean(builder, record, weights):
    operands = [_operand(builder, name, weights) for name in record.inputs]
    if len(operands) == 1:
        return builder.unary("identity", operands[0], record.output)
    if len(operands) != 2:
        raise InvalidConfigError(f"Mean supports one or two inputs, got {len(operands)}")
    return builder.mean_layer(operands[0], operands[1], record.output)


def _matmul(builder, record, weights):
    a, b = (_operand(builder, name, weights) for name in record.inputs[:2])
    return builder.numpy_matmul_layer(a, b, record.output)


def _gather(builder, record, weights):
    x, ind = (_operand(builder, name, weights) for name in record.inputs[:2])
    return builder.gather_layer(x, ind, int(record.attrs.get("axis", 0)), record.output)


def _cast(builder, record, weights):
    if "to" not in record.attrs:
        raise InvalidConfigError("Cast requires the 'to' attribute")
    x = _operand(builder, record.inputs[0], weights)
    return builder.cast_layer(x, int(record.attrs["to"]), record.output)


def _slice(builder, record, weights):
    x = _operand(builder, record.inputs[0], weights)
    if "starts" in record.attrs:
        # Opset 1-9: everything is an attribute and there are no steps.
        starts = list(record.attrs["starts"])
        ends = list(record.attrs["ends"])
        axes = record.attrs.get("axes")
        steps = None
    else:
        starts = _ints(builder, _optional_input(record, 1), weights)
        ends = _ints(builder, _optional_input(record, 2), weights)
        axes = _ints(builder, _optional_input(record, 3), weights)
        steps = _ints(builder, _optional_input(record, 4), weights)
        if starts is None or ends is None:
            raise InvalidConfigError("Slice requires starts and ends")
    return builder.slice_layer(x, starts, ends, axes, steps, record.output)


def _binary(op: str) -> Handler:
    def handle(builder, record, weights):
        a, b = (_operand(builder, name, weights) for name in record.inputs[:2])
        if isinstance(b, Weight) and not isinstance(a, Weight):
            return builder.trainable_binary_layer(a, b, op, record.output, op)
        return builder.binary_layer(a, b, op, record.output)

    return handle


HANDLERS: dict[str, Handler] = {
    "HardSwish": _elementwise("hardswish"),
    "Reciprocal": _elementwise("reciprocal"),
    "Identity": _elementwise("identity"),
    "ReduceLogSum": _reduction("logsum"),
    "ReduceLogSumExp": _reduction("logsumexp"),
    "ReduceSumSquare": _reduction("sumsquare"),
    "ReduceL1": _reduction("l1_norm"),
    "ReduceL2": _reduction("l2_norm"),
    "LRN": _lrn,
    "Mean": _mean,
    "MatMul": _matmul,
    "Gather": _gather,
    "Cast": _cast,
    "Slice": _slice,
    "Add": _binary("add"),
    "Sub": _binary("subtract"),
    "Mul": _binary("multiply"),
    "Div": _binary("divide"),
    "Pow": _binary("power"),
}


def translate(
    builder: GraphBuilder,
    record: OperatorRecord,
    weights: Mapping[str, np.ndarray] | None = None,
) -> Operand:
    """Add the node(s) for one operator record and return its output operand.

    Raises:
        UnsupportedOperatorError: If `record.op_type` has no handler.
    """

    handler = HANDLERS.get(record.op_type)
    if handler is None:
        raise UnsupportedOperatorError(f"unsupported ONNX operator: {record.op_type}")
    logger.debug("translating %s(%s) -> %s", record.op_type, ", ".join(record.inputs), record.output)
    return handler(builder, record, weights or {})


def translate_all(
    records: list[OperatorRecord],
    weights: Mapping[str, np.ndarray] | None = None,
    builder: GraphBuilder | None = None,
) -> GraphBuilder:
    """Translate `records` in order into a (new or given) builder."""

    builder = builder or GraphBuilder()
    for record in records:
        translate(builder, record, weights)
    logger.info("translated %d operators into %d nodes", len(records), len(builder.graph))
    return builder
