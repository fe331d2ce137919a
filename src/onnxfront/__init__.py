"""onnxfront: ONNX operators -> computation graph nodes.

Operators are translated one at a time into a `Graph` of named nodes. Numeric
and shape semantics (element types, slicing bounds, matmul axis roles) are
resolved while the graph is built, and operators over constants are folded.
"""

from .builder import BuilderConfig, GraphBuilder
from .ir.dtypes import DType, UnsupportedTypeError, map_type
from .ir.errors import IRValidationError, TranslationError
from .ir.graph import Graph
from .ir.node import Node, Parameter
from .ir.operand import Constant, GraphRef, Weight
from .ops.options import InvalidConfigError
from .ops.slicing import InvalidRangeError
from .translate import OperatorRecord, UnsupportedOperatorError, translate, translate_all

__all__ = [
    "BuilderConfig",
    "GraphBuilder",
    "DType",
    "map_type",
    "Graph",
    "Node",
    "Parameter",
    "Constant",
    "GraphRef",
    "Weight",
    "OperatorRecord",
    "translate",
    "translate_all",
    "TranslationError",
    "IRValidationError",
    "UnsupportedTypeError",
    "InvalidConfigError",
    "InvalidRangeError",
    "UnsupportedOperatorError",
]
