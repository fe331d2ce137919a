from .dtypes import DType, UnsupportedTypeError, float32, from_numpy, int64, map_type
from .errors import IRValidationError, TranslationError
from .graph import Graph
from .node import Node, Parameter
from .operand import Constant, GraphRef, Operand, Weight
from .tensor import Shape, as_shape, normalize_axis

__all__ = [
	"DType",
	"float32",
	"int64",
	"map_type",
	"from_numpy",
	"UnsupportedTypeError",
	"TranslationError",
	"IRValidationError",
	"Graph",
	"Node",
	"Parameter",
	"Constant",
	"GraphRef",
	"Weight",
	"Operand",
	"Shape",
	"as_shape",
	"normalize_axis",
]
