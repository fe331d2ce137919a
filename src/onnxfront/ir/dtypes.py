from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import TranslationError


class UnsupportedTypeError(TranslationError):
	pass


@dataclass(frozen=True, slots=True)
class DType:
	"""Scalar element type of a graph value: a kind letter plus a bit width.

	Kinds follow the usual tensor-library shorthand: ``f`` float, ``s`` signed
	int, ``u`` unsigned int, ``c`` complex and ``bf`` brain float.
	"""

	kind: str
	bits: int

	@property
	def name(self) -> str:
		prefix = {"f": "float", "s": "int", "u": "uint", "c": "complex", "bf": "bfloat"}[self.kind]
		return f"{prefix}{self.bits}"

	@property
	def itemsize(self) -> int:
		return self.bits // 8

	@property
	def numpy_dtype(self) -> np.dtype:
		if self.kind == "bf":
			raise UnsupportedTypeError("bfloat16 has no numpy equivalent")
		return np.dtype(self.name)

	def __str__(self) -> str:  # pragma: no cover
		return self.name


float16 = DType("f", 16)
float32 = DType("f", 32)
float64 = DType("f", 64)
bfloat16 = DType("bf", 16)
int8 = DType("s", 8)
int16 = DType("s", 16)
int32 = DType("s", 32)
int64 = DType("s", 64)
uint8 = DType("u", 8)
uint16 = DType("u", 16)
uint32 = DType("u", 32)
uint64 = DType("u", 64)
complex64 = DType("c", 64)
complex128 = DType("c", 128)


# TensorProto.DataType -> element type. 8 (STRING) is deliberately absent and
# 9 (BOOL) is stored as a byte.
ONNX_TYPES: dict[int, DType] = {
	1: float32,
	2: uint8,
	3: int8,
	4: uint16,
	5: int16,
	6: int32,
	7: int64,
	9: uint8,
	10: float16,
	11: float64,
	12: uint32,
	13: uint64,
	14: complex64,
	15: complex128,
	16: bfloat16,
}

ONNX_STRING = 8


def map_type(code: int) -> DType:
	"""Translate an ONNX tensor element type code."""

	if code == ONNX_STRING:
		raise UnsupportedTypeError("unsupported STRING type")
	try:
		return ONNX_TYPES[code]
	except KeyError:
		raise UnsupportedTypeError(f"unsupported ONNX element type code: {code!r}") from None


def from_numpy(dtype: np.dtype | type) -> DType:
	dt = np.dtype(dtype)
	if dt == np.bool_:
		return uint8
	kind = {"f": "f", "i": "s", "u": "u", "c": "c"}.get(dt.kind)
	if kind is None:
		raise UnsupportedTypeError(f"no element type for numpy dtype {dt}")
	return DType(kind, dt.itemsize * 8)
