from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np

from .dtypes import DType, from_numpy
from .node import Node
from .tensor import Shape, as_shape


@dataclass(frozen=True, slots=True, eq=False)
class Constant:
	"""A value already materialized at translation time."""

	value: np.ndarray
	name: str | None = None

	@property
	def shape(self) -> Shape:
		return as_shape(self.value.shape)

	@property
	def dtype(self) -> DType:
		return from_numpy(self.value.dtype)


@dataclass(frozen=True, slots=True)
class GraphRef:
	"""A value computed by a node of the graph when it runs."""

	node: Node

	@property
	def shape(self) -> Shape:
		return self.node.shape

	@property
	def dtype(self) -> DType:
		return self.node.dtype


@dataclass(frozen=True, slots=True, eq=False)
class Weight:
	"""A learnable initializer: known now, but bound as a parameter at load time."""

	name: str
	value: np.ndarray

	@property
	def shape(self) -> Shape:
		return as_shape(self.value.shape)

	@property
	def dtype(self) -> DType:
		return from_numpy(self.value.dtype)


Operand = Union[Constant, GraphRef, Weight]
