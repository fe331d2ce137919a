from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

import numpy as np

from .dtypes import DType, float32
from .tensor import Shape


@dataclass(slots=True)
class Parameter:
	"""A named slot for a tensor bound after translation.

	Values live in the builder's parameter store, keyed by the owning node's
	name and then by `name`.
	"""

	name: str
	shape: Shape
	dtype: DType = float32


@dataclass(slots=True, eq=False)
class Node:
	"""A named value in the graph.

	Constant and input nodes have no `fn`; constants carry their `value`.
	Compute nodes carry a deferred `fn(*inputs, params)` where `inputs` are
	the values of the nodes named in `inputs` (in order) and `params` maps
	parameter names to bound tensors.
	"""

	name: str
	op: str
	shape: Shape
	dtype: DType
	inputs: list[str] = field(default_factory=list)
	params: dict[str, Parameter] = field(default_factory=dict)
	fn: Callable[..., np.ndarray] | None = None
	value: np.ndarray | None = None
	attrs: dict[str, Any] = field(default_factory=dict)

	@property
	def rank(self) -> int:
		return len(self.shape)

	@property
	def is_constant(self) -> bool:
		return self.op == "constant"

	def __repr__(self) -> str:  # pragma: no cover
		return f"Node(name={self.name!r}, op={self.op!r}, shape={self.shape}, dtype={self.dtype})"
