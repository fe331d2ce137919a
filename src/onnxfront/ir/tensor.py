from __future__ import annotations

from typing import Iterable


Shape = tuple[int, ...]


def as_shape(dims: Iterable[int]) -> Shape:
	return tuple(int(d) for d in dims)


def normalize_axis(axis: int, rank: int) -> int:
	"""Resolve a possibly negative axis index against `rank`.

	Returns the axis unchanged when it is out of range; callers decide how to
	report that.
	"""

	return axis + rank if axis < 0 else axis
