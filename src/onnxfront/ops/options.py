"""Validated option sets for reduction and normalization operators.

Operator attributes arrive as loose keyword arguments. Each operator family
accepts a fixed set of keys; anything else is rejected up front so that a
misspelled attribute never silently falls back to a default.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from onnxfront.ir.errors import TranslationError


class InvalidConfigError(TranslationError):
    """Raised when an operator receives an option it does not recognize."""

    pass


def _check_keys(cls: type, opts: dict[str, Any]) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(opts) - known)
    if unknown:
        raise InvalidConfigError(
            f"unknown option(s) {unknown} for {cls.__name__}; expected a subset of {sorted(known)}"
        )


@dataclass(frozen=True, slots=True)
class ReduceOptions:
    """Options shared by every axis-reducing operator.

    Attributes:
        axes: Axes to reduce over. None reduces over all axes.
        keep_axes: Keep reduced axes as size-1 dimensions.
    """

    axes: tuple[int, ...] | None = None
    keep_axes: bool = False

    def __post_init__(self) -> None:
        if self.axes is not None:
            object.__setattr__(self, "axes", tuple(int(a) for a in self.axes))

    @classmethod
    def from_opts(cls, opts: dict[str, Any]) -> "ReduceOptions":
        _check_keys(cls, opts)
        return cls(**opts)


@dataclass(frozen=True, slots=True)
class LRNOptions:
    """Local response normalization parameters.

    Attributes:
        size: Number of leading axes summed into the normalizer. Required.
        alpha: Scale of the squared sum.
        beta: Exponent of the denominator.
        bias: Additive offset of the denominator.
    """

    size: int
    alpha: float = 1.0e-4
    beta: float = 0.75
    bias: float = 1.0

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise InvalidConfigError(f"size must be positive, got {self.size}")

    @classmethod
    def from_opts(cls, opts: dict[str, Any]) -> "LRNOptions":
        _check_keys(cls, opts)
        if "size" not in opts:
            raise InvalidConfigError("LRN requires the 'size' option")
        return cls(**opts)
