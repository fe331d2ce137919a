from __future__ import annotations


class TranslationError(ValueError):
	"""Base class for failures while translating an operator into the graph."""


class IRValidationError(TranslationError):
	pass
