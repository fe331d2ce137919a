from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator

from .errors import IRValidationError
from .node import Node


logger = logging.getLogger(__name__)


@dataclass
class Graph:
	"""Insertion-ordered mapping from node name to node.

	Nodes are added in the order operators are translated, so iteration order
	is a valid topological order for a forward-built graph. Adding a node under
	an existing name replaces it.
	"""

	name: str = "graph"
	nodes: dict[str, Node] = field(default_factory=dict)
	attrs: dict[str, object] = field(default_factory=dict)
	_name_counters: dict[str, int] = field(default_factory=dict, repr=False)

	def fresh_name(self, prefix: str) -> str:
		n = self._name_counters.get(prefix, 0) + 1
		self._name_counters[prefix] = n
		name = f"{prefix}{n}"
		return self.fresh_name(prefix) if name in self.nodes else name

	def add(self, node: Node) -> Node:
		for ref in node.inputs:
			if ref not in self.nodes:
				raise IRValidationError(f"node {node.name!r} references unknown input {ref!r}")
		if node.name in self.nodes:
			logger.debug("redefining node %r (%s -> %s)", node.name, self.nodes[node.name].op, node.op)
			# Re-inserting keeps the position of the last definition.
			del self.nodes[node.name]
		self.nodes[node.name] = node
		logger.debug("added %s node %r with shape %s", node.op, node.name, node.shape)
		return node

	def __getitem__(self, name: str) -> Node:
		try:
			return self.nodes[name]
		except KeyError:
			raise IRValidationError(f"no node named {name!r} in graph {self.name!r}") from None

	def __contains__(self, name: object) -> bool:
		return name in self.nodes

	def __iter__(self) -> Iterator[Node]:
		return iter(self.nodes.values())

	def __len__(self) -> int:
		return len(self.nodes)

	def constants(self) -> list[Node]:
		return [n for n in self.nodes.values() if n.is_constant]

	def summary(self) -> str:
		lines: list[str] = [f"Graph(name={self.name!r}, nodes={len(self.nodes)})"]
		for node in self.nodes.values():
			ins = ", ".join(f"{ref}:{self.nodes[ref].shape}" for ref in node.inputs)
			params = "".join(f" [{p.name}:{p.shape}]" for p in node.params.values())
			lines.append(f"- {node.name}: {node.op}({ins}){params} -> {node.shape} {node.dtype}")
		return "\n".join(lines)
