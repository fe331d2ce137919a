from __future__ import annotations

import logging
import sys
from pathlib import Path

import numpy as np

repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root / "src"))

from onnxfront import GraphBuilder, OperatorRecord, translate_all


def build_records() -> tuple[list[OperatorRecord], dict[str, np.ndarray]]:
    rng = np.random.default_rng(0)
    weights = {
        "W": rng.standard_normal((16, 8)).astype(np.float32),
        "b": np.zeros(8, dtype=np.float32),
        "table": np.arange(32, dtype=np.float32).reshape(4, 8),
    }
    records = [
        OperatorRecord("MatMul", ["x", "W"], "h"),
        OperatorRecord("Add", ["h", "b"], "hb"),
        OperatorRecord("HardSwish", ["hb"], "act"),
        OperatorRecord("Slice", ["act"], "head", {"starts": [0], "ends": [4], "axes": [-1]}),
        OperatorRecord("ReduceL2", ["head"], "energy", {"axes": [1], "keepdims": 0}),
        # Rows of an initializer: bound as a parameter, sliced at run time.
        OperatorRecord("Slice", ["table"], "rows", {"starts": [1], "ends": [-1], "axes": [0]}),
    ]
    return records, weights


def main() -> None:
    logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    builder = GraphBuilder()
    builder.input("x", (2, 16))
    builder.constant("idx", np.array([3, 1], dtype=np.int32))
    builder.constant("lut", np.linspace(0.0, 1.0, 8))
    records, weights = build_records()
    records.append(OperatorRecord("Gather", ["lut", "idx"], "picked", {"axis": 0}))

    print(f"Translating {len(records)} operators...")
    translate_all(records, weights, builder=builder)
    print(builder.graph.summary())

    print("\nParameter store:")
    for node_name, bound in builder.params.items():
        for pname, value in bound.items():
            print(f"  {node_name}.{pname}: {value.shape}")

    builder.validate_params(require_all=True)
    print(f"\nConstants: {[n.name for n in builder.graph.constants()]}")


if __name__ == "__main__":
    main()
