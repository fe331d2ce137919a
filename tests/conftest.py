import logging
import sys
from pathlib import Path


def pytest_configure() -> None:
    """Put `src/` on the path so `onnxfront` imports without installation."""
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    logging.getLogger("onnxfront").setLevel(logging.DEBUG)
