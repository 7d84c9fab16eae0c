"""Architecture enforcement tests for the layered package layout.

The dependency direction is inward only: ``service`` (orchestration and CLI)
may import ``completion``, ``extraction``, ``tools``, ``config`` and ``base``;
none of those may import ``service``, and ``base`` imports nothing above it.

These tests are intentionally static-file scans to avoid import-time side
effects, and they emit clear failure messages for quick remediation.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List

PACKAGE_ROOT = Path(__file__).resolve().parent.parent / "cody_agent"


def _iter_python_files(root: Path) -> Iterable[Path]:
    """Yield source files under ``root``, skipping caches and test modules."""

    for path in root.rglob("*.py"):
        if "__pycache__" in path.parts or "tests" in path.relative_to(PACKAGE_ROOT).parts:
            continue
        yield path


def _imported_layers(path: Path) -> List[str]:
    """Return the top-level ``cody_agent`` subpackages imported by ``path``.

    Relative imports are resolved against the file's own package.
    """

    src = path.read_text(encoding="utf-8", errors="replace")
    package = list(path.relative_to(PACKAGE_ROOT).parts[:-1])
    layers: List[str] = []
    for dots, module in re.findall(r"^\s*from\s+(\.+)([\w.]*)\s+import", src, flags=re.MULTILINE):
        base = package[: len(package) - (len(dots) - 1)]
        parts = base + [p for p in module.split(".") if p]
        if parts:
            layers.append(parts[0])
    for module in re.findall(r"^\s*(?:from|import)\s+cody_agent\.(\w+)", src, flags=re.MULTILINE):
        layers.append(module)
    return layers


def _offenders(layer: str, forbidden: Iterable[str]) -> List[str]:
    blocked = set(forbidden)
    found: List[str] = []
    for py in _iter_python_files(PACKAGE_ROOT / layer):
        hits = sorted(set(_imported_layers(py)) & blocked)
        found.extend(f"{py}: imports {h}" for h in hits)
    return found


def test_base_imports_nothing_above_it() -> None:
    import pytest

    offenders = _offenders("base", ("service", "completion", "extraction", "tools", "config"))
    if offenders:
        pytest.fail("cody_agent.base must stay a leaf layer.\n" + "\n".join(offenders))


def test_inner_layers_do_not_import_service() -> None:
    import pytest

    offenders: List[str] = []
    for layer in ("completion", "extraction", "tools", "config"):
        offenders.extend(_offenders(layer, ("service",)))
    if offenders:
        pytest.fail("Only the service layer may depend on service modules.\n" + "\n".join(offenders))
