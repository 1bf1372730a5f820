"""Environment and dependency checks for demtiles."""

from __future__ import annotations

import importlib
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from demtiles.config import resolve_hmm

MIN_PYTHON = (3, 10)
PYTHON_DEPS = (
    ("numpy", "numpy"),
    ("rasterio", "rasterio"),
    ("pyproj", "pyproj"),
    ("Pillow", "PIL"),
    ("jsonschema", "jsonschema"),
)


@dataclass(frozen=True)
class CheckResult:
    """Result of a single doctor check."""

    name: str
    status: str
    detail: str


def _status(name: str, status: str, detail: str) -> CheckResult:
    return CheckResult(name=name, status=status, detail=detail)


def check_python_version() -> CheckResult:
    """Verify the running Python meets the minimum version."""
    if sys.version_info < MIN_PYTHON:
        return _status(
            "python",
            "error",
            f"Python {MIN_PYTHON[0]}.{MIN_PYTHON[1]}+ required",
        )
    return _status("python", "ok", f"{sys.version_info.major}.{sys.version_info.minor}")


def check_python_deps() -> list[CheckResult]:
    """Verify that key Python dependencies can be imported."""
    results = []
    for name, module_name in PYTHON_DEPS:
        try:
            module = importlib.import_module(module_name)
        except ImportError as exc:  # pragma: no cover - import failure path
            results.append(_status(name, "error", str(exc)))
            continue
        results.append(_status(name, "ok", str(getattr(module, "__version__", "unknown"))))
    return results


def check_command(name: str, command: list[str] | None) -> CheckResult:
    """Probe an external command for availability."""
    if not command:
        return _status(name, "warn", "not configured")
    binary = command[0]
    if not (Path(binary).exists() or shutil.which(binary)):
        return _status(name, "error", "command not found")
    try:
        result = subprocess.run(
            command + ["--help"],
            capture_output=True,
            text=True,
            check=False,
            timeout=30,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        return _status(name, "error", str(exc))
    if result.returncode == 0:
        return _status(name, "ok", "command responded to --help")
    return _status(name, "warn", f"non-zero exit: {result.returncode}")


def run_doctor(hmm_path: str | None = None) -> list[CheckResult]:
    """Run all doctor checks."""
    results = [check_python_version(), *check_python_deps()]
    hmm = resolve_hmm(hmm_path)
    results.append(check_command("hmm", [str(hmm)] if hmm else None))
    return results
