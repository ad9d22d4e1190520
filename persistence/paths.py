from __future__ import annotations

from pathlib import Path


def project_root() -> Path:
    # persistence/paths.py -> persistence -> project root
    return Path(__file__).resolve().parents[1]


def data_dir() -> Path:
    return ensure_dir(project_root() / "data")


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def local_store_path(data_dir: Path, namespace: str) -> Path:
    name = namespace.strip("_") or "store"
    return ensure_dir(data_dir / "local") / f"{name}.json"
