from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Paths:
    repo_root: Path
    data_dir: Path
    schema_dir: Path


def get_paths() -> Paths:
    # src/towermerge/paths.py -> parents: [towermerge, src, repo_root]
    package_dir = Path(__file__).resolve().parent
    data_dir = package_dir / "data"
    return Paths(
        repo_root=package_dir.parents[1],
        data_dir=data_dir,
        schema_dir=data_dir / "schemas",
    )
