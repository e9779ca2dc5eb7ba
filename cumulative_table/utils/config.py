from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

import yaml

PathLike = Union[str, Path]


def load_yaml(path: PathLike) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML root must be a mapping: {path}")
    return data


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Override wins; nested mappings merge, lists (e.g. a ladder) are replaced whole."""
    out = dict(base)
    for k, v in override.items():
        if isinstance(out.get(k), Mapping) and isinstance(v, Mapping):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _parent_paths(cfg: Mapping[str, Any], path: Path) -> List[Path]:
    extends = cfg.get("extends")
    if not extends:
        return []
    if isinstance(extends, (str, Path)):
        extends = [extends]
    if not isinstance(extends, list):
        raise ValueError(f"{path}: 'extends' must be a string or a list of strings.")
    # relative to the file that names them
    return [p if p.is_absolute() else (path.parent / p).resolve() for p in map(Path, extends)]


def load_config(path: PathLike) -> Dict[str, Any]:
    """
    Load a YAML config, following `extends:` (one file or a list, applied in order,
    the current file last). Store and output paths are used as written, so relative
    ones resolve against the working directory.
    """
    path = Path(path)
    raw = load_yaml(path)

    merged: Dict[str, Any] = {}
    for parent in _parent_paths(raw, path):
        merged = _deep_merge(merged, load_config(parent))

    own = {k: v for k, v in raw.items() if k != "extends"}
    merged = _deep_merge(merged, own)
    merged["_meta"] = {**merged.get("_meta", {}), "config_path": str(path.resolve())}
    return merged


def section(cfg: Mapping[str, Any], name: str) -> Dict[str, Any]:
    """A top-level config block; absent or null blocks read as empty."""
    value = cfg.get(name) or {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Config section '{name}' must be a mapping, got {type(value).__name__}")
    return dict(value)


def ensure_dirs(cfg: Mapping[str, Any]) -> None:
    """
    Create the snapshot directory and every output location. Safe to call repeatedly.

      store:
        snapshot_dir: data/snapshots
      output:
        meta_dir: data/meta
    """
    snapshot_dir = section(cfg, "store").get("snapshot_dir")
    if snapshot_dir:
        Path(snapshot_dir).mkdir(parents=True, exist_ok=True)

    for p in section(cfg, "output").values():
        if isinstance(p, (str, Path)) and str(p).strip():
            p = Path(p)
            # file-looking paths get their parent created
            (p.parent if p.suffix else p).mkdir(parents=True, exist_ok=True)
