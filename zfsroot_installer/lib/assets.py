from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Collection, Iterable

logger = logging.getLogger(__name__)


def copy_tree(src: str, dst: str, *, exclude: Collection[str] = ()) -> None:
    """Copy src into dst, skipping top-level entries named in `exclude`."""

    s = Path(src)
    d = Path(dst)
    if not s.exists():
        raise FileNotFoundError(src)

    d.mkdir(parents=True, exist_ok=True)
    for item in s.rglob("*"):
        rel = item.relative_to(s)
        if rel.parts[0] in exclude:
            continue
        out = d / rel
        if item.is_dir():
            out.mkdir(parents=True, exist_ok=True)
        else:
            out.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item, out)
    logger.info("Copied tree %s -> %s", str(s), str(d))


def remove_paths(paths: Iterable[Path]) -> None:
    """Remove files or directories; missing ones are fine."""

    for p in paths:
        if p.is_dir() and not p.is_symlink():
            shutil.rmtree(p)
            logger.info("Removed %s", p)
        elif p.exists() or p.is_symlink():
            p.unlink()
            logger.info("Removed %s", p)
