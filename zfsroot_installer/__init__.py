"""Ubuntu ZFS-root installer.

Core design goals:
- One frozen context per run; the disk layout is derived once
- Ordered stages, stop at the first failure
- Every external command goes through one logged runner
- Best-effort release of mounts and the pool on any failure
"""

__all__ = []
