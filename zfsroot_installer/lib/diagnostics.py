from __future__ import annotations

import logging

from .command import run_cmd

logger = logging.getLogger(__name__)

DMESG_TAIL = 200


def collect_diagnostics(pool: str | None = None) -> str:
    """Snapshot block devices, pool status and the kernel log tail into the log."""

    logger.error("Collecting diagnostics...")
    sections: list[str] = []

    r = run_cmd(["lsblk", "-o", "NAME,SIZE,TYPE,FSTYPE,PARTLABEL,MOUNTPOINT"], check=False)
    sections.append("# lsblk\n" + (r.stdout or r.stderr))

    status = ["zpool", "status", "-v"] + ([pool] if pool else [])
    r = run_cmd(status, check=False)
    sections.append("# zpool status\n" + (r.stdout or r.stderr))

    r = run_cmd(["dmesg"], check=False)
    tail = (r.stdout or r.stderr).splitlines()[-DMESG_TAIL:]
    sections.append("# dmesg (tail)\n" + "\n".join(tail))

    report = "\n\n".join(sections)
    logger.error("Diagnostics:\n%s", report)
    return report
