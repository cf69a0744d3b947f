from __future__ import annotations

import logging

from ..config import POOL_COMPATIBILITY, InstallContext
from ..lib.command import run_cmd
from ..lib.zfs import (
    SYSTEM_DATASETS,
    create_datasets,
    create_pool,
    export_pool,
    import_pool,
    load_key,
    mount_dataset,
    root_datasets,
    set_pool_property,
)
from ..pipeline import PipelineState

logger = logging.getLogger(__name__)


class PoolCreateStep:
    step_id = "20_pool_create"
    state = PipelineState.POOL_CREATE
    percent = 30

    def describe(self, ctx: InstallContext) -> str:
        return f"Creating ZFS pool {ctx.pool}"

    def enabled(self, ctx: InstallContext) -> bool:
        return True

    def run(self, ctx: InstallContext) -> None:
        cfg = ctx.config
        pool = ctx.pool
        passphrase = ctx.credentials.passphrase if cfg.encryption else None
        logger.debug("Pool device %s (disk id %s)", ctx.layout.pool_device, ctx.layout.disk_id)

        create_pool(
            pool,
            ctx.layout.pool_device,
            passphrase=passphrase,
            compatibility=POOL_COMPATIBILITY.get(cfg.release),
            timeout=cfg.pool_create_timeout,
        )
        run_cmd(["sync"], check=False)

        create_datasets(pool, root_datasets(cfg.root_dataset))
        set_pool_property(pool, "bootfs", ctx.root_fs)

        # Re-import under the target so every mountpoint lands below it.
        export_pool(pool)
        import_pool(pool, altroot=ctx.target)
        if passphrase is not None:
            load_key(pool, passphrase)
        mount_dataset(ctx.root_fs)
        mount_dataset(f"{pool}/home")
        set_pool_property(pool, "cachefile", "/etc/zfs/zpool.cache", check=False)

        create_datasets(pool, SYSTEM_DATASETS)
        run_cmd(["udevadm", "trigger"], check=False)
        logger.info("Pool %s ready, root dataset %s mounted at %s", pool, ctx.root_fs, ctx.target)
