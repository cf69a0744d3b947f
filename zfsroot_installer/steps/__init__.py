from typing import List

from ..pipeline import Step
from .step_00_initialize import InitializeStep
from .step_10_disk_prep import DiskPrepStep
from .step_20_pool_create import PoolCreateStep
from .step_30_base_install import BaseInstallStep
from .step_40_swap import SwapStep
from .step_50_zfsbootmenu import ZfsBootMenuStep
from .step_55_refind import RefindStep
from .step_60_finalize import FinalizeStep
from .step_90_cleanup import CleanupStep


def build_steps() -> List[Step]:
    return [
        InitializeStep(),
        DiskPrepStep(),
        PoolCreateStep(),
        BaseInstallStep(),
        SwapStep(),
        ZfsBootMenuStep(),
        RefindStep(),
        FinalizeStep(),
        CleanupStep(),
    ]


__all__ = [
    "InitializeStep",
    "DiskPrepStep",
    "PoolCreateStep",
    "BaseInstallStep",
    "SwapStep",
    "ZfsBootMenuStep",
    "RefindStep",
    "FinalizeStep",
    "CleanupStep",
    "build_steps",
]
