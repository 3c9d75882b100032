"""Default path constants for m3fs-deployer.

Deployment data lives under the work directory:
- <work_dir>/deployment_progress.json   # resumable progress record
"""

from pathlib import Path
from typing import Optional

# 部署根目录，可被 M3FS_WORK_DIR 覆盖
DEFAULT_WORK_DIR = "/opt/3fs"

PROGRESS_FILE_NAME = "deployment_progress.json"


def resolve_progress_file(work_dir: str, override: Optional[str] = None) -> Path:
    """Return the explicit progress path if given, else the default under work_dir."""
    if override:
        return Path(override)
    return Path(work_dir) / PROGRESS_FILE_NAME
