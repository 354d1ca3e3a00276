"""
Per-request temp workspaces and the stale workspace sweep
"""
import logging
import shutil
import tempfile
import time
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "compose-"


def create_workspace(root, request_id: str) -> Path:
    """Create a uniquely named directory for one composition attempt."""
    root = Path(root)
    root.mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix=f"{WORKSPACE_PREFIX}{request_id}-", dir=str(root)))


def remove_workspace(path) -> bool:
    """Delete a workspace and everything in it; missing is not an error."""
    path = Path(path)
    if not path.exists():
        return True
    try:
        shutil.rmtree(path)
        logger.info(f"[CLEANUP] Removed workspace {path}")
        return True
    except OSError as e:
        logger.warning(f"[CLEANUP] Failed to remove workspace {path}: {e}")
        return False


def sweep_stale_workspaces(root, max_age_seconds: int = 3600, dry_run: bool = False) -> List[Path]:
    """
    Remove workspaces orphaned by timeouts or crashed workers.

    Args:
        root: Temp root holding compose-* workspaces
        max_age_seconds: Only workspaces older than this are removed
        dry_run: Report without deleting

    Returns:
        Workspaces that were (or would be) removed
    """
    root = Path(root)
    if not root.exists():
        return []

    cutoff = time.time() - max_age_seconds
    stale = []
    for path in root.glob(f"{WORKSPACE_PREFIX}*"):
        if not path.is_dir():
            continue
        try:
            if path.stat().st_mtime >= cutoff:
                continue
        except FileNotFoundError:
            continue
        stale.append(path)
        if not dry_run:
            remove_workspace(path)

    if stale:
        logger.info(f"[CLEANUP] Swept {len(stale)} stale workspace(s) from {root}")
    return stale
