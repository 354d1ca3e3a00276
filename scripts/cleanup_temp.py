import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from vidreach.config import get_settings  # noqa: E402
from vidreach.utils.temp_files import sweep_stale_workspaces  # noqa: E402


def human_size(n):
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if n < 1024:
            return f"{n:.1f}{unit}"
        n /= 1024
    return f"{n:.1f}PB"


def dir_size(root: Path) -> int:
    return sum(p.stat().st_size for p in root.rglob("*") if p.is_file())


def main():
    settings = get_settings()
    ap = argparse.ArgumentParser(description="Remove compose-* workspaces left by crashed or timed out runs")
    ap.add_argument("--temp-dirs", nargs="*", default=[settings.temp_dir], help="Temp roots to sweep")
    ap.add_argument("--max-age", type=int, default=settings.temp_max_age,
                    help="Only remove workspaces older than this many seconds")
    ap.add_argument("--dry-run", action="store_true", help="Show what would be deleted without deleting")
    args = ap.parse_args()

    total_removed = 0
    for d in args.temp_dirs:
        root = Path(d)
        if not root.exists():
            print(f"[SKIP] {root} not found")
            continue

        # Sizes must be read before the sweep deletes anything
        stale = sweep_stale_workspaces(root, args.max_age, dry_run=True)
        if not stale:
            print(f"[OK] Nothing to delete in {root}")
            continue

        print(f"[CLEAN] {root} -> {len(stale)} workspaces older than {args.max_age}s")
        for p in stale:
            print(f" - {p} ({human_size(dir_size(p))})")

        if not args.dry_run:
            total_removed += len(sweep_stale_workspaces(root, args.max_age))

    print(f"\n[SUMMARY] Removed {total_removed} workspaces")


if __name__ == "__main__":
    main()
