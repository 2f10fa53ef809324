import sys

from sitescan.core import config
from sitescan.core.dates import iso
from sitescan.scans.repository import ScanRepository

# read-only: lists scans stuck in pending/processing, never changes them


def main():
    ttl = int(sys.argv[1]) if len(sys.argv) > 1 else config.ORPHAN_TTL_MINUTES

    orphans = ScanRepository().find_orphaned(ttl)
    if not orphans:
        print(f"OK: no scans stuck longer than {ttl} minutes")
        return

    print(f"{len(orphans)} scan(s) stuck longer than {ttl} minutes:")
    for s in orphans:
        since = s["started_at"] or s["created_at"]
        print(f"  {s['id']}  {s['status']:<10}  since {iso(since)}  {s['target_url']}")
    raise SystemExit(1)


if __name__ == "__main__":
    main()
