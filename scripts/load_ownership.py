"""
Load GEM ownership CSV exports into Neo4j as (:Entity)-[:OWNS]->(:Entity|:Asset).

    python scripts/load_ownership.py "Coal Plant Ownership.csv" --tracker "Coal Plant" --execute
"""
import logging
from collections import Counter

from gem_ownership.db.neo4j_client import close_driver, verify_connectivity
from gem_ownership.db.queries.ownership_queries import add_ownerships, ensure_constraints
from gem_ownership.services.ownership_csv import read_ownership_csv

logger = logging.getLogger(__name__)


def load_file(path: str, tracker: str = None, dry_run: bool = True, batch_size: int = 1000) -> int:
    """
    Load one CSV file.

    Args:
        path: CSV export of an ownership sheet
        tracker: Tracker name for sheets without a Tracker column
        dry_run: If True, only report what would be written
    """
    records = read_ownership_csv(path, tracker=tracker)
    if dry_run:
        records = list(records)
        kinds = Counter(r.subject_kind.value if r.subject_kind else "unknown" for r in records)
        print(f"Would load {len(records)} ownership rows from {path}")
        for kind, count in kinds.most_common():
            print(f"  - {kind}: {count}")
        print(f"  Imputed shares: {sum(1 for r in records if r.imputed)}")
        return 0

    written = add_ownerships(records, batch_size=batch_size)
    print(f"✅ Loaded {written} ownership rows from {path}")
    return written


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Load GEM ownership CSV exports into Neo4j")
    parser.add_argument("paths", nargs="+", help="CSV files to load")
    parser.add_argument("--tracker", help="Tracker name to use when the file has no Tracker column")
    parser.add_argument("--batch-size", type=int, default=1000)
    parser.add_argument("--execute", action="store_true", help="Actually write (default is dry-run)")

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    if args.execute:
        verify_connectivity()
        ensure_constraints()

    try:
        for path in args.paths:
            load_file(path, tracker=args.tracker, dry_run=not args.execute, batch_size=args.batch_size)
    finally:
        close_driver()
