"""
One-shot maintenance: check and rebuild timeline_node_closure from parent_id.

The closure table is derived data. If it ever drifts from the parent
pointers (manual edits, restored backups), this recomputes the expected rows
per owner, reports the differences, and with --apply replaces the owner's
rows in one transaction.

Usage:
    cd backend
    python scripts/rebuild_closure.py [--apply] [--db careerline.db]
"""

import argparse
import sqlite3
import sys
from pathlib import Path

from careerline.hierarchy.closure import compute_closure


def get_db_path() -> Path:
    """Resolve the database path relative to the backend directory."""
    backend_dir = Path(__file__).resolve().parent.parent
    return backend_dir / "careerline.db"


def check_owner(conn: sqlite3.Connection, owner_id: str, apply: bool) -> bool:
    """Report drift for one owner. Returns True if the owner was consistent."""
    nodes = conn.execute(
        "SELECT node_id, parent_id FROM timeline_nodes WHERE owner_id = ?",
        (owner_id,),
    ).fetchall()
    parents = {n["node_id"]: n["parent_id"] for n in nodes}
    expected = compute_closure(parents)

    stored_rows = conn.execute(
        """
        SELECT c.ancestor_id, c.descendant_id, c.depth
        FROM timeline_node_closure AS c
        JOIN timeline_nodes AS n ON n.node_id = c.descendant_id
        WHERE n.owner_id = ?
        """,
        (owner_id,),
    ).fetchall()
    stored = {(r["ancestor_id"], r["descendant_id"], r["depth"]) for r in stored_rows}

    missing = expected - stored
    unexpected = stored - expected
    if not missing and not unexpected:
        return True

    print(f"Owner {owner_id}: {len(missing)} missing, {len(unexpected)} unexpected row(s)")
    for a, d, depth in sorted(missing):
        print(f"  missing    {a} -> {d} (depth {depth})")
    for a, d, depth in sorted(unexpected):
        print(f"  unexpected {a} -> {d} (depth {depth})")

    if apply:
        node_ids = list(parents)
        placeholders = ", ".join("?" for _ in node_ids)
        with conn:
            conn.execute(
                f"""
                DELETE FROM timeline_node_closure
                WHERE ancestor_id IN ({placeholders}) OR descendant_id IN ({placeholders})
                """,
                (*node_ids, *node_ids),
            )
            conn.executemany(
                "INSERT INTO timeline_node_closure (ancestor_id, descendant_id, depth) "
                "VALUES (?, ?, ?)",
                sorted(expected),
            )
        print(f"  Rebuilt {len(expected)} row(s)")
    return False


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--db", type=Path, default=get_db_path())
    parser.add_argument("--apply", action="store_true", help="rewrite drifted owners")
    args = parser.parse_args()

    if not args.db.exists():
        print(f"Database not found at {args.db}")
        return 1
    print(f"Database: {args.db}")

    conn = sqlite3.connect(str(args.db))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")

    owners = [r["owner_id"] for r in conn.execute(
        "SELECT DISTINCT owner_id FROM timeline_nodes ORDER BY owner_id"
    )]
    drifted = [o for o in owners if not check_owner(conn, o, args.apply)]
    conn.close()

    if not drifted:
        print(f"All {len(owners)} owner(s) consistent.")
        return 0
    print(f"\n{len(drifted)} of {len(owners)} owner(s) drifted.")
    return 0 if args.apply else 2


if __name__ == "__main__":
    sys.exit(main())
