"""Hierarchy rules: which node types may carry children, and cycle checks."""

from pathlib import Path

import yaml

from careerline.db.connection import Database
from careerline.hierarchy.errors import CycleError, HierarchyViolation, ValidationError
from careerline.models import NODE_TYPES

DEFAULT_RULES_PATH = Path(__file__).parent.parent / "hierarchy_rules.yml"


def load_hierarchy_rules(path: Path | str | None = None) -> dict[str, frozenset[str]]:
    """Load the parent type -> accepted child types table from YAML.

    Every known node type gets an entry; types missing from the file are
    leaves. Unknown type names in the file are rejected.
    """
    rules_path = Path(path) if path is not None else DEFAULT_RULES_PATH
    with open(rules_path) as f:
        data = yaml.safe_load(f) or {}

    raw = data.get("rules", {})
    rules: dict[str, frozenset[str]] = {t: frozenset() for t in NODE_TYPES}
    for parent_type, children in raw.items():
        names = {parent_type, *(children or [])}
        unknown = names - set(NODE_TYPES)
        if unknown:
            raise ValidationError(
                f"Unknown node types in hierarchy rules {rules_path}: {sorted(unknown)}"
            )
        rules[parent_type] = frozenset(children or [])
    return rules


class HierarchyValidator:
    """Enforces the type-nesting table and rejects cycles via the closure index."""

    def __init__(
        self, db: Database, rules: dict[str, frozenset[str]] | None = None,
    ) -> None:
        self._db = db
        self._rules = rules if rules is not None else load_hierarchy_rules()

    @property
    def rules(self) -> dict[str, frozenset[str]]:
        return self._rules

    def is_parentable(self, node_type: str) -> bool:
        return bool(self._rules.get(node_type))

    def validate_new_edge(self, parent_type: str, child_type: str | None = None) -> None:
        """Raise HierarchyViolation unless parent_type may hold (this) child."""
        allowed = self._rules.get(parent_type, frozenset())
        if not allowed:
            raise HierarchyViolation(parent_type)
        if child_type is not None and child_type not in allowed:
            raise HierarchyViolation(parent_type, child_type)

    async def validate_no_cycle(self, node_id: str, proposed_parent_id: str) -> None:
        """Raise CycleError if proposed_parent_id is node_id or one of its descendants."""
        if node_id == proposed_parent_id:
            raise CycleError(node_id, proposed_parent_id)
        row = await self._db.fetchone(
            """
            SELECT 1 FROM timeline_node_closure
            WHERE ancestor_id = ? AND descendant_id = ? AND depth > 0
            """,
            (node_id, proposed_parent_id),
        )
        if row is not None:
            raise CycleError(node_id, proposed_parent_id)
