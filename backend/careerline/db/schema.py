"""Database schema DDL. All tables use CREATE IF NOT EXISTS for idempotency."""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS timeline_nodes (
    node_id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    owner_id TEXT NOT NULL,
    parent_id TEXT,
    meta TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (parent_id) REFERENCES timeline_nodes(node_id)
);

CREATE INDEX IF NOT EXISTS idx_timeline_nodes_owner_id ON timeline_nodes(owner_id);
CREATE INDEX IF NOT EXISTS idx_timeline_nodes_parent_id ON timeline_nodes(parent_id);
CREATE INDEX IF NOT EXISTS idx_timeline_nodes_type ON timeline_nodes(type);

CREATE TABLE IF NOT EXISTS timeline_node_closure (
    ancestor_id TEXT NOT NULL,
    descendant_id TEXT NOT NULL,
    depth INTEGER NOT NULL DEFAULT 0 CHECK (depth >= 0),
    PRIMARY KEY (ancestor_id, descendant_id),
    FOREIGN KEY (ancestor_id) REFERENCES timeline_nodes(node_id),
    FOREIGN KEY (descendant_id) REFERENCES timeline_nodes(node_id)
);

CREATE INDEX IF NOT EXISTS idx_closure_ancestor_id ON timeline_node_closure(ancestor_id, depth);
CREATE INDEX IF NOT EXISTS idx_closure_descendant_id ON timeline_node_closure(descendant_id, depth);

CREATE TABLE IF NOT EXISTS node_insights (
    insight_id TEXT PRIMARY KEY,
    node_id TEXT NOT NULL,
    author_id TEXT NOT NULL,
    content TEXT NOT NULL,
    resources TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (node_id) REFERENCES timeline_nodes(node_id)
);

CREATE INDEX IF NOT EXISTS idx_node_insights_node_id ON node_insights(node_id);
"""
