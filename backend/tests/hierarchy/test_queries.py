"""Tests for closure-backed tree queries."""

import pytest

from careerline.hierarchy.errors import NotFoundError
from careerline.hierarchy.queries import build_forest
from careerline.models import TimelineNode
from tests.fixtures import OTHER_OWNER, OWNER, closure_rows, create_chain, make_meta


def _node(node_id, parent_id=None, node_type="job"):
    return TimelineNode(
        id=node_id,
        type=node_type,
        owner_id=OWNER,
        parent_id=parent_id,
        meta={"title": node_id},
        created_at="2024-01-01T00:00:00+00:00",
        updated_at="2024-01-01T00:00:00+00:00",
    )


class TestPointQueries:
    async def test_children_in_creation_order(self, node_service, queries):
        (job,) = await create_chain(node_service, ["job"])
        first = await node_service.create_node("action", make_meta("a"), OWNER, parent_id=job.id)
        second = await node_service.create_node("event", make_meta("b"), OWNER, parent_id=job.id)
        third = await node_service.create_node("project", make_meta("c"), OWNER, parent_id=job.id)

        children = await queries.get_children(job.id)

        assert [c.id for c in children] == [first.id, second.id, third.id]

    async def test_children_of_leaf_empty(self, node_service, queries):
        job, project = await create_chain(node_service, ["job", "project"])
        assert await queries.get_children(project.id) == []

    async def test_children_excludes_grandchildren(self, node_service, queries):
        job, action, project = await create_chain(node_service, ["job", "action", "project"])
        assert [c.id for c in await queries.get_children(job.id)] == [action.id]

    async def test_descendants_shallowest_first(self, node_service, queries):
        job, action, project = await create_chain(node_service, ["job", "action", "project"])
        event = await node_service.create_node("event", make_meta(), OWNER, parent_id=job.id)

        descendants = await queries.get_descendants(job.id)

        assert [d.id for d in descendants] == [action.id, event.id, project.id]

    async def test_descendant_ids_start_with_self(self, node_service, queries):
        job, action, project = await create_chain(node_service, ["job", "action", "project"])
        assert await queries.get_descendant_ids(job.id) == [job.id, action.id, project.id]

    async def test_ancestors_nearest_first(self, node_service, queries):
        ct, event, action, project = await create_chain(
            node_service, ["careerTransition", "event", "action", "project"],
        )
        ancestors = await queries.get_ancestors(project.id)
        assert [a.id for a in ancestors] == [action.id, event.id, ct.id]

    async def test_root_has_no_ancestors(self, node_service, queries):
        (job,) = await create_chain(node_service, ["job"])
        assert await queries.get_ancestors(job.id) == []

    @pytest.mark.parametrize(
        "method", ["get_node", "get_children", "get_descendants", "get_ancestors", "get_subtree"],
    )
    async def test_missing_anchor_not_found(self, queries, method):
        with pytest.raises(NotFoundError, match="Node not found: ghost"):
            await getattr(queries, method)("ghost")

    async def test_reads_do_not_write(self, db, node_service, queries):
        job, action, project = await create_chain(node_service, ["job", "action", "project"])
        before = await closure_rows(db)

        first = await queries.get_descendants(job.id)
        second = await queries.get_descendants(job.id)
        await queries.get_ancestors(project.id)
        await queries.build_tree(OWNER)

        assert first == second
        assert await closure_rows(db) == before


class TestSubtree:
    async def test_unbounded_includes_anchor(self, node_service, queries):
        job, action, project = await create_chain(node_service, ["job", "action", "project"])
        subtree = await queries.get_subtree(job.id)
        assert [n.id for n in subtree] == [job.id, action.id, project.id]

    async def test_max_depth_limits_levels(self, node_service, queries):
        job, action, project = await create_chain(node_service, ["job", "action", "project"])
        assert [n.id for n in await queries.get_subtree(job.id, max_depth=1)] == [
            job.id, action.id,
        ]
        assert [n.id for n in await queries.get_subtree(job.id, max_depth=0)] == [job.id]


class TestOwnerQueries:
    async def test_roots_are_scoped_to_owner(self, node_service, queries):
        job, action = await create_chain(node_service, ["job", "action"])
        (education,) = await create_chain(node_service, ["education"])
        await create_chain(node_service, ["job"], owner_id=OTHER_OWNER)

        roots = await queries.get_roots(OWNER)

        assert [r.id for r in roots] == [job.id, education.id]

    async def test_nodes_filtered_by_type(self, node_service, queries):
        job, action, project = await create_chain(node_service, ["job", "action", "project"])
        (other_job,) = await create_chain(node_service, ["job"])

        jobs = await queries.get_nodes(OWNER, node_type="job")
        everything = await queries.get_nodes(OWNER)

        assert [n.id for n in jobs] == [job.id, other_job.id]
        assert len(everything) == 4

    async def test_build_tree_nests_children(self, node_service, queries):
        job, action, project = await create_chain(node_service, ["job", "action", "project"])
        event = await node_service.create_node("event", make_meta(), OWNER, parent_id=job.id)
        (education,) = await create_chain(node_service, ["education"])

        forest = await queries.build_tree(OWNER)

        assert [t.node.id for t in forest] == [job.id, education.id]
        job_tree = forest[0]
        assert [c.node.id for c in job_tree.children] == [action.id, event.id]
        assert [c.node.id for c in job_tree.children[0].children] == [project.id]
        assert forest[1].children == []

    async def test_build_tree_for_empty_owner(self, queries):
        assert await queries.build_tree("nobody") == []

    async def test_stats(self, node_service, queries):
        await create_chain(node_service, ["job", "action", "project"])
        await create_chain(node_service, ["education", "event"])
        await create_chain(node_service, ["job"], owner_id=OTHER_OWNER)

        stats = await queries.get_stats(OWNER)

        assert stats.total_nodes == 5
        assert stats.nodes_by_type == {
            "job": 1, "action": 1, "project": 1, "education": 1, "event": 1,
        }
        assert stats.root_nodes == 2
        assert stats.max_depth == 2

    async def test_stats_for_empty_owner(self, queries):
        stats = await queries.get_stats("nobody")
        assert stats.total_nodes == 0
        assert stats.nodes_by_type == {}
        assert stats.max_depth == 0


class TestBuildForest:
    def test_orphan_becomes_root(self):
        nodes = [_node("a"), _node("b", parent_id="a"), _node("c", parent_id="hidden")]
        forest = build_forest(nodes)
        assert [t.node.id for t in forest] == ["a", "c"]
        assert [c.node.id for c in forest[0].children] == ["b"]

    def test_sibling_order_follows_input(self):
        nodes = [_node("a"), _node("z", parent_id="a"), _node("m", parent_id="a")]
        forest = build_forest(nodes)
        assert [c.node.id for c in forest[0].children] == ["z", "m"]

    def test_child_listed_before_parent(self):
        nodes = [_node("b", parent_id="a"), _node("a")]
        forest = build_forest(nodes)
        assert [t.node.id for t in forest] == ["a"]
        assert [c.node.id for c in forest[0].children] == ["b"]

    def test_empty(self):
        assert build_forest([]) == []
