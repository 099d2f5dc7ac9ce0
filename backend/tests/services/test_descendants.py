import random
from collections import defaultdict

import pytest
from sqlalchemy import create_engine

from nestegg.core.config import Settings
from nestegg.core.datetime_utils import utcnow_naive
from nestegg.core.errors import StoreError
from nestegg.models import Category
from nestegg.services.descendants import (
    BreadthFirstStrategy,
    DescendantResolver,
    DescendantStrategy,
    RecursiveCteStrategy,
    supports_recursive_cte,
)
from nestegg.services.tree_store import TreeStore


class FailingStrategy(DescendantStrategy):
    name = "failing"

    def __init__(self):
        self.calls = 0

    def descendants(self, store, category_id):
        self.calls += 1
        raise StoreError("recursive queries unsupported")


@pytest.fixture
def sample_tree(service):
    """A -> (B -> D, C) plus an unrelated root E."""
    a = service.create("H1", "A")
    b = service.create("H1", "B", parent_id=a.id)
    c = service.create("H1", "C", parent_id=a.id)
    d = service.create("H1", "D", parent_id=b.id)
    e = service.create("H1", "E")
    return {"A": a, "B": b, "C": c, "D": d, "E": e}


@pytest.fixture(params=["recursive", "iterative"])
def strategy(request):
    if request.param == "recursive":
        return RecursiveCteStrategy(max_levels=10)
    return BreadthFirstStrategy()


class TestDescendantCompleteness:
    def test_returns_exact_descendant_set(self, db, sample_tree, strategy):
        store = TreeStore(db, "H1")

        result = strategy.descendants(store, sample_tree["A"].id)

        assert {r.name for r in result} == {"B", "C", "D"}

    def test_level_ordering(self, db, sample_tree, strategy):
        """Test every node appears after its parent."""
        store = TreeStore(db, "H1")

        result = strategy.descendants(store, sample_tree["A"].id)

        names = [r.name for r in result]
        assert names.index("D") > names.index("B")
        assert set(names[:2]) == {"B", "C"}

    def test_leaf_has_no_descendants(self, db, sample_tree, strategy):
        store = TreeStore(db, "H1")

        assert strategy.descendants(store, sample_tree["D"].id) == []

    def test_soft_deleted_nodes_excluded(self, db, service, sample_tree, strategy):
        service.remove("H1", sample_tree["D"].id)
        store = TreeStore(db, "H1")

        result = strategy.descendants(store, sample_tree["A"].id)

        assert {r.name for r in result} == {"B", "C"}

    def test_other_household_not_visible(self, db, sample_tree, strategy):
        store = TreeStore(db, "H2")

        assert strategy.descendants(store, sample_tree["A"].id) == []

    def test_corrupt_cycle_terminates(self, db, sample_tree, strategy):
        """Test a stored cycle does not loop forever and reports each node once."""
        a = db.get(Category, sample_tree["A"].id)
        a.parent_id = sample_tree["D"].id
        db.commit()
        store = TreeStore(db, "H1")

        result = strategy.descendants(store, sample_tree["A"].id)

        assert sorted(r.name for r in result) == ["B", "C", "D"]


def _random_forest(db, rng, household_id, max_depth=5):
    """Insert a random forest up to ``max_depth`` levels, soft-deleting some inner nodes."""
    rows = []
    frontier = [None]
    for level in range(1, max_depth + 1):
        next_frontier = []
        for parent_id in frontier:
            width = rng.randint(1, 3) if level == 1 else rng.randint(0, 4)
            for _ in range(width):
                row = Category(household_id=household_id, name=f"{household_id}-{len(rows)}", parent_id=parent_id)
                db.add(row)
                db.flush()
                rows.append(row)
                next_frontier.append(row.id)
        frontier = next_frontier

    for row in rows:
        if row.parent_id is not None and rng.random() < 0.15:
            row.deleted_at = utcnow_naive()
    db.commit()
    return rows


def _walk(rows, start_id):
    children = defaultdict(list)
    for row in rows:
        if row.deleted_at is None:
            children[row.parent_id].append(row.id)

    found = set()
    pending = list(children[start_id])
    while pending:
        node_id = pending.pop()
        found.add(node_id)
        pending.extend(children[node_id])
    return found


class TestStrategiesAgreeOnGeneratedTrees:
    @pytest.mark.parametrize("seed", range(12))
    def test_both_strategies_match_reference_walk(self, db, seed):
        rng = random.Random(seed)
        rows = _random_forest(db, rng, "H1")
        _random_forest(db, rng, "H2")
        store = TreeStore(db, "H1")
        recursive = RecursiveCteStrategy(max_levels=10)
        iterative = BreadthFirstStrategy()

        for row in rows:
            if row.deleted_at is not None:
                continue
            expected = _walk(rows, row.id)
            via_cte = [r.id for r in recursive.descendants(store, row.id)]
            via_bfs = [r.id for r in iterative.descendants(store, row.id)]

            assert len(via_cte) == len(set(via_cte))
            assert len(via_bfs) == len(set(via_bfs))
            assert set(via_cte) == set(via_bfs) == expected


class TestDescendantResolver:
    def test_falls_back_when_primary_fails(self, db, sample_tree, caplog):
        store = TreeStore(db, "H1")
        failing = FailingStrategy()
        resolver = DescendantResolver(store, failing, fallback=BreadthFirstStrategy())

        with caplog.at_level("WARNING", logger="nestegg"):
            result = resolver.descendants(sample_tree["A"].id)

        assert failing.calls == 1
        assert {r.name for r in result} == {"B", "C", "D"}
        assert "falling back" in caplog.text

    def test_failure_without_fallback_propagates(self, db, sample_tree):
        store = TreeStore(db, "H1")
        resolver = DescendantResolver(store, FailingStrategy())

        with pytest.raises(StoreError):
            resolver.descendants(sample_tree["A"].id)

    def test_session_usable_after_fallback(self, db, service, sample_tree):
        """Test the savepoint keeps the session writable after a failed native query."""
        store = TreeStore(db, "H1")
        resolver = DescendantResolver(store, FailingStrategy(), fallback=BreadthFirstStrategy())
        resolver.descendants(sample_tree["A"].id)

        created = service.create("H1", "F", parent_id=sample_tree["C"].id)

        assert created.parentId == sample_tree["C"].id

    def test_service_stats_use_fallback(self, db, service, sample_tree, monkeypatch):
        def broken(self, category_id, max_levels=None):
            raise StoreError("no recursive CTE")

        monkeypatch.setattr(TreeStore, "descendants_native", broken)

        stats = service.get_category_stats("H1", sample_tree["A"].id)

        assert stats.statistics.childrenCount == 3

    @pytest.mark.parametrize(
        "mode, primary, fallback",
        [
            ("auto", "recursive", "iterative"),
            ("recursive", "recursive", "iterative"),
            ("iterative", "iterative", None),
        ],
    )
    def test_from_settings(self, db, mode, primary, fallback):
        config = Settings(database_url="sqlite://", descendant_strategy=mode, _env_file=None)

        resolver = DescendantResolver.from_settings(TreeStore(db, "H1"), config)

        assert resolver.primary.name == primary
        assert (resolver.fallback.name if resolver.fallback else None) == fallback

    def test_service_descendants(self, service, sample_tree):
        result = service.get_descendants("H1", sample_tree["B"].id)

        assert [r.name for r in result] == ["D"]


class TestCapabilityProbe:
    def test_sqlite_supports_recursive_cte(self):
        engine = create_engine("sqlite://")

        assert supports_recursive_cte(engine.dialect) is True

    def test_postgresql_supports_recursive_cte(self):
        from sqlalchemy.dialects import postgresql

        assert supports_recursive_cte(postgresql.dialect()) is True
