import pytest

import services.history_cache as history_cache
from core.exceptions import InvalidInputError, NotFoundError
from services.history_cache import ROOT_PATH, HistorySnapshot
from tests.conftest import ALICE, BOB, CAROL


class TestSnapshotBuild:
    def test_revisions_newest_first(self, linear_repo):
        builder, (c1, c2, c3) = linear_repo
        snapshot = HistorySnapshot.build(builder.repo)

        assert [r.id for r in snapshot.revisions] == [c3.hexsha, c2.hexsha, c1.hexsha]
        timestamps = [r.timestamp for r in snapshot.revisions]
        assert timestamps == sorted(timestamps, reverse=True)
        assert snapshot.head_id == c3.hexsha

    def test_root_index_covers_every_revision(self, linear_repo):
        builder, _ = linear_repo
        snapshot = HistorySnapshot.build(builder.repo)

        root = snapshot.path_indices[ROOT_PATH]
        assert root.revision_indices == list(range(len(snapshot.revisions)))
        assert {c.email for c in root.contributors} == {ALICE.email, BOB.email}
        assert root.contributors[0].email == ALICE.email
        assert root.contributors[0].commit_count == 2

    def test_committer_time_orders_out_of_order_history(self, builder):
        builder.commit("first", {"a": "1\n"}, timestamp=3000)
        builder.commit("second", {"a": "2\n"}, timestamp=1000)
        latest = builder.commit("third", {"a": "3\n"}, timestamp=2000)

        snapshot = HistorySnapshot.build(builder.repo)

        assert [r.timestamp for r in snapshot.revisions] == [3000, 2000, 1000]
        assert snapshot.head_id == latest.hexsha

    def test_empty_repository_has_no_snapshot(self, builder):
        with pytest.raises(NotFoundError):
            HistorySnapshot.build(builder.repo)

    def test_merge_parents_recorded(self, builder):
        base = builder.commit("base", {"a": "1\n"})
        default_branch = builder.repo.active_branch
        side = builder.repo.create_head("side")
        side.checkout()
        side_commit = builder.commit("side", {"b": "1\n"})
        default_branch.checkout()
        builder.commit("main", {"c": "1\n"})
        builder.repo.git.merge("side", "--no-ff", "-m", "merge side")

        snapshot = HistorySnapshot.build(builder.repo)
        merge = snapshot.revisions[0]

        assert len(merge.parents) == 2
        assert side_commit.hexsha in merge.parents
        assert base.hexsha in [r.id for r in snapshot.revisions]


class TestStaleness:
    def test_valid_until_head_moves(self, linear_repo):
        builder, _ = linear_repo
        snapshot = HistorySnapshot.build(builder.repo)
        assert snapshot.is_valid(builder.repo)

        builder.commit("new", {"h": "x\n"})

        assert not snapshot.is_valid(builder.repo)

    def test_invalid_when_head_unresolvable(self, linear_repo):
        builder, _ = linear_repo
        snapshot = HistorySnapshot.build(builder.repo)

        builder.repo.git.checkout("--orphan", "empty")

        assert not snapshot.is_valid(builder.repo)

    def test_with_cache_rebuilds_after_commit(self, git_repository, linear_repo):
        builder, _ = linear_repo
        first = git_repository.with_cache(lambda cache, repo: cache)
        assert git_repository.with_cache(lambda cache, repo: cache) is first

        new_commit = builder.commit("new", {"h": "x\n"})
        second = git_repository.with_cache(lambda cache, repo: cache)

        assert second is not first
        assert second.revisions[0].id == new_commit.hexsha

    def test_failed_rebuild_drops_previous_snapshot(self, git_repository, linear_repo):
        builder, _ = linear_repo
        git_repository.with_cache(lambda cache, repo: cache)
        builder.repo.git.checkout("--orphan", "empty")

        with pytest.raises(NotFoundError):
            git_repository.with_cache(lambda cache, repo: cache)
        assert git_repository._cache is None


class TestPathIndex:
    def test_linear_history_per_path(self, linear_repo):
        builder, (c1, c2, c3) = linear_repo
        snapshot = HistorySnapshot.build(builder.repo)

        g = snapshot.commits_for_path(builder.repo, "g", 50, 0)
        f = snapshot.commits_for_path(builder.repo, "f", 50, 0)

        assert [c.oid for c in g.commits] == [c3.hexsha]
        assert [c.oid for c in f.commits] == [c2.hexsha]
        assert f.contributors[0].email == BOB.email

    def test_path_is_normalized(self, linear_repo):
        builder, (_, c2, _) = linear_repo
        snapshot = HistorySnapshot.build(builder.repo)

        response = snapshot.commits_for_path(builder.repo, "/f/", 50, 0)

        assert [c.oid for c in response.commits] == [c2.hexsha]
        assert "f" in snapshot.path_indices

    def test_directory_prefix(self, builder):
        builder.commit("a", {"src/a.py": "a\n"})
        builder.commit("docs", {"docs/x.md": "x\n"})
        nested = builder.commit("nested", {"src/pkg/b.py": "b\n"})
        snapshot = HistorySnapshot.build(builder.repo)

        response = snapshot.commits_for_path(builder.repo, "src", 50, 0)

        assert response.total == 2
        assert response.commits[0].oid == nested.hexsha

    def test_unknown_path_is_empty(self, linear_repo):
        builder, _ = linear_repo
        snapshot = HistorySnapshot.build(builder.repo)

        response = snapshot.commits_for_path(builder.repo, "missing", 50, 0)

        assert response.total == 0
        assert response.commits == []
        assert response.has_more is False

    def test_index_built_once(self, linear_repo, monkeypatch):
        builder, _ = linear_repo
        snapshot = HistorySnapshot.build(builder.repo)
        calls = []
        original = history_cache.revision_changes

        def counting(*args, **kwargs):
            calls.append(args[1])
            return original(*args, **kwargs)

        monkeypatch.setattr(history_cache, "revision_changes", counting)

        first = snapshot.commits_for_path(builder.repo, "f", 50, 0)
        walked = len(calls)
        second = snapshot.commits_for_path(builder.repo, "f", 50, 0)

        assert walked == len(snapshot.revisions)
        assert len(calls) == walked
        assert first.model_dump() == second.model_dump()

    def test_stats(self, linear_repo):
        builder, _ = linear_repo
        snapshot = HistorySnapshot.build(builder.repo)
        snapshot.path_index(builder.repo, "f")

        stats = snapshot.stats()

        assert stats.total_commits == 3
        assert stats.cached_paths == 2
        assert stats.age_secs >= 0


@pytest.fixture
def shared_file_snapshot(builder):
    builder.commit("a1", {"shared.txt": "1\n"}, author=ALICE)
    builder.commit("b1", {"shared.txt": "2\n"}, author=BOB)
    builder.commit("c1", {"shared.txt": "3\n"}, author=CAROL)
    builder.commit("b2", {"shared.txt": "4\n"}, author=BOB)
    builder.commit("a2", {"shared.txt": "5\n"}, author=ALICE)
    builder.commit("b3", {"shared.txt": "6\n"}, author=BOB)
    snapshot = HistorySnapshot.build(builder.repo)
    return snapshot, snapshot.path_index(builder.repo, "shared.txt")


class TestQuery:
    def test_exclusion_counts(self, shared_file_snapshot):
        snapshot, index = shared_file_snapshot

        response = snapshot.query(index, 50, 0, [BOB.email])

        assert response.total == 6
        assert response.filtered_total == 3
        assert all(c.author.email != BOB.email for c in response.commits)

    def test_contributors_ignore_filter(self, shared_file_snapshot):
        snapshot, index = shared_file_snapshot

        response = snapshot.query(index, 50, 0, [BOB.email, CAROL.email])

        assert [c.email for c in response.contributors] == [BOB.email, ALICE.email, CAROL.email]
        assert response.filtered_total == 2

    def test_blank_exclusions_ignored(self, shared_file_snapshot):
        snapshot, index = shared_file_snapshot

        response = snapshot.query(index, 50, 0, ["", "nobody@example.com"])

        assert response.filtered_total == response.total == 6

    @pytest.mark.parametrize(
        "limit,offset,expected_count,has_more",
        [
            (2, 0, 2, True),
            (2, 2, 2, True),
            (2, 4, 2, False),
            (5, 3, 3, False),
            (0, 0, 0, True),
            (2, 6, 0, False),
            (2, 10, 0, False),
        ],
    )
    def test_pagination(self, shared_file_snapshot, limit, offset, expected_count, has_more):
        snapshot, index = shared_file_snapshot

        response = snapshot.query(index, limit, offset)

        assert len(response.commits) == expected_count
        assert response.has_more is has_more

    def test_pages_follow_filtered_sequence(self, shared_file_snapshot):
        snapshot, index = shared_file_snapshot

        page = snapshot.query(index, 2, 1, [BOB.email])

        assert [c.message for c in page.commits] == ["c1", "a1"]
        assert page.has_more is False

    def test_negative_values_rejected(self, shared_file_snapshot):
        snapshot, index = shared_file_snapshot

        with pytest.raises(InvalidInputError):
            snapshot.query(index, -1, 0)
        with pytest.raises(InvalidInputError):
            snapshot.query(index, 1, -1)
