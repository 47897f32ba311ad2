"""End-to-end checks through the FastAPI app against a throwaway repository."""
import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from core.config import configs
from core.git_context import RepositoryHolder
from main import app, container
from tests.conftest import BOB, RepoBuilder

API = f"{configs.API_V1_STR}/repository"


@pytest.fixture
def client(linear_repo):
    builder, _ = linear_repo
    container.repository_holder.override(providers.Object(RepositoryHolder(str(builder.path))))
    with TestClient(app) as test_client:
        yield test_client
    container.repository_holder.reset_override()


def test_root(client):
    assert client.get("/").json() == "service is working"


def test_repository_info(client, linear_repo):
    _, (_, _, c3) = linear_repo

    body = client.get(API).json()

    assert body["head_commit"]["oid"] == c3.hexsha
    assert body["is_empty"] is False


def test_commits_paginated(client, linear_repo):
    _, (_, c2, c3) = linear_repo

    body = client.get(f"{API}/commits", params={"limit": 2}).json()

    assert [c["oid"] for c in body["commits"]] == [c3.hexsha, c2.hexsha]
    assert body["total"] == 3
    assert body["has_more"] is True


def test_commits_exclude_authors(client):
    body = client.get(f"{API}/commits", params={"exclude_authors": f"{BOB.email}, "}).json()

    assert body["total"] == 3
    assert body["filtered_total"] == 2
    assert BOB.email in [c["email"] for c in body["contributors"]]


def test_commits_for_path(client, linear_repo):
    _, (_, c2, _) = linear_repo

    body = client.get(f"{API}/commits", params={"path": "f"}).json()

    assert [c["oid"] for c in body["commits"]] == [c2.hexsha]


def test_negative_limit_rejected(client):
    assert client.get(f"{API}/commits", params={"limit": -1}).status_code == 422


def test_diff(client, linear_repo):
    _, (c1, _, c3) = linear_repo

    response = client.get(f"{API}/diff", params={"from": c1.hexsha, "to": c3.hexsha})

    assert response.status_code == 200
    body = response.json()
    assert {f["new_path"] for f in body["files"]} == {"f", "g"}
    assert body["stats"]["files_changed"] == 2


def test_diff_unknown_revision(client):
    response = client.get(f"{API}/diff", params={"to": "does-not-exist"})

    assert response.status_code == 404


def test_diff_malformed_revision(client):
    response = client.get(f"{API}/diff", params={"to": "--all"})

    assert response.status_code == 400


def test_authors(client, linear_repo):
    _, (c1, _, c3) = linear_repo

    body = client.get(f"{API}/authors", params={"from": c1.hexsha, "to": c3.hexsha}).json()

    assert body["f"][0]["email"] == BOB.email


def test_working_tree(client, linear_repo):
    builder, _ = linear_repo
    builder.write("g", "alpha\nbeta\n")

    status = client.get(f"{API}/working-tree/status").json()
    diff = client.get(f"{API}/working-tree/diff").json()

    assert status == {"has_changes": True, "files_changed": 1}
    assert diff["to_commit"] == configs.WORKING_TREE_ID
    assert diff["stats"]["insertions"] == 1


def test_blame(client):
    body = client.get(f"{API}/blame", params={"path": "f"}).json()

    assert [l["author_email"] for l in body["lines"]] == [BOB.email, BOB.email]


def test_blame_missing_file(client):
    assert client.get(f"{API}/blame", params={"path": "nope"}).status_code == 404


def test_branches_and_checkout(client, linear_repo):
    builder, _ = linear_repo
    builder.repo.create_head("develop")

    names = [b["name"] for b in client.get(f"{API}/branches").json()]
    response = client.post(f"{API}/checkout", json={"branch": "develop"})

    assert "develop" in names
    assert response.json() == {"status": "success", "branch": "develop"}
    assert client.get(API).json()["head_branch"] == "develop"


def test_checkout_conflict(client, linear_repo):
    builder, _ = linear_repo
    builder.repo.create_head("develop")
    builder.write("f", "dirty working copy\n")

    response = client.post(f"{API}/checkout", json={"branch": "develop"})

    assert response.status_code == 409
    assert "uncommitted changes" in response.json()["detail"]


def test_switch_and_cache(client, tmp_path):
    other = RepoBuilder(tmp_path / "other")
    only = other.commit("only", {"x": "1\n"})

    switched = client.post(f"{API}/switch", json={"path": str(other.path)})
    commits = client.get(f"{API}/commits").json()
    cache = client.get(f"{API}/cache").json()

    assert switched.json()["name"] == "other"
    assert [c["oid"] for c in commits["commits"]] == [only.hexsha]
    assert cache["total_commits"] == 1


def test_switch_missing_repository(client, tmp_path):
    response = client.post(f"{API}/switch", json={"path": str(tmp_path / "missing")})

    assert response.status_code == 404


def test_directory_info(client):
    body = client.get(f"{API}/directory-info").json()

    assert body["file_count"] == 3
    assert body["latest_commit"] is not None


def test_tree(client, linear_repo):
    _, (_, c2, _) = linear_repo

    entries = {e["path"]: e for e in client.get(f"{API}/tree").json()}

    assert set(entries) == {"README.md", "f", "g"}
    assert entries["f"]["entry_type"] == "file"
    assert entries["f"]["last_commit"]["oid"] == c2.hexsha


def test_full_tree(client):
    body = client.get(f"{API}/tree/full").json()

    assert sorted(e["name"] for e in body) == ["README.md", "f", "g"]


def test_file_content(client):
    assert client.get(f"{API}/file", params={"path": "f"}).json() == "one\ntwo\n"
    assert client.get(f"{API}/file", params={"path": "missing"}).status_code == 404
