"""Tests for the GitHub adapter."""

from __future__ import annotations

import base64
import json

import pytest
from httpx import Response

from mcp_git.exceptions import GitApiError, GitNotFoundError
from mcp_git.models.common import CommentListParams
from mcp_git.models.issues import IssueCreateParams, IssueListParams, IssueUpdateParams
from mcp_git.models.pipelines import JobListParams, PipelineListParams
from mcp_git.models.pull_requests import PullRequestListParams, PullRequestMergeParams
from mcp_git.models.repositories import (
    BranchCreateParams,
    BranchListParams,
    CommitListParams,
    SearchCodeParams,
    TreeParams,
)

USER = {"id": 1, "login": "octocat", "html_url": "https://github.com/octocat"}
SHA = "c" * 40


def _issue(**overrides) -> dict:
    issue = {
        "id": 100,
        "number": 4,
        "title": "Broken build",
        "body": "It fails",
        "state": "open",
        "user": USER,
        "assignees": [],
        "labels": [{"name": "bug"}],
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-02T00:00:00Z",
        "closed_at": None,
        "html_url": "https://github.com/o/r/issues/4",
    }
    issue.update(overrides)
    return issue


def _pr(**overrides) -> dict:
    pr = {
        "id": 200,
        "number": 7,
        "title": "Add feature",
        "body": None,
        "state": "open",
        "user": USER,
        "head": {"ref": "feature", "repo": {"full_name": "o/r"}},
        "base": {"ref": "main", "repo": {"full_name": "o/r"}},
        "draft": False,
        "merged": False,
        "mergeable": None,
        "merged_at": None,
        "html_url": "https://github.com/o/r/pull/7",
    }
    pr.update(overrides)
    return pr


def _job(job_id: int, status: str, conclusion: str | None) -> dict:
    return {
        "id": job_id,
        "name": f"job-{job_id}",
        "status": status,
        "conclusion": conclusion,
        "workflow_name": "CI",
        "created_at": "2024-01-01T00:00:00Z",
        "started_at": "2024-01-01T00:00:00Z",
        "completed_at": "2024-01-01T00:02:00Z" if status == "completed" else None,
        "html_url": f"https://github.com/o/r/actions/runs/1/job/{job_id}",
    }


class TestIssues:
    async def test_list_drops_pull_requests(self, github, github_api):
        route = github_api.get("/repos/o/r/issues").mock(
            return_value=Response(
                200, json=[_issue(), _issue(number=5, pull_request={"url": "x"})]
            )
        )
        issues = await github.issues.list("o/r", IssueListParams(state="open", assignee_id=9))
        assert [i.iid for i in issues] == [4]
        assert issues[0].labels == ["bug"]
        query = route.calls.last.request.url.params
        assert query["state"] == "open"
        assert query["assignee"] == "9"

    async def test_list_with_search_uses_search_api(self, github, github_api):
        route = github_api.get("/search/issues").mock(
            return_value=Response(200, json={"total_count": 1, "items": [_issue()]})
        )
        issues = await github.issues.list("o/r", IssueListParams(search="crash", state="closed"))
        assert len(issues) == 1
        assert route.calls.last.request.url.params["q"] == "crash repo:o/r is:issue state:closed"

    async def test_create_then_update_round_trip(self, github, github_api):
        create = github_api.post("/repos/o/r/issues").mock(
            return_value=Response(201, json=_issue(title="New"))
        )
        update = github_api.patch("/repos/o/r/issues/4").mock(
            return_value=Response(200, json=_issue(title="New", state="closed"))
        )
        created = await github.issues.create(
            "o/r", IssueCreateParams(title="New", description="body", labels=["bug"])
        )
        updated = await github.issues.update("o/r", created.iid, IssueUpdateParams(state="closed"))
        assert json.loads(create.calls.last.request.content) == {
            "title": "New",
            "body": "body",
            "labels": ["bug"],
        }
        assert json.loads(update.calls.last.request.content) == {"state": "closed"}
        assert updated.state == "closed"
        assert (updated.title, updated.labels) == (created.title, created.labels)

    async def test_invalid_repo(self, github):
        with pytest.raises(GitApiError) as exc_info:
            await github.issues.get("just-a-name", 1)
        assert exc_info.value.status_code == 400


class TestPullRequests:
    async def test_merged_filter(self, github, github_api):
        route = github_api.get("/repos/o/r/pulls").mock(
            return_value=Response(
                200,
                json=[
                    _pr(number=1, state="closed", merged_at="2024-01-02T00:00:00Z"),
                    _pr(number=2, state="closed"),
                ],
            )
        )
        prs = await github.pull_requests.list("o/r", PullRequestListParams(state="merged"))
        assert [p.iid for p in prs] == [1]
        assert prs[0].state == "merged"
        assert route.calls.last.request.url.params["state"] == "closed"

    async def test_mergeable_null_is_false(self, github, github_api):
        github_api.get("/repos/o/r/pulls/7").mock(return_value=Response(200, json=_pr()))
        pr = await github.pull_requests.get("o/r", 7)
        assert pr.mergeable is False
        assert pr.source_branch == "feature"

    async def test_merge_deletes_branch(self, github, github_api):
        merge = github_api.put("/repos/o/r/pulls/7/merge").mock(
            return_value=Response(200, json={"merged": True, "sha": SHA})
        )
        github_api.get("/repos/o/r/pulls/7").mock(
            return_value=Response(
                200, json=_pr(state="closed", merged=True, merged_at="2024-01-02T00:00:00Z")
            )
        )
        delete = github_api.delete("/repos/o/r/git/refs/heads/feature").mock(
            return_value=Response(204)
        )
        params = PullRequestMergeParams(commit_message="Ship", squash=True, delete_branch=True)
        pr = await github.pull_requests.merge("o/r", 7, params)
        assert pr.state == "merged"
        assert json.loads(merge.calls.last.request.content) == {
            "merge_method": "squash",
            "commit_message": "Ship",
        }
        assert delete.called

    async def test_merge_survives_failed_branch_delete(self, github, github_api, caplog):
        github_api.put("/repos/o/r/pulls/7/merge").mock(
            return_value=Response(200, json={"merged": True, "sha": SHA})
        )
        github_api.get("/repos/o/r/pulls/7").mock(
            return_value=Response(
                200, json=_pr(state="closed", merged=True, merged_at="2024-01-02T00:00:00Z")
            )
        )
        github_api.delete("/repos/o/r/git/refs/heads/feature").mock(
            return_value=Response(422, json={"message": "Reference does not exist"})
        )
        pr = await github.pull_requests.merge("o/r", 7, PullRequestMergeParams(delete_branch=True))
        assert pr.state == "merged"
        assert "could not delete feature" in caplog.text

    async def test_merge_leaves_fork_branch_alone(self, github, github_api):
        github_api.put("/repos/o/r/pulls/7/merge").mock(
            return_value=Response(200, json={"merged": True, "sha": SHA})
        )
        github_api.get("/repos/o/r/pulls/7").mock(
            return_value=Response(
                200,
                json=_pr(
                    state="closed",
                    merged=True,
                    head={"ref": "feature", "repo": {"full_name": "someone/r"}},
                ),
            )
        )
        delete = github_api.delete("/repos/o/r/git/refs/heads/feature")
        pr = await github.pull_requests.merge("o/r", 7, PullRequestMergeParams(delete_branch=True))
        assert pr.state == "merged"
        assert not delete.called

    async def test_comments(self, github, github_api):
        route = github_api.get("/repos/o/r/issues/7/comments").mock(
            return_value=Response(
                200,
                json=[
                    {"id": 1, "body": "LGTM", "user": USER, "created_at": "2024-01-01T00:00:00Z"},
                    {"id": 2, "body": None, "user": USER},
                ],
            )
        )
        comments = await github.pull_requests.list_comments(
            "o/r", 7, CommentListParams(sort="desc", per_page=5)
        )
        assert [(c.id, c.body, c.author.username) for c in comments] == [
            (1, "LGTM", "octocat"),
            (2, "", "octocat"),
        ]
        query = route.calls.last.request.url.params
        assert query["direction"] == "desc"
        assert query["per_page"] == "5"

    async def test_diffs(self, github, github_api):
        github_api.get("/repos/o/r/pulls/7/files").mock(
            return_value=Response(
                200,
                json=[
                    {"filename": "new.py", "status": "added", "patch": "+x"},
                    {"filename": "b.py", "previous_filename": "a.py", "status": "renamed"},
                ],
            )
        )
        diffs = await github.pull_requests.get_diffs("o/r", 7)
        assert diffs[0].new_file is True
        assert diffs[1].old_path == "a.py"
        assert diffs[1].diff == ""


class TestContent:
    async def test_file(self, github, github_api):
        github_api.get("/repos/o/r/contents/src/app.py").mock(
            return_value=Response(
                200,
                json={
                    "type": "file",
                    "name": "app.py",
                    "path": "src/app.py",
                    "size": 5,
                    "sha": "f1",
                    "encoding": "base64",
                    "content": base64.b64encode(b"hello").decode(),
                },
            )
        )
        content = await github.repository.get_content("o/r", "src/app.py")
        assert content.type == "file"
        assert content.content == "hello"
        assert content.sha == "f1"

    async def test_directory(self, github, github_api):
        route = github_api.get("/repos/o/r/contents/src").mock(
            return_value=Response(
                200,
                json=[
                    {"type": "dir", "name": "lib", "path": "src/lib", "sha": "d1"},
                    {"type": "file", "name": "app.py", "path": "src/app.py", "sha": "f1"},
                ],
            )
        )
        content = await github.repository.get_content("o/r", "src", ref="dev")
        assert content.type == "directory"
        assert [e.type for e in content.entries] == ["directory", "file"]
        assert route.calls.last.request.url.params["ref"] == "dev"

    async def test_large_file_read_from_blob(self, github, github_api):
        github_api.get("/repos/o/r/contents/big.txt").mock(
            return_value=Response(
                200,
                json={
                    "type": "file",
                    "name": "big.txt",
                    "path": "big.txt",
                    "size": 5_000_000,
                    "sha": "f2",
                    "encoding": "none",
                    "content": "",
                },
            )
        )
        blob = github_api.get("/repos/o/r/git/blobs/f2").mock(
            return_value=Response(
                200,
                json={
                    "sha": "f2",
                    "size": 5_000_000,
                    "encoding": "base64",
                    "content": base64.b64encode(b"large body").decode(),
                },
            )
        )
        content = await github.repository.get_content("o/r", "big.txt")
        assert blob.called
        assert content.type == "file"
        assert content.content == "large body"
        assert content.size == 5_000_000

    async def test_large_file_without_blob_content(self, github, github_api):
        github_api.get("/repos/o/r/contents/big.txt").mock(
            return_value=Response(
                200,
                json={
                    "type": "file",
                    "name": "big.txt",
                    "path": "big.txt",
                    "size": 5_000_000,
                    "sha": "f2",
                    "content": "",
                },
            )
        )
        github_api.get("/repos/o/r/git/blobs/f2").mock(
            return_value=Response(200, json={"sha": "f2", "encoding": "none"})
        )
        with pytest.raises(GitApiError) as exc_info:
            await github.repository.get_content("o/r", "big.txt")
        assert exc_info.value.status_code == 413

    async def test_empty_file_needs_no_blob(self, github, github_api):
        github_api.get("/repos/o/r/contents/empty.txt").mock(
            return_value=Response(
                200,
                json={
                    "type": "file",
                    "name": "empty.txt",
                    "path": "empty.txt",
                    "size": 0,
                    "sha": "e0",
                    "encoding": "base64",
                    "content": "",
                },
            )
        )
        blob = github_api.get("/repos/o/r/git/blobs/e0")
        content = await github.repository.get_content("o/r", "empty.txt")
        assert content.content == ""
        assert not blob.called

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "submodule", "submodule_git_url": "https://github.com/o/lib.git"},
            {"type": "symlink", "target": "../outside"},
        ],
    )
    async def test_non_file_objects_rejected(self, github, github_api, payload):
        github_api.get("/repos/o/r/contents/vendor/lib").mock(
            return_value=Response(
                200, json={"name": "lib", "path": "vendor/lib", "sha": "s1", **payload}
            )
        )
        with pytest.raises(GitApiError) as exc_info:
            await github.repository.get_content("o/r", "vendor/lib")
        assert exc_info.value.status_code == 400
        assert payload["type"] in exc_info.value.message
        assert exc_info.value.details["type"] == payload["type"]


def _tree(paths: list[tuple[str, str]]) -> dict:
    return {
        "sha": "t0",
        "tree": [
            {"path": p, "type": t, "mode": "040000" if t == "tree" else "100644", "sha": p}
            for p, t in paths
        ],
        "truncated": False,
    }


TREE = [
    ("README.md", "blob"),
    ("src", "tree"),
    ("src/a.py", "blob"),
    ("src/b.py", "blob"),
    ("src/lib", "tree"),
    ("src/lib/c.py", "blob"),
    ("srcs.txt", "blob"),
]


class TestTree:
    async def test_head_falls_back_to_master(self, github, github_api):
        github_api.get("/repos/o/r/git/ref/heads/main").mock(return_value=Response(404))
        github_api.get("/repos/o/r/git/ref/heads/master").mock(
            return_value=Response(200, json={"object": {"sha": SHA}})
        )
        route = github_api.get(f"/repos/o/r/git/trees/{SHA}").mock(
            return_value=Response(200, json=_tree(TREE))
        )
        entries = await github.repository.get_tree("o/r")
        assert [e.path for e in entries] == ["README.md", "src", "srcs.txt"]
        assert "recursive" not in route.calls.last.request.url.params

    async def test_path_filter_direct_children(self, github, github_api):
        github_api.get("/repos/o/r/git/ref/heads/dev").mock(
            return_value=Response(200, json={"object": {"sha": SHA}})
        )
        route = github_api.get(f"/repos/o/r/git/trees/{SHA}").mock(
            return_value=Response(200, json=_tree(TREE))
        )
        entries = await github.repository.get_tree("o/r", TreeParams(path="src/", ref="dev"))
        assert [(e.name, e.type) for e in entries] == [
            ("a.py", "file"),
            ("b.py", "file"),
            ("lib", "directory"),
        ]
        assert route.calls.last.request.url.params["recursive"] == "1"

    async def test_path_filter_recursive(self, github, github_api):
        github_api.get(f"/repos/o/r/git/trees/{SHA}").mock(
            return_value=Response(200, json=_tree(TREE))
        )
        params = TreeParams(path="src", ref=SHA, recursive=True)
        entries = await github.repository.get_tree("o/r", params)
        assert [e.path for e in entries] == ["src/a.py", "src/b.py", "src/lib", "src/lib/c.py"]

    @pytest.mark.parametrize(("page", "per_page"), [(1, 2), (2, 2), (3, 2), (1, 3), (2, 3), (4, 1)])
    async def test_pagination_slices(self, github, github_api, page, per_page):
        github_api.get(f"/repos/o/r/git/trees/{SHA}").mock(
            return_value=Response(200, json=_tree(TREE))
        )
        params = TreeParams(ref=SHA, recursive=True, page=page, per_page=per_page)
        entries = await github.repository.get_tree("o/r", params)
        expected = [p for p, _ in TREE][(page - 1) * per_page : page * per_page]
        assert [e.path for e in entries] == expected

    async def test_page_past_end(self, github, github_api):
        github_api.get(f"/repos/o/r/git/trees/{SHA}").mock(
            return_value=Response(200, json=_tree(TREE))
        )
        params = TreeParams(ref=SHA, recursive=True, page=5, per_page=10)
        assert await github.repository.get_tree("o/r", params) == []

    async def test_unknown_branch(self, github, github_api):
        github_api.get("/repos/o/r/git/ref/heads/nope").mock(return_value=Response(404))
        with pytest.raises(GitNotFoundError):
            await github.repository.get_tree("o/r", TreeParams(ref="nope"))


class TestBranches:
    async def test_create_from_branch(self, github, github_api):
        github_api.get("/repos/o/r/git/ref/heads/main").mock(
            return_value=Response(200, json={"object": {"sha": SHA}})
        )
        create = github_api.post("/repos/o/r/git/refs").mock(
            return_value=Response(201, json={"ref": "refs/heads/feature"})
        )
        github_api.get("/repos/o/r/branches/feature").mock(
            return_value=Response(200, json={"name": "feature", "commit": {"sha": SHA}})
        )
        branch = await github.repository.create_branch(
            "o/r", BranchCreateParams(name="feature", ref="main")
        )
        assert branch.sha == SHA
        assert json.loads(create.calls.last.request.content) == {
            "ref": "refs/heads/feature",
            "sha": SHA,
        }

    async def test_create_from_sha(self, github, github_api):
        github_api.get(f"/repos/o/r/git/ref/heads/{SHA}").mock(return_value=Response(404))
        create = github_api.post("/repos/o/r/git/refs").mock(return_value=Response(201, json={}))
        github_api.get("/repos/o/r/branches/feature").mock(
            return_value=Response(200, json={"name": "feature", "commit": {"sha": SHA}})
        )
        await github.repository.create_branch("o/r", BranchCreateParams(name="feature", ref=SHA))
        assert json.loads(create.calls.last.request.content)["sha"] == SHA

    async def test_list_marks_default(self, github, github_api):
        github_api.get("/repos/o/r/branches").mock(
            return_value=Response(
                200,
                json=[
                    {"name": "main", "commit": {"sha": "1"}, "protected": True},
                    {"name": "feature-x", "commit": {"sha": "2"}},
                    {"name": "fix", "commit": {"sha": "3"}},
                ],
            )
        )
        github_api.get("/repos/o/r").mock(
            return_value=Response(200, json={"default_branch": "main"})
        )
        branches = await github.repository.list_branches("o/r")
        assert [(b.name, b.default) for b in branches] == [
            ("main", True),
            ("feature-x", False),
            ("fix", False),
        ]
        found = await github.repository.list_branches("o/r", BranchListParams(search="feat"))
        assert [b.name for b in found] == ["feature-x"]


def _rest_commit(sha: str, **extra) -> dict:
    return {
        "sha": sha,
        "commit": {
            "message": "Fix bug",
            "author": {"name": "Octo", "email": "octo@example.com", "date": "2024-01-01T00:00:00Z"},
        },
        "html_url": f"https://github.com/o/r/commit/{sha}",
        **extra,
    }


class TestCommits:
    async def test_list(self, github, github_api):
        route = github_api.get("/repos/o/r/commits").mock(
            return_value=Response(200, json=[_rest_commit(SHA)])
        )
        commits = await github.repository.list_commits(
            "o/r", CommitListParams(ref="dev", path="src", author="octo", per_page=10)
        )
        assert commits[0].sha == SHA
        assert commits[0].short_sha == SHA[:7]
        assert commits[0].author_email == "octo@example.com"
        assert commits[0].stats is None
        query = route.calls.last.request.url.params
        assert query["sha"] == "dev"
        assert query["path"] == "src"
        assert query["author"] == "octo"
        assert query["per_page"] == "10"

    async def test_with_stats_fetches_each_commit(self, github, github_api):
        other = "d" * 40
        github_api.get("/repos/o/r/commits").mock(
            return_value=Response(200, json=[_rest_commit(SHA), _rest_commit(other)])
        )
        stats = {"additions": 3, "deletions": 1, "total": 4}
        details = [
            github_api.get(f"/repos/o/r/commits/{sha}").mock(
                return_value=Response(200, json=_rest_commit(sha, stats=stats))
            )
            for sha in (SHA, other)
        ]
        commits = await github.repository.list_commits("o/r", CommitListParams(with_stats=True))
        assert all(d.call_count == 1 for d in details)
        assert [c.sha for c in commits] == [SHA, other]
        assert all(c.stats.total == 4 for c in commits)


async def test_search_code(github, github_api):
    route = github_api.get("/search/code").mock(
        return_value=Response(
            200,
            json={
                "items": [
                    {"path": "app.py", "text_matches": [{"fragment": "def run():\n    pass"}]}
                ]
            },
        )
    )
    results = await github.repository.search_code("o/r", SearchCodeParams(query="run"))
    assert results[0].matched_lines == ["def run():", "    pass"]
    assert results[0].ref == "HEAD"
    request = route.calls.last.request
    assert request.url.params["q"] == "run repo:o/r"
    assert request.headers["Accept"] == "application/vnd.github.text-match+json"


class TestActions:
    async def test_job_status_filter(self, github, github_api):
        github_api.get("/repos/o/r/actions/runs/1/jobs").mock(
            return_value=Response(
                200,
                json={
                    "jobs": [
                        _job(1, "completed", "failure"),
                        _job(2, "completed", "timed_out"),
                        _job(3, "completed", "success"),
                        _job(4, "in_progress", None),
                    ]
                },
            )
        )
        jobs = await github.ci.list_jobs("o/r", 1, JobListParams(status="failed"))
        assert [j.id for j in jobs] == [1, 2]
        assert all(j.status == "failed" for j in jobs)
        assert jobs[0].duration == 120
        assert jobs[0].stage == "CI"

    async def test_running_job_has_no_duration(self, github, github_api):
        github_api.get("/repos/o/r/actions/runs/1/jobs").mock(
            return_value=Response(200, json={"jobs": [_job(4, "in_progress", None)]})
        )
        jobs = await github.ci.list_jobs("o/r", 1)
        assert jobs[0].status == "running"
        assert jobs[0].duration is None

    async def test_list_pipelines_maps_status_query(self, github, github_api):
        route = github_api.get("/repos/o/r/actions/runs").mock(
            return_value=Response(
                200,
                json={
                    "workflow_runs": [
                        {"id": 1, "status": "completed", "conclusion": "cancelled"},
                        {"id": 2, "status": "completed", "conclusion": "success"},
                    ]
                },
            )
        )
        runs = await github.ci.list_pipelines("o/r", PipelineListParams(status="canceled"))
        assert [r.id for r in runs] == [1]
        assert route.calls.last.request.url.params["status"] == "completed"

    async def test_failed_runs_include_timeouts(self, github, github_api):
        route = github_api.get("/repos/o/r/actions/runs").mock(
            return_value=Response(
                200,
                json={
                    "workflow_runs": [
                        {"id": 1, "status": "completed", "conclusion": "failure"},
                        {"id": 2, "status": "completed", "conclusion": "timed_out"},
                        {"id": 3, "status": "completed", "conclusion": "success"},
                    ]
                },
            )
        )
        runs = await github.ci.list_pipelines("o/r", PipelineListParams(status="failed"))
        assert [r.id for r in runs] == [1, 2]
        assert route.calls.last.request.url.params["status"] == "completed"

    async def test_pending_runs_query_every_status(self, github, github_api):
        route = github_api.get("/repos/o/r/actions/runs").mock(
            return_value=Response(
                200,
                json={
                    "workflow_runs": [
                        {"id": 1, "status": "queued", "conclusion": None},
                        {"id": 2, "status": "waiting", "conclusion": None},
                        {"id": 3, "status": "requested", "conclusion": None},
                        {"id": 4, "status": "in_progress", "conclusion": None},
                    ]
                },
            )
        )
        runs = await github.ci.list_pipelines("o/r", PipelineListParams(status="pending"))
        assert [r.id for r in runs] == [1, 2, 3]
        assert "status" not in route.calls.last.request.url.params


async def test_get_me(github, github_api):
    github_api.get("/user").mock(return_value=Response(200, json=USER))
    me = await github.users.get_me()
    assert me.username == "octocat"
    assert me.name == "octocat"
