"""GitHub client: comment upsert, merge, review threads and error mapping."""
from __future__ import annotations

import json

import httpx
import pytest
import respx

from eco_pipeline.infrastructure.github import GitHubClient, comment_marker
from eco_pipeline.shared.exceptions import RemoteApiError

API = "https://api.github.com"
COMMENTS = f"{API}/repos/acme/web/issues/7/comments"


@pytest.fixture
def client():
    with GitHubClient("tok", "acme/web") as gh:
        yield gh


def test_repository_must_be_owner_slash_name():
    with pytest.raises(ValueError):
        GitHubClient("tok", "acme")


@respx.mock
def test_upsert_updates_existing_marker_comment(client):
    respx.get(COMMENTS).mock(
        return_value=httpx.Response(
            200,
            json=[
                {"id": 1, "body": "unrelated"},
                {"id": 2, "body": f"{comment_marker('policy')}\nold score"},
            ],
        )
    )
    patch = respx.patch(f"{API}/repos/acme/web/issues/comments/2").mock(
        return_value=httpx.Response(200, json={"id": 2})
    )

    client.upsert_comment(7, "policy", "new score")

    assert patch.called
    body = json.loads(patch.calls.last.request.content)["body"]
    assert body.startswith("<!-- eco-pipeline:policy -->")
    assert body.endswith("new score")


@respx.mock
def test_upsert_creates_comment_when_marker_absent(client):
    respx.get(COMMENTS).mock(return_value=httpx.Response(200, json=[]))
    post = respx.post(COMMENTS).mock(return_value=httpx.Response(201, json={"id": 9}))

    assert client.upsert_comment(7, "boot", "hello") == {"id": 9}
    request = post.calls.last.request
    assert request.headers["Authorization"] == "Bearer tok"
    assert "<!-- eco-pipeline:boot -->" in json.loads(request.content)["body"]


@respx.mock
def test_non_success_status_raises_with_status_code(client):
    respx.get(f"{API}/repos/acme/web/pulls/7").mock(return_value=httpx.Response(403))
    with pytest.raises(RemoteApiError) as excinfo:
        client.get_pull(7)
    assert excinfo.value.status_code == 403


@respx.mock
def test_merge_pull_uses_squash(client):
    route = respx.put(f"{API}/repos/acme/web/pulls/7/merge").mock(
        return_value=httpx.Response(200, json={"merged": True, "sha": "abc"})
    )
    assert client.merge_pull(7, commit_title="Fix build")["merged"] is True
    assert json.loads(route.calls.last.request.content) == {
        "merge_method": "squash",
        "commit_title": "Fix build",
    }


@respx.mock
def test_count_unresolved_review_threads(client):
    respx.post(f"{API}/graphql").mock(
        return_value=httpx.Response(
            200,
            json={
                "data": {
                    "repository": {
                        "pullRequest": {
                            "reviewThreads": {
                                "nodes": [{"isResolved": True}, {"isResolved": False}, {"isResolved": False}]
                            }
                        }
                    }
                }
            },
        )
    )
    assert client.count_unresolved_review_threads(7) == 2


@respx.mock
def test_graphql_errors_raise(client):
    respx.post(f"{API}/graphql").mock(
        return_value=httpx.Response(200, json={"errors": [{"message": "Bad credentials"}]})
    )
    with pytest.raises(RemoteApiError, match="Bad credentials"):
        client.count_unresolved_review_threads(7)


@respx.mock
def test_transport_error_is_remote_api_error(client):
    respx.get(COMMENTS).mock(side_effect=httpx.ConnectError("boom"))
    with pytest.raises(RemoteApiError) as excinfo:
        client.list_comments(7)
    assert excinfo.value.status_code is None
