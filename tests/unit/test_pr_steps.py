"""Pull-request heal steps and PR reporting against a mocked API."""
from __future__ import annotations

import json

import httpx
import respx

from eco_pipeline.domain.value_objects.pipeline import Phase
from eco_pipeline.engine.heal.protocol import auto_merge, review_threads
from eco_pipeline.infrastructure.github import GitHubClient

API = "https://api.github.com"


def _pr_context(make_context, **kwargs):
    ctx = make_context(Phase.HEAL, pr_number=7, token="tok", repository="acme/web", **kwargs)
    ctx.github = GitHubClient("tok", "acme/web")
    return ctx


@respx.mock
def test_auto_merge_only_when_clean(make_context):
    respx.get(f"{API}/repos/acme/web/pulls/7").mock(
        return_value=httpx.Response(200, json={"mergeable_state": "clean", "title": "Fix"})
    )
    merge = respx.put(f"{API}/repos/acme/web/pulls/7/merge").mock(
        return_value=httpx.Response(200, json={"merged": True, "sha": "abc"})
    )
    result = auto_merge(_pr_context(make_context))
    assert result.metadata["merged"] is True
    assert json.loads(merge.calls.last.request.content)["merge_method"] == "squash"


@respx.mock
def test_auto_merge_skipped_when_blocked(make_context):
    respx.get(f"{API}/repos/acme/web/pulls/7").mock(
        return_value=httpx.Response(200, json={"mergeable_state": "blocked"})
    )
    result = auto_merge(_pr_context(make_context))
    assert result.metadata["skipped"] is True
    assert result.metadata["mergeable_state"] == "blocked"


@respx.mock
def test_auto_merge_dry_run_does_not_merge(make_context):
    respx.get(f"{API}/repos/acme/web/pulls/7").mock(
        return_value=httpx.Response(200, json={"mergeable_state": "clean"})
    )
    result = auto_merge(_pr_context(make_context, dry_run=True))
    assert result.metadata["would_merge"] is True


@respx.mock
def test_review_threads_reports_count(make_context):
    respx.post(f"{API}/graphql").mock(
        return_value=httpx.Response(
            200,
            json={"data": {"repository": {"pullRequest": {"reviewThreads": {"nodes": [{"isResolved": False}]}}}}},
        )
    )
    respx.get(f"{API}/repos/acme/web/issues/7/comments").mock(return_value=httpx.Response(200, json=[]))
    comment = respx.post(f"{API}/repos/acme/web/issues/7/comments").mock(
        return_value=httpx.Response(201, json={"id": 1})
    )
    result = review_threads(_pr_context(make_context))
    assert result.metadata["unresolved"] == 1
    assert comment.called


@respx.mock
def test_report_failure_does_not_raise(make_context):
    respx.get(f"{API}/repos/acme/web/issues/7/comments").mock(return_value=httpx.Response(502))
    ctx = _pr_context(make_context)
    ctx.report("boot", "hello")
