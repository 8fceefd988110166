"""Remote repository API client (GitHub REST v3 + GraphQL).

A deliberately small surface: pull-request comments, mergeability, branch
protection, squash merge and unresolved review threads.  Requests are
single-attempt; a non-success status raises :class:`RemoteApiError` with
the status code so callers can tell "not found" from other failures.
"""
from __future__ import annotations

from typing import Any

import httpx
import structlog

from eco_pipeline.shared.exceptions import RemoteApiError

logger = structlog.get_logger(__name__)

COMMENT_MARKER = "<!-- eco-pipeline:{key} -->"

_REVIEW_THREADS_QUERY = """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    pullRequest(number: $number) {
      reviewThreads(first: 100) {
        nodes { isResolved }
      }
    }
  }
}
"""


def comment_marker(key: str) -> str:
    return COMMENT_MARKER.format(key=key)


class GitHubClient:
    """Blocking GitHub API client bound to one repository.

    Usage::

        with GitHubClient(token, "acme/web") as gh:
            gh.upsert_comment(42, "policy", body)
    """

    def __init__(
        self,
        token: str,
        repository: str,
        *,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
    ) -> None:
        if "/" not in repository:
            raise ValueError(f"Repository must be 'owner/name', got {repository!r}")
        self._repository = repository
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )

    # -- lifecycle ----------------------------------------------------------

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def repository(self) -> str:
        return self._repository

    # -- transport ----------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("github_request_error", method=method, path=path, error=str(exc))
            raise RemoteApiError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "github_http_error",
                method=method,
                path=path,
                status=response.status_code,
            )
            raise RemoteApiError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                context={"path": path},
            )
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def _repo_path(self, suffix: str) -> str:
        return f"/repos/{self._repository}{suffix}"

    # -- comments -----------------------------------------------------------

    def list_comments(self, pr_number: int) -> list[dict[str, Any]]:
        data = self._request(
            "GET",
            self._repo_path(f"/issues/{pr_number}/comments"),
            params={"per_page": 100},
        )
        return list(data or [])

    def create_comment(self, pr_number: int, body: str) -> dict[str, Any]:
        return self._request(
            "POST",
            self._repo_path(f"/issues/{pr_number}/comments"),
            json={"body": body},
        )

    def update_comment(self, comment_id: int, body: str) -> dict[str, Any]:
        return self._request(
            "PATCH",
            self._repo_path(f"/issues/comments/{comment_id}"),
            json={"body": body},
        )

    def upsert_comment(self, pr_number: int, key: str, body: str) -> dict[str, Any]:
        """Update the comment tagged with *key*'s marker, or create it."""
        marker = comment_marker(key)
        full_body = body if marker in body else f"{marker}\n{body}"
        for comment in self.list_comments(pr_number):
            if marker in (comment.get("body") or ""):
                logger.debug("github_comment_updated", pr=pr_number, key=key)
                return self.update_comment(comment["id"], full_body)
        logger.debug("github_comment_created", pr=pr_number, key=key)
        return self.create_comment(pr_number, full_body)

    # -- pull requests ------------------------------------------------------

    def get_pull(self, pr_number: int) -> dict[str, Any]:
        return self._request("GET", self._repo_path(f"/pulls/{pr_number}"))

    def merge_pull(
        self,
        pr_number: int,
        *,
        method: str = "squash",
        commit_title: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"merge_method": method}
        if commit_title:
            payload["commit_title"] = commit_title
        return self._request(
            "PUT",
            self._repo_path(f"/pulls/{pr_number}/merge"),
            json=payload,
        )

    def count_unresolved_review_threads(self, pr_number: int) -> int:
        owner, name = self._repository.split("/", 1)
        data = self._request(
            "POST",
            "/graphql",
            json={
                "query": _REVIEW_THREADS_QUERY,
                "variables": {"owner": owner, "name": name, "number": pr_number},
            },
        )
        if data.get("errors"):
            raise RemoteApiError(
                f"GraphQL error: {data['errors'][0].get('message', 'unknown')}",
                context={"pr": pr_number},
            )
        pull = ((data.get("data") or {}).get("repository") or {}).get("pullRequest") or {}
        threads = (pull.get("reviewThreads") or {}).get("nodes") or []
        return sum(1 for thread in threads if not thread.get("isResolved"))

    # -- branches -----------------------------------------------------------

    def get_branch_protection(self, branch: str) -> dict[str, Any]:
        return self._request("GET", self._repo_path(f"/branches/{branch}/protection"))
