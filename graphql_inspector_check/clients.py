"""HTTP clients for the GitHub API and live GraphQL endpoints."""

import logging
from typing import Any
from urllib.parse import quote

import httpx
from graphql import build_client_schema, get_introspection_query, print_schema
from pydantic import BaseModel

from graphql_inspector_check.config import CheckConfig
from graphql_inspector_check.models import CheckConclusion
from graphql_inspector_check.schemas import (
    CheckRunHandle,
    CheckRunOutput,
    PullRequestContext,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class GitHubClient:
    """Thin async wrapper over the REST endpoints a check run needs."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
        api_url: str = "https://api.github.com",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = http_client or httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers=headers,
            timeout=DEFAULT_TIMEOUT,
        )
        if http_client is not None:
            self._client.headers.update(headers)

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def get_associated_pull_request(
        self, commit_sha: str
    ) -> PullRequestContext | None:
        """
        Look up the first pull request that contains a commit.

        Args:
            commit_sha (str): Commit to look up.

        Returns:
            PullRequestContext | None: Pull request, or None for direct pushes.
        """
        response = await self._client.get(
            f"{self._repo_path}/commits/{commit_sha}/pulls"
        )
        response.raise_for_status()
        pulls = response.json()
        if not pulls:
            logger.debug("No pull request associated with %s", commit_sha)
            return None

        pull = pulls[0]
        return PullRequestContext(
            number=pull["number"],
            state=pull.get("state", "closed"),
            base_ref=(pull.get("base") or {}).get("ref"),
            labels=[label["name"] for label in pull.get("labels") or []],
        )

    async def read_file_at_revision(self, path: str, revision: str) -> str:
        """
        Read a file's raw content at a revision through the contents API.

        Args:
            path (str): Repository-relative file path.
            revision (str): Branch, sha or ref to read at.

        Returns:
            str: File content.
        """
        response = await self._client.get(
            f"{self._repo_path}/contents/{quote(path.lstrip('/'))}",
            params={"ref": revision},
            headers={"Accept": "application/vnd.github.raw+json"},
        )
        response.raise_for_status()
        return response.text

    async def create_check_run(self, name: str, head_sha: str) -> CheckRunHandle:
        """
        Create an in-progress check run on a commit.

        Args:
            name (str): Display name of the check.
            head_sha (str): Commit the check is attached to.

        Returns:
            CheckRunHandle: Handle used to complete the check run.
        """
        response = await self._client.post(
            f"{self._repo_path}/check-runs",
            json={"name": name, "head_sha": head_sha, "status": "in_progress"},
        )
        response.raise_for_status()
        return CheckRunHandle(id=response.json()["id"], name=name, head_sha=head_sha)

    async def update_check_run(
        self,
        handle: CheckRunHandle,
        conclusion: CheckConclusion,
        output: CheckRunOutput,
    ) -> None:
        """
        Complete a check run with a conclusion and rendered output.

        Args:
            handle (CheckRunHandle): Check run to complete.
            conclusion (CheckConclusion): Terminal conclusion.
            output (CheckRunOutput): Title, summary and annotations.

        Raises:
            httpx.HTTPStatusError: If the host rejects the update.
        """
        response = await self._client.patch(
            f"{self._repo_path}/check-runs/{handle.id}",
            json={
                "status": "completed",
                "conclusion": str(conclusion),
                "output": output.model_dump(mode="json", exclude_none=True),
            },
        )
        response.raise_for_status()


class GitHubClientConfig(BaseModel):
    def create_client(self, config: CheckConfig) -> GitHubClient:
        """
        Creates a GitHub API client for the configured repository.

        Args:
            config (CheckConfig): Run configuration.

        Returns:
            GitHubClient: Configured client instance.
        """
        return GitHubClient(
            owner=config.owner,
            repo=config.repo,
            token=config.github_token,
            api_url=config.api_url,
        )


async def introspect_and_print(
    url: str,
    http_client: httpx.AsyncClient | None = None,
) -> str:
    """
    Run the introspection query against a live endpoint and print the result as SDL.

    Args:
        url (str): GraphQL endpoint URL.
        http_client (httpx.AsyncClient, optional): Client to send the request with.
            Defaults to a short-lived client.

    Returns:
        str: SDL text of the served schema.

    Raises:
        httpx.HTTPError: If the request fails.
        ValueError: If the response carries errors or no schema.
    """
    payload = {"query": get_introspection_query(descriptions=True)}
    if http_client is None:
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
            response = await client.post(url, json=payload)
    else:
        response = await http_client.post(url, json=payload)
    response.raise_for_status()

    data = response.json()
    if not isinstance(data, dict):
        raise ValueError(f"Introspection of {url} did not return a JSON object")
    if data.get("errors"):
        raise ValueError(f"Introspection of {url} returned errors: {data['errors']}")
    if not isinstance(data.get("data"), dict) or "__schema" not in data["data"]:
        raise ValueError(f"Introspection of {url} returned no __schema")

    try:
        schema = build_client_schema(data["data"])
    except (TypeError, KeyError) as exc:
        raise ValueError(f"Introspection of {url} is invalid: {exc}") from exc
    return print_schema(schema)
