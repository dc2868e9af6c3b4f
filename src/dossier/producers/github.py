"""
dossier — GitHub pull requests producer

File: src/dossier/producers/github.py

Purpose
- Ask once for a GitHub token (tri-state: unset, declined, present).
- For every GitHub-hosted repository in the git output, look up the pull requests associated
  with the author's commits and summarize them.

Behavior
- One ``httpx.AsyncClient`` per GitHub host; github.com uses ``https://api.github.com`` and
  enterprise hosts ``https://<host>/api/v3``. Timeouts belong to the client.
- A commit GitHub does not know (404/422) is skipped; any other API or transport failure
  skips the rest of that repository with a ``github_repository_skipped`` warning.
- Pull requests are deduplicated per repository and capped at ``max_commits``.

Security
- The token is sent only as an ``Authorization`` header and never logged.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Final
from urllib.parse import urlsplit

import httpx

from dossier.config.values import DECLINED, Present, Unset, present_or_none
from dossier.constants import (
    GIT_PRODUCER_ID,
    GITHUB_PRIORITY,
    GITHUB_PRODUCER_ID,
)
from dossier.plugins.base import ProducerDescriptor, ProducerResult
from dossier.producers.base import BuiltinProducer
from dossier.producers.outputs import GitHubOutput, GitOutput, PullRequest, RepositoryHistory

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dossier.config.schema import DossierConfig
    from dossier.plugins.base import ConfigureOptions
    from dossier.plugins.outputs import DependencyView
    from dossier.ui.prompts import Prompter

PUBLIC_HOST: Final[str] = "github.com"
PUBLIC_API_URL: Final[str] = "https://api.github.com"
API_VERSION: Final[str] = "2022-11-28"
DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0

# Statuses meaning "this commit is not on GitHub", not "the repository is unusable".
_MISSING_COMMIT_STATUSES: Final[frozenset[int]] = frozenset({404, 422})

_HTML_COMMENT_RE: Final[re.Pattern[str]] = re.compile(r"<!--.*?-->", re.DOTALL)
_BLANK_RUN_RE: Final[re.Pattern[str]] = re.compile(r"\n{3,}")


class GitHubAPIError(RuntimeError):
    """A GitHub REST call returned an unexpected status or payload."""

    def __init__(self, message: str, *, status_code: int | None = None, url: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


def api_base_url(host: str) -> str:
    if host.lower() == PUBLIC_HOST:
        return PUBLIC_API_URL
    return f"https://{host}/api/v3"


def split_repository_url(web_url: str) -> tuple[str, str, str] | None:
    """``https://host/owner/repo`` -> ``(host, owner, repo)``; ``None`` if not that shape."""

    parts = urlsplit(web_url)
    segments = [segment for segment in parts.path.split("/") if segment]
    if not parts.hostname or len(segments) < 2:
        return None
    owner, repo = segments[-2], segments[-1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return parts.hostname, owner, repo


class GitHubClient:
    """Minimal async GitHub REST client for pull request lookups."""

    def __init__(
        self,
        token: str,
        *,
        api_url: str = PUBLIC_API_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=api_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def pulls_for_commit(self, owner: str, repo: str, sha: str) -> list[dict[str, Any]]:
        """Pull requests associated with ``sha``; raises ``GitHubAPIError``."""

        response = await self._client.get(f"/repos/{owner}/{repo}/commits/{sha}/pulls")
        if response.status_code != 200:
            raise GitHubAPIError(
                f"GitHub API returned {response.status_code} for {owner}/{repo}@{sha[:12]}",
                status_code=response.status_code,
                url=str(response.request.url),
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise GitHubAPIError(
                "GitHub API returned invalid JSON", url=str(response.request.url)
            ) from exc
        if not isinstance(payload, list):
            raise GitHubAPIError(
                "GitHub API returned an unexpected payload", url=str(response.request.url)
            )
        return [item for item in payload if isinstance(item, Mapping)]


class GitHubProducer(BuiltinProducer):
    descriptor = ProducerDescriptor(
        identity=GITHUB_PRODUCER_ID,
        name="GitHub Pull Requests",
        needs=(GIT_PRODUCER_ID,),
        sensitive_fields=frozenset({"github_token"}),
    )
    priority = GITHUB_PRIORITY

    def __init__(
        self,
        prompter: Prompter,
        *,
        logger: Any | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(prompter, logger=logger)
        self._transport = transport
        self._timeout = timeout

    def prompt(self, config: DossierConfig, options: ConfigureOptions) -> DossierConfig:
        current = config.github_token
        if not options.reset and not isinstance(current, Unset):
            return config

        if options.reset and isinstance(current, Present):
            if self._prompter.confirm("Keep existing GitHub token?", default=True):
                return config

        self._prompter.note("\nGitHub integration (optional - for pull request data):")
        token = self._prompter.secret("GitHub personal access token (leave empty to skip)")
        if not token.strip():
            return config.evolve(github_token=DECLINED)
        return config.evolve(github_token=Present(token.strip()))

    def is_eligible(self, config: DossierConfig, deps: DependencyView) -> bool:
        if not isinstance(config.github_token, Present):
            return False
        git = deps.get(GitOutput)
        return git is not None and bool(git.github_repositories)

    async def run(self, config: DossierConfig, deps: DependencyView) -> ProducerResult | None:
        git = deps.get(GitOutput)
        token = present_or_none(config.github_token)
        if git is None or not token:
            return None
        repositories = git.github_repositories
        if not repositories:
            return None

        collected: list[PullRequest] = []
        for host, group in _group_by_host(repositories).items():
            async with GitHubClient(
                token,
                api_url=api_base_url(host),
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                for repository in group:
                    try:
                        collected.extend(await self._fetch_repository(client, repository))
                    except (GitHubAPIError, httpx.HTTPError) as exc:
                        self._logger.warning(
                            "github_repository_skipped",
                            repository=repository.name,
                            error=f"{type(exc).__name__}: {exc}",
                        )

        pulls = _unique(collected)[: config.max_commits]
        output = GitHubOutput(pull_requests=tuple(pulls))
        body = format_pull_requests_section(pulls)
        if not body:
            return self.result(output)
        return self.result(output, self.fragment("Pull Requests", body))

    async def _fetch_repository(
        self, client: GitHubClient, repository: RepositoryHistory
    ) -> list[PullRequest]:
        location = split_repository_url(repository.github_url or "")
        if location is None:
            return []
        _, owner, repo = location

        pulls: list[PullRequest] = []
        for commit in repository.commits:
            try:
                items = await client.pulls_for_commit(owner, repo, commit.sha)
            except GitHubAPIError as exc:
                if exc.status_code in _MISSING_COMMIT_STATUSES:
                    self._logger.debug(
                        "github_commit_unknown", repository=repository.name, sha=commit.sha
                    )
                    continue
                raise
            pulls.extend(pull_request_from_api(repository.name, item) for item in items)
        return pulls


def pull_request_from_api(repository: str, item: Mapping[str, Any]) -> PullRequest:
    user = item.get("user")
    labels = item.get("labels") or ()
    return PullRequest(
        repository=repository,
        number=int(item.get("number", 0)),
        title=str(item.get("title") or ""),
        state=str(item.get("state") or "unknown"),
        author=str(user.get("login") or "unknown") if isinstance(user, Mapping) else "unknown",
        created_at=str(item.get("created_at") or ""),
        merged_at=item.get("merged_at") or None,
        body=str(item.get("body") or ""),
        labels=tuple(
            str(label.get("name") if isinstance(label, Mapping) else label)
            for label in labels
            if label
        ),
    )


def clean_body(text: str) -> str:
    """Drop HTML comments (PR template boilerplate) and collapse blank runs."""

    without_comments = _HTML_COMMENT_RE.sub("", text)
    return _BLANK_RUN_RE.sub("\n\n", without_comments).strip()


def blockquote(text: str) -> str:
    if not text.strip():
        return ""
    return "\n".join(f"> {line}" if line else ">" for line in text.split("\n"))


def format_pull_requests_section(pulls: Sequence[PullRequest]) -> str:
    if not pulls:
        return ""

    lines = ["## Pull Requests", "", f"Total PRs: {len(pulls)}", ""]
    by_repository: dict[str, list[PullRequest]] = {}
    for pull in pulls:
        by_repository.setdefault(pull.repository or "Unknown", []).append(pull)

    for repository, items in by_repository.items():
        lines.append(f"### {repository}")
        lines.append("")
        for pull in items:
            labels = f" [{', '.join(pull.labels)}]" if pull.labels else ""
            lines.append(f"- **#{pull.number}**: {pull.title} ({pull.status}){labels}")
            quoted = blockquote(clean_body(pull.body))
            if quoted:
                lines.append(quoted)
        lines.append("")
    return "\n".join(lines)


def _group_by_host(
    repositories: Sequence[RepositoryHistory],
) -> dict[str, list[RepositoryHistory]]:
    grouped: dict[str, list[RepositoryHistory]] = {}
    for repository in repositories:
        location = split_repository_url(repository.github_url or "")
        if location is not None:
            grouped.setdefault(location[0], []).append(repository)
    return grouped


def _unique(pulls: Sequence[PullRequest]) -> list[PullRequest]:
    seen: set[tuple[str, int]] = set()
    unique: list[PullRequest] = []
    for pull in pulls:
        key = (pull.repository, pull.number)
        if key not in seen:
            seen.add(key)
            unique.append(pull)
    return unique


__all__ = [
    "GitHubAPIError",
    "GitHubClient",
    "GitHubProducer",
    "api_base_url",
    "clean_body",
    "format_pull_requests_section",
    "pull_request_from_api",
    "split_repository_url",
]
