from __future__ import annotations

import base64
from typing import Any, Optional
from urllib.parse import quote, urlparse

import requests

from ..core.domain.exceptions import HostingAPIError, TransientAPIError, is_retryable_status
from ..core.domain.models import FileSnapshot, PullRequestRef


API_VERSION = "2022-11-28"


def _retry_after(response: requests.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class GitHubClient:
    """HostingPort over the GitHub REST API.

    Every call carries the bearer token and a bounded timeout. Timeouts,
    connection errors, 5xx, 408, 429 and exhausted rate limits raise
    TransientAPIError; any other non-2xx raises HostingAPIError.
    """

    def __init__(
        self,
        *,
        token: str,
        api_url: str = "https://api.github.com",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": "depwarden",
            }
        )
        self.host = urlparse(self._api_url).netloc or self._api_url

    def close(self) -> None:
        self._session.close()

    def get_default_branch(self, owner: str, repo: str) -> str:
        data = self._request("GET", f"/repos/{owner}/{repo}", operation="get_repository").json()
        return str(data["default_branch"])

    def get_ref_sha(self, owner: str, repo: str, ref: str) -> str:
        data = self._request("GET", f"/repos/{owner}/{repo}/git/ref/{ref}", operation="get_ref").json()
        return str(data["object"]["sha"])

    def create_ref(self, owner: str, repo: str, ref: str, sha: str) -> None:
        self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/refs",
            operation="create_ref",
            json={"ref": ref, "sha": sha},
        )

    def get_file(self, owner: str, repo: str, path: str, ref: str) -> Optional[FileSnapshot]:
        response = self._request(
            "GET",
            f"/repos/{owner}/{repo}/contents/{quote(path)}",
            operation="get_file",
            params={"ref": ref},
            allow_not_found=True,
        )
        if response.status_code == 404:
            return None
        data = response.json()
        if not isinstance(data, dict) or data.get("type") != "file":
            raise HostingAPIError(f"{path} is not a file", status=response.status_code, operation="get_file")
        content = base64.b64decode(data.get("content") or "")
        return FileSnapshot(path=path, content=content, revision=str(data["sha"]))

    def put_file(
        self,
        owner: str,
        repo: str,
        *,
        path: str,
        content: bytes,
        message: str,
        branch: str,
        sha: Optional[str] = None,
    ) -> str:
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "branch": branch,
        }
        if sha is not None:
            body["sha"] = sha
        data = self._request(
            "PUT",
            f"/repos/{owner}/{repo}/contents/{quote(path)}",
            operation="put_file",
            json=body,
        ).json()
        return str(data["content"]["sha"])

    def create_pull_request(
        self,
        owner: str,
        repo: str,
        *,
        title: str,
        head: str,
        base: str,
        body: str,
    ) -> PullRequestRef:
        data = self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            operation="create_pull_request",
            json={"title": title, "head": head, "base": base, "body": body},
        ).json()
        return PullRequestRef(url=str(data["html_url"]), number=int(data["number"]))

    def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> requests.Response:
        url = f"{self._api_url}{path}"
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.Timeout as exc:
            raise TransientAPIError(f"{operation} timed out after {self._timeout}s", operation=operation) from exc
        except requests.ConnectionError as exc:
            raise TransientAPIError(f"{operation} connection failed: {exc}", operation=operation) from exc
        except requests.RequestException as exc:
            raise TransientAPIError(f"{operation} request failed: {exc}", operation=operation) from exc

        status = response.status_code
        if status < 400 or (allow_not_found and status == 404):
            return response

        detail = self._error_detail(response)
        if is_retryable_status(status) or self._rate_limited(response):
            raise TransientAPIError(
                f"{operation} failed with HTTP {status}: {detail}",
                status=status,
                operation=operation,
                retry_after=_retry_after(response),
            )
        raise HostingAPIError(f"{operation} failed with HTTP {status}: {detail}", status=status, operation=operation)

    @staticmethod
    def _rate_limited(response: requests.Response) -> bool:
        return response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text[:200] or response.reason or ""
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        return response.reason or ""
