# src/patch_picasso/scm_client.py
import logging
import requests # Using requests library for HTTP calls
from urllib.parse import quote
from typing import List, Dict, Any, Optional

from .errors import UpstreamAPIError

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"
PER_PAGE = 100


class GitHubClient:
    """
    Thin wrapper over the GitHub REST API.

    Every call is a single attempt: there is no retry and no backoff. Any
    non-2xx response raises UpstreamAPIError with the method, URL, status
    code, status text and body attached.
    """
    def __init__(self, token: str, owner: str, repo: str,
                 api_base_url: str = "https://api.github.com", timeout: float = 30.0):
        self.owner = owner
        self.repo = repo
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        logger.info(f"GitHub client initialized for {owner}/{repo} at {self.api_base_url}")

    @property
    def repo_endpoint(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    def _request(self, method: str, endpoint: str, params: Optional[Dict] = None,
                 json_data: Optional[Dict] = None) -> Any:
        """Helper method to make HTTP requests."""
        url = f"{self.api_base_url}{endpoint}"
        request_headers = self.headers.copy()
        if json_data is not None:
            request_headers["Content-Type"] = "application/json"

        logger.debug(f"Making GitHub API {method} request to {url} with params {params}")
        try:
            response = requests.request(method, url, headers=request_headers, params=params,
                                        json=json_data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise UpstreamAPIError(method, url, reason=type(e).__name__, body=str(e)) from e

        if not 200 <= response.status_code < 300:
            raise UpstreamAPIError(method, url, status_code=response.status_code,
                                   reason=response.reason or "", body=response.text)

        if response.content:
            return response.json()
        return None

    def get(self, endpoint: str, params: Optional[Dict] = None) -> Any:
        return self._request("GET", endpoint, params=params)

    def post(self, endpoint: str, json_data: Dict) -> Any:
        return self._request("POST", endpoint, json_data=json_data)

    def put(self, endpoint: str, json_data: Dict) -> Any:
        return self._request("PUT", endpoint, json_data=json_data)

    # --- Pull requests and comments ---

    def get_pull_request(self, pr_number: int) -> Dict[str, Any]:
        logger.info(f"Fetching details for PR #{pr_number}...")
        return self.get(f"{self.repo_endpoint}/pulls/{pr_number}")

    def list_pull_request_files(self, pr_number: int) -> List[Dict[str, Any]]:
        return self.get(f"{self.repo_endpoint}/pulls/{pr_number}/files", params={"per_page": PER_PAGE}) or []

    def list_issue_comments(self, pr_number: int) -> List[Dict[str, Any]]:
        return self.get(f"{self.repo_endpoint}/issues/{pr_number}/comments", params={"per_page": PER_PAGE}) or []

    def create_issue_comment(self, pr_number: int, body: str) -> Dict[str, Any]:
        logger.info(f"Posting comment to PR #{pr_number} ({len(body)} chars).")
        return self.post(f"{self.repo_endpoint}/issues/{pr_number}/comments", {"body": body})

    # --- Repository, branches and contents ---

    def get_repository(self) -> Dict[str, Any]:
        return self.get(self.repo_endpoint)

    def get_branch(self, branch: str) -> Dict[str, Any]:
        return self.get(f"{self.repo_endpoint}/branches/{quote(branch, safe='')}")

    def create_branch_ref(self, branch: str, sha: str) -> Dict[str, Any]:
        logger.info(f"Creating branch '{branch}' at {sha}.")
        return self.post(f"{self.repo_endpoint}/git/refs", {"ref": f"refs/heads/{branch}", "sha": sha})

    def get_file_sha(self, path: str, ref: str) -> Optional[str]:
        """
        Returns the blob SHA of `path` on `ref`, or None when the file does not exist.
        Only a 404 is treated as absence; any other failure propagates.
        """
        try:
            existing = self.get(f"{self.repo_endpoint}/contents/{quote(path, safe='/')}", params={"ref": ref})
        except UpstreamAPIError as e:
            if e.is_not_found:
                return None
            raise
        if isinstance(existing, dict):
            return existing.get("sha")
        return None

    def put_file_contents(self, path: str, content_b64: str, message: str, branch: str,
                          sha: Optional[str] = None) -> Dict[str, Any]:
        payload = {
            "message": message,
            "content": content_b64,
            "branch": branch,
        }
        if sha:
            payload["sha"] = sha
        return self.put(f"{self.repo_endpoint}/contents/{quote(path, safe='/')}", payload)
