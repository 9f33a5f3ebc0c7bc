# src/patch_picasso/image_storage.py
import logging
from datetime import datetime, timezone
from urllib.parse import quote
from typing import Optional, Callable, TYPE_CHECKING

from .action_config import PUBLISH_TARGET_HEAD_BRANCH
from .errors import PublicationError, UpstreamAPIError

if TYPE_CHECKING:
    from .action_config import ActionConfig
    from .models import PullRequestSummary
    from .scm_client import GitHubClient

logger = logging.getLogger(__name__)

RAW_URL_TEMPLATE = "https://raw.githubusercontent.com/{owner}/{repo}/refs/heads/{branch}/{path}"


def build_raw_url(owner: str, repo: str, branch: str, path: str) -> str:
    return RAW_URL_TEMPLATE.format(owner=owner, repo=repo, branch=quote(branch, safe="/"), path=path)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")


class ImagePublisher:
    """
    Commits a base64 image into the repository so the comment can link to it.

    Depending on `publish_target` the file goes either to a dedicated,
    long-lived images branch (created from the default branch on first use)
    or to the PR's own head branch, which is only possible for same-repository PRs.
    """
    def __init__(self, config: 'ActionConfig', scm_client: 'GitHubClient',
                 clock: Optional[Callable[[], str]] = None):
        self.config = config
        self.scm_client = scm_client
        self.clock = clock or _utc_timestamp

    def image_path(self, pr_number: int) -> str:
        filename = f"{pr_number}-{self.clock()}.png"
        return f"{self.config.image_dir}/{filename}" if self.config.image_dir else filename

    def target_branch(self, pr: 'PullRequestSummary') -> Optional[str]:
        """The branch to write to, or None when publishing is not possible for this PR."""
        if self.config.publish_target != PUBLISH_TARGET_HEAD_BRANCH:
            return self.config.image_branch

        if not pr.is_same_repository:
            logger.warning(f"PR #{pr.number} comes from {pr.head_repo_full_name or 'an unknown repository'}, "
                           f"not {pr.base_repo_full_name}. Cannot publish the image to a fork's branch.")
            return None
        if not pr.head_ref:
            logger.warning(f"PR #{pr.number} has no head branch name. Cannot publish the image.")
            return None
        return pr.head_ref

    def ensure_branch(self, branch: str, create_if_missing: bool = True) -> None:
        """
        Creates `branch` from the default branch's head commit if it does not exist yet.
        With create_if_missing=False a missing branch raises the 404 instead.
        """
        try:
            self.scm_client.get_branch(branch)
            logger.debug(f"Branch '{branch}' already exists.")
            return
        except UpstreamAPIError as e:
            if not e.is_not_found or not create_if_missing:
                raise

        default_branch = self.scm_client.get_repository()["default_branch"]
        head_sha = self.scm_client.get_branch(default_branch)["commit"]["sha"]
        logger.info(f"Branch '{branch}' not found. Creating it from '{default_branch}' ({head_sha}).")
        self.scm_client.create_branch_ref(branch, head_sha)

    def upload(self, branch: str, path: str, content_b64: str, message: str) -> str:
        """Creates or updates `path` on `branch` and returns a raw-content URL for it."""
        existing_sha = self.scm_client.get_file_sha(path, branch)
        if existing_sha:
            logger.info(f"Updating existing file {path} on '{branch}'.")
        response = self.scm_client.put_file_contents(path, content_b64, message, branch, sha=existing_sha)

        download_url = ((response or {}).get("content") or {}).get("download_url")
        if download_url:
            return download_url
        return build_raw_url(self.scm_client.owner, self.scm_client.repo, branch, path)

    def try_publish(self, pr: 'PullRequestSummary', content_b64: str) -> str:
        """
        Publishes the image and returns its URL.

        Raises:
            PublicationError: no target branch, or any GitHub call failed.
        """
        branch = self.target_branch(pr)
        if not branch:
            raise PublicationError(f"No writable branch for PR #{pr.number}; skipping image publication.")

        path = self.image_path(pr.number)
        message = f"patch-picasso: add image for PR #{pr.number}"
        try:
            # The PR head branch is never recreated; only the dedicated images branch is.
            self.ensure_branch(branch, create_if_missing=self.config.publish_target != PUBLISH_TARGET_HEAD_BRANCH)
            url = self.upload(branch, path, content_b64, message)
        except (UpstreamAPIError, KeyError, TypeError) as e:
            raise PublicationError(f"Failed to publish image to '{branch}': {e}") from e

        logger.info(f"Published image to {path} on '{branch}': {url}")
        return url

    def publish(self, pr: 'PullRequestSummary', content_b64: str) -> Optional[str]:
        """Like try_publish, but logs failures as warnings and returns None."""
        try:
            return self.try_publish(pr, content_b64)
        except PublicationError as e:
            logger.warning(str(e))
            return None
