# src/patch_picasso/comments.py
import logging
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .scm_client import GitHubClient

logger = logging.getLogger(__name__)

# GitHub rejects issue comments longer than this
MAX_COMMENT_LENGTH = 65536
MAX_CAPTION_LENGTH = 500

IMAGE_ALT_TEXT = "Funny PR Image"
IMAGE_UNAVAILABLE_TEXT = "_Image unavailable: the generated image could not be hosted._"
ATTRIBUTION = "<sub>Generated by patch-picasso using LiteLLM.</sub>"


def has_existing_comment(scm_client: 'GitHubClient', pr_number: int, marker: str) -> bool:
    """
    Returns True if one of the first 100 comments on the PR carries `marker`.
    This is a point-in-time check, not a lock.
    """
    comments = scm_client.list_issue_comments(pr_number)
    for comment in comments:
        body = comment.get("body")
        if isinstance(body, str) and marker in body:
            logger.info(f"Found existing comment {comment.get('id')} with marker on PR #{pr_number}.")
            return True
    return False


def compose_comment_body(marker: str, caption: Optional[str], image_url: Optional[str]) -> str:
    """Builds the full comment: marker, caption quote, image (or placeholder), footer."""
    parts = [marker, ""]

    caption_line = " ".join((caption or "").split())[:MAX_CAPTION_LENGTH]
    if caption_line:
        parts.extend([f"> {caption_line}", ""])

    if image_url:
        parts.append(f"![{IMAGE_ALT_TEXT}]({image_url})")
    else:
        parts.append(IMAGE_UNAVAILABLE_TEXT)

    parts.extend(["", ATTRIBUTION])
    body = "\n".join(parts)

    if len(body) > MAX_COMMENT_LENGTH:
        logger.warning(f"Comment body is {len(body)} chars; clipping to {MAX_COMMENT_LENGTH}.")
        body = body[:MAX_COMMENT_LENGTH]
    return body


def post_comment(scm_client: 'GitHubClient', pr_number: int, body: str) -> None:
    response = scm_client.create_issue_comment(pr_number, body)
    logger.info(f"Comment posted: {(response or {}).get('html_url', 'N/A')}")
