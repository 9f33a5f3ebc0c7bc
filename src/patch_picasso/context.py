# src/patch_picasso/context.py
import json
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any, Tuple

from .action_config import ActionConfig
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvocationContext:
    """Everything one run needs to know about its target PR. Built once, never mutated."""
    owner: str
    repo_name: str
    pr_number: int
    github_token: str
    llm_api_key: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo_name}"


def require_secrets(config: ActionConfig) -> None:
    """Fails with the name of the first missing secret."""
    required = [
        ("GITHUB_TOKEN", config.github_token),
        ("OPENAI_API_KEY", config.llm_api_key),
    ]
    for env_name, value in required:
        if not value:
            raise ConfigurationError(f"Missing required env: {env_name}")


def parse_repo(repo: str) -> Tuple[str, str]:
    """Splits 'owner/name'. Anything other than exactly two non-empty parts is rejected."""
    parts = repo.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ConfigurationError(f"Invalid repo string: {repo}")
    return parts[0], parts[1]


def load_event_payload(event_path: Optional[str]) -> Optional[Dict[str, Any]]:
    """Reads the webhook payload. Unreadable or malformed payloads count as absent."""
    if not event_path:
        return None
    try:
        with open(event_path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as e:
        logger.debug(f"Ignoring event payload at {event_path}: {e}")
        return None
    return payload if isinstance(payload, dict) else None


def pr_number_from_event(payload: Optional[Dict[str, Any]]) -> Optional[int]:
    if not payload:
        return None
    pull_request = payload.get("pull_request")
    if not isinstance(pull_request, dict):
        return None
    number = pull_request.get("number")
    try:
        return int(number) if number else None
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric pull_request.number in event payload: {number!r}")
        return None


def resolve_invocation_context(config: ActionConfig, repo_arg: Optional[str] = None,
                               pr_arg: Optional[int] = None) -> InvocationContext:
    """
    Builds the InvocationContext from CLI flags, falling back to the
    GitHub Actions environment and the event payload.

    Raises:
        ConfigurationError: a secret is missing, or the repository or PR
            number cannot be determined.
    """
    require_secrets(config)

    repo_str = repo_arg or config.repository
    if not repo_str:
        raise ConfigurationError("Missing repo. Pass --repo owner/repo or set GITHUB_REPOSITORY.")
    owner, repo_name = parse_repo(repo_str)

    pr_number = pr_arg or pr_number_from_event(load_event_payload(config.event_path))
    if not pr_number:
        raise ConfigurationError("Missing PR number. Pass --pr or ensure this runs on a pull_request event.")

    context = InvocationContext(
        owner=owner,
        repo_name=repo_name,
        pr_number=pr_number,
        github_token=config.github_token,
        llm_api_key=config.llm_api_key,
    )
    logger.info(f"Resolved target: {context.full_name} PR #{context.pr_number}")
    return context
