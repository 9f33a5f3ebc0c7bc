# src/patch_picasso/action_config.py
import os
import logging
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

# Default values for optional parameters
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_MARKER = "<!-- patch-picasso -->"
DEFAULT_IMAGE_BRANCH = "patch-picasso-images"
DEFAULT_IMAGE_DIR = ".github/patch-picasso"
DEFAULT_TEXT_MODEL = "gpt-4o-mini"
DEFAULT_IMAGE_MODEL = "gpt-image-1"
DEFAULT_IMAGE_SIZE = "1024x1024"
DEFAULT_MAX_TOKENS = 400
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "INFO"

PUBLISH_TARGET_IMAGES_BRANCH = "images_branch"
PUBLISH_TARGET_HEAD_BRANCH = "head_branch"
PUBLISH_TARGETS = (PUBLISH_TARGET_IMAGES_BRANCH, PUBLISH_TARGET_HEAD_BRANCH)

ON_MISSING_IMAGE_COMMENT = "comment"
ON_MISSING_IMAGE_ABORT = "abort"
ON_MISSING_IMAGE_POLICIES = (ON_MISSING_IMAGE_COMMENT, ON_MISSING_IMAGE_ABORT)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class ActionConfig:
    """
    Holds all configuration for the action, sourced from the environment
    GitHub Actions provides plus PATCH_PICASSO_ prefixed overrides.
    """

    # --- Secrets ---
    github_token: Optional[str] = field(
        default_factory=lambda: os.getenv("GITHUB_TOKEN")
    )
    llm_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("OPENAI_API_KEY")
    )

    # --- GitHub Actions environment ---
    repository: Optional[str] = field(
        default_factory=lambda: os.getenv("GITHUB_REPOSITORY")
    )
    event_path: Optional[str] = field(
        default_factory=lambda: os.getenv("GITHUB_EVENT_PATH")
    )
    api_url: str = field(
        default_factory=lambda: os.getenv("GITHUB_API_URL") or DEFAULT_API_URL
    )

    # --- Generation ---
    text_model: str = field(
        default_factory=lambda: os.getenv("PATCH_PICASSO_TEXT_MODEL", DEFAULT_TEXT_MODEL)
    )
    image_model: str = field(
        default_factory=lambda: os.getenv("PATCH_PICASSO_IMAGE_MODEL", DEFAULT_IMAGE_MODEL)
    )
    image_size: str = field(
        default_factory=lambda: os.getenv("PATCH_PICASSO_IMAGE_SIZE", DEFAULT_IMAGE_SIZE)
    )
    max_tokens: int = field(
        default_factory=lambda: int(os.getenv("PATCH_PICASSO_MAX_TOKENS", str(DEFAULT_MAX_TOKENS)))
    )

    # --- Comment and image publication ---
    marker: str = field(
        default_factory=lambda: os.getenv("PATCH_PICASSO_MARKER") or DEFAULT_MARKER
    )
    image_branch: str = field(
        default_factory=lambda: os.getenv("PATCH_PICASSO_IMAGE_BRANCH") or DEFAULT_IMAGE_BRANCH
    )
    image_dir: str = field(
        default_factory=lambda: os.getenv("PATCH_PICASSO_IMAGE_DIR", DEFAULT_IMAGE_DIR)
    )
    publish_target: str = field(
        default_factory=lambda: os.getenv("PATCH_PICASSO_PUBLISH_TARGET", PUBLISH_TARGET_IMAGES_BRANCH).lower()
    )
    on_missing_image: str = field(
        default_factory=lambda: os.getenv("PATCH_PICASSO_ON_MISSING_IMAGE", ON_MISSING_IMAGE_COMMENT).lower()
    )

    # --- Plugin Behavior ---
    request_timeout: float = field(
        default_factory=lambda: float(os.getenv("PATCH_PICASSO_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT)))
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("PATCH_PICASSO_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    )

    def __post_init__(self):
        if self.publish_target not in PUBLISH_TARGETS:
            logger.warning(f"Invalid PATCH_PICASSO_PUBLISH_TARGET '{self.publish_target}'. "
                           f"Defaulting to '{PUBLISH_TARGET_IMAGES_BRANCH}'.")
            self.publish_target = PUBLISH_TARGET_IMAGES_BRANCH

        if self.on_missing_image not in ON_MISSING_IMAGE_POLICIES:
            logger.warning(f"Invalid PATCH_PICASSO_ON_MISSING_IMAGE '{self.on_missing_image}'. "
                           f"Defaulting to '{ON_MISSING_IMAGE_COMMENT}'.")
            self.on_missing_image = ON_MISSING_IMAGE_COMMENT

        if self.log_level not in VALID_LOG_LEVELS:
            logger.warning(f"Invalid PATCH_PICASSO_LOG_LEVEL '{self.log_level}'. Defaulting to '{DEFAULT_LOG_LEVEL}'.")
            self.log_level = DEFAULT_LOG_LEVEL

        self.api_url = self.api_url.rstrip("/")
        self.image_dir = self.image_dir.strip("/")


def load_action_config() -> ActionConfig:
    """
    Factory function to create and return an ActionConfig instance.
    """
    return ActionConfig()
