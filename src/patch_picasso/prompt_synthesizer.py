# src/patch_picasso/prompt_synthesizer.py
import json
import logging
import litellm  # type: ignore
from string import Template
import importlib.resources # For loading prompts from package data
from typing import List, Dict, Any, Optional, TYPE_CHECKING

from .errors import GenerationParseError
from .llm_helper import LITELLM_ERRORS, as_upstream_error, base_litellm_kwargs, supports_json_mode
from .models import GenerationResult

if TYPE_CHECKING:
    from .action_config import ActionConfig
    from .models import PullRequestSummary

logger = logging.getLogger(__name__)

MAX_BODY_CHARS = 2000
MAX_IMAGE_PROMPT_CHARS = 800
MAX_CAPTION_CHARS = 200
DEFAULT_CAPTION = "A lighthearted take on this PR"

FALLBACK_SYSTEM_PROMPT = "You write funny, safe-for-work, cartoony image prompts about pull requests."
FALLBACK_USER_PROMPT = "PR DETAILS:\n${pr_summary}\n\nOutput JSON with keys imagePrompt and caption."


def build_pr_summary(pr: 'PullRequestSummary') -> str:
    """Bounded plain-text description of the PR fed to the text model."""
    lines = [
        f"Title: {pr.title}",
        f"Body: {pr.body[:MAX_BODY_CHARS]}" if pr.body else "Body: (none)",
        f"Author: {pr.author_login}",
        f"Base: {pr.base_ref}",
        f"Head: {pr.head_ref}",
        "Files:",
    ]
    lines.extend(f"{f.status}: {f.filename}" for f in pr.changed_files)
    return "\n".join(lines)


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


def decode_generation_output(text: str) -> GenerationResult:
    """
    Strictly decodes the model's JSON answer.

    Raises:
        GenerationParseError: not a JSON object, or no usable imagePrompt.
    """
    try:
        parsed = json.loads(_strip_code_fence(text))
    except ValueError as e:
        raise GenerationParseError(f"Generator output is not JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise GenerationParseError(f"Generator output is JSON but not an object: {type(parsed).__name__}")

    image_prompt = str(parsed.get("imagePrompt") or "").strip()
    if not image_prompt:
        raise GenerationParseError("Generator output has no imagePrompt.")
    caption = str(parsed.get("caption") or "").strip()
    return GenerationResult(
        image_prompt=image_prompt[:MAX_IMAGE_PROMPT_CHARS],
        caption=caption[:MAX_CAPTION_CHARS],
    )


def parse_generation_output(text: str) -> GenerationResult:
    """Like decode_generation_output, but falls back to the raw text and the default caption."""
    try:
        return decode_generation_output(text)
    except GenerationParseError as e:
        logger.warning(f"{e} Using raw text as the image prompt.")
        logger.debug(f"Unparseable generator output: {text[:1000]}")
        return GenerationResult(
            image_prompt=text[:MAX_IMAGE_PROMPT_CHARS],
            caption=DEFAULT_CAPTION,
        )


class PromptSynthesizer:
    def __init__(self, config: 'ActionConfig', api_key: str):
        """
        Args:
            config: The action configuration (models, token budget).
            api_key: Key for the text-generation provider.
        """
        self.config = config
        self.api_key = api_key
        self.system_prompt = self._load_prompt("system_prompt.txt", FALLBACK_SYSTEM_PROMPT)
        self.user_template = Template(self._load_prompt("user_prompt.txt", FALLBACK_USER_PROMPT))

    @staticmethod
    def _load_prompt(filename: str, fallback: str) -> str:
        """Loads a prompt template from the packaged prompts directory."""
        try:
            prompt_file_ref = importlib.resources.files('patch_picasso.prompts').joinpath(filename)
            return prompt_file_ref.read_text(encoding='utf-8').strip()
        except (FileNotFoundError, ModuleNotFoundError):
            logger.error(f"Prompt template '{filename}' not found in package. Using built-in fallback.")
            return fallback

    def create_prompt_messages(self, pr: 'PullRequestSummary') -> List[Dict[str, str]]:
        user_prompt = self.user_template.safe_substitute(pr_summary=build_pr_summary(pr))
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": user_prompt},
        ]

    async def synthesize(self, pr: 'PullRequestSummary') -> GenerationResult:
        """
        Asks the text model for an image prompt and caption describing `pr`.

        Raises:
            UpstreamAPIError: the text-generation call failed.
        """
        kwargs_for_litellm: Dict[str, Any] = base_litellm_kwargs(self.config.text_model, self.api_key)
        kwargs_for_litellm.update({
            "messages": self.create_prompt_messages(pr),
            "max_tokens": self.config.max_tokens,
        })
        if supports_json_mode(self.config.text_model):
            kwargs_for_litellm["response_format"] = {"type": "json_object"}

        logger.info(f"Requesting image prompt and caption from {self.config.text_model}")
        try:
            response = await litellm.acompletion(**kwargs_for_litellm)
        except LITELLM_ERRORS as e:
            raise as_upstream_error(e, "completion", self.config.text_model) from e

        content: Optional[str] = None
        if response and response.choices and response.choices[0].message:
            content = response.choices[0].message.content
        if not content:
            logger.warning("Text model returned empty content.")
            content = ""

        result = parse_generation_output(content.strip())
        logger.info(f"Image prompt ({len(result.image_prompt)} chars), caption: {result.caption!r}")
        return result
