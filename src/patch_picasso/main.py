# src/patch_picasso/main.py
import os
import sys
import asyncio # For running async LLM calls
import logging
from typing import Optional

import click
from dotenv import load_dotenv # For local development using .env file

from . import __version__
from .action_config import load_action_config, ActionConfig, ON_MISSING_IMAGE_ABORT
from .comments import compose_comment_body, has_existing_comment, post_comment
from .context import InvocationContext, resolve_invocation_context
from .errors import PatchPicassoError, PublicationError
from .image_generator import ImageGenerator
from .image_storage import ImagePublisher
from .models import PullRequestSummary
from .prompt_synthesizer import PromptSynthesizer
from .scm_client import GitHubClient

# Global logger for the module
logger = logging.getLogger("patch_picasso") # Use a named logger


def setup_logging(log_level_str: str):
    """Configures basic logging for the action."""
    numeric_level = getattr(logging, log_level_str.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
        logger.warning(f"Invalid log level '{log_level_str}'. Defaulting to INFO.")

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logger.setLevel(numeric_level)
    # LiteLLM logs every request at INFO; keep it quiet unless we are debugging
    if numeric_level > logging.DEBUG:
        logging.getLogger("LiteLLM").setLevel(logging.WARNING)


async def run_action(context: InvocationContext, config: ActionConfig, scm_client: GitHubClient,
                     synthesizer: PromptSynthesizer, image_generator: ImageGenerator,
                     publisher: ImagePublisher) -> bool:
    """
    Runs one pass for the PR in `context`: idempotency check, PR fetch,
    prompt synthesis, image generation, optional publication, comment.

    Returns False when nothing was posted because the PR already has a comment.
    Upstream failures propagate as PatchPicassoError.
    """
    if has_existing_comment(scm_client, context.pr_number, config.marker):
        logger.info("Comment already exists. Skipping.")
        return False

    pr_data = scm_client.get_pull_request(context.pr_number)
    files = scm_client.list_pull_request_files(context.pr_number)
    pr = PullRequestSummary.from_api(pr_data, files)
    if pr.number is None:
        pr.number = context.pr_number
    logger.info(f"PR #{pr.number} '{pr.title}' by {pr.author_login}: {len(pr.changed_files)} changed files considered.")

    generation = await synthesizer.synthesize(pr)
    image = await image_generator.generate(generation.image_prompt)

    if image.needs_publication:
        logger.info(f"No hosted URL for the image. Publishing it via '{config.publish_target}'.")
        image.published_url = publisher.publish(pr, image.b64_json)

    image_url = image.resolved_url
    if not image_url:
        if config.on_missing_image == ON_MISSING_IMAGE_ABORT:
            raise PublicationError("No usable image URL was obtained and PATCH_PICASSO_ON_MISSING_IMAGE=abort.")
        logger.warning("No usable image URL was obtained. The comment will say the image is unavailable.")

    body = compose_comment_body(config.marker, generation.caption, image_url)
    post_comment(scm_client, context.pr_number, body)
    return True


async def async_main(repo_arg: Optional[str] = None, pr_arg: Optional[int] = None) -> int:
    """
    Asynchronous main function to orchestrate the action.
    """
    config = load_action_config()
    setup_logging(config.log_level) # Configure logging early

    logger.info(f"Starting patch-picasso {__version__}...")

    try:
        context = resolve_invocation_context(config, repo_arg=repo_arg, pr_arg=pr_arg)
    except PatchPicassoError as e:
        logger.error(f"[{e.kind.value}] {e}")
        return 1

    scm_client = GitHubClient(context.github_token, context.owner, context.repo_name,
                              api_base_url=config.api_url, timeout=config.request_timeout)
    synthesizer = PromptSynthesizer(config, context.llm_api_key)
    image_generator = ImageGenerator(config, context.llm_api_key)
    publisher = ImagePublisher(config, scm_client)

    try:
        posted = await run_action(context, config, scm_client, synthesizer, image_generator, publisher)
        logger.info(f"Action finished. Comment posted: {posted}")
        return 0
    except PatchPicassoError as e:
        logger.error(f"Failed [{e.kind.value}]: {e}")
        return 1
    except Exception as e:
        logger.critical(f"Unhandled exception in action execution: {e}", exc_info=True)
        return 1 # General failure


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--repo", "repo", default=None, metavar="OWNER/NAME",
              help="Target repository. Defaults to $GITHUB_REPOSITORY.")
@click.option("--pr", "--pr-number", "pr_number", type=int, default=None,
              help="Pull request number. Defaults to the number in $GITHUB_EVENT_PATH.")
@click.version_option(__version__, prog_name="patch-picasso")
def main_cli(repo: Optional[str], pr_number: Optional[int]):
    """
    Post a generated, PR-inspired image as a comment on a pull request.
    """
    # Load .env file if it exists (for local development)
    # In a real CI environment, variables are injected by the runner.
    if os.path.exists(".env"):
        load_dotenv(override=True)

    try:
        exit_code = asyncio.run(async_main(repo_arg=repo, pr_arg=pr_number))
    except KeyboardInterrupt:
        logger.info("Execution interrupted by user (KeyboardInterrupt).")
        exit_code = 130 # Standard exit code for Ctrl+C
    sys.exit(exit_code)


if __name__ == "__main__":
    main_cli()
