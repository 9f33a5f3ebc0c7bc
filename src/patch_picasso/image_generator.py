# src/patch_picasso/image_generator.py
import logging
import litellm  # type: ignore
from typing import Any, Dict, TYPE_CHECKING

from .errors import UpstreamAPIError
from .llm_helper import LITELLM_ERRORS, as_upstream_error, base_litellm_kwargs
from .models import ImageReference

if TYPE_CHECKING:
    from .action_config import ActionConfig

logger = logging.getLogger(__name__)


def _field(item: Any, name: str):
    # LiteLLM returns ImageObject instances; some providers hand back plain dicts.
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


class ImageGenerator:
    def __init__(self, config: 'ActionConfig', api_key: str):
        self.config = config
        self.api_key = api_key

    async def generate(self, prompt: str) -> ImageReference:
        """
        Generates one image for `prompt`.

        Returns:
            An ImageReference holding a hosted URL, a base64 payload, or both.

        Raises:
            UpstreamAPIError: the provider failed or returned no image at all.
        """
        kwargs_for_litellm: Dict[str, Any] = base_litellm_kwargs(self.config.image_model, self.api_key)
        kwargs_for_litellm.update({
            "prompt": prompt,
            "size": self.config.image_size,
            "n": 1,
        })

        logger.info(f"Generating {self.config.image_size} image with {self.config.image_model}")
        try:
            response = await litellm.aimage_generation(**kwargs_for_litellm)
        except LITELLM_ERRORS as e:
            raise as_upstream_error(e, "image_generation", self.config.image_model) from e

        data = _field(response, "data") or []
        if not data:
            raise UpstreamAPIError("POST", f"litellm:image_generation/{self.config.image_model}",
                                   reason="EmptyResponse", body="Image response contained no data")

        image = ImageReference(url=_field(data[0], "url"), b64_json=_field(data[0], "b64_json"))
        if image.url:
            logger.info("Image provider returned a hosted URL.")
        elif image.b64_json:
            logger.info(f"Image provider returned base64 only ({len(image.b64_json)} chars).")
        else:
            raise UpstreamAPIError("POST", f"litellm:image_generation/{self.config.image_model}",
                                   reason="EmptyResponse", body="Image response had neither url nor b64_json")
        return image
