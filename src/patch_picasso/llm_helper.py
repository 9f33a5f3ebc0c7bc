# src/patch_picasso/llm_helper.py
import logging
import litellm  # type: ignore
from typing import Any, Dict

from .errors import UpstreamAPIError

logger = logging.getLogger(__name__)

# Errors LiteLLM raises for provider-side failures. Anything else is a bug and propagates as is.
LITELLM_ERRORS = (
    litellm.exceptions.APIConnectionError,
    litellm.exceptions.RateLimitError,
    litellm.exceptions.AuthenticationError,
    litellm.exceptions.BadRequestError,
    litellm.exceptions.Timeout,
    litellm.exceptions.NotFoundError,
    litellm.exceptions.PermissionDeniedError,
    litellm.exceptions.UnprocessableEntityError,
    litellm.exceptions.InternalServerError,
    litellm.exceptions.ServiceUnavailableError,
    litellm.exceptions.APIError,
)

# Model name fragments known to accept response_format={"type": "json_object"}
JSON_MODE_MODELS = ("gpt-4", "gpt-3.5-turbo-1106", "gemini-1.5")


def base_litellm_kwargs(model: str, api_key: str) -> Dict[str, Any]:
    """Keyword arguments shared by every LiteLLM call."""
    return {
        "model": model,
        "api_key": api_key,
    }


def supports_json_mode(model: str) -> bool:
    model_lower = model.lower()
    return any(fragment in model_lower for fragment in JSON_MODE_MODELS)


def as_upstream_error(exc: Exception, operation: str, model: str) -> UpstreamAPIError:
    """Converts a LiteLLM exception into the error type the top-level handler reports."""
    status_code = getattr(exc, "status_code", None)
    message = getattr(exc, "message", None) or str(exc)
    logger.error(f"LiteLLM {operation} call to {model} failed ({type(exc).__name__}): {message}")
    return UpstreamAPIError("POST", f"litellm:{operation}/{model}",
                            status_code=status_code if isinstance(status_code, int) else None,
                            reason=type(exc).__name__, body=message)
