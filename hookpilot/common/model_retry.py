"""Model call retry helper for model alias and transient LLM failures."""

import logging
from typing import Any, Awaitable, Callable

EMPTY_LLM_RESPONSE_MESSAGE = "Invalid response from LLM call - None or empty."


class EmptyModelResponseError(RuntimeError):
    """Raised when the provider returns no usable choice."""

    def __init__(self) -> None:
        super().__init__(EMPTY_LLM_RESPONSE_MESSAGE)


def _is_empty_llm_response_error(exc: Exception) -> bool:
    """Return True when the provider surfaced an empty/None response failure."""
    return EMPTY_LLM_RESPONSE_MESSAGE in str(exc)


def _fallback_model_for_error(model: str, exc: Exception) -> str | None:
    """
    Select fallback model for known failure signatures.

    Args:
        model: Preferred model name.
        exc: Exception raised by the completion call.
    Returns:
        Fallback model name when known; otherwise None.
    """
    error_text = str(exc)
    if "-latest" in model and "NOT_FOUND" in error_text:
        return model.replace("-latest", "")
    if "flash-lite" in model and (
        "NOT_FOUND" in error_text or _is_empty_llm_response_error(exc)
    ):
        return model.replace("flash-lite", "flash")
    if "2.5-flash" in model and _is_empty_llm_response_error(exc):
        return model.replace("2.5-flash", "2.0-flash")
    return None


async def complete_with_model_fallback(
    *,
    call: Callable[[str], Awaitable[Any]],
    model: str,
    logger: logging.Logger,
    label: str,
) -> tuple[Any, str]:
    """
    Run a model call with targeted retries for known model/runtime failures.

    Args:
        call: Coroutine factory taking the model name to use.
        model: Preferred model name.
        logger: Logger instance for failure diagnostics.
        label: Run label for log messages.
    Returns:
        Tuple of (call_result, used_model_name).
    """
    try:
        return await call(model), model
    except Exception as exc:
        logger.exception("%s model call failed for model '%s'.", label, model)
        effective_exc = exc

        # Retry once for transient empty LLM responses.
        if _is_empty_llm_response_error(exc):
            logger.warning(
                "Retrying %s once for transient empty LLM response on model '%s'.",
                label,
                model,
            )
            try:
                return await call(model), model
            except Exception as retry_exc:
                logger.exception("%s retry still failed for model '%s'.", label, model)
                effective_exc = retry_exc

        fallback_model = _fallback_model_for_error(model, effective_exc)
        if fallback_model and fallback_model != model:
            logger.warning("Retrying %s with fallback model '%s'.", label, fallback_model)
            return await call(fallback_model), fallback_model
        raise effective_exc
