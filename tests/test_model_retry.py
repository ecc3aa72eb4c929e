"""Unit tests for hookpilot/common/model_retry.py."""

from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.mark.asyncio
async def test_complete_with_model_fallback_returns_on_first_success():
    from hookpilot.common.model_retry import complete_with_model_fallback

    call = AsyncMock(return_value="ok")
    result, used_model = await complete_with_model_fallback(
        call=call,
        model="gemini/gemini-2.5-flash",
        logger=MagicMock(),
        label="Agent",
    )

    assert result == "ok"
    assert used_model == "gemini/gemini-2.5-flash"
    call.assert_awaited_once_with("gemini/gemini-2.5-flash")


@pytest.mark.asyncio
async def test_complete_with_model_fallback_retries_once_on_empty_llm_response():
    from hookpilot.common.model_retry import EmptyModelResponseError, complete_with_model_fallback

    call = AsyncMock(side_effect=[EmptyModelResponseError(), "ok-after-retry"])
    result, used_model = await complete_with_model_fallback(
        call=call,
        model="openai/gpt-4o-mini",
        logger=MagicMock(),
        label="Agent",
    )

    assert result == "ok-after-retry"
    assert used_model == "openai/gpt-4o-mini"
    assert call.await_count == 2


@pytest.mark.asyncio
async def test_complete_with_model_fallback_uses_latest_not_found_fallback():
    from hookpilot.common.model_retry import complete_with_model_fallback

    call = AsyncMock(side_effect=[Exception("Model NOT_FOUND"), "ok-with-fallback"])
    result, used_model = await complete_with_model_fallback(
        call=call,
        model="gemini/gemini-2.5-flash-latest",
        logger=MagicMock(),
        label="Agent",
    )

    assert result == "ok-with-fallback"
    assert used_model == "gemini/gemini-2.5-flash"
    assert call.await_args_list[1].args == ("gemini/gemini-2.5-flash",)


@pytest.mark.asyncio
async def test_complete_with_model_fallback_uses_older_flash_after_empty_retry():
    from hookpilot.common.model_retry import EMPTY_LLM_RESPONSE_MESSAGE, complete_with_model_fallback

    call = AsyncMock(
        side_effect=[
            Exception(EMPTY_LLM_RESPONSE_MESSAGE),
            Exception(EMPTY_LLM_RESPONSE_MESSAGE),
            "ok-on-2.0",
        ]
    )
    result, used_model = await complete_with_model_fallback(
        call=call,
        model="gemini/gemini-2.5-flash",
        logger=MagicMock(),
        label="Agent",
    )

    assert result == "ok-on-2.0"
    assert used_model == "gemini/gemini-2.0-flash"
    assert call.await_count == 3


@pytest.mark.asyncio
async def test_complete_with_model_fallback_reraises_unknown_errors():
    from hookpilot.common.model_retry import complete_with_model_fallback

    call = AsyncMock(side_effect=ValueError("quota exceeded"))
    with pytest.raises(ValueError, match="quota exceeded"):
        await complete_with_model_fallback(
            call=call,
            model="gemini/gemini-2.5-flash",
            logger=MagicMock(),
            label="Agent",
        )
    assert call.await_count == 1
