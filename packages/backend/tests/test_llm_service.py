"""LLM gateway, stream cleaning, and sermon parsing tests.

Learn: No network. The gateway is handed a MagicMock in place of
AsyncOpenAI, with AsyncMock for each awaited call, so assistant runs can
be scripted step by step.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from littlegabriel.schemas.llm import SermonRequest
from littlegabriel.services.llm_service import (
    GABRIEL_SYSTEM_PROMPT,
    HISTORY_LIMIT,
    SSE_DONE,
    AssistantRunTimeoutError,
    LLMConfigurationError,
    LLMGateway,
    LLMUpstreamError,
    classify_openai_error,
    clean_stream,
    clean_token,
    sse_stream,
    trim_history,
)
from littlegabriel.services.sermon_service import (
    SermonParseError,
    build_prompt,
    main_point_range,
    parse_sermon,
)


async def _tokens(*parts):
    for p in parts:
        yield p


async def _collect(agen) -> list:
    return [item async for item in agen]


# ═══════════════════════════════════════════════════════════
# Stream cleaning
# ═══════════════════════════════════════════════════════════


def test_clean_token_strips_markers():
    assert clean_token('0:"Peace ', first=True) == "Peace "
    assert clean_token('0:"Peace ', first=False) == '0:"Peace '
    assert clean_token("be 3:with you") == "be with you"
    assert clean_token("grace   and  truth") == "grace and truth"


@pytest.mark.asyncio
async def test_clean_stream_skips_empty_tokens():
    out = await _collect(clean_stream(_tokens("", '0:"Be ', "", "still.")))
    assert out == ["Be ", "still."]


@pytest.mark.asyncio
async def test_sse_stream_frames_and_completes():
    saved = []

    async def on_complete(text):
        saved.append(text)

    events = await _collect(sse_stream(_tokens('0:"Peace ', "be with you."), on_complete))
    assert events == [
        'data: {"text": "Peace "}\n\n',
        'data: {"text": "be with you."}\n\n',
        SSE_DONE,
    ]
    assert saved == ["Peace be with you."]


@pytest.mark.asyncio
async def test_sse_stream_apologizes_on_failure():
    async def broken():
        yield "Peace "
        raise RuntimeError("connection reset")

    saved = []

    async def on_complete(text):
        saved.append(text)

    events = await _collect(sse_stream(broken(), on_complete))
    assert events[0] == 'data: {"text": "Peace "}\n\n'
    assert "An error occurred" in events[1]
    assert events[-1] == SSE_DONE
    assert saved == []


def test_trim_history_keeps_last_turns():
    messages = [{"role": "user", "content": f"m{i}"} for i in range(15)]
    messages.append({"role": "assistant", "content": "last"})
    formatted = trim_history(messages)
    assert formatted[0] == {"role": "system", "content": GABRIEL_SYSTEM_PROMPT}
    assert len(formatted) == HISTORY_LIMIT + 1
    assert formatted[1] == {"role": "user", "content": "m6"}
    assert formatted[-1] == {"role": "assistant", "content": "last"}


# ═══════════════════════════════════════════════════════════
# Error classification
# ═══════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    "exc,code",
    [
        (Exception("Incorrect API key provided: sk-..."), "auth_error"),
        (Exception("Rate limit reached for gpt-4o"), "rate_limit"),
        (Exception("No such assistant: asst_123"), "assistant_not_found"),
        (Exception("Connection error."), "network_error"),
        (asyncio.TimeoutError(), "network_error"),
        (Exception("something odd"), "unknown_error"),
    ],
)
def test_classify_openai_error(exc, code):
    info = classify_openai_error(exc)
    assert info.code == code
    assert info.message


def test_auth_errors_are_fatal():
    info = classify_openai_error(Exception("invalid api key"))
    assert info.fatal is True
    assert info.retry is False


# ═══════════════════════════════════════════════════════════
# Gateway
# ═══════════════════════════════════════════════════════════


def _assistant_client(statuses, reply="Be still, and know."):
    client = MagicMock()
    client.beta.threads.create = AsyncMock(return_value=SimpleNamespace(id="thread_1"))
    client.beta.threads.messages.create = AsyncMock()
    client.beta.threads.runs.create = AsyncMock(return_value=SimpleNamespace(id="run_1"))
    client.beta.threads.runs.retrieve = AsyncMock(
        side_effect=[SimpleNamespace(status=s) for s in statuses]
    )
    client.beta.threads.messages.list = AsyncMock(
        return_value=SimpleNamespace(
            data=[
                SimpleNamespace(
                    role="assistant",
                    content=[SimpleNamespace(type="text", text=SimpleNamespace(value=reply))],
                )
            ]
        )
    )
    return client


@pytest.mark.asyncio
async def test_run_assistant_polls_until_complete():
    client = _assistant_client(["queued", "in_progress", "completed"])
    gateway = LLMGateway(client=client, assistant_id="asst_1", poll_interval=0)
    reply = await gateway.run_assistant("How do I forgive?", instructions="Be brief")
    assert reply == "Be still, and know."
    assert client.beta.threads.runs.retrieve.await_count == 3
    client.beta.threads.runs.create.assert_awaited_once_with(
        "thread_1", assistant_id="asst_1", instructions="Be brief"
    )


@pytest.mark.asyncio
async def test_run_assistant_thread_replays_conversation():
    client = _assistant_client(["completed"])
    gateway = LLMGateway(client=client, assistant_id="asst_1", poll_interval=0)
    reply = await gateway.run_assistant_thread([
        {"role": "system", "content": "You are a Bible tutor."},
        {"role": "user", "content": "Who wrote Romans?"},
        {"role": "assistant", "content": "Paul."},
        {"role": "user", "content": "To whom?"},
    ])
    assert reply == "Be still, and know."
    sent = [
        (c.kwargs["role"], c.kwargs["content"])
        for c in client.beta.threads.messages.create.await_args_list
    ]
    assert sent == [("user", "Who wrote Romans?"), ("assistant", "Paul."), ("user", "To whom?")]
    client.beta.threads.runs.create.assert_awaited_once_with("thread_1", assistant_id="asst_1")


@pytest.mark.asyncio
async def test_poll_run_times_out():
    client = _assistant_client(["in_progress"] * 3)
    gateway = LLMGateway(client=client, assistant_id="asst_1", poll_interval=0, poll_max_attempts=3)
    with pytest.raises(AssistantRunTimeoutError):
        await gateway.poll_run("thread_1", "run_1")
    assert client.beta.threads.runs.retrieve.await_count == 3


@pytest.mark.asyncio
async def test_failed_run_is_upstream_error():
    client = _assistant_client(["failed"])
    gateway = LLMGateway(client=client, assistant_id="asst_1", poll_interval=0)
    with pytest.raises(LLMUpstreamError, match="Run failed with status: failed"):
        await gateway.run_assistant("Hello")


@pytest.mark.asyncio
async def test_run_assistant_requires_assistant_id():
    gateway = LLMGateway(client=MagicMock(), assistant_id="")
    with pytest.raises(LLMConfigurationError):
        await gateway.run_assistant("Hello")


@pytest.mark.asyncio
async def test_unconfigured_gateway():
    gateway = LLMGateway(client=None)
    assert gateway.configured is False
    with pytest.raises(LLMConfigurationError):
        await gateway.complete([{"role": "user", "content": "hi"}])
    result = await gateway.check_connection()
    assert result["ok"] is False


@pytest.mark.asyncio
async def test_stream_chat_yields_deltas():
    async def chunks():
        for text in ("Grace ", None, "abounds."):
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])
        yield SimpleNamespace(choices=[])

    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=chunks())
    gateway = LLMGateway(client=client)
    out = await _collect(gateway.stream_chat([{"role": "user", "content": "hi"}]))
    assert out == ["Grace ", "abounds."]
    assert client.chat.completions.create.await_args.kwargs["stream"] is True


# ═══════════════════════════════════════════════════════════
# Sermons
# ═══════════════════════════════════════════════════════════

SERMON_JSON = """{
  "title": "The Lord Is My Shepherd",
  "introduction": "Psalm 23 is beloved.",
  "mainPoints": [
    {"title": "Provision", "content": "I shall not want."},
    {"title": "Presence", "content": "Thou art with me."},
  ],
  "conclusion": "Goodness and mercy follow us.",
  "scriptureReferences": ["John 10:11"],
}"""


def test_parse_sermon_repairs_fences_and_trailing_commas():
    sermon = parse_sermon(f"```json\n{SERMON_JSON}\n```")
    assert sermon.title == "The Lord Is My Shepherd"
    assert [p.title for p in sermon.main_points] == ["Provision", "Presence"]
    assert sermon.scripture_references == ["John 10:11"]
    assert sermon.illustrations == []


def test_parse_sermon_finds_object_in_prose():
    sermon = parse_sermon(f"Here is your sermon:\n{SERMON_JSON}\nBlessings!")
    assert sermon.conclusion == "Goodness and mercy follow us."


def test_parse_sermon_rejects_garbage():
    with pytest.raises(SermonParseError):
        parse_sermon("I cannot write that sermon.")
    with pytest.raises(SermonParseError):
        parse_sermon('{"title": "Only a title"}')


def test_build_prompt_scales_with_length():
    short = build_prompt(SermonRequest(bible_passage="Psalm 23", theme="Trust", length_minutes=10))
    long = build_prompt(SermonRequest(bible_passage="Psalm 23", theme="Trust", length_minutes=45))
    assert "2-3 main points" in short
    assert "4-5 main points" in long
    assert "Please suggest an appropriate title." in short
    assert main_point_range(20) == "3-4"
