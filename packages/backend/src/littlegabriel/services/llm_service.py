"""LLM gateway — Gabriel's conversations with OpenAI.

Learn: Two ways to talk to OpenAI, chosen by settings.use_assistant_mode():
- Assistant mode: create a thread, add the message, start a run, poll the
  run until it finishes, then read the newest assistant message.
- Completion mode: plain chat completions, streamed token by token.

Retries and timeouts are the SDK's own (max_retries / timeout on the
client). Run polling is a fixed-interval loop with a bounded attempt count;
there is no backoff.

The streamed text is cleaned before it reaches the browser. Some models
echo stream-protocol markers like `0:"` into the text; clean_token()
strips them.
"""

import asyncio
import json
import re
from dataclasses import asdict, dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import openai
import structlog
from openai import AsyncOpenAI

from littlegabriel.config import settings
from littlegabriel.errors import ConfigurationError, UpstreamError

logger = structlog.get_logger()

GABRIEL_SYSTEM_PROMPT = (
    "You are Gabriel, a compassionate spiritual guide that offers biblical "
    "wisdom and spiritual advice. Your responses should be grounded in "
    "scripture, offer comfort, provide practical guidance, and maintain a "
    "warm, supportive tone. When appropriate, refer to relevant Bible "
    "passages to support your guidance. You should be non-judgmental and "
    "respectful of diverse faith backgrounds. Be concise but thorough, "
    "focusing on being helpful rather than preachy."
)

HISTORY_LIMIT = 10
RUN_TERMINAL_STATES = ("completed", "failed", "cancelled", "expired", "incomplete")

STREAM_APOLOGY = "An error occurred while processing the response."


# ─── Errors ──────────────────────────────────────────────


class LLMConfigurationError(ConfigurationError):
    """OPENAI_API_KEY (or the assistant id) is missing."""


class LLMUpstreamError(UpstreamError):
    """OpenAI returned an error or an unusable answer."""


class AssistantRunTimeoutError(LLMUpstreamError):
    """A run did not reach a terminal state within the polling budget."""


@dataclass
class ErrorInfo:
    """A classified OpenAI failure, safe to show to users."""
    code: str
    title: str
    message: str
    suggestion: str
    retry: bool
    fatal: bool

    def to_dict(self) -> dict:
        return asdict(self)


def classify_openai_error(exc: BaseException) -> ErrorInfo:
    """Map an OpenAI SDK (or network) exception to an ErrorInfo."""
    text = str(exc)
    lowered = text.lower()
    status = getattr(exc, "status_code", None)

    if (
        isinstance(exc, openai.AuthenticationError)
        or status == 401
        or "incorrect api key" in lowered
        or "invalid api key" in lowered
    ):
        return ErrorInfo(
            code="auth_error",
            title="Authentication Error",
            message="Gabriel cannot connect due to authentication issues.",
            suggestion="Please contact the administrator to check the OpenAI API key configuration.",
            retry=False,
            fatal=True,
        )
    if isinstance(exc, openai.RateLimitError) or status == 429 or "rate limit" in lowered:
        return ErrorInfo(
            code="rate_limit",
            title="Rate Limit Reached",
            message="Gabriel is experiencing high demand right now.",
            suggestion="Please try again in a few minutes.",
            retry=True,
            fatal=False,
        )
    if "no such assistant" in lowered or (
        isinstance(exc, openai.NotFoundError) and "assistant" in lowered
    ):
        return ErrorInfo(
            code="assistant_not_found",
            title="Assistant Not Found",
            message="Gabriel assistant could not be found.",
            suggestion="Please contact the administrator to check the assistant configuration.",
            retry=False,
            fatal=True,
        )
    if isinstance(exc, (openai.APIConnectionError, asyncio.TimeoutError)) or any(
        marker in lowered for marker in ("network", "timeout", "timed out", "connection")
    ):
        return ErrorInfo(
            code="network_error",
            title="Network Error",
            message="Gabriel is having trouble connecting to the AI service.",
            suggestion="Please check your internet connection and try again.",
            retry=True,
            fatal=False,
        )
    if (status is not None and status >= 500) or isinstance(exc, openai.InternalServerError):
        return ErrorInfo(
            code="server_error",
            title="Server Error",
            message="The AI service is currently experiencing issues.",
            suggestion="Please try again later.",
            retry=True,
            fatal=False,
        )
    return ErrorInfo(
        code="unknown_error",
        title="AI Service Error",
        message="An unexpected error occurred while communicating with Gabriel.",
        suggestion="Please try again later.",
        retry=True,
        fatal=False,
    )


# ─── Stream cleaning ─────────────────────────────────────

_LEADING_MARKER = re.compile(r"^\d+:[\"']?\s*")
_INLINE_MARKER = re.compile(r"\s\d+:[\"']?\s*")
_SPACE_RUN = re.compile(r"\s{2,}")


def clean_token(token: str, first: bool = False) -> str:
    """Strip stream markers from one token.

    The leading `0:"` form is only removed from the first token; inline
    ` 3:` markers are replaced by a space anywhere.
    """
    if first:
        token = _LEADING_MARKER.sub("", token)
    token = _INLINE_MARKER.sub(" ", token)
    return _SPACE_RUN.sub(" ", token)


async def clean_stream(tokens: AsyncIterator[str]) -> AsyncIterator[str]:
    """Yield cleaned, non-empty tokens."""
    started = False
    async for token in tokens:
        if not token:
            continue
        cleaned = clean_token(token, first=not started)
        started = True
        if cleaned:
            yield cleaned


def sse_event(payload: Any) -> str:
    return f"data: {json.dumps(payload)}\n\n"


SSE_DONE = "data: [DONE]\n\n"


async def sse_stream(
    tokens: AsyncIterator[str],
    on_complete: Optional[Callable[[str], Awaitable[None]]] = None,
) -> AsyncIterator[str]:
    """Frame cleaned tokens as Server-Sent Events.

    Emits `data: {"text": ...}` per token and `data: [DONE]` at the end.
    If the upstream stream fails mid-way the client gets an apology event
    before [DONE]; the full text is handed to on_complete only on success.
    """
    parts: list[str] = []
    try:
        async for token in clean_stream(tokens):
            parts.append(token)
            yield sse_event({"text": token})
    except Exception as e:
        logger.error("llm.stream_failed", error=str(e), code=classify_openai_error(e).code)
        yield sse_event({"text": STREAM_APOLOGY})
        yield SSE_DONE
        return

    if on_complete is not None:
        try:
            await on_complete("".join(parts))
        except Exception as e:
            logger.warning("llm.stream_callback_failed", error=str(e))
    yield SSE_DONE


def trim_history(messages: list[dict]) -> list[dict]:
    """System prompt plus the last HISTORY_LIMIT turns. Roles are validated by ChatMessageIn."""
    formatted = [{"role": "system", "content": GABRIEL_SYSTEM_PROMPT}]
    for msg in messages[-HISTORY_LIMIT:]:
        formatted.append({"role": msg["role"], "content": msg.get("content", "")})
    return formatted


# ─── Gateway ─────────────────────────────────────────────


def build_client() -> Optional[AsyncOpenAI]:
    """AsyncOpenAI from settings, or None when no API key is configured."""
    if not settings.openai_api_key:
        return None
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        max_retries=settings.openai_max_retries,
        timeout=settings.openai_timeout_seconds,
    )


class LLMGateway:
    """Everything the app asks of OpenAI goes through here.

    Learn: Tests replace the whole gateway via a dependency override, or
    hand it a mocked AsyncOpenAI client.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        assistant_id: Optional[str] = None,
        model: Optional[str] = None,
        poll_interval: Optional[float] = None,
        poll_max_attempts: Optional[int] = None,
    ):
        self.client = client
        self.assistant_id = assistant_id if assistant_id is not None else settings.openai_assistant_id
        self.model = model or settings.openai_model
        self.poll_interval = settings.assistant_poll_interval if poll_interval is None else poll_interval
        self.poll_max_attempts = poll_max_attempts or settings.assistant_poll_max_attempts

    @classmethod
    def from_settings(cls) -> "LLMGateway":
        return cls(client=build_client())

    @property
    def configured(self) -> bool:
        return self.client is not None

    def use_assistant_mode(self) -> bool:
        return settings.use_assistant_mode()

    def _require_client(self) -> AsyncOpenAI:
        if self.client is None:
            raise LLMConfigurationError(
                "OpenAI API key is not configured. Please contact the administrator."
            )
        return self.client

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.close()

    # ─── Completions ────────────────────────────────────

    async def stream_chat(self, messages: list[dict]) -> AsyncIterator[str]:
        """Raw token deltas for a chat completion."""
        client = self._require_client()
        stream = await client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=0.7,
            max_tokens=1000,
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content

    async def complete(self, messages: list[dict], max_tokens: int = 1000) -> str:
        client = self._require_client()
        try:
            resp = await client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0.7,
                max_tokens=max_tokens,
            )
        except openai.OpenAIError as e:
            raise LLMUpstreamError(f"OpenAI API Error: {e}", classify_openai_error(e).message)
        return resp.choices[0].message.content or ""

    # ─── Assistant runs ─────────────────────────────────

    async def poll_run(self, thread_id: str, run_id: str) -> Any:
        """Poll a run at a fixed interval until it reaches a terminal state."""
        client = self._require_client()
        for attempt in range(self.poll_max_attempts):
            run = await client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
            if run.status in RUN_TERMINAL_STATES:
                logger.debug("llm.run_finished", run_id=run_id, status=run.status, attempts=attempt + 1)
                return run
            await asyncio.sleep(self.poll_interval)
        raise AssistantRunTimeoutError(
            "Assistant API Error: run timed out",
            f"Run {run_id} not finished after {self.poll_max_attempts} attempts",
        )

    async def run_assistant(self, content: str, instructions: Optional[str] = None) -> str:
        """Send one message to the assistant and return its text reply."""
        return await self.run_assistant_thread(
            [{"role": "user", "content": content}], instructions=instructions
        )

    async def run_assistant_thread(
        self, messages: list[dict], instructions: Optional[str] = None
    ) -> str:
        """Replay a conversation into a fresh thread and return the reply.

        System messages are skipped; the assistant carries its own
        instructions.
        """
        client = self._require_client()
        if not self.assistant_id:
            raise LLMConfigurationError("OpenAI assistant ID is not configured")
        try:
            thread = await client.beta.threads.create()
            for message in messages:
                if message["role"] == "system":
                    continue
                await client.beta.threads.messages.create(
                    thread.id, role=message["role"], content=message["content"]
                )
            run_kwargs: dict = {"assistant_id": self.assistant_id}
            if instructions:
                run_kwargs["instructions"] = instructions
            run = await client.beta.threads.runs.create(thread.id, **run_kwargs)
            run = await self.poll_run(thread.id, run.id)
            if run.status != "completed":
                raise LLMUpstreamError(
                    f"Assistant API Error: Run failed with status: {run.status}"
                )
            page = await client.beta.threads.messages.list(thread.id, order="desc")
        except openai.OpenAIError as e:
            info = classify_openai_error(e)
            logger.warning("llm.assistant_failed", code=info.code, error=str(e))
            raise LLMUpstreamError(f"Assistant API Error: {e}", info.message)

        for message in page.data:
            if message.role != "assistant":
                continue
            text = "".join(
                part.text.value for part in message.content if part.type == "text"
            )
            if text:
                return text
        raise LLMUpstreamError("Assistant API Error: Empty response received from assistant")

    # ─── Diagnostics ────────────────────────────────────

    async def check_connection(self) -> dict:
        """Live check used by /api/debug/openai and `gabriel check openai`."""
        if self.client is None:
            return {"ok": False, "error": LLMConfigurationError.__doc__.strip()}
        try:
            models = await self.client.models.list()
        except openai.OpenAIError as e:
            return {"ok": False, "error": str(e), "errorInfo": classify_openai_error(e).to_dict()}
        ids = [m.id for m in models.data]
        return {
            "ok": True,
            "modelCount": len(ids),
            "hasConfiguredModel": self.model in ids,
        }

    async def check_assistant(self) -> dict:
        if self.client is None:
            return {"ok": False, "error": LLMConfigurationError.__doc__.strip()}
        if not self.assistant_id:
            return {"ok": False, "error": "OpenAI assistant ID is not configured"}
        try:
            assistant = await self.client.beta.assistants.retrieve(self.assistant_id)
        except openai.OpenAIError as e:
            return {"ok": False, "error": str(e), "errorInfo": classify_openai_error(e).to_dict()}
        return {"ok": True, "name": assistant.name, "model": assistant.model}
