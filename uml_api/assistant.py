"""Assistant gateway: one bounded "thread + run + poll" call to a hosted assistant.

The gateway creates a thread holding the prompt, starts a run of the requested
assistant, polls until the run reaches a terminal status, and returns the newest
assistant message. :meth:`AssistantGateway.ask` wraps that sequence in a timeout
and normalizes every failure into :class:`~uml_api.exceptions.AssistantRunError`.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from loguru import logger
from openai import AsyncOpenAI

from .exceptions import AssistantRunError, ConfigurationError


class RunStatus(StrEnum):
    """Statuses reported for a remote assistant run."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REQUIRES_ACTION = "requires_action"
    EXPIRED = "expired"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"


PENDING_STATUSES = frozenset({RunStatus.QUEUED, RunStatus.IN_PROGRESS})

# status -> (http status, message); the kind is the status itself
RUN_STATUS_ERRORS: dict[str, tuple[int, str]] = {
    RunStatus.REQUIRES_ACTION: (400, "The run requires action."),
    RunStatus.EXPIRED: (408, "The run has expired."),
    RunStatus.CANCELLING: (409, "The run has been cancelled."),
    RunStatus.CANCELLED: (409, "The run has been cancelled."),
    RunStatus.FAILED: (500, "The run has failed."),
}


@dataclass(frozen=True)
class AssistantRequest:
    """A single question for an assistant."""

    assistant_id: str
    prompt: str


@dataclass(frozen=True)
class ThreadMessage:
    """A message in an assistant thread."""

    role: str
    text: str


class RunStatusError(Exception):
    """A run stopped in a terminal status other than ``completed``."""

    def __init__(self, status: str) -> None:
        self.status = status
        super().__init__('Run finished with status other than "complete".')


class AssistantBackend(Protocol):
    """Remote thread/run API used by the gateway."""

    async def create_thread(self, prompt: str) -> str:
        """Create a thread seeded with one user message; return its id."""
        ...

    async def create_run(self, thread_id: str, assistant_id: str) -> str:
        """Start an assistant run on a thread; return the run id."""
        ...

    async def retrieve_run_status(self, thread_id: str, run_id: str) -> str:
        """Return the current status of a run."""
        ...

    async def list_messages(self, thread_id: str) -> list[ThreadMessage]:
        """Return the newest page of thread messages, oldest first."""
        ...


def format_seconds(milliseconds: int | float) -> str:
    """Render a millisecond duration in seconds without a trailing ``.0``."""
    seconds = milliseconds / 1000
    return str(int(seconds)) if seconds.is_integer() else str(seconds)


def run_status_error(status: str, message: str) -> AssistantRunError:
    """Map a terminal run status to the error returned to clients."""
    if status in RUN_STATUS_ERRORS:
        http_status, text = RUN_STATUS_ERRORS[status]
        return AssistantRunError(text, status_code=http_status, error_type=str(status))
    return server_error(message)


def timeout_error(timeout_ms: int | float) -> AssistantRunError:
    return AssistantRunError(
        f"The run timed out after {format_seconds(timeout_ms)} seconds.",
        status_code=408,
        error_type="timeout",
    )


def server_error(message: str) -> AssistantRunError:
    return AssistantRunError(message, status_code=500, error_type="ServerError")


class AssistantGateway:
    """Ask a hosted assistant a question and wait for its reply."""

    def __init__(
        self,
        backend: AssistantBackend,
        poll_interval: float = 0.5,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        """Initialize with an injected backend.

        Args:
            backend: Remote thread/run API.
            poll_interval: Seconds to wait between run status polls.
            sleep: Coroutine used to wait between polls (injectable for tests).
        """
        self.backend = backend
        self.poll_interval = poll_interval
        self.sleep = sleep

    async def ask_raw(self, assistant_id: str, prompt: str) -> str:
        """Run the assistant once with no time limit.

        Raises:
            RunStatusError: The run ended in a status other than ``completed``.
            LookupError: The run completed without an assistant message.
        """
        request = AssistantRequest(assistant_id=assistant_id, prompt=prompt)

        thread_id = await self.backend.create_thread(request.prompt)
        run_id = await self.backend.create_run(thread_id, request.assistant_id)
        logger.debug(f"Started run {run_id} on thread {thread_id}")

        status = await self.backend.retrieve_run_status(thread_id, run_id)
        polls = 1
        while status in PENDING_STATUSES:
            await self.sleep(self.poll_interval)
            status = await self.backend.retrieve_run_status(thread_id, run_id)
            polls += 1

        logger.debug(f"Run {run_id} finished with status {status} after {polls} polls")
        if status != RunStatus.COMPLETED:
            raise RunStatusError(status)

        messages = await self.backend.list_messages(thread_id)
        replies = [message for message in messages if message.role == "assistant"]
        if not replies:
            raise LookupError("The run completed without an assistant reply.")
        return replies[-1].text

    async def ask(self, assistant_id: str, prompt: str, timeout_ms: int) -> str:
        """Run the assistant, giving up after ``timeout_ms`` milliseconds.

        Abandoning a timed-out call stops waiting for it locally; the remote run is
        left to finish on its own.

        Raises:
            AssistantRunError: For every failure, timeouts included.
        """
        timer = None
        try:
            timer = asyncio.timeout(timeout_ms / 1000)
            async with timer:
                return await self.ask_raw(assistant_id, prompt)
        except RunStatusError as e:
            logger.warning(f"Assistant run ended with status {e.status}")
            raise run_status_error(e.status, str(e)) from e
        except TimeoutError as e:
            if timer is not None and timer.expired():
                logger.warning(f"Assistant run timed out after {timeout_ms}ms")
                raise timeout_error(timeout_ms) from e
            logger.error(f"Assistant call failed: {e}")
            raise server_error(str(e)) from e
        except Exception as e:
            logger.error(f"Assistant call failed: {e}")
            raise server_error(str(e)) from e

    async def health_check(self) -> bool:
        """Check if the backend is configured."""
        checker = getattr(self.backend, "health_check", None)
        if checker is None:
            return True
        return bool(await checker())


class OpenAIAssistantBackend:
    """:class:`AssistantBackend` over the OpenAI Assistants API."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            api_key: OpenAI API key.
            base_url: Optional API base URL override.
            client: Optional preconfigured ``AsyncOpenAI`` client.
        """
        if client is None:
            if not api_key:
                raise ConfigurationError("OpenAI API key is required")
            client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.client = client

    async def create_thread(self, prompt: str) -> str:
        thread = await self.client.beta.threads.create(
            messages=[{"role": "user", "content": prompt}],
        )
        return thread.id

    async def create_run(self, thread_id: str, assistant_id: str) -> str:
        run = await self.client.beta.threads.runs.create(
            thread_id=thread_id,
            assistant_id=assistant_id,
        )
        return run.id

    async def retrieve_run_status(self, thread_id: str, run_id: str) -> str:
        run = await self.client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
        return run.status

    async def list_messages(self, thread_id: str) -> list[ThreadMessage]:
        page = await self.client.beta.threads.messages.list(thread_id=thread_id, order="desc")
        return [
            ThreadMessage(role=message.role, text=self._message_text(message))
            for message in reversed(page.data)
        ]

    @staticmethod
    def _message_text(message) -> str:
        for block in message.content:
            if getattr(block, "type", None) == "text":
                return block.text.value
        return ""

    async def health_check(self) -> bool:
        return self.client is not None


def create_assistant_gateway() -> AssistantGateway:
    """Factory function to create the gateway from settings."""
    from .config import settings

    backend = OpenAIAssistantBackend(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
    )
    logger.info("Using OpenAI assistant backend")
    return AssistantGateway(backend, poll_interval=settings.assistant_poll_interval)
