"""Bounded-concurrency batching for per-question image generation.

Items run in fixed-size groups: members of a group are awaited together, and a
pause separates consecutive groups. A failing member never cancels its siblings;
its question simply keeps no image.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from dataclasses import dataclass, field
import logging
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

from quizforge.config import get_settings
from quizforge.enums import AiProvider
from quizforge.images.keywords import image_prompt_for_question
from quizforge.schemas import ImageRequest, Question

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Patched in tests to avoid real waits.
_sleep = asyncio.sleep


class ImageGenerator(ABC):
    """External image collaborator."""

    @abstractmethod
    async def generate(self, request: ImageRequest) -> str:
        """Return an image URL (or blob reference) for `request`."""


@dataclass
class BatchItemResult(Generic[T, R]):
    item: T
    value: R | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class ImageBatchReport:
    questions: list[Question] = field(default_factory=list)
    succeeded: int = 0
    failed: int = 0
    message: str = ""


async def with_backoff(
    fn: Callable[[], Awaitable[R]],
    max_retries: int,
    base_delay: float = 1.0,
) -> R:
    """Call `fn`, retrying up to `max_retries` times with delays of 1x, 2x, 4x `base_delay`."""

    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as exc:
            if attempt >= max_retries:
                raise
            delay = base_delay * (2**attempt)
            logger.info(
                "retrying after failure: %s",
                str(exc)[:300],
                extra={"attempt": attempt + 1},
            )
            await _sleep(delay)
            attempt += 1


async def run_in_batches(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    batch_size: int = 3,
    pause_seconds: float = 1.0,
) -> list[BatchItemResult[T, R]]:
    """Run `worker` over `items` group by group; results keep input order."""

    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    async def guarded(item: T) -> BatchItemResult[T, R]:
        try:
            return BatchItemResult(item=item, value=await worker(item))
        except Exception as exc:
            logger.warning("batch item failed: %s", str(exc)[:300])
            return BatchItemResult(item=item, error=str(exc) or type(exc).__name__)

    results: list[BatchItemResult[T, R]] = []
    for start in range(0, len(items), batch_size):
        group = items[start : start + batch_size]
        results.extend(await asyncio.gather(*(guarded(item) for item in group)))
        if start + batch_size < len(items):
            await _sleep(pause_seconds)
    return results


async def attach_images(
    questions: Sequence[Question],
    generator: ImageGenerator,
    subject: str | None = None,
    provider: AiProvider = AiProvider.POLLINATIONS,
    token: str | None = None,
    batch_size: int | None = None,
    pause_seconds: float | None = None,
    max_retries: int | None = None,
) -> ImageBatchReport:
    """Generate one image per question; failed items pass through unchanged."""

    settings = get_settings()
    retries = settings.image_max_retries if max_retries is None else max_retries

    async def illustrate(question: Question) -> str:
        request = ImageRequest(
            provider=provider,
            prompt=image_prompt_for_question(question, subject),
            token=token,
        )
        return await with_backoff(
            lambda: generator.generate(request),
            max_retries=retries,
            base_delay=settings.image_retry_base_delay_seconds,
        )

    results = await run_in_batches(
        questions,
        illustrate,
        batch_size=batch_size or settings.image_batch_size,
        pause_seconds=settings.image_batch_pause_seconds if pause_seconds is None else pause_seconds,
    )

    report = ImageBatchReport()
    for result in results:
        if result.ok and result.value:
            report.questions.append(result.item.model_copy(update={"image_url": result.value}))
            report.succeeded += 1
        else:
            report.questions.append(result.item)
            report.failed += 1
    report.message = f"{report.succeeded} of {len(results)} images generated"
    logger.info(
        "image batch finished",
        extra={"accepted": report.succeeded, "rejected": report.failed},
    )
    return report
