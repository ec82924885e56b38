# subsirl/live/delivery.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Protocol, Set

from subsirl.app.logging_setup import log_event
from subsirl.contracts import LanguagePair, Utterance, UtteranceStatus
from subsirl.live.pipeline import UtterancePipeline


class OrderingViolation(RuntimeError):
    """A delivery left speech order. Always a defect, never recoverable."""


class SubtitleTarget(Protocol):
    def append(self, text: str) -> None:
        ...


@dataclass(frozen=True)
class _Submitted:
    utterance: Utterance


@dataclass(frozen=True)
class _Completed:
    sequence_id: int


@dataclass(frozen=True)
class _Close:
    pass


class OrderedDeliveryQueue:
    """
    Runs utterance pipelines concurrently and releases their results to the
    sink strictly in sequence order.

    One owner task is the only writer of `next_to_deliver`, `in_flight` and the
    ready set. `submit()` and finished pipelines talk to it through the inbox.
    Utterances whose transcript came back empty are discarded: their slot is
    released without an `append`. Everything else is appended, even when the
    translation is empty.
    """

    def __init__(
        self,
        *,
        pipeline: UtterancePipeline,
        sink: SubtitleTarget,
        max_concurrency: int = 4,
        on_delivered: Callable[[Utterance], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.pipeline = pipeline
        self.sink = sink
        self.max_concurrency = int(max_concurrency)
        self.on_delivered = on_delivered
        self.logger = logger

        self.next_to_deliver = 0
        self.in_flight: Dict[int, Utterance] = {}
        self._ready: Set[int] = set()
        self._next_sequence_id = 0
        self._last_released = -1

        self._inbox: asyncio.Queue | None = None
        self._semaphore: asyncio.Semaphore | None = None
        self._owner: asyncio.Task | None = None
        self._tasks: Set[asyncio.Task] = set()
        self._closing = False

        self.submitted = 0
        self.delivered = 0
        self.discarded = 0

    async def __aenter__(self) -> "OrderedDeliveryQueue":
        self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def start(self) -> None:
        if self._owner is not None:
            raise RuntimeError("delivery queue already started")
        self._inbox = asyncio.Queue()
        self._semaphore = asyncio.Semaphore(self.max_concurrency)
        self._owner = asyncio.get_running_loop().create_task(self._run_owner(), name="subsirl-delivery-owner")

    def submit(
        self,
        audio: bytes,
        languages: LanguagePair,
        *,
        start_time: float = 0.0,
        duration: float = 0.0,
    ) -> Utterance:
        """Create the next utterance in speech order. Must run on the queue's loop."""
        if self._inbox is None:
            raise RuntimeError("delivery queue is not started")
        if self._closing:
            raise RuntimeError("delivery queue is closed")
        if self._owner is None or self._owner.done():
            raise RuntimeError("delivery queue owner has stopped")
        utt = Utterance(
            sequence_id=self._next_sequence_id,
            audio=audio,
            languages=languages,
            start_time=start_time,
            duration=duration,
        )
        self._next_sequence_id += 1
        self.submitted += 1
        self._inbox.put_nowait(_Submitted(utt))
        log_event(
            self.logger,
            logging.INFO,
            "utterance_submitted",
            seq=utt.sequence_id,
            t0=round(start_time, 3),
            dur=round(duration, 3),
            source=languages.source.code,
            target=languages.target.code,
        )
        return utt

    async def aclose(self) -> None:
        """Stop accepting utterances and wait until every one is delivered or discarded."""
        if self._owner is None or self._inbox is None:
            return
        if not self._closing:
            self._closing = True
            self._inbox.put_nowait(_Close())
        try:
            await self._owner
        finally:
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)

    @property
    def stats(self) -> dict[str, int]:
        return {
            "submitted": self.submitted,
            "delivered": self.delivered,
            "discarded": self.discarded,
            "in_flight": len(self.in_flight),
            "next_to_deliver": self.next_to_deliver,
        }

    async def _run_owner(self) -> None:
        assert self._inbox is not None
        closing = False
        while not (closing and not self.in_flight):
            msg = await self._inbox.get()
            if isinstance(msg, _Submitted):
                utt = msg.utterance
                self.in_flight[utt.sequence_id] = utt
                task = asyncio.get_running_loop().create_task(
                    self._run_pipeline(utt),
                    name=f"subsirl-utterance-{utt.sequence_id}",
                )
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
            elif isinstance(msg, _Completed):
                self._ready.add(msg.sequence_id)
                self._drain()
            else:
                closing = True

    async def _run_pipeline(self, utt: Utterance) -> None:
        assert self._semaphore is not None and self._inbox is not None
        try:
            async with self._semaphore:
                await self.pipeline.run(utt)
        except Exception:
            utt.transcript = ""
            utt.result = ""
            utt.status = UtteranceStatus.FAILED
            if self.logger is not None:
                self.logger.exception("pipeline_crash", extra={"seq": utt.sequence_id})
        finally:
            self._inbox.put_nowait(_Completed(utt.sequence_id))

    def _drain(self) -> None:
        while self.next_to_deliver in self._ready:
            seq = self.next_to_deliver
            self._ready.discard(seq)
            utt = self.in_flight.pop(seq)
            self._release(utt)
            self.next_to_deliver += 1

    def _release(self, utt: Utterance) -> None:
        if utt.sequence_id != self.next_to_deliver or utt.sequence_id <= self._last_released:
            raise OrderingViolation(
                f"utterance {utt.sequence_id} released while cursor at {self.next_to_deliver}"
            )
        self._last_released = utt.sequence_id

        if not utt.transcript:
            self.discarded += 1
            log_event(self.logger, logging.INFO, "utterance_discarded", seq=utt.sequence_id)
            return

        text = utt.result or ""
        try:
            self.sink.append(text)
        except Exception:
            if self.logger is not None:
                self.logger.exception("sink_append_failed", extra={"seq": utt.sequence_id})
        self.delivered += 1
        log_event(
            self.logger,
            logging.INFO,
            "utterance_delivered",
            seq=utt.sequence_id,
            chars=len(text),
            in_flight=len(self.in_flight),
        )
        if self.on_delivered is not None:
            try:
                self.on_delivered(utt)
            except Exception:
                if self.logger is not None:
                    self.logger.exception("on_delivered_failed", extra={"seq": utt.sequence_id})
