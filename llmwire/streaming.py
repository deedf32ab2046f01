"""
Incremental decoders for streamed completions.

Each decoder is an async generator that turns raw transport output into
normalized text deltas. ``collect_deltas`` forwards deltas to an observer
queue and accumulates the full text.
"""
import asyncio
import codecs
import json
from contextlib import aclosing
from typing import AsyncIterable, AsyncIterator, Callable, Collection, Optional, TypeVar

from .errors import RequestCancelled, StreamDecodeError
from .types import JSON
from .utils import extract_optional, normalize_text

DeltaExtractor = Callable[[JSON], Optional[str]]

T = TypeVar("T")

_DATA_PREFIX = "data:"
_EVENT_PREFIX = "event:"
_DONE = "[DONE]"

GEMINI_TEXT_PATH = "candidates[0].content.parts[0].text"


def check_cancelled(cancel: Optional[asyncio.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise RequestCancelled("request cancelled")


_EXHAUSTED = object()


async def _next(iterator: AsyncIterator[T]):
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _EXHAUSTED


async def until_cancelled(
    source: AsyncIterable[T],
    cancel: Optional[asyncio.Event] = None,
) -> AsyncIterator[T]:
    """
    Re-yield ``source``, racing every read against ``cancel``.

    A read that is still pending when ``cancel`` is set is abandoned and
    ``RequestCancelled`` is raised, so a stalled stream can be aborted.
    """
    if cancel is None:
        async for item in source:
            yield item
        return

    iterator = source.__aiter__()
    waiter = asyncio.ensure_future(cancel.wait())
    step: Optional[asyncio.Future] = None
    try:
        while True:
            check_cancelled(cancel)
            step = asyncio.ensure_future(_next(iterator))
            await asyncio.wait({step, waiter}, return_when=asyncio.FIRST_COMPLETED)
            if not step.done():
                step.cancel()
                await asyncio.wait({step})
                raise RequestCancelled("request cancelled")
            item = step.result()
            if item is _EXHAUSTED:
                return
            yield item
    finally:
        waiter.cancel()
        if step is not None and not step.done():
            step.cancel()


def _emit(delta: Optional[str]) -> Optional[str]:
    if not delta:
        return None
    return normalize_text(delta) or None


async def iter_sse_deltas(
    lines: AsyncIterable[str],
    extract: DeltaExtractor,
    stop_events: Collection[str] = (),
    cancel: Optional[asyncio.Event] = None,
) -> AsyncIterator[str]:
    """
    Decode a server-sent event stream into text deltas.

    Args:
        lines: Response lines without their terminators.
        extract: Maps one decoded ``data:`` payload to a delta, or ``None``.
        stop_events: ``event:`` names that end the stream immediately.
        cancel: Optional event; once set, a pending or later read raises ``RequestCancelled``.

    Yields:
        str: Non-empty normalized deltas in arrival order.

    Raises:
        StreamDecodeError: If a ``data:`` payload is not valid JSON.
    """
    async with aclosing(until_cancelled(lines, cancel)) as guarded:
        async for raw in guarded:
            line = raw.rstrip("\r\n")

            if line.startswith(_EVENT_PREFIX):
                if line[len(_EVENT_PREFIX):].strip() in stop_events:
                    return
                continue
            if not line.startswith(_DATA_PREFIX):
                continue

            payload = line[len(_DATA_PREFIX):].strip()
            if not payload or payload == _DONE:
                return

            try:
                event = json.loads(payload)
            except json.JSONDecodeError as e:
                raise StreamDecodeError(f"invalid JSON in stream event: {e}") from e

            delta = _emit(extract(event))
            if delta is not None:
                yield delta


def _gemini_text(element: JSON) -> Optional[str]:
    text = extract_optional(element, GEMINI_TEXT_PATH)
    return text if isinstance(text, str) else None


async def iter_gemini_deltas(
    chunks: AsyncIterable[bytes],
    extract: Optional[DeltaExtractor] = None,
    cancel: Optional[asyncio.Event] = None,
) -> AsyncIterator[str]:
    """
    Decode a streamed JSON array of response objects into text deltas.

    The body looks like ``[{...}\\r\\n,{...}\\r\\n]``. Elements may be split
    across chunks or several may arrive in one chunk; the closing ``]`` ends
    the stream.

    Raises:
        StreamDecodeError: On invalid UTF-8, a malformed element, or a body
            that ends in the middle of an element.
    """
    extract = extract or _gemini_text
    utf8 = codecs.getincrementaldecoder("utf-8")(errors="strict")
    decoder = json.JSONDecoder()
    buffer = ""

    async with aclosing(until_cancelled(chunks, cancel)) as guarded:
        async for chunk in guarded:
            try:
                buffer += utf8.decode(chunk)
            except UnicodeDecodeError as e:
                raise StreamDecodeError(f"invalid UTF-8 in stream: {e}") from e

            while True:
                buffer = buffer.lstrip()
                if not buffer:
                    break
                marker = buffer[0]
                if marker in "[,":
                    buffer = buffer[1:]
                    continue
                if marker == "]":
                    return
                try:
                    element, end = decoder.raw_decode(buffer)
                except json.JSONDecodeError:
                    # incomplete element, wait for more bytes
                    break
                buffer = buffer[end:]
                delta = _emit(extract(element))
                if delta is not None:
                    yield delta

    try:
        buffer += utf8.decode(b"", final=True)
    except UnicodeDecodeError as e:
        raise StreamDecodeError(f"invalid UTF-8 in stream: {e}") from e
    if buffer.strip():
        raise StreamDecodeError("stream ended inside an element")


async def collect_deltas(
    deltas: AsyncIterable[str],
    observer: Optional["asyncio.Queue[str]"] = None,
) -> str:
    """
    Forward every delta to ``observer`` and return the concatenated text.

    ``observer.put`` is awaited, so a bounded queue slows the reader down
    rather than dropping deltas.
    """
    parts = []
    async for delta in deltas:
        if observer is not None:
            await observer.put(delta)
        parts.append(delta)
    return "".join(parts)
