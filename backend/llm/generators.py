"""Code generation — server side of the streaming pipeline.

:class:`GenerationStreamEncoder` drives one model call and serializes
its classified deltas as newline-delimited JSON, one record per delta,
in emission order, with no batching:

    {"type":"reasoning","content":"..."}\\n
    {"type":"text","content":"<!DOCTYPE html>..."}\\n

Calling :meth:`~GenerationStreamEncoder.start` before handing the
encoder to a response waits for the first delta, so connect-time
failures surface as exceptions while a proper error status can still
be sent.  A failure after that re-raises out of the byte iterator,
which aborts the response instead of ending it cleanly.
"""

from __future__ import annotations

import itertools
import logging
from typing import Generator, Iterator

from errors import GenerationError, UpstreamGenerationFailure
from stream_protocol import StreamRecord
from telemetry import GenerationTelemetry, TelemetryStore

from .providers.base import Delta, ModelHandle

logger = logging.getLogger(__name__)


class GenerationStreamEncoder:
    """Model handle + prompt in, NDJSON bytes out."""

    def __init__(
        self,
        handle: ModelHandle,
        prompt: str,
        system_prompt: str,
        max_tokens: int | None = None,
        *,
        telemetry: GenerationTelemetry | None = None,
    ):
        self.handle = handle
        self.prompt = prompt
        self.system_prompt = system_prompt
        self.max_tokens = max_tokens
        self.telemetry = telemetry or GenerationTelemetry(
            provider_id=handle.provider_id,
            model_id=handle.model_id,
            prompt_chars=len(prompt),
        )
        self._source: Iterator[Delta] | None = None
        self._pending: list[Delta] = []

    def start(self) -> "GenerationStreamEncoder":
        """Issue the model call and wait for its first delta."""
        if self._source is not None:
            return self
        self.telemetry.mark("start")
        self._source = self.handle.stream(self.prompt, self.system_prompt, self.max_tokens)
        try:
            self._pending = [next(self._source)]
        except StopIteration:
            self._pending = []
        except GenerationError as e:
            self._fail(e)
            raise
        except Exception as e:
            failure = UpstreamGenerationFailure(str(e), provider_id=self.handle.provider_id)
            self._fail(failure)
            raise failure from e
        return self

    def _fail(self, error: GenerationError) -> None:
        logger.error(
            f"Generation failed ({self.handle.provider_id}/{self.handle.model_id}): {error}"
        )
        self.telemetry.finalize("failed", str(error))
        TelemetryStore.append(self.telemetry)

    def __iter__(self) -> Generator[bytes, None, None]:
        self.start()
        finished = False
        try:
            for delta in itertools.chain(self._pending, self._source):
                data = StreamRecord(delta.channel.value, delta.content).encode()
                self.telemetry.record_delta(delta.channel.value, len(data))
                yield data
            finished = True
        except GenerationError as e:
            self._fail(e)
            raise
        except Exception as e:
            failure = UpstreamGenerationFailure(
                f"Stream terminated abnormally: {e}", provider_id=self.handle.provider_id
            )
            self._fail(failure)
            raise failure from e
        finally:
            if self.telemetry.outcome == "pending":
                # Downstream stopped reading (client disconnect) or we finished.
                self.telemetry.finalize("complete" if finished else "aborted")
                TelemetryStore.append(self.telemetry)
                close = getattr(self._source, "close", None)
                if close is not None:
                    close()
