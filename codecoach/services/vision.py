"""Editor "vision": Gemini commentary on the code the learner is editing.

``VisionService`` answers one request. ``VisionMonitor`` polls a capture
callback on a background thread and forwards changed content to the
service, one analysis at a time.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from codecoach.config import VISION_CAPTURE_INTERVAL_SECONDS, VISION_MAX_OUTPUT_TOKENS
from codecoach.llm.base import LLMClient
from codecoach.llm.prompts import vision_prompt
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter, time_block

logger = get_logger(__name__)

ACKNOWLEDGE_PROMPT = (
    "Here's the code I'm currently working on in the editor. "
    "Just acknowledge you can see it but don't analyze it unless I ask you to:"
)
PREVIEW_CHARS = 50


class VisionService:
    def __init__(self, client: LLMClient):
        self.client = client

    def analyze(
        self,
        content: str,
        prompt: str | None = None,
        user_question: str | None = None,
    ) -> dict[str, Any]:
        """
        Ask the vision model about editor content.

        Raises:
            ValueError: If content is empty
            ProviderError: On provider failure
        """
        if not content:
            raise ValueError("No content provided")

        logger.info(
            "Processing code content, length=%d, question=%s", len(content), bool(user_question)
        )
        with time_block("vision.analyze"):
            analysis = self.client.generate(
                vision_prompt(content, prompt, user_question),
                temperature=0.2,
                max_tokens=VISION_MAX_OUTPUT_TOKENS,
            )
        counter("vision.analyses")

        return {
            "analysis": analysis,
            "timestamp": datetime.now(UTC).isoformat(),
            "userQuestion": user_question,
            "contentPreview": content[:PREVIEW_CHARS] + "...",
        }


class VisionMonitor:
    """
    Periodically capture editor content and analyse it when it changes.

    Only content that differs from the last processed snapshot is sent, and
    a capture that arrives while an analysis is running is skipped.
    """

    def __init__(
        self,
        service: VisionService,
        on_response: Callable[[str], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ):
        self.service = service
        self.on_response = on_response
        self.on_error = on_error
        self._capture: Callable[[], str | None] | None = None
        self._last_content = ""
        self._last_processed = ""
        self._processing = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(
        self,
        capture: Callable[[], str | None],
        interval: float = VISION_CAPTURE_INTERVAL_SECONDS,
    ) -> None:
        """Capture immediately, then every ``interval`` seconds until stop()."""
        self.stop()
        self._capture = capture
        self._stop.clear()

        logger.info("Starting vision capture every %s seconds", interval)
        self.tick()
        self._thread = threading.Thread(target=self._loop, args=(interval,), daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop.set()
        if self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None
        self._last_content = ""
        logger.info("Vision capture stopped")

    def _loop(self, interval: float) -> None:
        while not self._stop.wait(interval):
            self.tick()

    def tick(self) -> bool:
        """Capture once. Returns True when an analysis ran."""
        if self._capture is None:
            return False
        content = self._capture()
        if not content:
            return False

        self._last_content = content
        if content == self._last_processed:
            return False
        return self._process(content)

    def _process(self, content: str) -> bool:
        if not self._processing.acquire(blocking=False):
            counter("vision.skipped_busy")
            return False
        try:
            self._last_processed = content
            result = self.service.analyze(content, prompt=ACKNOWLEDGE_PROMPT)
        except Exception as e:
            # Background thread: report through the callback instead of dying
            logger.error("Error in vision processing: %s", e)
            counter("vision.errors")
            if self.on_error:
                self.on_error(e)
            return False
        finally:
            self._processing.release()

        if self.on_response:
            self.on_response(result["analysis"])
        return True

    def get_last_content(self) -> str:
        return self._last_content

    def force_analysis(self) -> bool:
        """Analyse the last captured content even if it was already processed."""
        if not self._last_content:
            return False
        return self._process(self._last_content)
