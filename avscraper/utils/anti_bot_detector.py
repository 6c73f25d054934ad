"""Multi-signal detection of anti-automation responses."""

import logging
import re
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, FrozenSet, Optional, Tuple

from ..models.config import DetectionConfig
from ..models.response import HttpResponse


class DetectionSignal(Enum):
    STATUS_CODE = "status_code"
    HEADER_PATTERN = "header_pattern"
    CONTENT_PATTERN = "content_pattern"
    RESPONSE_TIME = "response_time"
    STRUCTURE = "structure"


SIGNAL_WEIGHTS: Dict[DetectionSignal, float] = {
    DetectionSignal.STATUS_CODE: 0.3,
    DetectionSignal.HEADER_PATTERN: 0.2,
    DetectionSignal.CONTENT_PATTERN: 0.4,
    DetectionSignal.RESPONSE_TIME: 0.1,
    DetectionSignal.STRUCTURE: 0.2,
}


@dataclass(frozen=True)
class ExpectedStructure:
    """Markers a genuine page must contain, and markers it must not."""

    required: Tuple[str, ...] = ()
    forbidden: Tuple[str, ...] = ()
    max_content_length: int = 5_000_000


@dataclass(frozen=True)
class DetectionResult:
    is_blocked: bool
    confidence: float
    signals: FrozenSet[DetectionSignal] = field(default_factory=frozenset)
    reasons: Tuple[str, ...] = ()


class AntiBotDetector:
    """
    Classifies responses as anti-automation pages.

    Each signal that fires adds its weight to the confidence, which is
    clamped to 1.0. A response is blocked when any signal fires. Results are
    kept in a bounded history for statistics only.
    """

    def __init__(self, config: Optional[DetectionConfig] = None):
        self.config = config or DetectionConfig()
        self.logger = logging.getLogger(__name__)

        self._status_codes = frozenset(self.config.blocked_status_codes)
        self._header_patterns = {
            name.lower(): re.compile(pattern, re.IGNORECASE)
            for name, pattern in self.config.header_patterns.items()
        }
        self._content_patterns = [re.compile(p, re.IGNORECASE) for p in self.config.content_patterns]
        self.history: Deque[DetectionResult] = deque(maxlen=self.config.history_size)

    def detect(
        self,
        response: HttpResponse,
        expected: Optional[ExpectedStructure] = None
    ) -> DetectionResult:
        """
        Evaluate one response.

        Args:
            response: Fetched response
            expected: Page markers declared by the caller

        Returns:
            DetectionResult with the fired signals and clamped confidence
        """
        signals = set()
        reasons = []

        if response.status in self._status_codes:
            signals.add(DetectionSignal.STATUS_CODE)
            reasons.append(f"status {response.status}")

        for name, pattern in self._header_patterns.items():
            value = response.headers.get(name)
            if value is not None and pattern.search(value):
                signals.add(DetectionSignal.HEADER_PATTERN)
                reasons.append(f"header {name}: {value}")

        # Only the head of large documents is scanned for challenge markers
        text = response.text[:200_000] if response.body else ""
        for pattern in self._content_patterns:
            if pattern.search(text):
                signals.add(DetectionSignal.CONTENT_PATTERN)
                reasons.append(f"content /{pattern.pattern}/")
                break

        if response.elapsed_ms > self.config.slow_response_ms:
            signals.add(DetectionSignal.RESPONSE_TIME)
            reasons.append(f"slow response {response.elapsed_ms:.0f}ms")

        structure_reason = self._check_structure(response, text, expected)
        if structure_reason:
            signals.add(DetectionSignal.STRUCTURE)
            reasons.append(structure_reason)

        confidence = min(1.0, sum(SIGNAL_WEIGHTS[s] for s in signals))
        result = DetectionResult(
            is_blocked=bool(signals),
            confidence=round(confidence, 4),
            signals=frozenset(signals),
            reasons=tuple(reasons),
        )

        self.history.append(result)
        if result.is_blocked:
            self.logger.debug(f"Anti-bot signals for {response.url}: {', '.join(reasons)}")
        return result

    def _check_structure(
        self,
        response: HttpResponse,
        text: str,
        expected: Optional[ExpectedStructure]
    ) -> Optional[str]:
        length = len(response.body)
        if length < self.config.min_content_length:
            return f"content length {length} below {self.config.min_content_length}"

        if expected is None:
            return None

        if length > expected.max_content_length:
            return f"content length {length} above {expected.max_content_length}"
        for marker in expected.required:
            if marker not in text:
                return f"missing marker {marker!r}"
        for marker in expected.forbidden:
            if marker in text:
                return f"unexpected marker {marker!r}"
        return None

    def get_detection_stats(self) -> Dict[str, Any]:
        total = len(self.history)
        blocked = sum(1 for r in self.history if r.is_blocked)
        by_signal = {s.value: 0 for s in DetectionSignal}
        for result in self.history:
            for signal in result.signals:
                by_signal[signal.value] += 1
        return {
            'total': total,
            'blocked': blocked,
            'detection_rate': (blocked / total * 100) if total else 0.0,
            'signals': by_signal,
        }

    def clear_history(self) -> None:
        self.history.clear()
