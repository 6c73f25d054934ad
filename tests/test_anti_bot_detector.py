"""Tests for anti-automation detection."""

import pytest

from avscraper.models.config import DetectionConfig
from avscraper.utils.anti_bot_detector import AntiBotDetector, DetectionSignal, ExpectedStructure
from tests.fixtures.mock_data import MockDataGenerator


class TestAntiBotDetector:
    """Test cases for AntiBotDetector."""

    @pytest.fixture
    def detector(self):
        return AntiBotDetector()

    def test_clean_response(self, detector, make_response):
        result = detector.detect(make_response())

        assert result.is_blocked is False
        assert result.confidence == 0.0
        assert result.signals == frozenset()

    def test_status_code_signal(self, detector, make_response):
        result = detector.detect(make_response(status=403))

        assert result.is_blocked
        assert result.signals == {DetectionSignal.STATUS_CODE}
        assert result.confidence == pytest.approx(0.3)

    def test_header_signal(self, detector, make_response):
        response = make_response(headers={'CF-Mitigated': 'challenge'})
        result = detector.detect(response)

        assert DetectionSignal.HEADER_PATTERN in result.signals
        assert result.confidence == pytest.approx(0.2)

    def test_content_signal(self, detector, make_response):
        result = detector.detect(make_response(body=MockDataGenerator.challenge_page()))

        assert result.signals == {DetectionSignal.CONTENT_PATTERN}
        assert result.confidence == pytest.approx(0.4)

    def test_response_time_signal(self, detector, make_response):
        result = detector.detect(make_response(elapsed_ms=9000))

        assert result.signals == {DetectionSignal.RESPONSE_TIME}
        assert result.confidence == pytest.approx(0.1)

    def test_short_body_structure_signal(self, detector, make_response):
        result = detector.detect(make_response(body="<html></html>"))

        assert result.signals == {DetectionSignal.STRUCTURE}
        assert result.confidence == pytest.approx(0.2)

    def test_expected_markers(self, detector, make_response):
        response = make_response()

        missing = detector.detect(response, ExpectedStructure(required=('movie-info',)))
        forbidden = detector.detect(response, ExpectedStructure(forbidden=('Regular listing',)))
        satisfied = detector.detect(response, ExpectedStructure(required=('content',)))

        assert DetectionSignal.STRUCTURE in missing.signals
        assert DetectionSignal.STRUCTURE in forbidden.signals
        assert not satisfied.is_blocked

    def test_confidence_is_clamped(self, detector, make_response):
        """Weights of all firing signals add up but never exceed 1.0."""
        response = make_response(
            status=503,
            body=MockDataGenerator.challenge_page(),
            headers={'cf-mitigated': 'challenge'},
            elapsed_ms=10000,
        )
        result = detector.detect(response, ExpectedStructure(required=('never-present',)))

        assert len(result.signals) == 5
        assert result.confidence == 1.0

    def test_custom_config(self, make_response):
        config = DetectionConfig(blocked_status_codes=[418], content_patterns=[r'teapot'])
        detector = AntiBotDetector(config)

        assert detector.detect(make_response(status=418)).is_blocked
        assert not detector.detect(make_response(status=403)).is_blocked
        assert detector.detect(make_response(body=MockDataGenerator.plain_page("I am a teapot"))).is_blocked

    def test_history_and_stats(self, make_response):
        detector = AntiBotDetector(DetectionConfig(history_size=2))
        detector.detect(make_response())
        detector.detect(make_response(status=429))
        detector.detect(make_response(status=403))

        stats = detector.get_detection_stats()
        assert stats['total'] == 2
        assert stats['blocked'] == 2
        assert stats['signals']['status_code'] == 2

        detector.clear_history()
        assert detector.get_detection_stats()['total'] == 0
