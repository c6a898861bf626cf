"""
Unit tests for core/feedback_schema.py
"""

import pytest
from core.feedback_schema import (
    AvailabilityState,
    Emotion,
    FeedbackRequest,
    FeedbackResult,
    clamp_rating,
)


@pytest.mark.parametrize("raw,expected", [(-3, 1), (0, 1), (1, 1), (6, 6), (10, 10), (42, 10)])
def test_clamp_rating(raw, expected):
    assert clamp_rating(raw) == expected


def test_request_clamps_rating():
    assert FeedbackRequest(rating=11).rating == 10
    assert FeedbackRequest(rating=0).rating == 1


def test_request_defaults():
    request = FeedbackRequest(rating=5)
    assert request.text is None
    assert request.recent_hints == []
    assert request.has_text is False


def test_request_whitespace_text_is_not_text():
    assert FeedbackRequest(rating=5, text="   \n").has_text is False
    assert FeedbackRequest(rating=5, text="ok").has_text is True


def test_request_drops_non_string_hints():
    request = FeedbackRequest(rating=5, recent_hints=["a", None, 3, "b"])
    assert request.recent_hints == ["a", "b"]


def test_result_to_dict():
    result = FeedbackResult(text="Hi", emotion=Emotion.SUPPORTIVE, used_generative_model=False,
                            fallback_reason="feature disabled")
    assert result.to_dict() == {
        "text": "Hi",
        "emotion": "supportive",
        "used_generative_model": False,
        "fallback_reason": "feature disabled",
    }


def test_availability_state_constructors():
    assert AvailabilityState.ready() == AvailabilityState(available=True, reason=None)
    state = AvailabilityState.unavailable("no API key configured")
    assert state.available is False
    assert state.reason == "no API key configured"
