try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from mockup_publisher.clients.gemini import extract_json_object, model_sequence


def test_model_sequence_prefers_configured_model() -> None:
    assert model_sequence(" gemini-exp ") == ["gemini-exp", "gemini-2.0-flash", "gemini-1.5-flash"]
    assert model_sequence("gemini-1.5-flash") == ["gemini-1.5-flash", "gemini-2.0-flash"]
    assert model_sequence(None) == ["gemini-2.0-flash", "gemini-1.5-flash"]


@pytest.mark.parametrize(
    "text",
    [
        '{"title": "Poster"}',
        '```json\n{"title": "Poster"}\n```',
        '```\n{"title": "Poster"}```',
    ],
)
def test_extract_json_object_strips_fences(text: str) -> None:
    assert extract_json_object(text) == {"title": "Poster"}


@pytest.mark.parametrize("text", ["", "   ", "Sure! Here is your listing", '["a", "b"]'])
def test_extract_json_object_falls_back_to_empty(text: str) -> None:
    assert extract_json_object(text) == {}
