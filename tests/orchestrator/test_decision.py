"""Tests for the decision engine."""
import pytest

from orchestrator.decision import (
    DECISION_SCHEMA,
    DecisionEngine,
    is_high_res_image_model,
    render_system_instruction,
    requires_elevated_capability,
)
from orchestrator.errors import AuthenticationError, ClassificationError, UpstreamError
from orchestrator.models import TaskKind
from tests.fakes import decision_json


@pytest.mark.asyncio
@pytest.mark.parametrize("task_kind,model", [
    ("TEXT", "gemini-3-flash-preview"),
    ("IMAGE", "gemini-2.5-flash-image"),
    ("VIDEO", "veo-3.1-fast-generate-preview"),
    ("AUDIO", "gemini-2.5-flash-preview-tts"),
    ("SEARCH", "gemini-3-flash-preview"),
])
async def test_decide_returns_kind_and_model(mock_client, test_settings, task_kind, model):
    """Every task kind yields a decision with a model and a kind from the closed set."""
    mock_client.generate_structured.return_value = decision_json(task_kind, model, "optimized")
    engine = DecisionEngine(mock_client, test_settings)

    decision = await engine.decide("do the thing")

    assert decision.task_kind == TaskKind(task_kind)
    assert decision.task_kind in set(TaskKind)
    assert decision.model == model
    assert decision.refined_prompt == "optimized"


@pytest.mark.asyncio
async def test_decide_uses_classification_model_and_schema(mock_client, test_settings):
    mock_client.generate_structured.return_value = decision_json("TEXT", "gemini-3-flash-preview")
    engine = DecisionEngine(mock_client, test_settings)

    await engine.decide("Explain quantum physics")

    args = mock_client.generate_structured.call_args[0]
    assert args[0] == test_settings.ORCHESTRATOR_MODEL
    assert args[1] == "Explain quantum physics"
    assert args[2] == render_system_instruction(test_settings)
    assert args[3] is DECISION_SCHEMA


def test_system_instruction_names_every_model(test_settings):
    instruction = render_system_instruction(test_settings)
    for model in (
        test_settings.FAST_TEXT_MODEL, test_settings.PRO_TEXT_MODEL, test_settings.IMAGE_MODEL,
        test_settings.HIGH_RES_IMAGE_MODEL, test_settings.VIDEO_MODEL, test_settings.TTS_MODEL,
    ):
        assert model in instruction
    for kind in TaskKind:
        assert f"- {kind.value}:" in instruction


@pytest.mark.asyncio
async def test_high_resolution_image_request_is_flagged(mock_client, test_settings):
    """'Draw a cyberpunk city in 4K' routes to the high-resolution image model."""
    mock_client.generate_structured.return_value = decision_json(
        "IMAGE", "gemini-3-pro-image-preview", "A neon-lit cyberpunk city at night, ultra detailed"
    )
    engine = DecisionEngine(mock_client, test_settings)

    decision = await engine.decide("Draw a cyberpunk city in 4K")

    assert decision.task_kind == TaskKind.IMAGE
    assert decision.model == "gemini-3-pro-image-preview"
    assert decision.requires_elevated_capability is True


@pytest.mark.parametrize("model,expected", [
    ("veo-3.1-fast-generate-preview", True),
    ("gemini-3-pro-image-preview", True),
    ("veo-2.0-generate-001", True),
    ("gemini-3-flash-preview", False),
    ("gemini-3-pro-preview", False),
    ("gemini-2.5-flash-image", False),
    ("gemini-2.5-flash-preview-tts", False),
])
def test_requires_elevated_capability(test_settings, model, expected):
    assert requires_elevated_capability(model, test_settings) is expected


@pytest.mark.parametrize("model", [
    "gemini-3-pro-image-preview",
    "gemini-3-pro-image-preview-002",
    "  Gemini-3-Pro-Image-Preview ",
])
def test_high_res_image_models_are_elevated(test_settings, model):
    assert is_high_res_image_model(model, test_settings) is True
    assert requires_elevated_capability(model, test_settings) is True


def test_requires_elevated_capability_follows_configured_models(test_settings):
    custom = test_settings.model_copy(update={"VIDEO_MODEL": "custom-video", "HIGH_RES_IMAGE_MODEL": "custom-hd"})
    assert requires_elevated_capability("custom-video", custom) is True
    assert requires_elevated_capability("custom-hd", custom) is True
    assert requires_elevated_capability("custom-text", custom) is False


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [
    "not json at all",
    "",
    "   ",
    '{"type": "TEXT", "model": "gemini-3-flash-preview", "reasoning": "r"}',
    '{"type": "SPREADSHEET", "model": "gemini-3-flash-preview", "reasoning": "r", "refinedPrompt": "p"}',
    '{"type": "TEXT", "model": "   ", "reasoning": "r", "refinedPrompt": "p"}',
    '{"type": "TEXT", "model": "", "reasoning": "r", "refinedPrompt": "p"}',
    '["TEXT"]',
])
async def test_malformed_decision_raises(mock_client, test_settings, raw):
    """Unparseable output is never mapped to a default task kind."""
    mock_client.generate_structured.return_value = raw
    engine = DecisionEngine(mock_client, test_settings)

    with pytest.raises(ClassificationError):
        await engine.decide("hello")


@pytest.mark.asyncio
async def test_upstream_failure_becomes_classification_error(mock_client, test_settings):
    mock_client.generate_structured.side_effect = UpstreamError("generate_content failed: 500", status_code=500)
    engine = DecisionEngine(mock_client, test_settings)

    with pytest.raises(ClassificationError) as exc_info:
        await engine.decide("hello")

    assert "500" in str(exc_info.value)
    assert isinstance(exc_info.value.original_exception, UpstreamError)


@pytest.mark.asyncio
async def test_rejected_credential_is_not_masked(mock_client, test_settings):
    mock_client.generate_structured.side_effect = AuthenticationError("bad key", status_code=401)
    engine = DecisionEngine(mock_client, test_settings)

    with pytest.raises(AuthenticationError):
        await engine.decide("hello")
