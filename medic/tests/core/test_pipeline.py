"""Unit tests for the diagnosis pipeline.

Verify the success and fallback rendering paths, the silence contract for
successful builds, and that no diagnosis failure escapes the pipeline.
"""

import asyncio
import threading
from types import SimpleNamespace

import pytest

from medic.adapters.output.styles import Palette
from medic.core.errors import (
    ConfigurationError,
    DependencyMissingError,
    ProviderError,
)
from medic.core.guidance import CHECKLISTS
from medic.core.models import PipelineState, ProviderKind
from medic.core.pipeline import (
    ANALYZING,
    BANNER,
    CHECK_HEADING,
    FAILURE_HEADING,
    NO_CONTENT,
    ORIGINAL_HEADING,
    REPLY_FOOTER,
    REPLY_HEADING,
    RULE,
    DiagnosisPipeline,
    extract_reply,
)
from medic.tests.fakes import (
    FakeModelPort,
    FakeModelSource,
    RecordingWriter,
    SyncModel,
)

# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def writer() -> RecordingWriter:
    """Create a recording writer."""
    return RecordingWriter()


@pytest.fixture
def model() -> FakeModelPort:
    """Create a fake model."""
    return FakeModelPort()


@pytest.fixture
def failure() -> dict:
    """A host failure with every field present."""
    return {
        "message": "Transform failed with 1 error",
        "stack": "at failureErrorWithLog (esbuild/main.js:1)",
        "id": "src/App.tsx",
        "name": "BuildError",
    }


def make_pipeline(
    writer: RecordingWriter,
    source: FakeModelSource,
    kind: ProviderKind = ProviderKind.HOSTED,
    **kwargs,
) -> DiagnosisPipeline:
    return DiagnosisPipeline(
        model_source=source,
        writer=writer,
        palette=Palette(force_color=False),
        provider_kind=kind,
        **kwargs,
    )


def reply_lines(writer: RecordingWriter) -> list[str]:
    """Rendered lines between the second and third rule (the reply body)."""
    texts = writer.rendered_text
    rules = [i for i, text in enumerate(texts) if text == RULE]
    return texts[rules[1] + 1 : rules[2]]


# ============================================================================
# Successful builds
# ============================================================================


@pytest.mark.asyncio
async def test_no_failure_produces_no_output_and_no_model_call(writer, model) -> None:
    source = FakeModelSource(model)
    pipeline = make_pipeline(writer, source)

    state = await pipeline.handle_build_end(None)

    assert state is PipelineState.IDLE
    assert writer.output == ""
    assert source.get_calls == 0
    assert model.invoke_calls == []


# ============================================================================
# Success path
# ============================================================================


@pytest.mark.asyncio
async def test_reply_rendered_line_by_line(writer, failure) -> None:
    model = FakeModelPort(reply={"content": "line1\nline2"})
    pipeline = make_pipeline(writer, FakeModelSource(model))

    state = await pipeline.handle_build_end(failure)

    assert state is PipelineState.RENDERED
    assert reply_lines(writer) == ["line1", "line2"]


@pytest.mark.asyncio
async def test_success_render_sequence(writer, failure) -> None:
    model = FakeModelPort(reply="Install the missing dependency.")
    pipeline = make_pipeline(writer, FakeModelSource(model))

    await pipeline.handle_build_end(failure)

    assert writer.rendered_text == [
        BANNER,
        ANALYZING,
        RULE,
        REPLY_HEADING,
        RULE,
        "Install the missing dependency.",
        RULE,
        REPLY_FOOTER,
    ]
    assert FAILURE_HEADING not in writer.output


@pytest.mark.asyncio
async def test_conversation_built_from_failure(writer, model, failure) -> None:
    pipeline = make_pipeline(writer, FakeModelSource(model))

    await pipeline.handle_build_end(failure)

    assert len(model.invoke_calls) == 1
    conversation = model.invoke_calls[0]
    assert len(conversation) == 2
    query = conversation.messages[1].content
    assert "Transform failed with 1 error" in query
    assert "src/App.tsx" in query
    assert "esbuild/main.js:1" in query


@pytest.mark.asyncio
async def test_empty_lines_in_reply_are_kept(writer, failure) -> None:
    model = FakeModelPort(reply="step 1\n\nstep 2\n")
    pipeline = make_pipeline(writer, FakeModelSource(model))

    await pipeline.handle_build_end(failure)

    assert reply_lines(writer) == ["step 1", "", "step 2", ""]


@pytest.mark.asyncio
async def test_sync_custom_model_is_supported(writer, failure) -> None:
    custom = SyncModel(reply=SimpleNamespace(content="use a relative import"))
    pipeline = make_pipeline(writer, FakeModelSource(custom), kind=ProviderKind.CUSTOM)

    state = await pipeline.handle_build_end(failure)

    assert state is PipelineState.RENDERED
    assert reply_lines(writer) == ["use a relative import"]
    assert len(custom.invoke_calls) == 1


@pytest.mark.asyncio
async def test_reply_without_content_renders_placeholder(writer, failure) -> None:
    model = FakeModelPort(reply=SimpleNamespace(text="ignored"))
    pipeline = make_pipeline(writer, FakeModelSource(model))

    state = await pipeline.handle_build_end(failure)

    assert state is PipelineState.RENDERED
    assert reply_lines(writer) == [NO_CONTENT]


def test_extract_reply_rules() -> None:
    assert extract_reply("plain") == "plain"
    assert extract_reply({"content": "from mapping"}) == "from mapping"
    assert extract_reply(SimpleNamespace(content="from attribute")) == "from attribute"
    assert extract_reply(SimpleNamespace(content=["a", "b"])) == '["a", "b"]'
    assert extract_reply({"content": [{"type": "text", "text": "修复"}]}) == (
        '[{"type": "text", "text": "修复"}]'
    )
    assert extract_reply({"content": ""}) == NO_CONTENT
    assert extract_reply(None) == NO_CONTENT


# ============================================================================
# Fallback path
# ============================================================================


@pytest.mark.asyncio
async def test_provider_error_renders_matching_checklist(writer, model, failure) -> None:
    model.set_should_fail(
        ProviderError("Hosted chat API error (401): unauthorized", status_code=401)
    )
    pipeline = make_pipeline(writer, FakeModelSource(model), kind=ProviderKind.HOSTED)

    state = await pipeline.handle_build_end(failure)

    assert state is PipelineState.FALLBACK
    assert FAILURE_HEADING in writer.output
    assert CHECK_HEADING in writer.output
    for item in CHECKLISTS[ProviderKind.HOSTED]:
        assert item in writer.output
    for item in CHECKLISTS[ProviderKind.LOCAL]:
        assert item not in writer.output
    assert "  Error details: Hosted chat API error (401): unauthorized" in writer.output


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kind",
    [
        ProviderKind.HOSTED,
        ProviderKind.OPENAI,
        ProviderKind.LOCAL,
        ProviderKind.CUSTOM,
        ProviderKind.UNKNOWN,
    ],
)
async def test_each_provider_kind_has_its_own_checklist(writer, model, failure, kind) -> None:
    model.set_should_fail(ProviderError("down"))
    pipeline = make_pipeline(writer, FakeModelSource(model), kind=kind)

    await pipeline.handle_build_end(failure)

    for other, items in CHECKLISTS.items():
        present = all(item in writer.output for item in items)
        if other is kind:
            assert present
        else:
            assert not present


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        ConfigurationError("Unsupported model provider: 'x'"),
        DependencyMissingError("openai", "pip install 'medic[openai]'"),
        ProviderError("Local model service unreachable"),
        OSError("connection reset"),
    ],
)
async def test_model_acquisition_errors_fall_back(writer, failure, error) -> None:
    source = FakeModelSource(error=error)
    pipeline = make_pipeline(writer, source)

    state = await pipeline.handle_build_end(failure)

    assert state is PipelineState.FALLBACK
    assert f"  Error details: {error}" in writer.output


@pytest.mark.asyncio
async def test_fallback_echoes_original_error(writer, model, failure) -> None:
    model.set_should_fail(ProviderError("down"))
    pipeline = make_pipeline(writer, FakeModelSource(model))

    await pipeline.handle_build_end(failure)

    texts = writer.rendered_text
    heading = texts.index(ORIGINAL_HEADING)
    assert texts[heading + 1] == "Transform failed with 1 error"
    assert texts[heading + 2] == "at failureErrorWithLog (esbuild/main.js:1)"
    assert texts[-1] == RULE


@pytest.mark.asyncio
async def test_fallback_skips_placeholder_stack(writer, model) -> None:
    model.set_should_fail(ProviderError("down"))
    pipeline = make_pipeline(writer, FakeModelSource(model))

    await pipeline.handle_build_end({"message": "boom"})

    texts = writer.rendered_text
    heading = texts.index(ORIGINAL_HEADING)
    assert texts[heading + 1 :] == ["boom", RULE]


@pytest.mark.asyncio
async def test_fallback_without_original_error(writer, model, failure) -> None:
    model.set_should_fail(ProviderError("down"))
    pipeline = make_pipeline(writer, FakeModelSource(model), show_original_error=False)

    await pipeline.handle_build_end(failure)

    assert ORIGINAL_HEADING not in writer.output
    assert "Transform failed with 1 error" not in writer.output
    assert "  Error details: down" in writer.output


@pytest.mark.asyncio
async def test_hung_model_times_out_into_fallback(writer, model, failure) -> None:
    model.set_hang()
    pipeline = make_pipeline(writer, FakeModelSource(model), request_timeout=0.05)

    state = await pipeline.handle_build_end(failure)

    assert state is PipelineState.FALLBACK
    assert "Model call timed out after 0.05 seconds" in writer.output


@pytest.mark.asyncio
async def test_blocking_sync_model_times_out_into_fallback(writer, failure) -> None:
    custom = SyncModel(reply="too late")
    custom.set_blocking()
    pipeline = make_pipeline(
        writer, FakeModelSource(custom), kind=ProviderKind.CUSTOM, request_timeout=0.05
    )

    try:
        state = await asyncio.wait_for(pipeline.handle_build_end(failure), timeout=5)
    finally:
        custom.release()

    assert state is PipelineState.FALLBACK
    assert "Model call timed out after 0.05 seconds" in writer.output
    assert "too late" not in writer.output


@pytest.mark.asyncio
async def test_sync_model_runs_off_the_event_loop(writer, failure) -> None:
    custom = SyncModel(reply="done")
    custom.set_blocking()
    pipeline = make_pipeline(writer, FakeModelSource(custom), kind=ProviderKind.CUSTOM)

    task = asyncio.create_task(pipeline.handle_build_end(failure))
    for _ in range(200):
        if custom.invoke_calls:
            break
        await asyncio.sleep(0.01)

    assert pipeline.state is PipelineState.DIAGNOSING
    assert custom.invoke_threads != [threading.get_ident()]
    custom.release()
    assert await task is PipelineState.RENDERED


@pytest.mark.asyncio
async def test_output_errors_propagate_to_caller(writer, model, failure) -> None:
    writer.fail_with = BrokenPipeError("stdout closed")
    pipeline = make_pipeline(writer, FakeModelSource(model))

    with pytest.raises(BrokenPipeError):
        await pipeline.handle_build_end(failure)

    assert pipeline.state is PipelineState.IDLE


# ============================================================================
# State and pacing
# ============================================================================


@pytest.mark.asyncio
async def test_state_returns_to_idle(writer, model, failure) -> None:
    pipeline = make_pipeline(writer, FakeModelSource(model))
    assert pipeline.state is PipelineState.IDLE

    await pipeline.handle_build_end(failure)
    assert pipeline.state is PipelineState.IDLE

    model.set_should_fail(ProviderError("down"))
    assert await pipeline.handle_build_end(failure) is PipelineState.FALLBACK
    assert pipeline.state is PipelineState.IDLE


@pytest.mark.asyncio
async def test_state_is_diagnosing_during_model_call(writer, failure) -> None:
    observed = []

    class ObservingModel:
        async def invoke(self, conversation):
            observed.append(pipeline.state)
            return "ok"

    pipeline = make_pipeline(writer, FakeModelSource(ObservingModel()))

    await pipeline.handle_build_end(failure)

    assert observed == [PipelineState.DIAGNOSING]


@pytest.mark.asyncio
async def test_attempts_are_serialized(writer, failure) -> None:
    active = 0
    peak = 0

    class SlowModel:
        async def invoke(self, conversation):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return "ok"

    pipeline = make_pipeline(writer, FakeModelSource(SlowModel()))

    states = await asyncio.gather(
        pipeline.handle_build_end(failure),
        pipeline.handle_build_end(failure),
    )

    assert states == [PipelineState.RENDERED, PipelineState.RENDERED]
    assert peak == 1


@pytest.mark.asyncio
async def test_pacing_follows_type_writer_speed(writer, model, failure) -> None:
    pipeline = make_pipeline(writer, FakeModelSource(model), type_writer_speed=20)

    await pipeline.handle_build_end(failure)

    delays = dict(writer.renders)
    assert delays[BANNER] == 30
    assert delays[ANALYZING] == 20
    assert delays[RULE] == 5


def test_rejects_negative_speed(writer) -> None:
    with pytest.raises(ValueError, match="type_writer_speed"):
        make_pipeline(writer, FakeModelSource(), type_writer_speed=-1)


def test_rejects_non_positive_timeout(writer) -> None:
    with pytest.raises(ValueError, match="request_timeout"):
        make_pipeline(writer, FakeModelSource(), request_timeout=0)
