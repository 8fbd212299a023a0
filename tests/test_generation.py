import asyncio

from conftest import FENCED_RESPONSE, scripted_completion

from diagram_studio.buffer import DiagramBuffer, Writer
from diagram_studio.extractor import ExtractionMode
from diagram_studio.generation import FAILURE_STATUS, GENERATING_STATUS, GenerationController


async def test_fenced_block_lands_in_buffer():
    buffer = DiagramBuffer()
    controller = GenerationController(buffer, scripted_completion(FENCED_RESPONSE))

    updates = [text async for text in controller.stream("draw start to end")]

    assert buffer.text == "graph TD\n    A[Start] --> B[End]"
    assert updates[-1] == buffer.text
    assert all("`" not in text and "Sure" not in text for text in updates)
    assert controller.last_session.mode is ExtractionMode.DONE
    assert not buffer.read_only
    assert controller.status == ""


async def test_buffer_is_read_only_while_generating():
    buffer = DiagramBuffer()
    controller = GenerationController(buffer, scripted_completion(FENCED_RESPONSE))
    seen = []

    async for _ in controller.stream("draw"):
        seen.append((buffer.read_only, controller.status, controller.generating))

    assert seen and all(item == (True, GENERATING_STATUS, True) for item in seen)
    assert (buffer.read_only, controller.generating) == (False, False)


async def test_current_buffer_is_sent_as_context():
    buffer = DiagramBuffer("graph TD\nA-->B")
    completion = scripted_completion(FENCED_RESPONSE)
    controller = GenerationController(buffer, completion)

    await controller.submit("  add a node C  ")

    assert completion.prompts == ["Given this Mermaid diagram:\n\ngraph TD\nA-->B\n\nadd a node C"]


async def test_blank_prompt_is_ignored():
    buffer = DiagramBuffer("graph TD")
    completion = scripted_completion(FENCED_RESPONSE)
    controller = GenerationController(buffer, completion)

    assert await controller.submit("   ") is None
    assert completion.prompts == []


async def test_failure_keeps_last_capture_and_shows_transient_status():
    buffer = DiagramBuffer()
    fragments = ["```mermaid\ngraph TD\n", "A-->B\n", "C-->D\n```"]
    controller = GenerationController(
        buffer, scripted_completion(fragments, fail_after=2), status_timeout=0.02
    )

    await controller.submit("draw")

    assert buffer.text == "graph TD\nA-->B\n"
    assert not buffer.read_only
    assert controller.status == FAILURE_STATUS
    await asyncio.sleep(0.05)
    assert controller.status == ""


async def test_second_submission_wins():
    buffer = DiagramBuffer()
    first_fragments = ["```mermaid\n", "graph TD\n", "FIRST-->1\n", "FIRST-->2\n", "```"]
    second_fragments = ["```mermaid\n", "graph LR\n", "SECOND-->1\n", "```"]
    calls = iter([
        scripted_completion(first_fragments, delay=0.02),
        scripted_completion(second_fragments, delay=0.005),
    ])

    def completion(prompt, system_instruction=None):
        return next(calls)(prompt, system_instruction)

    controller = GenerationController(buffer, completion)
    first = asyncio.create_task(controller.submit("first"))
    await asyncio.sleep(0.07)
    assert "FIRST" in buffer.text

    second = await controller.submit("second")
    await first

    assert buffer.text == "graph LR\nSECOND-->1"
    assert second.captured_text == "graph LR\nSECOND-->1"
    assert not buffer.read_only
    assert controller.status == ""


async def test_disable_rejects_new_prompts_and_ignores_inflight_output():
    buffer = DiagramBuffer()
    fragments = ["```mermaid\n", "graph TD\n", "A-->B\n", "```"]
    controller = GenerationController(buffer, scripted_completion(fragments, delay=0.02))

    task = asyncio.create_task(controller.submit("draw"))
    await asyncio.sleep(0.05)
    controller.disable()
    await task

    assert buffer.text == "graph TD\n"
    assert not buffer.read_only
    assert await controller.submit("again") is None


async def test_collaboration_write_supersedes_stream():
    buffer = DiagramBuffer()
    fragments = ["```mermaid\n", "graph TD\n", "A-->B\n", "```"]
    controller = GenerationController(buffer, scripted_completion(fragments, delay=0.02))

    task = asyncio.create_task(controller.submit("draw"))
    await asyncio.sleep(0.05)
    buffer.write("graph TD\nPEER", Writer.COLLAB)
    await task

    assert buffer.text == "graph TD\nPEER"
