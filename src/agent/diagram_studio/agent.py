"""Diagram Agent: 자연어 요청으로 Mermaid 다이어그램을 생성/수정 (Google ADK, 스트리밍).
LLM: 환경변수 LLM_BASE_URL(또는 KSERVE_URL)이 있으면 해당 OpenAI 호환 엔드포인트(KServe 등) 사용, 없으면 Gemini 사용.
응답은 텍스트 델타 스트림이며, 다이어그램은 ```mermaid 펜스 블록 하나로 감싸져 있어야 한다.
"""
import logging
import os
import uuid
from typing import AsyncIterator

from google.adk.agents import Agent
from google.adk.agents.run_config import RunConfig, StreamingMode
from google.adk.runners import Runner
from google.adk.sessions import InMemorySessionService
from google.genai import types

from .errors import GenerationError

logger = logging.getLogger(__name__)

APP_NAME = "diagram_studio"


def get_llm_info():
    """현재 사용 중인 LLM 정보. 로컬 모델 여부 확인용."""
    base_url = (
        os.getenv("LLM_BASE_URL", "").strip()
        or os.getenv("KSERVE_URL", "").strip()
    )
    if base_url:
        if not base_url.rstrip("/").endswith("/v1"):
            base_url = base_url.rstrip("/") + "/v1"
        model_name = os.getenv("LLM_MODEL_NAME", "local").strip() or "local"
        return {
            "provider": "local",
            "base_url": base_url,
            "model_name": model_name,
        }
    return {"provider": "gemini", "model": "gemini-2.0-flash"}


def _resolve_model():
    """LLM_BASE_URL 또는 KSERVE_URL이 설정되면 로컬(OpenAI 호환) 모델, 아니면 Gemini."""
    info = get_llm_info()
    if info["provider"] == "local":
        from google.adk.models.lite_llm import LiteLlm

        # 로컬(Ollama 등)은 키 검증 없음. LiteLLM이 api_key 필수로 요구하므로 더미 값 전달.
        return LiteLlm(
            model=f"openai/{info['model_name']}",
            api_base=info["base_url"],
            api_key=os.getenv("OPENAI_API_KEY", "ollama"),
        )
    return "gemini-2.0-flash"


DIAGRAM_INSTRUCTION = """You are a diagram assistant that creates or edits Mermaid diagram code.

Output rules:
- Think about the structure first, then answer with exactly ONE fenced code block that starts with ```mermaid on its own line and ends with ``` on its own line.
- Put only Mermaid code inside the block. No markdown inside labels: no **bold**, *italic*, _underscore_, [links](url) or backticks.
- Do not emit a second code block. A short explanation before or after the block is fine.
- When you are given an existing diagram, return the complete updated diagram, not a diff.

Mermaid format:
1) Start with a declaration such as `flowchart TD`, `flowchart LR`, `sequenceDiagram`, `classDiagram`, `stateDiagram-v2`, `erDiagram`.
2) Node ids are short and contain no spaces; put labels with spaces or special characters in double quotes: `id["Label text"]`.
3) Arrows are `-->` (or `-->|label|`). Never use a single `->` in flowcharts.
4) Close every `subgraph` with `end`. One statement per line.

Minimal valid example:
```mermaid
flowchart TD
    A[Start] --> B[Process]
    B --> C[End]
```
"""


def build_prompt(prompt: str, current_code: str = "") -> str:
    """현재 버퍼가 비어 있지 않으면 컨텍스트로 앞에 붙인다."""
    if current_code:
        return f"Given this Mermaid diagram:\n\n{current_code}\n\n{prompt}"
    return prompt


def build_agent(instruction: str = DIAGRAM_INSTRUCTION) -> Agent:
    return Agent(
        name="diagram_agent",
        model=_resolve_model(),
        description="Creates or edits Mermaid diagrams from natural language, answering with one fenced block.",
        instruction=instruction,
    )


root_agent = build_agent()


def _event_text(event) -> str:
    content = getattr(event, "content", None)
    parts = getattr(content, "parts", None) or []
    # thought 파트(모델의 추론)는 다이어그램 텍스트가 아님
    return "".join(p.text for p in parts if getattr(p, "text", None) and not getattr(p, "thought", False))


async def stream_completion(prompt: str, system_instruction: str | None = None) -> AsyncIterator[str]:
    """프롬프트 하나를 실행하고 텍스트 델타를 순서대로 yield.

    SSE 스트리밍에서는 partial 이벤트가 델타이고 마지막 비-partial 이벤트는 전체 텍스트의
    반복이므로 건너뛴다. partial 이벤트가 전혀 없으면(스트리밍 미지원 모델) 최종 텍스트를 한 번 yield.
    """
    agent = root_agent if system_instruction is None else build_agent(system_instruction)
    session_service = InMemorySessionService()
    runner = Runner(app_name=APP_NAME, agent=agent, session_service=session_service)
    user_id = "studio"
    session = await session_service.create_session(
        app_name=APP_NAME, user_id=user_id, session_id=uuid.uuid4().hex[:12]
    )
    content = types.Content(role="user", parts=[types.Part(text=prompt)])
    saw_partial = False
    async for event in runner.run_async(
        user_id=user_id,
        session_id=session.id,
        new_message=content,
        run_config=RunConfig(streaming_mode=StreamingMode.SSE),
    ):
        error_message = getattr(event, "error_message", None)
        if error_message:
            raise GenerationError(f"LLM error: {error_message}")
        text = _event_text(event)
        if getattr(event, "partial", False):
            saw_partial = True
            if text:
                yield text
        elif text and not saw_partial:
            yield text
    logger.debug("Completion stream finished (partial=%s)", saw_partial)
