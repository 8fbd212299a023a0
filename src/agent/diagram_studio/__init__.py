"""Diagram Studio: 실시간 Mermaid 편집/렌더링 + ADK 스트리밍 생성 + URL 공유."""
from .agent import get_llm_info, root_agent, stream_completion
from .schema import Diagnostic, ViewportState
from .studio import DiagramStudio

__all__ = ["get_llm_info", "root_agent", "stream_completion", "Diagnostic", "ViewportState", "DiagramStudio"]
