"""렌더링 서비스(Kroki 호환) 응답 변환 헬퍼."""
import re
from typing import Any

# Kroki는 오류 시 text/plain 본문에 엔진 오류 메시지를 그대로 담는다.
# 예: "Error 400: Parse error on line 2:\n...A-->B[\n-----^\nExpecting 'SQE', got 'EOF'"

_VIEWBOX = re.compile(r'viewBox\s*=\s*"\s*[-\d.eE]+[\s,]+[-\d.eE]+[\s,]+([\d.eE]+)[\s,]+([\d.eE]+)\s*"')
_WIDTH = re.compile(r'<svg\b[^>]*?\swidth\s*=\s*"([\d.]+)(?:px)?"', re.DOTALL)
_HEIGHT = re.compile(r'<svg\b[^>]*?\sheight\s*=\s*"([\d.]+)(?:px)?"', re.DOTALL)
_MAX_WIDTH = re.compile(r"max-width:\s*([\d.]+)px")


def _to_float(value: str | None) -> float:
    try:
        return float(value) if value else 0.0
    except ValueError:
        return 0.0


def svg_size(svg: str) -> tuple[float, float]:
    """SVG 콘텐츠 크기 (width, height). viewBox 우선, 없으면 width/height 속성. 알 수 없으면 (0, 0)."""
    viewbox = _VIEWBOX.search(svg)
    if viewbox:
        return _to_float(viewbox.group(1)), _to_float(viewbox.group(2))
    width = _WIDTH.search(svg)
    height = _HEIGHT.search(svg)
    if width and height:
        return _to_float(width.group(1)), _to_float(height.group(1))
    # mermaid는 width="100%" + style="max-width: Npx" 형태를 쓰기도 함
    max_width = _MAX_WIDTH.search(svg)
    if max_width and height:
        return _to_float(max_width.group(1)), _to_float(height.group(1))
    return 0.0, 0.0


def error_text(body: Any, status_code: int) -> str:
    """오류 응답 본문 → 엔진 오류 메시지. 비어 있으면 HTTP 상태로 대체."""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    text = (body or "").strip()
    return text[:2000] if text else f"HTTP {status_code}"
