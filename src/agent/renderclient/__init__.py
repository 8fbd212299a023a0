"""렌더링 서비스 HTTP 클라이언트 (Kroki API 호환)."""
from .client import KrokiRenderer
from .models import error_text, svg_size

__all__ = [
    "KrokiRenderer",
    "error_text",
    "svg_size",
]
