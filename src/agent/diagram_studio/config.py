"""환경변수 기반 설정. 값은 호출 시점에 읽는다 (테스트에서 monkeypatch 가능)."""
import os
from pathlib import Path

DEFAULT_KROKI_URL = "https://kroki.io"
DEFAULT_DEBOUNCE_MS = 500
STATUS_TIMEOUT_SECONDS = 5.0

# Shown when the page URL carries no diagram.
DEFAULT_DIAGRAM = """graph TD
    A[Write a description] --> B{Looks right?}
    B -->|Yes| C[Share the URL]
    B -->|No| D[Ask the AI to change it]
    D --> A
"""


def get_kroki_url() -> str:
    return (os.getenv("KROKI_URL", "").strip() or DEFAULT_KROKI_URL).rstrip("/")


def get_debounce_seconds() -> float:
    """RENDER_DEBOUNCE_MS (기본 500ms)를 초 단위로."""
    raw = os.getenv("RENDER_DEBOUNCE_MS", "").strip()
    try:
        ms = int(raw) if raw else DEFAULT_DEBOUNCE_MS
    except ValueError:
        ms = DEFAULT_DEBOUNCE_MS
    return max(ms, 0) / 1000.0


def get_layout_path() -> Path:
    raw = os.getenv("STUDIO_LAYOUT_PATH", "").strip()
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".diagram_studio" / "layout.json"


def ai_credentials_present() -> bool:
    """AI 생성 사용 가능 여부: 로컬 LLM 엔드포인트 또는 GOOGLE_API_KEY."""
    if os.getenv("LLM_BASE_URL", "").strip() or os.getenv("KSERVE_URL", "").strip():
        return True
    return bool(os.getenv("GOOGLE_API_KEY", "").strip())
