#!/usr/bin/env python3
"""Diagram Studio API 서버.
에디터 버퍼 / 렌더 결과 / 뷰포트 / 공유 URL 상태를 HTTP로 노출한다.
렌더링: KROKI_URL (기본 https://kroki.io). AI 생성: GOOGLE_API_KEY 또는 LLM_BASE_URL(KSERVE_URL).
기동 시 STUDIO_URL(페이지 URL, ?room=&name=&hideEditor#fragment)이 있으면 그 상태로 세션 시작.
"""
import json
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from diagram_studio import DiagramStudio, get_llm_info
from diagram_studio.config import get_kroki_url
from diagram_studio.errors import BufferLockedError, ExportError
from diagram_studio.export import PNG_FILENAME, PNG_MEDIA_TYPE, SVG_FILENAME, SVG_MEDIA_TYPE
from diagram_studio.schema import (
    BufferUpdate,
    ContainerSize,
    PointerPosition,
    PromptRequest,
    RemoteUpdate,
    ResizeRequest,
    SessionRequest,
    StudioState,
    ZoomButtonRequest,
    ZoomRequest,
)
from renderclient import KrokiRenderer

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app(studio: DiagramStudio | None = None) -> FastAPI:
    """앱 생성. studio 미지정 시 Kroki 렌더러 + ADK 스트리밍으로 구성."""
    if studio is None:
        studio = DiagramStudio(KrokiRenderer(get_kroki_url()))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        studio.start(os.getenv("STUDIO_URL", ""))
        logger.info("LLM: %s, renderer: %s", get_llm_info(), get_kroki_url())
        yield
        studio.pipeline.cancel_pending()

    app = FastAPI(title="Diagram Studio API", lifespan=lifespan)
    app.state.studio = studio
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    @app.get("/health")
    def health():
        return {"status": "ok", "llm": get_llm_info(), "ai_enabled": studio.generation.enabled}

    # ----- session / buffer -----

    @app.post("/api/session")
    async def start_session(req: SessionRequest) -> StudioState:
        """페이지 URL(쿼리 + #fragment)로 세션 재시작."""
        studio.start(req.url)
        return studio.state()

    @app.get("/api/state")
    def get_state() -> StudioState:
        return studio.state()

    @app.put("/api/buffer")
    async def put_buffer(req: BufferUpdate) -> StudioState:
        try:
            studio.edit(req.text)
        except BufferLockedError as e:
            raise HTTPException(status_code=409, detail=e.message)
        return studio.state()

    @app.post("/api/render")
    async def render_now() -> StudioState:
        """디바운스를 기다리지 않고 즉시 렌더."""
        await studio.pipeline.render_now()
        return studio.state()

    @app.delete("/api/diagnostic")
    def dismiss_diagnostic() -> StudioState:
        studio.pipeline.dismiss_diagnostic()
        return studio.state()

    @app.get("/api/share")
    def share() -> dict:
        fragment = studio.layout.fragment
        return {"fragment": f"#{fragment}" if fragment else ""}

    # ----- AI generation -----

    @app.post("/api/generate")
    async def generate(req: PromptRequest):
        """NDJSON 스트림: 버퍼가 바뀔 때마다 {"text": ...}, 마지막에 {"done": true, ...}."""
        if not studio.generation.enabled:
            raise HTTPException(status_code=403, detail="AI generation is disabled (no API key)")
        try:
            updates = studio.generate(req.prompt)
        except BufferLockedError as e:
            raise HTTPException(status_code=409, detail=e.message)

        async def lines():
            async for text in updates:
                yield json.dumps({"text": text}) + "\n"
            session = studio.generation.last_session
            yield json.dumps({
                "done": True,
                "status": studio.generation.status,
                "mode": session.mode.value if session is not None else None,
                "text": studio.buffer.text,
            }) + "\n"

        return StreamingResponse(lines(), media_type="application/x-ndjson")

    @app.delete("/api/ai")
    async def disable_ai() -> dict:
        """API 키 제거: 이후 프롬프트 거부, 진행 중 스트림 출력 무시."""
        studio.generation.disable()
        return {"ai_enabled": False}

    @app.put("/api/ai")
    def enable_ai() -> dict:
        studio.generation.enable()
        return {"ai_enabled": True}

    # ----- viewport -----

    @app.put("/api/viewport/container")
    def set_container(req: ContainerSize) -> StudioState:
        studio.viewport.set_container(req.width, req.height)
        return studio.state()

    @app.post("/api/viewport/zoom")
    def zoom(req: ZoomRequest) -> StudioState:
        studio.viewport.zoom_at(req.x, req.y, req.direction)
        return studio.state()

    @app.post("/api/viewport/zoom-button")
    def zoom_button(req: ZoomButtonRequest) -> StudioState:
        studio.viewport.zoom_button(req.direction)
        return studio.state()

    @app.post("/api/viewport/pan/start")
    def pan_start(req: PointerPosition) -> StudioState:
        studio.viewport.pan_start(req.x, req.y)
        return studio.state()

    @app.post("/api/viewport/pan/move")
    def pan_move(req: PointerPosition) -> StudioState:
        studio.viewport.pan_move(req.x, req.y)
        return studio.state()

    @app.post("/api/viewport/pan/end")
    def pan_end() -> StudioState:
        studio.viewport.pan_end()
        return studio.state()

    @app.post("/api/viewport/reset")
    def reset_viewport() -> StudioState:
        studio.viewport.reset()
        return studio.state()

    @app.put("/api/layout/width")
    def resize_editor(req: ResizeRequest) -> dict:
        return {"editor_width": studio.resize_editor(req.pointer_x, req.container_width)}

    # ----- export -----

    @app.get("/api/export/svg")
    def export_svg():
        if not studio.pipeline.svg:
            raise HTTPException(status_code=404, detail="Nothing has been rendered yet")
        return Response(
            content=studio.export_svg(),
            media_type=SVG_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{SVG_FILENAME}"'},
        )

    @app.get("/api/export/png")
    async def export_png():
        if not studio.pipeline.svg:
            raise HTTPException(status_code=404, detail="Nothing has been rendered yet")
        try:
            data = await studio.export_png()
        except ExportError as e:
            raise HTTPException(status_code=502, detail=e.message)
        return Response(
            content=data,
            media_type=PNG_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{PNG_FILENAME}"'},
        )

    # ----- collaboration (room 지정 시에만) -----

    def _binding():
        if studio.collaboration is None:
            raise HTTPException(status_code=404, detail="No collaboration room bound")
        return studio.collaboration

    @app.post("/api/collab/remote")
    async def collab_remote(req: RemoteUpdate) -> StudioState:
        _binding().apply_remote(req.text)
        return studio.state()

    @app.get("/api/collab/updates")
    def collab_updates() -> dict:
        binding = _binding()
        return {"room": binding.room, "awareness": binding.awareness, "updates": binding.drain()}

    return app


app = create_app()


def main():
    import uvicorn
    port = int(os.getenv("PORT", "8080"))
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
