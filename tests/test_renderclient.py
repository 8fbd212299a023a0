import httpx
import pytest

from diagram_studio.errors import DiagramSyntaxError, RenderServiceError
from renderclient import KrokiRenderer, error_text, svg_size

SVG = '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 320 140"><g/></svg>'


def renderer_for(handler):
    return KrokiRenderer("http://kroki.test/", transport=httpx.MockTransport(handler))


async def test_render_posts_source_as_plain_text():
    seen = []

    def handler(request):
        seen.append((request.url.path, request.headers["content-type"], request.content))
        return httpx.Response(200, text=SVG)

    result = await renderer_for(handler).render("mermaid-diagram", "graph TD\nA-->B")

    assert result.svg == SVG
    assert seen == [("/mermaid/svg", "text/plain", b"graph TD\nA-->B")]


async def test_render_after_parse_reuses_the_image():
    calls = []

    def handler(request):
        calls.append(request.content)
        return httpx.Response(200, text=SVG)

    renderer = renderer_for(handler)
    assert await renderer.parse("graph TD\nA-->B")
    result = await renderer.render("mermaid-diagram", "graph TD\nA-->B")

    assert result.svg == SVG
    assert calls == [b"graph TD\nA-->B"]


async def test_render_of_other_text_posts_again():
    calls = []

    def handler(request):
        calls.append(request.content)
        return httpx.Response(200, text=SVG)

    renderer = renderer_for(handler)
    await renderer.parse("graph TD\nA-->B")
    await renderer.render("mermaid-diagram", "graph TD\nA-->C")
    await renderer.render("mermaid-diagram", "graph TD\nA-->B")

    assert calls == [b"graph TD\nA-->B", b"graph TD\nA-->C", b"graph TD\nA-->B"]


async def test_bad_request_is_a_syntax_error():
    body = "Error 400: Parse error on line 2:\n...A-->B[\n-------^\nExpecting 'SQE', got 'EOF'"
    renderer = renderer_for(lambda request: httpx.Response(400, text=body))

    with pytest.raises(DiagramSyntaxError) as excinfo:
        await renderer.parse("graph TD\nA-->B[")
    assert excinfo.value.message == body


async def test_server_error_is_a_service_error():
    renderer = renderer_for(lambda request: httpx.Response(503, text=""))

    with pytest.raises(RenderServiceError) as excinfo:
        await renderer.render("mermaid-diagram", "graph TD")
    assert excinfo.value.status_code == 503
    assert "HTTP 503" in excinfo.value.message


async def test_transport_failure_is_a_service_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RenderServiceError):
        await renderer_for(handler).parse("graph TD")


async def test_png_uses_png_endpoint():
    def handler(request):
        assert request.url.path == "/mermaid/png"
        return httpx.Response(200, content=b"\x89PNG")

    assert await renderer_for(handler).render_png("graph TD") == b"\x89PNG"


@pytest.mark.parametrize(
    "svg, size",
    [
        (SVG, (320, 140)),
        ('<svg width="80px" height="40"></svg>', (80, 40)),
        ('<svg width="100%" height="90" style="max-width: 250px;"></svg>', (250, 90)),
        ("<svg></svg>", (0, 0)),
    ],
)
def test_svg_size(svg, size):
    assert svg_size(svg) == size


def test_error_text_falls_back_to_status():
    assert error_text(b"  bad  ", 400) == "bad"
    assert error_text("", 502) == "HTTP 502"
