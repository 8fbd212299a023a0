import pytest

from diagram_studio.schema import ViewportConfig, ViewportState
from diagram_studio.viewport import ViewportEngine


def screen_point(engine, content_x, content_y):
    tx, ty = engine.effective_translate()
    return tx + content_x * engine.state.scale, ty + content_y * engine.state.scale


def test_auto_fit_scales_and_centres():
    engine = ViewportEngine()
    assert engine.auto_fit(200, 100, 1000, 500)
    assert engine.state.scale == pytest.approx(4.5)
    assert engine.state.translate_x == pytest.approx(50)
    assert engine.state.translate_y == pytest.approx(25)


def test_auto_fit_caps_at_max_scale():
    engine = ViewportEngine(ViewportConfig(max_scale=2))
    engine.auto_fit(10, 10, 1000, 1000)
    assert engine.state.scale == pytest.approx(1.8)
    assert engine.state.translate_x == pytest.approx((1000 - 18) / 2)


def test_auto_fit_ignores_empty_content():
    engine = ViewportEngine()
    assert not engine.auto_fit(0, 100, 1000, 500)
    assert engine.is_default()


def test_auto_fit_only_from_untouched_default():
    engine = ViewportEngine()
    engine.set_container(1000, 500)
    engine.pan_start(10, 10)
    engine.pan_move(40, 30)
    engine.pan_end()

    assert not engine.auto_fit_if_default(200, 100)
    assert (engine.state.translate_x, engine.state.translate_y) == (30, 20)

    engine.reset()
    assert engine.auto_fit_if_default(200, 100)
    assert not engine.auto_fit_if_default(200, 100)


def test_zoom_keeps_point_under_pointer_fixed():
    engine = ViewportEngine(state=ViewportState(scale=2, translate_x=30, translate_y=-12))
    pointer = (310.0, 145.0)
    content = ((pointer[0] - 30) / 2, (pointer[1] + 12) / 2)

    engine.zoom_at(*pointer, direction=1)

    assert engine.state.scale == pytest.approx(2.2)
    assert screen_point(engine, *content) == pytest.approx(pointer)
    assert (engine.state.zoom_translate_x, engine.state.zoom_translate_y) == (0, 0)


def test_zoom_in_then_out_restores_state():
    engine = ViewportEngine(state=ViewportState(scale=1.7, translate_x=-40, translate_y=65))
    before = engine.state.model_copy()

    engine.zoom_at(123.0, 456.0, direction=1)
    engine.zoom_at(123.0, 456.0, direction=-1)

    assert engine.state.scale == pytest.approx(before.scale)
    assert engine.state.translate_x == pytest.approx(before.translate_x)
    assert engine.state.translate_y == pytest.approx(before.translate_y)


def test_zoom_is_clamped():
    engine = ViewportEngine(state=ViewportState(scale=0.52))
    engine.zoom_at(0, 0, direction=-1)
    assert engine.state.scale == 0.5
    engine.zoom_at(0, 0, direction=-1)
    assert engine.state.scale == 0.5

    engine.state.scale = 19.5
    engine.zoom_at(0, 0, direction=5)
    assert engine.state.scale == 20


def test_zoom_direction_zero_is_noop():
    engine = ViewportEngine()
    engine.zoom_at(50, 50, 0)
    assert engine.is_default()


def test_zoom_button_anchors_at_container_centre():
    engine = ViewportEngine()
    engine.set_container(800, 600)
    engine.zoom_button("in")
    assert screen_point(engine, 400, 300) == pytest.approx((400, 300))
    engine.zoom_button("out")
    assert engine.state.scale == pytest.approx(1)


def test_pan_moves_only_while_dragging():
    engine = ViewportEngine(state=ViewportState(translate_x=5, translate_y=5))
    assert not engine.pan_move(100, 100)

    engine.pan_start(20, 30)
    assert engine.pan_move(70, 10)
    assert (engine.state.translate_x, engine.state.translate_y) == (55, -15)

    engine.pan_end()
    engine.pan_move(500, 500)
    assert (engine.state.translate_x, engine.state.translate_y) == (55, -15)


def test_transform_string():
    engine = ViewportEngine(state=ViewportState(scale=2, translate_x=10, translate_y=20))
    assert engine.transform() == "translate(10.0px, 20.0px) scale(2.0)"


def test_resize_is_clamped_to_min_width():
    engine = ViewportEngine()
    assert engine.resize_move(100, 1000) is None
    engine.resize_start()
    assert engine.resize_move(400, 1000) == pytest.approx(40)
    assert engine.resize_move(50, 1000) == 20
    engine.resize_end()
    assert not engine.state.is_resizing


def test_zoom_out_divides_by_the_zoom_in_step():
    engine = ViewportEngine(ViewportConfig(zoom_factor=0.25))
    engine.zoom_at(0, 0, direction=-1)
    assert engine.state.scale == pytest.approx(0.8)
    engine.zoom_at(0, 0, direction=1)
    assert engine.state.scale == pytest.approx(1.0)
