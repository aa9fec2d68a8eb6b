"""core.line_factory の波線描画（周期数・継ぎ目・スタイル）をテスト。"""

from __future__ import annotations

import math

import numpy as np
import pytest

from sacredgrid.core.line_factory import (
    DashSpec,
    GlowSpec,
    LineStyleSpec,
    OutlineSpec,
    RenderOptions,
    TaperSpec,
    clear_arc_length_cache,
    displace_path,
    effective_wave,
    path_arc_table,
    render_path,
    taper_width,
    vertex_tangents,
    wave_cycles,
)
from sacredgrid.core.path import VertexPath
from sacredgrid.core.surface import RecordingSurface
from sacredgrid.core.waves import WAVE_TYPES, ModulationSpec, WaveSpec

_WHITE = (1.0, 1.0, 1.0)
_SQUARE = VertexPath(
    np.asarray([[0.0, 0.0], [100.0, 0.0], [100.0, 100.0], [0.0, 100.0]]),
    loop=True,
)


def test_wave_cycles_rounds_half_up_on_closed_paths() -> None:
    assert wave_cycles(0.1, 450.0) == 2  # 1.5 → 2
    assert wave_cycles(0.1, 400.0) == 1  # 1.33 → 1
    assert wave_cycles(0.1, 600.0) == 2
    assert wave_cycles(0.001, 10.0) == 1
    assert isinstance(wave_cycles(0.37, 123.0), int)


def test_wave_cycles_is_integer_on_open_paths_too() -> None:
    short = wave_cycles(0.1, 40.0)  # 0.133 → 最低 1 周期
    assert short == 1
    assert isinstance(short, int)
    assert wave_cycles(0.1, 450.0, cycle_length=15.0) == 3


def test_short_open_segment_gets_full_amplitude() -> None:
    """開路 (0,0)–(40,0) でも 1 周期の sine が乗り、振幅 10 に達する。"""
    wave = WaveSpec(type="sine", amplitude=10.0, frequency=0.1)
    out = render_path(
        RecordingSurface(), [(0.0, 0.0), (40.0, 0.0)], LineStyleSpec(), wave, None, _WHITE, 1.0
    )
    assert out is not None
    assert np.max(np.abs(out[:, 1])) == pytest.approx(10.0)


@pytest.mark.parametrize("wave_type", ["sine", "cosine", "sawtooth", "figure8"])
def test_bidirectional_blend_applies_on_open_paths(wave_type: str) -> None:
    wave = WaveSpec(type=wave_type, amplitude=6.0, frequency=0.37, bidirectional=True)
    out = displace_path(np.asarray([[0.0, 0.0], [250.0, 0.0]]), wave, closed=False)
    # 両端で同じ位相になるので、端点の変位（x は端点分を差し引く）が一致する
    np.testing.assert_allclose(out[0] - [0.0, 0.0], out[-1] - [250.0, 0.0], atol=1e-9)


def test_vertex_tangents_wrap_on_closed_paths() -> None:
    pts = _SQUARE.closed_points()
    tangents = vertex_tangents(pts, closed=True)
    assert tangents.shape == (5,)
    assert tangents[0] == tangents[-1]
    # 角 (100, 0) では右向きと上向きの平均 = 45°
    assert tangents[1] == pytest.approx(math.pi / 4.0)

    open_t = vertex_tangents(np.asarray([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0]]), closed=False)
    assert open_t[0] == pytest.approx(0.0)
    assert open_t[-1] == pytest.approx(math.pi / 2.0)


def test_vertex_tangents_handle_reversal() -> None:
    pts = np.asarray([[0.0, 0.0], [1.0, 0.0], [0.0, 0.0]])
    tangents = vertex_tangents(pts, closed=False)
    assert np.all(np.isfinite(tangents))
    assert tangents[1] == pytest.approx(math.pi)


@pytest.mark.parametrize("wave_type", [t for t in WAVE_TYPES if t != "none"])
def test_closed_square_has_no_seam(wave_type: str) -> None:
    """周長 400 の正方形で、始点と終点の変位後座標が一致する。"""
    surface = RecordingSurface()
    wave = WaveSpec(type=wave_type, amplitude=10.0, frequency=0.1)
    out = render_path(surface, _SQUARE, LineStyleSpec(), wave, ModulationSpec(), _WHITE, 2.0)

    assert out is not None
    assert out.shape == (max(100, math.ceil(400.0 / 3.0)) + 1, 2)
    assert np.hypot(*(out[0] - out[-1])) < 1e-3
    assert surface.draw_calls == 1


def test_seam_holds_with_animation_and_modulation() -> None:
    wave = WaveSpec(type="sine", amplitude=10.0, frequency=0.37, animated=True, speed=1.3)
    for mod_type in ("frequency", "amplitude", "phase", "harmonic"):
        for t in (0.0, 777.0, 12345.0):
            out = displace_path(
                _SQUARE.closed_points(),
                wave,
                ModulationSpec(type=mod_type),
                t=t,
                closed=True,
            )
            np.testing.assert_allclose(out[0], out[-1], atol=1e-9)


def test_open_line_is_displaced_along_normal() -> None:
    """開路 (0,0)–(300,0): 1 周期ちょうどの sine が法線 (0, -1) 方向へ乗る。"""
    wave = WaveSpec(type="sine", amplitude=5.0, frequency=0.1)
    out = render_path(
        RecordingSurface(),
        [(0.0, 0.0), (300.0, 0.0)],
        LineStyleSpec(),
        wave,
        None,
        _WHITE,
        1.0,
    )
    assert out is not None
    p = np.linspace(0.0, 1.0, out.shape[0])
    np.testing.assert_allclose(out[:, 0], p * 300.0, atol=1e-9)
    np.testing.assert_allclose(out[:, 1], -5.0 * np.sin(2.0 * math.pi * p), atol=1e-9)


def test_parametric_wave_offsets_rotate_into_tangent_frame() -> None:
    wave = WaveSpec(type="figure8", amplitude=4.0, frequency=0.1)
    out = displace_path(np.asarray([[0.0, 0.0], [0.0, 300.0]]), wave, closed=False)
    p = np.linspace(0.0, 1.0, out.shape[0])
    a = 2.0 * math.pi * p
    # 接線角 π/2: x = x0 + cos·ox + sin·oy = oy、y = y0 + sin·ox − cos·oy = y0 + ox
    np.testing.assert_allclose(out[:, 0], np.sin(2.0 * a) * 2.0, atol=1e-9)
    np.testing.assert_allclose(out[:, 1], p * 300.0 + np.sin(a) * 4.0, atol=1e-9)


@pytest.mark.parametrize(
    "vertices",
    [
        [],
        [(5.0, 5.0)],
        [(5.0, 5.0), (5.0, 5.0), (5.0, 5.0)],
    ],
)
def test_degenerate_paths_draw_nothing(vertices: list[tuple[float, float]]) -> None:
    surface = RecordingSurface()
    out = render_path(surface, vertices, LineStyleSpec(), WaveSpec(), None, _WHITE, 2.0)
    assert out is None
    assert surface.draw_calls == 0


def test_render_path_requires_surface() -> None:
    with pytest.raises(TypeError):
        render_path(None, _SQUARE, LineStyleSpec(), WaveSpec(), None, _WHITE, 2.0)  # type: ignore[arg-type]


def test_none_wave_strokes_vertices_directly() -> None:
    surface = RecordingSurface()
    out = render_path(surface, _SQUARE, LineStyleSpec(), WaveSpec(type="none"), None, _WHITE, 2.0)
    assert out is not None
    np.testing.assert_array_equal(out, _SQUARE.closed_points())
    np.testing.assert_array_equal(surface.commands[0].points, _SQUARE.closed_points())


def test_zero_amplitude_leaves_path_in_place() -> None:
    out = render_path(
        RecordingSurface(),
        _SQUARE,
        LineStyleSpec(),
        WaveSpec(type="sine", amplitude=0.0),
        None,
        _WHITE,
        2.0,
    )
    assert out is not None
    np.testing.assert_array_equal(out, _SQUARE.closed_points())


def test_wavy_and_zigzag_fill_in_default_waves() -> None:
    none = WaveSpec(type="none")
    assert effective_wave(LineStyleSpec(style="wavy"), none).type == "sine"
    assert effective_wave(LineStyleSpec(style="zigzag"), none).type == "square"
    assert effective_wave(LineStyleSpec(style="solid"), none).type == "none"
    assert effective_wave(LineStyleSpec(style="wavy"), WaveSpec(type="rose")).type == "rose"

    out = render_path(RecordingSurface(), _SQUARE, LineStyleSpec(style="wavy"), none, None, _WHITE, 2.0)
    assert out is not None
    assert out.shape[0] > _SQUARE.closed_points().shape[0]


def test_dashed_and_dotted_patterns_are_applied_then_cleared() -> None:
    surface = RecordingSurface()
    dashed = LineStyleSpec(style="dashed", dash=DashSpec(pattern=(8.0, 3.0), offset=1.0))
    render_path(surface, _SQUARE, dashed, WaveSpec(type="none"), None, _WHITE, 2.0)
    assert surface.commands[0].dash == (8.0, 3.0)
    assert surface.commands[0].dash_offset == 1.0

    render_path(surface, _SQUARE, LineStyleSpec(style="dotted"), WaveSpec(type="none"), None, _WHITE, 2.0)
    assert surface.commands[1].dash == (2.0, 4.0)

    render_path(surface, _SQUARE, LineStyleSpec(), WaveSpec(type="none"), None, _WHITE, 2.0)
    assert surface.commands[2].dash == ()


def test_outline_is_drawn_first_and_carries_the_glow() -> None:
    surface = RecordingSurface()
    style = LineStyleSpec(
        glow=GlowSpec(intensity=6.0, color=(1.0, 0.0, 0.0)),
        outline=OutlineSpec(enabled=True, color=(0.0, 0.0, 0.0), width=1.5),
    )
    render_path(surface, _SQUARE, style, WaveSpec(type="none"), None, (0.2, 0.4, 0.6), 4.0)

    assert surface.draw_calls == 2
    outline, main = surface.commands
    assert outline.width == pytest.approx(4.0 + 3.0)
    assert outline.color == (0.0, 0.0, 0.0)
    assert outline.shadow_blur == 6.0
    assert outline.shadow_color == (1.0, 0.0, 0.0)
    assert main.width == pytest.approx(4.0)
    assert main.shadow_blur == 0.0


def test_glow_without_outline_goes_on_main_stroke() -> None:
    surface = RecordingSurface()
    style = LineStyleSpec(glow=GlowSpec(intensity=3.0, color=None))
    render_path(surface, _SQUARE, style, WaveSpec(type="none"), None, (0.2, 0.4, 0.6), 4.0)
    assert surface.commands[0].shadow_blur == 3.0
    assert surface.commands[0].shadow_color == (0.2, 0.4, 0.6)


def test_taper_draws_banded_strokes() -> None:
    surface = RecordingSurface()
    style = LineStyleSpec(taper=TaperSpec(type="end", start=0.1, end=0.1))
    render_path(surface, _SQUARE, style, WaveSpec(), None, _WHITE, 10.0)

    assert surface.draw_calls == 40
    widths = [cmd.width for cmd in surface.commands]
    assert widths[0] > widths[-1]
    assert widths[0] == pytest.approx(taper_width(style.taper, 10.0, 0.5 / 40.0))
    # 隣接するバンドは端点を共有する
    np.testing.assert_array_equal(surface.commands[0].points[-1], surface.commands[1].points[0])


def test_tapered_dash_continues_across_bands() -> None:
    surface = RecordingSurface()
    style = LineStyleSpec(
        style="dashed",
        dash=DashSpec(pattern=(8.0, 3.0), offset=1.0),
        taper=TaperSpec(type="end"),
    )
    render_path(surface, _SQUARE, style, WaveSpec(type="none"), None, _WHITE, 10.0)

    # 辺ごとに 1 バンド（4 本）、各バンドの破線オフセットは始点までの弧長だけ進む
    assert surface.draw_calls == 4
    assert [cmd.dash_offset for cmd in surface.commands] == pytest.approx([1.0, 101.0, 201.0, 301.0])
    assert all(cmd.dash == (8.0, 3.0) for cmd in surface.commands)


def test_loop_line_off_leaves_loop_path_open() -> None:
    surface = RecordingSurface()
    out = render_path(
        surface, _SQUARE, LineStyleSpec(loop_line=False), WaveSpec(type="none"), None, _WHITE, 2.0
    )
    assert out is not None
    assert out.shape == (4, 2)
    np.testing.assert_array_equal(out[-1], [0.0, 100.0])
    np.testing.assert_array_equal(surface.commands[0].points, _SQUARE.points)

    looped = render_path(RecordingSurface(), _SQUARE, LineStyleSpec(), WaveSpec(type="none"), None, _WHITE, 2.0)
    assert looped is not None
    assert looped.shape == (5, 2)


def test_taper_width_profiles() -> None:
    both = TaperSpec(type="both", start=0.2, end=0.4)
    assert taper_width(both, 10.0, 0.0) == pytest.approx(2.0)
    assert taper_width(both, 10.0, 0.5) == pytest.approx(10.0)
    assert taper_width(both, 10.0, 1.0) == pytest.approx(4.0)

    middle = TaperSpec(type="middle", start=0.2, end=0.4)
    assert taper_width(middle, 10.0, 0.5) == pytest.approx(10.0)
    assert taper_width(middle, 10.0, 0.0) == pytest.approx(2.0)

    assert taper_width(TaperSpec(type="start", start=0.1), 10.0, 1.0) == pytest.approx(10.0)
    assert taper_width(TaperSpec(type="none"), 10.0, 0.3) == 10.0


def test_minimum_width_and_opacity_clamp() -> None:
    surface = RecordingSurface()
    render_path(surface, _SQUARE, LineStyleSpec(), WaveSpec(type="none"), None, _WHITE, 0.1, opacity=1.7)
    render_path(
        surface,
        _SQUARE,
        LineStyleSpec(),
        WaveSpec(type="none"),
        None,
        _WHITE,
        0.1,
        opacity=-0.2,
        options=RenderOptions(min_stroke_width=2.5),
    )
    assert surface.commands[0].width == 1.0
    assert surface.commands[0].opacity == 1.0
    assert surface.commands[1].width == 2.5
    assert surface.commands[1].opacity == 0.0


def test_sample_density_follows_options() -> None:
    opts = RenderOptions(sample_spacing=1.0, min_samples=10)
    out = displace_path(_SQUARE.closed_points(), WaveSpec(), closed=True, options=opts)
    assert out.shape == (401, 2)

    coarse = RenderOptions(sample_spacing=100.0, min_samples=10)
    out2 = displace_path(_SQUARE.closed_points(), WaveSpec(), closed=True, options=coarse)
    assert out2.shape == (11, 2)


def test_arc_length_table_is_cached_by_content() -> None:
    clear_arc_length_cache()
    pts = _SQUARE.closed_points()
    a = path_arc_table(pts)
    b = path_arc_table(np.array(pts, copy=True))
    assert a[0] is b[0]
    assert a[1] == pytest.approx(400.0)
    assert not a[0].flags.writeable
