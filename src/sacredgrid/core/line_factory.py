"""
どこで: `src/sacredgrid/core/line_factory.py`。波形付きの連続ストローク描画。
何を: 頂点列を弧長で密にリサンプリングし、波形で法線方向へ変位させた 1 本のポリラインとして描く。
なぜ: 閉じた形状でも継ぎ目（seam）が見えない、位相の揃った波線を描くため。
"""

from __future__ import annotations

import functools
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Iterable

import numpy as np
from numba import njit  # type: ignore[import-untyped]

from sacredgrid.core.path import VertexPath, arc_length_table, path_from_vertices
from sacredgrid.core.surface import RGB, DrawSurface, stroke_polyline
from sacredgrid.core.waves import (
    ModulationSpec,
    WaveSpec,
    animated_phase,
    evaluate,
    seam_turns,
)

logger = logging.getLogger(__name__)

TAPER_TYPES: tuple[str, ...] = ("none", "start", "end", "both", "middle")
LINE_STYLES: tuple[str, ...] = ("solid", "dashed", "dotted", "wavy", "zigzag")

_DEFAULT_DASH = (5.0, 5.0)
_DOTTED_DASH = (2.0, 4.0)


@dataclass(frozen=True, slots=True)
class TaperSpec:
    """線幅のテーパー設定。start/end は基準幅に対する比率。"""

    type: str = "none"
    start: float = 0.1
    end: float = 0.1


@dataclass(frozen=True, slots=True)
class DashSpec:
    pattern: tuple[float, ...] = _DEFAULT_DASH
    offset: float = 0.0


@dataclass(frozen=True, slots=True)
class GlowSpec:
    """グロー設定。intensity はシャドウのぼかし量として使う。0 で無効。"""

    intensity: float = 0.0
    color: RGB | None = (1.0, 1.0, 1.0)


@dataclass(frozen=True, slots=True)
class OutlineSpec:
    enabled: bool = False
    color: RGB = (0.0, 0.0, 0.0)
    width: float = 0.5


@dataclass(frozen=True, slots=True)
class LineStyleSpec:
    """ストロークの見た目の設定。

    Parameters
    ----------
    style : str
        `LINE_STYLES` のいずれか。wavy/zigzag は波形未指定時に sine/square を補う。
    taper : TaperSpec
        線幅のテーパー。
    dash : DashSpec
        dashed 時の破線パターン。
    glow : GlowSpec
        グロー（シャドウ）。
    outline : OutlineSpec
        下敷きにする太いアウトライン。
    loop_line : bool
        False の場合、loop フラグ付きの頂点列でも閉じ点を足さず開路として描く。
    """

    style: str = "solid"
    taper: TaperSpec = field(default_factory=TaperSpec)
    dash: DashSpec = field(default_factory=DashSpec)
    glow: GlowSpec = field(default_factory=GlowSpec)
    outline: OutlineSpec = field(default_factory=OutlineSpec)
    loop_line: bool = True


@dataclass(frozen=True, slots=True)
class LineFactorySpec:
    """line factory 1 回分の設定（見た目 + 波形 + 変調）。"""

    style: LineStyleSpec = field(default_factory=LineStyleSpec)
    wave: WaveSpec = field(default_factory=WaveSpec)
    modulation: ModulationSpec = field(default_factory=ModulationSpec)


@dataclass(frozen=True, slots=True)
class RenderOptions:
    """描画の数値パラメータ（config.yaml の `render` から作る）。

    Parameters
    ----------
    min_stroke_width : float
        描画時に保証する最小線幅。
    sample_spacing : float
        リサンプリング間隔（座標単位）。
    min_samples : int
        リサンプリングの最小区間数。
    cycle_length : float
        frequency 1 あたりの 1 周期の長さ。
    taper_segments : int
        テーパー描画の分割数。
    """

    min_stroke_width: float = 1.0
    sample_spacing: float = 3.0
    min_samples: int = 100
    cycle_length: float = 30.0
    taper_segments: int = 40


def wave_cycles(frequency: float, length: float, *, cycle_length: float = 30.0) -> int:
    """パス全体の周期数を返す。

    開路・閉路を問わず `max(1, round(f·L / cycle_length))`（0.5 は切り上げ）の整数に丸め、
    始点と終点で波形の値と傾きを一致させる。短いパスでも最低 1 周期は乗る。
    """
    exact = float(frequency) * float(length) / float(cycle_length)
    return max(1, int(math.floor(exact + 0.5)))


def vertex_tangents(points: np.ndarray, closed: bool) -> np.ndarray:
    """各頂点の接線角 [rad] を返す。

    前後の区間の単位方向ベクトルの和（円周平均）から求める。
    閉路では先頭と末尾を互いの隣として扱い、同じ接線角にする。
    長さ 0 の区間は平均に寄与しない。
    """
    pts = np.asarray(points, dtype=np.float64)
    n = pts.shape[0]
    if n < 2:
        return np.zeros((n,), dtype=np.float64)

    d = np.diff(pts, axis=0)
    lens = np.hypot(d[:, 0], d[:, 1])
    unit = np.zeros_like(d)
    nz = lens > 0.0
    unit[nz] = d[nz] / lens[nz, None]

    incoming = np.zeros((n, 2), dtype=np.float64)
    outgoing = np.zeros((n, 2), dtype=np.float64)
    outgoing[:-1] = unit
    incoming[1:] = unit
    if closed:
        incoming[0] = unit[-1]
        outgoing[-1] = unit[0]
    else:
        incoming[0] = unit[0]
        outgoing[-1] = unit[-1]

    s = incoming + outgoing
    # 折り返し（180°）では和が 0 になるので出ていく側の向きを使う。
    flat = np.hypot(s[:, 0], s[:, 1]) < 1e-12
    s[flat] = outgoing[flat]
    return np.arctan2(s[:, 1], s[:, 0])


@njit(cache=True)
def _resample_kernel(
    points: np.ndarray,
    cumulative: np.ndarray,
    tangents: np.ndarray,
    n_samples: int,
    out_xy: np.ndarray,
    out_angle: np.ndarray,
) -> None:
    """弧長等間隔に n_samples + 1 点を取り、位置と接線角を補間する。"""
    n_pts = points.shape[0]
    total = cumulative[n_pts - 1]
    seg = 0
    for i in range(n_samples + 1):
        if i == n_samples:
            dist = total
        else:
            dist = total * i / n_samples

        while seg < n_pts - 2 and cumulative[seg + 1] < dist:
            seg += 1

        seg_len = cumulative[seg + 1] - cumulative[seg]
        s = 0.0
        if seg_len > 0.0:
            s = (dist - cumulative[seg]) / seg_len
        if s < 0.0:
            s = 0.0
        elif s > 1.0:
            s = 1.0

        x0 = points[seg, 0]
        y0 = points[seg, 1]
        out_xy[i, 0] = x0 + (points[seg + 1, 0] - x0) * s
        out_xy[i, 1] = y0 + (points[seg + 1, 1] - y0) * s

        a0 = tangents[seg]
        diff = tangents[seg + 1] - a0
        diff = math.atan2(math.sin(diff), math.cos(diff))
        out_angle[i] = a0 + diff * s


def resample_path(
    points: np.ndarray,
    cumulative: np.ndarray,
    tangents: np.ndarray,
    n_samples: int,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """頂点列を弧長で等間隔にリサンプリングする。

    Returns
    -------
    tuple[np.ndarray, np.ndarray, np.ndarray]
        `(xy, angle, progress)`。xy は shape (n_samples + 1, 2)、
        progress は 0..1 で末尾は厳密に 1.0。
    """
    n = int(n_samples)
    pts = np.ascontiguousarray(points, dtype=np.float64)
    cum = np.ascontiguousarray(cumulative, dtype=np.float64)
    tan = np.ascontiguousarray(tangents, dtype=np.float64)
    out_xy = np.empty((n + 1, 2), dtype=np.float64)
    out_angle = np.empty((n + 1,), dtype=np.float64)
    _resample_kernel(pts, cum, tan, n, out_xy, out_angle)
    progress = np.arange(n + 1, dtype=np.float64) / float(n)
    return out_xy, out_angle, progress


@functools.lru_cache(maxsize=256)
def _cached_arc_table(data: bytes) -> tuple[np.ndarray, float]:
    pts = np.frombuffer(data, dtype=np.float64).reshape(-1, 2)
    cumulative, total = arc_length_table(pts)
    cumulative.setflags(write=False)
    return cumulative, total


def path_arc_table(points: np.ndarray) -> tuple[np.ndarray, float]:
    """頂点列の内容をキーにキャッシュした累積弧長表を返す。"""
    pts = np.ascontiguousarray(points, dtype=np.float64)
    return _cached_arc_table(pts.tobytes())


def clear_arc_length_cache() -> None:
    """弧長表キャッシュを破棄する。"""
    _cached_arc_table.cache_clear()


def displace_path(
    points: np.ndarray,
    wave: WaveSpec,
    modulation: ModulationSpec | None = None,
    *,
    t: float = 0.0,
    closed: bool = True,
    options: RenderOptions | None = None,
) -> np.ndarray:
    """頂点列を密にリサンプリングし、波形で変位させたポリラインを返す。

    Parameters
    ----------
    points : np.ndarray
        shape (N, 2) の頂点列。閉路の場合は末尾に先頭を重ねたもの。
    wave : WaveSpec
        波形の設定。
    modulation : ModulationSpec or None
        変調の設定。
    t : float
        時刻 [ms]。
    closed : bool
        閉路として扱うか。
    options : RenderOptions or None
        リサンプリング間隔などの数値パラメータ。

    Returns
    -------
    np.ndarray
        shape (M, 2) の変位後ポリライン。入力が 2 点未満、または全長 0 の場合は入力のコピー。

    Notes
    -----
    スカラー波形は局所接線の法線方向 `(sin a, -cos a)` へ変位させる。
    パラメトリック波形の `(x, y)` は接線/法線の座標系へ回転して加算する。
    """
    opts = options if options is not None else RenderOptions()
    pts = np.asarray(points, dtype=np.float64)
    if pts.shape[0] < 2:
        return pts.copy()

    cumulative, total = path_arc_table(pts)
    if total <= 0.0:
        return pts.copy()

    cycles = wave_cycles(float(wave.frequency), total, cycle_length=float(opts.cycle_length))
    n_samples = max(int(opts.min_samples), int(math.ceil(total / float(opts.sample_spacing))))
    tangents = vertex_tangents(pts, closed)
    xy, angle, progress = resample_path(pts, cumulative, tangents, n_samples)

    turns = seam_turns(progress, float(cycles), bool(wave.bidirectional))
    wave_angle = turns * (2.0 * math.pi) + animated_phase(wave, t)
    values = evaluate(wave_angle, wave, modulation, t)

    cos_a = np.cos(angle)
    sin_a = np.sin(angle)
    out = np.empty_like(xy)
    if values.ndim == 1:
        out[:, 0] = xy[:, 0] + sin_a * values
        out[:, 1] = xy[:, 1] - cos_a * values
    else:
        ox = values[:, 0]
        oy = values[:, 1]
        out[:, 0] = xy[:, 0] + cos_a * ox + sin_a * oy
        out[:, 1] = xy[:, 1] + sin_a * ox - cos_a * oy
    return out


def taper_width(taper: TaperSpec, base_width: float, progress: float) -> float:
    """テーパー種別と進行度から線幅を返す。未知の種別は基準幅のまま。"""
    w = float(base_width)
    p = float(progress)
    s = float(taper.start)
    e = float(taper.end)
    kind = str(taper.type)

    if kind == "start":
        return w * (s + p * (1.0 - s))
    if kind == "end":
        return w * (1.0 - (1.0 - e) * p)
    if kind == "both":
        if p < 0.5:
            return w * (s + p * 2.0 * (1.0 - s))
        return w * (1.0 - (1.0 - e) * ((p - 0.5) * 2.0))
    if kind == "middle":
        if p < 0.5:
            return w * (1.0 - (1.0 - s) * ((0.5 - p) * 2.0))
        return w * (1.0 - (1.0 - e) * ((p - 0.5) * 2.0))
    return w


def effective_wave(style: LineStyleSpec, wave: WaveSpec) -> WaveSpec:
    """wavy/zigzag スタイルで波形が none の場合に既定の波形を補う。"""
    if wave.type != "none":
        return wave
    if style.style == "wavy":
        return replace(wave, type="sine")
    if style.style == "zigzag":
        return replace(wave, type="square")
    return wave


def _dash_pattern(style: LineStyleSpec) -> tuple[float, ...]:
    if style.style == "dashed":
        return tuple(style.dash.pattern) or _DEFAULT_DASH
    if style.style == "dotted":
        return _DOTTED_DASH
    return ()


def _stroke_tapered(
    surface: DrawSurface,
    points: np.ndarray,
    taper: TaperSpec,
    *,
    color: RGB,
    width: float,
    opacity: float,
    segments: int,
    min_width: float,
    dash: tuple[float, ...] = (),
    dash_offset: float = 0.0,
) -> None:
    m = int(points.shape[0]) - 1
    bands = max(1, min(int(segments), m))
    cumulative = None
    if dash:
        cumulative, _ = arc_length_table(points)
    for i in range(bands):
        start = (i * m) // bands
        end = ((i + 1) * m) // bands
        p_mid = (i + 0.5) / bands
        w = max(float(min_width), taper_width(taper, width, p_mid))
        if cumulative is not None:
            # バンドの始点までの弧長だけ進めて、破線パターンを全体で連続させる
            surface.set_dash(dash, dash_offset + float(cumulative[start]))
        stroke_polyline(surface, points[start : end + 1], color=color, width=w, opacity=opacity)


def stroke_styled(
    surface: DrawSurface,
    points: np.ndarray,
    style: LineStyleSpec,
    *,
    color: RGB,
    width: float,
    opacity: float,
    options: RenderOptions | None = None,
) -> None:
    """グロー・アウトライン・破線・テーパーを適用してポリラインを描く。

    グローはアウトラインがあればアウトラインに、無ければ本線に付ける。
    """
    opts = options if options is not None else RenderOptions()
    min_width = float(opts.min_stroke_width)
    w = max(min_width, float(width))
    alpha = max(0.0, min(1.0, float(opacity)))
    dash = _dash_pattern(style)
    dash_offset = float(style.dash.offset)

    glow = float(style.glow.intensity)
    if glow > 0.0:
        glow_color = style.glow.color if style.glow.color is not None else color
        surface.set_shadow(glow, glow_color)

    if dash:
        surface.set_dash(dash, dash_offset)

    if style.outline.enabled:
        outline_w = w + 2.0 * float(style.outline.width)
        stroke_polyline(
            surface, points, color=style.outline.color, width=outline_w, opacity=alpha
        )
        if glow > 0.0:
            surface.set_shadow(0.0)

    if style.taper.type != "none":
        _stroke_tapered(
            surface,
            points,
            style.taper,
            color=color,
            width=w,
            opacity=alpha,
            segments=int(opts.taper_segments),
            min_width=min_width,
            dash=dash,
            dash_offset=dash_offset,
        )
    else:
        stroke_polyline(surface, points, color=color, width=w, opacity=alpha)

    if glow > 0.0 and not style.outline.enabled:
        surface.set_shadow(0.0)
    if dash:
        surface.set_dash(())


def render_path(
    surface: DrawSurface,
    path: VertexPath | Iterable[object],
    style: LineStyleSpec,
    wave: WaveSpec,
    modulation: ModulationSpec | None,
    color: RGB,
    base_width: float,
    *,
    t: float = 0.0,
    opacity: float = 1.0,
    options: RenderOptions | None = None,
) -> np.ndarray | None:
    """頂点列を波形付きの 1 本のストロークとして描く。

    Parameters
    ----------
    surface : DrawSurface
        描画先。None は `TypeError`。
    path : VertexPath or Iterable
        頂点列。VertexPath 以外は開路として変換する。
    style : LineStyleSpec
        見た目の設定。
    wave : WaveSpec
        波形の設定。
    modulation : ModulationSpec or None
        変調の設定。
    color : tuple[float, float, float]
        線色（RGB 0..1）。
    base_width : float
        基準線幅。最小線幅を下回る場合は引き上げる。
    t : float
        時刻 [ms]。
    opacity : float
        不透明度。[0, 1] にクランプする。
    options : RenderOptions or None
        数値パラメータ。

    Returns
    -------
    np.ndarray or None
        描画したポリライン（shape (M, 2)）。頂点 2 未満や全長 0 の場合は描画せず None。
    """
    if surface is None:
        raise TypeError("render_path には描画面（surface）が必要")

    vpath = path if isinstance(path, VertexPath) else path_from_vertices(path)
    if vpath.loop and not style.loop_line:
        vpath = VertexPath(vpath.points, loop=False)
    opts = options if options is not None else RenderOptions()

    closed = vpath.is_closed
    pts = vpath.closed_points()
    if pts.shape[0] < 2:
        logger.debug("頂点数が 2 未満のため描画をスキップ: n=%d", pts.shape[0])
        return None

    _, total = path_arc_table(pts)
    if total <= 0.0:
        logger.debug("パス長が 0 のため描画をスキップ")
        return None

    wv = effective_wave(style, wave)
    if wv.type == "none" or float(wv.amplitude) == 0.0 or float(wv.frequency) == 0.0:
        out = np.array(pts, dtype=np.float64, copy=True)
    else:
        out = displace_path(pts, wv, modulation, t=t, closed=closed, options=opts)

    stroke_styled(
        surface,
        out,
        style,
        color=color,
        width=float(base_width),
        opacity=float(opacity),
        options=opts,
    )
    return out


__all__ = [
    "DashSpec",
    "GlowSpec",
    "LINE_STYLES",
    "LineFactorySpec",
    "LineStyleSpec",
    "OutlineSpec",
    "RenderOptions",
    "TAPER_TYPES",
    "TaperSpec",
    "clear_arc_length_cache",
    "displace_path",
    "effective_wave",
    "path_arc_table",
    "render_path",
    "resample_path",
    "stroke_styled",
    "taper_width",
    "vertex_tangents",
    "wave_cycles",
]
