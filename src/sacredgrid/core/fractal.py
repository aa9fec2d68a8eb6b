"""
どこで: `src/sacredgrid/core/fractal.py`。形状のフラクタル配置と時間差スタック。
何を: 親形状の周囲へ縮小・減衰した子形状を再帰的に配置し、時刻をずらした残像コピーを描く。
なぜ: 1 つの形状設定から入れ子の模様と残像を、アニメーション/line factory と同じ契約で描くため。
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace

import numpy as np

from sacredgrid.core.animation import (
    AnimationPose,
    ShapeAnimationConfig,
    ShapeIdentity,
    compute_pose,
    seeded_random,
)
from sacredgrid.core.line_factory import LineFactorySpec, LineStyleSpec, RenderOptions, render_path
from sacredgrid.core.shapes import shape_path
from sacredgrid.core.surface import RGB, DrawSurface
from sacredgrid.core.waves import WaveSpec

PHI = (1.0 + math.sqrt(5.0)) / 2.0
GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))

SACRED_PATTERNS: tuple[str, ...] = (
    "golden_spiral",
    "fibonacci",
    "platonic",
    "metatron",
    "sri_yantra",
)

_FIB = (0, 1, 1, 2, 3, 5, 8, 13, 21, 34, 55)
_TETRAHEDRON = ((1.0, 1.0, 1.0), (1.0, -1.0, -1.0), (-1.0, 1.0, -1.0), (-1.0, -1.0, 1.0))

_PLAIN_STYLE = LineStyleSpec()
_NO_WAVE = WaveSpec(type="none")


@dataclass(frozen=True, slots=True)
class FractalSpec:
    """フラクタル配置の設定。

    Parameters
    ----------
    depth : int
        再帰の深さ。1 以下で親のみ。
    scale : float
        子の半径倍率。
    thickness_falloff : float
        子の線幅・不透明度の減衰率。
    child_count : int
        親 1 つあたりの子の数。
    sacred_positioning : bool
        True の場合、等間隔リングを神聖幾何パターンへ寄せる。
    sacred_intensity : float
        パターンへ寄せる度合い（0..1）。
    """

    depth: int = 1
    scale: float = 0.5
    thickness_falloff: float = 0.8
    child_count: int = 3
    sacred_positioning: bool = False
    sacred_intensity: float = 0.5


@dataclass(frozen=True, slots=True)
class StackingSpec:
    """時刻をずらした残像コピーの設定。"""

    enabled: bool = False
    count: int = 3
    time_offset: float = -3000.0
    interval: float = 1000.0


@dataclass(frozen=True, slots=True)
class ShapeSpec:
    """形状 1 つ分の設定。

    animation が None の場合は静止姿勢で描く。
    """

    type: str = "polygon"
    size: float = 100.0
    opacity: float = 1.0
    thickness: float = 6.0
    vertices: int = 3
    rotation: float = 0.0
    offset: tuple[float, float] = (0.0, 0.0)
    color: RGB = (0.0, 119.0 / 255.0, 1.0)
    use_line_factory: bool = True
    animation: ShapeAnimationConfig | None = field(default_factory=ShapeAnimationConfig)
    fractal: FractalSpec = field(default_factory=FractalSpec)
    stacking: StackingSpec = field(default_factory=StackingSpec)

    @property
    def identity(self) -> ShapeIdentity:
        return ShapeIdentity(
            shape_type=self.type,
            vertex_count=int(self.vertices),
            offset_x=float(self.offset[0]),
            offset_y=float(self.offset[1]),
        )


@dataclass(frozen=True, slots=True)
class DrawnShape:
    """draw_shape() の結果。子の配置はこの中心と回転を基準にする。"""

    pose: AnimationPose
    center: tuple[float, float]
    rotation: float


def sacred_pattern(shape_type: str, vertices: int) -> str:
    """形状種別と頂点数から決定的にパターン名を選ぶ。"""
    seed = (ord(shape_type[0]) if shape_type else 0) + int(vertices) * 10
    idx = int(math.floor(seeded_random(seed) * len(SACRED_PATTERNS)))
    return SACRED_PATTERNS[min(idx, len(SACRED_PATTERNS) - 1)]


def _sacred_offset(
    pattern: str,
    i: int,
    child_count: int,
    radius: float,
    depth: int,
    rotation: float,
    pattern_rotation: float,
) -> tuple[float, float]:
    base_angle = (i * 2.0 * math.pi) / child_count + rotation + pattern_rotation

    if pattern == "golden_spiral":
        angle = base_angle + GOLDEN_ANGLE * i * (depth + 1)
        progress = i / max(child_count - 1, 1)
        r = radius * (0.6 + 0.4 * math.pow(PHI, -progress))
        return r * math.cos(angle), r * math.sin(angle)

    if pattern == "fibonacci":
        max_fib = float(_FIB[-1])
        nx = (_FIB[(i * (depth + 1)) % len(_FIB)] / max_fib) * 2.0 - 1.0
        ny = (_FIB[(i * 3 + depth) % len(_FIB)] / max_fib) * 2.0 - 1.0
        a = base_angle * 0.5
        rx = nx * math.cos(a) - ny * math.sin(a)
        ry = nx * math.sin(a) + ny * math.cos(a)
        return radius * rx * 0.75, radius * ry * 0.75

    if pattern == "platonic":
        if child_count <= 4:
            vx, vy, vz = _TETRAHEDRON[(i + depth) % 4]
            norm = math.sqrt(vx * vx + vy * vy + vz * vz)
            return radius * (vx / norm) * 0.7, radius * (vy / norm) * 0.7
        if child_count <= 6:
            a = pattern_rotation + i * (math.pi / 3.0)
            alt = 0.7 if (i + depth) % 2 else -0.7
            return radius * math.cos(a) * 0.8, radius * math.sin(a) * alt
        a1 = pattern_rotation + i * GOLDEN_ANGLE
        a2 = pattern_rotation + (i + 1) * GOLDEN_ANGLE
        blend = ((i + depth) % 3) / 2.0
        x = radius * (math.cos(a1) * (1.0 - blend) + math.cos(a2) * blend) * 0.8
        y = radius * (math.sin(a1) * (1.0 - blend) + math.sin(a2) * blend) * 0.8
        return x, y

    if pattern == "metatron":
        ring = 1 + (i + depth) % 3
        a = (i % 6) * (math.pi / 3.0) + pattern_rotation
        factor = 0.3 + 0.2 * ring
        return radius * factor * math.cos(a), radius * factor * math.sin(a)

    if pattern == "sri_yantra":
        upward = (i + depth) % 2 == 0
        a = pattern_rotation + ((i + depth) % 3) * 2.0 * math.pi / 3.0
        if not upward:
            a += math.pi / 3.0
        factor = 0.7 if upward else 0.5
        return radius * factor * math.cos(a), radius * factor * math.sin(a)

    raise ValueError(f"未知の配置パターン: {pattern!r}")


def child_offsets(
    shape_type: str,
    vertices: int,
    fractal: FractalSpec,
    radius: float,
    depth: int,
    rotation: float = 0.0,
) -> np.ndarray:
    """子形状の親中心からのオフセットを shape (child_count, 2) で返す。

    Parameters
    ----------
    shape_type : str
        形状種別（パターン選択の種）。
    vertices : int
        頂点数（パターン選択の種）。
    fractal : FractalSpec
        フラクタル設定。
    radius : float
        親の半径。子は基本的にこの距離の円周上に並ぶ。
    depth : int
        現在の再帰深さ。
    rotation : float, default 0.0
        親の回転 [deg]。

    Returns
    -------
    np.ndarray
        shape (child_count, 2) のオフセット。

    Notes
    -----
    sacred_positioning 時は各軸 ±0.9·radius にクランプした後、
    sacred_intensity で等間隔リングとブレンドする。
    """
    n = int(fractal.child_count)
    if n <= 0:
        return np.zeros((0, 2), dtype=np.float64)

    r = float(radius)
    rot = math.radians(float(rotation))
    out = np.empty((n, 2), dtype=np.float64)
    for i in range(n):
        a = (i * 2.0 * math.pi) / n + rot
        out[i, 0] = r * math.cos(a)
        out[i, 1] = r * math.sin(a)

    if not fractal.sacred_positioning:
        return out

    pattern = sacred_pattern(shape_type, vertices)
    seed = (ord(shape_type[0]) if shape_type else 0) + int(vertices) * 10 + round(depth * 100)
    pattern_rotation = seeded_random(seed) * 2.0 * math.pi
    limit = r * 0.9
    k = max(0.0, min(1.0, float(fractal.sacred_intensity)))
    for i in range(n):
        sx, sy = _sacred_offset(pattern, i, n, r, int(depth), rot, pattern_rotation)
        sx = max(-limit, min(limit, sx))
        sy = max(-limit, min(limit, sy))
        out[i, 0] = sx * k + out[i, 0] * (1.0 - k)
        out[i, 1] = sy * k + out[i, 1] * (1.0 - k)
    return out


def draw_shape(
    surface: DrawSurface,
    shape: ShapeSpec,
    center: tuple[float, float],
    radius: float,
    thickness: float,
    opacity: float,
    t: float,
    line_factory: LineFactorySpec,
    *,
    options: RenderOptions | None = None,
    child_phase_shift: float = 0.0,
    rotation: float | None = None,
) -> DrawnShape:
    """姿勢を求めて形状を 1 つ描く。

    use_line_factory が False の場合は波形・装飾なしの実線で描く。
    """
    base_rotation = float(shape.rotation if rotation is None else rotation)
    if shape.animation is None:
        pose = AnimationPose(
            dynamic_radius=max(0.0, float(radius)),
            final_opacity=max(0.0, min(1.0, float(opacity))),
            offset_x=0.0,
            offset_y=0.0,
            rotation_offset=0.0,
            progress=0.0,
            adjusted_time=max(0.0, float(t)),
            unique_id=0.0,
        )
    else:
        cfg = replace(shape.animation, child_phase_shift=float(child_phase_shift))
        pose = compute_pose(t, cfg, shape.identity, size=radius, opacity=opacity)

    cx = float(center[0]) + pose.offset_x
    cy = float(center[1]) + pose.offset_y
    rot = base_rotation + pose.rotation_offset
    path = shape_path(
        shape.type, (cx, cy), pose.dynamic_radius, rotation=rot, vertices=int(shape.vertices)
    )

    if shape.use_line_factory:
        style, wave, modulation = line_factory.style, line_factory.wave, line_factory.modulation
    else:
        style, wave, modulation = _PLAIN_STYLE, _NO_WAVE, None

    render_path(
        surface,
        path,
        style,
        wave,
        modulation,
        shape.color,
        float(thickness),
        t=t,
        opacity=pose.final_opacity,
        options=options,
    )
    return DrawnShape(pose=pose, center=(cx, cy), rotation=rot)


def instantiate(
    surface: DrawSurface,
    shape: ShapeSpec,
    center: tuple[float, float],
    radius: float,
    thickness: float,
    opacity: float,
    depth: int,
    t: float,
    line_factory: LineFactorySpec,
    *,
    options: RenderOptions | None = None,
    child_phase_shift: float = 0.0,
    rotation: float | None = None,
) -> int:
    """形状と、その子孫を再帰的に描く。

    Parameters
    ----------
    surface : DrawSurface
        描画先。
    shape : ShapeSpec
        形状設定（子にもそのまま引き継ぐ）。
    center : tuple[float, float]
        中心座標。
    radius, thickness, opacity : float
        この階層の半径・線幅・不透明度。
    depth : int
        残りの深さ。1 以下なら子を描かない。
    t : float
        時刻 [ms]。
    line_factory : LineFactorySpec
        ストローク設定。
    options : RenderOptions or None
        描画の数値パラメータ。
    child_phase_shift : float
        この形状の位相ずれ。子 i には `i / child_count` を渡す。
    rotation : float or None
        回転 [deg]。None なら `shape.rotation`。

    Returns
    -------
    int
        形状を描いた回数（1 + c + c² + …）。
    """
    drawn = draw_shape(
        surface,
        shape,
        center,
        radius,
        thickness,
        opacity,
        t,
        line_factory,
        options=options,
        child_phase_shift=child_phase_shift,
        rotation=rotation,
    )
    count = 1
    if int(depth) <= 1:
        return count

    fractal = shape.fractal
    offsets = child_offsets(
        shape.type, int(shape.vertices), fractal, float(radius), int(depth), drawn.rotation
    )
    n = int(offsets.shape[0])
    falloff = float(fractal.thickness_falloff)
    for i in range(n):
        child_center = (drawn.center[0] + float(offsets[i, 0]), drawn.center[1] + float(offsets[i, 1]))
        count += instantiate(
            surface,
            shape,
            child_center,
            float(radius) * float(fractal.scale),
            float(thickness) * falloff,
            float(opacity) * falloff,
            int(depth) - 1,
            t,
            line_factory,
            options=options,
            child_phase_shift=i / n,
            rotation=drawn.rotation,
        )
    return count


def instantiate_stacked(
    surface: DrawSurface,
    shape: ShapeSpec,
    center: tuple[float, float],
    t: float,
    line_factory: LineFactorySpec,
    *,
    options: RenderOptions | None = None,
) -> int:
    """stacking 設定に従い、時刻をずらした残像コピーを描く。

    i 番目のコピーは `t + time_offset + i·interval` の時刻で描く。

    Returns
    -------
    int
        形状を描いた回数。stacking が無効なら 0。
    """
    stacking = shape.stacking
    if not stacking.enabled:
        return 0

    count = 0
    for i in range(max(0, int(stacking.count))):
        t_i = float(t) + float(stacking.time_offset) + i * float(stacking.interval)
        count += instantiate(
            surface,
            shape,
            center,
            float(shape.size),
            float(shape.thickness),
            float(shape.opacity),
            int(shape.fractal.depth),
            t_i,
            line_factory,
            options=options,
        )
    return count


__all__ = [
    "DrawnShape",
    "FractalSpec",
    "GOLDEN_ANGLE",
    "PHI",
    "SACRED_PATTERNS",
    "ShapeSpec",
    "StackingSpec",
    "child_offsets",
    "draw_shape",
    "instantiate",
    "instantiate_stacked",
    "sacred_pattern",
]
