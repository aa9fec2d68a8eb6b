"""
どこで: `src/sacredgrid/core/animation.py`。
何を: 時刻・アニメーション設定・形状 ID から 1 フレーム分の姿勢（半径/不透明度/オフセット/回転）を求める。
なぜ: 同じ設定の形状でも個体ごとに揺らぎを持たせつつ、同一入力では必ず同じ結果を返すため。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal

AnimationMode = Literal[
    "grow",
    "pulse",
    "orbit",
    "waveform",
    "spiral",
    "harmonic",
    "swarm",
    "breathe",
]

ANIMATION_MODES: tuple[str, ...] = (
    "grow",
    "pulse",
    "orbit",
    "waveform",
    "spiral",
    "harmonic",
    "swarm",
    "breathe",
)

# 1 ループの基準長 [ms]。
BASE_LOOP_DURATION_MS = 6000.0
# variable_timing 有効時の揺らぎ幅 [ms]（±半分）。
LOOP_DURATION_VARIATION_MS = 2000.0
# child_phase_shift 1.0 あたりの時間シフト [ms]。
CHILD_PHASE_SHIFT_MS = 500.0


@dataclass(frozen=True, slots=True)
class ShapeAnimationConfig:
    """形状 1 つ分のアニメーション設定。

    Parameters
    ----------
    mode : str
        動きの種類。`ANIMATION_MODES` のいずれか。
    reverse : bool
        True の場合、進行度を反転する。
    speed : float
        位相速度 [rad/ms]。
    intensity : float
        揺らぎの強さ。
    fade_in, fade_out : float
        grow モードのフェード区間（ループ長に対する比率）。
    variable_timing : bool
        True の場合、形状 ID からループ長を ±1000ms 揺らす。
    stagger_delay : float
        個体ごとの開始遅延の上限 [ms]。0 で無効。
    child_phase_shift : float
        フラクタル子要素の位相ずれ（0..1 程度）。
    """

    mode: str = "pulse"
    reverse: bool = False
    speed: float = 0.0008
    intensity: float = 0.2
    fade_in: float = 0.2
    fade_out: float = 0.2
    variable_timing: bool = False
    stagger_delay: float = 0.0
    child_phase_shift: float = 0.0


@dataclass(frozen=True, slots=True)
class ShapeIdentity:
    """決定的な揺らぎの種になる形状の識別情報。"""

    shape_type: str
    vertex_count: int = 0
    offset_x: float = 0.0
    offset_y: float = 0.0


@dataclass(frozen=True, slots=True)
class AnimationPose:
    """compute_pose() の結果（毎フレーム再計算する）。"""

    dynamic_radius: float
    final_opacity: float
    offset_x: float
    offset_y: float
    rotation_offset: float
    progress: float
    adjusted_time: float
    unique_id: float


def seeded_random(seed: float) -> float:
    """sin ベースの決定的擬似乱数を [0, 1) で返す。"""
    x = math.sin(float(seed) * 9999.0) * 10000.0
    return x - math.floor(x)


def unique_id(identity: ShapeIdentity) -> float:
    """形状種別・頂点数・位置オフセットから決定的な ID を返す。"""
    type_code = ord(identity.shape_type[0]) if identity.shape_type else 0
    return (
        float(type_code)
        + float(identity.vertex_count) * 10.0
        + float(identity.offset_x) * 0.1
        + float(identity.offset_y) * 0.1
    )


def loop_duration(config: ShapeAnimationConfig, uid: float) -> float:
    """1 ループの長さ [ms] を返す。"""
    duration = BASE_LOOP_DURATION_MS
    if config.variable_timing:
        duration += seeded_random(uid) * LOOP_DURATION_VARIATION_MS - LOOP_DURATION_VARIATION_MS * 0.5
    return duration


def _ease_out_elastic(t: float) -> float:
    if t == 0.0:
        return 0.0
    if t == 1.0:
        return 1.0
    c4 = (2.0 * math.pi) / 3.0
    return math.pow(2.0, -10.0 * t) * math.sin((t * 10.0 - 0.75) * c4) + 1.0


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def _grow_fade(progress: float, fade_in: float, fade_out: float) -> float:
    """grow モードの台形フェード係数を返す。

    fade_in + fade_out > 1 で区間が重なる場合は、両方のランプの小さい方を採用する。
    """
    fade = 1.0
    if fade_in > 0.0:
        fade = min(fade, progress / fade_in)
    if fade_out > 0.0:
        fade = min(fade, (1.0 - progress) / fade_out)
    return _clamp01(fade)


def compute_pose(
    t: float,
    config: ShapeAnimationConfig,
    identity: ShapeIdentity,
    *,
    size: float = 1.0,
    opacity: float = 1.0,
) -> AnimationPose:
    """時刻 t における形状の姿勢を返す（純関数）。

    Parameters
    ----------
    t : float
        ホストのフレーム時刻 [ms]。
    config : ShapeAnimationConfig
        アニメーション設定。
    identity : ShapeIdentity
        個体ごとの揺らぎの種。
    size : float, default 1.0
        基準半径。
    opacity : float, default 1.0
        基準不透明度。

    Returns
    -------
    AnimationPose
        半径・不透明度・オフセット・回転オフセット [deg] と進行度。

    Notes
    -----
    - 進行度 progress は常に [0, 1) に収める。
    - final_opacity は [0, 1]、dynamic_radius は 0 以上にクランプする。
    - 未知の mode は静止姿勢（size, opacity）になる。
    """
    uid = unique_id(identity)
    duration = loop_duration(config, uid)

    delay = 0.0
    stagger = float(config.stagger_delay)
    if stagger > 0.0:
        delay = math.fmod(uid, stagger)
        if delay < 0.0:
            delay += stagger

    adjusted = max(0.0, float(t) - delay + float(config.child_phase_shift) * CHILD_PHASE_SHIFT_MS)

    raw = math.fmod(adjusted, duration) / duration
    progress = (1.0 - raw) % 1.0 if config.reverse else raw
    if progress >= 1.0:
        progress = 0.0

    size_f = float(size)
    base_opacity = float(opacity)
    speed = float(config.speed)
    intensity = float(config.intensity)
    mode = str(config.mode)

    offset_x = 0.0
    offset_y = 0.0
    rotation = 0.0

    if mode == "grow":
        radius = size_f * progress
        alpha = base_opacity * _grow_fade(progress, float(config.fade_in), float(config.fade_out))

    elif mode == "pulse":
        base_phase = progress * 2.0 * math.pi
        breathing_phase = adjusted * speed
        breathing_factor = (
            1.0
            + math.sin(breathing_phase) * intensity
            + math.sin(breathing_phase * 1.5) * intensity * 0.3
        )
        pulse = 0.5 + 0.5 * math.sin(base_phase)
        radius = size_f * pulse * breathing_factor
        alpha = base_opacity * (1.0 + math.sin(breathing_phase * 1.3) * 0.15)

    elif mode == "orbit":
        phase = adjusted * speed
        radius = size_f * (0.8 + 0.2 * math.sin(phase * 0.5))
        alpha = base_opacity
        orbit_radius = size_f * 0.3 * intensity
        offset_x = math.cos(phase) * orbit_radius
        offset_y = math.sin(phase) * orbit_radius
        rotation = math.sin(phase * 0.25) * 15.0

    elif mode == "waveform":
        phase = adjusted * speed
        waveform = math.sin(phase) + math.sin(phase * 2.5) * 0.3 + math.sin(phase * 0.6) * 0.1
        radius = size_f * (1.0 + (waveform / 1.4) * intensity)
        alpha = base_opacity * (1.0 + math.sin(phase * 1.7) * 0.1)
        offset_x = math.sin(phase) * size_f * 0.2 * intensity
        offset_y = math.cos(phase * 0.7) * size_f * 0.15 * intensity

    elif mode == "spiral":
        phase = adjusted * speed
        radius = size_f * (0.9 + 0.1 * math.sin(phase * 0.5))
        alpha = base_opacity * (0.8 + 0.2 * math.sin(phase * 0.75))
        angle = phase * 2.0
        growth = (1.0 - math.cos(phase * 0.5)) * 0.5
        spiral_radius = size_f * 0.4 * growth * intensity
        offset_x = math.cos(angle) * spiral_radius
        offset_y = math.sin(angle) * spiral_radius
        rotation = phase * 30.0

    elif mode == "harmonic":
        phase = adjusted * speed
        # b = 1.5 + ε のゆっくり揺れる周波数比で Lissajous を描く。
        ratio = 1.5 + math.sin(phase * 0.1) * 0.5
        radius_wave = (
            math.sin(phase) * 0.3 + math.sin(phase * 1.7) * 0.2 + math.sin(phase * 0.4) * 0.1
        )
        radius = size_f * (0.9 + radius_wave * intensity * 0.3)
        alpha = base_opacity * (0.85 + math.sin(phase * 1.3) * 0.15)
        delta = phase * 0.2
        pattern_scale = size_f * 0.25 * intensity
        offset_x = math.sin(3.0 * phase + delta) * pattern_scale
        offset_y = math.sin(ratio * phase) * pattern_scale
        rotation = math.sin(phase * 0.3) * 20.0

    elif mode == "swarm":
        phase = adjusted * speed
        r1 = seeded_random(uid * 1.1)
        r2 = seeded_random(uid * 2.2)
        r3 = seeded_random(uid * 3.3)
        f1 = 0.5 + r1
        f2 = 0.7 + r2
        f3 = 0.3 + r3
        spread = size_f * 0.3 * intensity
        offset_x = (
            math.sin(phase * f1) * 0.5
            + math.sin(phase * f2 * 1.7) * 0.3
            + math.cos(phase * f3 * 0.5) * 0.2
        ) * spread
        offset_y = (
            math.cos(phase * f1 * 0.8) * 0.5
            + math.sin(phase * f3 * 1.3) * 0.3
            + math.cos(phase * f2 * 0.7) * 0.2
        ) * spread
        radius = size_f * (0.95 + 0.05 * math.sin(phase * r2 * 2.0))
        alpha = base_opacity * (0.9 + 0.1 * math.sin(phase * r3))
        rotation = math.sin(phase * r1) * 25.0

    elif mode == "breathe":
        phase = adjusted * speed
        cycle = (math.sin(phase) + 1.0) / 2.0
        eased = _ease_out_elastic(cycle)
        radius = size_f * (0.8 + 0.3 * eased * intensity)
        direction = phase * 0.2
        offset_x = math.cos(direction) * (eased * 0.1) * size_f * intensity
        offset_y = math.sin(direction) * (eased * 0.1) * size_f * intensity
        alpha = base_opacity * (0.8 + 0.2 * eased)
        rotation = (eased - 0.5) * 5.0 * intensity

    else:
        radius = size_f
        alpha = base_opacity

    return AnimationPose(
        dynamic_radius=max(0.0, float(radius)),
        final_opacity=_clamp01(alpha),
        offset_x=float(offset_x),
        offset_y=float(offset_y),
        rotation_offset=float(rotation),
        progress=float(progress),
        adjusted_time=float(adjusted),
        unique_id=float(uid),
    )


__all__ = [
    "ANIMATION_MODES",
    "AnimationMode",
    "AnimationPose",
    "BASE_LOOP_DURATION_MS",
    "ShapeAnimationConfig",
    "ShapeIdentity",
    "compute_pose",
    "loop_duration",
    "seeded_random",
    "unique_id",
]
