"""
どこで: `src/sacredgrid/core/pipeline.py`。
何を: シーン設定と時刻から 1 フレーム分（primary・secondary・残像スタック・accent リング）を描画面へ描く。
なぜ: ホストのフレームループからは `render_frame()` を 1 回呼ぶだけで済むようにするため。
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from sacredgrid.core.fractal import instantiate, instantiate_stacked
from sacredgrid.core.line_factory import RenderOptions
from sacredgrid.core.settings import SceneSettings
from sacredgrid.core.surface import DrawSurface


@dataclass(frozen=True, slots=True)
class FrameStats:
    """1 フレームで形状を描いた回数の内訳。"""

    primary: int
    secondary: int
    stacked: int
    accent: int

    @property
    def total(self) -> int:
        return self.primary + self.secondary + self.stacked + self.accent


def render_frame(
    surface: DrawSurface,
    scene: SceneSettings,
    t: float,
    *,
    center: tuple[float, float] = (0.0, 0.0),
    options: RenderOptions | None = None,
) -> FrameStats:
    """1 フレーム分のシーンを描く。

    Parameters
    ----------
    surface : DrawSurface
        描画先。None は `TypeError`。
    scene : SceneSettings
        シーン設定。
    t : float
        ホストのフレーム時刻 [ms]。
    center : tuple[float, float], default (0.0, 0.0)
        キャンバス中心。primary と secondary はここからそれぞれの `offset` だけずらして置く。
    options : RenderOptions or None
        描画の数値パラメータ。

    Returns
    -------
    FrameStats
        形状を描いた回数。
    """
    if surface is None:
        raise TypeError("render_frame には描画面（surface）が必要")

    primary = scene.primary
    lf = scene.line_factory
    cx = float(center[0]) + float(primary.offset[0])
    cy = float(center[1]) + float(primary.offset[1])

    primary_draws = instantiate(
        surface,
        primary,
        (cx, cy),
        float(primary.size),
        float(primary.thickness),
        float(primary.opacity),
        int(primary.fractal.depth),
        float(t),
        lf,
        options=options,
    )
    stacked_draws = instantiate_stacked(surface, primary, (cx, cy), float(t), lf, options=options)

    secondary_draws = 0
    if scene.secondary.enabled:
        shape = scene.secondary.shape
        sx = float(center[0]) + float(shape.offset[0])
        sy = float(center[1]) + float(shape.offset[1])
        secondary_draws = instantiate(
            surface,
            shape,
            (sx, sy),
            float(shape.size),
            float(shape.thickness),
            float(shape.opacity),
            int(shape.fractal.depth),
            float(t),
            lf,
            options=options,
        )
        stacked_draws += instantiate_stacked(surface, shape, (sx, sy), float(t), lf, options=options)

    accent_draws = 0
    accent = scene.accent
    n = int(accent.spawn_count)
    if accent.show and n > 0:
        shape = accent.shape
        for i in range(n):
            angle = i * (2.0 * math.pi / n)
            dx = float(accent.distance_x) * math.cos(angle)
            dy = float(accent.distance_y) * math.sin(angle)
            accent_draws += instantiate(
                surface,
                shape,
                (cx + dx, cy + dy),
                float(shape.size),
                float(shape.thickness),
                float(shape.opacity),
                int(shape.fractal.depth),
                float(t) + i * (float(accent.time_span) / n),
                lf,
                options=options,
            )

    return FrameStats(
        primary=primary_draws,
        secondary=secondary_draws,
        stacked=stacked_draws,
        accent=accent_draws,
    )


__all__ = ["FrameStats", "render_frame"]
