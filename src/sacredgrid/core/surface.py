"""
どこで: `src/sacredgrid/core/surface.py`。描画面の最小インターフェースと記録用実装。
何を: move/line/stroke/dash/shadow だけを持つ `DrawSurface` と、呼び出しを記録する `RecordingSurface` を定義する。
なぜ: コアを特定の描画バックエンドから切り離し、描画呼び出しをそのまま検証できるようにするため。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import numpy as np

from sacredgrid.core.path import PolylineTuple, concat_polylines

RGB = tuple[float, float, float]


@runtime_checkable
class DrawSurface(Protocol):
    """コアが描画に使う最小の描画面。

    Notes
    -----
    `move_to` で新しいサブパスを開始し、`stroke` で蓄積したパスを描いて破棄する。
    dash と shadow は次の `set_*` 呼び出しまで持続する状態として扱う。
    """

    def move_to(self, x: float, y: float) -> None: ...

    def line_to(self, x: float, y: float) -> None: ...

    def stroke(self, *, color: RGB, width: float, opacity: float) -> None: ...

    def set_dash(self, pattern: tuple[float, ...], offset: float = 0.0) -> None: ...

    def set_shadow(self, blur: float, color: RGB | None = None) -> None: ...


@dataclass(frozen=True, slots=True)
class StrokeCommand:
    """1 回の stroke 呼び出しの記録。"""

    points: np.ndarray
    color: RGB
    width: float
    opacity: float
    dash: tuple[float, ...] = ()
    dash_offset: float = 0.0
    shadow_blur: float = 0.0
    shadow_color: RGB | None = None


def stroke_polyline(
    surface: DrawSurface,
    points: np.ndarray,
    *,
    color: RGB,
    width: float,
    opacity: float,
) -> None:
    """(N, 2) の頂点列を 1 本のポリラインとして描く。2 点未満は何もしない。"""
    pts = np.asarray(points, dtype=np.float64)
    if pts.shape[0] < 2:
        return
    surface.move_to(float(pts[0, 0]), float(pts[0, 1]))
    for x, y in pts[1:]:
        surface.line_to(float(x), float(y))
    surface.stroke(color=color, width=float(width), opacity=float(opacity))


@dataclass(slots=True)
class RecordingSurface:
    """描画呼び出しを `StrokeCommand` として記録する描画面。

    テストや CLI の集計で使う。ラスタライズは行わない。
    """

    commands: list[StrokeCommand] = field(default_factory=list)
    _current: list[list[tuple[float, float]]] = field(default_factory=list)
    _dash: tuple[float, ...] = ()
    _dash_offset: float = 0.0
    _shadow_blur: float = 0.0
    _shadow_color: RGB | None = None

    def move_to(self, x: float, y: float) -> None:
        self._current.append([(float(x), float(y))])

    def line_to(self, x: float, y: float) -> None:
        if not self._current:
            self._current.append([(float(x), float(y))])
            return
        self._current[-1].append((float(x), float(y)))

    def stroke(self, *, color: RGB, width: float, opacity: float) -> None:
        for sub in self._current:
            pts = np.asarray(sub, dtype=np.float64).reshape(-1, 2)
            pts.setflags(write=False)
            self.commands.append(
                StrokeCommand(
                    points=pts,
                    color=(float(color[0]), float(color[1]), float(color[2])),
                    width=float(width),
                    opacity=float(opacity),
                    dash=self._dash,
                    dash_offset=self._dash_offset,
                    shadow_blur=self._shadow_blur,
                    shadow_color=self._shadow_color,
                )
            )
        self._current = []

    def set_dash(self, pattern: tuple[float, ...], offset: float = 0.0) -> None:
        self._dash = tuple(float(v) for v in pattern)
        self._dash_offset = float(offset)

    def set_shadow(self, blur: float, color: RGB | None = None) -> None:
        self._shadow_blur = float(blur)
        self._shadow_color = color

    @property
    def draw_calls(self) -> int:
        """記録済みの stroke 数を返す。"""
        return len(self.commands)

    def clear(self) -> None:
        """記録と描画状態をリセットする。"""
        self.commands.clear()
        self._current = []
        self._dash = ()
        self._dash_offset = 0.0
        self._shadow_blur = 0.0
        self._shadow_color = None

    def to_polylines(self) -> PolylineTuple:
        """記録済みの stroke を `(coords, offsets)` にまとめて返す。"""
        return concat_polylines(*(cmd.points for cmd in self.commands))


__all__ = [
    "DrawSurface",
    "RGB",
    "RecordingSurface",
    "StrokeCommand",
    "stroke_polyline",
]
