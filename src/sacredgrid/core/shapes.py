"""
どこで: `src/sacredgrid/core/shapes.py`。基本図形の頂点生成。
何を: 形状種別・中心・半径・回転から `VertexPath` を構築する。
なぜ: フラクタル配置とフレーム描画を、外部の形状生成器なしで end to end に動かすため。
"""

from __future__ import annotations

import math

import numpy as np

from sacredgrid.core.path import VertexPath

SHAPE_TYPES: tuple[str, ...] = (
    "polygon",
    "hexagon",
    "pentagon",
    "circle",
    "star",
    "spiral",
    "lissajous",
)

_CIRCLE_SEGMENTS = 64
_CURVE_SEGMENTS = 100
_STAR_INNER_RATIO = 0.4
_SPIRAL_TURNS = 3.0
_SPIRAL_DECAY = 0.15


def _ring(
    center: tuple[float, float],
    radius: float,
    n: int,
    start: float,
) -> np.ndarray:
    angles = start + np.arange(n, dtype=np.float64) * (2.0 * math.pi / float(n))
    cx, cy = float(center[0]), float(center[1])
    return np.stack([cx + radius * np.cos(angles), cy + radius * np.sin(angles)], axis=1)


def _star(center: tuple[float, float], radius: float, points: int, rotation: float) -> np.ndarray:
    n = max(2, int(points))
    i = np.arange(2 * n, dtype=np.float64)
    angles = rotation + i * math.pi / float(n) - math.pi / 2.0
    r = np.where(i % 2 == 0, radius, radius * _STAR_INNER_RATIO)
    cx, cy = float(center[0]), float(center[1])
    return np.stack([cx + r * np.cos(angles), cy + r * np.sin(angles)], axis=1)


def _spiral(center: tuple[float, float], radius: float, rotation: float) -> np.ndarray:
    u = np.arange(_CURVE_SEGMENTS + 1, dtype=np.float64) / float(_CURVE_SEGMENTS)
    angles = rotation + u * 2.0 * math.pi * _SPIRAL_TURNS
    r = radius * (1.0 - u * _SPIRAL_DECAY)
    cx, cy = float(center[0]), float(center[1])
    return np.stack([cx + r * np.cos(angles), cy + r * np.sin(angles)], axis=1)


def _lissajous(center: tuple[float, float], radius: float, delta: float) -> np.ndarray:
    # a=3, b=2 の 1 周期分。t=2π は t=0 と同じ点なので含めない。
    t = np.arange(_CURVE_SEGMENTS, dtype=np.float64) * (2.0 * math.pi / float(_CURVE_SEGMENTS))
    cx, cy = float(center[0]), float(center[1])
    x = cx + radius * np.sin(3.0 * t + delta)
    y = cy + radius * np.sin(2.0 * t)
    return np.stack([x, y], axis=1)


def shape_path(
    shape_type: str,
    center: tuple[float, float],
    radius: float,
    *,
    rotation: float = 0.0,
    vertices: int = 3,
) -> VertexPath:
    """形状種別から頂点列を生成する。

    Parameters
    ----------
    shape_type : str
        `SHAPE_TYPES` のいずれか。
    center : tuple[float, float]
        中心座標。
    radius : float
        外接半径。負値は 0 として扱う。
    rotation : float, default 0.0
        回転角 [deg]。lissajous では x 方向の位相差として使う。
    vertices : int, default 3
        polygon の辺数、star の尖りの数。polygon は 3 未満を 3 にクランプする。

    Returns
    -------
    VertexPath
        spiral 以外は閉路（loop=True）。
    """
    r = max(0.0, float(radius))
    rot = math.radians(float(rotation))

    if shape_type == "polygon":
        return VertexPath(_ring(center, r, max(3, int(vertices)), rot), loop=True)
    if shape_type == "hexagon":
        return VertexPath(_ring(center, r, 6, rot), loop=True)
    if shape_type == "pentagon":
        return VertexPath(_ring(center, r, 5, rot - math.pi / 2.0), loop=True)
    if shape_type == "circle":
        return VertexPath(_ring(center, r, _CIRCLE_SEGMENTS, rot), loop=True)
    if shape_type == "star":
        return VertexPath(_star(center, r, int(vertices) if vertices else 5, rot), loop=True)
    if shape_type == "spiral":
        return VertexPath(_spiral(center, r, rot), loop=False)
    if shape_type == "lissajous":
        return VertexPath(_lissajous(center, r, rot), loop=True)
    raise ValueError(f"未知の形状種別: {shape_type!r}（候補: {', '.join(SHAPE_TYPES)}）")


__all__ = ["SHAPE_TYPES", "shape_path"]
