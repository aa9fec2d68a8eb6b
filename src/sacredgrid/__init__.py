"""
sacredgrid: アニメーションする幾何学模様を、波形付きの連続ストロークで描くライブラリ。

主な入口:
- `compute_pose()`: 時刻と設定から形状の姿勢を求める
- `render_path()`: 頂点列を波形付きの 1 本のストロークとして描く
- `instantiate()`: 形状とフラクタルの子孫を描く
- `render_frame()`: シーン設定から 1 フレームを描く
"""

from __future__ import annotations

from sacredgrid.core.animation import AnimationPose, ShapeAnimationConfig, ShapeIdentity, compute_pose
from sacredgrid.core.fractal import FractalSpec, ShapeSpec, StackingSpec, instantiate, instantiate_stacked
from sacredgrid.core.line_factory import LineFactorySpec, LineStyleSpec, RenderOptions, render_path
from sacredgrid.core.path import VertexPath, path_from_vertices
from sacredgrid.core.pipeline import FrameStats, render_frame
from sacredgrid.core.settings import SceneSettings, load_scene_settings, scene_from_mapping
from sacredgrid.core.surface import DrawSurface, RecordingSurface
from sacredgrid.core.waves import ModulationSpec, WaveSpec, sample

__all__ = [
    "AnimationPose",
    "DrawSurface",
    "FractalSpec",
    "FrameStats",
    "LineFactorySpec",
    "LineStyleSpec",
    "ModulationSpec",
    "RecordingSurface",
    "RenderOptions",
    "SceneSettings",
    "ShapeAnimationConfig",
    "ShapeIdentity",
    "ShapeSpec",
    "StackingSpec",
    "VertexPath",
    "WaveSpec",
    "compute_pose",
    "instantiate",
    "instantiate_stacked",
    "load_scene_settings",
    "path_from_vertices",
    "render_frame",
    "render_path",
    "sample",
    "scene_from_mapping",
]
