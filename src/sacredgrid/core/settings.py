"""
どこで: `src/sacredgrid/core/settings.py`。シーン設定ツリーの解釈。
何を: camelCase キーの設定 mapping（YAML/JSON）を `SceneSettings` などの不変データへ変換する。
なぜ: 毎フレーム描画する側へは検証済みの値だけを渡し、壊れた値は既定値へ落として描画を止めないため。

不正値は例外にせず `logger.warning` を出して既定値を使う。
ファイル自体が読めない/YAML として壊れている場合は例外を送出する。
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from sacredgrid.core.animation import ANIMATION_MODES, ShapeAnimationConfig
from sacredgrid.core.fractal import FractalSpec, ShapeSpec, StackingSpec
from sacredgrid.core.line_factory import (
    LINE_STYLES,
    TAPER_TYPES,
    DashSpec,
    GlowSpec,
    LineFactorySpec,
    LineStyleSpec,
    OutlineSpec,
    TaperSpec,
)
from sacredgrid.core.shapes import SHAPE_TYPES
from sacredgrid.core.surface import RGB
from sacredgrid.core.waves import (
    MODULATION_TYPES,
    TRANSFORM_TYPES,
    WAVE_TYPES,
    CompoundComponent,
    ModulationSpec,
    ParametricParams,
    WaveSpec,
    WaveTransform,
)

logger = logging.getLogger(__name__)

DEFAULT_WAVE_TYPE = "sine"
DEFAULT_AMPLITUDE = 5.0
DEFAULT_FREQUENCY = 0.1
# フラクタルの再帰深さの上限。描画回数は child_count ** depth で増える。
MAX_FRACTAL_DEPTH = 8

_SCALAR_TYPES = tuple(t for t in WAVE_TYPES if t not in ("none", "compound"))


@dataclass(frozen=True, slots=True)
class AccentSpec:
    """primary の周囲へリング状に並べる accent 形状の設定。

    i 番目は角度 `i·2π/spawn_count`、時刻 `t + i·time_span/spawn_count` で描く。
    """

    show: bool = False
    shape: ShapeSpec = field(default_factory=lambda: ShapeSpec(type="circle", size=40.0))
    spawn_count: int = 6
    distance_x: float = 150.0
    distance_y: float = 150.0
    time_span: float = 3000.0


@dataclass(frozen=True, slots=True)
class SecondarySpec:
    """primary に重ねて描く 2 つ目の形状。位置は `shape.offset` でキャンバス中心からずらす。"""

    enabled: bool = False
    shape: ShapeSpec = field(default_factory=lambda: ShapeSpec(type="circle", size=60.0))


@dataclass(frozen=True, slots=True)
class SceneSettings:
    """1 シーン分の設定。"""

    primary: ShapeSpec = field(default_factory=ShapeSpec)
    secondary: SecondarySpec = field(default_factory=SecondarySpec)
    accent: AccentSpec = field(default_factory=AccentSpec)
    line_factory: LineFactorySpec = field(default_factory=LineFactorySpec)


# --- 値の取り出し（不正値は警告して既定値） ---------------------------------


def _mapping(value: Any, *, path: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return value
    logger.warning("%s は mapping である必要があるため無視する: got=%r", path, value)
    return {}


def _float(m: Mapping[str, Any], key: str, default: float, *, path: str) -> float:
    value = m.get(key)
    if value is None:
        return float(default)
    if isinstance(value, bool):
        logger.warning("%s.%s が数値でないため既定値 %r を使う: got=%r", path, key, default, value)
        return float(default)
    try:
        out = float(value)
    except (TypeError, ValueError):
        logger.warning("%s.%s が数値でないため既定値 %r を使う: got=%r", path, key, default, value)
        return float(default)
    if not math.isfinite(out):
        logger.warning("%s.%s が有限値でないため既定値 %r を使う: got=%r", path, key, default, value)
        return float(default)
    return out


def _int(m: Mapping[str, Any], key: str, default: int, *, path: str) -> int:
    return int(round(_float(m, key, float(default), path=path)))


def _bool(m: Mapping[str, Any], key: str, default: bool, *, path: str) -> bool:
    value = m.get(key)
    if value is None:
        return bool(default)
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    logger.warning("%s.%s が bool でないため既定値 %r を使う: got=%r", path, key, default, value)
    return bool(default)


def _choice(
    m: Mapping[str, Any],
    key: str,
    default: str,
    choices: tuple[str, ...],
    *,
    path: str,
) -> str:
    value = m.get(key)
    if value is None:
        return default
    s = str(value).strip()
    if s in choices:
        return s
    logger.warning(
        "%s.%s が未知の値のため既定値 %r を使う: got=%r（候補: %s）",
        path,
        key,
        default,
        value,
        ", ".join(choices),
    )
    return default


def parse_color(value: Any) -> RGB:
    """`#rrggbb` / `#rgb` / `[r, g, b]`（0..1）を RGB タプルへ変換する。

    Raises
    ------
    ValueError
        解釈できない場合。
    """
    if isinstance(value, str):
        s = value.strip().lstrip("#")
        if len(s) == 3:
            s = "".join(ch * 2 for ch in s)
        if len(s) != 6:
            raise ValueError(f"色は #rrggbb 形式である必要がある: got={value!r}")
        try:
            r, g, b = (int(s[i : i + 2], 16) for i in (0, 2, 4))
        except ValueError as exc:
            raise ValueError(f"色は #rrggbb 形式である必要がある: got={value!r}") from exc
        return (r / 255.0, g / 255.0, b / 255.0)

    try:
        seq = [float(v) for v in value]
    except TypeError as exc:
        raise ValueError(f"色は #rrggbb または [r, g, b] である必要がある: got={value!r}") from exc
    if len(seq) != 3:
        raise ValueError(f"色は [r, g, b] の 3 要素である必要がある: got={value!r}")
    return (
        max(0.0, min(1.0, seq[0])),
        max(0.0, min(1.0, seq[1])),
        max(0.0, min(1.0, seq[2])),
    )


def _color(m: Mapping[str, Any], key: str, default: RGB | None, *, path: str) -> RGB | None:
    value = m.get(key)
    if value is None:
        return default
    try:
        return parse_color(value)
    except ValueError:
        logger.warning("%s.%s が色として解釈できないため既定値を使う: got=%r", path, key, value)
        return default


def _float_tuple(
    m: Mapping[str, Any],
    key: str,
    default: tuple[float, ...],
    *,
    path: str,
) -> tuple[float, ...]:
    value = m.get(key)
    if value is None:
        return default
    if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
        logger.warning("%s.%s は数値配列である必要があるため既定値を使う: got=%r", path, key, value)
        return default
    try:
        out = tuple(float(v) for v in value)
    except (TypeError, ValueError):
        logger.warning("%s.%s は数値配列である必要があるため既定値を使う: got=%r", path, key, value)
        return default
    if not all(math.isfinite(v) for v in out):
        logger.warning("%s.%s に有限値でない要素があるため既定値を使う: got=%r", path, key, value)
        return default
    return out


# --- 各セクション ------------------------------------------------------------


def animation_from_mapping(value: Any, *, path: str = "animation") -> ShapeAnimationConfig:
    """`animation` セクションを `ShapeAnimationConfig` へ変換する。"""
    m = _mapping(value, path=path)
    d = ShapeAnimationConfig()
    return ShapeAnimationConfig(
        mode=_choice(m, "mode", d.mode, ANIMATION_MODES, path=path),
        reverse=_bool(m, "reverse", d.reverse, path=path),
        speed=_float(m, "speed", d.speed, path=path),
        intensity=_float(m, "intensity", d.intensity, path=path),
        fade_in=max(0.0, _float(m, "fadeIn", d.fade_in, path=path)),
        fade_out=max(0.0, _float(m, "fadeOut", d.fade_out, path=path)),
        variable_timing=_bool(m, "variableTiming", d.variable_timing, path=path),
        stagger_delay=max(0.0, _float(m, "staggerDelay", d.stagger_delay, path=path)),
    )


def fractal_from_mapping(value: Any, *, path: str = "fractal") -> FractalSpec:
    m = _mapping(value, path=path)
    d = FractalSpec()

    depth = _int(m, "depth", d.depth, path=path)
    if depth < 1:
        depth = 1
    elif depth > MAX_FRACTAL_DEPTH:
        logger.warning("%s.depth が上限 %d を超えるためクランプする: got=%d", path, MAX_FRACTAL_DEPTH, depth)
        depth = MAX_FRACTAL_DEPTH

    child_count = _int(m, "childCount", d.child_count, path=path)
    if child_count < 1:
        logger.warning("%s.childCount は 1 以上である必要があるため既定値を使う: got=%d", path, child_count)
        child_count = d.child_count

    return FractalSpec(
        depth=depth,
        scale=_float(m, "scale", d.scale, path=path),
        thickness_falloff=_float(m, "thicknessFalloff", d.thickness_falloff, path=path),
        child_count=child_count,
        sacred_positioning=_bool(m, "sacredPositioning", d.sacred_positioning, path=path),
        sacred_intensity=max(0.0, min(1.0, _float(m, "sacredIntensity", d.sacred_intensity, path=path))),
    )


def stacking_from_mapping(value: Any, *, path: str = "stacking") -> StackingSpec:
    m = _mapping(value, path=path)
    d = StackingSpec()
    return StackingSpec(
        enabled=_bool(m, "enabled", d.enabled, path=path),
        count=max(0, _int(m, "count", d.count, path=path)),
        time_offset=_float(m, "timeOffset", d.time_offset, path=path),
        interval=_float(m, "interval", d.interval, path=path),
    )


def shape_from_mapping(
    value: Any,
    *,
    path: str = "shape",
    default: ShapeSpec | None = None,
) -> ShapeSpec:
    """形状セクション（`shapes.primary` など）を `ShapeSpec` へ変換する。

    `animation` キーが無い場合はアニメーションなし（静止姿勢）になる。
    """
    m = _mapping(value, path=path)
    d = default if default is not None else ShapeSpec()
    position = _mapping(m.get("position"), path=f"{path}.position")

    animation: ShapeAnimationConfig | None = None
    if m.get("animation") is not None:
        animation = animation_from_mapping(m.get("animation"), path=f"{path}.animation")

    color = _color(m, "color", d.color, path=path)
    assert color is not None

    return ShapeSpec(
        type=_choice(m, "type", d.type, SHAPE_TYPES, path=path),
        size=max(0.0, _float(m, "size", d.size, path=path)),
        opacity=max(0.0, min(1.0, _float(m, "opacity", d.opacity, path=path))),
        thickness=max(0.0, _float(m, "thickness", d.thickness, path=path)),
        vertices=max(2, _int(m, "vertices", d.vertices, path=path)),
        rotation=_float(m, "rotation", d.rotation, path=path),
        offset=(
            _float(position, "offsetX", d.offset[0], path=f"{path}.position"),
            _float(position, "offsetY", d.offset[1], path=f"{path}.position"),
        ),
        color=color,
        use_line_factory=_bool(m, "useLineFactory", d.use_line_factory, path=path),
        animation=animation,
        fractal=fractal_from_mapping(m.get("fractal"), path=f"{path}.fractal"),
        stacking=stacking_from_mapping(m.get("stacking"), path=f"{path}.stacking"),
    )


def _components(value: Any, *, path: str) -> tuple[CompoundComponent, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, "__iter__"):
        logger.warning("%s は配列である必要があるため無視する: got=%r", path, value)
        return ()
    out: list[CompoundComponent] = []
    for i, item in enumerate(value):
        p = f"{path}[{i}]"
        m = _mapping(item, path=p)
        if not m:
            continue
        out.append(
            CompoundComponent(
                type=_choice(m, "type", "sine", _SCALAR_TYPES, path=p),
                frequency=_float(m, "frequency", 1.0, path=p),
                phase=_float(m, "phase", 0.0, path=p),
                weight=_float(m, "weight", 1.0, path=p),
            )
        )
    return tuple(out)


def _transforms(value: Any, *, path: str) -> tuple[WaveTransform, ...]:
    if value is None:
        return ()
    items = [value] if isinstance(value, (str, Mapping)) else value
    if not hasattr(items, "__iter__"):
        logger.warning("%s は配列である必要があるため無視する: got=%r", path, value)
        return ()
    out: list[WaveTransform] = []
    for i, item in enumerate(items):
        p = f"{path}[{i}]"
        if isinstance(item, str):
            item = {"type": item}
        m = _mapping(item, path=p)
        kind = m.get("type")
        if kind is None or str(kind) not in TRANSFORM_TYPES:
            logger.warning("%s.type が未知の値のため無視する: got=%r", p, kind)
            continue
        out.append(
            WaveTransform(
                type=str(kind),
                exponent=_float(m, "exponent", 2.0, path=p),
                threshold=_float(m, "threshold", 0.8, path=p),
            )
        )
    return tuple(out)


def wave_from_mapping(
    value: Any,
    *,
    path: str = "lineFactory.sineWave",
    bidirectional: bool = False,
) -> WaveSpec:
    """`lineFactory.sineWave` セクションを `WaveSpec` へ変換する。

    type / amplitude / frequency が欠けている場合は sine / 5.0 / 0.1 を使う。
    """
    m = _mapping(value, path=path)
    params = _mapping(m.get("params"), path=f"{path}.params")
    dp = ParametricParams()
    d = WaveSpec()
    return WaveSpec(
        type=_choice(m, "type", DEFAULT_WAVE_TYPE, WAVE_TYPES, path=path),
        amplitude=_float(m, "amplitude", DEFAULT_AMPLITUDE, path=path),
        frequency=_float(m, "frequency", DEFAULT_FREQUENCY, path=path),
        phase=_float(m, "phase", d.phase, path=path),
        animated=_bool(m, "animated", d.animated, path=path),
        speed=_float(m, "speed", d.speed, path=path),
        bidirectional=bidirectional,
        pulse_width=max(0.0, min(1.0, _float(m, "pulseWidth", d.pulse_width, path=path))),
        components=_components(m.get("components"), path=f"{path}.components"),
        parametric=ParametricParams(
            a=_float(params, "a", dp.a, path=f"{path}.params"),
            b=_float(params, "b", dp.b, path=f"{path}.params"),
            delta=_float(params, "delta", dp.delta, path=f"{path}.params"),
            n=_float(params, "n", dp.n, path=f"{path}.params"),
            d=_float(params, "d", dp.d, path=f"{path}.params"),
            scale=_float(params, "scale", dp.scale, path=f"{path}.params"),
        ),
        transforms=_transforms(m.get("transforms"), path=f"{path}.transforms"),
    )


def modulation_from_mapping(value: Any, *, path: str = "lineFactory.modulation") -> ModulationSpec:
    m = _mapping(value, path=path)
    d = ModulationSpec()
    depth = m.get("depth")
    return ModulationSpec(
        type=_choice(m, "type", d.type, MODULATION_TYPES, path=path),
        frequency=_float(m, "frequency", d.frequency, path=path),
        depth=None if depth is None else _float(m, "depth", 0.5, path=path),
        harmonics=_float_tuple(m, "harmonics", d.harmonics, path=path),
    )


def line_factory_from_mapping(value: Any, *, path: str = "lineFactory") -> LineFactorySpec:
    """`lineFactory` セクションを `LineFactorySpec` へ変換する。

    `sineWave` セクション自体が無い場合は波形なし（type="none"）とする。
    """
    m = _mapping(value, path=path)
    taper = _mapping(m.get("taper"), path=f"{path}.taper")
    dash = _mapping(m.get("dash"), path=f"{path}.dash")
    glow = _mapping(m.get("glow"), path=f"{path}.glow")
    outline = _mapping(m.get("outline"), path=f"{path}.outline")

    dt, dd, dg, do = TaperSpec(), DashSpec(), GlowSpec(), OutlineSpec()
    outline_color = _color(outline, "color", do.color, path=f"{path}.outline")
    assert outline_color is not None

    dash_pattern = _float_tuple(dash, "pattern", dd.pattern, path=f"{path}.dash")
    if any(v < 0.0 for v in dash_pattern) or not any(v > 0.0 for v in dash_pattern):
        logger.warning("%s.dash.pattern が不正なため既定値を使う: got=%r", path, dash_pattern)
        dash_pattern = dd.pattern

    style = LineStyleSpec(
        style=_choice(m, "style", "solid", LINE_STYLES, path=path),
        taper=TaperSpec(
            type=_choice(taper, "type", dt.type, TAPER_TYPES, path=f"{path}.taper"),
            start=max(0.0, _float(taper, "startWidth", dt.start, path=f"{path}.taper")),
            end=max(0.0, _float(taper, "endWidth", dt.end, path=f"{path}.taper")),
        ),
        dash=DashSpec(
            pattern=dash_pattern,
            offset=_float(dash, "offset", dd.offset, path=f"{path}.dash"),
        ),
        glow=GlowSpec(
            intensity=max(0.0, _float(glow, "intensity", dg.intensity, path=f"{path}.glow")),
            color=_color(glow, "color", dg.color, path=f"{path}.glow"),
        ),
        outline=OutlineSpec(
            enabled=_bool(outline, "enabled", do.enabled, path=f"{path}.outline"),
            color=outline_color,
            width=max(0.0, _float(outline, "width", do.width, path=f"{path}.outline")),
        ),
        loop_line=_bool(m, "loopLine", True, path=path),
    )

    bidirectional = _bool(m, "bidirectionalWaves", False, path=path)
    if m.get("sineWave") is None:
        wave = WaveSpec(type="none", bidirectional=bidirectional)
    else:
        wave = wave_from_mapping(m.get("sineWave"), path=f"{path}.sineWave", bidirectional=bidirectional)

    return LineFactorySpec(
        style=style,
        wave=wave,
        modulation=modulation_from_mapping(m.get("modulation"), path=f"{path}.modulation"),
    )


def secondary_from_mapping(value: Any, *, path: str = "shapes.secondary") -> SecondarySpec:
    m = _mapping(value, path=path)
    d = SecondarySpec()
    return SecondarySpec(
        enabled=_bool(m, "enabled", d.enabled, path=path),
        shape=shape_from_mapping(m, path=path, default=d.shape),
    )


def accent_from_mapping(value: Any, *, path: str = "shapes.accent") -> AccentSpec:
    m = _mapping(value, path=path)
    d = AccentSpec()
    position = _mapping(m.get("position"), path=f"{path}.position")
    return AccentSpec(
        show=_bool(m, "show", d.show, path=path),
        shape=shape_from_mapping(m, path=path, default=d.shape),
        spawn_count=max(0, _int(position, "spawnCount", d.spawn_count, path=f"{path}.position")),
        distance_x=_float(position, "distanceX", d.distance_x, path=f"{path}.position"),
        distance_y=_float(position, "distanceY", d.distance_y, path=f"{path}.position"),
        time_span=_float(position, "timeSpan", d.time_span, path=f"{path}.position"),
    )


def scene_from_mapping(value: Any) -> SceneSettings:
    """設定ツリー全体を `SceneSettings` へ変換する。"""
    m = _mapping(value, path="settings")
    shapes = _mapping(m.get("shapes"), path="shapes")
    return SceneSettings(
        primary=shape_from_mapping(shapes.get("primary"), path="shapes.primary"),
        secondary=secondary_from_mapping(shapes.get("secondary"), path="shapes.secondary"),
        accent=accent_from_mapping(shapes.get("accent"), path="shapes.accent"),
        line_factory=line_factory_from_mapping(m.get("lineFactory"), path="lineFactory"),
    )


def load_scene_settings(path: str | Path) -> SceneSettings:
    """YAML（または JSON）の設定ファイルを読み、`SceneSettings` を返す。

    Raises
    ------
    FileNotFoundError
        ファイルが存在しない場合。
    RuntimeError
        YAML として読めない、またはトップレベルが mapping でない場合。
    """
    p = Path(str(path)).expanduser()
    text = p.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"設定ファイルの読み込みに失敗しました: source={p}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RuntimeError(f"設定ファイルは mapping である必要があります: source={p}")
    return scene_from_mapping(data)


__all__ = [
    "AccentSpec",
    "DEFAULT_AMPLITUDE",
    "DEFAULT_FREQUENCY",
    "DEFAULT_WAVE_TYPE",
    "MAX_FRACTAL_DEPTH",
    "SceneSettings",
    "SecondarySpec",
    "accent_from_mapping",
    "animation_from_mapping",
    "fractal_from_mapping",
    "line_factory_from_mapping",
    "load_scene_settings",
    "modulation_from_mapping",
    "parse_color",
    "scene_from_mapping",
    "secondary_from_mapping",
    "shape_from_mapping",
    "stacking_from_mapping",
    "wave_from_mapping",
]
