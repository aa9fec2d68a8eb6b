# どこで: `src/sacredgrid/core/runtime_config.py`。
# 何を: config.yaml による実行時設定（探索・ロード・キャッシュ）を提供する。
# なぜ: 描画の数値パラメータやログレベルを、コードを変えずにユーザーが調整できるようにするため。

"""実行時設定（`config.yaml`）の探索・ロード・キャッシュを担当する。

このモジュールは、以下を提供する:

- `config.yaml` を「同梱デフォルト → ユーザー設定（任意）」の順に適用して `RuntimeConfig` を構築
- 探索パス（CWD / HOME）と、明示指定（`set_config_path()`）の両方に対応
- 1 回ロードした結果をプロセス内でキャッシュ（設定を切り替える場合は `set_config_path()` で破棄）

実装メモ
--------
- ユーザー設定の適用は `dict.update()`（トップレベルの浅い上書き）で行う。
  ネストした mapping は「部分的にマージ」されず「丸ごと置換」される。
- シーン設定（形状/アニメーション/line factory）はここでは扱わない（`settings.py` を参照）。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from sacredgrid.core.line_factory import RenderOptions

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """sacredgrid の実行時設定。

    Attributes
    ----------
    config_path:
        実際に採用されたユーザー設定ファイルのパス。ユーザー設定が無い場合は None。
    min_stroke_width:
        描画時に保証する最小線幅。
    sample_spacing:
        line factory のリサンプリング間隔。
    min_samples:
        line factory のリサンプリング最小区間数。
    cycle_length:
        frequency 1 あたりの 1 周期の長さ。
    taper_segments:
        テーパー描画の分割数。
    canvas_size:
        CLI の `frame` が中心座標の算出に使うキャンバスサイズ (w, h)。
    log_level:
        CLI が `logging.basicConfig` に渡すレベル名。
    """

    config_path: Path | None
    min_stroke_width: float
    sample_spacing: float
    min_samples: int
    cycle_length: float
    taper_segments: int
    canvas_size: tuple[float, float]
    log_level: str


_EXPLICIT_CONFIG_PATH: Path | None = None
_CONFIG_CACHE: RuntimeConfig | None = None


def set_config_path(path: str | Path | None) -> None:
    """以降の設定探索で使う明示 config パスを設定する。

    Parameters
    ----------
    path:
        `config.yaml` のパス。None の場合は明示指定を解除する。

    Notes
    -----
    設定が変わるため、`runtime_config()` のキャッシュを破棄する。
    """

    global _EXPLICIT_CONFIG_PATH, _CONFIG_CACHE
    _EXPLICIT_CONFIG_PATH = None if path is None else Path(str(path)).expanduser()
    _CONFIG_CACHE = None


def _default_config_candidates() -> tuple[Path, ...]:
    """既定の `config.yaml` 探索候補を返す（先勝ち）。"""

    return (
        Path.cwd() / ".sacredgrid" / "config.yaml",
        Path.home() / ".config" / "sacredgrid" / "config.yaml",
    )


def _as_mapping(value: Any, *, key: str) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    raise RuntimeError(f"{key} は mapping である必要があります: got={value!r}")


def _as_float(value: Any, *, key: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise RuntimeError(f"{key} は数値である必要があります: got={value!r}")
    try:
        return float(value)
    except Exception as exc:
        raise RuntimeError(f"{key} は数値である必要があります: got={value!r}") from exc


def _as_int(value: Any, *, key: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}")
    try:
        return int(value)
    except Exception as exc:
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}") from exc


def _as_float_pair(value: Any, *, key: str) -> tuple[float, float] | None:
    if value is None:
        return None
    try:
        seq = list(value)
    except Exception as exc:
        raise RuntimeError(f"{key} は [w, h] の配列である必要があります: got={value!r}") from exc
    if len(seq) != 2:
        raise RuntimeError(f"{key} は [w, h] の配列である必要があります: got={value!r}")
    try:
        return (float(seq[0]), float(seq[1]))
    except Exception as exc:
        raise RuntimeError(f"{key} は [w, h] の数値配列である必要があります: got={value!r}") from exc


def _require(value: Any, *, key: str) -> Any:
    if value is None:
        raise RuntimeError(f"{key} が未設定です（同梱 default_config.yaml を確認してください）")
    return value


def _load_yaml_text(text: str, *, source: str) -> dict[str, Any]:
    """YAML テキストを読み、トップレベル mapping を dict として返す。"""

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"config.yaml の読み込みに失敗しました: source={source}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuntimeError(f"config.yaml は mapping である必要があります: source={source}")
    return dict(data)


def _load_yaml_config(path: Path) -> dict[str, Any]:
    return _load_yaml_text(path.read_text(encoding="utf-8"), source=str(path))


def _load_packaged_default_config() -> dict[str, Any]:
    """同梱 `sacredgrid/resource/default_config.yaml` をロードする。"""

    blob = (
        resources.files("sacredgrid")
        .joinpath("resource", "default_config.yaml")
        .read_text(encoding="utf-8")
    )
    return _load_yaml_text(blob, source="sacredgrid/resource/default_config.yaml")


def runtime_config() -> RuntimeConfig:
    """実行時設定をロードして返す（キャッシュ）。

    読み込み元の優先順位（後勝ち）:
    1) 同梱 `sacredgrid/resource/default_config.yaml`
    2) 探索で見つかった `config.yaml`（任意）
    3) `set_config_path()` で明示指定された `config.yaml`（任意）
    """

    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None:
        return _CONFIG_CACHE

    explicit_path = _EXPLICIT_CONFIG_PATH
    if explicit_path is not None and not explicit_path.is_file():
        raise FileNotFoundError(f"config.yaml が見つかりません: {explicit_path}")

    discovered_path: Path | None = None
    for p in _default_config_candidates():
        if p.is_file():
            discovered_path = p
            break

    payload = _load_packaged_default_config()
    if discovered_path is not None:
        payload.update(_load_yaml_config(discovered_path))
    if explicit_path is not None:
        payload.update(_load_yaml_config(explicit_path))

    version = _as_int(_require(payload.get("version"), key="version"), key="version")
    if version != 1:
        raise RuntimeError(f"未対応の config.yaml version です: got={version}")

    render = _as_mapping(payload.get("render"), key="render")
    min_stroke_width = _as_float(
        _require(render.get("min_stroke_width"), key="render.min_stroke_width"),
        key="render.min_stroke_width",
    )
    sample_spacing = _as_float(
        _require(render.get("sample_spacing"), key="render.sample_spacing"),
        key="render.sample_spacing",
    )
    min_samples = _as_int(
        _require(render.get("min_samples"), key="render.min_samples"),
        key="render.min_samples",
    )
    cycle_length = _as_float(
        _require(render.get("cycle_length"), key="render.cycle_length"),
        key="render.cycle_length",
    )
    taper_segments = _as_int(
        _require(render.get("taper_segments"), key="render.taper_segments"),
        key="render.taper_segments",
    )
    assert min_stroke_width is not None and sample_spacing is not None
    assert min_samples is not None and cycle_length is not None and taper_segments is not None

    if min_stroke_width < 0.0:
        raise ValueError(f"render.min_stroke_width は 0 以上である必要があります: got={min_stroke_width}")
    if sample_spacing <= 0.0:
        raise ValueError(f"render.sample_spacing は正の値である必要があります: got={sample_spacing}")
    if min_samples < 1:
        raise ValueError(f"render.min_samples は 1 以上である必要があります: got={min_samples}")
    if cycle_length <= 0.0:
        raise ValueError(f"render.cycle_length は正の値である必要があります: got={cycle_length}")
    if taper_segments < 1:
        raise ValueError(f"render.taper_segments は 1 以上である必要があります: got={taper_segments}")

    frame = _as_mapping(payload.get("frame"), key="frame")
    canvas_size = _as_float_pair(
        _require(frame.get("canvas_size"), key="frame.canvas_size"), key="frame.canvas_size"
    )
    assert canvas_size is not None
    if canvas_size[0] <= 0.0 or canvas_size[1] <= 0.0:
        raise ValueError(f"frame.canvas_size は正の値である必要があります: got={canvas_size}")

    logging_cfg = _as_mapping(payload.get("logging"), key="logging")
    log_level = str(logging_cfg.get("level") or "WARNING").strip().upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"logging.level は {_LOG_LEVELS} のいずれかである必要があります: got={log_level!r}")

    cfg = RuntimeConfig(
        config_path=explicit_path or discovered_path,
        min_stroke_width=float(min_stroke_width),
        sample_spacing=float(sample_spacing),
        min_samples=int(min_samples),
        cycle_length=float(cycle_length),
        taper_segments=int(taper_segments),
        canvas_size=canvas_size,
        log_level=log_level,
    )
    _CONFIG_CACHE = cfg
    return cfg


def render_options_from_runtime_config(cfg: RuntimeConfig | None = None) -> RenderOptions:
    """`RuntimeConfig` から line factory 用の `RenderOptions` を作る。"""

    c = runtime_config() if cfg is None else cfg
    return RenderOptions(
        min_stroke_width=c.min_stroke_width,
        sample_spacing=c.sample_spacing,
        min_samples=c.min_samples,
        cycle_length=c.cycle_length,
        taper_segments=c.taper_segments,
    )


def configure_logging(cfg: RuntimeConfig | None = None) -> None:
    """`logging.level` に従ってルートロガーを設定する。"""

    c = runtime_config() if cfg is None else cfg
    logging.basicConfig(level=getattr(logging, c.log_level), format="%(levelname)s %(name)s: %(message)s")


__all__ = [
    "RuntimeConfig",
    "configure_logging",
    "render_options_from_runtime_config",
    "runtime_config",
    "set_config_path",
]
