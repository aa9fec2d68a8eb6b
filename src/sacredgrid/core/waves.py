"""
どこで: `src/sacredgrid/core/waves.py`。
何を: 角度（または進行度）から波形の変位を求める。スカラー波形・パラメトリック波形・合成波形・変調・後処理を扱う。
なぜ: line_factory から「パス上の 1 点をどれだけずらすか」を純関数として切り出し、単体で検証できるようにするため。
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Literal

import numpy as np

WaveType = Literal[
    "none",
    "sine",
    "cosine",
    "square",
    "triangle",
    "sawtooth",
    "pulse",
    "noise",
    "lissajous",
    "figure8",
    "rose",
    "butterfly",
    "compound",
]

WAVE_TYPES: tuple[str, ...] = (
    "none",
    "sine",
    "cosine",
    "square",
    "triangle",
    "sawtooth",
    "pulse",
    "noise",
    "lissajous",
    "figure8",
    "rose",
    "butterfly",
    "compound",
)
SCALAR_WAVE_TYPES: tuple[str, ...] = (
    "sine",
    "cosine",
    "square",
    "triangle",
    "sawtooth",
    "pulse",
    "noise",
)
PARAMETRIC_WAVE_TYPES: tuple[str, ...] = ("lissajous", "figure8", "rose", "butterfly")
MODULATION_TYPES: tuple[str, ...] = ("none", "frequency", "amplitude", "phase", "harmonic")
TRANSFORM_TYPES: tuple[str, ...] = ("invert", "exponential", "clip", "fold")

_TWO_PI = 2.0 * math.pi


@dataclass(frozen=True, slots=True)
class CompoundComponent:
    """合成波形（compound）の 1 成分。"""

    type: str = "sine"
    frequency: float = 1.0
    phase: float = 0.0
    weight: float = 1.0


@dataclass(frozen=True, slots=True)
class ParametricParams:
    """パラメトリック波形の形状パラメータ。

    Parameters
    ----------
    a, b, delta : float
        lissajous の周波数比と位相差 [rad]。
    n, d : float
        rose の花弁パラメータ（k = n / d）。
    scale : float
        figure8 / butterfly の横方向スケール。
    """

    a: float = 3.0
    b: float = 2.0
    delta: float = math.pi / 4.0
    n: float = 3.0
    d: float = 1.0
    scale: float = 1.0


@dataclass(frozen=True, slots=True)
class WaveTransform:
    """スカラー出力に適用する後処理。"""

    type: str
    exponent: float = 2.0
    threshold: float = 0.8


@dataclass(frozen=True, slots=True)
class WaveSpec:
    """波形の設定。

    Parameters
    ----------
    type : str
        `WAVE_TYPES` のいずれか。
    amplitude : float
        振幅（座標単位）。
    frequency : float
        空間周波数。パス長 30 あたりの周期数として使う。
    phase : float
        初期位相 [rad]。
    animated : bool
        True の場合、時刻に応じて位相を進める。
    speed : float
        位相の進み [rad/s]。
    bidirectional : bool
        True の場合、順方向/逆方向の位相を `sin(p·π)` でブレンドする（開路・閉路とも）。
    pulse_width : float
        pulse 波形のデューティ比（0..1）。
    components : tuple[CompoundComponent, ...]
        compound 用の成分列。空なら sine として扱う。
    parametric : ParametricParams
        パラメトリック波形のパラメータ。
    transforms : tuple[WaveTransform, ...]
        スカラー出力に順に適用する後処理。
    """

    type: str = "sine"
    amplitude: float = 5.0
    frequency: float = 0.1
    phase: float = 0.0
    animated: bool = False
    speed: float = 0.2
    bidirectional: bool = False
    pulse_width: float = 0.5
    components: tuple[CompoundComponent, ...] = ()
    parametric: ParametricParams = field(default_factory=ParametricParams)
    transforms: tuple[WaveTransform, ...] = ()


@dataclass(frozen=True, slots=True)
class ModulationSpec:
    """変調の設定。

    Notes
    -----
    depth を省略した場合、phase 変調は π/2、それ以外は 0.5 を使う。
    """

    type: str = "none"
    frequency: float = 0.1
    depth: float | None = None
    harmonics: tuple[float, ...] = (1.0, 0.5, 0.25)

    def resolved_depth(self) -> float:
        """省略時の既定値を解決した depth を返す。"""
        if self.depth is not None:
            return float(self.depth)
        if self.type == "phase":
            return math.pi / 2.0
        return 0.5


def is_parametric(wave: WaveSpec) -> bool:
    """2D オフセットを返す波形なら True を返す。"""
    return wave.type in PARAMETRIC_WAVE_TYPES


def basic_wave(
    wave_type: str,
    angle: np.ndarray,
    amplitude: float,
    *,
    pulse_width: float = 0.5,
) -> np.ndarray:
    """スカラー波形を評価する。未知の種別は sine として扱う。"""
    a = np.asarray(angle, dtype=np.float64)
    amp = float(amplitude)

    if wave_type == "cosine":
        return np.cos(a) * amp
    if wave_type == "square":
        return np.where(np.sin(a) > 0.0, 1.0, -1.0) * amp
    if wave_type == "triangle":
        return (np.arcsin(np.clip(np.sin(a), -1.0, 1.0)) * 2.0 / math.pi) * amp
    if wave_type == "sawtooth":
        norm = np.mod(a, _TWO_PI) / _TWO_PI
        return (norm * 2.0 - 1.0) * amp
    if wave_type == "pulse":
        norm = np.mod(a, _TWO_PI) / _TWO_PI
        return np.where(norm < float(pulse_width), 1.0, -1.0) * amp
    if wave_type == "noise":
        return np.sin(a * 100.0 + np.cos(a * 50.0)) * amp
    return np.sin(a) * amp


def parametric_wave(
    wave_type: str,
    angle: np.ndarray,
    amplitude: float,
    params: ParametricParams,
) -> np.ndarray:
    """パラメトリック波形を評価し、shape (N, 2) のオフセットを返す。

    Parameters
    ----------
    wave_type : str
        `PARAMETRIC_WAVE_TYPES` のいずれか。
    angle : np.ndarray
        評価角 [rad]。
    amplitude : float
        振幅。
    params : ParametricParams
        曲線パラメータ。

    Returns
    -------
    np.ndarray
        shape (N, 2) の `(x, y)`。x は接線方向、y は法線方向として使う。
    """
    a = np.asarray(angle, dtype=np.float64).reshape(-1)
    amp = float(amplitude)

    if wave_type == "lissajous":
        x = np.sin(float(params.a) * a + float(params.delta)) * amp
        y = np.sin(float(params.b) * a) * amp
    elif wave_type == "figure8":
        x = np.sin(a) * amp * float(params.scale)
        y = np.sin(a * 2.0) * amp * 0.5
    elif wave_type == "rose":
        d = float(params.d)
        k = float(params.n) / d if d != 0.0 else float(params.n)
        r = amp * np.cos(k * a)
        x = r * np.cos(a)
        y = r * np.sin(a)
    elif wave_type == "butterfly":
        r = amp * np.exp(np.sin(a)) - 2.0 * np.cos(4.0 * a) + np.power(np.sin(a / 12.0), 5)
        x = np.sin(a) * r * float(params.scale)
        y = np.cos(a) * r * float(params.scale)
    else:
        raise ValueError(f"未知のパラメトリック波形: {wave_type!r}")

    return np.stack([x, y], axis=1)


def compound_wave(
    angle: np.ndarray,
    amplitude: float,
    components: tuple[CompoundComponent, ...],
) -> np.ndarray:
    """成分ごとの波形を重み付きで合算し、総重みで正規化する。"""
    a = np.asarray(angle, dtype=np.float64)
    if not components:
        return np.sin(a) * float(amplitude)

    out = np.zeros_like(a)
    total_weight = 0.0
    for comp in components:
        weight = float(comp.weight)
        comp_angle = a * float(comp.frequency) + float(comp.phase)
        out = out + basic_wave(str(comp.type), comp_angle, float(amplitude) * weight)
        total_weight += weight
    if total_weight > 0.0:
        out = out / total_weight
    return out


def apply_transform(values: np.ndarray, amplitude: float, transform: WaveTransform) -> np.ndarray:
    """スカラー波形値に後処理を 1 つ適用する。

    amplitude が 0 の場合、正規化を伴う変換（exponential/fold）は恒等変換になる。
    """
    v = np.asarray(values, dtype=np.float64)
    amp = float(amplitude)
    kind = str(transform.type)

    if kind == "invert":
        return -v
    if kind == "exponential":
        if amp == 0.0:
            return v
        norm = v / amp
        return np.sign(norm) * np.power(np.abs(norm), float(transform.exponent)) * amp
    if kind == "clip":
        limit = abs(amp * float(transform.threshold))
        return np.clip(v, -limit, limit)
    if kind == "fold":
        if amp == 0.0:
            return v
        norm = v / amp
        out = np.where(norm > 1.0, amp * (2.0 - norm), v)
        return np.where(norm < -1.0, amp * (-2.0 - norm), out)
    raise ValueError(f"未知の波形後処理: {kind!r}")


def animated_phase(wave: WaveSpec, t: float) -> float:
    """時刻 t [ms] における位相オフセット [rad] を返す。"""
    phase = float(wave.phase)
    if wave.animated:
        phase += float(t) * 0.001 * float(wave.speed)
    return phase


def seam_turns(
    progress: np.ndarray | float,
    cycles: float,
    bidirectional: bool,
) -> np.ndarray:
    """進行度から搬送波の位相を「周回数（turns）」単位で返す。

    Parameters
    ----------
    progress : np.ndarray or float
        パス上の進行度（0..1）。
    cycles : float
        パス全体の周期数（整数）。
    bidirectional : bool
        True の場合、順方向 `p·cycles` と逆方向 `(1-p)·cycles + 1/2` を
        重み `sin(p·π)` でブレンドする。

    Returns
    -------
    np.ndarray
        [0, 1) に畳んだ位相。

    Notes
    -----
    重みは `sin(π·min(p, 1-p))` で評価し、p=1 で厳密に 0 になるようにする。
    cycles が整数なら p=0 と p=1 の位相はビット単位で一致する。
    """
    p = np.asarray(progress, dtype=np.float64)
    c = float(cycles)
    forward = p * c
    if not bidirectional:
        return np.mod(forward, 1.0)

    reverse = (1.0 - p) * c + 0.5
    blend = np.sin(math.pi * np.minimum(p, 1.0 - p))
    turns = forward * blend + reverse * (1.0 - blend)
    return np.mod(turns, 1.0)


def evaluate(
    angle: np.ndarray | float,
    wave: WaveSpec,
    modulation: ModulationSpec | None = None,
    t: float = 0.0,
) -> np.ndarray:
    """変調込みで波形を評価する。

    Parameters
    ----------
    angle : np.ndarray or float
        評価角 [rad]。
    wave : WaveSpec
        波形の設定。
    modulation : ModulationSpec or None
        変調の設定。None は変調なし。
    t : float
        時刻 [ms]。変調は秒に換算して使う。

    Returns
    -------
    np.ndarray
        スカラー波形は shape (N,)、パラメトリック波形は shape (N, 2)。
        harmonic 変調は常に shape (N,) を返す。
    """
    a = np.asarray(angle, dtype=np.float64).reshape(-1)
    amplitude = float(wave.amplitude)
    wave_type = str(wave.type)

    if wave_type == "none":
        return np.zeros_like(a)

    mod = modulation if modulation is not None else ModulationSpec()
    ts = float(t) * 0.001
    mod_type = str(mod.type)

    if mod_type in ("frequency", "phase"):
        a = a + math.sin(ts * float(mod.frequency)) * mod.resolved_depth()
    elif mod_type == "amplitude":
        amplitude = amplitude * (1.0 + math.sin(ts * float(mod.frequency)) * mod.resolved_depth())
    elif mod_type == "harmonic":
        harmonics = tuple(float(h) for h in mod.harmonics) or (1.0,)
        out = np.sin(a) * amplitude * harmonics[0]
        for i, weight in enumerate(harmonics[1:], start=1):
            out = out + np.sin(a * float(i + 1) + ts * 0.1 * i) * amplitude * weight
        return _apply_transforms(out, amplitude, wave.transforms)

    if is_parametric(wave):
        return parametric_wave(wave_type, a, amplitude, wave.parametric)

    if wave_type == "compound":
        out = compound_wave(a, amplitude, wave.components)
    else:
        out = basic_wave(wave_type, a, amplitude, pulse_width=float(wave.pulse_width))
    return _apply_transforms(out, amplitude, wave.transforms)


def _apply_transforms(
    values: np.ndarray,
    amplitude: float,
    transforms: tuple[WaveTransform, ...],
) -> np.ndarray:
    out = values
    for tr in transforms:
        out = apply_transform(out, amplitude, tr)
    return out


def sample(
    progress: np.ndarray | float,
    wave: WaveSpec,
    modulation: ModulationSpec | None = None,
    t: float = 0.0,
    *,
    cycles: float = 1.0,
) -> float | tuple[float, float] | np.ndarray:
    """進行度から波形の変位を返す。

    Parameters
    ----------
    progress : np.ndarray or float
        パス上の進行度（0..1）。
    wave : WaveSpec
        波形の設定。
    modulation : ModulationSpec or None
        変調の設定。
    t : float
        時刻 [ms]。
    cycles : float, default 1.0
        パス全体の周期数。

    Returns
    -------
    float or tuple[float, float] or np.ndarray
        progress がスカラーなら float（パラメトリック波形は `(x, y)`）、
        配列なら `evaluate()` と同じ形の配列。
    """
    scalar_input = np.ndim(progress) == 0
    turns = seam_turns(progress, cycles, bool(wave.bidirectional))
    angle = turns * _TWO_PI + animated_phase(wave, t)
    out = evaluate(angle, wave, modulation, t)

    if not scalar_input:
        return out
    if out.ndim == 2:
        return float(out[0, 0]), float(out[0, 1])
    return float(out[0])


__all__ = [
    "CompoundComponent",
    "MODULATION_TYPES",
    "ModulationSpec",
    "PARAMETRIC_WAVE_TYPES",
    "ParametricParams",
    "SCALAR_WAVE_TYPES",
    "TRANSFORM_TYPES",
    "WAVE_TYPES",
    "WaveSpec",
    "WaveTransform",
    "WaveType",
    "animated_phase",
    "apply_transform",
    "basic_wave",
    "compound_wave",
    "evaluate",
    "is_parametric",
    "parametric_wave",
    "sample",
    "seam_turns",
]
