"""core.waves の波形評価・変調・後処理をテスト。"""

from __future__ import annotations

import math

import numpy as np
import pytest

from sacredgrid.core.waves import (
    PARAMETRIC_WAVE_TYPES,
    WAVE_TYPES,
    CompoundComponent,
    ModulationSpec,
    ParametricParams,
    WaveSpec,
    WaveTransform,
    apply_transform,
    basic_wave,
    compound_wave,
    evaluate,
    parametric_wave,
    sample,
    seam_turns,
)


def test_basic_wave_closed_forms() -> None:
    a = np.asarray([0.25 * math.pi, 0.5 * math.pi, 1.5 * math.pi])
    np.testing.assert_allclose(basic_wave("sine", a, 2.0), 2.0 * np.sin(a))
    np.testing.assert_allclose(basic_wave("cosine", a, 2.0), 2.0 * np.cos(a), atol=1e-12)
    np.testing.assert_array_equal(basic_wave("square", a, 2.0), [2.0, 2.0, -2.0])
    np.testing.assert_allclose(basic_wave("triangle", a, 2.0), [1.0, 2.0, -2.0])


def test_sawtooth_and_pulse_use_normalized_angle() -> None:
    a = np.asarray([0.0, math.pi, 1.5 * math.pi])
    np.testing.assert_allclose(basic_wave("sawtooth", a, 1.0), [-1.0, 0.0, 0.5])
    np.testing.assert_array_equal(basic_wave("pulse", a, 1.0, pulse_width=0.6), [1.0, 1.0, -1.0])
    np.testing.assert_array_equal(basic_wave("pulse", a, 1.0, pulse_width=0.25), [1.0, -1.0, -1.0])


def test_unknown_scalar_type_falls_back_to_sine() -> None:
    a = np.linspace(0.0, 6.0, 7)
    np.testing.assert_allclose(basic_wave("mystery", a, 3.0), 3.0 * np.sin(a))


def test_noise_is_deterministic() -> None:
    a = np.linspace(0.0, 10.0, 50)
    np.testing.assert_array_equal(basic_wave("noise", a, 1.0), basic_wave("noise", a, 1.0))
    np.testing.assert_allclose(basic_wave("noise", a, 1.0), np.sin(a * 100.0 + np.cos(a * 50.0)))


def test_compound_wave_normalizes_by_total_weight() -> None:
    a = np.linspace(0.0, 2.0 * math.pi, 9)
    comps = (
        CompoundComponent(type="sine", weight=1.0),
        CompoundComponent(type="sine", weight=3.0),
    )
    np.testing.assert_allclose(compound_wave(a, 4.0, comps), 4.0 * np.sin(a))

    mixed = (
        CompoundComponent(type="sine", frequency=2.0, phase=0.5, weight=1.0),
        CompoundComponent(type="square", weight=1.0),
    )
    expected = (np.sin(a * 2.0 + 0.5) + np.where(np.sin(a) > 0.0, 1.0, -1.0)) * 4.0 / 2.0
    np.testing.assert_allclose(compound_wave(a, 4.0, mixed), expected)


def test_compound_wave_without_components_is_sine() -> None:
    a = np.linspace(0.0, 3.0, 4)
    np.testing.assert_allclose(compound_wave(a, 2.0, ()), 2.0 * np.sin(a))


def test_parametric_waves_return_xy_pairs() -> None:
    a = np.linspace(0.0, 2.0 * math.pi, 16)
    params = ParametricParams()
    for kind in PARAMETRIC_WAVE_TYPES:
        out = parametric_wave(kind, a, 5.0, params)
        assert out.shape == (16, 2)
        assert np.all(np.isfinite(out))

    liss = parametric_wave("lissajous", a, 5.0, params)
    np.testing.assert_allclose(liss[:, 0], np.sin(3.0 * a + math.pi / 4.0) * 5.0)
    np.testing.assert_allclose(liss[:, 1], np.sin(2.0 * a) * 5.0)

    fig8 = parametric_wave("figure8", a, 5.0, ParametricParams(scale=2.0))
    np.testing.assert_allclose(fig8[:, 0], np.sin(a) * 10.0)
    np.testing.assert_allclose(fig8[:, 1], np.sin(2.0 * a) * 2.5)

    with pytest.raises(ValueError):
        parametric_wave("sine", a, 1.0, params)


def test_rose_tolerates_zero_denominator() -> None:
    out = parametric_wave("rose", np.linspace(0.0, 1.0, 5), 1.0, ParametricParams(d=0.0))
    assert np.all(np.isfinite(out))


def test_transforms() -> None:
    v = np.asarray([-2.0, -0.5, 0.5, 1.0])
    np.testing.assert_array_equal(apply_transform(v, 1.0, WaveTransform("invert")), -v)
    np.testing.assert_allclose(
        apply_transform(v, 1.0, WaveTransform("exponential")), [-4.0, -0.25, 0.25, 1.0]
    )
    np.testing.assert_allclose(apply_transform(v, 1.0, WaveTransform("clip")), [-0.8, -0.5, 0.5, 0.8])
    np.testing.assert_allclose(
        apply_transform(np.asarray([1.5, -1.25, 0.3]), 1.0, WaveTransform("fold")), [0.5, -0.75, 0.3]
    )
    with pytest.raises(ValueError):
        apply_transform(v, 1.0, WaveTransform("bitcrush"))


def test_evaluate_applies_transforms_in_order() -> None:
    wave = WaveSpec(type="sine", amplitude=1.0, transforms=(WaveTransform("invert"), WaveTransform("clip")))
    a = np.asarray([0.5 * math.pi, 1.5 * math.pi])
    np.testing.assert_allclose(evaluate(a, wave), [-0.8, 0.8])


def test_evaluate_none_type_is_zero() -> None:
    out = evaluate(np.linspace(0.0, 1.0, 5), WaveSpec(type="none", amplitude=7.0))
    np.testing.assert_array_equal(out, np.zeros(5))


def test_amplitude_modulation_scales_magnitude() -> None:
    wave = WaveSpec(type="sine", amplitude=2.0)
    mod = ModulationSpec(type="amplitude", frequency=0.1)
    # ts·f = π/2 となる時刻 [ms]
    t = (0.5 * math.pi / 0.1) * 1000.0
    out = evaluate(np.asarray([0.5 * math.pi]), wave, mod, t)
    np.testing.assert_allclose(out, [2.0 * 1.5])


def test_frequency_and_phase_modulation_shift_angle() -> None:
    wave = WaveSpec(type="sine", amplitude=1.0)
    t = (0.5 * math.pi / 0.1) * 1000.0
    a = np.asarray([0.0, 1.0])

    fm = evaluate(a, wave, ModulationSpec(type="frequency", frequency=0.1, depth=0.3), t)
    np.testing.assert_allclose(fm, np.sin(a + 0.3))

    pm = evaluate(a, wave, ModulationSpec(type="phase", frequency=0.1), t)
    np.testing.assert_allclose(pm, np.sin(a + math.pi / 2.0))


def test_modulation_depth_defaults() -> None:
    assert ModulationSpec(type="phase").resolved_depth() == pytest.approx(math.pi / 2.0)
    assert ModulationSpec(type="frequency").resolved_depth() == 0.5
    assert ModulationSpec(type="amplitude", depth=0.2).resolved_depth() == 0.2


def test_harmonic_modulation_sums_integer_harmonics() -> None:
    a = np.linspace(0.0, 2.0 * math.pi, 13)
    mod = ModulationSpec(type="harmonic", harmonics=(1.0, 0.5, 0.25))
    out = evaluate(a, WaveSpec(type="sine", amplitude=2.0), mod, 0.0)
    expected = 2.0 * (np.sin(a) + 0.5 * np.sin(2.0 * a) + 0.25 * np.sin(3.0 * a))
    np.testing.assert_allclose(out, expected, atol=1e-12)

    # パラメトリック波形でも harmonic はスカラーを返す
    liss = evaluate(a, WaveSpec(type="lissajous", amplitude=2.0), mod, 0.0)
    assert liss.shape == (13,)


def test_seam_turns_match_exactly_at_both_ends() -> None:
    p = np.asarray([0.0, 1.0])
    for cycles in (1, 2, 3, 7, 13):
        turns = seam_turns(p, cycles, True)
        assert turns[0] == turns[1]
        assert 0.0 <= turns[0] < 1.0

        plain = seam_turns(p, cycles, False)
        assert plain[0] == plain[1] == 0.0


def test_seam_turns_blend_is_forward_at_midpoint() -> None:
    turns = seam_turns(np.asarray([0.5]), 4, True)
    # p=0.5 で重み 1（順方向のみ）: 0.5·4 = 2.0 → 0.0
    assert turns[0] == pytest.approx(0.0, abs=1e-12)


@pytest.mark.parametrize("bidirectional", [False, True])
@pytest.mark.parametrize("wave_type", [t for t in WAVE_TYPES if t != "none"])
def test_sample_is_seamless_for_every_wave_type(wave_type: str, bidirectional: bool) -> None:
    wave = WaveSpec(
        type=wave_type, amplitude=10.0, phase=0.3, animated=True, speed=0.7, bidirectional=bidirectional
    )
    for mod_type in ("none", "frequency", "amplitude", "phase", "harmonic"):
        mod = ModulationSpec(type=mod_type)
        for cycles in (1, 2, 5):
            start = sample(0.0, wave, mod, 1234.0, cycles=cycles)
            end = sample(1.0, wave, mod, 1234.0, cycles=cycles)
            np.testing.assert_allclose(np.asarray(start), np.asarray(end), atol=1e-9)


def test_sample_returns_scalar_or_pair() -> None:
    s = sample(0.25, WaveSpec(type="sine", amplitude=1.0, bidirectional=False))
    assert isinstance(s, float)
    assert s == pytest.approx(1.0)

    xy = sample(0.25, WaveSpec(type="figure8", amplitude=1.0, bidirectional=False))
    assert isinstance(xy, tuple) and len(xy) == 2

    arr = sample(np.linspace(0.0, 1.0, 5), WaveSpec(type="sine", amplitude=1.0))
    assert isinstance(arr, np.ndarray) and arr.shape == (5,)
