# どこで: `src/sacredgrid/__main__.py`。
# 何を: `python -m sacredgrid ...` の CLI エントリポイントを提供する。
# なぜ: 組み込み名の一覧と、設定ファイルからの 1 フレーム描画を短い導線で確認できるようにするため。

from __future__ import annotations

import argparse
import sys


def _run_frame(argv: list[str]) -> int:
    from sacredgrid.core.pipeline import render_frame
    from sacredgrid.core.runtime_config import (
        configure_logging,
        render_options_from_runtime_config,
        runtime_config,
        set_config_path,
    )
    from sacredgrid.core.settings import load_scene_settings
    from sacredgrid.core.surface import RecordingSurface

    p = argparse.ArgumentParser(prog="python -m sacredgrid frame")
    p.add_argument("--settings", required=True, help="シーン設定ファイル（YAML/JSON）")
    p.add_argument("--t", type=float, default=0.0, help="フレーム時刻 [ms]（省略時: 0）")
    p.add_argument("--config", default=None, help="config.yaml のパス（任意）")
    args = p.parse_args(argv)

    if args.config is not None:
        set_config_path(args.config)
    cfg = runtime_config()
    configure_logging(cfg)

    scene = load_scene_settings(args.settings)
    surface = RecordingSurface()
    w, h = cfg.canvas_size
    stats = render_frame(
        surface,
        scene,
        float(args.t),
        center=(w * 0.5, h * 0.5),
        options=render_options_from_runtime_config(cfg),
    )

    coords, offsets = surface.to_polylines()
    print(
        f"shapes: {stats.total} (primary={stats.primary} secondary={stats.secondary} "
        f"stacked={stats.stacked} accent={stats.accent})"
    )
    print(f"strokes: {surface.draw_calls}")
    print(f"vertices: {int(coords.shape[0])}")
    print(f"polylines: {int(offsets.shape[0]) - 1}")
    return 0


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    p = argparse.ArgumentParser(prog="python -m sacredgrid")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser(
        "list",
        help="組み込みのモード / 波形 / 変調 / 形状を一覧表示する",
        add_help=False,
    )
    sub.add_parser(
        "frame",
        help="設定ファイルから 1 フレームを描き、ストロークの集計を表示する",
        add_help=False,
    )

    args, rest = p.parse_known_args(argv)

    sub_argv = list(rest)
    if sub_argv and sub_argv[0] == "--":
        sub_argv = sub_argv[1:]

    if args.cmd == "list":
        from sacredgrid.devtools import list_builtins

        return int(list_builtins.main(sub_argv))

    if args.cmd == "frame":
        return _run_frame(sub_argv)

    raise AssertionError(f"unknown cmd: {args.cmd!r}")


if __name__ == "__main__":
    raise SystemExit(main())
