"""
どこで: `src/sacredgrid/devtools/list_builtins.py`。
何を: 組み込みのアニメーションモード / 波形 / 変調 / 形状の名前を CLI 用に列挙する。
なぜ: 設定ファイルに書ける値の探索コストを下げるため。
"""

from __future__ import annotations

import argparse
import sys

from sacredgrid.core.animation import ANIMATION_MODES
from sacredgrid.core.shapes import SHAPE_TYPES
from sacredgrid.core.waves import MODULATION_TYPES, WAVE_TYPES

_TARGETS: dict[str, tuple[str, ...]] = {
    "modes": ANIMATION_MODES,
    "waves": WAVE_TYPES,
    "modulations": MODULATION_TYPES,
    "shapes": SHAPE_TYPES,
}


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="python -m sacredgrid list")
    p.add_argument(
        "target",
        nargs="?",
        default="all",
        choices=(*_TARGETS, "all"),
        help="一覧対象（省略時: all）",
    )
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)
    target = str(args.target)

    if target in _TARGETS:
        for name in _TARGETS[target]:
            print(name)
        return 0

    if target == "all":
        for i, (label, names) in enumerate(_TARGETS.items()):
            if i:
                print("")
            print(f"{label}:")
            for name in names:
                print(name)
        return 0

    raise AssertionError(f"unknown target: {target!r}")


__all__ = ["main"]
