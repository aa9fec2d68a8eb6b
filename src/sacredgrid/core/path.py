# src/sacredgrid/core/path.py
# 形状生成側から受け取る頂点列 VertexPath のモデルと検証ロジック。

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

import numpy as np

PolylineTuple = tuple[np.ndarray, np.ndarray]
"""`(coords, offsets)` で表すポリライン集合の最小表現。

- `coords`: shape `(N,2)` の座標配列（dtype は float64）
- `offsets`: shape `(M+1,)` の境界配列（dtype は int32）

Notes
-----
RecordingSurface の書き出しや、テストでの比較に使う。
"""

# first == last を「閉じている」とみなす許容誤差。
_CLOSE_EPS = 1e-3


@dataclass(frozen=True, slots=True)
class VertexPath:
    """順序付き頂点列と loop フラグを表現する。

    Parameters
    ----------
    points : np.ndarray
        float64 型 shape (N, 2) の頂点配列。
    loop : bool
        True の場合、先頭と末尾が一致していなくても閉路として扱う。

    Notes
    -----
    不変性を契約とし、配列は writeable=False で保持する。
    (N,3) 入力は z を捨てて (N,2) に揃える。
    """

    points: np.ndarray
    loop: bool = False

    def __post_init__(self) -> None:
        """配列形状を検証し、不変条件を満たす形に固定する。"""
        points = np.asarray(self.points, dtype=np.float64)

        if points.ndim == 1 and points.size == 0:
            points = np.zeros((0, 2), dtype=np.float64)

        if points.ndim == 2 and points.shape[1] == 3:
            points = points[:, :2]

        if points.ndim != 2 or points.shape[1] != 2:
            raise ValueError(f"points は shape (N,2) の 2 次元配列である必要がある: shape={points.shape}")

        if not np.all(np.isfinite(points)):
            raise ValueError("points に NaN/inf を含めることはできない")

        points = np.array(points, dtype=np.float64, copy=True)
        points.setflags(write=False)
        object.__setattr__(self, "points", points)
        object.__setattr__(self, "loop", bool(self.loop))

    def __len__(self) -> int:
        return int(self.points.shape[0])

    @property
    def is_closed(self) -> bool:
        """閉路かどうかを返す（loop フラグ、または先頭と末尾の一致）。"""
        if self.loop:
            return True
        if self.points.shape[0] < 3:
            return False
        return bool(np.all(np.abs(self.points[0] - self.points[-1]) <= _CLOSE_EPS))

    def closed_points(self) -> np.ndarray:
        """閉路なら先頭頂点を末尾に重ねた配列を返す。

        既に先頭と末尾が一致している場合や開路の場合は `points` をそのまま返す。
        """
        pts = self.points
        if not self.loop or pts.shape[0] < 2:
            return pts
        if np.all(np.abs(pts[0] - pts[-1]) <= _CLOSE_EPS):
            return pts
        out = np.concatenate([pts, pts[:1]], axis=0)
        out.setflags(write=False)
        return out


def path_from_vertices(
    vertices: Iterable[object] | np.ndarray,
    *,
    loop: bool = False,
) -> VertexPath:
    """頂点の列を `VertexPath` に変換する。

    Parameters
    ----------
    vertices : Iterable
        `(x, y)` タプル、または `{"x": .., "y": ..}` mapping の列。ndarray も受理する。
    loop : bool, default False
        閉路フラグ。

    Returns
    -------
    VertexPath
        変換結果。
    """
    if isinstance(vertices, np.ndarray):
        return VertexPath(points=vertices, loop=loop)

    rows: list[tuple[float, float]] = []
    for v in vertices:
        if isinstance(v, Mapping):
            rows.append((float(v["x"]), float(v["y"])))  # type: ignore[arg-type]
        else:
            x, y = v  # type: ignore[misc]
            rows.append((float(x), float(y)))
    if not rows:
        return VertexPath(points=np.zeros((0, 2), dtype=np.float64), loop=loop)
    return VertexPath(points=np.asarray(rows, dtype=np.float64), loop=loop)


def arc_length_table(points: np.ndarray) -> tuple[np.ndarray, float]:
    """各頂点までの累積弧長と全長を返す。

    Parameters
    ----------
    points : np.ndarray
        shape (N, 2) の頂点配列。

    Returns
    -------
    tuple[np.ndarray, float]
        `(cumulative, total)`。`cumulative` は shape (N,) で先頭は 0。
    """
    pts = np.asarray(points, dtype=np.float64)
    if pts.shape[0] == 0:
        return np.zeros((0,), dtype=np.float64), 0.0
    seg = np.hypot(np.diff(pts[:, 0]), np.diff(pts[:, 1]))
    cumulative = np.concatenate([np.zeros((1,), dtype=np.float64), np.cumsum(seg)])
    return cumulative, float(cumulative[-1])


def concat_polylines(*polylines: np.ndarray) -> PolylineTuple:
    """複数の (N,2) ポリラインを連結して `(coords, offsets)` にまとめる。

    Parameters
    ----------
    polylines : np.ndarray
        連結対象のポリライン列。

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        結合後の (coords, offsets)。
    """
    if not polylines:
        empty_coords = np.zeros((0, 2), dtype=np.float64)
        empty_offsets = np.zeros((1,), dtype=np.int32)
        return empty_coords, empty_offsets

    coords = np.concatenate(
        [np.asarray(p, dtype=np.float64).reshape(-1, 2) for p in polylines], axis=0
    )
    lengths = [int(np.asarray(p).reshape(-1, 2).shape[0]) for p in polylines]
    offsets = np.concatenate(
        [np.zeros((1,), dtype=np.int64), np.cumsum(np.asarray(lengths, dtype=np.int64))]
    ).astype(np.int32, copy=False)
    return coords, offsets


__all__ = [
    "PolylineTuple",
    "VertexPath",
    "arc_length_table",
    "concat_polylines",
    "path_from_vertices",
]
