"""Table rendering utilities for sampler comparisons."""
from __future__ import annotations

from typing import Any, Iterable, List, Mapping

import pandas as pd

COMPARISON_COLUMNS = [
    "sampler",
    "n_samples",
    "elapsed",
    "acceptance_rate",
    "mean",
    "variance",
    "ks_statistic",
]


def comparison_frame(records: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """One row per sampler run, with the standard comparison columns first."""
    frame = pd.DataFrame(list(records))
    if frame.empty:
        return pd.DataFrame(columns=COMPARISON_COLUMNS)
    leading = [c for c in COMPARISON_COLUMNS if c in frame.columns]
    rest = [c for c in frame.columns if c not in leading]
    return frame[leading + rest]


def _fmt(value: Any) -> str:
    if value is None or (isinstance(value, float) and value != value):
        return "--"
    if isinstance(value, float):
        return f"{value:.4g}"
    return str(value)


def to_latex_table(rows: Iterable[Iterable[Any]], header: List[str] | None = None) -> str:
    """Render rows into a simple LaTeX tabular environment."""
    body = [[_fmt(v) for v in row] for row in rows]
    ncols = len(header) if header else (len(body[0]) if body else 1)
    lines = ["\\begin{tabular}{" + "l" * ncols + "}", "\\hline"]
    if header:
        lines.append(" & ".join(header) + " \\\\")
        lines.append("\\hline")
    for row in body:
        lines.append(" & ".join(row) + " \\\\")
    lines.append("\\hline")
    lines.append("\\end{tabular}")
    return "\n".join(lines)


def frame_to_latex(frame: pd.DataFrame, columns: List[str] | None = None) -> str:
    cols = columns or [c for c in COMPARISON_COLUMNS if c in frame.columns]
    return to_latex_table(frame[cols].itertuples(index=False, name=None), header=cols)

