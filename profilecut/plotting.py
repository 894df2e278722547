# profilecut/plotting.py
# Minimal matplotlib visualization: one horizontal bar per stock, all bars in one figure.
# Pieces are colored by item, the remaining offcut is hatched (green if reclaimable).

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple

import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

from .types import Cut


@dataclass(frozen=True)
class PlotStyle:
    show_labels: bool = True
    show_offcut: bool = True
    show_safety: bool = True
    font_size: int = 7
    bar_height: float = 0.6
    row_height_in: float = 0.45  # figure inches per bar
    max_rows: int = 60           # larger plans are truncated in the drawing


def _hash_color(key: str) -> Tuple[float, float, float]:
    """Deterministic pastel-ish color from a string."""
    h = 2166136261
    for ch in key.encode("utf-8"):
        h ^= ch
        h *= 16777619
        h &= 0xFFFFFFFF
    r = 0.35 + ((h >> 0) & 0xFF) / 255 * 0.55
    g = 0.35 + ((h >> 8) & 0xFF) / 255 * 0.55
    b = 0.35 + ((h >> 16) & 0xFF) / 255 * 0.55
    return (r, g, b)


def _bar_title(c: Cut) -> str:
    return f"#{c.stock_index + 1} {c.profile_type} {c.stock_length:g}"


def plot_plan(
    cuts: Sequence[Cut],
    style: Optional[PlotStyle] = None,
    title: Optional[str] = None,
    figsize: Optional[Tuple[float, float]] = None,
) -> plt.Figure:
    """
    Draw the plan as a cut diagram. x axis is mm from the raw stock start.
    """
    style = style or PlotStyle()
    if not cuts:
        raise ValueError("Plan has no bars to plot")

    shown = list(cuts)[: style.max_rows]
    n = len(shown)
    longest = max(c.stock_length for c in shown)

    if figsize is None:
        figsize = (12, max(2.0, 0.8 + style.row_height_in * n))

    fig, ax = plt.subplots(figsize=figsize)
    h = style.bar_height

    for row, c in enumerate(shown):
        y = n - 1 - row - h / 2

        # Raw stock outline
        ax.add_patch(Rectangle((0, y), c.stock_length, h, fill=False, linewidth=0.8))

        if style.show_safety and c.safety_margin > 0:
            for x0 in (0.0, c.stock_length - c.safety_margin):
                ax.add_patch(Rectangle((x0, y), c.safety_margin, h, facecolor="0.6", linewidth=0))

        for s in c.segments:
            color = _hash_color(f"{s.item_index}|{s.length}")
            for k in range(s.quantity):
                x = s.position + k * (s.length + c.kerf_width)
                ax.add_patch(Rectangle((x, y), s.length, h, facecolor=color, edgecolor="black", linewidth=0.5))
                if style.show_labels and s.length >= longest * 0.04:
                    ax.text(x + s.length / 2, y + h / 2, f"{s.length:g}", ha="center", va="center",
                            fontsize=style.font_size)

        if style.show_offcut and c.segment_count and c.remaining_length > 0:
            x0 = c.used_length - c.safety_margin
            ax.add_patch(
                Rectangle(
                    (x0, y),
                    c.remaining_length,
                    h,
                    facecolor="#c8e6c9" if c.is_reclaimable else "#ffcdd2",
                    hatch="//",
                    edgecolor="0.4",
                    linewidth=0.5,
                )
            )

    ax.set_yticks([n - 1 - i for i in range(n)])
    ax.set_yticklabels([_bar_title(c) for c in shown], fontsize=style.font_size + 1)
    ax.set_xlim(0, longest * 1.01)
    ax.set_ylim(-1, n)
    ax.set_xlabel("mm")
    if title is None:
        title = f"{len(cuts)} bars"
        if len(cuts) > n:
            title += f" (first {n} shown)"
    ax.set_title(title, fontsize=10)

    fig.tight_layout()
    return fig


def show_plan(cuts: Sequence[Cut], style: Optional[PlotStyle] = None) -> None:
    """Convenience wrapper: plot and show."""
    plot_plan(cuts, style=style)
    plt.show()


def save_plan_png(
    cuts: Sequence[Cut],
    path: str | Path,
    style: Optional[PlotStyle] = None,
    dpi: int = 150,
    title: Optional[str] = None,
) -> None:
    """Save the cut diagram to PNG."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig = plot_plan(cuts, style=style, title=title)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
