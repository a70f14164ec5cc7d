from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Tuple

# plotting scripts import this module; the simulation core does not
import matplotlib
matplotlib.use("Agg", force=True)  # headless
import matplotlib.pyplot as plt


@dataclass(frozen=True)
class FigureConfig:
    fmt: str = "png"          # "pdf", "png", "svg"
    dpi: int = 200            # used for raster formats only
    fontsize: float = 10.0
    tight: bool = True
    pad_inches: float = 0.02
    figsize: Tuple[float, float] = (4.5, 3.0)


def set_style(cfg: FigureConfig) -> None:
    plt.rcParams.update({
        "figure.figsize": cfg.figsize,
        "savefig.dpi": cfg.dpi,
        "font.size": cfg.fontsize,
        "axes.labelsize": cfg.fontsize,
        "legend.fontsize": max(6.0, cfg.fontsize - 2.0),
        "xtick.labelsize": max(6.0, cfg.fontsize - 2.0),
        "ytick.labelsize": max(6.0, cfg.fontsize - 2.0),
        "xtick.direction": "in",
        "ytick.direction": "in",
        "legend.frameon": False,
        "lines.linewidth": 1.2,
        "lines.markersize": 3.0,
    })


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def savefig(fig: plt.Figure, path: str, cfg: FigureConfig) -> None:
    kwargs = {}
    if cfg.tight:
        kwargs["bbox_inches"] = "tight"
        kwargs["pad_inches"] = cfg.pad_inches
    if path.lower().endswith((".png", ".jpg", ".jpeg", ".tif", ".tiff")):
        kwargs["dpi"] = cfg.dpi
    fig.savefig(path, **kwargs)
