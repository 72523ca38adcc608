"""Headless-safe plotting adapters."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Tuple


class PlotAdapter:
    """Collect per-epoch loss and learning rate; draw them on :meth:`close`."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._history: List[Tuple[int, float, float]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if not self.enable_plots:
            return
        self._history.append(
            (int(epoch), float(metrics.get("loss", 0.0)), float(metrics.get("lr", 0.0)))
        )

    def close(self) -> Path | None:
        if not self.enable_plots or not self._history:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        epochs, losses, rates = zip(*self._history)
        fig, (loss_ax, lr_ax) = plt.subplots(2, 1, sharex=True, figsize=(6, 6))
        loss_ax.plot(epochs, losses)
        loss_ax.set_ylabel("Loss")
        loss_ax.set_title("Training Curve")
        lr_ax.plot(epochs, rates, color="tab:orange")
        lr_ax.set_xlabel("Epoch")
        lr_ax.set_ylabel("Learning rate")
        plot_path = self.run_dir / "loss.png"
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path

    __call__ = on_epoch
