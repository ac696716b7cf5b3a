# helpers/logger.py
import csv
import datetime
import json
import pathlib

import numpy as np
import matplotlib

# file output only, no display needed
matplotlib.use("Agg")
import matplotlib.pyplot as plt


class RunLogger:
    def __init__(self, root="runs", tag="run"):
        ts = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
        self.root = pathlib.Path(root)
        self.dir = self.root / f"{tag}_{ts}"
        self.dir.mkdir(parents=True, exist_ok=True)
        self.tag = tag
        self.csv_path = self.dir / "history.csv"
        self.json_path = self.dir / "history.json"
        self.best_ckpt = self.dir / "checkpoint_best.npz"
        self.last_ckpt = self.dir / "checkpoint_last.npz"
        self.metrics = []  # list of dicts per epoch
        self._csv_header_written = False

    # ---------- logging ----------
    def log_epoch(self, epoch, **kwargs):
        # None (e.g. accuracy without test data) is kept as None / empty cell
        row = {"epoch": int(epoch), **{k: None if v is None else float(v) for k, v in kwargs.items()}}
        self.metrics.append(row)
        with open(self.csv_path, "a", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=list(row.keys()))
            if not self._csv_header_written:
                writer.writeheader()
                self._csv_header_written = True
            writer.writerow(row)

    def save_json(self):
        with open(self.json_path, "w") as f:
            json.dump(self.metrics, f, indent=2)

    def save_checkpoint(self, network, best=False):
        """Write the network's weights and biases as w0.., b0.. arrays in one .npz."""
        path = self.best_ckpt if best else self.last_ckpt
        arrays = {}
        for i, (w, b) in enumerate(network.params()):
            arrays[f"w{i}"] = w
            arrays[f"b{i}"] = b
        np.savez(path, **arrays)
        return str(path)

    @staticmethod
    def load_checkpoint(path):
        """Read a checkpoint back as (weights, biases) lists for ``load_parameters``."""
        with np.load(path) as data:
            count = len([k for k in data.files if k.startswith("w")])
            weights = [data[f"w{i}"] for i in range(count)]
            biases = [data[f"b{i}"] for i in range(count)]
        return weights, biases

    # ---------- plotting ----------
    def _plots_dir(self, subdir):
        out = self.dir / subdir
        out.mkdir(parents=True, exist_ok=True)
        return out

    def plot_cost(self, history, subdir="plots"):
        """Saves training cost curve as cost_curve_<tag>.png."""
        cost = history.get("cost", [])
        if len(cost) == 0:
            return None
        outdir = self._plots_dir(subdir)
        plt.figure()
        plt.plot(cost, label="train cost")
        plt.xlabel("Epoch")
        plt.ylabel("Squared-Error Cost")
        plt.title(f"Cost vs Epochs ({self.tag})")
        plt.legend()
        plt.tight_layout()
        path = outdir / f"cost_curve_{self.tag}_epochs_{len(cost)}.png"
        plt.savefig(path, dpi=160)
        plt.close()
        return path

    def plot_accuracy(self, history, subdir="plots"):
        """
        Saves test accuracy curve as accuracy_<tag>.png if any epoch reported one.
        """
        accuracy = [a for a in history.get("accuracy", []) if a is not None]
        if len(accuracy) == 0:
            return None
        outdir = self._plots_dir(subdir)
        plt.figure()
        plt.plot(accuracy, label="test accuracy")
        plt.xlabel("Epoch")
        plt.ylabel("Accuracy (%)")
        plt.title(f"Test Accuracy vs Epochs ({self.tag})")
        plt.legend()
        plt.tight_layout()
        path = outdir / f"accuracy_{self.tag}_epochs_{len(accuracy)}.png"
        plt.savefig(path, dpi=160)
        plt.close()
        return path

    def plot_all(self, history, subdir="plots"):
        """
        Convenience: generate all standard plots we know how to draw.
        """
        self.plot_cost(history, subdir=subdir)
        self.plot_accuracy(history, subdir=subdir)
