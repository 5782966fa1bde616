# visualize.py
import os

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np


def _slug(title):
    return "".join(c if c.isalnum() else "_" for c in title.lower()).strip("_")


def plot_hit_rates(title, results, hit_rates, outpath):
    """
    Grouped bars: one group per scenario, one bar per trace.
    `hit_rates` is the scenarios x traces matrix from ExperimentRunner.
    """
    os.makedirs(os.path.dirname(outpath) or ".", exist_ok=True)
    hit_rates = np.atleast_2d(hit_rates)
    labels = [r.label for r in results]
    trace_names = [t.trace_name for t in results[0].trace_results] if results else []
    x = np.arange(len(labels))
    width = 0.8 / max(1, len(trace_names))
    plt.figure(figsize=(max(6, 1.2 * len(labels)), 4))
    for i, name in enumerate(trace_names):
        plt.bar(x + i * width, hit_rates[:, i] * 100.0, width, label=name)
    plt.xticks(x + width * (len(trace_names) - 1) / 2, labels, rotation=30, ha="right")
    plt.ylabel("Hit rate (%)")
    plt.ylim(0, 100)
    plt.title(title)
    if trace_names:
        plt.legend(fontsize="small")
    plt.grid(True, axis="y")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath


def outcome_shares(stats):
    """(label, count) wedges for one run; victim-buffer hits get their own wedge."""
    wedges = [("Main hit", stats.hits - stats.victim_hits)]
    if stats.victim_hits > 0:
        wedges.append(("Victim hit", stats.victim_hits))
    wedges.append(("Miss", stats.misses))
    return [(label, count) for label, count in wedges if count > 0]


def plot_outcomes(stats, outpath, title="Access outcomes"):
    os.makedirs(os.path.dirname(outpath) or ".", exist_ok=True)
    wedges = outcome_shares(stats)
    plt.figure(figsize=(4, 4))
    if wedges:
        labels, counts = zip(*wedges)
        plt.pie(counts, labels=labels, autopct="%1.1f%%", startangle=90)
    else:
        plt.text(0.5, 0.5, "empty trace", ha="center", va="center")
        plt.axis("off")
    plt.title(f"{title} ({stats.accesses} accesses)")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath


def plot_suite(sections, matrices, plot_dir):
    paths = []
    for (title, results), matrix in zip(sections, matrices):
        outpath = os.path.join(plot_dir, f"{_slug(title)}.png")
        paths.append(plot_hit_rates(title, results, matrix, outpath))
    return paths
