# benchmark.py
import json
import logging
import os
from dataclasses import dataclass, field, replace
from typing import List

import numpy as np

from cache import Access, AccessKind, CacheConfig, CacheEngine
from predictor import Prediction
from stats import CacheStats

logger = logging.getLogger(__name__)

DEFAULT_WAYS = (2, 4, 8, 16)
DEFAULT_BLOCK_SIZES = (8, 16, 32, 64, 128, 256)
DEFAULT_VICTIM_ENTRIES = (4, 8, 16, 32)


@dataclass(frozen=True)
class Scenario:
    label: str
    config: CacheConfig


@dataclass
class TraceResult:
    trace_name: str
    stats: CacheStats


@dataclass
class ScenarioResult:
    label: str
    config: CacheConfig
    trace_results: List[TraceResult] = field(default_factory=list)

    def to_dict(self):
        return {
            "label": self.label,
            "config": {
                "cache_size_bytes": self.config.cache_size,
                "block_size_bytes": self.config.block_size,
                "associativity": self.config.associativity,
                "victim_entries": self.config.victim_entries,
                "prediction": self.config.prediction.value,
            },
            "traces": {r.trace_name: r.stats.to_dict() for r in self.trace_results},
        }


# ---- scenario builders ----

def direct_mapped(base: CacheConfig) -> Scenario:
    cfg = replace(base, associativity=1, prediction=Prediction.NONE, victim_entries=0)
    return Scenario("Direct-Mapped", cfg)


def set_associative(base: CacheConfig, ways=DEFAULT_WAYS) -> List[Scenario]:
    return [
        Scenario(f"{assoc}-way SA",
                 replace(base, associativity=assoc, prediction=Prediction.NONE, victim_entries=0))
        for assoc in ways
    ]


def block_sizes(base: CacheConfig, sizes=DEFAULT_BLOCK_SIZES) -> List[Scenario]:
    return [Scenario(f"Block {size}B", replace(base, block_size=size)) for size in sizes]


def victim_cache_configs(base: CacheConfig, entries=DEFAULT_VICTIM_ENTRIES) -> List[Scenario]:
    return [
        Scenario(f"DM + Victim({size})", replace(base, associativity=1, victim_entries=size))
        for size in entries
    ]


PREDICTOR_LABELS = {
    Prediction.NONE: "No-Predict",
    Prediction.MRU: "MRU",
    Prediction.MULTI_COLUMN: "Multi-Column",
}


def predictor_configs(base: CacheConfig, ways, strategy: Prediction) -> List[Scenario]:
    prefix = PREDICTOR_LABELS[strategy]
    return [
        Scenario(f"{prefix} {assoc}-way",
                 replace(base, associativity=assoc, prediction=strategy, victim_entries=0))
        for assoc in ways
    ]


class ExperimentRunner:
    """
    Replays every trace under every scenario, one fresh engine per pair.
    `cfg` is the "experiments" section of the JSON config.
    """

    def __init__(self, traces, base: CacheConfig = None, cfg: dict = None):
        cfg = cfg or {}
        self.traces = list(traces)
        self.base = base or CacheConfig()
        self.ways = tuple(cfg.get("ways", DEFAULT_WAYS))
        self.block_sizes = tuple(cfg.get("block_sizes", DEFAULT_BLOCK_SIZES))
        self.victim_entries = tuple(cfg.get("victim_entries", DEFAULT_VICTIM_ENTRIES))

    def run(self, scenarios) -> List[ScenarioResult]:
        results = []
        for scenario in scenarios:
            result = ScenarioResult(scenario.label, scenario.config)
            for trace in self.traces:
                stats = CacheEngine(scenario.config).run(trace.accesses)
                result.trace_results.append(TraceResult(trace.name, stats))
            logger.info("scenario %s done (%d traces)", scenario.label, len(self.traces))
            results.append(result)
        return results

    def standard_suite(self):
        """
        The six experiments, in order, as (title, results) pairs.
        """
        base = self.base
        four_way = replace(base, associativity=4)
        dm = replace(base, associativity=1)
        suite = [
            ("Direct-Mapped", [direct_mapped(base)]),
            ("Set-Associative Sweep", set_associative(base, self.ways)),
            ("Block Size Sweep (4-way)", block_sizes(four_way, self.block_sizes)),
            ("Victim Cache on DM", victim_cache_configs(dm, self.victim_entries)),
            ("MRU Prediction", predictor_configs(base, self.ways, Prediction.MRU)),
            ("Multi-column Prediction",
             predictor_configs(base, self.ways, Prediction.MULTI_COLUMN)),
        ]
        return [(title, self.run(scenarios)) for title, scenarios in suite]

    @staticmethod
    def hit_rate_matrix(results: List[ScenarioResult]) -> np.ndarray:
        """Rows are scenarios, columns are traces."""
        return np.array(
            [[r.stats.hit_rate for r in result.trace_results] for result in results],
            dtype=float,
        )

    @staticmethod
    def save_results(sections, out_cfg: dict) -> str:
        path = out_cfg.get("results_path", os.path.join("results", "experiments.json"))
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        summary = {title: [r.to_dict() for r in results] for title, results in sections}
        with open(path, "w") as f:
            json.dump(summary, f, indent=2)
        return path


# ---- synthetic traces ----

PATTERNS = ("sequential", "random", "mixed")


def generate_trace(pattern="mixed", num_accesses=10000, working_set_blocks=1024,
                   block_size=32, write_ratio=0.2, seed=None) -> List[Access]:
    """
    Build a synthetic access stream over `working_set_blocks` blocks.
    The same seed always yields the same trace.
    """
    if pattern not in PATTERNS:
        raise ValueError(f"unknown access pattern {pattern!r}; expected one of {PATTERNS}")
    rng = np.random.default_rng(seed)
    num_blocks = max(1, working_set_blocks)
    seq_ptr = 0
    accesses = []
    for _ in range(num_accesses):
        if pattern == "sequential" or (pattern == "mixed" and rng.random() < 0.8):
            block = seq_ptr
            seq_ptr = (seq_ptr + 1) % num_blocks
        else:
            block = int(rng.integers(0, num_blocks))
        offset = int(rng.integers(0, max(1, block_size)))
        kind = AccessKind.WRITE if rng.random() < write_ratio else AccessKind.READ
        accesses.append(Access(kind, block * block_size + offset))
    return accesses
