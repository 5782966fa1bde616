# main.py
import argparse
import json
import logging
import os
import sys
from dataclasses import replace

from benchmark import PATTERNS, ExperimentRunner, generate_trace
from cache import CacheConfig, CacheEngine, ConfigError
from predictor import Prediction
from report import format_config, format_section, format_stats
from tracefile import TraceError, discover_traces, load_trace, load_traces, write_trace

logger = logging.getLogger(__name__)


def load_config(path="config.json"):
    if not os.path.exists(path):
        logger.debug("no config at %s, using defaults", path)
        return {}
    try:
        with open(path, "r") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc


def cache_config_from(cfg, args) -> CacheConfig:
    config = CacheConfig.from_dict(cfg.get("cache", {}))
    overrides = {}
    for name, attr in (("cache_size", "cache_size"), ("block_size", "block_size"),
                       ("associativity", "associativity"), ("victim", "victim_entries")):
        value = getattr(args, name, None)
        if value is not None:
            overrides[attr] = value
    if getattr(args, "prediction", None) is not None:
        overrides["prediction"] = Prediction.parse(args.prediction)
    return replace(config, **overrides)


def run_simulation(args, cfg) -> int:
    config = cache_config_from(cfg, args)
    trace = load_trace(args.trace)
    if args.miss_log:
        os.makedirs(os.path.dirname(args.miss_log) or ".", exist_ok=True)
        with open(args.miss_log, "w") as sink:
            stats = CacheEngine(config, miss_sink=sink).run(trace.accesses)
    else:
        stats = CacheEngine(config).run(trace.accesses)

    print(format_config(config, trace.name))
    print()
    print(format_stats(stats))
    if args.miss_log:
        print(f"\nMiss log captured at {args.miss_log}")
    if args.plot:
        from visualize import plot_outcomes
        plot_outcomes(stats, args.plot, title=trace.name)
        print(f"Plot saved to {args.plot}")
    return 0


def run_experiments(args, cfg) -> int:
    exp_cfg = cfg.get("experiments", {})
    out_cfg = cfg.get("output", {})
    paths = args.trace or discover_traces(exp_cfg.get("trace_dir", "trace"))
    traces = load_traces(paths)
    print(f"Loaded {len(traces)} trace files.")

    runner = ExperimentRunner(traces, CacheConfig.from_dict(cfg.get("cache", {})), exp_cfg)
    sections = runner.standard_suite()
    for title, results in sections:
        print()
        print(format_section(title, results))

    results_path = runner.save_results(sections, out_cfg)
    print(f"\nResults saved to: {results_path}")
    if args.plot:
        from visualize import plot_suite
        matrices = [runner.hit_rate_matrix(results) for _, results in sections]
        plot_dir = out_cfg.get("plot_dir", "results")
        plot_suite(sections, matrices, plot_dir)
        print(f"Plots saved in {plot_dir}/")
    return 0


def run_generate(args, cfg) -> int:
    gen_cfg = cfg.get("generator", {})
    block_size = CacheConfig.from_dict(cfg.get("cache", {})).block_bytes
    working_set_kb = gen_cfg.get("working_set_kb", 1024)
    accesses = generate_trace(
        pattern=args.pattern or gen_cfg.get("pattern", "mixed"),
        num_accesses=args.count if args.count is not None else gen_cfg.get("num_accesses", 10000),
        working_set_blocks=(working_set_kb * 1024) // block_size,
        block_size=block_size,
        write_ratio=gen_cfg.get("write_ratio", 0.2),
        seed=args.seed if args.seed is not None else gen_cfg.get("random_seed"),
    )
    path = write_trace(args.out, accesses)
    print(f"Wrote {len(accesses)} accesses to {path}")
    return 0


def build_parser():
    ap = argparse.ArgumentParser(prog="cache-lab", description="Trace-driven set-associative cache simulator")
    ap.add_argument("--config", default="config.json", help="JSON config file (default: config.json)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    sim = sub.add_parser("simulate", help="Run a single simulation with custom parameters")
    sim.add_argument("--trace", required=True, help="Trace file to replay")
    sim.add_argument("--cache-size", type=int, default=None, help="Total capacity in bytes")
    sim.add_argument("--block-size", type=int, default=None, help="Block size in bytes")
    sim.add_argument("--associativity", type=int, default=None, help="Ways per set (1 = direct-mapped)")
    sim.add_argument("--victim", type=int, default=None, help="Victim buffer entries (0 disables)")
    sim.add_argument("--prediction", choices=[m.value for m in Prediction], default=None,
                     help="Way prediction strategy")
    sim.add_argument("--miss-log", default=None, help="File that records every miss and victim hit")
    sim.add_argument("--plot", default=None, metavar="PNG", help="Save a pie chart of hits, victim hits and misses")
    sim.set_defaults(func=run_simulation)

    exp = sub.add_parser("experiments", help="Run the full experimental suite")
    exp.add_argument("--trace", action="append", default=[], metavar="PATH",
                     help="Trace file to include (repeatable); defaults to every *.trace under trace/")
    exp.add_argument("--plot", action="store_true", help="Save hit-rate plots")
    exp.set_defaults(func=run_experiments)

    gen = sub.add_parser("generate", help="Write a synthetic trace")
    gen.add_argument("--pattern", choices=PATTERNS, default=None)
    gen.add_argument("--count", type=int, default=None, help="Number of accesses")
    gen.add_argument("--seed", type=int, default=None)
    gen.add_argument("--out", required=True, help="Output trace path")
    gen.set_defaults(func=run_generate)
    return ap


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")
    try:
        cfg = load_config(args.config)
        return args.func(args, cfg)
    except (TraceError, ConfigError) as exc:
        logger.error("%s", exc)
        return 1
    except OSError as exc:
        logger.error("I/O error: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
