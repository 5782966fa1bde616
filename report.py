# report.py
from predictor import Prediction


def format_stats(stats) -> str:
    lines = [
        f"Accesses          : {stats.accesses}",
        f"Reads/Writes      : {stats.reads}/{stats.writes}",
        f"Hits              : {stats.hits} ({stats.hit_rate * 100:.2f}%)",
        f"Misses            : {stats.misses} ({stats.miss_rate * 100:.2f}%)",
    ]
    if stats.victim_hits > 0:
        lines.append(f"Victim hits       : {stats.victim_hits}"
                     f" ({stats.victim_hit_ratio * 100:.2f}% of hits)")
    pred = stats.prediction
    if pred is not None:
        lines.append(f"First-hit rate    : {pred.first_hit_rate * 100:.2f}%")
        lines.append(f"Non-first hit rate: {pred.non_first_hit_rate * 100:.2f}%")
        lines.append(f"First-touch hits  : {pred.first_touch_hits}/{pred.total_hits_observed}")
        if pred.mode is Prediction.MULTI_COLUMN:
            lines.append(f"Avg. bit search   : {pred.avg_bit_vector_search:.2f}")
    return "\n".join(lines)


def format_config(config, trace_name: str) -> str:
    return "\n".join([
        f"Trace             : {trace_name}",
        f"Cache size        : {config.cache_size} bytes",
        f"Block size        : {config.block_size} bytes",
        f"Associativity     : {config.associativity}",
        f"Victim cache size : {config.victim_entries} entries",
        f"Prediction        : {config.prediction.value}",
    ])


def format_trace_row(trace_name: str, stats) -> str:
    row = (f"    {trace_name:<14} hit {stats.hit_rate * 100:>6.2f}%"
           f" miss {stats.miss_rate * 100:>6.2f}%")
    if stats.victim_hits > 0:
        row += f" victim {stats.victim_hit_ratio * 100:>5.1f}%"
    pred = stats.prediction
    if pred is not None:
        row += (f" first {pred.first_hit_rate * 100:>6.2f}%"
                f" non-first {pred.non_first_hit_rate * 100:>6.2f}%")
        if pred.mode is Prediction.MULTI_COLUMN:
            row += f" avg-search {pred.avg_bit_vector_search:.2f}"
    return row


def format_section(title: str, results) -> str:
    lines = [f"== {title} =="]
    for scenario in results:
        lines.append(f"  {scenario.label}")
        for result in scenario.trace_results:
            lines.append(format_trace_row(result.trace_name, result.stats))
    return "\n".join(lines)
