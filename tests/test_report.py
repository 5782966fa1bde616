from benchmark import ScenarioResult, TraceResult
from cache import CacheConfig
from predictor import Prediction
from report import format_config, format_section, format_stats
from stats import CacheStats, PredictionStats


def test_format_stats_basic():
    text = format_stats(CacheStats(accesses=4, reads=3, writes=1, hits=1, misses=3))
    assert "Accesses          : 4" in text
    assert "Reads/Writes      : 3/1" in text
    assert "Hits              : 1 (25.00%)" in text
    assert "Misses            : 3 (75.00%)" in text
    assert "Victim hits" not in text
    assert "First-hit rate" not in text


def test_format_stats_victim_and_prediction():
    pred = PredictionStats(mode=Prediction.MULTI_COLUMN, first_hits=1, non_first_hits=1,
                           total_hits_observed=2, bit_vector_search_total=3,
                           bit_vector_observations=2)
    text = format_stats(CacheStats(accesses=4, reads=4, hits=2, misses=2, victim_hits=1,
                                   prediction=pred))
    assert "Victim hits       : 1 (50.00% of hits)" in text
    assert "First-hit rate    : 50.00%" in text
    assert "Avg. bit search   : 1.50" in text


def test_format_stats_mru_has_no_bit_search():
    pred = PredictionStats(mode=Prediction.MRU, first_hits=1, total_hits_observed=1)
    text = format_stats(CacheStats(accesses=2, reads=2, hits=1, misses=1, prediction=pred))
    assert "Avg. bit search" not in text


def test_format_config():
    text = format_config(CacheConfig(prediction=Prediction.MRU), "x.trace")
    assert "Trace             : x.trace" in text
    assert "Cache size        : 262144 bytes" in text
    assert "Prediction        : mru" in text


def test_format_section():
    result = ScenarioResult("2-way SA", CacheConfig(associativity=2),
                            [TraceResult("loop.trace", CacheStats(accesses=2, hits=1, misses=1))])
    lines = format_section("Set-Associative Sweep", [result]).splitlines()
    assert lines[0] == "== Set-Associative Sweep =="
    assert lines[1] == "  2-way SA"
    assert lines[2] == "    loop.trace     hit  50.00% miss  50.00%"
