import pytest

from benchmark import generate_trace
from cache import Access, AccessKind, CacheConfig, CacheEngine, CacheLine, CacheSet, simulate
from predictor import (MultiColumnPredictor, MruPredictor, NoPredictor, Prediction,
                       column_count, make_predictor)
from stats import StatsCollector


def reads(*addresses):
    return [Access(AccessKind.READ, a) for a in addresses]


@pytest.mark.parametrize("ways,columns", [
    (1, 1), (2, 2), (3, 2), (4, 2), (5, 4), (8, 4), (9, 8), (16, 8), (64, 8),
])
def test_column_count(ways, columns):
    assert column_count(ways) == columns


def test_make_predictor_picks_variant():
    assert isinstance(make_predictor(Prediction.NONE, 4, 2), NoPredictor)
    assert isinstance(make_predictor(Prediction.MRU, 4, 2), MruPredictor)
    mc = make_predictor(Prediction.MULTI_COLUMN, 4, 8)
    assert isinstance(mc, MultiColumnPredictor)
    assert len(mc.bits) == 4 * 4


def test_prediction_parse_accepts_aliases():
    assert Prediction.parse("MRU") is Prediction.MRU
    assert Prediction.parse("multi_column") is Prediction.MULTI_COLUMN
    assert Prediction.parse("multicolumn") is Prediction.MULTI_COLUMN
    with pytest.raises(ValueError):
        Prediction.parse("lru")


def test_column_uses_tag_bits():
    mc = MultiColumnPredictor(num_sets=4, ways=4)
    assert mc.num_columns == 2
    assert mc.column(4) == 1   # tag 1
    assert mc.column(8) == 0   # tag 2
    assert MultiColumnPredictor(num_sets=4, ways=1).column(4) == 0


def test_mark_clear_observe():
    mc = MultiColumnPredictor(num_sets=2, ways=4)
    mc.mark(1, 3, 0)
    mc.mark(1, 3, 2)
    assert mc.observe(None, 1, 3) == 0b101
    # block 1 is in the other column of set 1
    assert mc.observe(None, 1, 1) == 0
    mc.clear(1, 3, 0)
    assert mc.observe(None, 1, 3) == 0b100


def test_ways_beyond_bit_width_are_ignored():
    mc = MultiColumnPredictor(num_sets=1, ways=64)
    mc.mark(0, 0, 40)
    assert mc.observe(None, 0, 0) == 0


@pytest.mark.parametrize("bits,way,rank,first", [
    (0b0110, 1, 1, True),
    (0b0110, 2, 2, False),
    (0b0110, 0, 2, False),   # hit way not predicted: full popcount
    (0b1111, 3, 4, False),
])
def test_multi_column_rank(bits, way, rank, first):
    stats = StatsCollector(Prediction.MULTI_COLUMN)
    MultiColumnPredictor(1, 4).record(bits, way, stats)
    assert stats.bit_vector_search_total == rank
    assert stats.bit_vector_observations == 1
    assert stats.first_hits == (1 if first else 0)
    assert stats.non_first_hits == (0 if first else 1)


def test_multi_column_empty_snapshot_counts_as_non_first():
    stats = StatsCollector(Prediction.MULTI_COLUMN)
    MultiColumnPredictor(1, 4).record(0, 2, stats)
    assert stats.bit_vector_observations == 1
    assert stats.bit_vector_search_total == 0
    assert stats.non_first_hits == 1
    assert stats.total_hits_observed == 1


def test_multi_column_hint_prefers_cold_lines():
    mc = MultiColumnPredictor(num_sets=1, ways=2)
    cache_set = CacheSet(2)
    cache_set.lines[0] = CacheLine(tag=0, block_address=0, recency=1, valid=True)
    cache_set.lines[1] = CacheLine(tag=1, block_address=1, recency=5, valid=True)
    mc.mark(0, 0, 0)
    # way 0 is older but predicted hot
    assert cache_set.victim_way(0, mc) == 1
    mc.mark(0, 1, 1)
    assert cache_set.victim_way(0, mc) == 0


def test_multi_column_bits_track_resident_lines():
    cfg = CacheConfig(cache_size=512, block_size=8, associativity=8, victim_entries=4,
                      prediction=Prediction.MULTI_COLUMN)
    engine = CacheEngine(cfg)
    mc = engine.predictor
    for access in generate_trace("mixed", 1500, working_set_blocks=200, block_size=8, seed=5):
        engine.process(access)
        expected = [0] * len(mc.bits)
        for set_index, cache_set in enumerate(engine.sets):
            for way, line in enumerate(cache_set.lines):
                if line.valid:
                    expected[set_index * mc.num_columns + mc.column(line.block_address)] |= 1 << way
        assert mc.bits == expected


def test_multi_column_engine_statistics():
    # 64B / 8B / 4-way: 2 sets, 2 columns. Blocks 0, 2, 4 share set 0;
    # 0 and 4 share column 0 and land in ways 0 and 2.
    cfg = CacheConfig(cache_size=64, block_size=8, associativity=4,
                      prediction=Prediction.MULTI_COLUMN)
    stats = simulate(cfg, reads(0, 16, 32, 32, 0))
    pred = stats.prediction
    assert stats.hits == 2
    assert pred.total_hits_observed == 2
    assert pred.first_hits == 1
    assert pred.non_first_hits == 1
    assert pred.bit_vector_search_total == 3
    assert pred.bit_vector_observations == 2
    assert pred.avg_bit_vector_search == 1.5
    assert pred.first_touch_hits == 2
    assert pred.repeat_touch_hits == 0


def test_mru_engine_statistics():
    cfg = CacheConfig(cache_size=16, block_size=8, associativity=2, prediction=Prediction.MRU)
    stats = simulate(cfg, reads(0, 8, 8, 0, 0))
    pred = stats.prediction
    # 8 hits while way 1 is newest; 0 hits while way 1 is newest; 0 again while way 0 is newest
    assert pred.total_hits_observed == 3
    assert pred.first_hits == 2
    assert pred.non_first_hits == 1
    assert pred.first_hit_rate == pytest.approx(2 / 3)
    assert pred.first_touch_hits == 2
    assert pred.repeat_touch_hits == 1
    assert pred.bit_vector_observations == 0


def test_mru_way_empty_set_and_ties():
    cache_set = CacheSet(3)
    assert cache_set.mru_way() is None
    cache_set.lines[1] = CacheLine(tag=1, block_address=1, recency=4, valid=True)
    cache_set.lines[2] = CacheLine(tag=2, block_address=2, recency=4, valid=True)
    assert cache_set.mru_way() == 1


def test_victim_hits_do_not_count_as_predictions():
    cfg = CacheConfig(cache_size=8, block_size=8, associativity=1, victim_entries=1,
                      prediction=Prediction.MRU)
    stats = simulate(cfg, reads(0, 8, 0))
    assert stats.victim_hits == 1
    assert stats.prediction.total_hits_observed == 0


def test_no_prediction_has_no_prediction_stats():
    stats = simulate(CacheConfig(cache_size=16, block_size=8, associativity=2), reads(0, 0))
    assert stats.prediction is None
