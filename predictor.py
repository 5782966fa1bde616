# predictor.py
"""
Way predictors.

Each predictor exposes the same small surface so the engine never has to
check which one it holds:

    observe(cache_set, set_index, block_address) -> observation
    mark(set_index, block_address, way)
    clear(set_index, block_address, way)
    victim_hint(set_index, line, way) -> 0 or 1
    record(observation, way, stats)
    inserts_at_lru

Prediction never changes whether an access hits. It only contributes
statistics and, for the multi-column table, an eviction hint.
"""
import enum

MAX_TRACKED_WAYS = 32


class Prediction(enum.Enum):
    NONE = "none"
    MRU = "mru"
    MULTI_COLUMN = "multi-column"

    @classmethod
    def parse(cls, value) -> "Prediction":
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower().replace("_", "-")
        if name == "multicolumn":
            name = "multi-column"
        for mode in cls:
            if mode.value == name:
                return mode
        raise ValueError(f"unknown prediction mode {value!r}")


class NoPredictor:
    inserts_at_lru = False

    def observe(self, cache_set, set_index, block_address):
        return None

    def mark(self, set_index, block_address, way):
        pass

    def clear(self, set_index, block_address, way):
        pass

    def victim_hint(self, set_index, line, way):
        return 0

    def record(self, observation, way, stats):
        pass


class MruPredictor:
    """
    Predicts the most recently stamped way of the set.
    Paired with LRU insertion: a line filled over a victim inherits the
    victim's stamp, so single-use blocks stay first in line for eviction.
    """
    inserts_at_lru = True

    def observe(self, cache_set, set_index, block_address):
        return cache_set.mru_way()

    def mark(self, set_index, block_address, way):
        pass

    def clear(self, set_index, block_address, way):
        pass

    def victim_hint(self, set_index, line, way):
        return 0

    def record(self, observation, way, stats):
        stats.record_prediction(observation == way)


def column_count(ways: int) -> int:
    if ways <= 1:
        columns = 1
    elif ways <= 4:
        columns = 2
    elif ways <= 8:
        columns = 4
    else:
        columns = 8
    return max(1, min(columns, ways))


class MultiColumnPredictor:
    """
    One bit-vector per (set, column). Bit w set means way w holds a line
    whose block falls in that column.
    """
    inserts_at_lru = False

    def __init__(self, num_sets: int, ways: int):
        self.num_sets = num_sets
        self.num_columns = column_count(ways)
        self.bits = [0] * (num_sets * self.num_columns)

    def column(self, block_address: int) -> int:
        if self.num_columns == 1:
            return 0
        return (block_address // self.num_sets) % self.num_columns

    def _slot(self, set_index: int, block_address: int) -> int:
        return set_index * self.num_columns + self.column(block_address)

    def observe(self, cache_set, set_index, block_address):
        return self.bits[self._slot(set_index, block_address)]

    def mark(self, set_index, block_address, way):
        if way >= MAX_TRACKED_WAYS:
            return
        self.bits[self._slot(set_index, block_address)] |= 1 << way

    def clear(self, set_index, block_address, way):
        if way >= MAX_TRACKED_WAYS:
            return
        self.bits[self._slot(set_index, block_address)] &= ~(1 << way)

    def victim_hint(self, set_index, line, way):
        bits = self.observe(None, set_index, line.block_address)
        return (bits >> way) & 1

    def record(self, observation, way, stats):
        bits = observation
        if bits == 0:
            stats.record_prediction(False)
            stats.record_bit_vector_search(0)
            return
        mask = 1 << way
        if bits & mask:
            rank = bin(bits & (mask - 1)).count("1") + 1
        else:
            rank = bin(bits).count("1")
        stats.record_prediction(rank == 1)
        stats.record_bit_vector_search(rank)


def make_predictor(mode: Prediction, num_sets: int, ways: int):
    if mode is Prediction.MRU:
        return MruPredictor()
    if mode is Prediction.MULTI_COLUMN:
        return MultiColumnPredictor(num_sets, ways)
    return NoPredictor()
