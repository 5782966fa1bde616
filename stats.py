# stats.py
from dataclasses import asdict, dataclass
from typing import Optional

from predictor import Prediction


def _ratio(num: int, den: int) -> float:
    return num / den if den else 0.0


@dataclass(frozen=True)
class PredictionStats:
    """
    Way-prediction quality counters.

    first_hits / non_first_hits judge the predictor on every main-store hit:
    a first hit means the predicted way was the way that hit.
    first_touch_hits / repeat_touch_hits classify the same hits by the line
    instead: whether it was the line's first hit since it was installed.
    """
    mode: Prediction
    first_hits: int = 0
    non_first_hits: int = 0
    total_hits_observed: int = 0
    bit_vector_search_total: int = 0
    bit_vector_observations: int = 0
    first_touch_hits: int = 0
    repeat_touch_hits: int = 0

    @property
    def first_hit_rate(self) -> float:
        return _ratio(self.first_hits, self.total_hits_observed)

    @property
    def non_first_hit_rate(self) -> float:
        return _ratio(self.non_first_hits, self.total_hits_observed)

    @property
    def avg_bit_vector_search(self) -> float:
        return _ratio(self.bit_vector_search_total, self.bit_vector_observations)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["mode"] = self.mode.value
        d["first_hit_rate"] = self.first_hit_rate
        d["non_first_hit_rate"] = self.non_first_hit_rate
        d["avg_bit_vector_search"] = self.avg_bit_vector_search
        return d


@dataclass(frozen=True)
class CacheStats:
    accesses: int = 0
    reads: int = 0
    writes: int = 0
    hits: int = 0
    misses: int = 0
    victim_hits: int = 0
    prediction: Optional[PredictionStats] = None

    @property
    def hit_rate(self) -> float:
        return _ratio(self.hits, self.accesses)

    @property
    def miss_rate(self) -> float:
        return _ratio(self.misses, self.accesses)

    @property
    def victim_hit_ratio(self) -> float:
        return _ratio(self.victim_hits, self.hits)

    def to_dict(self) -> dict:
        return {
            "accesses": self.accesses,
            "reads": self.reads,
            "writes": self.writes,
            "hits": self.hits,
            "misses": self.misses,
            "victim_hits": self.victim_hits,
            "hit_rate": self.hit_rate,
            "miss_rate": self.miss_rate,
            "victim_hit_ratio": self.victim_hit_ratio,
            "prediction": self.prediction.to_dict() if self.prediction else None,
        }


class StatsCollector:
    """Mutable counters fed by the engine; snapshot() freezes them."""

    def __init__(self, prediction: Prediction = Prediction.NONE):
        self.mode = prediction
        self.predicting = prediction is not Prediction.NONE
        self.accesses = 0
        self.reads = 0
        self.writes = 0
        self.hits = 0
        self.misses = 0
        self.victim_hits = 0
        self.first_hits = 0
        self.non_first_hits = 0
        self.total_hits_observed = 0
        self.bit_vector_search_total = 0
        self.bit_vector_observations = 0
        self.first_touch_hits = 0
        self.repeat_touch_hits = 0

    def record_access(self, is_write: bool) -> None:
        self.accesses += 1
        if is_write:
            self.writes += 1
        else:
            self.reads += 1

    def record_hit(self, victim: bool = False) -> None:
        self.hits += 1
        if victim:
            self.victim_hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    def record_prediction(self, correct: bool) -> None:
        if not self.predicting:
            return
        self.total_hits_observed += 1
        if correct:
            self.first_hits += 1
        else:
            self.non_first_hits += 1

    def record_bit_vector_search(self, rank: int) -> None:
        if not self.predicting:
            return
        self.bit_vector_search_total += rank
        self.bit_vector_observations += 1

    def record_touch(self, first_touch: bool) -> None:
        if not self.predicting:
            return
        if first_touch:
            self.first_touch_hits += 1
        else:
            self.repeat_touch_hits += 1

    def snapshot(self) -> CacheStats:
        prediction = None
        if self.predicting:
            prediction = PredictionStats(
                mode=self.mode,
                first_hits=self.first_hits,
                non_first_hits=self.non_first_hits,
                total_hits_observed=self.total_hits_observed,
                bit_vector_search_total=self.bit_vector_search_total,
                bit_vector_observations=self.bit_vector_observations,
                first_touch_hits=self.first_touch_hits,
                repeat_touch_hits=self.repeat_touch_hits,
            )
        return CacheStats(
            accesses=self.accesses,
            reads=self.reads,
            writes=self.writes,
            hits=self.hits,
            misses=self.misses,
            victim_hits=self.victim_hits,
            prediction=prediction,
        )
