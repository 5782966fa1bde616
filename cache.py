# cache.py
import enum
import logging
from dataclasses import dataclass

from predictor import Prediction, make_predictor
from stats import StatsCollector

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a configuration mapping cannot be turned into a CacheConfig."""


class AccessKind(enum.Enum):
    READ = "R"
    WRITE = "W"


class Outcome(enum.Enum):
    HIT = "hit"
    VICTIM_HIT = "victim-hit"
    MISS = "miss"


@dataclass(frozen=True)
class Access:
    kind: AccessKind
    address: int

    @property
    def is_write(self) -> bool:
        return self.kind is AccessKind.WRITE


@dataclass(frozen=True)
class CacheConfig:
    """
    Geometry and policy of one simulated cache.
    Degenerate values (0 ways, block bigger than the cache) are normalized
    to at least one set of one way instead of being rejected.
    """
    cache_size: int = 256 * 1024
    block_size: int = 32
    associativity: int = 4
    victim_entries: int = 0
    prediction: Prediction = Prediction.NONE

    @property
    def ways(self) -> int:
        return max(1, self.associativity)

    @property
    def block_bytes(self) -> int:
        return max(1, self.block_size)

    @property
    def num_sets(self) -> int:
        blocks = max(1, self.cache_size // self.block_bytes)
        return max(1, blocks // self.ways)

    def decode(self, address: int):
        """Split a byte address into (block_address, set_index, tag)."""
        block_address = address // self.block_bytes
        num_sets = self.num_sets
        return block_address, block_address % num_sets, block_address // num_sets

    @classmethod
    def from_dict(cls, cfg: dict) -> "CacheConfig":
        defaults = cls()
        try:
            return cls(
                cache_size=int(cfg.get("cache_size_bytes", defaults.cache_size)),
                block_size=int(cfg.get("block_size_bytes", defaults.block_size)),
                associativity=int(cfg.get("associativity", defaults.associativity)),
                victim_entries=int(cfg.get("victim_entries", defaults.victim_entries)),
                prediction=Prediction.parse(cfg.get("prediction", defaults.prediction.value)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid cache configuration: {exc}") from exc

    def label(self) -> str:
        return (f"{self.cache_size}B/{self.block_size}B/{self.associativity}-way"
                f" victim={self.victim_entries} prediction={self.prediction.value}")


@dataclass
class CacheLine:
    tag: int = -1
    block_address: int = -1
    recency: int = 0
    valid: bool = False
    dirty: bool = False
    first_touch_pending: bool = True


class CacheSet:
    """Fixed array of way slots for one set index."""

    def __init__(self, ways: int):
        self.lines = [CacheLine() for _ in range(ways)]

    def find(self, tag: int):
        for way, line in enumerate(self.lines):
            if line.valid and line.tag == tag:
                return way
        return None

    def empty_way(self):
        for way, line in enumerate(self.lines):
            if not line.valid:
                return way
        return None

    def mru_way(self):
        # Highest stamp wins, lowest way on a tie.
        best = None
        for way, line in enumerate(self.lines):
            if line.valid and (best is None or line.recency > self.lines[best].recency):
                best = way
        return best

    def touch(self, way: int, tick: int, is_write: bool) -> bool:
        """
        Refresh the line at `way` for a hit.
        Returns True when this is the first hit since the line was installed.
        """
        line = self.lines[way]
        line.recency = tick
        if is_write:
            line.dirty = True
        first_touch = line.first_touch_pending
        line.first_touch_pending = False
        return first_touch

    def victim_way(self, set_index: int, predictor) -> int:
        return min(
            range(len(self.lines)),
            key=lambda way: (predictor.victim_hint(set_index, self.lines[way], way),
                             self.lines[way].recency,
                             way),
        )

    def install(self, line: CacheLine, set_index: int, predictor):
        """
        Place `line` in an empty slot, or evict a victim chosen with the
        predictor's hint. Returns (way, evicted_line_or_None).
        """
        way = self.empty_way()
        if way is not None:
            self.lines[way] = line
            return way, None
        way = self.victim_way(set_index, predictor)
        evicted = self.lines[way]
        if predictor.inserts_at_lru:
            line.recency = evicted.recency
        self.lines[way] = line
        return way, evicted


class VictimBuffer:
    """Small fully-associative store of lines evicted from the main sets."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        self.entries = []

    def __len__(self):
        return len(self.entries)

    def take(self, block_address: int):
        for idx, line in enumerate(self.entries):
            if line.block_address == block_address:
                return self.entries.pop(idx)
        return None

    def insert(self, line: CacheLine, tick: int) -> None:
        if self.capacity <= 0 or not line.valid:
            return
        line.recency = tick
        if len(self.entries) >= self.capacity:
            oldest = min(range(len(self.entries)), key=lambda idx: self.entries[idx].recency)
            del self.entries[oldest]
        self.entries.append(line)


class CacheEngine:
    """
    Set-associative cache model with optional victim buffer and way predictor.
    One engine replays one trace; build a new one per run.
    """

    def __init__(self, config: CacheConfig, miss_sink=None):
        self.config = config
        self.num_sets = config.num_sets
        self.sets = [CacheSet(config.ways) for _ in range(self.num_sets)]
        self.victim = VictimBuffer(config.victim_entries) if config.victim_entries > 0 else None
        self.predictor = make_predictor(config.prediction, self.num_sets, config.ways)
        self.stats = StatsCollector(config.prediction)
        self.miss_sink = miss_sink
        self.tick = 1
        self.index = 0
        logger.debug("engine: %s, %d sets", config.label(), self.num_sets)

    def process(self, access: Access) -> Outcome:
        self.stats.record_access(access.is_write)
        block_address, set_index, tag = self.config.decode(access.address)
        cache_set = self.sets[set_index]
        # Prediction is judged against the state before this access.
        observation = self.predictor.observe(cache_set, set_index, block_address)

        way = cache_set.find(tag)
        if way is not None:
            first_touch = cache_set.touch(way, self.tick, access.is_write)
            self.predictor.mark(set_index, block_address, way)
            self.stats.record_hit()
            self.stats.record_touch(first_touch)
            self.predictor.record(observation, way, self.stats)
            outcome = Outcome.HIT
        else:
            line = self.victim.take(block_address) if self.victim is not None else None
            if line is not None:
                line.first_touch_pending = False
                outcome = Outcome.VICTIM_HIT
                self.stats.record_hit(victim=True)
            else:
                line = CacheLine(tag=tag, block_address=block_address, valid=True)
                outcome = Outcome.MISS
                self.stats.record_miss()
            line.recency = self.tick
            if access.is_write:
                line.dirty = True
            self._install(set_index, line)
            self._emit(access, outcome)

        self.tick += 1
        self.index += 1
        return outcome

    def run(self, trace):
        for access in trace:
            self.process(access)
        stats = self.stats.snapshot()
        logger.debug("run complete: %d accesses, hit rate %.4f", stats.accesses, stats.hit_rate)
        return stats

    def _install(self, set_index: int, line: CacheLine) -> int:
        way, evicted = self.sets[set_index].install(line, set_index, self.predictor)
        if evicted is not None:
            self.predictor.clear(set_index, evicted.block_address, way)
            if self.victim is not None:
                self.victim.insert(evicted, self.tick)
        self.predictor.mark(set_index, line.block_address, way)
        return way

    def _emit(self, access: Access, outcome: Outcome) -> None:
        if self.miss_sink is None:
            return
        self.miss_sink.write(
            f"{self.index} {access.kind.value} 0x{access.address:x} {outcome.value}\n")


def simulate(config: CacheConfig, trace, miss_sink=None):
    return CacheEngine(config, miss_sink=miss_sink).run(trace)
