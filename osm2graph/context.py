"""
Run-wide context

Defect counters and stage timers threaded explicitly through every phase.
"""

import time
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, Optional
from loguru import logger

# Defect categories
UNRESOLVED_WAY = "unresolved_way"
DUPLICATE_NODE = "duplicate_node"
DUPLICATE_WAY = "duplicate_way"
DUPLICATE_RELATION = "duplicate_relation"
DEGENERATE_EDGE = "degenerate_edge"
UNCLASSIFIED_WAY = "unclassified_way"

# Only the first few defects of each kind are logged at WARNING
_WARN_LIMIT = 5


@dataclass
class RunContext:
    """Accumulated state of one conversion run"""
    defects: Counter = field(default_factory=Counter)
    timings: Dict[str, float] = field(default_factory=dict)
    started_at: datetime = field(default_factory=datetime.now)
    _perf_start: float = field(default_factory=time.perf_counter, repr=False)
    _cpu_start: float = field(default_factory=time.process_time, repr=False)

    def record_defect(self, kind: str, detail: Optional[str] = None) -> None:
        """Count one recoverable data defect"""
        self.defects[kind] += 1
        if detail is None:
            return
        if self.defects[kind] <= _WARN_LIMIT:
            logger.warning(f"{kind}: {detail}")
        else:
            logger.debug(f"{kind}: {detail}")

    def defect_count(self, kind: str) -> int:
        return self.defects.get(kind, 0)

    @property
    def total_defects(self) -> int:
        return sum(self.defects.values())

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        """Time a pipeline stage"""
        logger.info(f"{name}...")
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self.timings[name] = self.timings.get(name, 0.0) + elapsed
            logger.debug(f"{name} took {elapsed:.3f}s")

    def elapsed(self) -> float:
        return time.perf_counter() - self._perf_start

    def cpu_time(self) -> float:
        return time.process_time() - self._cpu_start

    def log_summary(self) -> None:
        logger.info("#" * 25)
        for name, seconds in self.timings.items():
            logger.info(f"  {name}: {seconds:.3f}s")
        if self.defects:
            logger.info("Data defects (records excluded from output):")
            for kind, count in sorted(self.defects.items()):
                logger.info(f"  {kind}: {count}")
        else:
            logger.info("No data defects")
        logger.info(f"Execution started at: {self.started_at:%Y-%m-%d %H:%M:%S}")
        logger.info(f"Execution ended at:   {datetime.now():%Y-%m-%d %H:%M:%S}")
        logger.info(f"Elapsed time: {self.elapsed():.3f} Seconds.")
        logger.info(f"User CPU time: -> {self.cpu_time():.3f} seconds")
        logger.info("#" * 25)
