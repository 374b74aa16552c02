"""
Field load balancing.

Call assign() once per match, in the order matches are created. Each call picks
a field with the lowest running count (random among ties), so after M
assignments over F fields the per-field counts differ by at most one.
"""

import logging
from typing import List, Sequence

from match_engine.errors import EmptyFieldSetError
from match_engine.services.random_source import RandomSource
from match_engine.services.records import FieldRecord

logger = logging.getLogger(__name__)


class FieldBalancer:
    def __init__(self, fields: Sequence[FieldRecord], rng: RandomSource):
        if not fields:
            raise EmptyFieldSetError("No fields available for assignment")
        self.fields: List[FieldRecord] = list(fields)
        self.counts: List[int] = [0] * len(self.fields)
        self.rng = rng

    def assign(self) -> FieldRecord:
        min_count = min(self.counts)
        candidates = [idx for idx, count in enumerate(self.counts) if count == min_count]
        chosen = candidates[self.rng.randrange(len(candidates))]
        self.counts[chosen] += 1
        field = self.fields[chosen]
        logger.debug("Assigned field %s (count now %d)", field.id, self.counts[chosen])
        return field

    def counts_by_field(self) -> dict:
        return {f.id: count for f, count in zip(self.fields, self.counts)}
