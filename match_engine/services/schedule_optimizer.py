"""
Simulated-annealing refinement of a qualification schedule.

Score (lower is better), summed over all teams:
- partner repeats:    3.0 * (times with the same partner - 1), when > 1
- opponent repeats:   2.0 * (times against the same opponent - 1), when > 1
- separation:         10 * max(0, min_match_separation - gap) per consecutive pair of appearances
- colour imbalance:   2 * |red appearances - blue appearances|
- station spread:     0.5 * sum |station count - appearances / (2 * stations per alliance)|

A neighbour swaps the teams at two random slots in two distinct matches. The
walk accepts better neighbours always and worse ones with the Metropolis
probability exp(-delta / T). The best schedule seen is tracked separately.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from match_engine.services.random_source import RandomSource
from match_engine.services.records import AllianceColor
from match_engine.services.schedule_types import Schedule, Slot

logger = logging.getLogger(__name__)

PARTNER_REPEAT_WEIGHT = 3.0
OPPONENT_REPEAT_WEIGHT = 2.0
SEPARATION_WEIGHT = 10.0
COLOR_IMBALANCE_WEIGHT = 2.0
STATION_WEIGHT = 0.5

INITIAL_TEMPERATURE = 100.0
COOLING_RATE = 0.95
MIN_TEMPERATURE = 0.01
ITERATIONS_PER_COOLING_STEP = 100
ACCEPTANCE_CUTOFF_TEMPERATURE = 0.0001
PROGRESS_LOG_EVERY = 1000


def score_schedule(schedule: Schedule, min_match_separation: int = 1) -> float:
    """ScheduleScore for the schedule's current TeamStats."""
    stations_total = schedule.stations_per_alliance * 2
    score = 0.0
    for stats in schedule.team_stats.values():
        for count in stats.partners.values():
            if count > 1:
                score += PARTNER_REPEAT_WEIGHT * (count - 1)
        for count in stats.opponents.values():
            if count > 1:
                score += OPPONENT_REPEAT_WEIGHT * (count - 1)
        for current, following in zip(stats.appearances, stats.appearances[1:]):
            gap = following - current
            if gap < min_match_separation:
                score += SEPARATION_WEIGHT * (min_match_separation - gap)
        score += COLOR_IMBALANCE_WEIGHT * abs(stats.red_count - stats.blue_count)
        expected = len(stats.appearances) / stations_total
        for station_count in stats.station_appearances:
            score += STATION_WEIGHT * abs(station_count - expected)
    return score


def acceptance_probability(current_score: float, new_score: float, temperature: float) -> float:
    if new_score < current_score:
        return 1.0
    if temperature < ACCEPTANCE_CUTOFF_TEMPERATURE:
        return 0.0
    return math.exp(-(new_score - current_score) / temperature)


@dataclass
class OptimizationResult:
    schedule: Schedule
    initial_score: float
    best_score: float
    iterations: int
    final_temperature: float


class ScheduleOptimizer:
    def __init__(
        self,
        rng: RandomSource,
        min_match_separation: int = 1,
        initial_temperature: float = INITIAL_TEMPERATURE,
        cooling_rate: float = COOLING_RATE,
        min_temperature: float = MIN_TEMPERATURE,
        iterations_per_cooling_step: int = ITERATIONS_PER_COOLING_STEP,
    ):
        self.rng = rng
        self.min_match_separation = min_match_separation
        self.initial_temperature = initial_temperature
        self.cooling_rate = cooling_rate
        self.min_temperature = min_temperature
        self.iterations_per_cooling_step = iterations_per_cooling_step

    def score(self, schedule: Schedule) -> float:
        return score_schedule(schedule, self.min_match_separation)

    def optimize(self, schedule: Schedule, max_iterations: int) -> OptimizationResult:
        """
        Anneal a copy of `schedule`; the input is never mutated.

        Stops after max_iterations or once the temperature drops below
        min_temperature, whichever comes first.
        """
        current = schedule.copy()
        current_score = self.score(current)
        current.score = current_score
        initial_score = current_score

        if len(current.matches) < 2:
            return OptimizationResult(
                schedule=current,
                initial_score=initial_score,
                best_score=initial_score,
                iterations=0,
                final_temperature=self.initial_temperature,
            )

        best = current.copy()
        best_score = current_score
        temperature = self.initial_temperature
        iteration = 0

        while iteration < max_iterations and temperature >= self.min_temperature:
            move = self._propose_move(current)
            if move is not None:
                current.swap(*move)
                new_score = self.score(current)
                if self._accept(current_score, new_score, temperature):
                    current_score = new_score
                    if current_score < best_score:
                        best = current.copy()
                        best_score = current_score
                else:
                    # swapping the same two slots again restores the previous state
                    current.swap(*move)

            iteration += 1
            if iteration % PROGRESS_LOG_EVERY == 0:
                logger.debug(
                    "anneal iteration=%d temperature=%.4f current=%.2f best=%.2f",
                    iteration,
                    temperature,
                    current_score,
                    best_score,
                )
            if iteration % self.iterations_per_cooling_step == 0:
                temperature *= self.cooling_rate

        best.score = best_score
        logger.info(
            "Schedule optimized: score %.2f -> %.2f in %d iterations (T=%.4f)",
            initial_score,
            best_score,
            iteration,
            temperature,
        )
        return OptimizationResult(
            schedule=best,
            initial_score=initial_score,
            best_score=best_score,
            iterations=iteration,
            final_temperature=temperature,
        )

    def _accept(self, current_score: float, new_score: float, temperature: float) -> bool:
        if new_score < current_score:
            return True
        if temperature < ACCEPTANCE_CUTOFF_TEMPERATURE:
            return False
        return self.rng.random() < acceptance_probability(current_score, new_score, temperature)

    def _propose_move(self, schedule: Schedule) -> Optional[Tuple[Slot, Slot]]:
        """Random slot pair in two distinct matches, or None if the swap would duplicate a team."""
        match_count = len(schedule.matches)
        first_index = self.rng.randrange(match_count)
        second_index = self.rng.randrange(match_count - 1)
        if second_index >= first_index:
            second_index += 1

        first = Slot(first_index, self._pick_color(), self.rng.randrange(schedule.stations_per_alliance))
        second = Slot(second_index, self._pick_color(), self.rng.randrange(schedule.stations_per_alliance))

        if not schedule.swap_is_legal(first, second):
            return None
        return first, second

    def _pick_color(self) -> AllianceColor:
        return AllianceColor.RED if self.rng.random() < 0.5 else AllianceColor.BLUE
