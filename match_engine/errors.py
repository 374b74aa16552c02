"""
Scheduling errors.

All failures are local validation failures raised synchronously to the caller.
Nothing here is retried by the engine.
"""


class SchedulingError(Exception):
    """Base exception for match-scheduling errors"""

    pass


class InsufficientTeamsError(SchedulingError):
    """Fewer teams than a single match requires"""

    pass


class InsufficientSeedsError(SchedulingError):
    """Fewer seeded alliances than the bracket size requires"""

    pass


class EmptyFieldSetError(SchedulingError):
    """No fields available for assignment"""

    pass


class UnsupportedTeamsPerAllianceError(SchedulingError):
    """Requested alliance size differs from the configured one"""

    pass


class StageNotFoundError(SchedulingError):
    pass


class StageNotReadyError(SchedulingError):
    """Stage prerequisites missing (no tournament attached, already completed)"""

    pass


class UnknownStageTypeError(SchedulingError):
    pass


class MatchNotFoundError(SchedulingError):
    pass


class MatchNotCompletedError(SchedulingError):
    pass


class MissingWinningAllianceError(SchedulingError):
    pass


class NoAdvancementRecordError(SchedulingError):
    """Completed match has nowhere to advance (e.g. the stage final)"""

    pass


class IncompleteBracketError(SchedulingError):
    pass


class InvalidMatchTransitionError(SchedulingError):
    pass
