"""Match scheduling engine: qualification schedules, Swiss rounds and elimination brackets."""

__version__ = "0.1.0"
