"""SportFengur webhook receiver and live-graphics leaderboard feed."""

__version__ = "0.1.0"
