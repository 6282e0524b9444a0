"""UniVote: university election services (voter registry, elections, ballots, results)."""

__version__ = "1.0.0"
