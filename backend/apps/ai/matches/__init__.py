"""
Match infrastructure for training and evaluation.

Components:
- MatchJob / MatchResult: one training match and its awards
- MatchRunner: run a job, or benchmark a genome against a fixed opponent

Example usage:
    from apps.ai.matches import MatchRunner
    from apps.ai.players import HeuristicPlayer

    runner = MatchRunner()
    result = runner.run_job(job)
    record = runner.benchmark(champion, HeuristicPlayer('bot', seed=3), matches=20)
    print(f"Win rate vs bot: {record.win_rate:.0%}")
"""
from .runner import BenchmarkResult, MatchJob, MatchResult, MatchRunner

__all__ = [
    'BenchmarkResult',
    'MatchJob',
    'MatchResult',
    'MatchRunner',
]
