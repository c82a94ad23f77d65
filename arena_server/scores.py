"""Score persistence collaborator."""

from __future__ import annotations

import logging
from typing import Dict, List, Protocol


class ScoreRecorder(Protocol):
    """Receives final scores when a game ends. Calls are fire-and-forget."""

    def record_score(self, name: str, score: int) -> None:
        ...


class LoggingScoreRecorder:
    """Logs final scores and keeps each name's best one in memory."""

    def __init__(self) -> None:
        self.best: Dict[str, int] = {}

    def record_score(self, name: str, score: int) -> None:
        logging.info("Final score for %s: %d", name, score)
        if score > self.best.get(name, -1):
            self.best[name] = score

    def leaderboard(self, limit: int = 10) -> List[dict]:
        entries = sorted(self.best.items(), key=lambda item: item[1], reverse=True)
        return [{"name": name, "score": score} for name, score in entries[:limit]]
