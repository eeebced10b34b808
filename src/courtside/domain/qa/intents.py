"""Rule-based intent classification for analytics questions.

Rules are evaluated in a fixed order and the first match wins:

1. top scorers for a season
2. a player's average points over their last N games
3. a team's net rating trend
4. anything else is ``UNKNOWN``
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

__all__ = (
    "NoParams",
    "PlayerAverageParams",
    "QaIntent",
    "QaIntentType",
    "TeamNetRatingParams",
    "TopScorersParams",
    "classify_question",
    "extract_last_n_games",
    "extract_player_name",
    "extract_season",
    "extract_team_name",
)

DEFAULT_LAST_N_GAMES = 10
MIN_LAST_N_GAMES = 3
MAX_LAST_N_GAMES = 30

SEASON_RE = re.compile(r"\b(\d{4}-\d{2})\b")
LAST_N_GAMES_RE = re.compile(r"last\s+(\d{1,2})\s+games?", re.IGNORECASE)
LAST_N_GAMES_CUE_RE = re.compile(r"last\s+\d+\s+games?")
PLAYER_EXPLICIT_RE = re.compile(r"(?:for|of)\s+([A-Za-z .'-]+?)(?:\s+last\s+\d+|\?|$)", re.IGNORECASE)
PLAYER_HEURISTIC_RE = re.compile(r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+){1,2})")
TEAM_EXPLICIT_RE = re.compile(r"(?:for|of)\s+([A-Za-z .'-]+?)(?:\s+(?:in|during|this|last)|\?|$)", re.IGNORECASE)
TEAM_KEYWORD_RE = re.compile(r"team\s+([A-Za-z .'-]+?)(?:\?|$)", re.IGNORECASE)


class QaIntentType(StrEnum):
    TOP_SCORERS_SEASON = "TOP_SCORERS_SEASON"
    PLAYER_AVG_POINTS_LAST_N_GAMES = "PLAYER_AVG_POINTS_LAST_N_GAMES"
    TEAM_NET_RATING_TREND = "TEAM_NET_RATING_TREND"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class TopScorersParams:
    season: str | None = None
    limit: int = 10

    def as_dict(self) -> dict[str, Any]:
        return {"season": self.season, "limit": self.limit}


@dataclass(frozen=True, slots=True)
class PlayerAverageParams:
    player_name: str
    last_n_games: int = DEFAULT_LAST_N_GAMES
    season: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {"playerName": self.player_name, "lastNGames": self.last_n_games, "season": self.season}


@dataclass(frozen=True, slots=True)
class TeamNetRatingParams:
    team_name: str
    season: str | None = None
    limit: int = 20

    def as_dict(self) -> dict[str, Any]:
        return {"teamName": self.team_name, "season": self.season, "limit": self.limit}


@dataclass(frozen=True, slots=True)
class NoParams:
    def as_dict(self) -> dict[str, Any]:
        return {}


IntentParams = TopScorersParams | PlayerAverageParams | TeamNetRatingParams | NoParams


@dataclass(frozen=True, slots=True)
class QaIntent:
    type: QaIntentType
    confidence: float
    params: IntentParams = field(default_factory=NoParams)


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


def extract_season(question: str) -> str | None:
    match = SEASON_RE.search(question)
    return match.group(1) if match else None


def extract_last_n_games(question: str) -> int:
    match = LAST_N_GAMES_RE.search(question)
    if match is None:
        return DEFAULT_LAST_N_GAMES
    return _clamp(int(match.group(1)), MIN_LAST_N_GAMES, MAX_LAST_N_GAMES)


def extract_player_name(question: str) -> str | None:
    """Take the name after "for"/"of", else the first run of two or three capitalised words."""
    explicit = PLAYER_EXPLICIT_RE.search(question)
    if explicit and explicit.group(1).strip():
        return explicit.group(1).strip()
    heuristic = PLAYER_HEURISTIC_RE.search(question)
    return heuristic.group(1).strip() if heuristic else None


def extract_team_name(question: str) -> str | None:
    explicit = TEAM_EXPLICIT_RE.search(question)
    if explicit and explicit.group(1).strip():
        return explicit.group(1).strip()
    keyword = TEAM_KEYWORD_RE.search(question)
    if keyword and keyword.group(1).strip():
        return keyword.group(1).strip()
    return None


def _asks_for_top_scorers(text: str) -> bool:
    return (("top" in text or "leading" in text) and any(cue in text for cue in ("scorer", "points", "ppg"))) or (
        "top scorers" in text
    )


def _asks_for_average_points(text: str) -> bool:
    return (("average" in text or "avg" in text) and ("points" in text or "ppg" in text)) or bool(
        LAST_N_GAMES_CUE_RE.search(text)
    )


def _asks_for_net_rating_trend(text: str) -> bool:
    return "net rating" in text and ("trend" in text or "team" in text)


def classify_question(question: str) -> QaIntent:
    """Map a free-text question onto one of the supported report intents.

    Args:
        question: The question as typed by the user

    Returns:
        The first matching intent, or ``UNKNOWN`` with low confidence
    """
    text = question.lower()
    season = extract_season(question)

    if _asks_for_top_scorers(text):
        return QaIntent(
            type=QaIntentType.TOP_SCORERS_SEASON,
            confidence=0.93,
            params=TopScorersParams(season=season),
        )

    if _asks_for_average_points(text):
        player_name = extract_player_name(question)
        if player_name:
            return QaIntent(
                type=QaIntentType.PLAYER_AVG_POINTS_LAST_N_GAMES,
                confidence=0.87,
                params=PlayerAverageParams(
                    player_name=player_name,
                    last_n_games=extract_last_n_games(question),
                    season=season,
                ),
            )

    if _asks_for_net_rating_trend(text):
        team_name = extract_team_name(question)
        if team_name:
            return QaIntent(
                type=QaIntentType.TEAM_NET_RATING_TREND,
                confidence=0.84,
                params=TeamNetRatingParams(team_name=team_name, season=season),
            )

    return QaIntent(type=QaIntentType.UNKNOWN, confidence=0.2)
