"""Read-only queries against the basketball analytics views."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sqlalchemy import text

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = (
    "AnalyticsRepository",
    "AnalyticsSource",
    "PlayerGame",
    "PlayerMatch",
    "ScorerRow",
    "TeamMatch",
    "TeamRatingRow",
)


@dataclass(frozen=True, slots=True)
class ScorerRow:
    player_id: str
    player_name: str
    team_abbrev: str | None
    games: int
    ppg: float


@dataclass(frozen=True, slots=True)
class PlayerMatch:
    player_id: str
    full_name: str


@dataclass(frozen=True, slots=True)
class PlayerGame:
    game_date: str | None
    opponent_team_abbrev: str | None
    points: float


@dataclass(frozen=True, slots=True)
class TeamMatch:
    team_id: str
    team_abbrev: str
    team_name: str


@dataclass(frozen=True, slots=True)
class TeamRatingRow:
    game_date: str | None
    net_rating: float


@runtime_checkable
class AnalyticsSource(Protocol):
    async def latest_season(self) -> str | None: ...

    async def top_scorers(self, season: str, limit: int) -> list[ScorerRow]: ...

    async def find_player(self, name: str) -> PlayerMatch | None: ...

    async def player_game_log(self, player_id: str, season: str, limit: int) -> list[PlayerGame]: ...

    async def find_team(self, name: str) -> TeamMatch | None: ...

    async def team_net_rating_trend(self, team_abbrev: str, season: str, limit: int) -> list[TeamRatingRow]: ...


_LATEST_SEASON = text("SELECT season FROM v_games ORDER BY season DESC LIMIT 1")

_TOP_SCORERS = text(
    """
    SELECT
      player_id,
      player_name,
      MAX(team_abbrev) AS team_abbrev,
      COUNT(*) AS games,
      ROUND(CAST(AVG(points) AS NUMERIC), 2) AS ppg
    FROM v_player_game_logs
    WHERE season = :season
      AND season_type = 'regular'
    GROUP BY player_id, player_name
    HAVING COUNT(*) >= 5
    ORDER BY ppg DESC
    LIMIT :limit
    """
)

_FIND_PLAYER = text(
    """
    SELECT player_id, full_name
    FROM v_players
    WHERE LOWER(full_name) LIKE '%' || LOWER(:name) || '%'
    ORDER BY full_name ASC
    LIMIT 1
    """
)

_PLAYER_GAME_LOG = text(
    """
    SELECT game_date, opponent_team_abbrev, points
    FROM v_player_game_logs
    WHERE player_id = :player_id
      AND season = :season
      AND season_type = 'regular'
    ORDER BY COALESCE(game_date, '1900-01-01') DESC, game_id DESC
    LIMIT :limit
    """
)

_FIND_TEAM = text(
    """
    SELECT team_id, team_abbrev, team_name
    FROM v_teams
    WHERE LOWER(team_name) LIKE '%' || LOWER(:name) || '%'
       OR team_abbrev = UPPER(:name)
    ORDER BY team_abbrev
    LIMIT 1
    """
)

_TEAM_NET_RATING = text(
    """
    SELECT game_date, ROUND(CAST(net_rating AS NUMERIC), 2) AS net_rating
    FROM v_team_game_ratings
    WHERE season = :season
      AND season_type = 'regular'
      AND team_abbrev = :team_abbrev
    ORDER BY COALESCE(game_date, '1900-01-01') DESC, game_id DESC
    LIMIT :limit
    """
)


class AnalyticsRepository:
    """SQL implementation of :class:`AnalyticsSource`.

    Each query opens its own short-lived session so a cancelled query never
    leaves a shared session mid-statement.
    """

    def __init__(self, session_factory: Callable[[], Any]) -> None:
        self.session_factory = session_factory

    async def _fetch(self, statement: Any, **params: Any) -> list[Any]:
        async with self.session_factory() as db_session:
            result = await db_session.execute(statement, params)
            return list(result.mappings().all())

    async def latest_season(self) -> str | None:
        rows = await self._fetch(_LATEST_SEASON)
        return str(rows[0]["season"]) if rows else None

    async def top_scorers(self, season: str, limit: int) -> list[ScorerRow]:
        rows = await self._fetch(_TOP_SCORERS, season=season, limit=limit)
        return [
            ScorerRow(
                player_id=str(row["player_id"]),
                player_name=row["player_name"],
                team_abbrev=row["team_abbrev"],
                games=int(row["games"]),
                ppg=float(row["ppg"]),
            )
            for row in rows
        ]

    async def find_player(self, name: str) -> PlayerMatch | None:
        rows = await self._fetch(_FIND_PLAYER, name=name)
        if not rows:
            return None
        return PlayerMatch(player_id=str(rows[0]["player_id"]), full_name=rows[0]["full_name"])

    async def player_game_log(self, player_id: str, season: str, limit: int) -> list[PlayerGame]:
        rows = await self._fetch(_PLAYER_GAME_LOG, player_id=player_id, season=season, limit=limit)
        return [
            PlayerGame(
                game_date=None if row["game_date"] is None else str(row["game_date"]),
                opponent_team_abbrev=row["opponent_team_abbrev"],
                points=float(row["points"] or 0),
            )
            for row in rows
        ]

    async def find_team(self, name: str) -> TeamMatch | None:
        rows = await self._fetch(_FIND_TEAM, name=name)
        if not rows:
            return None
        row = rows[0]
        return TeamMatch(team_id=str(row["team_id"]), team_abbrev=row["team_abbrev"], team_name=row["team_name"])

    async def team_net_rating_trend(self, team_abbrev: str, season: str, limit: int) -> list[TeamRatingRow]:
        rows = await self._fetch(_TEAM_NET_RATING, team_abbrev=team_abbrev, season=season, limit=limit)
        return [
            TeamRatingRow(
                game_date=None if row["game_date"] is None else str(row["game_date"]),
                net_rating=float(row["net_rating"] or 0),
            )
            for row in rows
        ]
