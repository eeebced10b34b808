"""Report templates, one per supported intent."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from courtside.domain.qa.intents import (
    PlayerAverageParams,
    QaIntent,
    QaIntentType,
    TeamNetRatingParams,
    TopScorersParams,
)

if TYPE_CHECKING:
    from courtside.domain.qa.analytics import AnalyticsSource

__all__ = (
    "CAPABILITIES_ANSWER",
    "FALLBACK_SEASON",
    "QaResult",
    "QaTable",
    "execute_template",
    "normalize_season",
)

FALLBACK_SEASON = "2025-26"
CAPABILITIES_ANSWER = (
    "I can currently answer: top scorers by season, player average points over last N games, "
    "and team net rating trends."
)

_SEASON_FORMAT = re.compile(r"^\d{4}-\d{2}$")

Cell = str | int | float | None


@dataclass(frozen=True, slots=True)
class QaTable:
    columns: list[str]
    rows: list[list[Cell]]


@dataclass(frozen=True, slots=True)
class QaResult:
    answer: str
    table: QaTable | None = None
    chart_spec: dict[str, Any] | None = None


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


async def normalize_season(season: str | None, source: AnalyticsSource) -> str:
    """Keep a well-formed ``YYYY-YY`` season, else use the latest known one."""
    if season and _SEASON_FORMAT.match(season):
        return season
    return await source.latest_season() or FALLBACK_SEASON


async def top_scorers(params: TopScorersParams, source: AnalyticsSource, row_limit: int) -> QaResult:
    season = await normalize_season(params.season, source)
    limit = _clamp(params.limit, 3, row_limit)
    rows = await source.top_scorers(season, limit)
    if not rows:
        return QaResult(answer=f"No scoring data was found for season {season}.")
    return QaResult(
        answer=f"Top scorers for {season} are ranked by regular-season points per game.",
        table=QaTable(
            columns=["Player", "Team", "Games", "PPG"],
            rows=[[row.player_name, row.team_abbrev, row.games, row.ppg] for row in rows],
        ),
        chart_spec={
            "type": "bar",
            "x": [row.player_name for row in rows],
            "y": [row.ppg for row in rows],
            "title": f"Top scorers ({season})",
        },
    )


async def player_average_points(params: PlayerAverageParams, source: AnalyticsSource, row_limit: int) -> QaResult:
    player_name = params.player_name.strip()
    if not player_name:
        return QaResult(answer="Please include a player name for this question.")

    season = await normalize_season(params.season, source)
    last_n_games = _clamp(params.last_n_games, 3, min(30, row_limit))
    player = await source.find_player(player_name)
    if player is None:
        return QaResult(answer=f'I couldn\'t find a player matching "{player_name}".')

    games = await source.player_game_log(player.player_id, season, last_n_games)
    if not games:
        return QaResult(answer=f"No game logs were found for {player.full_name} in {season}.")

    average = sum(game.points for game in games) / len(games)
    chronological = list(reversed(games))
    return QaResult(
        answer=(
            f"{player.full_name} averaged {average:.2f} points across the last {len(games)} "
            f"regular-season games in {season}."
        ),
        table=QaTable(
            columns=["Game Date", "Opponent", "Points"],
            rows=[[game.game_date, game.opponent_team_abbrev, game.points] for game in games],
        ),
        chart_spec={
            "type": "line",
            "x": [game.game_date for game in chronological],
            "y": [game.points for game in chronological],
            "title": f"{player.full_name} points trend",
        },
    )


async def team_net_rating_trend(params: TeamNetRatingParams, source: AnalyticsSource, row_limit: int) -> QaResult:
    team_name = params.team_name.strip()
    if not team_name:
        return QaResult(answer="Please include a team name for this net rating question.")

    season = await normalize_season(params.season, source)
    limit = _clamp(params.limit, 5, min(40, row_limit))
    team = await source.find_team(team_name)
    if team is None:
        return QaResult(answer=f'I couldn\'t resolve a team matching "{team_name}".')

    rows = await source.team_net_rating_trend(team.team_abbrev, season, limit)
    if not rows:
        return QaResult(answer=f"No net rating trend rows were found for {team.team_name} in {season}.")

    average = sum(row.net_rating for row in rows) / len(rows)
    chronological = list(reversed(rows))
    return QaResult(
        answer=(
            f"{team.team_name} posted an average net rating of {average:.2f} over the latest "
            f"{len(rows)} regular-season games in {season}."
        ),
        table=QaTable(
            columns=["Game Date", "Net Rating"],
            rows=[[row.game_date, row.net_rating] for row in rows],
        ),
        chart_spec={
            "type": "line",
            "x": [row.game_date for row in chronological],
            "y": [row.net_rating for row in chronological],
            "title": f"{team.team_abbrev} net rating trend ({season})",
        },
    )


async def execute_template(intent: QaIntent, source: AnalyticsSource, row_limit: int) -> QaResult:
    """Run the report template for ``intent`` with result sizes capped at ``row_limit``."""
    params = intent.params
    if intent.type is QaIntentType.TOP_SCORERS_SEASON and isinstance(params, TopScorersParams):
        return await top_scorers(params, source, row_limit)
    if intent.type is QaIntentType.PLAYER_AVG_POINTS_LAST_N_GAMES and isinstance(params, PlayerAverageParams):
        return await player_average_points(params, source, row_limit)
    if intent.type is QaIntentType.TEAM_NET_RATING_TREND and isinstance(params, TeamNetRatingParams):
        return await team_net_rating_trend(params, source, row_limit)
    return QaResult(answer=CAPABILITIES_ANSWER)
