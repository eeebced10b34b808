from __future__ import annotations

import pytest

from courtside.domain.qa.intents import (
    NoParams,
    PlayerAverageParams,
    QaIntentType,
    TeamNetRatingParams,
    TopScorersParams,
    classify_question,
    extract_last_n_games,
    extract_player_name,
    extract_season,
)


def test_top_scorers_with_season() -> None:
    intent = classify_question("Who are the top scorers in 2024-25?")

    assert intent.type is QaIntentType.TOP_SCORERS_SEASON
    assert intent.confidence == pytest.approx(0.93)
    assert intent.params == TopScorersParams(season="2024-25", limit=10)


def test_player_average_with_explicit_name() -> None:
    intent = classify_question("average points for Jayson Tatum last 8 games in 2024-25")

    assert intent.type is QaIntentType.PLAYER_AVG_POINTS_LAST_N_GAMES
    assert intent.confidence == pytest.approx(0.87)
    assert intent.params == PlayerAverageParams(player_name="Jayson Tatum", last_n_games=8, season="2024-25")


def test_team_net_rating_trend() -> None:
    intent = classify_question("net rating trend for Boston Celtics in 2024-25")

    assert intent.type is QaIntentType.TEAM_NET_RATING_TREND
    assert intent.confidence == pytest.approx(0.84)
    assert intent.params == TeamNetRatingParams(team_name="Boston Celtics", season="2024-25", limit=20)


def test_unrecognised_question_is_unknown() -> None:
    intent = classify_question("Tell me a fun fact")

    assert intent.type is QaIntentType.UNKNOWN
    assert intent.confidence < 0.5
    assert intent.params == NoParams()
    assert intent.params.as_dict() == {}


def test_top_scorers_rule_wins_over_later_rules() -> None:
    intent = classify_question("Top points per game and average points for Luka Doncic")

    assert intent.type is QaIntentType.TOP_SCORERS_SEASON


def test_average_without_player_name_falls_through() -> None:
    intent = classify_question("what is the average points in the league")

    assert intent.type is QaIntentType.UNKNOWN


def test_last_n_games_cue_alone_selects_player_average() -> None:
    intent = classify_question("How did Nikola Jokic play over the last 5 games?")

    assert intent.type is QaIntentType.PLAYER_AVG_POINTS_LAST_N_GAMES
    assert isinstance(intent.params, PlayerAverageParams)
    assert intent.params.player_name == "Nikola Jokic"
    assert intent.params.last_n_games == 5
    assert intent.params.season is None


def test_net_rating_needs_a_team() -> None:
    assert classify_question("net rating trend").type is QaIntentType.UNKNOWN


def test_team_keyword_pattern() -> None:
    intent = classify_question("net rating for the team Lakers?")

    assert intent.type is QaIntentType.TEAM_NET_RATING_TREND


@pytest.mark.parametrize(
    ("question", "expected"),
    [
        ("avg ppg for Jalen Brunson last 2 games", 3),
        ("avg ppg for Jalen Brunson last 45 games", 30),
        ("avg ppg for Jalen Brunson", 10),
    ],
)
def test_last_n_games_is_clamped(question: str, expected: int) -> None:
    assert extract_last_n_games(question) == expected


def test_season_extraction() -> None:
    assert extract_season("top scorers 2023-24 please") == "2023-24"
    assert extract_season("top scorers 2023-2024") is None
    assert extract_season("top scorers") is None


def test_player_name_heuristic_fallback() -> None:
    assert extract_player_name("How many points does Stephen Curry average?") == "Stephen Curry"


def test_params_serialise_with_camel_case_keys() -> None:
    params = PlayerAverageParams(player_name="Jayson Tatum", last_n_games=8, season="2024-25")

    assert params.as_dict() == {"playerName": "Jayson Tatum", "lastNGames": 8, "season": "2024-25"}
