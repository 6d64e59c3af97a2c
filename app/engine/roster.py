"""
Team rosters and the shared joker.

The joker is a single configured player who can turn out for either side.
While fielding or batting for a team it carries that team's scoped id
(``joker@<team_id>``), and the two scoped ids are tracked independently.
"""
from typing import Optional
from uuid import uuid4

from app.engine.errors import ValidationError
from app.engine.format_config import FormatConfig
from app.engine.state import Player, PlayerRole, Team, joker_id
from app.validators.format_validator import FormatValidator


def _new_id() -> str:
    return uuid4().hex


def build_teams(teams: list[dict], config: FormatConfig) -> list[Team]:
    """
    Validate both rosters and build Team objects.

    Each team dict has "name", optional "id", and "players": a list of dicts
    with "name" and optional "id" / "role".
    """
    result = FormatValidator.validate_teams(teams, config.players_per_team)
    if not result["valid"]:
        raise ValidationError(result["errors"])

    built = []
    for team in teams:
        players = [
            Player(
                id=p.get("id") or _new_id(),
                name=p["name"].strip(),
                role=PlayerRole(p.get("role") or PlayerRole.BATSMAN.value),
            )
            for p in team["players"]
        ]
        built.append(Team(id=team.get("id") or _new_id(), name=team["name"].strip(), players=players))

    if built[0].id == built[1].id:
        raise ValidationError([{"field": "teams[1].id", "message": "Team ids must differ"}])

    all_ids = [pid for t in built for pid in t.player_ids]
    if len(all_ids) != len(set(all_ids)):
        raise ValidationError([{"field": "teams", "message": "Player ids must be unique across both teams"}])

    return built


def team_identities(team: Team, config: FormatConfig) -> list[str]:
    """Every player id that can play for this team, joker included"""
    ids = team.player_ids
    if config.has_joker:
        ids = ids + [joker_id(team.id)]
    return ids


def find_player(team: Team, player_id: str, config: FormatConfig) -> Optional[Player]:
    if config.has_joker and player_id == joker_id(team.id):
        return Player(id=player_id, name=config.joker_name, role=PlayerRole.ALL_ROUNDER)
    for player in team.players:
        if player.id == player_id:
            return player
    return None
