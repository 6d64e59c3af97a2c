from typing import Optional

MIN_OVERS = 1
MAX_OVERS = 50
MIN_PLAYERS = 3
MAX_PLAYERS = 11


def _error(field: str, message: str) -> dict:
    return {"field": field, "message": message}


class FormatValidator:
    @staticmethod
    def validate(
        overs: int,
        players_per_team: int,
        has_joker: bool = False,
        joker_name: Optional[str] = None,
    ) -> dict:
        """
        Validate a match format.

        Rules:
        1. Overs between 1 and 50
        2. Players per team between 3 and 11
        3. No joker in an 11-a-side match
        4. A joker needs a name
        """
        errors = []

        if not isinstance(overs, int) or not MIN_OVERS <= overs <= MAX_OVERS:
            errors.append(_error("overs", f"Overs must be between {MIN_OVERS} and {MAX_OVERS}, got {overs}"))

        if not isinstance(players_per_team, int) or not MIN_PLAYERS <= players_per_team <= MAX_PLAYERS:
            errors.append(_error(
                "players_per_team",
                f"Players per team must be between {MIN_PLAYERS} and {MAX_PLAYERS}, got {players_per_team}",
            ))

        if has_joker:
            if isinstance(players_per_team, int) and players_per_team >= MAX_PLAYERS:
                errors.append(_error("has_joker", f"Joker is not allowed with {MAX_PLAYERS} players per team"))
            if not joker_name or not joker_name.strip():
                errors.append(_error("joker_name", "Joker needs a name"))

        return {"valid": len(errors) == 0, "errors": errors}

    @staticmethod
    def validate_teams(teams: list, players_per_team: int) -> dict:
        """
        Validate both rosters against the format.

        Each team is a dict with "name" and "players" (list of dicts with
        at least a "name").
        """
        errors = []

        if len(teams) != 2:
            errors.append(_error("teams", f"Exactly 2 teams are needed, got {len(teams)}"))

        for i, team in enumerate(teams):
            name = team.get("name") or ""
            if not name.strip():
                errors.append(_error(f"teams[{i}].name", "Team name is required"))

            players = team.get("players") or []
            if len(players) != players_per_team:
                errors.append(_error(
                    f"teams[{i}].players",
                    f"Must have exactly {players_per_team} players, got {len(players)}",
                ))

            for j, player in enumerate(players):
                player_name = player.get("name") or ""
                if not player_name.strip():
                    errors.append(_error(f"teams[{i}].players[{j}].name", "Player name is required"))

        return {"valid": len(errors) == 0, "errors": errors}
