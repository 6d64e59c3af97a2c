"""
Innings engine - applies deliveries to one innings.

Every operation validates before it mutates, so a rejected call leaves the
innings untouched. Batting and bowling stats are built only from deliveries,
which is what lets a stored innings be rebuilt by replaying its balls.
"""
import logging
from dataclasses import dataclass, replace
from typing import Optional

from app.engine.errors import (
    BatsmanAlreadyOutError,
    IllegalDeliveryError,
    IneligibleBatsmanError,
    IneligibleBowlerError,
    InvalidTransitionError,
)
from app.engine.format_config import BALLS_PER_OVER, FormatConfig
from app.engine.roster import team_identities
from app.engine.state import (
    BatsmanPair,
    BatsmanStats,
    BowlerStats,
    Delivery,
    ExtraType,
    Innings,
    Over,
    SingleBatsman,
    Team,
    active_batsmen_from_ids,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LastManStanding:
    is_last_man: bool
    remaining_batsman_id: Optional[str] = None


class InningsEngine:
    """Scores one innings ball by ball"""

    def __init__(self, innings: Innings, config: FormatConfig, batting_team: Team, bowling_team: Team):
        self.innings = innings
        self.config = config
        self.batting_team = batting_team
        self.bowling_team = bowling_team

    @classmethod
    def open(
        cls,
        number: int,
        config: FormatConfig,
        batting_team: Team,
        bowling_team: Team,
        opening_batsmen: list[str],
        opening_bowler: str,
        target: Optional[int] = None,
    ) -> "InningsEngine":
        """Validate the openers and create a fresh innings"""
        if len(opening_batsmen) != config.batsmen_at_crease:
            raise IneligibleBatsmanError(
                ",".join(opening_batsmen),
                f"Need {config.batsmen_at_crease} opening batsmen, got {len(opening_batsmen)}",
            )
        if len(set(opening_batsmen)) != len(opening_batsmen):
            raise IneligibleBatsmanError(opening_batsmen[0], "Opening batsmen must be different players")

        batting_ids = team_identities(batting_team, config)
        for player_id in opening_batsmen:
            if player_id not in batting_ids:
                raise IneligibleBatsmanError(player_id, f"{player_id} does not bat for {batting_team.name}")

        if opening_bowler not in team_identities(bowling_team, config):
            raise IneligibleBowlerError(opening_bowler, f"{opening_bowler} does not bowl for {bowling_team.name}")

        innings = Innings(
            number=number,
            batting_team_id=batting_team.id,
            bowling_team_id=bowling_team.id,
            active_batsmen=active_batsmen_from_ids(opening_batsmen),
            target=target,
            current_bowler_id=opening_bowler,
        )
        return cls(innings, config, batting_team, bowling_team)

    @classmethod
    def rebuild(cls, data: dict, config: FormatConfig, batting_team: Team, bowling_team: Team) -> "InningsEngine":
        """
        Rebuild a stored innings by replaying its deliveries in
        (over number, ball number) order.

        Totals, overs and every batting/bowling aggregate come out of the
        replay; only the crease, current bowler and completion flag are
        taken from the stored record.
        """
        innings = Innings(
            number=data["number"],
            batting_team_id=data["batting_team_id"],
            bowling_team_id=data["bowling_team_id"],
            active_batsmen=active_batsmen_from_ids(data["active_batsman_ids"]),
            target=data.get("target"),
        )
        engine = cls(innings, config, batting_team, bowling_team)

        for over_data in sorted(data.get("overs", []), key=lambda o: o["number"]):
            over = Over(number=over_data["number"], bowler_id=over_data["bowler_id"])
            innings.overs.append(over)
            deliveries = sorted(
                (Delivery.from_dict(d) for d in over_data.get("deliveries", [])),
                key=lambda d: d.ball_number or 0,
            )
            for delivery in deliveries:
                engine._accumulate(delivery, over)

        innings.current_bowler_id = data.get("current_bowler_id")
        innings.is_completed = bool(data.get("is_completed")) or engine.completion_reached()

        for key in ("total_runs", "total_wickets", "total_legal_balls"):
            stored = data.get(key)
            if stored is not None and stored != getattr(innings, key):
                logger.warning(
                    "Innings %s replay mismatch on %s: stored=%s replayed=%s",
                    innings.number, key, stored, getattr(innings, key),
                )
        return engine

    # Queries

    @property
    def on_strike(self) -> str:
        return self.innings.active_batsmen.on_strike

    def completion_reached(self) -> bool:
        innings = self.innings
        if innings.total_wickets >= self.config.max_wickets:
            return True
        if innings.total_legal_balls >= self.config.max_legal_balls:
            return True
        if innings.target is not None and innings.total_runs >= innings.target:
            return True
        return False

    def penalty_runs(self, delivery: Delivery) -> int:
        if delivery.extra is None:
            return 0
        if delivery.extra.type == ExtraType.WIDE and self.config.wide_penalty:
            return 1
        if delivery.extra.type == ExtraType.NO_BALL and self.config.no_ball_penalty:
            return 1
        return 0

    def eligible_batsmen(self) -> list[str]:
        """Players who may come in next: roster plus joker, minus the crease and the dismissed"""
        active = self.innings.active_batsmen.ids
        return [
            pid for pid in team_identities(self.batting_team, self.config)
            if pid not in active and not self.innings.is_dismissed(pid)
        ]

    def eligible_bowlers(self) -> list[str]:
        last = self.innings.last_completed_over
        barred = last.bowler_id if last else None
        return [pid for pid in team_identities(self.bowling_team, self.config) if pid != barred]

    def is_last_man_standing(self) -> Optional[LastManStanding]:
        """
        In two-batsman mode, report when one batsman at the crease is out
        and the other is not. Single-batsman and completed innings return None.
        """
        if self.innings.is_completed:
            return None
        active = self.innings.active_batsmen
        if isinstance(active, SingleBatsman):
            return None
        not_out = [pid for pid in active.ids if not self.innings.is_dismissed(pid)]
        if len(not_out) == 1:
            return LastManStanding(is_last_man=True, remaining_batsman_id=not_out[0])
        return LastManStanding(is_last_man=False)

    def batsman_stats(self, player_id: str) -> BatsmanStats:
        return self.innings.batting_stats.get(player_id) or BatsmanStats(player_id=player_id)

    def bowler_stats(self, player_id: str) -> BowlerStats:
        return self.innings.bowling_stats.get(player_id) or BowlerStats(player_id=player_id)

    # Operations

    def record_delivery(self, delivery: Delivery) -> Delivery:
        """Apply one ball. Returns the delivery as recorded (striker, over and ball filled in)."""
        innings = self.innings
        if innings.is_completed:
            raise IllegalDeliveryError(f"Innings {innings.number} is already completed")
        if delivery.runs_off_bat < 0 or (delivery.extra is not None and delivery.extra.runs < 0):
            raise IllegalDeliveryError("Runs cannot be negative")
        if delivery.extra is not None and delivery.extra.type == ExtraType.WIDE and delivery.runs_off_bat:
            raise IllegalDeliveryError("A wide cannot have runs off the bat")

        striker_id = self._resolve_striker(delivery.striker_id)

        over = innings.current_over
        if over is None:
            self._check_can_open_over(delivery.bowler_id)
        elif delivery.bowler_id != over.bowler_id:
            raise IllegalDeliveryError(
                f"Over {over.number} is being bowled by {over.bowler_id}; change the bowler first"
            )

        # Validated - from here on nothing can fail
        active = innings.active_batsmen
        if isinstance(active, BatsmanPair) and active.striker_id != striker_id:
            innings.active_batsmen = active.rotated()

        if over is None:
            over = Over(number=len(innings.overs) + 1, bowler_id=delivery.bowler_id)
            innings.overs.append(over)
            innings.current_bowler_id = delivery.bowler_id

        active = innings.active_batsmen
        recorded = replace(
            delivery,
            striker_id=striker_id,
            non_striker_id=active.non_striker_id if isinstance(active, BatsmanPair) else None,
            over_number=over.number,
            ball_number=len(over.deliveries) + 1,
        )
        over_completed = self._accumulate(recorded, over)
        self._rotate_strike(recorded, over_completed)

        logger.debug(
            "Innings %s ball %s.%s: %s/%s",
            innings.number, recorded.over_number, recorded.ball_number,
            innings.total_runs, innings.total_wickets,
        )

        if self.completion_reached():
            innings.is_completed = True
            logger.info(
                "Innings %s completed at %s/%s (%s overs)",
                innings.number, innings.total_runs, innings.total_wickets, innings.overs_display,
            )
        return recorded

    def change_bowler(self, new_bowler_id: str):
        """
        Hand the ball to another bowler. Between overs the next delivery
        opens a fresh over; mid-over the new bowler finishes the current one.
        """
        innings = self.innings
        if innings.is_completed:
            raise InvalidTransitionError(f"Innings {innings.number} is already completed")
        self._check_bowler(new_bowler_id)

        innings.current_bowler_id = new_bowler_id
        over = innings.current_over
        if over is not None:
            over.bowler_id = new_bowler_id

    def change_batsman(self, out_player_id: str, new_player_id: str):
        """Replace one batsman at the crease; the newcomer takes the same end"""
        innings = self.innings
        if innings.is_completed:
            raise InvalidTransitionError(f"Innings {innings.number} is already completed")

        active = innings.active_batsmen
        if out_player_id not in active.ids:
            raise IneligibleBatsmanError(out_player_id, f"{out_player_id} is not at the crease")
        self._check_incoming_batsman(new_player_id)

        if isinstance(active, SingleBatsman):
            innings.active_batsmen = SingleBatsman(new_player_id)
        elif active.striker_id == out_player_id:
            innings.active_batsmen = BatsmanPair(new_player_id, active.non_striker_id)
        else:
            innings.active_batsmen = BatsmanPair(active.striker_id, new_player_id)

    def switch_to_single_batting(self, remaining_batsman_id: str):
        innings = self.innings
        if innings.is_completed:
            raise InvalidTransitionError(f"Innings {innings.number} is already completed")

        active = innings.active_batsmen
        if isinstance(active, SingleBatsman):
            raise InvalidTransitionError("Innings is already in single-batsman mode")
        if remaining_batsman_id not in active.ids:
            raise IneligibleBatsmanError(remaining_batsman_id, f"{remaining_batsman_id} is not at the crease")
        if innings.is_dismissed(remaining_batsman_id):
            raise IneligibleBatsmanError(remaining_batsman_id, f"{remaining_batsman_id} is already out")

        innings.active_batsmen = SingleBatsman(remaining_batsman_id)

    def end_early(self):
        innings = self.innings
        if innings.is_completed:
            raise InvalidTransitionError(f"Innings {innings.number} is already completed")
        innings.is_completed = True
        logger.info("Innings %s ended early at %s/%s", innings.number, innings.total_runs, innings.total_wickets)

    def without_last_delivery(self) -> tuple["InningsEngine", Delivery]:
        """
        Replay the innings minus its latest delivery. The crease and bowler
        go back to how they stood when that ball was bowled, which also
        reverses any batsman change made after it.
        """
        data = self.innings.to_dict()
        if not data["overs"]:
            raise InvalidTransitionError(f"No delivery to undo in innings {self.innings.number}")

        last_over = data["overs"][-1]
        undone = Delivery.from_dict(last_over["deliveries"].pop())
        if last_over["deliveries"]:
            last_over["bowler_id"] = undone.bowler_id
        else:
            data["overs"].pop()

        crease = [undone.striker_id]
        if undone.non_striker_id is not None:
            crease.append(undone.non_striker_id)
        data["active_batsman_ids"] = crease
        data["current_bowler_id"] = undone.bowler_id
        data["is_completed"] = False
        for key in ("total_runs", "total_wickets", "total_legal_balls"):
            data.pop(key, None)

        return InningsEngine.rebuild(data, self.config, self.batting_team, self.bowling_team), undone

    # Internals

    def _resolve_striker(self, striker_id: Optional[str]) -> str:
        innings = self.innings
        if striker_id is None:
            striker_id = innings.active_batsmen.on_strike
        if innings.is_dismissed(striker_id):
            raise BatsmanAlreadyOutError(striker_id)
        if striker_id not in innings.active_batsmen.ids:
            raise IllegalDeliveryError(f"{striker_id} is not at the crease")
        return striker_id

    def _check_bowler(self, bowler_id: str):
        if bowler_id not in team_identities(self.bowling_team, self.config):
            raise IneligibleBowlerError(bowler_id, f"{bowler_id} does not bowl for {self.bowling_team.name}")
        last = self.innings.last_completed_over
        if last is not None and last.bowler_id == bowler_id:
            raise IneligibleBowlerError(bowler_id, f"{bowler_id} bowled the previous over")

    def _check_can_open_over(self, bowler_id: str):
        self._check_bowler(bowler_id)
        if self.innings.current_bowler_id is not None and bowler_id != self.innings.current_bowler_id:
            raise IllegalDeliveryError(
                f"Current bowler is {self.innings.current_bowler_id}; change the bowler first"
            )

    def _check_incoming_batsman(self, player_id: str):
        innings = self.innings
        if player_id not in team_identities(self.batting_team, self.config):
            raise IneligibleBatsmanError(player_id, f"{player_id} does not bat for {self.batting_team.name}")
        if innings.is_dismissed(player_id):
            raise IneligibleBatsmanError(player_id, f"{player_id} is already out")
        if player_id in innings.active_batsmen.ids:
            raise IneligibleBatsmanError(player_id, f"{player_id} is already batting")

    def _accumulate(self, delivery: Delivery, over: Over) -> bool:
        """Add a recorded delivery to the totals and stats. Returns True if it completed the over."""
        innings = self.innings
        extra_runs = (delivery.extra.runs if delivery.extra else 0) + self.penalty_runs(delivery)
        runs = delivery.runs_off_bat + extra_runs

        over.deliveries.append(delivery)
        over.runs_conceded += runs
        innings.total_runs += runs
        innings.extras += extra_runs
        if delivery.is_legal:
            innings.total_legal_balls += 1

        batsman = innings.batting_stats.setdefault(delivery.striker_id, BatsmanStats(player_id=delivery.striker_id))
        if delivery.is_legal:
            # Wides and no-balls never count as balls faced or runs to the batsman
            batsman.balls += 1
            batsman.runs += delivery.runs_off_bat
            if delivery.runs_off_bat == 4:
                batsman.fours += 1
            elif delivery.runs_off_bat == 6:
                batsman.sixes += 1

        bowler = innings.bowling_stats.setdefault(delivery.bowler_id, BowlerStats(player_id=delivery.bowler_id))
        bowler.runs += runs
        if delivery.is_legal:
            bowler.balls += 1

        if delivery.wicket is not None:
            over.wickets_in_over += 1
            innings.total_wickets += 1
            batsman.is_out = True
            batsman.dismissal_type = delivery.wicket.type.value
            bowler.wickets += 1

        if over.legal_balls >= BALLS_PER_OVER:
            over.completed = True
            # A maiden needs one bowler for the whole over
            one_bowler = all(d.bowler_id == over.bowler_id for d in over.deliveries)
            if over.runs_conceded == 0 and one_bowler:
                innings.bowling_stats.setdefault(over.bowler_id, BowlerStats(player_id=over.bowler_id)).maidens += 1
        return over.completed

    def _rotate_strike(self, delivery: Delivery, over_completed: bool):
        active = self.innings.active_batsmen
        if not isinstance(active, BatsmanPair):
            return
        # The end-of-over change is the only swap on the last ball, whatever was scored
        if over_completed or delivery.runs_off_bat % 2 == 1:
            self.innings.active_batsmen = active.rotated()
