"""
Tests for ball-by-ball innings scoring.
"""
import pytest

from app.engine.errors import (
    BatsmanAlreadyOutError,
    IllegalDeliveryError,
    IneligibleBatsmanError,
    IneligibleBowlerError,
    InvalidTransitionError,
)
from app.engine.innings_engine import LastManStanding
from app.engine.state import BALLS_PER_OVER, Delivery, ExtraType, SingleBatsman

from conftest import ball, replace_dismissed, score, started_match


class TestDeliveryProcessing:
    """Totals and stats after each delivery"""

    def test_first_over_totals(self):
        """4, 1, W, 0, 6, 1 in a 3-a-side match gives 12/1 after one over"""
        engine = started_match(overs=2, players_per_team=3)
        score(engine, [4, 1, "W", 0, 6, 1])

        innings = engine.current_innings
        assert innings.total_runs == 12
        assert innings.total_wickets == 1
        assert innings.total_legal_balls == 6
        assert innings.overs[0].completed
        assert innings.overs[0].runs_conceded == 12
        assert innings.overs[0].wickets_in_over == 1

    def test_first_over_strike_and_stats(self):
        """a3 replaces the dismissed a2; the over change puts a1 on strike"""
        engine = started_match(overs=2, players_per_team=3)
        score(engine, [4, 1, "W", 0, 6, 1])

        innings = engine.current_innings
        assert innings.active_batsmen.ids == ("a1", "a3")

        a1 = innings.batting_stats["a1"]
        assert (a1.runs, a1.balls, a1.fours) == (5, 2, 1)
        a2 = innings.batting_stats["a2"]
        assert a2.is_out and a2.balls == 1
        a3 = innings.batting_stats["a3"]
        assert (a3.runs, a3.balls, a3.sixes) == (7, 3, 1)

        bowler = innings.bowling_stats["b1"]
        assert (bowler.balls, bowler.runs, bowler.wickets) == (6, 12, 1)
        assert bowler.overs_display == "1.0"
        assert bowler.economy == 12.0

    def test_recorded_delivery_is_numbered(self):
        """The returned delivery carries striker, over and ball numbers"""
        engine = started_match()
        recorded = ball(engine, runs=2)
        assert recorded.striker_id == "a1"
        assert recorded.over_number == 1
        assert recorded.ball_number == 1

    def test_strike_rate(self):
        """Strike rate is runs per 100 balls"""
        engine = started_match()
        score(engine, [4, 0])
        assert engine.current_innings.batting_stats["a1"].strike_rate == 200.0

    def test_legal_ball_invariant(self):
        """Legal balls always equal six per completed over plus the current over's count"""
        engine = started_match(overs=3, players_per_team=4)
        sequence = [1, 0, 2, 3, 4, 0, 1, 2, 0, 6, 0]
        for i, runs in enumerate(sequence):
            if i % 3 == 1:
                ball(engine, extra=ExtraType.WIDE)
            score(engine, [runs])
            innings = engine.current_innings
            assert innings.total_legal_balls == (
                BALLS_PER_OVER * innings.completed_overs + innings.legal_balls_in_current_over
            )
            assert innings.total_legal_balls == sum(o.legal_balls for o in innings.overs)

    def test_maiden_over(self):
        """Six dot balls make a maiden"""
        engine = started_match()
        score(engine, [0] * 6)
        assert engine.current_innings.bowling_stats["b1"].maidens == 1

    def test_wide_spoils_maiden(self):
        """Penalty runs count against the over"""
        engine = started_match()
        ball(engine, extra=ExtraType.WIDE)
        score(engine, [0] * 6)
        assert engine.current_innings.bowling_stats["b1"].maidens == 0

    def test_byes_spoil_maiden(self):
        """Byes are charged to the bowler, so they count against the over"""
        engine = started_match()
        ball(engine, extra=ExtraType.BYE, extra_runs=1)
        score(engine, [0] * 5)
        assert engine.current_innings.bowling_stats["b1"].maidens == 0

    def test_shared_over_is_not_a_maiden(self):
        """A maiden needs one bowler to bowl the whole over"""
        engine = started_match()
        score(engine, [0, 0, 0])
        engine.change_bowler("b2")
        score(engine, [0, 0, 0])

        stats = engine.current_innings.bowling_stats
        assert engine.current_innings.overs[0].completed
        assert stats["b1"].maidens == 0
        assert stats["b2"].maidens == 0

    def test_negative_runs_rejected(self):
        """Runs can't go below zero"""
        engine = started_match()
        with pytest.raises(IllegalDeliveryError):
            ball(engine, runs=-1)


class TestExtras:
    """Wides, no-balls, byes and leg-byes"""

    def test_wide_with_penalty(self):
        """A wide with 3 runs is worth 4 with the penalty, and no ball counts"""
        engine = started_match()
        ball(engine, extra=ExtraType.WIDE, extra_runs=3)

        innings = engine.current_innings
        assert innings.total_runs == 4
        assert innings.extras == 4
        assert innings.total_legal_balls == 0
        striker = engine.batting_stats()[0]
        assert (striker.runs, striker.balls) == (0, 0)
        bowler = innings.bowling_stats["b1"]
        assert (bowler.runs, bowler.balls) == (4, 0)

    def test_wide_without_penalty(self):
        """Turning the penalty off leaves just the scored runs"""
        engine = started_match(wide_penalty=False)
        ball(engine, extra=ExtraType.WIDE, extra_runs=3)
        assert engine.current_innings.total_runs == 3

    def test_no_ball_runs_not_credited_to_batsman(self):
        """Runs hit off a no-ball go to the team, not the batsman"""
        engine = started_match()
        ball(engine, runs=4, extra=ExtraType.NO_BALL)

        innings = engine.current_innings
        assert innings.total_runs == 5
        assert innings.extras == 1
        assert innings.total_legal_balls == 0
        striker = innings.batting_stats["a1"]
        assert (striker.runs, striker.balls, striker.fours) == (0, 0, 0)

    def test_no_ball_without_penalty(self):
        engine = started_match(no_ball_penalty=False)
        ball(engine, extra=ExtraType.NO_BALL)
        assert engine.current_innings.total_runs == 0
        assert engine.current_innings.total_legal_balls == 0

    @pytest.mark.parametrize("extra", [ExtraType.BYE, ExtraType.LEG_BYE])
    def test_byes_go_to_team_only(self, extra):
        """Byes are a legal ball faced, with the runs to the team"""
        engine = started_match()
        ball(engine, extra=extra, extra_runs=2)

        innings = engine.current_innings
        assert innings.total_runs == 2
        assert innings.extras == 2
        assert innings.total_legal_balls == 1
        striker = innings.batting_stats["a1"]
        assert (striker.runs, striker.balls) == (0, 1)

    def test_wide_cannot_have_runs_off_bat(self):
        engine = started_match()
        with pytest.raises(IllegalDeliveryError):
            ball(engine, runs=1, extra=ExtraType.WIDE)


class TestDismissedStriker:
    """A dismissed batsman cannot face again"""

    def test_named_dismissed_striker_rejected(self):
        """Naming an out batsman raises and changes nothing"""
        engine = started_match(overs=2, players_per_team=4)
        ball(engine, wicket=True)
        replace_dismissed(engine)
        before = engine.current_innings.to_dict()

        with pytest.raises(BatsmanAlreadyOutError):
            ball(engine, runs=4, striker_id="a1")
        assert engine.current_innings.to_dict() == before

    def test_dismissed_on_strike_rejected(self):
        """Bowling before the dismissed batsman is replaced is rejected"""
        engine = started_match()
        ball(engine, wicket=True)
        with pytest.raises(IllegalDeliveryError):
            ball(engine, runs=1)
        assert engine.current_innings.total_runs == 0

    def test_bye_to_dismissed_striker_rejected(self):
        engine = started_match()
        ball(engine, wicket=True)
        with pytest.raises(BatsmanAlreadyOutError):
            ball(engine, extra=ExtraType.BYE, extra_runs=1)

    def test_striker_not_at_crease_rejected(self):
        """Only batsmen at the crease can face"""
        engine = started_match()
        with pytest.raises(IllegalDeliveryError):
            ball(engine, striker_id="a3")


class TestCompletion:
    """When an innings ends"""

    def test_completes_on_overs(self):
        """All overs bowled ends the innings"""
        engine = started_match(overs=1)
        score(engine, [0] * 6)
        assert engine.current_innings.is_completed

    def test_completes_on_wicket_ceiling(self):
        """Standard mode with 3 players ends at 2 wickets"""
        engine = started_match(overs=5, players_per_team=3)
        score(engine, ["W", "W"])

        innings = engine.current_innings
        assert innings.is_completed
        assert innings.total_wickets == 2

    def test_single_batsman_all_out(self):
        """Single-batsman mode ends only when every player is out"""
        engine = started_match(overs=5, players_per_team=3, is_single_side=True)
        score(engine, ["W", "W"])
        assert not engine.current_innings.is_completed

        score(engine, ["W"])
        innings = engine.current_innings
        assert innings.is_completed
        assert innings.total_wickets == 3

    def test_no_delivery_after_completion(self):
        """A completed innings rejects further balls"""
        engine = started_match(overs=1)
        score(engine, [0] * 6)
        with pytest.raises(IllegalDeliveryError):
            ball(engine, runs=1)

    def test_no_delivery_after_match_completed(self):
        """Once the chase is won another ball is an illegal delivery"""
        engine = started_match(overs=1)
        score(engine, [2])
        engine.end_innings_early()
        engine.open_second_innings(["b1", "b2"], "a1")
        score(engine, [4])

        with pytest.raises(IllegalDeliveryError):
            ball(engine)

    def test_end_early(self):
        """Ending early completes the innings; a second call is rejected"""
        engine = started_match()
        score(engine, [1, 2])
        engine.end_innings_early()
        assert engine.current_innings.is_completed

        with pytest.raises(InvalidTransitionError):
            engine.end_innings_early()


class TestBowlerEligibility:
    """No bowler bowls two overs in a row"""

    def test_same_bowler_cannot_open_next_over(self):
        """Bowling the next over without a change is rejected"""
        engine = started_match()
        score(engine, [0] * 6)
        with pytest.raises(IneligibleBowlerError):
            engine.record_delivery(Delivery(bowler_id="b1"))

    def test_change_to_previous_bowler_rejected(self):
        engine = started_match()
        score(engine, [0] * 6)
        with pytest.raises(IneligibleBowlerError):
            engine.change_bowler("b1")

    def test_change_to_non_fielder_rejected(self):
        """Batting-side players can't bowl"""
        engine = started_match()
        with pytest.raises(IneligibleBowlerError):
            engine.change_bowler("a1")

    def test_eligible_bowlers(self):
        """Everyone but the last over's bowler"""
        engine = started_match()
        assert engine.eligible_bowlers() == ["b1", "b2", "b3"]
        score(engine, [0] * 6)
        assert engine.eligible_bowlers() == ["b2", "b3"]

    def test_change_between_overs_opens_new_over(self):
        """The new bowler's first ball starts over 2"""
        engine = started_match()
        score(engine, [0] * 6)
        engine.change_bowler("b2")
        recorded = ball(engine)
        assert (recorded.over_number, recorded.ball_number) == (2, 1)
        assert engine.current_over.bowler_id == "b2"

    def test_mid_over_change_finishes_current_over(self):
        """A mid-over replacement carries on the same over"""
        engine = started_match()
        score(engine, [1, 0])
        engine.change_bowler("b2")
        recorded = ball(engine)

        innings = engine.current_innings
        assert recorded.over_number == 1
        assert len(innings.overs) == 1
        assert innings.bowling_stats["b1"].balls == 2
        assert innings.bowling_stats["b2"].balls == 1

        score(engine, [0, 0, 0])
        assert engine.eligible_bowlers() == ["b1", "b3"]

    def test_wrong_bowler_mid_over_rejected(self):
        """A delivery must come from the current over's bowler"""
        engine = started_match()
        ball(engine)
        with pytest.raises(IllegalDeliveryError):
            engine.record_delivery(Delivery(bowler_id="b2"))


class TestBatsmanChanges:
    """Bringing in new batsmen"""

    def test_new_batsman_takes_same_end(self):
        engine = started_match(players_per_team=4)
        ball(engine, wicket=True)
        engine.change_batsman("a1", "a3")
        assert engine.current_innings.active_batsmen.ids == ("a3", "a2")

    def test_out_player_must_be_at_crease(self):
        engine = started_match(players_per_team=4)
        with pytest.raises(IneligibleBatsmanError):
            engine.change_batsman("a3", "a4")

    def test_dismissed_player_cannot_return(self):
        """A dismissed batsman can't be sent back in"""
        engine = started_match(players_per_team=4)
        ball(engine, wicket=True)
        engine.change_batsman("a1", "a3")
        ball(engine, wicket=True)
        with pytest.raises(IneligibleBatsmanError):
            engine.change_batsman("a3", "a1")

    def test_already_batting_rejected(self):
        engine = started_match(players_per_team=4)
        with pytest.raises(IneligibleBatsmanError):
            engine.change_batsman("a1", "a2")

    def test_other_team_rejected(self):
        engine = started_match(players_per_team=4)
        with pytest.raises(IneligibleBatsmanError):
            engine.change_batsman("a1", "b3")

    def test_eligible_batsmen(self):
        """Roster minus the crease and the dismissed"""
        engine = started_match(players_per_team=4)
        assert engine.eligible_batsmen() == ["a3", "a4"]
        ball(engine, wicket=True)
        engine.change_batsman("a1", "a3")
        assert engine.eligible_batsmen() == ["a4"]


class TestLastManStanding:
    """One batsman left in two-batsman mode"""

    def test_not_last_man_with_two_batting(self):
        engine = started_match()
        assert engine.is_last_man_standing() == LastManStanding(is_last_man=False)

    def test_last_man_after_wicket(self):
        """One out, one not out reports the survivor"""
        engine = started_match()
        ball(engine, wicket=True)
        assert engine.is_last_man_standing() == LastManStanding(is_last_man=True, remaining_batsman_id="a2")

    def test_no_last_man_once_innings_is_over(self):
        """The wicket that ends the innings leaves nobody to bat on"""
        engine = started_match(overs=5, players_per_team=3)
        score(engine, ["W", "W"])
        assert engine.current_innings.is_completed
        assert engine.is_last_man_standing() is None

    def test_single_side_has_no_last_man(self):
        engine = started_match(is_single_side=True)
        assert engine.is_last_man_standing() is None

    def test_switch_to_single_batting(self):
        """The survivor bats alone and keeps the strike after odd runs"""
        engine = started_match(overs=3, players_per_team=3)
        ball(engine, wicket=True)
        engine.switch_to_single_batting("a2")

        innings = engine.current_innings
        assert isinstance(innings.active_batsmen, SingleBatsman)
        ball(engine, runs=1)
        assert innings.active_batsmen.on_strike == "a2"

    def test_last_man_out_ends_innings(self):
        """The wicket ceiling is unchanged by switching to single batting"""
        engine = started_match(overs=3, players_per_team=3)
        ball(engine, wicket=True)
        engine.switch_to_single_batting("a2")
        ball(engine, wicket=True)
        assert engine.current_innings.is_completed

    def test_switch_requires_not_out_batsman(self):
        engine = started_match()
        ball(engine, wicket=True)
        with pytest.raises(IneligibleBatsmanError):
            engine.switch_to_single_batting("a1")

    def test_switch_twice_rejected(self):
        engine = started_match()
        engine.switch_to_single_batting("a1")
        with pytest.raises(InvalidTransitionError):
            engine.switch_to_single_batting("a1")


class TestJoker:
    """The shared player turns out for both sides under separate identities"""

    def joker_match(self):
        return started_match(overs=2, players_per_team=3, has_joker=True, joker_name="Sam")

    def test_joker_available_to_both_sides(self):
        engine = self.joker_match()
        assert "joker@A" in engine.eligible_batsmen()
        assert "joker@B" in engine.eligible_bowlers()
        assert engine.match.player_name("joker@A") == "Sam"

    def test_joker_raises_wicket_ceiling(self):
        """3 players plus the joker can lose 3 wickets"""
        engine = self.joker_match()
        assert engine.match.config.max_wickets == 3

    def test_joker_out_for_one_side_still_plays_for_the_other(self):
        """Dismissing joker@A leaves joker@B free to bowl and bat"""
        engine = self.joker_match()
        engine.change_batsman("a2", "joker@A")
        ball(engine, wicket=True, striker_id="joker@A")

        assert engine.current_innings.is_dismissed("joker@A")
        assert "joker@A" not in engine.eligible_batsmen()
        assert "joker@B" in engine.eligible_bowlers()

        engine.end_innings_early()
        engine.open_second_innings(["b1", "joker@B"], "a1")
        assert "joker@A" in engine.eligible_bowlers()
        ball(engine, runs=1, striker_id="joker@B")
        assert engine.current_innings.batting_stats["joker@B"].runs == 1

    def test_joker_can_bowl(self):
        """joker@B can take the ball for the fielding side"""
        engine = self.joker_match()
        engine.change_bowler("joker@B")
        ball(engine, wicket=True)
        assert engine.current_innings.bowling_stats["joker@B"].wickets == 1
