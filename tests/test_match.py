"""Tests for the match controller."""

import random

import pytest

from pixter.config import GameConfig, ScoringConfig
from pixter.errors import InvalidTransition, ValidationError
from pixter.game_engine import EndReason
from pixter.gateways import Judgment, JudgmentGateway
from pixter.heuristic import HeuristicJudge, PlaceholderImageGenerator
from pixter.match import Match, MatchStatus, other_player
from pixter.round import RoundOutcome


class ScriptedJudge(JudgmentGateway):
    """Judge that is correct only for guesses listed in `correct_guesses`."""

    def __init__(self, correct_guesses=("right",)):
        self.correct_guesses = set(correct_guesses)

    def judge(self, original, guess):
        return Judgment(correct=guess in self.correct_guesses)


class FixedRandom(random.Random):
    """Random source whose choice() always picks a given index."""

    def __init__(self, index):
        super().__init__(0)
        self.index = index

    def choice(self, seq):
        return seq[self.index]


def make_match(target_score=10, policy="target", first=0, judge=None, **config_kwargs):
    config = GameConfig(
        player_names=["P1", "P2"],
        target_score=target_score,
        scoring=ScoringConfig(policy=policy, **config_kwargs),
    )
    return Match(
        generator=PlaceholderImageGenerator(),
        judge=judge or ScriptedJudge(),
        config=config,
        rng=FixedRandom(first),
    )


def win_round(match):
    round = match.current_round
    round.submit_description("a thing")
    round.submit_guess("right")
    return round


def lose_round(match):
    round = match.current_round
    round.submit_description("a thing")
    for guess in ("wrong 1", "wrong 2", "wrong 3"):
        round.submit_guess(guess)
    return round


class TestMatchLifecycle:
    """Test cases for start, advance and reset."""

    def test_initial_state(self):
        """Test that a new match has not started."""
        match = make_match()
        assert match.status is MatchStatus.NOT_STARTED
        assert match.current_round is None
        assert match.scores == {1: 0, 2: 0}

    def test_start_creates_first_round(self):
        """Test that start picks a describer and creates a round."""
        match = make_match(first=0)
        round = match.start()

        assert match.status is MatchStatus.IN_PROGRESS
        assert match.describer_id == 1
        assert match.guesser_id == 2
        assert round is match.current_round
        assert round.describer_id == 1
        assert round.guesser_id == 2
        assert round.attempts == ()

    def test_start_uses_injected_random_source(self):
        """Test that the seeded source decides the first describer."""
        match = make_match(first=1)
        match.start()
        assert match.describer_id == 2

    def test_seeded_start_is_reproducible(self):
        """Test that equal seeds give equal starting players."""
        starts = []
        for _ in range(2):
            match = Match(PlaceholderImageGenerator(), HeuristicJudge(), rng=random.Random(1234))
            match.start()
            starts.append(match.describer_id)
        assert starts[0] == starts[1]

    def test_start_names_and_blank_defaults(self):
        """Test that blank names fall back to the defaults."""
        match = make_match()
        match.start(player_names=["Ada", "  "])
        assert match.players[1].name == "Ada"
        assert match.players[2].name == "Erna the Blue"

    def test_names_fixed_during_match(self):
        """Test that renaming is refused while a match runs."""
        match = make_match()
        match.rename_player(1, "Ada")
        assert match.players[1].name == "Ada"

        match.start(player_names=["Ada", "Bob"])
        with pytest.raises(InvalidTransition):
            match.rename_player(1, "Eve")

    def test_advance_requires_terminal_round(self):
        """Test that a pending round cannot be skipped."""
        match = make_match()
        match.start()
        with pytest.raises(InvalidTransition):
            match.advance_round()

    def test_advance_before_start_is_invalid(self):
        """Test that advancing a match that has not started is refused."""
        match = make_match()
        with pytest.raises(InvalidTransition):
            match.advance_round()

    def test_describer_alternates(self):
        """Test that roles strictly alternate across rounds."""
        match = make_match(first=0)
        match.start()
        describers = [match.describer_id]
        for i in range(6):
            if i % 2:
                win_round(match)
            else:
                lose_round(match)
            match.advance_round()
            describers.append(match.current_round.describer_id)

        assert describers == [1, 2, 1, 2, 1, 2, 1]

    def test_new_round_resets_attempts(self):
        """Test that attempt counting restarts every round."""
        match = make_match()
        match.start()
        lose_round(match)
        round = match.advance_round()
        assert round.attempts == ()
        assert round.description == ""
        assert round.outcome is RoundOutcome.PENDING

    def test_reset(self):
        """Test that reset returns to the initial state."""
        match = make_match()
        match.start()
        win_round(match)
        old_round = match.current_round

        match.reset()
        assert match.status is MatchStatus.NOT_STARTED
        assert match.scores == {1: 0, 2: 0}
        assert match.current_round is None
        assert match.describer_id is None
        assert old_round.is_frozen

    def test_restart_after_game_over(self):
        """Test that a finished match can be started again from zero."""
        match = make_match(target_score=1)
        match.start()
        win_round(match)
        assert match.is_over

        match.start()
        assert match.status is MatchStatus.IN_PROGRESS
        assert match.scores == {1: 0, 2: 0}
        assert match.end is None

    def test_baseline_score(self):
        """Test that scores start at the configured baseline."""
        config = GameConfig(baseline=5, target_score=10)
        match = Match(PlaceholderImageGenerator(), ScriptedJudge(), config=config, rng=FixedRandom(0))
        match.start()
        assert match.scores == {1: 5, 2: 5}


class TestTargetScoring:
    """Test cases for the default target-score policy."""

    def test_example_scenario(self):
        """Test the red bicycle example from start to the role swap."""
        match = Match(
            PlaceholderImageGenerator(),
            HeuristicJudge(),
            config=GameConfig(player_names=["P1", "P2"], target_score=10),
            rng=FixedRandom(0),
        )
        round = match.start()
        round.submit_description("a red bicycle")

        attempt = round.submit_guess("a blue bicycle")
        assert attempt.correct is False
        assert attempt.closeness == pytest.approx(0.5)
        assert round.outcome is RoundOutcome.PENDING

        round.submit_guess("a red bicycle")
        assert round.outcome is RoundOutcome.CORRECT
        assert match.scores == {1: 0, 2: 1}
        assert match.status is MatchStatus.IN_PROGRESS

        next_round = match.advance_round()
        assert next_round.describer_id == 2

    def test_correct_awards_guesser_once(self):
        """Test that a correct round is worth exactly one point."""
        match = make_match()
        match.start()
        round = win_round(match)

        assert match.scores == {1: 0, 2: 1}
        # Scoring the same round again changes nothing
        assert match.apply_round_outcome(round) is False
        assert match.scores == {1: 0, 2: 1}

    def test_max_attempts_scores_nothing(self):
        """Test that running out of guesses is free."""
        match = make_match()
        match.start()
        round = lose_round(match)

        assert round.outcome is RoundOutcome.MAX_ATTEMPTS_REACHED
        assert len(round.attempts) == 3
        assert match.scores == {1: 0, 2: 0}

    def test_give_up_scores_nothing(self):
        """Test that giving up is free."""
        match = make_match()
        round = match.start()
        round.submit_description("a thing")
        round.submit_guess("wrong")
        round.give_up()

        assert round.outcome is RoundOutcome.GAVE_UP
        assert match.scores == {1: 0, 2: 0}
        assert match.round_points(round) == {1: 0, 2: 0}

    def test_points_per_correct(self):
        """Test a custom award per correct round."""
        match = make_match(points_per_correct=3)
        match.start()
        win_round(match)
        assert match.scores[2] == 3

    def test_win_exactly_at_target(self):
        """Test that the match ends on the round reaching the target, not before."""
        match = make_match(target_score=3, first=0)
        match.start()

        # Player 2 guesses in rounds 1, 3, 5
        for round_index in range(5):
            assert match.status is MatchStatus.IN_PROGRESS
            if match.current_round.guesser_id == 2:
                win_round(match)
            else:
                lose_round(match)
            if round_index < 4:
                match.advance_round()

        assert match.scores == {1: 0, 2: 3}
        assert match.status is MatchStatus.OVER
        assert match.end_reason is EndReason.TARGET_REACHED
        assert match.winner_id == 2

    def test_no_rounds_after_game_over(self):
        """Test that a finished match refuses new rounds and guesses."""
        match = make_match(target_score=1)
        match.start()
        round = win_round(match)

        assert match.is_over
        with pytest.raises(InvalidTransition):
            match.advance_round()
        with pytest.raises(InvalidTransition):
            round.give_up()

    def test_apply_requires_terminal_round(self):
        """Test that scoring a pending round is refused."""
        match = make_match()
        round = match.start()
        with pytest.raises(InvalidTransition):
            match.apply_round_outcome(round)

    def test_apply_rejects_foreign_round(self):
        """Test that only the current round can be scored."""
        match = make_match()
        match.start()
        old = lose_round(match)
        match.advance_round()
        with pytest.raises(InvalidTransition):
            match.apply_round_outcome(old)

    def test_completed_rounds_tracked(self):
        """Test that finished rounds are kept in order."""
        match = make_match()
        match.start()
        first = lose_round(match)
        match.advance_round()
        second = win_round(match)
        assert match.completed_rounds == [first, second]


class TestPenaltyScoring:
    """Test cases for the penalty-floor policy."""

    def test_wrong_guess_costs_guesser(self):
        """Test that each wrong guess is charged immediately."""
        match = make_match(policy="penalty")
        round = match.start()
        round.submit_description("a thing")
        round.submit_guess("wrong 1")
        assert match.scores == {1: 0, 2: -10}
        round.submit_guess("wrong 2")
        assert match.scores == {1: 0, 2: -20}

    def test_correct_guess_ends_match(self):
        """Test that the first correct guess wins outright."""
        match = make_match(policy="penalty")
        match.start()
        round = match.current_round
        round.submit_description("a thing")
        round.submit_guess("wrong")
        round.submit_guess("right")

        assert match.is_over
        assert match.end_reason is EndReason.CORRECT_GUESS
        assert match.winner_id == 2
        assert match.scores[2] == -10

    def test_floor_ends_match_mid_round(self):
        """Test that reaching the floor ends the match before the round ends."""
        match = make_match(policy="penalty", floor=-20)
        round = match.start()
        round.submit_description("a thing")
        round.submit_guess("wrong 1")
        assert not match.is_over
        round.submit_guess("wrong 2")

        assert match.is_over
        assert match.end_reason is EndReason.FLOOR_REACHED
        assert match.winner_id == 1
        assert round.outcome is RoundOutcome.PENDING
        assert round.is_frozen
        with pytest.raises(InvalidTransition):
            round.submit_guess("right")
        assert match.scores == {1: 0, 2: -20}

    def test_floor_accumulates_across_rounds(self):
        """Test that the floor is reached over several rounds."""
        match = make_match(policy="penalty", floor=-50)
        match.start()
        rounds = 0
        while not match.is_over:
            round = match.current_round
            round.submit_description("a thing")
            for guess in ("wrong 1", "wrong 2", "wrong 3"):
                if round.is_frozen:
                    break
                round.submit_guess(guess)
            rounds += 1
            if not match.is_over:
                match.advance_round()

        assert match.end_reason is EndReason.FLOOR_REACHED
        assert min(match.scores.values()) == -50
        assert rounds == 3

    def test_round_points(self):
        """Test the per-round delta shown to players."""
        match = make_match(policy="penalty")
        round = match.start()
        round.submit_description("a thing")
        round.submit_guess("wrong")
        round.give_up()
        assert match.round_points(round) == {1: 0, 2: -10}


class TestHelpers:
    def test_other_player(self):
        assert other_player(1) == 2
        assert other_player(2) == 1
        with pytest.raises(ValueError):
            other_player(3)

    def test_to_dict(self):
        match = make_match()
        match.start()
        snapshot = match.to_dict()
        assert snapshot["status"] == "in_progress"
        assert snapshot["players"] == {1: "P1", 2: "P2"}
        assert snapshot["current_round"]["outcome"] == "pending"


class TestPlayerNames:
    """Test cases for validating player names on start."""

    def test_too_few_names(self):
        """Test that a single name is refused before anything changes."""
        match = make_match()
        with pytest.raises(ValidationError):
            match.start(player_names=["Ada"])
        assert match.status is MatchStatus.NOT_STARTED
        assert match.current_round is None
        assert match.players[2].name == "P2"

    def test_too_many_names(self):
        match = make_match()
        with pytest.raises(ValidationError):
            match.start(player_names=["Ada", "Bob", "Eve"])
        assert match.status is MatchStatus.NOT_STARTED

    def test_invalid_names_keep_running_match(self):
        """Test that a bad restart leaves the current round playable."""
        match = make_match()
        round = match.start()
        with pytest.raises(ValidationError):
            match.start(player_names=[])
        assert match.current_round is round
        assert not round.is_frozen

    def test_names_from_new_config(self):
        match = make_match()
        match.start(config=GameConfig(player_names=["Ada", "Bob"]))
        assert match.players[1].name == "Ada"
        assert match.players[2].name == "Bob"
