import pytest
from sqlmodel import Session, SQLModel, create_engine, func, select
from sqlalchemy.pool import StaticPool

from scio.core.time import to_ms
from scio.models import (
    Event,
    LeaderboardSnapshot,
    Match,
    MatchResult,
    MatchRound,
    MatchStatus,
    Question,
    RoundLog,
    User,
)
from scio.services.bot import bot_answer
from scio.services.errors import BadRequest, Conflict, Forbidden, NoQuestions, NotFound
from scio.services.matches import (
    ABANDONED_AFTER_MS,
    BotOpponent,
    HumanOpponent,
    complete_match,
    create_match,
    finalize_match,
    finalize_round,
    get_match_summary,
    get_match_view,
    load_rounds,
    submit_answer,
)
from scio.services.progress import ROUND_DURATION_MS
from scio.services.snapshots import export_match, restore_match


@pytest.fixture
def players(make_user, questions):
    return make_user("alice", "Alice"), make_user("bob", "Bob")


@pytest.fixture
def human_match(session, clock, rng, players):
    return create_match(session, "alice", HumanOpponent("bob"), clock, rng).match_id


@pytest.fixture
def bot_match(session, clock, rng, players):
    return create_match(session, "alice", BotOpponent(), clock, rng).match_id


def pick(round_, correct):
    return round_.correct_index if correct else (round_.correct_index + 1) % 4


def play(session, clock, match_id, a_correct, b_correct):
    """Answer every round of a human match in order."""

    for index in range(5):
        round_ = load_rounds(session, match_id)[index]
        submit_answer(session, match_id, round_.id, "alice", pick(round_, a_correct[index]), clock=clock)
        clock.advance(ms=1500)
        submit_answer(session, match_id, round_.id, "bob", pick(round_, b_correct[index]), clock=clock)
        clock.advance(ms=500)


def count(session, model, *where):
    return session.exec(select(func.count()).select_from(model).where(*where)).one()


# Creation ---------------------------------------------------------------------


def test_create_bot_match(session, bot_match):
    match = session.get(Match, bot_match)
    rounds = load_rounds(session, bot_match)
    assert match.status == MatchStatus.ACTIVE
    assert match.player_b_id is None
    assert match.rating_before_a == match.rating_before_b == 1200
    assert [r.round_index for r in rounds] == [0, 1, 2, 3, 4]
    assert len({r.question_id for r in rounds}) == 5
    assert all(r.ended_at is None for r in rounds)
    assert count(session, Event, Event.name == "bot_match_created") == 1


def test_create_bot_match_is_idempotent(session, clock, bot_match):
    again = create_match(session, "alice", BotOpponent(), clock)
    assert again.cached
    assert again.match_id == bot_match
    assert count(session, Match) == 1


def test_human_pairing_dedup_ignores_order(session, clock, human_match):
    again = create_match(session, "bob", HumanOpponent("alice"), clock)
    assert again.cached
    assert again.match_id == human_match


def test_new_match_allowed_after_completion(session, clock, bot_match):
    finalize_match(session, bot_match, clock=clock)
    fresh = create_match(session, "alice", BotOpponent(), clock)
    assert not fresh.cached
    assert fresh.match_id != bot_match


def test_timed_out_match_is_still_resumed(session, clock, bot_match):
    clock.advance(ms=ROUND_DURATION_MS)
    again = create_match(session, "alice", BotOpponent(), clock)
    assert again.cached
    assert again.match_id == bot_match


def test_abandoned_match_is_closed_before_new_start(session, clock, bot_match):
    clock.advance(ms=ROUND_DURATION_MS + ABANDONED_AFTER_MS)
    fresh = create_match(session, "alice", BotOpponent(), clock)
    assert not fresh.cached
    assert fresh.match_id != bot_match

    old = session.get(Match, bot_match)
    assert old.status == MatchStatus.COMPLETED
    assert old.dedup_key is None
    rounds = load_rounds(session, bot_match)
    assert all(r.end_reason == "timeout" for r in rounds)
    assert all(r.player_b_answer is not None for r in rounds)
    assert to_ms(rounds[-1].ended_at) == to_ms(old.started_at) + 5 * ROUND_DURATION_MS
    assert count(session, RoundLog, RoundLog.match_id == bot_match, RoundLog.time_expired) == 5
    assert session.get(Match, fresh.match_id).status == MatchStatus.ACTIVE


def test_create_rejects_self_play(session, clock, players):
    with pytest.raises(BadRequest):
        create_match(session, "alice", HumanOpponent("alice"), clock)


def test_create_unknown_player(session, clock, players):
    with pytest.raises(NotFound):
        create_match(session, "ghost", BotOpponent(), clock)
    with pytest.raises(NotFound):
        create_match(session, "alice", HumanOpponent("ghost"), clock)


def test_create_without_questions(session, clock, make_user):
    make_user("alice", "Alice")
    with pytest.raises(NoQuestions):
        create_match(session, "alice", BotOpponent(), clock)
    assert count(session, Match) == 0
    assert count(session, MatchRound) == 0


# Polling ----------------------------------------------------------------------


def test_view_rejects_strangers(session, clock, human_match, make_user):
    make_user("eve", "Eve")
    with pytest.raises(Forbidden):
        get_match_view(session, human_match, "eve", clock=clock)
    with pytest.raises(NotFound):
        get_match_view(session, "nope", "alice", clock=clock)


def test_view_hides_answers_until_round_ends(session, clock, human_match):
    view = get_match_view(session, human_match, "bob", clock=clock)
    assert view["side"] == "B"
    assert view["currentRoundIndex"] == 0
    assert "correctIndex" not in view["rounds"][0]
    assert "correctIndex" not in view["rounds"][0]["question"]
    assert len(view["rounds"][0]["question"]["options"]) == 4

    round_ = load_rounds(session, human_match)[0]
    submit_answer(session, human_match, round_.id, "alice", 0, clock=clock)
    view = get_match_view(session, human_match, "bob", clock=clock)
    assert view["rounds"][0]["opponentAnswered"] is True
    assert "opponentAnswer" not in view["rounds"][0]

    submit_answer(session, human_match, round_.id, "bob", 1, clock=clock)
    view = get_match_view(session, human_match, "bob", clock=clock)
    assert view["rounds"][0]["state"] == "ENDED"
    assert view["rounds"][0]["correctIndex"] == round_.correct_index
    assert view["rounds"][0]["opponentAnswer"] == 0
    assert view["currentRoundIndex"] == 1


def test_view_deadline_follows_previous_round_end(session, clock, human_match):
    round_ = load_rounds(session, human_match)[0]
    started_ms = get_match_view(session, human_match, "alice", clock=clock)["roundStartMs"]
    clock.advance(ms=7000)
    submit_answer(session, human_match, round_.id, "alice", 0, clock=clock)
    submit_answer(session, human_match, round_.id, "bob", 0, clock=clock)

    view = get_match_view(session, human_match, "alice", clock=clock)
    assert view["roundStartMs"] == started_ms + 7000
    assert view["roundDeadlineMs"] == started_ms + 7000 + ROUND_DURATION_MS


# Submitting -------------------------------------------------------------------


def test_round_ends_when_both_answer(session, clock, human_match):
    round_ = load_rounds(session, human_match)[0]
    first = submit_answer(session, human_match, round_.id, "alice", 0, clock=clock)
    assert (first.round_complete, first.match_complete) == (False, False)
    second = submit_answer(session, human_match, round_.id, "bob", 2, clock=clock)
    assert (second.round_complete, second.match_complete) == (True, False)

    session.refresh(round_)
    assert round_.end_reason == "answers"


def test_submit_after_round_end_is_a_noop(session, clock, human_match):
    round_ = load_rounds(session, human_match)[0]
    submit_answer(session, human_match, round_.id, "alice", 0, clock=clock)
    submit_answer(session, human_match, round_.id, "bob", 2, clock=clock)
    session.refresh(round_)
    before = (round_.player_a_answer, round_.player_a_answered_at, round_.ended_at)
    logs_before = count(session, RoundLog)

    clock.advance(ms=3000)
    replay = submit_answer(session, human_match, round_.id, "alice", 3, clock=clock)
    assert (replay.round_complete, replay.match_complete) == (True, False)
    session.refresh(round_)
    assert (round_.player_a_answer, round_.player_a_answered_at, round_.ended_at) == before
    assert count(session, RoundLog) == logs_before


def test_first_answer_wins(session, clock, human_match):
    round_ = load_rounds(session, human_match)[0]
    submit_answer(session, human_match, round_.id, "alice", 0, clock=clock)
    submit_answer(session, human_match, round_.id, "alice", 3, clock=clock)
    session.refresh(round_)
    assert round_.player_a_answer == 0
    assert round_.ended_at is None


def test_submit_to_future_round_conflicts(session, clock, human_match):
    round_ = load_rounds(session, human_match)[1]
    with pytest.raises(Conflict):
        submit_answer(session, human_match, round_.id, "alice", 0, clock=clock)


def test_submit_validates_input(session, clock, human_match, make_user):
    round_ = load_rounds(session, human_match)[0]
    with pytest.raises(BadRequest):
        submit_answer(session, human_match, round_.id, "alice", 4, clock=clock)
    with pytest.raises(NotFound):
        submit_answer(session, human_match, "missing", "alice", 0, clock=clock)
    make_user("eve", "Eve")
    with pytest.raises(Forbidden):
        submit_answer(session, human_match, round_.id, "eve", 0, clock=clock)


def test_submit_writes_round_log(session, clock, human_match):
    round_ = load_rounds(session, human_match)[0]
    clock.advance(ms=4200)
    submit_answer(session, human_match, round_.id, "alice", round_.correct_index, clock=clock, time_to_first_commit_ms=900)
    log = session.exec(select(RoundLog).where(RoundLog.user_id == "alice")).one()
    question = session.get(Question, round_.question_id)
    assert log.correct
    assert log.response_time_ms == 4200
    assert log.time_to_first_commit_ms == 900
    assert log.selected_option in question.options_json


def test_bot_answers_synchronously(session, clock, bot_match):
    round_ = load_rounds(session, bot_match)[0]
    result = submit_answer(session, bot_match, round_.id, "alice", 0, clock=clock)
    assert result.round_complete
    session.refresh(round_)
    question = session.get(Question, round_.question_id)
    bot_correct = bot_answer(str(question.id), question.difficulty)
    assert (round_.player_b_answer == round_.correct_index) == bot_correct


def test_full_bot_match_completes_and_rates(session, clock, bot_match):
    expected_bot = 0
    for index in range(5):
        round_ = load_rounds(session, bot_match)[index]
        question = session.get(Question, round_.question_id)
        expected_bot += bot_answer(str(question.id), question.difficulty)
        result = submit_answer(session, bot_match, round_.id, "alice", round_.correct_index, clock=clock)
        clock.advance(ms=2000)
    assert result.match_complete

    match = session.get(Match, bot_match)
    assert match.status == MatchStatus.COMPLETED
    assert match.score_a == 5
    assert match.score_b == expected_bot
    expected_result = MatchResult.WIN if expected_bot < 5 else MatchResult.DRAW
    assert match.result_a == expected_result
    alice = session.get(User, "alice")
    assert alice.rating == match.rating_after_a
    assert alice.rating >= 1200


# Timeouts ---------------------------------------------------------------------


def test_finalize_round_waits_for_deadline(session, clock, bot_match):
    clock.advance(ms=ROUND_DURATION_MS - 1)
    status = finalize_round(session, bot_match, "alice", clock=clock)
    assert status["roundStatus"] == "active"
    assert status["currentRoundIndex"] == 0
    assert load_rounds(session, bot_match)[0].ended_at is None


def test_finalize_round_on_timeout(session, clock, bot_match):
    clock.advance(ms=ROUND_DURATION_MS)
    status = finalize_round(session, bot_match, "alice", clock=clock)
    assert status["currentRoundIndex"] == 1
    assert status["matchComplete"] is False

    round_ = load_rounds(session, bot_match)[0]
    assert round_.end_reason == "timeout"
    assert round_.player_a_answer is None
    assert round_.player_b_answer is not None
    log = session.exec(select(RoundLog).where(RoundLog.match_id == bot_match)).one()
    assert log.user_id == "alice"
    assert log.time_expired
    assert not log.correct

    again = finalize_round(session, bot_match, "alice", clock=clock)
    assert again["currentRoundIndex"] == 1
    assert count(session, RoundLog) == 1


def test_timeout_keeps_existing_answer_log(session, clock, human_match):
    round_ = load_rounds(session, human_match)[0]
    submit_answer(session, human_match, round_.id, "alice", round_.correct_index, clock=clock)
    clock.advance(ms=ROUND_DURATION_MS)
    finalize_round(session, human_match, "bob", clock=clock)

    logs = {log.user_id: log for log in session.exec(select(RoundLog)).all()}
    assert logs["alice"].correct and not logs["alice"].time_expired
    assert logs["bob"].time_expired


def test_late_submit_after_timeout_changes_nothing(session, clock, human_match):
    clock.advance(ms=ROUND_DURATION_MS + 10)
    finalize_round(session, human_match, "alice", clock=clock)
    round_ = load_rounds(session, human_match)[0]
    result = submit_answer(session, human_match, round_.id, "alice", 0, clock=clock)
    assert result.round_complete
    session.refresh(round_)
    assert round_.player_a_answer is None


def test_submit_past_deadline_is_discarded(session, clock, bot_match):
    round_ = load_rounds(session, bot_match)[0]
    clock.advance(ms=ROUND_DURATION_MS + 500)
    result = submit_answer(session, bot_match, round_.id, "alice", round_.correct_index, clock=clock)
    assert (result.round_complete, result.match_complete) == (True, False)

    session.refresh(round_)
    assert round_.player_a_answer is None
    assert round_.player_b_answer is not None
    assert round_.end_reason == "timeout"
    log = session.exec(select(RoundLog).where(RoundLog.match_id == bot_match)).one()
    assert log.time_expired
    assert not log.correct


def test_late_answer_completes_human_round(session, clock, human_match):
    round_ = load_rounds(session, human_match)[0]
    submit_answer(session, human_match, round_.id, "alice", round_.correct_index, clock=clock)
    clock.advance(ms=ROUND_DURATION_MS)
    result = submit_answer(session, human_match, round_.id, "bob", round_.correct_index, clock=clock)
    assert result.round_complete

    session.refresh(round_)
    assert round_.player_a_answer == round_.correct_index
    assert round_.player_b_answer is None
    assert round_.end_reason == "timeout"
    assert get_match_view(session, human_match, "alice", clock=clock)["currentRoundIndex"] == 1


def test_late_answer_on_last_round_finalizes(session, clock, bot_match):
    for index in range(4):
        round_ = load_rounds(session, bot_match)[index]
        submit_answer(session, bot_match, round_.id, "alice", round_.correct_index, clock=clock)
    last = load_rounds(session, bot_match)[4]
    clock.advance(ms=ROUND_DURATION_MS)
    result = submit_answer(session, bot_match, last.id, "alice", last.correct_index, clock=clock)
    assert result.match_complete

    match = session.get(Match, bot_match)
    assert match.status == MatchStatus.COMPLETED
    assert match.score_a == 4


def test_all_rounds_time_out_into_a_draw(session, clock, human_match):
    for _ in range(5):
        clock.advance(ms=ROUND_DURATION_MS)
        status = finalize_round(session, human_match, "alice", clock=clock)
    assert status["matchComplete"] is True
    match = session.get(Match, human_match)
    assert match.status == MatchStatus.COMPLETED
    assert match.result_a == MatchResult.DRAW
    assert (match.score_a, match.score_b) == (0, 0)


# Finalization -----------------------------------------------------------------


def test_human_match_near_miss(session, clock, human_match):
    play(
        session,
        clock,
        human_match,
        a_correct=[True, False, True, False, False],
        b_correct=[True, True, True, False, False],
    )
    match = session.get(Match, human_match)
    assert match.status == MatchStatus.COMPLETED
    assert (match.score_a, match.score_b) == (2, 3)
    assert match.result_a == MatchResult.LOSS
    assert match.near_miss
    assert match.deciding_round_index == 1
    deciding = [r.round_index for r in load_rounds(session, human_match) if r.deciding]
    assert deciding == [1]


def test_human_match_updates_both_players(session, clock, human_match):
    play(session, clock, human_match, a_correct=[True] * 5, b_correct=[False] * 5)
    alice = session.get(User, "alice")
    bob = session.get(User, "bob")
    assert (alice.rating, bob.rating) == (1216, 1184)
    assert (alice.tier, bob.tier) == ("Silver", "Silver")

    snapshots = {s.user_id: s for s in session.exec(select(LeaderboardSnapshot)).all()}
    assert snapshots["alice"].wins == 1
    assert snapshots["alice"].accuracy == 1.0
    assert snapshots["bob"].losses == 1
    assert snapshots["bob"].rating == 1184


def test_finalize_is_idempotent(session, clock, human_match):
    play(session, clock, human_match, a_correct=[True] * 5, b_correct=[False] * 5)
    first = finalize_match(session, human_match, clock=clock)
    again = finalize_match(session, human_match, result_override="LOSS", clock=clock)

    assert again.result_a == first.result_a == MatchResult.WIN
    assert again.rating_after_a == first.rating_after_a == 1216
    assert session.get(User, "alice").rating == 1216
    assert count(session, Event, Event.name == "match_completed") == 1
    assert count(session, LeaderboardSnapshot, LeaderboardSnapshot.user_id == "alice") == 1
    assert session.exec(select(LeaderboardSnapshot).where(LeaderboardSnapshot.user_id == "alice")).one().matches == 1


def test_concurrent_finalize_applies_once(engine, session, clock, human_match):
    stale = session.get(Match, human_match)
    assert stale.status == MatchStatus.ACTIVE

    with Session(engine) as other:
        finalize_match(other, human_match, result_override="WIN", clock=clock)

    outcome = finalize_match(session, human_match, result_override="LOSS", clock=clock)
    assert outcome.result_a == MatchResult.WIN
    assert outcome.replayed
    session.expire_all()
    assert session.get(User, "alice").rating == 1216
    assert count(session, Event, Event.name == "match_completed") == 1


def test_result_override(session, clock, bot_match):
    view = complete_match(session, bot_match, "alice", "WIN", clock=clock)
    assert view["result"] == "WIN"
    assert view["ratingBefore"] == 1200
    assert view["ratingAfter"] == 1216
    assert view["score"] == view["opponentScore"] == 0


def test_invalid_override_rejected(session, clock, bot_match):
    with pytest.raises(BadRequest):
        finalize_match(session, bot_match, result_override="FLAWLESS", clock=clock)
    assert session.get(Match, bot_match).status == MatchStatus.ACTIVE


def test_complete_reports_callers_side(session, clock, human_match):
    play(session, clock, human_match, a_correct=[True] * 5, b_correct=[False] * 5)
    view = complete_match(session, human_match, "bob", clock=clock)
    assert view["result"] == "LOSS"
    assert view["score"] == 0
    assert view["opponentScore"] == 5
    assert view["ratingAfter"] == 1184
    assert view["replayed"] is True


def test_submit_to_completed_match_is_ignored(session, clock, bot_match):
    finalize_match(session, bot_match, result_override="DRAW", clock=clock)
    round_ = load_rounds(session, bot_match)[0]
    result = submit_answer(session, bot_match, round_.id, "alice", 0, clock=clock)
    assert result.match_complete
    session.refresh(round_)
    assert round_.player_a_answer is None


def test_summary(session, clock, human_match):
    play(session, clock, human_match, a_correct=[True, False, True, False, False], b_correct=[True] * 3 + [False] * 2)
    summary = get_match_summary(session, human_match, "alice")
    assert summary["score"] == 2
    assert summary["opponentScore"] == 3
    assert summary["nearMiss"] is True
    assert summary["decidingRoundIndex"] == 1
    assert [r["correct"] for r in summary["rounds"]] == [True, False, True, False, False]
    assert summary["rounds"][0]["responseTimeMs"] == 0
    assert summary["metrics"]["accuracy"] == pytest.approx(0.4)

    other = get_match_summary(session, human_match, "bob")
    assert other["result"] == "WIN"
    assert other["nearMiss"] is False


# Persistence ------------------------------------------------------------------


def test_snapshot_round_trip_keeps_completed_match(session, clock, human_match):
    play(session, clock, human_match, a_correct=[True] * 5, b_correct=[False] * 5)
    snapshot = export_match(session, human_match)
    assert len(snapshot["rounds"]) == 5
    assert len(snapshot["roundLogs"]) == 10

    fresh = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(fresh)
    with Session(fresh) as restored_session:
        restored = restore_match(restored_session, snapshot)
        assert restored.status == MatchStatus.COMPLETED
        outcome = finalize_match(restored_session, human_match, result_override="LOSS", clock=clock)
        assert outcome.result_a == MatchResult.WIN
        assert outcome.rating_after_a == 1216
        assert (outcome.score_a, outcome.score_b) == (5, 0)
        assert export_match(restored_session, human_match) == snapshot
    fresh.dispose()
