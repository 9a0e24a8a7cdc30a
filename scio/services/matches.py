"""Match lifecycle: creation, polling, answers, timeouts and finalization.

Every transition that must happen at most once (a round ending, a match
completing) is a conditional UPDATE guarded on the state it leaves
(``ended_at IS NULL``, ``status = 'ACTIVE'``). Whichever request's UPDATE
matches a row performs the transition; everyone else re-reads and reports
the stored outcome. No in-process locks are involved, so any number of
server processes can serve the same match.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from ..core.time import Clock, from_ms, to_ms, utcnow
from ..models import (
    Match,
    MatchResult,
    MatchRound,
    MatchStatus,
    OpponentKind,
    Question,
    User,
)
from .bot import bot_pick
from .errors import BadRequest, Conflict, Forbidden, NotFound
from .events import record_event
from .identity import get_user
from .metrics import compute_match_metrics
from .progress import (
    RESULT_SCORES,
    ROUND_DURATION_MS,
    derive_progress,
    derive_result,
    find_deciding_round,
    invert_result,
    is_near_miss,
    round_start_ms,
    tally_scores,
)
from .questions import ROUNDS_PER_MATCH, draw_questions, question_options, question_to_dict
from .rating import BOT_RATING, tier_for, update_ratings
from .round_logs import logs_for, upsert_round_log
from .seasons import record_match_result

logger = logging.getLogger(__name__)

SIDE_A = "A"
SIDE_B = "B"

# An ACTIVE match whose open round has been past its deadline this long is
# treated as abandoned by both sides.
ABANDONED_AFTER_MS = 120_000


@dataclass(frozen=True)
class BotOpponent:
    kind = OpponentKind.BOT


@dataclass(frozen=True)
class HumanOpponent:
    player_b_id: str
    kind = OpponentKind.HUMAN


OpponentSpec = Union[BotOpponent, HumanOpponent]


@dataclass(frozen=True)
class CreateResult:
    match_id: str
    cached: bool = False


@dataclass(frozen=True)
class SubmitResult:
    round_complete: bool
    match_complete: bool


@dataclass(frozen=True)
class FinalizeOutcome:
    match_id: str
    result_a: MatchResult
    score_a: int
    score_b: int
    rating_before_a: int
    rating_after_a: int
    rating_before_b: int
    rating_after_b: int
    near_miss: bool
    deciding_round_index: Optional[int]
    replayed: bool = False

    @classmethod
    def from_match(cls, match: Match, replayed: bool = True) -> "FinalizeOutcome":
        return cls(
            match_id=match.id,
            result_a=MatchResult(match.result_a),
            score_a=match.score_a or 0,
            score_b=match.score_b or 0,
            rating_before_a=match.rating_before_a,
            rating_after_a=match.rating_after_a,
            rating_before_b=match.rating_before_b,
            rating_after_b=match.rating_after_b,
            near_miss=match.near_miss,
            deciding_round_index=match.deciding_round_index,
            replayed=replayed,
        )

    def for_side(self, side: str) -> Dict[str, Any]:
        """The outcome as seen by one side of the match."""

        if side == SIDE_A:
            return {
                "result": self.result_a.value,
                "ratingBefore": self.rating_before_a,
                "ratingAfter": self.rating_after_a,
                "score": self.score_a,
                "opponentScore": self.score_b,
                "nearMiss": self.near_miss,
                "decidingRoundIndex": self.deciding_round_index,
            }
        return {
            "result": invert_result(self.result_a).value,
            "ratingBefore": self.rating_before_b,
            "ratingAfter": self.rating_after_b,
            "score": self.score_b,
            "opponentScore": self.score_a,
            "nearMiss": False,
            "decidingRoundIndex": None,
        }


# Loading helpers -------------------------------------------------------------


def load_match(session: Session, match_id: str) -> Match:
    match = session.get(Match, match_id)
    if not match:
        raise NotFound("Match not found")
    return match


def load_rounds(session: Session, match_id: str) -> List[MatchRound]:
    return list(
        session.exec(
            select(MatchRound)
            .where(MatchRound.match_id == match_id)
            .order_by(MatchRound.round_index)
        ).all()
    )


def side_of(match: Match, user_id: str) -> str:
    if user_id == match.player_a_id:
        return SIDE_A
    if match.player_b_id is not None and user_id == match.player_b_id:
        return SIDE_B
    raise Forbidden("Not a player in this match")


def _authorize(session: Session, match_id: str, user_id: str):
    match = load_match(session, match_id)
    side = side_of(match, user_id)
    get_user(session, user_id)
    return match, side


def _apply(session: Session, statement) -> bool:
    """Run a guarded UPDATE; True when this call changed the row."""

    result = session.exec(statement.execution_options(synchronize_session=False))
    return result.rowcount == 1


def _answer_columns(side: str):
    if side == SIDE_A:
        return MatchRound.player_a_answer, MatchRound.player_a_answered_at
    return MatchRound.player_b_answer, MatchRound.player_b_answered_at


def _write_answer(
    session: Session, round_id: str, side: str, selected_index: int, now: datetime
) -> bool:
    answer_col, answered_at_col = _answer_columns(side)
    return _apply(
        session,
        update(MatchRound)
        .where(
            MatchRound.id == round_id,
            MatchRound.ended_at.is_(None),
            answer_col.is_(None),
        )
        .values({answer_col: selected_index, answered_at_col: now}),
    )


def _write_bot_answer(session: Session, round_: MatchRound, question: Question, now: datetime) -> bool:
    selection = bot_pick(
        str(question.id), question.difficulty, round_.correct_index, question_options(question)
    )
    return _write_answer(session, round_.id, SIDE_B, selection, now)


def _end_round(session: Session, round_id: str, reason: str, now: datetime) -> bool:
    return _apply(
        session,
        update(MatchRound)
        .where(MatchRound.id == round_id, MatchRound.ended_at.is_(None))
        .values(ended_at=now, end_reason=reason),
    )


def _close_round(
    session: Session,
    match: Match,
    round_: MatchRound,
    reason: str,
    now: datetime,
    user_id: str,
    clock: Clock,
) -> bool:
    """End an open round, filling in the bot's answer first.

    Sides that never answered get a time-expired round log. Returns True
    when this call is the one that ended the round. Does not commit.
    """

    if match.is_bot and round_.player_b_answer is None:
        question = session.get(Question, round_.question_id)
        if question is None:
            raise NotFound("Question not found")
        _write_bot_answer(session, round_, question, now)

    if not _end_round(session, round_.id, reason, now):
        return False
    _log_expired_sides(session, match, round_, clock)
    record_event(
        session,
        "round_ended",
        {"matchId": match.id, "roundId": round_.id, "reason": reason},
        user_id,
        clock,
    )
    logger.info("Round %d of match %s ended (%s)", round_.round_index, match.id, reason)
    return True


def _is_abandoned(session: Session, match: Match, now_ms: int) -> bool:
    progress = derive_progress(to_ms(match.started_at), load_rounds(session, match.id), now_ms)
    if progress.resolved:
        return True
    return now_ms >= progress.round_deadline_ms + ABANDONED_AFTER_MS


def _close_abandoned(session: Session, match: Match, clock: Clock) -> FinalizeOutcome:
    """Time out every open round at its own deadline, then finalize."""

    anchor_ms = to_ms(match.started_at)
    try:
        for round_ in load_rounds(session, match.id):
            if round_.ended_at is not None:
                anchor_ms = to_ms(round_.ended_at)
                continue
            deadline = from_ms(anchor_ms + ROUND_DURATION_MS)
            _close_round(session, match, round_, "timeout", deadline, match.player_a_id, clock)
            anchor_ms = to_ms(deadline)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("Closing abandoned match %s", match.id)
    return finalize_match(session, match.id, clock=clock)


def _dedup_key(player_a_id: str, opponent: OpponentSpec) -> str:
    if isinstance(opponent, HumanOpponent):
        first, second = sorted((player_a_id, opponent.player_b_id))
        return f"human:{first}:{second}"
    return f"bot:{player_a_id}"


def _existing_active(session: Session, dedup_key: str) -> Optional[Match]:
    match = session.exec(
        select(Match).where(Match.dedup_key == dedup_key, Match.status == MatchStatus.ACTIVE)
    ).first()
    if match is None:
        return None
    count = session.exec(
        select(func.count(MatchRound.id)).where(MatchRound.match_id == match.id)
    ).one()
    return match if count == ROUNDS_PER_MATCH else None


# Operations ------------------------------------------------------------------


def create_match(
    session: Session,
    player_a_id: str,
    opponent: OpponentSpec,
    clock: Clock = utcnow,
    rng: Optional[random.Random] = None,
) -> CreateResult:
    """Open a match and its five rounds in one transaction.

    An ACTIVE match for the same pairing is returned instead of opening a
    second one, so retried start requests converge on a single match. An
    abandoned one is timed out and finalized first, and a new match opened.
    """

    player_a = get_user(session, player_a_id)
    player_b: Optional[User] = None
    if isinstance(opponent, HumanOpponent):
        if opponent.player_b_id == player_a_id:
            raise BadRequest("A player cannot be matched against themselves")
        player_b = get_user(session, opponent.player_b_id)

    dedup_key = _dedup_key(player_a_id, opponent)
    existing = _existing_active(session, dedup_key)
    if existing and _is_abandoned(session, existing, to_ms(clock())):
        _close_abandoned(session, existing, clock)
        existing = None
    if existing:
        logger.info("Returning existing match %s for %s", existing.id, dedup_key)
        return CreateResult(existing.id, cached=True)

    questions = draw_questions(session, ROUNDS_PER_MATCH, rng=rng)
    now = clock()

    match = Match(
        player_a_id=player_a.id,
        player_b_id=player_b.id if player_b else None,
        opponent_kind=opponent.kind,
        status=MatchStatus.ACTIVE,
        dedup_key=dedup_key,
        started_at=now,
        rating_before_a=player_a.rating,
        rating_before_b=player_b.rating if player_b else BOT_RATING,
    )
    session.add(match)
    for index, question in enumerate(questions):
        session.add(
            MatchRound(
                match_id=match.id,
                round_index=index,
                question_id=question.id,
                correct_index=question.correct_index,
            )
        )

    for player in (player_a, player_b):
        if player is not None and player.queued_at is not None:
            player.queued_at = None
            session.add(player)

    properties = {"matchId": match.id, "opponentKind": opponent.kind.value}
    if player_b is None:
        record_event(session, "bot_match_created", {**properties, "playerRating": player_a.rating}, player_a.id, clock)
    record_event(session, "match_started", properties, player_a.id, clock)

    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        existing = _existing_active(session, dedup_key)
        if existing:
            logger.info("Concurrent start for %s resolved to %s", dedup_key, existing.id)
            return CreateResult(existing.id, cached=True)
        raise

    logger.info(
        "Created %s match %s for %s with %d rounds",
        opponent.kind.value,
        match.id,
        player_a_id,
        len(questions),
    )
    return CreateResult(match.id)


def get_match_view(
    session: Session, match_id: str, user_id: str, clock: Clock = utcnow
) -> Dict[str, Any]:
    """Read-only projection of a match for the polling client."""

    match, side = _authorize(session, match_id, user_id)
    rounds = load_rounds(session, match_id)
    questions = _questions_by_id(session, rounds)
    now_ms = to_ms(clock())
    progress = derive_progress(to_ms(match.started_at), rounds, now_ms)

    mine, theirs = (
        ("player_a_answer", "player_b_answer") if side == SIDE_A else ("player_b_answer", "player_a_answer")
    )
    round_views = []
    for round_ in rounds:
        question = questions.get(round_.question_id)
        ended = round_.ended_at is not None
        view = {
            "roundId": round_.id,
            "roundIndex": round_.round_index,
            "state": round_.state.value,
            "question": question_to_dict(question) if question else None,
            "myAnswer": getattr(round_, mine),
            "opponentAnswered": getattr(round_, theirs) is not None,
            "endedAtMs": to_ms(round_.ended_at),
        }
        if ended:
            view["correctIndex"] = round_.correct_index
            view["opponentAnswer"] = getattr(round_, theirs)
        round_views.append(view)

    data = {
        "matchId": match.id,
        "status": MatchStatus(match.status).value,
        "opponentKind": OpponentKind(match.opponent_kind).value,
        "mode": match.mode,
        "side": side,
        "startedAtMs": to_ms(match.started_at),
        "rounds": round_views,
        **progress.to_dict(now_ms),
    }
    if match.status == MatchStatus.COMPLETED:
        data["outcome"] = FinalizeOutcome.from_match(match).for_side(side)
    return data


def submit_answer(
    session: Session,
    match_id: str,
    round_id: str,
    user_id: str,
    selected_index: int,
    clock: Clock = utcnow,
    time_to_first_commit_ms: Optional[int] = None,
) -> SubmitResult:
    """Record one side's answer for one round.

    Safe to repeat: a round that has already ended is reported as complete
    without touching anything, and an answer already on file for this side
    is never replaced. An answer that arrives at or after the round's
    deadline is discarded and the round is ended as a timeout.
    """

    match, side = _authorize(session, match_id, user_id)
    round_ = session.get(MatchRound, round_id)
    if not round_ or round_.match_id != match_id:
        raise NotFound("Round not found")

    if round_.ended_at is not None:
        logger.debug("Submit for ended round %s replayed", round_id)
        return SubmitResult(True, match.status == MatchStatus.COMPLETED)
    if match.status == MatchStatus.COMPLETED:
        logger.debug("Submit for completed match %s ignored", match_id)
        return SubmitResult(False, True)

    rounds = load_rounds(session, match_id)
    if round_.round_index > 0:
        previous = rounds[round_.round_index - 1]
        if previous.ended_at is None:
            raise Conflict("Round is not open yet")

    question = session.get(Question, round_.question_id)
    if question is None:
        raise NotFound("Question not found")
    options = question_options(question)
    if not 0 <= selected_index < len(options):
        raise BadRequest("selectedIndex is out of range")

    now = clock()
    progress = derive_progress(to_ms(match.started_at), rounds, to_ms(now))
    if progress.current_round_index == round_.round_index and progress.status == "timeout":
        logger.info("Late answer from %s for round %d of match %s discarded", user_id, round_.round_index, match_id)
        try:
            _close_round(session, match, round_, "timeout", now, user_id, clock)
            session.commit()
        except Exception:
            session.rollback()
            raise
        match_complete = round_.round_index == ROUNDS_PER_MATCH - 1
        if match_complete:
            finalize_match(session, match_id, clock=clock)
        return SubmitResult(True, match_complete)

    try:
        wrote = _write_answer(session, round_.id, side, selected_index, now)
        if wrote:
            started_ms = round_start_ms(to_ms(match.started_at), rounds, round_.round_index)
            upsert_round_log(
                session,
                match_id=match_id,
                user_id=user_id,
                round_index=round_.round_index,
                question_id=question.id,
                correct=selected_index == round_.correct_index,
                selected_option=options[selected_index],
                response_time_ms=to_ms(now) - started_ms,
                time_to_first_commit_ms=time_to_first_commit_ms,
                clock=clock,
            )
            if match.is_bot and side == SIDE_A:
                _write_bot_answer(session, round_, question, now)

        session.refresh(round_)
        if round_.both_answered and _end_round(session, round_.id, "answers", now):
            record_event(
                session,
                "round_ended",
                {"matchId": match_id, "roundId": round_.id, "reason": "answers"},
                user_id,
                clock,
            )
            logger.info("Round %d of match %s ended (answers)", round_.round_index, match_id)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(round_)
    round_complete = round_.ended_at is not None
    match_complete = False
    if round_complete and round_.round_index == ROUNDS_PER_MATCH - 1:
        finalize_match(session, match_id, clock=clock)
        match_complete = True
    return SubmitResult(round_complete, match_complete)


def finalize_round(
    session: Session, match_id: str, user_id: str, clock: Clock = utcnow
) -> Dict[str, Any]:
    """Close the open round once both sides answered or its deadline passed.

    The deadline is recomputed here from stored timestamps; the caller only
    says "check now". Calling again after the round closed just reports the
    current progress.
    """

    match, _side = _authorize(session, match_id, user_id)
    rounds = load_rounds(session, match_id)
    now = clock()
    now_ms = to_ms(now)
    progress = derive_progress(to_ms(match.started_at), rounds, now_ms)

    if match.status == MatchStatus.COMPLETED:
        return {"matchComplete": True, **progress.to_dict(now_ms)}
    if progress.resolved:
        if match.status == MatchStatus.ACTIVE:
            logger.warning("Match %s has no open round but is ACTIVE; finalizing", match_id)
            finalize_match(session, match_id, clock=clock)
        return {"matchComplete": True, **progress.to_dict(now_ms)}

    current = rounds[progress.current_round_index]
    timed_out = progress.status == "timeout"
    if not (timed_out or current.both_answered):
        return {"matchComplete": False, **progress.to_dict(now_ms)}

    reason = "answers" if current.both_answered else "timeout"
    try:
        _close_round(session, match, current, reason, now, user_id, clock)
        session.commit()
    except Exception:
        session.rollback()
        raise

    match_complete = False
    if current.round_index == ROUNDS_PER_MATCH - 1:
        finalize_match(session, match_id, clock=clock)
        match_complete = True

    progress = derive_progress(to_ms(match.started_at), load_rounds(session, match_id), now_ms)
    return {"matchComplete": match_complete, **progress.to_dict(now_ms)}


def _log_expired_sides(session: Session, match: Match, round_: MatchRound, clock: Clock) -> None:
    session.refresh(round_)
    sides = [(match.player_a_id, round_.player_a_answer)]
    if not match.is_bot and match.player_b_id:
        sides.append((match.player_b_id, round_.player_b_answer))
    for user_id, answer in sides:
        if answer is not None:
            continue
        upsert_round_log(
            session,
            match_id=match.id,
            user_id=user_id,
            round_index=round_.round_index,
            question_id=round_.question_id,
            correct=False,
            time_expired=True,
            response_time_ms=ROUND_DURATION_MS,
            overwrite=False,
            clock=clock,
        )


def finalize_match(
    session: Session,
    match_id: str,
    result_override: Optional[Union[MatchResult, str]] = None,
    clock: Clock = utcnow,
) -> FinalizeOutcome:
    """Complete the match, apply rating changes and update the leaderboard.

    Runs at most once per match. A match that is already COMPLETED is
    returned exactly as stored, whatever ``result_override`` says.
    """

    match = load_match(session, match_id)
    if match.status == MatchStatus.COMPLETED:
        logger.debug("Finalize of completed match %s replayed", match_id)
        return FinalizeOutcome.from_match(match)

    try:
        override = MatchResult(result_override) if result_override else MatchResult.UNKNOWN
    except ValueError as exc:
        raise BadRequest("Invalid resultA") from exc

    rounds = load_rounds(session, match_id)
    score_a, score_b = tally_scores(rounds)
    result = derive_result(score_a, score_b) if override == MatchResult.UNKNOWN else override
    near_miss = is_near_miss(result, score_a, score_b)
    deciding = find_deciding_round(rounds, score_a, score_b) if near_miss else None

    player_a = get_user(session, match.player_a_id)
    player_b = get_user(session, match.player_b_id) if not match.is_bot and match.player_b_id else None

    rating_a, rating_b = update_ratings(
        match.rating_before_a, match.rating_before_b, RESULT_SCORES[result]
    )
    now = clock()

    try:
        won = _apply(
            session,
            update(Match)
            .where(Match.id == match_id, Match.status == MatchStatus.ACTIVE)
            .values(
                status=MatchStatus.COMPLETED,
                ended_at=now,
                score_a=score_a,
                score_b=score_b,
                result_a=result,
                near_miss=near_miss,
                deciding_round_index=deciding,
                rating_after_a=rating_a,
                rating_after_b=rating_b,
                dedup_key=None,
            ),
        )
        if not won:
            session.rollback()
            session.refresh(match)
            logger.info("Match %s was finalized concurrently", match_id)
            return FinalizeOutcome.from_match(match)

        _mark_deciding_round(session, match_id, deciding)

        player_a.rating = rating_a
        player_a.tier = tier_for(rating_a)
        session.add(player_a)
        _record_leaderboard(session, match, player_a, result, score_a, len(rounds), rating_a, clock)

        if player_b is not None:
            player_b.rating = rating_b
            player_b.tier = tier_for(rating_b)
            session.add(player_b)
            _record_leaderboard(
                session, match, player_b, invert_result(result), score_b, len(rounds), rating_b, clock
            )

        record_event(
            session,
            "match_completed",
            {
                "matchId": match_id,
                "playerAScore": score_a,
                "playerBScore": score_b,
                "resultA": result.value,
                "isBotMatch": match.is_bot,
                "durationMs": to_ms(now) - to_ms(match.started_at),
            },
            match.player_a_id,
            clock,
        )
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Finalization of match %s failed; rolled back", match_id)
        raise

    session.refresh(match)
    logger.info(
        "Match %s completed: %s %d-%d, rating A %d -> %d",
        match_id,
        result.value,
        score_a,
        score_b,
        match.rating_before_a,
        rating_a,
    )
    return FinalizeOutcome.from_match(match, replayed=False)


def _mark_deciding_round(session: Session, match_id: str, deciding: Optional[int]) -> None:
    session.exec(
        update(MatchRound)
        .where(MatchRound.match_id == match_id)
        .values(deciding=False)
        .execution_options(synchronize_session=False)
    )
    if deciding is not None:
        session.exec(
            update(MatchRound)
            .where(MatchRound.match_id == match_id, MatchRound.round_index == deciding)
            .values(deciding=True)
            .execution_options(synchronize_session=False)
        )


def _record_leaderboard(
    session: Session,
    match: Match,
    player: User,
    result: MatchResult,
    score: int,
    round_count: int,
    new_rating: int,
    clock: Clock,
) -> None:
    logs = logs_for(session, match.id, player.id)
    efficiency = compute_match_metrics(logs, ROUND_DURATION_MS).match_efficiency_score
    accuracy = score / round_count if round_count else 0.0
    record_match_result(session, player, result, accuracy, efficiency, new_rating, clock)


def complete_match(
    session: Session,
    match_id: str,
    user_id: str,
    result_override: Optional[Union[MatchResult, str]] = None,
    clock: Clock = utcnow,
) -> Dict[str, Any]:
    """Client-driven completion; reports the outcome from the caller's side."""

    _match, side = _authorize(session, match_id, user_id)
    outcome = finalize_match(session, match_id, result_override, clock=clock)
    return {"ok": True, "matchId": match_id, "replayed": outcome.replayed, **outcome.for_side(side)}


def get_match_summary(
    session: Session, match_id: str, user_id: str
) -> Dict[str, Any]:
    """Post-match breakdown for one player, joined with their round logs."""

    match, side = _authorize(session, match_id, user_id)
    rounds = load_rounds(session, match_id)
    questions = _questions_by_id(session, rounds)
    logs = {log.round_index: log for log in logs_for(session, match_id, user_id)}
    metrics = compute_match_metrics(logs.values(), ROUND_DURATION_MS)

    mine, theirs = (
        ("player_a_answer", "player_b_answer") if side == SIDE_A else ("player_b_answer", "player_a_answer")
    )
    round_summaries = []
    for round_ in rounds:
        question = questions.get(round_.question_id)
        log = logs.get(round_.round_index)
        answer = getattr(round_, mine)
        round_summaries.append(
            {
                "roundIndex": round_.round_index,
                "question": question_to_dict(question, reveal=True) if question else None,
                "correctIndex": round_.correct_index,
                "myAnswer": answer,
                "opponentAnswer": getattr(round_, theirs),
                "correct": answer is not None and answer == round_.correct_index,
                "deciding": round_.deciding if side == SIDE_A else False,
                "responseTimeMs": log.response_time_ms if log else None,
                "timeExpired": log.time_expired if log else answer is None,
                "selectedOption": log.selected_option if log else None,
                "timeToFirstCommitMs": log.time_to_first_commit_ms if log else None,
            }
        )

    score_a, score_b = tally_scores(rounds)
    data: Dict[str, Any] = {
        "ok": True,
        "matchId": match.id,
        "isBotMatch": match.is_bot,
        "status": MatchStatus(match.status).value,
        "side": side,
        "score": score_a if side == SIDE_A else score_b,
        "opponentScore": score_b if side == SIDE_A else score_a,
        "totalRounds": len(rounds),
        "roundDurationMs": ROUND_DURATION_MS,
        "rounds": round_summaries,
        "metrics": metrics.to_dict(),
    }
    if match.status == MatchStatus.COMPLETED:
        data.update(FinalizeOutcome.from_match(match).for_side(side))
    return data


def _questions_by_id(session: Session, rounds: List[MatchRound]) -> Dict[int, Question]:
    ids = [round_.question_id for round_ in rounds]
    if not ids:
        return {}
    return {q.id: q for q in session.exec(select(Question).where(Question.id.in_(ids))).all()}


__all__ = [
    "BotOpponent",
    "CreateResult",
    "FinalizeOutcome",
    "HumanOpponent",
    "OpponentSpec",
    "SubmitResult",
    "complete_match",
    "create_match",
    "finalize_match",
    "finalize_round",
    "get_match_summary",
    "get_match_view",
    "load_match",
    "load_rounds",
    "side_of",
    "submit_answer",
]
