# backend/app/domain/poll_tally.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

YES = "yes"
NO = "no"


@dataclass(frozen=True)
class Ballot:
    abstain: bool = False
    choice_bool: Optional[bool] = None
    choice_option_ids: Sequence[int] = ()
    ranks: Sequence[dict[str, Any]] = ()
    scores: Sequence[dict[str, Any]] = ()


@dataclass
class PollResult:
    ballots: int
    abstentions: int
    values: dict[Any, float]
    winners: list[Any]
    decided: bool
    rounds: list[dict[Any, int]] = field(default_factory=list)


def _pct(part: float, whole: float) -> float:
    return (part / whole * 100.0) if whole else 0.0


def _ordered_by_value(values: dict[Any, float], order: Sequence[Any]) -> list[Any]:
    pos = {k: i for i, k in enumerate(order)}
    return sorted(values, key=lambda k: (-values[k], pos.get(k, len(pos))))


def _apply_rule(
    values: dict[Any, float],
    order: Sequence[Any],
    *,
    ballots: int,
    rule: Optional[str],
    supermajority_percent: Optional[float],
    threshold_percent: Optional[float],
    winners_count: Optional[int],
) -> tuple[list[Any], bool]:
    if ballots == 0 or not values:
        return [], False

    ranked = _ordered_by_value(values, order)
    top = values[ranked[0]]
    rule = rule or "plurality"

    if rule == "top_k":
        k = max(1, int(winners_count or 1))
        winners = [o for o in ranked[:k] if values[o] > 0]
        return winners, len(winners) == k

    if rule == "threshold":
        need = float(threshold_percent if threshold_percent is not None else 50.0)
        winners = [o for o in ranked if _pct(values[o], ballots) >= need]
        return winners, bool(winners)

    if rule == "absolute_majority":
        if _pct(top, ballots) > 50.0:
            return [ranked[0]], True
        return [], False

    if rule == "supermajority":
        need = float(supermajority_percent if supermajority_percent is not None else 66.67)
        if _pct(top, ballots) >= need:
            return [ranked[0]], True
        return [], False

    # plurality; a tie at the top is reported but undecided
    leaders = [o for o in ranked if values[o] == top]
    if top <= 0:
        return [], False
    return leaders, len(leaders) == 1


def _instant_runoff(option_ids: Sequence[int], ballots: Sequence[Ballot]) -> tuple[list[int], list[dict[int, int]]]:
    prefs: list[list[int]] = []
    valid = set(option_ids)
    for b in ballots:
        ordered = sorted(
            (r for r in b.ranks if r.get("option_id") in valid),
            key=lambda r: int(r.get("rank") or 0),
        )
        if ordered:
            prefs.append([int(r["option_id"]) for r in ordered])

    remaining = list(option_ids)
    rounds: list[dict[int, int]] = []
    while remaining:
        counts = {o: 0 for o in remaining}
        continuing = 0
        for pref in prefs:
            for o in pref:
                if o in counts:
                    counts[o] += 1
                    continuing += 1
                    break
        rounds.append(dict(counts))

        if continuing == 0:
            return [], rounds

        leader = max(remaining, key=lambda o: (counts[o], -remaining.index(o)))
        if counts[leader] * 2 > continuing or len(remaining) == 1:
            return [leader], rounds

        low = min(counts.values())
        losers = [o for o in remaining if counts[o] == low]
        if len(losers) == len(remaining):
            # every remaining option tied
            return [], rounds
        # eliminate the last-listed of the lowest
        remaining.remove(losers[-1])
    return [], rounds


def tally(
    *,
    poll_type: str,
    option_ids: Sequence[int],
    ballots: Sequence[Ballot],
    rule: Optional[str] = None,
    supermajority_percent: Optional[float] = None,
    threshold_percent: Optional[float] = None,
    winners_count: Optional[int] = None,
    score_aggregation: Optional[str] = None,
) -> PollResult:
    """
    Counts cast ballots for one poll.

    Percent-based rules are measured against non-abstaining ballots, so a
    multiple-choice option picked by 6 of 10 voters has 60%. Score polls
    rank options by aggregated score; ranked-choice polls use instant runoff
    and ignore the decision rule.
    """
    counted = [b for b in ballots if not b.abstain]
    abstentions = len(ballots) - len(counted)

    if poll_type == "ranked_choice":
        winners, rounds = _instant_runoff(option_ids, counted)
        first = rounds[0] if rounds else {o: 0 for o in option_ids}
        return PollResult(
            ballots=len(counted),
            abstentions=abstentions,
            values={k: float(v) for k, v in first.items()},
            winners=winners,
            decided=bool(winners),
            rounds=rounds,
        )

    if poll_type == "yes_no":
        values: dict[Any, float] = {YES: 0.0, NO: 0.0}
        for b in counted:
            if b.choice_bool is True:
                values[YES] += 1
            elif b.choice_bool is False:
                values[NO] += 1
        order: Sequence[Any] = (YES, NO)
    elif poll_type == "score":
        sums: dict[Any, float] = {o: 0.0 for o in option_ids}
        n: dict[Any, int] = {o: 0 for o in option_ids}
        for b in counted:
            for s in b.scores:
                oid = s.get("option_id")
                if oid in sums:
                    sums[oid] += float(s.get("score") or 0)
                    n[oid] += 1
        if score_aggregation == "avg":
            values = {o: (sums[o] / n[o] if n[o] else 0.0) for o in option_ids}
        else:
            values = sums
        order = option_ids
        # score polls pick the best aggregate, or the best k
        if rule != "top_k":
            rule = "plurality"
    else:
        values = {o: 0.0 for o in option_ids}
        for b in counted:
            for oid in set(b.choice_option_ids):
                if oid in values:
                    values[oid] += 1
        order = option_ids

    winners, decided = _apply_rule(
        values,
        order,
        ballots=len(counted),
        rule=rule,
        supermajority_percent=supermajority_percent,
        threshold_percent=threshold_percent,
        winners_count=winners_count,
    )
    return PollResult(
        ballots=len(counted),
        abstentions=abstentions,
        values=values,
        winners=winners,
        decided=decided,
    )
