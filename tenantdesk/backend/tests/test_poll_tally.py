# backend/tests/test_poll_tally.py
from __future__ import annotations

from app.domain.poll_tally import Ballot, tally


def _multi(*choices: list[int]) -> list[Ballot]:
    return [Ballot(choice_option_ids=c) for c in choices]


def test_yes_no_absolute_majority_excludes_abstentions():
    ballots = [Ballot(choice_bool=True)] * 3 + [Ballot(choice_bool=False)] * 2 + [Ballot(abstain=True)] * 4
    r = tally(poll_type="yes_no", option_ids=[], ballots=ballots, rule="absolute_majority")
    assert r.ballots == 5
    assert r.abstentions == 4
    assert r.values == {"yes": 3.0, "no": 2.0}
    assert r.winners == ["yes"] and r.decided is True


def test_plurality_tie_is_undecided():
    r = tally(poll_type="single_choice", option_ids=[1, 2], ballots=_multi([1], [2]), rule="plurality")
    assert r.winners == [1, 2]
    assert r.decided is False


def test_supermajority_default_threshold():
    ballots = _multi([1], [1], [2])
    r = tally(poll_type="single_choice", option_ids=[1, 2], ballots=ballots, rule="supermajority")
    # 66.66..% is below the 66.67 default
    assert r.decided is False

    r = tally(poll_type="single_choice", option_ids=[1, 2], ballots=ballots, rule="supermajority", supermajority_percent=60)
    assert r.winners == [1]


def test_threshold_counts_every_option_over_the_bar():
    ballots = _multi([1, 2], [1, 2], [1, 3], [2], [3], [1, 2, 3], [1], [2], [3], [1])
    r = tally(poll_type="multiple_choice", option_ids=[1, 2, 3], ballots=ballots, rule="threshold", threshold_percent=50)
    assert r.values == {1: 6.0, 2: 5.0, 3: 4.0}
    assert r.winners == [1, 2]


def test_top_k_takes_best_k():
    ballots = _multi([1], [1], [2], [3], [3], [3])
    r = tally(poll_type="multiple_choice", option_ids=[1, 2, 3], ballots=ballots, rule="top_k", winners_count=2)
    assert r.winners == [3, 1]
    assert r.decided is True


def test_score_poll_avg_vs_sum():
    ballots = [
        Ballot(scores=[{"option_id": 1, "score": 5}, {"option_id": 2, "score": 4}]),
        Ballot(scores=[{"option_id": 2, "score": 4}]),
    ]
    summed = tally(poll_type="score", option_ids=[1, 2], ballots=ballots, score_aggregation="sum")
    assert summed.winners == [2]

    averaged = tally(poll_type="score", option_ids=[1, 2], ballots=ballots, score_aggregation="avg")
    assert averaged.values == {1: 5.0, 2: 4.0}
    assert averaged.winners == [1]


def test_ranked_choice_runoff_transfers_votes():
    def rc(*order: int) -> Ballot:
        return Ballot(ranks=[{"option_id": o, "rank": i + 1} for i, o in enumerate(order)])

    ballots = [rc(1, 2), rc(1, 2), rc(2, 1), rc(3, 2), rc(3, 2)]
    r = tally(poll_type="ranked_choice", option_ids=[1, 2, 3], ballots=ballots)
    assert r.rounds[0] == {1: 2, 2: 1, 3: 2}
    # option 2 is eliminated, its ballot goes to 1
    assert r.winners == [1]
    assert r.decided is True


def test_no_ballots_no_winner():
    r = tally(poll_type="single_choice", option_ids=[1, 2], ballots=[], rule="plurality")
    assert r.winners == [] and r.decided is False
