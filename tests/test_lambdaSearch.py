from itertools import combinations

import numpy as np
import pytest

from hybridopr.incidence import buildIncidence
from hybridopr.lambdaSearch import LAMBDA_CANDIDATES, crossValidationError, selectLambda
from hybridopr.observations import AllianceObservation

ROBOTS = ['1', '2', '3', '4', '5', '6']
TRUE_AUTO = {'1': 10, '2': 8, '3': 12, '4': 6, '5': 5, '6': 7}
TRUE_TELEOP = {'1': 20, '2': 15, '3': 25, '4': 10, '5': 30, '6': 12}


def _obs(match, color, robots, auto, teleop):
    return AllianceObservation(match, color, tuple(robots), float(auto), float(teleop),
                               (auto / 3,) * 3, (teleop / 3,) * 3)


def _exactEvent():
    # every alliance containing robot 1 against the other three robots -
    # scores are exact sums of per-robot rates
    observations = []
    for n, red in enumerate(c for c in combinations(ROBOTS, 3) if '1' in c):
        blue = [r for r in ROBOTS if r not in red]
        match = f'qm{n + 1:02d}'
        for color, robots in [('blue', blue), ('red', red)]:
            observations.append(_obs(match, color, robots,
                                     sum(TRUE_AUTO[r] for r in robots),
                                     sum(TRUE_TELEOP[r] for r in robots)))
    return observations


def test_exact_data_selects_no_regularization():
    incidence = buildIncidence(_exactEvent())

    lam, results = selectLambda(incidence)

    assert lam == 0.0
    assert [r.lam for r in results] == list(LAMBDA_CANDIDATES)
    assert results[0].cvError == pytest.approx(0.0, abs=1e-9)
    assert all(r.cvError > results[0].cvError for r in results[1:])


def test_single_match_error_is_mean_squared_combined_score():
    # holding out the only match leaves nothing to train on, so every rate is
    # zero and the error is the mean of the squared combined scores
    incidence = buildIncidence([
        _obs('qm1', 'blue', ['4', '5', '6'], 10, 8),
        _obs('qm1', 'red', ['1', '2', '3'], 20, 10),
    ])

    assert crossValidationError(incidence, 0.0) == pytest.approx((18 ** 2 + 30 ** 2) / 2)
    assert crossValidationError(incidence, 1.0) == pytest.approx(612.0)


def test_ties_go_to_the_smaller_lambda():
    incidence = buildIncidence([
        _obs('qm1', 'blue', ['4', '5', '6'], 10, 8),
        _obs('qm1', 'red', ['1', '2', '3'], 20, 10),
    ])

    lam, results = selectLambda(incidence, candidates=[3.0, 0.3, 1.0])

    assert lam == 0.3
    assert len({r.cvError for r in results}) == 1


def test_cross_validation_averages_over_matches():
    observations = _exactEvent()
    incidence = buildIncidence(observations)
    combined = incidence.autoScores + incidence.teleopScores
    lam = 0.75

    perMatch = []
    for matchKey in sorted(set(incidence.matchKeys)):
        heldOut = incidence.matchKeys == matchKey
        A = incidence.matrix[~heldOut]
        x = np.linalg.solve(A.T @ A + lam * np.eye(A.shape[1]), A.T @ combined[~heldOut])
        perMatch.append(np.mean((combined[heldOut] - incidence.matrix[heldOut] @ x) ** 2))

    assert crossValidationError(incidence, lam) == pytest.approx(np.mean(perMatch))


def test_empty_candidate_list_rejected():
    with pytest.raises(ValueError):
        selectLambda(buildIncidence(_exactEvent()), candidates=[])
