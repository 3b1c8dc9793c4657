"""
Choose the ridge lambda for an event by leave-one-match-out cross-validation.

Every candidate in a short fixed list is tried.  For each candidate, OPR is
refit once per match with that match's two alliances held out, and the
held-out combined (auto + teleop) alliance scores are predicted from the
refit rates.  The candidate with the lowest mean squared prediction error
wins; on an exact tie the smaller lambda wins.
"""
from collections import namedtuple

import numpy as np
import pandas as pd

from hybridopr.ridge import ridgeSolve

# ascending - from plain least squares up to heavy shrinkage
LAMBDA_CANDIDATES = (0.0, 0.01, 0.03, 0.1, 0.3, 0.75, 1.0, 3.0, 10.0)

LambdaCandidateResult = namedtuple('LambdaCandidateResult', ['lam', 'cvError'])


def crossValidationError(incidence, lam):
    """
    Leave-one-match-out mean squared error of the combined score for one lambda.

    Parameters
    ----------
    incidence : IncidenceMatrix
        The event's incidence matrix and score vectors from buildIncidence.
    lam : float
        The ridge lambda being evaluated.

    Returns
    -------
    cvError : float
        Squared error averaged over the two alliances of each held-out match,
        then averaged over matches.
    """
    A = incidence.matrix
    combined = incidence.autoScores + incidence.teleopScores

    matchErrors = []
    for matchKey in pd.unique(incidence.matchKeys):
        heldOut = incidence.matchKeys == matchKey
        # robots that only played in the held-out match keep a zero column
        # and so get a zero rate from the refit
        rates = ridgeSolve(A[~heldOut], combined[~heldOut], lam)
        errors = combined[heldOut] - A[heldOut] @ rates
        matchErrors.append(np.mean(errors ** 2))

    return float(np.mean(matchErrors))


def selectLambda(incidence, candidates=LAMBDA_CANDIDATES):
    """
    Pick the lambda with the lowest cross-validation error.

    The candidates are evaluated in ascending order and a later candidate
    only replaces the best so far when its error is strictly lower, so ties
    resolve to the smaller lambda.

    Returns
    -------
    bestLambda : float
    results : list of LambdaCandidateResult
        The error for every candidate, for diagnostics.
    """
    if len(candidates) == 0:
        raise ValueError('at least one lambda candidate is required')

    results = [LambdaCandidateResult(float(lam), crossValidationError(incidence, lam))
               for lam in sorted(candidates)]

    best = results[0]
    for result in results[1:]:
        if result.cvError < best.cvError:
            best = result

    return best.lam, results
