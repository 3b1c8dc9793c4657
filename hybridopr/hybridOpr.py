"""
Hybrid OPR for one event from scouted per-robot match entries.

The alliance totals are attributed to robots with a ridge-regularized OPR
solve.  The ridge lambda is chosen by leave-one-match-out cross-validation and
shared by the autonomous and tele-op solves.  Robots with fewer matches than
the confidence threshold are blended toward their own scouted averages.

If fewer than two alliance observations survive validation, the result is
empty and callers fall back to plain per-robot averages.
"""
import logging
from collections import namedtuple

import numpy as np
import pandas as pd

from hybridopr.blend import CONFIDENCE_THRESHOLD, blendRate, naiveAverages
from hybridopr.incidence import InsufficientDataError, buildIncidence, matchesPlayed
from hybridopr.lambdaSearch import LAMBDA_CANDIDATES, selectLambda
from hybridopr.observations import validateEntries
from hybridopr.ridge import ridgeSolve

logger = logging.getLogger(__name__)

RobotRate = namedtuple('RobotRate', ['autoRate', 'teleopRate', 'totalRate', 'matchesPlayed'])

PhaseErrors = namedtuple('PhaseErrors', ['auto', 'teleop', 'total'])

FitSummary = namedtuple('FitSummary', ['sampleCount', 'mae', 'rmse'])

EMPTY_FIT = FitSummary(0, PhaseErrors(0.0, 0.0, 0.0), PhaseErrors(0.0, 0.0, 0.0))


class HybridOprResult(namedtuple('HybridOprResult',
                                 ['rates', 'selectedLambda', 'matchCount',
                                  'allianceSamples', 'skippedAlliances', 'fitSummary'])):
    """
    Per-robot rates for one event.

    rates maps robot identifier to RobotRate.  selectedLambda is the ridge
    lambda used for both phases.  matchCount and allianceSamples count the
    matches and alliance observations that went into the solve, and
    skippedAlliances counts the alliances dropped during validation.
    fitSummary holds the MAE and RMSE of the rates against the observed
    alliance totals.
    """
    __slots__ = ()

    def toFrame(self):
        # DataFrame indexed by robot - handy for sorting and CSV export
        frame = pd.DataFrame.from_dict(
            {robot: rate._asdict() for robot, rate in self.rates.items()},
            orient='index', columns=list(RobotRate._fields))
        frame.index.name = 'robot'
        return frame


def emptyResult(allianceSamples=0, skippedAlliances=0):
    return HybridOprResult({}, 0.0, 0, allianceSamples, skippedAlliances, EMPTY_FIT)


def calcHybridOpr(entries, includePlayoffs=False):
    """
    Compute hybrid OPR for one event from raw scouting entries.

    Parameters
    ----------
    entries : iterable of ScoutEntry, dicts, or a DataFrame
        Per-robot scouting entries for the event, in any order.
    includePlayoffs : bool
        Use playoff matches as well as qualification matches.

    Returns
    -------
    result : HybridOprResult
        Empty rates and a zero lambda if there is not enough data.
    """
    observations, skipped = validateEntries(entries, includePlayoffs=includePlayoffs)
    return attributeObservations(observations, skippedAlliances=len(skipped))


def attributeObservations(observations, lambdaCandidates=LAMBDA_CANDIDATES,
                          skippedAlliances=0):
    """
    Compute hybrid OPR from validated alliance observations.

    Parameters
    ----------
    observations : list of AllianceObservation
        Paired red/blue observations, e.g. from validateEntries or
        tba.matchToAlliance.
    lambdaCandidates : sequence of float
        Lambdas the cross-validation chooses from.
    skippedAlliances : int
        Passed through to the result for display.

    Returns
    -------
    result : HybridOprResult
    """
    # row order must not depend on how the caller ordered the observations
    observations = sorted(observations, key=lambda o: (o.matchKey, o.allianceColor))

    try:
        incidence = buildIncidence(observations)
    except InsufficientDataError as err:
        logger.info('No OPR attribution possible: %s', err)
        return emptyResult(len(observations), skippedAlliances)

    lam, candidates = selectLambda(incidence, lambdaCandidates)

    # one shared lambda keeps the two phases comparably regularized
    autoOpr = ridgeSolve(incidence.matrix, incidence.autoScores, lam)
    teleopOpr = ridgeSolve(incidence.matrix, incidence.teleopScores, lam)

    autoAvg, teleopAvg = naiveAverages(observations, incidence.robotIndex)
    played = matchesPlayed(incidence)

    rates = {}
    for col, robot in enumerate(incidence.robotIndex):
        autoRate = blendRate(autoOpr[col], autoAvg[col], played[col], CONFIDENCE_THRESHOLD)
        teleopRate = blendRate(teleopOpr[col], teleopAvg[col], played[col], CONFIDENCE_THRESHOLD)
        rates[robot] = RobotRate(autoRate, teleopRate, autoRate + teleopRate, int(played[col]))

    matchCount = len(pd.unique(incidence.matchKeys))
    logger.info('OPR from %d matches, %d robots, lambda %g (cv error by lambda: %s)',
                matchCount, len(incidence.robotIndex), lam,
                ', '.join(f'{c.lam:g}={c.cvError:.2f}' for c in candidates))

    return HybridOprResult(rates, lam, matchCount, len(observations), skippedAlliances,
                           fitSummary(incidence, rates))


def fitSummary(incidence, rates):
    """
    Mean absolute and root-mean-square error of the final rates against the
    observed alliance totals, per phase.
    """
    autoRates = np.array([rates[robot].autoRate for robot in incidence.robotIndex])
    teleopRates = np.array([rates[robot].teleopRate for robot in incidence.robotIndex])

    autoResid = incidence.autoScores - incidence.matrix @ autoRates
    teleopResid = incidence.teleopScores - incidence.matrix @ teleopRates
    totalResid = autoResid + teleopResid

    mae = PhaseErrors(*[float(np.mean(np.abs(r))) for r in (autoResid, teleopResid, totalResid)])
    rmse = PhaseErrors(*[float(np.sqrt(np.mean(r ** 2))) for r in (autoResid, teleopResid, totalResid)])

    return FitSummary(len(autoResid), mae, rmse)
