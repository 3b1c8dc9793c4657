"""
Build the A matrix and b vectors needed to solve Ax = b for OPR.

Rows of A are alliance observations (one per alliance per match) and columns
are the robots seen at the event.  A holds a 1 where the robot played on that
alliance.  The b vectors hold the autonomous and tele-op alliance totals in
the same row order.
"""
from collections import namedtuple

import numpy as np
import pandas as pd

# fewer alliance observations than this cannot support any attribution
MIN_OBSERVATIONS = 2


class InsufficientDataError(ValueError):
    """Raised when an event has too few alliance observations for OPR."""


class EventRobotIndex:
    """
    Dense column index for the robots of one event.

    Robots get columns 0..N-1 in the order they are first seen.
    """

    def __init__(self, robots):
        self.robots = list(pd.unique(pd.Series(list(robots), dtype=object)))
        self.columns = {robot: col for col, robot in enumerate(self.robots)}

    def column(self, robot):
        return self.columns[robot]

    def __len__(self):
        return len(self.robots)

    def __iter__(self):
        return iter(self.robots)

    def __contains__(self, robot):
        return robot in self.columns


IncidenceMatrix = namedtuple('IncidenceMatrix',
                             ['matrix', 'autoScores', 'teleopScores',
                              'matchKeys', 'robotIndex'])


def buildIncidence(observations):
    """
    Produce the incidence matrix and score vectors for an event.

    Parameters
    ----------
    observations : list of AllianceObservation
        Validated alliance observations for one event, as returned by
        validateEntries.

    Returns
    -------
    incidence : IncidenceMatrix
        matrix is a float array with one row per observation and one column
        per robot.  autoScores and teleopScores are aligned with the rows, as
        is matchKeys, which the cross-validation uses to hold out whole
        matches.  robotIndex maps robots to columns.

    Raises
    ------
    InsufficientDataError
        If there are fewer than MIN_OBSERVATIONS observations.
    """
    if len(observations) < MIN_OBSERVATIONS:
        raise InsufficientDataError(
            f'{len(observations)} alliance observations - need at least {MIN_OBSERVATIONS}')

    # single pass over the alliances to collect the robots in first-seen order
    robotIndex = EventRobotIndex(robot for obs in observations for robot in obs.robots)

    matrix = np.zeros((len(observations), len(robotIndex)))
    for row, obs in enumerate(observations):
        for robot in obs.robots:
            matrix[row, robotIndex.column(robot)] = 1.0

    autoScores = np.array([obs.autoScore for obs in observations], dtype=float)
    teleopScores = np.array([obs.teleopScore for obs in observations], dtype=float)
    matchKeys = np.array([obs.matchKey for obs in observations], dtype=object)

    return IncidenceMatrix(matrix, autoScores, teleopScores, matchKeys, robotIndex)


def matchesPlayed(incidence):
    # number of alliance observations each robot appears in, by column
    return incidence.matrix.sum(axis=0).astype(int)
