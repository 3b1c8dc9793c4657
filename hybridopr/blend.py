"""
Shrink the OPR of robots with few matches toward their own scouted average.

With one or two matches a robot's matrix estimate is mostly confounded with
its partners.  Its rate is blended with the plain average of its own scouted
contributions, weighted by how close its match count is to the threshold.
"""
import numpy as np

# robots with at least this many matches use the matrix estimate unchanged
CONFIDENCE_THRESHOLD = 3


def confidenceWeight(matchesPlayed, threshold=CONFIDENCE_THRESHOLD):
    """Weight in [0, 1] given to the matrix estimate: min(1, matches / threshold)."""
    if threshold <= 0:
        raise ValueError(f'confidence threshold must be positive, got {threshold}')
    return min(1.0, max(0.0, matchesPlayed / threshold))


def blendRate(matrixRate, naiveAverage, matchesPlayed, threshold=CONFIDENCE_THRESHOLD):
    """
    Blend a matrix-derived rate with a robot's naive average.

    Parameters
    ----------
    matrixRate : float
        The robot's rate from the ridge solve.
    naiveAverage : float
        The robot's own mean scouted contribution per match.
    matchesPlayed : int
        Number of matches the robot played in the event.
    threshold : int
        Match count at which the matrix rate is trusted completely.

    Returns
    -------
    rate : float
        w * matrixRate + (1 - w) * naiveAverage
    """
    w = confidenceWeight(matchesPlayed, threshold)
    if w == 1.0:
        return float(matrixRate)
    return float(w * matrixRate + (1 - w) * naiveAverage)


def naiveAverages(observations, robotIndex):
    """
    Average scouted auto and teleop contribution per robot.

    Parameters
    ----------
    observations : list of AllianceObservation
    robotIndex : EventRobotIndex

    Returns
    -------
    autoAvg, teleopAvg : 1-D arrays
        Indexed like the robot index columns.
    """
    autoSum = np.zeros(len(robotIndex))
    teleopSum = np.zeros(len(robotIndex))
    counts = np.zeros(len(robotIndex))

    for obs in observations:
        for robot, auto, teleop in zip(obs.robots, obs.memberAuto, obs.memberTeleop):
            col = robotIndex.column(robot)
            autoSum[col] += auto
            teleopSum[col] += teleop
            counts[col] += 1

    # every robot in the index played at least once, so counts are positive
    return autoSum / counts, teleopSum / counts
