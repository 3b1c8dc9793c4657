"""
Read match results from The Blue Alliance as alliance observations for OPR.

TBA reports official alliance totals per phase, so these observations skip
the scouting-entry validation.  TBA has no per-robot split of the totals; each
member is credited an equal third as its naive contribution.
"""
import math

import pandas as pd
import tbapy

from hybridopr.observations import ALLIANCE_COLORS, ALLIANCE_SIZE, AllianceObservation


class TbaDataError(Exception):
    """Raised when match data cannot be read from The Blue Alliance."""


def getRawMatchData(eventKey, tbaKey):
    """
    For a supplied event key, get match data from The Blue Alliance.  Flatten
    the internal dictionaries in the returned data so the result is easier
    to use.

    Parameters
    ----------
    eventKey : string
        The event identifier used by FIRST and The Blue Alliance - a four-digit
        year followed by an abbreviation of the event (e.g. 2020scmb).
    tbaKey : string
        The TBA API read key which is generated on the TBA site.

    Returns
    -------
    matches : DataFrame
        One row per match, qualification and playoff, sorted by match time.
        Alliance and score breakdown fields become columns such as
        'red.team_keys', 'red.score' and 'red.autoPoints'.

    Raises
    ------
    TbaDataError
        If the key or event is not valid or the event has no matches.
    """
    # instantiate an object for reading TBA API
    tba = tbapy.TBA(tbaKey)

    try:
        matches = tba.event_matches(eventKey)
    except ValueError as err:
        raise TbaDataError(f'cannot get match data - is {eventKey} a valid event key '
                           f'and {tbaKey} a valid TBA API key?') from err

    if not matches:
        raise TbaDataError(f'there are no match records for {eventKey} - is it complete or underway?')

    return flattenMatches(matches)


def flattenMatches(matches):
    # convert list of match objects to a dataframe
    matches = pd.DataFrame([dict(m) for m in matches])

    # unplayed matches have no score breakdown yet
    breakdown = matches['score_breakdown'].apply(lambda s: s if isinstance(s, dict) else {})

    # convert columns with dicts to individual columns
    matches = pd.concat([matches.drop('alliances', axis=1),
                         pd.json_normalize(matches['alliances'].tolist())], axis=1)
    matches = pd.concat([matches.drop('score_breakdown', axis=1),
                         pd.json_normalize(breakdown.tolist())], axis=1)

    # sort matches by match start time, then make the index ascending integers
    matches = matches.sort_values(by=['time', 'key'], kind='mergesort')
    matches = matches.reset_index(drop=True)

    return matches


def matchToAlliance(matches, includePlayoffs=False):
    """
    Convert flattened TBA match data into paired alliance observations.

    A match is used only when both alliances have three teams and a recorded
    autonomous and tele-op score.  Team identifiers lose their 'frc' prefix.

    Parameters
    ----------
    matches : DataFrame
        Match data flattened by getRawMatchData.
    includePlayoffs : bool
        Keep playoff matches too.  By default only qualification matches
        ('qm') are used.

    Returns
    -------
    observations : list of AllianceObservation
    skipped : list of tuples
        (matchKey, reason) for every match that was not usable.
    """
    if not includePlayoffs:
        matches = matches[matches['comp_level'] == 'qm']

    observations = []
    skipped = []

    for match in matches.to_dict('records'):
        pair = [allianceFromMatch(match, color) for color in ALLIANCE_COLORS]
        if any(obs is None for obs in pair):
            skipped.append((match['key'], 'incomplete'))
            continue
        observations.extend(pair)

    return observations, skipped


def allianceFromMatch(match, color):
    # build one alliance observation from a flattened match row, or None
    teamKeys = match.get(f'{color}.team_keys')
    if not isinstance(teamKeys, list):
        return None
    robots = tuple(numOnly(k) for k in teamKeys)
    if len(set(robots)) != ALLIANCE_SIZE or len(robots) != ALLIANCE_SIZE:
        return None

    # TBA reports a score of -1 for matches that have not been played
    score = toNumber(match.get(f'{color}.score'))
    auto = toNumber(match.get(f'{color}.autoPoints'))
    teleop = toNumber(match.get(f'{color}.teleopPoints'))
    if score is None or score < 0 or auto is None or teleop is None:
        return None

    return AllianceObservation(
        matchKey=match['key'],
        allianceColor=color,
        robots=robots,
        autoScore=auto,
        teleopScore=teleop,
        memberAuto=(auto / ALLIANCE_SIZE,) * ALLIANCE_SIZE,
        memberTeleop=(teleop / ALLIANCE_SIZE,) * ALLIANCE_SIZE)


def toNumber(value):
    # finite float or None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def numOnly(s):
    # given a string input, return only the numeric characters in the string
    # all together in the same order as they appear in the input
    # note that the function returns a string, not a number
    return ''.join(i for i in s if i.isdigit())
