"""
Turn raw per-robot scouting entries into alliance observations for OPR.

Scouts submit one entry per robot per match.  OPR only needs the alliance
totals, so entries are grouped by match and alliance color and the member
contributions are summed.  Partial data is normal during an event - alliances
that do not have exactly three robots are skipped, not reported as errors.
"""
import logging
from collections import namedtuple

import pandas as pd

logger = logging.getLogger(__name__)

ALLIANCE_COLORS = ('blue', 'red')
ALLIANCE_SIZE = 3

ScoutEntry = namedtuple('ScoutEntry',
                        ['robot', 'matchKey', 'allianceColor', 'timestamp',
                         'autoScore', 'teleopScore', 'compLevel'],
                        defaults=['qm'])

AllianceObservation = namedtuple('AllianceObservation',
                                 ['matchKey', 'allianceColor', 'robots',
                                  'autoScore', 'teleopScore',
                                  'memberAuto', 'memberTeleop'])

ENTRY_COLUMNS = list(ScoutEntry._fields)


def entriesToFrame(entries):
    """
    Coerce scouting entries into a DataFrame with one row per entry.

    Parameters
    ----------
    entries : iterable of ScoutEntry, dicts, or a DataFrame
        Each entry needs the ScoutEntry fields.  compLevel may be omitted and
        defaults to qualification ('qm').

    Returns
    -------
    df : DataFrame
        Normalised entries - robot and match identifiers as strings, colors
        lower-case, missing or non-numeric scores as zero.
    """
    if isinstance(entries, pd.DataFrame):
        df = entries.copy()
    else:
        df = pd.DataFrame([e._asdict() if isinstance(e, ScoutEntry) else dict(e)
                           for e in entries])

    if 'compLevel' not in df.columns:
        df['compLevel'] = 'qm'

    missing = [c for c in ENTRY_COLUMNS if c not in df.columns]
    if missing:
        # an empty input has no columns at all - that is just an empty event
        if len(df) == 0:
            return pd.DataFrame(columns=ENTRY_COLUMNS)
        raise ValueError(f'scouting entries are missing columns {missing}')

    df = df[ENTRY_COLUMNS].copy()
    df['robot'] = df['robot'].map(identifierText)
    df['matchKey'] = df['matchKey'].map(identifierText)
    # an entry without a robot or a match cannot be placed in any alliance
    df = df.dropna(subset=['robot', 'matchKey'])

    df['allianceColor'] = df['allianceColor'].astype(str).str.strip().str.lower()
    df['compLevel'] = df['compLevel'].fillna('qm').astype(str).str.strip().str.lower()
    df['timestamp'] = timestampValues(df['timestamp'])
    # scores that were never entered count as zero
    for col in ['autoScore', 'teleopScore']:
        df[col] = pd.to_numeric(df[col], errors='coerce').fillna(0.0).astype(float)

    return df


def identifierText(value):
    # robot and match identifiers as text, None when blank
    # a CSV column with a blank cell is read as floats, so 4.0 becomes '4'
    if pd.isna(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text if text else None


def timestampValues(raw):
    """
    Timestamps as comparable numbers.

    Numeric timestamps (e.g. epoch milliseconds) are used as they are.  If any
    value is not a number, the column is parsed as dates instead (ISO strings
    from exports) and converted to seconds since the epoch.  Missing or
    unparseable timestamps count as 0, the oldest possible entry.
    """
    numeric = pd.to_numeric(raw, errors='coerce')
    if (numeric.isna() & raw.notna()).any():
        parsed = pd.to_datetime(raw, errors='coerce', utc=True)
        numeric = (parsed - pd.Timestamp(0, tz='UTC')) / pd.Timedelta(seconds=1)
    return numeric.astype(float).fillna(0.0)


def validateEntries(entries, includePlayoffs=False):
    """
    Group scouting entries into one AllianceObservation per alliance per match.

    Re-submitted entries for the same robot and match are reduced to the most
    recent one by timestamp.  An alliance is skipped when its color is unknown,
    when it does not have exactly three distinct robots, when any member
    reported a negative score, or when the opposing alliance of the same match
    was skipped (rows are always kept in red/blue pairs).

    Parameters
    ----------
    entries : iterable of ScoutEntry, dicts, or a DataFrame
        Raw per-robot scouting entries for one event, in any order.
    includePlayoffs : bool
        Keep playoff entries too.  By default only qualification matches
        ('qm') are used, as they are for OPR.

    Returns
    -------
    observations : list of AllianceObservation
        Valid alliance observations sorted by match key and color.
    skipped : list of tuples
        (matchKey, allianceColor, reason) for every alliance that was dropped.
    """
    df = entriesToFrame(entries)

    if not includePlayoffs:
        df = df[df['compLevel'] == 'qm']

    if len(df) == 0:
        return [], []

    # sort on every column so the surviving duplicate never depends on the
    # order the entries arrived in - the latest timestamp is last per robot
    df = df.sort_values(by=['matchKey', 'robot', 'timestamp', 'allianceColor',
                            'autoScore', 'teleopScore', 'compLevel'],
                        kind='mergesort')
    df = df.drop_duplicates(subset=['matchKey', 'robot'], keep='last')

    valid = {}
    skipped = []

    # groupby sorts the keys, which fixes the observation order
    for (matchKey, color), group in df.groupby(['matchKey', 'allianceColor'], sort=True):
        reason = allianceProblem(color, group)
        if reason is not None:
            skipped.append((matchKey, color, reason))
            continue

        group = group.sort_values(by='robot', kind='mergesort')
        memberAuto = tuple(group['autoScore'].tolist())
        memberTeleop = tuple(group['teleopScore'].tolist())
        valid[(matchKey, color)] = AllianceObservation(
            matchKey=matchKey,
            allianceColor=color,
            robots=tuple(group['robot'].tolist()),
            autoScore=float(sum(memberAuto)),
            teleopScore=float(sum(memberTeleop)),
            memberAuto=memberAuto,
            memberTeleop=memberTeleop)

    observations = []
    for (matchKey, color), obs in sorted(valid.items()):
        opponent = 'red' if color == 'blue' else 'blue'
        if (matchKey, opponent) not in valid:
            skipped.append((matchKey, color, 'unpaired'))
            continue
        observations.append(obs)

    skipped.sort()
    for matchKey, color, reason in skipped:
        logger.debug('Skipping match %s %s alliance - %s', matchKey, color, reason)

    return observations, skipped


def allianceProblem(color, group):
    # return why an alliance group cannot be used, or None if it is fine
    if color not in ALLIANCE_COLORS:
        return 'color'
    # duplicates are already gone, so the row count is the robot count
    if len(group) != ALLIANCE_SIZE:
        return f'{len(group)} robots'
    if (group[['autoScore', 'teleopScore']].to_numpy() < 0).any():
        return 'negative score'
    return None
