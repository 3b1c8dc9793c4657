import pandas as pd
import pytest

from hybridopr import tba
from hybridopr.hybridOpr import attributeObservations
from hybridopr.tba import TbaDataError, flattenMatches, getRawMatchData, matchToAlliance


def _rawMatch(key, red, blue, redPoints, bluePoints, compLevel='qm', time=0):
    # a match shaped like the TBA API returns it
    def alliance(teams, points):
        return {'team_keys': [f'frc{t}' for t in teams],
                'score': -1 if points is None else sum(points),
                'surrogate_team_keys': [], 'dq_team_keys': []}

    def breakdown(points):
        return {'autoPoints': points[0], 'teleopPoints': points[1],
                'totalPoints': sum(points)}

    played = redPoints is not None and bluePoints is not None
    return {
        'key': key,
        'comp_level': compLevel,
        'match_number': int(''.join(c for c in key.split('_')[1] if c.isdigit())),
        'time': time,
        'alliances': {'red': alliance(red, redPoints), 'blue': alliance(blue, bluePoints)},
        'score_breakdown': ({'red': breakdown(redPoints), 'blue': breakdown(bluePoints)}
                            if played else None),
    }


RAW = [
    _rawMatch('2020scmb_qm2', [1, 2, 4], [3, 5, 6], (12, 30), (15, 25), time=200),
    _rawMatch('2020scmb_qm1', [1, 2, 3], [4, 5, 6], (10, 40), (8, 20), time=100),
    _rawMatch('2020scmb_qm3', [1, 3, 5], [2, 4, 6], None, None, time=300),
    _rawMatch('2020scmb_sf1m1', [1, 2, 3], [4, 5, 6], (9, 35), (7, 22), compLevel='sf', time=400),
]


def test_flatten_sorts_by_time_and_expands_alliances():
    matches = flattenMatches(RAW)

    assert matches['key'].tolist() == ['2020scmb_qm1', '2020scmb_qm2',
                                       '2020scmb_qm3', '2020scmb_sf1m1']
    assert matches.loc[0, 'red.team_keys'] == ['frc1', 'frc2', 'frc3']
    assert matches.loc[0, 'red.autoPoints'] == 10
    assert pd.isna(matches.loc[2, 'blue.teleopPoints'])


def test_match_to_alliance_pairs_played_qualification_matches():
    observations, skipped = matchToAlliance(flattenMatches(RAW))

    assert [(o.matchKey, o.allianceColor) for o in observations] == [
        ('2020scmb_qm1', 'blue'), ('2020scmb_qm1', 'red'),
        ('2020scmb_qm2', 'blue'), ('2020scmb_qm2', 'red')]
    assert skipped == [('2020scmb_qm3', 'incomplete')]

    red = observations[1]
    assert red.robots == ('1', '2', '3')
    assert red.autoScore == 10
    assert red.teleopScore == 40
    assert red.memberAuto == pytest.approx((10 / 3,) * 3)


def test_match_to_alliance_with_playoffs():
    observations, _ = matchToAlliance(flattenMatches(RAW), includePlayoffs=True)

    assert len(observations) == 6
    assert observations[-1].matchKey == '2020scmb_sf1m1'


def test_two_team_alliance_is_skipped():
    raw = RAW[:2] + [_rawMatch('2020scmb_qm4', [1, 2], [3, 4, 5], (5, 5), (6, 6), time=500)]

    observations, skipped = matchToAlliance(flattenMatches(raw))

    assert len(observations) == 4
    assert skipped == [('2020scmb_qm4', 'incomplete')]


def test_tba_observations_feed_the_engine():
    observations, _ = matchToAlliance(flattenMatches(RAW))

    result = attributeObservations(observations)

    assert result.matchCount == 2
    assert set(result.rates) == {'1', '2', '3', '4', '5', '6'}


class _FakeTBA:
    matches = []

    def __init__(self, key):
        self.key = key

    def event_matches(self, eventKey):
        if eventKey == 'bogus':
            raise ValueError('not found')
        return self.matches


def test_get_raw_match_data(monkeypatch):
    monkeypatch.setattr(tba.tbapy, 'TBA', _FakeTBA)
    monkeypatch.setattr(_FakeTBA, 'matches', RAW)

    matches = getRawMatchData('2020scmb', 'key')

    assert len(matches) == 4
    assert matches['key'].iloc[0] == '2020scmb_qm1'


def test_get_raw_match_data_errors(monkeypatch):
    monkeypatch.setattr(tba.tbapy, 'TBA', _FakeTBA)

    with pytest.raises(TbaDataError):
        getRawMatchData('bogus', 'key')
    with pytest.raises(TbaDataError):
        getRawMatchData('2020none', 'key')
