"""
Produce hybrid OPR for one event from scouting entries or The Blue Alliance.

USAGE python scoutOpr.py source [tbaApiKey] [--playoffs]

source is either a CSV file of scouting entries with columns
robot,matchKey,allianceColor,timestamp,autoScore,teleopScore[,compLevel]
or a TBA event key such as 2020scmb.

For an event key, if a tbaApiKey is not provided as an argument, it must be
present in a tba_key.json file with structure
{"tba_key" : "OF6MROks2K..."}

Only qualification matches are used unless --playoffs is given.  The ridge
lambda is selected automatically by leave-one-match-out cross-validation and
robots with fewer than three matches are blended toward their own averages.
"""
import json
import logging
import os
import sys

import pandas as pd

from hybridopr.hybridOpr import attributeObservations, calcHybridOpr
from hybridopr.tba import TbaDataError, getRawMatchData, matchToAlliance


def scoutOpr(argv=None):

    logging.basicConfig(level=logging.WARNING, format='%(levelname)s - %(name)s - %(message)s')

    args = list(sys.argv[1:] if argv is None else argv)

    # --playoffs may appear anywhere on the command line
    includePlayoffs = '--playoffs' in args
    args = [a for a in args if a != '--playoffs']

    # get the entries file or event key from the first argument
    try:
        source = args[0]
    except IndexError:
        sys.exit('ERROR - please specify a scouting CSV file or an event key e.g. 2020scmb as the first argument')

    if source.lower().endswith('.csv'):
        name = os.path.splitext(os.path.basename(source))[0]
        result = oprFromCsv(source, includePlayoffs)
    else:
        name = source
        result = oprFromTba(source, readTbaKey(args), includePlayoffs)

    if not result.rates:
        sys.exit(f'ERROR - not enough complete alliances in {source} to compute OPR')

    print(f'{result.matchCount} matches, {len(result.rates)} robots, '
          f'{result.skippedAlliances} alliances skipped')
    print(f'Selected lambda {result.selectedLambda:g} - '
          f'total RMSE {result.fitSummary.rmse.total:.1f}')

    # sort by total rate for easier perusing and round to 1 place
    opr = result.toFrame().sort_values(by='totalRate', ascending=False)
    opr.insert(loc=0, column='event', value=name)
    opr = opr.round(1)

    # export the results to CSV
    filename = 'hybridOpr_' + name + '.csv'
    try:
        opr.to_csv(filename)
    except OSError:
        sys.exit(f'ERROR - output file could not be written - is {filename} open for editing?')

    return result


def oprFromCsv(path, includePlayoffs):
    try:
        entries = pd.read_csv(path)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as err:
        sys.exit(f'ERROR - cannot read scouting entries from {path} - {err}')

    try:
        return calcHybridOpr(entries, includePlayoffs=includePlayoffs)
    except ValueError as err:
        sys.exit(f'ERROR - {path} is not a scouting entry file - {err}')


def oprFromTba(eventKey, tbaKey, includePlayoffs):
    # get data for a given event key from TheBlueAlliance API
    try:
        matches = getRawMatchData(eventKey, tbaKey)
    except TbaDataError as err:
        sys.exit(f'ERROR - {err}')

    observations, skipped = matchToAlliance(matches, includePlayoffs=includePlayoffs)
    for matchKey, reason in skipped:
        print(f'Match {matchKey} skipped - {reason}')

    return attributeObservations(observations, skippedAlliances=2 * len(skipped))


def readTbaKey(args):
    # optionally get the TBA API read key from the second argument
    if len(args) >= 2:
        return args[1]
    try:
        # check for tba_key.json and read the TBA API key from the file
        with open('tba_key.json', 'r') as read_file:
            return json.load(read_file)['tba_key']
    except (OSError, KeyError, ValueError):
        sys.exit('ERROR - must provide TBA API read key in a tba_key.json file or as the second argument')


if __name__ == '__main__':
    scoutOpr()
