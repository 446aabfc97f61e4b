"""
StandingsCalculator service for league groups
Folds completed match results into StandingsEntry rows and sorts them
"""

import logging
from typing import Callable, Dict, Iterable, List, TYPE_CHECKING

from constants import MATCH_TYPE_SETS
from models.match import GroupBreak
from models.standings import StandingsEntry
from utils.standings import sort_standings

if TYPE_CHECKING:
    from models.config import LeagueConfig
    from models.match import GroupMatch

logger = logging.getLogger(__name__)


class StandingsCalculator:
    """
    Builds the standings of a league group from its matches

    Entries are keyed by the team ID written in the match slot, so a league
    whose teams are references ranks those references.
    """

    def __init__(self, league_config: 'LeagueConfig', match_type: str, min_points: int = 1):
        self.league_config = league_config
        self.points = league_config.points
        self.match_type = match_type
        self.min_points = min_points

    def calculate(self, matches: Iterable, team_name: Callable[[str], str]) -> List[StandingsEntry]:
        """
        Process every match and return the sorted standings

        Args:
            matches: The group's matches and breaks, in order
            team_name: Resolves a slot team ID to the name shown in the table

        Returns:
            Entries sorted best first according to the league ordering
        """
        standings: Dict[str, StandingsEntry] = {}

        for match in matches:
            if isinstance(match, GroupBreak) or match.friendly:
                continue

            for team_id in (match.home_team.id, match.away_team.id):
                if team_id not in standings:
                    standings[team_id] = StandingsEntry(team_id=team_id, name=team_name(team_id))

            if match.is_complete():
                self.update_team_stats(standings, match)

        for entry in standings.values():
            self._finalise(entry)

        logger.debug(f"Calculated standings for {len(standings)} teams")
        return sort_standings(list(standings.values()), self.league_config.ordering)

    def update_team_stats(self, standings: Dict[str, StandingsEntry], match: 'GroupMatch') -> None:
        """
        Apply one completed match to both teams' entries

        Args:
            standings: Entries keyed by slot team ID
            match: A complete, non-friendly match
        """
        home = standings[match.home_team.id]
        away = standings[match.away_team.id]

        winner_id = None if match.is_draw() else match.get_winner_team_id()
        if not match.is_draw() and winner_id is None:
            logger.debug(f"Match {{{match.label}}} is complete but has no scores, skipping it")
            return

        if match.is_draw():
            home.h2h.setdefault(away.team_id, 0)
            away.h2h.setdefault(home.team_id, 0)
        else:
            winner, loser = (home, away) if winner_id == home.team_id else (away, home)
            winner.wins += 1
            loser.losses += 1
            winner.h2h[loser.team_id] = winner.h2h.get(loser.team_id, 0) + 1
            loser.h2h[winner.team_id] = loser.h2h.get(winner.team_id, 0) - 1

        home.played += 1
        away.played += 1

        if self.match_type == MATCH_TYPE_SETS:
            self._apply_sets(match, home, away)
        else:
            self._apply_continuous(match, home, away)

        if match.home_team.forfeit:
            home.points -= self.points.forfeit
        if match.away_team.forfeit:
            away.points -= self.points.forfeit

        home.bonus_points += match.home_team.bonus_points
        away.bonus_points += match.away_team.bonus_points
        home.penalty_points += match.home_team.penalty_points
        away.penalty_points += match.away_team.penalty_points

    def _apply_sets(self, match: 'GroupMatch', home: StandingsEntry, away: StandingsEntry) -> None:
        home_sets = 0
        away_sets = 0
        for home_score, away_score in zip(match.home_team.scores, match.away_team.scores):
            if home_score < self.min_points and away_score < self.min_points:
                continue
            home.points_for += home_score
            home.points_against += away_score
            away.points_for += away_score
            away.points_against += home_score
            if home_score > away_score:
                home_sets += 1
            elif home_score < away_score:
                away_sets += 1

        home.sets_for += home_sets
        home.sets_against += away_sets
        away.sets_for += away_sets
        away.sets_against += home_sets

        home.points += self.points.per_set * home_sets
        away.points += self.points.per_set * away_sets

        if match.is_draw():
            home.draws += 1
            away.draws += 1
            return

        by_one = abs(home_sets - away_sets) == 1
        if home_sets > away_sets:
            self._handle_win(home, by_one)
            self._handle_loss(away, by_one)
        else:
            self._handle_win(away, by_one)
            self._handle_loss(home, by_one)

    def _apply_continuous(self, match: 'GroupMatch', home: StandingsEntry, away: StandingsEntry) -> None:
        home_score = match.home_team.scores[0] if match.home_team.scores else 0
        away_score = match.away_team.scores[0] if match.away_team.scores else 0
        home.points_for += home_score
        home.points_against += away_score
        away.points_for += away_score
        away.points_against += home_score

        if match.is_draw():
            home.draws += 1
            away.draws += 1
        elif match.get_winner_team_id() == home.team_id:
            self._handle_win(home)
            self._handle_loss(away)
        elif match.get_winner_team_id() == away.team_id:
            self._handle_win(away)
            self._handle_loss(home)

    def _handle_win(self, entry: StandingsEntry, by_one: bool = False) -> None:
        entry.points += self.points.win_by_one if by_one else self.points.win

    def _handle_loss(self, entry: StandingsEntry, by_one: bool = False) -> None:
        entry.points += self.points.lose_by_one if by_one else self.points.lose

    def _finalise(self, entry: StandingsEntry) -> None:
        entry.points_difference = entry.points_for - entry.points_against
        entry.sets_difference = entry.sets_for - entry.sets_against
        entry.points += entry.played * self.points.played + entry.bonus_points - entry.penalty_points
