"""
Ranking builder

Produces ordered leaderboards for a group or for one jornada of a group.
Sorting is by total points, then by average points. Exact ties keep roster
order; no further tie-break is defined.
"""

from dataclasses import dataclass

from app.utils.stats import UserStatistics, statistics_for_matches

UNKNOWN_USER_NAME = "Usuario desconocido"


@dataclass
class RankingEntry:
    user_id: int
    user_name: str
    stats: UserStatistics
    position: int = 0

    @property
    def total_points(self):
        return self.stats.total_points

    @property
    def average_points(self):
        return self.stats.average_points

    def to_dict(self):
        data = {
            "user_id": self.user_id,
            "user_name": self.user_name,
            "position": self.position,
        }
        data.update(self.stats.to_dict())
        return data


def _ranking_key(entry):
    return (entry.stats.total_points, entry.stats.average_points)


def build_ranking(participants, matches):
    """
    Build a leaderboard for every participant over a scope of matches.

    Args:
        participants: ordered mapping of user_id -> display name. Every
            participant gets a row, including those who never predicted.
        matches: matches in scope; unfinished ones are ignored

    Returns:
        list of RankingEntry with 1-based positions. Positions are the
        sorted index + 1, so tied rows still get distinct positions.
    """
    entries = [
        RankingEntry(
            user_id=user_id,
            user_name=name or UNKNOWN_USER_NAME,
            stats=statistics_for_matches(user_id, matches),
        )
        for user_id, name in participants.items()
    ]

    # sort() is stable, so exact ties stay in roster order
    entries.sort(key=_ranking_key, reverse=True)

    for index, entry in enumerate(entries):
        entry.position = index + 1

    return entries


def build_jornada_ranking(participants, matches, jornada_id):
    """Build a leaderboard restricted to the matches of one jornada"""
    jornada_matches = [m for m in matches if m.jornada_id == jornada_id]
    return build_ranking(participants, jornada_matches)


def find_entry(user_id, ranking):
    """Return the user's RankingEntry, or None if not ranked"""
    return next((entry for entry in ranking if entry.user_id == user_id), None)


def find_position(user_id, ranking):
    """Return the user's position, or 0 if not ranked"""
    entry = find_entry(user_id, ranking)
    return entry.position if entry else 0
