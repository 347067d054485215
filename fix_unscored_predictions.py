"""
Score predictions on finished matches that were left without points.

This script:
1. Finds finished matches with a declared outcome
2. Rescores the predictions on them that have no points yet
3. Commits and invalidates the affected group rankings

Safe to run more than once: scoring only depends on the declared outcome.
"""

import sys
import traceback

from app import create_app, db
from app.models import Match, Prediction
from app.services.match_service import rescore_match
from app.utils.cache_utils import invalidate_group_rankings


def fix_unscored_predictions():
    """Find and score all predictions that should have been scored"""

    app = create_app()

    with app.app_context():
        print("=" * 60)
        print("Fixing Unscored Predictions for Finished Matches")
        print("=" * 60)

        finished = Match.query.filter(
            Match.is_finished.is_(True), Match.outcome.isnot(None)
        ).all()
        print(f"\nFound {len(finished)} finished matches")

        if not finished:
            print("No finished matches found - nothing to fix")
            return

        finished_ids = [m.id for m in finished]
        unscored = Prediction.query.filter(
            Prediction.match_id.in_(finished_ids), Prediction.points.is_(None)
        ).all()

        if not unscored:
            print("No unscored predictions found - everything is scored!")
            return

        affected_ids = {p.match_id for p in unscored}
        print(
            f"\nFound {len(unscored)} unscored predictions "
            f"on {len(affected_ids)} matches"
        )

        groups = set()
        fixed_count = 0
        for match in finished:
            if match.id not in affected_ids:
                continue
            print(
                f"\nMatch {match.id}: {match.home_team} vs {match.away_team} "
                f"({match.outcome})"
            )
            scored = rescore_match(match)
            print(f"  Scored {scored} predictions")
            fixed_count += scored
            groups.add(match.group_id)

        print(f"\nCommitting {fixed_count} scored predictions to database...")
        db.session.commit()

        print("Invalidating ranking caches...")
        for group_id in groups:
            invalidate_group_rankings(group_id)

        db.session.expire_all()

        remaining = Prediction.query.filter(
            Prediction.match_id.in_(finished_ids), Prediction.points.is_(None)
        ).count()

        if remaining == 0:
            print("\n[OK] All predictions on finished matches are now scored!")
        else:
            print(f"\n[WARN] {remaining} predictions still unscored - needs investigation")


if __name__ == "__main__":
    try:
        fix_unscored_predictions()
    except Exception as e:
        print(f"\n[ERROR] Failed to fix predictions: {e}")
        traceback.print_exc()
        sys.exit(1)
