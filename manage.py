#!/usr/bin/env python3
"""
Prode Management CLI

Command-line management for the Prode prediction application.
"""

import logging
import os

import click
from flask.cli import with_appcontext
from flask_migrate import migrate, upgrade
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app import create_app, db
from app.errors import ProdeError
from app.models import Group, Match, User
from app.models.user import ROLES
from app.services.achievement_service import update_user_achievements
from app.services.group_service import (
    create_group,
    get_group_or_404,
    remove_group_member,
)
from app.services.match_service import finalize_match, rescore_match
from app.services.ranking_service import get_group_ranking, get_jornada_ranking
from app.utils.cache_utils import get_cache_stats, invalidate_group_rankings

app = create_app()


@click.group()
def cli():
    """Prode Management CLI"""
    pass


def _find_user(username):
    user = User.query.filter_by(username=username).first()
    if not user:
        raise click.ClickException(f"User '{username}' not found")
    return user


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command("create")
@click.argument("username")
@click.option("--display-name", help="Name shown in rankings")
@click.option("--email", help="Contact email")
@click.option("--role", type=click.Choice(ROLES), default="user")
@with_appcontext
def create_user(username, display_name, email, role):
    """Create a user and print their API token"""
    try:
        new_user = User(
            username=username, display_name=display_name, email=email, role=role
        )
        db.session.add(new_user)
        db.session.commit()
        click.echo(f"✅ Created user {username} ({role})")
        click.echo(f"   API token: {new_user.api_token}")
    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ User {username} already exists!")
        logging.error(f"User creation failed - integrity error: {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating user: {str(e)}")
        logging.error(f"User creation failed - SQL error: {e}")


@user.command()
@click.argument("username")
@click.argument("role", type=click.Choice(ROLES))
@with_appcontext
def promote(username, role):
    """Change a user's role"""
    target = _find_user(username)
    try:
        target.set_role(role)
        db.session.commit()
        click.echo(f"✅ {username} is now {role}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error changing role: {str(e)}")


# Group Management Commands
@cli.group()
def group():
    """Group management commands"""
    pass


@group.command("create")
@click.argument("name")
@click.option("--admin", "admin_username", required=True, help="Group admin username")
@click.option("--description", help="Group description")
@click.option("--max-participants", type=int, help="Member limit")
@with_appcontext
def create_group_cmd(name, admin_username, description, max_participants):
    """Create a group with an admin"""
    admin = _find_user(admin_username)
    try:
        new_group = create_group(
            name, admin, description=description, max_participants=max_participants
        )
        click.echo(f"✅ Created group {new_group.name} (id {new_group.id})")
        click.echo(f"   Join code: {new_group.join_code}")
    except (ValueError, SQLAlchemyError) as e:
        click.echo(f"❌ Error creating group: {str(e)}")


@group.command("list")
@with_appcontext
def list_groups():
    """List all groups"""
    groups = Group.query.order_by(Group.id).all()

    if not groups:
        click.echo("No groups found.")
        return

    click.echo("Groups:")
    for g in groups:
        status = "🟢 ACTIVE" if g.is_active else "⚪ Inactive"
        click.echo(
            f"  {g.id}: {g.name} {status} - {g.get_member_count()}/"
            f"{g.max_participants} members - code {g.join_code}"
        )


@group.command("remove-member")
@click.argument("group_id", type=int)
@click.argument("username")
@with_appcontext
def remove_member(group_id, username):
    """Deactivate a user's membership in a group"""
    member = _find_user(username)
    try:
        target = get_group_or_404(group_id)
    except ProdeError as e:
        raise click.ClickException(e.message)

    try:
        remove_group_member(target, member)
    except ProdeError as e:
        click.echo(f"❌ {e.message}")
        return
    except SQLAlchemyError as e:
        click.echo(f"❌ Database error removing member: {str(e)}")
        return

    click.echo(f"✅ {username} removed from {target.name}")


# Match Commands
@cli.group()
def match():
    """Match result commands"""
    pass


@match.command()
@click.argument("match_id", type=int)
@click.argument("outcome", type=click.Choice(["home-win", "draw", "away-win"]))
@click.option("--admin", "admin_username", required=True, help="Acting admin")
@click.option("--correction", is_flag=True, help="Correct an already declared result")
@with_appcontext
def finalize(match_id, outcome, admin_username, correction):
    """Declare a match result and score its predictions"""
    admin = _find_user(admin_username)
    try:
        finished = finalize_match(match_id, admin, outcome=outcome, correction=correction)
        click.echo(
            f"✅ {finished.home_team} vs {finished.away_team}: {outcome} "
            f"({len(finished.predictions)} predictions scored)"
        )
    except ProdeError as e:
        click.echo(f"❌ {e.message}")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database error finalizing match: {str(e)}")


@match.command()
@click.option("--match-id", type=int, help="Only rescore this match")
@click.option("--group-id", type=int, help="Only rescore matches of this group")
@with_appcontext
def rescore(match_id, group_id):
    """Recompute points for finished matches"""
    query = Match.query.filter_by(is_finished=True)
    if match_id:
        query = query.filter_by(id=match_id)
    if group_id:
        query = query.filter_by(group_id=group_id)

    matches = [m for m in query.all() if m.outcome]
    click.echo(f"🔍 Rescoring {len(matches)} finished matches")

    total = 0
    groups = set()
    for m in matches:
        total += rescore_match(m)
        groups.add(m.group_id)

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Error rescoring: {str(e)}")
        return

    for gid in groups:
        invalidate_group_rankings(gid)
    click.echo(f"🎉 Rescored {total} predictions")


# Ranking Commands
@cli.group()
def ranking():
    """Ranking commands"""
    pass


@ranking.command()
@click.argument("group_id", type=int)
@click.option("--jornada-id", type=int, help="Restrict to one jornada")
@with_appcontext
def show(group_id, jornada_id):
    """Print a group's leaderboard"""
    try:
        target = get_group_or_404(group_id)
        if jornada_id:
            entries = get_jornada_ranking(group_id, jornada_id)
        else:
            entries = get_group_ranking(group_id)
    except ProdeError as e:
        raise click.ClickException(e.message)

    click.echo(f"🏆 {target.name}")
    click.echo("=" * 40)
    for entry in entries:
        click.echo(
            f"  {entry.position:>3}. {entry.user_name:<24} "
            f"{entry.total_points:>5} pts  avg {entry.stats.to_dict()['average_points']}"
        )


# Achievement Commands
@cli.group()
def achievements():
    """Achievement commands"""
    pass


@achievements.command()
@click.option("--username", help="Only refresh this user")
@with_appcontext
def refresh(username):
    """Re-evaluate and store unlocked achievements"""
    users = [_find_user(username)] if username else User.query.all()
    unlocked = 0
    for u in users:
        _, newly_unlocked = update_user_achievements(u)
        unlocked += len(newly_unlocked)
        for achievement_id in newly_unlocked:
            click.echo(f"   🏅 {u.username}: {achievement_id}")
    click.echo(f"✅ Refreshed {len(users)} users, {unlocked} new achievements")


# Database Commands
@cli.group()
def db_cmd():
    """Database management commands"""
    pass


@db_cmd.command()
@with_appcontext
def init():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error creating tables: {str(e)}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


# Database Migration Commands
@cli.group()
def db_migrate():
    """Database migration commands"""
    pass


@db_migrate.command()
@with_appcontext
def init_migrations():
    """Initialize migrations repository"""
    if os.path.exists("migrations"):
        click.echo("❌ Migrations directory already exists!")
        return

    from flask_migrate import init as flask_migrate_init

    flask_migrate_init()
    click.echo("✅ Migrations repository initialized!")


@db_migrate.command()
@click.option("-m", "--message", required=True, help="Migration message")
@with_appcontext
def create_migration(message):
    """Create a new migration"""
    migrate(message=message)
    click.echo(f"✅ Migration created: {message}")


@db_migrate.command()
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    upgrade(revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("⚽ Prode Application Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")

    cache_stats = get_cache_stats()
    click.echo(
        f"🗄️  Cache: {cache_stats['type']} (rankings {cache_stats['ranking_timeout']}s)"
    )

    user_count = User.query.filter_by(is_active=True).count()
    click.echo(f"👥 Active Users: {user_count}")

    group_count = Group.query.filter_by(is_active=True).count()
    click.echo(f"🏆 Active Groups: {group_count}")

    match_count = Match.query.count()
    finished_count = Match.query.filter_by(is_finished=True).count()
    click.echo(f"⚽ Matches: {finished_count}/{match_count} finished")


if __name__ == "__main__":
    with app.app_context():
        cli()
