"""CLI tools for CompassIQ administration."""

import sys

import click
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import ServiceError
from app.db.session import SessionLocal
from app.services import org_service, user_service
from app.services.os_template_catalog import seed_builtin_templates


@click.group()
def cli():
    """CompassIQ CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Organization name")
@click.option("--slug", required=True, help="URL-friendly slug (lowercase, no spaces)")
@click.option("--owner-email", required=True, help="Email of the first OWNER")
@click.option("--demo", is_flag=True, default=False, help="Create as a read-only demo org")
def create_org(name: str, slug: str, owner_email: str, demo: bool):
    """
    Create organization with its first OWNER.

    The owner signs in through the identity provider with that email.

    Example:
        compassiq create-org --name "Acme Corp" --slug "acme" --owner-email "owner@acme.com"
    """
    db = SessionLocal()
    try:
        slug = slug.lower().strip()
        if not slug.replace("-", "").replace("_", "").isalnum():
            click.echo("❌ Slug must be alphanumeric (with optional hyphens/underscores)")
            sys.exit(1)

        owner = user_service.get_or_create_user(db, owner_email)
        org = org_service.create_org_with_owner(db, owner, name, slug, is_demo=demo)

        click.echo(f"✓ Created organization: {name}")
        click.echo(f"  ID: {org.id}")
        click.echo(f"  Slug: {slug}")
        if demo:
            click.echo("  Demo: read-only for every role")
        click.echo(f"✓ {owner.email} is OWNER")
    except (ServiceError, SQLAlchemyError) as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        sys.exit(1)
    finally:
        db.close()


@cli.command()
def seed_templates():
    """
    Upsert the built-in OS templates (construction_ops, service_ops, finance_ops).

    A template is only replaced when the shipped version is newer.
    """
    db = SessionLocal()
    try:
        results = seed_builtin_templates(db)
        for key, outcome in results.items():
            click.echo(f"✓ {key}: {outcome}")
    except ServiceError as e:
        click.echo(f"❌ Error: {e}")
        sys.exit(1)
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        compassiq revoke-sessions --email "user@example.com"
    """
    db = SessionLocal()
    try:
        user = user_service.get_user_by_email(db, email)
        if not user:
            click.echo(f"❌ User not found: {email}")
            sys.exit(1)

        old_version = user.token_version
        user.token_version += 1
        db.commit()

        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")
    except SQLAlchemyError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    cli()
