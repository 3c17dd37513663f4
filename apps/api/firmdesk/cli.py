"""CLI tools for firm administration."""

import click

from firmdesk.core.config import settings
from firmdesk.core.errors import DomainError
from firmdesk.core.structured_logging import configure_logging
from firmdesk.db.enums import Role
from firmdesk.db.session import SessionLocal
from firmdesk.services import invite_service, org_service, user_service


@click.group()
def cli():
    """Firmdesk CLI tools."""
    configure_logging(settings.LOG_LEVEL)


@cli.command()
def migrate():
    """Upgrade the configured database to the latest schema."""
    from firmdesk.core.migrations import MigrationError, run_migrations
    from firmdesk.db.session import engine

    try:
        status = run_migrations(engine)
    except MigrationError as e:
        click.echo(f"❌ {e}")
        raise SystemExit(1)
    click.echo(f"✓ Database at {', '.join(status.current_heads)}")


@cli.command()
@click.option("--name", required=True, help="Firm name")
@click.option("--slug", default=None, help="URL-friendly slug (defaults to a random id)")
@click.option("--owner-email", required=True, help="Owner email; the user is created if missing")
@click.option("--owner-name", default=None, help="Display name for a new owner")
def create_firm(name: str, slug: str | None, owner_email: str, owner_name: str | None):
    """
    Create a firm and make its owner the first admin.

    This is the bootstrap command for setting up a new tenant.

    Example:
        python -m firmdesk.cli create-firm --name "Acme LLP" --slug acme --owner-email "owner@acme.com"
    """
    db = SessionLocal()
    try:
        owner = user_service.get_user_by_email(db, owner_email)
        if owner is None:
            owner = user_service.create_user(
                db, owner_email, owner_name or owner_email.split("@")[0]
            )
            click.echo(f"✓ Created user {owner.email}")

        firm = org_service.create_firm(db, name, owner_user_id=owner.id, slug=slug)

        click.echo(f"✓ Created firm: {firm.name}")
        click.echo(f"  ID: {firm.id}")
        click.echo(f"  Slug: {firm.slug}")
        click.echo(f"✓ {owner.email} is admin")
    except DomainError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--name", required=True, help="Client name")
@click.option("--firm-slug", required=True, help="Slug of the owning firm")
@click.option("--slug", default=None, help="URL-friendly slug (defaults to a random id)")
def create_client(name: str, firm_slug: str, slug: str | None):
    """Create a client organization under a firm."""
    db = SessionLocal()
    try:
        firm = org_service.get_org_by_slug(db, firm_slug)
        if firm is None:
            click.echo(f"❌ Firm not found: {firm_slug}")
            raise SystemExit(1)

        client = org_service.create_client(db, name, parent_firm_id=firm.id, slug=slug)

        click.echo(f"✓ Created client: {client.name}")
        click.echo(f"  ID: {client.id}")
        click.echo(f"  Slug: {client.slug}")
    except DomainError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--org-slug", required=True, help="Organization slug")
@click.option("--email", required=True, help="Invitee email address")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.STAFF.value,
    show_default=True,
)
@click.option("--inviter-email", required=True, help="Email of an admin of the organization")
def invite(org_slug: str, email: str, role: str, inviter_email: str):
    """
    Issue an invitation and print its token once.

    Example:
        python -m firmdesk.cli invite --org-slug acme --email "new@acme.com" --inviter-email "owner@acme.com"
    """
    db = SessionLocal()
    try:
        org = org_service.get_org_by_slug(db, org_slug)
        if org is None:
            click.echo(f"❌ Organization not found: {org_slug}")
            raise SystemExit(1)
        inviter = user_service.get_user_by_email(db, inviter_email)
        if inviter is None:
            click.echo(f"❌ User not found: {inviter_email}")
            raise SystemExit(1)

        issued = invite_service.issue_invite(
            db, org_id=org.id, email=email, role=role, invited_by_user_id=inviter.id
        )

        click.echo(f"✓ Invited {issued.email} to {org.name} as {issued.role}")
        click.echo(f"  Expires: {issued.expires_at.isoformat()}")
        click.echo(f"  Token: {issued.token}")
    except DomainError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--org-slug", required=True, help="Organization slug")
@click.option("--expired", is_flag=True, help="List expired invitations instead of pending ones")
def list_invites(org_slug: str, expired: bool):
    """List pending (or expired) invitations of an organization, newest first."""
    db = SessionLocal()
    try:
        org = org_service.get_org_by_slug(db, org_slug)
        if org is None:
            click.echo(f"❌ Organization not found: {org_slug}")
            raise SystemExit(1)

        if expired:
            invites = invite_service.list_expired_invites(db, org.id)
        else:
            invites = invite_service.list_pending_invites(db, org.id)

        if not invites:
            click.echo("No invitations")
            return
        for item in invites:
            click.echo(f"{item.id}  {item.email}  {item.role}  expires {item.expires_at.isoformat()}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
