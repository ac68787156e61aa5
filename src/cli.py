"""RBAC grant manager maintenance CLI (rbacctl)."""

import json

import typer

from src.config import settings
from src.utils.structlog_config import configure_logging

app = typer.Typer(name="rbacctl", help="MariaDB/MySQL RBAC grant manager")


@app.callback()
def main(log_level: str = typer.Option(None, help="Override LOG_LEVEL")):
    configure_logging(level=log_level)


@app.command("init-db")
def init_db():
    """Create catalog tables and seed default privileges and roles."""
    from src.database.db_init import initialize_db

    initialize_db()
    typer.echo("Catalog initialized")


@app.command("sync-accounts")
def sync_accounts(
    default_password: str = typer.Option(None, help="Password for newly created native accounts"),
):
    """Create native accounts for tracked users that are missing on the server."""
    from src.app import build_services
    from src.database.database import SessionLocal

    db = SessionLocal()
    try:
        result = build_services(db)['accounts'].sync_accounts(default_password or settings.DEFAULT_SYNC_PASSWORD)
    finally:
        db.close()

    typer.echo(f"created={len(result['created'])} skipped={len(result['skipped'])} failed={len(result['failed'])}")
    for failure in result['failed']:
        typer.echo(f"  FAILED {failure['account']}: {failure['error']}", err=True)
    if result['failed']:
        raise typer.Exit(code=1)


@app.command("apply-all")
def apply_all(
    database: str = typer.Option("*", help="Database to apply non-global privileges on ('*' for all)"),
):
    """Re-apply role privileges for every user with active assignments (clean-slate resync)."""
    from src.app import build_services
    from src.database.database import SessionLocal

    db = SessionLocal()
    try:
        result = build_services(db)['synchronizer'].apply_privileges_to_all_users(database)
    finally:
        db.close()

    failed = 0
    for report in result['reports']:
        typer.echo(f"  {report.account}: granted={len(report.granted)} failed={len(report.failed)}")
        failed += len(report.failed)
    for error in result['errors']:
        typer.echo(f"  ERROR user {error['user_id']}: {error['error']}", err=True)
    if failed or result['errors']:
        raise typer.Exit(code=1)


@app.command("show-grants")
def show_grants(
    user_id: int = typer.Argument(..., help="Tracked database user ID"),
    effective: bool = typer.Option(False, help="Also print catalog-derived effective privileges"),
):
    """Print SHOW GRANTS output for a tracked user."""
    from src.app import build_services
    from src.database.database import SessionLocal

    db = SessionLocal()
    try:
        services = build_services(db)
        for grant in services['synchronizer'].get_native_grants(user_id):
            typer.echo(grant)
        if effective:
            typer.echo(json.dumps(services['access'].resolve_effective_privileges(user_id), indent=2, ensure_ascii=False))
    finally:
        db.close()


@app.command("serve")
def serve(
    host: str = typer.Option(None, help="Host"),
    port: int = typer.Option(None, help="Port"),
):
    """Start the WSGI development server."""
    from wsgiref.simple_server import make_server
    from src.app import application

    host = settings.SERVER_HOST if host is None else host
    port = port or settings.SERVER_PORT
    with make_server(host, port, application) as httpd:
        typer.echo(f"Serving RBAC grant manager on {host or '0.0.0.0'}:{port}")
        httpd.serve_forever()


if __name__ == "__main__":
    app()
