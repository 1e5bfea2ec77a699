"""
CLI interface for schedmigrate.

Provides commands to check whether legacy scheduler tasks are left,
preview what the migration would write, and run it.
"""


from pathlib import Path

import click
from rich.markup import escape
from rich.table import Table

from schedmigrate import __version__
from schedmigrate.errors import ConfigError, StoreQueryError


@click.group()
@click.version_option(version=__version__, prog_name="schedmigrate")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.yaml (default: $SCHEDMIGRATE_HOME/config.yaml)",
)
@click.pass_context
def main(ctx, config_path: Path | None):
    """
    schedmigrate - Scheduler task migration.

    Migrates legacy LDAP import scheduler tasks into console command tasks.
    """
    from schedmigrate.config import load_config

    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config(config_path)
    except (FileNotFoundError, ConfigError) as e:
        # init does not need a config; other commands report this
        ctx.obj["config_error"] = str(e)


def _open_wizard(ctx):
    """Set up logging and return (connection, wizard) for the loaded config."""
    from schedmigrate.migration import MigrateSchedulerTasks
    from schedmigrate.store import connect
    from schedmigrate.utils import setup_logging

    if "config" not in ctx.obj:
        click.echo(f"✗ Config not loaded: {ctx.obj.get('config_error', 'Unknown error')}", err=True)
        click.echo("Run 'schedmigrate init' to create a configuration file.", err=True)
        raise SystemExit(1)

    config = ctx.obj["config"]
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=Path(config.log_file).expanduser() if config.log_file else None,
    )

    if not config.database_path.exists():
        click.echo(f"✗ Database not found: {config.database_path}", err=True)
        raise SystemExit(1)

    conn = connect(config.database_path)
    return conn, MigrateSchedulerTasks(conn, config)


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Initialize schedmigrate configuration."""
    from schedmigrate.config import SchedmigrateConfig, get_schedmigrate_home
    import yaml

    home = get_schedmigrate_home()
    if not home.exists():
        home.mkdir(parents=True)

    cfg_path = home / "config.yaml"
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)

    default_cfg = SchedmigrateConfig(
        sqlite_path="~/typo3/typo3.db",
        env_file=str(home / ".env"),
    ).to_dict()
    cfg_path.write_text(yaml.safe_dump(default_cfg, sort_keys=False))

    env_path = home / ".env"
    if not env_path.exists():
        env_path.write_text("# Variables referenced from config.yaml, e.g. TYPO3_DB=...\n")

    click.echo(f"Initialized schedmigrate config at {cfg_path}")


@main.command("check")
@click.pass_context
def check(ctx):
    """Report whether legacy tasks are left to migrate."""
    from schedmigrate.utils import print_error

    conn, wizard = _open_wizard(ctx)
    try:
        count = len(wizard.locator.find())
    except StoreQueryError as e:
        print_error(escape(str(e)))
        raise SystemExit(1)
    finally:
        conn.close()

    if count:
        click.echo(f"Migration needed: {count} legacy task(s)")
    else:
        click.echo("No legacy tasks left to migrate")


@main.command("plan")
@click.pass_context
def plan(ctx):
    """Show the command tasks the migration would create, without writing."""
    from schedmigrate.utils import console, print_error

    conn, wizard = _open_wizard(ctx)
    try:
        planned = wizard.plan()
    except StoreQueryError as e:
        print_error(escape(str(e)))
        raise SystemExit(1)
    finally:
        conn.close()

    if not planned:
        click.echo("No legacy tasks left to migrate")
        return

    table = Table(title=wizard.title)
    table.add_column("Legacy uid", justify="right")
    table.add_column("Description")
    table.add_column("Configuration")
    table.add_column("Options")
    for item in planned:
        if item.error:
            table.add_row(str(item.legacy.uid), "", "[red]unmigratable[/red]", escape(item.error))
            continue
        if not item.tasks:
            table.add_row(str(item.legacy.uid), "", "[yellow]none (empty registry)[/yellow]", "")
        for task in item.tasks:
            options = escape(", ".join(f"{k}={v}" for k, v in task.option_values.items()))
            table.add_row(
                str(item.legacy.uid),
                escape(task.description),
                task.arguments.get("configuration", ""),
                options,
            )
    console.print(table)


@main.command("run")
@click.pass_context
def run(ctx):
    """
    Run the migration.

    Exits 1 when a legacy task could not be migrated or a task failed to
    write. Running it again after success does nothing.
    """
    from schedmigrate.utils import print_error, print_success, print_warning

    conn, wizard = _open_wizard(ctx)
    try:
        if not wizard.update_necessary():
            click.echo("No legacy tasks left to migrate")
            return
        report = wizard.run()
    except StoreQueryError as e:
        print_error(escape(str(e)))
        raise SystemExit(1)
    finally:
        conn.close()

    for uid, reason in report.unmigratable.items():
        print_warning(f"Legacy task {uid} not migrated: {escape(reason)}")

    summary = (
        f"{report.legacy_found} legacy task(s), {report.written} task(s) written, "
        f"{report.failed} failed, {len(report.unmigratable)} unmigratable"
    )
    if report.success:
        print_success(summary)
    else:
        print_error(summary)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
