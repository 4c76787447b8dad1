import asyncio
from pathlib import Path
from typing import Optional

import click
import simplejson as json
from rich.console import Console
from rich.table import Table

from impscope.meas import ElectrodeStatus, summarize
from impscope.session import ImpedanceSession, SourceMode
from impscope.sync import QueryState, SortField, SortOrder
from impscope.system import (
    AppSettings,
    create_default_settings_file,
    load_settings,
    update_setting,
)
from impscope.system import settings as settings_mod
from impscope.types import (
    Bank,
    RecordKind,
    RemoteUnavailable,
    Uncalibrated,
    ValidationError,
    validate_device_id,
)
from impscope.util import shutdown_log, start_log

STATUS_STYLE = {
    ElectrodeStatus.NORMAL: "green",
    ElectrodeStatus.SHORT: "red",
    ElectrodeStatus.OPEN: "yellow",
    ElectrodeStatus.UNCALIBRATED: "magenta",
}


def print_tree(cmd, prefix="", parent_ctx=None):
    """Print command tree starting from given command."""
    ctx = click.Context(cmd, info_name=cmd.name, parent=parent_ctx)

    # Only print root name if no parent
    if not parent_ctx:
        click.echo(cmd.name)

    for sub in sorted(cmd.list_commands(ctx)):
        sub_cmd = cmd.get_command(ctx, sub)
        click.echo(f"{prefix}└── {sub}")
        if isinstance(sub_cmd, click.Group):
            print_tree(sub_cmd, prefix + "    ", ctx)


def tree_option(f):
    """Add --tree option to command."""

    def callback(ctx, param, value):
        if not value or ctx.resilient_parsing:
            return
        print_tree(ctx.command)
        ctx.exit()

    return click.option(
        "--tree",
        is_flag=True,
        help="Show command tree from this point",
        expose_value=False,
        is_eager=True,
        callback=callback,
    )(f)


def _console() -> Console:
    return Console(color_system="standard", width=120)


def _settings(ctx: click.Context) -> AppSettings:
    return ctx.obj["settings"]


def _session(ctx: click.Context) -> ImpedanceSession:
    if "session" not in ctx.obj:
        session = ImpedanceSession.from_settings(_settings(ctx))
        ctx.obj["session"] = session
        ctx.call_on_close(session.close)
    return ctx.obj["session"]


def _load_readings(path: Path) -> dict[int, float]:
    with open(path) as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as e:
            raise click.ClickException(f"Invalid readings file {path}: {e}")
    if isinstance(raw, list):
        raw = {i + 1: v for i, v in enumerate(raw)}
    elif not isinstance(raw, dict):
        raise click.ClickException(
            f"Invalid readings file {path}: expected a JSON object or list"
        )
    try:
        return {int(k): float(v) for k, v in raw.items()}
    except (TypeError, ValueError) as e:
        raise click.ClickException(f"Invalid readings file {path}: {e}")


def _begin(session: ImpedanceSession, readings_file: Path, device_id: str) -> None:
    is_valid, msg = validate_device_id(device_id)
    if not is_valid:
        raise click.BadParameter(msg, param_hint="--device-id")
    session.set_device_id(device_id)
    session.begin_measurement()
    try:
        session.complete_measurement(_load_readings(readings_file))
    except (IndexError, ValueError, ValidationError) as e:
        raise click.ClickException(str(e))


@click.group()
@tree_option
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (default: ~/.impscope/settings.ini)",
)
@click.option(
    "--store-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Record store directory (overrides settings)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.option(
    "--log-path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Log file (default: ~/.impscope/impscope.log)",
)
@click.pass_context
def cli(ctx, settings_path, store_dir, verbose, log_path):
    """impscope - implant electrode impedance calibration and diagnosis.

    - Two-point calibration of the electrode banks from session readings

    - Electrode diagnosis (normal / short / open)

    - Browsing and management of stored calibration and measurement records
    """
    settings = load_settings(settings_path)
    if store_dir is not None:
        settings.store_dir = str(store_dir)
    start_log(
        log_to_file=True,
        log_to_stdout=True,
        log_path=log_path,
        clear_prev=False,
        log_level=settings.log_level,
        stdout_log_level="DEBUG" if verbose else "WARNING",
    )
    ctx.call_on_close(shutdown_log)
    ctx.obj = {"settings": settings, "settings_path": settings_path}


# ======================================================================================
# records
# ======================================================================================


@cli.group()
def records():
    """Browse and manage stored records."""
    pass


KIND_CHOICE = click.Choice([k.value for k in RecordKind])


@records.command("list")
@click.option("--kind", "-k", type=KIND_CHOICE, default=RecordKind.CALIBRATION.value)
@click.option("--query", "-q", default="", help="Filter on device id or date")
@click.option(
    "--sort",
    "sort_field",
    type=click.Choice([f.value for f in SortField]),
    default=SortField.DATE.value,
)
@click.option(
    "--order",
    "sort_order",
    type=click.Choice([o.value for o in SortOrder]),
    default=SortOrder.DESC.value,
)
@click.option("--page", "-p", type=int, default=1, help="Page number (1-based)")
@click.pass_context
def list_records(ctx, kind, query, sort_field, sort_order, page):
    """List records, 30 per page."""
    session = _session(ctx)
    state = QueryState(
        query=query,
        sort_field=SortField(sort_field),
        sort_order=SortOrder(sort_order),
        page_index=max(page - 1, 0),
    )
    try:
        result = asyncio.run(session.browse(RecordKind(kind), state))
    except RemoteUnavailable as e:
        raise click.ClickException(str(e))

    table = Table(title=f"{kind} records")
    table.add_column("Device id")
    table.add_column("Date")
    if RecordKind(kind) is RecordKind.CALIBRATION:
        table.add_column("Bank A slope")
        table.add_column("Bank B slope")
        for rec in result.items:
            table.add_row(
                rec.device_id,
                rec.date,
                _fmt(rec.bank_a.slope),
                _fmt(rec.bank_b.slope),
            )
    else:
        table.add_column("Normal")
        table.add_column("Short")
        table.add_column("Open")
        for rec in result.items:
            summary = summarize(rec.channel_results)
            table.add_row(
                rec.device_id,
                rec.date,
                str(summary.normal),
                str(summary.short),
                str(summary.open),
            )
    console = _console()
    console.print(table)
    console.print(
        f"Page {state.page_index + 1 if result.total_pages else 0} of "
        f"{result.total_pages} ({result.total_items} records)"
    )


def _fmt(val: Optional[float]) -> str:
    return "---" if val is None else f"{val:.5f}"


@records.command("show")
@click.argument("kind", type=KIND_CHOICE)
@click.argument("device_id")
@click.pass_context
def show_record(ctx, kind, device_id):
    """Show the latest record of DEVICE_ID."""
    session = _session(ctx)
    try:
        rec = asyncio.run(session.cache.find(RecordKind(kind), device_id))
    except RemoteUnavailable as e:
        raise click.ClickException(str(e))
    if rec is None:
        raise click.ClickException(f"No {kind} record for {device_id}")
    click.echo(json.dumps(rec.to_dict(), indent=2))


@records.command("delete")
@click.argument("kind", type=KIND_CHOICE)
@click.argument("device_id")
@click.confirmation_option(prompt="Delete the record?")
@click.pass_context
def delete_record(ctx, kind, device_id):
    """Delete the record(s) of DEVICE_ID."""
    session = _session(ctx)
    if not asyncio.run(session.delete_record(RecordKind(kind), device_id)):
        raise click.ClickException(f"Could not delete {kind} record for {device_id}")
    click.echo(f"Deleted {kind} record for {device_id}")


# ======================================================================================
# calibration / diagnosis
# ======================================================================================


@cli.command()
@click.argument("readings_file", type=click.Path(exists=True, path_type=Path))
@click.option("--device-id", "-d", required=True)
@click.option("--a-min", type=int, required=True, help="Channel picked first in bank A")
@click.option("--a-max", type=int, required=True, help="Channel picked second in bank A")
@click.option("--b-min", type=int, required=True, help="Channel picked first in bank B")
@click.option("--b-max", type=int, required=True, help="Channel picked second in bank B")
@click.option("--save/--no-save", default=False, help="Store the calibration record")
@click.pass_context
def calibrate(ctx, readings_file, device_id, a_min, a_max, b_min, b_max, save):
    """Calibrate both banks from two picked channels each.

    READINGS_FILE is JSON, either {"<channel>": raw, ...} or a list of 32 raw
    values in channel order.
    """
    session = _session(ctx)
    _begin(session, readings_file, device_id)
    picks = {Bank.A: (a_min, a_max), Bank.B: (b_min, b_max)}
    for bank, channels in picks.items():
        for channel in channels:
            try:
                session.select_sample(bank, channel)
            except (KeyError, ValueError, IndexError) as e:
                raise click.ClickException(str(e).strip("'\""))

    table = Table(title=f"Calibration {device_id}")
    for col in ("Bank", "Min (raw @ Hz)", "Max (raw @ Hz)", "Slope", "Intercept", "Status"):
        table.add_column(col)
    for bank in Bank:
        cal = session.calibration.snapshot(bank)
        table.add_row(
            bank.value,
            f"{cal.min_point.raw_value:g} @ {cal.min_point.reference_value:g}",
            f"{cal.max_point.raw_value:g} @ {cal.max_point.reference_value:g}",
            _fmt(cal.slope),
            _fmt(cal.intercept),
            cal.status.value,
        )
    _console().print(table)

    try:
        session.require_calibration()
    except ValidationError as e:
        raise click.ClickException(str(e))
    if save:
        if not asyncio.run(session.save_calibration()):
            raise click.ClickException("Saving the calibration failed")
        click.echo(f"Saved calibration for {device_id}")


@cli.command()
@click.argument("readings_file", type=click.Path(exists=True, path_type=Path))
@click.option("--device-id", "-d", required=True)
@click.option(
    "--source",
    type=click.Choice([SourceMode.RECORD.value, SourceMode.PREFER_RECORD.value]),
    default=SourceMode.RECORD.value,
    show_default=True,
    help="Calibration to diagnose with",
)
@click.option("--strict", is_flag=True, help="Fail when no usable calibration is available")
@click.option("--save/--no-save", default=False, help="Store the measurement record")
@click.pass_context
def diagnose(ctx, readings_file, device_id, source, strict, save):
    """Diagnose electrodes using the stored calibration of the device."""
    session = _session(ctx)
    _begin(session, readings_file, device_id)
    try:
        results = asyncio.run(
            session.diagnose(SourceMode(source), require_calibration=strict)
        )
    except (RemoteUnavailable, Uncalibrated) as e:
        raise click.ClickException(str(e))

    table = Table(title=f"Diagnosis {device_id}")
    for col in ("Channel", "Freq (Hz)", "Raw", "Result"):
        table.add_column(col)
    for res in results:
        style = STATUS_STYLE[res.status]
        table.add_row(
            str(res.channel),
            str(res.reference_value),
            f"{res.raw_value:.2f}",
            f"[{style}]{res.display_text}[/{style}]",
        )
    _console().print(table)

    if save:
        if not asyncio.run(session.save_measurement(results)):
            raise click.ClickException("Saving the measurement failed")
        click.echo(f"Saved measurement for {device_id}")


# ======================================================================================
# settings
# ======================================================================================


@cli.group("settings")
def settings_group():
    """Show and edit settings."""
    pass


def _settings_path(ctx) -> Path:
    path = ctx.obj["settings_path"]
    return Path(path) if path is not None else settings_mod.SETTINGS_FILE


@settings_group.command("show")
@click.pass_context
def settings_show(ctx):
    """Show the active settings."""
    settings = _settings(ctx)
    click.echo(f"# {_settings_path(ctx)}")
    for key, val in settings.to_section().items():
        click.echo(f"{key} = {val}")


@settings_group.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@click.pass_context
def settings_init(ctx, force):
    """Write the default settings file."""
    path = create_default_settings_file(_settings_path(ctx), force=force)
    click.echo(f"Settings file: {path}")


@settings_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def settings_set(ctx, key, value):
    """Set KEY to VALUE in the settings file."""
    try:
        update_setting(key, value, _settings_path(ctx))
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"{key} = {value}")
