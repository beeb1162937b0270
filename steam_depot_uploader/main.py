"""Command line entry point for the Steam depot uploader."""

import functools
import os
import sys
from typing import Optional

import click

from .account import AccountConfig
from .depot import DepotConfig
from .exceptions import SteamUploaderError
from .models import AuthCodeDelivery, UploadResult
from .notifications import NotificationService
from .prefs import PREFS_FILE_NAME, Prefs, default_prefs_path
from .steam import SteamCMDInstaller, SteamUploader
from .streams import LogStream


APP_NAME = "steam-depot-uploader"
LOG_STREAM_NAME = "steam_depot_uploader"


def default_user_prefs_path() -> str:
    """Return the machine-local settings file in the user's config directory."""
    return os.path.join(click.get_app_dir(APP_NAME), PREFS_FILE_NAME)


class Context:
    """Components shared by every command.

    Depot and upload settings live in the project settings file, which is
    usually committed. The Steam login and SteamCMD location live in the
    machine-local user settings file.
    """

    def __init__(self, project_root: str, prefs_path: Optional[str], user_prefs_path: Optional[str] = None,
                 quiet: bool = False) -> None:
        self.project_root = os.path.abspath(project_root)
        self.prefs = Prefs(prefs_path or default_prefs_path(self.project_root))
        self.user_prefs = Prefs(user_prefs_path or default_user_prefs_path())
        self.stream = LogStream(LOG_STREAM_NAME, quiet=quiet)
        self._installer: Optional[SteamCMDInstaller] = None
        self._account: Optional[AccountConfig] = None
        self._depot: Optional[DepotConfig] = None
        self._uploader: Optional[SteamUploader] = None

    @property
    def installer(self) -> SteamCMDInstaller:
        if self._installer is None:
            self._installer = SteamCMDInstaller(self.user_prefs, self.stream)
        return self._installer

    @property
    def account(self) -> AccountConfig:
        if self._account is None:
            self._account = AccountConfig(self.user_prefs, self.stream)
            self._account.load()
        return self._account

    @property
    def depot(self) -> DepotConfig:
        if self._depot is None:
            self._depot = DepotConfig(self.prefs, self.project_root, self.stream)
            self._depot.load()
        return self._depot

    @property
    def uploader(self) -> SteamUploader:
        if self._uploader is None:
            self._uploader = SteamUploader(self.prefs, self.installer, self.account, self.depot, self.stream)
            self._uploader.load()
        return self._uploader


def handle_errors(f):
    """Report uploader errors as click errors instead of tracebacks."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except SteamUploaderError as e:
            raise click.ClickException(e.message) from e
    return wrapper


def _mask(value: str) -> str:
    return "****" if value else ""


def _echo_result(result: UploadResult, show_log: bool) -> None:
    status = "Success" if result.success else "Failed"
    click.echo("")
    click.secho("Upload Result", bold=True)
    click.secho(f"  Status:      {status}", fg="green" if result.success else "red")
    click.echo(f"  Exit Code:   {result.exit_code}")
    click.echo(f"  Build ID:    {result.build_id or 'Not found'}")
    if result.upload_id:
        click.echo(f"  Upload ID:   {result.upload_id}")
    click.echo(f"  App ID:      {result.app_id}")
    click.echo(f"  Depot ID:    {result.depot_id}")
    click.echo(f"  Build Path:  {result.build_path}")
    click.echo(f"  Upload Time: {result.timestamp:%Y-%m-%d %H:%M:%S}")
    if result.partner_url:
        click.echo(f"  Details:     {result.partner_url}")
    elif not result.auth_code_rejected:
        click.secho("  Build ID not found. Unable to generate Steam Partner link.", fg="yellow")
    if show_log and result.log_output:
        click.echo("")
        click.secho("Log Output", bold=True)
        click.echo(result.log_output)


def _progress_printer():
    last = {"message": None}

    def report(fraction: float, message: str) -> None:
        if message != last["message"]:
            click.echo(f"[{int(fraction * 100):3d}%] {message}")
            last["message"] = message
    return report


def _is_interactive() -> bool:
    return sys.stdin.isatty()


def _finish_upload(ctx: Context, result: UploadResult, show_log: bool, branch: Optional[str]) -> None:
    """Present the result; on a rejected auth code, ask for a new one and retry once."""
    if result.auth_code_rejected and _is_interactive():
        click.secho("Steam rejected the auth code.", fg="red", err=True)
        if click.confirm("Request a new auth code now?", default=True):
            _report_delivery(ctx.account.request_auth_code(ctx.installer.steamcmd_path))
        ctx.account.set_auth_code(click.prompt("Auth code"))
        result = ctx.uploader.upload(branch)

    if not result.auth_code_rejected:
        _echo_result(result, show_log)
        NotificationService().send_upload_notification(result, os.path.basename(ctx.project_root))
    result.raise_for_status()


def _report_delivery(delivery: AuthCodeDelivery) -> None:
    if delivery is AuthCodeDelivery.UNKNOWN:
        click.echo("The auth code request has completed, but it could not be confirmed that a code "
                   "was sent. Check your email and mobile app for messages from Steam.")
    else:
        click.echo(f"An authentication code has been sent to your {delivery.value}.")


# ===============================================================
# Commands
# ===============================================================

@click.group(name=APP_NAME)
@click.option('--project-root', type=click.Path(file_okay=False), envvar='STEAM_UPLOADER_PROJECT_ROOT',
              default='.', show_default=True, help='Project directory build paths are relative to')
@click.option('--prefs', 'prefs_path', type=click.Path(dir_okay=False), envvar='STEAM_UPLOADER_PREFS',
              help='Settings file (default: <project-root>/ProjectSettings/SteamDepotUploaderPrefs.json)')
@click.option('--user-prefs', 'user_prefs_path', type=click.Path(dir_okay=False), envvar='STEAM_UPLOADER_USER_PREFS',
              help='Machine-local settings file for the Steam login and SteamCMD location')
@click.option('-q', '--quiet', is_flag=True, help='Only print warnings, errors and results')
@click.pass_context
def cli(ctx, project_root, prefs_path, user_prefs_path, quiet):
    """Upload game builds to Steam depots through SteamCMD."""
    ctx.obj = Context(project_root, prefs_path, user_prefs_path, quiet=quiet)


@cli.command()
@click.option('--app-id', help='Steam App ID')
@click.option('--depot-id', help='Steam Depot ID')
@click.option('--build-output', help='Build output directory, relative to the project root')
@click.option('--username', help='Steam username')
@click.option('--password', help='Steam password')
@click.option('--auth-code', help='Steam Guard / two-factor code')
@click.option('--description', help='Build description shown on Steamworks')
@click.option('--steamcmd-dir', type=click.Path(file_okay=False), help='SteamCMD install directory')
@click.pass_obj
@handle_errors
def configure(ctx: Context, app_id, depot_id, build_output, username, password, auth_code,
              description, steamcmd_dir):
    """Change settings and print the current configuration."""
    depot, account, uploader = ctx.depot, ctx.account, ctx.uploader

    if any(value is not None for value in (app_id, depot_id, build_output)):
        depot.app_id = app_id if app_id is not None else depot.app_id
        depot.depot_id = depot_id if depot_id is not None else depot.depot_id
        depot.build_output_path = build_output if build_output is not None else depot.build_output_path
        depot.save()

    account.update(username=username, password=password, auth_code=auth_code)

    if description is not None:
        uploader.upload_description = description
        uploader.save()

    if steamcmd_dir is not None:
        ctx.installer.set_custom_install_path(steamcmd_dir)

    click.echo(f"Settings file:  {ctx.prefs.path}")
    click.echo(f"User settings:  {ctx.user_prefs.path}")
    click.echo(f"App ID:         {depot.app_id}")
    click.echo(f"Depot ID:       {depot.depot_id}")
    click.echo(f"Build output:   {depot.build_output_path} ({depot.get_absolute_build_path()})")
    click.echo(f"Username:       {account.username}")
    click.echo(f"Password:       {_mask(account.password)}")
    click.echo(f"Auth code:      {_mask(account.auth_code)}")
    click.echo(f"Description:    {uploader.upload_description}")
    click.echo(f"Exclusions:     {', '.join(uploader.file_exclusions)}")
    click.echo(f"SteamCMD:       {ctx.installer.steamcmd_path}")


@cli.command()
@click.pass_obj
@handle_errors
def status(ctx: Context):
    """Show whether everything needed for an upload is in place."""
    checks = [
        ("SteamCMD installed", ctx.installer.is_installed()),
        ("Credentials set", ctx.account.are_credentials_set()),
        ("Depot settings valid", ctx.depot.is_valid()),
        ("Build output exists", ctx.depot.build_output_directory_exists()),
    ]
    for name, passed in checks:
        click.echo(f"{name + ':':<24}" + click.style("yes" if passed else "no", fg="green" if passed else "red"))
    if not all(passed for _, passed in checks):
        sys.exit(1)


@cli.command()
@click.pass_obj
@handle_errors
def reset(ctx: Context):
    """Reset depot settings to their defaults."""
    ctx.depot.reset_to_defaults()
    ctx.depot.save()
    click.echo("Depot settings reset.")


@cli.group()
def exclusions():
    """Manage file exclusion patterns."""


@exclusions.command(name='list')
@click.pass_obj
@handle_errors
def list_exclusions(ctx: Context):
    for pattern in ctx.uploader.file_exclusions:
        click.echo(pattern)


@exclusions.command(name='add')
@click.argument('patterns', nargs=-1, required=True)
@click.pass_obj
@handle_errors
def add_exclusions(ctx: Context, patterns):
    for pattern in patterns:
        ctx.uploader.add_file_exclusion(pattern)
    ctx.uploader.save()
    click.echo(', '.join(ctx.uploader.file_exclusions))


@exclusions.command(name='remove')
@click.argument('patterns', nargs=-1, required=True)
@click.pass_obj
@handle_errors
def remove_exclusions(ctx: Context, patterns):
    for pattern in patterns:
        ctx.uploader.remove_file_exclusion(pattern)
    ctx.uploader.save()
    click.echo(', '.join(ctx.uploader.file_exclusions))


@cli.command()
@click.option('--dir', 'install_dir', type=click.Path(file_okay=False), help='Install into this directory')
@click.pass_obj
@handle_errors
def install(ctx: Context, install_dir):
    """Download and initialize SteamCMD."""
    if install_dir:
        ctx.installer.set_custom_install_path(install_dir)
    if ctx.installer.install(progress=_progress_printer()):
        click.echo("SteamCMD has been successfully installed and initialized.")
    else:
        click.echo("SteamCMD is already installed in the selected directory.")


@cli.command(name='auth-code')
@click.pass_obj
@handle_errors
def auth_code(ctx: Context):
    """Ask Steam to send a new two-factor code."""
    _report_delivery(ctx.account.request_auth_code(ctx.installer.steamcmd_path))


@cli.command()
@click.option('--auth-code', 'code', help='Use this auth code for the upload and save it')
@click.option('--branch', help='Set the build live on this branch')
@click.option('--show-log', is_flag=True, help='Print the full SteamCMD log with the result')
@click.pass_obj
@handle_errors
def upload(ctx: Context, code, branch, show_log):
    """Upload the build output directory to the Steam depot."""
    if code is not None:
        ctx.account.set_auth_code(code)
    _finish_upload(ctx, ctx.uploader.upload(branch), show_log, branch)


@cli.command(name='build-and-upload')
@click.option('--build-command', required=True, envvar='STEAM_UPLOADER_BUILD_COMMAND',
              help='Command that writes the build into the build output directory')
@click.option('--auth-code', 'code', help='Use this auth code for the upload and save it')
@click.option('--branch', help='Set the build live on this branch')
@click.option('--show-log', is_flag=True, help='Print the full SteamCMD log with the result')
@click.pass_obj
@handle_errors
def build_and_upload(ctx: Context, build_command, code, branch, show_log):
    """Run the build command, then upload if it succeeded."""
    if code is not None:
        ctx.account.set_auth_code(code)
    _finish_upload(ctx, ctx.uploader.build_and_upload(build_command, branch), show_log, branch)


def main():
    cli(prog_name=APP_NAME)


if __name__ == "__main__":
    main()
