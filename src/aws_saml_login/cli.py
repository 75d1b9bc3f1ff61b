"""aws-saml-login - AWS credentials through Azure AD SAML federation.

Usage:
    aws-saml-login login [--profile NAME | --all] [--force] [--no-prompt] [--json]
    aws-saml-login configure [--profile NAME]
"""

from __future__ import annotations

import sys
from typing import Any, Callable, NoReturn, Sequence

import click

from aws_saml_login.browser import BrowserAuthenticator
from aws_saml_login.credentials import CredentialStore
from aws_saml_login.errors import BrokerError
from aws_saml_login.exit_codes import (
    CONFIG_ERROR,
    PARTIAL_FAILURE,
    SUCCESS,
    exit_code_for,
)
from aws_saml_login.log_config import configure_logging
from aws_saml_login.login import LoginOrchestrator
from aws_saml_login.output import format_batch_result, format_credential, format_response
from aws_saml_login.profiles import PROFILE_DEFAULTS, Profile, ProfileStore
from aws_saml_login.resolver import DURATION_PROMPT, is_valid_duration, parse_duration
from aws_saml_login.settings import load_settings, resolve_profile_name, validate_settings
from aws_saml_login.sts import StsClient

# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _emit(output: str, exit_code: int = SUCCESS) -> NoReturn:
    """Print output and exit with the given code."""
    click.echo(output)
    sys.exit(exit_code)


def _emit_error(
    code: str,
    message: str,
    json_mode: bool,
    exit_code: int | None = None,
) -> NoReturn:
    """Emit a structured error and exit."""
    if exit_code is None:
        exit_code = exit_code_for(code)
    output = format_response(
        "error",
        error={"code": code, "message": message},
        json_mode=json_mode,
        color=_color(),
    )
    _emit(output, exit_code)


def _color() -> bool:
    return sys.stdout.isatty()


def _load_settings(ctx: click.Context, json_mode: bool, **overrides: Any) -> dict[str, Any]:
    """Resolve settings, validating them first."""
    try:
        settings = load_settings(ctx.obj["settings_path"], **overrides)
    except ValueError as exc:
        _emit_error("VALIDATION_ERROR", f"Settings error: {exc}", json_mode)
    valid, err = validate_settings(settings)
    if not valid:
        _emit_error("VALIDATION_ERROR", f"Settings error: {err}", json_mode)
    return settings


class ClickPrompter:
    """Terminal prompts on stderr, so ``--json`` output stays clean."""

    def choose(self, prompt: str, options: Sequence[str], default: int = 0) -> int:
        for number, option in enumerate(options, start=1):
            click.echo(f"  {number}) {option}", err=True)
        choice = click.prompt(prompt, type=click.IntRange(1, len(options)), default=default + 1, err=True)
        return int(choice) - 1

    def ask(self, prompt: str, default: str | None, validate: Callable[[str], bool]) -> str:
        while True:
            answer = str(click.prompt(prompt, default=default, err=True))
            if validate(answer):
                return answer
            click.echo(f"Invalid value: {answer!r}", err=True)


# ------------------------------------------------------------------
# CLI group
# ------------------------------------------------------------------


@click.group()
@click.option("--settings", "settings_path", default=None, help="Path to the YAML settings file.")
@click.option("--debug", is_flag=True, default=False, help="Verbose logging and a visible browser window.")
@click.version_option(package_name="aws-saml-login")
@click.pass_context
def cli(ctx: click.Context, settings_path: str | None, debug: bool) -> None:
    """Obtain short-lived AWS credentials through Azure AD SAML sign-in."""
    ctx.ensure_object(dict)
    ctx.obj["settings_path"] = settings_path
    ctx.obj["debug"] = debug
    configure_logging(debug)


# ------------------------------------------------------------------
# login
# ------------------------------------------------------------------


@cli.command()
@click.option("-p", "--profile", default=None, help="Profile to log into (defaults to $AWS_PROFILE, then 'default').")
@click.option("-a", "--all", "all_profiles", is_flag=True, default=False, help="Log into every configured profile.")
@click.option("-f", "--force", is_flag=True, default=False, help="Refresh even if cached credentials are still valid.")
@click.option("--no-prompt", is_flag=True, default=False, help="Never prompt; rely on profile defaults.")
@click.option("--sandbox/--no-sandbox", default=None, help="Run Chromium with or without its sandbox.")
@click.option("--headless/--no-headless", default=None, help="Hide the browser window.")
@click.option("--timeout", type=int, default=None, help="Seconds to wait for sign-in.")
@click.option("--json", "json_mode", is_flag=True, default=False, help="Print credential_process JSON to stdout.")
@click.pass_context
def login(
    ctx: click.Context,
    profile: str | None,
    all_profiles: bool,
    force: bool,
    no_prompt: bool,
    sandbox: bool | None,
    headless: bool | None,
    timeout: int | None,
    json_mode: bool,
) -> None:
    """Log into one profile, or all of them with --all."""
    if all_profiles and profile:
        _emit_error("VALIDATION_ERROR", "Use either --profile or --all, not both.", json_mode)

    settings = _load_settings(ctx, json_mode, sandbox=sandbox, headless=headless, login_timeout=timeout)
    profile_store = ProfileStore(settings["config_file"])
    credential_store = CredentialStore(settings["credentials_file"])

    try:
        profiles = profile_store.read()
        credentials = credential_store.read()
    except BrokerError as exc:
        _emit_error(exc.code, str(exc), json_mode)

    authenticator = BrowserAuthenticator(
        headless=bool(settings["headless"]) and not ctx.obj["debug"],
        sandbox=settings["sandbox"],
        user_data_dir=settings["browser_data_dir"],
    )

    def _exchange_factory(region: str | None) -> StsClient:
        return StsClient(region, timeout=settings["sts_timeout"], retries=settings["sts_retries"])

    orchestrator = LoginOrchestrator(
        profiles,
        credentials,
        authenticator=authenticator,
        exchange_factory=_exchange_factory,
        store=credential_store,
        prompter=None if no_prompt else ClickPrompter(),
        login_timeout=settings["login_timeout"],
        extraction_retries=settings["extraction_retries"],
    )

    if all_profiles:
        result = orchestrator.login_all(force_refresh=force)
        output = format_batch_result(result, json_mode=json_mode, color=_color())
        _emit(output, SUCCESS if result.ok else PARTIAL_FAILURE)

    name = resolve_profile_name(profile)
    try:
        credential = orchestrator.login_one(name, force_refresh=force, interactive_allowed=not no_prompt)
    except BrokerError as exc:
        _emit_error(exc.code, str(exc), json_mode)

    _emit(format_credential(name, credential, json_mode=json_mode, color=_color()), SUCCESS)


# ------------------------------------------------------------------
# configure
# ------------------------------------------------------------------


def _prompt_text(label: str, current: str | None, required: bool = False) -> str | None:
    value = click.prompt(label, default=current or "", show_default=bool(current), err=True)
    value = str(value).strip()
    while required and not value:
        value = str(click.prompt(label, err=True)).strip()
    return value or None


@cli.command()
@click.option("-p", "--profile", default=None, help="Profile to create or edit.")
@click.pass_context
def configure(ctx: click.Context, profile: str | None) -> None:
    """Create or edit a profile in the AWS config file."""
    settings = _load_settings(ctx, False)
    store = ProfileStore(settings["config_file"])
    try:
        profiles = store.read()
    except BrokerError as exc:
        _emit_error(exc.code, str(exc), False)

    name = resolve_profile_name(profile)
    existing = profiles.get(name) or Profile()
    click.echo(f"Configuring profile: {name}", err=True)

    def _current(key: str) -> Any:
        value = getattr(existing, key)
        return PROFILE_DEFAULTS.get(key) if value is None else value

    tenant_id = _prompt_text("Azure Tenant ID", existing.azure_tenant_id, required=True)
    app_id_uri = _prompt_text("Azure App ID URI", _current("azure_app_id_uri"), required=True)
    username = _prompt_text("Azure Username", existing.azure_default_username)
    role_arn = _prompt_text("Default Role ARN (if multiple)", existing.azure_default_role_arn)
    duration = ClickPrompter().ask(
        f"Default {DURATION_PROMPT}",
        str(_current("azure_default_duration_hours")),
        is_valid_duration,
    )
    remember_me = click.confirm("Remember Me", default=bool(_current("azure_default_remember_me")), err=True)
    region = _prompt_text("Region", _current("region"))

    updated = Profile(
        azure_tenant_id=tenant_id,
        azure_app_id_uri=app_id_uri,
        azure_default_username=username,
        azure_default_role_arn=role_arn,
        azure_default_duration_hours=parse_duration(duration),
        azure_default_remember_me=remember_me,
        region=region,
        credential_process=existing.credential_process,
        extra=existing.extra,
    )
    ProfileStore.upsert(name, updated, profiles)
    try:
        store.write(profiles)
    except BrokerError as exc:
        _emit_error(exc.code, str(exc), False, CONFIG_ERROR)

    _emit(format_response("success", data={"profile": name, "file": str(store.path)}, color=_color()))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
