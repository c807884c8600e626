# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Command-line interface for mail-gateway.

Runs the gateway and drives a running one: saved connection settings,
signature, single and bulk sends, and connectivity checks.

Usage:
    mail-gateway serve --config config.ini
    mail-gateway config set --api-key secret --endpoint http://localhost:8000
    mail-gateway config test
    mail-gateway smtp preset gmail --user me@gmail.com --password app-pass
    mail-gateway smtp test
    mail-gateway signature set --name "Jane Doe" --email jane@example.com
    mail-gateway send --to someone@example.com --subject Hi --content "<p>Hello</p>"
    mail-gateway bulk --file recipients.txt --subject News --content-file news.html

Every outcome is printed as a notification; a failure exits with status 1.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Callable, NoReturn

import click
import requests
import uvicorn
from rich.console import Console
from rich.table import Table

from . import __version__
from .bulk import BulkSender, RecipientOutcome, parse_recipients
from .client import EmailDraft, GatewayClient, GatewayResponse
from .config import load_config as load_gateway_config
from .local_store import (
    PRESET_HINTS,
    SMTP_PRESETS,
    ClientConfig,
    LocalStore,
    Signature,
    SmtpPreset,
    StoreError,
    apply_preset,
    clear_config,
    clear_signature,
    load_config,
    load_signature,
    save_config,
    save_signature,
    save_smtp,
)
from .logger import configure_logging, fingerprint
from .signature import append_signature, render_signature_html
from .validation import is_valid_email

console = Console()
err_console = Console(stderr=True)

NOTIFY_STYLES = {
    "success": ("green", "✓"),
    "error": ("red", "✗"),
    "warning": ("yellow", "!"),
    "info": ("cyan", "i"),
}


def notify(kind: str, title: str, message: str = "") -> None:
    """Print a typed notification.

    Errors go to stderr, everything else to stdout.
    """
    color, icon = NOTIFY_STYLES[kind]
    target = err_console if kind == "error" else console
    text = f"[{color}]{icon} {title}[/{color}]"
    if message:
        text += f" {message}"
    target.print(text)


def fail(title: str, message: str = "") -> NoReturn:
    notify("error", title, message)
    sys.exit(1)


def get_store(ctx: click.Context) -> LocalStore:
    return ctx.obj["store"]


def get_client(ctx: click.Context, require_key: bool = True) -> GatewayClient:
    config = load_config(get_store(ctx))
    if require_key and not config.api_key:
        fail("Configuration Required", "Please configure API key in settings first (mail-gateway config set).")
    return GatewayClient.from_config(config)


def call_gateway(action: str, request: Callable[[], GatewayResponse]) -> GatewayResponse:
    """Run one request, turning network failures into an error notification."""
    try:
        return request()
    except requests.RequestException as exc:
        fail("Connection Error", f"Failed to {action}: {exc}")


def report_failure(title: str, response: GatewayResponse) -> NoReturn:
    message = response.error
    if response.details:
        message = f"{message} ({response.details})"
    fail(title, message)


def read_text(value: str | None, path: Path | None, label: str) -> str | None:
    if value is not None and path is not None:
        raise click.UsageError(f"Use either --{label} or --{label}-file, not both.")
    if path is not None:
        return path.read_text()
    return value


# ============================================================================
# Root group
# ============================================================================

@click.group()
@click.version_option(__version__, package_name="mail-gateway")
@click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="MGW_STORE",
    default=None,
    help="Local settings file (default: ~/.mail-gateway/storage.json).",
)
@click.pass_context
def main(ctx: click.Context, store_path: Path | None) -> None:
    """mail-gateway: relay email through a small authenticated HTTP service."""
    ctx.ensure_object(dict)
    ctx.obj["store"] = LocalStore(store_path)


@main.command()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None,
              help="INI configuration file (default: $MGW_CONFIG or config.ini).")
@click.option("--host", "-h", default=None, help="Host to bind to (overrides configuration).")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on (overrides configuration).")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development.")
@click.option("--log-level", default=None, help="Logging level (default: $MGW_LOG_LEVEL or INFO).")
def serve(config_path: str | None, host: str | None, port: int | None, reload: bool, log_level: str | None) -> None:
    """Run the gateway HTTP service."""
    # mail_gateway.server builds its app from the environment on import;
    # --host and --port only set the address uvicorn binds.
    if config_path:
        os.environ["MGW_CONFIG"] = config_path
    if log_level:
        os.environ["MGW_LOG_LEVEL"] = log_level
    configure_logging(os.getenv("MGW_LOG_LEVEL", "INFO"))
    settings = load_gateway_config(config_path)
    host = host or settings.host
    port = port or settings.port

    console.print("\n[bold cyan]Starting mail-gateway[/bold cyan]")
    console.print(f"  Listen:      {host}:{port}")
    console.print(f"  Environment: {settings.environment}")
    console.print(f"  SMTP:        {settings.smtp.host or '[dim]not configured[/dim]'}:{settings.smtp.port}")
    console.print()

    uvicorn.run("mail_gateway.server:app", host=host, port=port, reload=reload, log_level="info")


@main.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check that the gateway is reachable and report SMTP status."""
    client = get_client(ctx, require_key=False)
    response = call_gateway("reach gateway", client.health)
    if not response.ok:
        report_failure("Health Check Failed", response)
    notify("success", "API is healthy", response.message)
    if not response.data.get("smtp_configured"):
        notify("warning", "SMTP not configured", "The gateway has no SMTP credentials.")


@main.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Show the gateway's version, environment and features."""
    client = get_client(ctx, require_key=False)
    response = call_gateway("reach gateway", client.info)
    if not response.ok:
        report_failure("Request Failed", response)
    data = response.data
    console.print(f"[bold]{data.get('message', 'mail-gateway')}[/bold]")
    console.print(f"  Version:     {data.get('version', '-')}")
    console.print(f"  Environment: {data.get('environment', '-')}")
    for feature, value in (data.get("features") or {}).items():
        console.print(f"  • {feature}: {value}")


# ============================================================================
# Saved configuration
# ============================================================================

@main.group("config")
def config_group() -> None:
    """Manage saved connection settings."""


def _mask(secret: str) -> str:
    return f"set (fingerprint {fingerprint(secret)})" if secret else "[dim]not set[/dim]"


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show saved connection settings."""
    config = load_config(get_store(ctx))
    table = Table(title="Saved configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("API key", _mask(config.api_key))
    table.add_row("API endpoint", config.api_endpoint)
    table.add_row("Default from", config.default_from_email or "-")
    table.add_row("Default from name", config.default_from_name or "-")
    table.add_row("Default to", config.default_to_email or "-")
    table.add_row("SMTP provider", config.smtp.provider)
    table.add_row("SMTP host", f"{config.smtp.host or '-'}:{config.smtp.port}")
    table.add_row("SMTP user", config.smtp.user or "-")
    table.add_row("SMTP password", _mask(config.smtp.password))
    console.print(table)


@config_group.command("set")
@click.option("--api-key", default=None, help="Gateway API key.")
@click.option("--endpoint", default=None, help="Gateway base URL.")
@click.option("--from-email", default=None, help="Default sender address.")
@click.option("--from-name", default=None, help="Default sender display name.")
@click.option("--to-email", default=None, help="Default recipient address.")
@click.pass_context
def config_set(ctx: click.Context, api_key, endpoint, from_email, from_name, to_email) -> None:
    """Update saved connection settings. Unspecified values are kept."""
    store = get_store(ctx)
    config = load_config(store)
    if api_key is not None:
        config.api_key = api_key.strip()
    if endpoint is not None:
        config.api_endpoint = endpoint.strip().rstrip("/")
    if from_email is not None:
        config.default_from_email = from_email.strip()
    if from_name is not None:
        config.default_from_name = from_name.strip()
    if to_email is not None:
        config.default_to_email = to_email.strip()
    try:
        save_config(store, config)
    except StoreError as exc:
        fail("Validation Error", str(exc))
    notify("success", "Settings Saved", "Your configuration has been saved successfully.")


@config_group.command("clear")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def config_clear(ctx: click.Context, force: bool) -> None:
    """Remove saved connection settings."""
    if not force and not click.confirm("Are you sure you want to clear all settings?"):
        console.print("[dim]Cancelled.[/dim]")
        return
    clear_config(get_store(ctx))
    notify("info", "Settings Cleared", "All settings have been reset.")


@config_group.command("test")
@click.pass_context
def config_test(ctx: click.Context) -> None:
    """Check the saved endpoint with a health request."""
    client = get_client(ctx)
    response = call_gateway("connect to API", client.health)
    if not response.ok:
        report_failure("Connection Failed", response)
    notify("success", "Connection Successful", response.message or "API is reachable.")


# ============================================================================
# SMTP settings
# ============================================================================

@main.group("smtp")
def smtp_group() -> None:
    """Manage and test SMTP settings."""


@smtp_group.command("preset")
@click.argument("provider", type=click.Choice(sorted(SMTP_PRESETS)))
@click.option("--user", default=None, help="SMTP username.")
@click.option("--password", default=None, help="SMTP password.")
@click.pass_context
def smtp_preset(ctx: click.Context, provider: str, user: str | None, password: str | None) -> None:
    """Fill host, port and TLS from a provider preset and save."""
    store = get_store(ctx)
    current = load_config(store).smtp
    smtp = apply_preset(current, provider)
    if user is not None:
        smtp.user = user.strip()
    if password is not None:
        smtp.password = password
    _save_smtp(store, smtp)
    if provider in PRESET_HINTS:
        notify("info", "Tip", PRESET_HINTS[provider])


@smtp_group.command("save")
@click.option("--host", required=True, help="SMTP server hostname.")
@click.option("--port", default="587", show_default=True, help="SMTP server port.")
@click.option("--secure/--no-secure", default=False, help="Use implicit TLS.")
@click.option("--user", required=True, help="SMTP username.")
@click.option("--password", required=True, help="SMTP password.")
@click.pass_context
def smtp_save(ctx: click.Context, host, port, secure, user, password) -> None:
    """Save custom SMTP settings."""
    smtp = SmtpPreset(provider="custom", host=host.strip(), port=str(port).strip(),
                      secure=secure, user=user.strip(), password=password)
    _save_smtp(get_store(ctx), smtp)


def _save_smtp(store: LocalStore, smtp: SmtpPreset) -> None:
    try:
        save_smtp(store, smtp)
    except StoreError as exc:
        fail("Validation Error", str(exc))
    notify("success", "SMTP Settings Saved", f"{smtp.host}:{smtp.port} as {smtp.user}")


@smtp_group.command("test")
@click.pass_context
def smtp_test(ctx: click.Context) -> None:
    """Ask the gateway to verify the saved SMTP settings."""
    config = load_config(get_store(ctx))
    missing = config.smtp.missing_fields()
    if missing:
        fail("Validation Error", "Please fill in all SMTP fields before testing")
    client = GatewayClient.from_config(config)
    notify("info", "Testing SMTP", f"Connecting to {config.smtp.host}:{config.smtp.port}...")
    response = call_gateway("test SMTP", lambda: client.test_smtp(config.smtp))
    if not response.ok:
        report_failure("SMTP Test Failed", response)
    notify("success", "SMTP Connected", response.message or "SMTP connection successful.")


# ============================================================================
# Signature
# ============================================================================

@main.group("signature")
def signature_group() -> None:
    """Manage the signature appended to outgoing emails."""


@signature_group.command("set")
@click.option("--name", default=None)
@click.option("--title", default=None)
@click.option("--company", default=None)
@click.option("--email", default=None)
@click.option("--phone", default=None)
@click.option("--website", default=None)
@click.option("--custom", default=None, help="Custom HTML; replaces all structured fields.")
@click.option("--custom-file", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None)
@click.pass_context
def signature_set(ctx: click.Context, custom_file: Path | None, **values: Any) -> None:
    """Update the saved signature. Unspecified fields are kept."""
    store = get_store(ctx)
    values["custom"] = read_text(values.get("custom"), custom_file, "custom")
    merged = load_signature(store).to_dict()
    merged.update({key: value for key, value in values.items() if value is not None})
    save_signature(store, Signature.from_dict(merged))
    notify("success", "Signature Saved", "Your email signature has been saved successfully.")


@signature_group.command("clear")
@click.pass_context
def signature_clear(ctx: click.Context) -> None:
    """Remove the saved signature."""
    clear_signature(get_store(ctx))
    notify("info", "Signature Cleared", "Signature has been cleared.")


@signature_group.command("preview")
@click.pass_context
def signature_preview(ctx: click.Context) -> None:
    """Print the rendered signature HTML."""
    html = render_signature_html(load_signature(get_store(ctx)))
    if not html:
        console.print("[dim]No signature configured.[/dim]")
        return
    click.echo(html)


# ============================================================================
# Sending
# ============================================================================

def _draft_options(func):
    options = [
        click.option("--subject", required=True, help="Subject line."),
        click.option("--content", default=None, help="Body text or HTML."),
        click.option("--content-file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
                     default=None, help="Read the body from a file."),
        click.option("--from", "from_email", default=None, help="Sender address (default: saved default)."),
        click.option("--from-name", default=None, help="Sender display name (default: saved default)."),
        click.option("--reply-to", default=None, help="Reply-To address."),
        click.option("--text", "plain_text", is_flag=True, help="Send the body as plain text."),
        click.option("--no-signature", is_flag=True, help="Do not append the saved signature."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_draft(ctx: click.Context, config: ClientConfig, to: str, subject: str, content: str | None,
                content_file: Path | None, from_email: str | None, from_name: str | None,
                reply_to: str | None, plain_text: bool, no_signature: bool) -> EmailDraft:
    body = read_text(content, content_file, "content")
    if not subject.strip() or not body or not body.strip():
        fail("Validation Error", "Please fill in all required fields")
    if not plain_text and not no_signature:
        body = append_signature(body, load_signature(get_store(ctx)))
    return EmailDraft(
        to=to,
        subject=subject.strip(),
        content=body,
        from_email=(from_email or config.default_from_email or None),
        from_name=(from_name or config.default_from_name or None),
        reply_to=reply_to or None,
        is_html=not plain_text,
    )


@main.command()
@click.option("--to", default=None, help="Recipient address (default: saved default recipient).")
@_draft_options
@click.pass_context
def send(ctx: click.Context, to: str | None, **draft_values: Any) -> None:
    """Send one email through the gateway."""
    client = get_client(ctx)
    config = load_config(get_store(ctx))
    recipient = (to or config.default_to_email).strip()
    if not recipient:
        fail("Validation Error", "Please fill in all required fields")
    if not is_valid_email(recipient):
        fail("Validation Error", f"Invalid email address: {recipient}")
    draft = build_draft(ctx, config, recipient, **draft_values)
    response = call_gateway("send email", lambda: client.send_email(draft))
    if not response.ok:
        report_failure("Send Failed", response)
    notify("success", "Email Sent!", f"Email sent successfully to {recipient}")
    if response.message_id:
        console.print(f"  Message ID: {response.message_id}")


@main.command()
@click.option("--recipients", default=None, help="Addresses separated by commas or newlines.")
@click.option("--file", "recipients_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="File with one address per line.")
@click.option("--delay", type=float, default=0.5, show_default=True, help="Seconds to wait between sends.")
@_draft_options
@click.pass_context
def bulk(ctx: click.Context, recipients: str | None, recipients_file: Path | None, delay: float,
         **draft_values: Any) -> None:
    """Send the same email to many recipients, one at a time."""
    client = get_client(ctx)
    config = load_config(get_store(ctx))
    text = read_text(recipients, recipients_file, "recipients") or ""
    addresses = parse_recipients(text)
    if not addresses:
        fail("Validation Error", "No valid email addresses found")
    draft = build_draft(ctx, config, "", **draft_values)

    def progress(done: int, total: int, outcome: RecipientOutcome) -> None:
        mark = "[green]✓[/green]" if outcome.success else "[red]✗[/red]"
        console.print(f"  [{done}/{total}] {mark} {outcome.email}: {outcome.message}")

    notify("info", "Bulk Send", f"Sending to {len(addresses)} recipient(s)...")
    report = BulkSender(client, delay=delay, on_progress=progress).run(addresses, draft)

    table = Table(title="Bulk send results")
    table.add_column("Recipient", style="cyan")
    table.add_column("Status")
    table.add_column("Message")
    for outcome in report.outcomes:
        status = "[green]sent[/green]" if outcome.success else "[red]failed[/red]"
        table.add_row(outcome.email, status, outcome.message)
    console.print(table)

    if report.all_sent:
        notify("success", "Bulk Send Complete", f"Successfully sent {report.sent} email(s)")
    else:
        notify("warning", "Bulk Send Completed with Errors", report.summary())
        sys.exit(1)


@main.command("test-email")
@click.pass_context
def test_email(ctx: click.Context) -> None:
    """Ask the gateway to send its service-online notification."""
    client = get_client(ctx)
    response = call_gateway("send test email", client.test_email)
    if not response.ok:
        report_failure("Test Email Failed", response)
    notify("success", "Test Email Sent", response.message)


if __name__ == "__main__":
    main()
