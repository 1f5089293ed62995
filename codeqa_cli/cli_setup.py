"""`cq config` commands: inspect and change the LLM provider configuration."""

from __future__ import annotations

from typing import Optional

import typer

from . import config_manager
from .storage import TomlSettingsStore

config_app = typer.Typer(help="🔧 Reasoning engine configuration", no_args_is_help=True)


def print_success(message: str):
    typer.echo(typer.style(f"✅ {message}", fg=typer.colors.GREEN))


def print_error(message: str):
    typer.echo(typer.style(f"❌ {message}", fg=typer.colors.RED), err=True)


def print_info(message: str):
    typer.echo(typer.style(f"ℹ️  {message}", fg=typer.colors.BLUE))


def _mask(api_key: str) -> str:
    if len(api_key) <= 8:
        return "•" * len(api_key)
    return api_key[:8] + "•" * min(len(api_key) - 8, 16)


@config_app.command("show")
def show_config():
    """Show current provider, model and key status."""
    cfg = config_manager.load_config()
    provider = cfg.get("provider", "groq")
    defaults = config_manager.get_provider_config(provider)
    model = cfg.get("model") or defaults.get("model", "")
    endpoint = cfg.get("endpoint") or defaults.get("endpoint", "")

    stored_key = TomlSettingsStore().get("api_key") or cfg.get("api_key", "")

    typer.echo(f"  Provider  {typer.style(provider.upper(), bold=True)}")
    typer.echo(f"  Model     {typer.style(model, bold=True)}")
    typer.echo(f"  Endpoint  {typer.style(endpoint, dim=True)}")
    if stored_key:
        typer.echo(f"  API Key   {_mask(stored_key)}")
    else:
        typer.echo(f"  API Key   {typer.style('(not set)', dim=True)}")
    typer.echo(f"  Config    {typer.style(str(config_manager.CONFIG_FILE), dim=True)}")

    ingest = config_manager.load_ingest_config()
    if ingest:
        typer.echo("")
        typer.echo(typer.style("  Ingestion overrides", bold=True))
        for key, value in sorted(ingest.items()):
            typer.echo(f"  {key:<18}{value}")


@config_app.command("set-key")
def set_key(
    api_key: str = typer.Argument(..., help="API key for the configured provider."),
    validate: bool = typer.Option(False, "--validate", help="Check the key against the provider before saving."),
):
    """Store the API key used for questions."""
    api_key = api_key.strip()
    if not api_key:
        print_error("API key must not be empty.")
        raise typer.Exit(code=1)

    if validate:
        cfg = config_manager.load_config()
        provider = cfg.get("provider", "groq")
        model = cfg.get("model") or config_manager.get_provider_config(provider).get("model", "")
        typer.echo("⏳ Validating API key...")
        is_valid, error_msg = config_manager.validate_api_key(provider, api_key, model, cfg.get("endpoint", ""))
        if not is_valid:
            print_error(f"Validation failed: {error_msg}")
            raise typer.Exit(code=1)

    if not config_manager.save_setting("api_key", api_key):
        print_error(f"Could not write {config_manager.CONFIG_FILE}")
        raise typer.Exit(code=1)
    print_success("API key saved.")


@config_app.command("set-llm")
def set_llm(
    provider: str = typer.Argument(..., help="LLM provider: groq, openai, openrouter"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name (uses provider default if not set)."),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", "-e", help="Custom OpenAI-compatible endpoint URL."),
):
    """Switch the reasoning engine provider.

    Examples:
        cq config set-llm groq
        cq config set-llm openrouter -m meta-llama/llama-3.3-70b-instruct:free
    """
    provider = provider.lower().strip()
    if provider not in config_manager.ALL_PROVIDERS:
        print_error(f"Unknown provider '{provider}'. Choose from: {', '.join(config_manager.ALL_PROVIDERS)}")
        raise typer.Exit(code=1)

    current = config_manager.load_config()
    defaults = config_manager.get_provider_config(provider)
    resolved_model = model or defaults.get("model", "")
    resolved_endpoint = endpoint or ""

    # Keep the key when re-selecting the same provider
    api_key = current.get("api_key", "") if current.get("provider") == provider else ""

    if not config_manager.save_config(provider, resolved_model, api_key, resolved_endpoint):
        print_error(f"Could not write {config_manager.CONFIG_FILE}")
        raise typer.Exit(code=1)
    print_success(f"Using {provider} ({resolved_model}).")
    if not api_key and not TomlSettingsStore().get("api_key"):
        print_info("No API key stored yet. Run 'cq config set-key <KEY>'.")
