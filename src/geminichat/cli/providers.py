"""Provider factory functions for CLI.

Centralizes creation of the completion client from environment variables.
Hides configuration details from command implementations.
"""

import os
from typing import Any

import typer
from rich.console import Console

from ..llm import CompletionClient, create_completion_client
from ..llm.base import DEFAULT_TIMEOUT
from ..llm.providers.gemini import DEFAULT_GEMINI_MODEL
from ..llm.providers.openai import DEFAULT_OPENAI_MODEL

DEFAULT_PROVIDER = "gemini"
DEFAULT_TEMPERATURE = 0.7

# Default console for output
_console = Console(stderr=True)


def _read_float(name: str, default: float, console: Console) -> float:
    """Read a numeric environment variable, exiting on malformed values."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        console.print(f"[red]Error: {name} must be a number, got {raw!r}[/red]")
        raise typer.Exit(code=1) from None


def get_client_config(console: Console | None = None) -> dict[str, Any]:
    """Collect settings shared by every provider.

    Args:
        console: Optional Rich console for output

    Returns:
        Keyword arguments for create_completion_client

    Raises:
        typer.Exit: If CHAT_TIMEOUT or CHAT_TEMPERATURE is malformed

    Environment variables:
        CHAT_SYSTEM_PROMPT: Instruction sent ahead of the conversation
        CHAT_TIMEOUT: Seconds to wait for a reply (default: 60)
        CHAT_TEMPERATURE: Sampling temperature (default: 0.7)
    """
    con = console or _console
    timeout = _read_float("CHAT_TIMEOUT", DEFAULT_TIMEOUT, con)
    if timeout <= 0:
        con.print("[red]Error: CHAT_TIMEOUT must be positive[/red]")
        raise typer.Exit(code=1)

    config: dict[str, Any] = {
        "timeout": timeout,
        "temperature": _read_float("CHAT_TEMPERATURE", DEFAULT_TEMPERATURE, con),
    }
    system_prompt = os.getenv("CHAT_SYSTEM_PROMPT")
    if system_prompt:
        config["system_prompt"] = system_prompt
    return config


def get_client(console: Console | None = None) -> CompletionClient | None:
    """Create completion client from environment variables.

    Args:
        console: Optional Rich console for output

    Returns:
        Completion client instance, or None if not configured

    Environment variables:
        LLM_PROVIDER: Provider type (gemini, openai, deepseek; default: gemini)
        GEMINI_API_KEY: Gemini API key (for gemini provider)
        GEMINI_MODEL: Gemini model (default: gemini-2.5-flash)
        OPENAI_API_KEY: OpenAI API key (for openai provider)
        OPENAI_CHAT_MODEL: OpenAI model (default: gpt-4o-mini)
        OPENAI_BASE_URL: OpenAI-compatible endpoint (optional)
        DEEPSEEK_API_KEY: DeepSeek API key (for deepseek provider)
    """
    con = console or _console
    provider = os.getenv("LLM_PROVIDER", DEFAULT_PROVIDER).lower()
    config = get_client_config(con)

    if provider == "gemini":
        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            con.print("[yellow]Warning: GEMINI_API_KEY not set[/yellow]")
            return None
        model = os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL)
        return create_completion_client("gemini", api_key=api_key, model=model, **config)

    elif provider == "openai":
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            con.print("[yellow]Warning: OPENAI_API_KEY not set[/yellow]")
            return None
        model = os.getenv("OPENAI_CHAT_MODEL", DEFAULT_OPENAI_MODEL)
        base_url = os.getenv("OPENAI_BASE_URL") or None
        return create_completion_client(
            "openai", api_key=api_key, model=model, base_url=base_url, **config
        )

    elif provider == "deepseek":
        api_key = os.getenv("DEEPSEEK_API_KEY")
        if not api_key:
            con.print("[yellow]Warning: DEEPSEEK_API_KEY not set[/yellow]")
            return None
        return create_completion_client("deepseek", api_key=api_key, **config)

    else:
        con.print(f"[red]Error: Unknown LLM provider: {provider}[/red]")
        return None


def require_client(console: Console | None = None) -> CompletionClient:
    """Get completion client, raising error if not configured.

    Args:
        console: Optional Rich console for output

    Returns:
        Completion client instance

    Raises:
        typer.Exit: If the provider is not configured
    """
    con = console or _console
    client = get_client(con)
    if client is None:
        con.print("[red]Error: completion provider not configured[/red]")
        raise typer.Exit(code=1)
    return client
