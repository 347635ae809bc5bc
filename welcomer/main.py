"""Welcomer - publish Markdown templates to Discord channels.

Entry point for the application.
Usage:
    python -m welcomer.main --content ./content      # Publish every template in ./content
    python -m welcomer.main --init                   # Initialize default config
    welcomer --content ./content --token <bot token>

As a GitHub Actions step the `discord-token` and `content` inputs are read
from the INPUT_* environment variables set by the runner.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from welcomer.adapters.discord_adapter import DiscordPublisher
from welcomer.config import WelcomerConfig, get_welcomer_home, load_config, save_default_config
from welcomer.core.errors import AnnotatedError
from welcomer.core.ledger import VisibilityLedger
from welcomer.core.metadata import build_channel_data
from welcomer.core.parser import parse_template
from welcomer.core.types import ChannelData
from welcomer.ui import actions

logger = structlog.get_logger()


def setup_logging(verbose: bool = False) -> None:
    """Configure structured logging.

    Logs go to stderr; stdout carries workflow commands for the runner.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if sys.stderr.isatty() else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(10 if verbose else 20),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _load_env() -> None:
    """Load .env files from the working directory and ~/.welcomer/."""
    env_file = Path(".env")
    if env_file.exists():
        from dotenv import load_dotenv
        load_dotenv(env_file)

    welcomer_env = get_welcomer_home() / ".env"
    if welcomer_env.exists():
        from dotenv import load_dotenv
        load_dotenv(welcomer_env)


def resolve_token(cli_token: str | None, config: WelcomerConfig) -> str:
    """Token from --token, the action input, or the configured env var."""
    return (
        cli_token
        or actions.get_input("discord-token")
        or config.discord.get_token()
        or ""
    )


def resolve_content_dir(cli_content: str | None, config: WelcomerConfig) -> Path:
    """Template directory from --content, the action input, or config."""
    return Path(cli_content or actions.get_input("content") or config.content.path)


def collect_templates(content_dir: Path, extension: str = ".md") -> list[Path]:
    """Template files directly inside content_dir, sorted by name."""
    suffix = extension.lower()
    return sorted(
        p for p in content_dir.iterdir()
        if p.is_file() and p.name.lower().endswith(suffix)
    )


def parse_templates(paths: list[Path]) -> list[ChannelData]:
    """Parse and validate every template. The first failure aborts."""
    data: list[ChannelData] = []
    for path in paths:
        result = parse_template(path)
        data.append(build_channel_data(result))
        actions.info(f"Successfully parsed `{path}`")
    return data


async def run(config: WelcomerConfig, content: str | None = None, token: str | None = None) -> None:
    """Parse the template directory and publish it."""
    bot_token = resolve_token(token, config)
    if not bot_token:
        actions.set_failed(
            f"Input 'discord-token' is required (or set {config.discord.token_env})"
        )
        return

    content_dir = resolve_content_dir(content, config)
    if not content_dir.is_dir():
        actions.set_failed("Input 'content' must be a directory")
        return

    paths = collect_templates(content_dir, config.content.extension)
    if not paths:
        actions.warning("No template files were found in the specified directory")
        return

    with actions.group("Parse Step"):
        data = parse_templates(paths)

    ledger = None
    if config.state.recover_visibility:
        ledger = VisibilityLedger(config.state.get_ledger_path())

    publisher = DiscordPublisher(config.discord, ledger=ledger)
    with actions.group("Send Step"):
        await publisher.publish(bot_token, *data)


def report_failure(error: Exception) -> None:
    """Turn an exception into runner diagnostics and a failed status."""
    logger.error("run_failed", error=str(error), error_type=type(error).__name__)

    if isinstance(error, AnnotatedError):
        actions.error(error.annotation, file=error.file)
        actions.set_failed(error.failure)
        return

    actions.set_failed(str(error) or "An unknown error occurred!")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Welcomer - publish Markdown templates to Discord channels",
        prog="welcomer",
    )
    parser.add_argument(
        "--content",
        type=str,
        default=None,
        help="Directory of templates (default: input 'content' or config content.path)",
    )
    parser.add_argument(
        "--token",
        type=str,
        default=None,
        help="Discord bot token (default: input 'discord-token' or $DISCORD_TOKEN)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config file (default: ~/.welcomer/config.yaml)",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Initialize default configuration",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show Welcomer version",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    if args.version:
        from welcomer import __version__

        print(f"Welcomer v{__version__}")
        return

    if args.init:
        config_path = save_default_config(
            Path(args.config) if args.config else None
        )
        print(f"Default config saved to: {config_path}")
        return

    _load_env()

    try:
        config = load_config(Path(args.config) if args.config else None)
        asyncio.run(run(config, content=args.content, token=args.token))
    except KeyboardInterrupt:
        actions.set_failed("Interrupted")
    except Exception as e:
        report_failure(e)

    sys.exit(actions.exit_code())


if __name__ == "__main__":
    main()
