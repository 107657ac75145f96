"""CLI entry point for driving the inbox state machine from a terminal."""

import logging
import os

import click
from dotenv import load_dotenv

from src.ai.suggester import ReplySuggester
from src.gateway.base import SuggestionService
from src.gateway.noop import CannedSuggestions, NoOpGateway, StaticSession
from src.state.config import Settings
from src.state.messages import MessageList
from src.state.store import AppStore

logger = logging.getLogger(__name__)


def build_store() -> AppStore:
    """Assemble an AppStore over the offline collaborators.

    AI suggestions go to Claude when ANTHROPIC_API_KEY is set, otherwise a
    canned reply is used.
    """
    messages = MessageList()
    suggestions: SuggestionService
    if os.environ.get("ANTHROPIC_API_KEY"):
        suggestions = ReplySuggester(messages)
    else:
        logger.info("ANTHROPIC_API_KEY not set; using canned AI suggestions")
        suggestions = CannedSuggestions()
    return AppStore(
        NoOpGateway(),
        suggestions,
        StaticSession.from_env(),
        settings=Settings.from_env(),
        messages=messages,
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log state transitions.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Inbox Zero — browse and run palette commands against the interface state."""
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj = build_store()


# Import and register commands after cli is defined to avoid circular imports.
from src.cli.commands import palette, run  # noqa: E402

cli.add_command(palette)
cli.add_command(run)
