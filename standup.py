"""asana-standup: review this week's Asana tasks and build a standup table.

Walks through the tasks assigned to you that changed in the last seven days,
asks what you did on each, optionally posts your comment back to Asana, and
prints a Markdown table you can paste into a standup note.
"""

import asyncio
import logging
import sys

import click
from rich.console import Console

from asana_gateway import AsanaGateway, Config, StandupError
from standup_review import MODES, POST_ERROR_POLICIES, ReviewOptions, StandupSession
from standup_terminal import RichPrompter, copy_to_clipboard

logger = logging.getLogger(__name__)


async def run_standup(config: Config, prompter: RichPrompter, options: ReviewOptions, copy: bool | None = None):
    gateway = AsanaGateway(config)
    session = StandupSession(gateway, prompter, options, clipboard=copy_to_clipboard, copy=copy)
    return await session.run()


@click.command()
@click.option(
    "--mode",
    type=click.Choice(MODES),
    default="single",
    envvar="ASANA_STANDUP_MODE",
    show_default=True,
    help="single: confirm each task in turn; batch: pick tasks from a list first",
)
@click.option(
    "--on-post-error",
    type=click.Choice(POST_ERROR_POLICIES),
    default="continue",
    envvar="ASANA_STANDUP_ON_POST_ERROR",
    show_default=True,
    help="What to do when posting a comment to Asana fails",
)
@click.option("--token", default="", help="Personal Access Token (defaults to ASANA_PAT / ASANA_TOKEN)")
@click.option("--copy/--no-copy", default=None, help="Copy the table to the clipboard without asking")
@click.option("-v", "--verbose", is_flag=True)
def cli(mode, on_post_error, token, copy, verbose):
    """Review recently touched Asana tasks and summarise today's work."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    console = Console()
    prompter = RichPrompter(console)
    try:
        config = Config.from_env(token=token)
        if not config.token:
            entered = click.prompt(
                "Please enter your Asana Personal Access Token",
                hide_input=True,
                default="",
                show_default=False,
            )
            config = Config(token=entered, base_url=config.base_url, timeout=config.timeout)
        config.require_token()
        asyncio.run(run_standup(config, prompter, ReviewOptions(mode, on_post_error), copy))
    except StandupError as exc:
        logger.debug("Standup run failed", exc_info=True)
        console.print(f"Error: {exc}", style="red", markup=False, highlight=False)
        sys.exit(1)
    except (KeyboardInterrupt, EOFError):
        console.print("Aborted.")
        sys.exit(130)


if __name__ == "__main__":
    cli()
