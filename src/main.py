#!/usr/bin/env python3
import argparse
import asyncio
import logging
import sys

from config import Settings, __app_name__, __version__
from menu import ConsoleContext, Navigator, build_main_menu
from prompts import Prompter
from session import UserSession


def log_level(name, verbose=False):
    """Numeric logging level for LOG_LEVEL; unknown names fall back to WARNING"""
    if verbose:
        return logging.INFO
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.WARNING


async def run_console(settings, prompter=None):
    """Run the interactive menu until the operator exits; returns the exit code"""
    prompter = prompter or Prompter()
    session = UserSession(settings, prompter)
    ctx = ConsoleContext(settings=settings, prompter=prompter, session=session)
    print("Welcome to the Telegram Utilities Console!")
    try:
        return await Navigator(build_main_menu(), ctx).run()
    finally:
        # Ctrl+C or an unexpected error must still release the connection
        await session.close()


def main():
    parser = argparse.ArgumentParser(
        description=f'{__app_name__} {__version__} - interactive console for the Telegram Bot API and user accounts',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration is read from the environment or a .env file:
  TG_BOT_TOKEN        bot token for the Bot Token menu
  TG_API_ID           api_id from my.telegram.org
  TG_API_HASH         api_hash from my.telegram.org
  TG_STRING_SESSION   saved user session string (optional)
  TG_EXPORT_DIR       directory for member exports (default: .)
  LOG_LEVEL           logging level (default: WARNING)
""")

    parser.add_argument('--version', action='version',
                       version=f'{__app_name__} {__version__}')
    parser.add_argument('--verbose', action='store_true',
                       help='log Telegram requests and login state changes')

    args = parser.parse_args()

    settings = Settings.from_env()
    logging.basicConfig(
        level=log_level(settings.log_level, args.verbose),
        format='%(asctime)s %(name)s %(levelname)s: %(message)s',
    )

    try:
        code = asyncio.run(run_console(settings))
    except KeyboardInterrupt:
        print("\nInterrupted. Exiting.")
        code = 130
    sys.exit(code)


if __name__ == '__main__':
    main()
