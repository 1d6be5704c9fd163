"""Menu tree and the navigation stack that walks it.

The console is a stack of Menu objects. Selecting a sub-menu pushes it,
"Back" pops it (the root's "Back" is Exit), and selecting an action runs it
and then asks where to go next. Menus may refuse entry through on_enter and
release resources in on_exit; popping the root tears the session down.
"""
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import bot_api
import osint
import user_actions
from bot_api import BotApiClient
from errors import ConfigurationError, report_error
from prompts import Choice

BACK = 'back'
AGAIN = 'again'
STAY = 'menu'
MAIN = 'main'


@dataclass
class ConsoleContext:
    settings: object
    prompter: object
    session: object
    bot: Optional[BotApiClient] = None
    bot_session: object = None


@dataclass
class MenuEntry:
    label: str
    action: Optional[Callable] = None
    submenu: Optional['Menu'] = None


@dataclass
class Menu:
    title: str
    entries: List[MenuEntry] = field(default_factory=list)
    back_label: str = "Back"
    on_enter: Optional[Callable] = None
    on_exit: Optional[Callable] = None


class Navigator:
    def __init__(self, root, ctx):
        self.root = root
        self.ctx = ctx
        self.stack = []

    @property
    def current(self):
        return self.stack[-1]

    async def run(self):
        """Loop until the root menu is left; returns the process exit code"""
        await self.push(self.root)
        while self.stack:
            menu = self.current
            print(f"\n--- {menu.title} ---")
            choices = [Choice(entry.label, str(idx)) for idx, entry in enumerate(menu.entries)]
            choices.append(Choice(menu.back_label, BACK))
            selected = self.ctx.prompter.select(f"Choose {menu.title} action:", choices)
            if selected == BACK:
                await self.pop()
                continue
            entry = menu.entries[int(selected)]
            if entry.submenu is not None:
                await self.push(entry.submenu)
            else:
                await self.perform(entry)
        return 0

    async def push(self, menu):
        if menu.on_enter is not None and not await menu.on_enter(self.ctx):
            self.ctx.prompter.pause(f"\nPress Enter to return to {self.current.title if self.stack else 'the menu'}...")
            return False
        self.stack.append(menu)
        return True

    async def pop(self):
        menu = self.stack.pop()
        if menu.on_exit is not None:
            await menu.on_exit(self.ctx)

    async def unwind_to_root(self):
        while len(self.stack) > 1:
            await self.pop()

    async def perform(self, entry):
        menu = self.current
        while True:
            if not await entry.action(self.ctx):
                self.ctx.prompter.pause(f"\nPress Enter to return to {menu.title}...")
                return
            nav = self.ctx.prompter.select(f'\n--- After "{entry.label}" ---', [
                Choice(f'Perform "{entry.label}" again', AGAIN),
                Choice("Back to current menu", STAY),
                Choice("Back to main menu", MAIN),
            ])
            if nav == AGAIN:
                continue
            if nav == MAIN:
                await self.unwind_to_root()
            return


# --- menu hooks ---

async def enter_bot_menu(ctx):
    token = ctx.settings.bot_token or ctx.prompter.text("Enter Bot Token (or set TG_BOT_TOKEN in .env):")
    try:
        ctx.bot = BotApiClient(token, session=ctx.bot_session)
    except ConfigurationError as e:
        report_error(e, "entering Bot Token Actions")
        return False
    return True


async def exit_bot_menu(ctx):
    ctx.bot = None


async def exit_console(ctx):
    await ctx.session.close()
    print("Exiting. Goodbye!")


# --- user account ---

async def my_info(ctx):
    return await user_actions.get_my_user_info(ctx.session)


async def user_info(ctx):
    ident = ctx.prompter.text("Enter User/Bot @username or ID:")
    return await user_actions.get_user_public_info(ctx.session, ident)


async def my_dialogs(ctx):
    limit = ctx.prompter.text("Enter max number of dialogs to fetch (blank for all available):")
    return await user_actions.list_joined_dialogs(ctx.session, limit)


# --- channel / group ---

CHAT_PROMPT = "Enter Channel/Group @username, t.me/ link, or ID:"


async def chat_admins(ctx):
    return await user_actions.get_channel_admins(ctx.session, ctx.prompter.text(CHAT_PROMPT))


async def chat_details(ctx):
    return await user_actions.get_extended_channel_info(ctx.session, ctx.prompter.text(CHAT_PROMPT))


async def user_status(ctx):
    chat_ident = ctx.prompter.text(CHAT_PROMPT)
    user_ident = ctx.prompter.text("Enter User @username or ID to check:")
    return await user_actions.check_user_status(ctx.session, chat_ident, user_ident)


async def export_members(ctx):
    chat_ident = ctx.prompter.text(CHAT_PROMPT)
    fmt = ctx.prompter.select("Select export format:", [Choice("CSV", "csv"), Choice("JSON", "json")])
    file_name = ctx.prompter.text(f"Enter filename (e.g., members.{fmt}):", default=f"members-{int(time.time())}.{fmt}")
    return await user_actions.export_chat_members(ctx.session, chat_ident, fmt, file_name, ctx.settings.export_dir)


# --- messages ---

MESSAGE_CHAT_PROMPT = "Enter Chat @username, t.me/ link, or ID:"
MESSAGE_LIMIT_PROMPT = "Max messages (default 20):"


async def recent_messages(ctx):
    chat_ident = ctx.prompter.text(MESSAGE_CHAT_PROMPT)
    limit = ctx.prompter.text(MESSAGE_LIMIT_PROMPT)
    return await user_actions.list_recent_messages(ctx.session, chat_ident, limit)


async def message_search(ctx):
    chat_ident = ctx.prompter.text(MESSAGE_CHAT_PROMPT)
    query = ctx.prompter.text("Search query:")
    limit = ctx.prompter.text(MESSAGE_LIMIT_PROMPT)
    return await user_actions.search_messages(ctx.session, chat_ident, query, limit)


# --- bot information ---

async def bot_info(ctx):
    return await user_actions.get_bot_public_info(ctx.session, ctx.prompter.text("Enter Bot @username or Bot ID:"))


async def bot_inviter(ctx):
    chat_ident = ctx.prompter.text("Enter Channel @username, t.me/ link, or ID:")
    bot_ident = ctx.prompter.text("Enter Bot @username or Bot ID to find:")
    return await user_actions.get_bot_inviter(ctx.session, chat_ident, bot_ident)


# --- bot token ---

async def inspect_bot(ctx):
    idents = ctx.prompter.text("Chat ID(s) for admin check (comma-separated, optional):")
    return await bot_api.inspect_bot(ctx.bot, idents)


async def send_message(ctx):
    chat_id = ctx.prompter.text("Target Chat ID:")
    text = ctx.prompter.text("Message text:")
    return await bot_api.send_message_via_bot(ctx.bot, chat_id, text)


async def webhook_info(ctx):
    return await bot_api.get_bot_webhook_info(ctx.bot)


async def webhook_set(ctx):
    url = ctx.prompter.text("Webhook URL (HTTPS or http://localhost):")
    return await bot_api.set_bot_webhook(ctx.bot, url)


async def webhook_delete(ctx):
    return await bot_api.delete_bot_webhook(ctx.bot, ctx.prompter)


async def commands_get(ctx):
    return await bot_api.get_bot_commands(ctx.bot)


async def commands_set(ctx):
    text = ctx.prompter.text('Commands JSON array (e.g., [{"command":"c","description":"d"}]):')
    return await bot_api.set_bot_commands(ctx.bot, text)


async def commands_delete(ctx):
    if not ctx.prompter.confirm("Sure to delete all commands?", default=False):
        print("Command deletion cancelled.")
        return False
    return await bot_api.delete_bot_commands(ctx.bot)


# --- OSINT ---

async def public_search(ctx):
    keyword = ctx.prompter.text("Enter keyword to search for:")
    limit = ctx.prompter.text("Max results to fetch (default 10):")
    return await osint.search_public_chats(ctx.session, keyword, limit)


async def link_analysis(ctx):
    return await osint.analyze_link(ctx.session, ctx.prompter.text("Enter t.me/... link to analyze:"))


async def located_peers(ctx):
    lat = ctx.prompter.text("Enter Latitude (e.g., 34.0522):")
    long = ctx.prompter.text("Enter Longitude (e.g., -118.2437):")
    radius = ctx.prompter.text("Accuracy Radius in meters (optional, default 500, max 3000):")
    return await osint.find_located_peers(ctx.session, lat, long, radius)


def build_main_menu():
    webhook_menu = Menu("Webhook Management", [
        MenuEntry("Get Webhook Info", webhook_info),
        MenuEntry("Set Webhook", webhook_set),
        MenuEntry("Delete Webhook", webhook_delete),
    ], back_label="Back to Bot Token Actions")
    command_menu = Menu("Bot Command Management", [
        MenuEntry("Get My Commands", commands_get),
        MenuEntry("Set My Commands", commands_set),
        MenuEntry("Delete My Commands", commands_delete),
    ], back_label="Back to Bot Token Actions")

    return Menu("Telegram Utilities Menu", [
        MenuEntry("User Account Actions", submenu=Menu("User Account", [
            MenuEntry("Get My Current Logged-in User Info", my_info),
            MenuEntry("Get Public Info for Another User/Bot", user_info),
            MenuEntry("List My Joined Channels/Groups", my_dialogs),
        ], back_label="Back to Main Menu")),
        MenuEntry("Channel/Group Actions (User Account)", submenu=Menu("Channel/Group", [
            MenuEntry("Get Admins of a Channel/Group", chat_admins),
            MenuEntry("Get Extended Channel/Group Info", chat_details),
            MenuEntry("Check User Status in Channel/Group", user_status),
            MenuEntry("Export Chat Members to File", export_members),
        ], back_label="Back to Main Menu")),
        MenuEntry("Message Actions (User Account)", submenu=Menu("Message", [
            MenuEntry("List Recent Messages in Chat", recent_messages),
            MenuEntry("Search Messages in Chat", message_search),
        ], back_label="Back to Main Menu")),
        MenuEntry("Bot Information (User Account)", submenu=Menu("Bot Information", [
            MenuEntry("Get Public Info about a Specific Bot", bot_info),
            MenuEntry("Find Who Added a Bot to a Channel", bot_inviter),
        ], back_label="Back to Main Menu")),
        MenuEntry("Bot Token Actions", submenu=Menu("Bot Token", [
            MenuEntry("Inspect Bot (GetMe & Chat Admins)", inspect_bot),
            MenuEntry("Send Message via Bot", send_message),
            MenuEntry("Webhook Management", submenu=webhook_menu),
            MenuEntry("Bot Command Management", submenu=command_menu),
        ], back_label="Back to Main Menu", on_enter=enter_bot_menu, on_exit=exit_bot_menu)),
        MenuEntry("OSINT Features (User Account)", submenu=Menu("OSINT", [
            MenuEntry("Search Public Channels/Groups by Keyword", public_search),
            MenuEntry("Analyze Public Telegram Link (t.me/...)", link_analysis),
            MenuEntry("Find Users/Chats Near Geo-coordinates", located_peers),
        ], back_label="Back to Main Menu")),
    ], back_label="Exit", on_exit=exit_console)
