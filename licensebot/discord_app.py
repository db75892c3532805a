import logging
from typing import Awaitable, Callable, Optional

import discord
from discord import app_commands
from discord.ext import commands

from .config import Settings
from .errors import LicenseError, NoLicense, Unauthorized
from .models import Reply
from .services.allowlist import AllowList, clean_username
from .services.licenses import LicenseStore
from .ui.embeds import (
    authorized_users_embed,
    license_created_embed,
    my_license_embed,
    user_change_embed,
)

# 라이선스 발급/삭제와 허용 목록 관리를 슬래시 명령으로 제공하는 디스코드 프런트엔드입니다.
log = logging.getLogger("licensebot.bot")

FALLBACK_MESSAGE = "An error occurred while processing the command!"


def _label(user) -> str:
    return str(user)


class LicenseCommands:
    """The six license commands. Each returns a ``Reply`` or raises ``LicenseError``."""

    def __init__(self, settings: Settings, store: LicenseStore, allowlist: AllowList):
        self.settings = settings
        self.store = store
        self.allowlist = allowlist

    def _require_owner(self, caller, message: str) -> None:
        if not self.settings.is_owner(caller.id):
            raise Unauthorized(message)

    async def _own_license(self, caller) -> str:
        key = await self.store.find_license_by_owner(caller.id)
        if not key:
            raise NoLicense()
        return key

    async def create_license(self, caller, target, key: Optional[str] = None) -> Reply:
        self._require_owner(caller, "Only the bot owner can create licenses!")
        key = (key or "").strip() or None
        lic = await self.store.create_license(target.id, _label(target), key)
        return Reply(embed=license_created_embed(lic, self.settings.endpoint_for(lic.key)))

    async def authorize(self, caller, username: str) -> Reply:
        key = await self._own_license(caller)
        name = clean_username(username)
        if await self.allowlist.add(key, name):
            return Reply(embed=user_change_embed(name, key, added=True))
        return Reply(content="User is already authorized or an error occurred!", ephemeral=True)

    async def deauthorize(self, caller, username: str) -> Reply:
        key = await self._own_license(caller)
        name = (username or "").strip()
        if await self.allowlist.remove(key, name):
            return Reply(embed=user_change_embed(name, key, added=False))
        return Reply(content="User not found or an error occurred!", ephemeral=True)

    async def list_authorized(self, caller) -> Reply:
        key = await self._own_license(caller)
        users = await self.allowlist.list(key)
        return Reply(embed=authorized_users_embed(key, users))

    async def my_license(self, caller) -> Reply:
        key = await self._own_license(caller)
        users = await self.allowlist.list(key)
        return Reply(embed=my_license_embed(key, len(users), self.settings.endpoint_for(key)), ephemeral=True)

    async def delete_license(self, caller, key: str) -> Reply:
        self._require_owner(caller, "Only the bot owner can delete licenses!")
        key = (key or "").strip()
        await self.store.delete_license(key)
        return Reply(content=f"License {key} deleted successfully!")


async def send_reply(inter: discord.Interaction, reply: Reply) -> bool:
    """Send through the initial response, or a followup if that is already used."""
    try:
        if inter.response.is_done():
            await inter.followup.send(**reply.kwargs())
        else:
            await inter.response.send_message(**reply.kwargs())
        return True
    except discord.HTTPException as e:
        log.warning(f"Failed to send reply: {e}")
    except Exception:
        log.exception("Failed to send reply")
    return False


async def run_command(inter: discord.Interaction, action: Callable[[], Awaitable[Reply]]) -> None:
    """Run one command and send exactly one response, whatever happens."""
    name = getattr(getattr(inter, "command", None), "name", "?")
    try:
        reply = await action()
    except LicenseError as e:
        reply = Reply(content=e.message, ephemeral=True)
    except Exception:
        log.exception(f"Command error in /{name}")
        reply = Reply(content=FALLBACK_MESSAGE, ephemeral=True)
    if not await send_reply(inter, reply) and reply.embed is not None:
        await send_reply(inter, Reply(content=FALLBACK_MESSAGE, ephemeral=True))


def create_bot(settings: Settings) -> commands.Bot:
    intents = discord.Intents.default()
    bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)

    allowlist = AllowList.for_licenses(settings.licenses_dir)
    store = LicenseStore(settings.licenses_file, allowlist)
    handlers = LicenseCommands(settings, store, allowlist)
    bot.license_commands = handlers  # type: ignore[attr-defined]

    @bot.event
    async def on_ready():
        log.info(f"Bot logged in as {bot.user} ({bot.user.id if bot.user else 'unknown'})")
        try:
            await store.initialize(settings.licenses_dir)
        except (LicenseError, OSError) as e:
            log.error(f"Storage init failed: {e}")

        # on_ready fires again after reconnects; register commands once
        if getattr(bot, "_synced", False):
            return
        try:
            guild = discord.Object(id=settings.guild_id) if settings.guild_id else None
            if guild:
                bot.tree.copy_global_to(guild=guild)
            synced = await bot.tree.sync(guild=guild)
            setattr(bot, "_synced", True)
            log.info(f"Slash synced ({'guild' if guild else 'global'}): {len(synced)}")
        except Exception as e:
            log.error(f"Error registering commands: {e}")

    @bot.tree.error
    async def on_tree_error(inter: discord.Interaction, error: app_commands.AppCommandError):
        log.error(f"Command error: {error}")
        if not inter.response.is_done():
            await send_reply(inter, Reply(content=FALLBACK_MESSAGE, ephemeral=True))

    @bot.tree.command(name="createlicense", description="Create a new license (Bot Owner Only)")
    @app_commands.describe(user="User who will own this license", licensekey="Custom license key (optional)")
    async def createlicense(inter: discord.Interaction, user: discord.User, licensekey: Optional[str] = None):
        await run_command(inter, lambda: handlers.create_license(inter.user, user, licensekey))

    @bot.tree.command(name="authorize", description="Add a user to your approved list")
    @app_commands.describe(username="Roblox username to authorize")
    async def authorize(inter: discord.Interaction, username: str):
        await run_command(inter, lambda: handlers.authorize(inter.user, username))

    @bot.tree.command(name="deauthorize", description="Remove a user from your approved list")
    @app_commands.describe(username="Roblox username to deauthorize")
    async def deauthorize(inter: discord.Interaction, username: str):
        await run_command(inter, lambda: handlers.deauthorize(inter.user, username))

    @bot.tree.command(name="authorized", description="List all authorized users")
    async def authorized(inter: discord.Interaction):
        await run_command(inter, lambda: handlers.list_authorized(inter.user))

    @bot.tree.command(name="mylicense", description="Show your license information")
    async def mylicense(inter: discord.Interaction):
        await run_command(inter, lambda: handlers.my_license(inter.user))

    @bot.tree.command(name="deletelicense", description="Delete a license (Bot Owner Only)")
    @app_commands.describe(licensekey="License key to delete")
    async def deletelicense(inter: discord.Interaction, licensekey: str):
        await run_command(inter, lambda: handlers.delete_license(inter.user, licensekey))

    return bot
