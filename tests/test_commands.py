"""
Tests for the Discord command front-end.

Command handlers are exercised directly; ``run_command`` is checked against a
mocked interaction to make sure exactly one response goes out.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from licensebot.discord_app import FALLBACK_MESSAGE, LicenseCommands, create_bot, run_command, send_reply
from licensebot.errors import AlreadyLicensed, BadRequest, NoLicense, NotFound, Unauthorized
from licensebot.models import Reply


@pytest.fixture
def handlers(settings, store, allowlist):
    asyncio.run(store.initialize(settings.licenses_dir))
    return LicenseCommands(settings, store, allowlist)


def _fields(embed: discord.Embed):
    return {f.name: f.value for f in embed.fields}


class TestCreateLicense:
    def test_owner_creates_license(self, handlers, owner, customer):
        reply = asyncio.run(handlers.create_license(owner, customer))
        assert reply.embed.title == "License Created Successfully"
        fields = _fields(reply.embed)
        key = fields["License Key"]
        assert key.startswith(f"license_{customer.id}_")
        assert fields["Owner"] == "customer"
        assert fields["API Endpoint"] == f"https://api.example.com/check-user-license/{key}/{{username}}"

    def test_custom_key(self, handlers, owner, customer):
        reply = asyncio.run(handlers.create_license(owner, customer, "  server-one "))
        assert _fields(reply.embed)["License Key"] == "server-one"

    def test_oversized_custom_key_rejected(self, handlers, owner, customer, store):
        with pytest.raises(BadRequest):
            asyncio.run(handlers.create_license(owner, customer, "k" * 2000))
        assert asyncio.run(store.list_licenses()) == {}

    def test_non_owner_rejected(self, handlers, customer):
        with pytest.raises(Unauthorized) as exc:
            asyncio.run(handlers.create_license(customer, customer))
        assert exc.value.message == "Only the bot owner can create licenses!"

    def test_already_licensed(self, handlers, owner, customer):
        asyncio.run(handlers.create_license(owner, customer))
        with pytest.raises(AlreadyLicensed) as exc:
            asyncio.run(handlers.create_license(owner, customer))
        assert exc.value.message.startswith("This user already has a license: license_")


class TestAllowListCommands:
    @pytest.fixture
    def key(self, handlers, owner, customer):
        reply = asyncio.run(handlers.create_license(owner, customer))
        return _fields(reply.embed)["License Key"]

    def test_authorize_and_deauthorize(self, handlers, customer, key, allowlist):
        reply = asyncio.run(handlers.authorize(customer, "PlayerA"))
        assert reply.embed.title == "User Authorized"
        assert _fields(reply.embed) == {"Username": "PlayerA", "License": key}
        assert asyncio.run(allowlist.list(key)) == ["PlayerA"]

        reply = asyncio.run(handlers.deauthorize(customer, "PlayerA"))
        assert reply.embed.title == "User Deauthorized"
        assert asyncio.run(allowlist.list(key)) == []

    def test_authorize_twice_reports_noop(self, handlers, customer, key):
        asyncio.run(handlers.authorize(customer, "PlayerA"))
        reply = asyncio.run(handlers.authorize(customer, "PlayerA"))
        assert reply.embed is None
        assert reply.content == "User is already authorized or an error occurred!"
        assert reply.ephemeral

    def test_oversized_username_rejected_before_write(self, handlers, customer, key, allowlist):
        with pytest.raises(BadRequest):
            asyncio.run(handlers.authorize(customer, "x" * 2000))
        assert asyncio.run(allowlist.list(key)) == []

    def test_deauthorize_unknown_reports_noop(self, handlers, customer, key):
        reply = asyncio.run(handlers.deauthorize(customer, "Nobody"))
        assert reply.content == "User not found or an error occurred!"

    def test_list_authorized(self, handlers, customer, key):
        reply = asyncio.run(handlers.list_authorized(customer))
        assert _fields(reply.embed) == {"License": key, "Total Users": "0", "Users": "None"}
        asyncio.run(handlers.authorize(customer, "PlayerA"))
        asyncio.run(handlers.authorize(customer, "PlayerB"))
        reply = asyncio.run(handlers.list_authorized(customer))
        assert _fields(reply.embed)["Total Users"] == "2"
        assert _fields(reply.embed)["Users"] == "PlayerA\nPlayerB"

    def test_my_license(self, handlers, customer, key):
        asyncio.run(handlers.authorize(customer, "PlayerA"))
        reply = asyncio.run(handlers.my_license(customer))
        assert reply.ephemeral
        fields = _fields(reply.embed)
        assert fields["License Key"] == key
        assert fields["Authorized Users"] == "1"
        assert fields["API Endpoint"].endswith(f"/check-user-license/{key}/{{username}}")

    def test_other_user_has_no_license(self, handlers, key, make_user):
        stranger = make_user(300, "stranger")
        for call in (
            handlers.authorize(stranger, "PlayerA"),
            handlers.deauthorize(stranger, "PlayerA"),
            handlers.list_authorized(stranger),
            handlers.my_license(stranger),
        ):
            with pytest.raises(NoLicense) as exc:
                asyncio.run(call)
            assert exc.value.message == "You don't have a license! Contact the bot owner."


class TestDeleteLicense:
    def test_owner_deletes(self, handlers, owner, customer, allowlist):
        key = _fields(asyncio.run(handlers.create_license(owner, customer)).embed)["License Key"]
        reply = asyncio.run(handlers.delete_license(owner, key))
        assert reply.content == f"License {key} deleted successfully!"
        assert asyncio.run(allowlist.list(key)) == []
        with pytest.raises(NoLicense):
            asyncio.run(handlers.my_license(customer))

    def test_unknown_key(self, handlers, owner):
        with pytest.raises(NotFound) as exc:
            asyncio.run(handlers.delete_license(owner, "license_nope_1"))
        assert exc.value.message == "License key not found!"

    def test_non_owner_rejected(self, handlers, customer):
        with pytest.raises(Unauthorized) as exc:
            asyncio.run(handlers.delete_license(customer, "whatever"))
        assert exc.value.message == "Only the bot owner can delete licenses!"


class TestRunCommand:
    def test_success_sends_one_response(self, interaction):
        async def action():
            return Reply(content="done")

        asyncio.run(run_command(interaction, action))
        interaction.response.send_message.assert_awaited_once_with(content="done", ephemeral=False)
        interaction.followup.send.assert_not_awaited()

    def test_license_error_becomes_ephemeral_message(self, interaction):
        async def action():
            raise NoLicense()

        asyncio.run(run_command(interaction, action))
        interaction.response.send_message.assert_awaited_once_with(
            content="You don't have a license! Contact the bot owner.", ephemeral=True
        )

    def test_unexpected_error_sends_fallback(self, interaction):
        async def action():
            raise RuntimeError("disk on fire")

        asyncio.run(run_command(interaction, action))
        interaction.response.send_message.assert_awaited_once_with(content=FALLBACK_MESSAGE, ephemeral=True)

    def test_uses_followup_when_response_done(self, interaction):
        interaction.response.is_done = MagicMock(return_value=True)

        async def action():
            raise RuntimeError("late failure")

        asyncio.run(run_command(interaction, action))
        interaction.response.send_message.assert_not_awaited()
        interaction.followup.send.assert_awaited_once_with(content=FALLBACK_MESSAGE, ephemeral=True)

    def test_send_failure_is_swallowed(self, interaction):
        response = MagicMock(status=500, reason="boom")
        interaction.response.send_message = AsyncMock(side_effect=discord.HTTPException(response, "boom"))
        assert asyncio.run(send_reply(interaction, Reply(content="x"))) is False
        interaction.followup.send.assert_not_awaited()

    def test_rejected_embed_falls_back_to_message(self, interaction):
        """Discord refusing the embed still leaves the user with one message."""
        response = MagicMock(status=400, reason="Bad Request")
        interaction.response.send_message = AsyncMock(
            side_effect=[discord.HTTPException(response, "Invalid Form Body"), None]
        )
        embed = discord.Embed(title="t")

        async def action():
            return Reply(embed=embed)

        asyncio.run(run_command(interaction, action))
        assert interaction.response.send_message.await_count == 2
        interaction.response.send_message.assert_awaited_with(content=FALLBACK_MESSAGE, ephemeral=True)

    def test_rejected_text_reply_is_not_retried(self, interaction):
        response = MagicMock(status=500, reason="boom")
        interaction.response.send_message = AsyncMock(side_effect=discord.HTTPException(response, "boom"))

        async def action():
            return Reply(content="done")

        asyncio.run(run_command(interaction, action))
        interaction.response.send_message.assert_awaited_once()

    def test_embed_reply(self, interaction):
        embed = discord.Embed(title="t")

        async def action():
            return Reply(embed=embed, ephemeral=True)

        asyncio.run(run_command(interaction, action))
        interaction.response.send_message.assert_awaited_once_with(embed=embed, ephemeral=True)


class TestCreateBot:
    def test_registers_slash_commands(self, settings):
        bot = create_bot(settings)
        names = {cmd.name for cmd in bot.tree.get_commands()}
        assert names == {"createlicense", "authorize", "deauthorize", "authorized", "mylicense", "deletelicense"}
        assert isinstance(bot.license_commands, LicenseCommands)
        assert bot.command_prefix == "!"

    def test_createlicense_options(self, settings):
        bot = create_bot(settings)
        cmd = bot.tree.get_command("createlicense")
        params = {p.name: p.required for p in cmd.parameters}
        assert params == {"user": True, "licensekey": False}
