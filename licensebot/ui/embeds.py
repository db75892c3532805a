from __future__ import annotations

from typing import List

import discord

from ..models import License

# 라이선스 명령 결과를 보여주는 임베드 구성요소를 한곳에서 정의합니다.

GREEN = 0x00FF00
RED = 0xFF0000
BLUE = 0x0099FF

FIELD_LIMIT = 1024


def join_limited(items: List[str], limit: int = FIELD_LIMIT) -> str:
    """Newline-join, cutting the tail to fit one embed field."""
    if not items:
        return "None"
    text = "\n".join(items)
    if len(text) <= limit:
        return text
    shown: List[str] = []
    for i, item in enumerate(items):
        tail = f"\n... and {len(items) - i} more"
        if len("\n".join(shown + [item])) + len(tail) > limit:
            return "\n".join(shown) + tail
        shown.append(item)
    return "\n".join(shown)


def license_created_embed(lic: License, endpoint: str) -> discord.Embed:
    embed = discord.Embed(title="License Created Successfully", color=GREEN)
    embed.add_field(name="License Key", value=lic.key, inline=True)
    embed.add_field(name="Owner", value=lic.owner_label or lic.owner_id, inline=True)
    embed.add_field(name="API Endpoint", value=endpoint, inline=False)
    return embed


def user_change_embed(username: str, license_key: str, added: bool) -> discord.Embed:
    embed = discord.Embed(
        title="User Authorized" if added else "User Deauthorized",
        color=GREEN if added else RED,
    )
    embed.add_field(name="Username", value=username, inline=True)
    embed.add_field(name="License", value=license_key, inline=True)
    return embed


def authorized_users_embed(license_key: str, users: List[str]) -> discord.Embed:
    embed = discord.Embed(title="Authorized Users", color=BLUE)
    embed.add_field(name="License", value=license_key, inline=True)
    embed.add_field(name="Total Users", value=str(len(users)), inline=True)
    embed.add_field(name="Users", value=join_limited(users), inline=False)
    return embed


def my_license_embed(license_key: str, user_count: int, endpoint: str) -> discord.Embed:
    embed = discord.Embed(title="Your License Information", color=BLUE)
    embed.add_field(name="License Key", value=license_key, inline=True)
    embed.add_field(name="Authorized Users", value=str(user_count), inline=True)
    embed.add_field(name="API Endpoint", value=endpoint, inline=False)
    return embed
