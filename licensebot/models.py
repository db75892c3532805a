from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import discord

# 라이선스 기록과 API 요청/응답 구조를 정의해 모든 서비스 로직이 같은 데이터 형태를 쓰도록 합니다.


def iso_now() -> str:
    """UTC timestamp like ``2024-01-31T12:00:00.000Z``."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


MAX_KEY_LENGTH = 100


def is_valid_key(key: Optional[str]) -> bool:
    # keys double as file names and are shown in embed fields
    if not key or key.startswith(".") or len(key) > MAX_KEY_LENGTH:
        return False
    return "/" not in key and "\\" not in key and "\0" not in key


@dataclass
class License:
    key: str
    owner_id: str
    owner_label: str
    created_at: str = field(default_factory=iso_now)

    def to_record(self) -> Dict[str, str]:
        return {"ownerId": self.owner_id, "ownerLabel": self.owner_label, "createdAt": self.created_at}

    @classmethod
    def from_record(cls, key: str, rec: Dict[str, Any]) -> "License":
        # ownerTag: older records written before ownerLabel
        label = rec.get("ownerLabel", rec.get("ownerTag", ""))
        return cls(
            key=key,
            owner_id=str(rec.get("ownerId", "")),
            owner_label=str(label or ""),
            created_at=str(rec.get("createdAt", "")),
        )


# ---------------------- HTTP structures ----------------------
@dataclass
class LicenseCheck:
    username: str
    license_key: str
    approved: bool
    timestamp: str = field(default_factory=iso_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "licenseKey": self.license_key,
            "approved": self.approved,
            "timestamp": self.timestamp,
        }


@dataclass
class UserCheck:
    username: str
    approved: bool
    timestamp: str = field(default_factory=iso_now)

    def to_dict(self) -> Dict[str, Any]:
        return {"username": self.username, "approved": self.approved, "timestamp": self.timestamp}


@dataclass
class AdminUserRequest:
    """Body of ``POST /admin/add-user`` and ``/admin/remove-user``."""

    username: str
    admin_key: str

    @classmethod
    def from_body(cls, body: Any) -> "AdminUserRequest":
        if not isinstance(body, dict):
            body = {}
        username = body.get("username")
        admin_key = body.get("adminKey")
        return cls(
            username=username.strip() if isinstance(username, str) else "",
            admin_key=admin_key if isinstance(admin_key, str) else "",
        )


@dataclass
class UserList:
    users: List[str]
    license_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.license_key is not None:
            out["licenseKey"] = self.license_key
        out["users"] = list(self.users)
        out["count"] = len(self.users)
        return out


# ---------------------- Command replies ----------------------
@dataclass
class Reply:
    """One terminal response to a slash command."""

    content: Optional[str] = None
    embed: Optional[discord.Embed] = None
    ephemeral: bool = False

    def kwargs(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"ephemeral": self.ephemeral}
        if self.content is not None:
            out["content"] = self.content
        if self.embed is not None:
            out["embed"] = self.embed
        return out
