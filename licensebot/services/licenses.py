from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, Optional

from ..db import KeyLocks, ReadResult, ensure_dir, load_json, remove_file, save_json
from ..errors import AlreadyExists, AlreadyLicensed, BadRequest, NotFound, StorageError
from ..models import License, is_valid_key
from .allowlist import LICENSE_HEADER, AllowList

# 라이선스 기록(licenses.json)과 라이선스별 허용 목록 파일의 생성/삭제를 함께 관리합니다.
log = logging.getLogger("licensebot.licenses")

REGISTRY_LOCK = "__registry__"


def generate_key(owner_id: str, taken) -> str:
    """``license_<owner>_<epoch ms>``; bumps the millisecond until unused."""
    stamp = int(time.time() * 1000)
    key = f"license_{owner_id}_{stamp}"
    while key in taken:
        stamp += 1
        key = f"license_{owner_id}_{stamp}"
    return key


class LicenseStore:
    def __init__(self, licenses_file: Path, allowlist: AllowList, locks: Optional[KeyLocks] = None):
        self.licenses_file = licenses_file
        self.allowlist = allowlist
        self._locks = locks or allowlist.locks

    async def initialize(self, licenses_dir: Path) -> None:
        ensure_dir(licenses_dir)
        ensure_dir(self.licenses_file.parent)
        if not self.licenses_file.exists():
            if not await save_json(self.licenses_file, {}):
                raise StorageError("Failed to create license registry")

    async def read_registry(self) -> ReadResult:
        res = await load_json(self.licenses_file)
        registry: Dict[str, License] = {}
        for key, rec in res.data.items():
            if isinstance(rec, dict):
                registry[key] = License.from_record(key, rec)
            else:
                log.warning(f"Skipping malformed license record {key!r}")
        res.data = registry
        return res

    async def _registry_for_update(self, message: str) -> Dict[str, License]:
        # an unreadable record must not be rebuilt from empty and saved over
        res = await self.read_registry()
        if res.error is not None:
            raise StorageError(message)
        return res.data

    async def list_licenses(self) -> Dict[str, License]:
        return (await self.read_registry()).data

    async def save_licenses(self, registry: Dict[str, License]) -> bool:
        return await save_json(self.licenses_file, {k: lic.to_record() for k, lic in registry.items()})

    async def get_license(self, key: str) -> Optional[License]:
        return (await self.list_licenses()).get(key)

    async def find_license_by_owner(self, owner_id) -> Optional[str]:
        owner = str(owner_id)
        for key, lic in (await self.list_licenses()).items():
            if lic.owner_id == owner:
                return key
        return None

    async def create_license(self, owner_id, owner_label: str, key: Optional[str] = None) -> License:
        owner = str(owner_id)
        if key is not None:
            key = key.strip()
            if not is_valid_key(key):
                raise BadRequest("Invalid license key")
        async with self._locks(REGISTRY_LOCK):
            registry = await self._registry_for_update("Failed to create license!")
            for existing, lic in registry.items():
                if lic.owner_id == owner:
                    raise AlreadyLicensed(existing)
            if key is None:
                key = generate_key(owner, registry)
            elif key in registry:
                raise AlreadyExists(f"License key already exists: {key}")

            lic = License(key=key, owner_id=owner, owner_label=owner_label)
            registry[key] = lic
            if not await self.save_licenses(registry):
                raise StorageError("Failed to create license!")

        try:
            await self.allowlist.create(key, LICENSE_HEADER)
        except OSError as e:
            log.error(f"License {key} saved but its list file could not be created: {e}")
            raise StorageError("Failed to create license!") from e
        log.info(f"[LICENSE] created {key} for {owner_label} ({owner})")
        return lic

    async def delete_license(self, key: str) -> License:
        async with self._locks(REGISTRY_LOCK):
            registry = await self._registry_for_update("Failed to delete license!")
            lic = registry.pop(key, None)
            if lic is None:
                raise NotFound("License key not found!")
            if not await self.save_licenses(registry):
                raise StorageError("Failed to delete license!")

        try:
            async with self._locks(key):
                await remove_file(self.allowlist.path(key))
        except (OSError, BadRequest) as e:
            # registry entry is already gone; nothing to roll back
            log.error(f"Error deleting license file for {key}: {e}")
        self._locks.discard(key)
        log.info(f"[LICENSE] deleted {key}")
        return lic
