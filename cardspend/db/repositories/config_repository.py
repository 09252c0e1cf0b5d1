"""Config rows read and written as typed values."""

import json
from typing import Any, Optional

from cardspend.db.models.config import Config
from cardspend.db.repository import BaseRepository


def _serialize(value: Any, value_type: str) -> str:
    if value_type == "json":
        return json.dumps(value, ensure_ascii=False)
    if value_type == "bool":
        return "true" if value else "false"
    return str(value)


class ConfigRepository(BaseRepository[Config]):
    async def get_by_key(self, key: str) -> Optional[Config]:
        return await self.get_by_field("key", key)

    async def get_value(self, key: str, default: Any = None) -> Any:
        """Parsed value of ``key``, or ``default`` when the row is missing."""
        row = await self.get_by_key(key)
        return default if row is None else row.get_typed_value()

    async def set_value(
        self,
        key: str,
        value: Any,
        value_type: str = "string",
        description: Optional[str] = None,
    ) -> Config:
        """
        Upsert ``key``.

        An existing description is kept when ``description`` is None.
        """
        text = _serialize(value, value_type)
        row = await self.get_by_key(key)
        if row is None:
            return await self.create(key=key, value=text, value_type=value_type, description=description)

        row.value = text
        row.value_type = value_type
        if description is not None:
            row.description = description
        await self.session.flush()
        return row
