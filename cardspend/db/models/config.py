"""Typed key/value settings stored in the database."""

import json
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cardspend.db.base import Base

# value_type -> parser applied to the stored text
VALUE_PARSERS: dict[str, Callable[[str], Any]] = {
    "string": str,
    "int": int,
    "bool": lambda raw: raw.strip().lower() in ("true", "1", "yes"),
    "json": json.loads,
}


class Config(Base):
    """
    Runtime settings that can change without a restart.

    The alert thresholds live here as one JSON document under
    ``report_thresholds`` and are read again by every report run.
    """

    __tablename__ = "config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, comment="Serialized value")
    value_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default="string", comment="One of VALUE_PARSERS"
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Config(key={self.key}, type={self.value_type})>"

    def get_typed_value(self) -> Any:
        """
        Parse ``value`` according to ``value_type``.

        Raises:
            ValueError: If the text does not parse (json.JSONDecodeError included)
        """
        parser = VALUE_PARSERS.get(self.value_type, str)
        return parser(self.value)
