from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.orm import Session

from .orm import Setting


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SettingsRepository:
    """Key-value access to the ``settings`` table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, key: str) -> Optional[str]:
        row = self.session.get(Setting, key)
        return row.value if row else None

    def put(self, key: str, value: str) -> None:
        stmt = insert(Setting).values(key=key, value=value, updated_at=_utcnow())
        stmt = stmt.on_conflict_do_update(
            index_elements=[Setting.key],
            set_={
                "value": stmt.excluded.value,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        self.session.execute(stmt)

    def delete(self, key: str) -> bool:
        result = self.session.execute(delete(Setting).where(Setting.key == key))
        return bool(result.rowcount)
