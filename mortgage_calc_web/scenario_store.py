"""Persistence layer for saved calculator scenarios.

The web API keeps each user's saved scenarios (the inputs and the result
envelope of a purchase, refinance, HELOC, blended or comparison run) in a
database keyed by the session's user token. It defaults to SQLite for
local development, but accepts any SQLAlchemy-compatible URL.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

DEFAULT_DATABASE_URL = "sqlite:///scenario_data.sqlite3"
DEFAULT_MAX_PER_USER = 10

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SavedScenarioModel(Base):
    __tablename__ = "saved_scenarios"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    kind = Column(String(32), nullable=False)
    name = Column(String(255), nullable=False)
    inputs_json = Column(Text, nullable=False)
    result_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class ScenarioStore:
    """Database-backed scenario store."""

    def __init__(self, url: str, *, max_per_user: int = DEFAULT_MAX_PER_USER) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    def list_scenarios(self, user_token: str, kind: Optional[str] = None) -> List[Dict[str, Any]]:
        if not user_token:
            return []
        query = select(SavedScenarioModel).where(SavedScenarioModel.user_token == user_token)
        if kind:
            query = query.where(SavedScenarioModel.kind == kind)
        with self._session_factory() as session:
            rows: Iterable[SavedScenarioModel] = session.execute(
                query.order_by(SavedScenarioModel.created_at.asc())
            ).scalars()
            return [self._to_dict(row) for row in rows]

    def add_scenario(
        self,
        user_token: str,
        scenario_id: str,
        kind: str,
        name: str,
        inputs: dict,
        result: Any,
    ) -> None:
        if not user_token:
            return
        payload = SavedScenarioModel(
            id=scenario_id,
            user_token=user_token,
            kind=kind,
            name=name,
            inputs_json=json.dumps(inputs),
            result_json=json.dumps(result),
        )
        with self._session_factory() as session:
            session.add(payload)
            session.commit()
        self._trim_user(user_token)

    def remove_scenario(self, user_token: str, scenario_id: str) -> bool:
        if not user_token:
            return False
        with self._session_factory() as session:
            row = session.get(SavedScenarioModel, scenario_id)
            if row and row.user_token == user_token:
                session.delete(row)
                session.commit()
                return True
        return False

    def clear_scenarios(self, user_token: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(
                SavedScenarioModel.__table__.delete().where(SavedScenarioModel.user_token == user_token)
            )
            session.commit()

    def _trim_user(self, user_token: str) -> None:
        if not self._max_per_user or self._max_per_user < 0:
            return
        with self._session_factory() as session:
            rows = session.execute(
                select(SavedScenarioModel)
                .where(SavedScenarioModel.user_token == user_token)
                .order_by(SavedScenarioModel.created_at.desc())
            ).scalars().all()
            if len(rows) <= self._max_per_user:
                return
            for row in rows[self._max_per_user :]:
                session.delete(row)
            session.commit()

    @staticmethod
    def _to_dict(row: SavedScenarioModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "kind": row.kind,
            "name": row.name,
            "inputs": json.loads(row.inputs_json),
            "result": json.loads(row.result_json),
            "created_at": row.created_at.isoformat(),
        }


def create_store_from_env(url: Optional[str], max_per_user: Optional[str] = None) -> ScenarioStore:
    limit = int(max_per_user) if max_per_user else DEFAULT_MAX_PER_USER
    return ScenarioStore(url or DEFAULT_DATABASE_URL, max_per_user=limit)
