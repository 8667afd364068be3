from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite

from karetek.core.database import Database
from karetek.models.consultation_model import Consultation, HealthMetric
from karetek.models.user_model import RECORD_MODELS, User, _new_id

USER_COLUMNS = [column.name for column in User.__table__.columns]

# Profile list keys as returned to clients, keyed by health-record kind
PROFILE_LIST_KEYS = {
    "conditions": "medical_conditions",
    "allergies": "allergies",
    "medications": "current_medications",
}

class UnknownRecordKind(ValueError):
    pass

def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value

def _row_to_dict(row, columns: List[str]) -> Dict[str, Any]:
    return {column: _jsonable(getattr(row, column)) for column in columns}

def _record_model(kind: str):
    try:
        return RECORD_MODELS[kind]
    except KeyError:
        raise UnknownRecordKind(kind)

class Repository:
    """Row-level access to users, consultations, health metrics and health records.

    Every method returns plain dicts so callers never hold ORM state past
    the session. User-owned queries always filter on ``user_id``.
    """

    def __init__(self, database: Database):
        self.db = database

    # ------------------------------------------------------------------ users

    def _user_dict(self, user: User) -> Dict[str, Any]:
        record = _row_to_dict(user, USER_COLUMNS)
        for kind, key in PROFILE_LIST_KEYS.items():
            record[key] = [entry.name for entry in getattr(user, kind)]
        return record

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self.db.session() as session:
            user = session.get(User, user_id)
            return self._user_dict(user) if user else None

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with self.db.session() as session:
            user = session.execute(
                select(User).where(User.email == email.lower())
            ).scalar_one_or_none()
            return self._user_dict(user) if user else None

    def create_user(self, email: str, password_hash: Optional[str] = None, **fields) -> Dict[str, Any]:
        with self.db.session() as session:
            user = User(email=email.lower(), password_hash=password_hash, **fields)
            session.add(user)
            session.flush()
            logger.info(f"Created user: {user.id}")
            return self._user_dict(user)

    def update_profile(
        self,
        user_id: str,
        fields: Dict[str, Any],
        lists: Optional[Dict[str, List[str]]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Update profile columns; each entry in ``lists`` replaces that kind's entries by name"""
        with self.db.session() as session:
            user = session.get(User, user_id)
            if not user:
                return None

            for column, value in fields.items():
                setattr(user, column, value)

            for kind, names in (lists or {}).items():
                model = _record_model(kind)
                entries = getattr(user, kind)
                entries.clear()
                entries.extend(model(user_id=user_id, name=name) for name in names if name)

            session.flush()
            return self._user_dict(user)

    def find_or_create_oauth_user(
        self,
        provider: str,
        oauth_id: str,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        picture: Optional[str] = None,
    ) -> Dict[str, Any]:
        with self.db.session() as session:
            user = session.execute(
                select(User).where(User.email == email.lower())
            ).scalar_one_or_none()

            if user:
                if user.oauth_provider != provider:
                    user.oauth_provider = provider
                    user.oauth_id = oauth_id
                    user.profile_picture = picture
                    logger.info(f"Linked {provider} login to user {user.id}")
                session.flush()
                return self._user_dict(user)

            user = User(
                email=email.lower(),
                first_name=first_name,
                last_name=last_name,
                oauth_provider=provider,
                oauth_id=oauth_id,
                profile_picture=picture,
                email_verified=True,
            )
            session.add(user)
            session.flush()
            logger.info(f"Created user {user.id} from {provider} login")
            return self._user_dict(user)

    def get_profile_context(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Restricted projection of the profile used to personalise chat"""
        with self.db.session() as session:
            row = session.execute(
                select(
                    User.first_name, User.last_name, User.date_of_birth, User.gender,
                    User.blood_group, User.height, User.weight,
                ).where(User.id == user_id)
            ).one_or_none()
            if row is None:
                return None

            context = dict(row._mapping)
            for kind, key in PROFILE_LIST_KEYS.items():
                model = RECORD_MODELS[kind]
                context[key] = list(session.execute(
                    select(model.name).where(model.user_id == user_id).order_by(model.created_at)
                ).scalars())
            return context

    def count_users(self) -> int:
        with self.db.session() as session:
            return session.execute(select(func.count()).select_from(User)).scalar_one()

    # ---------------------------------------------------------- consultations

    def upsert_consultation(self, user_id: str, session_id: str, language: str, messages: List[Dict[str, str]]) -> bool:
        """Insert or replace the consultation keyed by ``session_id``.

        Returns False when the session id already belongs to another user;
        that row is left untouched.
        """
        now = datetime.now(timezone.utc)
        values = {
            "user_id": user_id,
            "session_id": session_id,
            "language": language,
            "messages": messages,
        }

        with self.db.session() as session:
            dialect = self.db.engine.dialect.name
            if dialect in ("sqlite", "postgresql"):
                insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
                stmt = insert(Consultation).values(
                    id=_new_id(), created_at=now, updated_at=now, **values
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=[Consultation.session_id],
                    set_={
                        "language": stmt.excluded.language,
                        "messages": stmt.excluded.messages,
                        "updated_at": now,
                    },
                    where=Consultation.user_id == user_id,
                )
                written = session.execute(stmt).rowcount > 0
            else:
                existing = session.execute(
                    select(Consultation).where(Consultation.session_id == session_id)
                ).scalar_one_or_none()
                if existing is None:
                    session.add(Consultation(**values))
                    written = True
                elif existing.user_id == user_id:
                    existing.language = language
                    existing.messages = messages
                    written = True
                else:
                    written = False

        if not written:
            logger.warning(f"Session {session_id} belongs to another user, consultation not saved")
        return written

    def list_consultations(self, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        columns = [column.name for column in Consultation.__table__.columns]
        with self.db.session() as session:
            rows = session.execute(
                select(Consultation)
                .where(Consultation.user_id == user_id)
                .order_by(Consultation.created_at.desc())
                .limit(limit)
            ).scalars()
            return [_row_to_dict(row, columns) for row in rows]

    def count_consultations(self) -> int:
        with self.db.session() as session:
            return session.execute(select(func.count()).select_from(Consultation)).scalar_one()

    # ---------------------------------------------------------- health metrics

    _metric_columns = [column.name for column in HealthMetric.__table__.columns]

    def list_metrics(self, user_id: str, metric_type: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        with self.db.session() as session:
            query = select(HealthMetric).where(HealthMetric.user_id == user_id)
            if metric_type:
                query = query.where(HealthMetric.metric_type == metric_type)
            rows = session.execute(
                query.order_by(HealthMetric.recorded_at.desc()).limit(limit)
            ).scalars()
            return [_row_to_dict(row, self._metric_columns) for row in rows]

    def create_metric(self, user_id: str, **fields) -> Dict[str, Any]:
        with self.db.session() as session:
            if fields.get("recorded_at") is None:
                fields.pop("recorded_at", None)
            metric = HealthMetric(user_id=user_id, **fields)
            session.add(metric)
            session.flush()
            return _row_to_dict(metric, self._metric_columns)

    def update_metric(self, user_id: str, metric_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self.db.session() as session:
            metric = session.execute(
                select(HealthMetric).where(HealthMetric.id == metric_id, HealthMetric.user_id == user_id)
            ).scalar_one_or_none()
            if metric is None:
                return None
            for column, value in fields.items():
                setattr(metric, column, value)
            session.flush()
            return _row_to_dict(metric, self._metric_columns)

    def delete_metric(self, user_id: str, metric_id: str) -> int:
        with self.db.session() as session:
            return session.query(HealthMetric).filter(
                HealthMetric.id == metric_id, HealthMetric.user_id == user_id
            ).delete(synchronize_session=False)

    def count_metrics(self) -> int:
        with self.db.session() as session:
            return session.execute(select(func.count()).select_from(HealthMetric)).scalar_one()

    # ---------------------------------------------------------- health records

    @staticmethod
    def _entry_dict(entry) -> Dict[str, Any]:
        columns = [column.name for column in entry.__table__.columns if column.name != "user_id"]
        return _row_to_dict(entry, columns)

    def list_entries(self, user_id: str, kind: str) -> List[Dict[str, Any]]:
        model = _record_model(kind)
        with self.db.session() as session:
            rows = session.execute(
                select(model).where(model.user_id == user_id).order_by(model.created_at)
            ).scalars()
            return [self._entry_dict(row) for row in rows]

    def add_entry(self, user_id: str, kind: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        model = _record_model(kind)
        with self.db.session() as session:
            entry = model(user_id=user_id, **fields)
            session.add(entry)
            session.flush()
            return self._entry_dict(entry)

    def update_entry(self, user_id: str, kind: str, entry_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        model = _record_model(kind)
        with self.db.session() as session:
            entry = session.execute(
                select(model).where(model.id == entry_id, model.user_id == user_id)
            ).scalar_one_or_none()
            if entry is None:
                return None
            for column, value in fields.items():
                setattr(entry, column, value)
            session.flush()
            return self._entry_dict(entry)

    def delete_entry(self, user_id: str, kind: str, entry_id: str) -> int:
        model = _record_model(kind)
        with self.db.session() as session:
            return session.query(model).filter(
                model.id == entry_id, model.user_id == user_id
            ).delete(synchronize_session=False)
