"""High-level data access helpers for user accounts, backed by SQLAlchemy."""
from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import selectinload

from noteboard.db.models import Board, Note, User, UserSession
from noteboard.db.session import get_session


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class AccountRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    # -------------------------- users --------------------------
    def get_user(self, user_id: int) -> Optional[User]:
        with get_session() as session:
            return session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with get_session() as session:
            stmt = select(User).where(func.lower(User.email) == email.lower())
            return session.execute(stmt).scalar_one_or_none()

    def email_taken_by_other(self, email: str, user_id: int) -> bool:
        with get_session() as session:
            stmt = select(User.id).where(func.lower(User.email) == email.lower(), User.id != user_id).limit(1)
            return session.execute(stmt).first() is not None

    def find_user_by_credentials(self, user_id: int, password: str) -> Optional[User]:
        """Match on id and the raw value of the stored password column."""
        with get_session() as session:
            stmt = select(User).where(User.id == user_id, User.password_hash == password)
            return session.execute(stmt).scalar_one_or_none()

    def create_user(
        self,
        email: str,
        password_hash: str,
        *,
        name: str | None = None,
        role: str = "user",
    ) -> User:
        now = datetime.now(timezone.utc)
        entity = User(
            email=email,
            name=name,
            password_hash=password_hash,
            role=role,
            mfa=False,
            secret=None,
            created_at=now,
            updated_at=now,
        )
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def update_profile(self, user_id: int, name: str, email: str) -> bool:
        with get_session() as session:
            stmt = (
                update(User)
                .where(User.id == user_id)
                .values(name=name, email=email, updated_at=datetime.now(timezone.utc))
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount > 0

    def update_password(self, user_id: int, password_hash: str) -> bool:
        with get_session() as session:
            stmt = (
                update(User)
                .where(User.id == user_id)
                .values(password_hash=password_hash, updated_at=datetime.now(timezone.utc))
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount > 0

    def set_mfa(self, user_id: int, secret: str) -> bool:
        with get_session() as session:
            stmt = (
                update(User)
                .where(User.id == user_id)
                .values(mfa=True, secret=secret, updated_at=datetime.now(timezone.utc))
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount > 0

    def clear_mfa(self, user_id: int) -> bool:
        with get_session() as session:
            stmt = (
                update(User)
                .where(User.id == user_id)
                .values(mfa=False, secret=None, updated_at=datetime.now(timezone.utc))
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount > 0

    def delete_user_by_email(self, email: str) -> bool:
        """Delete the user through the ORM so boards, notes and sessions cascade."""
        with get_session() as session:
            user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
            if not user:
                return False
            session.delete(user)
            session.commit()
            return True

    def export_user_tree(self, user_id: int) -> Optional[dict]:
        """Return name, email and every owned board with its notes, or None."""
        with get_session() as session:
            stmt = (
                select(User)
                .where(User.id == user_id)
                .options(selectinload(User.boards).selectinload(Board.notes))
            )
            user = session.execute(stmt).scalar_one_or_none()
            if not user:
                return None
            return {
                "name": user.name,
                "email": user.email,
                "boards": [
                    {
                        "id": board.id,
                        "name": board.name,
                        "description": board.description,
                        "image_url": board.image_url,
                        "created_at": _iso(board.created_at),
                        "updated_at": _iso(board.updated_at),
                        "notes": [
                            {
                                "id": note.id,
                                "board_id": note.board_id,
                                "title": note.title,
                                "content": note.content,
                                "image_url": note.image_url,
                                "created_at": _iso(note.created_at),
                                "updated_at": _iso(note.updated_at),
                            }
                            for note in board.notes
                        ],
                    }
                    for board in user.boards
                ],
            }

    # -------------------------- boards / notes --------------------------
    def create_board(self, user_id: int, name: str, *, description: str | None = None, image_url: str | None = None) -> Board:
        now = datetime.now(timezone.utc)
        entity = Board(
            user_id=user_id,
            name=name,
            description=description,
            image_url=image_url,
            created_at=now,
            updated_at=now,
        )
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def create_note(self, board_id: int, title: str, content: str = "", *, image_url: str | None = None) -> Note:
        now = datetime.now(timezone.utc)
        entity = Note(
            board_id=board_id,
            title=title,
            content=content,
            image_url=image_url,
            created_at=now,
            updated_at=now,
        )
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def count_boards(self, user_id: int) -> int:
        with get_session() as session:
            return len(session.execute(select(Board.id).where(Board.user_id == user_id)).all())

    def count_notes(self, board_id: int) -> int:
        with get_session() as session:
            return len(session.execute(select(Note.id).where(Note.board_id == board_id)).all())

    # -------------------------- sessions --------------------------
    def create_session(self, user_id: int, expires_at: datetime, token: Optional[str] = None) -> str:
        token_value = token or secrets.token_urlsafe(32)
        entity = UserSession(token=token_value, user_id=user_id, expires_at=expires_at)
        with get_session() as session:
            session.add(entity)
            session.commit()
        return token_value

    def find_session(self, token: str) -> Optional[UserSession]:
        with get_session() as session:
            return session.get(UserSession, token)

    def extend_session(self, token: str, expires_at: datetime) -> None:
        with get_session() as session:
            session.execute(update(UserSession).where(UserSession.token == token).values(expires_at=expires_at))
            session.commit()

    def delete_session(self, token: str) -> None:
        with get_session() as session:
            session.execute(delete(UserSession).where(UserSession.token == token))
            session.commit()
