from __future__ import annotations

from ..extensions import db
from ..time_utils import station_now, to_iso

ROLE_STATION_MANAGER = "SM"
ROLE_AREA_MANAGER = "AM"
ROLE_ADMIN = "Admin"

ROLES = (ROLE_STATION_MANAGER, ROLE_AREA_MANAGER, ROLE_ADMIN)


class User(db.Model):
    """
    Employee account.

    Every custody step is attributed to one employee. Station managers
    (SM) belong to a station and report to an area manager (AM); the area
    manager reference decides who receives their cash.

    Role is fixed at creation. Passwords are bcrypt hashes, never plaintext.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, index=True)  # SM, AM, Admin

    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=True, index=True)
    area_manager_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=station_now)
    last_login_at = db.Column(db.DateTime, nullable=True)

    station = db.relationship("Station", backref=db.backref("users", lazy=True))
    area_manager = db.relationship(
        "User",
        remote_side=[id],
        backref=db.backref("station_managers", lazy=True),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} employee_id={self.employee_id!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "name": self.name,
            "role": self.role,
            "station_id": self.station_id,
            "area_manager_id": self.area_manager_id,
            "is_active": self.is_active,
            "created_at": to_iso(self.created_at),
            "last_login_at": to_iso(self.last_login_at),
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "employee_id": self.employee_id}


class SessionToken(db.Model):
    """
    Opaque bearer session.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - Absolute and idle timeouts (see session_service)
    - Revocable on logout
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=station_now)
    last_used_at = db.Column(db.DateTime, nullable=False, default=station_now)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime, nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_iso(self.created_at),
            "last_used_at": to_iso(self.last_used_at),
            "expires_at": to_iso(self.expires_at),
            "is_revoked": self.is_revoked,
        }
