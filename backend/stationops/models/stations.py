from __future__ import annotations

from ..extensions import db
from ..time_utils import station_now, to_iso


class Station(db.Model):
    """
    A fuel station: the owner of tanks, nozzles, shifts and cash transactions.

    Stations are never deleted once inventory references them.
    """
    __tablename__ = "stations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    address = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=station_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=station_now, onupdate=station_now)

    def __repr__(self) -> str:
        return f"<Station id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }
