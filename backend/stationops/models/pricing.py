from __future__ import annotations

from ..extensions import db
from ..time_utils import station_now, to_iso


class FuelPrice(db.Model):
    """
    Price history per (station, fuel type). Append-only.

    The current price is the row with the greatest effective_from.
    """
    __tablename__ = "fuel_prices"
    __table_args__ = (
        db.UniqueConstraint("station_id", "fuel_type", "effective_from", name="uq_fuel_prices_station_fuel_effective"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False, index=True)
    fuel_type = db.Column(db.String(16), nullable=False)
    price_per_liter_cents = db.Column(db.Integer, nullable=False)
    effective_from = db.Column(db.DateTime, nullable=False, default=station_now, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=station_now)

    station = db.relationship("Station", backref=db.backref("fuel_prices", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "station_id": self.station_id,
            "fuel_type": self.fuel_type,
            "price_per_liter_cents": self.price_per_liter_cents,
            "effective_from": to_iso(self.effective_from),
            "created_by_user_id": self.created_by_user_id,
        }
