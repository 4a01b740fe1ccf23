from __future__ import annotations

from ..extensions import db
from ..time_utils import station_now, to_iso

FUEL_91_GASOLINE = "91_GASOLINE"
FUEL_95_GASOLINE = "95_GASOLINE"
FUEL_DIESEL = "DIESEL"

# Closed set shared by tanks, nozzles and prices. Adding a type is a schema change.
FUEL_TYPES = (FUEL_91_GASOLINE, FUEL_95_GASOLINE, FUEL_DIESEL)

DEFAULT_METER_LIMIT = 999999.0


class Tank(db.Model):
    """
    Underground storage tank.

    INVARIANT: 0 <= current_level <= capacity (when capacity is set).
    current_level is only written through tank_ledger_service.apply_delta,
    which is shared by deliveries, meter readings and sales submission.
    """
    __tablename__ = "tanks"
    __table_args__ = (
        db.Index("ix_tanks_station_fuel", "station_id", "fuel_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False, index=True)
    fuel_type = db.Column(db.String(16), nullable=False)

    capacity = db.Column(db.Float, nullable=True)  # liters; None = unbounded
    current_level = db.Column(db.Float, nullable=False, default=0.0)  # liters

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, nullable=False, default=station_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=station_now, onupdate=station_now)

    station = db.relationship("Station", backref=db.backref("tanks", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Tank id={self.id} fuel_type={self.fuel_type} level={self.current_level}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "station_id": self.station_id,
            "fuel_type": self.fuel_type,
            "capacity": self.capacity,
            "current_level": self.current_level,
            "nozzle_count": len(self.nozzles),
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }


class Nozzle(db.Model):
    """
    Dispensing nozzle. Draws from exactly one tank and carries that tank's fuel type.

    meter_limit is the totalizer ceiling; readings above it are rejected.
    """
    __tablename__ = "nozzles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False, index=True)
    tank_id = db.Column(db.Integer, db.ForeignKey("tanks.id"), nullable=False, index=True)
    fuel_type = db.Column(db.String(16), nullable=False)
    meter_limit = db.Column(db.Float, nullable=False, default=DEFAULT_METER_LIMIT)

    created_at = db.Column(db.DateTime, nullable=False, default=station_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=station_now, onupdate=station_now)

    station = db.relationship("Station", backref=db.backref("nozzles", lazy=True, order_by="Nozzle.name"))
    tank = db.relationship("Tank", backref=db.backref("nozzles", lazy=True))

    def to_dict(self, include_tank: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "station_id": self.station_id,
            "tank_id": self.tank_id,
            "fuel_type": self.fuel_type,
            "meter_limit": self.meter_limit,
        }
        if include_tank:
            data["tank"] = {
                "id": self.tank.id,
                "fuel_type": self.tank.fuel_type,
                "capacity": self.tank.capacity,
                "current_level": self.tank.current_level,
            }
        return data


class TankerDelivery(db.Model):
    """
    Append-only record of fuel received into a tank.

    Each row is written in the same transaction as the matching tank credit.
    """
    __tablename__ = "tanker_deliveries"
    __table_args__ = (
        db.Index("ix_tanker_deliveries_tank_date", "tank_id", "delivery_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tank_id = db.Column(db.Integer, db.ForeignKey("tanks.id"), nullable=False, index=True)
    liters_delivered = db.Column(db.Float, nullable=False)
    delivery_date = db.Column(db.DateTime, nullable=False, default=station_now)
    delivered_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # Supplier delivery ticket number
    ticket_reference = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=station_now)

    tank = db.relationship("Tank", backref=db.backref("deliveries", lazy=True))
    delivered_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tank_id": self.tank_id,
            "station_id": self.tank.station_id if self.tank else None,
            "fuel_type": self.tank.fuel_type if self.tank else None,
            "liters_delivered": self.liters_delivered,
            "delivery_date": to_iso(self.delivery_date),
            "delivered_by": self.delivered_by.to_summary() if self.delivered_by else None,
            "ticket_reference": self.ticket_reference,
            "notes": self.notes,
            "created_at": to_iso(self.created_at),
        }
