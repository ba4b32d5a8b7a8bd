from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime,
    UniqueConstraint, ForeignKey, Boolean, Text, JSON
)
from sqlalchemy.orm import relationship
from database import Base

# ==========================================================
#  SQLALCHEMY MODELS (Database Tables)
# ==========================================================

# ----------------------------------------------------------
#  USERS & ROLES
# ----------------------------------------------------------

class RoleDB(Base):
    __tablename__ = "roles"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=True)

class UserDB(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    full_name = Column(String, nullable=True)
    role_id = Column(Integer, ForeignKey("roles.id"))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.now)
    last_login = Column(DateTime, nullable=True)
    role = relationship("RoleDB", lazy="selectin")

    @property
    def role_name(self) -> Optional[str]:
        return self.role.name if self.role else None


# ----------------------------------------------------------
#  COMPANIES / LOCATIONS / VEHICLES
# ----------------------------------------------------------

class CompanyDB(Base):
    __tablename__ = "companies"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    tax_id = Column(String, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    contact_person = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

class LocationDB(Base):
    __tablename__ = "locations"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.now)

class VehicleDB(Base):
    __tablename__ = "vehicles"
    id = Column(Integer, primary_key=True, index=True)
    vehicle_name = Column(String, nullable=False)
    license_plate = Column(String, unique=True, nullable=False)
    chassis_number = Column(String, nullable=True)
    status = Column(String, nullable=False, default="ACTIVE")
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=True, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

class ServiceRecordDB(Base):
    __tablename__ = "service_records"
    id = Column(Integer, primary_key=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False, index=True)
    service_date = Column(Date, nullable=False)
    service_type = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    cost = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.now)


# ----------------------------------------------------------
#  AIRLINES & PRICES
# ----------------------------------------------------------

class AirlineDB(Base):
    __tablename__ = "airlines"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    contact_details = Column(String, nullable=True)
    tax_id = Column(String, nullable=True)
    address = Column(String, nullable=True)
    is_foreign = Column(Boolean, default=False)
    operating_destinations = Column(JSON, default=list)
    created_at = Column(DateTime, default=datetime.now)

class FuelPriceRuleDB(Base):
    __tablename__ = "fuel_price_rules"
    id = Column(Integer, primary_key=True, index=True)
    airline_id = Column(Integer, ForeignKey("airlines.id"), nullable=False, index=True)
    price = Column(Float, nullable=False)      # per kg
    currency = Column(String(3), nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        UniqueConstraint("airline_id", "currency", name="uq_price_rule_airline_currency"),
    )


# ----------------------------------------------------------
#  FIXED STORAGE TANKS & MRN BATCHES
# ----------------------------------------------------------

class FixedStorageTankDB(Base):
    __tablename__ = "fixed_storage_tanks"
    id = Column(Integer, primary_key=True, index=True)
    tank_name = Column(String, nullable=False)
    tank_identifier = Column(String, unique=True, nullable=False)
    capacity_liters = Column(Float, nullable=False)
    current_quantity_liters = Column(Float, nullable=False, default=0)
    fuel_type = Column(String, nullable=False)
    location_description = Column(String, nullable=True)
    status = Column(String, nullable=False, default="ACTIVE")
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

class MrnRecordDB(Base):
    """Fuel held in a fixed tank per customs declaration (MRN)."""
    __tablename__ = "tank_fuel_by_customs"
    id = Column(Integer, primary_key=True, index=True)
    fixed_tank_id = Column(Integer, ForeignKey("fixed_storage_tanks.id"), nullable=False, index=True)
    customs_declaration_number = Column(String, nullable=False, index=True)
    quantity_liters = Column(Float, nullable=False)
    remaining_quantity_liters = Column(Float, nullable=False)
    intake_record_id = Column(Integer, ForeignKey("fuel_intake_records.id"), nullable=True)
    date_added = Column(DateTime, default=datetime.now, index=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        UniqueConstraint("fixed_tank_id", "customs_declaration_number", name="uq_tank_mrn"),
    )

class FuelIntakeRecordDB(Base):
    __tablename__ = "fuel_intake_records"
    id = Column(Integer, primary_key=True, index=True)
    delivery_datetime = Column(DateTime, nullable=False, index=True)
    supplier_name = Column(String, nullable=True)
    delivery_note_number = Column(String, nullable=True)
    customs_declaration_number = Column(String, nullable=False)
    fuel_type = Column(String, nullable=False)
    fuel_category = Column(String, nullable=True)
    quantity_liters_received = Column(Float, nullable=False)
    quantity_kg_received = Column(Float, nullable=True)
    specific_gravity = Column(Float, nullable=True)
    distributions = Column(JSON, default=list)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

class FixedTankTransferDB(Base):
    """Fuel moved from one fixed tank to another, MRN batches included."""
    __tablename__ = "fixed_tank_transfers"
    id = Column(Integer, primary_key=True, index=True)
    transfer_datetime = Column(DateTime, nullable=False, index=True)
    source_tank_id = Column(Integer, ForeignKey("fixed_storage_tanks.id"), nullable=False, index=True)
    destination_tank_id = Column(Integer, ForeignKey("fixed_storage_tanks.id"), nullable=False, index=True)
    quantity_liters = Column(Float, nullable=False)
    mrn_breakdown = Column(JSON, default=list)
    notes = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    source_tank = relationship("FixedStorageTankDB", foreign_keys=[source_tank_id], lazy="selectin")
    destination_tank = relationship("FixedStorageTankDB", foreign_keys=[destination_tank_id], lazy="selectin")


# ----------------------------------------------------------
#  MOBILE TANKERS
# ----------------------------------------------------------

class FuelTankDB(Base):
    """Mobile tanker vehicle tank."""
    __tablename__ = "fuel_tanks"
    id = Column(Integer, primary_key=True, index=True)
    identifier = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    location = Column(String, nullable=True)
    capacity_liters = Column(Float, nullable=False)
    current_liters = Column(Float, nullable=False, default=0)
    fuel_type = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

class TankerRefillDB(Base):
    __tablename__ = "tanker_refills"
    id = Column(Integer, primary_key=True, index=True)
    tanker_id = Column(Integer, ForeignKey("fuel_tanks.id"), nullable=False, index=True)
    refill_datetime = Column(DateTime, nullable=False, index=True)
    source_type = Column(String, nullable=False)          # supplier / fixed
    source_fixed_tank_id = Column(Integer, ForeignKey("fixed_storage_tanks.id"), nullable=True)
    quantity_liters = Column(Float, nullable=False)
    supplier_name = Column(String, nullable=True)
    mrn_breakdown = Column(JSON, default=list)
    notes = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)


# ----------------------------------------------------------
#  FUELING OPERATIONS & DRAINS
# ----------------------------------------------------------

class FuelingOperationDB(Base):
    __tablename__ = "fueling_operations"
    id = Column(Integer, primary_key=True, index=True)
    date_time = Column(DateTime, nullable=False, index=True)
    aircraft_registration = Column(String, nullable=False)
    airline_id = Column(Integer, ForeignKey("airlines.id"), nullable=False, index=True)
    destination = Column(String, nullable=False)
    quantity_liters = Column(Float, nullable=False)
    specific_density = Column(Float, nullable=False, default=0.8)
    quantity_kg = Column(Float, nullable=False)
    price_per_kg = Column(Float, nullable=True)
    currency = Column(String(3), nullable=True)
    total_amount = Column(Float, nullable=True)
    tank_id = Column(Integer, ForeignKey("fuel_tanks.id"), nullable=False, index=True)
    flight_number = Column(String, nullable=True)
    operator_name = Column(String, nullable=False)
    traffic_type = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    airline = relationship("AirlineDB", lazy="selectin")
    tank = relationship("FuelTankDB", lazy="selectin")

class FuelDrainRecordDB(Base):
    __tablename__ = "fuel_drain_records"
    id = Column(Integer, primary_key=True, index=True)
    date_time = Column(DateTime, nullable=False, index=True)
    source_type = Column(String, nullable=False)          # fixed / mobile
    source_fixed_tank_id = Column(Integer, ForeignKey("fixed_storage_tanks.id"), nullable=True)
    source_mobile_tank_id = Column(Integer, ForeignKey("fuel_tanks.id"), nullable=True)
    quantity_liters = Column(Float, nullable=False)
    mrn_breakdown = Column(JSON, default=list)
    notes = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    source_fixed_tank = relationship("FixedStorageTankDB", lazy="selectin")
    source_mobile_tank = relationship("FuelTankDB", lazy="selectin")
    user = relationship("UserDB", lazy="selectin")

class FuelDrainReversalDB(Base):
    """Filtered fuel from a drain returned to a fixed tank or tanker."""
    __tablename__ = "fuel_drain_reversals"
    id = Column(Integer, primary_key=True, index=True)
    original_drain_id = Column(Integer, ForeignKey("fuel_drain_records.id"), nullable=False, index=True)
    date_time = Column(DateTime, nullable=False, index=True)
    destination_type = Column(String, nullable=False)     # fixed / mobile
    destination_fixed_tank_id = Column(Integer, ForeignKey("fixed_storage_tanks.id"), nullable=True)
    destination_mobile_tank_id = Column(Integer, ForeignKey("fuel_tanks.id"), nullable=True)
    quantity_liters = Column(Float, nullable=False)
    mrn_breakdown = Column(JSON, default=list)
    notes = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    original_drain = relationship("FuelDrainRecordDB", lazy="selectin")
    destination_fixed_tank = relationship("FixedStorageTankDB", lazy="selectin")
    destination_mobile_tank = relationship("FuelTankDB", lazy="selectin")
    user = relationship("UserDB", lazy="selectin")


# ----------------------------------------------------------
#  CONSISTENCY OVERRIDES & LOGS
# ----------------------------------------------------------

class ConsistencyOverrideDB(Base):
    __tablename__ = "consistency_overrides"
    id = Column(Integer, primary_key=True, index=True)
    jti = Column(String, unique=True, nullable=False, index=True)
    tank_id = Column(Integer, ForeignKey("fixed_storage_tanks.id"), nullable=False)
    operation_type = Column(String, nullable=False)
    notes = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)


class ActivityLogDB(Base):
    __tablename__ = "activity_logs"
    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=datetime.now, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    username = Column(String, nullable=True)
    action_type = Column(String, nullable=False, index=True)
    resource_type = Column(String, nullable=False, index=True)
    resource_id = Column(Integer, nullable=True)
    description = Column(Text, nullable=False)
    metadata_json = Column("metadata", JSON, nullable=True)

class SystemLogDB(Base):
    __tablename__ = "system_logs"
    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=datetime.now, index=True)
    action = Column(String, nullable=False, index=True)
    details = Column(JSON, nullable=True)
    severity = Column(String, nullable=False, default="INFO")
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)


# ==========================================================
#  PYDANTIC SCHEMAS (AUTH)
# ==========================================================

class UserLogin(BaseModel):
    username: str
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
