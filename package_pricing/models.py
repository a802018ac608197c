"""
SQLAlchemy models for packages and their pricing rules.
Rows are maintained by the back office; the pricing engine only reads them.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, Boolean, Text, ForeignKey, Index, JSON, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid

from .database import Base
from .pricing.rules import AdjustmentType, TimeDiscountType, AddonPricingType, DepartureStatus


def _utcnow():
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# Models
class ExperiencePackage(Base):
    __tablename__ = "experience_packages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    package_name = Column(String(255), nullable=False)
    package_code = Column(String(50), nullable=True)
    currency = Column(String(3), nullable=True)

    # Group size constraints
    min_group_size = Column(Integer, default=1, nullable=False)
    max_group_size = Column(Integer, nullable=True)

    # Availability window
    available_from = Column(Date, nullable=True)
    available_to = Column(Date, nullable=True)

    use_custom_tiers = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # Relationships
    pricing_tiers = relationship("PackagePricingTier", back_populates="package", cascade="all, delete-orphan")
    blocked_dates = relationship("PackageBlockedDate", back_populates="package", cascade="all, delete-orphan")

class PackagePricingTier(Base):
    __tablename__ = "package_pricing_tiers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    package_id = Column(Uuid, ForeignKey("experience_packages.id"), nullable=False)

    tier_type = Column(String(50), nullable=False)  # adult, child, infant, senior or custom label
    tier_code = Column(String(100), nullable=True)
    tier_label = Column(String(255), nullable=True)
    min_age = Column(Integer, nullable=True)
    max_age = Column(Integer, nullable=True)

    # Pricing
    base_price = Column(Numeric(12, 2), nullable=False)
    selling_price = Column(Numeric(12, 2), nullable=True)  # customer-facing, includes markup

    # Selection rules
    display_order = Column(Integer, default=0, nullable=False)
    requires_adult_accompaniment = Column(Boolean, default=False, nullable=False)
    max_per_booking = Column(Integer, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    package = relationship("ExperiencePackage", back_populates="pricing_tiers")

    __table_args__ = (
        Index("idx_pricing_tiers_package_active", "package_id", "is_active"),
    )

class PackageGroupPricing(Base):
    __tablename__ = "package_group_pricing"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    package_id = Column(Uuid, ForeignKey("experience_packages.id"), nullable=False)

    min_size = Column(Integer, nullable=False)
    max_size = Column(Integer, nullable=True)  # null = unbounded
    adjustment_type = Column(SQLEnum(AdjustmentType, values_callable=_enum_values), nullable=False)
    adjustment_value = Column(Numeric(12, 2), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("idx_group_pricing_package_active", "package_id", "is_active"),
    )

class PackageSeasonalPricing(Base):
    __tablename__ = "package_seasonal_pricing"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    package_id = Column(Uuid, ForeignKey("experience_packages.id"), nullable=False)

    season_name = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    adjustment_type = Column(SQLEnum(AdjustmentType, values_callable=_enum_values), nullable=False)
    adjustment_value = Column(Numeric(12, 2), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("idx_seasonal_pricing_package_dates", "package_id", "start_date", "end_date"),
    )

class PackageTimeBasedDiscount(Base):
    __tablename__ = "package_time_based_discounts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    package_id = Column(Uuid, ForeignKey("experience_packages.id"), nullable=False)

    discount_name = Column(String(255), nullable=False)
    discount_type = Column(SQLEnum(TimeDiscountType, values_callable=_enum_values), nullable=False)
    days_threshold = Column(Integer, nullable=False)
    adjustment_type = Column(SQLEnum(AdjustmentType, values_callable=_enum_values), nullable=False)
    adjustment_value = Column(Numeric(12, 2), nullable=False)

    # Booking-date validity
    valid_from = Column(Date, nullable=True)
    valid_to = Column(Date, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

class PackageDeparturePricing(Base):
    __tablename__ = "package_departure_pricing"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    package_id = Column(Uuid, ForeignKey("experience_packages.id"), nullable=False)
    departure_date = Column(Date, nullable=False)

    # Capacity
    available_slots = Column(Integer, nullable=True)
    booked_slots = Column(Integer, default=0, nullable=False)
    status = Column(SQLEnum(DepartureStatus, values_callable=_enum_values), default=DepartureStatus.AVAILABLE, nullable=False)

    # Custom pricing
    custom_adult_price = Column(Numeric(12, 2), nullable=True)
    custom_child_price = Column(Numeric(12, 2), nullable=True)
    custom_infant_price = Column(Numeric(12, 2), nullable=True)
    custom_senior_price = Column(Numeric(12, 2), nullable=True)
    adjustment_type = Column(SQLEnum(AdjustmentType, values_callable=_enum_values), nullable=True)
    adjustment_value = Column(Numeric(12, 2), nullable=True)

    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("idx_departure_pricing_package_date", "package_id", "departure_date"),
    )

class PackageAddon(Base):
    __tablename__ = "package_addons"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    package_id = Column(Uuid, ForeignKey("experience_packages.id"), nullable=False)

    addon_name = Column(String(255), nullable=False)
    addon_code = Column(String(100), nullable=True)
    pricing_type = Column(SQLEnum(AddonPricingType, values_callable=_enum_values), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)

    min_quantity = Column(Integer, default=0, nullable=False)
    max_quantity = Column(Integer, nullable=True)
    is_required = Column(Boolean, default=False, nullable=False)

    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

class PackageBlockedDate(Base):
    __tablename__ = "package_blocked_dates"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    package_id = Column(Uuid, ForeignKey("experience_packages.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    package = relationship("ExperiencePackage", back_populates="blocked_dates")

    __table_args__ = (
        Index("idx_blocked_dates_package_start", "package_id", "start_date"),
    )

class PackagePromotion(Base):
    __tablename__ = "package_promotions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    promotion_code = Column(String(50), nullable=False, index=True)
    promotion_name = Column(String(255), nullable=False)

    adjustment_type = Column(SQLEnum(AdjustmentType, values_callable=_enum_values), nullable=False)
    adjustment_value = Column(Numeric(12, 2), nullable=False)

    package_ids = Column(JSON, nullable=True)  # null = all packages

    # Validity
    valid_from = Column(Date, nullable=True)
    valid_to = Column(Date, nullable=True)

    # Usage limits
    max_uses = Column(Integer, nullable=True)
    current_uses = Column(Integer, default=0, nullable=False)

    # Requirements
    min_purchase_amount = Column(Numeric(12, 2), nullable=True)
    min_pax = Column(Integer, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
