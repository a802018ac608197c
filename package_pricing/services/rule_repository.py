"""
Rule repository.
Reads the active pricing rules for a package and maps them into a snapshot.
"""
from datetime import date
from typing import List, Optional, Type
import asyncio
import logging
import uuid

from pydantic import ValidationError
from sqlalchemy import select, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..models import (
    ExperiencePackage, PackagePricingTier, PackageGroupPricing, PackageSeasonalPricing,
    PackageTimeBasedDiscount, PackageDeparturePricing, PackageAddon, PackageBlockedDate,
    PackagePromotion,
)
from ..pricing.errors import PackageNotFound, RuleFetchFailed
from ..pricing.rules import (
    Addon, BlockedDateRange, DeparturePricing, GroupPricingRule, PackageInfo, PricingTier,
    Promotion, RuleModel, RuleSnapshot, SeasonalPricingRule, TimeBasedDiscount,
)

logger = logging.getLogger(__name__)


def _as_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class RuleRepository:
    """
    Read-only access to a package's pricing rules.

    Every read opens its own session so the collection reads can run
    concurrently; a failed read fails the whole snapshot.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def _fetch_all(self, query, schema: Type[RuleModel], what: str) -> List:
        # Driver errors (refused connections, timeouts) can surface unwrapped by SQLAlchemy
        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                rows = result.scalars().all()
                return [schema.model_validate(row) for row in rows]
        except (SQLAlchemyError, OSError, asyncio.TimeoutError, ValidationError) as e:
            logger.error(f"Error fetching {what}: {e}")
            raise RuleFetchFailed(f"Failed to fetch {what}", cause=e) from e

    async def get_package(self, package_id) -> PackageInfo:
        key = _as_uuid(package_id)
        if key is None:
            raise PackageNotFound(f"Package {package_id} not found", package_id=str(package_id))

        packages = await self._fetch_all(
            select(ExperiencePackage).where(
                and_(ExperiencePackage.id == key, ExperiencePackage.is_active.is_(True))
            ),
            PackageInfo,
            "package",
        )
        if not packages:
            raise PackageNotFound(f"Package {package_id} not found", package_id=str(package_id))
        return packages[0]

    async def get_pricing_tiers(self, package_id: uuid.UUID) -> List[PricingTier]:
        return await self._fetch_all(
            select(PackagePricingTier).where(
                and_(PackagePricingTier.package_id == package_id, PackagePricingTier.is_active.is_(True))
            ).order_by(PackagePricingTier.display_order, PackagePricingTier.created_at),
            PricingTier,
            "pricing tiers",
        )

    async def get_group_rules(self, package_id: uuid.UUID) -> List[GroupPricingRule]:
        return await self._fetch_all(
            select(PackageGroupPricing).where(
                and_(PackageGroupPricing.package_id == package_id, PackageGroupPricing.is_active.is_(True))
            ),
            GroupPricingRule,
            "group pricing",
        )

    async def get_seasonal_rules(self, package_id: uuid.UUID, travel_date: date) -> List[SeasonalPricingRule]:
        return await self._fetch_all(
            select(PackageSeasonalPricing).where(
                and_(
                    PackageSeasonalPricing.package_id == package_id,
                    PackageSeasonalPricing.is_active.is_(True),
                    PackageSeasonalPricing.start_date <= travel_date,
                    PackageSeasonalPricing.end_date >= travel_date,
                )
            ),
            SeasonalPricingRule,
            "seasonal pricing",
        )

    async def get_time_based_discounts(self, package_id: uuid.UUID) -> List[TimeBasedDiscount]:
        return await self._fetch_all(
            select(PackageTimeBasedDiscount).where(
                and_(
                    PackageTimeBasedDiscount.package_id == package_id,
                    PackageTimeBasedDiscount.is_active.is_(True),
                )
            ),
            TimeBasedDiscount,
            "time-based discounts",
        )

    async def get_addons(self, package_id: uuid.UUID) -> List[Addon]:
        return await self._fetch_all(
            select(PackageAddon).where(
                and_(PackageAddon.package_id == package_id, PackageAddon.is_active.is_(True))
            ).order_by(PackageAddon.display_order),
            Addon,
            "add-ons",
        )

    async def get_departure(self, package_id: uuid.UUID, travel_date: date) -> Optional[DeparturePricing]:
        departures = await self._fetch_all(
            select(PackageDeparturePricing).where(
                and_(
                    PackageDeparturePricing.package_id == package_id,
                    PackageDeparturePricing.departure_date == travel_date,
                    PackageDeparturePricing.is_active.is_(True),
                )
            ).order_by(PackageDeparturePricing.created_at.desc()),
            DeparturePricing,
            "departure pricing",
        )
        return departures[0] if departures else None

    async def get_blocked_dates(self, package_id: uuid.UUID) -> List[BlockedDateRange]:
        return await self._fetch_all(
            select(PackageBlockedDate).where(
                PackageBlockedDate.package_id == package_id
            ).order_by(PackageBlockedDate.start_date),
            BlockedDateRange,
            "blocked dates",
        )

    async def get_promotions(self) -> List[Promotion]:
        # Package scoping lives in a JSON column, so it is checked in the engine
        return await self._fetch_all(
            select(PackagePromotion).where(PackagePromotion.is_active.is_(True)),
            Promotion,
            "promotions",
        )

    async def fetch_snapshot(self, package_id, travel_date: date) -> RuleSnapshot:
        """Read the package, then fan out the rule reads and join them."""
        package = await self.get_package(package_id)
        key = _as_uuid(package.id)

        # Every read settles before the first failure is raised
        results = await asyncio.gather(
            self.get_pricing_tiers(key),
            self.get_group_rules(key),
            self.get_seasonal_rules(key, travel_date),
            self.get_time_based_discounts(key),
            self.get_addons(key),
            self.get_departure(key, travel_date),
            self.get_blocked_dates(key),
            self.get_promotions(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        (
            tiers, group_rules, seasonal_rules, time_based, addons,
            departure, blocked_dates, promotions,
        ) = results

        logger.info(
            f"Loaded rules for package {package.id}: {len(tiers)} tiers, {len(group_rules)} group, "
            f"{len(seasonal_rules)} seasonal, {len(time_based)} time-based, {len(addons)} add-ons, "
            f"{len(blocked_dates)} blocked ranges"
        )
        return RuleSnapshot(
            package=package,
            tiers=tiers,
            group_rules=group_rules,
            seasonal_rules=seasonal_rules,
            time_based_discounts=time_based,
            addons=addons,
            departure=departure,
            blocked_dates=blocked_dates,
            promotions=promotions,
        )
