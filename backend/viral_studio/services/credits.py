"""
Organization credit wallet.

Charges go through a single conditional UPDATE so concurrent runs can
never overdraw a wallet.
"""
from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from viral_studio.models import CreditTransaction, CreditWallet
from viral_studio.settings import CycleConfig

logger = logging.getLogger(__name__)

FEATURE_DAILY_VIRAL_CYCLE = "daily_viral_cycle"


def required_credits(cfg: CycleConfig, platform_count: int | None = None) -> int:
    """Flat base cost plus a fee for every target platform."""
    if platform_count is None:
        platform_count = len(cfg.target_platforms)
    return cfg.credit_base_cost + cfg.credit_per_platform_cost * max(platform_count, 0)


def charge_description(content_label: str, platform: str, title: str) -> str:
    return f"Daily viral cycle [{content_label}]: {platform} - {title}"


async def get_balance(session: AsyncSession, org_id: int) -> int:
    result = await session.execute(
        select(CreditWallet.current_credits).where(CreditWallet.org_id == org_id)
    )
    return result.scalar_one_or_none() or 0


async def charge_credits(
    session: AsyncSession,
    org_id: int,
    cost: int,
    *,
    feature: str = FEATURE_DAILY_VIRAL_CYCLE,
    description: str | None = None,
) -> bool:
    """Atomically deduct cost if the wallet holds at least cost.

    Returns False (and changes nothing) when the balance is insufficient
    or the organization has no wallet.
    """
    if cost <= 0:
        raise ValueError("cost must be positive")

    result = await session.execute(
        update(CreditWallet)
        .where(CreditWallet.org_id == org_id, CreditWallet.current_credits >= cost)
        .values(current_credits=CreditWallet.current_credits - cost)
        .returning(CreditWallet.current_credits)
        .execution_options(synchronize_session=False)
    )
    balance_after = result.scalar_one_or_none()
    if balance_after is None:
        logger.info(f"[credits] Charge of {cost} rejected for org {org_id}")
        return False

    session.add(CreditTransaction(
        org_id=org_id,
        feature=feature,
        amount=-cost,
        balance_after=balance_after,
        description=description,
    ))
    await session.flush()
    return True
