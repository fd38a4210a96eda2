"""Points grant service with idempotency and level-up detection."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from elp.db.models import PointsLedger, UserPoints, utcnow
from elp.db.upsert import insert_for
from elp.gamification.levels import compute_level
from elp.notifications.push import publish_event
from elp.notifications.service import ToastKind, push_toast

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointsUpdate:
    """Wallet state after a grant."""

    user_id: int
    amount: int
    total_points: int
    level: int
    previous_level: int

    @property
    def leveled_up(self) -> bool:
        return self.level > self.previous_level


async def ensure_points_row(db: AsyncSession, user_id: int) -> None:
    """Create the wallet row if absent (no-op when it exists)."""
    stmt = insert_for(db, UserPoints).values(
        user_id=user_id,
        total_points=0,
        level=1,
        updated_at=utcnow(),
    )
    stmt = stmt.on_conflict_do_nothing(index_elements=["user_id"])
    await db.execute(stmt)


async def get_or_create_points(db: AsyncSession, user_id: int) -> UserPoints:
    """Get or create the points wallet for a user."""
    await ensure_points_row(db, user_id)
    result = await db.execute(
        select(UserPoints)
        .where(UserPoints.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def grant_points(
    db: AsyncSession,
    redis: object | None,
    user_id: int,
    amount: int,
    source: str,
    source_id: str | None = None,
    description: str | None = None,
    idempotency_key: str | None = None,
) -> PointsUpdate | None:
    """Grant points to a user. Returns the new wallet state, or None if duplicate.

    1. Insert into points_ledger (conflict on idempotency_key -> duplicate)
    2. Atomically increment user_points.total_points
    3. Recompute level from the persisted total
    4. If level changed, emit level-up notification
    """
    if amount < 0:
        msg = f"Negative point grants are not supported (got {amount})"
        raise ValueError(msg)

    now = utcnow()

    ledger = insert_for(db, PointsLedger).values(
        user_id=user_id,
        amount=amount,
        source=source,
        source_id=source_id,
        description=description,
        idempotency_key=idempotency_key,
        created_at=now,
    )
    if idempotency_key is not None:
        ledger = ledger.on_conflict_do_nothing(index_elements=["idempotency_key"])
    inserted = (await db.execute(ledger.returning(PointsLedger.id))).scalar_one_or_none()
    if inserted is None:
        logger.debug("Duplicate points grant ignored: %s", idempotency_key)
        return None

    await ensure_points_row(db, user_id)
    await db.execute(
        update(UserPoints)
        .where(UserPoints.user_id == user_id)
        .values(total_points=UserPoints.total_points + amount, updated_at=now)
        .execution_options(synchronize_session=False)
    )

    result = await db.execute(
        select(UserPoints)
        .where(UserPoints.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    wallet = result.scalar_one()
    previous_level = compute_level(wallet.total_points - amount)
    wallet.level = compute_level(wallet.total_points)
    await db.flush()

    points_update = PointsUpdate(
        user_id=user_id,
        amount=amount,
        total_points=wallet.total_points,
        level=wallet.level,
        previous_level=previous_level,
    )

    await publish_event(redis, "pubsub:points_updated", {
        "user_id": user_id,
        "amount": amount,
        "source": source,
        "total_points": points_update.total_points,
        "level": points_update.level,
    })

    if points_update.leveled_up:
        await _emit_level_up(db, redis, points_update)

    return points_update


async def _emit_level_up(db: AsyncSession, redis: object | None, points_update: PointsUpdate) -> None:
    """Emit level-up notification via DB + WebSocket."""
    await push_toast(
        db,
        redis,
        points_update.user_id,
        ToastKind.SUCCESS,
        f"You reached level {points_update.level}!",
        category="gamification",
        title="Level up!",
        action_url="/dashboard",
    )
    await publish_event(redis, "pubsub:level_up", {
        "user_id": points_update.user_id,
        "old_level": points_update.previous_level,
        "new_level": points_update.level,
    })


async def get_points_history(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[PointsLedger], int]:
    """Ledger entries for a user, newest first."""
    total = (await db.execute(
        select(func.count()).select_from(PointsLedger).where(PointsLedger.user_id == user_id)
    )).scalar_one()
    result = await db.execute(
        select(PointsLedger)
        .where(PointsLedger.user_id == user_id)
        .order_by(PointsLedger.created_at.desc(), PointsLedger.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total
