from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from lendfi.config import settings
from lendfi.database import to_money
from lendfi.exceptions import BadRequestError, ForbiddenError, NotFoundError
from lendfi.models.rosca_models import Rosca, RoscaMembership, RoscaStatus
from lendfi.models.transaction_models import (
    ReferenceType,
    Transaction,
    TransactionStatus,
    TransactionSubType,
    TransactionType,
)
from lendfi.models.user_models import User
from lendfi.schemas.rosca_schemas import RoscaCreate
from lendfi.utils.dates import add_days, utcnow
from lendfi.utils.pagination import paginate

logger = logging.getLogger(__name__)

INVITE_CODE_LENGTH = 8
INVITE_CODE_ATTEMPTS = 5


def build_invite_link(invite_code: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/rosca/join/{invite_code}"


class RoscaService:
    """Savings groups: creation, membership and per-cycle contributions.

    A cycle closes once every member has contributed to it, or when its
    payout date passes; the next contribution then lands in the new cycle.
    """

    def __init__(self, db: Session):
        self.db = db

    # -----------------------------
    # Lookups
    # -----------------------------
    def _base_query(self):
        return self.db.query(Rosca).options(selectinload(Rosca.creator))

    def get_rosca(self, rosca_id: int) -> Rosca:
        rosca = self._base_query().options(selectinload(Rosca.memberships)).filter(Rosca.id == rosca_id).first()
        if not rosca:
            raise NotFoundError("ROSCA not found")
        return rosca

    def list_roscas(self, user: User, list_type: str = "available", page: int = 1, limit: int = 10):
        query = self._base_query()
        if list_type == "my-roscas":
            query = query.filter(Rosca.created_by == user.id)
        else:
            # Full groups stay listed; clients read isFull
            query = query.filter(Rosca.status == RoscaStatus.ACTIVE)

        query = query.order_by(Rosca.created_at.desc(), Rosca.id.desc())
        return paginate(query, page, limit)

    def get_membership(self, rosca_id: int, user_id: int) -> Optional[RoscaMembership]:
        return self.db.query(RoscaMembership).filter(
            RoscaMembership.rosca_id == rosca_id,
            RoscaMembership.user_id == user_id,
        ).first()

    # -----------------------------
    # Lifecycle
    # -----------------------------
    def create_rosca(self, founder: User, payload: RoscaCreate) -> Rosca:
        now = utcnow()
        rosca = Rosca(
            name=payload.name.strip(),
            description=payload.description,
            contribution_amount=to_money(payload.contribution_amount),
            cycle_duration=payload.cycle_duration,
            max_members=payload.max_members,
            current_members=1,
            is_on_chain=payload.is_on_chain,
            status=RoscaStatus.ACTIVE,
            current_cycle=1,
            next_payout_date=add_days(now, payload.cycle_duration),
            created_by=founder.id,
            invite_code=self._generate_invite_code(),
        )
        self.db.add(rosca)
        self.db.flush()

        self.db.add(RoscaMembership(rosca_id=rosca.id, user_id=founder.id, position=1, joined_at=now))
        self.db.commit()

        logger.info(f"ROSCA created: id={rosca.id} founder={founder.id} code={rosca.invite_code}")
        return self.get_rosca(rosca.id)

    def join_by_id(self, user: User, rosca_id: int) -> Rosca:
        rosca = self.db.query(Rosca).filter(Rosca.id == rosca_id).first()
        if not rosca:
            raise NotFoundError("ROSCA not found")
        return self._join(user, rosca)

    def join_by_invite(self, user: User, invite_code: str) -> Rosca:
        rosca = self.db.query(Rosca).filter(Rosca.invite_code == invite_code.strip().upper()).first()
        if not rosca:
            raise NotFoundError("Invalid invite code")
        return self._join(user, rosca)

    def _join(self, user: User, rosca: Rosca) -> Rosca:
        if rosca.status != RoscaStatus.ACTIVE:
            raise BadRequestError("ROSCA is not active")
        if self.get_membership(rosca.id, user.id):
            raise BadRequestError("Already a member of this ROSCA")
        if rosca.current_members >= rosca.max_members:
            raise BadRequestError("ROSCA is full")

        rosca_id = rosca.id
        result = self.db.execute(
            update(Rosca)
            .where(
                Rosca.id == rosca_id,
                Rosca.status == RoscaStatus.ACTIVE,
                Rosca.current_members < Rosca.max_members,
            )
            .values(current_members=Rosca.current_members + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            logger.warning(f"Join lost the race for ROSCA {rosca_id}: group filled up")
            raise BadRequestError("ROSCA is full")

        position = self.db.execute(
            select(Rosca.current_members).where(Rosca.id == rosca_id)
        ).scalar_one()
        self.db.add(RoscaMembership(rosca_id=rosca_id, user_id=user.id, position=position))
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise BadRequestError("Already a member of this ROSCA")

        logger.info(f"User {user.id} joined ROSCA {rosca_id} as member #{position}")
        return self.get_rosca(rosca_id)

    def contribute(self, user: User, rosca_id: int, amount) -> tuple[Rosca, Transaction]:
        rosca = self.db.query(Rosca).filter(Rosca.id == rosca_id).first()
        if not rosca:
            raise NotFoundError("ROSCA not found")
        if rosca.status != RoscaStatus.ACTIVE:
            raise BadRequestError("ROSCA is not active")

        membership = self.get_membership(rosca_id, user.id)
        if not membership:
            raise ForbiddenError("Not a member of this ROSCA")

        amount = to_money(amount)
        if amount != rosca.contribution_amount:
            raise BadRequestError("Contribution amount must match ROSCA requirement")

        now = utcnow()
        cycle, payout_date = self._roll_lapsed_cycles(rosca, now)
        result = self.db.execute(
            update(RoscaMembership)
            .where(
                RoscaMembership.id == membership.id,
                or_(
                    RoscaMembership.last_contributed_cycle.is_(None),
                    RoscaMembership.last_contributed_cycle < cycle,
                ),
            )
            .values(last_contributed_cycle=cycle)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise BadRequestError(f"Already contributed for cycle {cycle}")

        transaction = Transaction(
            user_id=user.id,
            type=TransactionType.ROSCA,
            sub_type=TransactionSubType.CONTRIBUTION,
            amount=amount,
            description=f"Contribution to {rosca.name} - Cycle {cycle}",
            status=TransactionStatus.COMPLETED,
            reference_type=ReferenceType.ROSCA,
            reference_id=rosca.id,
            transaction_metadata={"cycle": cycle},
        )
        self.db.add(transaction)
        self._close_cycle_if_complete(rosca, cycle, payout_date, now)
        self.db.commit()
        self.db.refresh(transaction)

        logger.info(f"Contribution: user={user.id} rosca={rosca_id} cycle={cycle} amount={amount}")
        return self.get_rosca(rosca_id), transaction

    # -----------------------------
    # Cycles
    # -----------------------------
    def _cycle_state(self, rosca_id: int) -> tuple[int, datetime]:
        row = self.db.execute(
            select(Rosca.current_cycle, Rosca.next_payout_date).where(Rosca.id == rosca_id)
        ).one()
        return row.current_cycle, row.next_payout_date

    def _roll_lapsed_cycles(self, rosca: Rosca, now: datetime) -> tuple[int, datetime]:
        """Move the group past every cycle whose payout date has gone by.

        Returns the cycle now open and its payout date.
        """
        cycle, payout_date = self._cycle_state(rosca.id)
        if payout_date > now:
            return cycle, payout_date

        period = timedelta(days=rosca.cycle_duration)
        lapsed = (now - payout_date) // period + 1
        self.db.execute(
            update(Rosca)
            .where(Rosca.id == rosca.id, Rosca.current_cycle == cycle)
            .values(
                current_cycle=cycle + lapsed,
                next_payout_date=payout_date + lapsed * period,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        logger.info(f"ROSCA {rosca.id}: payout date passed, cycle {cycle} -> {cycle + lapsed}")
        # Another contributor may have rolled the cycle first
        return self._cycle_state(rosca.id)

    def _close_cycle_if_complete(self, rosca: Rosca, cycle: int, payout_date: datetime, now: datetime):
        contributed = self.db.query(func.count(RoscaMembership.id)).filter(
            RoscaMembership.rosca_id == rosca.id,
            RoscaMembership.last_contributed_cycle == cycle,
        ).scalar()
        members = self.db.execute(
            select(Rosca.current_members).where(Rosca.id == rosca.id)
        ).scalar_one()
        if contributed < members:
            return

        opened = self.db.execute(
            update(Rosca)
            .where(Rosca.id == rosca.id, Rosca.current_cycle == cycle)
            .values(
                current_cycle=cycle + 1,
                next_payout_date=add_days(payout_date, rosca.cycle_duration),
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        ).rowcount == 1
        if opened:
            logger.info(f"ROSCA {rosca.id}: all {members} members paid cycle {cycle}, opening cycle {cycle + 1}")

    def _generate_invite_code(self) -> str:
        for _ in range(INVITE_CODE_ATTEMPTS):
            code = uuid4().hex[:INVITE_CODE_LENGTH].upper()
            if not self.db.query(Rosca.id).filter(Rosca.invite_code == code).first():
                return code
        raise RuntimeError("Could not generate a unique invite code")
