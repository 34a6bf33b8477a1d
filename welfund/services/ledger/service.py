"""Ledger bookkeeping: member registry, contributions, disbursements, expenses, balances."""

import time
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import func, select

from welfund.common.logging import logger
from welfund.common.metrics import (
    contributions_recorded_total,
    disbursements_recorded_total,
    expenses_recorded_total,
)
from welfund.common.portal import STAFF_ROLES
from welfund.services.ledger.models import Contribution, Disbursement, Member, MonthlyExpense, StaffUser


CONTRIBUTION_TYPES: tuple[str, ...] = (
    "mpesa",
    "monthly_contribution",
    "cases",
    "projects",
    "registration",
    "others",
)

ZERO = Decimal("0")


def _to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(Decimal("0.01"))


def _month_starts(today: date, months: int) -> list[date]:
    """First day of each of the last `months` calendar months, oldest first."""

    first = today.replace(day=1)
    starts = [first]
    for _ in range(months - 1):
        first = (first - timedelta(days=1)).replace(day=1)
        starts.append(first)
    return list(reversed(starts))


def _next_month(start: date) -> date:
    return (start + timedelta(days=32)).replace(day=1)


class LedgerService:
    """Owns every write to the fund's members, contributions, disbursements and expenses."""

    def __init__(self, session_factory, service_name: str = "ledger") -> None:
        self.session_factory = session_factory
        self.service_name = service_name

    # Members

    def register_member(self, first_name: str, last_name: str, email: str, phone_number: str) -> Member:
        """Create a member awaiting approval."""

        with self.session_factory() as db:
            existing = db.execute(select(Member).where(Member.email == email)).scalar_one_or_none()
            if existing:
                raise ValueError(f"member with email {email} already registered")
            member = Member(
                first_name=first_name,
                last_name=last_name,
                email=email,
                phone_number=phone_number,
                registration_status="pending",
            )
            db.add(member)
            db.commit()
            logger.info("member_registered member_id=%s", member.id)
            return member

    def _next_tns_number(self, db) -> str:
        candidate = int(time.time() * 1000) % 1_000_000
        while True:
            tns = f"TNS{candidate:06d}"
            if db.execute(select(Member.id).where(Member.tns_number == tns)).first() is None:
                return tns
            candidate = (candidate + 1) % 1_000_000

    def approve_member(self, member_id: str) -> Member:
        """Approve a pending registration and assign the member's TNS number."""

        with self.session_factory() as db:
            member = db.get(Member, member_id)
            if not member:
                raise ValueError("member not found")
            if member.registration_status != "pending":
                raise ValueError(f"member already finalized as {member.registration_status}")
            member.registration_status = "approved"
            member.tns_number = self._next_tns_number(db)
            db.commit()
            logger.info("member_approved member_id=%s tns_number=%s", member.id, member.tns_number)
            return member

    def reject_member(self, member_id: str) -> Member:
        with self.session_factory() as db:
            member = db.get(Member, member_id)
            if not member:
                raise ValueError("member not found")
            if member.registration_status != "pending":
                raise ValueError(f"member already finalized as {member.registration_status}")
            member.registration_status = "rejected"
            db.commit()
            return member

    def list_members(self, status: str | None = None, limit: int = 500) -> list[Member]:
        with self.session_factory() as db:
            query = select(Member).order_by(Member.first_name, Member.last_name).limit(limit)
            if status:
                query = query.where(Member.registration_status == status)
            return list(db.execute(query).scalars().all())

    def get_member(self, member_id: str) -> Member | None:
        with self.session_factory() as db:
            return db.get(Member, member_id)

    # Staff

    def create_staff(self, email: str, full_name: str, staff_role: str) -> StaffUser:
        if staff_role not in STAFF_ROLES:
            raise ValueError(f"invalid staff_role {staff_role}")
        with self.session_factory() as db:
            if db.execute(select(StaffUser).where(StaffUser.email == email)).scalar_one_or_none():
                raise ValueError(f"staff user {email} already exists")
            staff = StaffUser(email=email, full_name=full_name, staff_role=staff_role, is_active=True)
            db.add(staff)
            db.commit()
            logger.info("staff_created email=%s role=%s", email, staff_role)
            return staff

    def get_staff_by_email(self, email: str) -> StaffUser | None:
        with self.session_factory() as db:
            return db.execute(select(StaffUser).where(StaffUser.email == email)).scalar_one_or_none()

    # Contributions and disbursements

    def _approved_member(self, db, member_id: str) -> Member:
        member = db.get(Member, member_id)
        if not member:
            raise ValueError("member not found")
        if member.registration_status != "approved":
            raise ValueError("member is not approved")
        return member

    def post_contribution(
        self,
        db,
        member_id: str,
        amount,
        contribution_type: str,
        status: str = "confirmed",
        reference_number: str | None = None,
        checkout_request_id: str | None = None,
        contribution_date: date | None = None,
        recorded_by: str | None = None,
    ) -> Contribution:
        """Add one contribution row to an open session; the caller commits."""

        amount = _to_decimal(amount)
        if amount <= ZERO:
            raise ValueError("amount must be positive")
        if contribution_type not in CONTRIBUTION_TYPES:
            raise ValueError(f"invalid contribution_type {contribution_type}")
        contribution = Contribution(
            member_id=member_id,
            amount=amount,
            contribution_type=contribution_type,
            status=status,
            reference_number=reference_number,
            checkout_request_id=checkout_request_id,
            contribution_date=contribution_date or date.today(),
            recorded_by=recorded_by,
        )
        db.add(contribution)
        contributions_recorded_total.labels(
            service=self.service_name,
            contribution_type=contribution_type,
        ).inc()
        return contribution

    def record_contribution(
        self,
        member_id: str,
        amount,
        contribution_type: str,
        reference_number: str | None = None,
        contribution_date: date | None = None,
        recorded_by: str | None = None,
    ) -> Contribution:
        """Manual payment entry by staff for an approved member."""

        with self.session_factory() as db:
            self._approved_member(db, member_id)
            contribution = self.post_contribution(
                db,
                member_id=member_id,
                amount=amount,
                contribution_type=contribution_type,
                reference_number=reference_number,
                contribution_date=contribution_date,
                recorded_by=recorded_by,
            )
            db.commit()
            logger.info(
                "contribution_recorded member_id=%s amount=%s type=%s",
                member_id,
                contribution.amount,
                contribution_type,
            )
            return contribution

    def record_disbursement(
        self,
        member_id: str,
        amount,
        reason: str,
        disbursement_date: date | None = None,
        recorded_by: str | None = None,
    ) -> Disbursement:
        amount = _to_decimal(amount)
        if amount <= ZERO:
            raise ValueError("amount must be positive")
        if not reason or not reason.strip():
            raise ValueError("disbursement reason is required")
        with self.session_factory() as db:
            self._approved_member(db, member_id)
            disbursement = Disbursement(
                member_id=member_id,
                amount=amount,
                reason=reason,
                status="approved",
                disbursement_date=disbursement_date or date.today(),
                recorded_by=recorded_by,
            )
            db.add(disbursement)
            db.commit()
            disbursements_recorded_total.labels(service=self.service_name).inc()
            logger.info("disbursement_recorded member_id=%s amount=%s", member_id, amount)
            return disbursement

    def record_expense(
        self,
        amount,
        expense_category: str,
        description: str | None = None,
        expense_date: date | None = None,
        recorded_by: str | None = None,
    ) -> MonthlyExpense:
        """Book a running cost of the group against the month it was incurred."""

        amount = _to_decimal(amount)
        if amount <= ZERO:
            raise ValueError("amount must be positive")
        if not expense_category or not expense_category.strip():
            raise ValueError("expense_category is required")
        expense_date = expense_date or date.today()
        with self.session_factory() as db:
            expense = MonthlyExpense(
                amount=amount,
                expense_category=expense_category.strip(),
                description=description,
                expense_date=expense_date,
                month_year=expense_date.strftime("%Y-%m"),
                recorded_by=recorded_by,
            )
            db.add(expense)
            db.commit()
            expenses_recorded_total.labels(service=self.service_name).inc()
            logger.info("expense_recorded month_year=%s amount=%s", expense.month_year, amount)
            return expense

    def contribution_rows(self, start_date: date | None = None, end_date: date | None = None) -> list[dict]:
        """Contributions joined with member details, oldest first."""

        with self.session_factory() as db:
            query = (
                select(Contribution, Member)
                .join(Member, Member.id == Contribution.member_id)
                .order_by(Contribution.contribution_date, Contribution.created_at)
            )
            if start_date:
                query = query.where(Contribution.contribution_date >= start_date)
            if end_date:
                query = query.where(Contribution.contribution_date <= end_date)
            return [
                {
                    "id": c.id,
                    "member_id": m.id,
                    "member_name": m.full_name,
                    "tns_number": m.tns_number,
                    "amount": _to_decimal(c.amount),
                    "contribution_date": c.contribution_date,
                    "contribution_type": c.contribution_type,
                    "status": c.status,
                }
                for c, m in db.execute(query).all()
            ]

    def disbursement_rows(self, start_date: date | None = None, end_date: date | None = None) -> list[dict]:
        with self.session_factory() as db:
            query = (
                select(Disbursement, Member)
                .join(Member, Member.id == Disbursement.member_id)
                .order_by(Disbursement.disbursement_date, Disbursement.created_at)
            )
            if start_date:
                query = query.where(Disbursement.disbursement_date >= start_date)
            if end_date:
                query = query.where(Disbursement.disbursement_date <= end_date)
            return [
                {
                    "id": d.id,
                    "member_id": m.id,
                    "member_name": m.full_name,
                    "tns_number": m.tns_number,
                    "amount": _to_decimal(d.amount),
                    "disbursement_date": d.disbursement_date,
                    "reason": d.reason,
                    "status": d.status,
                }
                for d, m in db.execute(query).all()
            ]

    def expense_rows(self, start_date: date | None = None, end_date: date | None = None) -> list[dict]:
        with self.session_factory() as db:
            query = select(MonthlyExpense).order_by(MonthlyExpense.expense_date, MonthlyExpense.created_at)
            if start_date:
                query = query.where(MonthlyExpense.expense_date >= start_date)
            if end_date:
                query = query.where(MonthlyExpense.expense_date <= end_date)
            return [
                {
                    "id": e.id,
                    "amount": _to_decimal(e.amount),
                    "expense_date": e.expense_date,
                    "expense_category": e.expense_category,
                    "description": e.description,
                    "month_year": e.month_year,
                }
                for e in db.execute(query).scalars().all()
            ]

    def _totals(self, db, member_ids: list[str] | None = None) -> tuple[dict, dict]:
        contributions = select(Contribution.member_id, func.sum(Contribution.amount)).where(
            Contribution.status == "confirmed"
        )
        disbursements = select(Disbursement.member_id, func.sum(Disbursement.amount)).where(
            Disbursement.status == "approved"
        )
        if member_ids is not None:
            contributions = contributions.where(Contribution.member_id.in_(member_ids))
            disbursements = disbursements.where(Disbursement.member_id.in_(member_ids))
        contributed = {
            member_id: _to_decimal(total)
            for member_id, total in db.execute(contributions.group_by(Contribution.member_id)).all()
        }
        disbursed = {
            member_id: _to_decimal(total)
            for member_id, total in db.execute(disbursements.group_by(Disbursement.member_id)).all()
        }
        return contributed, disbursed

    def member_balance(self, member_id: str) -> dict:
        """Confirmed contributions minus approved disbursements for one member."""

        with self.session_factory() as db:
            if not db.get(Member, member_id):
                raise ValueError("member not found")
            contributed, disbursed = self._totals(db, [member_id])
            total_contributions = contributed.get(member_id, ZERO)
            total_disbursements = disbursed.get(member_id, ZERO)
            return {
                "member_id": member_id,
                "total_contributions": total_contributions,
                "total_disbursements": total_disbursements,
                "current_balance": total_contributions - total_disbursements,
            }

    def balances(self) -> list[dict]:
        """One balance row per approved member."""

        with self.session_factory() as db:
            members = db.execute(
                select(Member)
                .where(Member.registration_status == "approved")
                .order_by(Member.first_name, Member.last_name)
            ).scalars().all()
            contributed, disbursed = self._totals(db)
            rows = []
            for member in members:
                total_contributions = contributed.get(member.id, ZERO)
                total_disbursements = disbursed.get(member.id, ZERO)
                rows.append(
                    {
                        "id": member.id,
                        "member_id": member.id,
                        "member_name": member.full_name,
                        "tns_number": member.tns_number,
                        "current_balance": total_contributions - total_disbursements,
                        "total_contributions": total_contributions,
                        "total_disbursements": total_disbursements,
                    }
                )
            return rows

    # Auditor view

    @staticmethod
    def _sum(db, column, *conditions) -> Decimal:
        return _to_decimal(db.execute(select(func.sum(column)).where(*conditions)).scalar())

    def financial_summary(self, months: int = 12, today: date | None = None) -> dict:
        """Fund totals, net position and a per-month breakdown ending in the current month.

        Net position is confirmed contributions less approved disbursements and
        every recorded expense.
        """

        today = today or date.today()
        with self.session_factory() as db:
            total_contributions = self._sum(db, Contribution.amount, Contribution.status == "confirmed")
            total_disbursements = self._sum(db, Disbursement.amount, Disbursement.status == "approved")
            total_expenses = self._sum(db, MonthlyExpense.amount)
            current_month_expenses = self._sum(
                db, MonthlyExpense.amount, MonthlyExpense.month_year == today.strftime("%Y-%m")
            )
            total_members = db.execute(
                select(func.count()).select_from(Member).where(Member.registration_status == "approved")
            ).scalar_one()

            monthly = []
            for start in _month_starts(today, months):
                end = _next_month(start)
                members = db.execute(
                    select(func.count())
                    .select_from(Member)
                    .where(
                        Member.registration_status == "approved",
                        Member.created_at < datetime.combine(end, datetime.min.time()),
                    )
                ).scalar_one()
                monthly.append(
                    {
                        "month": start.strftime("%Y-%m"),
                        "members": members,
                        "contributions": self._sum(
                            db,
                            Contribution.amount,
                            Contribution.status == "confirmed",
                            Contribution.contribution_date >= start,
                            Contribution.contribution_date < end,
                        ),
                        "disbursements": self._sum(
                            db,
                            Disbursement.amount,
                            Disbursement.status == "approved",
                            Disbursement.disbursement_date >= start,
                            Disbursement.disbursement_date < end,
                        ),
                        "expenses": self._sum(
                            db, MonthlyExpense.amount, MonthlyExpense.month_year == start.strftime("%Y-%m")
                        ),
                    }
                )

        return {
            "total_members": total_members,
            "total_contributions": total_contributions,
            "total_disbursements": total_disbursements,
            "total_expenses": total_expenses,
            "current_month_expenses": current_month_expenses,
            "net_position": total_contributions - total_disbursements - total_expenses,
            "monthly": monthly,
        }
