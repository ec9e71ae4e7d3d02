"""SQLAlchemy-backed switch store, notification ledger and owner directory.

Every switch mutation goes through `SwitchStore.conditional_update`, which is
guarded by `(id, version)` so a writer holding a stale snapshot cannot
overwrite a concurrent check-in or trigger.
"""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from vaultswitch.common.errors import ConflictError, NotFoundError, StoreError
from vaultswitch.services.switch.models import CheckInEvent, NotificationRecord, Owner, Switch


class SwitchStore:
    """Reads and version-checked writes of `Switch` rows."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def list_eligible(self) -> list[Switch]:
        """Switches the scan should evaluate: active and not yet triggered."""

        try:
            with self.session_factory() as db:
                return list(
                    db.execute(
                        select(Switch)
                        .where(Switch.is_active.is_(True), Switch.is_triggered.is_(False))
                        .order_by(Switch.created_at, Switch.id)
                    )
                    .scalars()
                    .all()
                )
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to list eligible switches: {exc}") from exc

    def find_by_id(self, switch_id: str) -> Switch | None:
        try:
            with self.session_factory() as db:
                return db.get(Switch, switch_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to load switch {switch_id}: {exc}") from exc

    def get_by_id(self, switch_id: str) -> Switch:
        switch = self.find_by_id(switch_id)
        if switch is None:
            raise NotFoundError(f"switch {switch_id} not found")
        return switch

    def find_by_owner(self, owner_ref: str) -> Switch | None:
        try:
            with self.session_factory() as db:
                return db.execute(select(Switch).where(Switch.owner_ref == owner_ref)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to load switch for owner {owner_ref}: {exc}") from exc

    def get_by_token(self, token: str) -> Switch | None:
        """Triggered switch holding `token`, or `None`."""

        try:
            with self.session_factory() as db:
                return db.execute(
                    select(Switch).where(Switch.access_token == token, Switch.is_triggered.is_(True))
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to resolve access token: {exc}") from exc

    def token_exists(self, token: str) -> bool:
        try:
            with self.session_factory() as db:
                return db.execute(select(Switch.id).where(Switch.access_token == token)).first() is not None
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to check access token uniqueness: {exc}") from exc

    def create(self, switch: Switch) -> Switch:
        try:
            with self.session_factory() as db:
                db.add(switch)
                db.commit()
                db.refresh(switch)
                return switch
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to create switch for owner {switch.owner_ref}: {exc}") from exc

    def conditional_update(
        self,
        switch_id: str,
        expected_version: int,
        values: dict,
        audit: list | None = None,
    ) -> Switch:
        """Apply `values` only if the row still carries `expected_version`.

        Rows in `audit` are inserted in the same transaction, so an audit entry
        exists exactly when the update it describes committed.
        """

        try:
            with self.session_factory() as db:
                result = db.execute(
                    update(Switch)
                    .where(Switch.id == switch_id, Switch.version == expected_version)
                    .values(**values, version=expected_version + 1)
                )
                if result.rowcount != 1:
                    db.rollback()
                    if db.get(Switch, switch_id) is None:
                        raise NotFoundError(f"switch {switch_id} not found")
                    raise ConflictError(
                        f"optimistic concurrency conflict for switch {switch_id} "
                        f"(expected version {expected_version})"
                    )
                for row in audit or []:
                    db.add(row)
                db.commit()
                return db.execute(
                    select(Switch).where(Switch.id == switch_id).execution_options(populate_existing=True)
                ).scalar_one()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to update switch {switch_id}: {exc}") from exc

    def check_in_history(self, switch_id: str) -> list[CheckInEvent]:
        try:
            with self.session_factory() as db:
                return list(
                    db.execute(
                        select(CheckInEvent)
                        .where(CheckInEvent.switch_id == switch_id)
                        .order_by(CheckInEvent.checked_in_at.desc())
                    )
                    .scalars()
                    .all()
                )
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to load check-in history for {switch_id}: {exc}") from exc


class NotificationLedger:
    """Append-only log of notification attempts."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def insert(
        self,
        switch_id: str,
        kind: str,
        recipient: str,
        status: str,
        sent_at: datetime,
        error: str | None = None,
    ) -> NotificationRecord:
        record = NotificationRecord(
            switch_id=switch_id,
            kind=kind,
            recipient=recipient,
            status=status,
            sent_at=sent_at,
            error=error,
        )
        try:
            with self.session_factory() as db:
                db.add(record)
                db.commit()
                return record
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to record {kind} notification for {switch_id}: {exc}") from exc

    def exists_since(self, switch_id: str, kind: str, since: datetime) -> bool:
        """True when a `sent` record of `kind` exists at or after `since`."""

        try:
            with self.session_factory() as db:
                row = db.execute(
                    select(NotificationRecord.id)
                    .where(
                        NotificationRecord.switch_id == switch_id,
                        NotificationRecord.kind == kind,
                        NotificationRecord.status == "sent",
                        NotificationRecord.sent_at >= since,
                    )
                    .limit(1)
                ).first()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to query notification log for {switch_id}: {exc}") from exc
        return row is not None

    def list_for_switch(self, switch_id: str, limit: int = 100) -> list[NotificationRecord]:
        try:
            with self.session_factory() as db:
                return list(
                    db.execute(
                        select(NotificationRecord)
                        .where(NotificationRecord.switch_id == switch_id)
                        .order_by(NotificationRecord.sent_at.desc())
                        .limit(limit)
                    )
                    .scalars()
                    .all()
                )
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to list notifications for {switch_id}: {exc}") from exc


class OwnerDirectory:
    """Resolves an owner reference to a contact email."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def resolve_email(self, owner_ref: str) -> str:
        try:
            with self.session_factory() as db:
                owner = db.get(Owner, owner_ref)
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to resolve owner {owner_ref}: {exc}") from exc
        if owner is None or not owner.email:
            raise NotFoundError(f"owner {owner_ref} has no contact email")
        return owner.email
