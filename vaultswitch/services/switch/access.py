"""Delegated-access token validation."""

import hmac

from vaultswitch.common.clock import Clock, as_utc
from vaultswitch.common.errors import ExpiredTokenError, NotFoundError
from vaultswitch.common.logging import logger
from vaultswitch.common.metrics import access_token_validations_total
from vaultswitch.services.switch.notifier import UNKNOWN_OWNER, owner_email_or_default
from vaultswitch.services.switch.schemas import AccessGrant
from vaultswitch.services.switch.store import OwnerDirectory, SwitchStore


class AccessTokenValidator:
    """Resolves a presented token to the grant for a triggered switch."""

    def __init__(
        self,
        store: SwitchStore,
        directory: OwnerDirectory,
        clock: Clock,
        service_name: str = "switch",
    ) -> None:
        self.store = store
        self.directory = directory
        self.clock = clock
        self.service_name = service_name

    def _record(self, outcome: str) -> None:
        access_token_validations_total.labels(service=self.service_name, outcome=outcome).inc()

    def validate(self, token: str) -> AccessGrant:
        """Grant for a live token of a triggered switch.

        Unknown tokens raise `NotFoundError`, expired ones `ExpiredTokenError`. A
        missing owner record does not void the grant: the owner is shown with the
        same placeholder the trigger notice used.
        """

        # TODO: look tokens up by SHA-256 digest so the indexed equality probe
        # cannot leak prefix timing; compare_digest only covers the final check.
        switch = self.store.get_by_token(token) if token else None
        if switch is None or not hmac.compare_digest(switch.access_token or "", token):
            self._record("not_found")
            raise NotFoundError("invalid or expired access token")

        expires_at = as_utc(switch.token_expires_at)
        if expires_at is None or expires_at < self.clock.now():
            self._record("expired")
            logger.info("access token expired switch_id=%s", switch.id)
            raise ExpiredTokenError("access token has expired")

        owner_email = owner_email_or_default(self.directory, switch.owner_ref, UNKNOWN_OWNER)
        self._record("granted")
        logger.info("delegated access granted switch_id=%s", switch.id)
        return AccessGrant(
            switch_id=switch.id,
            nominee_email=switch.nominee_email,
            nominee_name=switch.nominee_name,
            nominee_relation=switch.nominee_relation,
            owner_email=owner_email,
            personal_message=switch.personal_message,
            triggered_at=as_utc(switch.triggered_at),
            token_expires_at=expires_at,
            material_ref=switch.owner_ref,
        )
