"""Request/response schemas and result models for the switch service."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field

from vaultswitch.services.switch.evaluator import DEFAULT_INACTIVITY_PERIOD_DAYS


class NomineeInfo(BaseModel):
    """Delegate contact details and context."""

    nominee_email: str = Field(min_length=3)
    nominee_name: str | None = None
    nominee_relation: str | None = None
    personal_message: str | None = None


class ConfigureSwitchRequest(NomineeInfo):
    """Payload accepted by `POST /switches`."""

    owner_ref: str = Field(min_length=1)
    inactivity_period_days: int | None = None


class ActivateRequest(BaseModel):
    active: bool


class CheckInRequest(BaseModel):
    """Origin metadata; omitted fields are filled from the HTTP request."""

    ip_address: str | None = None
    user_agent: str | None = None
    metadata: dict = Field(default_factory=dict)


class SwitchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_ref: str
    nominee_email: str
    nominee_name: str | None
    nominee_relation: str | None
    personal_message: str | None
    inactivity_period_days: int = DEFAULT_INACTIVITY_PERIOD_DAYS
    last_check_in: datetime | None
    is_active: bool
    is_triggered: bool
    triggered_at: datetime | None


class CheckInResponse(BaseModel):
    switch_id: str
    last_check_in: datetime
    days_until_trigger: int
    trigger_date: datetime


class SwitchStatus(BaseModel):
    """Owner-facing view of a switch; `configured=False` for unknown ids."""

    configured: bool
    switch_id: str | None = None
    is_active: bool = False
    is_triggered: bool = False
    last_check_in: datetime | None = None
    days_since_check_in: int | None = None
    days_until_trigger: int | None = None
    inactivity_period_days: int | None = None
    nominee_email: str | None = None
    nominee_name: str | None = None


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    switch_id: str
    kind: str
    recipient: str
    status: str
    error: str | None
    sent_at: datetime


class AccessGrant(BaseModel):
    """Authorization released to a nominee holding a valid token.

    `material_ref` is what the material-retrieval collaborator uses to fetch
    the owner's encrypted payload.
    """

    switch_id: str
    nominee_email: str
    nominee_name: str | None
    nominee_relation: str | None
    owner_email: str
    personal_message: str | None
    triggered_at: datetime | None
    token_expires_at: datetime
    material_ref: str


class ScanItemResult(BaseModel):
    switch_id: str
    classification: str | None = None
    action: str
    error: str | None = None


class ScanReport(BaseModel):
    scan_id: str
    started_at: datetime
    finished_at: datetime | None = None
    checked: int = 0
    warned: int = 0
    final_warned: int = 0
    triggered: int = 0
    skipped: int = 0
    results: list[ScanItemResult] = Field(default_factory=list)

    @computed_field
    @property
    def errors(self) -> list[ScanItemResult]:
        return [item for item in self.results if item.error is not None]
