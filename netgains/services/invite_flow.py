"""
Lifecycle of a single invitation, from a picked contact to a bound account.

    idle --stage--> staged --dispatch--> dispatched --reconcile--> reconciled

``create_invites`` walks one flow per contact up to ``dispatched``;
``respond_to_invite`` rebuilds the flow from the stored row and reconciles it.
Re-reconciling with the same account is allowed (a changed answer); binding a
different account is not.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from netgains.exceptions import InvalidFlowTransition
from netgains.schemas.invitation import InviteCreate, InviteStatus

logger = logging.getLogger(__name__)


class FlowState(str, Enum):
    IDLE = "idle"
    STAGED = "staged"
    DISPATCHED = "dispatched"
    RECONCILED = "reconciled"


class DeliveryChannel(str, Enum):
    PUSH = "push"
    SMS = "sms"


@dataclass
class InvitationFlow:
    state: FlowState = FlowState.IDLE
    contact: Optional[InviteCreate] = None
    invite_id: Optional[str] = None
    channel: Optional[DeliveryChannel] = None
    account_id: Optional[str] = None

    @classmethod
    def from_invite(cls, invite) -> "InvitationFlow":
        """Rebuild the flow for a stored invite row."""
        flow = cls(
            state=FlowState.DISPATCHED,
            invite_id=invite.id,
            channel=DeliveryChannel.SMS if invite.sms_sent else DeliveryChannel.PUSH,
            account_id=invite.invitee_id,
        )
        if invite.status != InviteStatus.PENDING and invite.invitee_id is not None:
            flow.state = FlowState.RECONCILED
        return flow

    def _require(self, *allowed: FlowState, action: str) -> None:
        if self.state not in allowed:
            raise InvalidFlowTransition(f"Cannot {action} an invitation in state '{self.state.value}'")

    @property
    def is_external(self) -> bool:
        return self.channel == DeliveryChannel.SMS

    def stage(self, contact: InviteCreate) -> "InvitationFlow":
        self._require(FlowState.IDLE, action="stage")
        self.contact = contact
        self.account_id = contact.invitee_id
        self.state = FlowState.STAGED
        return self

    def dispatch(self, invite) -> "InvitationFlow":
        self._require(FlowState.STAGED, action="dispatch")
        self.invite_id = invite.id
        self.channel = DeliveryChannel.PUSH if invite.invitee_id else DeliveryChannel.SMS
        self.state = FlowState.DISPATCHED
        return self

    def reconcile(self, account_id: str) -> "InvitationFlow":
        self._require(FlowState.DISPATCHED, FlowState.RECONCILED, action="reconcile")
        if self.account_id is not None and self.account_id != account_id:
            raise InvalidFlowTransition(f"Invitation {self.invite_id} is already bound to another account")
        if self.account_id is None:
            logger.info(f"Binding external invitation {self.invite_id} to account {account_id}")
        self.account_id = account_id
        self.state = FlowState.RECONCILED
        return self
