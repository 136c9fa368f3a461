from types import SimpleNamespace

import pytest

from netgains.exceptions import InvalidFlowTransition
from netgains.schemas.invitation import InviteCreate, InviteStatus
from netgains.services.invite_flow import DeliveryChannel, FlowState, InvitationFlow


def _row(**overrides):
    values = dict(id="inv-1", invitee_id=None, sms_sent=True, status=InviteStatus.PENDING)
    values.update(overrides)
    return SimpleNamespace(**values)


def test_external_contact_walks_every_state():
    flow = InvitationFlow()
    assert flow.state == FlowState.IDLE

    flow.stage(InviteCreate(invitee_name="Dana", invitee_phone="555-0100"))
    assert flow.state == FlowState.STAGED

    flow.dispatch(_row())
    assert flow.state == FlowState.DISPATCHED
    assert flow.channel == DeliveryChannel.SMS
    assert flow.is_external

    flow.reconcile("dana")
    assert flow.state == FlowState.RECONCILED
    assert flow.account_id == "dana"


def test_internal_contact_dispatches_by_push():
    flow = InvitationFlow().stage(InviteCreate(invitee_name="Bob", invitee_id="bob"))
    flow.dispatch(_row(invitee_id="bob", sms_sent=False))
    assert flow.channel == DeliveryChannel.PUSH
    assert not flow.is_external


def test_out_of_order_transitions_raise():
    with pytest.raises(InvalidFlowTransition):
        InvitationFlow().dispatch(_row())
    with pytest.raises(InvalidFlowTransition):
        InvitationFlow().reconcile("someone")

    flow = InvitationFlow().stage(InviteCreate(invitee_name="Dana", invitee_phone="555-0100"))
    with pytest.raises(InvalidFlowTransition):
        flow.stage(InviteCreate(invitee_name="Dana", invitee_phone="555-0100"))


def test_reconcile_never_rebinds_to_another_account():
    flow = InvitationFlow.from_invite(_row(invitee_id="dana", status=InviteStatus.ACCEPTED))
    assert flow.state == FlowState.RECONCILED

    flow.reconcile("dana")
    assert flow.account_id == "dana"

    with pytest.raises(InvalidFlowTransition):
        flow.reconcile("mallory")
    assert flow.account_id == "dana"


def test_from_invite_pending_external_is_dispatched():
    flow = InvitationFlow.from_invite(_row())
    assert flow.state == FlowState.DISPATCHED
    assert flow.account_id is None
