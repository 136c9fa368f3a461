from netgains.schemas.invitation import InviteOwnerType
from netgains.utils.deep_links import InviteLink, build_invite_link, parse_invite_link


def test_session_link_encodes_phone():
    link = build_invite_link(InviteOwnerType.SESSION, "sess-1", "+1 555-0100", domain="netgains.app")
    assert link == "https://netgains.app/sess-1?phone=%2B1+555-0100&invite=true"


def test_group_link_uses_prefix():
    link = build_invite_link(InviteOwnerType.GROUP, "grp-9", domain="netgains.app")
    assert link == "https://netgains.app/g-grp-9?invite=true"


def test_parse_round_trip():
    link = build_invite_link(InviteOwnerType.GROUP, "grp-9", "+15550100")
    assert parse_invite_link(link) == InviteLink(InviteOwnerType.GROUP, "grp-9", "+15550100")

    link = build_invite_link(InviteOwnerType.SESSION, "sess-1", "555-0100")
    assert parse_invite_link(link) == InviteLink(InviteOwnerType.SESSION, "sess-1", "555-0100")


def test_parse_rejects_non_invite_links():
    assert parse_invite_link("https://netgains.app/sess-1") is None
    assert parse_invite_link("https://netgains.app/sess-1?invite=false") is None
    assert parse_invite_link("https://netgains.app/?invite=true") is None
    assert parse_invite_link("https://netgains.app/a/b?invite=true") is None
