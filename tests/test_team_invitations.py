from datetime import timedelta

import pytest

from app.core.database import utc_now
from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.models.team_invitation import TeamInvitation
from app.services import (
    team_activity_service,
    team_invitation_service,
    team_membership_service,
    team_notification_service,
)


@pytest.fixture
def invitation(db, team, alice):
    return team_invitation_service.create_invitation(db, team.id, "b@x.com", "member", alice.id)


def expire(db, invitation):
    invitation.expires_at = utc_now() - timedelta(minutes=1)
    db.commit()


class TestCreate:
    def test_creates_pending_invitation(self, db, invitation, team, alice):
        assert invitation.status == "pending"
        assert invitation.team_id == team.id
        assert invitation.invited_by == alice.id
        assert len(invitation.token) >= 43
        remaining = invitation.expires_at - utc_now()
        assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7)

    def test_email_is_normalized(self, db, team, alice):
        invitation = team_invitation_service.create_invitation(db, team.id, "  Dana@X.com ", "viewer", alice.id)
        assert invitation.email == "dana@x.com"

    def test_tokens_are_unique(self, db, team, alice):
        first = team_invitation_service.create_invitation(db, team.id, "one@x.com", "member", alice.id)
        second = team_invitation_service.create_invitation(db, team.id, "two@x.com", "member", alice.id)
        assert first.token != second.token

    def test_duplicate_pending_invitation_conflicts(self, db, invitation, team, alice):
        assert team_invitation_service.exists_for_email(db, team.id, "B@x.com")

        with pytest.raises(ConflictError):
            team_invitation_service.create_invitation(db, team.id, "b@x.com", "viewer", alice.id)

    def test_reinvite_after_expiry(self, db, invitation, team, alice):
        expire(db, invitation)

        again = team_invitation_service.create_invitation(db, team.id, "b@x.com", "member", alice.id)

        assert again.id != invitation.id

    def test_existing_member_cannot_be_invited(self, db, team, alice, bob):
        team_membership_service.add_member(db, team.id, bob.id, "viewer")

        with pytest.raises(ConflictError):
            team_invitation_service.create_invitation(db, team.id, bob.email, "member", alice.id)

    def test_requires_manage_members(self, db, team, bob):
        team_membership_service.add_member(db, team.id, bob.id, "member")

        with pytest.raises(AuthorizationError):
            team_invitation_service.create_invitation(db, team.id, "new@x.com", "member", bob.id)
        assert db.query(TeamInvitation).count() == 0

    @pytest.mark.parametrize("email, role", [("", "member"), ("not-an-email", "member"), ("c@x.com", "owner")])
    def test_invalid_input(self, db, team, alice, email, role):
        with pytest.raises(ValidationError):
            team_invitation_service.create_invitation(db, team.id, email, role, alice.id)

    def test_unknown_team(self, db, alice):
        with pytest.raises(NotFoundError):
            team_invitation_service.create_invitation(db, 9999, "c@x.com", "member", alice.id)


class TestAccept:
    def test_accept_adds_membership(self, db, invitation, team, bob):
        accepted = team_invitation_service.accept_invitation(db, invitation.token, bob.id)

        assert accepted.status == "accepted"
        assert accepted.accepted_at is not None
        assert team_membership_service.is_member(db, team.id, bob.id) == "member"

    def test_accept_twice_fails(self, db, invitation, bob):
        team_invitation_service.accept_invitation(db, invitation.token, bob.id)

        with pytest.raises(NotFoundError):
            team_invitation_service.accept_invitation(db, invitation.token, bob.id)

    def test_expired_invitation_cannot_be_accepted(self, db, invitation, team, bob):
        expire(db, invitation)

        with pytest.raises(NotFoundError):
            team_invitation_service.accept_invitation(db, invitation.token, bob.id)
        assert team_membership_service.is_member(db, team.id, bob.id) is False
        db.refresh(invitation)
        assert invitation.status == "pending"

    def test_unknown_token(self, db, bob):
        with pytest.raises(NotFoundError):
            team_invitation_service.accept_invitation(db, "no-such-token", bob.id)

    def test_already_member_still_succeeds(self, db, invitation, team, bob):
        team_membership_service.add_member(db, team.id, bob.id, "viewer")

        accepted = team_invitation_service.accept_invitation(db, invitation.token, bob.id)

        assert accepted.status == "accepted"
        assert team_membership_service.is_member(db, team.id, bob.id) == "viewer"

    def test_accept_notifies_other_members_and_logs_activity(self, db, invitation, team, alice, bob):
        team_invitation_service.accept_invitation(db, invitation.token, bob.id)

        alice_notifications = team_notification_service.get_user_notifications(db, alice.id)
        assert [n.notification_type for n in alice_notifications] == ["member_joined"]
        assert team_notification_service.get_user_notifications(db, bob.id) == []
        activity_types = [a.activity_type for a in team_activity_service.get_team_activity(db, team.id)]
        assert "member_joined" in activity_types

    def test_declined_invitation_cannot_be_accepted(self, db, invitation, bob):
        team_invitation_service.decline_invitation(db, invitation.token)

        with pytest.raises(NotFoundError):
            team_invitation_service.accept_invitation(db, invitation.token, bob.id)


class TestDeclineAndCancel:
    def test_decline(self, db, invitation, team, bob):
        declined = team_invitation_service.decline_invitation(db, invitation.token)

        assert declined.status == "declined"
        assert team_membership_service.is_member(db, team.id, bob.id) is False

    def test_decline_expired(self, db, invitation):
        expire(db, invitation)

        with pytest.raises(NotFoundError):
            team_invitation_service.decline_invitation(db, invitation.token)

    def test_cancel_by_inviter(self, db, invitation, alice):
        cancelled = team_invitation_service.cancel_invitation(db, invitation.id, alice.id)
        assert cancelled.status == "cancelled"

    def test_cancel_by_someone_else(self, db, invitation, team, carol):
        team_membership_service.add_member(db, team.id, carol.id, "admin")

        with pytest.raises(AuthorizationError):
            team_invitation_service.cancel_invitation(db, invitation.id, carol.id)

    def test_cancel_accepted_invitation_conflicts(self, db, invitation, alice, bob):
        team_invitation_service.accept_invitation(db, invitation.token, bob.id)

        with pytest.raises(ConflictError):
            team_invitation_service.cancel_invitation(db, invitation.id, alice.id)

    def test_cancel_unknown(self, db, alice):
        with pytest.raises(NotFoundError):
            team_invitation_service.cancel_invitation(db, 9999, alice.id)

    def test_cancel_through_wrong_team(self, db, invitation, make_team, alice):
        other = make_team(alice, name="Other")

        with pytest.raises(NotFoundError):
            team_invitation_service.cancel_invitation(db, invitation.id, alice.id, team_id=other.id)


class TestReadsAndSweep:
    def test_get_by_email_only_pending(self, db, team, alice, invitation):
        stale = team_invitation_service.create_invitation(db, team.id, "old@x.com", "member", alice.id)
        expire(db, stale)

        assert [i.id for i in team_invitation_service.get_by_email(db, "b@x.com")] == [invitation.id]
        assert team_invitation_service.get_by_email(db, "old@x.com") == []

    def test_find_by_token_hides_non_pending(self, db, invitation):
        assert team_invitation_service.find_by_token(db, invitation.token).id == invitation.id

        team_invitation_service.decline_invitation(db, invitation.token)

        assert team_invitation_service.find_by_token(db, invitation.token) is None
        assert team_invitation_service.find_by_id(db, invitation.id).status == "declined"

    def test_get_by_team_id_newest_first(self, db, team, alice, invitation):
        newer = team_invitation_service.create_invitation(db, team.id, "c@x.com", "viewer", alice.id)

        assert [i.id for i in team_invitation_service.get_by_team_id(db, team.id)] == [newer.id, invitation.id]

    def test_clean_expired(self, db, team, alice, invitation):
        stale = team_invitation_service.create_invitation(db, team.id, "old@x.com", "member", alice.id)
        expire(db, stale)

        assert team_invitation_service.clean_expired(db) == 1
        assert team_invitation_service.clean_expired(db) == 0

        db.refresh(stale)
        db.refresh(invitation)
        assert stale.status == "expired"
        assert invitation.status == "pending"
