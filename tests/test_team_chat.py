from datetime import timedelta

import pytest

from app.core.database import utc_now
from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.models.chat_read_receipt import ChatReadReceipt
from app.schemas.team_chat import TeamChatMessageCreate, TeamChatMessageUpdate
from app.services import team_chat_service, team_membership_service


@pytest.fixture
def chat_team(db, team, bob, carol):
    team_membership_service.add_member(db, team.id, bob.id, "member")
    team_membership_service.add_member(db, team.id, carol.id, "viewer")
    return team


def post(db, team, user, text, **fields):
    return team_chat_service.create_message(db, team.id, user.id, TeamChatMessageCreate(message=text, **fields))


class TestUnreadCount:
    def test_counts_messages_from_others_without_receipt(self, db, chat_team, alice, bob):
        post(db, chat_team, alice, "one")
        post(db, chat_team, alice, "two")
        post(db, chat_team, bob, "mine")

        assert team_chat_service.get_unread_count(db, chat_team.id, bob.id) == 2
        assert team_chat_service.get_unread_count(db, chat_team.id, alice.id) == 1

    def test_mark_all_read_brings_count_to_zero(self, db, chat_team, alice, bob, carol):
        ids = [post(db, chat_team, alice, f"m{i}").id for i in range(3)]

        created = team_chat_service.mark_as_read(db, chat_team.id, bob.id, ids)

        assert created == 3
        assert team_chat_service.get_unread_count(db, chat_team.id, bob.id) == 0
        assert team_chat_service.get_unread_count(db, chat_team.id, carol.id) == 3

    def test_mark_as_read_is_idempotent_and_order_independent(self, db, chat_team, alice, bob):
        ids = [post(db, chat_team, alice, f"m{i}").id for i in range(3)]

        assert team_chat_service.mark_as_read(db, chat_team.id, bob.id, [ids[2], ids[0]]) == 2
        assert team_chat_service.mark_as_read(db, chat_team.id, bob.id, list(reversed(ids))) == 1
        assert team_chat_service.mark_as_read(db, chat_team.id, bob.id, ids) == 0
        assert db.query(ChatReadReceipt).filter(ChatReadReceipt.user_id == bob.id).count() == 3

    def test_ids_from_other_teams_are_ignored(self, db, chat_team, make_team, alice, bob):
        elsewhere = make_team(alice, name="Elsewhere")
        team_membership_service.add_member(db, elsewhere.id, bob.id, "member")
        foreign = post(db, elsewhere, alice, "not here")

        assert team_chat_service.mark_as_read(db, chat_team.id, bob.id, [foreign.id, 123456]) == 0
        assert team_chat_service.get_unread_count(db, elsewhere.id, bob.id) == 1

    def test_empty_list(self, db, chat_team, bob):
        assert team_chat_service.mark_as_read(db, chat_team.id, bob.id, []) == 0

    def test_non_member_is_denied(self, db, chat_team, make_user):
        outsider = make_user("eve@x.com")

        with pytest.raises(AuthorizationError):
            team_chat_service.get_unread_count(db, chat_team.id, outsider.id)
        with pytest.raises(AuthorizationError):
            team_chat_service.mark_as_read(db, chat_team.id, outsider.id, [1])


class TestMessages:
    def test_page_is_newest_window_in_ascending_order(self, db, chat_team, alice, bob):
        ids = [post(db, chat_team, alice, f"m{i}").id for i in range(5)]

        page = team_chat_service.get_by_team_id(db, chat_team.id, bob.id, limit=3)

        assert [m.id for m in page.messages] == ids[2:]
        assert page.unread_count == 5

        older = team_chat_service.get_by_team_id(db, chat_team.id, bob.id, limit=3, offset=3)
        assert [m.id for m in older.messages] == ids[:2]

    def test_invalid_paging(self, db, chat_team, bob):
        with pytest.raises(ValidationError):
            team_chat_service.get_by_team_id(db, chat_team.id, bob.id, limit=0)

    @pytest.mark.parametrize("text", ["", "   ", "x" * 2001])
    def test_message_body_is_validated(self, db, chat_team, alice, text):
        with pytest.raises(ValidationError):
            post(db, chat_team, alice, text)

    def test_message_type_is_validated(self, db, chat_team, alice):
        with pytest.raises(ValidationError):
            post(db, chat_team, alice, "hi", message_type="video")

    def test_reply_must_stay_in_team(self, db, chat_team, make_team, alice):
        elsewhere = make_team(alice, name="Elsewhere")
        foreign = post(db, elsewhere, alice, "not here")

        with pytest.raises(ValidationError):
            post(db, chat_team, alice, "re", reply_to_id=foreign.id)

    def test_author_edits_message(self, db, chat_team, alice, bob):
        message = post(db, chat_team, alice, "helo")

        edited = team_chat_service.update_message(db, message.id, alice.id, TeamChatMessageUpdate(message="hello"))

        assert edited.message == "hello"
        assert edited.is_edited is True
        assert edited.edited_at is not None
        with pytest.raises(AuthorizationError):
            team_chat_service.update_message(db, message.id, bob.id, TeamChatMessageUpdate(message="hijack"))

    def test_edit_missing_message(self, db, chat_team, alice):
        with pytest.raises(NotFoundError):
            team_chat_service.update_message(db, 9999, alice.id, TeamChatMessageUpdate(message="x"))

    def test_delete_permissions(self, db, chat_team, alice, bob, carol):
        by_carol = post(db, chat_team, carol, "from carol")
        by_alice = post(db, chat_team, alice, "from alice")
        team_chat_service.mark_as_read(db, chat_team.id, bob.id, [by_carol.id])

        with pytest.raises(AuthorizationError):
            team_chat_service.delete_message(db, by_alice.id, bob.id)

        # Owners may delete anyone's message; receipts go with it.
        assert team_chat_service.delete_message(db, by_carol.id, alice.id) is True
        assert team_chat_service.get_message(db, by_carol.id) is None
        assert db.query(ChatReadReceipt).filter(ChatReadReceipt.message_id == by_carol.id).count() == 0

    def test_search(self, db, chat_team, alice, bob):
        post(db, chat_team, alice, "Deploy at noon")
        post(db, chat_team, bob, "lunch?")

        results = team_chat_service.search_messages(db, chat_team.id, bob.id, "deploy")

        assert [m.message for m in results] == ["Deploy at noon"]
        with pytest.raises(ValidationError):
            team_chat_service.search_messages(db, chat_team.id, bob.id, "  ")

    def test_latest_after_id(self, db, chat_team, alice, bob):
        first = post(db, chat_team, alice, "one")
        second = post(db, chat_team, bob, "two")
        third = post(db, chat_team, alice, "three")

        assert [m.id for m in team_chat_service.get_latest_messages(db, chat_team.id, bob.id, after_id=first.id)] == [
            second.id,
            third.id,
        ]
        assert [m.id for m in team_chat_service.get_latest_messages(db, chat_team.id, bob.id, limit=2)] == [
            second.id,
            third.id,
        ]

    def test_search_matches_wildcards_literally(self, db, chat_team, alice, bob):
        post(db, chat_team, alice, "50% off today")
        post(db, chat_team, alice, "500 items shipped")
        post(db, chat_team, alice, "see file_a")
        post(db, chat_team, alice, "see fileXa")

        assert [m.message for m in team_chat_service.search_messages(db, chat_team.id, bob.id, "50%")] == [
            "50% off today"
        ]
        assert [m.message for m in team_chat_service.search_messages(db, chat_team.id, bob.id, "file_a")] == [
            "see file_a"
        ]

    @pytest.mark.parametrize("limit", [0, -1, 201])
    def test_search_and_latest_reject_bad_limit(self, db, chat_team, bob, limit):
        with pytest.raises(ValidationError):
            team_chat_service.search_messages(db, chat_team.id, bob.id, "x", limit=limit)
        with pytest.raises(ValidationError):
            team_chat_service.get_latest_messages(db, chat_team.id, bob.id, limit=limit)


class TestChatStats:
    def test_counts_by_period(self, db, chat_team, alice, bob):
        post(db, chat_team, alice, "fresh")
        recent = post(db, chat_team, bob, "recent")
        old = post(db, chat_team, alice, "old")
        recent.created_at = utc_now() - timedelta(days=3)
        old.created_at = utc_now() - timedelta(days=40)
        db.commit()

        stats = team_chat_service.get_chat_stats(db, chat_team.id, bob.id)

        assert stats.total_messages == 3
        assert stats.active_users == 2
        assert stats.messages_today == 1
        assert stats.messages_week == 2
        assert stats.messages_period == 2
        assert team_chat_service.get_chat_stats(db, chat_team.id, bob.id, days=60).messages_period == 3

    def test_empty_team(self, db, chat_team, carol):
        stats = team_chat_service.get_chat_stats(db, chat_team.id, carol.id)

        assert (stats.total_messages, stats.active_users, stats.messages_period) == (0, 0, 0)

    def test_requires_membership(self, db, chat_team, make_user):
        outsider = make_user("dave@x.com", "Dave")

        with pytest.raises(AuthorizationError):
            team_chat_service.get_chat_stats(db, chat_team.id, outsider.id)

    def test_rejects_bad_period(self, db, chat_team, bob):
        with pytest.raises(ValidationError):
            team_chat_service.get_chat_stats(db, chat_team.id, bob.id, days=0)
