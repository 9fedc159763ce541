"""Comments and attachments: visibility, ownership and first response."""

import pytest

from src.config import EventType, TicketCategory
from src.core import ForbiddenException, ResourceNotFoundException, ValidationException
from src.tickets.application import MAX_ATTACHMENT_SIZE
from src.tickets.application.dto import TicketCreateRequest
from tests.conftest import T0


@pytest.fixture
async def ticket(ticket_service, requester, agent, support_team):
    created = await ticket_service.create_ticket(
        TicketCreateRequest(
            title="Printer offline",
            description="Third floor printer shows offline",
            category=TicketCategory.HARDWARE,
        ),
        requester,
    )
    return created


class TestComments:
    async def test_requester_never_sees_internal_comments(
        self, comment_service, ticket, requester, agent, manager
    ):
        await comment_service.create_comment(ticket.id, "Any update?", requester)
        await comment_service.create_comment(ticket.id, "Vendor RMA pending", agent, is_internal=True)
        await comment_service.create_comment(ticket.id, "We are on it", agent)

        requester_view = await comment_service.list_comments(ticket.id, requester)
        staff_view = await comment_service.list_comments(ticket.id, agent)
        manager_view = await comment_service.list_comments(ticket.id, manager)

        assert [c.content for c in requester_view] == ["Any update?", "We are on it"]
        assert len(staff_view) == len(manager_view) == 3
        assert any(c.is_internal for c in staff_view)

    async def test_internal_comment_hidden_by_id_from_requester(
        self, comment_service, ticket, requester, agent
    ):
        note = await comment_service.create_comment(ticket.id, "internal", agent, is_internal=True)

        with pytest.raises(ResourceNotFoundException):
            await comment_service.get_comment(note.id, requester)

    async def test_end_user_cannot_post_internal(self, comment_service, ticket, requester):
        with pytest.raises(ForbiddenException):
            await comment_service.create_comment(ticket.id, "secret", requester, is_internal=True)

    async def test_unrelated_user_cannot_comment(self, comment_service, ticket, other_user):
        with pytest.raises(ForbiddenException):
            await comment_service.create_comment(ticket.id, "hello", other_user)

    async def test_empty_comment_rejected(self, comment_service, ticket, requester):
        with pytest.raises(ValidationException):
            await comment_service.create_comment(ticket.id, "   ", requester)

    async def test_first_public_reply_records_first_response(
        self, comment_service, ticket_service, ticket, requester, agent, clock
    ):
        await comment_service.create_comment(ticket.id, "Still broken", requester)
        clock.advance(hours=1)
        await comment_service.create_comment(ticket.id, "note", agent, is_internal=True)
        assert (await ticket_service.get_ticket(ticket.id, agent)).first_response_at is None

        clock.advance(hours=1)
        await comment_service.create_comment(ticket.id, "Looking now", agent)

        refreshed = await ticket_service.get_ticket(ticket.id, agent)
        assert refreshed.first_response_at == clock.now

    async def test_comment_event_targets_other_party(
        self, comment_service, ticket, requester, agent, publisher
    ):
        await comment_service.create_comment(ticket.id, "We are on it", agent)

        event = publisher.of_type(EventType.COMMENT_CREATED)[0]
        assert event.payload["recipient_id"] == requester.id
        assert event.actor_id == agent.id

    async def test_only_author_or_moderator_edits(
        self, comment_service, ticket, requester, agent, manager
    ):
        comment = await comment_service.create_comment(ticket.id, "My laptop", requester)

        with pytest.raises(ForbiddenException):
            await comment_service.update_comment(comment.id, agent, content="edited by staff")

        edited = await comment_service.update_comment(comment.id, requester, content="My desktop")
        assert edited.content == "My desktop"

        await comment_service.delete_comment(comment.id, manager)
        with pytest.raises(ResourceNotFoundException):
            await comment_service.get_comment(comment.id, requester)


class TestAttachments:
    async def test_register_and_list(self, attachment_service, ticket, requester, agent):
        attachment = await attachment_service.register_attachment(
            ticket.id, "screenshot.PNG", 2048, "IMAGE/PNG", "s3://bucket/abc", requester
        )

        assert attachment.mime_type == "image/png"
        assert attachment.created_at == T0
        listed = await attachment_service.list_attachments(ticket.id, agent)
        assert [a.id for a in listed] == [attachment.id]

    async def test_size_limit(self, attachment_service, ticket, requester):
        with pytest.raises(ValidationException):
            await attachment_service.register_attachment(
                ticket.id, "dump.zip", MAX_ATTACHMENT_SIZE + 1, "application/zip", "k", requester
            )

    async def test_mime_type_allow_list(self, attachment_service, ticket, requester):
        with pytest.raises(ValidationException):
            await attachment_service.register_attachment(
                ticket.id, "run.exe", 10, "application/x-msdownload", "k", requester
            )

    async def test_only_uploader_or_moderator_deletes(
        self, attachment_service, ticket, requester, agent, admin
    ):
        attachment = await attachment_service.register_attachment(
            ticket.id, "log.txt", 10, "text/plain", "k", requester
        )

        with pytest.raises(ForbiddenException):
            await attachment_service.delete_attachment(attachment.id, agent)

        await attachment_service.delete_attachment(attachment.id, admin)
        assert await attachment_service.list_attachments(ticket.id, requester) == []
