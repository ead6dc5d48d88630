import itertools
import uuid
from datetime import timedelta

import pytest

from editsync.core.clock import utcnow
from editsync.core.errors import Forbidden, InvalidOperation, NotFound
from editsync.domains.documents import access
from editsync.domains.documents.entities import (
    Document, FileKind, Permission, ShareGrant, SharedUser
)

OWNER = uuid.uuid4()
COLLABORATOR = uuid.uuid4()
STRANGER = uuid.uuid4()


def make_document(collaborators=(), is_public=False):
    document = Document.create_document(title="Notes", owner_id=OWNER, content="a b c")
    return document.with_collaborators(collaborators).with_public(is_public)


def test_owner_has_every_right():
    document = make_document()
    assert access.can_view(document, OWNER)
    assert access.can_edit(document, OWNER)
    assert access.can_manage_collaborators(document, OWNER)
    assert access.can_delete(document, OWNER)


def test_collaborator_can_read_and_write_only():
    document = make_document(collaborators=[COLLABORATOR])
    assert access.can_view(document, COLLABORATOR)
    assert access.can_edit(document, COLLABORATOR)
    assert not access.can_manage_collaborators(document, COLLABORATOR)
    assert not access.can_delete(document, COLLABORATOR)


def test_public_flag_grants_read_only():
    document = make_document(is_public=True)
    assert access.can_view(document, STRANGER)
    assert not access.can_edit(document, STRANGER)
    assert not access.can_manage_collaborators(document, STRANGER)
    assert not access.can_delete(document, STRANGER)


def test_private_document_is_hidden_from_strangers():
    document = make_document(collaborators=[COLLABORATOR])
    assert not access.can_view(document, STRANGER)
    assert not access.can_view(document, None)


@pytest.mark.parametrize(
    "collaborators,is_public",
    itertools.product([(), (COLLABORATOR,), (COLLABORATOR, STRANGER)], [False, True])
)
def test_rights_are_nested(collaborators, is_public):
    document = make_document(collaborators=collaborators, is_public=is_public)
    for identity in (OWNER, COLLABORATOR, STRANGER, None):
        if access.can_edit(document, identity):
            assert access.can_view(document, identity)
        if access.can_manage_collaborators(document, identity):
            assert access.can_edit(document, identity)
            assert identity == document.owner_id


def test_add_collaborator_rejects_owner():
    with pytest.raises(InvalidOperation):
        access.add_collaborator(make_document(), OWNER)


def test_add_collaborator_is_idempotent():
    document = make_document()
    once = access.add_collaborator(document, COLLABORATOR)
    twice = access.add_collaborator(once, COLLABORATOR)

    assert once.collaborators == frozenset({COLLABORATOR})
    assert twice is once
    # исходный документ не меняется
    assert document.collaborators == frozenset()


@pytest.mark.parametrize("collaborators", [(), (COLLABORATOR,), (COLLABORATOR, STRANGER)])
def test_remove_owner_is_always_rejected(collaborators):
    with pytest.raises(Forbidden):
        access.remove_collaborator(make_document(collaborators=collaborators), OWNER)


def test_remove_unknown_collaborator_is_not_found():
    with pytest.raises(NotFound):
        access.remove_collaborator(make_document(collaborators=[COLLABORATOR]), STRANGER)


def test_remove_collaborator():
    document = access.remove_collaborator(make_document(collaborators=[COLLABORATOR, STRANGER]), COLLABORATOR)
    assert document.collaborators == frozenset({STRANGER})
    assert not access.can_view(document, COLLABORATOR)


def test_empty_changes_keep_current_values():
    document = make_document()
    updated = document.with_changes(title="", content=None, file_type=None)

    assert updated.title == "Notes"
    assert updated.content == "a b c"
    assert updated.file_type == FileKind.MARKDOWN
    assert updated.last_modified >= document.last_modified


def test_unknown_file_kind_parses_to_none():
    assert FileKind.parse("TXT") == FileKind.PLAIN
    assert FileKind.parse("pdf") is None
    assert FileKind.parse(None) is None


def test_duplicate_belongs_to_new_owner():
    document = make_document(collaborators=[COLLABORATOR], is_public=True)
    copy = document.duplicate_for(STRANGER)

    assert copy.uuid != document.uuid
    assert copy.owner_id == STRANGER
    assert copy.title == "Notes (Copy)"
    assert copy.content == document.content
    assert copy.collaborators == frozenset()
    assert copy.is_public is False


def make_grant(**kwargs):
    defaults = dict(uuid=uuid.uuid4(), document_id=uuid.uuid4(), owner_id=OWNER)
    defaults.update(kwargs)
    return ShareGrant(**defaults)


def test_grant_entry_matches_by_id_or_email():
    grant = make_grant(shared_users=(
        SharedUser(email="bob@example.com", permission=Permission.EDIT, user_id=COLLABORATOR),
        SharedUser(email="carol@example.com", permission=Permission.COMMENT),
    ))
    now = utcnow()

    assert access.resolve_grant_permission(grant, COLLABORATOR, "other@example.com", now) == Permission.EDIT
    assert access.resolve_grant_permission(grant, STRANGER, "Carol@Example.com", now) == Permission.COMMENT
    assert access.resolve_grant_permission(grant, STRANGER, "dave@example.com", now) is None


def test_public_grant_falls_back_to_default_permission():
    grant = make_grant(is_public=True, permission=Permission.VIEW)
    assert access.resolve_grant_permission(grant, STRANGER, "dave@example.com", utcnow()) == Permission.VIEW


def test_expired_grant_resolves_to_nothing():
    now = utcnow()
    grant = make_grant(
        is_public=True,
        expires_at=now - timedelta(minutes=1),
        shared_users=(SharedUser(email="bob@example.com", user_id=COLLABORATOR),)
    )
    assert access.resolve_grant_permission(grant, COLLABORATOR, "bob@example.com", now) is None
